"""
Admin Reserved Paths API Routes.

The host site's own pages and posts. Redirect slugs are checked against
this registry when they are saved.
"""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from shuriken.adapters.sqlite.repos import SQLiteReservedPathRepo
from shuriken.api.deps import get_reserved_path_repo
from shuriken.components.redirects import PathReservedError, normalize_slug
from shuriken.domain.entities import ReservedPath

router = APIRouter()


class ReservePathRequest(BaseModel):
    """Request to register a reserved path."""

    path: str = Field(..., description="Path owned by the host site (e.g. about)")
    kind: Literal["page", "post", "system"] = Field("page")


class ReservedPathResponse(BaseModel):
    """Reserved path response."""

    id: str
    path: str
    kind: str
    created_at: str


def _to_response(reserved: ReservedPath) -> ReservedPathResponse:
    return ReservedPathResponse(
        id=str(reserved.id),
        path=reserved.path,
        kind=reserved.kind,
        created_at=reserved.created_at.isoformat(),
    )


@router.get("/reserved-paths", response_model=list[ReservedPathResponse])
def list_reserved_paths(
    repo: SQLiteReservedPathRepo = Depends(get_reserved_path_repo),
) -> list[ReservedPathResponse]:
    """List registered reserved paths."""
    return [_to_response(p) for p in repo.list_all()]


@router.post(
    "/reserved-paths",
    response_model=ReservedPathResponse,
    responses={400: {"description": "Empty path"}, 409: {"description": "Already reserved"}},
)
def reserve_path(
    request: ReservePathRequest,
    repo: SQLiteReservedPathRepo = Depends(get_reserved_path_repo),
) -> ReservedPathResponse:
    """Register a path owned by the host site."""
    path = normalize_slug(request.path.strip())
    if not path:
        raise HTTPException(status_code=400, detail="Path is required")
    conflict = HTTPException(status_code=409, detail=f"Path '{path}' is already reserved")
    if repo.path_is_reserved(path):
        raise conflict
    try:
        return _to_response(repo.add(path, request.kind))
    except PathReservedError as e:
        raise conflict from e


@router.delete(
    "/reserved-paths/{path_id}",
    responses={404: {"description": "Reserved path not found"}},
)
def release_path(
    path_id: UUID,
    repo: SQLiteReservedPathRepo = Depends(get_reserved_path_repo),
) -> dict[str, bool]:
    """Remove a reserved path."""
    if repo.get_by_id(path_id) is None:
        raise HTTPException(status_code=404, detail="Reserved path not found")
    repo.delete(path_id)
    return {"deleted": True}
