"""
Admin Redirects API Routes.

Admin endpoints for managing redirect rules and reading their click counts.

Key behaviors:
- Validation errors reject the write (400)
- Reserved path conflicts never reject the write; they are reported in `conflict`
- Notices are handed out once, on the next read of the rule
- visit_count is read-only here
"""

from __future__ import annotations

from typing import Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from shuriken.api.deps import Settings, get_admin_service, get_redirect_resolver, get_settings
from shuriken.components.redirects import (
    Redirect,
    RedirectResolver,
    RuleAdminService,
    RuleValidationError,
    normalize_slug,
    public_link,
)
from shuriken.domain.entities import AdminNotice, RedirectRule

router = APIRouter()


class CreateRuleRequest(BaseModel):
    """Request to create a redirect rule."""

    slug: str = Field(..., description="Path segment to redirect from (e.g. promo)")
    target_url: str = Field("", description="Absolute URL to redirect to")
    status: Literal["published", "unpublished"] = Field("published")
    title: str | None = Field(None, description="Admin label")


class UpdateRuleRequest(BaseModel):
    """Request to update a redirect rule."""

    slug: str | None = Field(None, description="New slug")
    target_url: str | None = Field(None, description="New target URL ('' clears it)")
    status: Literal["published", "unpublished"] | None = Field(None)
    title: str | None = Field(None, description="Admin label")


class NoticeResponse(BaseModel):
    """One-shot admin notice."""

    code: str
    slug: str
    message: str


class RuleResponse(BaseModel):
    """Redirect rule response."""

    id: str
    slug: str
    public_link: str
    target_url: str
    visit_count: int
    status: str
    title: str | None = None
    created_at: str
    updated_at: str
    conflict: str | None = None
    notices: list[NoticeResponse] = Field(default_factory=list)


class RuleListResponse(BaseModel):
    """List of redirect rules response."""

    redirects: list[RuleResponse]
    count: int


class ConflictCheckRequest(BaseModel):
    """Request to check a slug against reserved paths."""

    slug: str
    rule_id: UUID | None = None


class ValidationErrorResponse(BaseModel):
    """Validation error response."""

    errors: list[dict[str, Any]]


# --- Helper Functions ---


def _rule_to_response(
    rule: RedirectRule,
    site_url: str,
    notices: list[AdminNotice] | None = None,
    conflict: str | None = None,
) -> RuleResponse:
    """Convert RedirectRule to response model."""
    return RuleResponse(
        id=str(rule.id),
        slug=rule.slug,
        public_link=public_link(site_url, rule.slug),
        target_url=rule.target_url,
        visit_count=rule.visit_count,
        status=rule.status,
        title=rule.title,
        created_at=rule.created_at.isoformat(),
        updated_at=rule.updated_at.isoformat(),
        conflict=conflict,
        notices=[
            NoticeResponse(code=n.code, slug=n.slug, message=n.message) for n in notices or []
        ],
    )


def _serialize_errors(
    errors: list[RuleValidationError],
) -> list[dict[str, Any]]:
    """Serialize validation errors."""
    return [
        {
            "code": e.code,
            "message": e.message,
            "field": e.field,
        }
        for e in errors
    ]


# --- Routes ---


@router.post(
    "/redirects",
    response_model=RuleResponse,
    responses={400: {"model": ValidationErrorResponse}},
)
def create_rule(
    request: CreateRuleRequest,
    service: RuleAdminService = Depends(get_admin_service),
    settings: Settings = Depends(get_settings),
) -> RuleResponse:
    """
    Create a redirect rule.

    A slug already used by a page or post is saved anyway; the clash is
    reported in `conflict` and queued as a notice for the next read.
    """
    rule, errors, conflict = service.create(
        slug=request.slug,
        target_url=request.target_url,
        status=request.status,
        title=request.title,
    )

    if errors:
        raise HTTPException(
            status_code=400,
            detail={"errors": _serialize_errors(errors)},
        )

    assert rule is not None
    return _rule_to_response(rule, settings.site_url, conflict=conflict.conflict)


@router.get("/redirects", response_model=RuleListResponse)
def list_rules(
    service: RuleAdminService = Depends(get_admin_service),
    settings: Settings = Depends(get_settings),
) -> RuleListResponse:
    """Dashboard listing: slug, public link, target and clicks for every rule."""
    rules = service.list_all()
    return RuleListResponse(
        redirects=[_rule_to_response(r, settings.site_url) for r in rules],
        count=len(rules),
    )


@router.get("/redirects/resolve/{path:path}")
def resolve_path(
    path: str,
    resolver: RedirectResolver = Depends(get_redirect_resolver),
) -> dict[str, Any]:
    """
    Preview what a public request to `path` would do.

    Does not count a visit.
    """
    outcome = resolver.resolve(path, record_visit=False)
    if isinstance(outcome, Redirect):
        return {
            "slug": normalize_slug(path),
            "match": True,
            "target_url": outcome.target_url,
            "status_code": outcome.status_code,
        }
    return {"slug": normalize_slug(path), "match": False}


@router.post("/redirects/check-conflict")
def check_conflict(
    request: ConflictCheckRequest,
    service: RuleAdminService = Depends(get_admin_service),
) -> dict[str, Any]:
    """Advisory: is this slug already used by a page or post?"""
    result = service.check_conflict(request.slug, request.rule_id)
    return {"ok": result.ok, "conflict": result.conflict}


@router.get(
    "/redirects/{rule_id}",
    response_model=RuleResponse,
    responses={404: {"description": "Redirect not found"}},
)
def get_rule(
    rule_id: UUID,
    service: RuleAdminService = Depends(get_admin_service),
    settings: Settings = Depends(get_settings),
) -> RuleResponse:
    """Get a redirect rule by ID, with any pending notices."""
    rule = service.get(rule_id)
    if rule is None:
        raise HTTPException(status_code=404, detail="Redirect not found")
    return _rule_to_response(rule, settings.site_url, service.consume_notices(rule_id))


@router.put(
    "/redirects/{rule_id}",
    response_model=RuleResponse,
    responses={
        400: {"model": ValidationErrorResponse},
        404: {"description": "Redirect not found"},
    },
)
def update_rule(
    rule_id: UUID,
    request: UpdateRuleRequest,
    service: RuleAdminService = Depends(get_admin_service),
    settings: Settings = Depends(get_settings),
) -> RuleResponse:
    """Update a redirect rule."""
    # null clears target_url and title; it means "unchanged" for slug and status
    updates = {
        k: v
        for k, v in request.model_dump(exclude_unset=True).items()
        if v is not None or k in ("target_url", "title")
    }
    if not updates:
        raise HTTPException(status_code=400, detail="No updates provided")

    rule, errors, conflict = service.update(rule_id, updates)

    if errors:
        if any(e.code == "not_found" for e in errors):
            raise HTTPException(status_code=404, detail="Redirect not found")
        raise HTTPException(
            status_code=400,
            detail={"errors": _serialize_errors(errors)},
        )

    assert rule is not None
    return _rule_to_response(rule, settings.site_url, conflict=conflict.conflict)


@router.delete(
    "/redirects/{rule_id}",
    responses={404: {"description": "Redirect not found"}},
)
def delete_rule(
    rule_id: UUID,
    service: RuleAdminService = Depends(get_admin_service),
) -> dict[str, bool]:
    """Delete a redirect rule."""
    if not service.delete(rule_id):
        raise HTTPException(status_code=404, detail="Redirect not found")
    return {"deleted": True}
