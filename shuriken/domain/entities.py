from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

# --- Enums / Literals ---
RuleStatus = Literal["published", "unpublished"]
ReservedPathKind = Literal["page", "post", "system"]
NoticeCode = Literal["slug_conflict"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


# --- Redirect Rules ---

class RedirectRule(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    slug: str
    target_url: str = ""
    visit_count: int = Field(default=0, ge=0)
    status: RuleStatus = "published"
    title: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("slug")
    @classmethod
    def _slug_has_no_outer_slashes(cls, value: str) -> str:
        if value.startswith("/") or value.endswith("/"):
            raise ValueError("slug must not start or end with '/'")
        return value

    @property
    def is_matchable(self) -> bool:
        """Published and pointing somewhere."""
        return self.status == "published" and bool(self.target_url)


# --- Host Site Namespace ---

class ReservedPath(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    path: str
    kind: ReservedPathKind = "page"
    created_at: datetime = Field(default_factory=_utcnow)


# --- Admin Notices ---

class AdminNotice(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    rule_id: UUID
    code: NoticeCode = "slug_conflict"
    slug: str
    message: str
    created_at: datetime = Field(default_factory=_utcnow)
    expires_at: datetime
