"""
Redirects component input/output models.

Outcome types returned by the resolver, dispatcher actions, validation
errors and the store error hierarchy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from shuriken.domain.entities import AdminNotice, RedirectRule

DEFAULT_STATUS_CODE = 301


# --- Store Errors ---


class RuleStoreError(Exception):
    """Base class for rule store failures."""


class LookupUnavailableError(RuleStoreError):
    """Raised when the rule store cannot be queried."""


class CounterWriteError(RuleStoreError):
    """Raised when a visit count increment could not be applied."""


class SlugTakenError(RuleStoreError):
    """Raised when another redirect rule already owns the slug."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"Slug already in use by another redirect: {slug}")


class PathReservedError(RuleStoreError):
    """Raised when the reserved-path registry already holds the path."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Path already reserved: {path}")


# --- Validation Error ---


@dataclass(frozen=True)
class RuleValidationError:
    """Redirect rule validation error."""

    code: str
    message: str
    field: str | None = None


# --- Resolver Outcomes ---


@dataclass(frozen=True)
class Redirect:
    """Positive match: send the client to target_url."""

    target_url: str
    status_code: int = DEFAULT_STATUS_CODE


@dataclass(frozen=True)
class NoMatch:
    """No redirect applies; the host handles the request normally."""


NO_MATCH = NoMatch()

Outcome = Redirect | NoMatch


@dataclass(frozen=True)
class ConflictResult:
    """Advisory result of checking a slug against reserved paths."""

    conflict: str | None = None

    @property
    def ok(self) -> bool:
        return self.conflict is None


CONFLICT_OK = ConflictResult()


# --- Dispatcher Actions ---


@dataclass(frozen=True)
class RedirectAction:
    """Dispatcher must answer with a redirect to redirect_to."""

    redirect_to: str
    status: int = DEFAULT_STATUS_CODE


@dataclass(frozen=True)
class NoAction:
    """Dispatcher proceeds with its normal routing."""


NO_ACTION = NoAction()

DispatchAction = RedirectAction | NoAction


# --- Input Models ---


@dataclass(frozen=True)
class CreateRuleInput:
    """Input for creating a new redirect rule."""

    slug: str
    target_url: str
    status: str = "published"
    title: str | None = None


@dataclass(frozen=True)
class UpdateRuleInput:
    """Input for updating an existing redirect rule."""

    rule_id: UUID
    updates: dict[str, Any]


@dataclass(frozen=True)
class DeleteRuleInput:
    """Input for deleting a redirect rule."""

    rule_id: UUID


@dataclass(frozen=True)
class GetRuleInput:
    """Input for getting a redirect rule."""

    rule_id: UUID | None = None
    slug: str | None = None


@dataclass(frozen=True)
class ListRulesInput:
    """Input for listing all redirect rules."""

    pass


@dataclass(frozen=True)
class ResolvePathInput:
    """Input for resolving a request path."""

    path: str
    record_visit: bool = True


@dataclass(frozen=True)
class CheckConflictInput:
    """Input for checking a slug against reserved paths."""

    slug: str
    owner_rule_id: UUID | None = None


# --- Output Models ---


@dataclass(frozen=True)
class RuleOutput:
    """Output containing a single rule and any pending notices."""

    rule: RedirectRule | None
    notices: list[AdminNotice] = field(default_factory=list)
    errors: list[RuleValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class RuleListOutput:
    """Output containing a list of rules."""

    rules: tuple[RedirectRule, ...]
    errors: list[RuleValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class RuleOperationOutput:
    """Output for rule operations (create, update, delete)."""

    rule: RedirectRule | None = None
    conflict: ConflictResult = CONFLICT_OK
    errors: list[RuleValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ResolveOutput:
    """Output for resolve operation."""

    outcome: Outcome
    errors: list[RuleValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ConflictOutput:
    """Output for conflict check."""

    result: ConflictResult
    errors: list[RuleValidationError] = field(default_factory=list)
    success: bool = True
