"""
Redirect engine - resolution, click counting and slug conflict checks.

Key behaviors:
- Request paths lose one leading and one trailing slash; the site root never redirects
- Slugs match exactly and case-sensitively against published rules
- Rules without a target URL never break normal navigation
- Each served redirect adds exactly one to the rule's visit count
- Store failures degrade to "no match" (lookup) or a lost click (counter)
- Slugs claimed by reserved paths are reported, never rejected
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import urlparse
from uuid import UUID, uuid4

from shuriken.domain.entities import AdminNotice, RedirectRule

from .models import (
    CONFLICT_OK,
    DEFAULT_STATUS_CODE,
    NO_ACTION,
    NO_MATCH,
    ConflictResult,
    CounterWriteError,
    DispatchAction,
    Outcome,
    Redirect,
    RedirectAction,
    RuleStoreError,
    RuleValidationError,
    SlugTakenError,
)
from .ports import NoticeQueuePort, ReservedPathPort, RuleStorePort, TimePort

logger = logging.getLogger(__name__)

RULE_STATUSES = ("published", "unpublished")
UPDATABLE_FIELDS = frozenset({"slug", "target_url", "status", "title"})
ALLOWED_TARGET_SCHEMES = ("http", "https")

# --- Configuration ---


@dataclass(frozen=True)
class RedirectConfig:
    """Redirect configuration from rules."""

    enabled: bool = True
    status_code: int = DEFAULT_STATUS_CODE

    # Request contexts the resolver never sees
    admin_path_prefixes: tuple[str, ...] = ("admin", "api/admin")

    # Let reserved paths win even though the resolver runs first
    defer_to_reserved_paths: bool = False

    notice_ttl_seconds: int = 45


DEFAULT_CONFIG = RedirectConfig()


# --- Path Helpers ---


def normalize_slug(path: str) -> str:
    """Strip a single leading and a single trailing slash."""
    if path.startswith("/"):
        path = path[1:]
    if path.endswith("/"):
        path = path[:-1]
    return path


def is_admin_path(path: str, prefixes: tuple[str, ...]) -> bool:
    """Check if path falls under one of the administrative prefixes."""
    slug = normalize_slug(path)
    for prefix in prefixes:
        prefix = prefix.strip("/")
        if slug == prefix or slug.startswith(prefix + "/"):
            return True
    return False


def public_link(site_url: str, slug: str) -> str:
    """Build the shareable link for a slug."""
    return f"{site_url.rstrip('/')}/{slug}"


# --- Validation Functions ---


def validate_slug(slug: str) -> list[RuleValidationError]:
    """Validate an already normalized slug."""
    errors: list[RuleValidationError] = []

    if not slug:
        errors.append(
            RuleValidationError(
                code="slug_required",
                message="Slug is required",
                field="slug",
            )
        )
        return errors

    if any(ch.isspace() for ch in slug) or "?" in slug or "#" in slug:
        errors.append(
            RuleValidationError(
                code="invalid_slug",
                message="Slug cannot contain whitespace, '?' or '#'",
                field="slug",
            )
        )

    segments = slug.split("/")
    if any(segment in ("", ".", "..") for segment in segments):
        errors.append(
            RuleValidationError(
                code="invalid_slug",
                message="Slug cannot contain empty, '.' or '..' path segments",
                field="slug",
            )
        )

    return errors


def validate_target_url(target_url: str) -> list[RuleValidationError]:
    """Validate target URL. Empty is allowed: such a rule never matches."""
    if not target_url:
        return []

    parsed = urlparse(target_url)
    if parsed.scheme.lower() not in ALLOWED_TARGET_SCHEMES or not parsed.netloc:
        return [
            RuleValidationError(
                code="invalid_target_url",
                message="Target must be an absolute http or https URL",
                field="target_url",
            )
        ]
    return []


def validate_status(status: str) -> list[RuleValidationError]:
    """Validate publication status."""
    if status not in RULE_STATUSES:
        return [
            RuleValidationError(
                code="invalid_status",
                message=f"Status must be one of: {', '.join(RULE_STATUSES)}",
                field="status",
            )
        ]
    return []


# --- Click Counter ---


class ClickCounter:
    """Atomic visit counter on top of the rule store."""

    def __init__(self, store: RuleStorePort) -> None:
        self._store = store

    def increment(self, rule_id: UUID) -> int:
        """Add one to the rule's visit count. Raises CounterWriteError."""
        return self._store.increment_visit_count(rule_id)

    def record(self, rule_id: UUID) -> int | None:
        """
        Count a served redirect.

        Never raises: a lost click is acceptable, a lost redirect is not.
        """
        try:
            return self.increment(rule_id)
        except RuleStoreError as e:
            logger.warning("Visit count not recorded for rule %s: %s", rule_id, e)
            return None


# --- Conflict Validator ---


class ConflictValidator:
    """Checks candidate slugs against the host site's reserved paths."""

    def __init__(self, reserved: ReservedPathPort | None) -> None:
        self._reserved = reserved

    def check_conflict(
        self,
        candidate_slug: str,
        owner_rule_id: UUID | None = None,
    ) -> ConflictResult:
        slug = normalize_slug(candidate_slug)
        if not slug or self._reserved is None:
            return CONFLICT_OK

        try:
            taken = self._reserved.path_is_reserved(slug, owner_rule_id)
        except RuleStoreError as e:
            logger.warning("Reserved path check failed for '%s': %s", slug, e)
            return CONFLICT_OK

        if taken:
            return ConflictResult(conflict=slug)
        return CONFLICT_OK


# --- Redirect Resolver ---


class RedirectResolver:
    """
    Per-request redirect decision.

    Invoked once per inbound, non-administrative request before the host's
    own routing. Returns an outcome value; it never performs the redirect.
    """

    def __init__(
        self,
        store: RuleStorePort,
        counter: ClickCounter | None = None,
        conflict_validator: ConflictValidator | None = None,
        config: RedirectConfig | None = None,
    ) -> None:
        self._store = store
        self._counter = counter or ClickCounter(store)
        self._conflict_validator = conflict_validator
        self._config = config or DEFAULT_CONFIG

    @property
    def config(self) -> RedirectConfig:
        return self._config

    def resolve(self, request_path: str, *, record_visit: bool = True) -> Outcome:
        slug = normalize_slug(request_path)
        if not slug:
            return NO_MATCH

        try:
            rule = self._store.find_published_rule_by_slug(slug)
        except RuleStoreError as e:
            logger.warning("Redirect lookup failed for '%s', falling through: %s", slug, e)
            return NO_MATCH

        if rule is None or not rule.is_matchable:
            return NO_MATCH

        if self._config.defer_to_reserved_paths and self._conflict_validator is not None:
            if not self._conflict_validator.check_conflict(slug, rule.id).ok:
                logger.info("Redirect '%s' shadowed by a reserved path", slug)
                return NO_MATCH

        if record_visit:
            self._counter.record(rule.id)

        return Redirect(target_url=rule.target_url, status_code=self._config.status_code)

    def on_request(self, path: str) -> DispatchAction:
        """Dispatcher entry point."""
        if not self._config.enabled:
            return NO_ACTION
        if is_admin_path(path, self._config.admin_path_prefixes):
            return NO_ACTION

        outcome = self.resolve(path)
        if isinstance(outcome, Redirect):
            return RedirectAction(redirect_to=outcome.target_url, status=outcome.status_code)
        return NO_ACTION


# --- Admin Rule Service ---


class RuleAdminService:
    """
    Administrative create/update/delete of redirect rules.

    Validation errors block the write. Reserved path conflicts do not: the
    rule is saved and a one-shot notice is queued for the next admin view.
    """

    def __init__(
        self,
        store: RuleStorePort,
        conflict_validator: ConflictValidator | None = None,
        notices: NoticeQueuePort | None = None,
        time_port: TimePort | None = None,
        config: RedirectConfig | None = None,
    ) -> None:
        self._store = store
        self._conflict_validator = conflict_validator or ConflictValidator(None)
        self._notices = notices
        self._time_port = time_port
        self._config = config or DEFAULT_CONFIG

    def _now(self) -> datetime:
        if self._time_port:
            return self._time_port.now_utc()
        from shuriken.adapters.clock import SystemClock

        return SystemClock().now_utc()

    def get(self, rule_id: UUID) -> RedirectRule | None:
        return self._store.get_by_id(rule_id)

    def get_by_slug(self, slug: str) -> RedirectRule | None:
        return self._store.get_by_slug(normalize_slug(slug))

    def list_all(self) -> list[RedirectRule]:
        return self._store.list_all()

    def consume_notices(self, rule_id: UUID) -> list[AdminNotice]:
        if self._notices is None:
            return []
        return self._notices.consume(rule_id)

    def check_conflict(self, slug: str, owner_rule_id: UUID | None = None) -> ConflictResult:
        return self._conflict_validator.check_conflict(slug, owner_rule_id)

    def create(
        self,
        slug: str,
        target_url: str,
        status: str = "published",
        title: str | None = None,
    ) -> tuple[RedirectRule | None, list[RuleValidationError], ConflictResult]:
        """
        Create a new rule.

        Returns:
            Tuple of (rule, errors, conflict). Rule is None if validation fails.
        """
        norm_slug = normalize_slug(slug.strip())
        target_url = target_url.strip()

        errors: list[RuleValidationError] = []
        errors.extend(validate_slug(norm_slug))
        errors.extend(validate_target_url(target_url))
        errors.extend(validate_status(status))
        if errors:
            return None, errors, CONFLICT_OK

        if self._store.get_by_slug(norm_slug) is not None:
            return None, [_slug_exists(norm_slug)], CONFLICT_OK

        now = self._now()
        rule = RedirectRule(
            id=uuid4(),
            slug=norm_slug,
            target_url=target_url,
            visit_count=0,
            status=status,  # type: ignore[arg-type]  # validated above
            title=title,
            created_at=now,
            updated_at=now,
        )

        try:
            saved = self._store.save(rule)
        except SlugTakenError:
            return None, [_slug_exists(norm_slug)], CONFLICT_OK

        conflict = self._flag_conflict(saved)
        logger.info("Created redirect '%s' -> %s", saved.slug, saved.target_url or "(no target)")
        return saved, [], conflict

    def update(
        self,
        rule_id: UUID,
        updates: dict[str, Any],
    ) -> tuple[RedirectRule | None, list[RuleValidationError], ConflictResult]:
        """
        Update an existing rule.

        Only slug, target_url, status and title can change; the visit
        count belongs to the click counter.
        """
        rule = self._store.get_by_id(rule_id)
        if rule is None:
            return (
                None,
                [RuleValidationError(code="not_found", message=f"Redirect {rule_id} not found")],
                CONFLICT_OK,
            )

        changes = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
        errors: list[RuleValidationError] = []

        if "slug" in changes:
            changes["slug"] = normalize_slug(str(changes["slug"]).strip())
            errors.extend(validate_slug(changes["slug"]))
            if not errors:
                existing = self._store.get_by_slug(changes["slug"])
                if existing is not None and existing.id != rule_id:
                    errors.append(_slug_exists(changes["slug"]))

        if "target_url" in changes:
            changes["target_url"] = str(changes["target_url"] or "").strip()
            errors.extend(validate_target_url(changes["target_url"]))

        if "status" in changes:
            errors.extend(validate_status(changes["status"]))

        if errors:
            return rule, errors, CONFLICT_OK

        changes["updated_at"] = self._now()
        try:
            saved = self._store.save(rule.model_copy(update=changes))
        except SlugTakenError as e:
            return rule, [_slug_exists(e.slug)], CONFLICT_OK

        conflict = self._flag_conflict(saved) if "slug" in changes else CONFLICT_OK
        return saved, [], conflict

    def delete(self, rule_id: UUID) -> bool:
        rule = self._store.get_by_id(rule_id)
        if rule is None:
            return False

        self._store.delete(rule_id)
        logger.info("Deleted redirect '%s'", rule.slug)
        return True

    def _flag_conflict(self, rule: RedirectRule) -> ConflictResult:
        conflict = self._conflict_validator.check_conflict(rule.slug, rule.id)
        if conflict.ok:
            return conflict

        logger.info("Redirect slug '%s' is already used by a page or post", rule.slug)
        if self._notices is not None:
            try:
                self._notices.push(build_conflict_notice(rule, self._now(), self._config))
            except RuleStoreError as e:
                logger.warning("Conflict notice not queued for '%s': %s", rule.slug, e)
        return conflict


def build_conflict_notice(
    rule: RedirectRule,
    now: datetime,
    config: RedirectConfig = DEFAULT_CONFIG,
) -> AdminNotice:
    """Warning shown once on the next admin view of the rule."""
    return AdminNotice(
        rule_id=rule.id,
        code="slug_conflict",
        slug=rule.slug,
        message=(
            f'The slug "{rule.slug}" is already used by a page or post on this site. '
            "This redirect might not work until you change the slug to something unique."
        ),
        created_at=now,
        expires_at=now + timedelta(seconds=config.notice_ttl_seconds),
    )


def _slug_exists(slug: str) -> RuleValidationError:
    return RuleValidationError(
        code="slug_exists",
        message=f"Redirect already exists for '{slug}'",
        field="slug",
    )


# --- Factory ---


def create_redirect_resolver(
    store: RuleStorePort,
    reserved: ReservedPathPort | None = None,
    config: RedirectConfig | None = None,
) -> RedirectResolver:
    """Create a RedirectResolver."""
    return RedirectResolver(
        store=store,
        counter=ClickCounter(store),
        conflict_validator=ConflictValidator(reserved),
        config=config,
    )
