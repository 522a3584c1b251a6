"""
Redirects component port definitions.

The rule store is owned by the administrative layer; the resolver only
reads published rules and bumps visit counters through it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from shuriken.domain.entities import AdminNotice, RedirectRule


class RuleStorePort(Protocol):
    """Repository interface for redirect rules."""

    def find_published_rule_by_slug(self, slug: str) -> RedirectRule | None:
        """
        Get the published rule whose slug equals `slug` exactly.

        Raises LookupUnavailableError when the store cannot be queried.
        """
        ...

    def increment_visit_count(self, rule_id: UUID) -> int:
        """
        Atomically add one to the rule's visit count and return the new value.

        Raises CounterWriteError when the increment cannot be applied.
        """
        ...

    def get_by_id(self, rule_id: UUID) -> RedirectRule | None:
        """Get rule by ID, whatever its status."""
        ...

    def get_by_slug(self, slug: str) -> RedirectRule | None:
        """Get rule by slug, whatever its status."""
        ...

    def save(self, rule: RedirectRule) -> RedirectRule:
        """Insert or update a rule. The stored visit count is never overwritten."""
        ...

    def delete(self, rule_id: UUID) -> None:
        """Delete rule."""
        ...

    def list_all(self) -> list[RedirectRule]:
        """List all rules, newest first."""
        ...


class ReservedPathPort(Protocol):
    """Interface onto the host site's own addressable paths."""

    def path_is_reserved(self, path: str, excluding_id: UUID | None = None) -> bool:
        """Check if `path` is claimed by something other than `excluding_id`."""
        ...


class NoticeQueuePort(Protocol):
    """One-shot admin notices keyed by rule identity."""

    def push(self, notice: AdminNotice) -> None:
        """Queue a notice, replacing a pending one with the same code."""
        ...

    def consume(self, rule_id: UUID) -> list[AdminNotice]:
        """Return and delete every unexpired notice for the rule."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
