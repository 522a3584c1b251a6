"""
In-memory stores.

Thread-safe: every read and write happens under the store's lock, which is
what makes increment_visit_count atomic here.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from uuid import UUID

from shuriken.components.redirects import (
    CounterWriteError,
    PathReservedError,
    SlugTakenError,
    TimePort,
    normalize_slug,
)
from shuriken.domain.entities import AdminNotice, RedirectRule, ReservedPath, ReservedPathKind


class InMemoryRuleStore:
    """In-memory redirect rule store."""

    def __init__(self, rules: Iterable[RedirectRule] = ()) -> None:
        self._rules: dict[UUID, RedirectRule] = {}
        self._lock = threading.Lock()
        for rule in rules:
            self.save(rule)

    def find_published_rule_by_slug(self, slug: str) -> RedirectRule | None:
        with self._lock:
            matches = [
                r for r in self._rules.values() if r.slug == slug and r.status == "published"
            ]
            if not matches:
                return None
            newest = max(matches, key=lambda r: r.created_at)
            return newest.model_copy()

    def increment_visit_count(self, rule_id: UUID) -> int:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                raise CounterWriteError(f"Redirect rule {rule_id} not found")
            rule.visit_count += 1
            return rule.visit_count

    def get_by_id(self, rule_id: UUID) -> RedirectRule | None:
        with self._lock:
            rule = self._rules.get(rule_id)
            return rule.model_copy() if rule else None

    def get_by_slug(self, slug: str) -> RedirectRule | None:
        with self._lock:
            for rule in self._rules.values():
                if rule.slug == slug:
                    return rule.model_copy()
            return None

    def save(self, rule: RedirectRule) -> RedirectRule:
        with self._lock:
            for other in self._rules.values():
                if other.slug == rule.slug and other.id != rule.id:
                    raise SlugTakenError(rule.slug)

            existing = self._rules.get(rule.id)
            stored = rule.model_copy()
            if existing is not None:
                stored.visit_count = existing.visit_count
                stored.created_at = existing.created_at
            self._rules[rule.id] = stored
            return stored.model_copy()

    def delete(self, rule_id: UUID) -> None:
        with self._lock:
            self._rules.pop(rule_id, None)

    def list_all(self) -> list[RedirectRule]:
        with self._lock:
            rules = sorted(self._rules.values(), key=lambda r: r.created_at, reverse=True)
            return [r.model_copy() for r in rules]


class InMemoryReservedPathRepo:
    """In-memory registry of the host site's own paths."""

    def __init__(self, system_paths: Iterable[str] = ()) -> None:
        self._paths: dict[UUID, ReservedPath] = {}
        self._system_paths = frozenset(normalize_slug(p) for p in system_paths)
        self._lock = threading.Lock()

    def add(self, path: str, kind: ReservedPathKind = "page") -> ReservedPath:
        reserved = ReservedPath(path=normalize_slug(path), kind=kind)
        with self._lock:
            if any(p.path == reserved.path for p in self._paths.values()):
                raise PathReservedError(reserved.path)
            self._paths[reserved.id] = reserved
        return reserved

    def get_by_id(self, path_id: UUID) -> ReservedPath | None:
        with self._lock:
            return self._paths.get(path_id)

    def delete(self, path_id: UUID) -> None:
        with self._lock:
            self._paths.pop(path_id, None)

    def list_all(self) -> list[ReservedPath]:
        with self._lock:
            return sorted(self._paths.values(), key=lambda p: p.path)

    def path_is_reserved(self, path: str, excluding_id: UUID | None = None) -> bool:
        if path in self._system_paths:
            return True
        with self._lock:
            return any(p.path == path and p.id != excluding_id for p in self._paths.values())


class InMemoryNoticeQueue:
    """Read-once admin notices; expired entries are dropped on read."""

    def __init__(self, time_port: TimePort) -> None:
        self._time = time_port
        self._notices: dict[UUID, list[AdminNotice]] = {}
        self._lock = threading.Lock()

    def push(self, notice: AdminNotice) -> None:
        with self._lock:
            pending = [n for n in self._notices.get(notice.rule_id, []) if n.code != notice.code]
            pending.append(notice)
            self._notices[notice.rule_id] = pending

    def consume(self, rule_id: UUID) -> list[AdminNotice]:
        now = self._time.now_utc()
        with self._lock:
            pending = self._notices.pop(rule_id, [])
        return [n for n in pending if n.expires_at > now]
