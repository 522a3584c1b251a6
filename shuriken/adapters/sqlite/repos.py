import sqlite3
from collections.abc import Iterable
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from shuriken.components.redirects import (
    CounterWriteError,
    LookupUnavailableError,
    PathReservedError,
    RuleStoreError,
    SlugTakenError,
    TimePort,
    normalize_slug,
)
from shuriken.domain.entities import AdminNotice, RedirectRule, ReservedPath, ReservedPathKind

# Seconds a connection waits on a locked database before giving up
BUSY_TIMEOUT = 10.0


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


class _SQLiteRepo:
    def __init__(self, db_path: str, busy_timeout: float = BUSY_TIMEOUT):
        self.db_path = db_path
        self.busy_timeout = busy_timeout

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def ping(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute("SELECT 1").fetchone()
        finally:
            conn.close()


class SQLiteRuleRepo(_SQLiteRepo):
    def find_published_rule_by_slug(self, slug: str) -> RedirectRule | None:
        try:
            return self._get_one(
                "SELECT * FROM redirect_rules WHERE slug = ? AND status = 'published' "
                "ORDER BY created_at DESC LIMIT 1",
                (slug,),
            )
        except (sqlite3.Error, ValidationError) as e:
            raise LookupUnavailableError(f"Redirect lookup failed: {e}") from e

    def increment_visit_count(self, rule_id: UUID) -> int:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise CounterWriteError(f"Visit count update failed: {e}") from e
        try:
            # Single UPDATE holds the write lock; the SELECT sees our own increment
            with conn:
                cur = conn.execute(
                    "UPDATE redirect_rules SET visit_count = visit_count + 1 WHERE id = ?",
                    (str(rule_id),),
                )
                if cur.rowcount == 0:
                    raise CounterWriteError(f"Redirect rule {rule_id} not found")
                row = conn.execute(
                    "SELECT visit_count FROM redirect_rules WHERE id = ?",
                    (str(rule_id),),
                ).fetchone()
            return int(row["visit_count"])
        except sqlite3.Error as e:
            raise CounterWriteError(f"Visit count update failed: {e}") from e
        finally:
            conn.close()

    def get_by_id(self, rule_id: UUID) -> RedirectRule | None:
        return self._read_one("SELECT * FROM redirect_rules WHERE id = ?", (str(rule_id),))

    def get_by_slug(self, slug: str) -> RedirectRule | None:
        return self._read_one("SELECT * FROM redirect_rules WHERE slug = ?", (slug,))

    def save(self, rule: RedirectRule) -> RedirectRule:
        conn = self._get_conn()
        try:
            # visit_count is only ever written by increment_visit_count
            conn.execute(
                """
                INSERT INTO redirect_rules (
                    id, slug, target_url, visit_count, status,
                    title, created_at, updated_at
                ) VALUES (?, ?, ?, 0, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    slug=excluded.slug,
                    target_url=excluded.target_url,
                    status=excluded.status,
                    title=excluded.title,
                    updated_at=excluded.updated_at
            """,
                (
                    str(rule.id),
                    rule.slug,
                    rule.target_url,
                    rule.status,
                    rule.title,
                    rule.created_at.isoformat(),
                    rule.updated_at.isoformat(),
                ),
            )
            conn.commit()
            row = conn.execute(
                "SELECT * FROM redirect_rules WHERE id = ?", (str(rule.id),)
            ).fetchone()
            return self._map_row(row)
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "redirect_rules.slug" in str(e):
                raise SlugTakenError(rule.slug) from e
            raise RuleStoreError(f"Redirect save failed: {e}") from e
        except sqlite3.Error as e:
            conn.rollback()
            raise RuleStoreError(f"Redirect save failed: {e}") from e
        finally:
            conn.close()

    def delete(self, rule_id: UUID) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM redirect_rules WHERE id = ?", (str(rule_id),))
            conn.execute("DELETE FROM admin_notices WHERE rule_id = ?", (str(rule_id),))
            conn.commit()
        except sqlite3.Error as e:
            raise RuleStoreError(f"Redirect delete failed: {e}") from e
        finally:
            conn.close()

    def list_all(self) -> list[RedirectRule]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM redirect_rules ORDER BY created_at DESC"
            ).fetchall()
            return [self._map_row(r) for r in rows]
        except sqlite3.Error as e:
            raise RuleStoreError(f"Redirect listing failed: {e}") from e
        finally:
            conn.close()

    def _read_one(self, query: str, params: tuple[Any, ...]) -> RedirectRule | None:
        try:
            return self._get_one(query, params)
        except sqlite3.Error as e:
            raise RuleStoreError(f"Redirect read failed: {e}") from e

    def _get_one(self, query: str, params: tuple[Any, ...]) -> RedirectRule | None:
        conn = self._get_conn()
        try:
            row = conn.execute(query, params).fetchone()
            if not row:
                return None
            return self._map_row(row)
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> RedirectRule:
        return RedirectRule.model_validate(row)


class SQLiteReservedPathRepo(_SQLiteRepo):
    def __init__(
        self,
        db_path: str,
        system_paths: Iterable[str] = (),
        busy_timeout: float = BUSY_TIMEOUT,
    ):
        super().__init__(db_path, busy_timeout)
        self._system_paths = frozenset(normalize_slug(p) for p in system_paths)

    def add(self, path: str, kind: ReservedPathKind = "page") -> ReservedPath:
        reserved = ReservedPath(path=normalize_slug(path), kind=kind)
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO reserved_paths (id, path, kind, created_at) VALUES (?, ?, ?, ?)",
                (str(reserved.id), reserved.path, reserved.kind, reserved.created_at.isoformat()),
            )
            conn.commit()
            return reserved
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise PathReservedError(reserved.path) from e
        except sqlite3.Error as e:
            raise RuleStoreError(f"Reserved path save failed: {e}") from e
        finally:
            conn.close()

    def get_by_id(self, path_id: UUID) -> ReservedPath | None:
        rows = self._query("SELECT * FROM reserved_paths WHERE id = ?", (str(path_id),))
        return ReservedPath.model_validate(rows[0]) if rows else None

    def delete(self, path_id: UUID) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM reserved_paths WHERE id = ?", (str(path_id),))
            conn.commit()
        except sqlite3.Error as e:
            raise RuleStoreError(f"Reserved path delete failed: {e}") from e
        finally:
            conn.close()

    def list_all(self) -> list[ReservedPath]:
        rows = self._query("SELECT * FROM reserved_paths ORDER BY path", ())
        return [ReservedPath.model_validate(r) for r in rows]

    def path_is_reserved(self, path: str, excluding_id: UUID | None = None) -> bool:
        if path in self._system_paths:
            return True
        excluded = str(excluding_id) if excluding_id else None
        rows = self._query(
            "SELECT 1 FROM reserved_paths WHERE path = ? AND (? IS NULL OR id != ?) LIMIT 1",
            (path, excluded, excluded),
        )
        return bool(rows)

    def _query(self, query: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
        try:
            conn = self._get_conn()
            try:
                return conn.execute(query, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise RuleStoreError(f"Reserved path query failed: {e}") from e


class SQLiteNoticeQueue(_SQLiteRepo):
    def __init__(self, db_path: str, time_port: TimePort, busy_timeout: float = BUSY_TIMEOUT):
        super().__init__(db_path, busy_timeout)
        self._time = time_port

    def push(self, notice: AdminNotice) -> None:
        conn = self._get_conn()
        try:
            with conn:
                conn.execute(
                    "DELETE FROM admin_notices WHERE rule_id = ? AND code = ?",
                    (str(notice.rule_id), notice.code),
                )
                conn.execute(
                    """
                    INSERT INTO admin_notices (
                        id, rule_id, code, slug, message, created_at, expires_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        str(notice.id),
                        str(notice.rule_id),
                        notice.code,
                        notice.slug,
                        notice.message,
                        notice.created_at.isoformat(),
                        notice.expires_at.isoformat(),
                    ),
                )
        except sqlite3.Error as e:
            raise RuleStoreError(f"Notice save failed: {e}") from e
        finally:
            conn.close()

    def consume(self, rule_id: UUID) -> list[AdminNotice]:
        now = self._time.now_utc()
        conn = self._get_conn()
        try:
            # Read and delete under one write lock so a notice is handed out once
            conn.execute("BEGIN IMMEDIATE")
            rows = conn.execute(
                "SELECT * FROM admin_notices WHERE rule_id = ? ORDER BY created_at",
                (str(rule_id),),
            ).fetchall()
            conn.execute("DELETE FROM admin_notices WHERE rule_id = ?", (str(rule_id),))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RuleStoreError(f"Notice read failed: {e}") from e
        finally:
            conn.close()

        notices = [AdminNotice.model_validate(r) for r in rows]
        return [n for n in notices if n.expires_at > now]
