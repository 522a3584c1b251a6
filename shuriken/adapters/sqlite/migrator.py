import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Everything after this marker in a migration file is the rollback script
DOWN_MARKER = "-- Down"


class SQLiteMigrator:
    """Applies `migrations/*.sql` files in name order, each exactly once."""

    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = Path(db_path)
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations ("
            " filename TEXT PRIMARY KEY,"
            " applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP)"
        )
        return conn

    def pending(self) -> list[str]:
        """Migration filenames not yet recorded in the database."""
        conn = self._connect()
        try:
            return self._pending(conn)
        finally:
            conn.close()

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations and return the filenames applied."""
        conn = self._connect()
        try:
            if not any(self.migrations_dir.glob("*.sql")):
                logger.warning("No migrations found in %s", self.migrations_dir.resolve())
            pending = self._pending(conn)
            for filename in pending:
                logger.info("Applying migration: %s", filename)
                self._apply(conn, filename)
            return pending
        finally:
            conn.close()

    def _pending(self, conn: sqlite3.Connection) -> list[str]:
        done = {row[0] for row in conn.execute("SELECT filename FROM schema_migrations")}
        return [p.name for p in sorted(self.migrations_dir.glob("*.sql")) if p.name not in done]

    def _apply(self, conn: sqlite3.Connection, filename: str) -> None:
        up_script = (self.migrations_dir / filename).read_text().split(DOWN_MARKER, 1)[0]
        try:
            conn.executescript(up_script)
            conn.execute("INSERT INTO schema_migrations (filename) VALUES (?)", (filename,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RuntimeError(f"Migration {filename} failed: {e}") from e
