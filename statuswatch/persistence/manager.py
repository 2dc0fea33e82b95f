"""
SQLite persistence manager for file status records.

Single-file SQLite database, one connection per operation so the poll and
cleanup threads never share a connection. Every public call is one
transaction:

- bulk_upsert() writes all records of a cycle atomically
- delete_by_age() is a single DELETE statement

Upserts are keyed by file name and are last-writer-wins ordered by
last_updated: a write carrying an older timestamp than the stored row is
ignored, so a cycle that started earlier cannot overwrite the outcome of a
cycle that started later.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..watcher.models import FileState, FileStatus, from_epoch_ms, to_epoch_ms, utc_now
from .errors import LoadError, PersistenceError, SaveError, SchemaError


# Database schema version for migrations
SCHEMA_VERSION = 1


class PersistenceManager:
    """
    Manages SQLite persistence for file status records.

    Stores:
    - file_statuses (one row per tracked file name)

    Does NOT store:
    - Monitored paths, extensions, cleanup settings (see SettingsFile)
    """

    def __init__(self, db_path: Optional[str] = None, timeout: float = 5.0):
        """
        Initialize persistence manager.

        Args:
            db_path: Path to SQLite database file (defaults to ./statuswatch.db)
            timeout: Seconds to wait for a competing writer's lock
        """
        if db_path is None:
            db_path = str(Path.cwd() / "statuswatch.db")

        self.db_path = db_path
        self.timeout = timeout
        self._ensure_schema()

    @contextmanager
    def _connect(self, error_cls=PersistenceError):
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise error_cls(f"Cannot open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row  # Access columns by name
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise error_cls(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    def _ensure_schema(self):
        """Create schema if it doesn't exist."""
        with self._connect(SchemaError) as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
            """)

            cursor.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
            row = cursor.fetchone()
            current_version = row[0] if row else 0

            if current_version > SCHEMA_VERSION:
                raise SchemaError(
                    f"Database schema version {current_version} is newer than "
                    f"supported version {SCHEMA_VERSION}"
                )
            if current_version < SCHEMA_VERSION:
                self._migrate_schema(conn, current_version)

    def _migrate_schema(self, conn, from_version: int):
        """Apply schema migrations."""
        cursor = conn.cursor()

        if from_version < 1:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS file_statuses (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE,
                    status TEXT NOT NULL,
                    source TEXT NOT NULL,
                    last_updated_ms INTEGER NOT NULL,
                    remarks TEXT NOT NULL DEFAULT ''
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_file_statuses_last_updated
                ON file_statuses (last_updated_ms)
            """)

            cursor.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (1, utc_now().isoformat())
            )

    @staticmethod
    def _row_to_status(row) -> FileStatus:
        return FileStatus(
            id=row["id"],
            name=row["name"],
            status=FileState(row["status"]),
            source=row["source"],
            last_updated=from_epoch_ms(row["last_updated_ms"]),
            remarks=row["remarks"],
        )

    # Status records

    def list_all_statuses(self) -> List[FileStatus]:
        """Load every tracked status record."""
        with self._connect(LoadError) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM file_statuses ORDER BY name")
            return [self._row_to_status(row) for row in cursor.fetchall()]

    def list_statuses(self, status: Optional[FileState] = None) -> List[FileStatus]:
        """
        Load status records, newest first.

        Args:
            status: Optional filter by status
        """
        with self._connect(LoadError) as conn:
            cursor = conn.cursor()
            if status is not None:
                cursor.execute(
                    "SELECT * FROM file_statuses WHERE status = ? "
                    "ORDER BY last_updated_ms DESC, name",
                    (status.value,)
                )
            else:
                cursor.execute(
                    "SELECT * FROM file_statuses ORDER BY last_updated_ms DESC, name"
                )
            return [self._row_to_status(row) for row in cursor.fetchall()]

    def get_status(self, name: str) -> Optional[FileStatus]:
        """Load the record for a file name, or None."""
        with self._connect(LoadError) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM file_statuses WHERE name = ?", (name,))
            row = cursor.fetchone()
            return self._row_to_status(row) if row else None

    def count_by_status(self) -> Dict[str, int]:
        """Number of records per status; every status is present."""
        counts = {state.value: 0 for state in FileState}
        with self._connect(LoadError) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT status, COUNT(*) AS n FROM file_statuses GROUP BY status")
            for row in cursor.fetchall():
                counts[row["status"]] = row["n"]
        return counts

    def bulk_upsert(self, statuses: Iterable[FileStatus]) -> None:
        """
        Insert or update records in one transaction.

        Records are matched by name. The stored id of an existing record is
        kept. Updates carrying an older last_updated than the stored row are
        ignored.
        """
        rows = [
            (
                status.id,
                status.name,
                status.status.value,
                status.source,
                to_epoch_ms(status.last_updated),
                status.remarks,
            )
            for status in statuses
        ]
        if not rows:
            return

        with self._connect(SaveError) as conn:
            conn.executemany("""
                INSERT INTO file_statuses (id, name, status, source, last_updated_ms, remarks)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    status = excluded.status,
                    source = excluded.source,
                    last_updated_ms = excluded.last_updated_ms,
                    remarks = excluded.remarks
                WHERE excluded.last_updated_ms >= file_statuses.last_updated_ms
            """, rows)

    def delete_by_age(self, max_age_ms: int, now: Optional[datetime] = None) -> int:
        """
        Delete records whose last update is more than max_age_ms old.

        Args:
            max_age_ms: Maximum record age in milliseconds
            now: Reference time (defaults to current UTC time)

        Returns:
            Number of deleted records
        """
        cutoff_ms = to_epoch_ms(now or utc_now()) - max_age_ms
        with self._connect(SaveError) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM file_statuses WHERE last_updated_ms < ?",
                (cutoff_ms,)
            )
            return cursor.rowcount
