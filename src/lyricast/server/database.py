"""SQLite database for the Lyricast candidate store.

Holds plain string keys (with optional expiry) and string sets.
Creates its schema on first open.
"""

import logging
import os
import sqlite3
import threading
import time

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS kv_strings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    expires_at REAL,
    updated_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_kv_strings_expires ON kv_strings(expires_at);

CREATE TABLE IF NOT EXISTS kv_sets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL,
    member TEXT NOT NULL,
    added_at REAL NOT NULL,
    UNIQUE(key, member)
);

CREATE INDEX IF NOT EXISTS idx_kv_sets_key ON kv_sets(key);
"""


class Database:
    """Thread-safe SQLite database manager for Lyricast."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._local = threading.local()
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get a thread-local connection."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self._local.conn = sqlite3.connect(self.db_path)
            self._local.conn.row_factory = sqlite3.Row
            self._local.conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn.execute("PRAGMA busy_timeout=5000")
        return self._local.conn

    def _init_schema(self):
        """Create tables if they don't exist and record the schema version."""
        conn = self._get_conn()
        conn.executescript(SCHEMA_SQL)

        row = conn.execute("SELECT version FROM schema_version").fetchone()
        if row is None:
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        conn.commit()  # Ensure no open transaction after init

        logger.info("Database initialized at %s (schema v%d)", self.db_path, SCHEMA_VERSION)

    # Locked or flaky storage usually clears within a few seconds.
    _RETRY_DELAYS = [0.5, 1.0, 2.0]

    def _retry_on_io_error(self, operation, description: str = "DB operation"):
        """Run a DB operation with retry+backoff for lock and I/O errors."""
        try:
            return operation(self._get_conn())
        except sqlite3.OperationalError as e:
            err = str(e)
            if "disk I/O error" not in err and "database is locked" not in err:
                raise
            last_exc = e
            for attempt, delay in enumerate(self._RETRY_DELAYS, start=1):
                logger.warning(
                    "SQLite %s error (attempt %d/%d): %s, retrying in %.1fs",
                    description, attempt, len(self._RETRY_DELAYS), e, delay,
                )
                self.close()
                time.sleep(delay)
                try:
                    return operation(self._get_conn())
                except sqlite3.OperationalError as retry_e:
                    last_exc = retry_e
            raise last_exc

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a SQL statement. Retries on I/O error with backoff."""
        return self._retry_on_io_error(
            lambda conn: conn.execute(sql, params), "execute"
        )

    def commit(self):
        """Commit the current transaction."""
        self._retry_on_io_error(lambda conn: conn.commit(), "commit")

    def rollback(self):
        """Roll back the current transaction."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.rollback()

    def fetchone(self, sql: str, params: tuple = ()) -> dict | None:
        """Execute and fetch one row as dict."""
        row = self.execute(sql, params).fetchone()
        return dict(row) if row else None

    def fetchall(self, sql: str, params: tuple = ()) -> list[dict]:
        """Execute and fetch all rows as dicts."""
        return [dict(row) for row in self.execute(sql, params).fetchall()]

    def close(self):
        """Close the thread-local connection."""
        if hasattr(self._local, "conn") and self._local.conn:
            self._local.conn.close()
            self._local.conn = None
