"""Key-value store backends for candidate state.

The resolver only needs plain strings (with optional expiry) and string
sets. Two backends implement that surface: SQLite for single-host installs
and Redis for shared deployments.
"""

import logging
import sqlite3
import threading
import time
from contextlib import contextmanager

import redis

from lyricast.errors import StoreTransportError
from lyricast.server.database import Database

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Base class for store backends."""

    backend: str = ""

    def get_string(self, key: str) -> str | None:
        raise NotImplementedError

    def set_string(self, key: str, value: str, ttl_seconds: int | None = None):
        raise NotImplementedError

    def set_add(self, key: str, member: str) -> bool:
        raise NotImplementedError

    def set_remove(self, key: str, member: str) -> bool:
        raise NotImplementedError

    def set_members(self, key: str) -> list[str]:
        raise NotImplementedError

    def delete(self, key: str):
        raise NotImplementedError

    @contextmanager
    def atomic(self):
        """Group writes so they land together. Reads are not allowed inside."""
        yield self

    def release(self):
        """Release the connection held for the current request/thread."""

    def close(self):
        """Shut the backend down."""
        self.release()


class SQLiteStore(KeyValueStore):
    """Store backed by the local SQLite database.

    Set members come back in insertion order.
    """

    backend = "sqlite"

    def __init__(self, db: Database, clock=time.time):
        self._db = db
        self._clock = clock
        self._batch = threading.local()

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except sqlite3.Error as e:
            raise StoreTransportError(f"SQLite store error: {e}") from e

    def _in_batch(self) -> bool:
        return getattr(self._batch, "depth", 0) > 0

    def _commit(self):
        if not self._in_batch():
            self._db.commit()

    def get_string(self, key: str) -> str | None:
        with self._translate_errors():
            row = self._db.fetchone(
                "SELECT value, expires_at FROM kv_strings WHERE key = ?", (key,)
            )
            if row is None:
                return None
            if row["expires_at"] is not None and row["expires_at"] <= self._clock():
                self._db.execute("DELETE FROM kv_strings WHERE key = ?", (key,))
                self._commit()
                logger.debug("Expired key %s", key)
                return None
            return row["value"]

    def set_string(self, key: str, value: str, ttl_seconds: int | None = None):
        now = self._clock()
        expires_at = now + ttl_seconds if ttl_seconds else None
        with self._translate_errors():
            self._db.execute(
                "INSERT OR REPLACE INTO kv_strings (key, value, expires_at, updated_at) "
                "VALUES (?, ?, ?, ?)",
                (key, value, expires_at, now),
            )
            self._commit()

    def set_add(self, key: str, member: str) -> bool:
        with self._translate_errors():
            cursor = self._db.execute(
                "INSERT OR IGNORE INTO kv_sets (key, member, added_at) VALUES (?, ?, ?)",
                (key, member, self._clock()),
            )
            self._commit()
            return cursor.rowcount > 0

    def set_remove(self, key: str, member: str) -> bool:
        with self._translate_errors():
            cursor = self._db.execute(
                "DELETE FROM kv_sets WHERE key = ? AND member = ?", (key, member)
            )
            self._commit()
            return cursor.rowcount > 0

    def set_members(self, key: str) -> list[str]:
        with self._translate_errors():
            rows = self._db.fetchall(
                "SELECT member FROM kv_sets WHERE key = ? ORDER BY id", (key,)
            )
        return [r["member"] for r in rows]

    def delete(self, key: str):
        with self._translate_errors():
            self._db.execute("DELETE FROM kv_strings WHERE key = ?", (key,))
            self._db.execute("DELETE FROM kv_sets WHERE key = ?", (key,))
            self._commit()

    @contextmanager
    def atomic(self):
        self._batch.depth = getattr(self._batch, "depth", 0) + 1
        try:
            yield self
        except BaseException:
            self._batch.depth -= 1
            if not self._in_batch():
                self._db.rollback()
            raise
        self._batch.depth -= 1
        if not self._in_batch():
            with self._translate_errors():
                self._db.commit()

    def release(self):
        self._db.close()


class RedisStore(KeyValueStore):
    """Store backed by a Redis server.

    The client keeps its own connection pool, so ``release`` has nothing to
    hand back; ``close`` drops the pool at shutdown.
    """

    backend = "redis"

    def __init__(self, url: str = "", client: "redis.Redis | None" = None):
        if client is None:
            if not url:
                raise StoreTransportError("REDIS_URL is not defined")
            client = redis.Redis.from_url(url, decode_responses=True)
        self._client = client
        self._local = threading.local()

    def _target(self):
        """Return the pending pipeline inside atomic(), else the client."""
        pipe = getattr(self._local, "pipe", None)
        return self._client if pipe is None else pipe

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except redis.RedisError as e:
            raise StoreTransportError(f"Redis store error: {e}") from e

    def get_string(self, key: str) -> str | None:
        with self._translate_errors():
            return self._client.get(key)

    def set_string(self, key: str, value: str, ttl_seconds: int | None = None):
        with self._translate_errors():
            self._target().set(key, value, ex=ttl_seconds or None)

    def set_add(self, key: str, member: str) -> bool:
        target = self._target()
        with self._translate_errors():
            added = target.sadd(key, member)
        if target is not self._client:
            return True  # queued in the pipeline, count unknown until execute
        return added > 0

    def set_remove(self, key: str, member: str) -> bool:
        target = self._target()
        with self._translate_errors():
            removed = target.srem(key, member)
        if target is not self._client:
            return True
        return removed > 0

    def set_members(self, key: str) -> list[str]:
        with self._translate_errors():
            return list(self._client.smembers(key))

    def delete(self, key: str):
        with self._translate_errors():
            self._target().delete(key)

    @contextmanager
    def atomic(self):
        if getattr(self._local, "pipe", None) is not None:
            yield self
            return
        pipe = self._client.pipeline(transaction=True)
        self._local.pipe = pipe
        try:
            yield self
        except BaseException:
            self._local.pipe = None
            pipe.reset()
            raise
        self._local.pipe = None
        with self._translate_errors():
            pipe.execute()

    def close(self):
        self._client.close()


def create_store(config) -> KeyValueStore:
    """Build the store backend named in the server config."""
    if config.store_backend == "redis":
        logger.info("Using Redis candidate store")
        return RedisStore(config.redis_url)
    logger.info("Using SQLite candidate store at %s", config.db_file)
    return SQLiteStore(Database(config.db_file))
