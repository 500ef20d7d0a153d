"""Durable key-value persistence and the session repository built on top of it."""

import contextlib
import logging
import sqlite3
import time
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from mb_focus.errors import PersistenceFailure
from mb_focus.models import SessionRecord

logger = logging.getLogger(__name__)

SESSION_KEY = "active_session"
PROGRESS_FLAG_PREFIX = "progress_notified:"
ALARM_STOP_KEY = "alarm_stop_requested"


class KeyValueStore(Protocol):
    """String key-value storage. Every method raises PersistenceFailure on storage errors."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> bool:
        """Delete a key. Return True if it existed."""
        ...

    def add(self, key: str, value: str) -> bool:
        """Insert only if the key is absent. Return True if this call created it."""
        ...

    def delete_if(self, key: str, expected: str) -> bool:
        """Delete a key only if it still holds `expected`. Return True if deleted."""
        ...

    def replace_if(self, key: str, expected: str, value: str) -> bool:
        """Overwrite a key only if it still holds `expected`. Return True if replaced."""
        ...

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with `prefix`. Return the number removed."""
        ...


# --- SQLite provider ---


def _migrate_v1(conn: sqlite3.Connection) -> None:
    """Create initial schema: kv table."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at INTEGER NOT NULL
        ) STRICT;
    """)


# Indexed by position: _MIGRATIONS[0] = v1, _MIGRATIONS[1] = v2, etc.
# user_version=0 means no migrations applied.
_MIGRATIONS: tuple[Callable[[sqlite3.Connection], None], ...] = (_migrate_v1,)


def _run_migrations(conn: sqlite3.Connection) -> None:
    """Run all pending schema migrations based on PRAGMA user_version."""
    current_version: int = conn.execute("PRAGMA user_version").fetchone()[0]
    for i, migrate_fn in enumerate(_MIGRATIONS):
        target_version = i + 1
        if current_version < target_version:
            migrate_fn(conn)
            conn.execute(f"PRAGMA user_version = {target_version}")
            logger.info("Applied migration v%d (%s)", target_version, migrate_fn.__doc__)


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode and busy timeout."""
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA busy_timeout = 5000")
    _run_migrations(conn)
    return conn


class SqliteKeyValueStore:
    """Key-value store backed by a single SQLite table.

    Every mutation is one statement committed immediately, so a failed write never
    leaves partially-applied state behind.
    """

    def __init__(self, db_path: Path) -> None:
        try:
            self._conn = get_connection(db_path)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Cannot open database {db_path}: {e}") from e

    def close(self) -> None:
        self._conn.close()

    def _write(self, sql: str, params: tuple[object, ...]) -> int:
        try:
            cursor = self._conn.execute(sql, params)
            self._conn.commit()
        except sqlite3.Error as e:
            with contextlib.suppress(sqlite3.Error):
                self._conn.rollback()
            raise PersistenceFailure(f"Storage write failed: {e}") from e
        return cursor.rowcount

    def get(self, key: str) -> str | None:
        try:
            row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Storage read failed: {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self._write(
            "INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)"
            " ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
            (key, value, int(time.time())),
        )

    def delete(self, key: str) -> bool:
        return self._write("DELETE FROM kv WHERE key = ?", (key,)) > 0

    def add(self, key: str, value: str) -> bool:
        sql = "INSERT OR IGNORE INTO kv (key, value, updated_at) VALUES (?, ?, ?)"
        return self._write(sql, (key, value, int(time.time()))) > 0

    def delete_if(self, key: str, expected: str) -> bool:
        return self._write("DELETE FROM kv WHERE key = ? AND value = ?", (key, expected)) > 0

    def replace_if(self, key: str, expected: str, value: str) -> bool:
        sql = "UPDATE kv SET value = ?, updated_at = ? WHERE key = ? AND value = ?"
        return self._write(sql, (value, int(time.time()), key, expected)) > 0

    def delete_prefix(self, prefix: str) -> int:
        # substr comparison avoids LIKE wildcard escaping for keys containing '%' or '_'
        return self._write("DELETE FROM kv WHERE substr(key, 1, ?) = ?", (len(prefix), prefix))


class MemoryKeyValueStore:
    """In-process key-value store with the same semantics as SqliteKeyValueStore."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> bool:
        return self.data.pop(key, None) is not None

    def add(self, key: str, value: str) -> bool:
        if key in self.data:
            return False
        self.data[key] = value
        return True

    def delete_if(self, key: str, expected: str) -> bool:
        if self.data.get(key) != expected:
            return False
        del self.data[key]
        return True

    def replace_if(self, key: str, expected: str, value: str) -> bool:
        if self.data.get(key) != expected:
            return False
        self.data[key] = value
        return True

    def delete_prefix(self, prefix: str) -> int:
        keys = [key for key in self.data if key.startswith(prefix)]
        for key in keys:
            del self.data[key]
        return len(keys)


# --- Session repository ---


def _progress_flag_key(start_time: int) -> str:
    return f"{PROGRESS_FLAG_PREFIX}{start_time}"


class SessionStore:
    """Repository for the singleton SessionRecord and its milestone dedup flag."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    def load_session(self) -> SessionRecord | None:
        """Return the active session, or None. Read failures and corrupt records count as no session."""
        try:
            raw = self._kv.get(SESSION_KEY)
        except PersistenceFailure:
            logger.warning("Session read failed, treating as no session", exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return SessionRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning("Corrupt session record ignored: %s", raw)
            return None

    def create_session(self, record: SessionRecord) -> bool:
        """Persist a new session only if none exists. Return False if one is already active."""
        return self._kv.add(SESSION_KEY, record.model_dump_json())

    def replace_session(self, current: SessionRecord, new: SessionRecord) -> bool:
        """Swap `current` for `new` only if the stored record is still exactly `current`.

        Return False if the session was completed, stopped or changed since it was read.
        """
        return self._kv.replace_if(SESSION_KEY, current.model_dump_json(), new.model_dump_json())

    def delete_session(self) -> bool:
        """Delete the session record and every dedup flag. Return True if a session existed."""
        existed = self._kv.delete(SESSION_KEY)
        self._kv.delete_prefix(PROGRESS_FLAG_PREFIX)
        return existed

    def claim_completion(self, record: SessionRecord) -> bool:
        """Delete the record only if it is still exactly `record`. Only one caller can win."""
        if not self._kv.delete_if(SESSION_KEY, record.model_dump_json()):
            return False
        self._kv.delete_prefix(PROGRESS_FLAG_PREFIX)
        return True

    def has_progress_flag(self, start_time: int) -> bool:
        """Return True if the milestone notification was already sent for this anchor."""
        return self._kv.get(_progress_flag_key(start_time)) is not None

    def claim_progress_flag(self, start_time: int) -> bool:
        """Create the dedup flag. Return False if another evaluation created it first."""
        return self._kv.add(_progress_flag_key(start_time), str(int(time.time())))

    def copy_progress_flag(self, old_start_time: int, new_start_time: int) -> bool:
        """Copy the dedup flag to a new time anchor. Return True only if this call created the new key."""
        if old_start_time == new_start_time:
            return False
        value = self._kv.get(_progress_flag_key(old_start_time))
        if value is None:
            return False
        return self._kv.add(_progress_flag_key(new_start_time), value)

    def delete_progress_flag(self, start_time: int) -> None:
        self._kv.delete(_progress_flag_key(start_time))

    def clear_progress_flags(self) -> int:
        """Remove every dedup flag (stale flags from a previous session included)."""
        return self._kv.delete_prefix(PROGRESS_FLAG_PREFIX)

    def request_alarm_stop(self) -> None:
        """Ask whichever process is playing the completion alarm to stop it."""
        self._kv.set(ALARM_STOP_KEY, str(int(time.time())))

    def alarm_stop_requested(self) -> bool:
        try:
            return self._kv.get(ALARM_STOP_KEY) is not None
        except PersistenceFailure:
            logger.warning("Cannot read alarm stop request", exc_info=True)
            return False

    def clear_alarm_stop_request(self) -> None:
        """Forget stop requests made before the current alarm started."""
        try:
            self._kv.delete(ALARM_STOP_KEY)
        except PersistenceFailure:
            logger.warning("Cannot clear alarm stop request", exc_info=True)
