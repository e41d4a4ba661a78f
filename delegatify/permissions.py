"""
SQLite-backed permission list.

One row per Discord user id with a small integer permission level. The
connection is opened once and shared; a threading.Lock serializes access
because calls arrive from the event loop's executor threads.
"""

import enum
import asyncio
import logging
import sqlite3
import threading
from contextlib import contextmanager
from functools import partial
from typing import Optional, Generator, Any, Callable

from .errors import PermissionStoreError

logger = logging.getLogger("delegatify")


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY,
    permission INTEGER NOT NULL DEFAULT 1
);
"""


class Permission(enum.IntEnum):
    DEFAULT = 0
    BASIC = 1


class PermissionStore:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        try:
            with self._get_connection() as conn:
                conn.executescript(_SCHEMA_SQL)
                conn.commit()
        except sqlite3.Error as e:
            raise PermissionStoreError(f"Failed to initialize database: {e}") from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        with self._lock:
            if self._conn is None:
                self._conn = sqlite3.connect(
                    self.db_path,
                    timeout=30.0,
                    check_same_thread=False,  # serialized by self._lock
                )
            yield self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # ---------------- sync API ----------------
    def add_user_sync(self, user_id: int, level: Optional[int] = None) -> bool:
        """Returns False if the user was already present; their level is left alone."""
        if level is None:
            level = Permission.BASIC
        try:
            with self._get_connection() as conn:
                cur = conn.execute(
                    "INSERT OR IGNORE INTO users (id, permission) VALUES (?, ?)",
                    (int(user_id), int(level)),
                )
                conn.commit()
                return cur.rowcount == 1
        except sqlite3.Error as e:
            raise PermissionStoreError(f"Failed to add user {user_id}: {e}") from e

    def remove_user_sync(self, user_id: int) -> None:
        try:
            with self._get_connection() as conn:
                conn.execute("DELETE FROM users WHERE id = ?", (int(user_id),))
                conn.commit()
        except sqlite3.Error as e:
            raise PermissionStoreError(f"Failed to remove user {user_id}: {e}") from e

    def get_level_sync(self, user_id: int) -> Optional[int]:
        """Returns None if the user isn't in the database."""
        try:
            with self._get_connection() as conn:
                row = conn.execute("SELECT permission FROM users WHERE id = ?", (int(user_id),)).fetchone()
        except sqlite3.Error as e:
            raise PermissionStoreError(f"Failed to read user {user_id}: {e}") from e
        return int(row[0]) if row else None

    def user_exists_sync(self, user_id: int) -> bool:
        return self.get_level_sync(user_id) is not None

    # ---------------- async API ----------------
    async def _run(self, fn: Callable[..., Any], *args) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(fn, *args))

    async def add_user(self, user_id: int, level: Optional[int] = None) -> bool:
        return await self._run(self.add_user_sync, user_id, level)

    async def remove_user(self, user_id: int) -> None:
        await self._run(self.remove_user_sync, user_id)

    async def get_level(self, user_id: int) -> Optional[int]:
        return await self._run(self.get_level_sync, user_id)

    async def user_exists(self, user_id: int) -> bool:
        return await self._run(self.user_exists_sync, user_id)
