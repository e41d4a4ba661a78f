import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, AsyncIterator, Awaitable, Callable, TypeVar

from .errors import Unauthenticated
from .spotify import SpotifySession

logger = logging.getLogger("delegatify")

T = TypeVar("T")


class ReadWriteLock:
    """
    asyncio reader/writer lock: many readers or a single writer.
    A waiting writer blocks new readers so re-authentication can't starve.
    """

    def __init__(self):
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def locked(self) -> bool:
        return self._writer

    @asynccontextmanager
    async def reader(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and self._writers_waiting == 0)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def writer(self) -> AsyncIterator[None]:
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._writers_waiting -= 1
                # Readers parked behind a cancelled writer must re-check.
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class SessionGuard:
    """
    Owns the single shared Spotify session and the freeze flag.

    Never hold read_session() across a wait on user input (buttons, modals):
    leave the block first and re-enter it for the next remote call.
    """

    def __init__(self, session: Optional[SpotifySession] = None, frozen: bool = False):
        self._session = session
        self._session_lock = ReadWriteLock()
        self._freeze = frozen
        self._freeze_lock = ReadWriteLock()

    @asynccontextmanager
    async def read_session(self) -> AsyncIterator[Optional[SpotifySession]]:
        async with self._session_lock.reader():
            yield self._session

    async def write_session(self, session: SpotifySession) -> None:
        async with self._session_lock.writer():
            replaced = self._session is not None
            self._session = session
        logger.info("Spotify session %s", "replaced" if replaced else "installed")

    async def call(self, func: Callable[[SpotifySession], Awaitable[T]]) -> T:
        """Run one remote call under the read lock; Unauthenticated if no session."""
        async with self.read_session() as session:
            if session is None:
                raise Unauthenticated()
            return await func(session)

    async def is_authenticated(self) -> bool:
        async with self.read_session() as session:
            return session is not None

    async def read_freeze(self) -> bool:
        async with self._freeze_lock.reader():
            return self._freeze

    async def toggle_freeze(self) -> bool:
        async with self._freeze_lock.writer():
            self._freeze = not self._freeze
            return self._freeze
