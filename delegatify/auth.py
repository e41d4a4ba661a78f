r"""
Spotify OAuth bootstrap (/authenticate).

    AWAITING_LINK_CLICK -> AWAITING_CODE_SUBMISSION -> AUTHENTICATED
                         \-> TIMED_OUT              \-> ABANDONED | FAILED

The requester opens the authorization URL, clicks "Authenticate", pastes the
code into a modal, and the code is exchanged for a token. Only a successful
exchange touches the SessionGuard; every other ending leaves the current
session as it was.
"""

import enum
import asyncio
import logging
from functools import partial
from typing import Optional, Any, Callable, Protocol

from spotipy.oauth2 import SpotifyPKCE, SpotifyOauthError

from .errors import AuthExchangeFailure
from .session import SessionGuard
from .spotify import SpotifySession

logger = logging.getLogger("delegatify")


class AuthState(enum.Enum):
    AWAITING_LINK_CLICK = "awaiting_link_click"
    AWAITING_CODE_SUBMISSION = "awaiting_code_submission"
    AUTHENTICATED = "authenticated"
    TIMED_OUT = "timed_out"
    ABANDONED = "abandoned"
    FAILED = "failed"


class AuthPrompt(Protocol):
    async def await_link_click(self, url: str, timeout: float) -> Optional[Any]:
        """Show the URL and an "I have a code" trigger; return a trigger token or None on timeout."""

    async def await_code(self, trigger: Any, timeout: float) -> Optional[str]:
        """Collect the code after the trigger; None when nothing was submitted in time."""

    async def report(self, message: str) -> None:
        ...


class AuthFlow:
    def __init__(
        self,
        guard: SessionGuard,
        auth_factory: Callable[[], SpotifyPKCE],
        session_factory: Callable[[SpotifyPKCE], SpotifySession] = SpotifySession.from_auth_manager,
        timeout: float = 120.0,
    ):
        self.guard = guard
        self.auth_factory = auth_factory
        self.session_factory = session_factory
        self.timeout = timeout
        self.state = AuthState.AWAITING_LINK_CLICK

    async def _exchange(self, auth: SpotifyPKCE, code: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, partial(auth.get_access_token, code, check_cache=False))
        except SpotifyOauthError as e:
            raise AuthExchangeFailure(getattr(e, "error_description", None) or str(e)) from e

    async def run(self, prompt: AuthPrompt) -> AuthState:
        auth = self.auth_factory()
        url = auth.get_authorize_url()

        self.state = AuthState.AWAITING_LINK_CLICK
        trigger = await prompt.await_link_click(url, self.timeout)
        if trigger is None:
            self.state = AuthState.TIMED_OUT
            logger.info("Authentication prompt expired without a code request")
            return self.state

        self.state = AuthState.AWAITING_CODE_SUBMISSION
        code = await prompt.await_code(trigger, self.timeout)
        if not code:
            self.state = AuthState.ABANDONED
            await prompt.report("No Input provided")
            return self.state

        logger.info("Received authorization code")
        try:
            await self._exchange(auth, code.strip())
        except AuthExchangeFailure:
            self.state = AuthState.FAILED
            raise

        await self.guard.write_session(self.session_factory(auth))
        self.state = AuthState.AUTHENTICATED
        await prompt.report("Successfully Authenticated!")
        return self.state
