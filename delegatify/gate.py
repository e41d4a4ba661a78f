import enum
import logging
from dataclasses import dataclass
from typing import Optional, Awaitable, Callable

from .permissions import PermissionStore
from .session import SessionGuard

logger = logging.getLogger("delegatify")


class Denial(enum.Enum):
    FROZEN = "Playback changes are frozen."
    UNAUTHENTICATED = "The application isn't authenticated.\nrun '/authenticate' to connect."
    INACTIVE = "Nothing Playing; can't modify playback."
    INSUFFICIENT_PERMISSION = "You don't have permission to run this command."


@dataclass(frozen=True)
class Caller:
    user_id: int
    is_admin: bool = False


class PlaybackGate:
    """
    Runs before every command that changes playback.

    Order: freeze, then activity, then the admin bypass, then the permission
    lookup. Admins skip only the lookup; freeze and inactivity still apply.
    """

    def __init__(self, guard: SessionGuard, permissions: PermissionStore):
        self.guard = guard
        self.permissions = permissions

    async def check(self, caller: Caller, required_level: int) -> Optional[Denial]:
        if await self.guard.read_freeze():
            return Denial.FROZEN

        async with self.guard.read_session() as session:
            if session is None:
                return Denial.UNAUTHENTICATED
            active = await session.is_active()
        if not active:
            return Denial.INACTIVE

        if caller.is_admin:
            return None

        level = await self.permissions.get_level(caller.user_id)
        if level is None or level < required_level:
            return Denial.INSUFFICIENT_PERMISSION
        return None

    async def allow(
        self,
        caller: Caller,
        required_level: int,
        notify: Callable[[str], Awaitable[object]],
    ) -> bool:
        denial = await self.check(caller, required_level)
        if denial is None:
            return True
        logger.info("Denied playback change for %s: %s", caller.user_id, denial.name)
        await notify(denial.value)
        return False
