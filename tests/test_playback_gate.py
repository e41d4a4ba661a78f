import sys
import unittest
from pathlib import Path
from unittest.mock import AsyncMock

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from delegatify.gate import Caller, Denial, PlaybackGate
from delegatify.permissions import PermissionStore
from delegatify.session import SessionGuard
from fakes import FakeSession

ADMIN = Caller(user_id=1, is_admin=True)
MEMBER = Caller(user_id=2)


class PlaybackGateTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store = PermissionStore(":memory:")
        self.session = FakeSession(active=True)
        self.guard = SessionGuard(self.session)
        self.gate = PlaybackGate(self.guard, self.store)

    async def asyncTearDown(self) -> None:
        self.store.close()

    async def test_freeze_denies_everyone(self) -> None:
        await self.store.add_user(MEMBER.user_id, 5)
        await self.guard.toggle_freeze()
        self.assertIs(await self.gate.check(ADMIN, 1), Denial.FROZEN)
        self.assertIs(await self.gate.check(MEMBER, 1), Denial.FROZEN)

    async def test_freeze_is_checked_before_activity(self) -> None:
        self.session.active = False
        await self.guard.toggle_freeze()
        self.assertIs(await self.gate.check(ADMIN, 1), Denial.FROZEN)
        self.assertEqual(self.session.calls, [])

    async def test_missing_session_is_reported_before_identity(self) -> None:
        gate = PlaybackGate(SessionGuard(), self.store)
        self.assertIs(await gate.check(ADMIN, 1), Denial.UNAUTHENTICATED)
        self.assertIs(await gate.check(MEMBER, 1), Denial.UNAUTHENTICATED)

    async def test_inactive_playback_denies_admin(self) -> None:
        self.session.active = False
        self.assertIs(await self.gate.check(ADMIN, 1), Denial.INACTIVE)

    async def test_inactivity_is_checked_before_permission(self) -> None:
        self.session.active = False
        self.assertIs(await self.gate.check(MEMBER, 1), Denial.INACTIVE)

    async def test_admin_skips_permission_lookup(self) -> None:
        self.store.get_level = AsyncMock(return_value=None)
        self.assertIsNone(await self.gate.check(ADMIN, 10))
        self.store.get_level.assert_not_awaited()

    async def test_member_without_record_is_denied(self) -> None:
        self.assertIs(await self.gate.check(MEMBER, 1), Denial.INSUFFICIENT_PERMISSION)

    async def test_levels_below_required_are_denied(self) -> None:
        required = 3
        for level in range(required):
            with self.subTest(level=level):
                await self.store.remove_user(MEMBER.user_id)
                await self.store.add_user(MEMBER.user_id, level)
                self.assertIs(await self.gate.check(MEMBER, required), Denial.INSUFFICIENT_PERMISSION)

    async def test_levels_at_or_above_required_are_allowed(self) -> None:
        for level in (1, 2):
            with self.subTest(level=level):
                await self.store.remove_user(MEMBER.user_id)
                await self.store.add_user(MEMBER.user_id, level)
                self.assertIsNone(await self.gate.check(MEMBER, 1))

    async def test_allow_reports_denial_reason(self) -> None:
        notify = AsyncMock()
        await self.guard.toggle_freeze()
        self.assertFalse(await self.gate.allow(ADMIN, 1, notify))
        notify.assert_awaited_once_with(Denial.FROZEN.value)

    async def test_allow_is_silent_when_permitted(self) -> None:
        notify = AsyncMock()
        await self.store.add_user(MEMBER.user_id)
        self.assertTrue(await self.gate.allow(MEMBER, 1, notify))
        notify.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
