import asyncio
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from delegatify.permissions import Permission, PermissionStore


class PermissionStoreTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = str(Path(self._tmp.name) / "permissions.db")
        self.store = PermissionStore(self.db_path)

    def tearDown(self) -> None:
        self.store.close()
        self._tmp.cleanup()

    async def test_add_user_defaults_to_basic(self) -> None:
        await self.store.add_user(123456789012345678)
        self.assertTrue(await self.store.user_exists(123456789012345678))
        self.assertEqual(await self.store.get_level(123456789012345678), Permission.BASIC)

    async def test_add_user_with_explicit_level(self) -> None:
        await self.store.add_user(42, 3)
        self.assertEqual(await self.store.get_level(42), 3)

    async def test_unknown_user_has_no_level(self) -> None:
        self.assertFalse(await self.store.user_exists(7))
        self.assertIsNone(await self.store.get_level(7))

    async def test_remove_user(self) -> None:
        await self.store.add_user(42)
        await self.store.remove_user(42)
        self.assertFalse(await self.store.user_exists(42))

    async def test_remove_missing_user_is_a_no_op(self) -> None:
        await self.store.remove_user(42)
        self.assertFalse(await self.store.user_exists(42))

    async def test_duplicate_insert_keeps_first_level(self) -> None:
        self.assertTrue(await self.store.add_user(42))
        self.assertFalse(await self.store.add_user(42, 2))
        self.assertEqual(await self.store.get_level(42), Permission.BASIC)

    async def test_concurrent_adds_insert_once(self) -> None:
        results = await asyncio.gather(*(self.store.add_user(77) for _ in range(5)))
        self.assertEqual(sorted(results), [False, False, False, False, True])

    def test_records_survive_reopen(self) -> None:
        self.store.add_user_sync(99, Permission.DEFAULT)
        self.store.close()

        reopened = PermissionStore(self.db_path)
        try:
            self.assertEqual(reopened.get_level_sync(99), Permission.DEFAULT)
        finally:
            reopened.close()


if __name__ == "__main__":
    unittest.main()
