"""Tests for key-value storage and plan entitlements."""
import asyncio
import unittest
import tempfile
import shutil
from datetime import date
from pathlib import Path
from unittest import mock

from profittrack.chat.entitlements import DailyChatCount, PlanEntitlements
from profittrack.chat.storage import InMemoryStore, JsonFileStore


class TestJsonFileStore(unittest.IsolatedAsyncioTestCase):
    """Test JsonFileStore functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = Path(tempfile.mkdtemp())
        self.store = JsonFileStore(self.test_dir / "sessions")

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.test_dir, ignore_errors=True)

    async def test_set_get_delete(self):
        """Test the basic key lifecycle."""
        await self.store.set("chat_session_user1", '{"messages": []}')

        self.assertEqual(await self.store.get("chat_session_user1"), '{"messages": []}')

        await self.store.delete("chat_session_user1")
        self.assertIsNone(await self.store.get("chat_session_user1"))

    async def test_delete_missing_key(self):
        """Test deleting an absent key is a no-op."""
        await self.store.delete("never_written")

    async def test_unsafe_key_stays_in_directory(self):
        """Test path characters in keys are neutralized."""
        await self.store.set("../escape/key", "value")

        files = [p.name for p in (self.test_dir / "sessions").iterdir()]
        self.assertEqual(files, [".._escape_key.json"])
        self.assertEqual(await self.store.get("../escape/key"), "value")

    async def test_undecodable_file_is_discarded(self):
        """Test a file with invalid UTF-8 reads as absent and is removed."""
        path = self.test_dir / "sessions" / "chat_session_default.json"
        path.write_bytes(b"\xff\xfe\x00garbage")

        self.assertIsNone(await self.store.get("chat_session_default"))
        self.assertFalse(path.exists())

    async def test_counter_with_undecodable_file(self):
        """Test entitlements start over when the counter file cannot be decoded."""
        (self.test_dir / "sessions" / "chat_daily_count_u.json").write_bytes(b"\xff\xfe\x00garbage")
        entitlements = PlanEntitlements("u", "trial", self.store, today=lambda: date(2025, 5, 15))

        await entitlements.load()

        self.assertEqual(entitlements.remaining_quota(), 50)

    async def test_file_access_runs_in_worker_threads(self):
        """Test reads, writes and deletes are handed to worker threads."""
        with mock.patch("profittrack.chat.storage.asyncio.to_thread", wraps=asyncio.to_thread) as to_thread:
            await self.store.set("k", "v")
            await self.store.get("k")
            await self.store.delete("k")

        self.assertEqual(to_thread.call_count, 3)


class TestPlanEntitlements(unittest.IsolatedAsyncioTestCase):
    """Test PlanEntitlements quota tracking."""

    def setUp(self):
        """Set up test fixtures."""
        self.store = InMemoryStore()
        self.day = date(2025, 5, 15)

    def make(self, plan="standard"):
        return PlanEntitlements("user1", plan, self.store, today=lambda: self.day)

    async def test_quota_counts_down(self):
        """Test recorded chats reduce the remaining quota."""
        entitlements = self.make()
        await entitlements.load()

        self.assertEqual(entitlements.remaining_quota(), 30)
        await entitlements.record_chat()
        await entitlements.record_chat()

        self.assertEqual(entitlements.remaining_quota(), 28)
        reloaded = self.make()
        await reloaded.load()
        self.assertEqual(reloaded.remaining_quota(), 28)

    async def test_new_day_resets_counter(self):
        """Test yesterday's usage does not count today."""
        self.store.data["chat_daily_count_user1"] = DailyChatCount(day=date(2025, 5, 14), count=30).model_dump_json()
        entitlements = self.make()

        await entitlements.load()

        self.assertEqual(entitlements.remaining_quota(), 30)

    async def test_exhausted_quota(self):
        """Test the quota never goes negative."""
        self.store.data["chat_daily_count_user1"] = DailyChatCount(day=self.day, count=45).model_dump_json()
        entitlements = self.make()

        await entitlements.load()

        self.assertEqual(entitlements.remaining_quota(), 0)

    async def test_corrupt_counter_is_discarded(self):
        """Test unreadable counters start over."""
        self.store.data["chat_daily_count_user1"] = "not json"
        entitlements = self.make()

        await entitlements.load()

        self.assertEqual(entitlements.remaining_quota(), 30)
        self.assertNotIn("chat_daily_count_user1", self.store.data)

    def test_disabled_plans(self):
        """Test plans without the assistant have no quota."""
        for plan in ("basic", "expired"):
            with self.subTest(plan=plan):
                entitlements = self.make(plan)
                self.assertFalse(entitlements.feature_enabled())
                self.assertEqual(entitlements.remaining_quota(), 0)

    def test_unknown_plan(self):
        """Test unknown plans are refused."""
        with self.assertRaises(ValueError):
            self.make("platinum")


if __name__ == "__main__":
    unittest.main()
