"""Tests for the qaza module."""

import datetime
import os
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from namaz.errors import StorageError
from namaz.qaza import QAZA_KEY, QazaBacklog
from namaz.storage import JsonStore

SNAPSHOT = {"key": "fajr", "name": "Fajr", "startTime": "04:11", "endTime": "05:39"}
DAY = datetime.date(2024, 6, 15)


def fixed_clock(now: datetime.datetime) -> MagicMock:
    clock = MagicMock()
    clock.now.return_value = now
    clock.today.return_value = now.date()
    return clock


class QazaTestCase(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.mkdtemp()
        self.store = JsonStore(self._tmpdir)
        self.clock = fixed_clock(datetime.datetime(2024, 6, 15, 21, 0))
        self.backlog = QazaBacklog(self.store, self.clock)
        self.backlog.load()

    def tearDown(self):
        shutil.rmtree(self._tmpdir, ignore_errors=True)


class TestMarkMissed(QazaTestCase):
    def test_defaults_to_today(self):
        entry = self.backlog.mark_missed("fajr", SNAPSHOT)
        self.assertEqual(entry.date_missed, DAY)
        self.assertFalse(entry.completed)
        self.assertTrue(entry.id.startswith("fajr-"))

    def test_duplicate_pending_is_noop(self):
        first = self.backlog.mark_missed("fajr", SNAPSHOT, DAY)
        second = self.backlog.mark_missed("fajr", SNAPSHOT, DAY)
        self.assertIsNotNone(first)
        self.assertIsNone(second)
        pending = [e for e in self.backlog.pending() if e.prayer_key == "fajr" and e.date_missed == DAY]
        self.assertEqual(len(pending), 1)

    def test_other_date_or_prayer_is_not_duplicate(self):
        self.backlog.mark_missed("fajr", SNAPSHOT, DAY)
        self.assertIsNotNone(self.backlog.mark_missed("fajr", SNAPSHOT, DAY - datetime.timedelta(days=1)))
        self.assertIsNotNone(self.backlog.mark_missed("asr", SNAPSHOT, DAY))
        self.assertEqual(len(self.backlog.entries()), 3)

    def test_completed_entry_does_not_block(self):
        entry = self.backlog.mark_missed("fajr", SNAPSHOT, DAY)
        self.backlog.complete(entry.id)
        self.assertIsNotNone(self.backlog.mark_missed("fajr", SNAPSHOT, DAY))

    def test_snapshot_is_copied(self):
        snapshot = dict(SNAPSHOT)
        entry = self.backlog.mark_missed("fajr", snapshot)
        snapshot["name"] = "Changed"
        self.assertEqual(entry.prayer["name"], "Fajr")

    def test_ids_unique_with_frozen_clock(self):
        ids = [self.backlog.mark_missed(key, SNAPSHOT).id for key in ("fajr", "dhuhr", "asr")]
        self.assertEqual(len(set(ids)), 3)
        stamps = [int(i.rsplit("-", 1)[1]) for i in ids]
        self.assertEqual(stamps, sorted(stamps))

    def test_insertion_order_kept(self):
        self.backlog.mark_missed("isha", SNAPSHOT, DAY)
        self.backlog.mark_missed("fajr", SNAPSHOT, DAY - datetime.timedelta(days=3))
        self.assertEqual([e.prayer_key for e in self.backlog.entries()], ["isha", "fajr"])


class TestLifecycle(QazaTestCase):
    def test_complete(self):
        entry = self.backlog.mark_missed("fajr", SNAPSHOT)
        self.assertTrue(self.backlog.complete(entry.id))
        self.assertFalse(self.backlog.complete(entry.id))
        self.assertEqual(len(self.backlog.completed()), 1)
        self.assertEqual(self.backlog.pending(), [])

    def test_complete_unknown_id(self):
        self.assertFalse(self.backlog.complete("fajr-123"))

    def test_complete_then_remove(self):
        entry = self.backlog.mark_missed("fajr", SNAPSHOT)
        self.backlog.complete(entry.id)
        self.assertTrue(self.backlog.remove(entry.id))
        self.assertIsNone(self.backlog.find(entry.id))
        self.assertFalse(self.backlog.complete(entry.id))
        self.assertEqual(len(self.backlog.entries()), 0)

    def test_remove_pending_entry_allowed(self):
        entry = self.backlog.mark_missed("maghrib", SNAPSHOT)
        self.assertTrue(self.backlog.remove(entry.id))
        self.assertEqual(self.backlog.entries(), [])

    def test_remove_unknown_id(self):
        self.assertFalse(self.backlog.remove("nope"))

    def test_failed_write_keeps_memory_unchanged(self):
        entry = self.backlog.mark_missed("fajr", SNAPSHOT)
        with patch.object(self.store, "set", side_effect=StorageError("disk full")):
            with self.assertRaises(StorageError):
                self.backlog.complete(entry.id)
        self.assertFalse(self.backlog.find(entry.id).completed)


class TestPersistence(QazaTestCase):
    def test_round_trip_keeps_fields_and_order(self):
        a = self.backlog.mark_missed("isha", SNAPSHOT, DAY)
        b = self.backlog.mark_missed("fajr", SNAPSHOT, DAY - datetime.timedelta(days=2))
        self.backlog.complete(b.id)

        reloaded = QazaBacklog(self.store, self.clock)
        reloaded.load()
        self.assertEqual(reloaded.entries(), self.backlog.entries())
        self.assertEqual([e.id for e in reloaded.entries()], [a.id, b.id])

    def test_stored_format(self):
        entry = self.backlog.mark_missed("fajr", SNAPSHOT, DAY)
        stored = self.store.get(QAZA_KEY)
        self.assertEqual(stored, [{
            "id": entry.id,
            "prayer": SNAPSHOT,
            "prayerKey": "fajr",
            "dateMissed": "2024-06-15",
            "completed": False,
        }])

    def test_corrupt_file_kept_after_next_mutation(self):
        earlier = self.backlog.mark_missed("fajr", SNAPSHOT, DAY)
        path = os.path.join(self._tmpdir, f"{QAZA_KEY}.json")
        with open(path, "a") as f:
            f.write("garbage")

        reloaded = QazaBacklog(self.store, self.clock)
        reloaded.load()
        self.assertEqual(reloaded.entries(), [])
        added = reloaded.mark_missed("asr", SNAPSHOT, DAY)

        self.assertEqual([e["id"] for e in self.store.get(QAZA_KEY)], [added.id])
        with open(path + ".corrupt") as f:
            self.assertIn(earlier.id, f.read())

    def test_malformed_entries_skipped(self):
        self.store.set(QAZA_KEY, [{"id": "x"}, {
            "id": "asr-5", "prayer": {}, "prayerKey": "asr", "dateMissed": "2024-06-01", "completed": True,
        }])
        self.backlog.load()
        self.assertEqual([e.id for e in self.backlog.entries()], ["asr-5"])

    def test_new_ids_follow_loaded_ones(self):
        self.store.set(QAZA_KEY, [{
            "id": "asr-99999999999999", "prayer": {}, "prayerKey": "asr",
            "dateMissed": "2024-06-01", "completed": False,
        }])
        self.backlog.load()
        entry = self.backlog.mark_missed("fajr", SNAPSHOT)
        self.assertEqual(entry.id, "fajr-100000000000000")


class TestCooldown(QazaTestCase):
    def test_no_cooldown_by_default(self):
        self.assertEqual(self.backlog.cooldown_remaining("fajr"), datetime.timedelta(0))

    def test_cooldown_counts_down(self):
        self.backlog.start_cooldown("fajr")
        self.assertEqual(self.backlog.cooldown_remaining("fajr"), datetime.timedelta(hours=24))
        self.clock.now.return_value = datetime.datetime(2024, 6, 16, 9, 0)
        self.assertEqual(self.backlog.cooldown_remaining("fajr"), datetime.timedelta(hours=12))

    def test_expired_cooldown_removed(self):
        self.backlog.start_cooldown("fajr")
        self.backlog.start_cooldown("asr")
        self.clock.now.return_value = datetime.datetime(2024, 6, 16, 21, 0)
        self.assertEqual(self.backlog.cooldown_remaining("fajr"), datetime.timedelta(0))
        self.backlog.expire_cooldowns(["fajr", "dhuhr"])
        self.assertIsNone(self.store.get("qaza-disabled-fajr"))
        self.assertIsNotNone(self.store.get("qaza-disabled-asr"))


if __name__ == "__main__":
    unittest.main()
