from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from skeet_unroll.storage import SQLiteKeyValueStore


class TestSQLiteKeyValueStore(unittest.TestCase):
    def test_get_missing_returns_none(self) -> None:
        with SQLiteKeyValueStore.open(":memory:") as store:
            self.assertIsNone(store.get("https://bsky.app/profile/a/post/1"))

    def test_set_then_get_roundtrips_json(self) -> None:
        with SQLiteKeyValueStore.open(":memory:") as store:
            store.set("k", {"message": "success", "thread": [{"text": "héllo 🧵"}]})
            self.assertEqual(store.get("k"), {"message": "success", "thread": [{"text": "héllo 🧵"}]})

            store.set("k", {"v": 2})
            self.assertEqual(store.get("k"), {"v": 2})
            self.assertEqual(store.count(), 1)

    def test_values_survive_reopen(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            db_path = Path(td) / "nested" / "cache.sqlite"

            with SQLiteKeyValueStore.open(db_path) as store:
                store.set("k", ["a", 1])

            with SQLiteKeyValueStore.open(db_path) as store:
                self.assertEqual(store.get("k"), ["a", 1])

    def test_empty_key_rejected(self) -> None:
        with SQLiteKeyValueStore.open(":memory:") as store:
            with self.assertRaises(ValueError):
                store.get("")
            with self.assertRaises(ValueError):
                store.set("", {})


if __name__ == "__main__":
    unittest.main()
