from __future__ import annotations

import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from repolyzer.cache import CacheStore, namespace_for


class CacheStoreTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.cache = CacheStore(Path(self._tmp.name))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_set_then_get(self) -> None:
        self.cache.set("o_r", "/repos/o/r", {"id": 1})
        self.assertEqual(self.cache.get("o_r", "/repos/o/r"), {"id": 1})

    def test_miss(self) -> None:
        self.assertIsNone(self.cache.get("o_r", "/nothing"))

    def test_expired_entry_is_dropped(self) -> None:
        self.cache.set("o_r", "k", [1, 2], ttl=-1)
        self.assertIsNone(self.cache.get("o_r", "k"))
        self.assertEqual(self.cache.stats()["entries"], 0)

    def test_invalidate_one_namespace(self) -> None:
        self.cache.set("a_one", "k", 1)
        self.cache.set("b_two", "k", 2)
        self.assertEqual(self.cache.invalidate("a_one"), 1)
        self.assertIsNone(self.cache.get("a_one", "k"))
        self.assertEqual(self.cache.get("b_two", "k"), 2)

    def test_invalidate_all(self) -> None:
        self.cache.set("a_one", "k", 1)
        self.cache.set("b_two", "k", 2)
        self.assertEqual(self.cache.invalidate(), 2)

    def test_disabled_cache_stores_nothing(self) -> None:
        cache = CacheStore(Path(self._tmp.name), enabled=False)
        cache.set("o_r", "k", 1)
        self.assertIsNone(cache.get("o_r", "k"))
        self.assertFalse(cache.stats()["enabled"])

    def test_stats_track_hits(self) -> None:
        self.cache.set("o_r", "k", 1)
        self.cache.get("o_r", "k")
        self.cache.get("o_r", "missing")
        stats = self.cache.stats()
        self.assertEqual(stats["hits"], 1)
        self.assertEqual(stats["misses"], 1)
        self.assertEqual(stats["hit_rate"], "50%")

    def test_namespace_for(self) -> None:
        self.assertEqual(namespace_for("Octocat/Hello-World"), "octocat_hello-world")
