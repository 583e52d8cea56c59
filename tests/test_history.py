"""Tests for the history and favorites stores."""

import json

import pytest

from repolyzer.errors import PersistenceError
from repolyzer.history import FavoritesStore, HistoryStore, write_snapshot
from repolyzer.pipeline import run_analysis

from .conftest import FakeClient


@pytest.fixture
def result():
    return run_analysis(FakeClient(), "octocat/Hello-World").result


class TestHistoryStore:
    def test_add_entry_newest_first(self, tmp_path, result):
        store = HistoryStore(tmp_path / "h.json")
        store.add_entry(result, "quick")
        second = store.add_entry(result, "detailed")
        assert len(store) == 2
        assert store.get(0) == second
        assert store.get(0).analysis_type == "detailed"
        assert store.get(0).stars == 1500

    def test_limit_enforced(self, tmp_path, result):
        store = HistoryStore(tmp_path / "h.json", limit=3)
        for _ in range(5):
            store.add_entry(result)
        assert len(store) == 3

    def test_save_and_load(self, tmp_path, result):
        path = tmp_path / "nested" / "h.json"
        store = HistoryStore(path)
        store.add_entry(result, "quick")
        store.save()
        loaded = HistoryStore.load(path)
        assert loaded.entries == store.entries

    def test_missing_file_is_empty(self, tmp_path):
        assert len(HistoryStore.load(tmp_path / "absent.json")) == 0

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "h.json"
        path.write_text("{not json")
        assert len(HistoryStore.load(path)) == 0

    def test_malformed_entry_skipped(self, tmp_path):
        path = tmp_path / "h.json"
        path.write_text(json.dumps({"entries": [
            {"repo_name": "a/b", "stars": 1, "health_score": 50, "maturity_level": "Growing",
             "analyzed_at": "2024-01-01T00:00:00+00:00"},
            {"bogus": True},
        ]}))
        store = HistoryStore.load(path)
        assert [e.repo_name for e in store.entries] == ["a/b"]

    def test_delete_out_of_range_is_noop(self, tmp_path, result):
        store = HistoryStore(tmp_path / "h.json")
        store.add_entry(result)
        store.delete(5)
        assert len(store) == 1
        assert store.get(5) is None

    def test_default_path_under_state_dir(self, isolated_home):
        assert HistoryStore().path == isolated_home / "history.json"


class TestFavoritesStore:
    def test_toggle(self, tmp_path):
        favs = FavoritesStore(tmp_path / "f.json")
        assert favs.toggle("a/b") is True
        assert favs.is_favorite("a/b")
        assert favs.toggle("a/b") is False
        assert not favs.is_favorite("a/b")

    def test_add_bumps_existing(self, tmp_path):
        favs = FavoritesStore(tmp_path / "f.json")
        favs.add("a/b")
        favs.add("a/b")
        assert len(favs.items) == 1
        assert favs.items[0].use_count == 2

    def test_top_orders_by_usage(self, tmp_path):
        favs = FavoritesStore(tmp_path / "f.json")
        favs.add("a/b")
        favs.add("c/d")
        favs.update_usage("c/d")
        favs.update_usage("unknown/repo")
        assert [f.repo_name for f in favs.top(5)] == ["c/d", "a/b"]
        assert favs.top(0) == []

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "f.json"
        favs = FavoritesStore(path)
        favs.add("a/b")
        favs.save()
        assert FavoritesStore.load(path).is_favorite("a/b")

    def test_clear(self, tmp_path):
        favs = FavoritesStore(tmp_path / "f.json")
        favs.add("a/b")
        favs.clear()
        assert favs.snapshot() == {"items": []}


def test_write_snapshot_failure_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory")
    with pytest.raises(PersistenceError):
        write_snapshot(blocker / "h.json", {"entries": []})


def test_write_snapshot_leaves_no_temp_files(tmp_path):
    path = tmp_path / "state" / "h.json"
    write_snapshot(path, {"entries": [{"repo_name": "acme/widget"}]})
    write_snapshot(path, {"entries": []})
    assert [p.name for p in path.parent.iterdir()] == ["h.json"]
    assert json.loads(path.read_text()) == {"entries": []}
