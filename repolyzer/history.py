"""Persistent analysis history and favorites.

Both stores are whole-file JSON: read fully on load, mutated in memory,
written back in one piece. Writes happen off the event loop from a
snapshot taken on it (see ``commands.save_snapshot``), one at a time.
"""

from __future__ import annotations

import json
import logging
import tempfile
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

from .config import HISTORY_LIMIT, favorites_path, history_path
from .errors import PersistenceError

log = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _write_json(path: Path, payload) -> None:
    tmp = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", dir=path.parent, prefix=path.name + ".", suffix=".tmp", delete=False
        ) as fh:
            tmp = Path(fh.name)
            fh.write(json.dumps(payload, indent=2))
        tmp.replace(path)
    except OSError as exc:
        if tmp is not None:
            tmp.unlink(missing_ok=True)
        raise PersistenceError(f"could not write {path}: {exc}") from exc


def _read_json(path: Path):
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        log.warning("Ignoring unreadable %s: %s", path, exc)
        return None


@dataclass(frozen=True)
class HistoryEntry:
    """Snapshot of one successful analysis."""
    repo_name: str
    stars: int
    health_score: int
    maturity_level: str
    analyzed_at: str
    maturity_score: int = 0
    analysis_type: str = ""


class HistoryStore:
    """Newest-first list of :class:`HistoryEntry`, capped at ``limit``."""

    def __init__(self, path: Path | None = None, limit: int = HISTORY_LIMIT):
        self.path = Path(path) if path else history_path()
        self.limit = limit
        self.entries: list[HistoryEntry] = []

    @classmethod
    def load(cls, path: Path | None = None, limit: int = HISTORY_LIMIT) -> "HistoryStore":
        store = cls(path, limit)
        data = _read_json(store.path) or {}
        for obj in data.get("entries", []):
            try:
                store.entries.append(HistoryEntry(**obj))
            except TypeError:
                log.warning("Skipping malformed history entry: %r", obj)
        return store

    # ── Write operations ────────────────────────────────────────

    def add_entry(self, result, analysis_type: str = "") -> HistoryEntry:
        entry = HistoryEntry(
            repo_name=result.repo.full_name,
            stars=result.repo.stars,
            health_score=result.health_score,
            maturity_level=result.maturity_level,
            maturity_score=result.maturity_score,
            analysis_type=analysis_type,
            analyzed_at=_now(),
        )
        self.entries.insert(0, entry)
        del self.entries[self.limit:]
        return entry

    def delete(self, index: int) -> None:
        if 0 <= index < len(self.entries):
            del self.entries[index]

    def clear(self) -> None:
        self.entries.clear()

    def snapshot(self) -> dict:
        return {"entries": [asdict(e) for e in self.entries]}

    def save(self) -> None:
        _write_json(self.path, self.snapshot())

    # ── Query operations ────────────────────────────────────────

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, index: int) -> HistoryEntry | None:
        if 0 <= index < len(self.entries):
            return self.entries[index]
        return None


@dataclass
class Favorite:
    repo_name: str
    added_at: str
    last_used: str
    use_count: int = 1
    notes: str = ""


class FavoritesStore:
    """Bookmarked repositories with usage counts."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path else favorites_path()
        self.items: list[Favorite] = []

    @classmethod
    def load(cls, path: Path | None = None) -> "FavoritesStore":
        store = cls(path)
        data = _read_json(store.path) or {}
        for obj in data.get("items", []):
            try:
                store.items.append(Favorite(**obj))
            except TypeError:
                log.warning("Skipping malformed favorite: %r", obj)
        return store

    def _find(self, repo_name: str) -> Favorite | None:
        for fav in self.items:
            if fav.repo_name == repo_name:
                return fav
        return None

    def add(self, repo_name: str) -> None:
        """Add ``repo_name``, or bump its usage if already present."""
        fav = self._find(repo_name)
        now = _now()
        if fav:
            fav.use_count += 1
            fav.last_used = now
            return
        self.items.append(Favorite(repo_name=repo_name, added_at=now, last_used=now))

    def remove(self, repo_name: str) -> None:
        self.items = [f for f in self.items if f.repo_name != repo_name]

    def toggle(self, repo_name: str) -> bool:
        """Add or remove; returns whether it is a favorite afterwards."""
        if self.is_favorite(repo_name):
            self.remove(repo_name)
            return False
        self.add(repo_name)
        return True

    def is_favorite(self, repo_name: str) -> bool:
        return self._find(repo_name) is not None

    def update_usage(self, repo_name: str) -> None:
        fav = self._find(repo_name)
        if fav:
            fav.use_count += 1
            fav.last_used = _now()

    def top(self, n: int) -> list[Favorite]:
        if n <= 0:
            return []
        return sorted(self.items, key=lambda f: f.use_count, reverse=True)[:n]

    def clear(self) -> None:
        self.items = []

    def snapshot(self) -> dict:
        return {"items": [asdict(f) for f in self.items]}

    def save(self) -> None:
        _write_json(self.path, self.snapshot())


def write_snapshot(path: Path, payload) -> None:
    """Persist a snapshot taken with ``HistoryStore.snapshot`` or ``FavoritesStore.snapshot``."""
    _write_json(Path(path), payload)
