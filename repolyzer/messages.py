"""Values flowing into the session reducer.

Two families share one ``kind`` discriminant:

- Messages, produced by Commands: ``analysis``, ``compare``, ``failure``,
  ``signal``, ``stores``, ``cache_stats``. A Command returns exactly one
  of these.
- Events, produced by the runtime: ``key``, ``resize``, ``tick``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from .history import FavoritesStore, HistoryStore
from .models import AnalysisResult, CompareResult

# Signal names
SWITCH_TO_TREE = "switch_to_tree"
REFRESH_DATA = "refresh_data"
CLEAR_STATUS = "clear_status"
EXPORT_DONE = "export_done"
PERSISTED = "persisted"
CACHE_CLEARED = "cache_cleared"

SIGNALS = frozenset({SWITCH_TO_TREE, REFRESH_DATA, CLEAR_STATUS, EXPORT_DONE, PERSISTED, CACHE_CLEARED})


@dataclass(frozen=True)
class AnalysisDone:
    kind: ClassVar[str] = "analysis"
    result: AnalysisResult
    generation: int = 0


@dataclass(frozen=True)
class CompareDone:
    kind: ClassVar[str] = "compare"
    result: CompareResult
    generation: int = 0


@dataclass(frozen=True)
class Failure:
    """A Command failed. ``origin`` names what produced it ("analysis",
    "compare", "export", "history", ...), ``stage`` the failing step."""

    kind: ClassVar[str] = "failure"
    error: Exception
    origin: str
    stage: str = ""
    generation: int = 0

    @property
    def text(self) -> str:
        return str(self.error)


@dataclass(frozen=True)
class StoresLoaded:
    kind: ClassVar[str] = "stores"
    history: HistoryStore
    favorites: FavoritesStore


@dataclass(frozen=True)
class CacheStats:
    kind: ClassVar[str] = "cache_stats"
    stats: dict


@dataclass(frozen=True)
class Signal:
    kind: ClassVar[str] = "signal"
    name: str
    detail: str = ""

    def __post_init__(self):
        if self.name not in SIGNALS:
            raise ValueError(f"unknown signal: {self.name}")


@dataclass(frozen=True)
class KeyPress:
    kind: ClassVar[str] = "key"
    key: str


@dataclass(frozen=True)
class Resize:
    kind: ClassVar[str] = "resize"
    width: int
    height: int


@dataclass(frozen=True)
class Tick:
    kind: ClassVar[str] = "tick"


Message = Union[AnalysisDone, CompareDone, Failure, Signal, StoresLoaded, CacheStats]
Event = Union[Message, KeyPress, Resize, Tick]

MESSAGE_KINDS = frozenset({"analysis", "compare", "failure", "signal", "stores", "cache_stats"})
