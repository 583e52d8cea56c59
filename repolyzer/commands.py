"""Commands: zero-argument units of work that return exactly one Message.

The reducer only builds Commands; the :class:`CommandRunner` executes them
on a thread pool and hands each resulting Message to the event loop through
a queue. A Command must not touch the Session.

Commands marked ``serial`` (store writes) run one at a time, in submission
order, on a dedicated worker, so the last snapshot taken on the loop is the
one left on disk.
"""

from __future__ import annotations

import logging
import queue
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from . import pipeline
from .errors import RepolyzerError
from .export import export_result
from .history import write_snapshot
from .messages import (
    CACHE_CLEARED,
    CLEAR_STATUS,
    EXPORT_DONE,
    PERSISTED,
    CacheStats,
    Failure,
    Signal,
    StoresLoaded,
)

log = logging.getLogger(__name__)

Command = Callable[[], object]


class CommandRunner:
    """Runs Commands off the event loop and queues their Messages in arrival order."""

    def __init__(self, max_workers: int = 4):
        self.messages: "queue.Queue[object]" = queue.Queue()
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="repolyzer-cmd")
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="repolyzer-io")

    def submit(self, command: Command) -> Future:
        pool = self._writer if getattr(command, "serial", False) else self._pool
        future = pool.submit(_guarded, command)
        future.add_done_callback(lambda f: self.messages.put(f.result()))
        return future

    def submit_all(self, commands) -> None:
        for command in commands:
            self.submit(command)

    def drain(self) -> list:
        """Every Message delivered so far, oldest first, without blocking."""
        out = []
        while True:
            try:
                out.append(self.messages.get_nowait())
            except queue.Empty:
                return out

    def shutdown(self) -> None:
        # in-flight network calls cannot be aborted; don't wait for them
        self._pool.shutdown(wait=False, cancel_futures=True)
        # queued store writes still land
        self._writer.shutdown(wait=True)


def _guarded(command: Command):
    origin = getattr(command, "origin", "command")
    generation = getattr(command, "generation", 0)
    try:
        return command()
    except RepolyzerError as exc:
        log.warning("command failed: %s", exc)
        return Failure(error=exc, origin=origin, generation=generation)
    except Exception as exc:
        log.exception("command crashed")
        return Failure(error=exc, origin=origin, generation=generation)


def _named(origin: str, fn: Command, generation: int = 0, serial: bool = False) -> Command:
    fn.origin = origin
    fn.generation = generation
    fn.serial = serial
    return fn


# ── Factories ───────────────────────────────────────────────────


def analyze(client, repo_id: str, tracker, scorers=pipeline.DEFAULT_SCORERS,
            generation: int = 0, refresh: bool = False) -> Command:
    def run():
        if refresh:
            client.invalidate(repo_id)
        return pipeline.run_analysis(client, repo_id, tracker, scorers, generation)
    return _named("analysis", run, generation)


def compare(client, left_id: str, right_id: str, tracker, scorers=pipeline.DEFAULT_SCORERS,
            generation: int = 0) -> Command:
    def run():
        return pipeline.run_comparison(client, left_id, right_id, tracker, scorers, generation)
    return _named("compare", run, generation)


def signal(name: str, detail: str = "") -> Command:
    return _named("signal", lambda: Signal(name, detail))


def later(seconds: float, name: str = CLEAR_STATUS) -> Command:
    def run():
        time.sleep(seconds)
        return Signal(name)
    return _named("signal", run)


def export(result, fmt: str, directory: Path | str = ".") -> Command:
    def run():
        path = export_result(result, fmt, directory)
        return Signal(EXPORT_DONE, str(path))
    return _named("export", run)


def save_snapshot(path: Path, payload, what: str) -> Command:
    """Write a store snapshot taken on the event loop."""
    def run():
        write_snapshot(path, payload)
        return Signal(PERSISTED, what)
    return _named(what, run, serial=True)


def load_stores(load_history, load_favorites) -> Command:
    """Read the history and favorites files."""
    def run():
        return StoresLoaded(history=load_history(), favorites=load_favorites())
    return _named("stores", run, serial=True)


def cache_stats(client) -> Command:
    return _named("cache", lambda: CacheStats(client.cache.stats()))


def clear_cache(client) -> Command:
    def run():
        removed = client.cache.invalidate()
        return Signal(CACHE_CLEARED, str(removed))
    return _named("cache", run)
