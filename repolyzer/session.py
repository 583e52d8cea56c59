"""Interactive session state machine.

The whole UI state lives in one frozen :class:`Session`. ``update`` is the
only place it changes: it takes the current Session and one inbound value
(a key press, a resize, a tick, or a Message returned by a Command) and
returns the next Session together with the Commands to run. It never
blocks and never touches the network or the disk itself: even the history
and favorites files are read by a Command (see :func:`start`).

Messages only mean something to the states that asked for them. Anything
else is dropped, so a result that arrives after the user has moved on is
ignored. Each dispatched pipeline carries the session ``generation``; the
loading states also drop results from an older generation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from . import commands
from .config import ANALYSIS_TYPES, HELP_TOPICS, SETTINGS_OPTIONS, STATUS_SECONDS
from .errors import ValidationError
from .history import FavoritesStore, HistoryStore
from .messages import (
    CACHE_CLEARED,
    CLEAR_STATUS,
    EXPORT_DONE,
    PERSISTED,
    REFRESH_DATA,
    SWITCH_TO_TREE,
)
from .models import AnalysisResult, CompareResult, FileNode, build_file_tree, visible_nodes
from .pipeline import DEFAULT_SCORERS, Scorers
from .progress import ANALYSIS_STAGES, ProgressTracker, comparison_stages
from .sanitize import parse_repo_id, sanitize_repo_input
from .themes import DEFAULT_THEME_INDEX, next_theme_index

log = logging.getLogger(__name__)


class State(str, Enum):
    MENU = "menu"
    INPUT = "input"
    LOADING = "loading"
    DASHBOARD = "dashboard"
    TREE = "tree"
    SETTINGS = "settings"
    HELP = "help"
    HISTORY = "history"
    COMPARE_INPUT = "compareInput"
    COMPARE_LOADING = "compareLoading"
    COMPARE_RESULT = "compareResult"


LOADING_STATES = frozenset({State.LOADING, State.COMPARE_LOADING})

MENU_OPTIONS = (
    "Analyze Repository",
    "Compare Repositories",
    "History",
    "Settings",
    "Help",
    "Exit",
)
MENU_ANALYZE, MENU_COMPARE, MENU_HISTORY, MENU_SETTINGS, MENU_HELP, MENU_EXIT = range(len(MENU_OPTIONS))

# menu index -> (submenu name, choices)
SUBMENUS = {
    MENU_ANALYZE: ("analyze", ANALYSIS_TYPES),
    MENU_SETTINGS: ("settings", SETTINGS_OPTIONS),
    MENU_HELP: ("help", HELP_TOPICS),
}

DASHBOARD_VIEWS = ("Overview", "Repo", "Languages", "Activity", "Contributors", "Recruiter", "API")

UP_KEYS = ("up", "k")
DOWN_KEYS = ("down", "j")
BACK_KEYS = ("esc", "q")


@dataclass(frozen=True)
class MenuState:
    cursor: int = 0
    submenu: Optional[str] = None
    sub_cursor: int = 0


@dataclass(frozen=True)
class DashboardState:
    view: int = 0
    show_export: bool = False
    show_help: bool = False
    back_to_menu: bool = False


@dataclass(frozen=True)
class TreeState:
    root: Optional[FileNode] = None
    expanded: frozenset = frozenset()
    cursor: int = 0
    done: bool = False

    @property
    def rows(self) -> list:
        if self.root is None:
            return []
        return visible_nodes(self.root, self.expanded)


@dataclass(frozen=True)
class Session:
    state: State = State.MENU
    menu: MenuState = field(default_factory=MenuState)
    primary_input: str = ""
    compare_input_a: str = ""
    compare_input_b: str = ""
    compare_step: int = 0
    analysis_type: str = ANALYSIS_TYPES[0]
    progress: Optional[ProgressTracker] = None
    last_error: Optional[Exception] = None
    status: str = ""
    dashboard_result: Optional[AnalysisResult] = None
    compare_result: Optional[CompareResult] = None
    dashboard: DashboardState = field(default_factory=DashboardState)
    tree: TreeState = field(default_factory=TreeState)
    history: Optional[HistoryStore] = None
    favorites: Optional[FavoritesStore] = None
    stores_requested: bool = False
    # (result, analysis_type) pairs finished before the stores were loaded
    pending_results: tuple = ()
    cache_stats: Optional[dict] = None
    history_cursor: int = 0
    settings_option: str = SETTINGS_OPTIONS[0]
    help_topic: str = HELP_TOPICS[0]
    theme_index: int = DEFAULT_THEME_INDEX
    width: int = 0
    height: int = 0
    generation: int = 0
    quit: bool = False

    @property
    def current_compare_input(self) -> str:
        return self.compare_input_a if self.compare_step == 0 else self.compare_input_b


@dataclass
class AppContext:
    """Collaborators the reducer hands to the Commands it builds."""

    client: object
    scorers: Scorers = DEFAULT_SCORERS
    load_history: Callable[[], HistoryStore] = HistoryStore.load
    load_favorites: Callable[[], FavoritesStore] = FavoritesStore.load
    export_dir: Path = Path(".")
    status_seconds: float = STATUS_SECONDS
    token_source: str = "none"


# ── Text editing ────────────────────────────────────────────────


def delete_word(text: str) -> str:
    """Ctrl+W: drop trailing spaces, then everything after the last space."""
    text = text.rstrip(" ")
    idx = text.rfind(" ")
    return text[: idx + 1] if idx >= 0 else ""


def edit_buffer(text: str, key: str) -> Optional[str]:
    """Apply an editing key; ``None`` if ``key`` is not an editing key."""
    if key == "backspace":
        return text[:-1]
    if key == "ctrl+u":
        return ""
    if key == "ctrl+w":
        return delete_word(text)
    if key == "space":
        return text + " "
    if len(key) == 1 and key.isprintable():
        return text + key
    return None


# ── Reducer ─────────────────────────────────────────────────────


def start(session: Session, ctx: AppContext) -> tuple[Session, list]:
    """Commands a fresh Session needs before the first key: load the stores."""
    return _request_stores(session, ctx)


def update(session: Session, event, ctx: AppContext) -> tuple[Session, list]:
    """Return the next Session and the Commands to run for ``event``."""
    kind = event.kind

    if kind == "resize":
        return replace(session, width=event.width, height=event.height), []
    if kind == "tick":
        return session, []
    if kind == "key" and event.key == "ctrl+c":
        return replace(session, quit=True), []
    if kind == "stores":
        return _stores_loaded(session, event)
    if kind == "cache_stats":
        return replace(session, cache_stats=event.stats), []
    if kind == "signal":
        handled = _global_signal(session, event, ctx)
        if handled is not None:
            return handled
    if kind == "failure" and event.origin not in ("analysis", "compare"):
        if event.origin == "stores":
            session = replace(session, stores_requested=False)
        return _status(session, ctx, f"Error: {event.text}")

    handler = _HANDLERS[session.state]
    return handler(session, event, ctx)


def _status(session: Session, ctx: AppContext, text: str) -> tuple[Session, list]:
    return replace(session, status=text), [commands.later(ctx.status_seconds, CLEAR_STATUS)]


def _global_signal(session: Session, msg, ctx: AppContext):
    if msg.name == CLEAR_STATUS:
        return replace(session, status=""), []
    if msg.name == EXPORT_DONE:
        return _status(session, ctx, f"✓ Exported to {msg.detail}")
    if msg.name == CACHE_CLEARED:
        session, cmds = _status(session, ctx, f"✓ Cache cleared ({msg.detail} files)")
        if session.state == State.SETTINGS and session.settings_option == "cache":
            cmds.append(commands.cache_stats(ctx.client))
        return session, cmds
    if msg.name == PERSISTED:
        return session, []
    return None


def _drop(session: Session, event) -> tuple[Session, list]:
    if event.kind not in ("key",):
        log.debug("state %s dropped %s message", session.state.value, event.kind)
    return session, []


# ── History and favorites ───────────────────────────────────────


def _stores_ready(session: Session) -> bool:
    return session.history is not None and session.favorites is not None


def _request_stores(session: Session, ctx: AppContext) -> tuple[Session, list]:
    if _stores_ready(session) or session.stores_requested:
        return session, []
    cmd = commands.load_stores(ctx.load_history, ctx.load_favorites)
    return replace(session, stores_requested=True), [cmd]


def _stores_loaded(session: Session, msg) -> tuple[Session, list]:
    if _stores_ready(session):
        return _drop(session, msg)
    pending = session.pending_results
    session = replace(session, history=msg.history, favorites=msg.favorites,
                      stores_requested=False, pending_results=())
    log.debug("stores loaded (%d history entries, %d pending)", len(msg.history), len(pending))
    return session, _record_results(session, pending)


def _record_results(session: Session, results) -> list:
    """Add (result, analysis_type) pairs to the loaded stores; returns the save Commands."""
    if not results:
        return []
    bumped = False
    for result, analysis_type in results:
        session.history.add_entry(result, analysis_type)
        name = result.repo.full_name
        if session.favorites.is_favorite(name):
            session.favorites.update_usage(name)
            bumped = True
    cmds = _save_history(session)
    if bumped:
        cmds += _save_favorites(session)
    return cmds


def _save_history(session: Session) -> list:
    h = session.history
    return [commands.save_snapshot(h.path, h.snapshot(), "history")]


def _save_favorites(session: Session) -> list:
    f = session.favorites
    return [commands.save_snapshot(f.path, f.snapshot(), "favorites")]


def start_analysis(session: Session, ctx: AppContext, repo_id: str, refresh: bool = False):
    """Enter ``loading`` and dispatch the Analysis Command for ``repo_id``."""
    generation = session.generation + 1
    tracker = ProgressTracker(ANALYSIS_STAGES)
    log.info("analyze %s (%s, generation %d)", repo_id, session.analysis_type, generation)
    session = replace(
        session,
        state=State.LOADING,
        primary_input=repo_id,
        progress=tracker,
        last_error=None,
        dashboard_result=None,
        dashboard=DashboardState(),
        tree=TreeState(),
        generation=generation,
    )
    return session, [commands.analyze(ctx.client, repo_id, tracker, ctx.scorers, generation, refresh)]


def _toggle_favorite(session: Session, ctx: AppContext, repo_name: str):
    if not _stores_ready(session):
        session, cmds = _request_stores(session, ctx)
        session, more = _status(session, ctx, "Favorites are still loading")
        return session, cmds + more
    added = session.favorites.toggle(repo_name)
    text = f"★ Added {repo_name} to favorites" if added else f"Removed {repo_name} from favorites"
    session, cmds = _status(session, ctx, text)
    return session, cmds + _save_favorites(session)


# ── menu ────────────────────────────────────────────────────────


def _on_menu(session: Session, event, ctx: AppContext):
    if event.kind != "key":
        return _drop(session, event)
    key = event.key
    menu = session.menu

    if menu.submenu is not None:
        _, choices = SUBMENUS[menu.cursor]
        if key in UP_KEYS:
            return replace(session, menu=replace(menu, sub_cursor=max(0, menu.sub_cursor - 1))), []
        if key in DOWN_KEYS:
            return replace(session, menu=replace(menu, sub_cursor=min(len(choices) - 1, menu.sub_cursor + 1))), []
        if key in BACK_KEYS:
            return replace(session, menu=replace(menu, submenu=None, sub_cursor=0)), []
        if key == "enter":
            choice = choices[menu.sub_cursor]
            closed = MenuState(cursor=menu.cursor)
            if menu.submenu == "analyze":
                return replace(session, menu=closed, state=State.INPUT, analysis_type=choice,
                               primary_input="", last_error=None), []
            if menu.submenu == "settings":
                cmds = [commands.cache_stats(ctx.client)] if choice == "cache" else []
                return replace(session, menu=closed, state=State.SETTINGS, settings_option=choice), cmds
            return replace(session, menu=closed, state=State.HELP, help_topic=choice), []
        return session, []

    if key in UP_KEYS:
        return replace(session, menu=replace(menu, cursor=max(0, menu.cursor - 1))), []
    if key in DOWN_KEYS:
        return replace(session, menu=replace(menu, cursor=min(len(MENU_OPTIONS) - 1, menu.cursor + 1))), []
    if key == "q":
        return replace(session, quit=True), []
    if key != "enter":
        return session, []

    if menu.cursor in SUBMENUS:
        name, _ = SUBMENUS[menu.cursor]
        return replace(session, menu=replace(menu, submenu=name, sub_cursor=0)), []
    if menu.cursor == MENU_COMPARE:
        return replace(session, state=State.COMPARE_INPUT, compare_step=0,
                       compare_input_a="", compare_input_b="", last_error=None), []
    if menu.cursor == MENU_HISTORY:
        session, cmds = _request_stores(session, ctx)
        return replace(session, state=State.HISTORY, history_cursor=0), cmds
    return replace(session, quit=True), []


# ── input ───────────────────────────────────────────────────────


def _on_input(session: Session, event, ctx: AppContext):
    if event.kind != "key":
        return _drop(session, event)
    key = event.key

    if key == "enter":
        try:
            owner, name = parse_repo_id(session.primary_input)
        except ValidationError as exc:
            return replace(session, last_error=exc), []
        return start_analysis(session, ctx, f"{owner}/{name}")
    if key == "esc":
        return replace(session, state=State.MENU, primary_input="", last_error=None), []

    edited = edit_buffer(session.primary_input, key)
    if edited is None:
        return session, []
    return replace(session, primary_input=edited), []


def _on_loading(session: Session, event, ctx: AppContext):
    kind = event.kind
    if kind == "analysis" and event.generation == session.generation:
        result = event.result
        if _stores_ready(session):
            cmds = _record_results(session, [(result, session.analysis_type)])
        else:
            pending = session.pending_results + ((result, session.analysis_type),)
            session, cmds = _request_stores(replace(session, pending_results=pending), ctx)
        session = replace(
            session,
            state=State.DASHBOARD,
            dashboard_result=result,
            dashboard=DashboardState(),
            progress=None,
            last_error=None,
        )
        return session, cmds
    if kind == "failure" and event.origin == "analysis" and event.generation == session.generation:
        return replace(session, state=State.INPUT, last_error=event.error, progress=None), []
    if kind == "key" and event.key == "esc":
        return replace(session, state=State.MENU, primary_input="", progress=None,
                       last_error=None, generation=session.generation + 1), []
    return _drop(session, event)


# ── compare ─────────────────────────────────────────────────────


def _on_compare_input(session: Session, event, ctx: AppContext):
    if event.kind != "key":
        return _drop(session, event)
    key = event.key

    if key == "enter":
        try:
            owner, name = parse_repo_id(session.current_compare_input)
        except ValidationError as exc:
            return replace(session, last_error=exc), []
        canonical = f"{owner}/{name}"
        if session.compare_step == 0:
            return replace(session, compare_input_a=canonical, compare_step=1, last_error=None), []

        left = sanitize_repo_input(session.compare_input_a)
        generation = session.generation + 1
        tracker = ProgressTracker(comparison_stages(left, canonical))
        log.info("compare %s vs %s (generation %d)", left, canonical, generation)
        session = replace(
            session,
            state=State.COMPARE_LOADING,
            compare_input_a=left,
            compare_input_b=canonical,
            progress=tracker,
            last_error=None,
            generation=generation,
        )
        return session, [commands.compare(ctx.client, left, canonical, tracker, ctx.scorers, generation)]

    if key == "esc":
        if session.compare_step == 1:
            return replace(session, compare_step=0, last_error=None), []
        return replace(session, state=State.MENU, compare_input_a="", compare_input_b="",
                       last_error=None), []

    edited = edit_buffer(session.current_compare_input, key)
    if edited is None:
        return session, []
    if session.compare_step == 0:
        return replace(session, compare_input_a=edited), []
    return replace(session, compare_input_b=edited), []


def _on_compare_loading(session: Session, event, ctx: AppContext):
    kind = event.kind
    if kind == "compare" and event.generation == session.generation:
        return replace(session, state=State.COMPARE_RESULT, compare_result=event.result,
                       progress=None, last_error=None), []
    if kind == "failure" and event.origin == "compare" and event.generation == session.generation:
        return replace(session, state=State.COMPARE_INPUT, compare_step=0,
                       last_error=event.error, progress=None), []
    if kind == "key" and event.key == "esc":
        return replace(session, state=State.MENU, compare_input_a="", compare_input_b="",
                       progress=None, last_error=None, generation=session.generation + 1), []
    return _drop(session, event)


def _on_compare_result(session: Session, event, ctx: AppContext):
    if event.kind != "key":
        return _drop(session, event)
    key = event.key
    if key in BACK_KEYS:
        return replace(session, state=State.MENU, compare_result=None,
                       compare_input_a="", compare_input_b="", compare_step=0), []
    if key in ("j", "m") and session.compare_result is not None:
        fmt = "json" if key == "j" else "markdown"
        return session, [commands.export(session.compare_result, fmt, ctx.export_dir)]
    return session, []


# ── dashboard ───────────────────────────────────────────────────


def _dashboard_key(dash: DashboardState, key: str) -> DashboardState:
    if key in BACK_KEYS:
        if dash.show_help:
            return replace(dash, show_help=False)
        if dash.show_export:
            return replace(dash, show_export=False)
        if dash.view != 0:
            return replace(dash, view=0)
        return replace(dash, back_to_menu=True)
    if key == "?":
        return replace(dash, show_help=not dash.show_help)
    if key == "e":
        return replace(dash, show_export=not dash.show_export)
    if len(key) == 1 and "1" <= key <= str(len(DASHBOARD_VIEWS)):
        return DashboardState(view=int(key) - 1)
    if dash.show_help or dash.show_export:
        return dash
    if key in ("right", "l"):
        return replace(dash, view=min(len(DASHBOARD_VIEWS) - 1, dash.view + 1))
    if key in ("left", "h"):
        return replace(dash, view=max(0, dash.view - 1))
    return dash


def _on_dashboard(session: Session, event, ctx: AppContext):
    result = session.dashboard_result
    if event.kind == "signal":
        if event.name == SWITCH_TO_TREE and result is not None:
            root = build_file_tree(result.file_tree)
            return replace(session, state=State.TREE, tree=TreeState(root=root)), []
        if event.name == REFRESH_DATA and result is not None:
            return start_analysis(session, ctx, result.repo.full_name, refresh=True)
        return _drop(session, event)
    if event.kind != "key":
        return _drop(session, event)

    key = event.key
    dash = session.dashboard
    if key in ("j", "m") and dash.show_export:
        fmt = "json" if key == "j" else "markdown"
        return session, [commands.export(result, fmt, ctx.export_dir)]
    if key == "f":
        return session, [commands.signal(SWITCH_TO_TREE)]
    if key == "r":
        return session, [commands.signal(REFRESH_DATA)]
    if key == "b":
        return _toggle_favorite(session, ctx, result.repo.full_name)

    dash = _dashboard_key(dash, key)
    if dash.back_to_menu:
        # one-shot: consumed here, never stored
        return replace(session, state=State.MENU, dashboard=DashboardState(),
                       dashboard_result=None, primary_input=""), []
    return replace(session, dashboard=dash), []


# ── tree ────────────────────────────────────────────────────────


def _tree_key(tree: TreeState, key: str) -> TreeState:
    rows = tree.rows
    if key in BACK_KEYS:
        return replace(tree, done=True)
    if not rows:
        return tree
    if key in UP_KEYS:
        return replace(tree, cursor=max(0, tree.cursor - 1))
    if key in DOWN_KEYS:
        return replace(tree, cursor=min(len(rows) - 1, tree.cursor + 1))

    _, node = rows[min(tree.cursor, len(rows) - 1)]
    if not node.is_dir:
        return tree
    if key in ("enter", "space", "right", "l"):
        if node.path in tree.expanded and key in ("enter", "space"):
            return replace(tree, expanded=tree.expanded - {node.path})
        return replace(tree, expanded=tree.expanded | {node.path})
    if key in ("left", "h") and node.path in tree.expanded:
        return replace(tree, expanded=tree.expanded - {node.path})
    return tree


def _on_tree(session: Session, event, ctx: AppContext):
    if event.kind != "key":
        return _drop(session, event)
    tree = _tree_key(session.tree, event.key)
    if tree.done:
        return replace(session, state=State.DASHBOARD, tree=TreeState()), []
    return replace(session, tree=tree), []


# ── history / help / settings ───────────────────────────────────


def _on_history(session: Session, event, ctx: AppContext):
    if event.kind != "key":
        return _drop(session, event)
    key = event.key
    if not _stores_ready(session):
        if key in BACK_KEYS:
            return replace(session, state=State.MENU), []
        return _request_stores(session, ctx)
    history = session.history
    cursor = session.history_cursor

    if key in UP_KEYS:
        return replace(session, history_cursor=max(0, cursor - 1)), []
    if key in DOWN_KEYS:
        return replace(session, history_cursor=max(0, min(len(history) - 1, cursor + 1))), []
    if key in BACK_KEYS:
        return replace(session, state=State.MENU), []

    entry = history.get(cursor)
    if entry is None:
        return session, []
    if key == "enter":
        return start_analysis(session, ctx, entry.repo_name)
    if key == "d":
        history.delete(cursor)
        cursor = max(0, min(cursor, len(history) - 1))
        return replace(session, history_cursor=cursor), _save_history(session)
    if key == "c":
        history.clear()
        return replace(session, history_cursor=0), _save_history(session)
    if key == "b":
        return _toggle_favorite(session, ctx, entry.repo_name)
    return session, []


def _on_help(session: Session, event, ctx: AppContext):
    if event.kind == "key" and event.key in BACK_KEYS:
        return replace(session, state=State.MENU), []
    return _drop(session, event)


def _on_settings(session: Session, event, ctx: AppContext):
    if event.kind != "key":
        return _drop(session, event)
    key = event.key
    option = session.settings_option
    if key in BACK_KEYS:
        return replace(session, state=State.MENU), []
    if option == "theme" and key == "t":
        return replace(session, theme_index=next_theme_index(session.theme_index)), []
    if option == "cache" and key == "x":
        return session, [commands.clear_cache(ctx.client)]
    if option == "reset" and key == "y":
        return _status(replace(session, theme_index=DEFAULT_THEME_INDEX), ctx, "✓ Settings reset to defaults")
    return session, []


_HANDLERS = {
    State.MENU: _on_menu,
    State.INPUT: _on_input,
    State.LOADING: _on_loading,
    State.DASHBOARD: _on_dashboard,
    State.TREE: _on_tree,
    State.SETTINGS: _on_settings,
    State.HELP: _on_help,
    State.HISTORY: _on_history,
    State.COMPARE_INPUT: _on_compare_input,
    State.COMPARE_LOADING: _on_compare_loading,
    State.COMPARE_RESULT: _on_compare_result,
}
