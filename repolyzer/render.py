"""Rich rendering of a Session snapshot.

Every function here reads the Session and returns a renderable; nothing is
printed and nothing is mutated. Colors come from the theme selected by
``session.theme_index``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from rich import box
from rich.console import Group, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from . import scoring
from .config import COMMIT_WINDOW_DAYS
from .export import verdict
from .models import AnalysisResult
from .session import DASHBOARD_VIEWS, MENU_OPTIONS, SUBMENUS, Session, State
from .themes import Theme, theme_for, theme_names

BAR_WIDTH = 30


@dataclass
class RenderInfo:
    """Facts outside the Session that some screens display."""

    token_source: str = "none"
    rate_limit: tuple = (None, None)


def bar(fraction: float, width: int = BAR_WIDTH) -> str:
    fraction = max(0.0, min(1.0, fraction))
    filled = round(fraction * width)
    return "█" * filled + "░" * (width - filled)


def score_style(score: int, theme: Theme) -> str:
    if score >= 70:
        return theme.success
    if score >= 40:
        return theme.warning
    return theme.error


def _frame(body: RenderableType, title: str, theme: Theme, subtitle: str = "") -> Panel:
    return Panel(
        body,
        title=Text(title, style=theme.title),
        subtitle=Text(subtitle, style=theme.subtle) if subtitle else None,
        border_style=theme.border,
        box=box.ROUNDED,
    )


def _hint(text: str, theme: Theme) -> Text:
    return Text(text, style=theme.subtle)


def _error_line(session: Session, theme: Theme) -> Text | None:
    if session.last_error is None:
        return None
    return Text(f"✗ {session.last_error}", style=theme.danger)


def _status_line(session: Session, theme: Theme) -> Text | None:
    if not session.status:
        return None
    return Text(session.status, style=theme.selected)


def _stack(*parts) -> Group:
    return Group(*(p for p in parts if p is not None))


# ── menu ────────────────────────────────────────────────────────


def render_menu(session: Session, theme: Theme) -> RenderableType:
    menu = session.menu
    lines = Text()
    lines.append("Repo-lyzer", style=theme.title)
    lines.append("  analyze GitHub repositories from your terminal\n\n", style=theme.subtle)
    for i, label in enumerate(MENU_OPTIONS):
        if i == menu.cursor:
            lines.append(f" ▶ {label}\n", style=theme.selected)
        else:
            lines.append(f"   {label}\n", style=theme.text)
        if menu.submenu is not None and i == menu.cursor:
            _, choices = SUBMENUS[i]
            for j, choice in enumerate(choices):
                style = theme.input if j == menu.sub_cursor else theme.subtle
                marker = "›" if j == menu.sub_cursor else " "
                lines.append(f"      {marker} {choice}\n", style=style)
    hint = "↑/↓ move · enter select · esc close" if menu.submenu else "↑/↓ move · enter select · q quit"
    return _frame(_stack(lines, _status_line(session, theme), _hint(hint, theme)), "Menu", theme)


# ── input ───────────────────────────────────────────────────────


def _input_box(label: str, value: str, theme: Theme, active: bool = True) -> Text:
    text = Text()
    text.append(f"{label}: ", style=theme.text)
    text.append(value, style=theme.input if active else theme.subtle)
    if active:
        text.append("█", style=theme.accent)
    return text


def render_input(session: Session, theme: Theme) -> RenderableType:
    return _frame(
        _stack(
            Text(f"Analysis type: {session.analysis_type}\n", style=theme.subtle),
            _input_box("Repository (owner/repo or URL)", session.primary_input, theme),
            _error_line(session, theme),
            Text(""),
            _hint("enter analyze · ctrl+u clear · ctrl+w delete word · esc back", theme),
        ),
        "Analyze Repository",
        theme,
    )


def render_compare_input(session: Session, theme: Theme) -> RenderableType:
    step = session.compare_step
    return _frame(
        _stack(
            _input_box("First repository", session.compare_input_a, theme, active=step == 0),
            _input_box("Second repository", session.compare_input_b, theme, active=step == 1)
            if step == 1 else None,
            _error_line(session, theme),
            Text(""),
            _hint("enter confirm · esc back", theme),
        ),
        "Compare Repositories",
        theme,
    )


# ── loading ─────────────────────────────────────────────────────


def render_progress(session: Session, theme: Theme, title: str) -> RenderableType:
    tracker = session.progress
    rows = Table.grid(padding=(0, 1))
    rows.add_column(width=2)
    rows.add_column()
    if tracker is not None:
        for stage in tracker.get_all_stages():
            if stage.is_complete:
                rows.add_row(Text("✓", style=theme.success), Text(stage.name, style=theme.text))
            elif stage.is_active:
                rows.add_row(Spinner("dots", style=theme.accent), Text(stage.name, style=theme.input))
            else:
                rows.add_row(Text("·", style=theme.subtle), Text(stage.name, style=theme.subtle))
        elapsed = tracker.get_elapsed_time()
        footer = Text(f"\nElapsed {elapsed:.1f}s", style=theme.subtle)
    else:
        footer = None
    return _frame(_stack(rows, footer, _hint("esc cancel", theme)), title, theme)


# ── dashboard ───────────────────────────────────────────────────


def _kv_table(theme: Theme) -> Table:
    table = Table(show_header=False, box=box.SIMPLE, padding=(0, 2))
    table.add_column("Key", style=f"bold {theme.text}", width=22)
    table.add_column("Value", style=theme.text)
    return table


def _view_overview(result: AnalysisResult, theme: Theme) -> RenderableType:
    repo = result.repo
    table = _kv_table(theme)
    table.add_row("Stars", f"{repo.stars:,}")
    table.add_row("Forks", f"{repo.forks:,}")
    table.add_row("Open issues", f"{repo.open_issues:,}")
    table.add_row("Commits (1y)", str(len(result.commits)))
    table.add_row("Contributors", str(len(result.contributors)))
    table.add_row("Primary language", scoring.primary_language(result.languages))
    table.add_row("", "")
    table.add_row(
        "Health",
        Text(f"{result.health_score}/100  {scoring.health_status(result.health_score)}",
             style=score_style(result.health_score, theme)),
    )
    risk_style = theme.error if result.bus_risk == "High Risk" else theme.text
    table.add_row("Bus factor", Text(f"{result.bus_factor}  ({result.bus_risk})", style=risk_style))
    table.add_row(
        "Maturity",
        Text(f"{result.maturity_score}/100  {result.maturity_level}",
             style=score_style(result.maturity_score, theme)),
    )
    return table


def _fmt_date(value) -> str:
    return value.strftime("%Y-%m-%d") if value else "—"


def _view_repo(result: AnalysisResult, theme: Theme) -> RenderableType:
    repo = result.repo
    table = _kv_table(theme)
    table.add_row("Name", repo.full_name)
    table.add_row("Description", escape(repo.description or "—"))
    table.add_row("URL", repo.html_url or "—")
    table.add_row("Clone", repo.clone_url or "—")
    table.add_row("Default branch", repo.default_branch)
    table.add_row("Created", _fmt_date(repo.created_at))
    table.add_row("Last push", _fmt_date(repo.pushed_at))
    table.add_row("Watchers", f"{repo.watchers:,}")
    flags = [name for name, on in (("fork", repo.fork), ("archived", repo.archived), ("private", repo.private)) if on]
    table.add_row("Flags", ", ".join(flags) or "—")
    table.add_row("Files", str(sum(1 for e in result.file_tree if not e.is_dir)))
    return table


def _view_languages(result: AnalysisResult, theme: Theme) -> RenderableType:
    shares = scoring.language_shares(result.languages)
    if not shares:
        return Text("No language data.", style=theme.subtle)
    table = Table(box=box.SIMPLE, padding=(0, 1))
    table.add_column("Language", style=theme.secondary)
    table.add_column("", no_wrap=True)
    table.add_column("Share", justify="right")
    table.add_column("Bytes", justify="right", style=theme.subtle)
    for name, count, pct in shares[:12]:
        table.add_row(name, Text(bar(pct / 100), style=theme.accent), f"{pct:.1f}%", f"{count:,}")
    diversity = scoring.simpson_diversity(result.languages.values())
    return _stack(table, Text(f"Language diversity (Simpson): {diversity:.1f}", style=theme.subtle))


def _view_activity(result: AnalysisResult, theme: Theme) -> RenderableType:
    days = scoring.recent_activity(result.commits, 14, datetime.now(timezone.utc))
    peak = max((n for _, n in days), default=0) or 1
    chart = Table(box=None, show_header=False, padding=(0, 1))
    chart.add_column(style=theme.subtle)
    chart.add_column(no_wrap=True)
    chart.add_column(justify="right")
    for day, n in days:
        chart.add_row(day[5:], Text(bar(n / peak, 24), style=theme.secondary), str(n))

    summary = Text()
    summary.append(f"Frequency: {scoring.commit_frequency(len(result.commits), COMMIT_WINDOW_DAYS)}   ",
                   style=theme.text)
    summary.append(f"Activity level: {scoring.activity_level(len(result.commits))}", style=theme.text)

    recent = Table(box=box.SIMPLE, padding=(0, 1), title="Recent commits", title_style=theme.subtle)
    recent.add_column("SHA", style=theme.accent, width=8)
    recent.add_column("Date", style=theme.subtle, width=10)
    recent.add_column("Author", style=theme.secondary, max_width=18)
    recent.add_column("Message", max_width=50)
    for c in result.commits[:5]:
        recent.add_row(c.sha[:7], _fmt_date(c.date), c.author, escape(c.message[:50]))
    return _stack(summary, chart, recent if result.commits else None)


def _view_contributors(result: AnalysisResult, theme: Theme) -> RenderableType:
    if not result.contributors:
        return Text("No contributor data.", style=theme.subtle)
    total = sum(c.commits for c in result.contributors) or 1
    table = Table(box=box.SIMPLE, padding=(0, 1))
    table.add_column("#", justify="right", width=3)
    table.add_column("Login", style=theme.secondary)
    table.add_column("Commits", justify="right")
    table.add_column("", no_wrap=True)
    for i, c in enumerate(result.contributors[:10], 1):
        table.add_row(str(i), c.login, str(c.commits), Text(bar(c.commits / total, 20), style=theme.accent))
    return table


def _view_recruiter(result: AnalysisResult, theme: Theme) -> RenderableType:
    commit_count = len(result.commits)
    table = _kv_table(theme)
    table.add_row("Primary language", scoring.primary_language(result.languages))
    table.add_row("Commit frequency", scoring.commit_frequency(commit_count, COMMIT_WINDOW_DAYS))
    table.add_row("Activity level", scoring.activity_level(commit_count))
    table.add_row("Contributor diversity",
                  f"{scoring.simpson_diversity(c.commits for c in result.contributors):.1f}")
    table.add_row("Language diversity", f"{scoring.simpson_diversity(result.languages.values()):.1f}")
    table.add_row("Maintenance", scoring.health_status(result.health_score))
    table.add_row("Team risk", result.bus_risk)
    table.add_row("Maturity", result.maturity_level)
    return table


def _view_api(result: AnalysisResult, theme: Theme, info: RenderInfo) -> RenderableType:
    remaining, limit = info.rate_limit
    table = _kv_table(theme)
    table.add_row("Authenticated", "yes" if info.token_source != "none" else "no")
    table.add_row("Token source", info.token_source)
    table.add_row("Rate limit", f"{remaining}/{limit}" if remaining is not None else "unknown")
    table.add_row("Commits fetched", str(len(result.commits)))
    table.add_row("Tree entries", str(len(result.file_tree)))
    return table


def _tabs(active: int, theme: Theme) -> Text:
    text = Text()
    for i, name in enumerate(DASHBOARD_VIEWS):
        style = theme.selected if i == active else theme.subtle
        text.append(f" {i + 1}:{name} ", style=style)
    return text


DASHBOARD_HELP = (
    ("1-7", "jump to view"),
    ("←/→ h/l", "previous / next view"),
    ("e", "export panel"),
    ("f", "file tree"),
    ("r", "refresh (bypasses cache)"),
    ("b", "toggle favorite"),
    ("?", "toggle this help"),
    ("q/esc", "back"),
)


def render_dashboard(session: Session, theme: Theme, info: RenderInfo) -> RenderableType:
    result = session.dashboard_result
    dash = session.dashboard
    if result is None:
        return _frame(Text("No data."), "Dashboard", theme)

    if dash.show_help:
        table = Table(show_header=False, box=box.SIMPLE)
        table.add_column(style=theme.input)
        table.add_column(style=theme.text)
        for key, desc in DASHBOARD_HELP:
            table.add_row(key, desc)
        body = table
    else:
        views = (
            _view_overview, _view_repo, _view_languages, _view_activity,
            _view_contributors, _view_recruiter,
        )
        body = _view_api(result, theme, info) if dash.view >= len(views) else views[dash.view](result, theme)

    export = None
    if dash.show_export:
        export = Panel(
            Text("j  export JSON\nm  export Markdown\ne  close", style=theme.text),
            title="Export",
            border_style=theme.accent,
            expand=False,
        )
    favorite = ""
    if session.favorites is not None and session.favorites.is_favorite(result.repo.full_name):
        favorite = " ★"
    return _frame(
        _stack(
            _tabs(dash.view, theme),
            Text(""),
            body,
            export,
            _status_line(session, theme),
            _hint("? help · e export · f files · r refresh · q back", theme),
        ),
        f"{result.repo.full_name}{favorite}",
        theme,
        subtitle=f"{session.analysis_type} analysis",
    )


# ── tree ────────────────────────────────────────────────────────


def render_tree(session: Session, theme: Theme) -> RenderableType:
    tree = session.tree
    rows = tree.rows
    height = max(10, (session.height or 30) - 8)
    start = max(0, min(tree.cursor - height // 2, len(rows) - height))
    text = Text()
    for i, (depth, node) in enumerate(rows[start:start + height], start):
        indent = "  " * depth
        if node.is_dir:
            icon = "▾ " if node.path in tree.expanded else "▸ "
            style = theme.secondary
        else:
            icon = "  "
            style = theme.text
        if i == tree.cursor:
            style = theme.selected
        text.append(f"{indent}{icon}{node.name}\n", style=style)
    if not rows:
        text.append("Empty tree.", style=theme.subtle)
    title = session.dashboard_result.repo.full_name if session.dashboard_result else "Files"
    return _frame(
        _stack(text, _hint("↑/↓ move · enter/space toggle · esc back", theme)),
        f"Files: {title}",
        theme,
        subtitle=f"{len(rows)} visible",
    )


# ── history / settings / help ───────────────────────────────────


def render_history(session: Session, theme: Theme) -> RenderableType:
    history = session.history
    if history is None:
        return _frame(_stack(Text("Loading history…", style=theme.subtle), _hint("esc back", theme)),
                      "History", theme)
    if not len(history):
        return _frame(_stack(Text("No analyses yet.", style=theme.subtle), _status_line(session, theme),
                             _hint("esc back", theme)), "History", theme)
    table = Table(box=box.SIMPLE, padding=(0, 1))
    table.add_column("", width=2)
    table.add_column("Repository", style=theme.secondary)
    table.add_column("Stars", justify="right")
    table.add_column("Health", justify="right")
    table.add_column("Maturity")
    table.add_column("Type", style=theme.subtle)
    table.add_column("Analyzed", style=theme.subtle)
    for i, entry in enumerate(history.entries):
        star = "★" if session.favorites is not None and session.favorites.is_favorite(entry.repo_name) else ""
        row_style = theme.selected if i == session.history_cursor else None
        table.add_row(
            star,
            entry.repo_name,
            f"{entry.stars:,}",
            str(entry.health_score),
            entry.maturity_level,
            entry.analysis_type or "—",
            entry.analyzed_at[:16].replace("T", " "),
            style=row_style,
        )
    return _frame(
        _stack(table, _status_line(session, theme),
               _hint("enter re-analyze · d delete · c clear · b favorite · esc back", theme)),
        "History",
        theme,
        subtitle=f"{len(history)} entries",
    )


def render_settings(session: Session, theme: Theme, info: RenderInfo) -> RenderableType:
    option = session.settings_option
    table = _kv_table(theme)
    if option == "theme":
        for i, name in enumerate(theme_names()):
            marker = "●" if i == session.theme_index else "○"
            table.add_row(marker, Text(name, style=theme.selected if i == session.theme_index else theme.text))
        hint = "t next theme · esc back"
    elif option == "cache" and session.cache_stats is None:
        table.add_row("", Text("Reading cache statistics…", style=theme.subtle))
        hint = "x clear cache · esc back"
    elif option == "cache":
        stats = session.cache_stats
        table.add_row("Enabled", "yes" if stats.get("enabled") else "no")
        table.add_row("Directory", str(stats.get("dir", "—")))
        table.add_row("Entries", str(stats.get("entries", 0)))
        table.add_row("Expired", str(stats.get("expired", 0)))
        table.add_row("Size", f"{stats.get('size_kb', 0)} KB")
        table.add_row("Hit rate", str(stats.get("hit_rate", "0%")))
        hint = "x clear cache · esc back"
    elif option == "token":
        present = info.token_source != "none"
        table.add_row("Token", Text("present" if present else "missing",
                                    style=theme.success if present else theme.warning))
        table.add_row("Source", info.token_source)
        if not present:
            table.add_row("", "Set GITHUB_TOKEN to raise the API rate limit.")
        hint = "esc back"
    else:
        table.add_row("Theme", theme.name)
        table.add_row("", "Press y to reset settings to defaults.")
        hint = "y reset · esc back"
    return _frame(_stack(table, _status_line(session, theme), _hint(hint, theme)),
                  f"Settings: {option}", theme)


HELP_TEXT = {
    "shortcuts": (
        "Menu: ↑/↓ or k/j move, enter select, q quit\n"
        "Input: enter submit, ctrl+u clear, ctrl+w delete word, esc back\n"
        "Dashboard: 1-7 views, e export, f files, r refresh, b favorite, ? help\n"
        "Anywhere: ctrl+c quit"
    ),
    "getting-started": (
        "Choose Analyze Repository, pick an analysis type and type a repository\n"
        "as owner/repo or paste its GitHub URL. Results are cached for 24 hours;\n"
        "press r on the dashboard to fetch fresh data."
    ),
    "features": (
        "Health, bus factor and maturity scores, language breakdown, commit\n"
        "activity, contributor ranking, file tree browser, side-by-side\n"
        "comparison, history, favorites and JSON/Markdown export."
    ),
    "troubleshooting": (
        "Rate limit errors: set GITHUB_TOKEN (or GH_TOKEN).\n"
        "Repository not found: check the spelling and that it is public.\n"
        "Logs are written to ~/.repolyzer/repolyzer.log."
    ),
}


def render_help(session: Session, theme: Theme) -> RenderableType:
    body = HELP_TEXT.get(session.help_topic, HELP_TEXT["shortcuts"])
    return _frame(_stack(Text(body, style=theme.text), Text(""), _hint("esc back", theme)),
                  f"Help: {session.help_topic}", theme)


# ── compare ─────────────────────────────────────────────────────


def render_compare_result(session: Session, theme: Theme) -> RenderableType:
    result = session.compare_result
    if result is None:
        return _frame(Text("No comparison."), "Compare", theme)
    a, b = result.left, result.right
    table = Table(box=box.ROUNDED, border_style=theme.border)
    table.add_column("Metric", style=f"bold {theme.text}")
    table.add_column(a.repo.full_name, justify="right", style=theme.secondary)
    table.add_column(b.repo.full_name, justify="right", style=theme.accent)
    rows = (
        ("Stars", f"{a.repo.stars:,}", f"{b.repo.stars:,}"),
        ("Forks", f"{a.repo.forks:,}", f"{b.repo.forks:,}"),
        ("Commits (1y)", str(len(a.commits)), str(len(b.commits))),
        ("Contributors", str(len(a.contributors)), str(len(b.contributors))),
        ("Primary language", scoring.primary_language(a.languages), scoring.primary_language(b.languages)),
        ("Health", str(a.health_score), str(b.health_score)),
        ("Bus factor", f"{a.bus_factor} ({a.bus_risk})", f"{b.bus_factor} ({b.bus_risk})"),
        ("Maturity", f"{a.maturity_level} ({a.maturity_score})", f"{b.maturity_level} ({b.maturity_score})"),
    )
    for row in rows:
        table.add_row(*row)
    return _frame(
        _stack(table, Text(verdict(result), style=theme.selected), _status_line(session, theme),
               _hint("j export JSON · m export Markdown · esc back", theme)),
        "Comparison",
        theme,
    )


def render(session: Session, info: RenderInfo | None = None) -> RenderableType:
    """The renderable for the current state."""
    info = info or RenderInfo()
    theme = theme_for(session.theme_index)
    state = session.state
    if state == State.MENU:
        return render_menu(session, theme)
    if state == State.INPUT:
        return render_input(session, theme)
    if state == State.LOADING:
        return render_progress(session, theme, f"Analyzing {session.primary_input}")
    if state == State.DASHBOARD:
        return render_dashboard(session, theme, info)
    if state == State.TREE:
        return render_tree(session, theme)
    if state == State.HISTORY:
        return render_history(session, theme)
    if state == State.SETTINGS:
        return render_settings(session, theme, info)
    if state == State.HELP:
        return render_help(session, theme)
    if state == State.COMPARE_INPUT:
        return render_compare_input(session, theme)
    if state == State.COMPARE_LOADING:
        return render_progress(session, theme,
                               f"Comparing {session.compare_input_a} vs {session.compare_input_b}")
    return render_compare_result(session, theme)
