#!/usr/bin/env python3
"""Repo-lyzer CLI - analyze GitHub repositories from the terminal."""

from __future__ import annotations

import argparse
import logging
import queue
import sys
from pathlib import Path

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__, commands, pipeline, scoring
from .cache import CacheStore
from .config import log_path, resolve_token
from .errors import PersistenceError, RepolyzerError
from .export import export_result, verdict
from .github_api import GitHubClient
from .history import FavoritesStore, HistoryStore
from .messages import AnalysisDone, CompareDone, Failure
from .progress import ANALYSIS_STAGES, ProgressTracker, comparison_stages
from .sanitize import parse_repo_id
from .session import AppContext

console = Console()
log = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Send log records to the state-dir log file; the terminal belongs to the UI."""
    path = log_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
    except OSError:
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_client(args) -> tuple[GitHubClient, str]:
    token, source = resolve_token(args.token)
    cache = CacheStore(enabled=not args.no_cache)
    return GitHubClient(token, cache=cache), source


def _run_with_spinner(command, tracker: ProgressTracker, label: str):
    """Run one Command off the main thread while a spinner shows the current stage."""
    runner = commands.CommandRunner(max_workers=1)
    runner.submit(command)
    names = [s.name for s in tracker.get_all_stages()]
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task(label, total=None)
            while True:
                try:
                    return runner.messages.get(timeout=0.1)
                except queue.Empty:
                    idx = tracker.current
                    if idx < len(names):
                        progress.update(task, description=f"{label}: {names[idx]}…")
    finally:
        runner.shutdown()


def _print_analysis(result) -> None:
    repo = result.repo
    table = Table(title=f"Repo Analysis: {repo.full_name}", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Description", repo.description or "—")
    table.add_row("Stars", f"{repo.stars:,}")
    table.add_row("Forks", f"{repo.forks:,}")
    table.add_row("Open issues", f"{repo.open_issues:,}")
    table.add_row("Primary language", scoring.primary_language(result.languages))
    table.add_row("Commits (1y)", str(len(result.commits)))
    table.add_row("Contributors", str(len(result.contributors)))
    table.add_row("Health", f"{result.health_score}/100 ({scoring.health_status(result.health_score)})")
    table.add_row("Bus factor", f"{result.bus_factor} ({result.bus_risk})")
    table.add_row("Maturity", f"{result.maturity_score}/100 ({result.maturity_level})")
    console.print(table)


def _print_comparison(result) -> None:
    a, b = result.left, result.right
    table = Table(title="Comparison")
    table.add_column("Metric", style="bold")
    table.add_column(a.repo.full_name, justify="right", style="cyan")
    table.add_column(b.repo.full_name, justify="right", style="magenta")
    table.add_row("Stars", f"{a.repo.stars:,}", f"{b.repo.stars:,}")
    table.add_row("Forks", f"{a.repo.forks:,}", f"{b.repo.forks:,}")
    table.add_row("Commits (1y)", str(len(a.commits)), str(len(b.commits)))
    table.add_row("Contributors", str(len(a.contributors)), str(len(b.contributors)))
    table.add_row("Health", str(a.health_score), str(b.health_score))
    table.add_row("Bus factor", f"{a.bus_factor} ({a.bus_risk})", f"{b.bus_factor} ({b.bus_risk})")
    table.add_row("Maturity", a.maturity_level, b.maturity_level)
    console.print(table)
    console.print(f"[bold green]{verdict(result)}[/bold green]")


def _export_to(result, fmt: str, target: str) -> None:
    target_path = Path(target)
    directory = target_path if target_path.is_dir() else target_path.parent
    path = export_result(result, fmt, directory)
    if not target_path.is_dir() and path != target_path:
        path = path.replace(target_path)
    console.print(f"[green]Saved to {path}[/green]")


# ── Subcommands ─────────────────────────────────────────────────


def cmd_interactive(args) -> int:
    if not sys.stdin.isatty():
        console.print("[red]Interactive mode needs a terminal. Try `repolyzer analyze owner/repo`.[/red]")
        return 1
    from .app import run_interactive

    client, source = build_client(args)
    ctx = AppContext(client=client, export_dir=Path(args.export_dir), token_source=source)
    return run_interactive(ctx)


def _record_history(result) -> None:
    """Add ``result`` to history; a failed write is reported, not fatal."""
    try:
        history = HistoryStore.load()
        history.add_entry(result, "cli")
        history.save()
        favorites = FavoritesStore.load()
        if favorites.is_favorite(result.repo.full_name):
            favorites.update_usage(result.repo.full_name)
            favorites.save()
    except PersistenceError as exc:
        log.warning("history not updated: %s", exc)
        console.print(f"[yellow]Warning: history not updated: {exc}[/yellow]")


def cmd_analyze(args) -> int:
    owner, name = parse_repo_id(args.repo)
    repo_id = f"{owner}/{name}"
    client, _ = build_client(args)
    if args.refresh:
        client.invalidate(repo_id)
    tracker = ProgressTracker(ANALYSIS_STAGES)
    msg = _run_with_spinner(commands.analyze(client, repo_id, tracker), tracker, f"Analyzing {repo_id}")
    if isinstance(msg, Failure):
        console.print(f"[red]Error: {msg.text}[/red]")
        return 1
    assert isinstance(msg, AnalysisDone)
    result = msg.result
    _print_analysis(result)

    _record_history(result)

    if args.json:
        _export_to(result, "json", args.json)
    if args.markdown:
        _export_to(result, "markdown", args.markdown)
    return 0


def cmd_compare(args) -> int:
    left_owner, left_name = parse_repo_id(args.left)
    right_owner, right_name = parse_repo_id(args.right)
    left, right = f"{left_owner}/{left_name}", f"{right_owner}/{right_name}"
    client, _ = build_client(args)
    tracker = ProgressTracker(comparison_stages(left, right))
    msg = _run_with_spinner(
        commands.compare(client, left, right, tracker, pipeline.DEFAULT_SCORERS),
        tracker,
        f"Comparing {left} vs {right}",
    )
    if isinstance(msg, Failure):
        console.print(f"[red]Error: {msg.text}[/red]")
        return 1
    assert isinstance(msg, CompareDone)
    _print_comparison(msg.result)
    if args.json:
        _export_to(msg.result, "json", args.json)
    if args.markdown:
        _export_to(msg.result, "markdown", args.markdown)
    return 0


def cmd_history(args) -> int:
    history = HistoryStore.load()
    if args.clear:
        history.clear()
        history.save()
        console.print("[green]History cleared.[/green]")
        return 0
    if not len(history):
        console.print("[dim]No analyses recorded yet.[/dim]")
        return 0
    favorites = FavoritesStore.load()
    table = Table(title=f"History ({len(history)} entries)")
    table.add_column("#", justify="right", width=4)
    table.add_column("Repository", style="cyan")
    table.add_column("Stars", justify="right")
    table.add_column("Health", justify="right")
    table.add_column("Maturity")
    table.add_column("Analyzed")
    for i, entry in enumerate(history.entries, 1):
        star = " [yellow]★[/yellow]" if favorites.is_favorite(entry.repo_name) else ""
        table.add_row(
            str(i),
            entry.repo_name + star,
            f"{entry.stars:,}",
            str(entry.health_score),
            entry.maturity_level,
            entry.analyzed_at[:16].replace("T", " "),
        )
    console.print(table)
    return 0


def cmd_cache(args) -> int:
    cache = CacheStore()
    if args.action == "clear":
        removed = cache.invalidate()
        console.print(f"[green]Removed {removed} cached responses.[/green]")
        return 0
    stats = cache.stats()
    table = Table(title="Cache", show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key in ("dir", "entries", "expired", "size_kb"):
        table.add_row(key, str(stats[key]))
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repolyzer",
        description="Analyze GitHub repositories: health, bus factor, maturity and more.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--token", type=str, default=None,
        help="GitHub token (default: GITHUB_TOKEN / GH_TOKEN env var, then saved token)",
    )
    parser.add_argument(
        "--no-cache", action="store_true", default=False,
        help="Disable disk cache",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=False,
        help="Debug logging to the log file",
    )
    parser.add_argument(
        "--export-dir", type=str, default=".",
        help="Directory for exports from the interactive dashboard (default: .)",
    )
    sub = parser.add_subparsers(dest="command")

    analyze = sub.add_parser("analyze", help="Analyze one repository and print a report")
    analyze.add_argument("repo", help="owner/repo or GitHub URL")
    analyze.add_argument("--json", type=str, default=None, help="Write the full result as JSON")
    analyze.add_argument("--markdown", type=str, default=None, help="Write a Markdown report")
    analyze.add_argument("--refresh", action="store_true", default=False,
                         help="Ignore cached responses for this repository")
    analyze.set_defaults(func=cmd_analyze)

    compare = sub.add_parser("compare", help="Compare two repositories side by side")
    compare.add_argument("left", help="First repository")
    compare.add_argument("right", help="Second repository")
    compare.add_argument("--json", type=str, default=None, help="Write the comparison as JSON")
    compare.add_argument("--markdown", type=str, default=None, help="Write a Markdown report")
    compare.set_defaults(func=cmd_compare)

    history = sub.add_parser("history", help="Show analysis history")
    history.add_argument("--clear", action="store_true", default=False, help="Delete all entries")
    history.set_defaults(func=cmd_history)

    cache = sub.add_parser("cache", help="Inspect or clear the response cache")
    cache.add_argument("action", choices=("stats", "clear"), nargs="?", default="stats")
    cache.set_defaults(func=cmd_cache)

    parser.set_defaults(func=cmd_interactive)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    try:
        return args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        return 130
    except RepolyzerError as exc:
        log.error("%s", exc)
        console.print(f"[red]Error: {exc}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
