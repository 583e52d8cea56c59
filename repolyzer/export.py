"""JSON and Markdown export of analysis and comparison results."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from . import scoring
from .errors import PersistenceError
from .models import AnalysisResult, CompareResult

log = logging.getLogger(__name__)


def _slug(full_name: str) -> str:
    return full_name.replace("/", "_")


def default_filename(result, fmt: str) -> str:
    ext = "json" if fmt == "json" else "md"
    if isinstance(result, CompareResult):
        return f"compare_{_slug(result.left.repo.full_name)}_vs_{_slug(result.right.repo.full_name)}.{ext}"
    return f"{_slug(result.repo.full_name)}_analysis.{ext}"


def _write(path: Path, text: str) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"export to {path} failed: {exc}") from exc
    log.info("Exported %s", path)
    return path


def to_markdown(result: AnalysisResult) -> str:
    repo = result.repo
    lines = [
        f"# Repository Analysis: {repo.full_name}",
        "",
        f"_Generated {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}_",
        "",
    ]
    if repo.description:
        lines += [f"> {repo.description}", ""]
    lines += [
        "## Overview",
        "",
        "| Metric | Value |",
        "|---|---|",
        f"| Stars | {repo.stars:,} |",
        f"| Forks | {repo.forks:,} |",
        f"| Open issues | {repo.open_issues:,} |",
        f"| Default branch | {repo.default_branch} |",
        f"| Commits (1y) | {len(result.commits)} |",
        f"| Contributors | {len(result.contributors)} |",
        f"| Health score | {result.health_score}/100 ({scoring.health_status(result.health_score)}) |",
        f"| Bus factor | {result.bus_factor} ({result.bus_risk}) |",
        f"| Maturity | {result.maturity_level} ({result.maturity_score}) |",
        "",
    ]
    shares = scoring.language_shares(result.languages)
    if shares:
        lines += ["## Languages", "", "| Language | Share |", "|---|---|"]
        lines += [f"| {name} | {pct:.1f}% |" for name, _, pct in shares]
        lines.append("")
    if result.contributors:
        lines += ["## Top Contributors", "", "| # | Login | Commits |", "|---|---|---|"]
        lines += [f"| {i} | {c.login} | {c.commits} |" for i, c in enumerate(result.contributors[:10], 1)]
        lines.append("")
    return "\n".join(lines)


def compare_to_markdown(result: CompareResult) -> str:
    a, b = result.left, result.right
    rows = [
        ("Stars", a.repo.stars, b.repo.stars),
        ("Forks", a.repo.forks, b.repo.forks),
        ("Commits (1y)", len(a.commits), len(b.commits)),
        ("Contributors", len(a.contributors), len(b.contributors)),
        ("Health score", a.health_score, b.health_score),
        ("Bus factor", f"{a.bus_factor} ({a.bus_risk})", f"{b.bus_factor} ({b.bus_risk})"),
        ("Maturity", f"{a.maturity_level} ({a.maturity_score})", f"{b.maturity_level} ({b.maturity_score})"),
    ]
    lines = [
        f"# Comparison: {a.repo.full_name} vs {b.repo.full_name}",
        "",
        f"| Metric | {a.repo.full_name} | {b.repo.full_name} |",
        "|---|---|---|",
    ]
    lines += [f"| {label} | {x} | {y} |" for label, x, y in rows]
    lines += ["", "## Verdict", "", verdict(result), ""]
    return "\n".join(lines)


def verdict(result: CompareResult) -> str:
    a, b = result.left, result.right
    if a.maturity_score > b.maturity_score:
        return f"{a.repo.full_name} appears more mature and stable."
    if b.maturity_score > a.maturity_score:
        return f"{b.repo.full_name} appears more mature and stable."
    return "Both repositories are similarly mature."


def export_result(result, fmt: str, directory: Path | str = ".") -> Path:
    """Write ``result`` (AnalysisResult or CompareResult) as ``json`` or ``markdown``."""
    path = Path(directory) / default_filename(result, fmt)
    if fmt == "json":
        return _write(path, json.dumps(result.to_dict(), indent=2))
    if isinstance(result, CompareResult):
        return _write(path, compare_to_markdown(result))
    return _write(path, to_markdown(result))
