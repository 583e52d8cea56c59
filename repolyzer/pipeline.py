"""Fetch-and-score pipelines.

``run_analysis`` is strictly sequential and fail-fast: the first failing
step ends the run with a ``Failure`` and nothing fetched so far survives.
``run_comparison`` is fail-fast only on repository metadata; every other
per-side fetch degrades to an empty value.

Both return exactly one Message and never raise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from . import scoring
from .config import COMMIT_WINDOW_DAYS
from .errors import PipelineError, ValidationError
from .messages import AnalysisDone, CompareDone, Failure
from .models import AnalysisResult, CompareResult
from .progress import ProgressTracker
from .sanitize import parse_repo_id

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scorers:
    """The scoring functions a pipeline applies to fetched data."""

    health: Callable = scoring.calculate_health
    bus_factor: Callable = scoring.bus_factor
    maturity: Callable = scoring.maturity_score


DEFAULT_SCORERS = Scorers()

# stage id -> error prefix
STEP_PREFIXES = {
    "repository": "failed to get repository",
    "commits": "failed to get commits",
    "contributors": "failed to get contributors",
    "languages": "failed to get languages",
    "file_tree": "failed to get file tree",
}


def _step(stage: str, fn, *args):
    try:
        return fn(*args)
    except Exception as exc:
        log.warning("%s failed: %s", stage, exc)
        raise PipelineError(stage, STEP_PREFIXES[stage], exc) from exc


def _score(repo, commits, contributors, languages, tree, scorers: Scorers) -> AnalysisResult:
    health = scorers.health(repo, commits)
    factor, risk = scorers.bus_factor(contributors)
    maturity, level = scorers.maturity(repo, len(commits), len(contributors), False)
    return AnalysisResult(
        repo=repo,
        commits=tuple(commits),
        contributors=tuple(contributors),
        languages=dict(languages),
        file_tree=tuple(tree),
        health_score=health,
        bus_factor=factor,
        bus_risk=risk,
        maturity_score=maturity,
        maturity_level=level,
    )


def run_analysis(client, repo_id: str, tracker: ProgressTracker | None = None,
                 scorers: Scorers = DEFAULT_SCORERS, generation: int = 0):
    """Analyze one canonical ``owner/repo``; returns AnalysisDone or Failure."""
    tracker = tracker or ProgressTracker(())
    try:
        owner, name = parse_repo_id(repo_id)
    except ValidationError as exc:
        return Failure(error=exc, origin="analysis", stage="validate", generation=generation)

    try:
        log.debug("analysis %s: fetching repository", repo_id)
        repo = _step("repository", client.get_repo, owner, name)
        tracker.next_stage()

        log.debug("analysis %s: fetching commits", repo_id)
        commits = _step("commits", client.get_commits, owner, name, COMMIT_WINDOW_DAYS)
        tracker.next_stage()

        log.debug("analysis %s: fetching contributors", repo_id)
        contributors = _step("contributors", client.get_contributors, owner, name)
        tracker.next_stage()

        log.debug("analysis %s: fetching languages and file tree", repo_id)
        languages = _step("languages", client.get_languages, owner, name)
        tree = _step("file_tree", client.get_file_tree, owner, name, repo.default_branch)
        tracker.next_stage()
    except PipelineError as exc:
        return Failure(error=exc, origin="analysis", stage=exc.stage, generation=generation)

    result = _score(repo, commits, contributors, languages, tree, scorers)
    tracker.next_stage()
    log.info("analysis %s done: health=%d bus=%d maturity=%d",
             repo_id, result.health_score, result.bus_factor, result.maturity_score)
    return AnalysisDone(result=result, generation=generation)


def _best_effort(side: str, what: str, fn, *args, default):
    try:
        return fn(*args)
    except Exception as exc:
        log.warning("compare %s: %s unavailable, using empty value: %s", side, what, exc)
        return default


def _analyze_side(client, side: str, repo_id: str, scorers: Scorers) -> AnalysisResult:
    try:
        owner, name = parse_repo_id(repo_id)
    except ValidationError as exc:
        raise PipelineError(f"{side}:validate", f"{side} repository must be in owner/repo format", exc) from exc

    try:
        repo = client.get_repo(owner, name)
    except Exception as exc:
        log.warning("compare %s: repository %s failed: %s", side, repo_id, exc)
        raise PipelineError(f"{side}:repository", f"failed to fetch {repo_id} ({side})", exc) from exc

    commits = _best_effort(side, "commits", client.get_commits, owner, name, COMMIT_WINDOW_DAYS, default=[])
    contributors = _best_effort(side, "contributors", client.get_contributors, owner, name, default=[])
    languages = _best_effort(side, "languages", client.get_languages, owner, name, default={})
    tree = _best_effort(side, "file tree", client.get_file_tree, owner, name, repo.default_branch, default=[])
    return _score(repo, commits, contributors, languages, tree, scorers)


def run_comparison(client, left_id: str, right_id: str, tracker: ProgressTracker | None = None,
                   scorers: Scorers = DEFAULT_SCORERS, generation: int = 0):
    """Analyze two repositories and pair them; returns CompareDone or Failure."""
    tracker = tracker or ProgressTracker(())
    try:
        left = _analyze_side(client, "left", left_id, scorers)
        tracker.next_stage()
        right = _analyze_side(client, "right", right_id, scorers)
        tracker.next_stage()
    except PipelineError as exc:
        return Failure(error=exc, origin="compare", stage=exc.stage, generation=generation)

    tracker.next_stage()
    log.info("comparison %s vs %s done", left_id, right_id)
    return CompareDone(result=CompareResult(left=left, right=right), generation=generation)
