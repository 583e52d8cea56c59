"""Repository scoring heuristics.

All functions are pure: they only look at data already fetched by a
pipeline and never fail on well-formed input.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone


def _days_since(moment: datetime | None, now: datetime | None = None) -> int | None:
    if moment is None:
        return None
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (now - moment).days


def calculate_health(repo, commits) -> int:
    """Health in [0, 100]: start from 100 and subtract penalties."""
    score = 100

    if not repo.description:
        score -= 10

    days = _days_since(repo.pushed_at)
    if days is None or days > 365:
        score -= 30
    elif days > 180:
        score -= 20
    elif days > 90:
        score -= 10
    elif days > 30:
        score -= 5

    n = len(commits)
    if n < 5:
        score -= 15
    elif n < 25:
        score -= 10
    elif n < 50:
        score -= 5

    # open issues per 100 stars
    issue_ratio = repo.open_issues / max(repo.stars, 1) * 100
    score -= min(15, int(issue_ratio))

    return max(0, min(100, score))


def bus_factor(contributors) -> tuple[int, str]:
    """How many leading contributors account for more than half the commits.

    Risk is judged by the share of the first contributor; GitHub returns
    contributors ordered by contribution count.
    """
    if not contributors:
        return 0, "Unknown"

    total = sum(c.commits for c in contributors)
    if total <= 0:
        return 0, "Unknown"

    factor = 0
    running = 0
    for c in contributors:
        running += c.commits
        factor += 1
        if running * 2 > total:
            break

    top_share = contributors[0].commits / total
    if top_share > 0.7:
        risk = "High Risk"
    elif top_share >= 0.4:
        risk = "Medium Risk"
    else:
        risk = "Low Risk"
    return factor, risk


def maturity_level(score: int) -> str:
    if score >= 80:
        return "Production-Ready"
    if score >= 60:
        return "Stable"
    if score >= 40:
        return "Growing"
    return "Prototype"


def maturity_score(repo, commit_count: int, contrib_count: int, has_releases: bool) -> tuple[int, str]:
    score = 0

    age = _days_since(repo.created_at) or 0
    if age >= 3 * 365:
        score += 20
    elif age >= 365:
        score += 15
    elif age >= 180:
        score += 10
    elif age >= 30:
        score += 5

    if repo.stars >= 1000:
        score += 15
    elif repo.stars >= 100:
        score += 10
    elif repo.stars >= 10:
        score += 5

    if repo.forks >= 100:
        score += 10
    elif repo.forks >= 10:
        score += 5
    elif repo.forks >= 1:
        score += 2

    if commit_count >= 500:
        score += 20
    elif commit_count >= 100:
        score += 15
    elif commit_count >= 20:
        score += 5

    if contrib_count >= 20:
        score += 15
    elif contrib_count >= 5:
        score += 10
    elif contrib_count >= 2:
        score += 5

    if repo.description:
        score += 5
    if has_releases:
        score += 15

    score = min(100, score)
    return score, maturity_level(score)


# ── Dashboard metrics ───────────────────────────────────────────


def commits_per_day(commits) -> dict[str, int]:
    """Commit counts keyed by ``YYYY-MM-DD``."""
    counts = Counter(c.date.strftime("%Y-%m-%d") for c in commits if c.date)
    return dict(counts)


def recent_activity(commits, days: int, now: datetime | None = None) -> list[tuple[str, int]]:
    """``(day, count)`` for each of the last ``days`` days, oldest first."""
    now = now or datetime.now(timezone.utc)
    per_day = commits_per_day(commits)
    out = []
    for offset in range(days - 1, -1, -1):
        day = (now - timedelta(days=offset)).strftime("%Y-%m-%d")
        out.append((day, per_day.get(day, 0)))
    return out


def commit_frequency(commit_count: int, window_days: int = 365) -> str:
    if commit_count == 0:
        return "No commits"
    per_day = commit_count / window_days
    if per_day >= 10:
        return "Very High"
    if per_day >= 5:
        return "High"
    if per_day >= 1:
        return "Regular"
    return "Sporadic"


def activity_level(commit_count: int) -> str:
    if commit_count > 500:
        return "Very High"
    if commit_count > 200:
        return "High"
    if commit_count > 50:
        return "Medium"
    return "Low"


def health_status(score: int) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    return "Poor"


def primary_language(languages: dict[str, int]) -> str:
    if not languages:
        return "Unknown"
    return max(languages.items(), key=lambda kv: kv[1])[0]


def simpson_diversity(values) -> float:
    """``(1 - Σ p²) * 100`` over the given counts; 0 for empty input."""
    values = [v for v in values if v > 0]
    total = sum(values)
    if not total:
        return 0.0
    return (1 - sum((v / total) ** 2 for v in values)) * 100


def language_shares(languages: dict[str, int]) -> list[tuple[str, int, float]]:
    """``(name, bytes, percent)`` sorted by size, largest first."""
    total = sum(languages.values())
    if not total:
        return []
    return [
        (name, count, count / total * 100)
        for name, count in sorted(languages.items(), key=lambda kv: kv[1], reverse=True)
    ]
