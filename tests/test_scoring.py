from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from repolyzer.models import Commit, Contributor, RepoInfo
from repolyzer.scoring import (
    activity_level,
    bus_factor,
    calculate_health,
    commit_frequency,
    health_status,
    language_shares,
    maturity_level,
    maturity_score,
    primary_language,
    recent_activity,
    simpson_diversity,
)

NOW = datetime.now(timezone.utc)


def _repo(**kw) -> RepoInfo:
    kw.setdefault("name", "r")
    kw.setdefault("full_name", "o/r")
    return RepoInfo(**kw)


def _commits(n: int) -> list[Commit]:
    return [Commit(sha=str(i), date=NOW - timedelta(hours=i)) for i in range(n)]


class HealthTest(unittest.TestCase):
    def test_healthy_repository(self) -> None:
        repo = _repo(description="x", pushed_at=NOW - timedelta(days=5), stars=1000, open_issues=10)
        self.assertEqual(calculate_health(repo, _commits(60)), 99)

    def test_inactive_repository(self) -> None:
        repo = _repo(pushed_at=NOW - timedelta(days=400))
        self.assertEqual(calculate_health(repo, []), 45)

    def test_stale_popular_repository(self) -> None:
        repo = _repo(description="x", pushed_at=NOW - timedelta(days=200), stars=50000, open_issues=100)
        self.assertEqual(calculate_health(repo, _commits(30)), 75)

    def test_issue_penalty_capped(self) -> None:
        repo = _repo(description="x", pushed_at=NOW, stars=1, open_issues=1000)
        self.assertEqual(calculate_health(repo, _commits(100)), 85)

    def test_bounds(self) -> None:
        worst = _repo(stars=0, open_issues=10**6)
        self.assertGreaterEqual(calculate_health(worst, []), 0)
        self.assertLessEqual(calculate_health(_repo(description="x", pushed_at=NOW), _commits(500)), 100)


class BusFactorTest(unittest.TestCase):
    def test_no_contributors(self) -> None:
        self.assertEqual(bus_factor([]), (0, "Unknown"))

    def test_zero_commits(self) -> None:
        self.assertEqual(bus_factor([Contributor("a", 0), Contributor("b", 0)]), (0, "Unknown"))

    def test_single_contributor(self) -> None:
        self.assertEqual(bus_factor([Contributor("solo", 100)]), (1, "High Risk"))

    def test_medium_risk(self) -> None:
        people = [Contributor("a", 50), Contributor("b", 30), Contributor("c", 20)]
        self.assertEqual(bus_factor(people), (2, "Medium Risk"))

    def test_evenly_spread(self) -> None:
        people = [Contributor(f"dev{i}", 10) for i in range(10)]
        self.assertEqual(bus_factor(people), (6, "Low Risk"))


class MaturityTest(unittest.TestCase):
    def test_mature_project(self) -> None:
        repo = _repo(description="x", created_at=NOW - timedelta(days=4 * 365), stars=5000, forks=500)
        self.assertEqual(maturity_score(repo, 600, 30, True), (100, "Production-Ready"))

    def test_prototype(self) -> None:
        repo = _repo(description="x", created_at=NOW - timedelta(days=10), stars=2)
        self.assertEqual(maturity_score(repo, 3, 1, False), (5, "Prototype"))

    def test_growing(self) -> None:
        repo = _repo(description="x", created_at=NOW - timedelta(days=200), stars=150, forks=20)
        self.assertEqual(maturity_score(repo, 150, 6, False), (55, "Growing"))

    def test_level_boundaries(self) -> None:
        self.assertEqual(maturity_level(80), "Production-Ready")
        self.assertEqual(maturity_level(79), "Stable")
        self.assertEqual(maturity_level(60), "Stable")
        self.assertEqual(maturity_level(59), "Growing")
        self.assertEqual(maturity_level(40), "Growing")
        self.assertEqual(maturity_level(39), "Prototype")


class DerivedMetricsTest(unittest.TestCase):
    def test_simpson_diversity(self) -> None:
        self.assertEqual(simpson_diversity([]), 0.0)
        self.assertEqual(simpson_diversity([5]), 0.0)
        self.assertAlmostEqual(simpson_diversity([1, 1]), 50.0)

    def test_language_shares_sorted(self) -> None:
        shares = language_shares({"Go": 100, "Python": 300})
        self.assertEqual([name for name, _, _ in shares], ["Python", "Go"])
        self.assertAlmostEqual(shares[0][2], 75.0)
        self.assertEqual(language_shares({}), [])

    def test_primary_language(self) -> None:
        self.assertEqual(primary_language({"Go": 100, "Python": 300}), "Python")
        self.assertEqual(primary_language({}), "Unknown")

    def test_recent_activity(self) -> None:
        commits = [Commit("a", NOW), Commit("b", NOW), Commit("c", NOW - timedelta(days=2))]
        days = recent_activity(commits, 7, NOW)
        self.assertEqual(len(days), 7)
        self.assertEqual(days[-1], (NOW.strftime("%Y-%m-%d"), 2))
        self.assertEqual(days[-3][1], 1)

    def test_labels(self) -> None:
        self.assertEqual(commit_frequency(0), "No commits")
        self.assertEqual(commit_frequency(400), "Regular")
        self.assertEqual(commit_frequency(5000), "Very High")
        self.assertEqual(activity_level(600), "Very High")
        self.assertEqual(activity_level(10), "Low")
        self.assertEqual(health_status(85), "Excellent")
        self.assertEqual(health_status(10), "Poor")
