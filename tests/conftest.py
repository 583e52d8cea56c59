from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from repolyzer.cache import CacheStore
from repolyzer.errors import GitHubAPIError
from repolyzer.history import FavoritesStore, HistoryStore
from repolyzer.models import Commit, Contributor, RepoInfo, TreeEntry
from repolyzer.session import AppContext

NOW = datetime.now(timezone.utc)


def make_repo(full_name: str = "octocat/Hello-World", **overrides) -> RepoInfo:
    fields = dict(
        name=full_name.split("/")[1],
        full_name=full_name,
        stars=1500,
        forks=120,
        open_issues=12,
        description="My first repository on GitHub!",
        created_at=NOW - timedelta(days=4 * 365),
        pushed_at=NOW - timedelta(days=3),
        default_branch="main",
    )
    fields.update(overrides)
    return RepoInfo(**fields)


class FakeClient:
    """Scripted stand-in for GitHubClient.

    ``fail`` holds step names ("commits") or repo-qualified step names
    ("acme/widget:repository") that raise GitHubAPIError when called.
    """

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.calls: list[tuple[str, str]] = []
        self.invalidated: list[str] = []
        self.cache = CacheStore(enabled=False)
        self.rate_limit = (None, None)

    def _call(self, step: str, owner: str, name: str) -> None:
        full_name = f"{owner}/{name}"
        self.calls.append((step, full_name))
        if step in self.fail or f"{full_name}:{step}" in self.fail:
            raise GitHubAPIError(f"GitHub API error 500 for {step}")

    def get_repo(self, owner, name):
        self._call("repository", owner, name)
        return make_repo(f"{owner}/{name}")

    def get_commits(self, owner, name, days):
        self._call("commits", owner, name)
        return [
            Commit(sha=f"{i:040x}", date=NOW - timedelta(days=i), author="octocat", message=f"change {i}")
            for i in range(60)
        ]

    def get_contributors(self, owner, name):
        self._call("contributors", owner, name)
        return [Contributor("octocat", 50), Contributor("hubot", 30), Contributor("monalisa", 20)]

    def get_languages(self, owner, name):
        self._call("languages", owner, name)
        return {"Python": 8000, "Shell": 2000}

    def get_file_tree(self, owner, name, branch):
        self._call("file_tree", owner, name)
        return [
            TreeEntry("README.md", "blob", 120),
            TreeEntry("src", "tree"),
            TreeEntry("src/app.py", "blob", 900),
            TreeEntry("src/util", "tree"),
            TreeEntry("src/util/io.py", "blob", 300),
            TreeEntry("LICENSE", "blob", 1000),
        ]

    def invalidate(self, full_name):
        self.invalidated.append(full_name)
        return 0


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("REPOLYZER_HOME", str(home))
    return home


@pytest.fixture
def ctx(tmp_path, fake_client):
    return AppContext(
        client=fake_client,
        load_history=lambda: HistoryStore(tmp_path / "history.json"),
        load_favorites=lambda: FavoritesStore(tmp_path / "favorites.json"),
        export_dir=tmp_path / "exports",
        status_seconds=0,
    )
