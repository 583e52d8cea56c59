"""Tests for the non-interactive subcommands."""

import json

import pytest

from repolyzer import cli
from repolyzer.errors import PersistenceError
from repolyzer.history import HistoryStore

from .conftest import FakeClient


@pytest.fixture
def fake_build(monkeypatch):
    client = FakeClient()
    monkeypatch.setattr(cli, "build_client", lambda args: (client, "none"))
    return client


def test_parser_defaults_to_interactive():
    args = cli.build_parser().parse_args([])
    assert args.func is cli.cmd_interactive


def test_analyze_prints_and_records_history(fake_build, tmp_path, capsys, isolated_home):
    out = tmp_path / "report.json"
    assert cli.main(["analyze", "https://github.com/octocat/Hello-World", "--json", str(out)]) == 0
    assert json.loads(out.read_text())["repository"]["full_name"] == "octocat/Hello-World"
    assert HistoryStore.load().entries[0].repo_name == "octocat/Hello-World"
    assert "Hello-World" in capsys.readouterr().out


def test_analyze_survives_history_write_failure(fake_build, monkeypatch, capsys):
    def disk_full(self):
        raise PersistenceError("could not write history.json: disk full")
    monkeypatch.setattr(HistoryStore, "save", disk_full)
    assert cli.main(["analyze", "octocat/Hello-World"]) == 0
    assert "history not updated" in capsys.readouterr().out


def test_analyze_failure_exit_code(monkeypatch):
    monkeypatch.setattr(cli, "build_client", lambda args: (FakeClient(fail={"contributors"}), "none"))
    assert cli.main(["analyze", "octocat/Hello-World"]) == 1


def test_analyze_rejects_malformed_id(fake_build):
    assert cli.main(["analyze", "not-a-repo"]) == 1
    assert fake_build.calls == []


def test_compare(fake_build, tmp_path):
    out = tmp_path / "cmp.md"
    assert cli.main(["compare", "a/one", "b/two", "--markdown", str(out)]) == 0
    assert out.read_text().startswith("# Comparison: a/one vs b/two")


def test_history_empty(capsys):
    assert cli.main(["history"]) == 0
    assert "No analyses" in capsys.readouterr().out


def test_cache_stats(capsys):
    assert cli.main(["cache", "stats"]) == 0
    assert "entries" in capsys.readouterr().out
