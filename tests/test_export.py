"""Tests for JSON/Markdown export."""

import json
from dataclasses import replace

import pytest

from repolyzer.errors import PersistenceError
from repolyzer.export import default_filename, export_result, to_markdown, verdict
from repolyzer.models import CompareResult
from repolyzer.pipeline import run_analysis, run_comparison

from .conftest import FakeClient


@pytest.fixture
def result():
    return run_analysis(FakeClient(), "octocat/Hello-World").result


@pytest.fixture
def comparison():
    return run_comparison(FakeClient(), "a/one", "b/two").result


class TestFilenames:
    def test_analysis(self, result):
        assert default_filename(result, "json") == "octocat_Hello-World_analysis.json"
        assert default_filename(result, "markdown") == "octocat_Hello-World_analysis.md"

    def test_comparison(self, comparison):
        assert default_filename(comparison, "json") == "compare_a_one_vs_b_two.json"


class TestExport:
    def test_json(self, tmp_path, result):
        path = export_result(result, "json", tmp_path)
        data = json.loads(path.read_text())
        assert data["repository"]["full_name"] == "octocat/Hello-World"
        assert data["bus_factor"] == result.bus_factor
        assert len(data["commits"]) == 60

    def test_markdown(self, tmp_path, result):
        path = export_result(result, "markdown", tmp_path)
        text = path.read_text()
        assert text.startswith("# Repository Analysis: octocat/Hello-World")
        assert "## Languages" in text
        assert "| Python | 80.0% |" in text
        assert "## Top Contributors" in text

    def test_comparison_markdown(self, tmp_path, comparison):
        text = export_result(comparison, "markdown", tmp_path).read_text()
        assert text.startswith("# Comparison: a/one vs b/two")
        assert "## Verdict" in text

    def test_unwritable_directory(self, tmp_path, result):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with pytest.raises(PersistenceError):
            export_result(result, "json", blocker / "out")


def test_markdown_without_description(result):
    bare = replace(result, repo=replace(result.repo, description=""))
    assert ">" not in to_markdown(bare).split("## Overview")[0]


def test_verdict(comparison):
    assert verdict(comparison) == "Both repositories are similarly mature."
    stronger = CompareResult(
        left=comparison.left,
        right=replace(comparison.right, maturity_score=10),
    )
    assert verdict(stronger) == "a/one appears more mature and stable."
