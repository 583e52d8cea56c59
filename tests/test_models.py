"""Tests for API payload parsing and the file tree."""

from repolyzer.models import (
    Contributor,
    RepoInfo,
    TreeEntry,
    build_file_tree,
    parse_timestamp,
    visible_nodes,
)


class TestParsing:
    def test_timestamp(self):
        ts = parse_timestamp("2024-01-31T12:00:00Z")
        assert ts.year == 2024
        assert ts.utcoffset().total_seconds() == 0

    def test_bad_timestamp(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None

    def test_repo_defaults_for_missing_fields(self):
        repo = RepoInfo.from_api({"name": "r", "full_name": "o/r", "description": None})
        assert repo.stars == 0
        assert repo.description == ""
        assert repo.default_branch == "main"
        assert repo.pushed_at is None

    def test_repo_to_dict_serializes_dates(self):
        repo = RepoInfo.from_api({"name": "r", "full_name": "o/r", "created_at": "2020-05-01T00:00:00Z"})
        assert repo.to_dict()["created_at"].startswith("2020-05-01")

    def test_contributor(self):
        assert Contributor.from_api({"login": "mona", "contributions": 7}) == Contributor("mona", 7)


class TestFileTree:
    def test_directories_first_then_alphabetical(self):
        root = build_file_tree([
            TreeEntry("zeta.txt", "blob"),
            TreeEntry("Alpha.md", "blob"),
            TreeEntry("lib", "tree"),
            TreeEntry("docs", "tree"),
        ])
        assert [c.name for c in root.children] == ["docs", "lib", "Alpha.md", "zeta.txt"]

    def test_missing_parents_are_synthesized(self):
        root = build_file_tree([TreeEntry("a/b/c.py", "blob", 12)])
        a = root.children[0]
        assert (a.name, a.is_dir) == ("a", True)
        b = a.children[0]
        assert (b.path, b.is_dir) == ("a/b", True)
        assert b.children[0].size == 12

    def test_visible_nodes_respect_expansion(self):
        root = build_file_tree([
            TreeEntry("src", "tree"),
            TreeEntry("src/main.py", "blob"),
            TreeEntry("README.md", "blob"),
        ])
        assert [(d, n.path) for d, n in visible_nodes(root, set())] == [(0, "src"), (0, "README.md")]
        assert [(d, n.path) for d, n in visible_nodes(root, {"src"})] == [
            (0, "src"), (1, "src/main.py"), (0, "README.md"),
        ]

    def test_empty(self):
        assert build_file_tree([]).children == []
