from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse GitHub's ISO-8601 timestamps (``2024-01-31T12:00:00Z``)."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class RepoInfo:
    name: str
    full_name: str
    stars: int = 0
    forks: int = 0
    open_issues: int = 0
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    pushed_at: datetime | None = None
    watchers: int = 0
    language: str = ""
    fork: bool = False
    archived: bool = False
    private: bool = False
    default_branch: str = "main"
    html_url: str = ""
    clone_url: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RepoInfo":
        return cls(
            name=data.get("name") or "",
            full_name=data.get("full_name") or "",
            stars=int(data.get("stargazers_count") or 0),
            forks=int(data.get("forks_count") or 0),
            open_issues=int(data.get("open_issues_count") or 0),
            description=data.get("description") or "",
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            pushed_at=parse_timestamp(data.get("pushed_at")),
            watchers=int(data.get("watchers_count") or 0),
            language=data.get("language") or "",
            fork=bool(data.get("fork")),
            archived=bool(data.get("archived")),
            private=bool(data.get("private")),
            default_branch=data.get("default_branch") or "main",
            html_url=data.get("html_url") or "",
            clone_url=data.get("clone_url") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        for key in ("created_at", "updated_at", "pushed_at"):
            payload[key] = _iso(getattr(self, key))
        return payload


@dataclass(frozen=True)
class Commit:
    sha: str
    date: datetime | None = None
    author: str = ""
    message: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Commit":
        inner = data.get("commit") or {}
        author = inner.get("author") or {}
        login = (data.get("author") or {}).get("login")
        return cls(
            sha=data.get("sha") or "",
            date=parse_timestamp(author.get("date")),
            author=login or author.get("name") or "",
            message=(inner.get("message") or "").split("\n", 1)[0],
        )

    def to_dict(self) -> dict[str, Any]:
        return {"sha": self.sha, "date": _iso(self.date), "author": self.author, "message": self.message}


@dataclass(frozen=True)
class Contributor:
    login: str
    commits: int

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Contributor":
        return cls(login=data.get("login") or "", commits=int(data.get("contributions") or 0))


@dataclass(frozen=True)
class TreeEntry:
    path: str
    type: str          # "blob" | "tree"
    size: int = 0

    @property
    def is_dir(self) -> bool:
        return self.type == "tree"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "TreeEntry":
        return cls(path=data.get("path") or "", type=data.get("type") or "blob", size=int(data.get("size") or 0))


@dataclass(frozen=True)
class AnalysisResult:
    """Everything one pipeline run produced. Never partially populated."""

    repo: RepoInfo
    commits: tuple[Commit, ...]
    contributors: tuple[Contributor, ...]
    languages: dict[str, int]
    file_tree: tuple[TreeEntry, ...]
    health_score: int
    bus_factor: int
    bus_risk: str
    maturity_score: int
    maturity_level: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repo.to_dict(),
            "commits": [c.to_dict() for c in self.commits],
            "contributors": [asdict(c) for c in self.contributors],
            "languages": dict(self.languages),
            "file_tree": [asdict(e) for e in self.file_tree],
            "health_score": self.health_score,
            "bus_factor": self.bus_factor,
            "bus_risk": self.bus_risk,
            "maturity_score": self.maturity_score,
            "maturity_level": self.maturity_level,
        }


@dataclass(frozen=True)
class CompareResult:
    left: AnalysisResult
    right: AnalysisResult

    def to_dict(self) -> dict[str, Any]:
        return {"left": self.left.to_dict(), "right": self.right.to_dict()}


# ── File tree ───────────────────────────────────────────────────


@dataclass
class FileNode:
    name: str
    path: str
    is_dir: bool
    size: int = 0
    children: list["FileNode"] = field(default_factory=list)

    def sort(self) -> None:
        self.children.sort(key=lambda n: (not n.is_dir, n.name.lower()))
        for child in self.children:
            child.sort()


def build_file_tree(entries) -> FileNode:
    """Nest flat ``TreeEntry`` paths under a root node; dirs first, then files."""
    root = FileNode(name="", path="", is_dir=True)
    index: dict[str, FileNode] = {"": root}
    for entry in sorted(entries, key=lambda e: e.path):
        parent_path, _, name = entry.path.rpartition("/")
        parent = index.get(parent_path)
        if parent is None:
            # tree listings can be truncated; synthesize missing directories
            parent = root
            built = ""
            for part in parent_path.split("/"):
                built = f"{built}/{part}" if built else part
                node = index.get(built)
                if node is None:
                    node = FileNode(name=part, path=built, is_dir=True)
                    parent.children.append(node)
                    index[built] = node
                parent = node
        if entry.path in index:
            continue
        node = FileNode(name=name, path=entry.path, is_dir=entry.is_dir, size=entry.size)
        parent.children.append(node)
        if node.is_dir:
            index[entry.path] = node
    root.sort()
    return root


def visible_nodes(root: FileNode, expanded) -> list[tuple[int, FileNode]]:
    """Depth-first ``(depth, node)`` rows, descending only into expanded dirs."""
    rows: list[tuple[int, FileNode]] = []

    def walk(node: FileNode, depth: int) -> None:
        for child in node.children:
            rows.append((depth, child))
            if child.is_dir and child.path in expanded:
                walk(child, depth + 1)

    walk(root, 0)
    return rows
