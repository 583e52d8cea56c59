"""Configuration constants and token/path resolution for Repo-lyzer."""

from __future__ import annotations

import os
from pathlib import Path

# GitHub API
API_BASE = "https://api.github.com"
API_VERSION = "2022-11-28"
USER_AGENT = "repolyzer"
REQUEST_TIMEOUT = 30
DEFAULT_PER_PAGE = 100
RATE_LIMIT_BUFFER = 10
BACKOFF_MULTIPLIER = 1.5

# Fetch windows
COMMIT_WINDOW_DAYS = 365
MAX_COMMIT_PAGES = 10
MAX_CONTRIBUTOR_PAGES = 3

# Persistence
CACHE_TTL = 86400        # 24 hours for API responses
HISTORY_LIMIT = 50

# Event loop
TICK_SECONDS = 0.1
STATUS_SECONDS = 3.0

# Hosts whose URL prefix is stripped from free-text repository input
HOST_PREFIX_MARKERS = ("github.com/",)

ANALYSIS_TYPES = ("quick", "detailed", "custom")
SETTINGS_OPTIONS = ("theme", "cache", "token", "reset")
HELP_TOPICS = ("shortcuts", "getting-started", "features", "troubleshooting")


def state_dir() -> Path:
    """Directory holding history, favorites, token, log and cache."""
    override = os.environ.get("REPOLYZER_HOME")
    if override:
        return Path(override)
    return Path.home() / ".repolyzer"


def history_path() -> Path:
    return state_dir() / "history.json"


def favorites_path() -> Path:
    return state_dir() / "favorites.json"


def cache_dir() -> Path:
    return state_dir() / "cache"


def log_path() -> Path:
    return state_dir() / "repolyzer.log"


def token_path() -> Path:
    return state_dir() / "token"


def load_saved_token() -> str | None:
    """Load persisted GitHub token from disk."""
    try:
        path = token_path()
        if path.exists():
            t = path.read_text().strip()
            return t if t else None
    except OSError:
        pass
    return None


def resolve_token(token: str | None = None) -> tuple[str | None, str]:
    """Return ``(token, source)``; priority is CLI arg > env var > saved file."""
    if token:
        return token, "cli"
    for var in ("GITHUB_TOKEN", "GH_TOKEN"):
        value = os.environ.get(var)
        if value:
            return value, "env"
    saved = load_saved_token()
    if saved:
        return saved, "saved"
    return None, "none"
