"""Disk-based TTL cache for GitHub API responses."""

from __future__ import annotations

import hashlib
import json
import logging
import re
import time
from pathlib import Path

from .config import CACHE_TTL, cache_dir

log = logging.getLogger(__name__)


def _key_hash(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def namespace_for(full_name: str) -> str:
    """Filesystem-safe namespace for one repository (``owner/repo`` → ``owner_repo``)."""
    return re.sub(r"[^A-Za-z0-9._-]", "_", full_name.lower())


class CacheStore:
    """Simple disk-based JSON cache with TTL expiry.

    One namespace per repository, so a refresh can drop exactly the
    responses that belong to it.
    """

    def __init__(self, base_dir: Path | None = None, enabled: bool = True, ttl: int = CACHE_TTL):
        self.base_dir = base_dir or cache_dir()
        self.enabled = enabled
        self.ttl = ttl
        self._hits = 0
        self._misses = 0

    def get(self, namespace: str, key: str):
        if not self.enabled:
            return None
        path = self._path(namespace, key)
        if not path.exists():
            self._misses += 1
            return None
        try:
            entry = json.loads(path.read_text())
            if time.time() > entry.get("expires_at", 0):
                path.unlink(missing_ok=True)
                self._misses += 1
                return None
            self._hits += 1
            return entry["data"]
        except (OSError, json.JSONDecodeError, KeyError):
            path.unlink(missing_ok=True)
            self._misses += 1
            return None

    def set(self, namespace: str, key: str, data, ttl: int | None = None) -> None:
        if not self.enabled:
            return
        path = self._path(namespace, key)
        entry = {
            "key": key,
            "expires_at": time.time() + (ttl if ttl is not None else self.ttl),
            "data": data,
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(entry, default=str))
        except OSError as exc:
            # a cache miss next time is the only consequence
            log.warning("Cache write failed for %s/%s: %s", namespace, key, exc)

    def invalidate(self, namespace: str | None = None) -> int:
        """Delete cached files for one namespace (or all); returns the count."""
        removed = 0
        if not self.base_dir.exists():
            return 0
        dirs = [self.base_dir / namespace] if namespace else [d for d in self.base_dir.iterdir() if d.is_dir()]
        for ns_dir in dirs:
            if not ns_dir.exists():
                continue
            for f in ns_dir.glob("*.json"):
                f.unlink(missing_ok=True)
                removed += 1
        return removed

    def stats(self) -> dict:
        total_files = 0
        total_bytes = 0
        expired = 0
        now = time.time()
        if self.base_dir.exists():
            for f in self.base_dir.rglob("*.json"):
                total_files += 1
                total_bytes += f.stat().st_size
                try:
                    entry = json.loads(f.read_text())
                    if now > entry.get("expires_at", 0):
                        expired += 1
                except (OSError, json.JSONDecodeError):
                    expired += 1
        return {
            "entries": total_files,
            "expired": expired,
            "size_kb": round(total_bytes / 1024, 1),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": f"{self._hits / max(1, self._hits + self._misses) * 100:.0f}%",
            "enabled": self.enabled,
            "dir": str(self.base_dir),
        }

    def _path(self, namespace: str, key: str) -> Path:
        return self.base_dir / namespace / f"{_key_hash(key)}.json"
