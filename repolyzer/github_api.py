"""GitHub REST client with rate limiting, pagination and response caching."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

import requests

from .cache import CacheStore, namespace_for
from .config import (
    API_BASE,
    API_VERSION,
    BACKOFF_MULTIPLIER,
    DEFAULT_PER_PAGE,
    MAX_COMMIT_PAGES,
    MAX_CONTRIBUTOR_PAGES,
    RATE_LIMIT_BUFFER,
    REQUEST_TIMEOUT,
    USER_AGENT,
)
from .errors import GitHubAPIError, NotFoundError, RateLimitExceeded
from .models import Commit, Contributor, RepoInfo, TreeEntry

log = logging.getLogger(__name__)


class GitHubClient:
    """Handles all communication with the GitHub REST API.

    A token is optional; without one GitHub allows 60 requests per hour.
    """

    BASE_URL = API_BASE

    def __init__(self, token: Optional[str] = None, cache: Optional[CacheStore] = None,
                 retries: int = 3, backoff: float = 2.0):
        self.token = token
        self.cache = cache or CacheStore(enabled=False)
        self.retries = retries
        self.backoff = backoff
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": API_VERSION,
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        self._requests_remaining: Optional[int] = None
        self._requests_limit: Optional[int] = None
        self._reset_time: Optional[int] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    @property
    def rate_limit(self) -> tuple[Optional[int], Optional[int]]:
        """Last seen ``(remaining, limit)`` from response headers."""
        return self._requests_remaining, self._requests_limit

    def _update_rate_limit(self, response: requests.Response):
        remaining = response.headers.get("X-RateLimit-Remaining")
        limit = response.headers.get("X-RateLimit-Limit")
        reset = response.headers.get("X-RateLimit-Reset")
        if remaining is not None:
            self._requests_remaining = int(remaining)
        if limit is not None:
            self._requests_limit = int(limit)
        if reset is not None:
            self._reset_time = int(reset)

    def _check_rate_limit(self):
        if self._requests_remaining is not None and self._requests_remaining < RATE_LIMIT_BUFFER:
            if self._requests_remaining == 0 and self._reset_time:
                wait_seconds = max(0, self._reset_time - int(time.time()))
                raise RateLimitExceeded(
                    f"GitHub API rate limit exceeded, resets in {wait_seconds}s "
                    "(tip: set GITHUB_TOKEN env variable)"
                )
            log.warning("Rate limit low (%d remaining).", self._requests_remaining)

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        self._check_rate_limit()
        url = f"{self.BASE_URL}{endpoint}" if endpoint.startswith("/") else endpoint
        backoff = self.backoff

        for attempt in range(self.retries + 1):
            try:
                response = self.session.request(method, url, timeout=REQUEST_TIMEOUT, **kwargs)
            except requests.exceptions.RequestException as e:
                if attempt < self.retries:
                    log.warning("Request failed (%s). Retrying in %.1f seconds.", e, backoff)
                    time.sleep(backoff)
                    backoff *= BACKOFF_MULTIPLIER
                    continue
                raise GitHubAPIError(f"request failed after {self.retries} retries: {e}") from e

            self._update_rate_limit(response)
            if response.status_code in (403, 429) and "rate limit" in response.text.lower():
                raise RateLimitExceeded(
                    "GitHub API rate limit exceeded (tip: set GITHUB_TOKEN env variable)"
                )
            if response.status_code >= 500 and attempt < self.retries:
                log.warning("GitHub returned %d. Retrying in %.1f seconds.", response.status_code, backoff)
                time.sleep(backoff)
                backoff *= BACKOFF_MULTIPLIER
                continue
            return response

        raise GitHubAPIError("max retries exceeded")

    def _raise_for_status(self, response: requests.Response, what: str):
        if response.status_code == 404:
            raise NotFoundError(f"{what} not found")
        if response.status_code >= 400:
            raise GitHubAPIError(
                f"GitHub API error {response.status_code} for {what} "
                "(tip: set GITHUB_TOKEN env variable)"
            )

    def get(self, endpoint: str, params: Optional[dict] = None, *, what: str = "resource",
            namespace: Optional[str] = None):
        cache_key = f"{endpoint}?{sorted((params or {}).items())}"
        if namespace:
            cached = self.cache.get(namespace, cache_key)
            if cached is not None:
                log.debug("cache hit %s", endpoint)
                return cached
        response = self._request("GET", endpoint, params=params)
        if response.status_code in (204, 409):
            # 204: no contributors yet, 409: empty repository
            data = []
        else:
            self._raise_for_status(response, what)
            data = response.json()
        if namespace:
            self.cache.set(namespace, cache_key, data)
        return data

    def get_paginated(self, endpoint: str, params: Optional[dict] = None, max_pages: int = 10,
                      *, what: str = "resource", namespace: Optional[str] = None) -> list:
        """Fetch all pages of a paginated endpoint."""
        params = dict(params or {})
        params.setdefault("per_page", DEFAULT_PER_PAGE)
        all_items: list = []

        for page in range(1, max_pages + 1):
            params["page"] = page
            items = self.get(endpoint, params=params, what=what, namespace=namespace)
            if not items:
                break
            if not isinstance(items, list):
                raise GitHubAPIError(f"expected list for paginated endpoint {endpoint}, got {type(items).__name__}")
            all_items.extend(items)
            if len(items) < params["per_page"]:
                break

        return all_items

    # ── Collaborator operations ─────────────────────────────────

    def get_repo(self, owner: str, repo: str) -> RepoInfo:
        data = self.get(f"/repos/{owner}/{repo}", what=f"repository {owner}/{repo}",
                        namespace=namespace_for(f"{owner}/{repo}"))
        return RepoInfo.from_api(data)

    def get_commits(self, owner: str, repo: str, days: int) -> list[Commit]:
        since = (datetime.now(timezone.utc) - timedelta(days=days)).strftime("%Y-%m-%dT00:00:00Z")
        items = self.get_paginated(
            f"/repos/{owner}/{repo}/commits",
            params={"since": since},
            max_pages=MAX_COMMIT_PAGES,
            what=f"commits of {owner}/{repo}",
            namespace=namespace_for(f"{owner}/{repo}"),
        )
        return [Commit.from_api(item) for item in items]

    def get_contributors(self, owner: str, repo: str) -> list[Contributor]:
        items = self.get_paginated(
            f"/repos/{owner}/{repo}/contributors",
            max_pages=MAX_CONTRIBUTOR_PAGES,
            what=f"contributors of {owner}/{repo}",
            namespace=namespace_for(f"{owner}/{repo}"),
        )
        return [Contributor.from_api(item) for item in items]

    def get_languages(self, owner: str, repo: str) -> dict[str, int]:
        data = self.get(f"/repos/{owner}/{repo}/languages", what=f"languages of {owner}/{repo}",
                        namespace=namespace_for(f"{owner}/{repo}"))
        return {name: int(count) for name, count in (data or {}).items()}

    def get_file_tree(self, owner: str, repo: str, branch: str) -> list[TreeEntry]:
        data = self.get(
            f"/repos/{owner}/{repo}/git/trees/{branch}",
            params={"recursive": "1"},
            what=f"file tree of {owner}/{repo}@{branch}",
            namespace=namespace_for(f"{owner}/{repo}"),
        )
        if not data:
            return []
        if data.get("truncated"):
            log.info("File tree of %s/%s is truncated", owner, repo)
        return [TreeEntry.from_api(item) for item in data.get("tree", [])]

    def invalidate(self, full_name: str) -> int:
        """Drop cached responses for one repository so the next fetch is live."""
        return self.cache.invalidate(namespace_for(full_name))
