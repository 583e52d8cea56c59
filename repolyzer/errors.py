"""Exception hierarchy shared by the client, pipelines and stores."""

from __future__ import annotations


class RepolyzerError(Exception):
    pass


class ValidationError(RepolyzerError):
    """Repository identifier is empty or not in ``owner/repo`` form."""


class GitHubAPIError(RepolyzerError):
    pass


class RateLimitExceeded(GitHubAPIError):
    pass


class NotFoundError(GitHubAPIError):
    pass


class PersistenceError(RepolyzerError):
    """History, favorites, cache or export write failed."""


class PipelineError(RepolyzerError):
    """A pipeline step failed; ``stage`` names the step, ``cause`` the error."""

    def __init__(self, stage: str, prefix: str, cause: BaseException | str):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{prefix}: {cause}")
