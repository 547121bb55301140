"""Exceptions raised while syncing a pull request into the monorepo."""

from __future__ import annotations

from typing import Optional


class RepoSyncError(Exception):
    """Base exception for sync failures that abort the run."""


class ConfigurationError(RepoSyncError):
    """Raised when required configuration is missing or malformed."""


class StagingError(RepoSyncError):
    """Raised when the monorepo scratch clone cannot be prepared."""


class GitCommandError(RepoSyncError):
    def __init__(self, args: list, returncode: int, stderr: str = "") -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"git {' '.join(self.command)} failed: {detail}")


class GitHubAPIError(RepoSyncError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


class ReplayError(RepoSyncError):
    """Raised when a change cannot be translated into the package directory."""
