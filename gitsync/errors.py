"""Exception hierarchy for gitsync.

Configuration errors abort a run. Listing errors skip one project entry.
Every other error is scoped to a single repository and only skips that
repository.
"""

from __future__ import annotations

from typing import Optional


class GitSyncError(Exception):
    """Base class for all gitsync errors."""


class ConfigError(GitSyncError):
    """The repository list or a credential file cannot be used."""


class ListingError(GitSyncError):
    """Listing the repositories of a project failed."""

    def __init__(self, project_url: str, message: str):
        self.project_url = project_url
        super().__init__(f"{project_url}: {message}")


class RepositoryError(GitSyncError):
    """An error tied to one repository URL."""

    operation = "sync"

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"{self.operation} {url}: {message}")


class CredentialError(RepositoryError):
    """Running the password command or reading the prompt failed."""

    operation = "resolve credentials for"


class UnsupportedSchemeError(RepositoryError):
    """The URL scheme has no known authentication method."""

    operation = "resolve credentials for"


class KeyLoadError(RepositoryError):
    """The SSH private key is missing, unreadable or malformed."""

    operation = "load ssh key for"


class CloneError(RepositoryError):
    operation = "clone"


class PullError(RepositoryError):
    operation = "pull"


class CheckoutError(RepositoryError):
    operation = "checkout"


class GitCommandError(GitSyncError):
    """A git subprocess exited with a non-zero status."""

    def __init__(self, args: list[str], returncode: int, output: Optional[str] = None):
        self.args_list = args
        self.returncode = returncode
        self.output = output or ""
        detail = self.output.strip().splitlines()[-1] if self.output.strip() else ""
        message = f"'{' '.join(args)}' exited with status {returncode}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
