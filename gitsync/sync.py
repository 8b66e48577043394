"""Repository synchronization logic for gitsync.

This module holds the clone-or-pull state machine for a single repository
and the orchestrator that walks the repository list, expanding project
entries through the VCS listing adapters.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import requests

from .config import RepoEntry, SyncSettings
from .credentials import AuthMethod, CredentialResolver
from .errors import (
    CheckoutError,
    CloneError,
    GitCommandError,
    GitSyncError,
    ListingError,
    PullError,
)
from .git import GitClient
from .mapper import map_url_to_dir, url_base_name
from .vcs import get_provider

logger = logging.getLogger(__name__)


class SyncOutcome(enum.Enum):
    CLONED = "cloned"
    UPDATED = "updated"
    UP_TO_DATE = "up to date"
    FETCHED = "fetched"


class SyncResult:
    """Result of a synchronization run.

    Contains the repositories that were synced, skipped or failed.
    """

    def __init__(self):
        """Initialize empty sync result."""
        self.synced: list[tuple[str, SyncOutcome]] = []
        self.failed: list[tuple[str, Exception]] = []
        self.skipped: list[str] = []

    def add_success(self, url: str, outcome: SyncOutcome) -> None:
        self.synced.append((url, outcome))

    def add_failure(self, url: str, error: Exception) -> None:
        self.failed.append((url, error))

    def add_skipped(self, name: str) -> None:
        self.skipped.append(name)

    @property
    def success_count(self) -> int:
        """Number of repositories synced without error."""
        return len(self.synced)

    @property
    def failure_count(self) -> int:
        """Number of repositories or projects that failed."""
        return len(self.failed)

    @property
    def is_success(self) -> bool:
        """True if nothing failed."""
        return self.failure_count == 0

    def __str__(self) -> str:
        return (
            f"Sync completed: {self.success_count} synced, "
            f"{self.failure_count} failed, {len(self.skipped)} skipped"
        )


def matches_ignore(name: str, ignore: list[str]) -> bool:
    """True if any ignore entry is a substring of ``name``.

    Matching is containment, not equality: ``"b"`` also ignores ``"sub-b"``.
    """
    return any(item in name for item in ignore)


class SyncEngine:
    """Clones a repository when it is absent locally, pulls it otherwise.

    Args:
        settings: Run settings providing the default credentials and the
            progress log location
        resolver: Credential resolver, created with the shell secret
            provider when omitted
        git: Git command runner
    """

    def __init__(
        self,
        settings: SyncSettings,
        resolver: Optional[CredentialResolver] = None,
        git: Optional[GitClient] = None,
    ):
        self.settings = settings
        self.resolver = resolver or CredentialResolver()
        self.git = git or GitClient()

    def sync(
        self,
        url: str,
        local_dir: Path,
        repo_user: Optional[str] = None,
        repo_password: Optional[str] = None,
        branch: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> SyncOutcome:
        """Bring the local copy of ``url`` under ``local_dir`` up to date.

        The clone lives at ``local_dir / basename(url)``. When it does not
        exist the repository is cloned, restricted to ``branch`` if one is
        given. When it exists it is fast-forwarded from ``origin``; being
        already up to date is not an error. Afterwards ``tag`` is checked
        out if set.

        Raises:
            CloneError: If the clone fails
            PullError: If the existing copy cannot be opened or updated
            CheckoutError: If the tag cannot be checked out; the clone is
                kept
            CredentialError, KeyLoadError, UnsupportedSchemeError: From
                credential resolution
        """
        auth = self.resolver.resolve(
            url,
            repo_user,
            repo_password,
            self.settings.username,
            self.settings.password,
        )
        clone_dir = local_dir / url_base_name(url)

        if not clone_dir.exists():
            outcome = self._clone(url, clone_dir, auth, branch)
        else:
            outcome = self._pull(url, clone_dir, auth)

        if tag:
            self._checkout_tag(url, clone_dir, tag)

        return outcome

    def _clone(
        self, url: str, clone_dir: Path, auth: AuthMethod, branch: Optional[str]
    ) -> SyncOutcome:
        logger.info(f"Cloning repository: {url} to {clone_dir}")
        try:
            clone_dir.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CloneError(url, str(e)) from e

        try:
            output = self.git.clone(url, clone_dir, auth=auth, branch=branch)
        except GitCommandError as e:
            self._write_progress(f"Cloning repository: {url} failed", e.output)
            raise CloneError(url, str(e)) from e

        self._write_progress(f"Cloning repository: {url}", output)
        return SyncOutcome.CLONED

    def _pull(self, url: str, clone_dir: Path, auth: AuthMethod) -> SyncOutcome:
        logger.info(f"Pulling repository: {url}")
        if not self.git.is_work_tree(clone_dir):
            raise PullError(url, f"{clone_dir} is not a git repository")

        try:
            if self.git.is_detached(clone_dir):
                logger.debug(f"{clone_dir} has a detached HEAD, fetching instead of pulling")
                output = self.git.fetch(clone_dir, auth=auth)
                outcome = SyncOutcome.FETCHED
            else:
                updated, output = self.git.pull(clone_dir, auth=auth)
                outcome = SyncOutcome.UPDATED if updated else SyncOutcome.UP_TO_DATE
        except GitCommandError as e:
            self._write_progress(f"Pulling repository: {url} in {clone_dir} failed", e.output)
            raise PullError(url, str(e)) from e

        self._write_progress(f"Pulling repository: {url} in {clone_dir}", output)
        if outcome is SyncOutcome.UP_TO_DATE:
            logger.info(f"Repository already up to date: {url}")
        return outcome

    def _checkout_tag(self, url: str, clone_dir: Path, tag: str) -> None:
        logger.info(f"Checking out tag {tag} in {clone_dir}")
        try:
            output = self.git.checkout_tag(clone_dir, tag)
        except GitCommandError as e:
            self._write_progress(f"Checking out tag {tag}: {url} failed", e.output)
            raise CheckoutError(url, f"tag {tag}: {e}") from e
        self._write_progress(f"Checking out tag {tag}: {url}", output)

    def _write_progress(self, header: str, output: str) -> None:
        """Append a header and git's output to the progress log.

        A log that cannot be written is reported and otherwise ignored.
        """
        log_path = self.settings.log_path
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            with log_path.open("a", encoding="utf-8") as f:
                f.write(f"\n{timestamp} {header}\n")
                if output:
                    f.write(output if output.endswith("\n") else f"{output}\n")
        except OSError as e:
            logger.warning(f"Could not write progress log {log_path}: {e}")


class GitSync:
    """Main synchronization orchestrator.

    Walks the repository list in order. Project entries are expanded
    through the listing API of their VCS; repository entries are synced
    directly. A failing repository or project is recorded and logged, and
    the run continues with the next one.
    """

    def __init__(
        self,
        settings: SyncSettings,
        engine: Optional[SyncEngine] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the synchronizer.

        Args:
            settings: Run settings
            engine: Optional sync engine instance
            session: Optional requests session for the listing API
        """
        self.settings = settings
        self.engine = engine or SyncEngine(settings)
        self.session = session or requests.Session()
        self._owns_session = session is None

    def run(self, entries: list[RepoEntry]) -> SyncResult:
        """Synchronize every entry of the repository list.

        Example:
            >>> with GitSync(SyncSettings(Path("repos"))) as gitsync:
            ...     result = gitsync.run(load_config(Path("repos.yaml")))
            >>> print(result.success_count)
            3
        """
        result = SyncResult()
        logger.info(f"Starting sync to {self.settings.base_dir}")

        for entry in entries:
            if entry["type"] == "project":
                logger.info(f"Processing {entry['vcs']} project: {entry['url']}")
                self._sync_project(entry, result)
            else:
                logger.info(f"Processing repository: {entry['url']}")
                self._sync_repo(entry["url"], entry, result)

        logger.info(str(result))
        return result

    def _sync_project(self, entry: RepoEntry, result: SyncResult) -> None:
        provider = get_provider(entry["vcs"], self.settings, session=self.session)
        try:
            project = provider.parse_project(entry["url"])
            names = provider.list_repos(project)
        except ListingError as e:
            result.add_failure(entry["url"], e)
            logger.error(f"✗ Error processing {entry['vcs']} project: {e}")
            return

        for name in names:
            if matches_ignore(name, entry["ignore"]):
                logger.info(f"Skipping repository: {name}")
                result.add_skipped(name)
                continue
            self._sync_repo(provider.build_clone_url(project, name), entry, result)

    def _sync_repo(self, url: str, entry: RepoEntry, result: SyncResult) -> None:
        local_dir = self.settings.base_dir / map_url_to_dir(url)
        try:
            outcome = self.engine.sync(
                url,
                local_dir,
                repo_user=entry["user"],
                repo_password=entry["password"],
                branch=entry["branch"],
                tag=entry["tag"],
            )
        except GitSyncError as e:
            result.add_failure(url, e)
            logger.error(f"✗ Error cloning or pulling repository {url}: {e}")
            return

        result.add_success(url, outcome)
        logger.info(f"✓ {url} ({outcome.value})")

    def close(self) -> None:
        """Clean up resources."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> GitSync:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
