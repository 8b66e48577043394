"""Repository listing for GitHub organizations and Bitbucket workspaces.

Each supported VCS implements the same small interface: parse a project
URL, list the repository names of the project through the REST API and
build the clone URL for one of those names.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional
from urllib.parse import urlparse

import requests

from . import __version__
from .config import SyncSettings
from .errors import ListingError

logger = logging.getLogger(__name__)


class Project(NamedTuple):
    """A parsed project URL: server host and organization/workspace key."""

    url: str
    host: str
    key: str


class VCSProvider:
    """Base class for the per-VCS listing adapters.

    Args:
        settings: Run settings; the default credentials authenticate the
            API requests
        session: Optional requests session to reuse
    """

    name = ""

    def __init__(self, settings: SyncSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self._owns_session = session is None

        self.session.headers.update({"User-Agent": f"gitsync/{__version__}"})
        if settings.username or settings.password:
            self.session.auth = (settings.username, settings.password)

    def parse_project(self, url: str) -> Project:
        raise NotImplementedError

    def api_url(self, project: Project) -> str:
        raise NotImplementedError

    def repo_names(self, payload: object) -> list[str]:
        """Extract repository names from the decoded API response."""
        raise NotImplementedError

    def build_clone_url(self, project: Project, name: str) -> str:
        raise NotImplementedError

    def list_repos(self, project: Project) -> list[str]:
        """List the repository names of a project.

        Raises:
            ListingError: On transport errors, non-200 responses or
                unexpected response bodies
        """
        url = self.api_url(project)
        logger.debug(f"Listing {self.name} repositories: GET {url}")

        try:
            response = self.session.get(url, timeout=self.settings.timeout)
        except requests.exceptions.RequestException as e:
            raise ListingError(project.url, f"error fetching project information: {e}") from e

        if response.status_code != 200:
            logger.debug(f"Listing response body: {response.text}")
            raise ListingError(
                project.url,
                f"error fetching project information: {response.status_code} {response.reason}",
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ListingError(project.url, f"error parsing response: {e}") from e

        try:
            names = self.repo_names(payload)
        except (KeyError, TypeError) as e:
            raise ListingError(project.url, f"unexpected response structure: {e}") from e

        logger.info(f"Found {len(names)} repositories in {project.url}")
        return names

    def _split_project_url(self, url: str) -> tuple[str, list[str]]:
        try:
            parsed = urlparse(url)
            host = parsed.netloc
        except ValueError as e:
            raise ListingError(url, f"invalid {self.name} project URL") from e
        if not host:
            raise ListingError(url, f"invalid {self.name} project URL")
        return host, [part for part in parsed.path.split("/") if part]

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> VCSProvider:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class GitHubProvider(VCSProvider):
    """GitHub organizations: ``https://<host>/<org>``."""

    name = "github"

    def parse_project(self, url: str) -> Project:
        host, parts = self._split_project_url(url)
        if not parts:
            raise ListingError(url, "invalid github project URL")
        return Project(url, host, parts[0])

    def api_url(self, project: Project) -> str:
        return f"https://api.{project.host}/repos/{project.key}"

    def repo_names(self, payload: object) -> list[str]:
        if not isinstance(payload, list):
            raise TypeError("expected a JSON array of repositories")
        names = [repo["name"] for repo in payload]
        if not all(isinstance(name, str) for name in names):
            raise TypeError("repository name is not a string")
        return names

    def build_clone_url(self, project: Project, name: str) -> str:
        return f"https://github.com/{project.key}/{name}.git"


class BitbucketProvider(VCSProvider):
    """Bitbucket Server workspaces: ``https://<host>/projects/<workspace>``."""

    name = "bitbucket"
    ssh_port = 7999

    def parse_project(self, url: str) -> Project:
        host, parts = self._split_project_url(url)
        if len(parts) < 2:
            raise ListingError(url, "invalid bitbucket project URL")
        return Project(url, host, parts[1])

    def api_url(self, project: Project) -> str:
        return f"https://{project.host}/rest/api/1.0/projects/{project.key}/repos"

    def repo_names(self, payload: object) -> list[str]:
        if not isinstance(payload, dict):
            raise TypeError("expected a JSON object with 'values'")
        names = [repo["slug"] for repo in payload["values"]]
        if not all(isinstance(name, str) for name in names):
            raise TypeError("repository slug is not a string")
        return names

    def build_clone_url(self, project: Project, name: str) -> str:
        host = project.host.rsplit("@", 1)[-1].split(":", 1)[0]
        return f"ssh://git@{host}:{self.ssh_port}/{project.key}/{name}.git"


PROVIDERS: dict[str, type[VCSProvider]] = {
    GitHubProvider.name: GitHubProvider,
    BitbucketProvider.name: BitbucketProvider,
}


def get_provider(
    vcs: str, settings: SyncSettings, session: Optional[requests.Session] = None
) -> VCSProvider:
    """Create the listing adapter for ``vcs``.

    Raises:
        ValueError: If ``vcs`` is not supported
    """
    try:
        provider_class = PROVIDERS[vcs]
    except KeyError:
        raise ValueError(f"Unsupported VCS type: {vcs}") from None
    return provider_class(settings, session=session)
