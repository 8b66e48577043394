"""Configuration parsing and validation for gitsync.

This module handles reading and validating the YAML repository list that
defines which projects and repositories to keep in sync, along with the
run-wide settings passed to the sync engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml
from typing_extensions import TypedDict

from .errors import ConfigError

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "gitsync.log"

VCS_TYPES = ("github", "bitbucket")
ENTRY_TYPES = ("project", "repo")

_OPTIONAL_FIELDS = ("user", "password", "branch", "tag")


class RepoEntry(TypedDict):
    """A single line of the repository list.

    ``type`` is ``project`` for a GitHub organization or Bitbucket
    workspace whose repositories are listed through the API, or ``repo``
    for one explicit repository URL. ``ignore`` entries exclude every
    listed repository whose name contains them.
    """

    vcs: str
    type: str
    url: str
    ignore: list[str]
    user: Optional[str]
    password: Optional[str]  # literal, shell command (contains a space) or "ask"
    branch: Optional[str]
    tag: Optional[str]


@dataclass(frozen=True)
class SyncSettings:
    """Run-wide settings shared by every sync operation.

    Attributes:
        base_dir: Directory under which all local clones live
        username: Default username for the API and HTTP(S) remotes
        password: Default password for the API and HTTP(S) remotes
        timeout: Listing request timeout in seconds
    """

    base_dir: Path
    username: str = ""
    password: str = ""
    timeout: int = 30

    @property
    def log_path(self) -> Path:
        """Append-only progress log inside the base directory."""
        return self.base_dir / LOG_FILE_NAME


def load_config(config_path: Path) -> list[RepoEntry]:
    """Load and validate the repository list from a YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated entries in file order

    Raises:
        ConfigError: If the file is missing, malformed or invalid

    Example:
        >>> entries = load_config(Path("repos.yaml"))
        >>> entries[0]["type"]
        'project'
    """
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML configuration: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read configuration: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a dictionary")

    if "repos" not in data:
        raise ConfigError("Configuration must contain 'repos' key")

    repos = data["repos"]
    if not isinstance(repos, list):
        raise ConfigError("'repos' must be a list")

    entries = [_validate_entry(i, entry) for i, entry in enumerate(repos)]

    logger.info(f"Successfully loaded configuration with {len(entries)} entries")
    return entries


def _validate_entry(index: int, entry: Any) -> RepoEntry:
    if not isinstance(entry, dict):
        raise ConfigError(f"Entry {index} must be a dictionary")

    for field in ("vcs", "type", "url"):
        if field not in entry:
            raise ConfigError(f"Entry {index} missing required field: {field}")
        if not isinstance(entry[field], str) or not entry[field]:
            raise ConfigError(f"Entry {index}: '{field}' must be a non-empty string")

    vcs = entry["vcs"].lower()
    if vcs not in VCS_TYPES:
        raise ConfigError(
            f"Entry {index}: unknown vcs '{entry['vcs']}' (expected one of {', '.join(VCS_TYPES)})"
        )

    entry_type = entry["type"].lower()
    if entry_type not in ENTRY_TYPES:
        raise ConfigError(
            f"Entry {index}: unknown type '{entry['type']}' (expected one of {', '.join(ENTRY_TYPES)})"
        )

    ignore = entry.get("ignore") or []
    if not isinstance(ignore, list):
        raise ConfigError(f"Entry {index}: 'ignore' must be a list")
    for j, item in enumerate(ignore):
        if not isinstance(item, str):
            raise ConfigError(f"Entry {index}, ignore {j}: must be a string")

    optional: dict[str, Optional[str]] = {}
    for field in _OPTIONAL_FIELDS:
        value = entry.get(field)
        if value is not None and not isinstance(value, str):
            # `tag: 1.10` loads as the float 1.1 and `branch: 010` as 8
            raise ConfigError(f"Entry {index}: '{field}' must be a string (quote it)")
        optional[field] = value or None

    validated: RepoEntry = {
        "vcs": vcs,
        "type": entry_type,
        "url": entry["url"],
        "ignore": list(ignore),
        "user": optional["user"],
        "password": optional["password"],
        "branch": optional["branch"],
        "tag": optional["tag"],
    }
    return validated


def read_password_file(password_file: Path) -> str:
    """Read the default password from a file, trimming surrounding whitespace.

    Raises:
        ConfigError: If the file cannot be read
    """
    try:
        return password_file.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ConfigError(f"Error reading password file {password_file}: {e}") from e
