"""gitsync - keep local clones of GitHub and Bitbucket repositories in sync.

This package provides functionality to clone or pull the repositories named
by a YAML repository list, listing whole projects through the VCS APIs.
"""

__version__ = "1.0.0"

from .config import RepoEntry, SyncSettings, load_config
from .credentials import BasicAuth, CredentialResolver, PublicKeyAuth
from .mapper import map_url_to_dir
from .sync import GitSync, SyncEngine, SyncOutcome, SyncResult

__all__ = [
    "RepoEntry",
    "SyncSettings",
    "load_config",
    "BasicAuth",
    "PublicKeyAuth",
    "CredentialResolver",
    "map_url_to_dir",
    "GitSync",
    "SyncEngine",
    "SyncOutcome",
    "SyncResult",
]
