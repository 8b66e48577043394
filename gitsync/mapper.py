"""Local directory naming for remote repository URLs."""

from __future__ import annotations

from urllib.parse import urlparse

UNKNOWN = "unknown"


def map_url_to_dir(url: str) -> str:
    """Derive the folder that groups a repository with its server and project.

    The name is ``<subdomain>-<project segment>``: the first label of the
    host, then the second-to-last path segment when the path has at least
    three ``/``-separated parts, otherwise its first part. URLs that cannot
    be parsed, or whose host has a single label, map to ``"unknown"``.

    Example:
        >>> map_url_to_dir("https://sub.example.com/a/b/c")
        'sub-b'
        >>> map_url_to_dir("ssh://git@bitbucket.example.com:7999/team/app.git")
        'bitbucket-team'
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return UNKNOWN

    # netloc keeps the case of the host, unlike parsed.hostname
    hostname = parsed.netloc.rsplit("@", 1)[-1].split(":", 1)[0]

    if not hostname:
        return UNKNOWN

    labels = hostname.split(".")
    if len(labels) < 2:
        return UNKNOWN

    path_parts = parsed.path.split("/")
    if len(path_parts) >= 3:
        segment = path_parts[-2]
    else:
        segment = path_parts[0]
    return f"{labels[0]}-{segment}"


def url_base_name(url: str) -> str:
    """Return the last path component of a URL, ``.git`` suffix included."""
    return url.rstrip("/").rsplit("/", 1)[-1]
