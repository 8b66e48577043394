"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Optional

import pytest

from gitsync.config import RepoEntry, SyncSettings
from gitsync.credentials import BasicAuth

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

GIT_IDENTITY = {
    "GIT_AUTHOR_NAME": "gitsync tests",
    "GIT_AUTHOR_EMAIL": "tests@example.com",
    "GIT_COMMITTER_NAME": "gitsync tests",
    "GIT_COMMITTER_EMAIL": "tests@example.com",
}


class FakeSecretProvider:
    """Secret provider returning fixed values and recording its calls."""

    def __init__(self, command_output: str = "", prompt_answer: str = ""):
        self.command_output = command_output
        self.prompt_answer = prompt_answer
        self.commands: list[str] = []
        self.prompts: list[str] = []

    def run_command(self, command: str) -> str:
        self.commands.append(command)
        return self.command_output

    def prompt(self, message: str) -> str:
        self.prompts.append(message)
        return self.prompt_answer


class AnonymousResolver:
    """Resolver for local file:// remotes, which need no credentials."""

    def resolve(self, url, repo_user, repo_password, default_user, default_password):
        return BasicAuth("", "")


def run_git(*args: str, cwd: Path) -> str:
    env = {**os.environ, **GIT_IDENTITY}
    result = subprocess.run(
        ["git", *args], cwd=cwd, env=env, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


@pytest.fixture
def settings(tmp_path: Path) -> SyncSettings:
    """Run settings rooted in a temporary base directory."""
    base_dir = tmp_path / "base"
    base_dir.mkdir()
    return SyncSettings(base_dir=base_dir, username="alice", password="s3cret")


@pytest.fixture
def make_entry() -> Callable[..., RepoEntry]:
    """Factory for repository list entries with sensible defaults."""

    def _make(
        url: str,
        vcs: str = "github",
        type: str = "repo",
        ignore: Optional[list[str]] = None,
        **optional: Optional[str],
    ) -> RepoEntry:
        return {
            "vcs": vcs,
            "type": type,
            "url": url,
            "ignore": ignore or [],
            "user": optional.get("user"),
            "password": optional.get("password"),
            "branch": optional.get("branch"),
            "tag": optional.get("tag"),
        }

    return _make


class RemoteRepo:
    """A bare repository plus a working copy used to push new commits."""

    def __init__(self, root: Path):
        self.work = root / "upstream-work"
        self.bare = root / "remote" / "project.git"

        self.work.mkdir(parents=True)
        run_git("init", cwd=self.work)
        run_git("symbolic-ref", "HEAD", "refs/heads/main", cwd=self.work)
        self.commit("README.md", "# project\n")
        run_git("tag", "v1.0", cwd=self.work)

        self.bare.parent.mkdir(parents=True)
        run_git("clone", "--bare", str(self.work), str(self.bare), cwd=root)
        run_git("remote", "add", "origin", str(self.bare), cwd=self.work)

    @property
    def url(self) -> str:
        return self.bare.as_uri()

    def commit(self, name: str, content: str) -> str:
        (self.work / name).write_text(content, encoding="utf-8")
        run_git("add", name, cwd=self.work)
        run_git("commit", "-m", f"update {name}", cwd=self.work)
        return run_git("rev-parse", "HEAD", cwd=self.work)

    def push(self) -> None:
        run_git("push", "--tags", "origin", "main", cwd=self.work)

    def rev(self, ref: str) -> str:
        return run_git("rev-parse", f"{ref}^{{commit}}", cwd=self.work)


@pytest.fixture
def remote_repo(tmp_path: Path) -> RemoteRepo:
    """A local bare repository with one commit on main tagged v1.0."""
    return RemoteRepo(tmp_path)
