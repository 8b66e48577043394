"""Thin wrapper around the git command-line client."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from .credentials import AuthMethod
from .errors import GitCommandError

logger = logging.getLogger(__name__)

UP_TO_DATE_MARKERS = ("Already up to date", "Already up-to-date")


class GitClient:
    """Runs git commands for the sync engine.

    Every command captures its combined output so callers can copy it to
    the progress log. Credentials are passed through the environment of
    the single command that needs them.
    """

    def __init__(self, executable: str = "git"):
        self.executable = executable

    def _run(
        self,
        *args: str,
        cwd: Optional[Path] = None,
        auth: Optional[AuthMethod] = None,
    ) -> str:
        """Run a git command and return its output.

        Raises:
            GitCommandError: If git exits with a non-zero status
        """
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        # UP_TO_DATE_MARKERS are matched against untranslated output
        env["LC_ALL"] = "C"
        if auth is not None:
            env.update(auth.git_env())

        cmd = [self.executable, *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise GitCommandError(cmd, -1, str(e)) from e

        if result.returncode != 0:
            raise GitCommandError(cmd, result.returncode, result.stdout)
        return result.stdout

    def clone(
        self,
        url: str,
        target: Path,
        auth: Optional[AuthMethod] = None,
        branch: Optional[str] = None,
    ) -> str:
        """Clone ``url`` into ``target``, limited to ``branch`` when given."""
        args = ["clone", "--progress"]
        if branch:
            args += ["--branch", branch, "--single-branch"]
        args += ["--", url, str(target)]
        return self._run(*args, auth=auth)

    def pull(self, repo_dir: Path, auth: Optional[AuthMethod] = None) -> tuple[bool, str]:
        """Fast-forward the current branch from ``origin``.

        Returns:
            Tuple of (updated, output). ``updated`` is False when git
            reported that the branch was already up to date.
        """
        output = self._run("pull", "--ff-only", "origin", cwd=repo_dir, auth=auth)
        updated = not any(marker in output for marker in UP_TO_DATE_MARKERS)
        return updated, output

    def fetch(self, repo_dir: Path, auth: Optional[AuthMethod] = None) -> str:
        """Fetch branches and tags from ``origin`` without touching the work tree."""
        return self._run("fetch", "--tags", "origin", cwd=repo_dir, auth=auth)

    def checkout_tag(self, repo_dir: Path, tag: str) -> str:
        """Check out ``tag`` as a detached HEAD."""
        return self._run(
            "-c", "advice.detachedHead=false", "checkout", f"refs/tags/{tag}", cwd=repo_dir
        )

    def is_work_tree(self, repo_dir: Path) -> bool:
        """True when ``repo_dir`` is the top level of a git work tree.

        A plain directory nested inside some other checkout does not count.
        """
        try:
            output = self._run("rev-parse", "--show-toplevel", cwd=repo_dir)
        except GitCommandError:
            return False
        return Path(output.strip()).resolve() == repo_dir.resolve()

    def is_detached(self, repo_dir: Path) -> bool:
        """True when HEAD does not point at a branch."""
        try:
            self._run("symbolic-ref", "-q", "HEAD", cwd=repo_dir)
        except GitCommandError:
            return True
        return False
