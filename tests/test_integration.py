"""Integration tests running the sync engine against real git repositories."""

from pathlib import Path

import pytest

from conftest import AnonymousResolver, RemoteRepo, requires_git, run_git
from gitsync.config import SyncSettings
from gitsync.errors import CheckoutError, PullError
from gitsync.git import GitClient
from gitsync.sync import SyncEngine, SyncOutcome

pytestmark = requires_git


@pytest.fixture
def engine(settings: SyncSettings) -> SyncEngine:
    return SyncEngine(settings, resolver=AnonymousResolver(), git=GitClient())


class TestIntegration:
    """Clone, pull and checkout against a local bare repository."""

    def test_second_sync_is_up_to_date(
        self, engine: SyncEngine, remote_repo: RemoteRepo, tmp_path: Path
    ) -> None:
        local_dir = tmp_path / "clones"

        assert engine.sync(remote_repo.url, local_dir) is SyncOutcome.CLONED
        assert (local_dir / "project.git" / "README.md").exists()

        assert engine.sync(remote_repo.url, local_dir) is SyncOutcome.UP_TO_DATE

    def test_pull_brings_new_commits(
        self, engine: SyncEngine, remote_repo: RemoteRepo, tmp_path: Path
    ) -> None:
        local_dir = tmp_path / "clones"
        engine.sync(remote_repo.url, local_dir)

        head = remote_repo.commit("CHANGELOG.md", "## 1.1\n")
        remote_repo.push()

        assert engine.sync(remote_repo.url, local_dir) is SyncOutcome.UPDATED
        clone_dir = local_dir / "project.git"
        assert run_git("rev-parse", "HEAD", cwd=clone_dir) == head
        assert (clone_dir / "CHANGELOG.md").exists()

    def test_clone_then_checkout_tag(
        self, engine: SyncEngine, remote_repo: RemoteRepo, tmp_path: Path
    ) -> None:
        remote_repo.commit("CHANGELOG.md", "## 1.1\n")
        remote_repo.push()
        local_dir = tmp_path / "clones"

        assert engine.sync(remote_repo.url, local_dir, tag="v1.0") is SyncOutcome.CLONED

        clone_dir = local_dir / "project.git"
        assert run_git("rev-parse", "HEAD", cwd=clone_dir) == remote_repo.rev("v1.0")
        assert not (clone_dir / "CHANGELOG.md").exists()

    def test_missing_tag_keeps_clone(
        self, engine: SyncEngine, remote_repo: RemoteRepo, tmp_path: Path
    ) -> None:
        local_dir = tmp_path / "clones"

        with pytest.raises(CheckoutError, match="v9.9"):
            engine.sync(remote_repo.url, local_dir, tag="v9.9")

        assert (local_dir / "project.git" / ".git").is_dir()

    def test_tag_after_single_branch_clone(
        self, engine: SyncEngine, remote_repo: RemoteRepo, tmp_path: Path
    ) -> None:
        local_dir = tmp_path / "clones"

        engine.sync(remote_repo.url, local_dir, branch="main", tag="v1.0")

        clone_dir = local_dir / "project.git"
        assert run_git("rev-parse", "HEAD", cwd=clone_dir) == remote_repo.rev("v1.0")

    def test_resync_pinned_to_tag(
        self, engine: SyncEngine, remote_repo: RemoteRepo, tmp_path: Path
    ) -> None:
        local_dir = tmp_path / "clones"
        engine.sync(remote_repo.url, local_dir, tag="v1.0")

        remote_repo.commit("CHANGELOG.md", "## 1.1\n")
        run_git("tag", "v1.1", cwd=remote_repo.work)
        remote_repo.push()

        assert engine.sync(remote_repo.url, local_dir, tag="v1.1") is SyncOutcome.FETCHED
        clone_dir = local_dir / "project.git"
        assert run_git("rev-parse", "HEAD", cwd=clone_dir) == remote_repo.rev("v1.1")

    def test_plain_directory_is_not_reinitialized(
        self, engine: SyncEngine, remote_repo: RemoteRepo, tmp_path: Path
    ) -> None:
        clone_dir = tmp_path / "clones" / "project.git"
        clone_dir.mkdir(parents=True)
        (clone_dir / "notes.txt").write_text("keep me", encoding="utf-8")

        with pytest.raises(PullError, match="not a git repository"):
            engine.sync(remote_repo.url, tmp_path / "clones")

        assert (clone_dir / "notes.txt").read_text(encoding="utf-8") == "keep me"
        assert not (clone_dir / ".git").exists()

    def test_progress_log_records_git_output(
        self, engine: SyncEngine, settings: SyncSettings, remote_repo: RemoteRepo, tmp_path: Path
    ) -> None:
        local_dir = tmp_path / "clones"
        engine.sync(remote_repo.url, local_dir)
        engine.sync(remote_repo.url, local_dir)

        log = settings.log_path.read_text(encoding="utf-8")
        assert f"Cloning repository: {remote_repo.url}" in log
        assert f"Pulling repository: {remote_repo.url}" in log
        assert "Already up" in log
