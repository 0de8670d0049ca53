"""Tests for the version control gateways."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from gitissue.errors import ExternalToolFailureError
from gitissue.storage import MemoryStorage
from gitissue.vcs import FakeVersionControl, GitVersionControl

if TYPE_CHECKING:
    from pathlib import Path

    from conftest import GitRepo


class TestFakeVersionControl:
    """Test the in-memory gateway used by unit tests."""

    def test_commit_records_staged_files(self) -> None:
        """Test that a commit snapshots staged content."""
        storage = MemoryStorage()
        vcs = FakeVersionControl(storage)
        storage.write("README.md", "hi\n")
        vcs.stage("README.md")
        assert vcs.has_staged_changes()
        sha = vcs.commit("gi: init")
        assert vcs.head() == sha
        assert vcs.committed_files == {"README.md": "hi\n"}
        assert not vcs.has_staged_changes()

    def test_identical_content_is_not_a_change(self) -> None:
        """Test that restaging committed content reports no changes."""
        storage = MemoryStorage()
        vcs = FakeVersionControl(storage)
        storage.write("a", "1\n")
        vcs.stage("a")
        vcs.commit("first")
        storage.write("a", "1\n")
        vcs.stage("a")
        assert not vcs.has_staged_changes(["a"])

    def test_commit_without_changes_fails(self) -> None:
        """Test that an empty commit is refused like git does."""
        vcs = FakeVersionControl(MemoryStorage())
        with pytest.raises(ExternalToolFailureError):
            vcs.commit("empty")

    def test_discard_restores_committed_and_drops_new(self) -> None:
        """Test that discard restores tracked files and deletes new ones."""
        storage = MemoryStorage()
        vcs = FakeVersionControl(storage)
        storage.write("a", "old\n")
        vcs.stage("a")
        vcs.commit("first")
        storage.write("a", "new\n")
        storage.write("b", "fresh\n")
        vcs.stage("a")
        vcs.stage("b")
        vcs.discard(["a", "b"])
        assert storage.files == {"a": "old\n"}
        assert not vcs.has_staged_changes()

    def test_staged_deletion(self) -> None:
        """Test that staging a removed file commits its deletion."""
        storage = MemoryStorage()
        vcs = FakeVersionControl(storage)
        storage.write("a", "1\n")
        vcs.stage("a")
        vcs.commit("add")
        storage.remove("a")
        vcs.stage("a")
        vcs.commit("remove")
        assert vcs.committed_files == {}

    def test_log_and_creation_date(self) -> None:
        """Test history queries by directory."""
        storage = MemoryStorage()
        vcs = FakeVersionControl(storage)
        storage.write("issues/ab/cd/description", "x\n")
        vcs.stage("issues/ab/cd/description")
        vcs.commit("gi(abcd): x\n\nbody")
        entries = vcs.log(["issues/ab/cd"])
        assert [entry.subject for entry in entries] == ["gi(abcd): x"]
        assert vcs.creation_date("issues/ab/cd") == entries[0].date
        assert vcs.creation_date("issues/ff") is None


class TestGitVersionControl:
    """Test the git command line gateway."""

    def test_head_of_initialized_repo(self, git_repo: GitRepo) -> None:
        """Test that HEAD exists after init."""
        vcs = GitVersionControl(git_repo.issues_dir)
        assert vcs.head() == git_repo.git("rev-parse", "HEAD").stdout.strip()

    def test_head_of_empty_repo(self, tmp_path: Path, git_env: None) -> None:
        """Test that a repository without commits has no HEAD."""
        vcs = GitVersionControl.init_repository(tmp_path)
        assert vcs.head() is None

    def test_stage_and_commit(self, git_repo: GitRepo) -> None:
        """Test a commit restricted to the given paths."""
        vcs = GitVersionControl(git_repo.issues_dir)
        (git_repo.issues_dir / "note").write_text("x\n")
        vcs.stage("note")
        assert vcs.has_staged_changes(["note"])
        vcs.commit("add note", ["note"])
        assert git_repo.subjects()[0] == "add note"
        assert git_repo.status() == ""

    def test_commit_leaves_unrelated_staged_changes(self, git_repo: GitRepo) -> None:
        """Test that a path-restricted commit does not sweep up other staged files."""
        vcs = GitVersionControl(git_repo.issues_dir)
        (git_repo.issues_dir / "mine").write_text("x\n")
        (git_repo.issues_dir / "theirs").write_text("y\n")
        git_repo.git("add", "theirs")
        vcs.stage("mine")
        vcs.commit("add mine", ["mine"])
        files = git_repo.git("show", "--name-only", "--format=", "HEAD").stdout.split()
        assert files == ["mine"]
        assert "A  theirs" in git_repo.status()

    def test_hooks_do_not_run(self, git_repo: GitRepo) -> None:
        """Test that repository hooks are suppressed during commits."""
        hooks = git_repo.issues_dir / ".git" / "hooks"
        hooks.mkdir(exist_ok=True)
        marker = git_repo.path / "hook-ran"
        for name in ("pre-commit", "commit-msg", "post-commit"):
            hook = hooks / name
            hook.write_text(f"#!/bin/sh\ntouch {marker}\nexit 1\n")
            hook.chmod(0o755)

        vcs = GitVersionControl(git_repo.issues_dir)
        (git_repo.issues_dir / "note").write_text("x\n")
        vcs.stage("note")
        vcs.commit("add note", ["note"])
        assert not marker.exists()

    def test_discard_restores_tracked_and_deletes_new(self, git_repo: GitRepo) -> None:
        """Test discarding a modified tracked file and a new file."""
        vcs = GitVersionControl(git_repo.issues_dir)
        readme = git_repo.issues_dir / "README.md"
        original = readme.read_text()
        readme.write_text("changed\n")
        (git_repo.issues_dir / "new").write_text("n\n")
        vcs.stage("README.md")
        vcs.stage("new")
        vcs.discard(["README.md", "new"])
        assert readme.read_text() == original
        assert not (git_repo.issues_dir / "new").exists()
        assert git_repo.status() == ""

    def test_failed_command_raises(self, git_repo: GitRepo) -> None:
        """Test that a failing git command raises ExternalToolFailureError."""
        vcs = GitVersionControl(git_repo.issues_dir)
        with pytest.raises(ExternalToolFailureError) as exc_info:
            vcs.stage("does-not-exist")
        assert exc_info.value.returncode != 0

    def test_failed_commit_names_subcommand(self, git_repo: GitRepo) -> None:
        """Test that a failing commit is reported as git commit, not as its options."""
        vcs = GitVersionControl(git_repo.issues_dir)
        with pytest.raises(ExternalToolFailureError, match=r"^git commit failed"):
            vcs.commit("nothing staged")

    def test_creation_date_and_log(self, git_repo: GitRepo) -> None:
        """Test history queries against real commits."""
        vcs = GitVersionControl(git_repo.issues_dir)
        assert vcs.creation_date("README.md") is not None
        assert vcs.creation_date("missing") is None
        subjects = [entry.subject for entry in vcs.log(["README.md"])]
        assert subjects == ["gi: Initialize issues repository"]

    def test_is_work_tree(self, git_repo: GitRepo) -> None:
        """Test work tree detection."""
        assert GitVersionControl(git_repo.issues_dir).is_work_tree()
