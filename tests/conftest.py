"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from gitissue.config import Settings
from gitissue.repository import IssueRepository, init_repository, open_repository
from gitissue.storage import MemoryStorage
from gitissue.vcs import FakeVersionControl

if TYPE_CHECKING:
    from collections.abc import Callable

# Environment variables that skip system/global config lookups and give
# every commit a fixed identity.
_GIT_TEST_ENV = {
    "GIT_CONFIG_NOSYSTEM": "1",
    "HOME": "/dev/null",
    "GIT_AUTHOR_NAME": "Test",
    "GIT_AUTHOR_EMAIL": "test@test.com",
    "GIT_COMMITTER_NAME": "Test",
    "GIT_COMMITTER_EMAIL": "test@test.com",
    "GIT_TERMINAL_PROMPT": "0",
}

# Creation time of the first fake commit
FAKE_EPOCH = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def _git_template_dir(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Empty template dir to skip copying sample hooks during git init."""
    return str(tmp_path_factory.mktemp("git-tpl"))


@pytest.fixture
def git_env(monkeypatch: pytest.MonkeyPatch, _git_template_dir: str) -> None:
    """Isolate git from the user's configuration."""
    for key, value in _GIT_TEST_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("GIT_TEMPLATE_DIR", _git_template_dir)
    monkeypatch.delenv("GIT_ISSUE_STRICT", raising=False)
    monkeypatch.delenv("GIT_ISSUE_RELEASE", raising=False)


@dataclass
class GitRepo:
    """A temporary project with an initialized .issues repository."""

    path: Path
    issues_dir: Path

    def git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Run a git command in the .issues directory."""
        return subprocess.run(
            ["git", *args],
            cwd=self.issues_dir,
            capture_output=True,
            text=True,
            check=check,
        )

    def repository(self, settings: Settings | None = None) -> IssueRepository:
        """Open a fresh IssueRepository on this tree."""
        return open_repository(self.issues_dir, settings)

    def subjects(self) -> list[str]:
        """Return commit subjects, newest first."""
        return self.git("log", "--format=%s").stdout.splitlines()

    def last_message(self) -> str:
        """Return the full message of HEAD."""
        return self.git("log", "-1", "--format=%B").stdout.strip()

    def commit_count(self) -> int:
        """Count commits reachable from HEAD."""
        return int(self.git("rev-list", "--count", "HEAD").stdout.strip())

    def status(self) -> str:
        """Return ``git status --porcelain`` output."""
        return self.git("status", "--porcelain").stdout


@pytest.fixture
def git_repo(tmp_path: Path, git_env: None) -> GitRepo:
    """Create a temporary project whose .issues is its own git repository."""
    init_repository(tmp_path)
    return GitRepo(path=tmp_path, issues_dir=tmp_path / ".issues")


def _fake_clock() -> Callable[[], datetime]:
    ticks = iter(range(1_000_000))
    return lambda: FAKE_EPOCH + timedelta(hours=next(ticks))


@pytest.fixture
def memory_repo() -> IssueRepository:
    """Create an IssueRepository backed by MemoryStorage and FakeVersionControl."""
    storage = MemoryStorage()
    return IssueRepository(storage, FakeVersionControl(storage, clock=_fake_clock()))


@pytest.fixture
def strict_memory_repo() -> IssueRepository:
    """Create an in-memory IssueRepository in strict-compatibility mode."""
    storage = MemoryStorage()
    return IssueRepository(
        storage,
        FakeVersionControl(storage, clock=_fake_clock()),
        Settings(strict=True),
    )
