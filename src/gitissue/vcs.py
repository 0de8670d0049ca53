"""Version control gateway.

Every interaction with git goes through ``VersionControl``. Paths are
relative to the ``.issues`` directory, matching ``gitissue.storage``.
"""

from __future__ import annotations

import hashlib
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from gitissue.errors import ExternalToolFailureError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from gitissue.storage import MemoryStorage

logger = logging.getLogger(__name__)

# Field separator for git log output
_SEP = "\x1f"


def _subcommand(args: Sequence[str]) -> str:
    """Name the git subcommand of an argument list, skipping ``-c`` options."""
    index = 0
    while index < len(args) and args[index] == "-c":
        index += 2
    return args[index] if index < len(args) else "command"


@dataclass(frozen=True)
class LogEntry:
    """One commit in the history of an issue."""

    sha: str
    date: datetime
    author: str
    subject: str


class VersionControl(ABC):
    """Abstract interface for the history backing the issues tree."""

    @abstractmethod
    def head(self) -> str | None:
        """Return the current commit id, or None before the first commit."""
        ...

    @abstractmethod
    def stage(self, path: str) -> None:
        """Stage the current state of a path, including its deletion."""
        ...

    @abstractmethod
    def has_staged_changes(self, paths: Sequence[str] | None = None) -> bool:
        """Check whether the staged state differs from the last commit.

        Args:
            paths: Restrict the check to these paths (default: everything)

        Returns:
            True if committing would record a change
        """
        ...

    @abstractmethod
    def commit(self, message: str, paths: Sequence[str] | None = None) -> str:
        """Commit the staged changes with repository hooks suppressed.

        Args:
            message: Full commit message
            paths: Restrict the commit to these paths (default: everything staged)

        Returns:
            Id of the new commit
        """
        ...

    @abstractmethod
    def discard(self, paths: Sequence[str]) -> None:
        """Unstage paths and restore them to the last commit.

        Paths that did not exist in the last commit are deleted.
        """
        ...

    @abstractmethod
    def creation_date(self, path: str) -> datetime | None:
        """Return the date of the first commit touching a path."""
        ...

    @abstractmethod
    def log(self, paths: Sequence[str]) -> list[LogEntry]:
        """Return the commits touching paths, oldest first."""
        ...


def _under(path: str, roots: Iterable[str] | None) -> bool:
    if roots is None:
        return True
    return any(path == root or path.startswith(root.rstrip("/") + "/") for root in roots)


class GitVersionControl(VersionControl):
    """Real implementation of VersionControl using the git command line."""

    def __init__(self, work_dir: str | Path) -> None:
        """Initialize with the ``.issues`` directory as working directory."""
        self.work_dir = Path(work_dir)

    @classmethod
    def init_repository(cls, work_dir: str | Path) -> GitVersionControl:
        """Create a new git repository in work_dir.

        Raises:
            ExternalToolFailureError: If ``git init`` fails
        """
        vcs = cls(work_dir)
        vcs._git("init", "--quiet")
        return vcs

    def _git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        logger.debug("git %s", " ".join(args))
        result = subprocess.run(
            ["git", *args],
            cwd=self.work_dir,
            capture_output=True,
            text=True,
            check=False,
        )
        if check and result.returncode != 0:
            detail = result.stderr.strip() or result.stdout.strip()
            msg = f"git {_subcommand(args)} failed: {detail}"
            raise ExternalToolFailureError(msg, result.returncode)
        return result

    def is_work_tree(self) -> bool:
        """Check whether the working directory lies in a non-bare git work tree."""
        try:
            result = self._git("rev-parse", "--is-inside-work-tree", check=False)
        except FileNotFoundError:
            return False
        return result.returncode == 0 and result.stdout.strip() == "true"

    def head(self) -> str | None:
        """Return the HEAD commit id."""
        result = self._git("rev-parse", "--verify", "--quiet", "HEAD", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def stage(self, path: str) -> None:
        """Stage a path with ``git add -A`` so deletions are recorded too."""
        self._git("add", "-A", "--", path)

    def _staged_paths(self, paths: Sequence[str] | None) -> list[str]:
        args = ["diff", "--cached", "--name-only", "--relative", "-z"]
        if paths is not None:
            args += ["--", *paths]
        result = self._git(*args)
        return [name for name in result.stdout.split("\0") if name]

    def has_staged_changes(self, paths: Sequence[str] | None = None) -> bool:
        """Check the index against HEAD."""
        if paths is not None and not paths:
            return False
        return bool(self._staged_paths(paths))

    def commit(self, message: str, paths: Sequence[str] | None = None) -> str:
        """Commit with ``--no-verify`` and an empty hooks path."""
        args = [
            "-c",
            f"core.hooksPath={os.devnull}",
            "commit",
            "--no-verify",
            "--quiet",
            "--message",
            message,
        ]
        # Pathspec commits need a parent to diff against
        if paths is not None and self.head() is not None:
            args += ["--", *self._staged_paths(paths)]
        self._git(*args)
        sha = self.head()
        if sha is None:
            msg = "git commit did not create a commit"
            raise ExternalToolFailureError(msg, 1)
        logger.info("Committed %s", sha[:8])
        return sha

    def discard(self, paths: Sequence[str]) -> None:
        """Reset paths in the index and restore or delete them on disk."""
        for path in paths:
            tracked = self._git("cat-file", "-e", f"HEAD:./{path}", check=False).returncode == 0
            self._git("reset", "--quiet", "--", path, check=False)
            if tracked:
                self._git("checkout", "HEAD", "--", path)
            else:
                (self.work_dir / path).unlink(missing_ok=True)
            logger.debug("Discarded %s", path)

    def creation_date(self, path: str) -> datetime | None:
        """Return the author date of the oldest commit touching path."""
        result = self._git("log", "--reverse", "--format=%aI", "--", path, check=False)
        lines = result.stdout.split()
        if result.returncode != 0 or not lines:
            return None
        try:
            return datetime.fromisoformat(lines[0])
        except ValueError:
            return None

    def log(self, paths: Sequence[str]) -> list[LogEntry]:
        """Return ``git log -M --reverse`` of paths."""
        result = self._git(
            "log",
            "-M",
            "--reverse",
            f"--format=%H{_SEP}%aI{_SEP}%aN{_SEP}%s",
            "--",
            *paths,
            check=False,
        )
        if result.returncode != 0:
            return []
        entries = []
        for line in result.stdout.splitlines():
            sha, date, author, subject = line.split(_SEP, 3)
            entries.append(LogEntry(sha, datetime.fromisoformat(date), author, subject))
        return entries


@dataclass(frozen=True)
class FakeCommit:
    """A commit recorded by FakeVersionControl."""

    sha: str
    message: str
    paths: tuple[str, ...]
    date: datetime
    author: str = "Test User"


class FakeVersionControl(VersionControl):
    """In-memory implementation of VersionControl for testing.

    Snapshots a MemoryStorage on commit and tracks every commit for test
    assertions.

    Example:
        >>> storage = MemoryStorage()
        >>> vcs = FakeVersionControl(storage)
        >>> storage.write("README.md", "hi\\n")
        >>> vcs.stage("README.md")
        >>> vcs.commit("gi: init")
        >>> assert len(vcs.commits) == 1
    """

    def __init__(
        self,
        storage: MemoryStorage,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize over the storage whose files are versioned."""
        self._storage = storage
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._committed: dict[str, str | bytes] = {}
        self._index: dict[str, str | bytes | None] = {}
        self._commits: list[FakeCommit] = []
        self._discarded: list[str] = []
        self.commit_error: Exception | None = None

    def head(self) -> str | None:
        """Return the id of the last fake commit."""
        return self._commits[-1].sha if self._commits else None

    def stage(self, path: str) -> None:
        """Record the current storage state of path and anything below it."""
        candidates = set(self._storage.files) | set(self._committed) | set(self._index)
        for name in candidates:
            if _under(name, [path]):
                self._index[name] = self._storage.files.get(name)

    def _pending(self, paths: Sequence[str] | None) -> dict[str, str | bytes | None]:
        return {
            name: value
            for name, value in self._index.items()
            if _under(name, paths) and value != self._committed.get(name)
        }

    def has_staged_changes(self, paths: Sequence[str] | None = None) -> bool:
        """Check the fake index against the last fake commit."""
        return bool(self._pending(paths))

    def commit(self, message: str, paths: Sequence[str] | None = None) -> str:
        """Apply the staged changes to the committed snapshot."""
        if self.commit_error is not None:
            raise self.commit_error
        pending = self._pending(paths)
        if not pending:
            msg = "git commit failed: nothing to commit"
            raise ExternalToolFailureError(msg, 1)
        for name, value in pending.items():
            if value is None:
                self._committed.pop(name, None)
            else:
                self._committed[name] = value
            del self._index[name]
        sha = hashlib.sha1(f"{len(self._commits)}:{message}".encode()).hexdigest()  # noqa: S324
        self._commits.append(FakeCommit(sha, message, tuple(sorted(pending)), self._clock()))
        return sha

    def discard(self, paths: Sequence[str]) -> None:
        """Restore paths in storage from the committed snapshot."""
        names = set(self._storage.files) | set(self._committed) | set(self._index)
        for name in sorted(names):
            if not _under(name, paths):
                continue
            self._index.pop(name, None)
            if name in self._committed:
                self._storage.files[name] = self._committed[name]
            else:
                self._storage.files.pop(name, None)
            self._discarded.append(name)

    def creation_date(self, path: str) -> datetime | None:
        """Return the date of the first fake commit touching path."""
        for commit in self._commits:
            if any(_under(name, [path]) for name in commit.paths):
                return commit.date
        return None

    def log(self, paths: Sequence[str]) -> list[LogEntry]:
        """Return fake commits touching paths, oldest first."""
        return [
            LogEntry(commit.sha, commit.date, commit.author, commit.message.split("\n", 1)[0])
            for commit in self._commits
            if any(_under(name, paths) for name in commit.paths)
        ]

    @property
    def commits(self) -> list[FakeCommit]:
        """Read-only access to the recorded commits.

        Returns:
            Copy of the commit list, oldest first
        """
        return list(self._commits)

    @property
    def committed_files(self) -> dict[str, str | bytes]:
        """Read-only access to the committed snapshot."""
        return dict(self._committed)

    @property
    def discarded(self) -> list[str]:
        """Paths restored by ``discard``, in order."""
        return list(self._discarded)
