"""Scoped mutations of the issues tree that end in exactly one commit.

Usage::

    with manager.begin() as txn:
        txn.write("issues/ab/cdef/tags", "open\\n")
        txn.commit(manager.messages.add_tags(issue, ["bug"]))

Leaving the block without committing, or with an exception, restores every
touched path to the last commit.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING

from gitissue.config import Settings
from gitissue.errors import (
    ExternalToolFailureError,
    GitIssueError,
    TransactionFailureError,
)
from gitissue.messages import policy_for

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    from gitissue.messages import MessagePolicy
    from gitissue.storage import Storage
    from gitissue.vcs import VersionControl

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitOutcome:
    """Result of committing a transaction.

    ``committed`` is False when nothing differed from the last commit.
    """

    committed: bool
    sha: str | None = None
    message: str | None = None


class Transaction:
    """One command's worth of file mutations."""

    def __init__(
        self,
        storage: Storage,
        vcs: VersionControl,
        on_rollback: Sequence[Callable[[list[str]], None]] = (),
    ) -> None:
        self._storage = storage
        self._vcs = vcs
        self._paths: list[str] = []
        self._guards: list[Callable[[], None]] = []
        self._on_rollback = list(on_rollback)
        self._active = True
        self.outcome: CommitOutcome | None = None

    @property
    def active(self) -> bool:
        """Check whether the transaction still accepts changes."""
        return self._active

    @property
    def paths(self) -> list[str]:
        """Paths touched so far, in first-touch order."""
        return list(self._paths)

    def _require_active(self) -> None:
        if not self._active:
            msg = "Transaction is already finished"
            raise TransactionFailureError(msg)

    def _track(self, path: str) -> None:
        if path not in self._paths:
            self._paths.append(path)

    def write(self, path: str, text: str) -> None:
        """Write a file and stage it.

        Raises:
            TransactionFailureError: If writing or staging fails
        """
        self._require_active()
        self._track(path)
        try:
            self._storage.write(path, text)
            self._vcs.stage(path)
        except (OSError, ExternalToolFailureError) as e:
            msg = f"Failed to write {path}: {e}"
            raise TransactionFailureError(msg) from e
        logger.debug("Staged %s", path)

    def remove(self, path: str) -> None:
        """Delete a file and stage the deletion. Missing files are ignored.

        Raises:
            TransactionFailureError: If deleting or staging fails
        """
        self._require_active()
        if not self._storage.exists(path):
            return
        self._track(path)
        try:
            self._storage.remove(path)
            self._vcs.stage(path)
        except (OSError, ExternalToolFailureError) as e:
            msg = f"Failed to remove {path}: {e}"
            raise TransactionFailureError(msg) from e
        logger.debug("Staged removal of %s", path)

    def stage(self, path: str) -> None:
        """Stage a path written outside the transaction.

        Raises:
            TransactionFailureError: If staging fails
        """
        self._require_active()
        self._track(path)
        try:
            self._vcs.stage(path)
        except (OSError, ExternalToolFailureError) as e:
            msg = f"Failed to stage {path}: {e}"
            raise TransactionFailureError(msg) from e

    def add_guard(self, guard: Callable[[], None]) -> None:
        """Register a check run right before the commit.

        A guard aborts the transaction by raising.
        """
        self._guards.append(guard)

    def commit(self, message: str) -> CommitOutcome:
        """Run the guards and record one commit.

        Args:
            message: Commit message from the message policy

        Returns:
            CommitOutcome, with ``committed=False`` when nothing changed

        Raises:
            TransactionFailureError: If the commit itself fails
        """
        self._require_active()
        try:
            for guard in self._guards:
                guard()
            if not self._vcs.has_staged_changes(self._paths):
                logger.info("Nothing to do")
                self._active = False
                self.outcome = CommitOutcome(committed=False)
                return self.outcome
            sha = self._vcs.commit(message, self._paths)
        except (OSError, ExternalToolFailureError) as e:
            self.rollback()
            msg = f"Commit failed: {e}"
            raise TransactionFailureError(msg) from e
        except BaseException:
            self.rollback()
            raise

        self._active = False
        self.outcome = CommitOutcome(committed=True, sha=sha, message=message)
        return self.outcome

    def rollback(self) -> None:
        """Discard every touched path and notify the rollback callbacks.

        Failures to restore are logged.
        """
        if not self._active:
            return
        self._active = False
        if not self._paths:
            return
        logger.info("Rolling back %d path(s)", len(self._paths))
        try:
            self._vcs.discard(self._paths)
        except (OSError, GitIssueError) as e:
            logger.warning("Failed to restore %s: %s", ", ".join(self._paths), e)
        for callback in self._on_rollback:
            callback(self.paths)

    def __enter__(self) -> Transaction:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.rollback()
        if isinstance(exc, (OSError, subprocess.SubprocessError)):
            msg = f"Transaction failed: {exc}"
            raise TransactionFailureError(msg) from exc


class TransactionManager:
    """Opens transactions bound to one storage, history and message policy."""

    def __init__(
        self,
        storage: Storage,
        vcs: VersionControl,
        settings: Settings | None = None,
        on_rollback: Callable[[list[str]], None] | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            storage: File access below the issues root
            vcs: History backing the issues tree
            settings: Process settings selecting the message policy
            on_rollback: Called with the touched paths after a rollback
        """
        self.storage = storage
        self.vcs = vcs
        self.settings = settings or Settings()
        self.messages: MessagePolicy = policy_for(self.settings)
        self._on_rollback = [on_rollback] if on_rollback else []

    def begin(self) -> Transaction:
        """Open a new transaction."""
        logger.debug("Starting transaction")
        return Transaction(self.storage, self.vcs, self._on_rollback)
