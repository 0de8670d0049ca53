"""Error taxonomy for gitissue.

Every error raised by the engine derives from ``GitIssueError`` and carries
the process exit code the CLI uses for it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from gitissue.validate import Violation

# Exit code of an editor killed by a signal
EXIT_KILLED = 4
# Exit code of an editor or git command that exited with an error
EXIT_TOOL_FAILED = 5


class GitIssueError(Exception):
    """Base class for all gitissue errors."""

    exit_code: int = 1


class NotFoundError(GitIssueError):
    """An identifier prefix matches no issue."""

    exit_code = 2


class AmbiguousError(GitIssueError):
    """An identifier prefix matches more than one issue."""

    exit_code = 3

    def __init__(self, partial_id: str, matches: Sequence[str]) -> None:
        """Initialize with the prefix and every issue id it matched."""
        self.partial_id = partial_id
        self.matches = sorted(matches)
        msg = (
            f"Issue prefix '{partial_id}' matches {len(self.matches)} issues: "
            f"{', '.join(self.matches)}"
        )
        super().__init__(msg)


class AllocationExhaustedError(GitIssueError):
    """No free identifier was found within the retry budget."""

    exit_code = 17


class CorruptIssueError(GitIssueError):
    """A persisted issue cannot be read."""

    exit_code = 65


class ValidationViolationError(GitIssueError):
    """The repository failed structural validation."""

    exit_code = 1

    def __init__(self, violations: Sequence[Violation]) -> None:
        """Initialize with every violation found."""
        self.violations = list(violations)
        super().__init__(f"Repository has {len(self.violations)} violation(s)")


class TransactionFailureError(GitIssueError):
    """A mutation or the commit of a transaction failed."""

    exit_code = 8


class ExternalToolFailureError(GitIssueError):
    """The editor or git exited unsuccessfully.

    A negative ``returncode`` means the process was killed by a signal.
    """

    def __init__(self, message: str, returncode: int) -> None:
        """Initialize with a message and the tool's return code."""
        self.returncode = returncode
        super().__init__(message)

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        """Exit code derived from how the tool terminated."""
        return EXIT_KILLED if self.returncode < 0 else EXIT_TOOL_FAILED


class ReservedTagError(GitIssueError):
    """A lifecycle tag was removed directly instead of via close/reopen."""

    exit_code = 22


class RepositoryNotFoundError(GitIssueError):
    """No issues directory exists in the cwd or any parent."""

    exit_code = 151


class RepositoryExistsError(GitIssueError):
    """An issues directory is already present."""

    exit_code = 135
