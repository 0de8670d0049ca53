"""Structural validation of the issues tree.

Pure checks over a Storage with no CLI dependencies. The walk never stops at
the first problem: every violation is reported, and ``ensure_valid`` turns a
non-empty report into one aggregate error.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from gitissue.constants import (
    DESCRIPTION_FILE,
    ID_LENGTH,
    ID_PREFIX_LENGTH,
    ISSUES_SUBDIR,
    KNOWN_ISSUE_DIRS,
    KNOWN_ISSUE_FILES,
    LIFECYCLE_TAGS,
    MILESTONE_FILE,
    TAGS_FILE,
)
from gitissue.errors import ValidationViolationError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from gitissue.storage import Storage
    from gitissue.transaction import CommitOutcome, TransactionManager

logger = logging.getLogger(__name__)

_ID_RE = re.compile(rf"^[0-9a-f]{{{ID_LENGTH}}}$")
_PREFIX_RE = re.compile(rf"^[0-9a-f]{{{ID_PREFIX_LENGTH}}}$")


class ViolationKind(str, Enum):
    """Kinds of structural problems."""

    BAD_ID = "bad-id"
    MISSING_NEWLINE = "missing-newline"
    LIFECYCLE = "lifecycle"
    DANGLING = "dangling"


@dataclass(frozen=True)
class Violation:
    """One structural problem found in the issues tree."""

    kind: ViolationKind
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


def _unreadable(path: str, error: OSError) -> Violation:
    return Violation(ViolationKind.DANGLING, path, f"cannot be read: {error}")


def iter_violations(storage: Storage) -> Iterator[Violation]:
    """Walk the issues tree and yield every violation found.

    Entries the walk cannot read are reported as violations and skipped.
    """
    try:
        prefixes = storage.list_dir(ISSUES_SUBDIR)
    except OSError as e:
        yield _unreadable(ISSUES_SUBDIR, e)
        return
    for prefix in prefixes:
        prefix_path = f"{ISSUES_SUBDIR}/{prefix}"
        if not storage.is_dir(prefix_path):
            yield Violation(ViolationKind.DANGLING, prefix_path, "stray file in issues directory")
            continue
        if not _PREFIX_RE.match(prefix):
            yield Violation(ViolationKind.BAD_ID, prefix_path, f"invalid id prefix '{prefix}'")
        try:
            rests = storage.list_dir(prefix_path)
        except OSError as e:
            yield _unreadable(prefix_path, e)
            continue
        for rest in rests:
            path = f"{prefix_path}/{rest}"
            if not storage.is_dir(path):
                yield Violation(ViolationKind.DANGLING, path, "stray file in prefix directory")
                continue
            issue_id = prefix + rest
            if not _ID_RE.match(issue_id):
                yield Violation(ViolationKind.BAD_ID, path, f"invalid issue id '{issue_id}'")
            yield from _check_issue_dir(storage, path)


def _check_issue_dir(storage: Storage, path: str) -> Iterator[Violation]:
    try:
        entries = storage.list_dir(path)
    except OSError as e:
        yield _unreadable(path, e)
        return
    contents: dict[str, str] = {}

    for name in entries:
        file_path = f"{path}/{name}"
        if storage.is_dir(file_path):
            if name not in KNOWN_ISSUE_DIRS:
                yield Violation(ViolationKind.DANGLING, file_path, "unknown directory")
            continue
        if name not in KNOWN_ISSUE_FILES:
            yield Violation(ViolationKind.DANGLING, file_path, "unknown file")
        try:
            text = storage.read(file_path)
        except UnicodeDecodeError:
            yield Violation(ViolationKind.DANGLING, file_path, "file is not valid UTF-8")
            continue
        except OSError as e:
            yield _unreadable(file_path, e)
            continue
        contents[name] = text
        if not text.endswith("\n"):
            yield Violation(ViolationKind.MISSING_NEWLINE, file_path, "missing newline at end of file")

    if DESCRIPTION_FILE not in entries:
        yield Violation(ViolationKind.DANGLING, path, "issue has no description")

    tags_text = contents.get(TAGS_FILE, "")
    lines = tags_text.splitlines()
    lifecycle = [line.strip() for line in lines if line.strip() in LIFECYCLE_TAGS]
    if len(lifecycle) != 1:
        found = ", ".join(lifecycle) or "none"
        yield Violation(
            ViolationKind.LIFECYCLE,
            f"{path}/{TAGS_FILE}",
            f"expected exactly one of open/closed, found {found}",
        )
    if any(not line.strip() for line in lines):
        yield Violation(ViolationKind.DANGLING, f"{path}/{TAGS_FILE}", "blank tag entry")

    if MILESTONE_FILE in contents and not contents[MILESTONE_FILE].strip():
        yield Violation(ViolationKind.DANGLING, f"{path}/{MILESTONE_FILE}", "empty milestone")


def validate_repository(storage: Storage) -> list[Violation]:
    """Collect every violation of the issues tree."""
    violations = list(iter_violations(storage))
    logger.debug("Validation found %d violation(s)", len(violations))
    return violations


def ensure_valid(violations: Sequence[Violation]) -> None:
    """Raise if any violation was found.

    Raises:
        ValidationViolationError: Carrying all violations
    """
    if violations:
        raise ValidationViolationError(violations)


def fix_missing_newlines(
    manager: TransactionManager,
    violations: Sequence[Violation],
) -> CommitOutcome | None:
    """Append the missing trailing newline to flagged files in one commit.

    Returns:
        The commit outcome, or None when no file needed fixing
    """
    paths = [v.path for v in violations if v.kind is ViolationKind.MISSING_NEWLINE]
    if not paths:
        return None
    with manager.begin() as txn:
        for path in paths:
            txn.write(path, manager.storage.read(path) + "\n")
        return txn.commit(manager.messages.fix_newlines(paths))
