"""Commit message policies.

A policy turns an engine action into the message of the single commit the
transaction records for it. ``ExplanatoryMessages`` names the issue and what
changed; ``StrictMessages`` reproduces the fixed wording of the shell
``git-issue`` tool.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from gitissue._version import version as _gi_version
from gitissue.constants import COMMIT_PREFIX, VERSION_TRAILER
from gitissue.idgen import short_id

if TYPE_CHECKING:
    from collections.abc import Sequence

    from gitissue.config import Settings
    from gitissue.models import Issue


def tool_version(release: bool, raw: str = _gi_version) -> str:
    """Return the version recorded in commits.

    In release mode the local segment (``+N.gSHA``) is dropped so no
    revision of the tool's own source ends up in issue history.
    """
    if release:
        return raw.split("+", 1)[0]
    return raw


class MessagePolicy(ABC):
    """Builds commit messages for engine actions."""

    @abstractmethod
    def init(self) -> str: ...

    @abstractmethod
    def new_issue(self, issue: Issue) -> str: ...

    @abstractmethod
    def add_tags(self, issue: Issue, tags: Sequence[str]) -> str: ...

    @abstractmethod
    def remove_tags(self, issue: Issue, tags: Sequence[str]) -> str: ...

    @abstractmethod
    def close(self, issues: Sequence[Issue]) -> str: ...

    @abstractmethod
    def reopen(self, issues: Sequence[Issue]) -> str: ...

    @abstractmethod
    def set_milestone(self, issue: Issue, milestone: str) -> str: ...

    @abstractmethod
    def remove_milestone(self, issue: Issue, milestone: str) -> str: ...

    @abstractmethod
    def edit_description(self, issue: Issue) -> str: ...

    @abstractmethod
    def fix_newlines(self, paths: Sequence[str]) -> str: ...


class StrictMessages(MessagePolicy):
    """Messages worded exactly like the shell tool's."""

    def init(self) -> str:
        return f"{COMMIT_PREFIX}: Initialize issues repository\n\ngi init"

    def new_issue(self, issue: Issue) -> str:
        return f"{COMMIT_PREFIX}: Add issue\n\ngi new mark"

    def add_tags(self, issue: Issue, tags: Sequence[str]) -> str:
        return f"{COMMIT_PREFIX}: Add tag\n\ngi tag add {' '.join(tags)}"

    def remove_tags(self, issue: Issue, tags: Sequence[str]) -> str:
        return f"{COMMIT_PREFIX}: Remove tag\n\ngi tag remove {' '.join(tags)}"

    def close(self, issues: Sequence[Issue]) -> str:
        return f"{COMMIT_PREFIX}: Add tag\n\ngi tag add closed"

    def reopen(self, issues: Sequence[Issue]) -> str:
        return f"{COMMIT_PREFIX}: Add tag\n\ngi tag add open"

    def set_milestone(self, issue: Issue, milestone: str) -> str:
        return f"{COMMIT_PREFIX}: Add milestone\n\ngi milestone add {milestone}"

    def remove_milestone(self, issue: Issue, milestone: str) -> str:
        return f"{COMMIT_PREFIX}: Remove milestone\n\ngi milestone remove {milestone}"

    def edit_description(self, issue: Issue) -> str:
        return f"{COMMIT_PREFIX}: Edit issue description\n\ngi edit description"

    def fix_newlines(self, paths: Sequence[str]) -> str:
        return f"{COMMIT_PREFIX}: Fix missing newlines\n\ngi validate --fix"


class ExplanatoryMessages(MessagePolicy):
    """Messages naming the affected issue, with a tool version trailer."""

    def __init__(self, release: bool = False, version: str = _gi_version) -> None:
        """Initialize the policy.

        Args:
            release: Strip the local version segment from the trailer
            version: Tool version to record
        """
        self.version = tool_version(release, version)

    def _compose(self, subject: str, body: str) -> str:
        return f"{subject}\n\n{body}\n\n{VERSION_TRAILER}: {self.version}"

    @staticmethod
    def _scope(issue: Issue) -> str:
        return f"{COMMIT_PREFIX}({short_id(issue.id)})"

    @staticmethod
    def _labels(verb: str, noun: str, values: Sequence[str]) -> str:
        if len(values) == 1:
            return f"{verb} {noun} {values[0]}"
        return f"{verb} {noun}s: {', '.join(values)}"

    def init(self) -> str:
        return self._compose(f"{COMMIT_PREFIX}: Initialize issues repository", "gi init")

    def new_issue(self, issue: Issue) -> str:
        return self._compose(f"{self._scope(issue)}: {issue.title}", "gi new")

    def add_tags(self, issue: Issue, tags: Sequence[str]) -> str:
        return self._compose(
            f"{self._scope(issue)}: {self._labels('Add', 'tag', tags)}",
            f"gi tag add {' '.join(tags)}",
        )

    def remove_tags(self, issue: Issue, tags: Sequence[str]) -> str:
        return self._compose(
            f"{self._scope(issue)}: {self._labels('Remove', 'tag', tags)}",
            f"gi tag remove {' '.join(tags)}",
        )

    def close(self, issues: Sequence[Issue]) -> str:
        if len(issues) == 1:
            issue = issues[0]
            subject = f"DONE({short_id(issue.id)}): {issue.title}"
        else:
            ids = ", ".join(short_id(issue.id) for issue in issues)
            subject = f"{COMMIT_PREFIX}: Closed {ids}"
        return self._compose(subject, "gi close")

    def reopen(self, issues: Sequence[Issue]) -> str:
        if len(issues) == 1:
            issue = issues[0]
            subject = f"{self._scope(issue)}: Reopen {issue.title}"
        else:
            ids = ", ".join(short_id(issue.id) for issue in issues)
            subject = f"{COMMIT_PREFIX}: Reopened {ids}"
        return self._compose(subject, "gi reopen")

    def set_milestone(self, issue: Issue, milestone: str) -> str:
        return self._compose(
            f"{self._scope(issue)}: Add milestone {milestone}",
            f"gi milestone set {milestone}",
        )

    def remove_milestone(self, issue: Issue, milestone: str) -> str:
        return self._compose(
            f"{self._scope(issue)}: Remove milestone {milestone}",
            f"gi milestone remove {milestone}",
        )

    def edit_description(self, issue: Issue) -> str:
        return self._compose(f"{self._scope(issue)}: Edit description", "gi edit")

    def fix_newlines(self, paths: Sequence[str]) -> str:
        body = "\n".join(f"- {path}" for path in paths)
        return self._compose(
            f"{COMMIT_PREFIX}: Fix missing newlines",
            f"gi validate --fix\n\n{body}" if body else "gi validate --fix",
        )


def policy_for(settings: Settings) -> MessagePolicy:
    """Select the message policy for the process settings."""
    if settings.strict:
        return StrictMessages()
    return ExplanatoryMessages(release=settings.release)
