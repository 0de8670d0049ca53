"""Data models for gitissue issues using dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from gitissue.constants import (
    PLACEHOLDER,
    SHORT_ID_LENGTH,
    TAG_CLOSED,
    TAG_OPEN,
)

class WriteResult(str, Enum):
    """Outcome of a tag or milestone write."""

    APPLIED = "applied"
    NO_CHANGES = "no_changes"


@dataclass
class Comment:
    """A read-only comment attached to an issue."""

    name: str
    body: str


@dataclass(frozen=True)
class CachedView:
    """Derived display fields of an issue."""

    short_id: str
    title: str
    created: str
    age: str
    tags: str
    milestone: str
    due: str


def format_age(now: datetime, created_at: datetime) -> str:
    """Format the age of an issue as a human-readable string."""
    delta = now - created_at.astimezone(timezone.utc)
    total_hours = int(delta.total_seconds() // 3600)
    if total_hours < 24:
        return f"{total_hours}h ago"
    total_days = delta.days
    if total_days == 1:
        return "1 day ago"
    return f"{total_days} days ago"


def parse_due_date(text: str) -> datetime:
    """Parse a persisted due date.

    Raises:
        ValueError: If the text is not an ISO-8601 timestamp
    """
    value = text.strip()
    # fromisoformat only accepts a trailing Z from Python 3.11 on
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass(eq=False)
class Issue:
    """Represents an issue.

    ``tags`` must be changed through the mutator methods so the memoized
    view is dropped.
    """

    id: str
    description: str
    tags: set[str] = field(default_factory=set[str])
    milestone: str | None = None
    due_date: str | None = None
    created_at: datetime | None = None
    comments: list[Comment] = field(default_factory=list[Comment])
    _view: CachedView | None = field(default=None, init=False, repr=False)

    @property
    def title(self) -> str:
        """First line of the description."""
        lines = self.description.splitlines()
        return lines[0] if lines else ""

    @property
    def is_open(self) -> bool:
        """Check if the issue carries the open tag."""
        return TAG_OPEN in self.tags

    @property
    def is_closed(self) -> bool:
        """Check if the issue carries the closed tag."""
        return TAG_CLOSED in self.tags

    def sorted_tags(self) -> list[str]:
        """Tags in persisted order."""
        return sorted(self.tags)

    def invalidate_view(self) -> None:
        """Drop the memoized view."""
        self._view = None

    def add_tag(self, tag: str) -> None:
        self.tags.add(tag)
        self.invalidate_view()

    def discard_tag(self, tag: str) -> None:
        self.tags.discard(tag)
        self.invalidate_view()

    def set_milestone(self, milestone: str | None) -> None:
        self.milestone = milestone
        self.invalidate_view()

    def set_description(self, description: str) -> None:
        self.description = description
        self.invalidate_view()

    def set_due_date(self, due_date: str | None) -> None:
        self.due_date = due_date
        self.invalidate_view()

    @property
    def has_view(self) -> bool:
        """Check if a view is currently memoized."""
        return self._view is not None

    def view(
        self,
        short_id_length: int = SHORT_ID_LENGTH,
        now: datetime | None = None,
    ) -> CachedView:
        """Return the display fields, computing them on first access.

        The arguments only apply when the view is computed. A due date or
        creation date that cannot be formatted renders as a placeholder.

        Args:
            short_id_length: Length of the abbreviated id
            now: Reference time for the age (default: now)

        Returns:
            Memoized CachedView
        """
        if self._view is not None:
            return self._view

        if now is None:
            now = datetime.now(timezone.utc)

        if self.created_at is None:
            created = age = PLACEHOLDER
        else:
            created = str(self.created_at)
            age = format_age(now, self.created_at)

        due = ""
        if self.due_date is not None:
            try:
                due = str(parse_due_date(self.due_date))
            except ValueError:
                due = PLACEHOLDER

        self._view = CachedView(
            short_id=self.id[:short_id_length],
            title=self.title,
            created=created,
            age=age,
            tags=" ".join(self.sorted_tags()),
            milestone=self.milestone or "",
            due=due,
        )
        return self._view


def issue_to_dict(issue: Issue) -> dict[str, Any]:
    """Convert an issue to a JSON-serializable dict."""
    return {
        "id": issue.id,
        "title": issue.title,
        "description": issue.description,
        "tags": issue.sorted_tags(),
        "milestone": issue.milestone,
        "due_date": issue.due_date,
        "created_at": issue.created_at.isoformat() if issue.created_at else None,
        "comments": [{"name": c.name, "body": c.body} for c in issue.comments],
    }
