"""Formatting utilities for gitissue CLI output."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from gitissue.constants import LIST_FORMATS

if TYPE_CHECKING:
    from rich.table import Table

    from gitissue.milestones import MilestoneSummary
    from gitissue.models import CachedView, Issue
    from gitissue.vcs import LogEntry

# Placeholder letter -> CachedView/Issue field
_PLACEHOLDERS = {
    "i": "short_id",
    "I": "id",
    "D": "title",
    "M": "milestone",
    "c": "created",
    "d": "due",
    "T": "tags",
}


@dataclass(frozen=True)
class FormatString:
    """Parsed ``list --format`` pattern.

    Parts are either literal text or a field name prefixed with ``%``.
    """

    parts: tuple[str, ...]

    @classmethod
    def parse(cls, value: str) -> FormatString:
        """Parse a named format or a pattern of placeholders.

        Raises:
            ValueError: On an unknown placeholder or a trailing ``%``
        """
        pattern = LIST_FORMATS.get(value, value)
        parts: list[str] = []
        text = ""
        chars = iter(pattern)
        for char in chars:
            if char != "%":
                text += char
                continue
            code = next(chars, None)
            if code is None:
                msg = "Premature end of format string, expected placeholder"
                raise ValueError(msg)
            if code == "%":
                text += "%"
            elif code == "n":
                text += "\n"
            elif code in _PLACEHOLDERS:
                if text:
                    parts.append(text)
                    text = ""
                parts.append("%" + _PLACEHOLDERS[code])
            else:
                msg = f"Unexpected format string placeholder '%{code}'"
                raise ValueError(msg)
        if text:
            parts.append(text)
        return cls(tuple(parts))

    def format(self, issue: Issue, view: CachedView) -> str:
        """Render one issue."""
        out = []
        for part in self.parts:
            if not part.startswith("%"):
                out.append(part)
            elif part == "%id":
                out.append(issue.id)
            else:
                out.append(getattr(view, part[1:]))
        return "".join(out)


def _render(table: Table) -> str:
    from io import StringIO

    from rich.console import Console

    string_io = StringIO()
    console = Console(file=string_io, force_terminal=False, width=120)
    console.print(table)
    return string_io.getvalue().rstrip()


def _new_table() -> Table:
    from rich import box
    from rich.table import Table

    return Table(
        show_header=True,
        header_style="bold",
        box=box.ROUNDED,
        pad_edge=False,
        show_edge=False,
    )


def format_milestone_table(
    summaries: list[MilestoneSummary],
    unassigned: tuple[int, int] | None = None,
) -> str:
    """Format milestone counts as a table using Rich.

    Args:
        summaries: Milestones to list
        unassigned: (open, total) of issues without a milestone, if shown

    Returns:
        Formatted table string
    """
    from rich.markup import escape

    table = _new_table()
    table.add_column("Milestone", no_wrap=True)
    table.add_column("Open", justify="right")
    table.add_column("Total", justify="right")
    for summary in summaries:
        table.add_row(escape(summary.name), str(summary.open), str(summary.total))
    if unassigned is not None:
        table.add_row("No Milestone", str(unassigned[0]), str(unassigned[1]))
    return _render(table)


def format_issue_table(rows: list[tuple[Issue, CachedView]]) -> str:
    """Format issues as an aligned table using Rich."""
    from rich.markup import escape

    if not rows:
        return ""

    table = _new_table()
    table.add_column("ID", no_wrap=True)
    table.add_column("Age", no_wrap=True)
    table.add_column("Title", overflow="fold")
    table.add_column("Tags", no_wrap=False)
    table.add_column("Milestone", no_wrap=True)
    table.add_column("Due", no_wrap=True)
    for _issue, view in rows:
        table.add_row(
            view.short_id,
            view.age,
            escape(view.title),
            escape(view.tags),
            escape(view.milestone),
            view.due,
        )
    return _render(table)


def format_issue_full(
    issue: Issue,
    view: CachedView,
    history: list[LogEntry],
    show_comments: bool = False,
) -> str:
    """Format an issue with all details for ``show``."""
    lines = [
        f"issue {issue.id}",
        f"Date:      {view.created}",
    ]
    if view.milestone:
        lines.append(f"Milestone: {view.milestone}")
    if view.due:
        lines.append(f"Due Date:  {view.due}")
    lines.append(f"Tags:      {view.tags}")
    lines.append("")
    lines.extend(f"    {line}".rstrip() for line in issue.description.rstrip().splitlines())

    if history:
        lines.append("")
        lines.append("Edit History:")
        lines.extend(
            f"* {entry.date:%Y-%m-%d %H:%M} by {entry.author} - {entry.subject}"
            for entry in history
        )

    if show_comments and issue.comments:
        lines.append("")
        lines.append("Comments:")
        for comment in issue.comments:
            lines.append(f"--- {comment.name}")
            lines.extend(f"    {line}".rstrip() for line in comment.body.rstrip().splitlines())

    return "\n".join(lines)
