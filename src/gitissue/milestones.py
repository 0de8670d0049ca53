"""Milestone index: assignment and per-milestone aggregation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from gitissue.models import WriteResult
from gitissue.tags import validate_label

if TYPE_CHECKING:
    from gitissue.models import Issue
    from gitissue.repository import IssueRepository
    from gitissue.transaction import Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MilestoneSummary:
    """Issue counts of one milestone."""

    name: str
    open: int
    total: int


class MilestoneIndex:
    """Assigns milestones and aggregates them over all issues."""

    def __init__(self, repo: IssueRepository) -> None:
        self.repo = repo

    def assign(self, txn: Transaction, issue: Issue, milestone: str | None) -> WriteResult:
        """Set or clear the milestone of an issue.

        Args:
            txn: Open transaction receiving the write
            issue: Issue to change
            milestone: New milestone, or None to clear it

        Returns:
            NO_CHANGES when the issue already has that milestone

        Raises:
            ValueError: If the milestone name is invalid
        """
        if milestone is not None:
            validate_label(milestone)
        if issue.milestone == milestone:
            logger.info(
                "Issue %s milestone is already %s",
                self.repo.short_id(issue.id),
                milestone or "unset",
            )
            return WriteResult.NO_CHANGES
        issue.set_milestone(milestone)
        self.repo.save_milestone(txn, issue)
        return WriteResult.APPLIED

    def list_milestones(self, include_all: bool = False) -> list[MilestoneSummary]:
        """Aggregate milestones over all readable issues.

        A milestone is listed when at least one of its issues is open, or
        always when include_all is set.

        Returns:
            Summaries sorted by milestone name
        """
        counts: dict[str, list[int]] = {}
        issues, _errors = self.repo.all_issues()
        for issue in issues:
            if issue.milestone is None:
                continue
            entry = counts.setdefault(issue.milestone, [0, 0])
            entry[1] += 1
            if issue.is_open:
                entry[0] += 1

        return [
            MilestoneSummary(name=name, open=open_count, total=total)
            for name, (open_count, total) in sorted(counts.items())
            if include_all or open_count > 0
        ]

    def unassigned(self) -> tuple[int, int]:
        """Count issues without a milestone.

        Returns:
            Tuple of (open, total)
        """
        issues, _errors = self.repo.all_issues()
        without = [issue for issue in issues if issue.milestone is None]
        return sum(1 for issue in without if issue.is_open), len(without)
