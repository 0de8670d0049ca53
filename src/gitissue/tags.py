"""Tag store: lifecycle and free labels of issues.

Exactly one of ``open`` and ``closed`` is present on every issue. Adding one
lifecycle tag drops the other; removing one directly is refused so that the
state only moves through ``close`` and ``reopen``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gitissue.constants import LIFECYCLE_TAGS, TAG_CLOSED, TAG_OPEN
from gitissue.errors import ReservedTagError
from gitissue.models import WriteResult

if TYPE_CHECKING:
    from gitissue.models import Issue
    from gitissue.repository import IssueRepository
    from gitissue.transaction import Transaction

logger = logging.getLogger(__name__)

_COMPLEMENT = {TAG_OPEN: TAG_CLOSED, TAG_CLOSED: TAG_OPEN}


def validate_label(label: str) -> None:
    """Check a tag or milestone name can be stored as one line.

    Raises:
        ValueError: If the label is empty or contains whitespace
    """
    if not label or any(ch.isspace() for ch in label):
        msg = f"Invalid label {label!r}: must be non-empty without whitespace"
        raise ValueError(msg)


def apply_tag(issue: Issue, tag: str) -> WriteResult:
    """Add a tag to an in-memory issue without persisting it."""
    if tag in issue.tags:
        return WriteResult.NO_CHANGES
    if tag in LIFECYCLE_TAGS:
        issue.discard_tag(_COMPLEMENT[tag])
    issue.add_tag(tag)
    return WriteResult.APPLIED


class TagStore:
    """Persists tag changes of issues through a transaction."""

    def __init__(self, repo: IssueRepository) -> None:
        self.repo = repo

    def add(self, txn: Transaction, issue: Issue, tag: str) -> WriteResult:
        """Add a tag. Adding a present tag is a no-op.

        Raises:
            ValueError: If the tag name is invalid
        """
        validate_label(tag)
        result = apply_tag(issue, tag)
        if result is WriteResult.APPLIED:
            self.repo.save_tags(txn, issue)
        else:
            logger.warning("Issue %s is already tagged %s", self.repo.short_id(issue.id), tag)
        return result

    def remove(self, txn: Transaction, issue: Issue, tag: str) -> WriteResult:
        """Remove a tag. Removing a missing tag is a no-op.

        Raises:
            ReservedTagError: If the tag is ``open`` or ``closed``
        """
        if tag in LIFECYCLE_TAGS:
            msg = f"Tag '{tag}' is reserved; use close or reopen instead"
            raise ReservedTagError(msg)
        if tag not in issue.tags:
            logger.warning("Issue %s is not tagged %s", self.repo.short_id(issue.id), tag)
            return WriteResult.NO_CHANGES
        issue.discard_tag(tag)
        self.repo.save_tags(txn, issue)
        return WriteResult.APPLIED

    def close(self, txn: Transaction, issue: Issue) -> WriteResult:
        """Move an issue to the closed state."""
        return self._transition(txn, issue, TAG_CLOSED)

    def reopen(self, txn: Transaction, issue: Issue) -> WriteResult:
        """Move an issue to the open state."""
        return self._transition(txn, issue, TAG_OPEN)

    def _transition(self, txn: Transaction, issue: Issue, target: str) -> WriteResult:
        # A damaged issue may carry both lifecycle tags; the transition repairs it
        if target in issue.tags and _COMPLEMENT[target] not in issue.tags:
            logger.info("Issue %s is already %s", self.repo.short_id(issue.id), target)
            return WriteResult.NO_CHANGES
        issue.discard_tag(_COMPLEMENT[target])
        issue.add_tag(target)
        self.repo.save_tags(txn, issue)
        return WriteResult.APPLIED
