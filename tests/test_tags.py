"""Tests for the tag store and lifecycle state machine."""

from __future__ import annotations

import pytest
from cli_test_helpers import _make_issue

from gitissue.constants import LIFECYCLE_TAGS
from gitissue.errors import ReservedTagError
from gitissue.models import Issue, WriteResult
from gitissue.repository import IssueRepository, issue_path
from gitissue.tags import TagStore, apply_tag, validate_label


def _lifecycle(issue: Issue) -> set[str]:
    return issue.tags & LIFECYCLE_TAGS


def _commits(repo: IssueRepository) -> int:
    return len(repo.vcs.commits)  # type: ignore[attr-defined]


class TestApplyTag:
    """Test the in-memory tag algebra."""

    def test_adding_closed_drops_open(self) -> None:
        """Test that the lifecycle tags exclude each other."""
        issue = Issue(id="a" * 40, description="x\n", tags={"open"})
        assert apply_tag(issue, "closed") is WriteResult.APPLIED
        assert issue.tags == {"closed"}

    def test_plain_tags_are_union(self) -> None:
        """Test that free labels accumulate."""
        issue = Issue(id="a" * 40, description="x\n", tags={"open"})
        apply_tag(issue, "bug")
        apply_tag(issue, "ui")
        assert issue.tags == {"open", "bug", "ui"}

    def test_present_tag_is_no_change(self) -> None:
        """Test that re-adding a tag is a no-op."""
        issue = Issue(id="a" * 40, description="x\n", tags={"open", "bug"})
        assert apply_tag(issue, "bug") is WriteResult.NO_CHANGES


class TestValidateLabel:
    """Test tag and milestone name validation."""

    @pytest.mark.parametrize("label", ["", "two words", "line\nbreak"])
    def test_rejects(self, label: str) -> None:
        """Test that empty or whitespace labels are rejected."""
        with pytest.raises(ValueError, match="Invalid label"):
            validate_label(label)

    def test_accepts(self) -> None:
        """Test a plain label."""
        validate_label("needs-review")


class TestTagStore:
    """Test persisted tag changes."""

    def test_add_persists_sorted_tags(self, memory_repo: IssueRepository) -> None:
        """Test that tags are written sorted with a trailing newline."""
        issue = _make_issue(memory_repo, "Title")
        store = TagStore(memory_repo)
        with memory_repo.transactions.begin() as txn:
            assert store.add(txn, issue, "urgent") is WriteResult.APPLIED
            assert store.add(txn, issue, "bug") is WriteResult.APPLIED
            txn.commit(memory_repo.messages.add_tags(issue, ["urgent", "bug"]))
        text = memory_repo.storage.read(issue_path(issue.id, "tags"))
        assert text == "bug\nopen\nurgent\n"

    def test_add_present_tag_creates_no_commit(self, memory_repo: IssueRepository) -> None:
        """Test that an idempotent add leaves history untouched."""
        issue = _make_issue(memory_repo, "Title", tags=("bug",))
        before = _commits(memory_repo)
        with memory_repo.transactions.begin() as txn:
            assert TagStore(memory_repo).add(txn, issue, "bug") is WriteResult.NO_CHANGES
            assert not txn.commit("unused").committed
        assert _commits(memory_repo) == before

    def test_remove_tag(self, memory_repo: IssueRepository) -> None:
        """Test removing a free label."""
        issue = _make_issue(memory_repo, "Title", tags=("bug",))
        with memory_repo.transactions.begin() as txn:
            assert TagStore(memory_repo).remove(txn, issue, "bug") is WriteResult.APPLIED
            txn.commit(memory_repo.messages.remove_tags(issue, ["bug"]))
        assert memory_repo.storage.read(issue_path(issue.id, "tags")) == "open\n"

    def test_remove_missing_tag_is_no_change(self, memory_repo: IssueRepository) -> None:
        """Test that removing an absent tag is a no-op."""
        issue = _make_issue(memory_repo, "Title")
        with memory_repo.transactions.begin() as txn:
            assert TagStore(memory_repo).remove(txn, issue, "bug") is WriteResult.NO_CHANGES

    @pytest.mark.parametrize("tag", ["open", "closed"])
    def test_remove_reserved_tag_raises(self, memory_repo: IssueRepository, tag: str) -> None:
        """Test that lifecycle tags cannot be removed directly."""
        issue = _make_issue(memory_repo, "Title")
        with pytest.raises(ReservedTagError), memory_repo.transactions.begin() as txn:
            TagStore(memory_repo).remove(txn, issue, tag)
        assert ReservedTagError.exit_code == 22

    def test_add_invalid_tag_raises(self, memory_repo: IssueRepository) -> None:
        """Test that tags with whitespace are rejected."""
        issue = _make_issue(memory_repo, "Title")
        with pytest.raises(ValueError), memory_repo.transactions.begin() as txn:
            TagStore(memory_repo).add(txn, issue, "two words")


class TestLifecycle:
    """Test close/reopen transitions."""

    def test_close_then_reopen(self, memory_repo: IssueRepository) -> None:
        """Test the open -> closed -> open cycle."""
        issue = _make_issue(memory_repo, "Title")
        store = TagStore(memory_repo)
        with memory_repo.transactions.begin() as txn:
            assert store.close(txn, issue) is WriteResult.APPLIED
            txn.commit(memory_repo.messages.close([issue]))
        assert _lifecycle(issue) == {"closed"}
        with memory_repo.transactions.begin() as txn:
            assert store.reopen(txn, issue) is WriteResult.APPLIED
            txn.commit(memory_repo.messages.reopen([issue]))
        assert _lifecycle(issue) == {"open"}

    def test_close_closed_is_noop(self, memory_repo: IssueRepository) -> None:
        """Test that closing a closed issue creates no commit."""
        issue = _make_issue(memory_repo, "Title", tags=("closed",))
        before = _commits(memory_repo)
        with memory_repo.transactions.begin() as txn:
            assert TagStore(memory_repo).close(txn, issue) is WriteResult.NO_CHANGES
            assert not txn.commit("unused").committed
        assert _commits(memory_repo) == before

    def test_reopen_open_is_noop(self, memory_repo: IssueRepository) -> None:
        """Test that reopening an open issue creates no commit."""
        issue = _make_issue(memory_repo, "Title")
        with memory_repo.transactions.begin() as txn:
            assert TagStore(memory_repo).reopen(txn, issue) is WriteResult.NO_CHANGES

    def test_close_repairs_double_lifecycle(self, memory_repo: IssueRepository) -> None:
        """Test that closing an issue carrying both tags leaves only closed."""
        issue = _make_issue(memory_repo, "Title")
        issue.add_tag("closed")
        with memory_repo.transactions.begin() as txn:
            assert TagStore(memory_repo).close(txn, issue) is WriteResult.APPLIED
        assert _lifecycle(issue) == {"closed"}

    def test_exactly_one_lifecycle_tag_after_any_sequence(
        self,
        memory_repo: IssueRepository,
    ) -> None:
        """Test that arbitrary tag operations keep exactly one lifecycle tag."""
        issue = _make_issue(memory_repo, "Title", tags=("bug",))
        store = TagStore(memory_repo)
        steps = [
            lambda txn: store.add(txn, issue, "closed"),
            lambda txn: store.add(txn, issue, "ui"),
            lambda txn: store.reopen(txn, issue),
            lambda txn: store.add(txn, issue, "open"),
            lambda txn: store.close(txn, issue),
            lambda txn: store.remove(txn, issue, "bug"),
            lambda txn: store.close(txn, issue),
            lambda txn: store.add(txn, issue, "open"),
        ]
        for step in steps:
            with memory_repo.transactions.begin() as txn:
                step(txn)
                txn.commit("step")
            assert len(_lifecycle(issue)) == 1
            memory_repo.evict(issue.id)
            reloaded = memory_repo.load(issue.id)
            assert _lifecycle(reloaded) == _lifecycle(issue)
            issue = reloaded
            store = TagStore(memory_repo)
