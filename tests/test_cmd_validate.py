"""Tests for the validate command."""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson
from cli_test_helpers import _new_issue, invoke

if TYPE_CHECKING:
    from pathlib import Path

    from conftest import GitRepo


def _tags_file(git_repo: GitRepo) -> Path:
    (path,) = (git_repo.issues_dir / "issues").glob("*/*/tags")
    return path


class TestValidate:
    """Test validating the issues tree."""

    def test_valid(self, git_repo: GitRepo) -> None:
        """Test a clean repository."""
        _new_issue(git_repo.issues_dir, "Title")
        result = invoke(git_repo.issues_dir, "validate")
        assert result.exit_code == 0, result.output
        assert "✓ Repository is valid" in result.stdout

    def test_missing_newline_reported(self, git_repo: GitRepo) -> None:
        """Test that a file without trailing newline fails validation."""
        _new_issue(git_repo.issues_dir, "Title")
        _tags_file(git_repo).write_text("open")
        result = invoke(git_repo.issues_dir, "validate")
        assert result.exit_code == 1
        assert "missing-newline\t" in result.stdout
        assert "1 violation(s)" in result.output

    def test_fix(self, git_repo: GitRepo) -> None:
        """Test that --fix appends newlines in one commit."""
        _new_issue(git_repo.issues_dir, "Title")
        tags = _tags_file(git_repo)
        tags.write_text("open")
        before = git_repo.commit_count()
        result = invoke(git_repo.issues_dir, "validate", "--fix")
        assert result.exit_code == 0, result.output
        assert "✓ Fixed missing newline in" in result.stdout
        assert tags.read_text() == "open\n"
        assert git_repo.commit_count() == before + 1
        assert git_repo.subjects()[0] == "gi: Fix missing newlines"

    def test_fix_leaves_other_violations(self, git_repo: GitRepo) -> None:
        """Test that --fix does not repair lifecycle problems."""
        _new_issue(git_repo.issues_dir, "Title")
        _tags_file(git_repo).write_text("open\nclosed\n")
        result = invoke(git_repo.issues_dir, "validate", "--fix")
        assert result.exit_code == 1
        assert "lifecycle\t" in result.stdout

    def test_json(self, git_repo: GitRepo) -> None:
        """Test JSON output lists every violation."""
        _new_issue(git_repo.issues_dir, "Title")
        _tags_file(git_repo).write_text("bug\n")
        result = invoke(git_repo.issues_dir, "--json", "validate")
        assert result.exit_code == 1
        data = orjson.loads(result.stdout)
        assert data["valid"] is False
        assert [v["kind"] for v in data["violations"]] == ["lifecycle"]
