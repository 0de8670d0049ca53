"""Close and reopen commands for the gitissue CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from gitissue.errors import GitIssueError
from gitissue.models import WriteResult, issue_to_dict
from gitissue.tags import TagStore

from ._helpers import exit_code_for, get_repository
from ._json_state import echo_error, echo_json, is_json_output

if TYPE_CHECKING:
    from gitissue.models import Issue


def register(app: typer.Typer) -> None:
    """Register close and reopen commands."""

    def _transition(ctx: typer.Context, issue_ids: list[str], closing: bool) -> None:
        """Move all issues to one state in a single commit."""
        target = "closed" if closing else "open"
        try:
            repo = get_repository(ctx)
            # Resolve everything before the first write
            issues: list[Issue] = []
            for issue_id in issue_ids:
                issue = repo.find(issue_id)
                if issue not in issues:
                    issues.append(issue)

            store = TagStore(repo)
            changed: list[Issue] = []
            with repo.transactions.begin() as txn:
                for issue in issues:
                    result = store.close(txn, issue) if closing else store.reopen(txn, issue)
                    if result is WriteResult.APPLIED:
                        changed.append(issue)
                if changed:
                    message = (
                        repo.messages.close(changed) if closing else repo.messages.reopen(changed)
                    )
                    txn.commit(message)
        except typer.Exit:
            raise
        except (GitIssueError, ValueError) as e:
            echo_error(str(e))
            raise typer.Exit(exit_code_for(e)) from None

        if is_json_output():
            echo_json([issue_to_dict(issue) for issue in issues])
            return
        for issue in issues:
            short = repo.short_id(issue.id)
            if issue in changed:
                verb = "Closed" if closing else "Reopened"
                typer.echo(f"✓ {verb} {short}: {issue.title}")
            else:
                typer.echo(f"Issue {short} is already {target}")

    @app.command()
    def close(
        ctx: typer.Context,
        issue_ids: list[str] = typer.Argument(  # noqa: B008
            ...,
            help="Issue ID(s) to close",
        ),
    ) -> None:
        """Close one or more issues."""
        _transition(ctx, issue_ids, closing=True)

    @app.command()
    def reopen(
        ctx: typer.Context,
        issue_ids: list[str] = typer.Argument(  # noqa: B008
            ...,
            help="Issue ID(s) to reopen",
        ),
    ) -> None:
        """Reopen one or more closed issues."""
        _transition(ctx, issue_ids, closing=False)
