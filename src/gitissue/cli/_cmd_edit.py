"""Edit command for the gitissue CLI."""

from __future__ import annotations

import typer

from gitissue.editor import launch_editor
from gitissue.errors import GitIssueError
from gitissue.repository import serialize_description

from ._helpers import exit_code_for, get_repository
from ._json_state import echo_error, echo_json, is_json_output


def register(app: typer.Typer) -> None:
    """Register the edit command."""

    @app.command()
    def edit(
        ctx: typer.Context,
        issue_id: str = typer.Argument(..., help="Issue ID or unique prefix"),
    ) -> None:
        """Edit the description of an issue in $VISUAL/$EDITOR."""
        try:
            repo = get_repository(ctx)
            issue = repo.find(issue_id)
            edited = serialize_description(launch_editor(issue.description, repo.settings.editor))
            with repo.transactions.begin() as txn:
                issue.set_description(edited)
                repo.save_description(txn, issue)
                outcome = txn.commit(repo.messages.edit_description(issue))
        except typer.Exit:
            raise
        except (GitIssueError, ValueError) as e:
            echo_error(str(e))
            raise typer.Exit(exit_code_for(e)) from None

        if is_json_output():
            echo_json({"id": issue.id, "committed": outcome.committed})
        elif outcome.committed:
            typer.echo(f"✓ Updated {repo.short_id(issue.id)}: {issue.title}")
        else:
            typer.echo("Nothing to do")
