"""Tag command for the gitissue CLI."""

from __future__ import annotations

import typer

from gitissue.errors import GitIssueError
from gitissue.models import WriteResult, issue_to_dict
from gitissue.tags import TagStore

from ._helpers import exit_code_for, get_repository
from ._json_state import echo_error, echo_json, is_json_output


def register(app: typer.Typer) -> None:
    """Register the tag command."""

    @app.command()
    def tag(
        ctx: typer.Context,
        issue_id: str = typer.Argument(..., help="Issue ID or unique prefix"),
        tags: list[str] = typer.Argument(..., help="Tags to add or remove"),  # noqa: B008
        remove: bool = typer.Option(
            False,
            "--remove",
            "-r",
            help="Remove the tags instead of adding them",
        ),
    ) -> None:
        """Add or remove tags of an issue."""
        try:
            repo = get_repository(ctx)
            issue = repo.find(issue_id)
            store = TagStore(repo)
            with repo.transactions.begin() as txn:
                changed = []
                for name in tags:
                    result = store.remove(txn, issue, name) if remove else store.add(txn, issue, name)
                    if result is WriteResult.APPLIED:
                        changed.append(name)
                if changed:
                    message = (
                        repo.messages.remove_tags(issue, changed)
                        if remove
                        else repo.messages.add_tags(issue, changed)
                    )
                    txn.commit(message)
        except typer.Exit:
            raise
        except (GitIssueError, ValueError) as e:
            echo_error(str(e))
            raise typer.Exit(exit_code_for(e)) from None

        if is_json_output():
            echo_json(issue_to_dict(issue))
        elif not changed:
            typer.echo("Nothing to do")
        else:
            verb = "Removed" if remove else "Added"
            typer.echo(
                f"✓ {verb} {', '.join(changed)} on {repo.short_id(issue.id)}: {issue.title}"
            )
