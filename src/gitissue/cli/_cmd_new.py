"""New issue command for the gitissue CLI."""

from __future__ import annotations

import typer

from gitissue.editor import launch_editor
from gitissue.errors import GitIssueError
from gitissue.models import issue_to_dict, parse_due_date

from ._helpers import exit_code_for, get_repository
from ._json_state import echo_error, echo_json, is_json_output


def register(app: typer.Typer) -> None:
    """Register the new command."""

    @app.command()
    def new(
        ctx: typer.Context,
        summary: str | None = typer.Option(
            None,
            "--summary",
            "-s",
            help="One-line summary; opens the editor when omitted",
        ),
        tags: list[str] | None = typer.Option(  # noqa: B008
            None,
            "--tag",
            "-t",
            help="Tag to add (repeatable)",
        ),
        milestone: str | None = typer.Option(
            None,
            "--milestone",
            "-m",
            help="Milestone of the issue",
        ),
        due: str | None = typer.Option(
            None,
            "--due-date",
            "-d",
            help="Due date as an ISO-8601 timestamp",
        ),
        edit: bool = typer.Option(
            False,
            "--edit",
            "-e",
            help="Edit the description in $VISUAL/$EDITOR",
        ),
    ) -> None:
        """Create a new issue."""
        try:
            repo = get_repository(ctx)

            due_date = None
            if due is not None:
                try:
                    due_date = parse_due_date(due).isoformat()
                except ValueError:
                    msg = f"Invalid due date '{due}', expected an ISO-8601 timestamp"
                    raise ValueError(msg) from None

            if summary is None or edit:
                template = repo.read_template("description")
                if summary:
                    template = f"{summary}\n{template}"
                description = launch_editor(template, repo.settings.editor)
            else:
                description = summary

            with repo.transactions.begin() as txn:
                issue = repo.create(
                    txn,
                    description,
                    tags=tags or [],
                    milestone=milestone,
                    due_date=due_date,
                )
                txn.commit(repo.messages.new_issue(issue))
        except typer.Exit:
            raise
        except (GitIssueError, ValueError) as e:
            echo_error(str(e))
            raise typer.Exit(exit_code_for(e)) from None

        if is_json_output():
            echo_json(issue_to_dict(issue))
        else:
            typer.echo(f"✓ Added issue {repo.short_id(issue.id)}: {issue.title}")
