"""Milestone commands for the gitissue CLI."""

from __future__ import annotations

import typer

from gitissue.errors import GitIssueError
from gitissue.milestones import MilestoneIndex
from gitissue.models import WriteResult

from ._formatting import format_milestone_table
from ._helpers import SortedGroup, exit_code_for, get_repository
from ._json_state import echo_error, echo_json, is_json_output

# Sub-app for 'git-issue milestone' subcommands
milestone_app = typer.Typer(
    help="List and assign milestones.",
    cls=SortedGroup,
)


def _list(ctx: typer.Context, include_all: bool, table: bool) -> None:
    try:
        repo = get_repository(ctx)
        index = MilestoneIndex(repo)
        summaries = index.list_milestones(include_all=include_all)
        unassigned = index.unassigned()
    except (GitIssueError, ValueError) as e:
        echo_error(str(e))
        raise typer.Exit(exit_code_for(e)) from None

    if is_json_output():
        echo_json(
            {
                "milestones": [
                    {"name": s.name, "open": s.open, "total": s.total} for s in summaries
                ],
                "unassigned": {"open": unassigned[0], "total": unassigned[1]},
            },
        )
    elif table:
        typer.echo(format_milestone_table(summaries, unassigned))
    else:
        for summary in summaries:
            typer.echo(f"{summary.name}\t{summary.open}/{summary.total}")
        typer.echo(f"No Milestone\t{unassigned[0]}/{unassigned[1]}")


def register(app: typer.Typer) -> None:
    """Register milestone commands."""
    app.add_typer(milestone_app, name="milestone")

    @milestone_app.callback(invoke_without_command=True)
    def milestone(ctx: typer.Context) -> None:
        """Manage milestones; lists them when no subcommand is given."""
        if ctx.invoked_subcommand is None:
            _list(ctx, include_all=False, table=False)

    @milestone_app.command("list")
    def milestone_list(
        ctx: typer.Context,
        include_all: bool = typer.Option(
            False,
            "--all",
            "-a",
            help="Include milestones whose issues are all closed",
        ),
        table: bool = typer.Option(False, "--table", help="Render as a table"),
    ) -> None:
        """List milestones with open/total issue counts."""
        _list(ctx, include_all=include_all, table=table)

    @milestone_app.command("set")
    def milestone_set(
        ctx: typer.Context,
        issue_id: str = typer.Argument(..., help="Issue ID or unique prefix"),
        name: str = typer.Argument(..., help="Milestone name"),
    ) -> None:
        """Set the milestone of an issue."""
        _assign(ctx, issue_id, name)

    @milestone_app.command("remove")
    def milestone_remove(
        ctx: typer.Context,
        issue_id: str = typer.Argument(..., help="Issue ID or unique prefix"),
    ) -> None:
        """Remove the milestone of an issue."""
        _assign(ctx, issue_id, None)


def _assign(ctx: typer.Context, issue_id: str, name: str | None) -> None:
    try:
        repo = get_repository(ctx)
        issue = repo.find(issue_id)
        previous = issue.milestone
        with repo.transactions.begin() as txn:
            result = MilestoneIndex(repo).assign(txn, issue, name)
            if result is WriteResult.APPLIED:
                if name is None:
                    message = repo.messages.remove_milestone(issue, previous or "")
                else:
                    message = repo.messages.set_milestone(issue, name)
                txn.commit(message)
    except (GitIssueError, ValueError) as e:
        echo_error(str(e))
        raise typer.Exit(exit_code_for(e)) from None

    short = repo.short_id(issue.id)
    if is_json_output():
        echo_json({"id": issue.id, "milestone": issue.milestone, "result": result.value})
    elif result is WriteResult.NO_CHANGES:
        typer.echo("Nothing to do")
    elif name is None:
        typer.echo(f"✓ Removed milestone {previous} from {short}")
    else:
        typer.echo(f"✓ Set milestone {name} on {short}")
