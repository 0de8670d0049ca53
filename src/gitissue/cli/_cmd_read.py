"""Show and list commands for the gitissue CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import typer

from gitissue.constants import DEFAULT_LIST_FORMAT
from gitissue.errors import GitIssueError
from gitissue.models import issue_to_dict, parse_due_date

from ._formatting import FormatString, format_issue_full, format_issue_table
from ._helpers import exit_code_for, get_repository
from ._json_state import echo_error, echo_json, is_json_output

if TYPE_CHECKING:
    from collections.abc import Callable

    from gitissue.models import Issue


def _due_key(issue: Issue) -> float | None:
    if issue.due_date is None:
        return None
    try:
        return parse_due_date(issue.due_date).timestamp()
    except ValueError:
        return None


# Sort key name -> key function; None sorts last
_ORDERS: dict[str, Callable[[Issue], Any]] = {
    "created": lambda issue: issue.created_at.timestamp() if issue.created_at else None,
    "due": _due_key,
    "title": lambda issue: issue.title.lower(),
    "milestone": lambda issue: issue.milestone,
}
_ORDER_ALIASES = {"%c": "created", "%d": "due", "%D": "title", "%M": "milestone"}


def _parse_format(value: str) -> FormatString:
    try:
        return FormatString.parse(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from None


def _parse_order(value: str) -> str:
    key = _ORDER_ALIASES.get(value, value)
    if key not in _ORDERS:
        choices = ", ".join([*_ORDERS, *_ORDER_ALIASES])
        msg = f"Unknown sort key '{value}', expected one of: {choices}"
        raise typer.BadParameter(msg)
    return key


def select_issues(
    issues: list[Issue],
    *,
    include_closed: bool = False,
    with_tags: list[str] | None = None,
    without_tags: list[str] | None = None,
    milestone: str | None = None,
    no_milestone: bool = False,
) -> list[Issue]:
    """Filter issues the way ``list`` options describe."""
    selected = []
    for issue in issues:
        if not include_closed and not issue.is_open:
            continue
        if with_tags and not all(tag in issue.tags for tag in with_tags):
            continue
        if without_tags and any(tag in issue.tags for tag in without_tags):
            continue
        if milestone is not None and issue.milestone != milestone:
            continue
        if no_milestone and issue.milestone is not None:
            continue
        selected.append(issue)
    return selected


def sort_issues(issues: list[Issue], order: str, reverse: bool = False) -> list[Issue]:
    """Sort issues by a list sort key, keeping issues without a value last."""
    key = _ORDERS[order]
    present = [issue for issue in issues if key(issue) is not None]
    missing = [issue for issue in issues if key(issue) is None]
    return sorted(present, key=key, reverse=reverse) + missing


def register(app: typer.Typer) -> None:
    """Register show and list commands."""

    @app.command()
    def show(
        ctx: typer.Context,
        issue_id: str = typer.Argument(..., help="Issue ID or unique prefix"),
        comments: bool = typer.Option(False, "--comments", "-c", help="Include comments"),
    ) -> None:
        """Show details of a specific issue."""
        try:
            repo = get_repository(ctx)
            issue = repo.find(issue_id)
            view = repo.formatted_view(issue)
            history = repo.history(issue)
        except (GitIssueError, ValueError) as e:
            echo_error(str(e))
            raise typer.Exit(exit_code_for(e)) from None

        if is_json_output():
            data = issue_to_dict(issue)
            if not comments:
                del data["comments"]
            data["history"] = [
                {
                    "sha": entry.sha,
                    "date": entry.date.isoformat(),
                    "author": entry.author,
                    "subject": entry.subject,
                }
                for entry in history
            ]
            echo_json(data)
        else:
            typer.echo(format_issue_full(issue, view, history, show_comments=comments))

    @app.command("list")
    def list_issues(
        ctx: typer.Context,
        all_issues: bool = typer.Option(
            False,
            "--all",
            "-a",
            help="Include closed issues",
        ),
        with_tags: list[str] | None = typer.Option(  # noqa: B008
            None,
            "--tag",
            "-t",
            help="Only issues with this tag (repeatable)",
        ),
        without_tags: list[str] | None = typer.Option(  # noqa: B008
            None,
            "--without-tag",
            "-T",
            help="Only issues without this tag (repeatable)",
        ),
        milestone: str | None = typer.Option(
            None,
            "--milestone",
            "-m",
            help="Only issues of this milestone",
        ),
        no_milestone: bool = typer.Option(
            False,
            "--no-milestone",
            "-M",
            help="Only issues without a milestone",
        ),
        order: str = typer.Option(
            "created",
            "--order",
            "-o",
            help="Sort key: created, due, title, milestone (or %c, %d, %D, %M)",
            callback=_parse_order,
        ),
        reverse: bool = typer.Option(False, "--reverse", "-r", help="Reverse the order"),
        list_format: str = typer.Option(
            DEFAULT_LIST_FORMAT,
            "--format",
            "-l",
            help="simple, oneline, short or a pattern of %i %I %D %M %c %d %T %n %%",
        ),
        table: bool = typer.Option(False, "--table", help="Render as a table"),
    ) -> None:
        """List open issues, or all issues with --all."""
        formatter = _parse_format(list_format)
        if milestone is not None and no_milestone:
            echo_error("--milestone and --no-milestone are mutually exclusive")
            raise typer.Exit(2)

        try:
            repo = get_repository(ctx)
            loaded, _errors = repo.all_issues()
            issues = select_issues(
                loaded,
                include_closed=all_issues,
                with_tags=with_tags,
                without_tags=without_tags,
                milestone=milestone,
                no_milestone=no_milestone,
            )
            rows = [(issue, repo.formatted_view(issue)) for issue in issues]
            issues = sort_issues(issues, order, reverse)
        except (GitIssueError, ValueError) as e:
            echo_error(str(e))
            raise typer.Exit(exit_code_for(e)) from None

        views = {issue.id: view for issue, view in rows}
        if is_json_output():
            echo_json([issue_to_dict(issue) for issue in issues])
        elif table:
            output = format_issue_table([(issue, views[issue.id]) for issue in issues])
            if output:
                typer.echo(output)
        else:
            for issue in issues:
                typer.echo(formatter.format(issue, views[issue.id]))
