"""gitissue CLI commands for distributed issue tracking."""

from __future__ import annotations

import typer

from ._helpers import CliState, SortedGroup, configure_logging

app = typer.Typer(
    help="git-issue - distributed issue tracking stored in git",
    no_args_is_help=True,
    cls=SortedGroup,
)


@app.callback(invoke_without_command=True)
def _global_options(
    ctx: typer.Context,
    strict: bool | None = typer.Option(
        None,
        "--strict/--no-strict",
        help="Reproduce the shell git-issue commit messages and short ids",
    ),
    release: bool | None = typer.Option(
        None,
        "--release/--no-release",
        help="Record the bare release version in commit trailers",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase log output (repeatable)",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON for all commands",
    ),
    issues_dir: str | None = typer.Option(
        None,
        "--issues-dir",
        help="Path to .issues directory (default: search upwards)",
    ),
) -> None:
    from ._json_state import set_json_flag

    set_json_flag(json_output)
    configure_logging(verbose, quiet)
    ctx.obj = CliState(issues_dir=issues_dir, strict=strict, release=release)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


from . import (  # noqa: E402
    _cmd_close,
    _cmd_edit,
    _cmd_init,
    _cmd_milestone,
    _cmd_new,
    _cmd_read,
    _cmd_tag,
    _cmd_validate,
)

for _mod in (
    _cmd_close,
    _cmd_edit,
    _cmd_init,
    _cmd_milestone,
    _cmd_new,
    _cmd_read,
    _cmd_tag,
    _cmd_validate,
):
    _mod.register(app)


def main() -> None:
    """Run the git-issue CLI application."""
    app()
