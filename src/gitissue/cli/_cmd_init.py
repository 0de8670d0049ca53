"""Init command for the gitissue CLI."""

from __future__ import annotations

from pathlib import Path

import typer

from gitissue.config import resolve_settings
from gitissue.constants import ISSUES_DIR_NAME
from gitissue.errors import GitIssueError
from gitissue.repository import init_repository

from ._helpers import CliState, exit_code_for
from ._json_state import echo_error, echo_json, is_json_output


def register(app: typer.Typer) -> None:
    """Register the init command."""

    @app.command()
    def init(
        ctx: typer.Context,
        path: str = typer.Argument(".", help="Directory that receives .issues"),
        existing: bool = typer.Option(
            False,
            "--existing",
            "-e",
            help="Track issues in the enclosing git repository",
        ),
    ) -> None:
        """Create an issues repository."""
        state = ctx.ensure_object(CliState)
        try:
            settings = resolve_settings(strict=state.strict, release=state.release)
            init_repository(Path(path), existing=existing, settings=settings)
        except (GitIssueError, ValueError) as e:
            echo_error(str(e))
            raise typer.Exit(exit_code_for(e)) from None

        root = Path(path).resolve() / ISSUES_DIR_NAME
        if is_json_output():
            echo_json({"issues_dir": str(root), "existing": existing})
        else:
            typer.echo(f"✓ Initialized issues repository in {root}")
