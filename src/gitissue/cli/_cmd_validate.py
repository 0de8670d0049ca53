"""Validate command for the gitissue CLI."""

from __future__ import annotations

import typer

from gitissue.errors import GitIssueError
from gitissue.validate import (
    ViolationKind,
    ensure_valid,
    fix_missing_newlines,
    validate_repository,
)

from ._helpers import exit_code_for, get_repository
from ._json_state import echo_error, echo_json, is_json_output


def register(app: typer.Typer) -> None:
    """Register the validate command."""

    @app.command()
    def validate(
        ctx: typer.Context,
        fix: bool = typer.Option(
            False,
            "--fix",
            help="Append missing trailing newlines in one commit",
        ),
    ) -> None:
        """Check the issues tree for structural problems."""
        fixed: list[str] = []
        try:
            repo = get_repository(ctx)
            violations = validate_repository(repo.storage)
            if fix:
                outcome = fix_missing_newlines(repo.transactions, violations)
                if outcome is not None:
                    fixed = [
                        v.path for v in violations if v.kind is ViolationKind.MISSING_NEWLINE
                    ]
                    violations = validate_repository(repo.storage)
        except (GitIssueError, ValueError) as e:
            echo_error(str(e))
            raise typer.Exit(exit_code_for(e)) from None

        if is_json_output():
            echo_json(
                {
                    "valid": not violations,
                    "fixed": fixed,
                    "violations": [
                        {"kind": v.kind.value, "path": v.path, "message": v.message}
                        for v in violations
                    ],
                },
            )
        else:
            for path in fixed:
                typer.echo(f"✓ Fixed missing newline in {path}")
            for violation in violations:
                typer.echo(f"{violation.kind.value}\t{violation}")
            if not violations:
                typer.echo("✓ Repository is valid")

        try:
            ensure_valid(violations)
        except GitIssueError as e:
            if not is_json_output():
                echo_error(str(e))
            raise typer.Exit(exit_code_for(e)) from None
