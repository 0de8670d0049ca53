"""Shared infrastructure for gitissue CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from typer.core import TyperGroup

from gitissue.config import resolve_settings
from gitissue.errors import GitIssueError
from gitissue.repository import find_issues_dir, open_repository

if TYPE_CHECKING:
    import click

    from gitissue.repository import IssueRepository


class SortedGroup(TyperGroup):
    """Typer group that lists commands in alphabetical order."""

    def list_commands(self, ctx: click.Context) -> list[str]:
        """Return commands sorted alphabetically."""
        return sorted(super().list_commands(ctx))


def configure_logging(verbose: int, quiet: bool) -> None:
    """Map ``-v`` count and ``-q`` to the root log level."""
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", force=True)


@dataclass
class CliState:
    """Global options of one CLI invocation."""

    issues_dir: str | None = None
    strict: bool | None = None
    release: bool | None = None
    _repo: IssueRepository | None = field(default=None, repr=False)

    def repository(self) -> IssueRepository:
        """Open the repository once per invocation.

        Raises:
            RepositoryNotFoundError: If no .issues directory is found
            ValueError: If a configuration value is invalid
        """
        if self._repo is None:
            path = Path(self.issues_dir) if self.issues_dir else find_issues_dir()
            settings = resolve_settings(path, strict=self.strict, release=self.release)
            self._repo = open_repository(path, settings)
        return self._repo


def get_repository(ctx: typer.Context) -> IssueRepository:
    """Get the repository selected by the global options."""
    return ctx.ensure_object(CliState).repository()


def exit_code_for(error: Exception) -> int:
    """Return the process exit code for an error reaching the CLI."""
    if isinstance(error, GitIssueError):
        return error.exit_code
    return 1
