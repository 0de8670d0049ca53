"""Global JSON output state for the gitissue CLI."""

from __future__ import annotations

import sys
from typing import Any

import orjson
import typer

_global_json: bool = False


def set_json_flag(value: bool) -> None:
    """Set the global JSON output flag."""
    global _global_json  # noqa: PLW0603
    _global_json = value


def is_json_output() -> bool:
    """Check if JSON output is enabled."""
    return _global_json


def echo_json(data: Any) -> None:
    """Write data as indented JSON to stdout."""
    typer.echo(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode())


def echo_error(message: str) -> None:
    """Output an error message, formatted as JSON if in JSON mode.

    In JSON mode, outputs ``{"error": "..."}`` to stderr.
    In plain mode, outputs ``Error: ...`` to stderr.
    """
    if _global_json:
        sys.stderr.write(orjson.dumps({"error": message}).decode() + "\n")
    else:
        typer.echo(f"Error: {message}", err=True)
