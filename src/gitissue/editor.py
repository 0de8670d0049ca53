"""External editor invocation for descriptions."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import tempfile
from pathlib import Path

from gitissue.errors import ExternalToolFailureError

logger = logging.getLogger(__name__)

DEFAULT_EDITOR = "vi"


def get_editor(configured: str | None = None) -> str:
    """Get the editor command in order of precedence.

    1. ``editor`` from config.toml
    2. VISUAL environment variable
    3. EDITOR environment variable
    4. vi
    """
    for candidate in (configured, os.environ.get("VISUAL"), os.environ.get("EDITOR")):
        if candidate:
            return candidate
    return DEFAULT_EDITOR


def strip_comments(text: str) -> str:
    """Drop lines starting with '#' and surrounding blank lines."""
    lines = [line for line in text.splitlines() if not line.startswith("#")]
    return "\n".join(lines).strip()


def launch_editor(initial_content: str = "", editor: str | None = None) -> str:
    """Launch editor for user input.

    Args:
        initial_content: Pre-fill editor with this content
        editor: Editor command (default: from the environment)

    Returns:
        User-edited content without comment lines

    Raises:
        ExternalToolFailureError: If the editor is killed or exits non-zero
        ValueError: If the edited content is empty
    """
    command = shlex.split(editor or get_editor())

    with tempfile.NamedTemporaryFile(
        mode="w",
        suffix=".txt",
        prefix="gi-",
        delete=False,
        encoding="utf-8",
    ) as f:
        temp_file = Path(f.name)
        f.write(initial_content)

    try:
        logger.debug("Running editor %s", command)
        try:
            result = subprocess.run([*command, str(temp_file)], check=False)
        except OSError as e:
            msg = f"Failed to run editor '{command[0]}': {e}"
            raise ExternalToolFailureError(msg, 127) from e

        if result.returncode < 0:
            msg = "Editor terminated by signal"
            raise ExternalToolFailureError(msg, result.returncode)
        if result.returncode == 1:
            msg = "Editor aborted"
            raise ExternalToolFailureError(msg, result.returncode)
        if result.returncode != 0:
            msg = "Editor exited with error"
            raise ExternalToolFailureError(msg, result.returncode)

        content = strip_comments(temp_file.read_text(encoding="utf-8"))
    finally:
        temp_file.unlink(missing_ok=True)

    if not content:
        msg = "Empty message, aborting"
        raise ValueError(msg)
    return content
