"""Configuration file handling for gitissue."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from gitissue.constants import ENV_RELEASE, ENV_STRICT

logger = logging.getLogger(__name__)

# Config filename
CONFIG_FILENAME = "config.toml"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True)
class Settings:
    """Engine settings, resolved once per process."""

    strict: bool = False
    release: bool = False
    editor: str | None = None


def get_config_path(issues_dir: str | Path) -> Path:
    """Get the path to the config file.

    Args:
        issues_dir: Path to .issues directory

    Returns:
        Path to config.toml
    """
    return Path(issues_dir) / CONFIG_FILENAME


def load_config(issues_dir: str | Path) -> dict[str, Any]:
    """Load configuration from .issues/config.toml.

    Args:
        issues_dir: Path to .issues directory

    Returns:
        Configuration dictionary, or empty dict if no config exists
    """
    config_path = get_config_path(issues_dir)
    if not config_path.exists():
        return {}

    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return {}


def save_config(issues_dir: str | Path, config: dict[str, Any]) -> None:
    """Save configuration to .issues/config.toml.

    Args:
        issues_dir: Path to .issues directory
        config: Configuration dictionary to save
    """
    config_path = get_config_path(issues_dir)

    # Ensure directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with config_path.open("wb") as f:
        tomli_w.dump(config, f)


def default_config() -> dict[str, Any]:
    """Return the configuration written by ``init``."""
    return {"strict_compatibility": False, "release": False}


def _env_flag(name: str) -> bool | None:
    """Read a boolean environment override, None when unset."""
    raw = os.environ.get(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    msg = f"Invalid boolean value for {name}: {raw!r}"
    raise ValueError(msg)


def _config_flag(config: dict[str, Any], key: str) -> bool | None:
    value = config.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        msg = f"Config key '{key}' must be true or false, got {value!r}"
        raise ValueError(msg)
    return value


def resolve_settings(
    issues_dir: str | Path | None = None,
    *,
    strict: bool | None = None,
    release: bool | None = None,
) -> Settings:
    """Build the process settings.

    Precedence is CLI flag, then environment, then config file, then default.

    Args:
        issues_dir: Path to .issues directory, or None when there is none yet
        strict: ``--strict/--no-strict`` value, None when not given
        release: ``--release/--no-release`` value, None when not given

    Returns:
        Frozen Settings

    Raises:
        ValueError: If an environment variable or config value is not a boolean
    """
    config = load_config(issues_dir) if issues_dir is not None else {}

    def pick(flag: bool | None, env_name: str, key: str) -> bool:
        for value in (flag, _env_flag(env_name), _config_flag(config, key)):
            if value is not None:
                return value
        return False

    editor = config.get("editor")
    settings = Settings(
        strict=pick(strict, ENV_STRICT, "strict_compatibility"),
        release=pick(release, ENV_RELEASE, "release"),
        editor=str(editor) if editor else None,
    )
    logger.debug("Resolved settings: %s", settings)
    return settings
