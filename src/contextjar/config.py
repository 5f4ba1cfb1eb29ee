"""Loading and first-run creation of the TOML configuration file."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

import structlog
from pydantic import ValidationError

from contextjar.models.config import ContextJarConfig

CONFIG_ENV_VAR = "CONTEXT_JAR_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/context-jar/config.toml")

DEFAULT_CONFIG_TOML = """\
# Context Jar configuration

# Models that cleanup runs for, as "provider/model" strings.
allowed_models = [
    "anthropic/claude-3-5-sonnet-20241022",
    "openai/gpt-4o",
    "anthropic/claude-3-haiku-20240307",
]

# Whether to enforce the allow-list (false = clean up for every model)
enforced = true

# Optional: override models for specific tools
[tool_overrides]
task = "anthropic/claude-3-haiku-20240307"

# Files that cleanup never touches
[protected_files]
# Extensions, with or without the leading dot
extensions = [".md", ".txt"]
# Glob-like patterns (* and ?) matched against the full path and the base name
patterns = ["*.config.*", "README*", "*.json"]
"""

_logger = structlog.get_logger("contextjar.config")


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Explicit path, else ``$CONTEXT_JAR_CONFIG``, else the default location."""
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def create_default_config(path: str | Path | None = None) -> Path:
    """Write the commented default config file, creating parent directories."""
    target = resolve_config_path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(DEFAULT_CONFIG_TOML, encoding="utf-8")
    _logger.info("config_created", path=str(target))
    return target


def load_config(path: str | Path | None = None) -> ContextJarConfig | None:
    """
    Read and validate the config file.

    Returns:
        The parsed config, or None when the file is missing, unreadable,
        not valid TOML, or fails validation.
    """
    target = resolve_config_path(path)
    try:
        with target.open("rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError:
        return None
    except (OSError, tomllib.TOMLDecodeError) as exc:
        _logger.warning("config_unreadable", path=str(target), error=str(exc))
        return None

    try:
        return ContextJarConfig.model_validate(data)
    except ValidationError as exc:
        _logger.warning("config_invalid", path=str(target), error=str(exc))
        return None


def load_or_create_config(path: str | Path | None = None) -> ContextJarConfig | None:
    """
    Load the config, writing the defaults first if no file exists yet.

    An existing but broken file is left as is; the caller gets None and
    skips cleanup rather than blocking the request.
    """
    target = resolve_config_path(path)
    config = load_config(target)
    if config is not None or target.exists():
        return config
    try:
        create_default_config(target)
    except OSError as exc:
        _logger.warning("config_create_failed", path=str(target), error=str(exc))
        return None
    return load_config(target)
