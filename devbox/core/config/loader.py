"""
Configuration loader — reads devbox.json into the Config model.

This is the primary entry point for locating, loading, writing and
creating a project's devbox.json.  It reads JSON, validates against
the Pydantic schema, and returns typed domain objects.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from devbox.core.errors import ConfigError, ConfigMalformedError, ConfigNotFoundError
from devbox.core.models.config import Config
from devbox.core.persistence.files import atomic_write_text

logger = logging.getLogger(__name__)

# Name of the JSON file that defines a devbox environment
CONFIG_FILENAME = "devbox.json"


def find_config_dir(start_dir: Path | str | None = None) -> Path:
    """Find the directory holding devbox.json, walking up from ``start_dir``.

    This allows running commands from subdirectories and still finding
    the project root.  The filesystem root itself is checked last.

    Raises:
        ConfigNotFoundError: If no ancestor holds a devbox.json.
    """
    start = Path(start_dir) if start_dir else Path.cwd()
    current = start.resolve()

    while True:
        logger.debug("Looking for %s in %s", CONFIG_FILENAME, current)
        if (current / CONFIG_FILENAME).is_file():
            return current
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    raise _missing_config_error(start_dir)


def _missing_config_error(start_dir: Path | str | None) -> ConfigNotFoundError:
    """Build a not-found error naming the directory as the user typed it."""
    if start_dir in (None, "", ".") or Path(start_dir) == Path("."):
        where = "this directory"
    else:
        where = str(start_dir)
        try:
            where = os.path.relpath(Path(start_dir).resolve(), Path.cwd())
        except ValueError:
            pass  # different drive; keep the original spelling

    return ConfigNotFoundError(
        f"No {CONFIG_FILENAME} found in {where}, or any parent directories. "
        "Did you run `devbox init` yet?"
    )


def load_config(path: Path) -> Config:
    """Load and validate a devbox.json file.

    Raises:
        ConfigMalformedError: If the file is unreadable or invalid.
    """
    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigMalformedError(f"Cannot read {path}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigMalformedError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigMalformedError(
            f"Expected a JSON object in {path}, got {type(data).__name__}"
        )

    unknown = sorted(set(data) - set(Config.model_fields))
    if unknown:
        logger.debug("Ignoring unknown keys in %s: %s", path, ", ".join(unknown))

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigMalformedError(f"Invalid devbox configuration in {path}: {e}") from e

    logger.info("Loaded %s with %d packages", path, len(config.packages))
    return config


def save_config(config: Config, path: Path) -> None:
    """Rewrite devbox.json in full.

    Raises:
        ConfigError: If the file cannot be written.  The previous
            file is left unchanged.
    """
    content = json.dumps(config.to_json_dict(), indent=2, ensure_ascii=False) + "\n"
    try:
        atomic_write_text(path, content)
    except OSError as e:
        raise ConfigError(f"Cannot write {path}: {e}") from e
    logger.debug("Saved config to %s", path)


def init_config(directory: Path) -> bool:
    """Create a default devbox.json in ``directory`` if none exists.

    Returns:
        True if a file was created, False if one already existed.
    """
    path = directory / CONFIG_FILENAME
    if path.exists():
        logger.info("%s already exists", path)
        return False
    save_config(Config(), path)
    return True
