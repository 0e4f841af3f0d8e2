"""
Configuration loader — reads connections.yml into a StatusConfig.

YAML is parsed with PyYAML and validated against the Pydantic models.
A missing file is not an error for propagation (status updates are
opt-in); callers decide via ``find_config_file`` returning None.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from commit_status.core.models.connection import StatusConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "connections.yml"


class ConfigError(Exception):
    """Raised when the connections file is invalid or unreadable."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for connections.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to connections.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path) -> StatusConfig:
    """Load and validate the connections file.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading connections from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = StatusConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid connection configuration: {e}") from e

    names = [c.name for c in config.connections]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate connection names: {', '.join(duplicates)}")

    if config.default_connection and config.get_connection(config.default_connection) is None:
        raise ConfigError(
            f"default_connection '{config.default_connection}' is not a declared connection"
        )

    logger.info("Loaded %d connection(s) from %s", len(config.connections), path)
    return config


def load_config_or_empty(path: Path | None = None) -> StatusConfig:
    """Load the given (or discovered) file; an empty config when there is none."""
    if path is None:
        path = find_config_file()
    if path is None:
        logger.debug("No %s found, no connections configured", CONFIG_FILE)
        return StatusConfig()
    return load_config(path)
