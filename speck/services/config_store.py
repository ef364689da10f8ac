"""Loading, saving and migrating .speck/config.json."""

import json
import os
from pathlib import Path
from typing import Any

from speck.config import SpeckConfig, default_speck_config, parse_speck_config
from speck.constants import CONFIG_FILENAME, CURRENT_CONFIG_VERSION, SPECK_DIR
from speck.exceptions import ConfigError, ConfigValidationError
from speck.logging_config import get_logger

logger = get_logger(__name__)


def get_config_path(repo_path: str) -> Path:
    """Absolute path to <repo>/.speck/config.json."""
    return Path(repo_path).resolve() / SPECK_DIR / CONFIG_FILENAME


def _read_raw(config_path: Path) -> Any:
    try:
        content = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file at {config_path}: {e}",
            path=str(config_path),
            cause=str(e),
        ) from e

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"Failed to parse configuration file at {config_path}: {e}",
            path=str(config_path),
            cause=str(e),
        ) from e


def load_config(repo_path: str) -> SpeckConfig:
    """Load configuration, falling back to built-in defaults when absent.

    Raises:
        ConfigError: if the file is not valid JSON
        ConfigValidationError: if the document violates the schema or has an
            outdated version
    """
    config_path = get_config_path(repo_path)

    if not config_path.exists():
        logger.debug(f"No config at {config_path}, using defaults")
        return default_speck_config()

    raw = _read_raw(config_path)
    config = parse_speck_config(raw)

    if config.version != CURRENT_CONFIG_VERSION:
        raise ConfigValidationError(
            f"Configuration at {config_path} has version '{config.version}', "
            f"expected '{CURRENT_CONFIG_VERSION}'. Run 'speck-worktree init' to migrate it.",
            validation_errors=[f"  - version: expected '{CURRENT_CONFIG_VERSION}'"],
        )

    logger.debug(f"Loaded config from {config_path}")
    return config


def save_config(repo_path: str, config: SpeckConfig) -> None:
    """Validate and write configuration with 2-space indent and trailing newline.

    The write is atomic: a temp file next to the target is renamed over it.
    """
    validated = parse_speck_config(config.to_dict())

    config_path = get_config_path(repo_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    content = json.dumps(validated.to_dict(), indent=2) + "\n"
    temp_file = config_path.with_suffix(".tmp")
    try:
        with open(temp_file, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        temp_file.replace(config_path)
        logger.info(f"Saved configuration to {config_path}")
    except OSError as e:
        raise ConfigError(
            f"Failed to write configuration file at {config_path}: {e}",
            path=str(config_path),
            cause=str(e),
        ) from e
    finally:
        if temp_file.exists():
            temp_file.unlink()


def migrate_config(repo_path: str) -> bool:
    """Rewrite an older config in the current schema.

    Returns:
        True if the file was rewritten, False if it is absent or already current
    """
    config_path = get_config_path(repo_path)
    if not config_path.exists():
        return False

    raw = _read_raw(config_path)
    if isinstance(raw, dict) and raw.get("version") == CURRENT_CONFIG_VERSION:
        return False

    # Only 1.0 exists so far; older documents are revalidated and restamped.
    if isinstance(raw, dict):
        raw = dict(raw)
        raw["version"] = CURRENT_CONFIG_VERSION
    migrated = parse_speck_config(raw)
    save_config(repo_path, migrated)
    logger.info(f"Migrated configuration at {config_path} to version {CURRENT_CONFIG_VERSION}")
    return True
