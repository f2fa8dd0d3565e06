"""Persistent JSON config helpers.

Stores connection defaults, display preferences, and the last displayed
path per server address. Malformed or missing config falls back to ``{}``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from platformdirs import user_config_dir, user_log_dir

logger = logging.getLogger(__name__)

APP_NAME = "vaultwalker"
CONFIG_FILENAME = "config.json"
LOG_FILENAME = "vaultwalker.log"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
DEFAULT_LOG_PATH = Path(user_log_dir(APP_NAME, appauthor=False)) / LOG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError):
        logger.warning("ignoring unreadable config file %s", CONFIG_PATH, exc_info=True)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON; write errors are logged, not raised."""
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError:
        logger.warning("could not write config file %s", CONFIG_PATH, exc_info=True)


def load_string(key: str, config: dict[str, object] | None = None) -> str | None:
    """Return a non-empty string setting, or ``None``."""
    data = load_config() if config is None else config
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def load_timeout(config: dict[str, object] | None = None) -> float | None:
    """Return a positive ``timeout`` in seconds; booleans and other types are ignored."""
    data = load_config() if config is None else config
    value = data.get("timeout")
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return None
    return float(value)


def load_last_path(addr: str, config: dict[str, object] | None = None) -> str | None:
    """Last displayed store path for the server at ``addr``."""
    data = load_config() if config is None else config
    paths = data.get("last_paths")
    if not isinstance(paths, dict):
        return None
    value = paths.get(addr)
    return value if isinstance(value, str) and value else None


def save_last_path(addr: str, path: str) -> None:
    config = load_config()
    paths = config.get("last_paths")
    if not isinstance(paths, dict):
        paths = {}
    paths[addr] = path
    config["last_paths"] = paths
    save_config(config)


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_LOG_PATH",
    "load_config",
    "load_last_path",
    "load_string",
    "load_timeout",
    "save_config",
    "save_last_path",
]
