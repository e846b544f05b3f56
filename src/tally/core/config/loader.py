"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from tally.utils.project import get_tally_path

from .models import TallyConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"

# Global cache to avoid reloading config multiple times per session
_config_cache: TallyConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """Return ~/.config/tally/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "tally" / CONFIG_FILE


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Project directory (defaults to current directory)

    Returns:
        Path to .tally/config.json in the project
    """
    if cwd is None:
        cwd = Path.cwd()
    return get_tally_path(cwd) / CONFIG_FILE


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested
    dicts are merged, not replaced.

    Example:
        >>> deep_merge({"sync": {"parallel": True}, "a": 1}, {"sync": {"parallel": False}})
        {'sync': {'parallel': False}, 'a': 1}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config is resilient: a broken file is ignored, not fatal
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _parse_bool(value: str) -> bool:
    return value.lower() not in ("false", "0", "no", "")


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        TALLY_HOME - overrides home_dir
        TALLY_SYNC_PARALLEL - overrides sync.parallel
        TALLY_LOG_LEVEL - overrides logging.level

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if home := os.environ.get("TALLY_HOME"):
        result["home_dir"] = home

    if parallel_str := os.environ.get("TALLY_SYNC_PARALLEL"):
        result["sync"] = {**result.get("sync", {}), "parallel": _parse_bool(parallel_str)}

    if level := os.environ.get("TALLY_LOG_LEVEL"):
        result["logging"] = {**result.get("logging", {}), "level": level}

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "home_dir": "~/.tally",
        "sync": {"parallel": True},
        "items": {
            "allowed_statuses": ["open", "in-progress", "closed"],
            "default_status": "open",
            "priority_levels": 3,
        },
        "logging": {"level": "WARNING"},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> TallyConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (TALLY_*)
        2. Project config (.tally/config.json)
        3. User config (~/.config/tally/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .tally/config.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated TallyConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation

    Example:
        >>> config = load_config()
        >>> config.items.default_status
        'open'
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = TallyConfig(**merged)
    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
