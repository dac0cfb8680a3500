"""Configuration management for xkbmon."""

import json
import os
from pathlib import Path
from typing import Any

# Default configuration values
DEFAULT_CONFIG = {
    "display": None,
    "poll_interval_ms": 50,
    "fallback_format": "G{index}",
}


def get_app_data_dir() -> Path:
    """
    Get application data directory.

    Returns:
        Path to $XDG_CONFIG_HOME/xkbmon (~/.config/xkbmon by default)
    """
    config_home = os.getenv("XDG_CONFIG_HOME")
    if not config_home:
        config_home = os.path.expanduser("~/.config")
    return Path(config_home) / "xkbmon"


def get_config_path() -> Path:
    """
    Get path to config.json file.

    Returns:
        Path to config.json
    """
    return get_app_data_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """
    Load configuration from file, creating default if missing.

    Returns:
        Configuration dictionary
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = json.load(f)
            if not isinstance(config, dict):
                raise ValueError("config root must be an object")
            return validate_config(config)
        except (json.JSONDecodeError, ValueError, OSError):
            # Corrupted config is replaced with defaults
            config = DEFAULT_CONFIG.copy()
            save_config(config)
            return config
    else:
        config = DEFAULT_CONFIG.copy()
        save_config(config)
        return config


def save_config(config: dict[str, Any]) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration dictionary to save
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    validated_config = validate_config(config)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(validated_config, f, indent=2, ensure_ascii=False)


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """
    Validate and normalize configuration values.

    Args:
        config: Configuration dictionary to validate

    Returns:
        Validated configuration dictionary
    """
    validated = DEFAULT_CONFIG.copy()
    validated.update(config)

    if "display" in config:
        display = config["display"]
        validated["display"] = str(display) if display else None

    if "poll_interval_ms" in config:
        try:
            value = int(config["poll_interval_ms"])
            if value < 0:
                value = DEFAULT_CONFIG["poll_interval_ms"]
            # Zero would turn the watcher into a busy loop
            validated["poll_interval_ms"] = max(value, 1)
        except (ValueError, TypeError):
            validated["poll_interval_ms"] = DEFAULT_CONFIG["poll_interval_ms"]

    if "fallback_format" in config:
        validated["fallback_format"] = _validate_fallback_format(config["fallback_format"])

    return validated


def _validate_fallback_format(value: Any) -> str:
    # Fallback text is printed as is, so it must not depend on the locale
    if not isinstance(value, str) or not value.isascii() or "{index}" not in value:
        return DEFAULT_CONFIG["fallback_format"]
    try:
        value.format(index=0)
    except (KeyError, IndexError, ValueError):
        return DEFAULT_CONFIG["fallback_format"]
    return value
