"""Configuration loader for lobbywatch

Configurable values come from config/config.yaml. Every key has a default
in the schema, so a missing default file means "run with defaults".

Configuration is validated at load time using Pydantic.
Typos and invalid values fail fast with clear error messages.

Usage:
    from lobbywatch.config import load_config, get, get_validated_config

    # Load and validate (call once at startup)
    load_config("config/config.yaml")

    # Get values by dot-path
    interval = get("discovery.scan_interval")

    # Or use the typed config object (preferred)
    config = get_validated_config()
    interval = config.discovery.scan_interval
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .config_schema import AppConfig, load_validated_config, validate_config_dict


# Global config instances
_config: dict[str, Any] | None = None
_validated_config: AppConfig | None = None

# Default config path (repository checkout: <root>/config/config.yaml)
DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parents[2] / "config" / "config.yaml"


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load and validate configuration from YAML file.

    Validates the config against the Pydantic schema. Invalid configs
    raise a ValidationError with details about what's wrong.

    Args:
        config_path: Path to config file. Defaults to config/config.yaml;
            if that default does not exist the schema defaults are used.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If an explicitly given config file doesn't exist.
        pydantic.ValidationError: If config is invalid.
    """
    global _config, _validated_config

    if config_path is None and not DEFAULT_CONFIG_PATH.exists():
        _config = {}
        _validated_config = validate_config_dict(_config)
        return _config

    path: Path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    _validated_config = load_validated_config(path)

    with open(path) as f:
        loaded: Any = yaml.safe_load(f)
        if not isinstance(loaded, dict):
            loaded = {}
        _config = loaded

    return _config


def reset_config() -> None:
    """Forget any loaded configuration (next access reloads the default)."""
    global _config, _validated_config
    _config = None
    _validated_config = None


def get_config() -> dict[str, Any]:
    """Get the loaded configuration dict. Loads default if not already loaded.

    For typed access, use get_validated_config() instead.
    """
    global _config
    if _config is None:
        load_config()
    if _config is None:
        raise RuntimeError("Config failed to load. Call load_config() first.")
    return _config


def get_validated_config() -> AppConfig:
    """Get the validated configuration object.

    Returns a typed AppConfig instance with IDE autocompletion support.
    Loads default config if not already loaded.
    """
    global _validated_config
    if _validated_config is None:
        load_config()
    if _validated_config is None:
        raise RuntimeError("Validated config failed to load. Call load_config() first.")
    return _validated_config


def get(key: str, default: Any = None) -> Any:
    """Get a config value by dot-separated key path.

    Values not present in the YAML file fall back to the validated
    schema defaults before falling back to ``default``.

    Examples:
        get("discovery.pattern")
        get("reporter.obsolete_after_seconds")
    """
    keys: list[str] = key.split(".")

    for source in (get_config(), get_validated_config().model_dump()):
        value: Any = source
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                break
        else:
            return value

    return default


def set_config_value(key: str, value: Any) -> None:
    """Set a config value by dot-separated key path.

    Used for runtime overrides (e.g., CLI args). The whole config is
    re-validated, so an invalid override raises immediately.

    Args:
        key: Dot-separated key path (e.g., "discovery.pattern")
        value: Value to set
    """
    global _config, _validated_config

    if _config is None:
        load_config()

    if _config is None:
        raise RuntimeError("Config failed to load. Call load_config() first.")

    keys = key.split(".")
    target = _config

    # Navigate to parent
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            target[k] = {}
        target = target[k]

    target[keys[-1]] = value

    _validated_config = validate_config_dict(_config)
