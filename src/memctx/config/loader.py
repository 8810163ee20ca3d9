"""Configuration file loader."""

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .settings import AppSettings

DEFAULT_CONFIG_PATH = Path.home() / ".claude-mem" / "memctx.yaml"

# Global settings instance
_settings: Optional[AppSettings] = None


def _expand_env_vars(obj):
    """Recursively expand ${VAR} patterns in strings."""
    if isinstance(obj, str):
        if obj.startswith("${") and obj.endswith("}"):
            var_name = obj[2:-1]
            return os.environ.get(var_name, "")
        return obj
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    return obj


def load_config(
    config_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
) -> AppSettings:
    """Load configuration from a YAML file and the environment.

    Args:
        config_path: Path to the YAML config (default: ~/.claude-mem/memctx.yaml)
        env_path: Path to a .env file (default: .env)

    Returns:
        Loaded AppSettings instance
    """
    global _settings

    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    config_data = {}
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

    config_data = _expand_env_vars(config_data)

    # Drop empty expansions so model defaults apply
    config_data = {
        section: {k: v for k, v in values.items() if v != ""}
        if isinstance(values, dict)
        else values
        for section, values in config_data.items()
    }

    _settings = AppSettings(**config_data)
    return _settings


def get_settings() -> AppSettings:
    """Get the current settings instance.

    Loads default settings if not yet loaded.
    """
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reset_settings() -> None:
    """Reset settings to None (for testing)."""
    global _settings
    _settings = None
