"""Configuration management for memctx."""

from .loader import get_settings, load_config, reset_settings
from .settings import AppSettings, EditorSettings, LoggingSettings, WorkerSettings

__all__ = [
    "AppSettings",
    "EditorSettings",
    "LoggingSettings",
    "WorkerSettings",
    "load_config",
    "get_settings",
    "reset_settings",
]
