"""Command-line interface for memctx."""

from .settings_cli import SettingsCLI

__all__ = ["SettingsCLI"]
