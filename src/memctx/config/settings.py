"""Application settings models using Pydantic.

These configure the tool itself (where the worker lives, how long status
messages stay up, where logs go). The context settings being edited are a
separate, flat string map; see :mod:`memctx.settings.schema`.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class WorkerSettings(BaseModel):
    """claude-mem worker connection settings."""
    url: str = "http://127.0.0.1:37777"
    timeout_seconds: float = 30.0
    preview_timeout_seconds: float = 60.0


class EditorSettings(BaseModel):
    """Settings editor behaviour."""
    status_clear_seconds: float = 3.0  # How long save status stays visible
    settings_file: Path = Path.home() / ".claude-mem" / "settings.json"


class LoggingSettings(BaseModel):
    """Log output settings."""
    dir: Path = Path.home() / ".claude-mem" / "logs"
    max_bytes: int = 1_000_000
    backup_count: int = 5  # Rotated files kept before the oldest is overwritten
    retention_days: int = 14
    debug: bool = False


class AppSettings(BaseModel):
    """Root configuration model."""
    model_config = ConfigDict(extra="ignore")  # Ignore unknown fields in config file

    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    editor: EditorSettings = Field(default_factory=EditorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
