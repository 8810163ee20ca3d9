"""Local file storage for the flat context settings.

claude-mem keeps its settings as a flat JSON object of string values
(``~/.claude-mem/settings.json``). This store reads and writes that file
directly, so the editor also works while the worker is not running.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping

from ..ports import SaveResult

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path.home() / ".claude-mem" / "settings.json"


def _to_flat_string_map(data: Any) -> Dict[str, str]:
    """Coerce loaded JSON into ``Dict[str, str]``.

    Booleans become ``"true"``/``"false"`` and nulls are dropped, so older
    files written with native JSON types still decode.
    """
    if not isinstance(data, dict):
        return {}
    values: Dict[str, str] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, bool):
            values[str(key)] = "true" if value else "false"
        elif isinstance(value, list):
            values[str(key)] = ",".join(str(v) for v in value)
        else:
            values[str(key)] = str(value)
    return values


class JsonSettingsStore:
    """JSON file storage for the flat settings map.

    Example:
        store = JsonSettingsStore(Path("~/.claude-mem/settings.json").expanduser())
        config = store.load()
        result = await store.save({**config, "CLAUDE_MEM_MODEL": "sonnet"})
    """

    def __init__(self, path: Path = DEFAULT_SETTINGS_PATH):
        """Initialize JSON storage.

        Args:
            path: Path to the settings file.
        """
        self._path = path

    @property
    def path(self) -> Path:
        """Get the storage file path."""
        return self._path

    def load(self) -> Dict[str, str]:
        """Load the settings map.

        Returns:
            Flat key -> string mapping; empty if the file is missing or
            unreadable.
        """
        if not self._path.exists():
            return {}

        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load settings from {self._path}: {e}")
            return {}
        return _to_flat_string_map(data)

    async def save(self, configuration: Mapping[str, str]) -> SaveResult:
        """Write the whole configuration, replacing the file atomically.

        Args:
            configuration: Flat key -> string mapping to persist.

        Returns:
            SaveResult describing the outcome.
        """
        data = {str(k): str(v) for k, v in configuration.items()}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", dir=str(self._path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                    f.write("\n")
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Failed to save settings to {self._path}: {e}")
            return SaveResult(success=False, message=str(e))

        logger.info("Saved %d settings to %s", len(data), self._path)
        return SaveResult(success=True, message="Settings saved", configuration=data)
