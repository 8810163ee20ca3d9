"""Editing-surface session for the context settings.

Ties the draft controller to the preview coordinator and the save handler,
and carries the bits of state a settings surface shows around them: the
transient save status and the busy flag. CLI and any other frontend only
need to provide I/O on top of this.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional

from ..ports import PreviewService, SaveHandler, SaveResult
from ..preview import PreviewCoordinator, PreviewSnapshot
from . import codec
from .draft import Draft, DraftStateController
from .schema import FieldType, SettingField, get_field_by_key
from .visibility import FieldGroup, resolve_visible_groups

logger = logging.getLogger(__name__)

STATUS_SAVING = "Saving..."
STATUS_SAVED = "✓ Settings saved"
STATUS_FAILED_PREFIX = "✗ "


# ---------------------------------------------------------------------------
# Value formatting (shared across all UIs)
# ---------------------------------------------------------------------------


def format_field_value(field: SettingField, values: Mapping[str, str]) -> str:
    """Render a field's current value as a human-readable string.

    Args:
        field: The field schema definition.
        values: The configuration or draft to read from.

    Returns:
        Formatted display string; secrets are masked.
    """
    value = codec.decode_field(field, values)

    match field.type:
        case FieldType.PASSWORD:
            return "••••••••" if value else _unset(field, "not set")
        case FieldType.CHECKBOX:
            return "[x]" if value else "[ ]"
        case FieldType.NUMBER:
            return f"{value} [{field.min_value}..{field.max_value}]"
        case FieldType.MULTI_SELECT:
            state = codec.selection_state(value, field.options)
            if state == codec.SelectionState.ALL:
                return "(all)"
            if state == codec.SelectionState.NONE:
                return "(none)"
            return ", ".join(value)
        case FieldType.SELECT:
            return f"{value} (options: {', '.join(field.options)})"
        case _:
            return str(value) if value else _unset(field, "empty")


def _unset(field: SettingField, marker: str) -> str:
    """Marker for an empty text value, with the field's input hint if it has one."""
    if field.placeholder:
        return f"({marker}; {field.placeholder})"
    return f"({marker})"


# ---------------------------------------------------------------------------
# Editor session
# ---------------------------------------------------------------------------


class ContextSettingsEditor:
    """One open/close cycle of the context settings surface.

    Example:
        editor = ContextSettingsEditor(save_handler=client, preview_service=client)
        editor.open(await client.get_settings())
        editor.set_field("CLAUDE_MEM_CONTEXT_OBSERVATIONS", "75")
        await editor.wait_preview()
        result = await editor.save()
        editor.close()
    """

    def __init__(
        self,
        save_handler: SaveHandler,
        preview_service: PreviewService,
        status_clear_seconds: float = 3.0,
    ):
        self._save_handler = save_handler
        self._preview_service = preview_service
        self._status_clear_seconds = status_clear_seconds
        self._ctrl = DraftStateController(on_commit=self._schedule_save)
        self._coordinator: Optional[PreviewCoordinator] = None
        self._configuration: Optional[Mapping[str, str]] = None
        self._is_open = False
        self._is_saving = False
        self._save_status = ""
        self._status_timer: Optional[asyncio.TimerHandle] = None
        self._save_task: Optional[asyncio.Task] = None

    # -- properties -----------------------------------------------------------

    @property
    def controller(self) -> DraftStateController:
        return self._ctrl

    @property
    def draft(self) -> Draft:
        return self._ctrl.draft

    @property
    def configuration(self) -> Optional[Mapping[str, str]]:
        """The last authoritative configuration received."""
        return self._configuration

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def is_saving(self) -> bool:
        return self._is_saving

    @property
    def save_status(self) -> str:
        return self._save_status

    @property
    def preview(self) -> PreviewSnapshot:
        if self._coordinator is None:
            return PreviewSnapshot()
        return self._coordinator.snapshot

    # -- lifecycle ------------------------------------------------------------

    def open(self, configuration: Mapping[str, str]) -> Draft:
        """Show the surface seeded from ``configuration`` and start previewing."""
        if self._is_open:
            return self.receive_configuration(configuration)

        self._coordinator = PreviewCoordinator(self._preview_service)
        self._ctrl.on_change(self._coordinator.update_draft)
        self._is_open = True
        logger.info("Settings editor opened")
        return self.receive_configuration(configuration)

    def receive_configuration(self, configuration: Mapping[str, str]) -> Draft:
        """Accept a configuration supplied from outside.

        A different configuration object resets the draft; unsaved edits
        are lost. Passing the same object again is a no-op.
        """
        self._configuration = configuration
        return self._ctrl.sync(configuration)

    def close(self) -> None:
        """Dismiss the surface, discarding the draft without saving."""
        if not self._is_open:
            return
        if self._ctrl.is_dirty:
            logger.info("Discarding %d unsaved change(s)", len(self._ctrl.changed_keys()))
        if self._coordinator is not None:
            self._ctrl.remove_change_callback(self._coordinator.update_draft)
            self._coordinator.close()
            self._coordinator = None
        self._ctrl = DraftStateController(on_commit=self._schedule_save)
        self._configuration = None
        self._is_open = False
        logger.info("Settings editor closed")

    def dismiss(self) -> None:
        """Out-of-band cancel (e.g., Escape): same as ``close``."""
        self.close()

    # -- field mutations ------------------------------------------------------

    def set_field(self, key: str, raw_value: str) -> Draft:
        return self._ctrl.set_field(key, raw_value)

    def toggle_boolean_field(self, key: str) -> Draft:
        return self._ctrl.toggle_boolean_field(key)

    def toggle_multi_set_field(self, key: str, member: str) -> Draft:
        return self._ctrl.toggle_multi_set_field(key, member)

    def select_all(self, key: str) -> Draft:
        return self._ctrl.select_all(key)

    def select_none(self, key: str) -> Draft:
        return self._ctrl.select_none(key)

    # -- preview --------------------------------------------------------------

    def set_selected_project(self, project: Optional[str]) -> None:
        if self._coordinator is None:
            logger.warning("Project selection ignored: editor is closed")
            return
        self._coordinator.set_selected_project(project)

    def refresh_preview(self) -> None:
        if self._coordinator is not None:
            self._coordinator.refresh()

    async def wait_preview(self) -> PreviewSnapshot:
        """Wait for the latest preview request to settle."""
        if self._coordinator is None:
            return PreviewSnapshot()
        return await self._coordinator.wait_idle()

    # -- rendering helpers ----------------------------------------------------

    def visible_groups(self) -> List[FieldGroup]:
        return resolve_visible_groups(self._ctrl.draft)

    def field_value(self, key: str) -> Any:
        """Decoded value of a known field, or the raw string for unknown keys."""
        setting_field = get_field_by_key(key)
        if setting_field is None:
            return self._ctrl.draft.get(key)
        return codec.decode_field(setting_field, self._ctrl.draft)

    def chip_state(self, key: str) -> codec.SelectionState:
        """Select-all / select-none highlight state of a multi-select field."""
        setting_field = get_field_by_key(key)
        options = setting_field.options if setting_field and setting_field.options else ()
        return codec.selection_state(codec.decode_multi_set(self._ctrl.draft, key), options)

    def validation_errors(self) -> List[str]:
        """Advisory messages for visible fields holding malformed values."""
        errors = []
        for group in self.visible_groups():
            for setting_field in group.fields:
                error = setting_field.validate(self._ctrl.draft.get(setting_field.key))
                if error:
                    errors.append(error)
        return errors

    # -- saving ---------------------------------------------------------------

    def commit(self) -> None:
        """Hand the draft to the save handler without waiting for the result."""
        self._ctrl.commit()

    async def save(self) -> SaveResult:
        """Save the current draft and wait for the outcome."""
        return await self._save_configuration(self._ctrl.draft)

    async def wait_saved(self) -> Optional[SaveResult]:
        """Wait for a save started by ``commit``."""
        if self._save_task is None:
            return None
        return await self._save_task

    def _schedule_save(self, draft: Draft) -> None:
        self._save_task = asyncio.get_running_loop().create_task(self._save_configuration(draft))

    async def _save_configuration(self, draft: Draft) -> SaveResult:
        if self._is_saving:
            return SaveResult(success=False, message="Save already in progress")

        payload = dict(draft)
        self._is_saving = True
        self._set_status(STATUS_SAVING, clear=False)
        try:
            result = await self._save_handler.save(payload)
        except Exception as e:
            logger.error(f"Save handler error: {e}")
            result = SaveResult(success=False, message=str(e) or type(e).__name__)
        finally:
            self._is_saving = False

        if result.success:
            logger.info("Settings saved")
            self._set_status(STATUS_SAVED)
            saved = result.configuration if result.configuration is not None else payload
            if self._is_open:
                self.receive_configuration(dict(saved))
        else:
            logger.warning("Settings save failed: %s", result.message)
            self._set_status(f"{STATUS_FAILED_PREFIX}{result.message or 'Save failed'}")
        return result

    def _set_status(self, status: str, clear: bool = True) -> None:
        self._save_status = status
        if self._status_timer is not None:
            self._status_timer.cancel()
            self._status_timer = None
        if clear and self._status_clear_seconds > 0:
            loop = asyncio.get_running_loop()
            self._status_timer = loop.call_later(self._status_clear_seconds, self._clear_status)

    def _clear_status(self) -> None:
        self._save_status = ""
        self._status_timer = None
