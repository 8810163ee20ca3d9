"""CLI front end for the context settings editor.

Renders the visible field groups, the pending (unsaved) changes and the
live preview of a ContextSettingsEditor as plain text.
"""

from typing import Optional, TextIO
import sys

from ..preview import PreviewSnapshot, PreviewState
from ..settings import ContextSettingsEditor, FieldType, format_field_value, get_field_by_key
from ..settings.schema import SettingField


class SettingsCLI:
    """Text renderer and command applier for one editor session.

    Example:
        cli = SettingsCLI(editor)
        cli.apply("toggle-member", "CLAUDE_MEM_CONTEXT_OBSERVATION_TYPES=bugfix")
        cli.show()
    """

    def __init__(self, editor: ContextSettingsEditor, out: TextIO = None):
        self._editor = editor
        self._out = out or sys.stdout

    @property
    def editor(self) -> ContextSettingsEditor:
        return self._editor

    def _print(self, text: str = "") -> None:
        print(text, file=self._out)

    # -- rendering ------------------------------------------------------------

    def show(self) -> None:
        """Print every visible group with current and pending values."""
        draft = self._editor.draft
        saved = self._editor.configuration or {}

        for group in self._editor.visible_groups():
            if not group.fields:
                continue
            self._print(f"\n── {group.title} ──  {group.description}")
            for field in group.fields:
                self._print_field(field, saved, draft)

        unknown = sorted(k for k in draft if get_field_by_key(k) is None)
        if unknown:
            self._print("\n── Other keys (passed through) ──")
            for key in unknown:
                self._print(f"  {key}: {draft[key]}")

    def _print_field(self, field: SettingField, saved, draft) -> None:
        display = format_field_value(field, saved)
        suffix = ""
        if field.type == FieldType.MULTI_SELECT:
            suffix = f"  ({self._editor.chip_state(field.key).value})"

        if saved.get(field.key) != draft.get(field.key):
            pending_display = format_field_value(field, draft)
            self._print(f"  {field.label}: {display} → {pending_display} [pending]{suffix}")
        else:
            self._print(f"  {field.label}: {display}{suffix}")

        if field.description:
            self._print(f"    └─ {field.description}")

    def show_preview(self, snapshot: Optional[PreviewSnapshot] = None) -> None:
        """Print the preview pane: an error, a loading marker or the text."""
        snapshot = snapshot or self._editor.preview
        if snapshot.projects:
            self._print(f"Preview project: {snapshot.selected_project or '(none)'}")
            self._print(f"Known projects: {', '.join(snapshot.projects)}")

        if snapshot.state == PreviewState.FAILED:
            self._print(f"Error loading preview: {snapshot.error}")
        elif snapshot.state == PreviewState.LOADING:
            self._print("Loading preview...")
        elif snapshot.state == PreviewState.READY:
            self._print("")
            self._print(snapshot.text or "(empty preview)")
        else:
            self._print("(no preview)")

    def show_warnings(self) -> None:
        for error in self._editor.validation_errors():
            self._print(f"⚠ {error}")

    # -- commands -------------------------------------------------------------

    def apply(self, operation: str, argument: str) -> Optional[str]:
        """Apply one edit command to the draft.

        Args:
            operation: One of "set", "toggle", "toggle-member", "select-all",
                "select-none".
            argument: ``KEY=VALUE``, ``KEY=MEMBER`` or ``KEY`` as appropriate.

        Returns:
            Error message for malformed commands, None if applied.
        """
        if operation in ("set", "toggle-member"):
            key, sep, value = argument.partition("=")
            if not sep or not key:
                return f"Expected KEY=VALUE for --{operation}, got '{argument}'"
            if operation == "set":
                self._editor.set_field(key, value)
            else:
                self._editor.toggle_multi_set_field(key, value)
            return None

        if operation == "toggle":
            self._editor.toggle_boolean_field(argument)
        elif operation == "select-all":
            field = get_field_by_key(argument)
            if field is None or field.type != FieldType.MULTI_SELECT:
                return f"'{argument}' is not a multi-select setting"
            self._editor.select_all(argument)
        elif operation == "select-none":
            self._editor.select_none(argument)
        else:
            return f"Unknown operation '{operation}'"
        return None
