"""Context settings editing package.

This package holds the draft/commit model for the flat claude-mem context
settings: the field schema, the string codec, provider-dependent field
visibility, the working-draft controller and the editor session that
ties them to the live preview.

Example usage:
    from memctx.settings import ContextSettingsEditor, schema

    editor = ContextSettingsEditor(save_handler=client, preview_service=client)
    editor.open(await client.get_settings())
    editor.toggle_multi_set_field(schema.OBSERVATION_TYPES, "bugfix")
    await editor.save()
"""

from . import schema
from .codec import (
    SelectionState,
    clear_multi_set,
    decode_boolean,
    decode_bounded_int,
    decode_enum,
    decode_field,
    decode_multi_set,
    decode_text,
    encode_boolean,
    encode_field,
    encode_int,
    encode_multi_set,
    selection_state,
    set_all_multi_set,
    toggle_multi_set_member,
)
from .draft import Draft, DraftStateController
from .editor import ContextSettingsEditor, format_field_value
from .schema import (
    CONTEXT_SETTINGS_SCHEMA,
    FieldType,
    SettingField,
    default_configuration,
    get_field_by_key,
)
from .storage import JsonSettingsStore
from .visibility import (
    FieldGroup,
    current_provider,
    is_visible,
    resolve_visible_groups,
    visible_keys,
)

__all__ = [
    # Schema
    "schema",
    "CONTEXT_SETTINGS_SCHEMA",
    "FieldType",
    "SettingField",
    "default_configuration",
    "get_field_by_key",
    # Codec
    "SelectionState",
    "clear_multi_set",
    "decode_boolean",
    "decode_bounded_int",
    "decode_enum",
    "decode_field",
    "decode_multi_set",
    "decode_text",
    "encode_boolean",
    "encode_field",
    "encode_int",
    "encode_multi_set",
    "selection_state",
    "set_all_multi_set",
    "toggle_multi_set_member",
    # Visibility
    "FieldGroup",
    "current_provider",
    "is_visible",
    "resolve_visible_groups",
    "visible_keys",
    # Draft / editor
    "Draft",
    "DraftStateController",
    "ContextSettingsEditor",
    "format_field_value",
    # Storage
    "JsonSettingsStore",
]
