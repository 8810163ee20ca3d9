"""Conversion between flat string settings and their logical types.

The flat ``Dict[str, str]`` is the canonical form. Everything here is a
pure, total function: malformed or absent input resolves to a documented
fallback instead of raising, and nothing mutates its arguments.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .schema import FieldType, SettingField

logger = logging.getLogger(__name__)

TRUE = "true"
FALSE = "false"
SEPARATOR = ","

_INTEGER = re.compile(r"[+-]?[0-9]+")
# Longer digit strings are out of range for every field and are not
# handed to int(), which refuses very long inputs.
MAX_INT_DIGITS = 18


class SelectionState(Enum):
    """How much of a multi-select option list is selected."""

    ALL = "all"
    NONE = "none"
    PARTIAL = "partial"


# ---------------------------------------------------------------------------
# Integers
# ---------------------------------------------------------------------------


def parse_int(raw: str) -> Optional[int]:
    """Parse a plain ASCII decimal integer, or return None.

    Surrounding whitespace is ignored. Underscores, non-ASCII digits and
    strings longer than ``MAX_INT_DIGITS`` are rejected.
    """
    text = str(raw).strip()
    if len(text) > MAX_INT_DIGITS or not _INTEGER.fullmatch(text):
        return None
    return int(text)


def decode_bounded_int(
    values: Mapping[str, str],
    key: str,
    fallback: int,
    min_value: int,
    max_value: int,
) -> int:
    """Decode an integer setting, falling back when absent or out of range.

    Out-of-range values are not clamped: ``"500"`` in ``[1, 200]`` yields
    the fallback, not 200.
    """
    raw = values.get(key)
    if raw is None:
        return fallback
    number = parse_int(raw)
    if number is None:
        logger.debug("Falling back for %s: %.40r is not an integer", key, raw)
        return fallback
    if number < min_value or number > max_value:
        logger.debug("Falling back for %s: %d outside [%d, %d]", key, number, min_value, max_value)
        return fallback
    return number


def encode_int(value: int) -> str:
    return str(int(value))


# ---------------------------------------------------------------------------
# Booleans
# ---------------------------------------------------------------------------


def decode_boolean(values: Mapping[str, str], key: str) -> bool:
    """True iff the stored value is exactly ``"true"``."""
    return values.get(key) == TRUE


def encode_boolean(flag: bool) -> str:
    return TRUE if flag else FALSE


# ---------------------------------------------------------------------------
# Enumerations and text
# ---------------------------------------------------------------------------


def decode_enum(
    values: Mapping[str, str],
    key: str,
    options: Sequence[str],
    fallback: str,
) -> str:
    """Decode an enumeration, falling back on unrecognized literals."""
    raw = values.get(key)
    if raw in options:
        return raw
    if raw is not None:
        logger.debug("Falling back for %s: %r not in %s", key, raw, list(options))
    return fallback


def decode_text(values: Mapping[str, str], key: str, fallback: str = "") -> str:
    """Decode a free-text or secret value verbatim."""
    raw = values.get(key)
    return fallback if raw is None else raw


# ---------------------------------------------------------------------------
# Multi-sets
# ---------------------------------------------------------------------------


def decode_multi_set(values: Mapping[str, str], key: str) -> List[str]:
    """Decode a comma-joined member list.

    The empty string decodes to ``[]``, never ``[""]``. Empty segments are
    dropped and repeated members keep their first occurrence. Segments are
    not trimmed: ``" feature"`` is not the ``feature`` option.
    """
    members: List[str] = []
    for part in _segments(values, key):
        if part and part not in members:
            members.append(part)
    return members


def _segments(values: Mapping[str, str], key: str) -> List[str]:
    raw = values.get(key) or ""
    return raw.split(SEPARATOR) if raw else []


def encode_multi_set(members: Iterable[str]) -> str:
    """Join members with commas; duplicates are dropped, ``[]`` gives ``""``."""
    unique: List[str] = []
    for member in members:
        if member and member not in unique:
            unique.append(member)
    return SEPARATOR.join(unique)


def toggle_multi_set_member(values: Mapping[str, str], key: str, member: str) -> Dict[str, str]:
    """Return a copy of ``values`` with ``member`` removed if present, else appended.

    Only the toggled member's segments change; every other segment keeps
    its stored spelling, so adding then removing a member restores the
    original string.
    """
    if not member:
        return dict(values)
    segments = _segments(values, key)
    if member in segments:
        segments = [part for part in segments if part != member]
    else:
        segments.append(member)
    updated = dict(values)
    updated[key] = SEPARATOR.join(segments)
    return updated


def set_all_multi_set(values: Mapping[str, str], key: str, options: Sequence[str]) -> Dict[str, str]:
    """Return a copy of ``values`` with every option selected ("select all")."""
    updated = dict(values)
    updated[key] = encode_multi_set(options)
    return updated


def clear_multi_set(values: Mapping[str, str], key: str) -> Dict[str, str]:
    """Return a copy of ``values`` with no option selected ("select none")."""
    updated = dict(values)
    updated[key] = ""
    return updated


def selection_state(selected: Sequence[str], options: Sequence[str]) -> SelectionState:
    """Classify a selection against its option list.

    Members outside ``options`` are ignored, so a stored value of only
    unknown members reads as NONE.
    """
    chosen = sum(1 for option in options if option in selected)
    if options and chosen == len(options):
        return SelectionState.ALL
    if chosen == 0:
        return SelectionState.NONE
    return SelectionState.PARTIAL


# ---------------------------------------------------------------------------
# Schema-driven dispatch
# ---------------------------------------------------------------------------

FieldValue = Union[int, bool, str, List[str]]


def decode_field(setting_field: SettingField, values: Mapping[str, str]) -> FieldValue:
    """Decode a field's logical value using its declared type and default."""
    key = setting_field.key
    match setting_field.type:
        case FieldType.NUMBER:
            return decode_bounded_int(
                values,
                key,
                int(setting_field.default),
                setting_field.min_value,
                setting_field.max_value,
            )
        case FieldType.CHECKBOX:
            return decode_boolean(values, key)
        case FieldType.SELECT:
            return decode_enum(values, key, setting_field.options, setting_field.default)
        case FieldType.MULTI_SELECT:
            return decode_multi_set(values, key)
        case _:
            return decode_text(values, key, setting_field.default)


def encode_field(setting_field: SettingField, value: Optional[FieldValue]) -> str:
    """Encode a logical value into its stored string form."""
    if value is None:
        return setting_field.default
    match setting_field.type:
        case FieldType.NUMBER:
            return encode_int(value)
        case FieldType.CHECKBOX:
            return encode_boolean(bool(value))
        case FieldType.MULTI_SELECT:
            if isinstance(value, str):
                return encode_multi_set(value.split(SEPARATOR))
            return encode_multi_set(value)
        case _:
            return str(value)
