"""Provider-conditional field visibility.

Which fields are meaningful depends on the selected AI provider: the
Claude model only matters for ``claude``, API keys only for the REST
providers, rate limiting only for Gemini's quota-enforced free tier. The
resolver is a pure function of the draft and is called fresh on every
render; nothing is cached.
"""

from dataclasses import dataclass
from typing import FrozenSet, List, Mapping, Tuple

from .codec import decode_enum
from .schema import (
    CONTEXT_SETTINGS_SCHEMA,
    DEFAULT_PROVIDER,
    GROUPS,
    PROVIDER,
    PROVIDERS,
    SettingField,
)


@dataclass(frozen=True)
class FieldGroup:
    """A group of fields to render together.

    Attributes:
        name: Group identifier (e.g., "loading").
        title: Human-readable title.
        description: Short description shown beside the title.
        collapsed_by_default: Whether the group starts collapsed.
        fields: Fields visible for the current provider, in schema order.
    """

    name: str
    title: str
    description: str
    collapsed_by_default: bool
    fields: Tuple[SettingField, ...]

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(f.key for f in self.fields)


def current_provider(draft: Mapping[str, str]) -> str:
    """Decode the provider, treating absent or unknown values as the default."""
    return decode_enum(draft, PROVIDER, PROVIDERS, DEFAULT_PROVIDER)


def resolve_visible_groups(draft: Mapping[str, str]) -> List[FieldGroup]:
    """Return the ordered field groups to render for the draft's provider.

    Args:
        draft: The current working configuration.

    Returns:
        One FieldGroup per known group, each holding only the fields that
        are relevant for the draft's provider.
    """
    provider = current_provider(draft)
    groups = []
    for name, title, description, collapsed in GROUPS:
        fields = tuple(
            f for f in CONTEXT_SETTINGS_SCHEMA if f.group == name and f.is_relevant_for(provider)
        )
        groups.append(
            FieldGroup(
                name=name,
                title=title,
                description=description,
                collapsed_by_default=collapsed,
                fields=fields,
            )
        )
    return groups


def visible_keys(draft: Mapping[str, str]) -> FrozenSet[str]:
    """Flatten the visible groups into the set of renderable keys."""
    return frozenset(key for group in resolve_visible_groups(draft) for key in group.keys)


def is_visible(draft: Mapping[str, str], key: str) -> bool:
    return key in visible_keys(draft)
