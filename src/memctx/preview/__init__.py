"""Live preview of a draft configuration."""

from .coordinator import PreviewCoordinator, resolve_selection
from .state import (
    PreviewRequestKey,
    PreviewSnapshot,
    PreviewState,
    can_transition,
    serialize_draft,
)

__all__ = [
    "PreviewCoordinator",
    "PreviewRequestKey",
    "PreviewSnapshot",
    "PreviewState",
    "can_transition",
    "resolve_selection",
    "serialize_draft",
]
