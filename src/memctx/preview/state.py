"""Preview state machine and the values it carries."""

import json
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Mapping, Optional, Tuple


class PreviewState(Enum):
    """States of the preview for one editing session.

    State transitions:
        IDLE → LOADING (first request issued)
        LOADING → READY (current request succeeded)
        LOADING → FAILED (current request failed)
        LOADING → LOADING (request superseded by a newer key)
        READY / FAILED → LOADING (new request key observed)
        Any → IDLE (session closed)
    """

    IDLE = auto()
    LOADING = auto()
    READY = auto()
    FAILED = auto()


VALID_TRANSITIONS = {
    PreviewState.IDLE: {PreviewState.LOADING, PreviewState.IDLE},
    PreviewState.LOADING: {
        PreviewState.LOADING,
        PreviewState.READY,
        PreviewState.FAILED,
        PreviewState.IDLE,
    },
    PreviewState.READY: {PreviewState.LOADING, PreviewState.IDLE},
    PreviewState.FAILED: {PreviewState.LOADING, PreviewState.IDLE},
}


def can_transition(from_state: PreviewState, to_state: PreviewState) -> bool:
    """Check if a state transition is valid."""
    return to_state in VALID_TRANSITIONS.get(from_state, set())


def serialize_draft(draft: Mapping[str, str]) -> str:
    """Stable serialization of a draft, independent of key insertion order."""
    return json.dumps(sorted(draft.items()), separators=(",", ":"))


@dataclass(frozen=True)
class PreviewRequestKey:
    """Identity of a preview request: the draft content plus the project."""

    draft: str
    project: Optional[str]

    @classmethod
    def build(cls, draft: Mapping[str, str], project: Optional[str]) -> "PreviewRequestKey":
        return cls(draft=serialize_draft(draft), project=project)

    def with_project(self, project: Optional[str]) -> "PreviewRequestKey":
        return PreviewRequestKey(draft=self.draft, project=project)


@dataclass(frozen=True)
class PreviewSnapshot:
    """What the preview pane should render.

    Attributes:
        state: Current preview state.
        text: Preview text; only set in READY.
        error: Error description; only set in FAILED.
        projects: Known project identifiers.
        selected_project: Project the preview is (or will be) rendered for.
        key: Key of the request this snapshot describes.
    """

    state: PreviewState = PreviewState.IDLE
    text: Optional[str] = None
    error: Optional[str] = None
    projects: Tuple[str, ...] = field(default_factory=tuple)
    selected_project: Optional[str] = None
    key: Optional[PreviewRequestKey] = None

    @property
    def is_loading(self) -> bool:
        return self.state == PreviewState.LOADING
