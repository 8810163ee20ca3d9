"""Boundaries to the external collaborators of the editor.

The preview generator and the save handler live outside this package (the
claude-mem worker, or a local settings file). The editor only depends on
these small protocols, so tests can substitute in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class PreviewResult:
    """A rendered context preview.

    Attributes:
        text: Preview text as it would be injected.
        projects: Project identifiers the service knows about.
        project: The project the preview was rendered for, if reported.
    """

    text: str
    projects: List[str] = field(default_factory=list)
    project: Optional[str] = None


@dataclass(frozen=True)
class SaveResult:
    """Outcome of persisting a configuration.

    Attributes:
        success: Whether the configuration was persisted.
        message: Human-readable outcome (error text on failure).
        configuration: The configuration as persisted, when the handler
            reports it back; None means "what was sent".
    """

    success: bool
    message: str = ""
    configuration: Optional[Dict[str, str]] = None


@runtime_checkable
class PreviewService(Protocol):
    """Renders the context a configuration would inject."""

    async def fetch_preview(
        self, configuration: Mapping[str, str], project: Optional[str] = None
    ) -> PreviewResult:
        """Render a preview for ``configuration``; raises on failure."""


@runtime_checkable
class SaveHandler(Protocol):
    """Persists a finalized configuration."""

    async def save(self, configuration: Mapping[str, str]) -> SaveResult:
        """Persist ``configuration`` and report the outcome."""
