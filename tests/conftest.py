"""Shared fixtures and in-memory collaborators for the memctx tests."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

import pytest

from memctx.config import reset_settings
from memctx.errors import PreviewFetchError
from memctx.logging_config import HANDLER_NAME
from memctx.ports import PreviewResult, SaveResult
from memctx.settings import schema


async def settle(rounds: int = 5) -> None:
    """Let pending tasks and their callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@dataclass
class PendingPreview:
    """One outstanding call to GatedPreviewService.fetch_preview."""

    configuration: Dict[str, str]
    project: Optional[str]
    future: asyncio.Future

    def respond(self, text: str, projects=("alpha", "beta"), project: Optional[str] = None):
        self.future.set_result(
            PreviewResult(text=text, projects=list(projects), project=project or self.project)
        )

    def fail(self, reason: str = "boom"):
        self.future.set_exception(PreviewFetchError(reason, self.project))


class GatedPreviewService:
    """Preview service whose calls block until the test resolves them."""

    def __init__(self):
        self.calls: List[PendingPreview] = []

    async def fetch_preview(
        self, configuration: Mapping[str, str], project: Optional[str] = None
    ) -> PreviewResult:
        future = asyncio.get_running_loop().create_future()
        self.calls.append(PendingPreview(dict(configuration), project, future))
        return await future


@dataclass
class InstantPreviewService:
    """Preview service that answers immediately.

    The text echoes the project and observation count so tests can tell
    which draft a preview belongs to.
    """

    projects: List[str] = field(default_factory=lambda: ["alpha", "beta"])
    failing_projects: List[str] = field(default_factory=list)
    calls: List[tuple] = field(default_factory=list)

    async def fetch_preview(
        self, configuration: Mapping[str, str], project: Optional[str] = None
    ) -> PreviewResult:
        self.calls.append((dict(configuration), project))
        resolved = project if project in self.projects else (self.projects or [None])[0]
        if resolved in self.failing_projects:
            raise PreviewFetchError("no observations database", resolved)
        count = configuration.get(schema.OBSERVATIONS, "")
        return PreviewResult(
            text=f"{resolved}: {count} observations",
            projects=list(self.projects),
            project=resolved,
        )


@dataclass
class RecordingSaveHandler:
    """Save handler that records payloads and returns a canned result."""

    result: SaveResult = field(default_factory=lambda: SaveResult(success=True, message="ok"))
    saved: List[Dict[str, str]] = field(default_factory=list)
    error: Optional[Exception] = None
    gate: Optional[asyncio.Event] = None

    async def save(self, configuration: Mapping[str, str]) -> SaveResult:
        self.saved.append(dict(configuration))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def base_config():
    """A typical persisted configuration."""
    return {
        schema.OBSERVATIONS: "50",
        schema.SESSION_COUNT: "10",
        schema.OBSERVATION_TYPES: "bugfix,feature",
        schema.OBSERVATION_CONCEPTS: "how-it-works,gotcha",
        schema.SHOW_READ_TOKENS: "true",
        schema.PROVIDER: "claude",
        schema.CLAUDE_MODEL: "haiku",
    }


@pytest.fixture
def gated_service():
    return GatedPreviewService()


@pytest.fixture
def instant_service():
    return InstantPreviewService()


@pytest.fixture
def save_handler():
    return RecordingSaveHandler()


@pytest.fixture(autouse=True)
def _reset_global_settings():
    """Keep the global application settings isolated between tests."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def restore_root_logging():
    """Undo configure_logging's changes to the root logger."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler.get_name() == HANDLER_NAME:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
