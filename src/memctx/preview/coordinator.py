"""Live preview coordination against the external preview service.

Every draft or project change yields a PreviewRequestKey. A new key issues
a fresh request as an asyncio task; the coordinator goes to LOADING right
away and the editor stays usable while the request is outstanding.

Ordering is last-request-wins: a response is applied only if it belongs to
the most recently issued request. Late answers for superseded keys are
dropped on arrival, so in-flight requests never need cancelling.

All methods must be called from the event loop's thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Mapping, Optional, Sequence, Set

from ..ports import PreviewResult, PreviewService
from .state import (
    PreviewRequestKey,
    PreviewSnapshot,
    PreviewState,
    can_transition,
)

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[PreviewSnapshot], None]


def resolve_selection(
    reported: Optional[str],
    selected: Optional[str],
    projects: Sequence[str],
) -> Optional[str]:
    """Pick the project a preview belongs to.

    The project the service reports wins; otherwise the current selection
    if it is still known; otherwise the first known project.
    """
    if reported:
        return reported
    if selected is not None and selected in projects:
        return selected
    return projects[0] if projects else None


class PreviewCoordinator:
    """Keeps a preview in step with the current, unsaved draft.

    Example:
        coordinator = PreviewCoordinator(worker_client)
        coordinator.on_change(render_preview)
        coordinator.update_draft(controller.draft)   # -> LOADING
        await coordinator.wait_idle()                # -> READY or FAILED
    """

    def __init__(
        self,
        service: PreviewService,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._service = service
        self._loop = loop
        self._draft: Optional[Mapping[str, str]] = None
        self._selected: Optional[str] = None
        self._issued_key: Optional[PreviewRequestKey] = None
        self._request_id = 0
        self._latest_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._snapshot = PreviewSnapshot()
        self._callbacks: List[SnapshotCallback] = []
        self._closed = False

    # -- read -----------------------------------------------------------------

    @property
    def snapshot(self) -> PreviewSnapshot:
        return self._snapshot

    @property
    def state(self) -> PreviewState:
        return self._snapshot.state

    @property
    def selected_project(self) -> Optional[str]:
        return self._selected

    @property
    def issued_key(self) -> Optional[PreviewRequestKey]:
        """Key of the most recently issued (or rebased) request."""
        return self._issued_key

    # -- inputs ---------------------------------------------------------------

    def update_draft(self, draft: Mapping[str, str]) -> None:
        """Observe a new draft; issues a request if the key changed."""
        self._draft = draft
        self._maybe_request()

    def set_selected_project(self, project: Optional[str]) -> None:
        """Select the preview project.

        Re-selecting the current project does not change the key and so
        does not re-fetch, even after a failure. Use ``refresh`` for that.
        """
        if project == self._selected:
            return
        self._selected = project
        self._maybe_request()

    def refresh(self) -> None:
        """Re-issue the current request even though its key is unchanged."""
        if self._draft is None or self._closed:
            return
        self._issue(PreviewRequestKey.build(self._draft, self._selected))

    def close(self) -> None:
        """Stop coordinating; outstanding results are discarded."""
        self._closed = True
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._latest_task = None
        self._issued_key = None
        self._set_snapshot(PreviewSnapshot(projects=self._snapshot.projects))

    async def wait_idle(self) -> PreviewSnapshot:
        """Wait until the most recently issued request has settled."""
        while self._latest_task is not None and not self._latest_task.done():
            await asyncio.wait({self._latest_task})
        return self._snapshot

    # -- events ---------------------------------------------------------------

    def on_change(self, callback: SnapshotCallback) -> None:
        """Register a callback receiving each new snapshot."""
        self._callbacks.append(callback)

    def remove_change_callback(self, callback: SnapshotCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    # -- internals ------------------------------------------------------------

    def _maybe_request(self) -> None:
        if self._draft is None or self._closed:
            return
        key = PreviewRequestKey.build(self._draft, self._selected)
        if key == self._issued_key:
            return
        self._issue(key)

    def _issue(self, key: PreviewRequestKey) -> None:
        self._request_id += 1
        request_id = self._request_id
        self._issued_key = key
        draft = dict(self._draft)

        self._set_snapshot(
            PreviewSnapshot(
                state=PreviewState.LOADING,
                text=self._snapshot.text,
                projects=self._snapshot.projects,
                selected_project=key.project,
                key=key,
            )
        )

        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._run(request_id, key, draft))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._latest_task = task
        logger.debug("Preview request #%d issued (project=%s)", request_id, key.project)

    async def _run(self, request_id: int, key: PreviewRequestKey, draft: dict) -> None:
        try:
            result = await self._service.fetch_preview(draft, key.project)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._is_current(request_id):
                logger.debug("Discarding stale preview failure #%d: %s", request_id, e)
                return
            logger.warning("Preview request #%d failed: %s", request_id, e)
            self._apply_failure(key, str(e) or type(e).__name__)
            return

        if not self._is_current(request_id):
            logger.debug("Discarding stale preview response #%d", request_id)
            return
        self._apply_result(key, result)

    def _is_current(self, request_id: int) -> bool:
        return not self._closed and request_id == self._request_id

    def _apply_result(self, key: PreviewRequestKey, result: PreviewResult) -> None:
        projects = tuple(result.projects)
        resolved = resolve_selection(result.project, self._selected, projects)
        if resolved != key.project:
            logger.debug("Preview project resolved %s -> %s", key.project, resolved)
        # The response already covers the resolved project; rebasing the
        # issued key keeps the adopted selection from re-fetching.
        self._selected = resolved
        self._issued_key = key.with_project(resolved)
        self._set_snapshot(
            PreviewSnapshot(
                state=PreviewState.READY,
                text=result.text,
                projects=projects,
                selected_project=resolved,
                key=self._issued_key,
            )
        )

    def _apply_failure(self, key: PreviewRequestKey, error: str) -> None:
        self._set_snapshot(
            PreviewSnapshot(
                state=PreviewState.FAILED,
                error=error,
                projects=self._snapshot.projects,
                selected_project=key.project,
                key=key,
            )
        )

    def _set_snapshot(self, snapshot: PreviewSnapshot) -> None:
        old_state = self._snapshot.state
        if not can_transition(old_state, snapshot.state):
            logger.warning(f"Preview: Invalid transition {old_state.name} -> {snapshot.state.name}")
        self._snapshot = snapshot
        for callback in list(self._callbacks):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Preview snapshot callback error: {e}")
