"""Tests for the live preview coordinator."""

import pytest

from conftest import GatedPreviewService, InstantPreviewService, settle
from memctx.preview import (
    PreviewCoordinator,
    PreviewRequestKey,
    PreviewState,
    can_transition,
    resolve_selection,
)
from memctx.settings import schema

D1 = {schema.OBSERVATIONS: "50", schema.PROVIDER: "claude"}
D2 = {schema.OBSERVATIONS: "75", schema.PROVIDER: "claude"}


class TestRequestKey:
    """Tests for PreviewRequestKey."""

    def test_key_ignores_insertion_order(self):
        a = {"A": "1", "B": "2"}
        b = {"B": "2", "A": "1"}
        assert PreviewRequestKey.build(a, "p") == PreviewRequestKey.build(b, "p")

    def test_key_includes_project(self):
        assert PreviewRequestKey.build(D1, "alpha") != PreviewRequestKey.build(D1, "beta")

    def test_key_includes_content(self):
        assert PreviewRequestKey.build(D1, None) != PreviewRequestKey.build(D2, None)

    def test_with_project(self):
        key = PreviewRequestKey.build(D1, None)
        assert key.with_project("alpha") == PreviewRequestKey.build(D1, "alpha")


class TestTransitions:
    """Tests for the preview state table."""

    def test_valid(self):
        assert can_transition(PreviewState.IDLE, PreviewState.LOADING)
        assert can_transition(PreviewState.LOADING, PreviewState.READY)
        assert can_transition(PreviewState.LOADING, PreviewState.FAILED)
        assert can_transition(PreviewState.FAILED, PreviewState.LOADING)
        assert can_transition(PreviewState.READY, PreviewState.IDLE)

    def test_invalid(self):
        assert not can_transition(PreviewState.IDLE, PreviewState.READY)
        assert not can_transition(PreviewState.READY, PreviewState.FAILED)


class TestResolveSelection:
    """Tests for resolve_selection."""

    def test_reported_project_wins(self):
        assert resolve_selection("beta", "alpha", ["alpha", "beta"]) == "beta"

    def test_known_selection_kept(self):
        assert resolve_selection(None, "beta", ["alpha", "beta"]) == "beta"

    def test_unknown_selection_uses_first(self):
        assert resolve_selection(None, "gone", ["alpha", "beta"]) == "alpha"

    def test_no_projects(self):
        assert resolve_selection(None, None, []) is None


class TestRequests:
    """Tests for issuing and applying preview requests."""

    @pytest.mark.asyncio
    async def test_first_draft_issues_request(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        states = []
        coordinator.on_change(lambda snap: states.append(snap.state))

        coordinator.update_draft(D1)
        assert coordinator.state == PreviewState.LOADING
        await settle()

        assert len(gated_service.calls) == 1
        assert gated_service.calls[0].configuration == D1
        assert gated_service.calls[0].project is None

        gated_service.calls[0].respond("one")
        await settle()

        snap = coordinator.snapshot
        assert snap.state == PreviewState.READY
        assert snap.text == "one"
        assert snap.projects == ("alpha", "beta")
        assert snap.selected_project == "alpha"
        assert states == [PreviewState.LOADING, PreviewState.READY]

    @pytest.mark.asyncio
    async def test_equal_draft_does_not_refetch(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.update_draft(D1)
        await settle()

        coordinator.update_draft(dict(reversed(list(D1.items()))))
        await settle()

        assert len(gated_service.calls) == 1

    @pytest.mark.asyncio
    async def test_late_response_for_superseded_key_is_discarded(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.update_draft(D1)
        await settle()
        coordinator.update_draft(D2)
        await settle()
        first, second = gated_service.calls

        second.respond("two")
        await settle()
        assert coordinator.snapshot.text == "two"

        first.respond("one")
        await settle()

        assert coordinator.state == PreviewState.READY
        assert coordinator.snapshot.text == "two"

    @pytest.mark.asyncio
    async def test_early_stale_response_keeps_loading(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.update_draft(D1)
        await settle()
        coordinator.update_draft(D2)
        await settle()
        first, second = gated_service.calls

        first.respond("one")
        await settle()
        assert coordinator.state == PreviewState.LOADING
        assert coordinator.snapshot.text is None

        second.respond("two")
        await settle()
        assert coordinator.snapshot.text == "two"

    @pytest.mark.asyncio
    async def test_stale_failure_is_discarded(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.update_draft(D1)
        await settle()
        coordinator.update_draft(D2)
        await settle()

        gated_service.calls[0].fail("old failure")
        await settle()

        assert coordinator.state == PreviewState.LOADING
        assert coordinator.snapshot.error is None

    @pytest.mark.asyncio
    async def test_loading_keeps_previous_text(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.update_draft(D1)
        await settle()
        gated_service.calls[0].respond("one")
        await settle()

        coordinator.update_draft(D2)

        assert coordinator.snapshot.is_loading
        assert coordinator.snapshot.text == "one"

    @pytest.mark.asyncio
    async def test_wait_idle_follows_latest_request(self):
        service = InstantPreviewService()
        coordinator = PreviewCoordinator(service)
        coordinator.update_draft(D1)
        coordinator.update_draft(D2)

        snap = await coordinator.wait_idle()

        assert snap.state == PreviewState.READY
        assert snap.text == "alpha: 75 observations"


class TestProjectSelection:
    """Tests for project selection and its interaction with requests."""

    @pytest.mark.asyncio
    async def test_adopted_selection_does_not_refetch(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.update_draft(D1)
        await settle()
        gated_service.calls[0].respond("one")
        await settle()

        assert coordinator.selected_project == "alpha"
        assert coordinator.issued_key == PreviewRequestKey.build(D1, "alpha")

        coordinator.set_selected_project("alpha")
        await settle()
        assert len(gated_service.calls) == 1

    @pytest.mark.asyncio
    async def test_selecting_another_project_refetches(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.update_draft(D1)
        await settle()
        gated_service.calls[0].respond("one")
        await settle()

        coordinator.set_selected_project("beta")
        await settle()

        assert len(gated_service.calls) == 2
        assert gated_service.calls[1].project == "beta"
        assert gated_service.calls[1].configuration == D1

    @pytest.mark.asyncio
    async def test_project_selected_before_first_draft(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.set_selected_project("beta")
        await settle()
        assert gated_service.calls == []

        coordinator.update_draft(D1)
        await settle()
        assert gated_service.calls[0].project == "beta"

    @pytest.mark.asyncio
    async def test_unknown_project_resolves_to_reported(self):
        service = InstantPreviewService()
        coordinator = PreviewCoordinator(service)
        coordinator.set_selected_project("deleted-project")
        coordinator.update_draft(D1)

        snap = await coordinator.wait_idle()

        assert snap.selected_project == "alpha"
        assert coordinator.selected_project == "alpha"


class TestFailures:
    """Tests for failed preview requests."""

    @pytest.mark.asyncio
    async def test_failure_clears_text_but_keeps_projects(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.update_draft(D1)
        await settle()
        gated_service.calls[0].respond("one")
        await settle()

        coordinator.update_draft(D2)
        await settle()
        gated_service.calls[1].fail("database is locked")
        await settle()

        snap = coordinator.snapshot
        assert snap.state == PreviewState.FAILED
        assert snap.text is None
        assert "database is locked" in snap.error
        assert snap.projects == ("alpha", "beta")

    @pytest.mark.asyncio
    async def test_failure_is_not_retried_automatically(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.update_draft(D1)
        await settle()
        gated_service.calls[0].respond("one")
        await settle()
        coordinator.update_draft(D2)
        await settle()
        gated_service.calls[1].fail()
        await settle()

        coordinator.set_selected_project("alpha")
        coordinator.update_draft(D2)
        await settle()

        assert len(gated_service.calls) == 2

    @pytest.mark.asyncio
    async def test_refresh_retries(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.update_draft(D1)
        await settle()
        gated_service.calls[0].fail()
        await settle()
        assert coordinator.state == PreviewState.FAILED

        coordinator.refresh()
        assert coordinator.state == PreviewState.LOADING
        await settle()
        gated_service.calls[1].respond("recovered")
        await settle()

        assert len(gated_service.calls) == 2
        assert coordinator.snapshot.text == "recovered"

    @pytest.mark.asyncio
    async def test_failure_is_per_project(self):
        service = InstantPreviewService(failing_projects=["beta"])
        coordinator = PreviewCoordinator(service)
        coordinator.update_draft(D1)
        assert (await coordinator.wait_idle()).state == PreviewState.READY

        coordinator.set_selected_project("beta")
        snap = await coordinator.wait_idle()
        assert snap.state == PreviewState.FAILED
        assert snap.projects == ("alpha", "beta")

        coordinator.set_selected_project("alpha")
        snap = await coordinator.wait_idle()
        assert snap.state == PreviewState.READY
        assert snap.text == "alpha: 50 observations"


class TestClose:
    """Tests for closing the coordinator."""

    @pytest.mark.asyncio
    async def test_close_cancels_outstanding_request(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.update_draft(D1)
        await settle()

        coordinator.close()
        await settle()

        assert coordinator.state == PreviewState.IDLE
        assert gated_service.calls[0].future.cancelled()

    @pytest.mark.asyncio
    async def test_no_requests_after_close(self, gated_service):
        coordinator = PreviewCoordinator(gated_service)
        coordinator.close()

        coordinator.update_draft(D1)
        coordinator.refresh()
        await settle()

        assert gated_service.calls == []
        assert coordinator.state == PreviewState.IDLE


def test_gated_service_satisfies_protocol():
    from memctx.ports import PreviewService

    assert isinstance(GatedPreviewService(), PreviewService)
