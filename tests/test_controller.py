import asyncio

import pytest
from docktop.controller import Dashboard
from docktop.errors import EngineUnreachableError, NotFoundError
from docktop.model import (
    CommandRequest, CommandResult, DetailView, ListView, Operation, RefreshResult,
    ResourceKind,
)

C = ResourceKind.CONTAINERS


@pytest.fixture
def dashboard(records, backend):
    dash = Dashboard(backend)
    dash.store.merge_snapshot(C, [records.container("a", "running"), records.container("b", "exited")])
    return dash


def test_quit_from_list(dashboard):
    assert dashboard.handle_key("q") is False


def test_open_and_back(dashboard):
    assert dashboard.handle_key("enter") is True
    assert dashboard.navigator.active == DetailView(C, "a")
    assert dashboard.handle_key("escape") is True
    assert dashboard.navigator.active == ListView()


def test_movement_and_filter(dashboard):
    dashboard.handle_key("j")
    assert dashboard.store.selected_id() == "b"
    dashboard.handle_key("k")
    assert dashboard.store.selected_id() == "a"

    dashboard.handle_key("t")
    assert [r.id for r in dashboard.store.visible()] == ["a"]
    assert dashboard.store.message == "Filter: running-only"


def test_rejected_command_becomes_message(dashboard, backend):
    assert dashboard.handle_key("d") is True
    assert dashboard.store.message.startswith("Conflict:")
    backend.lifecycle.assert_not_called()


def test_r_restarts_running_target(records, dashboard, backend):
    backend.lifecycle.return_value = records.container("a", "running")

    async def scenario():
        dashboard.handle_key("r")
        assert dashboard.view().pending == ("a",)
        dashboard.apply(await asyncio.wait_for(dashboard.results.get(), 2))

    asyncio.run(scenario())
    backend.lifecycle.assert_called_once_with(Operation.RESTART, C, "a")
    assert dashboard.store.message == "Restarted c-a"


def test_r_starts_stopped_target_in_detail_view(records, dashboard, backend):
    backend.lifecycle.return_value = records.container("b", "running")
    dashboard.handle_key("j")
    dashboard.handle_key("enter")

    async def scenario():
        dashboard.handle_key("r")
        dashboard.apply(await asyncio.wait_for(dashboard.results.get(), 2))

    asyncio.run(scenario())
    backend.lifecycle.assert_called_once_with(Operation.START, C, "b")
    assert dashboard.store.get(C, "b").status == "running"


def test_command_result_supersedes_older_listings(records, dashboard):
    request = CommandRequest(C, "a", Operation.STOP, 1)
    dashboard.dispatcher._in_flight["a"] = request
    dashboard.scheduler._last_token = 4

    dashboard.apply(CommandResult(request, record=records.container("a", "exited")))
    # A listing issued before the command finished still shows it running
    dashboard.apply(RefreshResult(C, 4, records=[records.container("a", "running"),
                                                 records.container("b", "exited")]))
    assert dashboard.store.get(C, "a").status == "exited"


def test_refresh_merges_and_discards_stale(records, dashboard):
    dashboard.apply(RefreshResult(C, 2, records=[records.container("a", "exited")]))
    dashboard.apply(RefreshResult(C, 1, records=[records.container("z", "running")]))
    assert [r.id for r in dashboard.store.visible()] == ["a"]


def test_refresh_error_is_shown_then_cleared(records, dashboard):
    dashboard.apply(RefreshResult(C, 1, error=EngineUnreachableError("connection refused")))
    assert dashboard.store.message == "Refresh failed: Engine unreachable: connection refused"

    dashboard.apply(RefreshResult(C, 2, records=[records.container("a")]))
    assert dashboard.store.message == ""


def test_detail_not_found_removes_resource_silently(dashboard):
    dashboard.handle_key("enter")
    dashboard.apply(RefreshResult((C, "a"), 1, error=NotFoundError("No such container: a")))
    assert dashboard.store.get(C, "a") is None
    assert dashboard.store.message == ""
    assert dashboard.navigator.active == ListView()


def test_detail_refresh_fills_details(records, dashboard):
    dashboard.handle_key("enter")
    dashboard.apply(RefreshResult((C, "a"), 1, records=[records.container("a", details={"Env": "A=1"})]))
    view = dashboard.view()
    assert view.view == DetailView(C, "a")
    assert view.detail.details == {"Env": "A=1"}


def test_older_listing_cannot_undo_newer_inspect(records, dashboard):
    dashboard.handle_key("enter")
    dashboard.apply(RefreshResult((C, "a"), 9, records=[records.container("a", "exited")]))
    # Issued before the inspect, delivered after it
    dashboard.apply(RefreshResult(C, 3, records=[records.container("a", "running"),
                                                 records.container("b", "exited")]))
    assert dashboard.store.get(C, "a").status == "exited"


def test_kind_switch_resets_view(dashboard):
    dashboard.handle_key("enter")
    dashboard.handle_key("3")
    assert dashboard.store.kind is ResourceKind.NETWORKS
    assert dashboard.navigator.active == ListView()
    assert dashboard.refresh_targets() == (ResourceKind.NETWORKS, None)


def test_unbound_key_is_ignored(dashboard):
    version = dashboard.store.version
    assert dashboard.handle_key("z") is True
    assert dashboard.store.version == version


def test_run_results_applies_in_order(records, backend):
    dash = Dashboard(backend)
    changes = []

    async def scenario():
        consumer = asyncio.ensure_future(dash.run_results(lambda: changes.append(dash.store.version)))
        await dash.results.put(RefreshResult(C, 1, records=[records.container("a")]))
        await dash.results.put(RefreshResult(C, 2, records=[records.container("a"), records.container("b")]))
        await asyncio.wait_for(dash.results.join(), 2)
        consumer.cancel()

    asyncio.run(scenario())
    assert len(changes) == 2
    assert [r.id for r in dash.store.visible()] == ["a", "b"]


def test_shutdown_stops_scheduler(dashboard):
    dashboard.shutdown()
    assert dashboard.scheduler.stopped
    assert not dashboard.scheduler.accept(RefreshResult(C, 1, records=[]))
