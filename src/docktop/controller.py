"""
Dashboard controller: wires the store, navigator, dispatcher and scheduler.

The controller owns the result queue. Background tasks (commands and
refreshes) only ever put results on it; run_results() drains it on the event
loop and applies each result to the store, which keeps the store
single-writer. Keystrokes arrive through handle_key() on the same loop.
"""

import asyncio
import logging
from typing import Callable, Optional, Tuple, Union
from .dispatcher import CommandDispatcher, describe_error
from .errors import DocktopError, NotFoundError
from .keymap import resolve_key
from .model import (
    Action, ResourceKind, ResourceRecord, CommandResult, RefreshResult,
    DashboardView, DetailView,
)
from .navigator import Outcome, ViewNavigator
from .scheduler import RefreshScheduler
from .state import ResourceStore

logger = logging.getLogger(__name__)


class Dashboard:
    def __init__(self, backend, refresh_interval: float = 2.0,
                 command_timeout: Optional[float] = None,
                 refresh_timeout: Optional[float] = None,
                 store: Optional[ResourceStore] = None):
        self.backend = backend
        self.store = store or ResourceStore()
        self.navigator = ViewNavigator()
        self.results: asyncio.Queue = asyncio.Queue()
        self.dispatcher = CommandDispatcher(self.store, backend, self.results, timeout=command_timeout)
        self.scheduler = RefreshScheduler(
            backend, self.results, self.refresh_targets,
            interval=refresh_interval, timeout=refresh_timeout,
        )
        self._started = False
        self._refresh_failed = False

    def start(self) -> None:
        """Start periodic refreshes. Must be called from the running loop."""
        self._started = True
        self.scheduler.start()

    def shutdown(self) -> None:
        self._started = False
        self.scheduler.cancel()
        self.dispatcher.cancel()
        logger.info("Dashboard shut down")

    def refresh_targets(self) -> Tuple[ResourceKind, Optional[str]]:
        active = self.navigator.active
        if isinstance(active, DetailView):
            return active.kind, active.identifier
        return self.store.kind, None

    def target_record(self) -> Optional[ResourceRecord]:
        identifier = self.navigator.target(self.store.selected_id())
        if identifier is None:
            return None
        return self.store.get(self.store.kind, identifier)

    def _request_refresh(self) -> None:
        if self._started:
            self.scheduler.request_now()

    # --- INPUT ---

    def handle_key(self, key: str) -> bool:
        """Handle one keystroke. Returns False when the operator quits."""
        record = self.target_record()
        action = resolve_key(key, target_running=bool(record and record.is_running))
        if action is None:
            return True
        return self.handle_action(action)

    def handle_action(self, action: Action) -> bool:
        outcome = self.navigator.handle(action, self.store.kind, self.store.selected_id())
        if outcome is Outcome.EXIT:
            logger.info("Quit requested")
            return False
        if outcome is Outcome.HANDLED:
            if self.navigator.in_detail():
                self._request_refresh()
            return True

        try:
            if action is Action.MOVE_UP:
                self.store.select(-1)
            elif action is Action.MOVE_DOWN:
                self.store.select(1)
            elif action is Action.TOGGLE_FILTER:
                mode = self.store.toggle_filter()
                self.store.set_message(f"Filter: {mode.value}")
            elif action.kind is not None:
                self.store.set_kind(action.kind)
                self._request_refresh()
            elif action.operation is not None:
                identifier = self.navigator.target(self.store.selected_id())
                self.dispatcher.dispatch(action.operation, self.store.kind, identifier)
        except DocktopError as e:
            logger.info(f"{action.value} rejected: {e.status_text()}")
            self.store.set_message(e.status_text())
        return True

    # --- RESULTS ---

    def apply(self, result: Union[CommandResult, RefreshResult]) -> None:
        if isinstance(result, CommandResult):
            self.dispatcher.complete(result)
            # Listings issued before this command may predate its effect
            self.scheduler.supersede(result.request.kind)
        elif isinstance(result, RefreshResult):
            self._apply_refresh(result)
        else:
            raise TypeError(f"Unexpected result {result!r}")
        self._leave_vanished_detail()

    def _apply_refresh(self, result: RefreshResult) -> None:
        if not self.scheduler.accept(result):
            return
        if result.error is None:
            if result.is_detail:
                for record in result.records or []:
                    self.store.merge_single(record)
            else:
                self.store.merge_snapshot(result.kind, result.records or [])
            if self._refresh_failed:
                self._refresh_failed = False
                self.store.clear_message()
            return

        if result.is_detail and isinstance(result.error, NotFoundError):
            self.store.mark_removed(*result.channel)
            return
        logger.warning(f"Refresh of {result.kind.value} failed: {describe_error(result.error)}")
        self.store.set_message(f"Refresh failed: {describe_error(result.error)}")
        self._refresh_failed = True

    def _leave_vanished_detail(self) -> None:
        active = self.navigator.active
        if isinstance(active, DetailView) and self.store.get(active.kind, active.identifier) is None:
            self.navigator.reset()

    async def run_results(self, on_change: Optional[Callable[[], None]] = None) -> None:
        """Drain the result queue forever, applying results in arrival order."""
        while True:
            result = await self.results.get()
            try:
                self.apply(result)
            finally:
                self.results.task_done()
            if on_change is not None:
                on_change()

    # --- VIEW ---

    def view(self) -> DashboardView:
        snapshot = self.store.snapshot()
        active = self.navigator.active
        snapshot.view = active
        if isinstance(active, DetailView):
            snapshot.detail = self.store.get(active.kind, active.identifier)
        snapshot.pending = self.dispatcher.pending()
        return snapshot
