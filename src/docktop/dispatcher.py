"""
Command dispatcher for lifecycle operations.

Validates a command against the last known snapshot, then runs it in a
background task so the interface never blocks on the engine. At most one
command is in flight per identifier; a second one is rejected with BusyError
instead of being queued.

Completion is two-phase: the background task only posts a CommandResult to
the result queue, and complete() applies it from the event loop.
"""

import asyncio
import itertools
import re
import logging
from typing import Dict, Optional, Set
from .backend import run_engine_call
from .errors import BusyError, ConflictError, NotFoundError, DocktopError
from .model import (
    Operation, ResourceKind, ResourceRecord, ContainerRecord, CommandRequest,
    CommandResult, ACTIVE_STATES, STOPPED_STATES, REMOVALS, FORCEABLE_KINDS,
)
from .state import ResourceStore

logger = logging.getLogger(__name__)

PROGRESS = {
    Operation.START: "Starting",
    Operation.STOP: "Stopping",
    Operation.RESTART: "Restarting",
    Operation.KILL: "Killing",
    Operation.REMOVE: "Removing",
    Operation.FORCE_REMOVE: "Force removing",
}

DONE = {
    Operation.START: "Started",
    Operation.STOP: "Stopped",
    Operation.RESTART: "Restarted",
    Operation.KILL: "Killed",
    Operation.REMOVE: "Removed",
    Operation.FORCE_REMOVE: "Force removed",
}

# Engine wording when an image removal needs force
IN_USE_PATTERN = re.compile(r"image is being used by (?:running|stopped) container \w+")


def describe_error(error: BaseException) -> str:
    if isinstance(error, DocktopError):
        return error.status_text()
    return f"{type(error).__name__}: {error}"


class CommandDispatcher:
    def __init__(self, store: ResourceStore, backend, results: asyncio.Queue,
                 timeout: Optional[float] = None):
        self.store = store
        self.backend = backend
        self.results = results
        self.timeout = timeout
        self._in_flight: Dict[str, CommandRequest] = {}
        self._sequence = itertools.count(1)
        self._tasks: Set[asyncio.Task] = set()

    def is_busy(self, identifier: str) -> bool:
        return identifier in self._in_flight

    def pending(self) -> tuple:
        return tuple(sorted(self._in_flight))

    def check(self, operation: Operation, record: ResourceRecord) -> Optional[str]:
        """
        Validate an operation against the record's last known state.

        Raises ConflictError when the engine would refuse it. Returns a
        message when the record is already in the desired state (nothing to
        do), or None when the command should be issued.
        """
        if operation is Operation.FORCE_REMOVE and record.kind not in FORCEABLE_KINDS:
            raise ConflictError("only images and volumes can be force removed")
        if not isinstance(record, ContainerRecord):
            if operation not in REMOVALS:
                raise ConflictError(f"cannot {operation.value} a {record.kind.singular}")
            return None

        status = record.status
        if operation is Operation.START:
            if status in ("running", "restarting"):
                return f"{record.name} is already running"
            if status == "paused":
                raise ConflictError(f"{record.name} is paused")
        elif operation is Operation.STOP:
            if status in STOPPED_STATES:
                return f"{record.name} is already stopped"
        elif operation is Operation.KILL:
            if status not in ACTIVE_STATES:
                raise ConflictError(f"{record.name} is not running")
        elif operation is Operation.REMOVE:
            if status in ACTIVE_STATES:
                raise ConflictError(f"{record.name} is {status}, stop it first")
            if status == "removing":
                raise ConflictError(f"{record.name} is already being removed")
        return None

    def dispatch(self, operation: Operation, kind: ResourceKind,
                 identifier: Optional[str]) -> Optional[CommandRequest]:
        """
        Issue a lifecycle command. Must be called from the event loop.

        Returns the in-flight request, or None when nothing had to be done.
        Raises NotFoundError, BusyError or ConflictError without calling the
        engine.
        """
        record = self.store.get(kind, identifier) if identifier else None
        if record is None:
            raise NotFoundError(f"no {kind.singular} selected" if not identifier
                                else f"{kind.singular} {identifier[:12]} is gone")
        if identifier in self._in_flight:
            busy = self._in_flight[identifier]
            raise BusyError(f"{busy.operation.value} of {record.name} still in progress")

        noop = self.check(operation, record)
        if noop is not None:
            self.store.set_message(noop)
            return None

        request = CommandRequest(kind, identifier, operation, next(self._sequence))
        self._in_flight[identifier] = request
        self.store.set_message(f"{PROGRESS[operation]} {record.name}...")
        logger.info(f"Dispatching {operation.value} for {kind.singular} {record.name} (#{request.sequence})")

        task = asyncio.get_running_loop().create_task(self._run(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return request

    async def _run(self, request: CommandRequest) -> None:
        try:
            record = await run_engine_call(
                self.backend.lifecycle, request.operation, request.kind, request.identifier,
                timeout=self.timeout,
            )
            result = CommandResult(request, record=record)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Unexpected errors still have to release the identifier
            if not isinstance(e, DocktopError):
                logger.exception(f"Unexpected failure in {request.operation.value} #{request.sequence}")
            result = CommandResult(request, error=e)
        await self.results.put(result)

    def complete(self, result: CommandResult) -> str:
        """Apply a finished command to the store; returns the status message."""
        request = result.request
        if self._in_flight.get(request.identifier) is request:
            del self._in_flight[request.identifier]

        existing = self.store.get(request.kind, request.identifier)
        name = existing.name if existing else request.identifier[:12]

        removal = request.operation in REMOVALS
        if result.ok:
            if result.record is not None and not removal:
                self.store.merge_single(result.record)
                message = f"{DONE[request.operation]} {name}"
            else:
                # Removed, or the container disappeared on its own (--rm)
                self.store.mark_removed(request.kind, request.identifier)
                message = f"{DONE[request.operation]} {name}" if removal \
                    else f"{DONE[request.operation]} {name}; it no longer exists"
            logger.info(message)
        else:
            if isinstance(result.error, NotFoundError):
                self.store.mark_removed(request.kind, request.identifier)
            message = f"{request.operation.value.capitalize()} {name} failed: {self._failure_text(request, result.error)}"
            logger.warning(message)

        self.store.set_message(message)
        return message

    def _failure_text(self, request: CommandRequest, error: BaseException) -> str:
        text = describe_error(error)
        if (isinstance(error, ConflictError) and request.operation is Operation.REMOVE
                and request.kind in FORCEABLE_KINDS):
            in_use = IN_USE_PATTERN.search(error.message)
            reason = in_use.group(0) if in_use else f"{request.kind.singular} is in use"
            text = f"{reason}, press F to force remove"
        return text

    def cancel(self) -> None:
        """Abandon outstanding commands; their results are never applied."""
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._in_flight.clear()
