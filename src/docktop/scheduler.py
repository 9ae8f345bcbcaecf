"""
Periodic refresh of the resource store.

Every `interval` seconds (and once right away) the scheduler lists the kind
shown by the active view and, when a detail view is open, inspects the shown
resource. Calls run in worker threads; results are posted to the shared
result queue and applied by the controller.

Ordering:
  Each request gets a fresh, monotonically increasing token. accept() keeps
  one high-water mark per kind, raised by listings and detail inspects
  alike, and refuses anything not newer than it. A slow listing can
  therefore never overwrite a newer inspect of the same kind, nor the
  reverse.
"""

import asyncio
import itertools
import logging
from typing import Callable, Dict, List, Optional, Set, Tuple
from .backend import run_engine_call
from .errors import DocktopError
from .model import Channel, ResourceKind, RefreshResult

logger = logging.getLogger(__name__)

# () -> (kind to list, identifier to inspect or None)
Targets = Callable[[], Tuple[ResourceKind, Optional[str]]]


class RefreshScheduler:
    def __init__(self, backend, results: asyncio.Queue, targets: Targets,
                 interval: float = 2.0, timeout: Optional[float] = None):
        self.backend = backend
        self.results = results
        self.targets = targets
        self.interval = interval
        self.timeout = timeout
        self._tokens = itertools.count(1)
        self._last_token = 0
        self._applied: Dict[ResourceKind, int] = {}
        self._floor: Dict[ResourceKind, int] = {}
        self._in_flight: Set[Channel] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._loop_task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def _next_token(self) -> int:
        self._last_token = next(self._tokens)
        return self._last_token

    def start(self) -> None:
        if self._loop_task is None and not self._stopped:
            self._loop_task = asyncio.get_running_loop().create_task(self._run())
            logger.info(f"Refresh scheduler started (every {self.interval:g}s)")

    async def _run(self) -> None:
        while not self._stopped:
            self.tick()
            await asyncio.sleep(self.interval)

    def tick(self) -> List[int]:
        """Issue the refreshes the active view needs; returns the tokens used."""
        if self._stopped:
            return []
        kind, detail_id = self.targets()
        tokens = []
        token = self._issue(kind, self.backend.list, kind)
        if token is not None:
            tokens.append(token)
        if detail_id is not None:
            token = self._issue((kind, detail_id), self.backend.inspect, kind, detail_id)
            if token is not None:
                tokens.append(token)
        return tokens

    def request_now(self) -> List[int]:
        return self.tick()

    def _issue(self, channel: Channel, func: Callable, *args) -> Optional[int]:
        # At most one outstanding call per channel. A timed-out call releases the
        # channel while its worker thread may still be blocked in docker-py.
        if channel in self._in_flight:
            return None
        token = self._next_token()
        self._in_flight.add(channel)
        task = asyncio.get_running_loop().create_task(self._fetch(channel, token, func, *args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return token

    async def _fetch(self, channel: Channel, token: int, func: Callable, *args) -> None:
        try:
            value = await run_engine_call(func, *args, timeout=self.timeout)
            records = value if isinstance(value, list) else [value]
            result = RefreshResult(channel, token, records=records)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not isinstance(e, DocktopError):
                logger.exception(f"Unexpected failure refreshing {channel}")
            result = RefreshResult(channel, token, error=e)
        finally:
            self._in_flight.discard(channel)
        if not self._stopped:
            await self.results.put(result)

    def accept(self, result: RefreshResult) -> bool:
        """
        Decide whether a refresh result may be applied.

        False when the scheduler is stopped, or when a listing or inspect of
        the same kind with a newer or equal token was already applied.
        """
        if self._stopped:
            return False
        last = max(self._applied.get(result.kind, 0), self._floor.get(result.kind, 0))
        if result.token <= last:
            logger.debug(f"Discarding stale refresh of {result.channel} (token {result.token} <= {last})")
            return False
        self._applied[result.kind] = result.token
        return True

    def supersede(self, kind: ResourceKind) -> None:
        """Treat every refresh of `kind` issued so far (listings and inspects) as stale."""
        self._floor[kind] = self._last_token

    def cancel(self) -> None:
        """Stop ticking; in-flight calls are abandoned and their results ignored."""
        if self._stopped:
            return
        self._stopped = True
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._in_flight.clear()
        logger.info("Refresh scheduler cancelled")
