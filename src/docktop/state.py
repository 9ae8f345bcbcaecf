"""
Resource store: the UI's single source of truth.

Holds the last known snapshot of every resource kind plus the selection,
filter and status message. It performs no I/O and is only ever mutated from
the event loop (see controller.py), so it needs no lock: background tasks
post results to a queue and the controller applies them here.

Ordering and selection:
  - The visible list of the active kind is sorted by identifier (stable) and
    filtered by the filter mode; underlying records are never mutated.
  - The cursor is an index into that list, or None iff it is empty.
  - Every mutation re-anchors the cursor on the previously selected
    identifier when it is still visible.

Versioning:
  - `version` increments on every mutation; the renderer redraws when it
    changes.
"""

import logging
from typing import Dict, List, Optional, Tuple
from .model import (
    ResourceKind, ResourceRecord, FilterMode, ContainerRecord, DashboardView,
)

logger = logging.getLogger(__name__)


class ResourceStore:
    def __init__(self, kind: ResourceKind = ResourceKind.CONTAINERS,
                 filter_mode: FilterMode = FilterMode.SHOW_ALL):
        self._records: Dict[Tuple[ResourceKind, str], ResourceRecord] = {}
        self._kind = kind
        self._filter_mode = filter_mode
        self._cursor: Optional[int] = None
        self._message = ""
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    @property
    def kind(self) -> ResourceKind:
        return self._kind

    @property
    def filter_mode(self) -> FilterMode:
        return self._filter_mode

    @property
    def cursor(self) -> Optional[int]:
        return self._cursor

    @property
    def message(self) -> str:
        return self._message

    def _inc_version(self):
        self._version += 1

    # --- READS ---

    def get(self, kind: ResourceKind, identifier: str) -> Optional[ResourceRecord]:
        return self._records.get((kind, identifier))

    def records(self, kind: ResourceKind) -> List[ResourceRecord]:
        """All records of one kind, ordered by identifier, ignoring the filter."""
        items = [r for (k, _), r in self._records.items() if k is kind]
        items.sort(key=lambda r: r.id)
        return items

    def _is_visible(self, record: ResourceRecord) -> bool:
        if self._filter_mode is FilterMode.RUNNING_ONLY and isinstance(record, ContainerRecord):
            return record.is_running
        return True

    def visible(self) -> List[ResourceRecord]:
        """Filtered, ordered records of the active kind."""
        return [r for r in self.records(self._kind) if self._is_visible(r)]

    def selected(self) -> Optional[ResourceRecord]:
        items = self.visible()
        if self._cursor is None or self._cursor >= len(items):
            return None
        return items[self._cursor]

    def selected_id(self) -> Optional[str]:
        record = self.selected()
        return record.id if record else None

    # --- CURSOR ---

    def _reanchor(self, previous_id: Optional[str], fallback: Optional[int]) -> None:
        """Put the cursor back on previous_id if visible, else on fallback (clamped)."""
        items = self.visible()
        if not items:
            self._cursor = None
            return
        if previous_id is not None:
            for idx, r in enumerate(items):
                if r.id == previous_id:
                    self._cursor = idx
                    return
        idx = fallback if fallback is not None else 0
        self._cursor = max(0, min(idx, len(items) - 1))

    def select(self, delta: int) -> None:
        """Move the cursor by delta, clamped to the visible list (no wraparound)."""
        items = self.visible()
        if not items:
            if self._cursor is not None:
                self._cursor = None
                self._inc_version()
            return
        current = self._cursor if self._cursor is not None else 0
        new_idx = max(0, min(current + delta, len(items) - 1))
        if new_idx != self._cursor:
            self._cursor = new_idx
            self._inc_version()

    def toggle_filter(self) -> FilterMode:
        previous_id = self.selected_id()
        if self._filter_mode is FilterMode.SHOW_ALL:
            self._filter_mode = FilterMode.RUNNING_ONLY
        else:
            self._filter_mode = FilterMode.SHOW_ALL
        self._reanchor(previous_id, self._cursor)
        self._inc_version()
        return self._filter_mode

    def set_kind(self, kind: ResourceKind) -> None:
        if kind is self._kind:
            return
        self._kind = kind
        self._cursor = 0 if self.visible() else None
        self._message = ""
        self._inc_version()

    # --- MERGES ---

    def merge_snapshot(self, kind: ResourceKind, records: List[ResourceRecord]) -> None:
        """Replace every record of `kind` with `records`."""
        previous_id = self.selected_id() if kind is self._kind else None
        old = {ident: r for (k, ident), r in self._records.items() if k is kind}
        for ident in old:
            del self._records[(kind, ident)]
        for record in records:
            previous = old.get(record.id)
            # Listings carry no detail fields; keep what the last inspect fetched
            # unless the status moved on, which makes them contradict the record
            if (previous is not None and previous.details and not record.details
                    and previous.status == record.status):
                record.details = previous.details
            self._records[(kind, record.id)] = record
        if kind is self._kind:
            self._reanchor(previous_id, 0)
        self._inc_version()
        logger.debug(f"Merged {len(records)} {kind.value} (was {len(old)})")

    def merge_single(self, record: ResourceRecord) -> None:
        """Upsert one record without disturbing unrelated ones."""
        kind = record.kind
        previous_id = self.selected_id() if kind is self._kind else None
        self._records[(kind, record.id)] = record
        if kind is self._kind:
            self._reanchor(previous_id, self._cursor)
        self._inc_version()

    def mark_removed(self, kind: ResourceKind, identifier: str) -> bool:
        if (kind, identifier) not in self._records:
            return False
        previous_id = self.selected_id() if kind is self._kind else None
        del self._records[(kind, identifier)]
        if kind is self._kind:
            self._reanchor(previous_id, self._cursor)
        self._inc_version()
        return True

    # --- STATUS ---

    def set_message(self, message: str) -> None:
        self._message = message
        self._inc_version()

    def clear_message(self) -> None:
        if self._message:
            self._message = ""
            self._inc_version()

    def snapshot(self) -> DashboardView:
        """Read-only copy of what the renderer needs from the store."""
        return DashboardView(
            kind=self._kind,
            records=self.visible(),
            cursor=self._cursor,
            message=self._message,
            filter_mode=self._filter_mode,
            version=self._version,
        )
