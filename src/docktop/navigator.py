"""
View navigation: a stack of List / Detail views.

The stack is never empty; List is always its base. Popping the base means
the operator wants to leave, so it is reported as EXIT instead.
"""

import logging
from enum import Enum
from typing import List, Optional
from .model import Action, ResourceKind, ViewEntry, ListView, DetailView

logger = logging.getLogger(__name__)


class Outcome(Enum):
    HANDLED = "handled"  # navigation consumed the action
    FORWARD = "forward"  # not navigation, pass to store / dispatcher
    EXIT = "exit"


class ViewNavigator:
    def __init__(self):
        self._stack: List[ViewEntry] = [ListView()]

    @property
    def active(self) -> ViewEntry:
        return self._stack[-1]

    @property
    def depth(self) -> int:
        return len(self._stack)

    def in_detail(self) -> bool:
        return isinstance(self.active, DetailView)

    def handle(self, action: Action, kind: ResourceKind, selected_id: Optional[str]) -> Outcome:
        if action is Action.OPEN:
            if isinstance(self.active, ListView) and selected_id is not None:
                self._stack.append(DetailView(kind, selected_id))
                logger.debug(f"Opened details of {kind.singular} {selected_id[:12]}")
            return Outcome.HANDLED
        if action is Action.BACK:
            if len(self._stack) == 1:
                return Outcome.EXIT
            self._stack.pop()
            return Outcome.HANDLED
        if action.kind is not None:
            self.reset()
        return Outcome.FORWARD

    def target(self, selected_id: Optional[str]) -> Optional[str]:
        """Identifier a lifecycle command applies to in the active view."""
        if isinstance(self.active, DetailView):
            return self.active.identifier
        return selected_id

    def reset(self) -> None:
        del self._stack[1:]
