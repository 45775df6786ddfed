"""Position-tracked cursor over a materialized event sequence."""

from typing import Sequence

from .errors import EndOfStreamError
from .events import Event


class EventCursor:
    """Peek/consume view over an ordered event list.

    ``peek()`` gives the unbounded lookahead the builder needs where the
    number of sibling elements is only discoverable by looking ahead.
    """

    def __init__(self, events: Sequence[Event]):
        self._events = events
        self._index = 0

    @property
    def position(self) -> int:
        """Index of the next event to be returned."""
        return self._index

    @property
    def remaining(self) -> int:
        return len(self._events) - self._index

    def peek(self) -> Event:
        """Return the next event without advancing."""
        if self._index >= len(self._events):
            raise EndOfStreamError(
                f"Invalid index {self._index} into events of length {len(self._events)}"
            )
        return self._events[self._index]

    def next(self) -> Event:
        """Return the next event and advance past it."""
        event = self.peek()
        self._index += 1
        return event
