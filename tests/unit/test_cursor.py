"""Unit tests for the event cursor."""

import pytest

from ev3diagram.cursor import EventCursor
from ev3diagram.errors import EndOfStreamError, ErrorKind
from ev3diagram.events import EmptyTag, EndOfStream, EndTag, StartTag


class TestEventCursor:
    """Test peek/next semantics over a materialized event list."""

    def test_peek_does_not_advance(self):
        """Test repeated peeks return the same event."""
        cursor = EventCursor([StartTag(b"a"), EndTag(b"a"), EndOfStream()])
        assert cursor.peek() == StartTag(b"a")
        assert cursor.peek() == StartTag(b"a")
        assert cursor.position == 0

    def test_next_advances(self):
        """Test next returns events in order."""
        events = [StartTag(b"a"), EmptyTag(b"b"), EndTag(b"a"), EndOfStream()]
        cursor = EventCursor(events)
        assert [cursor.next() for _ in events] == events
        assert cursor.position == 4
        assert cursor.remaining == 0

    def test_peek_then_next_agree(self):
        """Test next returns what peek showed."""
        cursor = EventCursor([EmptyTag(b"Wire"), EndOfStream()])
        peeked = cursor.peek()
        assert cursor.next() is peeked
        assert cursor.remaining == 1

    def test_next_past_end(self):
        """Test reading past the last event fails with EndOfStream."""
        cursor = EventCursor([EndOfStream()])
        cursor.next()
        with pytest.raises(EndOfStreamError, match="Invalid index 1") as excinfo:
            cursor.next()
        assert excinfo.value.kind == ErrorKind.END_OF_STREAM

    def test_peek_empty(self):
        """Test peeking into an empty list fails."""
        with pytest.raises(EndOfStreamError):
            EventCursor([]).peek()
