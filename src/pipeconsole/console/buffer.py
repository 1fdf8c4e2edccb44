"""Console buffer — the displayed text and its read-only/editable boundary."""

from __future__ import annotations

import logging
from typing import Callable

from rich.text import Span, Text

from pipeconsole.errors import ReadOnlyRegionError

logger = logging.getLogger(__name__)


class ConsoleBuffer:
    """Single linear text buffer made of style-tagged spans.

    Everything before ``boundary`` is history and read-only; the user types
    at or after it. ``append()`` adds process output at the end and moves the
    boundary past it. ``insert()``/``delete()`` are user edits and refuse to
    touch the read-only region.

    Not thread-safe: all calls must come from the one owning context (see
    ``pipeconsole.console.dispatch``). Change listeners run on that context
    too, after every mutation.
    """

    def __init__(self) -> None:
        self._plain: str = ""
        self._spans: list[Span] = []
        self._boundary: int = 0
        self._last_input: str | None = None
        self._listeners: list[Callable[[], None]] = []

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Call ``listener`` after every change to the buffer."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener()

    # --- Output ---

    def append(self, text: str, style: str | None = None, dedup: bool = True) -> bool:
        """Append ``text`` at the end and make everything up to it read-only.

        Returns False without touching the buffer when ``dedup`` is set and
        ``text`` is the echo of the last line sent to the process (exact, or
        with one trailing newline). Input echoed by the console itself is
        appended with ``dedup=False``.
        """
        if dedup and self.is_echo(text):
            logger.debug("Suppressed echoed input %r", text)
            return False
        start = len(self._plain)
        self._plain += text
        if style and text:
            self._spans.append(Span(start, len(self._plain), style))
        self._boundary = len(self._plain)
        self._changed()
        return True

    def is_echo(self, text: str) -> bool:
        last = self._last_input
        if not last:
            return False
        return text == last or text.removesuffix("\n") == last

    def remember_input(self, line: str) -> None:
        """Record the last line sent to the process, for echo suppression."""
        self._last_input = line

    @property
    def last_input(self) -> str | None:
        return self._last_input

    def clear(self) -> None:
        """Empty the buffer and reset the boundary to 0."""
        self._plain = ""
        self._spans = []
        self._boundary = 0
        self._changed()

    # --- User edits ---

    def is_editable(self, position: int) -> bool:
        return position >= self._boundary

    def insert(self, position: int, text: str, style: str | None = None) -> None:
        """Insert user-typed ``text`` at ``position`` (must be editable)."""
        if not self.is_editable(position):
            raise ReadOnlyRegionError(position, self._boundary)
        position = min(position, len(self._plain))
        n = len(text)
        if not n:
            return
        spans: list[Span] = []
        for span in self._spans:
            if span.end <= position:
                spans.append(span)
            elif span.start >= position:
                spans.append(span.move(n))
            else:
                spans.append(Span(span.start, position, span.style))
                spans.append(Span(position + n, span.end + n, span.style))
        if style:
            spans.append(Span(position, position + n, style))
        self._plain = self._plain[:position] + text + self._plain[position:]
        self._spans = sorted(spans, key=lambda s: s.start)
        self._changed()

    def delete(self, start: int, end: int) -> None:
        """Delete ``[start, end)``; ``start`` must be editable."""
        if start > end:
            start, end = end, start
        if not self.is_editable(start):
            raise ReadOnlyRegionError(start, self._boundary)
        end = min(end, len(self._plain))
        n = end - start
        if n <= 0:
            return
        spans: list[Span] = []
        for span in self._spans:
            if span.end <= start:
                spans.append(span)
            elif span.start >= end:
                spans.append(span.move(-n))
            else:
                new_start = min(span.start, start)
                new_end = span.end - n if span.end >= end else start
                if new_end > new_start:
                    spans.append(Span(new_start, new_end, span.style))
        self._plain = self._plain[:start] + self._plain[end:]
        self._spans = spans
        self._changed()

    def pending_input(self, caret: int) -> str:
        """The text typed so far: ``[boundary, caret)``."""
        caret = max(self._boundary, min(caret, len(self._plain)))
        return self._plain[self._boundary : caret]

    # --- Views ---

    @property
    def boundary(self) -> int:
        return self._boundary

    @property
    def plain(self) -> str:
        return self._plain

    @property
    def text(self) -> Text:
        """A rich Text copy of the buffer with its style spans."""
        return Text(self._plain, spans=list(self._spans))

    @property
    def spans(self) -> list[Span]:
        return list(self._spans)

    def __len__(self) -> int:
        return len(self._plain)
