"""ConsoleView — the widget that renders a Console buffer and takes keystrokes."""

from __future__ import annotations

import logging

from rich.text import Text
from textual import events
from textual.containers import ScrollableContainer
from textual.widget import Widget

from pipeconsole.console.controller import Console
from pipeconsole.console.router import RouteAction
from pipeconsole.keys import BACKSPACE, ENTER, TAB, KeyStroke

logger = logging.getLogger(__name__)


class ConsoleView(Widget, can_focus=True):
    """Renders the console buffer with its style spans and a caret.

    Every key goes through ``Console.handle_key()`` first. Keys the router
    lets through are applied here as plain line editing.
    """

    DEFAULT_CSS = """
    ConsoleView {
        height: auto;
        min-height: 100%;
        padding: 0 1;
    }

    ConsoleView.-read-only {
        color: $text-muted;
    }
    """

    def __init__(
        self,
        console: Console,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self.console = console
        self.caret = 0
        console.buffer.add_listener(self._on_buffer_changed)
        console.add_read_only_listener(self._on_read_only_changed)
        self.set_class(console.read_only, "-read-only")

    # --- Rendering ---

    def render(self) -> Text:
        text = self.console.buffer.text
        if not self.has_focus or self.console.read_only:
            return text
        plain = text.plain
        caret = min(self.caret, len(plain))
        if caret == len(plain) or plain[caret] == "\n":
            head = text[:caret]
            head.append(" ", style="reverse")
            head.append_text(text[caret:])
            return head
        text.stylize("reverse", caret, caret + 1)
        return text

    def _on_buffer_changed(self) -> None:
        buffer = self.console.buffer
        if buffer.boundary == len(buffer) or self.caret > len(buffer):
            self.caret = len(buffer)
        self._refresh_and_follow()

    def _on_read_only_changed(self, read_only: bool) -> None:
        self.set_class(read_only, "-read-only")
        self.refresh()

    def _refresh_and_follow(self) -> None:
        self.refresh(layout=True)
        if self.is_mounted and isinstance(self.parent, ScrollableContainer):
            self.call_after_refresh(self.parent.scroll_end, animate=False)

    def on_focus(self) -> None:
        self.refresh()

    def on_blur(self) -> None:
        self.refresh()

    # --- Keys ---

    def on_key(self, event: events.Key) -> None:
        stroke = KeyStroke.parse(event.key, event.character)
        decision = self.console.handle_key(stroke, self.caret)
        event.stop()
        event.prevent_default()
        if decision.suppress:
            logger.debug("Key %s at %d: %s", stroke, self.caret, decision.action.value)
            return
        if decision.action is RouteAction.SUBMIT:
            self._insert("\n")
            return
        self._edit(stroke, event)

    def _edit(self, stroke: KeyStroke, event: events.Key) -> None:
        buffer = self.console.buffer
        plain = buffer.plain
        if stroke.is_copy:
            self.app.copy_to_clipboard(self._current_line())
        elif stroke.key == "left" and not stroke.ctrl:
            self.caret = max(0, self.caret - 1)
        elif stroke.key == "right" and not stroke.ctrl:
            self.caret = min(len(plain), self.caret + 1)
        elif stroke.key == "home":
            self.caret = plain.rfind("\n", 0, self.caret) + 1
        elif stroke.key == "end":
            end = plain.find("\n", self.caret)
            self.caret = len(plain) if end < 0 else end
        elif stroke.key in ("up", "down"):
            self._move_vertical(-1 if stroke.key == "up" else 1)
        elif stroke.is_backspace:
            if self.caret > buffer.boundary:
                buffer.delete(self.caret - 1, self.caret)
                self.caret -= 1
        elif stroke.key == "delete":
            if buffer.is_editable(self.caret) and self.caret < len(plain):
                buffer.delete(self.caret, self.caret + 1)
        elif stroke.key == TAB and not stroke.ctrl:
            self._insert("\t")
        elif stroke.key not in (ENTER, BACKSPACE) and event.is_printable and event.character:
            self._insert(event.character)
        self.refresh()

    def _insert(self, text: str) -> None:
        self.caret = self.console.type_text(text, self.caret)

    def _current_line(self) -> str:
        plain = self.console.buffer.plain
        start = plain.rfind("\n", 0, self.caret) + 1
        end = plain.find("\n", self.caret)
        return plain[start : len(plain) if end < 0 else end]

    def _move_vertical(self, direction: int) -> None:
        plain = self.console.buffer.plain
        line_start = plain.rfind("\n", 0, self.caret) + 1
        column = self.caret - line_start
        if direction < 0:
            if line_start == 0:
                return
            target_start = plain.rfind("\n", 0, line_start - 1) + 1
            target_end = line_start - 1
        else:
            next_break = plain.find("\n", self.caret)
            if next_break < 0:
                return
            target_start = next_break + 1
            following = plain.find("\n", target_start)
            target_end = len(plain) if following < 0 else following
        self.caret = min(target_start + column, target_end)
