"""Input router — decides what happens to each keystroke."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from pipeconsole.keys import KeyStroke

if TYPE_CHECKING:
    from pipeconsole.config import ConsoleConfig
    from pipeconsole.console.buffer import ConsoleBuffer
    from pipeconsole.process.session import ProcessSession

logger = logging.getLogger(__name__)


class RouteAction(enum.Enum):
    PASS = "pass"  # Let the surface edit normally
    SUPPRESS = "suppress"  # Swallow the keystroke
    FORWARD = "forward"  # Escape sequence sent to the process, keystroke swallowed
    SUBMIT = "submit"  # Pending line sent to the process


@dataclass(frozen=True)
class KeyDecision:
    action: RouteAction
    payload: str | None = None  # Sequence forwarded or line submitted

    @property
    def suppress(self) -> bool:
        return self.action in (RouteAction.SUPPRESS, RouteAction.FORWARD)


_PASS = KeyDecision(RouteAction.PASS)
_SUPPRESS = KeyDecision(RouteAction.SUPPRESS)


class InputRouter:
    """Classifies keystrokes against the input boundary and the key-mapping table.

    Order of rules:

    1. keyboard-command forwarding (when on and a process is running): a
       mapped key sends its escape sequence and is swallowed, even when the
       console is read-only
    2. read-only console: only navigation keys and Ctrl+C get through
    3. Backspace at or before the boundary is swallowed, unless it deletes
       a selection that starts inside the editable region
    4. in the read-only zone only arrows and Ctrl+C get through
    5. Enter in the editable zone submits ``[boundary, caret)`` without
       echoing it (it is already on screen); the newline itself passes
    """

    def __init__(
        self,
        buffer: ConsoleBuffer,
        session: ProcessSession,
        config: ConsoleConfig,
        submit: Callable[[str], None],
        read_only: Callable[[], bool] = lambda: False,
    ) -> None:
        self._buffer = buffer
        self._session = session
        self._config = config
        self._submit = submit
        self._read_only = read_only

    def route(
        self, stroke: KeyStroke, caret: int, selection_active: bool = False
    ) -> KeyDecision:
        """Decide what to do with ``stroke`` pressed at ``caret``.

        ``caret`` is the start of the selection when one is active.
        """
        boundary = self._buffer.boundary

        if self._config.forward_keyboard_commands and self._session.is_running:
            mapping = self._config.find_mapping(stroke)
            if mapping is not None:
                self._session.write_raw(mapping.sequence)
                logger.debug("Forwarded %s as %r", stroke, mapping.sequence)
                return KeyDecision(RouteAction.FORWARD, mapping.sequence)

        if self._read_only():
            if stroke.is_navigation or stroke.is_copy:
                return _PASS
            return _SUPPRESS

        if stroke.is_backspace and caret <= boundary:
            if not (selection_active and caret >= boundary):
                return _SUPPRESS

        in_read_only_zone = caret < boundary
        if in_read_only_zone and not (stroke.is_arrow or stroke.is_copy):
            return _SUPPRESS

        if stroke.is_enter and not in_read_only_zone:
            line = self._buffer.pending_input(caret)
            self._submit(line)
            return KeyDecision(RouteAction.SUBMIT, line)

        return _PASS
