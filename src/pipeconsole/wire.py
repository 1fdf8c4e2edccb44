"""Wire protocol — decouples the process session from the console and its host.

The process session emits events onto the wire from its pump and monitor
threads. The console listens for process events, and hosts that log or
mirror console activity listen for the CONSOLE_* events.

Two ways to consume:

* ``add_listener(type, callback)`` — synchronous observer, called on the
  emitting thread, in registration order.
* ``subscribe()`` — a thread-safe queue receiving every event, closed with a
  ``None`` sentinel.
"""

from __future__ import annotations

import enum
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[["WireEvent"], None]


class EventType(enum.Enum):
    OUTPUT = "output"
    ERROR_OUTPUT = "error_output"
    INPUT_ECHOED = "input_echoed"
    EXITED = "exited"
    CONSOLE_OUTPUT = "console_output"
    CONSOLE_INPUT = "console_input"


@dataclass
class WireEvent:
    """An event on the wire."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)


class Wire:
    """Thread-safe message bus: process session -> console -> host.

    Multi-producer, multi-consumer broadcast.
    """

    def __init__(self, strict: bool = False) -> None:
        self._listeners: dict[EventType, list[Listener]] = {}
        self._subscribers: list[queue.Queue[WireEvent | None]] = []
        self._lock = threading.Lock()
        self._closed: bool = False
        self.strict = strict

    def send(self, event: WireEvent) -> None:
        """Send an event to all listeners and subscribers.

        Silently drops events after ``close()`` has been called. A failing
        listener is logged and skipped unless the wire is strict.
        """
        with self._lock:
            if self._closed:
                return
            listeners = list(self._listeners.get(event.type, ()))
            subscribers = list(self._subscribers)
        for q in subscribers:
            q.put_nowait(event)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                if self.strict:
                    raise
                logger.exception("Error in %s listener %r", event.type.value, listener)

    def send_output(self, text: str) -> None:
        self.send(WireEvent(type=EventType.OUTPUT, data={"text": text}))

    def send_error_output(self, text: str) -> None:
        self.send(WireEvent(type=EventType.ERROR_OUTPUT, data={"text": text}))

    def send_input_echoed(self, text: str) -> None:
        self.send(WireEvent(type=EventType.INPUT_ECHOED, data={"text": text}))

    def send_exited(self, name: str, exit_code: int | None) -> None:
        self.send(
            WireEvent(
                type=EventType.EXITED,
                data={"name": name, "exit_code": exit_code},
            )
        )

    def send_console_output(self, text: str) -> None:
        self.send(WireEvent(type=EventType.CONSOLE_OUTPUT, data={"text": text}))

    def send_console_input(self, text: str) -> None:
        self.send(WireEvent(type=EventType.CONSOLE_INPUT, data={"text": text}))

    def add_listener(self, event_type: EventType, listener: Listener) -> None:
        """Call ``listener`` for every event of ``event_type``."""
        with self._lock:
            self._listeners.setdefault(event_type, []).append(listener)

    def remove_listener(self, event_type: EventType, listener: Listener) -> None:
        with self._lock:
            listeners = self._listeners.get(event_type, [])
            if listener in listeners:
                listeners.remove(listener)

    def subscribe(self) -> queue.Queue[WireEvent | None]:
        """Subscribe to all events. Returns a queue to read from."""
        q: queue.Queue[WireEvent | None] = queue.Queue()
        with self._lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        """Unsubscribe from events."""
        with self._lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Signal all subscribers that the wire is closing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscribers = list(self._subscribers)
        for q in subscribers:
            q.put_nowait(None)
