"""Dispatchers — marshal closures onto the one context that owns the buffer.

Pump and monitor threads never mutate the console buffer directly. They
submit closures to a dispatcher, which runs them one at a time, in
submission order, on its owning context.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class Dispatcher(Protocol):
    """Runs submitted callables on a single owning context, FIFO."""

    def submit(self, fn: Callable[..., Any], *args: Any) -> None: ...

    def call(self, fn: Callable[..., Any], *args: Any) -> Any: ...

    @property
    def closed(self) -> bool: ...


class QueueDispatcher:
    """Single-consumer channel plus a dispatch loop on a dedicated thread.

    Used by the headless console (pipe mode) and by tests. ``drain()`` waits
    until everything submitted so far has run. After ``close()``, new
    submissions are dropped.
    """

    def __init__(self, name: str = "console-dispatch") -> None:
        self._queue: queue.Queue[tuple[Callable[..., Any], tuple[Any, ...]] | None] = (
            queue.Queue()
        )
        self._closed = False
        self._thread = threading.Thread(target=self._loop, name=name, daemon=True)
        self._thread.start()

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        if self._closed:
            logger.debug("Dispatcher closed; dropped %r", fn)
            return
        self._queue.put((fn, args))

    def call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run ``fn`` on the dispatch thread and return its result.

        Runs inline when already on the dispatch thread.
        """
        if self.owns_current_thread:
            return fn(*args)
        if self._closed:
            raise RuntimeError("dispatcher is closed")
        future: Future = Future()

        def run() -> None:
            try:
                future.set_result(fn(*args))
            except Exception as e:
                future.set_exception(e)

        self._queue.put((run, ()))
        return future.result()

    def _loop(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                fn, args = item
                try:
                    fn(*args)
                except Exception:
                    logger.exception("Error in dispatched call %r", fn)
            finally:
                self._queue.task_done()

    def drain(self) -> None:
        """Block until every call submitted so far has run."""
        if threading.current_thread() is self._thread:
            return
        self._queue.join()

    @property
    def owns_current_thread(self) -> bool:
        return threading.current_thread() is self._thread

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Run what is already queued, then stop the loop."""
        if self._closed:
            return
        self._closed = True
        self._queue.put(None)
        if threading.current_thread() is not self._thread:
            self._thread.join()
