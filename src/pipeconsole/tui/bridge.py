"""Bridge between background threads and the Textual event loop.

``TextualDispatcher`` is the console's dispatcher when it is hosted in a
Textual app: calls made on the app thread run inline, calls from pump and
monitor threads go through ``App.call_from_thread``. Once the app is gone,
submissions are dropped.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from textual.app import App

logger = logging.getLogger(__name__)


class TextualDispatcher:
    """Dispatcher that marshals onto a Textual app's thread."""

    def __init__(self, app: App) -> None:
        self._app = app
        self._owner: int | None = None
        self._closed = False

    def bind(self) -> None:
        """Record the calling thread as the app thread. Call from on_mount."""
        self._owner = threading.get_ident()

    @property
    def on_owner_thread(self) -> bool:
        return self._owner == threading.get_ident()

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        if self._closed:
            logger.debug("App closed; dropped %r", fn)
            return
        if self.on_owner_thread:
            fn(*args)
            return
        try:
            self._app.call_from_thread(fn, *args)
        except RuntimeError as e:
            # App not running (yet, or any more)
            logger.debug("Could not marshal %r: %s", fn, e)

    def call(self, fn: Callable[..., Any], *args: Any) -> Any:
        if self.on_owner_thread:
            return fn(*args)
        if self._closed:
            raise RuntimeError("app is closed")
        return self._app.call_from_thread(fn, *args)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True
