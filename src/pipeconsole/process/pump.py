"""Stream pump — drains one child output stream on a background thread."""

from __future__ import annotations

import codecs
import io
import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class StreamPump:
    """Blocking read loop for one output stream.

    Bytes are decoded incrementally and line endings are normalized to
    ``\\n`` here, once, so a ``\\r\\n`` pair or a multi-byte character split
    across two reads still comes out whole. Each non-empty decoded chunk is
    handed to ``emit``.

    End-of-stream or a read error ends the pump; neither is reported as a
    process exit. Exit detection belongs to the session's monitor.
    """

    def __init__(
        self,
        name: str,
        read: Callable[[int], bytes],
        emit: Callable[[str], None],
        encoding: str = "utf-8",
        chunk_size: int = 4096,
    ) -> None:
        self.name = name
        self._read = read
        self._emit = emit
        self._chunk_size = chunk_size
        self._decoder = io.IncrementalNewlineDecoder(
            codecs.getincrementaldecoder(encoding)(errors="replace"),
            translate=True,
        )
        self._thread: threading.Thread | None = None
        self.error: Exception | None = None

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run, name=f"pump-{self.name}", daemon=True
        )
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        try:
            while True:
                try:
                    data = self._read(self._chunk_size)
                except (OSError, ValueError) as e:
                    self.error = e
                    logger.warning("Read from %s failed: %s", self.name, e)
                    break
                if not data:
                    break
                self._deliver(self._decoder.decode(data))
            self._deliver(self._decoder.decode(b"", final=True))
        except Exception as e:
            self.error = e
            logger.exception("Pump %s crashed", self.name)
        finally:
            logger.debug("Pump %s finished", self.name)

    def _deliver(self, text: str) -> None:
        if text:
            self._emit(text)
