"""Process session — one child process with piped standard streams."""

from __future__ import annotations

import enum
import logging
import os
import threading
from typing import Any, Mapping, Sequence

from pipeconsole.errors import SessionBusyError
from pipeconsole.process.pump import StreamPump
from pipeconsole.process.spawner import ProcessSpawner, SpawnSpec, SubprocessSpawner
from pipeconsole.wire import Wire

logger = logging.getLogger(__name__)

_TERMINATORS = ("\r\n", "\n", "\r")


class SessionStatus(enum.Enum):
    """Lifecycle states for a process session."""

    IDLE = "idle"  # Never started
    RUNNING = "running"
    STOPPING = "stopping"  # Terminate requested, waiting for exit
    EXITED = "exited"


def strip_line_terminator(text: str) -> str:
    """Remove one trailing line terminator, if present."""
    for terminator in _TERMINATORS:
        if text.endswith(terminator):
            return text[: -len(terminator)]
    return text


class ProcessSession:
    """Owns the lifecycle of one child process at a time.

    - ``start()`` spawns the child and two stream pumps (stdout, stderr)
    - a monitor thread joins both pumps, then waits for the process, then
      emits EXITED, so every output event of a run precedes its exit event
    - ``write_input()``/``write_raw()`` are serialized by one lock and are
      safe to call from any thread while the pumps run
    - ``stop()`` never blocks; use ``wait_exited()`` to wait for shutdown

    Starting while a process is running raises SessionBusyError.
    """

    def __init__(
        self,
        wire: Wire,
        spawner: ProcessSpawner | None = None,
        encoding: str = "utf-8",
        line_terminator: str = os.linesep,
        chunk_size: int = 4096,
    ) -> None:
        self._wire = wire
        self._spawner: ProcessSpawner = spawner or SubprocessSpawner()
        self.encoding = encoding
        self.line_terminator = line_terminator
        self._chunk_size = chunk_size

        self._state_lock = threading.Lock()
        self._input_lock = threading.Lock()
        self._status = SessionStatus.IDLE
        self._spec: SpawnSpec | None = None
        self._handle: Any = None
        self._exit_code: int | None = None
        self._exited = threading.Event()
        self._monitor: threading.Thread | None = None

    def start(
        self,
        command: str,
        arguments: Sequence[str] | str = (),
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Spawn ``command`` and begin pumping its output.

        Raises SpawnError if the executable cannot be launched (no state is
        kept) and SessionBusyError if a process is already running.
        """
        spec = SpawnSpec(
            command=command,
            arguments=arguments if isinstance(arguments, str) else list(arguments),
            cwd=cwd,
            env=dict(env or {}),
        )
        with self._state_lock:
            if self._status in (SessionStatus.RUNNING, SessionStatus.STOPPING):
                raise SessionBusyError(
                    f"{self.name} is still running; stop it before starting {command}"
                )

            handle = self._spawner.start(spec)

            exited = threading.Event()
            pumps = [
                StreamPump(
                    "stdout",
                    lambda size: self._spawner.read_stdout(handle, size),
                    self._wire.send_output,
                    encoding=self.encoding,
                    chunk_size=self._chunk_size,
                ),
                StreamPump(
                    "stderr",
                    lambda size: self._spawner.read_stderr(handle, size),
                    self._wire.send_error_output,
                    encoding=self.encoding,
                    chunk_size=self._chunk_size,
                ),
            ]
            self._spec = spec
            self._handle = handle
            self._exit_code = None
            self._exited = exited
            self._status = SessionStatus.RUNNING

            for pump in pumps:
                pump.start()
            self._monitor = threading.Thread(
                target=self._watch,
                args=(handle, pumps, exited),
                name=f"monitor-{command}",
                daemon=True,
            )
            self._monitor.start()

        logger.info(
            "Process session started: pid=%s cmd=%s",
            getattr(handle, "pid", "?"),
            " ".join(spec.argv),
        )

    def _watch(
        self, handle: Any, pumps: list[StreamPump], exited: threading.Event
    ) -> None:
        """Wait for end-of-stream on both pumps and the process, then emit EXITED."""
        exit_code: int | None = None
        try:
            for pump in pumps:
                pump.join()
            try:
                exit_code = self._spawner.wait(handle)
            except Exception:
                logger.exception("Waiting for %s failed", self.name)

            with self._state_lock:
                if self._handle is handle:
                    self._handle = None
                    self._status = SessionStatus.EXITED
                    self._exit_code = exit_code
            logger.info("Process %s exited (code=%s)", self.name, exit_code)
            self._wire.send_exited(self.name, exit_code)
        finally:
            exited.set()

    def write_input(self, text: str) -> bool:
        """Write ``text`` plus the line terminator to the child's stdin.

        One trailing terminator already on ``text`` is replaced, not doubled.
        Returns False (and writes nothing) when no process is running.
        Fires INPUT_ECHOED for every accepted line.
        """
        line = strip_line_terminator(text)
        data = (line + self.line_terminator).encode(self.encoding, errors="replace")
        if not self._write(data):
            return False
        self._wire.send_input_echoed(line)
        return True

    def write_raw(self, data: bytes | str) -> bool:
        """Write control bytes to stdin verbatim (no terminator, no echo event)."""
        if isinstance(data, str):
            data = data.encode(self.encoding, errors="replace")
        return self._write(data)

    def _write(self, data: bytes) -> bool:
        with self._input_lock:
            handle = self._handle
            if handle is None or not self.is_running:
                logger.debug("No process running; dropped %d bytes of input", len(data))
                return False
            try:
                self._spawner.write_stdin(handle, data)
            except (OSError, ValueError) as e:
                # Child closed stdin or is exiting
                logger.debug("Write to %s failed: %s", self.name, e)
                return False
        return True

    def stop(self) -> None:
        """Request termination. Does not block.

        With nothing running, EXITED is emitted straight away so a caller
        waiting on it is always released. It carries an empty name: no run
        ended, so nothing should be reported as exited.
        """
        with self._state_lock:
            status = self._status
            handle = self._handle
            if status is SessionStatus.RUNNING:
                self._status = SessionStatus.STOPPING

        if status is SessionStatus.STOPPING:
            return
        if status is SessionStatus.RUNNING and handle is not None:
            self._spawner.terminate(handle)
            return

        logger.debug("stop() with no running process")
        try:
            self._wire.send_exited("", self._exit_code)
        finally:
            self._exited.set()

    def wait_exited(self, timeout: float | None = None) -> bool:
        """Block until the current run's EXITED event has been emitted."""
        return self._exited.wait(timeout)

    @property
    def name(self) -> str:
        return self._spec.command if self._spec else ""

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status in (SessionStatus.RUNNING, SessionStatus.STOPPING)

    @property
    def exit_code(self) -> int | None:
        return self._exit_code

    @property
    def pid(self) -> int | None:
        return getattr(self._handle, "pid", None)
