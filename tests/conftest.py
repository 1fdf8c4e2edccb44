"""Shared fixtures: an in-memory process spawner and a headless console."""

from __future__ import annotations

import queue
import threading
import time
from typing import Callable, Iterator

import pytest

from pipeconsole.config import ConsoleConfig
from pipeconsole.console.controller import Console
from pipeconsole.console.dispatch import QueueDispatcher
from pipeconsole.errors import SpawnError
from pipeconsole.process.spawner import SpawnSpec


class FakeProcess:
    """A scripted child: tests push stdout/stderr bytes and decide when it exits."""

    def __init__(self, spec: SpawnSpec, pid: int, echo: bool) -> None:
        self.spec = spec
        self.pid = pid
        self.echo = echo
        self.stdout: queue.Queue[bytes | None] = queue.Queue()
        self.stderr: queue.Queue[bytes | None] = queue.Queue()
        self.stdin = bytearray()
        self.exit_code: int | None = None
        self.terminated = False
        self.stdin_closed = False
        self._exited = threading.Event()

    def emit(self, data: bytes | str, stream: str = "stdout") -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        (self.stdout if stream == "stdout" else self.stderr).put(data)

    def exit(self, code: int = 0) -> None:
        if self._exited.is_set():
            return
        self.exit_code = code
        self.stdout.put(None)
        self.stderr.put(None)
        self._exited.set()

    @property
    def exited(self) -> bool:
        return self._exited.is_set()


class FakeSpawner:
    """ProcessSpawner that hands out FakeProcess handles.

    With ``echo`` on, whatever is written to stdin is copied to stdout, the
    way a terminal-minded child echoes its input. Set ``fail`` to make the
    next start() raise SpawnError with that reason.
    """

    def __init__(self, echo: bool = False) -> None:
        self.echo = echo
        self.fail: str | None = None
        self.processes: list[FakeProcess] = []

    @property
    def last(self) -> FakeProcess:
        return self.processes[-1]

    def start(self, spec: SpawnSpec) -> FakeProcess:
        if self.fail:
            raise SpawnError(spec.command, self.fail)
        process = FakeProcess(spec, pid=1000 + len(self.processes), echo=self.echo)
        self.processes.append(process)
        return process

    def write_stdin(self, handle: FakeProcess, data: bytes) -> None:
        if handle.exited or handle.stdin_closed:
            raise BrokenPipeError("stdin closed")
        handle.stdin.extend(data)
        if handle.echo:
            handle.stdout.put(bytes(data))

    def _read(self, stream: queue.Queue[bytes | None]) -> bytes:
        item = stream.get()
        if item is None:
            # Stay at end-of-stream for any further reads
            stream.put(None)
            return b""
        return item

    def read_stdout(self, handle: FakeProcess, size: int) -> bytes:
        return self._read(handle.stdout)

    def read_stderr(self, handle: FakeProcess, size: int) -> bytes:
        return self._read(handle.stderr)

    def wait(self, handle: FakeProcess) -> int:
        handle._exited.wait()
        assert handle.exit_code is not None
        return handle.exit_code

    def terminate(self, handle: FakeProcess) -> None:
        handle.terminated = True
        handle.exit(-15)


def poll_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def config() -> ConsoleConfig:
    return ConsoleConfig(line_terminator="\n")


@pytest.fixture
def dispatcher() -> Iterator[QueueDispatcher]:
    d = QueueDispatcher(name="test-dispatch")
    yield d
    d.close()


@pytest.fixture
def console(
    config: ConsoleConfig, dispatcher: QueueDispatcher, spawner: FakeSpawner
) -> Iterator[Console]:
    c = Console(config=config, dispatcher=dispatcher, spawner=spawner)
    yield c
    c.close()


@pytest.fixture
def wait_for() -> Callable[..., bool]:
    """Poll a predicate until it holds (or a timeout passes)."""
    return poll_until
