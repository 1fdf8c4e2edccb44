"""Process spawning collaborator — the only code that touches the OS process API."""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
from dataclasses import dataclass, field
from typing import Any, Protocol

from pipeconsole.errors import SpawnError

logger = logging.getLogger(__name__)


@dataclass
class SpawnSpec:
    """What to run.

    ``arguments`` may be a single string; it is split with shell-like rules.
    ``env`` entries are layered over the current environment.
    """

    command: str
    arguments: list[str] | str = field(default_factory=list)
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.arguments, str):
            self.arguments = shlex.split(self.arguments)

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.arguments]

    @property
    def argument_string(self) -> str:
        return shlex.join(self.arguments)


class ProcessSpawner(Protocol):
    """Interface the process session needs from the OS.

    ``read_stdout``/``read_stderr`` block until bytes are available and
    return ``b""`` at end-of-stream.
    """

    def start(self, spec: SpawnSpec) -> Any: ...

    def write_stdin(self, handle: Any, data: bytes) -> None: ...

    def read_stdout(self, handle: Any, size: int) -> bytes: ...

    def read_stderr(self, handle: Any, size: int) -> bytes: ...

    def wait(self, handle: Any) -> int: ...

    def terminate(self, handle: Any) -> None: ...


class SubprocessSpawner:
    """Spawns children with ``subprocess.Popen`` over unbuffered pipes.

    Each child gets its own process group (start_new_session) so terminate()
    reaches the whole tree.
    """

    def start(self, spec: SpawnSpec) -> subprocess.Popen:
        env = {**os.environ, **spec.env}
        try:
            proc = subprocess.Popen(
                spec.argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
                cwd=spec.cwd,
                env=env,
                start_new_session=os.name == "posix",
            )
        except (OSError, ValueError) as e:
            raise SpawnError(spec.command, str(e)) from e
        return proc

    def write_stdin(self, handle: subprocess.Popen, data: bytes) -> None:
        assert handle.stdin is not None, "child spawned without a stdin pipe"
        handle.stdin.write(data)
        handle.stdin.flush()

    def read_stdout(self, handle: subprocess.Popen, size: int) -> bytes:
        assert handle.stdout is not None, "child spawned without a stdout pipe"
        return handle.stdout.read(size) or b""

    def read_stderr(self, handle: subprocess.Popen, size: int) -> bytes:
        assert handle.stderr is not None, "child spawned without a stderr pipe"
        return handle.stderr.read(size) or b""

    def wait(self, handle: subprocess.Popen) -> int:
        code = handle.wait()
        if handle.stdin is not None:
            try:
                handle.stdin.close()
            except OSError:
                pass
        return code

    def terminate(self, handle: subprocess.Popen) -> None:
        if handle.poll() is not None:
            return
        try:
            if os.name == "posix":
                os.killpg(os.getpgid(handle.pid), signal.SIGTERM)
            else:
                handle.terminate()
            logger.info("Sent terminate to pid=%d", handle.pid)
        except ProcessLookupError:
            logger.debug("Process already gone: %d", handle.pid)
        except OSError as e:
            logger.warning("Error terminating pid=%d: %s", handle.pid, e)
