"""Child process management — spawning, stream pumps, and session lifecycle.

A process session runs one child with piped stdin/stdout/stderr, drains both
output streams on background threads, and reports output and exit on a Wire.
"""

from pipeconsole.process.pump import StreamPump
from pipeconsole.process.session import ProcessSession, SessionStatus
from pipeconsole.process.spawner import ProcessSpawner, SpawnSpec, SubprocessSpawner

__all__ = [
    "ProcessSession",
    "ProcessSpawner",
    "SessionStatus",
    "SpawnSpec",
    "StreamPump",
    "SubprocessSpawner",
]
