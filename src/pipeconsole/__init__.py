"""pipeconsole — an embeddable interactive console driving a child process."""

from pipeconsole.config import ConsoleConfig, KeyMapping
from pipeconsole.console import Console, ConsoleBuffer
from pipeconsole.errors import (
    PipeConsoleError,
    ReadOnlyRegionError,
    SessionBusyError,
    SpawnError,
)
from pipeconsole.keys import KeyStroke

__version__ = "0.1.0"

__all__ = [
    "Console",
    "ConsoleBuffer",
    "ConsoleConfig",
    "KeyMapping",
    "KeyStroke",
    "PipeConsoleError",
    "ReadOnlyRegionError",
    "SessionBusyError",
    "SpawnError",
]
