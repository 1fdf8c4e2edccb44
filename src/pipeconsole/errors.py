"""Exception types raised by pipeconsole."""

from __future__ import annotations


class PipeConsoleError(Exception):
    """Base class for all pipeconsole errors."""


class SpawnError(PipeConsoleError):
    """The child process could not be launched."""

    def __init__(self, command: str, reason: str = "") -> None:
        self.command = command
        self.reason = reason
        message = f"Failed to start {command!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class SessionBusyError(PipeConsoleError):
    """A process is already running in this session."""


class ReadOnlyRegionError(PipeConsoleError):
    """An edit touched text before the input boundary."""

    def __init__(self, position: int, boundary: int) -> None:
        self.position = position
        self.boundary = boundary
        super().__init__(
            f"Position {position} is read-only (input starts at {boundary})"
        )
