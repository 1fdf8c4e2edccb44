"""Console core — buffer, input boundary, keystroke routing and marshaling."""

from pipeconsole.console.buffer import ConsoleBuffer
from pipeconsole.console.controller import Console
from pipeconsole.console.dispatch import Dispatcher, QueueDispatcher
from pipeconsole.console.router import InputRouter, KeyDecision, RouteAction

__all__ = [
    "Console",
    "ConsoleBuffer",
    "Dispatcher",
    "InputRouter",
    "KeyDecision",
    "QueueDispatcher",
    "RouteAction",
]
