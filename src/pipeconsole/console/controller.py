"""Console — ties the process session, buffer, router and dispatcher together."""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Sequence

from pipeconsole.config import ConsoleConfig
from pipeconsole.console.buffer import ConsoleBuffer
from pipeconsole.console.dispatch import Dispatcher, QueueDispatcher
from pipeconsole.console.router import InputRouter, KeyDecision
from pipeconsole.errors import SessionBusyError
from pipeconsole.keys import KeyStroke
from pipeconsole.process.session import ProcessSession, strip_line_terminator
from pipeconsole.process.spawner import ProcessSpawner, SpawnSpec
from pipeconsole.wire import EventType, Wire, WireEvent

logger = logging.getLogger(__name__)


class Console:
    """An interactive console driving one child process.

    Process output and stderr arrive on pump threads and are marshaled
    through ``dispatcher`` onto the context that owns ``buffer``. Keystrokes
    go through ``handle_key()``; Enter sends the pending line to the process.

    Host events (CONSOLE_OUTPUT, CONSOLE_INPUT) are sent on ``wire`` from the
    owning context.
    """

    def __init__(
        self,
        config: ConsoleConfig | None = None,
        dispatcher: Dispatcher | None = None,
        spawner: ProcessSpawner | None = None,
        wire: Wire | None = None,
    ) -> None:
        self.config = config or ConsoleConfig()
        self.wire = wire or Wire(strict=self.config.strict)
        self.dispatcher: Dispatcher = dispatcher or QueueDispatcher()
        self.buffer = ConsoleBuffer()
        self.session = ProcessSession(
            self.wire,
            spawner,
            encoding=self.config.encoding,
            line_terminator=self.config.line_terminator,
            chunk_size=self.config.read_chunk_size,
        )
        self.router = InputRouter(
            self.buffer,
            self.session,
            self.config,
            submit=lambda line: self._write_input(line, False, None),
            read_only=lambda: self._read_only,
        )
        self._read_only = True
        self._read_only_listeners: list[Callable[[bool], None]] = []

        self.wire.add_listener(EventType.OUTPUT, self._on_process_output)
        self.wire.add_listener(EventType.ERROR_OUTPUT, self._on_process_error)
        self.wire.add_listener(EventType.EXITED, self._on_process_exit)

    # --- Process events (pump / monitor threads) ---

    def _on_process_output(self, event: WireEvent) -> None:
        self.dispatcher.submit(
            self._write_process_output, event.data["text"], self.config.colors.primary
        )

    def _on_process_error(self, event: WireEvent) -> None:
        self.dispatcher.submit(
            self._write_process_output, event.data["text"], self.config.colors.error
        )

    def _on_process_exit(self, event: WireEvent) -> None:
        if self.dispatcher.closed:
            logger.debug("Console torn down; ignoring exit of %s", event.data["name"])
            return
        self.dispatcher.submit(self._handle_exit, event.data["name"])

    def _write_process_output(self, text: str, style: str) -> None:
        self.buffer.append(text, style)
        self.wire.send_console_output(text)

    def _handle_exit(self, name: str) -> None:
        if self.config.show_diagnostics and name:
            self.buffer.append(f"\n{name} exited.", self.config.colors.debug)
        self._set_read_only(True)

    # --- Process control ---

    def start(
        self,
        command: str,
        arguments: Sequence[str] | str = "",
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Run ``command`` in the console.

        Raises SpawnError if it cannot be launched and SessionBusyError if a
        process is already running.
        """
        if self.session.is_running:
            raise SessionBusyError(
                f"{self.session.name} is still running; stop it before starting {command}"
            )

        if self.config.show_diagnostics:
            spec = SpawnSpec(
                command=command,
                arguments=arguments if isinstance(arguments, str) else list(arguments),
            )
            message = f"Preparing to run {command}"
            if spec.arguments:
                message += f" with arguments {spec.argument_string}"
            self.write_output(message + ".\n", self.config.colors.debug)

        # Queued ahead of any exit handling for this run
        self.dispatcher.submit(self._set_read_only, not self.config.input_enabled)
        try:
            self.session.start(command, arguments, cwd=cwd, env=env)
        except Exception:
            self.dispatcher.submit(self._set_read_only, True)
            raise

    def stop(self) -> None:
        """Ask the process to terminate; EXITED follows on the wire."""
        self.session.stop()

    def wait_exited(self, timeout: float | None = None) -> bool:
        """Wait for the process to exit and its exit handling to be queued."""
        return self.session.wait_exited(timeout)

    # --- Output and input ---

    def write_output(self, text: str, style: str | None = None) -> None:
        """Append ``text`` to the console (marshaled onto the owning context)."""
        self.dispatcher.submit(
            self.buffer.append, text, style or self.config.colors.primary
        )

    def write_input(self, text: str, echo: bool = False, style: str | None = None) -> None:
        """Send ``text`` to the process as one input line.

        With ``echo`` the text is also appended to the console.
        """
        self.dispatcher.call(self._write_input, text, echo, style)

    def _write_input(self, text: str, echo: bool, style: str | None) -> None:
        if echo:
            self.buffer.append(text, style or self.config.colors.input, dedup=False)
        self.buffer.remember_input(strip_line_terminator(text))
        if self.session.write_input(text):
            self.wire.send_console_input(text)

    def clear(self) -> None:
        """Empty the console; the whole (empty) buffer becomes editable."""
        self.dispatcher.call(self.buffer.clear)

    # --- Keystrokes (owning context) ---

    def handle_key(
        self, stroke: KeyStroke, caret: int, selection_active: bool = False
    ) -> KeyDecision:
        """Route one keystroke; see InputRouter for the rules."""
        return self.dispatcher.call(self.router.route, stroke, caret, selection_active)

    def type_text(self, text: str, caret: int | None = None) -> int:
        """Insert typed ``text`` at ``caret`` (default: end). Returns the new caret.

        Raises ReadOnlyRegionError in front of the boundary.
        """
        return self.dispatcher.call(self._type_text, text, caret)

    def _type_text(self, text: str, caret: int | None) -> int:
        position = len(self.buffer) if caret is None else caret
        self.buffer.insert(position, text, self.config.colors.input)
        return position + len(text)

    # --- Editability ---

    def _set_read_only(self, value: bool) -> None:
        if value == self._read_only:
            return
        self._read_only = value
        for listener in list(self._read_only_listeners):
            listener(value)

    def add_read_only_listener(self, listener: Callable[[bool], None]) -> None:
        """Call ``listener(read_only)`` whenever editability changes."""
        self._read_only_listeners.append(listener)

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def show_diagnostics(self) -> bool:
        return self.config.show_diagnostics

    @show_diagnostics.setter
    def show_diagnostics(self, value: bool) -> None:
        self.config.show_diagnostics = value

    @property
    def input_enabled(self) -> bool:
        return self.config.input_enabled

    @input_enabled.setter
    def input_enabled(self, value: bool) -> None:
        self.config.input_enabled = value
        if self.session.is_running:
            self.dispatcher.submit(self._set_read_only, not value)

    @property
    def forward_keyboard_commands(self) -> bool:
        return self.config.forward_keyboard_commands

    @forward_keyboard_commands.setter
    def forward_keyboard_commands(self, value: bool) -> None:
        self.config.forward_keyboard_commands = value

    @property
    def is_process_running(self) -> bool:
        return self.session.is_running

    def close(self) -> None:
        """Stop the process and shut down the dispatcher and wire."""
        if self.session.is_running:
            self.session.stop()
        close = getattr(self.dispatcher, "close", None)
        if callable(close):
            close()
        self.wire.close()
