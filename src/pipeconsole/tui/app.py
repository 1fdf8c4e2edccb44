"""Main Textual application hosting a console on one command."""

from __future__ import annotations

import logging
from typing import Sequence

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.css.query import NoMatches
from textual.widgets import Footer, Header, Static

from pipeconsole.config import ConsoleConfig
from pipeconsole.console.controller import Console
from pipeconsole.errors import PipeConsoleError
from pipeconsole.tui.bridge import TextualDispatcher
from pipeconsole.tui.widget import ConsoleView
from pipeconsole.wire import EventType, WireEvent

logger = logging.getLogger(__name__)


class TUILogHandler(logging.Handler):
    """Logging handler that captures the last log message for the TUI status bar.

    Instead of writing to stderr (which corrupts the Textual display),
    this handler stores the most recent log record and schedules a status
    bar refresh through the app's dispatcher.
    """

    def __init__(self, app: ConsoleApp) -> None:
        super().__init__()
        self._app = app
        self.last_message: str = ""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.last_message = self.format(record)
            self._app.dispatcher.submit(self._app._update_status)
        except Exception:
            self.handleError(record)


class ConsoleApp(App):
    """pipeconsole TUI — one child process in an interactive console."""

    TITLE = "pipeconsole"
    CSS = """
    #console-scroll {
        height: 1fr;
        border: solid $primary;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        background: $surface;
        color: $text-muted;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", priority=True),
        Binding("ctrl+l", "clear", "Clear", priority=True),
        Binding("ctrl+x", "stop", "Stop", priority=True),
        Binding("ctrl+r", "restart", "Restart", priority=True),
    ]

    def __init__(
        self,
        command: str,
        arguments: Sequence[str] | str = "",
        config: ConsoleConfig | None = None,
        cwd: str | None = None,
    ) -> None:
        super().__init__()
        self.command = command
        self.arguments = arguments
        self.cwd = cwd
        self.dispatcher = TextualDispatcher(self)
        self.console = Console(config=config, dispatcher=self.dispatcher)
        self._log_handler: TUILogHandler | None = None
        self._exit_code: int | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with VerticalScroll(id="console-scroll"):
            yield ConsoleView(self.console, id="console")
        yield Static(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.dispatcher.bind()
        self.sub_title = self.command
        self._install_log_handler()
        self.console.wire.add_listener(EventType.EXITED, self._on_exited)
        self.query_one("#console", ConsoleView).focus()
        self._start_process()

    def on_unmount(self) -> None:
        self.dispatcher.close()
        self.console.stop()
        if self._log_handler is not None:
            logging.getLogger().removeHandler(self._log_handler)

    def _install_log_handler(self) -> None:
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        self._log_handler = TUILogHandler(self)
        self._log_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root.addHandler(self._log_handler)

    def _start_process(self) -> None:
        self._exit_code = None
        try:
            self.console.start(self.command, self.arguments, cwd=self.cwd)
        except PipeConsoleError as e:
            logger.error("%s", e)
            self.console.write_output(f"{e}\n", self.console.config.colors.error)
            self.notify(str(e), severity="error")
        self._update_status()

    # --- Wire events (monitor thread) ---

    def _on_exited(self, event: WireEvent) -> None:
        self.dispatcher.submit(self._mark_exited, event.data.get("exit_code"))

    def _mark_exited(self, exit_code: int | None) -> None:
        self._exit_code = exit_code
        self._update_status()

    # --- Status bar ---

    def _update_status(self) -> None:
        try:
            status = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        session = self.console.session
        if session.is_running:
            parts = [f"[bold green]running[/bold green] {escape(session.name)} (pid {session.pid})"]
        elif self._exit_code is not None:
            parts = [f"[bold yellow]exited[/bold yellow] (code={self._exit_code})"]
        else:
            parts = ["[dim]idle[/dim]"]
        if self.console.forward_keyboard_commands:
            parts.append("keys → process")
        if self._log_handler and self._log_handler.last_message:
            last_log = self._log_handler.last_message
            if len(last_log) > 80:
                last_log = last_log[:77] + "..."
            parts.append(f"[dim]{escape(last_log)}[/dim]")
        status.update(" | ".join(parts))

    # --- Actions ---

    def action_clear(self) -> None:
        self.console.clear()

    def action_stop(self) -> None:
        self.console.stop()

    def action_restart(self) -> None:
        if self.console.is_process_running:
            self.notify("Process is still running; stop it first.", severity="warning")
            return
        self._start_process()
