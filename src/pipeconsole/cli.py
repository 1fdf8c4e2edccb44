"""CLI entry point for pipeconsole."""

from __future__ import annotations

import logging
import sys
import threading

import typer
from rich.console import Console as RichConsole

from pipeconsole.config import ConsoleConfig
from pipeconsole.errors import PipeConsoleError

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="pipeconsole",
    help="Run a command inside an interactive console that drives its standard streams.",
    no_args_is_help=True,
)

_PASSTHROUGH = {"ignore_unknown_options": True, "allow_extra_args": True}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _load_config(
    config_file: str | None,
    diagnostics: bool | None,
    forward_keys: bool | None,
    input_enabled: bool | None = None,
) -> ConsoleConfig:
    config = ConsoleConfig.load(config_file)
    if diagnostics is not None:
        config.show_diagnostics = diagnostics
    if forward_keys is not None:
        config.forward_keyboard_commands = forward_keys
    if input_enabled is not None:
        config.input_enabled = input_enabled
    return config


@app.command(context_settings=_PASSTHROUGH)
def tui(
    command: str = typer.Argument(help="Executable to run."),
    args: list[str] | None = typer.Argument(None, help="Arguments for the command."),
    diagnostics: bool | None = typer.Option(
        None,
        "--diagnostics/--no-diagnostics",
        "-d",
        help="Show 'Preparing to run' and 'exited' lines.",
    ),
    forward_keys: bool | None = typer.Option(
        None,
        "--forward-keys/--no-forward-keys",
        "-k",
        help="Send mapped keys (Ctrl-C, Tab) to the process instead of editing.",
    ),
    input_enabled: bool | None = typer.Option(
        None, "--input/--no-input", help="Allow typing input to the process."
    ),
    cwd: str | None = typer.Option(None, "--cwd", help="Working directory."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Run a command in the interactive Textual console."""
    # No stderr handler here: it would corrupt the Textual display. The app
    # installs its own handler on mount that routes logs to the status bar.
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)
    for h in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(h)

    config = _load_config(config_file, diagnostics, forward_keys, input_enabled)

    from pipeconsole.tui.app import ConsoleApp

    ConsoleApp(command, args or [], config=config, cwd=cwd).run()


@app.command(context_settings=_PASSTHROUGH)
def run(
    command: str = typer.Argument(help="Executable to run."),
    args: list[str] | None = typer.Argument(None, help="Arguments for the command."),
    diagnostics: bool | None = typer.Option(
        None,
        "--diagnostics/--no-diagnostics",
        "-d",
        help="Show 'Preparing to run' and 'exited' lines.",
    ),
    cwd: str | None = typer.Option(None, "--cwd", help="Working directory."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Run a command headless: mirror the console to stdout, forward stdin lines."""
    setup_logging(verbose)

    from pipeconsole.console.controller import Console
    from pipeconsole.console.dispatch import QueueDispatcher

    config = _load_config(config_file, diagnostics, None)
    dispatcher = QueueDispatcher()
    console = Console(config=config, dispatcher=dispatcher)
    out = RichConsole(soft_wrap=True, highlight=False)
    printed = 0

    def mirror() -> None:
        nonlocal printed
        text = console.buffer.text
        if len(text) < printed:
            printed = 0
        if len(text) > printed:
            out.print(text[printed:], end="")
            printed = len(text)

    console.buffer.add_listener(mirror)

    def forward_stdin() -> None:
        try:
            for line in sys.stdin:
                if not console.is_process_running:
                    break
                console.write_input(line)
        except (OSError, ValueError, RuntimeError) as e:
            # stdin closed or unreadable, or the console already shut down
            logger.debug("Stopped forwarding stdin: %s", e)

    try:
        console.start(command, args or [], cwd=cwd)
    except PipeConsoleError as e:
        typer.echo(f"Error: {e}", err=True)
        console.close()
        raise typer.Exit(127)

    threading.Thread(target=forward_stdin, name="stdin-forward", daemon=True).start()

    try:
        console.wait_exited()
    except KeyboardInterrupt:
        console.stop()
        console.wait_exited()

    dispatcher.drain()
    exit_code = console.session.exit_code
    console.close()
    if exit_code is None:
        exit_code = 1
    elif exit_code < 0:
        # Killed by a signal
        exit_code = 128 - exit_code
    raise typer.Exit(exit_code)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
