"""Tests for the pipeconsole command line (headless ``run`` mode)."""

from __future__ import annotations

import sys

from typer.testing import CliRunner

from pipeconsole.cli import app

runner = CliRunner()


class TestRun:
    def test_mirrors_output(self) -> None:
        result = runner.invoke(app, ["run", "--", sys.executable, "-c", "print('hi')"])
        assert result.exit_code == 0
        assert "hi" in result.output

    def test_exit_code_passed_through(self) -> None:
        result = runner.invoke(
            app, ["run", "--", sys.executable, "-c", "import sys; sys.exit(3)"]
        )
        assert result.exit_code == 3

    def test_forwards_stdin(self) -> None:
        result = runner.invoke(
            app,
            ["run", "--", sys.executable, "-c", "print(input()[::-1])"],
            input="olleh\n",
        )
        assert result.exit_code == 0
        assert "hello" in result.output

    def test_diagnostics(self) -> None:
        result = runner.invoke(
            app, ["run", "--diagnostics", "--", sys.executable, "-c", "pass"]
        )
        assert result.exit_code == 0
        assert "Preparing to run" in result.output
        assert "exited." in result.output

    def test_missing_executable(self) -> None:
        result = runner.invoke(app, ["run", "/nonexistent/pipeconsole-missing-binary"])
        assert result.exit_code == 127

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert "run" in result.output
        assert "tui" in result.output
