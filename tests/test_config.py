"""Tests for pipeconsole.config (ConsoleConfig, KeyMapping)."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from pipeconsole.config import ColorConfig, ConsoleConfig, KeyMapping
from pipeconsole.keys import KeyStroke

_ENV_VARS = (
    "PIPECONSOLE_SHOW_DIAGNOSTICS",
    "PIPECONSOLE_INPUT_ENABLED",
    "PIPECONSOLE_FORWARD_KEYS",
    "PIPECONSOLE_ENCODING",
    "PIPECONSOLE_LINE_TERMINATOR",
    "PIPECONSOLE_STRICT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    def test_console_defaults(self) -> None:
        config = ConsoleConfig()
        assert config.show_diagnostics is False
        assert config.input_enabled is True
        assert config.forward_keyboard_commands is False
        assert config.encoding == "utf-8"
        assert config.line_terminator == os.linesep
        assert config.read_chunk_size == 4096
        assert config.strict is False

    def test_color_defaults(self) -> None:
        colors = ColorConfig()
        assert colors.primary == "white"
        assert colors.error == "red"
        assert colors.debug == "green"
        assert colors.input == "white"

    def test_default_mappings(self) -> None:
        config = ConsoleConfig()
        sequences = {str(KeyStroke(key=m.key, ctrl=m.ctrl)): m.sequence for m in config.key_mappings}
        assert sequences == {"tab": "\t", "ctrl+c": "\x03\r\n"}

    def test_chunk_size_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ConsoleConfig(read_chunk_size=0)


class TestKeyMapping:
    def test_matches_exact_modifiers(self) -> None:
        mapping = KeyMapping(key="c", ctrl=True, sequence="\x03")
        assert mapping.matches(KeyStroke.parse("ctrl+c"))
        assert not mapping.matches(KeyStroke.parse("c"))
        assert not mapping.matches(KeyStroke.parse("ctrl+shift+c"))

    def test_key_name_case_insensitive(self) -> None:
        mapping = KeyMapping(key="Escape", sequence="\x1b")
        assert mapping.matches(KeyStroke.parse("escape"))

    def test_frozen(self) -> None:
        mapping = KeyMapping(key="tab", sequence="\t")
        with pytest.raises(ValidationError):
            mapping.sequence = "x"  # type: ignore[misc]

    def test_find_mapping_first_wins(self) -> None:
        config = ConsoleConfig(
            key_mappings=[
                KeyMapping(key="d", ctrl=True, sequence="\x04"),
                KeyMapping(key="d", ctrl=True, sequence="other"),
            ]
        )
        mapping = config.find_mapping(KeyStroke.parse("ctrl+d"))
        assert mapping is not None
        assert mapping.sequence == "\x04"

    def test_find_mapping_none(self) -> None:
        assert ConsoleConfig().find_mapping(KeyStroke.parse("a")) is None


class TestLoad:
    def test_load_defaults(self) -> None:
        config = ConsoleConfig.load()
        assert config.show_diagnostics is False

    def test_load_missing_file(self, tmp_path: Path) -> None:
        config = ConsoleConfig.load(str(tmp_path / "nope.json"))
        assert config.input_enabled is True

    def test_load_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "show_diagnostics": True,
                    "colors": {"error": "bold red"},
                    "key_mappings": [{"key": "d", "ctrl": True, "sequence": "\u0004"}],
                }
            )
        )
        config = ConsoleConfig.load(str(path))
        assert config.show_diagnostics is True
        assert config.colors.error == "bold red"
        assert config.colors.primary == "white"
        assert [m.sequence for m in config.key_mappings] == ["\x04"]

    def test_env_overrides_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"show_diagnostics": True, "encoding": "latin-1"}))
        monkeypatch.setenv("PIPECONSOLE_SHOW_DIAGNOSTICS", "0")
        monkeypatch.setenv("PIPECONSOLE_ENCODING", "cp1252")
        config = ConsoleConfig.load(str(path))
        assert config.show_diagnostics is False
        assert config.encoding == "cp1252"

    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_env_bool_truthy(self, value: str, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PIPECONSOLE_FORWARD_KEYS", value)
        assert ConsoleConfig.load().forward_keyboard_commands is True

    def test_env_input_disabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PIPECONSOLE_INPUT_ENABLED", "false")
        assert ConsoleConfig.load().input_enabled is False

    @pytest.mark.parametrize(
        ("value", "expected"), [("lf", "\n"), ("CRLF", "\r\n"), (";", ";")]
    )
    def test_env_line_terminator(
        self, value: str, expected: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PIPECONSOLE_LINE_TERMINATOR", value)
        assert ConsoleConfig.load().line_terminator == expected
