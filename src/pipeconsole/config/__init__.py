"""Configuration — Pydantic models for console settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from pipeconsole.keys import KeyStroke

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ColorConfig(BaseModel):
    """Rich style strings used to tag buffer spans."""

    primary: str = Field(default="white", description="Process stdout")
    error: str = Field(default="red", description="Process stderr")
    debug: str = Field(default="green", description="Diagnostic lines")
    input: str = Field(default="white", description="Echoed user input")


class KeyMapping(BaseModel):
    """Maps a key combination to the escape sequence sent to the process.

    ``key`` uses Textual key names ("c", "tab", "escape"). ``sequence`` is
    written to the child's stdin verbatim, without a line terminator.
    """

    key: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    sequence: str

    model_config = {"frozen": True}

    def matches(self, stroke: KeyStroke) -> bool:
        return (
            stroke.key == self.key.lower()
            and stroke.ctrl == self.ctrl
            and stroke.alt == self.alt
            and stroke.shift == self.shift
        )


def default_key_mappings() -> list[KeyMapping]:
    """Tab sends a tab; Ctrl+C sends ETX followed by CRLF so line-buffered
    children see the interrupt without waiting for Enter."""
    return [
        KeyMapping(key="tab", sequence="\t"),
        KeyMapping(key="c", ctrl=True, sequence="\x03\r\n"),
    ]


class ConsoleConfig(BaseModel):
    """Top-level console configuration."""

    show_diagnostics: bool = Field(
        default=False,
        description="Write 'Preparing to run ...' and '... exited.' lines",
    )
    input_enabled: bool = Field(
        default=True, description="If true, the user can key in input"
    )
    forward_keyboard_commands: bool = Field(
        default=False,
        description="Send mapped key combinations (Ctrl-C, Tab) to the process",
    )
    key_mappings: list[KeyMapping] = Field(default_factory=default_key_mappings)
    colors: ColorConfig = Field(default_factory=ColorConfig)
    encoding: str = Field(default="utf-8", description="Child stream encoding")
    line_terminator: str = Field(
        default=os.linesep, description="Appended to every input line"
    )
    read_chunk_size: int = Field(default=4096, gt=0)
    strict: bool = Field(
        default=False,
        description="Re-raise listener errors instead of logging them (development)",
    )

    def find_mapping(self, stroke: KeyStroke) -> KeyMapping | None:
        """Return the first mapping matching ``stroke``, in table order."""
        for mapping in self.key_mappings:
            if mapping.matches(stroke):
                return mapping
        return None

    @classmethod
    def load(cls, config_path: str | None = None) -> ConsoleConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            PIPECONSOLE_SHOW_DIAGNOSTICS   - Write diagnostic lines (1/0)
            PIPECONSOLE_INPUT_ENABLED      - Allow typing input (1/0)
            PIPECONSOLE_FORWARD_KEYS       - Forward mapped keys to the process (1/0)
            PIPECONSOLE_ENCODING           - Child stream encoding
            PIPECONSOLE_LINE_TERMINATOR    - "lf", "crlf" or a literal terminator
            PIPECONSOLE_STRICT             - Re-raise listener errors (1/0)
        """
        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        for env_name, field_name in (
            ("PIPECONSOLE_SHOW_DIAGNOSTICS", "show_diagnostics"),
            ("PIPECONSOLE_INPUT_ENABLED", "input_enabled"),
            ("PIPECONSOLE_FORWARD_KEYS", "forward_keyboard_commands"),
            ("PIPECONSOLE_STRICT", "strict"),
        ):
            value = os.environ.get(env_name)
            if value:
                config_data[field_name] = value.strip().lower() in _TRUE_VALUES

        env_encoding = os.environ.get("PIPECONSOLE_ENCODING")
        if env_encoding:
            config_data["encoding"] = env_encoding

        env_terminator = os.environ.get("PIPECONSOLE_LINE_TERMINATOR")
        if env_terminator:
            config_data["line_terminator"] = {"lf": "\n", "crlf": "\r\n"}.get(
                env_terminator.lower(), env_terminator
            )

        return cls.model_validate(config_data)
