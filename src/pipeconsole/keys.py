"""Keystroke model shared by the router, the key-mapping table and the TUI.

Keys are named the way Textual names them: ``"enter"``, ``"backspace"``,
``"left"``, ``"tab"``, ``"c"``. Modifiers arrive either as flags or as a
``"ctrl+"``/``"alt+"``/``"shift+"`` prefix on the Textual key string.
"""

from __future__ import annotations

from dataclasses import dataclass

ENTER = "enter"
BACKSPACE = "backspace"
TAB = "tab"

# Always permitted, even in the read-only zone
ARROW_KEYS = frozenset({"left", "right", "up", "down"})

# Keys that move the caret without editing text
NAVIGATION_KEYS = ARROW_KEYS | frozenset({"home", "end", "pageup", "pagedown"})

# Textual aliases that mean the same physical key
_ALIASES = {
    "return": ENTER,
    "ctrl+m": ENTER,
    "ctrl+h": BACKSPACE,
    "ctrl+i": TAB,
}


@dataclass(frozen=True)
class KeyStroke:
    """A single key press with its modifier flags."""

    key: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    character: str | None = None

    @classmethod
    def parse(cls, name: str, character: str | None = None) -> KeyStroke:
        """Build a keystroke from a Textual key string such as ``"ctrl+c"``."""
        name = name.lower()
        name = _ALIASES.get(name, name)
        ctrl = alt = shift = False
        *modifiers, key = name.split("+")
        for modifier in modifiers:
            if modifier == "ctrl":
                ctrl = True
            elif modifier == "alt":
                alt = True
            elif modifier == "shift":
                shift = True
        return cls(key=key, ctrl=ctrl, alt=alt, shift=shift, character=character)

    @property
    def is_copy(self) -> bool:
        """Ctrl+C with no other modifier."""
        return self.ctrl and not self.alt and self.key == "c"

    @property
    def is_arrow(self) -> bool:
        return self.key in ARROW_KEYS and not self.ctrl and not self.alt

    @property
    def is_navigation(self) -> bool:
        return self.key in NAVIGATION_KEYS and not self.ctrl and not self.alt

    @property
    def is_enter(self) -> bool:
        return self.key == ENTER and not self.ctrl and not self.alt

    @property
    def is_backspace(self) -> bool:
        return self.key == BACKSPACE and not self.ctrl and not self.alt

    def __str__(self) -> str:
        parts = []
        if self.ctrl:
            parts.append("ctrl")
        if self.alt:
            parts.append("alt")
        if self.shift:
            parts.append("shift")
        parts.append(self.key)
        return "+".join(parts)
