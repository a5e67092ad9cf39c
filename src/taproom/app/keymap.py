"""Key mappings for the Taproom application."""

from __future__ import annotations

from typing import Optional

from taproom.core.session import (
    KEY_BACKSPACE,
    KEY_DOWN,
    KEY_END,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_HOME,
    KEY_LEFT,
    KEY_PAGE_DOWN,
    KEY_PAGE_UP,
    KEY_RIGHT,
    KEY_UP,
    KeyPress,
)

# Textual key names for keys that do not produce a character.
SPECIAL_KEYS = {
    "up": KEY_UP,
    "down": KEY_DOWN,
    "left": KEY_LEFT,
    "right": KEY_RIGHT,
    "pageup": KEY_PAGE_UP,
    "pagedown": KEY_PAGE_DOWN,
    "home": KEY_HOME,
    "end": KEY_END,
    "enter": KEY_ENTER,
    "escape": KEY_ESCAPE,
    "backspace": KEY_BACKSPACE,
}

HELP = "↑↓←→ move  PgUp/PgDn page  Home/End  / search  u update  x uninstall  r refresh  q quit"


def translate(key: str, character: Optional[str] = None) -> Optional[KeyPress]:
    """Turn a Textual key event into a session key press.

    Args:
        key: Textual's key name, e.g. ``"pagedown"`` or ``"slash"``.
        character: The printable character for the key, if any.

    Returns:
        The key press, or ``None`` for keys the session does not handle.
    """
    if key in SPECIAL_KEYS:
        return KeyPress(SPECIAL_KEYS[key])
    if character and len(character) == 1 and character.isprintable():
        return KeyPress(character)
    return None
