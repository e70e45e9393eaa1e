"""Normalized hotkey events and the default key bindings."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

ADVANCE        = "advance"
RESTART        = "restart"
PREVIOUS       = "previous"
SELECT_MEANING = "select_meaning"

# Key names as reported by the widget layer
DEFAULT_BINDINGS: Dict[str, str] = {
    "Right": ADVANCE,
    "Left":  RESTART,
    "Up":    PREVIOUS,
}


@dataclass(frozen=True)
class HotkeyEvent:
    kind: str
    digit: Optional[int] = None

    @classmethod
    def advance(cls) -> "HotkeyEvent":
        return cls(ADVANCE)

    @classmethod
    def restart(cls) -> "HotkeyEvent":
        return cls(RESTART)

    @classmethod
    def previous(cls) -> "HotkeyEvent":
        return cls(PREVIOUS)

    @classmethod
    def select_meaning(cls, digit: int) -> "HotkeyEvent":
        if not 0 <= digit <= 9:
            raise ValueError(f"digit must be 0-9, got {digit}")
        return cls(SELECT_MEANING, digit)


def digit_to_candidate_index(digit: int) -> int:
    """1..9 select candidates 0..8, 0 selects candidate 9."""
    if not 0 <= digit <= 9:
        raise ValueError(f"digit must be 0-9, got {digit}")
    return 9 if digit == 0 else digit - 1


def event_for_key(key_name: str, bindings: Optional[Dict[str, str]] = None) -> Optional[HotkeyEvent]:
    """Translate a key name (``"Right"``, ``"5"``, ...) into an event, or None."""
    if len(key_name) == 1 and key_name in "0123456789":
        return HotkeyEvent.select_meaning(int(key_name))
    kind = (bindings or DEFAULT_BINDINGS).get(key_name)
    return HotkeyEvent(kind) if kind else None
