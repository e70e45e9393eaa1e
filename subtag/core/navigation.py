"""Hotkey navigation between subtitle entries.

Hotkeys move relative to the entry the user last saw, not relative to the
clock anchor, and every move arms a short lockout during which clock-driven
transitions are ignored. Without the lockout a tick sampled before the seek
lands would immediately put the old entry back on screen.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from subtag.core.collaborators import PlayerControl
from subtag.core.subtitle_index import SubtitleIndex

logger = logging.getLogger(__name__)

DEFAULT_LOCKOUT_MS = 1000


class LockoutWindow:
    """A deadline that clears itself once ``clock()`` passes it."""

    def __init__(self, lockout_ms: int = DEFAULT_LOCKOUT_MS, clock: Callable[[], float] = time.monotonic):
        if lockout_ms < 0:
            raise ValueError(f"lockout_ms must be >= 0, got {lockout_ms}")
        self.lockout_ms = lockout_ms
        self._clock     = clock
        self._deadline: Optional[float] = None

    def arm(self) -> None:
        self._deadline = self._clock() + self.lockout_ms / 1000.0

    def clear(self) -> None:
        self._deadline = None

    def is_armed(self) -> bool:
        if self._deadline is None:
            return False
        if self._clock() >= self._deadline:
            self._deadline = None
            return False
        return True


class NavigationController:
    """advance / restart / previous over one :class:`SubtitleIndex`.

    ``mount_directly(subtitle_id)`` is called first on every successful
    move; it is expected to put the entry on screen and move the resolver
    anchor. The controller then seeks the player to the entry's start and
    resumes playback when it was paused.
    """

    def __init__(
        self,
        player: PlayerControl,
        mount_directly: Callable[[str], None],
        lockout_ms: int = DEFAULT_LOCKOUT_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._player         = player
        self._mount_directly = mount_directly
        self._lockout        = LockoutWindow(lockout_ms, clock)
        self._index          = SubtitleIndex.empty()
        self._most_recent: Optional[str] = None

    # ------------------------------------------------------------------ state
    def reset(self, index: SubtitleIndex) -> None:
        self._index = index
        self._most_recent = None
        self._lockout.clear()

    @property
    def most_recently_displayed_id(self) -> Optional[str]:
        return self._most_recent

    def note_displayed(self, subtitle_id: Optional[str]) -> None:
        """Record an entry shown by the clock path."""
        self._most_recent = subtitle_id

    @property
    def lockout(self) -> LockoutWindow:
        return self._lockout

    def accepts_clock_transition(self) -> bool:
        """False while a hotkey lockout is armed."""
        return not self._lockout.is_armed()

    # ------------------------------------------------------------------ hotkeys
    def advance(self) -> bool:
        current = self._current()
        if current is None:
            return False
        target = self._index.next(current)
        if target is None:
            logger.debug("advance: %s is the last entry", current)
            return False
        return self._navigate(target)

    def restart(self) -> bool:
        current = self._current()
        if current is None:
            return False
        return self._navigate(current)

    def previous(self) -> bool:
        current = self._current()
        if current is None:
            return False
        target = self._index.prev(current)
        if target is None:
            logger.debug("previous: %s is the first entry", current)
            return False
        return self._navigate(target)

    # ------------------------------------------------------------------ internals
    def _current(self) -> Optional[str]:
        if self._most_recent is None or self._most_recent not in self._index:
            return None
        return self._most_recent

    def _navigate(self, target: str) -> bool:
        entry = self._index.get(target)
        # Armed before the seek: a player may report the old position synchronously
        self._lockout.arm()
        self._mount_directly(target)
        self._most_recent = target
        try:
            self._player.seek(entry.start_time)
            if self._player.is_paused():
                self._player.play()
        except Exception as exc:
            logger.warning("Player control failed while navigating to %s: %s", target, exc)
        logger.debug("Navigated to %s (%.3fs)", target, entry.start_time)
        return True
