"""Optimistic token to meaning assignment.

The index is mutated and the UI notified before persistence is even
started; the write then goes through the runner's serial lane, so
repeated assignments to one token reach storage in the order they were
made. A failed write is reported but the local assignment stays as it is.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from subtag.core.collaborators import Persistence, UiRenderer
from subtag.core.subtitle_index import SubtitleIndex, set_token_meaning
from subtag.core.tasks import TaskRunner
from subtag.models.subtitle import SubtitleEntry

logger = logging.getLogger(__name__)


@dataclass
class SelectionState:
    """Selected token and whether the session is in editing mode."""

    subtitle_id: Optional[str] = None
    token_index: Optional[int] = None
    editing: bool = False

    @property
    def has_selection(self) -> bool:
        return self.subtitle_id is not None and self.token_index is not None

    def clear(self) -> None:
        self.subtitle_id = None
        self.token_index = None


def next_untagged_index(entry: SubtitleEntry, after: int) -> Optional[int]:
    """First token without a meaning, searching from ``after + 1`` and
    wrapping around inside ``entry``."""
    count = len(entry.tokens)
    for step in range(1, count + 1):
        i = (after + step) % count
        if not entry.tokens[i].is_tagged:
            return i
    return None


class OptimisticUpdateCoordinator:
    """Applies meaning assignments locally first, then persists them.

    ``index_provider`` returns the live index, so a media reload is picked
    up without rewiring. ``select_token`` is how the coordinator moves the
    selection in editing mode; the session passes its own method so the
    candidates of the new token get loaded too.
    """

    def __init__(
        self,
        index_provider: Callable[[], SubtitleIndex],
        persistence: Persistence,
        renderer: UiRenderer,
        runner: TaskRunner,
        selection: SelectionState,
        select_token: Optional[Callable[[Optional[str], Optional[int]], None]] = None,
    ):
        self._index_provider = index_provider
        self._persistence    = persistence
        self._renderer       = renderer
        self._runner         = runner
        self._selection      = selection
        self._select_token   = select_token

    def assign_meaning(self, subtitle_id: str, token_index: int, meaning_id: Optional[int]) -> bool:
        """Returns False when the entry or token does not exist."""
        index = self._index_provider()
        try:
            entry = index.update(subtitle_id, set_token_meaning(token_index, meaning_id))
        except IndexError as exc:
            logger.warning("Meaning not assigned: %s", exc)
            return False
        if entry is None:
            logger.warning("Meaning not assigned: no subtitle %s in the current index", subtitle_id)
            return False

        logger.info("Assigned meaning %s to %s[%d]", meaning_id, subtitle_id, token_index)
        self._renderer.on_entry_changed(entry)

        def _failed(exc: Exception) -> None:
            logger.error("Saving meaning for %s[%d] failed: %s", subtitle_id, token_index, exc)
            self._renderer.on_error(
                f"Could not save the meaning of token {token_index + 1} in {subtitle_id}: {exc}"
            )

        self._runner.submit_serial(
            self._persistence.save_meaning_assignment,
            subtitle_id, token_index, meaning_id,
            on_error=_failed,
        )

        if self._selection.editing and self._selection.subtitle_id == subtitle_id:
            self._advance_selection(entry, token_index)
        return True

    # ------------------------------------------------------------------ editing mode
    def _advance_selection(self, entry: SubtitleEntry, token_index: int) -> None:
        nxt = next_untagged_index(entry, token_index)
        if nxt is None:
            logger.debug("All tokens of %s tagged — leaving editing mode", entry.id)
            self._selection.editing = False
            self._renderer.on_editing_changed(False)
            self._move_selection(None, None)
        else:
            self._move_selection(entry.id, nxt)

    def _move_selection(self, subtitle_id: Optional[str], token_index: Optional[int]) -> None:
        if self._select_token is not None:
            self._select_token(subtitle_id, token_index)
            return
        self._selection.subtitle_id = subtitle_id
        self._selection.token_index = token_index
        self._renderer.on_selection_changed(subtitle_id, token_index)
