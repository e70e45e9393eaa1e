"""One navigation session per application window.

The session owns the current :class:`SubtitleIndex` and every piece of
state that depends on it: the resolver anchor, the hotkey pointer, the
meaning cache, the token selection and editing mode. Loading another media
item goes through :meth:`NavigationSession.init`, which swaps all of it at
once.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Iterable, List, Optional

from subtag.core import hotkeys
from subtag.core.collaborators import Persistence, PlayerControl, UiRenderer
from subtag.core.meaning_cache import MeaningKey, TokenMeaningCache, meaning_key
from subtag.core.navigation import DEFAULT_LOCKOUT_MS, NavigationController
from subtag.core.optimistic import OptimisticUpdateCoordinator, SelectionState
from subtag.core.subtitle_index import SubtitleIndex
from subtag.core.tasks import ImmediateTaskRunner, TaskRunner
from subtag.core.time_resolver import resolve
from subtag.models.subtitle import MeaningCandidate, SubtitleEntry

logger = logging.getLogger(__name__)


class NavigationSession:
    """Wires the index, resolver, navigation, cache and coordinator together.

    Every public method is meant to be called on the GUI thread. Blocking
    collaborator calls go through ``runner``.
    """

    PAUSE_DRIFT_S = 0.5   # clock movement after a pause-at-end that is not a seek

    def __init__(
        self,
        persistence: Persistence,
        player: PlayerControl,
        renderer: Optional[UiRenderer] = None,
        runner: Optional[TaskRunner] = None,
        lockout_ms: int = DEFAULT_LOCKOUT_MS,
        clock: Callable[[], float] = time.monotonic,
        pause_at_end: bool = True,
    ):
        self._persistence  = persistence
        self._player       = player
        self._renderer     = renderer or UiRenderer()
        self._runner       = runner or ImmediateTaskRunner()
        self.pause_at_end  = pause_at_end

        self._index        = SubtitleIndex.empty()
        self._media_id: Optional[str]     = None
        self._anchor_id: Optional[str]    = None
        self._displayed_id: Optional[str] = None
        self._paused_for: Optional[str]   = None
        self._paused_at: Optional[float]  = None
        self._generation   = 0
        self._labels: Dict[int, str] = {}

        self.selection  = SelectionState()
        self.cache      = TokenMeaningCache(self._runner)
        self.navigation = NavigationController(player, self._mount_directly, lockout_ms, clock)
        self.coordinator = OptimisticUpdateCoordinator(
            lambda: self._index,
            persistence,
            self._renderer,
            self._runner,
            self.selection,
            select_token=self.select_token,
        )

    # ------------------------------------------------------------------ properties
    @property
    def index(self) -> SubtitleIndex:
        return self._index

    @property
    def media_id(self) -> Optional[str]:
        return self._media_id

    @property
    def anchor_id(self) -> Optional[str]:
        return self._anchor_id

    @property
    def displayed_id(self) -> Optional[str]:
        return self._displayed_id

    @property
    def displayed_entry(self) -> Optional[SubtitleEntry]:
        return self._index.get(self._displayed_id)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def editing(self) -> bool:
        return self.selection.editing

    # ------------------------------------------------------------------ lifecycle
    def init(self, media_id: str, entries: Iterable[SubtitleEntry]) -> SubtitleIndex:
        """Build a fresh index for ``media_id`` and show its first entry."""
        index = SubtitleIndex.build(entries, media_id=media_id)
        self._swap(media_id, index)
        logger.info("Session initialised — media=%s  entries=%d", media_id, len(index))
        first = index.first()
        if first is not None:
            self._mount(first)
            self.navigation.note_displayed(first)
        else:
            self._renderer.on_entry_changed(None)
        return index

    def reset(self) -> None:
        """Forget the current media entirely."""
        self._swap(None, SubtitleIndex.empty())
        self._renderer.on_entry_changed(None)
        self._renderer.on_selection_changed(None, None)
        logger.info("Session reset")

    def load(self, media_id: str) -> None:
        """Load subtitles for ``media_id`` from persistence, then :meth:`init`."""
        generation = self._generation

        def _loaded(entries: List[SubtitleEntry]) -> None:
            if generation != self._generation:
                logger.debug("Ignoring subtitles for %s — another media was loaded meanwhile", media_id)
                return
            self.init(media_id, entries)

        def _failed(exc: Exception) -> None:
            logger.error("Loading subtitles for %s failed: %s", media_id, exc)
            self._renderer.on_error(f"Could not load subtitles for {media_id}: {exc}")

        self._runner.submit(self._persistence.load_subtitles, media_id, on_success=_loaded, on_error=_failed)

    def _swap(self, media_id: Optional[str], index: SubtitleIndex) -> None:
        self._generation += 1
        self._media_id     = media_id
        self._index        = index
        self._anchor_id    = None
        self._displayed_id = None
        self._paused_for   = None
        self._paused_at    = None
        self._labels.clear()
        self.cache.invalidate_all()
        self.navigation.reset(index)
        self.selection.clear()
        self._set_editing(False)

    # ------------------------------------------------------------------ clock
    def on_clock_tick(self, current_time: Optional[float] = None) -> Optional[str]:
        """Feed one playback time sample; returns the displayed entry id.

        With ``current_time`` None the player is asked. When no time is
        available at all the anchor is left where it is.
        """
        if current_time is None:
            current_time = self._safe_player_call("get_current_time")
        if current_time is None or not self._index:
            return self._displayed_id

        resolved = resolve(self._index, self._anchor_id, current_time)

        if not self.navigation.accepts_clock_transition():
            return self._displayed_id

        if self._should_pause_at_end(current_time, resolved):
            self._pause_for_editing(self.displayed_entry, current_time)
            return self._displayed_id

        # Paused for tagging: the clock settling past the end is not a seek
        if self.selection.editing:
            if self._is_pause_drift(current_time, resolved):
                return self._displayed_id
            logger.debug("Clock moved to %.3fs while editing — treating it as a seek", current_time)
            self._set_editing(False)

        self._anchor_id = resolved
        if resolved != self._displayed_id:
            logger.debug("Clock %.3fs — showing %s", current_time, resolved)
            self._mount(resolved)
            self.navigation.note_displayed(resolved)
        return self._displayed_id

    def _should_pause_at_end(self, current_time: float, resolved: Optional[str]) -> bool:
        entry = self.displayed_entry
        if not self.pause_at_end or entry is None or self.selection.editing:
            return False
        if entry.end_time is None or current_time < entry.end_time:
            return False
        if self._paused_for == entry.id or entry.first_untagged_index() is None:
            return False
        # Plain playback only: a jump past the following entry is a seek
        return resolved in self._following(entry.id)

    def _following(self, subtitle_id: Optional[str]) -> tuple:
        return (subtitle_id, self._index.next(subtitle_id))

    def _is_pause_drift(self, current_time: float, resolved: Optional[str]) -> bool:
        if self._paused_at is None or resolved not in self._following(self._displayed_id):
            return False
        return abs(current_time - self._paused_at) <= self.PAUSE_DRIFT_S

    def _pause_for_editing(self, entry: SubtitleEntry, current_time: float) -> None:
        self._paused_for = entry.id
        self._paused_at  = current_time
        logger.info("End of %s — pausing for tagging", entry.id)
        self._safe_player_call("pause")
        self._set_editing(True)
        self.select_token(entry.id, entry.first_untagged_index())

    def on_playback_resumed(self) -> None:
        """A manual unpause ends editing mode."""
        if self.selection.editing:
            logger.debug("Playback resumed — leaving editing mode")
            self._set_editing(False)

    # ------------------------------------------------------------------ hotkeys
    def handle_hotkey(self, event: hotkeys.HotkeyEvent) -> bool:
        """Dispatch one hotkey. Returns False when nothing happened."""
        if event.kind == hotkeys.ADVANCE:
            return self.navigation.advance()
        if event.kind == hotkeys.RESTART:
            return self.navigation.restart()
        if event.kind == hotkeys.PREVIOUS:
            return self.navigation.previous()
        if event.kind == hotkeys.SELECT_MEANING and event.digit is not None:
            return self.select_meaning_by_digit(event.digit)
        logger.debug("Unhandled hotkey %r", event)
        return False

    def select_meaning_by_digit(self, digit: int) -> bool:
        return self.select_meaning_at(hotkeys.digit_to_candidate_index(digit))

    def select_meaning_at(self, position: int) -> bool:
        """Assign the cached candidate at ``position`` to the selected token.

        A no-op when nothing is selected, the candidates are not loaded yet,
        or there is no candidate at that position.
        """
        if not self.selection.has_selection:
            return False
        key = meaning_key(self.selection.subtitle_id, self.selection.token_index)
        candidates = self.cache.get(key)
        if not candidates or not 0 <= position < len(candidates):
            logger.debug("Candidate %d ignored — %d candidate(s) for %s", position, len(candidates or ()), key)
            return False
        return self.assign_meaning(key[0], key[1], candidates[position].id)

    def _mount_directly(self, subtitle_id: str) -> None:
        self._anchor_id  = subtitle_id
        self._paused_for = None
        self._paused_at  = None
        self._mount(subtitle_id)

    def _mount(self, subtitle_id: str) -> None:
        self._displayed_id = subtitle_id
        if self._anchor_id is None:
            self._anchor_id = subtitle_id
        self._set_editing(False)
        if self.selection.has_selection:
            self.selection.clear()
            self._renderer.on_selection_changed(None, None)
        self._renderer.on_entry_changed(self._index.get(subtitle_id))

    # ------------------------------------------------------------------ tokens and meanings
    def select_token(self, subtitle_id: Optional[str], token_index: Optional[int]) -> bool:
        """Select a token and load its meaning candidates. ``None`` clears."""
        if subtitle_id is None or token_index is None:
            self.selection.clear()
            self._renderer.on_selection_changed(None, None)
            return True

        entry = self._index.get(subtitle_id)
        if entry is None or not 0 <= token_index < len(entry.tokens):
            logger.warning("Cannot select token %s[%s] — not in the current index", subtitle_id, token_index)
            return False

        self.selection.subtitle_id = subtitle_id
        self.selection.token_index = token_index
        self._renderer.on_selection_changed(subtitle_id, token_index)

        self.cache.fetch_or_get(
            meaning_key(subtitle_id, token_index),
            entry.tokens[token_index].text,
            self._persistence.fetch_meaning_candidates,
            on_ready=self._on_candidates_ready,
            on_error=self._on_candidates_failed,
        )
        return True

    def _on_candidates_ready(self, key: MeaningKey, candidates: List[MeaningCandidate]) -> None:
        self._remember_labels(candidates)
        self._renderer.on_meanings_changed(key, candidates)

    def _on_candidates_failed(self, key: MeaningKey, exc: Exception) -> None:
        self._renderer.on_error(f"Could not look up meanings: {exc}")

    def assign_meaning(self, subtitle_id: str, token_index: int, meaning_id: Optional[int]) -> bool:
        return self.coordinator.assign_meaning(subtitle_id, token_index, meaning_id)

    def meaning_label(self, meaning_id: Optional[int]) -> Optional[str]:
        if meaning_id is None:
            return None
        return self._labels.get(meaning_id)

    def _remember_labels(self, candidates: Iterable[MeaningCandidate]) -> None:
        for cand in candidates:
            self._labels[cand.id] = cand.label or cand.word

    # ------------------------------------------------------------------ meaning records
    def create_meaning(
        self,
        word: str,
        label: str,
        definition: str = "",
        part_of_speech: str = "",
    ) -> None:
        """Create a meaning record; it is appended to the selected token's list."""
        self._submit_meaning_change(
            "create", self._persistence.create_meaning,
            (word, label, definition, part_of_speech),
            lambda current, created: current + [created],
        )

    def update_meaning(self, candidate: MeaningCandidate) -> None:
        self._submit_meaning_change(
            "update", self._persistence.update_meaning, (candidate,),
            lambda current, updated: [updated if c.id == updated.id else c for c in current],
        )

    def delete_meaning(self, meaning_id: int) -> None:
        def _patch(current, _result):
            return [c for c in current if c.id != meaning_id]

        self._labels.pop(meaning_id, None)
        self._submit_meaning_change("delete", self._persistence.delete_meaning, (meaning_id,), _patch)

    def _submit_meaning_change(self, action: str, call, args: tuple, patch) -> None:
        generation = self._generation
        key = (
            meaning_key(self.selection.subtitle_id, self.selection.token_index)
            if self.selection.has_selection else None
        )

        def _done(result) -> None:
            if isinstance(result, MeaningCandidate):
                self._remember_labels([result])
            if generation != self._generation or key is None:
                return
            current = self.cache.get(key)
            if current is None:
                return
            self.cache.set(key, patch(current, result))
            self._renderer.on_meanings_changed(key, self.cache.get(key))

        def _failed(exc: Exception) -> None:
            logger.error("Meaning %s failed: %s", action, exc)
            self._renderer.on_error(f"Could not {action} meaning: {exc}")

        self._runner.submit_serial(call, *args, on_success=_done, on_error=_failed)

    # ------------------------------------------------------------------ helpers
    def _set_editing(self, editing: bool) -> None:
        if self.selection.editing == editing:
            return
        self.selection.editing = editing
        self._renderer.on_editing_changed(editing)

    def _safe_player_call(self, name: str, *args):
        try:
            return getattr(self._player, name)(*args)
        except Exception as exc:
            logger.warning("Player %s failed: %s", name, exc)
            return None
