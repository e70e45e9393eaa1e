"""Meaning lookup that seeds the library from Google Translate."""
from __future__ import annotations

import importlib.util
import logging
import os
import threading
import time
from typing import Callable, Dict, List, Optional

from subtag.core.collaborators import Persistence, PersistenceError
from subtag.models.subtitle import MeaningCandidate, SubtitleEntry
from subtag.storage.library import LibraryStore

logger = logging.getLogger(__name__)

# Load libs/googletrans/main.py directly; "main" would clash with the app's main.py
_TRANS_MAIN = os.path.normpath(
    os.path.join(os.path.dirname(__file__), "..", "..", "libs", "googletrans", "main.py")
)
_spec = importlib.util.spec_from_file_location("googletrans_main", _TRANS_MAIN)
_googletrans_main = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(_googletrans_main)
translate_candidates = _googletrans_main.translate_candidates

SOURCE_TAG = "googletrans"


class DictionaryLookup(Persistence):
    """:class:`Persistence` backed by a :class:`LibraryStore`.

    Everything is delegated to the store, except that a word with no
    stored meanings is translated and the translations are saved as new
    meaning records before being returned. Runs on worker threads only.
    """

    MAX_RETRIES = 3
    RETRY_DELAY = 1.0   # seconds between retries

    def __init__(
        self,
        store: LibraryStore,
        target_language: str = "en",
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        translate: Callable[..., List[dict]] = translate_candidates,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store           = store
        self.target_language = target_language
        self.max_retries     = max_retries if max_retries is not None else self.MAX_RETRIES
        self.retry_delay     = retry_delay if retry_delay is not None else self.RETRY_DELAY
        self._translate      = translate
        self._sleep          = sleep
        # One lock per word: a second lookup of the same word waits for the
        # first one and then finds its meanings in the store
        self._word_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------ lookup
    def _lock_for(self, word: str) -> threading.Lock:
        with self._locks_guard:
            return self._word_locks.setdefault(word, threading.Lock())

    def fetch_meaning_candidates(self, token_text: str) -> List[MeaningCandidate]:
        stored = self.store.fetch_meaning_candidates(token_text)
        if stored:
            return stored
        with self._lock_for(token_text):
            return self._seed_meanings(token_text)

    def _seed_meanings(self, token_text: str) -> List[MeaningCandidate]:
        stored = self.store.fetch_meaning_candidates(token_text)
        if stored:
            logger.debug("Meanings for %r were seeded by a concurrent lookup", token_text)
            return stored

        translated = None
        last_exc: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                translated = self._translate(token_text, target_language=self.target_language)
                break
            except Exception as exc:
                last_exc = exc
                logger.warning(
                    "Lookup attempt %d/%d failed for %r: %s",
                    attempt, self.max_retries, token_text, exc,
                )
                if attempt < self.max_retries:
                    self._sleep(self.retry_delay)

        if translated is None:
            logger.error(
                "Lookup of %r gave up — all %d attempts failed. Last error: %s",
                token_text, self.max_retries, last_exc,
            )
            raise PersistenceError(f"Dictionary lookup failed for {token_text!r}: {last_exc}")

        created = [
            self.store.create_meaning(
                token_text,
                cand["label"],
                definition=cand.get("definition", ""),
                part_of_speech=cand.get("part_of_speech", ""),
                source=SOURCE_TAG,
            )
            for cand in translated
            if cand.get("label")
        ]
        logger.info("Seeded %d meaning(s) for %r", len(created), token_text)
        return created

    # ------------------------------------------------------------------ delegation
    def load_subtitles(self, media_id: str) -> List[SubtitleEntry]:
        return self.store.load_subtitles(media_id)

    def save_meaning_assignment(self, subtitle_id, token_index, meaning_id) -> None:
        self.store.save_meaning_assignment(subtitle_id, token_index, meaning_id)

    def create_meaning(self, word, label, definition="", part_of_speech="", source=None) -> MeaningCandidate:
        return self.store.create_meaning(word, label, definition, part_of_speech, source)

    def update_meaning(self, candidate: MeaningCandidate) -> MeaningCandidate:
        return self.store.update_meaning(candidate)

    def delete_meaning(self, meaning_id: int) -> None:
        self.store.delete_meaning(meaning_id)
