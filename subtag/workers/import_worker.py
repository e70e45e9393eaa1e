"""QThread worker: import a WebVTT file into the library."""
from __future__ import annotations

import logging
import traceback

from PySide6.QtCore import QObject, Signal

from subtag.storage.library import LibraryStore
from subtag.utils.vtt_utils import parse_vtt

logger = logging.getLogger(__name__)


class ImportWorker(QObject):
    """Parse a VTT file and store it as the subtitles of ``media_id``.

    Tokens that already carry a meaning in the library are kept when the
    re-imported cue has the same text.

    Signals
    -------
    progress(int):          0–100 percent.
    imported(str, int):     emitted when stored (media_id, entry count).
    error(str):             emitted on exception.
    finished():             always emitted at the end.
    """

    progress = Signal(int)
    imported = Signal(str, int)
    error    = Signal(str)
    finished = Signal()

    def __init__(self, store: LibraryStore, vtt_path: str, media_id: str):
        super().__init__()
        self._store    = store
        self._vtt_path = vtt_path
        self._media_id = media_id

    # ------------------------------------------------------------------ slot
    def run(self) -> None:
        logger.info("ImportWorker starting — vtt=%s  media=%s", self._vtt_path, self._media_id)
        try:
            self.progress.emit(5)
            entries = parse_vtt(self._vtt_path, self._media_id)
            logger.info("Parsed %d cues", len(entries))
            self.progress.emit(50)

            kept = 0
            if self._store.has_media(self._media_id):
                previous = {e.id: e for e in self._store.load_subtitles(self._media_id)}
                for entry in entries:
                    old = previous.get(entry.id)
                    if old is not None and old.text == entry.text and len(old.tokens) == len(entry.tokens):
                        entry.tokens = old.tokens
                        kept += 1
            self.progress.emit(75)

            self._store.save_subtitles(self._media_id, entries)
            self.progress.emit(100)
            logger.info("ImportWorker done — %d entries, %d kept their tags", len(entries), kept)
            self.imported.emit(self._media_id, len(entries))

        except Exception as exc:
            logger.error("ImportWorker failed: %s", exc)
            logger.debug(traceback.format_exc())
            self.error.emit(str(exc))
        finally:
            self.finished.emit()
