"""Qt bridge for the navigation core's push notifications."""
from __future__ import annotations

from PySide6.QtCore import QObject, Signal

from subtag.core.collaborators import UiRenderer


class QtRenderer(QObject, UiRenderer):
    """Re-emits every :class:`UiRenderer` callback as a Qt signal.

    Signals
    -------
    entry_changed(object):              SubtitleEntry or None.
    selection_changed(object, object):  (subtitle id, token index), both may be None.
    meanings_changed(object, object):   (cache key, list of MeaningCandidate).
    editing_changed(bool):              editing mode entered / left.
    error(str):                         user-facing error message.
    """

    entry_changed     = Signal(object)
    selection_changed = Signal(object, object)
    meanings_changed  = Signal(object, object)
    editing_changed   = Signal(bool)
    error             = Signal(str)

    def on_entry_changed(self, entry) -> None:
        self.entry_changed.emit(entry)

    def on_selection_changed(self, subtitle_id, token_index) -> None:
        self.selection_changed.emit(subtitle_id, token_index)

    def on_meanings_changed(self, key, candidates) -> None:
        self.meanings_changed.emit(key, candidates)

    def on_editing_changed(self, editing: bool) -> None:
        self.editing_changed.emit(editing)

    def on_error(self, message: str) -> None:
        self.error.emit(message)
