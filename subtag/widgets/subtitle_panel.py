"""Subtitle list table and the token strip of the displayed entry."""
from __future__ import annotations

from typing import Callable, Dict, List, Optional

from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QAbstractItemView,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QScrollArea,
    QTableWidget,
    QTableWidgetItem,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from subtag.models.subtitle import SubtitleEntry

# Column indices
COL_IDX    = 0
COL_START  = 1
COL_END    = 2
COL_TEXT   = 3
COL_TAGGED = 4

HEADERS = ["#", "Start (s)", "End (s)", "Text", "Tagged"]

_CURRENT_BG = QColor("#264f78")
_DONE_BG    = QColor("#d4edda")


def _fmt(v: Optional[float]) -> str:
    return "" if v is None else f"{v:.3f}"


def _tag_count(entry: SubtitleEntry) -> str:
    tagged = sum(1 for t in entry.tokens if t.is_tagged)
    return f"{tagged}/{len(entry.tokens)}"


class SubtitleTable(QWidget):
    """Read-only table of every entry in ordinal order.

    Signals
    -------
    entry_activated(float):    start time of a clicked row (for seeking).
    """

    entry_activated = Signal(float)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._entries: List[SubtitleEntry] = []
        self._rows: Dict[str, int] = {}
        self._current: Optional[str] = None
        self._build_ui()

    # ------------------------------------------------------------------ build
    def _build_ui(self) -> None:
        self.table = QTableWidget(0, len(HEADERS))
        self.table.setHorizontalHeaderLabels(HEADERS)

        hdr = self.table.horizontalHeader()
        hdr.setSectionResizeMode(COL_TEXT, QHeaderView.Stretch)
        for col in (COL_IDX, COL_START, COL_END, COL_TAGGED):
            hdr.setSectionResizeMode(col, QHeaderView.ResizeToContents)

        self.table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.setFocusPolicy(Qt.NoFocus)
        self.table.setAlternatingRowColors(True)
        self.table.cellClicked.connect(self._on_cell_clicked)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.table)

    # ------------------------------------------------------------------ API
    def load_entries(self, entries: List[SubtitleEntry]) -> None:
        """Replace the table contents; ``entries`` must be in ordinal order."""
        self._entries = list(entries)
        self._rows = {e.id: row for row, e in enumerate(self._entries)}
        self._current = None
        self.table.setRowCount(0)
        self.table.setRowCount(len(self._entries))
        for row, entry in enumerate(self._entries):
            self._set_row(row, entry)

    def refresh_entry(self, entry: SubtitleEntry) -> None:
        row = self._rows.get(entry.id)
        if row is None:
            return
        item = self.table.item(row, COL_TAGGED)
        if item:
            item.setText(_tag_count(entry))
        self._paint_row(row, entry)

    def set_current(self, subtitle_id: Optional[str]) -> None:
        previous, self._current = self._current, subtitle_id
        for sid in (previous, subtitle_id):
            row = self._rows.get(sid) if sid else None
            if row is not None:
                self._paint_row(row, self._entries[row])
        row = self._rows.get(subtitle_id) if subtitle_id else None
        if row is not None:
            self.table.scrollToItem(self.table.item(row, COL_TEXT), QAbstractItemView.PositionAtCenter)

    def clear(self) -> None:
        self._entries = []
        self._rows = {}
        self._current = None
        self.table.setRowCount(0)

    # ------------------------------------------------------------------ internals
    def _set_row(self, row: int, entry: SubtitleEntry) -> None:
        items = [
            str(entry.ordinal),
            _fmt(entry.start_time),
            _fmt(entry.end_time),
            entry.text.replace("\n", " "),
            _tag_count(entry),
        ]
        for col, text in enumerate(items):
            self.table.setItem(row, col, QTableWidgetItem(text))
        self._paint_row(row, entry)

    def _paint_row(self, row: int, entry: SubtitleEntry) -> None:
        if entry.id == self._current:
            bg = _CURRENT_BG
        elif entry.fully_tagged:
            bg = _DONE_BG
        else:
            bg = None
        for col in range(len(HEADERS)):
            item = self.table.item(row, col)
            if item:
                item.setBackground(bg if bg is not None else QColor(Qt.transparent))

    # ------------------------------------------------------------------ slots
    @Slot(int, int)
    def _on_cell_clicked(self, row: int, _col: int) -> None:
        if row < len(self._entries):
            self.entry_activated.emit(self._entries[row].start_time)


class TokenStrip(QWidget):
    """The displayed entry as a row of clickable tokens.

    Each token shows its text and, once tagged, the label of its meaning.

    Signals
    -------
    token_clicked(str, int):    (subtitle id, token index).
    """

    token_clicked = Signal(str, int)

    def __init__(self, label_for: Optional[Callable[[Optional[int]], Optional[str]]] = None, parent=None):
        super().__init__(parent)
        self._label_for = label_for or (lambda _meaning_id: None)
        self._entry: Optional[SubtitleEntry] = None
        self._buttons: List[QToolButton] = []
        self._selected: Optional[int] = None
        self._build_ui()

    def _build_ui(self) -> None:
        self._status = QLabel("No subtitle")
        self._status.setStyleSheet("color: #888;")

        self._row = QWidget()
        self._row_layout = QHBoxLayout(self._row)
        self._row_layout.setContentsMargins(4, 4, 4, 4)
        self._row_layout.addStretch()

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFocusPolicy(Qt.NoFocus)
        scroll.setWidget(self._row)
        scroll.setFixedHeight(90)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._status)
        layout.addWidget(scroll)

    # ------------------------------------------------------------------ API
    def set_label_source(self, label_for: Callable[[Optional[int]], Optional[str]]) -> None:
        self._label_for = label_for

    def show_entry(self, entry: Optional[SubtitleEntry]) -> None:
        for btn in self._buttons:
            self._row_layout.removeWidget(btn)
            btn.deleteLater()
        self._buttons = []
        self._entry = entry
        if entry is None:
            self._selected = None
            self._status.setText("No subtitle")
            return

        self._status.setText(f"{entry.id}   {_fmt(entry.start_time)}s   {_tag_count(entry)} tagged")
        if not entry.tokens:
            self._status.setText(f"{entry.id}   {entry.text}")
        for i, token in enumerate(entry.tokens):
            btn = QToolButton()
            btn.setFocusPolicy(Qt.NoFocus)
            btn.setCheckable(True)
            btn.setToolButtonStyle(Qt.ToolButtonTextOnly)
            btn.clicked.connect(lambda _=False, idx=i: self._on_token_clicked(idx))
            self._row_layout.insertWidget(self._row_layout.count() - 1, btn)
            self._buttons.append(btn)
            self._update_button(i)
        self.set_selection(entry.id, self._selected)

    def set_selection(self, subtitle_id: Optional[str], token_index: Optional[int]) -> None:
        if self._entry is None or subtitle_id != self._entry.id:
            token_index = None
        self._selected = token_index
        for i, btn in enumerate(self._buttons):
            btn.setChecked(i == token_index)

    def _update_button(self, i: int) -> None:
        token = self._entry.tokens[i]
        label = self._label_for(token.meaning) if token.is_tagged else None
        btn = self._buttons[i]
        if token.is_tagged:
            btn.setText(f"{token.text}\n{label or '#' + str(token.meaning)}")
            btn.setStyleSheet("QToolButton { color: #2e7d32; }")
        else:
            btn.setText(f"{token.text}\n·")
            btn.setStyleSheet("")

    def _on_token_clicked(self, idx: int) -> None:
        if self._entry is not None:
            self.token_clicked.emit(self._entry.id, idx)
