"""Log viewer dialog — streams application logs with level and text filters."""
from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Tuple

from PySide6.QtCore import QObject, Qt, Signal, Slot
from PySide6.QtGui import QColor, QFont, QTextCharFormat, QTextCursor
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QComboBox,
    QDialog,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

LOG_FORMAT  = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_MAX_BUFFER = 500


# ---------------------------------------------------------------------------
# Qt-safe logging handler
# ---------------------------------------------------------------------------

class _QtLogSignaller(QObject):
    """Holds the signal — must be a QObject to use Signal."""
    record_emitted = Signal(logging.LogRecord)


class QtLogHandler(logging.Handler):
    """Re-emits each record via a Qt signal and keeps the most recent ones.

    The ring buffer lets a viewer opened late show what happened at
    startup. Records arrive from worker threads too; the signal is queued
    onto the GUI thread by Qt.
    """

    def __init__(self, capacity: int = _MAX_BUFFER) -> None:
        super().__init__()
        self.signaller = _QtLogSignaller()
        self.buffer: Deque[logging.LogRecord] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.buffer.append(record)
            self.signaller.record_emitted.emit(record)
        except Exception:
            self.handleError(record)


_handler: QtLogHandler | None = None


def get_qt_log_handler() -> QtLogHandler:
    """Return (and lazily create) the application-wide QtLogHandler."""
    global _handler
    if _handler is None:
        _handler = QtLogHandler()
    return _handler


_LEVEL_COLORS: dict[int, str] = {
    logging.DEBUG:    "#888888",
    logging.INFO:     "#d4d4d4",
    logging.WARNING:  "#e5c07b",
    logging.ERROR:    "#e06c75",
    logging.CRITICAL: "#ff0000",
}


def _color_for(level: int) -> str:
    for threshold in sorted(_LEVEL_COLORS.keys(), reverse=True):
        if level >= threshold:
            return _LEVEL_COLORS[threshold]
    return "#d4d4d4"


# ---------------------------------------------------------------------------
# Log viewer dialog
# ---------------------------------------------------------------------------

class LogViewerDialog(QDialog):
    """A non-blocking dialog that streams live log output."""

    _MAX_LINES = 2000

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Application Logs")
        self.resize(900, 550)
        self._formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")
        self._lines: Deque[Tuple[int, str]] = deque(maxlen=self._MAX_LINES)

        self._build_ui()

        handler = get_qt_log_handler()
        for rec in list(handler.buffer):
            self._lines.append((rec.levelno, self._formatter.format(rec)))
        self._rebuild()
        handler.signaller.record_emitted.connect(self._on_record)

    # ------------------------------------------------------------------ UI
    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(6)

        toolbar = QHBoxLayout()
        toolbar.setSpacing(6)

        self._level_combo = QComboBox()
        for name in ("DEBUG", "INFO", "WARNING", "ERROR"):
            self._level_combo.addItem(name, getattr(logging, name))
        self._level_combo.setCurrentIndex(1)
        self._level_combo.currentIndexChanged.connect(lambda _: self._rebuild())
        toolbar.addWidget(QLabel("Level:"))
        toolbar.addWidget(self._level_combo)

        self._filter_edit = QLineEdit()
        self._filter_edit.setPlaceholderText("Filter… (e.g. a subtitle id)")
        self._filter_edit.textChanged.connect(lambda _: self._rebuild())
        toolbar.addWidget(self._filter_edit, stretch=1)

        self._auto_scroll = QCheckBox("Auto-scroll")
        self._auto_scroll.setChecked(True)
        toolbar.addWidget(self._auto_scroll)

        copy_btn = QPushButton("Copy")
        copy_btn.clicked.connect(self._copy_visible)
        toolbar.addWidget(copy_btn)

        save_btn = QPushButton("Save…")
        save_btn.clicked.connect(self._save_visible)
        toolbar.addWidget(save_btn)

        clear_btn = QPushButton("Clear")
        clear_btn.clicked.connect(self._clear)
        toolbar.addWidget(clear_btn)

        layout.addLayout(toolbar)

        self._text = QTextEdit()
        self._text.setReadOnly(True)
        font = QFont("Consolas", 9)
        font.setStyleHint(QFont.StyleHint.Monospace)
        self._text.setFont(font)
        self._text.setStyleSheet(
            "QTextEdit { background-color: #1e1e1e; color: #d4d4d4; border: none; }"
        )
        layout.addWidget(self._text, stretch=1)

        bottom = QHBoxLayout()
        self._count_label = QLabel("0 shown")
        bottom.addWidget(self._count_label)
        bottom.addStretch()
        close_btn = QPushButton("Close")
        close_btn.clicked.connect(self.hide)
        bottom.addWidget(close_btn)
        layout.addLayout(bottom)

    # ------------------------------------------------------------------ slots
    @Slot(logging.LogRecord)
    def _on_record(self, record: logging.LogRecord) -> None:
        text = self._formatter.format(record)
        trimmed = len(self._lines) == self._lines.maxlen
        self._lines.append((record.levelno, text))
        if trimmed:
            self._rebuild()
        elif self._visible(record.levelno, text):
            self._append_line(record.levelno, text)
            self._update_count()
        if self._auto_scroll.isChecked():
            self._text.moveCursor(QTextCursor.MoveOperation.End)

    # ------------------------------------------------------------------ helpers
    def _visible(self, level: int, text: str) -> bool:
        if level < (self._level_combo.currentData() or logging.DEBUG):
            return False
        needle = self._filter_edit.text().strip().lower()
        return not needle or needle in text.lower()

    def _visible_lines(self) -> List[str]:
        return [text for level, text in self._lines if self._visible(level, text)]

    def _append_line(self, level: int, text: str) -> None:
        fmt = QTextCharFormat()
        fmt.setForeground(QColor(_color_for(level)))
        cursor = self._text.textCursor()
        cursor.movePosition(QTextCursor.MoveOperation.End)
        if self._text.document().characterCount() > 1:
            cursor.insertText("\n")
        cursor.insertText(text, fmt)

    def _rebuild(self) -> None:
        self._text.clear()
        for level, text in self._lines:
            if self._visible(level, text):
                self._append_line(level, text)
        self._update_count()

    def _update_count(self) -> None:
        self._count_label.setText(f"{len(self._visible_lines())} shown / {len(self._lines)} total")

    def _copy_visible(self) -> None:
        QApplication.clipboard().setText("\n".join(self._visible_lines()))

    def _save_visible(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "Save Logs", "subtag-logs.txt", "Text Files (*.txt)")
        if path:
            with open(path, "w", encoding="utf-8") as fh:
                fh.write("\n".join(self._visible_lines()) + "\n")

    def _clear(self) -> None:
        self._lines.clear()
        self._text.clear()
        self._update_count()

    # Keep the dialog hidden rather than destroyed when user closes it
    def closeEvent(self, event):  # type: ignore[override]
        event.ignore()
        self.hide()
