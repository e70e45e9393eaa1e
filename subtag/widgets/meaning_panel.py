"""Numbered list of meaning candidates for the selected token."""
from __future__ import annotations

from typing import List, Optional

from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from subtag.models.subtitle import MeaningCandidate

# Digit shown next to each list position; matches the hotkey mapping
_DIGITS = "1234567890"


class MeaningDialog(QDialog):
    """Create or edit one meaning record."""

    def __init__(self, word: str, candidate: Optional[MeaningCandidate] = None, parent=None):
        super().__init__(parent)
        self.setWindowTitle(f"Edit meaning — {word}" if candidate else f"New meaning — {word}")
        self._word = word
        self._candidate = candidate

        self.label_edit = QLineEdit(candidate.label if candidate else "")
        self.pos_edit   = QLineEdit(candidate.part_of_speech if candidate else "")
        self.def_edit   = QLineEdit(candidate.definition if candidate else "")

        form = QFormLayout()
        form.addRow("Word:", QLabel(f"<b>{word}</b>"))
        form.addRow("Label:", self.label_edit)
        form.addRow("Part of speech:", self.pos_edit)
        form.addRow("Definition:", self.def_edit)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)

        layout = QVBoxLayout(self)
        layout.addLayout(form)
        layout.addWidget(buttons)

    def _on_accept(self) -> None:
        if not self.label_edit.text().strip():
            QMessageBox.warning(self, "Missing label", "A meaning needs a label.")
            return
        self.accept()

    def result_candidate(self) -> MeaningCandidate:
        base = self._candidate
        return MeaningCandidate(
            id=base.id if base else 0,
            word=self._word,
            label=self.label_edit.text().strip(),
            definition=self.def_edit.text().strip(),
            part_of_speech=self.pos_edit.text().strip(),
            source=base.source if base else None,
        )


class MeaningPanel(QWidget):
    """Shows the candidates of the selected token.

    Signals
    -------
    candidate_chosen(int):          list position double-clicked.
    create_requested(object):       new MeaningCandidate (id unset) to create.
    update_requested(object):       edited MeaningCandidate.
    delete_requested(int):          meaning id to delete.
    """

    candidate_chosen = Signal(int)
    create_requested = Signal(object)
    update_requested = Signal(object)
    delete_requested = Signal(int)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._candidates: List[MeaningCandidate] = []
        self._word: Optional[str] = None
        self._assigned: Optional[int] = None
        self._build_ui()
        self.clear()

    # ------------------------------------------------------------------ build
    def _build_ui(self) -> None:
        self.title = QLabel()
        self.list_widget = QListWidget()
        self.list_widget.setFocusPolicy(Qt.NoFocus)
        self.list_widget.itemDoubleClicked.connect(self._on_double_clicked)

        self.add_btn    = QPushButton("➕  Add")
        self.edit_btn   = QPushButton("✏️  Edit")
        self.delete_btn = QPushButton("🗑  Delete")
        for btn in (self.add_btn, self.edit_btn, self.delete_btn):
            btn.setFocusPolicy(Qt.NoFocus)
        self.add_btn.clicked.connect(self._on_add)
        self.edit_btn.clicked.connect(self._on_edit)
        self.delete_btn.clicked.connect(self._on_delete)

        buttons = QHBoxLayout()
        buttons.addWidget(self.add_btn)
        buttons.addWidget(self.edit_btn)
        buttons.addWidget(self.delete_btn)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.title)
        layout.addWidget(self.list_widget, stretch=1)
        layout.addLayout(buttons)

    # ------------------------------------------------------------------ API
    def set_word(self, word: Optional[str], assigned: Optional[int] = None) -> None:
        """Start showing a token; candidates follow via :meth:`show_candidates`."""
        self._word = word
        self._assigned = assigned
        self._candidates = []
        self.list_widget.clear()
        if word is None:
            self.title.setText("<i>Select a token</i>")
        else:
            self.title.setText(f"<b>{word}</b>  — looking up…")
        self._update_buttons()

    def show_candidates(self, candidates: List[MeaningCandidate]) -> None:
        self._candidates = list(candidates)
        self.list_widget.clear()
        for pos, cand in enumerate(self._candidates):
            digit = _DIGITS[pos] if pos < len(_DIGITS) else " "
            parts = [cand.label]
            if cand.part_of_speech:
                parts.append(f"({cand.part_of_speech})")
            if cand.definition:
                parts.append(f"— {cand.definition}")
            item = QListWidgetItem(f"{digit}.  " + " ".join(parts))
            if cand.id == self._assigned:
                font = item.font()
                font.setBold(True)
                item.setFont(font)
            self.list_widget.addItem(item)
        if self._word is not None:
            self.title.setText(f"<b>{self._word}</b>  — {len(self._candidates)} meaning(s)")
        self._update_buttons()

    def clear(self) -> None:
        self.set_word(None)

    # ------------------------------------------------------------------ internals
    def _update_buttons(self) -> None:
        has_word = self._word is not None
        self.add_btn.setEnabled(has_word)
        self.edit_btn.setEnabled(has_word and bool(self._candidates))
        self.delete_btn.setEnabled(has_word and bool(self._candidates))

    def _current_candidate(self) -> Optional[MeaningCandidate]:
        row = self.list_widget.currentRow()
        if 0 <= row < len(self._candidates):
            return self._candidates[row]
        return None

    # ------------------------------------------------------------------ slots
    @Slot(QListWidgetItem)
    def _on_double_clicked(self, item: QListWidgetItem) -> None:
        self.candidate_chosen.emit(self.list_widget.row(item))

    @Slot()
    def _on_add(self) -> None:
        if self._word is None:
            return
        dlg = MeaningDialog(self._word, parent=self)
        if dlg.exec() == QDialog.Accepted:
            self.create_requested.emit(dlg.result_candidate())

    @Slot()
    def _on_edit(self) -> None:
        cand = self._current_candidate()
        if cand is None or self._word is None:
            return
        dlg = MeaningDialog(self._word, cand, parent=self)
        if dlg.exec() == QDialog.Accepted:
            self.update_requested.emit(dlg.result_candidate())

    @Slot()
    def _on_delete(self) -> None:
        cand = self._current_candidate()
        if cand is None:
            return
        answer = QMessageBox.question(
            self, "Delete meaning",
            f"Delete the meaning “{cand.label}” of {self._word}?\n"
            "Tokens already tagged with it keep the reference.",
        )
        if answer == QMessageBox.Yes:
            self.delete_requested.emit(cand.id)
