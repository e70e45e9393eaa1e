"""Main application window."""
from __future__ import annotations

import os
from typing import Optional

from PySide6.QtCore import QObject, QThread, Qt, QTimer, Slot
from PySide6.QtGui import QAction, QDragEnterEvent, QDropEvent, QKeyEvent, QKeySequence
from PySide6.QtWidgets import (
    QFileDialog,
    QInputDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QProgressBar,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from subtag.core import hotkeys
from subtag.core.session import NavigationSession
from subtag.settings import AppSettings
from subtag.storage.library import LibraryStore, media_id_for_path
from subtag.utils.vtt_utils import write_vtt
from subtag.widgets.log_viewer import LogViewerDialog
from subtag.widgets.meaning_panel import MeaningPanel
from subtag.widgets.renderer import QtRenderer
from subtag.widgets.subtitle_panel import SubtitleTable, TokenStrip
from subtag.widgets.video_player import QtPlayerControl, VideoPlayer
from subtag.workers.dictionary_lookup import DictionaryLookup
from subtag.workers.task_runner import QtTaskRunner

_VIDEO_EXTS = {".mp4", ".mkv", ".avi", ".mov", ".webm", ".flv", ".wmv"}

_KEY_NAMES = {
    Qt.Key_Right: "Right",
    Qt.Key_Left:  "Left",
    Qt.Key_Up:    "Up",
    **{getattr(Qt, f"Key_{d}"): str(d) for d in range(10)},
}


class MainWindow(QMainWindow):
    """Top-level window for the subtitle tagger."""

    # ------------------------------------------------------------------ init
    def __init__(self, settings: Optional[AppSettings] = None):
        super().__init__()
        self.setWindowTitle("Subtitle Tagger")
        self.resize(1400, 800)

        self._settings   = settings or AppSettings()
        self._video_path: Optional[str] = None
        self._media_id: Optional[str]   = None
        self._busy = False
        self._table_generation = -1

        # Active QThread/worker references (prevent GC)
        self._thread: Optional[QThread] = None
        self._worker: Optional[QObject] = None

        self.store       = LibraryStore(self._settings.library_dir)
        self.persistence = DictionaryLookup(
            self.store,
            target_language=self._settings.translate_language,
            max_retries=self._settings.lookup_retries,
            retry_delay=self._settings.lookup_retry_delay,
        )
        self.runner   = QtTaskRunner(self)
        self.renderer = QtRenderer(self)

        self.setAcceptDrops(True)
        self._log_viewer: LogViewerDialog | None = None
        self._build_ui()

        self.player_control = QtPlayerControl(self.video_player)
        self.session = NavigationSession(
            self.persistence,
            self.player_control,
            renderer=self.renderer,
            runner=self.runner,
            lockout_ms=self._settings.lockout_ms,
            pause_at_end=self._settings.pause_at_end,
        )
        self.token_strip.set_label_source(self.session.meaning_label)

        self._connect_session()
        self._setup_menu()
        self._setup_statusbar()

        self._tick_timer = QTimer(self)
        self._tick_timer.setInterval(self._settings.tick_interval_ms)
        self._tick_timer.timeout.connect(self._on_tick)
        self._tick_timer.start()

        self.setFocusPolicy(Qt.StrongFocus)

    # ------------------------------------------------------------------ build
    def _build_ui(self) -> None:
        self.video_player   = VideoPlayer()
        self.token_strip    = TokenStrip()
        self.subtitle_table = SubtitleTable()
        self.meaning_panel  = MeaningPanel()

        left = QWidget()
        left_layout = QVBoxLayout(left)
        left_layout.setContentsMargins(0, 0, 0, 0)
        left_layout.addWidget(self._wrap_with_label(self.video_player, "📹  Video  (drag & drop a video file here)"), stretch=1)
        left_layout.addWidget(self._wrap_with_label(self.token_strip, "🔤  Current subtitle"))

        right = QSplitter(Qt.Vertical)
        right.addWidget(self._wrap_with_label(self.meaning_panel, "📖  Meanings  (keys 1–9, 0)"))
        right.addWidget(self._wrap_with_label(self.subtitle_table, "📝  Subtitles"))
        right.setStretchFactor(0, 1)
        right.setStretchFactor(1, 2)

        splitter = QSplitter(Qt.Horizontal)
        splitter.addWidget(left)
        splitter.addWidget(right)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 2)

        self.setCentralWidget(splitter)

    @staticmethod
    def _wrap_with_label(widget: QWidget, title: str) -> QWidget:
        container = QWidget()
        lbl = QLabel(f"<b>{title}</b>")
        lbl.setContentsMargins(4, 4, 4, 0)
        layout = QVBoxLayout(container)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(lbl)
        layout.addWidget(widget, stretch=1)
        return container

    def _connect_session(self) -> None:
        self.renderer.entry_changed.connect(self._on_entry_changed)
        self.renderer.selection_changed.connect(self._on_selection_changed)
        self.renderer.meanings_changed.connect(self._on_meanings_changed)
        self.renderer.editing_changed.connect(self._on_editing_changed)
        self.renderer.error.connect(self._on_session_error)

        self.video_player.resumed.connect(self.session.on_playback_resumed)
        self.subtitle_table.entry_activated.connect(self.video_player.seek_to)
        self.token_strip.token_clicked.connect(self.session.select_token)

        self.meaning_panel.candidate_chosen.connect(self.session.select_meaning_at)
        self.meaning_panel.create_requested.connect(
            lambda c: self.session.create_meaning(c.word, c.label, c.definition, c.part_of_speech)
        )
        self.meaning_panel.update_requested.connect(self.session.update_meaning)
        self.meaning_panel.delete_requested.connect(self.session.delete_meaning)

    def _setup_menu(self) -> None:
        menu      = self.menuBar()
        file_menu = menu.addMenu("&File")

        open_act = QAction("&Open Video…", self)
        open_act.setShortcut(QKeySequence.Open)
        open_act.triggered.connect(self._on_open_video)
        file_menu.addAction(open_act)

        import_act = QAction("&Import Subtitles (VTT)…", self)
        import_act.setShortcut(QKeySequence("Ctrl+I"))
        import_act.triggered.connect(self._on_import_vtt)
        file_menu.addAction(import_act)

        library_act = QAction("Open from &Library…", self)
        library_act.setShortcut(QKeySequence("Ctrl+Shift+O"))
        library_act.triggered.connect(self._on_open_library)
        file_menu.addAction(library_act)

        file_menu.addSeparator()

        export_act = QAction("&Export Subtitles (VTT)…", self)
        export_act.setShortcut(QKeySequence("Ctrl+E"))
        export_act.triggered.connect(self._on_export_vtt)
        file_menu.addAction(export_act)

        file_menu.addSeparator()
        quit_act = QAction("&Quit", self)
        quit_act.setShortcut(QKeySequence.Quit)
        quit_act.triggered.connect(self.close)
        file_menu.addAction(quit_act)

        help_menu = menu.addMenu("&Help")
        keys_act = QAction("&Keyboard Shortcuts", self)
        keys_act.triggered.connect(self._on_show_keys)
        help_menu.addAction(keys_act)

        logs_act = QAction("View &Logs…", self)
        logs_act.setShortcut(QKeySequence("Ctrl+L"))
        logs_act.triggered.connect(self._on_view_logs)
        help_menu.addAction(logs_act)

    def _on_view_logs(self) -> None:
        if self._log_viewer is None:
            self._log_viewer = LogViewerDialog(self)
        self._log_viewer.show()
        self._log_viewer.raise_()
        self._log_viewer.activateWindow()

    def _on_show_keys(self) -> None:
        QMessageBox.information(
            self, "Keyboard Shortcuts",
            "→   next subtitle\n"
            "←   restart current subtitle\n"
            "↑   previous subtitle\n"
            "1–9, 0   assign meaning 1–10 to the selected token\n"
            "Space   play / pause",
        )

    def _setup_statusbar(self) -> None:
        self.status_label = QLabel("Ready — open a video or a library entry.")
        self.mode_label   = QLabel("")
        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        self.progress_bar.setValue(0)
        self.progress_bar.setFixedWidth(220)
        self.progress_bar.setVisible(False)

        self.statusBar().addWidget(self.status_label, 1)
        self.statusBar().addPermanentWidget(self.mode_label)
        self.statusBar().addPermanentWidget(self.progress_bar)

    # ------------------------------------------------------------------ keys
    def keyPressEvent(self, event: QKeyEvent) -> None:
        if event.modifiers() & (Qt.ControlModifier | Qt.AltModifier | Qt.MetaModifier):
            super().keyPressEvent(event)
            return
        if event.key() == Qt.Key_Space:
            self.video_player.toggle_playback()
            return
        name = _KEY_NAMES.get(event.key())
        hotkey = hotkeys.event_for_key(name) if name else None
        if hotkey is None:
            super().keyPressEvent(event)
            return
        self.session.handle_hotkey(hotkey)

    # ------------------------------------------------------------------ drag & drop
    def dragEnterEvent(self, event: QDragEnterEvent) -> None:
        if event.mimeData().hasUrls():
            urls  = event.mimeData().urls()
            valid = any(
                os.path.splitext(u.toLocalFile())[1].lower() in _VIDEO_EXTS | {".vtt"}
                for u in urls
            )
            if valid:
                event.acceptProposedAction()
                return
        event.ignore()

    def dropEvent(self, event: QDropEvent) -> None:
        urls = event.mimeData().urls()
        if not urls:
            return
        path = urls[0].toLocalFile()
        if path.lower().endswith(".vtt"):
            self._import_vtt(path)
        else:
            self._load_video(path)

    # ------------------------------------------------------------------ helpers
    def _load_video(self, path: str) -> None:
        if not os.path.isfile(path):
            self._show_error(f"File not found:\n{path}")
            return
        self._video_path = path
        self._media_id   = media_id_for_path(path)
        self.video_player.load(path)
        self._set_status(f"Loaded: {os.path.basename(path)}")

        if self.store.has_media(self._media_id):
            self.session.load(self._media_id)
        else:
            self.session.reset()
            self._set_status(
                f"Loaded: {os.path.basename(path)} — no subtitles in the library yet, import a VTT file."
            )

    def _import_vtt(self, vtt_path: str) -> None:
        media_id = self._media_id or media_id_for_path(vtt_path)

        from subtag.workers.import_worker import ImportWorker

        self._set_busy(True, f"Importing {os.path.basename(vtt_path)}…")
        worker = ImportWorker(self.store, vtt_path, media_id)
        thread = QThread(self)

        worker.progress.connect(self.progress_bar.setValue)
        worker.imported.connect(self._on_imported)
        worker.error.connect(self._on_worker_error)
        worker.finished.connect(lambda: self._set_busy(False))

        self._start_worker(worker, thread)

    def _set_status(self, msg: str) -> None:
        self.status_label.setText(msg)

    def _set_busy(self, busy: bool, label: str = "") -> None:
        self._busy = busy
        self.progress_bar.setVisible(busy)
        if busy:
            self.progress_bar.setValue(0)
        if label:
            self._set_status(label)

    def _show_error(self, msg: str) -> None:
        QMessageBox.critical(self, "Error", msg)

    def _start_worker(self, worker: QObject, thread: QThread) -> None:
        """Wire up and start a worker/thread pair."""
        self._worker = worker
        self._thread = thread

        worker.moveToThread(thread)
        thread.started.connect(worker.run)

        # Generic cleanup
        worker.finished.connect(thread.quit)
        worker.finished.connect(worker.deleteLater)
        thread.finished.connect(thread.deleteLater)

        thread.start()

    # ------------------------------------------------------------------ menu handlers
    @Slot()
    def _on_open_video(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Video", "",
            "Video Files (*.mp4 *.mkv *.avi *.mov *.webm *.flv *.wmv);;All Files (*)"
        )
        if path:
            self._load_video(path)

    @Slot()
    def _on_import_vtt(self) -> None:
        if self._busy:
            return
        path, _ = QFileDialog.getOpenFileName(
            self, "Import Subtitles", "", "WebVTT (*.vtt);;All Files (*)"
        )
        if path:
            self._import_vtt(path)

    @Slot()
    def _on_open_library(self) -> None:
        media = self.store.list_media()
        if not media:
            QMessageBox.information(self, "Library", "The library is empty. Import a VTT file first.")
            return
        current = media.index(self._media_id) if self._media_id in media else 0
        media_id, ok = QInputDialog.getItem(self, "Open from Library", "Media:", media, current, False)
        if ok and media_id:
            self._media_id = media_id
            self.session.load(media_id)
            self._set_status(f"Loading {media_id} from the library…")

    @Slot()
    def _on_export_vtt(self) -> None:
        index = self.session.index
        if not index:
            return
        out_path, _ = QFileDialog.getSaveFileName(
            self, "Export Subtitles", f"{index.media_id or 'subtitles'}.vtt", "WebVTT (*.vtt)"
        )
        if not out_path:
            return
        try:
            write_vtt([index.get(sid) for sid in index.ids()], out_path)
        except OSError as exc:
            self._show_error(f"Could not write {out_path}:\n{exc}")
            return
        self._set_status(f"Exported {len(index)} subtitles to {os.path.basename(out_path)}")

    # ------------------------------------------------------------------ session slots
    @Slot()
    def _on_tick(self) -> None:
        if self.video_player.has_source and self.session.index:
            self.session.on_clock_tick()

    @Slot(str, int)
    def _on_imported(self, media_id: str, count: int) -> None:
        self._media_id = media_id
        self._set_status(f"Imported {count} subtitles into {media_id}.")
        self.session.load(media_id)

    @Slot(object)
    def _on_entry_changed(self, entry) -> None:
        index = self.session.index
        if self._table_generation != self.session.generation:
            self._table_generation = self.session.generation
            self.subtitle_table.load_entries([index.get(sid) for sid in index.ids()])
            if index:
                gaps = f", {len(index.gaps)} missing" if index.gaps else ""
                self._set_status(f"{index.media_id}: {len(index)} subtitles{gaps}")
        if entry is not None:
            self.subtitle_table.refresh_entry(entry)
        self.subtitle_table.set_current(entry.id if entry is not None else None)
        self.token_strip.show_entry(entry)

    @Slot(object, object)
    def _on_selection_changed(self, subtitle_id, token_index) -> None:
        self.token_strip.set_selection(subtitle_id, token_index)
        entry = self.session.index.get(subtitle_id)
        if entry is None or token_index is None:
            self.meaning_panel.clear()
            return
        token = entry.tokens[token_index]
        self.meaning_panel.set_word(token.text, token.meaning)

    @Slot(object, object)
    def _on_meanings_changed(self, key, candidates) -> None:
        sel = self.session.selection
        if key == (sel.subtitle_id, sel.token_index):
            self.meaning_panel.show_candidates(candidates)
        # Labels may have become known for tokens already on screen
        self.token_strip.show_entry(self.session.displayed_entry)

    @Slot(bool)
    def _on_editing_changed(self, editing: bool) -> None:
        self.mode_label.setText("✏️  Editing — pick a meaning" if editing else "")

    @Slot(str)
    def _on_session_error(self, message: str) -> None:
        self.statusBar().showMessage(message, 8000)

    @Slot(str)
    def _on_worker_error(self, message: str) -> None:
        self._set_busy(False)
        self._show_error(message)

    # ------------------------------------------------------------------ close
    def closeEvent(self, event) -> None:
        self._tick_timer.stop()
        self.runner.shutdown()
        event.accept()
