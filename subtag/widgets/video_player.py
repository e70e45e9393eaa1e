"""Video preview widget with playback controls, plus its PlayerControl adapter."""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import Qt, QUrl, Signal, Slot
from PySide6.QtMultimedia import QAudioOutput, QMediaPlayer
from PySide6.QtMultimediaWidgets import QVideoWidget
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSizePolicy,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from subtag.core.collaborators import PlayerControl

logger = logging.getLogger(__name__)


def _ms_to_hms(ms: int) -> str:
    s  = ms // 1000
    m  = s  // 60;  s  %= 60
    h  = m  // 60;  m  %= 60
    return f"{h:02d}:{m:02d}:{s:02d}"


class VideoPlayer(QWidget):
    """Embeds a QMediaPlayer + controls inside a QWidget.

    Signals
    -------
    resumed():              the user pressed Play (or toggled out of pause).
    position_seconds(float): playback position, as reported by the player.
    """

    resumed          = Signal()
    position_seconds = Signal(float)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._has_source = False
        self._build_ui()
        self._connect_signals()

    # ------------------------------------------------------------------ build
    def _build_ui(self) -> None:
        self.player       = QMediaPlayer(self)
        self.audio_output = QAudioOutput(self)
        self.player.setAudioOutput(self.audio_output)
        self.audio_output.setVolume(1.0)

        self.video_widget = QVideoWidget()
        self.video_widget.setSizePolicy(
            QSizePolicy.Expanding, QSizePolicy.Expanding
        )
        self.player.setVideoOutput(self.video_widget)

        # ---- Position slider ----
        self.position_slider = QSlider(Qt.Horizontal)
        self.position_slider.setRange(0, 0)
        self.position_slider.setSingleStep(1000)
        self.position_slider.setFocusPolicy(Qt.NoFocus)

        # ---- Time label ----
        self.time_label = QLabel("00:00:00 / 00:00:00")
        self.time_label.setAlignment(Qt.AlignCenter)

        # ---- Control buttons ----
        self.play_btn  = QPushButton("▶  Play")
        self.pause_btn = QPushButton("⏸  Pause")
        # Arrow and digit keys belong to the subtitle navigation
        for btn in (self.play_btn, self.pause_btn):
            btn.setFocusPolicy(Qt.NoFocus)

        ctrl = QHBoxLayout()
        ctrl.addWidget(self.play_btn)
        ctrl.addWidget(self.pause_btn)
        ctrl.addStretch()
        ctrl.addWidget(self.time_label)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.video_widget, stretch=1)
        layout.addWidget(self.position_slider)
        layout.addLayout(ctrl)

    def _connect_signals(self) -> None:
        self.play_btn.clicked.connect(self._on_play_clicked)
        self.pause_btn.clicked.connect(self.player.pause)

        self.player.positionChanged.connect(self._on_position_changed)
        self.player.durationChanged.connect(self._on_duration_changed)
        self.player.errorOccurred.connect(self._on_error)

        # Allow manual scrubbing
        self.position_slider.sliderMoved.connect(self.player.setPosition)

    # ------------------------------------------------------------------ API
    def load(self, path: str) -> None:
        """Load and immediately preview (but don't autoplay) a video file."""
        self.player.setSource(QUrl.fromLocalFile(path))
        self._has_source = True
        self.player.pause()     # show first frame

    @property
    def has_source(self) -> bool:
        return self._has_source

    def seek_to(self, seconds: float) -> None:
        """Jump to a position in seconds."""
        self.player.setPosition(int(seconds * 1000))

    def position(self) -> float:
        return self.player.position() / 1000.0

    def is_paused(self) -> bool:
        return self.player.playbackState() != QMediaPlayer.PlaybackState.PlayingState

    def toggle_playback(self) -> None:
        if self.is_paused():
            self._on_play_clicked()
        else:
            self.player.pause()

    # ------------------------------------------------------------------ slots
    @Slot()
    def _on_play_clicked(self) -> None:
        self.player.play()
        self.resumed.emit()

    @Slot(int)
    def _on_position_changed(self, pos_ms: int) -> None:
        if not self.position_slider.isSliderDown():
            self.position_slider.setValue(pos_ms)
        dur = self.player.duration()
        self.time_label.setText(f"{_ms_to_hms(pos_ms)} / {_ms_to_hms(dur)}")
        self.position_seconds.emit(pos_ms / 1000.0)

    @Slot(int)
    def _on_duration_changed(self, dur_ms: int) -> None:
        self.position_slider.setRange(0, dur_ms)

    @Slot(QMediaPlayer.Error, str)
    def _on_error(self, error, message: str) -> None:
        logger.error("Media player error %s: %s", error, message)


class QtPlayerControl(PlayerControl):
    """:class:`PlayerControl` over a :class:`VideoPlayer`.

    When the player cannot report a time (no media, or the backend
    raises), the last position it did report is used instead.
    """

    def __init__(self, video: VideoPlayer):
        self._video = video
        self._last_position: Optional[float] = None
        video.position_seconds.connect(self._remember)

    def _remember(self, seconds: float) -> None:
        self._last_position = seconds

    def get_current_time(self) -> Optional[float]:
        if not self._video.has_source:
            return None
        try:
            return self._video.position()
        except RuntimeError as exc:
            logger.debug("Player position unavailable (%s) — using last known", exc)
            return self._last_position

    def seek(self, seconds: float) -> None:
        self._video.seek_to(seconds)

    def play(self) -> None:
        self._video.player.play()

    def pause(self) -> None:
        self._video.player.pause()

    def is_paused(self) -> bool:
        return self._video.is_paused()
