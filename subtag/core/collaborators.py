"""Interfaces of the things the navigation core talks to.

The core never imports Qt or the storage backend; it only sees these
abstract collaborators. Concrete versions live in ``subtag.storage``,
``subtag.widgets`` and the tests' fakes.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from subtag.models.subtitle import MeaningCandidate, SubtitleEntry


class PersistenceError(RuntimeError):
    """Raised by a :class:`Persistence` backend when a read or write fails."""


class Persistence(ABC):
    """Blocking storage calls. The core always runs them through a task runner."""

    @abstractmethod
    def load_subtitles(self, media_id: str) -> List[SubtitleEntry]:
        ...

    @abstractmethod
    def save_meaning_assignment(
        self, subtitle_id: str, token_index: int, meaning_id: Optional[int]
    ) -> None:
        ...

    @abstractmethod
    def fetch_meaning_candidates(self, token_text: str) -> List[MeaningCandidate]:
        ...

    @abstractmethod
    def create_meaning(
        self,
        word: str,
        label: str,
        definition: str = "",
        part_of_speech: str = "",
        source: Optional[str] = None,
    ) -> MeaningCandidate:
        ...

    @abstractmethod
    def update_meaning(self, candidate: MeaningCandidate) -> MeaningCandidate:
        ...

    @abstractmethod
    def delete_meaning(self, meaning_id: int) -> None:
        ...


class PlayerControl(ABC):
    """The slice of the media player the navigation core needs."""

    @abstractmethod
    def get_current_time(self) -> Optional[float]:
        """Current position in seconds, or None when no time is available."""

    @abstractmethod
    def seek(self, seconds: float) -> None:
        ...

    @abstractmethod
    def play(self) -> None:
        ...

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def is_paused(self) -> bool:
        ...


class UiRenderer:
    """Push-only view interface. Every hook defaults to doing nothing."""

    def on_entry_changed(self, entry: Optional[SubtitleEntry]) -> None:
        pass

    def on_selection_changed(self, subtitle_id: Optional[str], token_index: Optional[int]) -> None:
        pass

    def on_meanings_changed(self, key: tuple, candidates: List[MeaningCandidate]) -> None:
        pass

    def on_editing_changed(self, editing: bool) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass
