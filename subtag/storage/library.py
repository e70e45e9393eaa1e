"""JSON-file subtitle and meaning library.

Layout under the library directory::

    subtitles/<media_id>.json   one file per media item
    meanings.json               every meaning record, keyed by numeric id

Files are written to a temporary sibling first and then moved over the
target, so a crash mid-write never leaves a truncated file behind. Worker
threads call into the store concurrently; one lock serializes all access.
"""
from __future__ import annotations

import json
import logging
import re
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from subtag.core.collaborators import Persistence, PersistenceError
from subtag.models.subtitle import (
    MeaningCandidate,
    SubtitleEntry,
    entry_from_dict,
    entry_to_dict,
    parse_subtitle_id,
)

logger = logging.getLogger(__name__)

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")


def media_id_for_path(path: str) -> str:
    """Derive a file-name-safe media id from a video or subtitle path."""
    stem = _UNSAFE_RE.sub("-", Path(path).stem).strip("-.")
    return stem or "media"


class LibraryStore(Persistence):
    """Blocking JSON storage implementing :class:`Persistence`."""

    MEANINGS_FILE = "meanings.json"
    SUBTITLES_DIR = "subtitles"

    def __init__(self, library_dir):
        self.library_dir   = Path(library_dir)
        self.subtitles_dir = self.library_dir / self.SUBTITLES_DIR
        self._lock = threading.RLock()
        self.subtitles_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------ file helpers
    def _subtitle_file(self, media_id: str) -> Path:
        if not media_id or _UNSAFE_RE.search(media_id):
            raise PersistenceError(f"Invalid media id for storage: {media_id!r}")
        return self.subtitles_dir / f"{media_id}.json"

    def _read_json(self, path: Path) -> Optional[dict]:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Could not read {path.name}: {exc}") from exc

    def _write_json(self, path: Path, data: dict) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_file = path.with_suffix(".tmp")
            data["saved_timestamp"] = datetime.now().isoformat()
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_file.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Could not write {path.name}: {exc}") from exc

    # ------------------------------------------------------------------ subtitles
    def list_media(self) -> List[str]:
        with self._lock:
            return sorted(p.stem for p in self.subtitles_dir.glob("*.json"))

    def has_media(self, media_id: str) -> bool:
        with self._lock:
            return self._subtitle_file(media_id).exists()

    def save_subtitles(self, media_id: str, entries: List[SubtitleEntry]) -> None:
        with self._lock:
            self._write_json(
                self._subtitle_file(media_id),
                {"media_id": media_id, "subtitles": [entry_to_dict(e) for e in entries]},
            )
        logger.info("Library: saved %d subtitles for %s", len(entries), media_id)

    def load_subtitles(self, media_id: str) -> List[SubtitleEntry]:
        with self._lock:
            data = self._read_json(self._subtitle_file(media_id))
        if data is None:
            raise PersistenceError(f"No subtitles stored for {media_id!r}")
        try:
            entries = [entry_from_dict(rec) for rec in data.get("subtitles", [])]
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Corrupt subtitle file for {media_id!r}: {exc}") from exc
        logger.info("Library: loaded %d subtitles for %s", len(entries), media_id)
        return entries

    def save_meaning_assignment(self, subtitle_id: str, token_index: int, meaning_id: Optional[int]) -> None:
        try:
            media_id, _ = parse_subtitle_id(subtitle_id)
        except ValueError as exc:
            raise PersistenceError(str(exc)) from exc

        with self._lock:
            path = self._subtitle_file(media_id)
            data = self._read_json(path)
            if data is None:
                raise PersistenceError(f"No subtitles stored for {media_id!r}")
            record = next((r for r in data.get("subtitles", []) if r.get("id") == subtitle_id), None)
            if record is None:
                raise PersistenceError(f"Subtitle {subtitle_id} is not in the library")
            tokens = record.get("tokens") or []
            if not 0 <= token_index < len(tokens):
                raise PersistenceError(f"Token {token_index} out of range for {subtitle_id}")

            token = tokens[token_index]
            if isinstance(token, str):
                token = {"t": token}
            if meaning_id is None:
                token.pop("meaning_id", None)
            else:
                token["meaning_id"] = meaning_id
            tokens[token_index] = token
            self._write_json(path, data)
        logger.debug("Library: %s[%d] -> meaning %s", subtitle_id, token_index, meaning_id)

    # ------------------------------------------------------------------ meanings
    def _load_meanings(self) -> dict:
        data = self._read_json(self.library_dir / self.MEANINGS_FILE)
        if data is None:
            data = {"next_id": 1, "meanings": []}
        return data

    def _save_meanings(self, data: dict) -> None:
        self._write_json(self.library_dir / self.MEANINGS_FILE, data)

    def fetch_meaning_candidates(self, token_text: str) -> List[MeaningCandidate]:
        with self._lock:
            data = self._load_meanings()
        found = [
            MeaningCandidate.from_dict(rec)
            for rec in data.get("meanings", [])
            if rec.get("word") == token_text
        ]
        found.sort(key=lambda c: c.id)
        return found

    def create_meaning(
        self,
        word: str,
        label: str,
        definition: str = "",
        part_of_speech: str = "",
        source: Optional[str] = None,
    ) -> MeaningCandidate:
        if not word or not label:
            raise PersistenceError("A meaning needs both a word and a label")
        with self._lock:
            data = self._load_meanings()
            candidate = MeaningCandidate(
                id=int(data.get("next_id", 1)),
                word=word,
                label=label,
                definition=definition,
                part_of_speech=part_of_speech,
                source=source,
            )
            data["next_id"] = candidate.id + 1
            data.setdefault("meanings", []).append(candidate.to_dict())
            self._save_meanings(data)
        logger.info("Library: created meaning %d for %r", candidate.id, word)
        return candidate

    def update_meaning(self, candidate: MeaningCandidate) -> MeaningCandidate:
        with self._lock:
            data = self._load_meanings()
            records = data.get("meanings", [])
            for i, rec in enumerate(records):
                if int(rec.get("id", -1)) == candidate.id:
                    records[i] = candidate.to_dict()
                    break
            else:
                raise PersistenceError(f"Meaning {candidate.id} does not exist")
            self._save_meanings(data)
        logger.info("Library: updated meaning %d", candidate.id)
        return candidate

    def delete_meaning(self, meaning_id: int) -> None:
        with self._lock:
            data = self._load_meanings()
            records = data.get("meanings", [])
            kept = [rec for rec in records if int(rec.get("id", -1)) != meaning_id]
            if len(kept) == len(records):
                raise PersistenceError(f"Meaning {meaning_id} does not exist")
            data["meanings"] = kept
            self._save_meanings(data)
        logger.info("Library: deleted meaning %d", meaning_id)
