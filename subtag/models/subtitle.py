"""Subtitle entry, token and meaning-candidate records."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

# "<mediaId>_<ordinal>": the ordinal is everything after the final underscore
_ID_RE = re.compile(r"^(?P<media>.+)_(?P<ordinal>[0-9]+)$")


class MalformedIdError(ValueError):
    """Raised when a subtitle id does not follow ``<mediaId>_<ordinal>``."""


@dataclass
class Token:
    """One tokenized word of a subtitle line."""

    text: str
    meaning: Optional[int] = None   # meaning id; None = untagged

    @property
    def is_tagged(self) -> bool:
        return self.meaning is not None


@dataclass
class SubtitleEntry:
    """A single timed subtitle line for one media item."""

    id: str
    start_time: float                 # seconds
    end_time: Optional[float] = None  # seconds, may be missing
    text: str = ""                    # display fallback
    tokens: List[Token] = field(default_factory=list)

    # ------------------------------------------------------------------ helpers
    @property
    def ordinal(self) -> int:
        return parse_subtitle_id(self.id)[1]

    @property
    def media_id(self) -> str:
        return parse_subtitle_id(self.id)[0]

    def first_untagged_index(self) -> Optional[int]:
        for i, tok in enumerate(self.tokens):
            if not tok.is_tagged:
                return i
        return None

    @property
    def fully_tagged(self) -> bool:
        return bool(self.tokens) and all(t.is_tagged for t in self.tokens)


@dataclass
class MeaningCandidate:
    """A dictionary meaning that can be attached to a token.

    Only ``id`` matters to the navigation core; the other fields are
    payload for the meaning panel.
    """

    id: int
    word: str = ""
    label: str = ""
    definition: str = ""
    part_of_speech: str = ""
    source: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "word": self.word,
            "label": self.label,
            "definition": self.definition,
            "part_of_speech": self.part_of_speech,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MeaningCandidate":
        return cls(
            id=int(data["id"]),
            word=data.get("word", ""),
            label=data.get("label", ""),
            definition=data.get("definition", ""),
            part_of_speech=data.get("part_of_speech", ""),
            source=data.get("source"),
        )


# --------------------------------------------------------------------------- #
#  Id helpers
# --------------------------------------------------------------------------- #

def parse_subtitle_id(subtitle_id: str) -> Tuple[str, int]:
    """Split ``"81726716_6"`` into ``("81726716", 6)``."""
    m = _ID_RE.match(subtitle_id or "")
    if m is None:
        raise MalformedIdError(f"Malformed subtitle id: {subtitle_id!r}")
    return m.group("media"), int(m.group("ordinal"), 10)


def make_subtitle_id(media_id: str, ordinal: int) -> str:
    return f"{media_id}_{ordinal}"


# --------------------------------------------------------------------------- #
#  Ingestion boundary
# --------------------------------------------------------------------------- #

def normalize_tokens(raw: Optional[Iterable[Any]]) -> List[Token]:
    """Convert stored tokens (bare strings or ``{"t", "meaning_id"}``
    mappings) into :class:`Token` objects.

    This is the only place that looks at the stored shape; everything
    downstream works with ``Token``.
    """
    tokens: List[Token] = []
    for item in raw or ():
        if isinstance(item, Token):
            tokens.append(Token(item.text, item.meaning))
        elif isinstance(item, str):
            tokens.append(Token(item))
        elif isinstance(item, dict):
            meaning = item.get("meaning_id", item.get("meaning"))
            tokens.append(
                Token(
                    text=str(item.get("t", item.get("text", ""))),
                    meaning=int(meaning) if meaning is not None else None,
                )
            )
        else:
            raise ValueError(f"Unsupported token representation: {item!r}")
    return tokens


def serialize_tokens(tokens: Iterable[Token]) -> List[dict]:
    out = []
    for tok in tokens:
        rec: dict = {"t": tok.text}
        if tok.meaning is not None:
            rec["meaning_id"] = tok.meaning
        out.append(rec)
    return out


def entry_from_dict(data: dict) -> SubtitleEntry:
    """Build an entry from a stored record (library JSON, importer output)."""
    start = data.get("start_time", data.get("start"))
    end = data.get("end_time", data.get("end"))
    return SubtitleEntry(
        id=str(data["id"]),
        start_time=float(start) if start is not None else None,  # type: ignore[arg-type]
        end_time=float(end) if end is not None else None,
        text=data.get("text", ""),
        tokens=normalize_tokens(data.get("tokens")),
    )


def entry_to_dict(entry: SubtitleEntry) -> dict:
    return {
        "id": entry.id,
        "start": entry.start_time,
        "end": entry.end_time,
        "text": entry.text,
        "tokens": serialize_tokens(entry.tokens),
    }
