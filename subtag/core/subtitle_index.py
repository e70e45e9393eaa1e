"""Authoritative per-media map of subtitle entries plus prev/next adjacency.

The index is built once per media load and never rebuilt piecemeal. Lookups
and neighbour queries are dictionary hits; the adjacency is derived from the
ordinal order of the ids, so a missing ordinal simply links the two nearest
existing neighbours.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from subtag.models.subtitle import MalformedIdError, SubtitleEntry, parse_subtitle_id

logger = logging.getLogger(__name__)

# Build warning kinds
MALFORMED_ID  = "malformed_id"
DUPLICATE_ID  = "duplicate_id"
MISSING_START = "missing_start"
FOREIGN_MEDIA = "foreign_media"
SEQUENCE_GAP  = "sequence_gap"


@dataclass(frozen=True)
class Adjacency:
    next_id: Optional[str]
    prev_id: Optional[str]


@dataclass(frozen=True)
class BuildWarning:
    """Non-fatal problem found while building an index."""

    kind: str
    subtitle_id: Optional[str]
    detail: str


class SubtitleIndex:
    """Owns the only copy of every entry of one media item.

    Use :meth:`build` to create an index; the constructor takes already
    validated, ordinal-sorted entries.
    """

    def __init__(
        self,
        sorted_entries: List[SubtitleEntry],
        media_id: Optional[str] = None,
        warnings: Iterable[BuildWarning] = (),
        gaps: Iterable[int] = (),
    ):
        self._media_id = media_id
        self._entries: Dict[str, SubtitleEntry] = {}
        self._adjacency: Dict[str, Adjacency] = {}
        self._first_id: Optional[str] = None
        self._last_id: Optional[str] = None
        self.warnings: Tuple[BuildWarning, ...] = tuple(warnings)
        self.gaps: Tuple[int, ...] = tuple(gaps)

        count = len(sorted_entries)
        for i, entry in enumerate(sorted_entries):
            self._entries[entry.id] = entry
            self._adjacency[entry.id] = Adjacency(
                next_id=sorted_entries[i + 1].id if i < count - 1 else None,
                prev_id=sorted_entries[i - 1].id if i > 0 else None,
            )
        if sorted_entries:
            self._first_id = sorted_entries[0].id
            self._last_id = sorted_entries[-1].id

    # ------------------------------------------------------------------ build
    @classmethod
    def empty(cls) -> "SubtitleIndex":
        return cls([])

    @classmethod
    def build(
        cls,
        entries: Iterable[SubtitleEntry],
        media_id: Optional[str] = None,
    ) -> "SubtitleIndex":
        """Validate ``entries`` and return a new index.

        Entries with a malformed or duplicate id, no start time, or (when
        ``media_id`` is given) another media prefix are left out with a
        warning. Missing ordinals are reported as one ``sequence_gap``
        warning; the build itself never fails because of them.
        """
        warnings: List[BuildWarning] = []
        accepted: List[Tuple[int, SubtitleEntry]] = []
        seen = set()

        for entry in entries:
            try:
                entry_media, ordinal = parse_subtitle_id(entry.id)
            except MalformedIdError as exc:
                warnings.append(BuildWarning(MALFORMED_ID, entry.id, str(exc)))
                continue
            if media_id is not None and entry_media != media_id:
                warnings.append(BuildWarning(
                    FOREIGN_MEDIA, entry.id,
                    f"belongs to media {entry_media!r}, expected {media_id!r}",
                ))
                continue
            if entry.id in seen:
                warnings.append(BuildWarning(DUPLICATE_ID, entry.id, "duplicate id, first one kept"))
                continue
            if entry.start_time is None:
                warnings.append(BuildWarning(MISSING_START, entry.id, "entry has no start time"))
                continue
            seen.add(entry.id)
            accepted.append((ordinal, entry))

        # Stable sort: ordinal only, never the id string or the start time
        accepted.sort(key=lambda pair: pair[0])
        gaps = _find_gaps([ordinal for ordinal, _ in accepted])
        if gaps:
            preview = ", ".join(str(g) for g in gaps[:20])
            warnings.append(BuildWarning(
                SEQUENCE_GAP, None,
                f"{len(gaps)} missing ordinal(s): {preview}" + (" …" if len(gaps) > 20 else ""),
            ))

        for w in warnings:
            logger.warning("Subtitle index: %s %s — %s", w.kind, w.subtitle_id or "", w.detail)

        index = cls([e for _, e in accepted], media_id=media_id, warnings=warnings, gaps=gaps)
        logger.info(
            "Subtitle index built — %d entries, %d excluded, %d gap(s)",
            len(index), len(warnings) - (1 if gaps else 0), len(gaps),
        )
        return index

    # ------------------------------------------------------------------ lookups
    @property
    def media_id(self) -> Optional[str]:
        return self._media_id

    def get(self, subtitle_id: Optional[str]) -> Optional[SubtitleEntry]:
        if subtitle_id is None:
            return None
        return self._entries.get(subtitle_id)

    def next(self, subtitle_id: Optional[str]) -> Optional[str]:
        adj = self._adjacency.get(subtitle_id) if subtitle_id is not None else None
        return adj.next_id if adj else None

    def prev(self, subtitle_id: Optional[str]) -> Optional[str]:
        adj = self._adjacency.get(subtitle_id) if subtitle_id is not None else None
        return adj.prev_id if adj else None

    def adjacency(self, subtitle_id: str) -> Optional[Adjacency]:
        return self._adjacency.get(subtitle_id)

    def first(self) -> Optional[str]:
        """Id of the entry whose ``prev_id`` is None."""
        return self._first_id

    def last(self) -> Optional[str]:
        return self._last_id

    def ids(self) -> Iterator[str]:
        """Ids in ordinal order."""
        current = self._first_id
        while current is not None:
            yield current
            current = self._adjacency[current].next_id

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, subtitle_id: object) -> bool:
        return subtitle_id in self._entries

    def __bool__(self) -> bool:
        return bool(self._entries)

    # ------------------------------------------------------------------ mutation
    def update(
        self,
        subtitle_id: str,
        mutator: Callable[[SubtitleEntry], None],
    ) -> Optional[SubtitleEntry]:
        """Apply ``mutator`` to the stored entry in place and return it.

        Returns None when the id is unknown. This is the only path through
        which token meanings change.
        """
        entry = self._entries.get(subtitle_id)
        if entry is None:
            return None
        mutator(entry)
        return entry


def set_token_meaning(token_index: int, meaning_id: Optional[int]) -> Callable[[SubtitleEntry], None]:
    """Mutator for :meth:`SubtitleIndex.update`; raises IndexError when the
    entry has no such token."""
    def _mutate(entry: SubtitleEntry) -> None:
        if not 0 <= token_index < len(entry.tokens):
            raise IndexError(
                f"Token index {token_index} out of range for {entry.id} "
                f"({len(entry.tokens)} tokens)"
            )
        entry.tokens[token_index].meaning = meaning_id
    return _mutate


def _find_gaps(sorted_ordinals: List[int]) -> List[int]:
    gaps: List[int] = []
    for prev, cur in zip(sorted_ordinals, sorted_ordinals[1:]):
        gaps.extend(range(prev + 1, cur))
    return gaps
