"""Map a playback time to the subtitle entry that should be on screen.

An entry owns the half-open window ``[entry.start, next.start)``; the last
entry's window is open-ended. Resolution starts from the current anchor and
walks the adjacency chain only as far as the clock actually moved, so a
normal playback tick costs one comparison.
"""
from __future__ import annotations

from typing import Optional

from subtag.core.subtitle_index import SubtitleIndex


def window_contains(index: SubtitleIndex, subtitle_id: str, current_time: float) -> bool:
    """True when ``current_time`` lies in the entry's ``[start, next.start)`` window."""
    entry = index.get(subtitle_id)
    if entry is None:
        return False
    if current_time < entry.start_time:
        return False
    nxt = index.get(index.next(subtitle_id))
    return nxt is None or current_time < nxt.start_time


def resolve(
    index: SubtitleIndex,
    anchor_id: Optional[str],
    current_time: float,
) -> Optional[str]:
    """Return the id of the entry to display at ``current_time``.

    Pure: depends only on the arguments. ``None`` only for an empty index.
    Times before the first entry resolve to the first entry; times past
    every start resolve to the last entry.
    """
    if not index:
        return None

    if anchor_id is None or anchor_id not in index:
        anchor_id = index.first()

    anchor = index.get(anchor_id)

    if current_time >= anchor.start_time:
        return _walk_forward(index, anchor_id, current_time)
    return _walk_backward(index, anchor_id, current_time)


def _walk_forward(index: SubtitleIndex, subtitle_id: str, current_time: float) -> str:
    # Invariant: entry(subtitle_id).start <= current_time
    while True:
        next_id = index.next(subtitle_id)
        if next_id is None:
            return subtitle_id
        if current_time < index.get(next_id).start_time:
            return subtitle_id
        subtitle_id = next_id


def _walk_backward(index: SubtitleIndex, subtitle_id: str, current_time: float) -> str:
    # Invariant: current_time < entry(subtitle_id).start
    while True:
        prev_id = index.prev(subtitle_id)
        if prev_id is None:
            return subtitle_id
        if index.get(prev_id).start_time <= current_time:
            return prev_id
        subtitle_id = prev_id
