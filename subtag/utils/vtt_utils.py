"""WebVTT subtitle file read/write utilities."""
from __future__ import annotations

import re
from typing import List, Optional

from subtag.models.subtitle import SubtitleEntry, Token, make_subtitle_id, parse_subtitle_id


# --------------------------------------------------------------------------- #
#  Helpers
# --------------------------------------------------------------------------- #

_TAG_RE    = re.compile(r"<[^>]+>")
_ENTITY_RE = re.compile(r"&[a-z]+;", re.IGNORECASE)
_END_RE    = re.compile(r"^(\d{2}:\d{2}:\d{2}\.\d{3})")
_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")


def ts_to_seconds(ts: str) -> Optional[float]:
    """Parse a VTT timestamp (HH:MM:SS.mmm) into seconds; None if invalid."""
    parts = ts.strip().split(":")
    if len(parts) != 3:
        return None
    try:
        h, m = int(parts[0]), int(parts[1])
        sec, _, ms = parts[2].partition(".")
        s = int(sec)
        millis = int(ms) if ms else 0
    except ValueError:
        return None
    return h * 3600 + m * 60 + s + millis / 1000


def seconds_to_ts(seconds: float) -> str:
    """Convert seconds to VTT timestamp HH:MM:SS.mmm."""
    if seconds < 0:
        raise ValueError(f"negative timestamp: {seconds}")
    ms = round(seconds * 1000)
    h  = ms // 3_600_000;  ms -= h * 3_600_000
    m  = ms //    60_000;  ms -= m *    60_000
    s  = ms //     1_000;  ms -= s *     1_000
    return f"{h:02d}:{m:02d}:{s:02d}.{ms:03d}"


def strip_html(text: str) -> str:
    """Remove markup tags and named entities from a cue line."""
    if not text:
        return ""
    return _ENTITY_RE.sub("", _TAG_RE.sub("", text)).strip()


def tokenize(text: str) -> List[Token]:
    """Whitespace tokenizer used for freshly imported cues."""
    return [Token(word) for word in text.split()]


# --------------------------------------------------------------------------- #
#  Parse
# --------------------------------------------------------------------------- #

def parse_vtt_text(content: str, media_id: str) -> List[SubtitleEntry]:
    """Parse WebVTT ``content`` into entries with ids ``<media_id>_<cue index>``.

    Cue identifiers must be integers. Any malformed cue raises ValueError
    naming the 1-based block number; the header and NOTE blocks are skipped.
    """
    if not content or not content.strip():
        raise ValueError("VTT content is empty")
    if not media_id or not media_id.strip():
        raise ValueError("Media id is required")

    content = content.replace("\r\n", "\n").lstrip("\ufeff")
    blocks = [b for b in _BLOCK_SPLIT_RE.split(content.strip()) if b.strip()]

    by_index = {}
    for n, block in enumerate(blocks, start=1):
        lines = [ln for ln in block.strip().split("\n") if ln.strip()]
        head = lines[0].strip().upper()
        if head.startswith("WEBVTT") or head.startswith("NOTE") or head in ("STYLE", "REGION"):
            continue

        preview = block[:100]
        if len(lines) < 2:
            raise ValueError(f"VTT block {n} is malformed: needs an index and a timestamp line: {preview!r}")

        try:
            index = int(lines[0].strip(), 10)
        except ValueError:
            raise ValueError(f"VTT block {n} has invalid index {lines[0].strip()!r}") from None

        time_line = lines[1].strip()
        start_ts, arrow, rest = time_line.partition("-->")
        if not arrow:
            raise ValueError(f"VTT block {n} is missing the timestamp arrow (-->): {time_line!r}")
        end_match = _END_RE.match(rest.strip())
        if end_match is None:
            raise ValueError(f"VTT block {n} has invalid end timestamp: {rest.strip()!r}")

        start = ts_to_seconds(start_ts)
        end   = ts_to_seconds(end_match.group(1))
        if start is None:
            raise ValueError(f"VTT block {n} has invalid start timestamp: {start_ts.strip()!r}")

        text = "\n".join(t for t in (strip_html(ln) for ln in lines[2:]) if t).strip()
        if not text:
            raise ValueError(f"VTT block {n} has empty text")
        if index in by_index:
            raise ValueError(f"VTT has duplicate cue index {index}")

        by_index[index] = SubtitleEntry(
            id=make_subtitle_id(media_id, index),
            start_time=start,
            end_time=end,
            text=text,
            tokens=tokenize(text),
        )

    if not by_index:
        raise ValueError("No subtitles found in VTT content")
    return [by_index[i] for i in sorted(by_index)]


def parse_vtt(path: str, media_id: str) -> List[SubtitleEntry]:
    """Read a VTT file and return its entries."""
    with open(path, "r", encoding="utf-8-sig") as fh:
        content = fh.read()
    return parse_vtt_text(content, media_id)


# --------------------------------------------------------------------------- #
#  Write
# --------------------------------------------------------------------------- #

def write_vtt(entries: List[SubtitleEntry], path: str) -> None:
    """Write entries to a VTT file, using each id's ordinal as the cue index.

    Entries without an end time end where the next one starts (or one
    second after their own start for the last entry).
    """
    with open(path, "w", encoding="utf-8") as fh:
        fh.write("WEBVTT\n\n")
        for i, entry in enumerate(entries):
            end = entry.end_time
            if end is None:
                end = entries[i + 1].start_time if i + 1 < len(entries) else entry.start_time + 1.0
            fh.write(
                f"{parse_subtitle_id(entry.id)[1]}\n"
                f"{seconds_to_ts(entry.start_time)} --> {seconds_to_ts(end)}\n"
                f"{entry.text}\n\n"
            )
