"""WebVTT / SRT caption parsing.

Two outputs from the same line classification:

* ``parse_captions`` -> time-coded ``CaptionSegment`` list, with consecutive
  duplicate lines dropped (auto captions repeat each line as it scrolls).
* ``captions_to_text`` -> one whitespace-normalized string of all text.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from .timecode import format_clock, to_seconds

CAPTION_SUFFIXES = (".vtt", ".srt")

_TIMING_RE = re.compile(r"^(\d{2,}):(\d{2}):(\d{2})(?:[.,]\d{1,3})?\s*-->")
_SEQUENCE_RE = re.compile(r"^\d+$")
_TAG_RE = re.compile(r"<[^>]+>")
_DECODED_TAG_RE = re.compile(r"</?[A-Za-z][^<>]*>")
_ENTITY_RE = re.compile(r"&(?:[A-Za-z][A-Za-z0-9]*|#\d+|#[xX][0-9A-Fa-f]+);")
_WS_RE = re.compile(r"\s+")
_HEADER_PREFIXES = ("WEBVTT", "NOTE", "STYLE", "REGION", "Kind:", "Language:")

_ENTITIES = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
    "&nbsp;": " ",
}


@dataclass(frozen=True)
class CaptionSegment:
    offset_seconds: int
    clock: str
    text: str

    def to_dict(self) -> dict:
        return {"timestamp": self.offset_seconds, "time": self.clock, "text": self.text}


class CueState(str, Enum):
    AWAITING_CUE = "awaiting-cue"
    IN_CUE = "in-cue"


def _decode_entity(match: "re.Match[str]") -> str:
    entity = match.group(0)
    known = _ENTITIES.get(entity.lower())
    if known is not None:
        return known
    decoded = html.unescape(entity)
    # Unknown entity names are dropped rather than leaked into the text.
    return "" if decoded == entity else decoded


def decode_entities(text: str) -> str:
    return _ENTITY_RE.sub(_decode_entity, text)


def clean_text(line: str) -> str:
    """Strip markup tags, decode entities and trim one caption text line."""
    text = _TAG_RE.sub("", line)
    # Double-escaped input ("&amp;lt;") needs more than one pass.
    for _ in range(3):
        decoded = decode_entities(text)
        if decoded == text:
            break
        text = decoded
    # Decoded text may hold escaped markup, but also bare "<" and ">" characters.
    text = _DECODED_TAG_RE.sub("", text)
    return text.replace("\xa0", " ").strip()


def _is_skippable(line: str) -> bool:
    return (
        not line
        or bool(_SEQUENCE_RE.match(line))
        or line.startswith(_HEADER_PREFIXES)
    )


def _cue_lines(document: str) -> Iterator[Tuple[int, str]]:
    """``(start offset, cleaned text)`` for every non-empty text line inside a cue.

    A cue opens at its timing line and ends at the next blank line, so header
    blocks (``NOTE``, ``STYLE``, ``REGION``) and stray text outside cues never
    count as caption text.
    """
    state = CueState.AWAITING_CUE
    offset = 0
    for raw in document.splitlines():
        line = raw.strip()

        m = _TIMING_RE.match(line)
        if m:
            hours, minutes, seconds = (int(g) for g in m.groups())
            offset = to_seconds(hours, minutes, seconds)
            state = CueState.IN_CUE
            continue
        if not line:
            state = CueState.AWAITING_CUE
            continue
        if state is not CueState.IN_CUE or "-->" in line or _is_skippable(line):
            continue

        text = clean_text(line)
        if text:
            yield offset, text


def parse_captions(document: str) -> List[CaptionSegment]:
    """Parse a caption document into ordered, de-duplicated segments.

    A document without any timing line yields an empty list.
    """
    segments: List[CaptionSegment] = []
    last_text: Optional[str] = None
    for offset, text in _cue_lines(document):
        if text != last_text:
            segments.append(CaptionSegment(offset_seconds=offset, clock=format_clock(offset), text=text))
            last_text = text
    return segments


def captions_to_text(document: str) -> str:
    """All caption text joined by single spaces (duplicates kept)."""
    fragments = [text for _, text in _cue_lines(document)]
    return _WS_RE.sub(" ", " ".join(fragments)).strip()


def transcript_duration(segments: Iterable[CaptionSegment]) -> int:
    last = 0
    for seg in segments:
        last = seg.offset_seconds
    return last


def find_caption_file(directory: Path) -> Optional[Path]:
    """Return the first ``.vtt``/``.srt`` file in ``directory`` (sorted by name)."""
    if not directory.is_dir():
        return None
    for path in sorted(directory.iterdir()):
        if path.is_file() and path.suffix.lower() in CAPTION_SUFFIXES:
            return path
    return None
