"""Chapter markers from generated summary text, aligned to the caption timeline.

The summarizer is asked to emit bookmarks like::

    - **[00:05:30] Introduction & Background** - Overview of today's topic

Matches whose clock is malformed or lies past the end of the transcript are
dropped. If nothing usable is found, evenly spaced placeholder sections are
synthesized so the caller always has something to navigate by.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Sequence

from .captions import CaptionSegment, transcript_duration
from .timecode import parse_clock

logger = logging.getLogger(__name__)

SECTION_SECONDS = 600
MIN_SECTIONS = 3
MAX_SECTIONS = 10
FALLBACK_DESCRIPTION = "Topic section"

_CHAPTER_RE = re.compile(
    r"[-*]\s*\*\*\[(\d{2}:\d{2}:\d{2})\]\s*([^*]+?)\s*\*\*\s*[-–—]\s*(.+?)\s*$",
    re.MULTILINE,
)


@dataclass(frozen=True)
class ChapterMarker:
    title: str
    offset_seconds: int
    description: str

    def to_dict(self) -> dict:
        return {"title": self.title, "timestamp": self.offset_seconds, "description": self.description}


def chapters_are_ordered(markers: Sequence[ChapterMarker]) -> bool:
    return all(a.offset_seconds <= b.offset_seconds for a, b in zip(markers, markers[1:]))


def match_chapters(generated_text: str, duration_s: int = 0) -> List[ChapterMarker]:
    """Parse bookmark lines in generation order.

    With ``duration_s > 0``, markers past that offset are rejected.
    """
    markers: List[ChapterMarker] = []
    for m in _CHAPTER_RE.finditer(generated_text or ""):
        clock, title, description = m.group(1), m.group(2).strip(), m.group(3).strip()
        try:
            offset = parse_clock(clock)
        except ValueError:
            logger.debug("skipping chapter with bad clock %r", clock)
            continue
        if duration_s > 0 and offset > duration_s:
            logger.debug("skipping chapter %r at %ss past end (%ss)", title, offset, duration_s)
            continue
        if not title:
            continue
        markers.append(ChapterMarker(title=title, offset_seconds=offset, description=description))
    return markers


def fallback_chapters(duration_s: int) -> List[ChapterMarker]:
    """Evenly spaced "Section N" markers: one per 10 minutes, 3 to 10 of them."""
    duration_s = max(0, int(duration_s))
    count = min(max(MIN_SECTIONS, duration_s // SECTION_SECONDS), MAX_SECTIONS)
    return [
        ChapterMarker(
            title=f"Section {i + 1}",
            offset_seconds=(duration_s * i) // count,
            description=FALLBACK_DESCRIPTION,
        )
        for i in range(count)
    ]


def extract_chapters(generated_text: str, segments: Sequence[CaptionSegment]) -> List[ChapterMarker]:
    duration = transcript_duration(segments)
    markers = match_chapters(generated_text, duration_s=duration)
    if not markers:
        logger.info("no chapter bookmarks in summary; using %ss fallback sections", duration)
        return fallback_chapters(duration)
    if not chapters_are_ordered(markers):
        logger.warning("generated chapter bookmarks are not in timeline order")
    return markers
