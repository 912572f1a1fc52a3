"""Typed progress events and the line classifiers that produce them.

Each classifier is a pure fold: ``classify(state, line) -> (state, event)``.
The small parser classes below just hold one state per job, so two jobs never
share parsing state.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import PurePath
from typing import Any, Dict, Mapping, Optional, Tuple

from .timecode import format_clock

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"
STATUS_PLAYLIST_PREFIX = "Playlist"
STATUS_DOWNLOADING = "downloading"
STATUS_PROCESSING = "processing"
STATUS_ENCODING = "encoding"

POSTPROCESS_PERCENT = 95.0


@dataclass(frozen=True)
class ProgressEvent:
    """One immutable progress snapshot.

    ``result`` is only set on a completed terminal event and ``error`` only on
    a failed one.
    """

    status: str
    progress: float
    details: str = ""
    video_index: Optional[int] = None
    video_total: Optional[int] = None
    result: Optional[Mapping[str, Any]] = field(default=None, compare=False)
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (STATUS_COMPLETED, STATUS_ERROR)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "status": self.status,
            "progress": round(float(self.progress), 1),
            "details": self.details,
        }
        if self.video_index is not None and self.video_total is not None:
            out["videoIndex"] = self.video_index
            out["videoTotal"] = self.video_total
        if self.result:
            out.update(dict(self.result))
        if self.error is not None:
            out["error"] = self.error
        return out


def completed_event(details: str, result: Optional[Mapping[str, Any]] = None) -> ProgressEvent:
    return ProgressEvent(status=STATUS_COMPLETED, progress=100.0, details=details, result=dict(result or {}))


def error_event(message: str) -> ProgressEvent:
    return ProgressEvent(status=STATUS_ERROR, progress=0.0, details=message, error=message)


def playlist_status(index: int, total: int) -> str:
    return f"{STATUS_PLAYLIST_PREFIX}: Video {index}/{total}"


def remap_progress(local: float, start: float, end: float) -> float:
    """Map a step-local 0..100 value into the reserved ``[start, end]`` slice."""
    local = min(100.0, max(0.0, float(local)))
    return start + (end - start) * local / 100.0


@dataclass(frozen=True)
class ParserState:
    percentage: float = 0.0
    index: int = 0
    total: int = 0
    label: str = ""
    # Set by markers that start a new file/item; the next percentage may be lower.
    fresh: bool = True
    duration_s: float = 0.0

    @property
    def in_sequence(self) -> bool:
        return self.total > 0


def _event(state: ParserState, status: str, details: str, progress: Optional[float] = None) -> ProgressEvent:
    return ProgressEvent(
        status=status,
        progress=state.percentage if progress is None else progress,
        details=details,
        video_index=state.index if state.in_sequence else None,
        video_total=state.total if state.in_sequence else None,
    )


# ---------------------------------------------------------------------------
# Download tool (yt-dlp --newline)
# ---------------------------------------------------------------------------

_SEQUENCE_RE = re.compile(r"Downloading (?:video|item)\s+(\d+)\s+of\s+(\d+)")
_DESTINATION_RE = re.compile(r"^\[download\]\s+Destination:\s*(.+)$")
_PERCENT_RE = re.compile(r"^\[download\]\s+([\d.]+)%")
_SIZE_RE = re.compile(r"\bof\s+~?\s*([\d.]+\s?[KMGTP]?i?B)\b")
_RATE_RE = re.compile(r"\bat\s+([\d.]+\s?[KMGTP]?i?B/s)")
_ETA_RE = re.compile(r"\bETA\s+([\d:]+)")
_POSTPROCESS_MARKERS = (
    "Merging formats",
    "[ffmpeg]",
    "[Merger]",
    "[ExtractAudio]",
    "[VideoConvertor]",
    "[VideoRemuxer]",
    "[FixupM3u8]",
)


def classify_download_line(state: ParserState, line: str) -> Tuple[ParserState, Optional[ProgressEvent]]:
    line = line.strip()
    if not line:
        return state, None

    m = _SEQUENCE_RE.search(line)
    if m:
        index, total = int(m.group(1)), int(m.group(2))
        state = replace(state, index=index, total=total, fresh=True)
        return state, _event(state, playlist_status(index, total), f"Processing video {index} of {total}")

    m = _DESTINATION_RE.match(line)
    if m:
        label = PurePath(m.group(1).strip()).name
        state = replace(state, label=label, fresh=True)
        return state, _event(state, STATUS_DOWNLOADING, label)

    m = _PERCENT_RE.match(line)
    if m:
        try:
            pct = float(m.group(1))
        except ValueError:
            logger.debug("ignoring malformed percentage: %r", line)
            return state, None
        pct = min(100.0, max(0.0, pct))
        if not state.fresh:
            pct = max(pct, state.percentage)
        state = replace(state, percentage=pct, fresh=False)

        parts = [state.label] if state.label else []
        for pattern, prefix in ((_SIZE_RE, ""), (_RATE_RE, ""), (_ETA_RE, "ETA ")):
            sub = pattern.search(line)
            if sub:
                parts.append(prefix + sub.group(1))
        return state, _event(state, STATUS_DOWNLOADING, " ".join(parts))

    if any(marker in line for marker in _POSTPROCESS_MARKERS):
        state = replace(state, percentage=POSTPROCESS_PERCENT)
        return state, _event(state, STATUS_PROCESSING, "Merging audio and video streams")

    return state, None


# ---------------------------------------------------------------------------
# Transcode tool (ffmpeg -progress pipe:1)
# ---------------------------------------------------------------------------

_OUT_TIME_RE = re.compile(r"^(\d+):(\d{2}):(\d{2}(?:\.\d+)?)$")


def _out_time_seconds(key: str, value: str) -> Optional[float]:
    if key in ("out_time_us", "out_time_ms"):
        # ffmpeg reports both in microseconds.
        return int(value) / 1_000_000.0
    m = _OUT_TIME_RE.match(value)
    if not m:
        return None
    return int(m.group(1)) * 3600 + int(m.group(2)) * 60 + float(m.group(3))


def classify_transcode_line(state: ParserState, line: str) -> Tuple[ParserState, Optional[ProgressEvent]]:
    key, sep, value = line.strip().partition("=")
    if not sep:
        return state, None
    key = key.strip()
    value = value.strip()

    if key == "progress" and value == "end":
        state = replace(state, percentage=100.0, fresh=False)
        return state, _event(state, STATUS_PROCESSING, "Finalizing output")

    if key not in ("out_time_us", "out_time_ms", "out_time") or state.duration_s <= 0:
        return state, None
    try:
        seconds = _out_time_seconds(key, value)
    except ValueError:
        logger.debug("ignoring malformed ffmpeg progress: %r", line)
        return state, None
    if seconds is None or seconds < 0:
        return state, None

    pct = min(100.0, max(0.0, seconds / state.duration_s * 100.0))
    pct = max(pct, state.percentage)
    state = replace(state, percentage=pct, fresh=False)
    detail = f"{format_clock(seconds)} / {format_clock(state.duration_s)}"
    return state, _event(state, STATUS_ENCODING, detail)


class DownloadProgressParser:
    """Per-job wrapper around ``classify_download_line``."""

    def __init__(self) -> None:
        self.state = ParserState()

    def feed(self, line: str) -> Optional[ProgressEvent]:
        self.state, event = classify_download_line(self.state, line)
        return event


class TranscodeProgressParser:
    """Per-step wrapper around ``classify_transcode_line`` for a known duration."""

    def __init__(self, duration_s: float) -> None:
        self.state = ParserState(duration_s=max(0.0, float(duration_s)))

    def feed(self, line: str) -> Optional[ProgressEvent]:
        self.state, event = classify_transcode_line(self.state, line)
        return event
