"""Clock-string helpers shared by the caption, chapter and clip code."""

from __future__ import annotations

import math
import re

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})$")
_TIME_SPEC_RE = re.compile(r"^(?:(\d+):)?(\d{1,2}):(\d{1,2})(?:[.,](\d{1,3}))?$")


def to_seconds(hours: int, minutes: int, seconds: int) -> int:
    return hours * 3600 + minutes * 60 + seconds


def parse_clock(text: str) -> int:
    """Parse a strict ``HH:MM:SS`` clock into whole seconds.

    Raises ValueError when the shape is wrong or minutes/seconds are >= 60.
    """
    m = _CLOCK_RE.match(text.strip())
    if not m:
        raise ValueError(f"not a HH:MM:SS clock: {text!r}")
    hours, minutes, seconds = (int(g) for g in m.groups())
    if minutes >= 60 or seconds >= 60:
        raise ValueError(f"clock out of range: {text!r}")
    return to_seconds(hours, minutes, seconds)


def format_clock(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS`` (fractions are dropped)."""
    total = max(0, int(seconds))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def parse_time_spec(value: object) -> float:
    """Parse a user-supplied position: seconds (int/float/str) or ``[H:]MM:SS[.mmm]``."""
    if isinstance(value, bool):
        raise ValueError(f"invalid time: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError(f"invalid time: {value!r}")
        if value < 0:
            raise ValueError(f"negative time: {value!r}")
        return float(value)
    text = str(value).strip()
    if not text:
        raise ValueError("empty time")
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ValueError(f"invalid time: {text!r}")
        if seconds < 0:
            raise ValueError(f"negative time: {text!r}")
        return seconds

    m = _TIME_SPEC_RE.match(text)
    if not m:
        raise ValueError(f"invalid time: {text!r}")
    hours = int(m.group(1) or 0)
    minutes = int(m.group(2))
    secs = int(m.group(3))
    if minutes >= 60 or secs >= 60:
        raise ValueError(f"time out of range: {text!r}")
    frac = m.group(4)
    millis = int(frac.ljust(3, "0")) if frac else 0
    return to_seconds(hours, minutes, secs) + millis / 1000.0
