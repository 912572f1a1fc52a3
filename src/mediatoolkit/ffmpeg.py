"""ffmpeg/ffprobe command lines plus validation of clip and thumbnail requests."""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

from .errors import MalformedInput, ToolFailed
from .timecode import parse_time_spec

MAX_FRAMES = 50
DEFAULT_FRAMES = 10
MAX_DIMENSION = 7680


@dataclass(frozen=True)
class ClipSpec:
    name: str
    start_s: float
    end_s: float

    @property
    def duration_s(self) -> float:
        return self.end_s - self.start_s


def parse_clips(raw: Any) -> List[ClipSpec]:
    """Validate ``[{name, startTime|start, endTime|end}, ...]`` into ``ClipSpec``s."""
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)) or not raw:
        raise MalformedInput("clips must be a non-empty list")

    clips: List[ClipSpec] = []
    for i, item in enumerate(raw, start=1):
        if not isinstance(item, Mapping):
            raise MalformedInput(f"clip {i} must be an object")
        name = str(item.get("name") or f"clip_{i}").strip()
        start_raw = item.get("startTime", item.get("start"))
        end_raw = item.get("endTime", item.get("end"))
        if start_raw is None or end_raw is None:
            raise MalformedInput(f"clip {i} ({name}) needs a start and an end time")
        try:
            start_s = parse_time_spec(start_raw)
            end_s = parse_time_spec(end_raw)
        except ValueError as e:
            raise MalformedInput(f"clip {i} ({name}): {e}") from e
        if end_s <= start_s:
            raise MalformedInput(f"clip {i} ({name}): end time must be after start time")
        clips.append(ClipSpec(name=name, start_s=start_s, end_s=end_s))
    return clips


@dataclass(frozen=True)
class ThumbnailOptions:
    timestamp_s: float = 0.0
    width: int = 1280
    height: int = 720
    auto_mode: bool = False
    frame_count: int = DEFAULT_FRAMES


def _dimension(value: Any, name: str) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError):
        raise MalformedInput(f"{name} must be an integer") from None
    if n <= 0 or n > MAX_DIMENSION:
        raise MalformedInput(f"{name} must be between 1 and {MAX_DIMENSION}")
    return n


def parse_thumbnail_options(raw: Optional[Mapping[str, Any]]) -> ThumbnailOptions:
    if raw is None:
        return ThumbnailOptions()
    if not isinstance(raw, Mapping):
        raise MalformedInput("options must be an object")

    auto_mode = bool(raw.get("autoMode", raw.get("auto_mode", False)))
    frames_raw = raw.get("frameCount", raw.get("frame_count")) or DEFAULT_FRAMES
    try:
        frame_count = int(frames_raw)
    except (TypeError, ValueError, OverflowError):
        raise MalformedInput("frameCount must be an integer") from None
    if frame_count <= 0:
        raise MalformedInput("frameCount must be positive")

    timestamp_s = 0.0
    if not auto_mode:
        try:
            timestamp_s = parse_time_spec(raw.get("timestamp", 0))
        except ValueError as e:
            raise MalformedInput(f"timestamp: {e}") from e

    return ThumbnailOptions(
        timestamp_s=timestamp_s,
        width=_dimension(raw.get("width", 1280), "width"),
        height=_dimension(raw.get("height", 720), "height"),
        auto_mode=auto_mode,
        frame_count=min(frame_count, MAX_FRAMES),
    )


def frame_timestamps(duration_s: float, frame_count: int) -> List[float]:
    """``frame_count`` positions spread evenly, never at the very start or end."""
    n = min(max(1, int(frame_count)), MAX_FRAMES)
    interval = max(0.0, float(duration_s)) / (n + 1)
    return [interval * i for i in range(1, n + 1)]


def build_clip_args(input_path: Path, clip: ClipSpec, output_path: Path) -> List[str]:
    # -n: never overwrite; output names are collision-checked beforehand.
    return [
        "-hide_banner",
        "-v", "error",
        "-ss", f"{clip.start_s:.3f}",
        "-to", f"{clip.end_s:.3f}",
        "-i", str(input_path),
        "-c", "copy",
        "-progress", "pipe:1",
        "-nostats",
        "-n",
        str(output_path),
    ]


def build_frame_args(input_path: Path, timestamp_s: float, width: int, height: int, output_path: Path) -> List[str]:
    return [
        "-hide_banner",
        "-v", "error",
        "-ss", f"{timestamp_s:.3f}",
        "-i", str(input_path),
        "-vframes", "1",
        "-vf", f"scale={width}:{height}",
        "-y",
        str(output_path),
    ]


def build_duration_args(video_path: Path) -> List[str]:
    return [
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(video_path),
    ]


def parse_duration_output(output: str) -> float:
    """Container duration in seconds from ``build_duration_args`` output."""
    text = output.strip()
    try:
        duration = float(text)
    except ValueError as e:
        raise ToolFailed("ffprobe", 0, f"non-numeric duration: {text!r}") from e
    if not math.isfinite(duration) or duration < 0:
        raise ToolFailed("ffprobe", 0, f"unusable duration: {text!r}")
    return duration
