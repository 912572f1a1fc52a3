"""Channel statistics from a flat yt-dlp listing of the channel's videos tab."""

from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from .config import Settings
from .errors import MalformedInput, ToolFailed
from .runner import resolve_executable, run_capture
from .ytdlp import build_channel_info_args, build_channel_list_args, channel_videos_url, validate_url

logger = logging.getLogger(__name__)

VIDEO_LIMIT = 50
TOP_VIDEOS = 10
RECENT_DAYS = 30
INFO_TIMEOUT_S = 30.0


class NoVideosFound(MalformedInput):
    """The channel listing came back empty."""
    pass


def format_number(n: float) -> str:
    """1234 -> ``1.2K``, 5_600_000 -> ``5.6M``."""
    n = float(n or 0)
    for threshold, suffix in ((1e9, "B"), (1e6, "M"), (1e3, "K")):
        if n >= threshold:
            return f"{n / threshold:.1f}{suffix}"
    return str(int(n))


def _parse_upload_date(value: Any) -> Optional[date]:
    text = str(value or "")
    if len(text) != 8:
        return None
    try:
        return datetime.strptime(text, "%Y%m%d").date()
    except ValueError:
        return None


def format_upload_date(value: Any) -> str:
    d = _parse_upload_date(value)
    return d.isoformat() if d else "Unknown"


def format_duration(seconds: Any) -> str:
    """``M:SS``, or ``H:MM:SS`` for an hour or more."""
    try:
        total = max(0, int(float(seconds or 0)))
    except (TypeError, ValueError):
        total = 0
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def upload_frequency(videos: List[Dict[str, Any]]) -> str:
    dates = sorted(
        (d for d in (_parse_upload_date(v.get("upload_date")) for v in videos) if d is not None),
        reverse=True,
    )
    if len(dates) < 2:
        return "Insufficient data"

    avg_days = (dates[0] - dates[-1]).days / (len(dates) - 1)
    if avg_days < 1:
        return "Multiple per day"
    if avg_days < 3:
        return "Every 1-2 days"
    if avg_days < 8:
        return "Weekly"
    if avg_days < 15:
        return "Bi-weekly"
    if avg_days < 35:
        return "Monthly"
    return "Less than monthly"


def recent_activity(videos: List[Dict[str, Any]], today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Uploads per day over the last 30 days, newest first, at most 10 days."""
    cutoff = (today or date.today()) - timedelta(days=RECENT_DAYS)
    counts: Counter = Counter()
    for v in videos:
        d = _parse_upload_date(v.get("upload_date"))
        if d is not None and d >= cutoff:
            counts[d.isoformat()] += 1
    days = sorted(counts.items(), reverse=True)[:TOP_VIDEOS]
    return [{"date": day, "videosUploaded": n} for day, n in days]


def parse_video_lines(output: str) -> List[Dict[str, Any]]:
    videos: List[Dict[str, Any]] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            item = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("skipping non-JSON listing line: %r", line[:120])
            continue
        if isinstance(item, dict):
            videos.append(item)
    return videos


def _views(v: Dict[str, Any]) -> int:
    try:
        return int(v.get("view_count") or 0)
    except (TypeError, ValueError):
        return 0


def summarize_channel(url: str, videos: List[Dict[str, Any]], info: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    if not videos:
        raise NoVideosFound("No videos found for this channel")

    total_views = sum(_views(v) for v in videos)
    top = sorted(videos, key=_views, reverse=True)[:TOP_VIDEOS]
    followers = info.get("channel_follower_count")

    return {
        "channelName": info.get("channel") or info.get("uploader") or "Unknown",
        "channelUrl": url,
        "subscriberCount": format_number(followers) if followers else "N/A",
        "totalViews": format_number(total_views),
        "videoCount": len(videos),
        "averageViews": round(total_views / len(videos)),
        "topVideos": [
            {
                "title": v.get("title") or "Untitled",
                "views": format_number(_views(v)),
                "uploadDate": format_upload_date(v.get("upload_date")),
                "duration": format_duration(v.get("duration")),
            }
            for v in top
        ],
        "uploadFrequency": upload_frequency(videos),
        "recentActivity": recent_activity(videos, today=today),
    }


def analyze_channel(url: str, settings: Settings) -> Dict[str, Any]:
    """List up to 50 videos of a channel and compute view/upload statistics."""
    url = validate_url(url)
    ytdlp = resolve_executable("yt-dlp", settings.ytdlp_path)
    videos_url = channel_videos_url(url)

    logger.info("analyzing channel %s", videos_url)
    listing = run_capture(ytdlp, build_channel_list_args(videos_url, VIDEO_LIMIT), timeout=settings.channel_timeout_s)
    videos = parse_video_lines(listing)

    info: Dict[str, Any] = {}
    if videos:
        try:
            raw = run_capture(ytdlp, build_channel_info_args(videos_url), timeout=INFO_TIMEOUT_S)
            loaded = json.loads(raw.strip().splitlines()[0]) if raw.strip() else {}
            info = loaded if isinstance(loaded, dict) else {}
        except (ToolFailed, json.JSONDecodeError) as e:
            logger.warning("channel info lookup failed, using listing only: %s", e)
            info = {"channel": "Unknown Channel"}

    return summarize_channel(url, videos, info)
