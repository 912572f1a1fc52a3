"""yt-dlp command lines for every job that talks to a media site."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Tuple
from urllib.parse import urlparse

from .errors import MalformedInput

AUDIO_FORMATS = ("mp3", "m4a", "aac", "flac", "opus", "vorbis", "wav", "alac")
_QUALITY_RE = re.compile(r"^(\d{3,4})p?$", re.IGNORECASE)


class MediaFormat(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"


@dataclass(frozen=True)
class DownloadRequest:
    url: str
    format: MediaFormat = MediaFormat.VIDEO
    quality: str = "Best"
    audio_format: str = "mp3"


def validate_url(url: str) -> str:
    url = (url or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise MalformedInput(f"Not a valid http(s) URL: {url!r}")
    return url


def make_download_request(url: str, fmt: str = "video", quality: str = "Best", audio_format: str = "mp3") -> DownloadRequest:
    """Validate raw request values into a ``DownloadRequest``."""
    try:
        media_format = MediaFormat((fmt or "video").lower())
    except ValueError:
        raise MalformedInput(f"Unknown format {fmt!r}; expected 'video' or 'audio'") from None
    quality = (quality or "Best").strip()
    if quality.lower() != "best" and not _QUALITY_RE.match(quality):
        raise MalformedInput(f"Unknown quality {quality!r}; expected 'Best' or e.g. '720p'")
    audio_format = (audio_format or "mp3").lower()
    if audio_format not in AUDIO_FORMATS:
        raise MalformedInput(f"Unsupported audio format {audio_format!r}")
    return DownloadRequest(url=validate_url(url), format=media_format, quality=quality, audio_format=audio_format)


def is_playlist_url(url: str) -> bool:
    return "list=" in url or "playlist" in url


def organized_dir(output_root: Path, media_format: MediaFormat, playlist: bool) -> Path:
    """``<root>/[Playlists/]<Video|Audio>``."""
    kind = "Audio" if media_format is MediaFormat.AUDIO else "Video"
    if playlist:
        return output_root / "Playlists" / kind
    return output_root / kind


def _format_selector(quality: str) -> str:
    m = _QUALITY_RE.match(quality)
    if quality.lower() == "best" or not m:
        return "best[ext=mp4]/best"
    return f"best[height<={m.group(1)}]"


def build_download_args(request: DownloadRequest, output_root: Path) -> Tuple[List[str], Path]:
    """Return the yt-dlp arguments and the directory the files will land in."""
    playlist = is_playlist_url(request.url)
    target_dir = organized_dir(output_root, request.format, playlist)
    ext = request.audio_format if request.format is MediaFormat.AUDIO else "%(ext)s"
    if playlist:
        template = target_dir / "%(playlist)s" / f"%(playlist_index)s - %(title)s.{ext}"
    else:
        template = target_dir / f"%(title)s_%(id)s.{ext}"

    args: List[str] = []
    if request.format is MediaFormat.AUDIO:
        args += ["-x", "--audio-format", request.audio_format, "--audio-quality", "0"]
    else:
        args += ["-f", _format_selector(request.quality)]
    args += ["-o", str(template)]
    args.append("--yes-playlist" if playlist else "--no-playlist")
    args += ["--no-overwrites", "--newline", request.url]
    return args, target_dir


def build_caption_args(url: str, work_dir: Path, lang: str = "en") -> List[str]:
    return [
        "--write-auto-sub",
        "--sub-lang", lang,
        "--skip-download",
        "--sub-format", "vtt",
        "--no-playlist",
        "--newline",
        "-o", str(work_dir / "subtitles.%(ext)s"),
        url,
    ]


def build_source_download_args(url: str, output_path: Path, max_height: int = 720) -> List[str]:
    return [
        "-f", f"best[height<={max_height}]/best",
        "--no-playlist",
        "--newline",
        "-o", str(output_path),
        url,
    ]


def channel_videos_url(url: str) -> str:
    url = url.strip()
    if url.endswith("/videos"):
        return url
    return url.rstrip("/") + "/videos"


def build_channel_list_args(videos_url: str, limit: int = 50) -> List[str]:
    return ["--flat-playlist", "--print-json", "-I", f"1:{limit}", videos_url]


def build_channel_info_args(videos_url: str) -> List[str]:
    return ["--dump-json", "--playlist-items", "1", videos_url]
