from __future__ import annotations

import argparse
import json
import logging
import sys
import webbrowser
from pathlib import Path
from typing import Any, Dict, List, Optional

from .channel import analyze_channel
from .config import Settings, load_settings
from .doctor import run_doctor
from .errors import MalformedInput, MediaToolkitError
from .ffmpeg import parse_clips, parse_thumbnail_options
from .jobs import Job, JobManager
from .logging_config import setup_logging
from .progress import STATUS_COMPLETED
from .summarize import store_service_account
from .ytdlp import make_download_request


def _settings(args: argparse.Namespace) -> Settings:
    return load_settings(args.profile)


def _follow(job: Job) -> Optional[Dict[str, Any]]:
    """Print each event of ``job`` until it ends. Returns the result payload on success."""
    terminal = None
    try:
        for event in job.channel:
            terminal = event
            if event.is_terminal:
                break
            prefix = f"[{event.progress:5.1f}%]"
            if event.video_index is not None:
                prefix += f" ({event.video_index}/{event.video_total})"
            print(f"{prefix} {event.details or event.status}", flush=True)
    except KeyboardInterrupt:
        print("\nCancelling...", file=sys.stderr)
        job.cancel()
        for event in job.channel:
            terminal = event

    if terminal is None or terminal.status != STATUS_COMPLETED:
        message = terminal.details if terminal is not None else "job ended without a result"
        print(f"Error: {message}", file=sys.stderr)
        return None
    print(terminal.details)
    return dict(terminal.result or {})


def _parse_clip_arg(text: str) -> Dict[str, str]:
    # NAME=START-END, e.g. intro=00:00:05-00:01:30
    name, sep, span = text.rpartition("=")
    start, dash, end = span.partition("-")
    if not dash:
        raise argparse.ArgumentTypeError(f"expected NAME=START-END, got {text!r}")
    return {"name": name if sep else "", "start": start, "end": end}


def cmd_download(args: argparse.Namespace) -> int:
    manager = JobManager(_settings(args))
    request = make_download_request(args.url, args.format, args.quality, args.audio_format)
    job = manager.start_download(request, output_root=args.output)
    return 0 if _follow(job) is not None else 1


def _load_clips_json(path: Path) -> List[Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise MalformedInput(f"--clips-json: cannot read {path}: {e.strerror or e}") from e
    except ValueError as e:
        raise MalformedInput(f"--clips-json: {path} is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise MalformedInput(f"--clips-json: {path} must hold a JSON list of clips")
    return data


def cmd_clip(args: argparse.Namespace) -> int:
    raw: List[Any] = list(args.clip or [])
    if args.clips_json:
        raw.extend(_load_clips_json(args.clips_json))
    clips = parse_clips(raw)

    manager = JobManager(_settings(args))
    job = manager.start_clips(args.video, clips, output_dir=args.output)
    result = _follow(job)
    if result is None:
        return 1
    for path in result.get("outputs", []):
        print(f"  {path}")
    return 0


def cmd_thumbnails(args: argparse.Namespace) -> int:
    settings = _settings(args)
    options = parse_thumbnail_options(
        {
            "timestamp": args.timestamp,
            "width": args.width,
            "height": args.height,
            "autoMode": args.auto,
            "frameCount": args.frames,
        }
    )
    manager = JobManager(settings)
    job = manager.start_thumbnails(
        options,
        source=args.video,
        url=args.url,
        save_dir=args.output or settings.thumbnails_dir,
    )
    result = _follow(job)
    if result is None:
        return 1
    for path in result.get("saved", []):
        print(f"  {path}")
    return 0


def cmd_summarize(args: argparse.Namespace) -> int:
    manager = JobManager(_settings(args))
    job = manager.start_summarize(args.url)
    result = _follow(job)
    if result is None:
        return 1

    if args.out:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(json.dumps(result, indent=2), encoding="utf-8")
        print(f"Wrote {args.out}")

    print()
    print(result.get("summary", ""))
    print("\nChapters:")
    for topic in result.get("topics", []):
        ts = int(topic["timestamp"])
        print(f"  {ts // 3600:02d}:{ts % 3600 // 60:02d}:{ts % 60:02d}  {topic['title']}")
    return 0


def cmd_analyze_channel(args: argparse.Namespace) -> int:
    stats = analyze_channel(args.url, _settings(args))
    print(json.dumps(stats, indent=2))
    return 0


def cmd_set_credentials(args: argparse.Namespace) -> int:
    settings = _settings(args)
    payload = json.loads(args.service_account.read_text(encoding="utf-8"))
    if not isinstance(payload, dict) or not payload.get("client_email"):
        print("Error: not a service account key (client_email missing)", file=sys.stderr)
        return 1
    store_service_account(settings.gcp_secret_name, payload)
    print(f"Stored service account {payload['client_email']} as '{settings.gcp_secret_name}'")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from .studio.app import create_app

    app = create_app(profile_path=args.profile)

    url = f"http://{args.host}:{args.port}/api/health"
    if args.open:
        webbrowser.open(url)

    import uvicorn

    uvicorn.run(app, host=args.host, port=args.port, log_level="warning")
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    rep = run_doctor(_settings(args))
    print("MediaToolkit doctor\n")
    for name, data in rep.checks.items():
        print(f"- {name}:")
        for k, v in data.items():
            print(f"    {k}: {v}")
    print("\nOK" if rep.ok else "\nNOT OK (fix missing requirements above)")
    return 0 if rep.ok else 1


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="mediatoolkit", description="MediaToolkit CLI")
    parser.add_argument("--profile", type=Path, default=None, help="Path to a YAML settings profile")
    parser.add_argument("--log-level", default="WARNING", help="DEBUG shows raw tool output")
    parser.add_argument("--log-file", type=Path, default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    d = sub.add_parser("download", help="Download a video, audio track or playlist.")
    d.add_argument("url")
    d.add_argument("--format", choices=["video", "audio"], default="video")
    d.add_argument("--quality", default="Best", help="Best, 1080p, 720p, ...")
    d.add_argument("--audio-format", default="mp3")
    d.add_argument("--output", type=Path, default=None, help="Output root (default from settings)")
    d.set_defaults(func=cmd_download)

    c = sub.add_parser("clip", help="Cut clips out of a local video without re-encoding.")
    c.add_argument("video", type=Path)
    c.add_argument("--clip", action="append", type=_parse_clip_arg, metavar="NAME=START-END")
    c.add_argument("--clips-json", type=Path, default=None, help="JSON list of {name, start, end}")
    c.add_argument("--output", type=Path, default=None)
    c.set_defaults(func=cmd_clip)

    t = sub.add_parser("thumbnails", help="Extract thumbnail frames from a local video or URL.")
    src = t.add_mutually_exclusive_group(required=True)
    src.add_argument("--video", type=Path, default=None)
    src.add_argument("--url", default=None)
    t.add_argument("--timestamp", default="0")
    t.add_argument("--width", type=int, default=1280)
    t.add_argument("--height", type=int, default=720)
    t.add_argument("--auto", action="store_true", help="Evenly spaced frames across the video")
    t.add_argument("--frames", type=int, default=10)
    t.add_argument("--output", type=Path, default=None)
    t.set_defaults(func=cmd_thumbnails)

    s = sub.add_parser("summarize", help="Summarize a video from its captions.")
    s.add_argument("url")
    s.add_argument("--out", type=Path, default=None, help="Write the full result as JSON")
    s.set_defaults(func=cmd_summarize)

    a = sub.add_parser("analyze-channel", help="View and upload statistics for a channel.")
    a.add_argument("url")
    a.set_defaults(func=cmd_analyze_channel)

    k = sub.add_parser("set-credentials", help="Store a service account key in the OS keyring.")
    k.add_argument("service_account", type=Path)
    k.set_defaults(func=cmd_set_credentials)

    sv = sub.add_parser("serve", help="Run the HTTP API.")
    sv.add_argument("--host", type=str, default="127.0.0.1")
    sv.add_argument("--port", type=int, default=8765)
    sv.add_argument("--open", action="store_true", help="Open the health endpoint in a browser")
    sv.set_defaults(func=cmd_serve)

    dr = sub.add_parser("doctor", help="Check yt-dlp, ffmpeg, ffprobe and credentials.")
    dr.set_defaults(func=cmd_doctor)

    args = parser.parse_args(argv)
    level = logging.getLevelName(str(args.log_level).upper())
    setup_logging(level if isinstance(level, int) else logging.WARNING, log_file=args.log_file)

    try:
        rc = args.func(args)
    except MediaToolkitError as e:
        print(f"Error: {e}", file=sys.stderr)
        rc = 2
    if rc:
        sys.exit(rc)


if __name__ == "__main__":
    main()
