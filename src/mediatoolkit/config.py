from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigurationError


def default_settings() -> Dict[str, Any]:
    return {
        "output": {
            "root": str(Path.home() / "Downloads"),
            "clips_subdir": "Clips",
            "thumbnails_subdir": "Thumbnails",
        },
        "tools": {
            "ytdlp": None,  # None = venv bin dir, then PATH
            "ffmpeg": None,
            "ffprobe": None,
            "probe_timeout_s": 30.0,
            "channel_timeout_s": 90.0,
            "frame_timeout_s": 30.0,
        },
        "summarize": {
            "sub_lang": "en",
            "min_transcript_chars": 100,
            "max_prompt_chars": 100_000,
            "model": "gemini-2.0-flash",
            "timeout_s": 300.0,
        },
        "gcp": {
            "project_id": None,
            "location": "us-central1",
            "secret_name": "vertex-ai-service-account",
        },
        "jobs": {
            "channel_size": 256,
            "keep_finished": 50,
            "finished_ttl_s": 3600.0,
        },
    }


@dataclass(frozen=True)
class Settings:
    output_root: Path
    clips_subdir: str = "Clips"
    thumbnails_subdir: str = "Thumbnails"
    ytdlp_path: Optional[str] = None
    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None
    probe_timeout_s: float = 30.0
    channel_timeout_s: float = 90.0
    frame_timeout_s: float = 30.0
    sub_lang: str = "en"
    min_transcript_chars: int = 100
    max_prompt_chars: int = 100_000
    summarize_model: str = "gemini-2.0-flash"
    summarize_timeout_s: float = 300.0
    gcp_project_id: Optional[str] = None
    gcp_location: str = "us-central1"
    gcp_secret_name: str = "vertex-ai-service-account"
    channel_size: int = 256
    keep_finished: int = 50
    finished_ttl_s: float = 3600.0

    @property
    def clips_dir(self) -> Path:
        return self.output_root / self.clips_subdir

    @property
    def thumbnails_dir(self) -> Path:
        return self.output_root / self.thumbnails_subdir


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = value
    return out


def load_profile(profile_path: Optional[Path]) -> Dict[str, Any]:
    """Return the default settings merged with a YAML profile, if one is given."""
    data = default_settings()
    if profile_path is None:
        return data

    profile_path = Path(profile_path)
    if not profile_path.exists():
        raise ConfigurationError(f"Profile not found: {profile_path}")

    try:
        loaded = yaml.safe_load(profile_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid profile YAML: {e}") from e
    if loaded is None:
        return data
    if not isinstance(loaded, dict):
        raise ConfigurationError("Profile YAML must be a mapping")
    return _deep_merge(data, loaded)


def _env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    env = os.environ
    overrides: Dict[str, Any] = {"output": {}, "tools": {}, "gcp": {}}
    if env.get("MT_OUTPUT_ROOT"):
        overrides["output"]["root"] = env["MT_OUTPUT_ROOT"]
    for tool in ("ytdlp", "ffmpeg", "ffprobe"):
        value = env.get(f"MT_{tool.upper()}_PATH")
        if value:
            overrides["tools"][tool] = value
    if env.get("GCP_PROJECT_ID"):
        overrides["gcp"]["project_id"] = env["GCP_PROJECT_ID"]
    if env.get("GCP_LOCATION"):
        overrides["gcp"]["location"] = env["GCP_LOCATION"]
    if env.get("GCP_SECRET_NAME"):
        overrides["gcp"]["secret_name"] = env["GCP_SECRET_NAME"]
    return _deep_merge(data, overrides)


def load_settings(profile_path: Optional[Path] = None) -> Settings:
    """Build ``Settings`` from defaults, an optional YAML profile and the environment.

    ``MT_PROFILE`` is used when ``profile_path`` is not given.
    """
    if profile_path is None and os.getenv("MT_PROFILE"):
        profile_path = Path(os.environ["MT_PROFILE"])
    data = _env_overrides(load_profile(profile_path))

    output = data.get("output") or {}
    tools = data.get("tools") or {}
    summarize = data.get("summarize") or {}
    gcp = data.get("gcp") or {}
    jobs = data.get("jobs") or {}

    try:
        return Settings(
            output_root=Path(str(output.get("root"))).expanduser(),
            clips_subdir=str(output.get("clips_subdir", "Clips")),
            thumbnails_subdir=str(output.get("thumbnails_subdir", "Thumbnails")),
            ytdlp_path=tools.get("ytdlp"),
            ffmpeg_path=tools.get("ffmpeg"),
            ffprobe_path=tools.get("ffprobe"),
            probe_timeout_s=float(tools.get("probe_timeout_s", 30.0)),
            channel_timeout_s=float(tools.get("channel_timeout_s", 90.0)),
            frame_timeout_s=float(tools.get("frame_timeout_s", 30.0)),
            sub_lang=str(summarize.get("sub_lang", "en")),
            min_transcript_chars=int(summarize.get("min_transcript_chars", 100)),
            max_prompt_chars=int(summarize.get("max_prompt_chars", 100_000)),
            summarize_model=str(summarize.get("model", "gemini-2.0-flash")),
            summarize_timeout_s=float(summarize.get("timeout_s", 300.0)),
            gcp_project_id=gcp.get("project_id"),
            gcp_location=str(gcp.get("location") or "us-central1"),
            gcp_secret_name=str(gcp.get("secret_name") or "vertex-ai-service-account"),
            channel_size=int(jobs.get("channel_size", 256)),
            keep_finished=int(jobs.get("keep_finished", 50)),
            finished_ttl_s=float(jobs.get("finished_ttl_s", 3600.0)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid setting value: {e}") from e
