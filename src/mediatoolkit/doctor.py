from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import Dict, Optional

from .config import Settings
from .errors import ConfigurationError, ExecutableNotFound
from .runner import INSTALL_HINTS, resolve_executable
from .summarize import CredentialProvider, KeyringCredentialProvider
from .utils import subprocess_flags

# yt-dlp wants --version; ffmpeg/ffprobe want -version.
_VERSION_FLAGS = {"yt-dlp": "--version", "ffmpeg": "-version", "ffprobe": "-version"}


@dataclass(frozen=True)
class DoctorReport:
    ok: bool
    checks: Dict[str, Dict[str, object]]

    def to_dict(self) -> Dict[str, object]:
        return {"ok": self.ok, "checks": self.checks}


def _resolve(name: str, configured: Optional[str]) -> Optional[str]:
    try:
        return resolve_executable(name, configured)
    except ExecutableNotFound:
        return None


def _version(path: str, flag: str) -> str:
    try:
        out = subprocess.check_output(
            [path, flag], text=True, stderr=subprocess.STDOUT, timeout=15, **subprocess_flags()
        )
        lines = out.splitlines()
        return lines[0].strip() if lines else ""
    except (OSError, subprocess.SubprocessError) as e:
        return f"error: {type(e).__name__}: {e}"


def run_doctor(settings: Settings, credentials: Optional[CredentialProvider] = None) -> DoctorReport:
    checks: Dict[str, Dict[str, object]] = {}

    configured = {"yt-dlp": settings.ytdlp_path, "ffmpeg": settings.ffmpeg_path, "ffprobe": settings.ffprobe_path}
    for name, flag in _VERSION_FLAGS.items():
        path = _resolve(name, configured[name])
        check: Dict[str, object] = {
            "found": path is not None,
            "path": path,
            "version": _version(path, flag) if path else None,
        }
        if path is None:
            check["note"] = INSTALL_HINTS[name]
        checks[name] = check

    provider = credentials or KeyringCredentialProvider(settings)
    try:
        provider.get_summarization_credentials()
        project = provider.get_project_config()
        checks["summarization"] = {
            "configured": True,
            "project_id": project.project_id,
            "region": project.region,
        }
    except ConfigurationError as e:
        checks["summarization"] = {"configured": False, "note": str(e)}

    ok = all(bool(checks[name]["found"]) for name in _VERSION_FLAGS)
    return DoctorReport(ok=ok, checks=checks)
