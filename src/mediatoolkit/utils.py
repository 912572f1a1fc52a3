"""Small helpers used by the runner, the job orchestrator and the doctor.

- subprocess_flags(): keyword arguments that keep tool windows hidden on Windows
- utc_iso(): job creation timestamps
- sanitize_filename() / unique_path(): output naming that never overwrites
"""

from __future__ import annotations

import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

_CREATE_NO_WINDOW = 0x08000000


def subprocess_flags() -> Dict[str, Any]:
    """Extra ``Popen``/``run`` kwargs; ``creationflags`` on Windows, nothing elsewhere."""
    if sys.platform != "win32":
        return {}
    return {"creationflags": _CREATE_NO_WINDOW}


def utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def sanitize_filename(name: str, max_length: int = 100) -> str:
    """Replace everything except ASCII letters and digits with underscores."""
    safe = re.sub(r"[^A-Za-z0-9]", "_", name or "")[:max_length]
    return safe.strip("_") or "clip"


def unique_path(directory: Path, stem: str, suffix: str) -> Path:
    """Return ``directory/stem+suffix``, adding ``_1``, ``_2``... if taken."""
    candidate = directory / f"{stem}{suffix}"
    n = 1
    while candidate.exists():
        candidate = directory / f"{stem}_{n}{suffix}"
        n += 1
    return candidate
