"""Logging for MediaToolkit entry points.

``setup_logging()`` is called once by the CLI (which also covers ``serve``).
Library modules only call ``logging.getLogger(__name__)``.

Several jobs can run at once, each on its own thread, so records logged inside
``job_context()`` carry a short job id (``%(job)s``) and interleaved tool output
stays attributable.
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
import os
import re
import sys
from pathlib import Path
from typing import Dict, Iterator, List, Optional

PACKAGE = "mediatoolkit"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(job)s] %(message)s"
NO_JOB = "-"

_ENTRY_RE = re.compile(r"^([\w.]+)\s*[=:]\s*(\w+)$")
_current_job: "contextvars.ContextVar[str]" = contextvars.ContextVar("mediatoolkit_job", default=NO_JOB)

_CONFIGURED = False


@contextlib.contextmanager
def job_context(job_id: str) -> Iterator[None]:
    """Tag records logged by this thread inside the block with ``job_id``."""
    token = _current_job.set(job_id[:8])
    try:
        yield
    finally:
        _current_job.reset(token)


class JobContextFilter(logging.Filter):
    """Fills ``record.job`` so ``LOG_FORMAT`` works for every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "job"):
            record.job = _current_job.get()
        return True


def parse_module_levels(text: str) -> Dict[str, int]:
    """``"jobs=DEBUG,runner:INFO"`` -> ``{"mediatoolkit.jobs": 10, "mediatoolkit.runner": 20}``.

    Short names get the package prefix; malformed entries and unknown levels
    are skipped.
    """
    levels: Dict[str, int] = {}
    for entry in re.split(r"[;,]", text or ""):
        m = _ENTRY_RE.match(entry.strip())
        if not m:
            continue
        name, level = m.group(1), logging.getLevelName(m.group(2).upper())
        if not isinstance(level, int):
            continue
        if name != PACKAGE and not name.startswith(PACKAGE + "."):
            name = f"{PACKAGE}.{name}"
        levels[name] = level
    return levels


def setup_logging(level: int = logging.WARNING, log_file: Optional[Path] = None) -> None:
    """Attach stderr (and optionally file) handlers to the package logger, once.

    ``MT_LOG_MODULE_LEVELS`` raises or lowers individual modules afterwards;
    handlers accept everything so those overrides are not filtered out again.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")
    job_filter = JobContextFilter()
    package_logger = logging.getLogger(PACKAGE)
    package_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(formatter)
        handler.addFilter(job_filter)
        package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False

    for name, lvl in parse_module_levels(os.getenv("MT_LOG_MODULE_LEVELS", "")).items():
        logging.getLogger(name).setLevel(lvl)

    _CONFIGURED = True
