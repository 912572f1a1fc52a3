"""Spawn external tools and stream their stdout line by line.

The runner knows nothing about what a tool prints; it only guarantees that
callers see complete lines (chunk boundaries never split a line), that stderr
is kept as a short tail for error messages, and that a non-zero exit becomes
``ToolFailed``.
"""

from __future__ import annotations

import codecs
import logging
import os
import re
import shutil
import subprocess
import sys
import threading
from collections import deque
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .errors import ExecutableNotFound, ToolFailed
from .utils import subprocess_flags

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 4096
_STDERR_TAIL_LINES = 50
_STDERR_TAIL_CHARS = 4000
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")

INSTALL_HINTS = {
    "yt-dlp": "Install it into this environment with: pip install yt-dlp",
    "ffmpeg": "Install ffmpeg and make sure it is on PATH.",
    "ffprobe": "Install ffmpeg (ffprobe ships with it) and make sure it is on PATH.",
}


def resolve_executable(name: str, configured: Optional[str] = None) -> str:
    """Resolve a tool to an existing file path, before anything is spawned.

    Order: explicit configured path, the running interpreter's script
    directory (where ``pip install yt-dlp`` puts the entry point), then PATH.
    """
    hint = INSTALL_HINTS.get(name, "")
    if configured:
        path = Path(configured).expanduser()
        if path.is_file():
            return str(path)
        raise ExecutableNotFound(str(configured), hint)

    scripts_dir = Path(sys.executable).parent
    for candidate in (scripts_dir / name, scripts_dir / f"{name}.exe"):
        if candidate.is_file():
            return str(candidate)

    found = shutil.which(name)
    if found:
        return found
    raise ExecutableNotFound(name, hint)


class LineBuffer:
    """Split a stream of text chunks into complete lines.

    A trailing partial line is held back and prefixed to the next chunk.
    ``\\r`` counts as a line break because progress bars redraw with it.
    """

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, chunk: str) -> List[str]:
        parts = _LINE_BREAK_RE.split(self._pending + chunk)
        self._pending = parts.pop()
        return parts

    def flush(self) -> List[str]:
        rest, self._pending = self._pending, ""
        return [rest] if rest else []


class ToolProcess:
    """A running external tool. Use ``run_tool`` to create one."""

    def __init__(self, executable: str, args: Sequence[str], *, cwd: Optional[Path] = None) -> None:
        self.executable = executable
        self.name = Path(executable).stem
        self.argv = [executable, *[str(a) for a in args]]
        self._stderr_tail: "deque[str]" = deque(maxlen=_STDERR_TAIL_LINES)
        self._terminated = False

        logger.debug("spawn: %s", " ".join(self.argv))
        try:
            self._proc = subprocess.Popen(
                self.argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=str(cwd) if cwd is not None else None,
                bufsize=0,
                **subprocess_flags(),
            )
        except OSError as e:
            raise ToolFailed(self.name, -1, f"could not start: {e}") from e

        self._stderr_thread = threading.Thread(target=self._drain_stderr, daemon=True)
        self._stderr_thread.start()

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def terminated(self) -> bool:
        return self._terminated

    @property
    def stderr_tail(self) -> str:
        return "\n".join(self._stderr_tail)[-_STDERR_TAIL_CHARS:]

    def _drain_stderr(self) -> None:
        stream = self._proc.stderr
        assert stream is not None
        for raw in iter(stream.readline, b""):
            line = raw.decode("utf-8", errors="replace").rstrip()
            if line:
                self._stderr_tail.append(line)
                logger.debug("[%s stderr] %s", self.name, line)

    def iter_lines(self) -> Iterator[str]:
        """Yield complete stdout lines until the tool closes its stdout."""
        stdout = self._proc.stdout
        assert stdout is not None
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buf = LineBuffer()
        while True:
            chunk = stdout.read(_CHUNK_SIZE)
            if not chunk:
                break
            yield from buf.feed(decoder.decode(chunk))
        yield from buf.feed(decoder.decode(b"", final=True))
        yield from buf.flush()

    def poll(self) -> Optional[int]:
        return self._proc.poll()

    def wait(self, timeout: Optional[float] = None) -> int:
        ret = self._proc.wait(timeout=timeout)
        self._stderr_thread.join(timeout=5.0)
        self._close_pipes()
        return ret

    def check(self) -> None:
        """Wait for exit; raise ``ToolFailed`` unless the exit status is 0."""
        ret = self.wait()
        if ret != 0:
            raise ToolFailed(self.name, ret, self.stderr_tail)

    def terminate(self, grace_s: float = 5.0) -> None:
        """Stop the process: SIGTERM, then SIGKILL after ``grace_s``."""
        if self._proc.poll() is not None:
            return
        self._terminated = True
        logger.info("terminating %s (pid=%s)", self.name, self._proc.pid)
        try:
            self._proc.terminate()
            self._proc.wait(timeout=grace_s)
        except subprocess.TimeoutExpired:
            self._proc.kill()
            self._proc.wait()
        except OSError as e:
            logger.warning("terminate %s failed: %s", self.name, e)

    def _close_pipes(self) -> None:
        for stream in (self._proc.stdout, self._proc.stderr):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError:
                pass

    def __enter__(self) -> "ToolProcess":
        return self

    def __exit__(self, *exc: object) -> None:
        if self._proc.poll() is None:
            self.terminate()
        self._proc.wait()
        self._stderr_thread.join(timeout=5.0)
        self._close_pipes()


def run_tool(executable: str, args: Sequence[str], *, cwd: Optional[Path] = None) -> ToolProcess:
    """Start ``executable`` with ``args``. The executable must already be resolved."""
    if not os.path.isfile(executable):
        raise ExecutableNotFound(executable, INSTALL_HINTS.get(Path(executable).stem, ""))
    return ToolProcess(executable, args, cwd=cwd)


def run_capture(executable: str, args: Sequence[str], *, timeout: Optional[float] = None) -> str:
    """Run a short-lived tool to completion and return its stdout."""
    name = Path(executable).stem
    if not os.path.isfile(executable):
        raise ExecutableNotFound(executable, INSTALL_HINTS.get(name, ""))
    cmd = [executable, *[str(a) for a in args]]
    logger.debug("run: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout,
            **subprocess_flags(),
        )
    except subprocess.TimeoutExpired as e:
        raise ToolFailed(name, -1, f"timed out after {timeout}s") from e
    except OSError as e:
        raise ToolFailed(name, -1, f"could not start: {e}") from e

    stdout = result.stdout.decode("utf-8", errors="replace")
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace")
        raise ToolFailed(name, result.returncode, stderr[-_STDERR_TAIL_CHARS:])
    return stdout
