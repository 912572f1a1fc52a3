"""Exception taxonomy shared by the runner, parsers and job orchestrator.

Every exception here carries a message that is safe to show to the user; the
orchestrator turns them into the ``details`` of a terminal error event.
"""

from __future__ import annotations

from typing import Optional


class MediaToolkitError(Exception):
    """Base class for all errors raised by MediaToolkit."""
    pass


class ExecutableNotFound(MediaToolkitError):
    """Raised before spawning when a required tool cannot be resolved."""

    def __init__(self, name: str, hint: str = "") -> None:
        self.name = name
        self.hint = hint
        msg = f"{name} not found."
        if hint:
            msg = f"{msg} {hint}"
        super().__init__(msg)


class ToolFailed(MediaToolkitError):
    """An external tool exited non-zero, was killed, or could not be spawned."""

    def __init__(self, tool: str, exit_code: int, stderr_tail: str = "", hint: str = "") -> None:
        self.tool = tool
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail
        msg = f"{tool} failed with exit code {exit_code}"
        if hint:
            msg = f"{hint} ({msg})"
        if stderr_tail:
            msg = f"{msg}: {stderr_tail.strip()[-300:]}"
        super().__init__(msg)


class TranscriptTooShort(MediaToolkitError):
    """The caption track produced too little text to summarize."""
    pass


class ConfigurationError(MediaToolkitError):
    """Credentials or project configuration are missing or unreadable."""
    pass


class SummarizationFailed(MediaToolkitError):
    """The remote summarization call failed."""

    def __init__(self, cause: Optional[BaseException] = None, message: str = "") -> None:
        self.cause = cause
        detail = message or (str(cause) if cause is not None else "unknown error")
        super().__init__(f"Summarization failed: {detail}")


class MalformedInput(MediaToolkitError):
    """Bad request payload: clip ranges, thumbnail options, URLs."""
    pass


class JobCancelled(MediaToolkitError):
    """Raised inside a job thread once cancellation has been requested."""

    def __init__(self, message: str = "Cancelled by user") -> None:
        super().__init__(message)
