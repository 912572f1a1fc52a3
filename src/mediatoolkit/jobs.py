"""Background jobs: one thread per job, sequential tool runs, fanned-out events.

A job moves ``idle -> preparing -> running -> finalizing`` and ends in
``completed`` or ``failed``. Every subscribed channel ends with exactly one
terminal event, channels subscribed after the end get that event replayed, and
the scratch directory is already gone by the time it is published.
"""

from __future__ import annotations

import base64
import logging
import queue
import shutil
import tempfile
import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .captions import captions_to_text, find_caption_file, parse_captions
from .chapters import extract_chapters
from .config import Settings, load_settings
from .errors import (
    ConfigurationError,
    JobCancelled,
    MalformedInput,
    MediaToolkitError,
    SummarizationFailed,
    ToolFailed,
    TranscriptTooShort,
)
from .ffmpeg import (
    ClipSpec,
    ThumbnailOptions,
    build_clip_args,
    build_duration_args,
    build_frame_args,
    frame_timestamps,
    parse_duration_output,
)
from .logging_config import job_context
from .progress import (
    STATUS_COMPLETED,
    STATUS_DOWNLOADING,
    STATUS_PROCESSING,
    DownloadProgressParser,
    ProgressEvent,
    TranscodeProgressParser,
    completed_event,
    error_event,
    remap_progress,
)
from .runner import ToolProcess, resolve_executable, run_tool
from .summarize import (
    CredentialProvider,
    KeyringCredentialProvider,
    ProjectConfig,
    Summarizer,
    build_summary_prompt,
    default_summarizer_factory,
    extract_video_id,
)
from .utils import sanitize_filename, unique_path, utc_iso
from .ytdlp import DownloadRequest, build_caption_args, build_download_args, build_source_download_args, validate_url

logger = logging.getLogger(__name__)

CLIP_SLICE = (20.0, 90.0)
SOURCE_SLICE = (0.0, 40.0)
FRAMES_END = 95.0
CANCEL_MESSAGE = "Cancelled by user"

SummarizerFactory = Callable[[Dict[str, Any], ProjectConfig, Settings], Summarizer]


class JobKind(str, Enum):
    DOWNLOAD = "download"
    CLIP = "clip"
    THUMBNAIL = "thumbnail"
    SUMMARIZE = "summarize"


class JobPhase(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    RUNNING = "running"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_PHASES = (JobPhase.COMPLETED, JobPhase.FAILED)

_CLOSED = object()


class EventChannel:
    """Ordered, bounded hand-off from one job thread to one consumer.

    ``publish`` blocks while the queue is full; nothing is dropped. Once the
    consumer goes away it calls ``abandon`` and later events are discarded so
    the job can still run to its end. Other subscribers of the same job are
    unaffected.
    """

    def __init__(self, maxsize: int = 256) -> None:
        # Room for at least the terminal event plus the close marker.
        self.maxsize = max(2, int(maxsize))
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=self.maxsize)
        self._closed = False
        self._drained = False
        self._abandoned = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def abandoned(self) -> bool:
        return self._abandoned.is_set()

    def _put(self, item: object) -> None:
        while not self._abandoned.is_set():
            try:
                self._queue.put(item, timeout=0.25)
                return
            except queue.Full:
                continue

    def publish(self, event: ProgressEvent) -> None:
        if self._closed:
            raise RuntimeError("channel is closed")
        self._put(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._put(_CLOSED)

    def abandon(self) -> None:
        self._abandoned.set()
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break

    def get(self, timeout: Optional[float] = None) -> Optional[ProgressEvent]:
        """Next event, or ``None`` once the channel is closed and empty.

        Raises ``queue.Empty`` when ``timeout`` passes without an event.
        """
        if self._drained:
            return None
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            self._drained = True
            return None
        return item  # type: ignore[return-value]

    def __iter__(self) -> Iterator[ProgressEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event


@dataclass
class Job:
    id: str
    kind: JobKind
    created_at: str = field(default_factory=utc_iso)
    phase: JobPhase = JobPhase.IDLE
    progress: float = 0.0
    status: str = ""
    message: str = ""
    result: Dict[str, Any] = field(default_factory=dict)
    # Subscription of whoever started the job; `subscribe()` adds more.
    channel: EventChannel = field(default_factory=EventChannel)
    scratch_dir: Optional[Path] = None
    terminal: Optional[ProgressEvent] = field(default=None, repr=False)
    finished_at: Optional[float] = field(default=None, repr=False)

    _cancel: threading.Event = field(default_factory=threading.Event, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _process: Optional[ToolProcess] = field(default=None, repr=False)
    _subscribers: List[EventChannel] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self._subscribers.append(self.channel)

    @property
    def done(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def subscribe(self) -> EventChannel:
        """A new channel that receives this job's events from now on.

        If the job already finished, the channel holds just its terminal event.
        """
        channel = EventChannel(self.channel.maxsize)
        with self._lock:
            terminal = self.terminal
            if terminal is None:
                self._subscribers.append(channel)
                return channel
        channel.publish(terminal)
        channel.close()
        return channel

    def broadcast(self, event: ProgressEvent) -> None:
        with self._lock:
            self._subscribers = [ch for ch in self._subscribers if not ch.abandoned]
            channels = list(self._subscribers)
        for ch in channels:
            ch.publish(event)

    def seal(self, terminal: ProgressEvent) -> None:
        """Record ``terminal`` and deliver it, then close every subscriber."""
        with self._lock:
            if self._cancel.is_set() and terminal.status == STATUS_COMPLETED:
                terminal = error_event(CANCEL_MESSAGE)
            self.phase = JobPhase.COMPLETED if terminal.status == STATUS_COMPLETED else JobPhase.FAILED
            self.progress = terminal.progress
            self.status = terminal.status
            self.message = terminal.details
            self.result = dict(terminal.result or {})
            self.terminal = terminal
            self.finished_at = time.monotonic()
            channels, self._subscribers = self._subscribers, []
        for ch in channels:
            ch.publish(terminal)
            ch.close()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> bool:
        """Request cancellation; terminates the running tool, if any.

        Returns False when the job already reached a terminal phase.
        """
        with self._lock:
            if self.done:
                return False
            self._cancel.set()
            proc = self._process
        logger.info("job %s: cancel requested", self.id)
        if proc is not None:
            proc.terminate()
        return True

    def start_tool(self, executable: str, args: Sequence[str], *, cwd: Optional[Path] = None) -> ToolProcess:
        with self._lock:
            if self._cancel.is_set():
                raise JobCancelled(CANCEL_MESSAGE)
            proc = run_tool(executable, args, cwd=cwd)
            self._process = proc
        return proc

    def release_tool(self) -> None:
        with self._lock:
            self._process = None

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "created_at": self.created_at,
            "phase": self.phase.value,
            "status": self.status,
            "progress": round(self.progress, 1),
            "message": self.message,
            "result": self.result,
        }


class JobRunner:
    """Lifecycle shared by every job kind. Subclasses fill in ``prepare``/``execute``."""

    needs_scratch = False

    def __init__(self, job: Job, settings: Settings, *, scratch_root: Optional[Path] = None) -> None:
        self.job = job
        self.settings = settings
        self.scratch_root = scratch_root
        self.stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._terminal_sent = False
        self._cleaned = False

    # -- subclass hooks ---------------------------------------------------

    def prepare(self) -> None:
        pass

    def execute(self) -> Tuple[str, Dict[str, Any]]:
        raise NotImplementedError

    # -- lifecycle --------------------------------------------------------

    def run(self) -> None:
        with job_context(self.job.id):
            self._run()

    def _run(self) -> None:
        job = self.job
        logger.info("job %s (%s) started", job.id, job.kind.value)
        try:
            self.check_cancelled()
            self.set_phase(JobPhase.PREPARING)
            if self.needs_scratch:
                job.scratch_dir = Path(tempfile.mkdtemp(prefix=f"{job.kind.value}-{job.id}-", dir=self.scratch_root))
            self.prepare()
            self.check_cancelled()
            self.set_phase(JobPhase.RUNNING)
            details, result = self.execute()
            self.check_cancelled()
            terminal = completed_event(details, result)
        except Exception as e:
            terminal = error_event(self._failure_message(e))
        self.cleanup()
        self._finish(terminal)

    def _failure_message(self, exc: Exception) -> str:
        job = self.job
        if job.cancel_requested or isinstance(exc, JobCancelled):
            logger.info("job %s cancelled", job.id)
            return CANCEL_MESSAGE
        if isinstance(exc, MediaToolkitError):
            logger.warning("job %s failed: %s", job.id, exc)
            return str(exc)
        logger.exception("job %s crashed", job.id)
        return f"{type(exc).__name__}: {exc}"

    def _finish(self, terminal: ProgressEvent) -> None:
        self._terminal_sent = True
        self.job.seal(terminal)
        logger.info("job %s finished: %s", self.job.id, self.job.phase.value)

    def cleanup(self) -> None:
        if self._cleaned:
            return
        self._cleaned = True
        scratch = self.job.scratch_dir
        if scratch is None:
            return
        try:
            shutil.rmtree(scratch)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("could not remove scratch dir %s: %s", scratch, e)

    # -- helpers for subclasses ---------------------------------------------

    def check_cancelled(self) -> None:
        if self.job.cancel_requested:
            raise JobCancelled(CANCEL_MESSAGE)

    def set_phase(self, phase: JobPhase) -> None:
        job = self.job
        with job._lock:
            previous, job.phase = job.phase, phase
        logger.info("job %s: %s -> %s", job.id, previous.value, phase.value)

    def forward(self, event: ProgressEvent) -> None:
        if self._terminal_sent or event.is_terminal:
            return
        job = self.job
        job.progress = event.progress
        job.status = event.status
        job.message = event.details
        job.broadcast(event)

    def emit(self, status: str, progress: float, details: str) -> None:
        self.forward(ProgressEvent(status=status, progress=progress, details=details))

    def run_step(
        self,
        executable: str,
        args: Sequence[str],
        *,
        parser: Any = None,
        span: Tuple[float, float] = (0.0, 100.0),
        timeout: Optional[float] = None,
        keep_output: bool = False,
    ) -> List[str]:
        """Run one tool to completion, forwarding parser events remapped into ``span``.

        The tool is registered on the job, so ``Job.cancel()`` terminates it.
        Returns its stdout lines when ``keep_output`` is set.
        """
        output: List[str] = []
        proc = self.job.start_tool(executable, args)
        timer: Optional[threading.Timer] = None
        if timeout:
            timer = threading.Timer(timeout, proc.terminate)
            timer.daemon = True
            timer.start()
        try:
            with proc:
                for line in proc.iter_lines():
                    logger.debug("[%s] %s", proc.name, line)
                    if keep_output:
                        output.append(line)
                    if parser is None:
                        continue
                    event = parser.feed(line)
                    if event is not None:
                        self.forward(replace(event, progress=remap_progress(event.progress, *span)))
                proc.check()
        finally:
            if timer is not None:
                timer.cancel()
            self.job.release_tool()
        self.check_cancelled()
        return output


class DownloadRunner(JobRunner):
    def __init__(self, job: Job, settings: Settings, request: DownloadRequest, *, output_root: Optional[Path] = None, **kw: Any) -> None:
        super().__init__(job, settings, **kw)
        self.request = request
        self.output_root = output_root or settings.output_root
        self.ytdlp = ""

    def prepare(self) -> None:
        self.ytdlp = resolve_executable("yt-dlp", self.settings.ytdlp_path)

    def execute(self) -> Tuple[str, Dict[str, Any]]:
        args, target_dir = build_download_args(self.request, self.output_root)
        target_dir.mkdir(parents=True, exist_ok=True)
        self.run_step(self.ytdlp, args, parser=DownloadProgressParser())
        self.set_phase(JobPhase.FINALIZING)
        return f"Files saved to: {target_dir}", {"output_dir": str(target_dir)}


class ClipRunner(JobRunner):
    def __init__(self, job: Job, settings: Settings, source: Path, clips: List[ClipSpec], *, output_dir: Optional[Path] = None, **kw: Any) -> None:
        super().__init__(job, settings, **kw)
        self.source = source
        self.clips = clips
        self.output_dir = output_dir or settings.clips_dir
        self.ffmpeg = ""

    def prepare(self) -> None:
        self.ffmpeg = resolve_executable("ffmpeg", self.settings.ffmpeg_path)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def execute(self) -> Tuple[str, Dict[str, Any]]:
        n = len(self.clips)
        lo, hi = CLIP_SLICE
        outputs: List[str] = []
        self.emit(STATUS_PROCESSING, lo, f"Preparing {n} clip(s)")
        for i, clip in enumerate(self.clips):
            start = lo + (hi - lo) * i / n
            end = lo + (hi - lo) * (i + 1) / n
            self.emit(STATUS_PROCESSING, start, f"Extracting clip {i + 1}/{n}: {clip.name}")
            out = unique_path(self.output_dir, f"{sanitize_filename(clip.name)}_{self.stamp}", ".mp4")
            self.run_step(
                self.ffmpeg,
                build_clip_args(self.source, clip, out),
                parser=TranscodeProgressParser(clip.duration_s),
                span=(start, end),
            )
            outputs.append(str(out))
        self.set_phase(JobPhase.FINALIZING)
        return f"{n} clip(s) saved to: {self.output_dir}", {"outputs": outputs, "output_dir": str(self.output_dir)}


class ThumbnailRunner(JobRunner):
    needs_scratch = True

    def __init__(
        self,
        job: Job,
        settings: Settings,
        options: ThumbnailOptions,
        *,
        source: Optional[Path] = None,
        url: Optional[str] = None,
        save_dir: Optional[Path] = None,
        **kw: Any,
    ) -> None:
        super().__init__(job, settings, **kw)
        self.options = options
        self.source = source
        self.url = url
        self.save_dir = save_dir
        self.ffmpeg = ""
        self.ffprobe = ""
        self.ytdlp = ""

    def prepare(self) -> None:
        self.ffmpeg = resolve_executable("ffmpeg", self.settings.ffmpeg_path)
        if self.options.auto_mode:
            self.ffprobe = resolve_executable("ffprobe", self.settings.ffprobe_path)
        if self.url:
            self.ytdlp = resolve_executable("yt-dlp", self.settings.ytdlp_path)

    def _fetch_source(self) -> Path:
        if not self.url:
            assert self.source is not None
            return self.source
        assert self.job.scratch_dir is not None
        video = self.job.scratch_dir / "source.mp4"
        self.emit(STATUS_DOWNLOADING, SOURCE_SLICE[0], "Downloading video...")
        self.run_step(self.ytdlp, build_source_download_args(self.url, video), parser=DownloadProgressParser(), span=SOURCE_SLICE)
        if not video.is_file():
            raise MediaToolkitError("Downloaded video not found")
        return video

    def execute(self) -> Tuple[str, Dict[str, Any]]:
        opts = self.options
        scratch = self.job.scratch_dir
        assert scratch is not None
        video = self._fetch_source()
        lo = SOURCE_SLICE[1] if self.url else 10.0

        if opts.auto_mode:
            self.emit(STATUS_PROCESSING, lo, "Reading video duration")
            output = self.run_step(
                self.ffprobe,
                build_duration_args(video),
                timeout=self.settings.probe_timeout_s,
                keep_output=True,
            )
            duration = parse_duration_output("\n".join(output))
            timestamps = frame_timestamps(duration, opts.frame_count)
        else:
            timestamps = [opts.timestamp_s]

        frames: List[Tuple[float, Path]] = []
        n = len(timestamps)
        for i, ts in enumerate(timestamps):
            self.emit(STATUS_PROCESSING, remap_progress(i / n * 100.0, lo, FRAMES_END), f"Extracting frame {i + 1}/{n}")
            out = scratch / f"thumb_{i:03d}.jpg"
            try:
                self.run_step(
                    self.ffmpeg,
                    build_frame_args(video, ts, opts.width, opts.height, out),
                    timeout=self.settings.frame_timeout_s,
                )
            except ToolFailed as e:
                if not opts.auto_mode or self.job.cancel_requested:
                    raise
                logger.warning("frame at %.2fs failed, skipping: %s", ts, e)
                continue
            if out.is_file():
                frames.append((ts, out))

        if not frames:
            raise MediaToolkitError("No thumbnails could be generated")

        self.set_phase(JobPhase.FINALIZING)
        thumbnails = [
            "data:image/jpeg;base64," + base64.b64encode(path.read_bytes()).decode("ascii") for _, path in frames
        ]
        saved: List[str] = []
        if self.save_dir is not None:
            self.save_dir.mkdir(parents=True, exist_ok=True)
            for i, (_, path) in enumerate(frames, start=1):
                dest = unique_path(self.save_dir, f"thumbnail_{self.stamp}_{i}", ".jpg")
                shutil.copyfile(path, dest)
                saved.append(str(dest))

        result = {
            "thumbnails": thumbnails,
            "timestamps": [round(ts, 3) for ts, _ in frames],
            "saved": saved,
        }
        return f"{len(thumbnails)} thumbnail(s) generated", result


class SummarizeRunner(JobRunner):
    needs_scratch = True

    def __init__(
        self,
        job: Job,
        settings: Settings,
        url: str,
        *,
        credentials: Optional[CredentialProvider] = None,
        summarizer_factory: Optional[SummarizerFactory] = None,
        **kw: Any,
    ) -> None:
        super().__init__(job, settings, **kw)
        self.url = url
        self.credentials = credentials or KeyringCredentialProvider(settings)
        self.summarizer_factory = summarizer_factory or default_summarizer_factory
        self.ytdlp = ""

    def prepare(self) -> None:
        self.ytdlp = resolve_executable("yt-dlp", self.settings.ytdlp_path)

    def _summarize(self, transcript: str) -> str:
        try:
            creds = self.credentials.get_summarization_credentials()
            project = self.credentials.get_project_config()
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Could not load summarization credentials: {e}") from e

        summarizer = self.summarizer_factory(creds, project, self.settings)
        prompt = build_summary_prompt(transcript, self.settings.max_prompt_chars)
        try:
            return summarizer.summarize(prompt)
        except MediaToolkitError:
            raise
        except Exception as e:
            raise SummarizationFailed(e) from e

    def execute(self) -> Tuple[str, Dict[str, Any]]:
        scratch = self.job.scratch_dir
        assert scratch is not None

        self.emit(STATUS_PROCESSING, 10.0, "Fetching podcast information...")
        self.emit(STATUS_DOWNLOADING, 30.0, "Downloading transcript...")
        try:
            self.run_step(self.ytdlp, build_caption_args(self.url, scratch, self.settings.sub_lang))
        except ToolFailed as e:
            if self.job.cancel_requested:
                raise
            raise ToolFailed(
                e.tool, e.exit_code, e.stderr_tail,
                hint="Failed to download transcript. The video may not have captions available.",
            ) from e

        self.set_phase(JobPhase.FINALIZING)
        self.emit(STATUS_PROCESSING, 50.0, "Processing transcript...")
        caption_file = find_caption_file(scratch)
        if caption_file is None:
            raise MediaToolkitError("No subtitle file found. The video may not have captions.")
        document = caption_file.read_text(encoding="utf-8", errors="replace")
        segments = parse_captions(document)
        transcript = captions_to_text(document)
        if len(transcript) < self.settings.min_transcript_chars:
            raise TranscriptTooShort("Transcript is too short or empty.")

        self.emit(STATUS_PROCESSING, 70.0, "Sending to Vertex AI for summarization...")
        summary = self._summarize(transcript)
        self.check_cancelled()
        topics = extract_chapters(summary, segments)

        result = {
            "summary": summary,
            "transcript": transcript,
            "timestampedTranscript": [s.to_dict() for s in segments],
            "videoId": extract_video_id(self.url),
            "topics": [t.to_dict() for t in topics],
        }
        return "Summary ready", result


class JobManager:
    def __init__(self, settings: Optional[Settings] = None, *, scratch_root: Optional[Path] = None) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._settings = settings
        self.scratch_root = scratch_root

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = load_settings()
        return self._settings

    def configure(self, settings: Settings) -> None:
        self._settings = settings

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[Job]:
        with self._lock:
            return list(self._jobs.values())

    def create(self, kind: JobKind) -> Job:
        self.prune()
        job = Job(id=uuid.uuid4().hex, kind=kind, channel=EventChannel(self.settings.channel_size))
        with self._lock:
            self._jobs[job.id] = job
        return job

    def prune(self, now: Optional[float] = None) -> int:
        """Drop finished jobs older than ``finished_ttl_s``, then all but the newest ``keep_finished``.

        Running jobs are never dropped. Returns how many jobs were removed.
        """
        now = time.monotonic() if now is None else now
        ttl = self.settings.finished_ttl_s
        keep = max(0, self.settings.keep_finished)
        with self._lock:
            finished = sorted(
                (j for j in self._jobs.values() if j.finished_at is not None),
                key=lambda j: j.finished_at or 0.0,
                reverse=True,
            )
            expired = [j for i, j in enumerate(finished) if i >= keep or now - (j.finished_at or now) > ttl]
            for job in expired:
                del self._jobs[job.id]
        if expired:
            logger.debug("pruned %d finished job(s)", len(expired))
        return len(expired)

    def cancel(self, job_id: str) -> bool:
        job = self.get(job_id)
        if job is None:
            return False
        return job.cancel()

    def forget(self, job_id: str) -> bool:
        """Drop a finished job from the registry."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or not job.done:
                return False
            del self._jobs[job_id]
            return True

    def _start(self, runner: JobRunner) -> Job:
        job = runner.job
        t = threading.Thread(target=runner.run, name=f"job-{job.kind.value}-{job.id[:8]}", daemon=True)
        t.start()
        return job

    def start_download(self, request: DownloadRequest, *, output_root: Optional[Path] = None) -> Job:
        job = self.create(JobKind.DOWNLOAD)
        return self._start(DownloadRunner(job, self.settings, request, output_root=output_root, scratch_root=self.scratch_root))

    def start_clips(self, source: Path, clips: List[ClipSpec], *, output_dir: Optional[Path] = None) -> Job:
        source = Path(source)
        if not source.is_file():
            raise MalformedInput(f"Source video not found: {source}")
        if not clips:
            raise MalformedInput("clips must be a non-empty list")
        job = self.create(JobKind.CLIP)
        return self._start(ClipRunner(job, self.settings, source, list(clips), output_dir=output_dir, scratch_root=self.scratch_root))

    def start_thumbnails(
        self,
        options: ThumbnailOptions,
        *,
        source: Optional[Path] = None,
        url: Optional[str] = None,
        save_dir: Optional[Path] = None,
    ) -> Job:
        if (source is None) == (not url):
            raise MalformedInput("Provide either a source video file or a URL")
        if source is not None:
            source = Path(source)
            if not source.is_file():
                raise MalformedInput(f"Source video not found: {source}")
        if url:
            url = validate_url(url)
        job = self.create(JobKind.THUMBNAIL)
        runner = ThumbnailRunner(
            job, self.settings, options, source=source, url=url, save_dir=save_dir, scratch_root=self.scratch_root
        )
        return self._start(runner)

    def start_summarize(
        self,
        url: str,
        *,
        credentials: Optional[CredentialProvider] = None,
        summarizer_factory: Optional[SummarizerFactory] = None,
    ) -> Job:
        url = validate_url(url)
        job = self.create(JobKind.SUMMARIZE)
        runner = SummarizeRunner(
            job,
            self.settings,
            url,
            credentials=credentials,
            summarizer_factory=summarizer_factory,
            scratch_root=self.scratch_root,
        )
        return self._start(runner)


JOB_MANAGER = JobManager()
