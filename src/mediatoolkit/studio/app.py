from __future__ import annotations

import json
import logging
import queue
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from fastapi import Body, FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse

from .. import __version__
from ..channel import NoVideosFound, analyze_channel
from ..config import Settings, load_settings
from ..doctor import run_doctor
from ..errors import ExecutableNotFound, MalformedInput, MediaToolkitError
from ..ffmpeg import parse_clips, parse_thumbnail_options
from ..jobs import JOB_MANAGER, EventChannel, Job, JobManager, SummarizerFactory
from ..progress import STATUS_COMPLETED
from ..summarize import CredentialProvider, KeyringCredentialProvider
from ..ytdlp import make_download_request

logger = logging.getLogger(__name__)

KEEPALIVE_S = 15.0


def _sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def job_event_stream(job: Job, channel: Optional[EventChannel] = None) -> Iterator[str]:
    """SSE frames for one job: a ``job_created`` frame, then every event until the terminal one.

    Without ``channel`` this is the starter's stream: if that client goes away
    first, the job is cancelled. A watcher passes its own subscription and only
    ever abandons that.
    """
    owner = channel is None
    channel = job.channel if channel is None else channel
    finished = False
    try:
        yield _sse({"type": "job_created", "job": job.to_public()})
        while True:
            try:
                event = channel.get(timeout=KEEPALIVE_S)
            except queue.Empty:
                yield ": keep-alive\n\n"
                continue
            if event is None:
                finished = True
                return
            yield _sse(event.to_dict())
    finally:
        if not finished:
            channel.abandon()
            if owner:
                logger.info("client left job %s before it finished; cancelling", job.id)
                job.cancel()


def _stream(job: Job, channel: Optional[EventChannel] = None) -> StreamingResponse:
    return StreamingResponse(
        job_event_stream(job, channel),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


def create_app(
    *,
    profile_path: Optional[Path] = None,
    settings: Optional[Settings] = None,
    job_manager: Optional[JobManager] = None,
    credentials: Optional[CredentialProvider] = None,
    summarizer_factory: Optional[SummarizerFactory] = None,
) -> FastAPI:
    settings = settings or load_settings(profile_path)
    jobs = job_manager or JOB_MANAGER
    jobs.configure(settings)
    creds = credentials or KeyringCredentialProvider(settings)

    app = FastAPI(title="MediaToolkit Studio", version=__version__)

    @app.get("/api/health")
    def api_health() -> JSONResponse:
        return JSONResponse({"ok": True})

    @app.get("/api/doctor")
    def api_doctor() -> JSONResponse:
        return JSONResponse(run_doctor(settings, creds).to_dict())

    @app.get("/api/downloads")
    def api_downloads(
        url: str = "",
        format: str = "video",
        quality: str = "Best",
        audioFormat: str = "mp3",
        outputDir: Optional[str] = None,
    ) -> StreamingResponse:
        if not url:
            raise HTTPException(status_code=400, detail="url_required")
        try:
            request = make_download_request(url, format, quality, audioFormat)
        except MalformedInput as e:
            raise HTTPException(status_code=400, detail=str(e))
        output_root = Path(outputDir).expanduser() if outputDir else None
        return _stream(jobs.start_download(request, output_root=output_root))

    @app.get("/api/summarize")
    def api_summarize(url: str = "") -> StreamingResponse:
        if not url:
            raise HTTPException(status_code=400, detail="url_required")
        try:
            job = jobs.start_summarize(url, credentials=creds, summarizer_factory=summarizer_factory)
        except MalformedInput as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _stream(job)

    @app.post("/api/clips")
    def api_clips(body: Dict[str, Any] = Body(...)) -> StreamingResponse:
        source = body.get("source") or body.get("video")
        if not source:
            raise HTTPException(status_code=400, detail="source_required")
        try:
            clips = parse_clips(body.get("clips"))
            output_dir = Path(body["outputDir"]).expanduser() if body.get("outputDir") else None
            job = jobs.start_clips(Path(str(source)).expanduser(), clips, output_dir=output_dir)
        except MalformedInput as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _stream(job)

    @app.post("/api/thumbnails")
    def api_thumbnails(body: Dict[str, Any] = Body(...)) -> JSONResponse:
        source = body.get("source") or body.get("video")
        url = body.get("url")
        try:
            options = parse_thumbnail_options(body.get("options"))
            save_dir = settings.thumbnails_dir if body.get("save") else None
            job = jobs.start_thumbnails(
                options,
                source=Path(str(source)).expanduser() if source else None,
                url=url or None,
                save_dir=save_dir,
            )
        except MalformedInput as e:
            raise HTTPException(status_code=400, detail=str(e))

        terminal = None
        for event in job.channel:
            terminal = event
        if terminal is None or terminal.status != STATUS_COMPLETED:
            message = terminal.details if terminal is not None else "job ended without a result"
            return JSONResponse({"error": message, "job_id": job.id}, status_code=500)
        return JSONResponse({"job_id": job.id, **dict(terminal.result or {})})

    @app.get("/api/jobs")
    def api_jobs() -> JSONResponse:
        listed = sorted(jobs.list_jobs(), key=lambda j: j.created_at, reverse=True)
        return JSONResponse({"jobs": [j.to_public() for j in listed]})

    @app.get("/api/jobs/{job_id}")
    def api_job(job_id: str) -> JSONResponse:
        job = jobs.get(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="job_not_found")
        return JSONResponse(job.to_public())

    @app.delete("/api/jobs/{job_id}")
    def api_job_forget(job_id: str) -> JSONResponse:
        if not jobs.forget(job_id):
            if not jobs.get(job_id):
                raise HTTPException(status_code=404, detail="job_not_found")
            raise HTTPException(status_code=409, detail="job_still_running")
        return JSONResponse({"removed": True})

    @app.post("/api/jobs/{job_id}/cancel")
    def api_job_cancel(job_id: str) -> JSONResponse:
        success = jobs.cancel(job_id)
        if not success:
            if not jobs.get(job_id):
                raise HTTPException(status_code=404, detail="job_not_found")
            raise HTTPException(status_code=400, detail="job_not_cancellable")
        return JSONResponse({"cancelled": True})

    @app.get("/api/jobs/{job_id}/events")
    def api_job_events(job_id: str) -> StreamingResponse:
        job = jobs.get(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="job_not_found")
        return _stream(job, job.subscribe())

    @app.post("/api/channels/analyze")
    def api_channel_analyze(body: Dict[str, Any] = Body(...)) -> JSONResponse:
        url = str(body.get("url") or "").strip()
        if not url:
            raise HTTPException(status_code=400, detail="Channel URL is required")
        try:
            return JSONResponse(analyze_channel(url, settings))
        except NoVideosFound as e:
            return JSONResponse({"error": str(e)}, status_code=404)
        except MalformedInput as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ExecutableNotFound as e:
            return JSONResponse({"error": str(e)}, status_code=500)
        except MediaToolkitError as e:
            logger.warning("channel analysis failed: %s", e)
            return JSONResponse({"error": f"Failed to fetch channel data: {e}"}, status_code=500)

    return app
