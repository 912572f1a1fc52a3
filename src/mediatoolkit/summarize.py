"""Summarization collaborator: prompt, credentials, and the Vertex AI call.

The job orchestrator only depends on the two protocols below, so tests (and
other backends) can plug in anything with a ``summarize(prompt)`` method.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import keyring
import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account
from keyring.errors import KeyringError

from .config import Settings
from .errors import ConfigurationError, SummarizationFailed

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "MediaToolkit"
_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
NO_SUMMARY = "No summary generated"

_VIDEO_ID_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/embed/([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/v/([a-zA-Z0-9_-]{11})"),
)


@dataclass(frozen=True)
class ProjectConfig:
    project_id: str
    region: str


class CredentialProvider(Protocol):
    def get_summarization_credentials(self) -> Dict[str, Any]:
        ...

    def get_project_config(self) -> ProjectConfig:
        ...


class Summarizer(Protocol):
    def summarize(self, prompt: str) -> str:
        ...


def extract_video_id(url: str) -> str:
    for pattern in _VIDEO_ID_PATTERNS:
        m = pattern.search(url)
        if m:
            return m.group(1)
    return ""


@dataclass(frozen=True)
class SummaryDepth:
    paragraphs: str
    topics: str
    takeaways: str
    quotes: str
    chapters: str


def summary_depth(transcript_chars: int) -> SummaryDepth:
    if transcript_chars < 10_000:
        return SummaryDepth("1-2 paragraphs", "3-5", "3-4", "2-3", "3-4")
    if transcript_chars < 30_000:
        return SummaryDepth("2-3 paragraphs", "5-8", "4-6", "3-5", "5-7")
    return SummaryDepth("3-4 paragraphs", "8-12", "6-10", "5-8", "8-12")


def build_summary_prompt(transcript: str, max_chars: int = 100_000) -> str:
    """Prompt asking for a summary plus ``[HH:MM:SS]`` chapter bookmarks."""
    depth = summary_depth(len(transcript))
    minutes = round(len(transcript) / 1000)
    body = transcript[:max_chars]
    if len(transcript) > max_chars:
        body += "\n\n[Transcript truncated]"

    return f"""You are a podcast summarization expert. Analyze this {minutes}-minute podcast transcript and provide:

1. **Main Summary** ({depth.paragraphs}): Detailed overview of the episode.

2. **Key Topics** ({depth.topics} bullet points): Main themes with 1-2 sentences each.

3. **Key Takeaways** ({depth.takeaways} bullet points): Actionable insights with context.

4. **Notable Quotes** ({depth.quotes} quotes): Memorable quotes with context.

5. **Chapter Bookmarks** ({depth.chapters} chapters): Break the podcast into major topic segments. For each chapter, provide:
   - A catchy, descriptive title (3-6 words)
   - Approximate timestamp (HH:MM:SS format, estimate based on content flow)
   - 1-sentence description

Format chapters as:
## Chapter Bookmarks
- **[00:05:30] Introduction & Background** - Overview of today's topic and guest introduction
- **[00:15:45] Deep Dive into AI** - Discussion about artificial intelligence impacts

Format your response in clean markdown.

Transcript:
{body}"""


def store_service_account(secret_name: str, payload: Dict[str, Any]) -> None:
    keyring.set_password(KEYRING_SERVICE, secret_name, json.dumps(payload))


class KeyringCredentialProvider:
    """Service-account JSON from the OS keyring, else ``GOOGLE_APPLICATION_CREDENTIALS``."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _raw_secret(self) -> Optional[str]:
        try:
            raw = keyring.get_password(KEYRING_SERVICE, self.settings.gcp_secret_name)
        except KeyringError as e:
            logger.warning("keyring lookup failed: %s", e)
            raw = None
        if raw:
            return raw

        path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        if not path:
            return None
        try:
            return Path(path).expanduser().read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read credentials file {path}: {e}") from e

    def get_summarization_credentials(self) -> Dict[str, Any]:
        raw = self._raw_secret()
        if not raw:
            raise ConfigurationError(
                f"No service account found in keyring entry '{self.settings.gcp_secret_name}' "
                "and GOOGLE_APPLICATION_CREDENTIALS is not set"
            )
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Service account secret is not valid JSON: {e}") from e
        if not isinstance(data, dict) or not data.get("client_email"):
            raise ConfigurationError("Service account secret is missing client_email")
        return data

    def get_project_config(self) -> ProjectConfig:
        if not self.settings.gcp_project_id:
            raise ConfigurationError("GCP_PROJECT_ID environment variable is not set")
        return ProjectConfig(project_id=self.settings.gcp_project_id, region=self.settings.gcp_location)


def extract_generated_text(payload: Dict[str, Any]) -> str:
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
    return "".join(str(p.get("text") or "") for p in parts if isinstance(p, dict))


class VertexSummarizer:
    """One ``generateContent`` call per prompt. No retries."""

    def __init__(
        self,
        *,
        credentials: Dict[str, Any],
        project: ProjectConfig,
        model: str = "gemini-2.0-flash",
        timeout_s: float = 300.0,
    ) -> None:
        try:
            self._credentials = service_account.Credentials.from_service_account_info(credentials, scopes=_SCOPES)
        except (ValueError, KeyError) as e:
            raise ConfigurationError(f"Invalid service account credentials: {e}") from e
        self.project = project
        self.model = model
        self.timeout_s = timeout_s

    @property
    def endpoint(self) -> str:
        region = self.project.region
        return (
            f"https://{region}-aiplatform.googleapis.com/v1/projects/{self.project.project_id}"
            f"/locations/{region}/publishers/google/models/{self.model}:generateContent"
        )

    def _session(self) -> AuthorizedSession:
        return AuthorizedSession(self._credentials)

    def summarize(self, prompt: str) -> str:
        body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        logger.info("requesting summary from %s (%d prompt chars)", self.model, len(prompt))
        try:
            resp = self._session().post(self.endpoint, json=body, timeout=self.timeout_s)
        except (requests.RequestException, GoogleAuthError) as e:
            raise SummarizationFailed(e) from e
        if resp.status_code != 200:
            raise SummarizationFailed(message=f"vertex_ai_error: {resp.status_code} {resp.text[:300]}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise SummarizationFailed(e, "invalid JSON response") from e
        return extract_generated_text(payload) or NO_SUMMARY


def default_summarizer_factory(credentials: Dict[str, Any], project: ProjectConfig, settings: Settings) -> Summarizer:
    return VertexSummarizer(
        credentials=credentials,
        project=project,
        model=settings.summarize_model,
        timeout_s=settings.summarize_timeout_s,
    )
