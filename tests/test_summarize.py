import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from mediatoolkit import summarize
from mediatoolkit.config import Settings
from mediatoolkit.errors import ConfigurationError, SummarizationFailed
from mediatoolkit.summarize import (
    NO_SUMMARY,
    KeyringCredentialProvider,
    ProjectConfig,
    VertexSummarizer,
    build_summary_prompt,
    extract_generated_text,
    extract_video_id,
    store_service_account,
    summary_depth,
)

SERVICE_ACCOUNT = {"type": "service_account", "client_email": "svc@demo.iam.gserviceaccount.com", "private_key": "k"}


class FakeKeyring:
    def __init__(self):
        self.store = {}

    def get_password(self, service, name):
        return self.store.get((service, name))

    def set_password(self, service, name, value):
        self.store[(service, name)] = value


@pytest.fixture
def fake_keyring(monkeypatch):
    kr = FakeKeyring()
    monkeypatch.setattr(summarize.keyring, "get_password", kr.get_password)
    monkeypatch.setattr(summarize.keyring, "set_password", kr.set_password)
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
    return kr


def test_video_ids():
    assert extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=10") == "dQw4w9WgXcQ"
    assert extract_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert extract_video_id("https://www.youtube.com/embed/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert extract_video_id("https://vimeo.com/123") == ""


def test_prompt_depth_and_truncation():
    assert summary_depth(5_000).topics == "3-5"
    assert summary_depth(20_000).topics == "5-8"
    assert summary_depth(50_000).topics == "8-12"

    prompt = build_summary_prompt("word " * 30_000, max_chars=1_000)
    assert "[Transcript truncated]" in prompt
    assert "Chapter Bookmarks" in prompt
    assert "150-minute" in prompt

    short = build_summary_prompt("hello world")
    assert "[Transcript truncated]" not in short
    assert short.endswith("hello world")


class TestKeyringCredentialProvider:
    def test_reads_stored_service_account(self, fake_keyring):
        settings = Settings(output_root=Path("/tmp"), gcp_project_id="demo", gcp_location="europe-west4")
        store_service_account(settings.gcp_secret_name, SERVICE_ACCOUNT)
        provider = KeyringCredentialProvider(settings)
        assert provider.get_summarization_credentials()["client_email"] == SERVICE_ACCOUNT["client_email"]
        assert provider.get_project_config() == ProjectConfig("demo", "europe-west4")

    def test_falls_back_to_credentials_file(self, fake_keyring, tmp_path, monkeypatch):
        key_file = tmp_path / "key.json"
        key_file.write_text(json.dumps(SERVICE_ACCOUNT), encoding="utf-8")
        monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", str(key_file))
        provider = KeyringCredentialProvider(Settings(output_root=tmp_path))
        assert provider.get_summarization_credentials()["type"] == "service_account"

    def test_missing_everything(self, fake_keyring, tmp_path):
        provider = KeyringCredentialProvider(Settings(output_root=tmp_path))
        with pytest.raises(ConfigurationError):
            provider.get_summarization_credentials()
        with pytest.raises(ConfigurationError, match="GCP_PROJECT_ID"):
            provider.get_project_config()

    def test_bad_secret_contents(self, fake_keyring, tmp_path):
        settings = Settings(output_root=tmp_path)
        fake_keyring.set_password(summarize.KEYRING_SERVICE, settings.gcp_secret_name, "{not json")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            KeyringCredentialProvider(settings).get_summarization_credentials()

        fake_keyring.set_password(summarize.KEYRING_SERVICE, settings.gcp_secret_name, json.dumps({"type": "x"}))
        with pytest.raises(ConfigurationError, match="client_email"):
            KeyringCredentialProvider(settings).get_summarization_credentials()


def test_extract_generated_text():
    payload = {"candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "world"}]}}]}
    assert extract_generated_text(payload) == "Hello world"
    assert extract_generated_text({}) == ""


class TestVertexSummarizer:
    def _summarizer(self):
        with patch.object(summarize.service_account.Credentials, "from_service_account_info", return_value=MagicMock()):
            return VertexSummarizer(credentials=SERVICE_ACCOUNT, project=ProjectConfig("demo", "us-central1"))

    def test_endpoint(self):
        s = self._summarizer()
        assert s.endpoint == (
            "https://us-central1-aiplatform.googleapis.com/v1/projects/demo/locations/us-central1"
            "/publishers/google/models/gemini-2.0-flash:generateContent"
        )

    def test_success(self):
        s = self._summarizer()
        resp = MagicMock(status_code=200)
        resp.json.return_value = {"candidates": [{"content": {"parts": [{"text": "A summary"}]}}]}
        session = MagicMock()
        session.post.return_value = resp
        with patch.object(VertexSummarizer, "_session", return_value=session):
            assert s.summarize("prompt") == "A summary"
        body = session.post.call_args.kwargs["json"]
        assert body["contents"][0]["parts"][0]["text"] == "prompt"

    def test_empty_response(self):
        s = self._summarizer()
        resp = MagicMock(status_code=200)
        resp.json.return_value = {"candidates": []}
        with patch.object(VertexSummarizer, "_session", return_value=MagicMock(post=MagicMock(return_value=resp))):
            assert s.summarize("prompt") == NO_SUMMARY

    def test_http_error(self):
        s = self._summarizer()
        resp = MagicMock(status_code=403, text="permission denied")
        with patch.object(VertexSummarizer, "_session", return_value=MagicMock(post=MagicMock(return_value=resp))):
            with pytest.raises(SummarizationFailed, match="403"):
                s.summarize("prompt")

    def test_network_error(self):
        s = self._summarizer()
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("offline")
        with patch.object(VertexSummarizer, "_session", return_value=session):
            with pytest.raises(SummarizationFailed, match="offline"):
                s.summarize("prompt")

    def test_invalid_credentials(self):
        with patch.object(
            summarize.service_account.Credentials, "from_service_account_info", side_effect=ValueError("bad key")
        ):
            with pytest.raises(ConfigurationError):
                VertexSummarizer(credentials={}, project=ProjectConfig("demo", "us-central1"))
