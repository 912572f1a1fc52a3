import json

import pytest

from mediatoolkit import cli, logging_config


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    monkeypatch.setattr(logging_config, "_CONFIGURED", True)
    monkeypatch.setenv("MT_OUTPUT_ROOT", str(tmp_path / "out"))
    monkeypatch.delenv("MT_PROFILE", raising=False)


def test_parse_clip_arg():
    assert cli._parse_clip_arg("intro=00:00:05-00:01:30") == {"name": "intro", "start": "00:00:05", "end": "00:01:30"}
    assert cli._parse_clip_arg("5-10") == {"name": "", "start": "5", "end": "10"}


def test_download_command(make_tool, monkeypatch, tmp_path, capsys):
    ytdlp = make_tool("yt-dlp", 'print("[download] Destination: foo.mp4")\nprint("[download] 100.0% of 1.00MiB")\n')
    monkeypatch.setenv("MT_YTDLP_PATH", str(ytdlp))
    cli.main(["download", "https://example.com/watch?v=1"])
    out = capsys.readouterr().out
    assert "foo.mp4" in out
    assert f"Files saved to: {tmp_path / 'out' / 'Video'}" in out


def test_clip_command_reports_outputs(make_tool, monkeypatch, tmp_path, capsys):
    ffmpeg = make_tool("ffmpeg", "import sys\nopen(sys.argv[-1], 'wb').close()\n")
    monkeypatch.setenv("MT_FFMPEG_PATH", str(ffmpeg))
    source = tmp_path / "in.mp4"
    source.write_bytes(b"video")
    clips_json = tmp_path / "clips.json"
    clips_json.write_text(json.dumps([{"name": "b", "start": 3, "end": 4}]), encoding="utf-8")

    cli.main(["clip", str(source), "--clip", "a=0-2", "--clips-json", str(clips_json), "--output", str(tmp_path / "c")])
    out = capsys.readouterr().out
    assert "2 clip(s) saved to" in out
    assert len(list((tmp_path / "c").glob("*.mp4"))) == 2


def test_errors_exit_nonzero(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["download", "ftp://example.com/x"])
    assert exc.value.code == 2
    assert "Not a valid http(s) URL" in capsys.readouterr().err


def test_failed_job_exits_one(make_tool, monkeypatch, capsys):
    ytdlp = make_tool("yt-dlp", "import sys\nsys.stderr.write('ERROR: Unsupported URL\\n')\nsys.exit(1)\n")
    monkeypatch.setenv("MT_YTDLP_PATH", str(ytdlp))
    with pytest.raises(SystemExit) as exc:
        cli.main(["download", "https://example.com/x"])
    assert exc.value.code == 1
    assert "Unsupported URL" in capsys.readouterr().err


@pytest.mark.parametrize(
    "content, message",
    [("[{not json", "is not valid JSON"), ('{"name": "a"}', "must hold a JSON list")],
)
def test_bad_clips_json_is_a_usage_error(tmp_path, capsys, content, message):
    source = tmp_path / "in.mp4"
    source.write_bytes(b"video")
    clips_json = tmp_path / "clips.json"
    clips_json.write_text(content, encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        cli.main(["clip", str(source), "--clips-json", str(clips_json)])
    assert exc.value.code == 2
    err = capsys.readouterr().err
    assert message in err
    assert "Traceback" not in err


def test_missing_clips_json_is_a_usage_error(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["clip", str(tmp_path / "in.mp4"), "--clips-json", str(tmp_path / "nope.json")])
    assert exc.value.code == 2
    assert "--clips-json: cannot read" in capsys.readouterr().err
