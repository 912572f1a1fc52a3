from pathlib import Path

import pytest

from mediatoolkit.errors import ExecutableNotFound, ToolFailed
from mediatoolkit.runner import LineBuffer, resolve_executable, run_capture, run_tool


class TestLineBuffer:
    def test_partial_line_is_held_until_completed(self):
        buf = LineBuffer()
        assert buf.feed("[download]  12.") == []
        assert buf.feed("5% of 1MiB\n[downl") == ["[download]  12.5% of 1MiB"]
        assert buf.feed("oad] done\n") == ["[download] done"]
        assert buf.flush() == []

    def test_carriage_returns_split_lines(self):
        buf = LineBuffer()
        assert buf.feed("a\rb\r\nc\n") == ["a", "b", "c"]

    def test_flush_returns_trailing_text(self):
        buf = LineBuffer()
        buf.feed("no newline")
        assert buf.flush() == ["no newline"]
        assert buf.flush() == []


class TestResolveExecutable:
    def test_configured_path_must_exist(self, tmp_path: Path):
        with pytest.raises(ExecutableNotFound) as exc:
            resolve_executable("yt-dlp", str(tmp_path / "nope"))
        assert "pip install yt-dlp" in str(exc.value)

    def test_configured_path_wins(self, make_tool):
        tool = make_tool("yt-dlp", "print('hi')\n")
        assert resolve_executable("yt-dlp", str(tool)) == str(tool)

    def test_falls_back_to_path(self, make_tool, monkeypatch):
        tool = make_tool("fake-tool-xyz", "print('hi')\n")
        monkeypatch.setenv("PATH", str(tool.parent))
        assert resolve_executable("fake-tool-xyz") == str(tool)

    def test_missing_everywhere(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("PATH", str(tmp_path))
        with pytest.raises(ExecutableNotFound):
            resolve_executable("definitely-not-installed-tool")


class TestRunTool:
    def test_lines_split_across_writes_arrive_whole(self, make_tool):
        tool = make_tool(
            "yt-dlp",
            """
            import sys, time
            out = sys.stdout
            out.write("[download] Destination: fo"); out.flush(); time.sleep(0.05)
            out.write("o.mp4\\n[download]  45.2% of 10.00MiB\\r"); out.flush(); time.sleep(0.05)
            out.write("tail without newline"); out.flush()
            """,
        )
        with run_tool(str(tool), []) as proc:
            lines = list(proc.iter_lines())
            proc.check()
        assert lines == ["[download] Destination: foo.mp4", "[download]  45.2% of 10.00MiB", "tail without newline"]

    def test_nonzero_exit_raises_with_stderr_tail(self, make_tool):
        tool = make_tool(
            "ffmpeg",
            """
            import sys
            print("working")
            sys.stderr.write("Invalid data found when processing input\\n")
            sys.exit(3)
            """,
        )
        proc = run_tool(str(tool), [])
        assert list(proc.iter_lines()) == ["working"]
        with pytest.raises(ToolFailed) as exc:
            proc.check()
        assert exc.value.exit_code == 3
        assert exc.value.tool == "ffmpeg"
        assert "Invalid data" in exc.value.stderr_tail
        assert "Invalid data" in str(exc.value)

    def test_arguments_are_passed_through(self, make_tool):
        tool = make_tool("echoargs", "import sys\nprint('|'.join(sys.argv[1:]))\n")
        with run_tool(str(tool), ["-o", "a b.mp4", 5]) as proc:
            assert list(proc.iter_lines()) == ["-o|a b.mp4|5"]
            proc.check()

    def test_terminate_stops_long_running_tool(self, make_tool):
        tool = make_tool("slow", "import time\nprint('started', flush=True)\ntime.sleep(60)\n")
        proc = run_tool(str(tool), [])
        lines = proc.iter_lines()
        assert next(lines) == "started"
        proc.terminate(grace_s=2.0)
        assert proc.terminated
        assert list(lines) == []
        with pytest.raises(ToolFailed):
            proc.check()

    def test_missing_executable(self, tmp_path: Path):
        with pytest.raises(ExecutableNotFound):
            run_tool(str(tmp_path / "missing"), [])


class TestRunCapture:
    def test_returns_stdout(self, make_tool):
        tool = make_tool("ffprobe", "print('12.5')\n")
        assert run_capture(str(tool), []).strip() == "12.5"

    def test_timeout_becomes_tool_failed(self, make_tool):
        tool = make_tool("ffprobe", "import time\ntime.sleep(10)\n")
        with pytest.raises(ToolFailed) as exc:
            run_capture(str(tool), [], timeout=0.5)
        assert exc.value.exit_code == -1

    def test_failure_carries_stderr(self, make_tool):
        tool = make_tool("ffprobe", "import sys\nsys.stderr.write('no such file')\nsys.exit(1)\n")
        with pytest.raises(ToolFailed) as exc:
            run_capture(str(tool), [])
        assert "no such file" in exc.value.stderr_tail
