from pathlib import Path

import pytest

from mediatoolkit.errors import MalformedInput, ToolFailed
from mediatoolkit.ffmpeg import (
    MAX_FRAMES,
    ClipSpec,
    build_clip_args,
    build_duration_args,
    build_frame_args,
    frame_timestamps,
    parse_clips,
    parse_duration_output,
    parse_thumbnail_options,
)
from mediatoolkit.timecode import format_clock, parse_clock, parse_time_spec
from mediatoolkit.utils import sanitize_filename, unique_path


class TestClips:
    def test_parse_accepts_clock_strings_and_seconds(self):
        clips = parse_clips(
            [
                {"name": "Intro", "startTime": "00:00:05", "endTime": "00:01:30.5"},
                {"start": 100, "end": "2:00"},
            ]
        )
        assert clips[0] == ClipSpec("Intro", 5.0, 90.5)
        assert clips[1] == ClipSpec("clip_2", 100.0, 120.0)
        assert clips[0].duration_s == 85.5

    @pytest.mark.parametrize(
        "raw",
        [
            [],
            "nope",
            [{"name": "a", "start": "00:00:10"}],
            [{"name": "a", "start": "00:00:10", "end": "00:00:05"}],
            [{"name": "a", "start": "00:61:00", "end": "01:00:00"}],
            [{"name": "a", "start": -1, "end": 5}],
            [{"name": "a", "start": "nan", "end": "10"}],
            [{"name": "a", "start": 0, "end": float("inf")}],
            ["not-a-dict"],
        ],
    )
    def test_parse_rejects_bad_input(self, raw):
        with pytest.raises(MalformedInput):
            parse_clips(raw)

    def test_clip_args_never_overwrite(self, tmp_path: Path):
        args = build_clip_args(tmp_path / "in.mp4", ClipSpec("a", 1.5, 3.0), tmp_path / "out.mp4")
        assert args[args.index("-ss") + 1] == "1.500"
        assert args[args.index("-to") + 1] == "3.000"
        assert args[args.index("-c") + 1] == "copy"
        assert args[args.index("-progress") + 1] == "pipe:1"
        assert "-n" in args
        assert args[-1] == str(tmp_path / "out.mp4")


class TestThumbnails:
    def test_defaults(self):
        opts = parse_thumbnail_options(None)
        assert (opts.width, opts.height, opts.auto_mode, opts.frame_count) == (1280, 720, False, 10)

    def test_frame_count_is_capped(self):
        opts = parse_thumbnail_options({"autoMode": True, "frameCount": 500})
        assert opts.frame_count == MAX_FRAMES

    @pytest.mark.parametrize(
        "raw",
        [
            {"width": 0},
            {"height": "tall"},
            {"frameCount": -2},
            {"timestamp": "later"},
            {"timestamp": "nan"},
            {"width": float("inf")},
            {"autoMode": True, "frameCount": float("inf")},
        ],
    )
    def test_rejects_bad_options(self, raw):
        with pytest.raises(MalformedInput):
            parse_thumbnail_options(raw)

    def test_evenly_spaced_timestamps(self):
        assert frame_timestamps(100.0, 4) == [20.0, 40.0, 60.0, 80.0]
        assert len(frame_timestamps(100.0, 0)) == 1

    def test_frame_args(self, tmp_path: Path):
        args = build_frame_args(tmp_path / "in.mp4", 12.0, 640, 360, tmp_path / "f.jpg")
        assert args[args.index("-vf") + 1] == "scale=640:360"
        assert args[args.index("-vframes") + 1] == "1"

    def test_duration_output(self, tmp_path: Path):
        args = build_duration_args(tmp_path / "in.mp4")
        assert args[-1] == str(tmp_path / "in.mp4")
        assert "format=duration" in args
        assert parse_duration_output("123.45\n") == 123.45
        for bad in ("N/A", "nan", "-3"):
            with pytest.raises(ToolFailed):
                parse_duration_output(bad)


class TestTimecode:
    def test_clock_round_trip_values(self):
        assert parse_clock("01:02:03") == 3723
        assert format_clock(3723.9) == "01:02:03"
        with pytest.raises(ValueError):
            parse_clock("00:60:00")
        with pytest.raises(ValueError):
            parse_clock("1:2:3")

    def test_time_spec(self):
        assert parse_time_spec("90") == 90.0
        assert parse_time_spec("01:30") == 90.0
        assert parse_time_spec("00:00:01,250") == 1.25
        with pytest.raises(ValueError):
            parse_time_spec(True)
        with pytest.raises(ValueError):
            parse_time_spec("")

    @pytest.mark.parametrize("raw", ["nan", "inf", "-inf", float("nan"), float("inf")])
    def test_time_spec_rejects_non_finite(self, raw):
        with pytest.raises(ValueError):
            parse_time_spec(raw)


def test_filenames(tmp_path: Path):
    assert sanitize_filename("My Clip: part 1/2") == "My_Clip__part_1_2"
    assert sanitize_filename("!!!") == "clip"
    first = unique_path(tmp_path, "a", ".mp4")
    first.write_bytes(b"")
    assert unique_path(tmp_path, "a", ".mp4") == tmp_path / "a_1.mp4"
