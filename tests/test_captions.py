from pathlib import Path

from mediatoolkit.captions import (
    captions_to_text,
    clean_text,
    decode_entities,
    find_caption_file,
    parse_captions,
    transcript_duration,
)

VTT = """WEBVTT
Kind: captions
Language: en

00:00:01.000 --> 00:00:03.000 align:start position:0%
Hello <c.colorE5E5E5>there</c>

00:00:03.000 --> 00:00:05.000
Hello there

00:00:05.000 --> 00:00:07.500
Tom &amp; Jerry&nbsp;say &lt;hi&gt;

00:01:10.000 --> 00:01:12.000
<00:01:10.500><c>last</c> line
"""

SRT = """1
00:00:02,500 --> 00:00:04,000
First cue

2
00:00:04,000 --> 00:00:06,000
Second cue
"""


def test_vtt_segments_are_ordered_and_deduplicated():
    segments = parse_captions(VTT)
    assert [s.text for s in segments] == ["Hello there", "Tom & Jerry say", "last line"]
    assert [s.offset_seconds for s in segments] == [1, 5, 70]
    assert segments[2].clock == "00:01:10"
    assert segments[0].to_dict() == {"timestamp": 1, "time": "00:00:01", "text": "Hello there"}


def test_srt_with_comma_milliseconds():
    segments = parse_captions(SRT)
    assert [(s.offset_seconds, s.text) for s in segments] == [(2, "First cue"), (4, "Second cue")]


def test_n_distinct_cues_give_n_segments():
    cues = "\n\n".join(f"00:00:{i:02d}.000 --> 00:00:{i + 1:02d}.000\nline {i}" for i in range(12))
    segments = parse_captions("WEBVTT\n\n" + cues)
    assert len(segments) == 12
    offsets = [s.offset_seconds for s in segments]
    assert offsets == sorted(offsets)


def test_text_before_first_cue_is_ignored():
    assert parse_captions("WEBVTT\n\nstray text\n") == []
    assert parse_captions("") == []


def test_plain_text_has_no_markup_or_entities():
    text = captions_to_text(VTT)
    assert "<c" not in text
    assert "&amp;" not in text
    assert "&nbsp;" not in text
    assert "-->" not in text
    assert "WEBVTT" not in text
    # Duplicates are kept in the plain text.
    assert text.count("Hello there") == 2


def test_parsing_is_idempotent():
    assert parse_captions(VTT) == parse_captions(VTT)
    assert captions_to_text(SRT) == captions_to_text(SRT)


def test_entity_decoding():
    assert decode_entities("a &amp; b &#39;c&#39; &#x41;") == "a & b 'c' A"
    assert decode_entities("&bogusentity;x") == "x"
    assert clean_text("&amp;lt;b&amp;gt;bold&amp;lt;/b&amp;gt;") == "bold"


def test_transcript_duration_is_last_offset():
    assert transcript_duration(parse_captions(VTT)) == 70
    assert transcript_duration([]) == 0


def test_find_caption_file(tmp_path: Path):
    assert find_caption_file(tmp_path / "missing") is None
    (tmp_path / "notes.txt").write_text("x")
    assert find_caption_file(tmp_path) is None
    (tmp_path / "subtitles.en.vtt").write_text(VTT)
    assert find_caption_file(tmp_path) == tmp_path / "subtitles.en.vtt"


def test_escaped_comparison_signs_survive_cleaning():
    doc = "WEBVTT\n\n00:00:01.000 --> 00:00:02.000\n5 &lt; 10 and 10 &gt; 3\n"
    assert [s.text for s in parse_captions(doc)] == ["5 < 10 and 10 > 3"]
    assert captions_to_text(doc) == "5 < 10 and 10 > 3"
    assert clean_text("a &lt;i&gt;b&lt;/i&gt; &lt;3") == "a b <3"


NOTED_VTT = """WEBVTT

00:00:01.000 --> 00:00:02.000
first cue

NOTE this comment
spans several lines
and is not caption text

STYLE
::cue { color: lime }

00:00:03.000 --> 00:00:04.000
second cue
"""


def test_blank_line_ends_a_cue():
    segments = parse_captions(NOTED_VTT)
    assert [(s.offset_seconds, s.text) for s in segments] == [(1, "first cue"), (3, "second cue")]
    assert captions_to_text(NOTED_VTT) == "first cue second cue"
