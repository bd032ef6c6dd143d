"""Tests for caption burn-in."""

import pytest

from vedit.core.errors import CompilationError
from vedit.core.operation import CaptionCue, CaptionParams
from vedit.filters.captions import (
    CaptionCompiler,
    CaptionStyle,
    ass_color,
    ass_timestamp,
    escape_ass_text,
)


@pytest.fixture
def captions(config) -> CaptionCompiler:
    return CaptionCompiler(config)


def test_ass_color():
    assert ass_color("red") == "&H000000FF"
    assert ass_color("#00ff00", alpha=0x80) == "&H8000FF00"


def test_ass_color_rejects_unknown():
    with pytest.raises(ValueError):
        ass_color("not-a-colour")


def test_ass_timestamp():
    assert ass_timestamp(0) == "0:00:00.00"
    assert ass_timestamp(3661.5) == "1:01:01.50"
    assert ass_timestamp(-2) == "0:00:00.00"


def test_escape_ass_text():
    assert escape_ass_text("a{b}\nc") == "a\\{b\\}\\Nc"


class TestStyle:

    def test_defaults(self, captions):
        style, warnings = captions.resolve_style(CaptionParams())
        assert warnings == []
        assert style.alignment == 2
        assert style.size == 24
        assert style.primary == "&H00FFFFFF"

    def test_lookup_tables(self, captions):
        style, _ = captions.resolve_style(
            CaptionParams(color="yellow", size="large", position="top", style="bold")
        )
        assert style.primary == "&H0000FFFF"
        assert style.size == 36
        assert style.alignment == 8
        assert style.bold is True

    def test_unknown_values_fall_back(self, captions):
        style, warnings = captions.resolve_style(
            CaptionParams(color="nope", size="huge", position="middle", style="wavy")
        )
        assert style.primary == "&H00FFFFFF"
        assert style.size == 24
        assert style.alignment == 2
        assert len(warnings) == 4

    def test_background_switches_to_opaque_box(self, captions):
        style, _ = captions.resolve_style(CaptionParams(background_color="black"))
        assert style.border_style == 3
        assert style.back_color == "&H40000000"


class TestCompile:

    def test_inline_cues_write_ass_file(self, captions, config):
        params = CaptionParams(captions=(
            CaptionCue("Second", 3.0, 4.0),
            CaptionCue("Hello", 1.0, 2.5),
        ))
        expression = captions.compile(params)

        stage = expression.video[0]
        assert stage.name == "subtitles"
        path = stage.option("filename")
        assert path.endswith(".ass")
        assert path.startswith(str(config.get_temp_dir()))

        with open(path, encoding="utf-8") as f:
            document = f.read()
        assert "Dialogue: 0,0:00:01.00,0:00:02.50,Default,,0,0,0,,Hello" in document
        dialogue = [line for line in document.splitlines() if line.startswith("Dialogue:")]
        assert [line.rsplit(",", 1)[1] for line in dialogue] == ["Hello", "Second"]

    def test_identical_requests_share_a_file(self, captions, config):
        params = CaptionParams(captions=(CaptionCue("Hello", 0.0, 1.0),))
        first = captions.compile(params)
        second = captions.compile(params)
        third = captions.compile(CaptionParams(captions=(CaptionCue("Other", 0.0, 1.0),)))

        assert first.scratch_files == second.scratch_files
        assert first.scratch_files != third.scratch_files
        assert first.video[0].option("filename") == first.scratch_files[0]
        assert len(list(config.get_temp_dir().glob("captions_*.ass"))) == 2

    def test_empty_cues_are_dropped(self, captions):
        document = captions.build_ass_document(
            (CaptionCue("", 0, 1), CaptionCue("Zero", 2, 2), CaptionCue("Ok", 3, 4)),
            CaptionStyle(),
        )
        assert document.count("Dialogue:") == 1

    def test_existing_srt_gets_force_style(self, captions, tmp_path):
        srt = tmp_path / "subs.srt"
        srt.write_text("1\n00:00:01,000 --> 00:00:02,000\nHi\n")

        expression = captions.compile(CaptionParams(subtitle_file=str(srt)))
        stage = expression.video[0]
        assert stage.option("filename") == str(srt)
        assert "Alignment=2" in stage.option("force_style")

    def test_existing_ass_is_used_as_is(self, captions, tmp_path):
        ass = tmp_path / "subs.ass"
        ass.write_text("[Script Info]\n")

        stage = captions.compile(CaptionParams(subtitle_file=str(ass))).video[0]
        assert stage.option("force_style") is None

    def test_missing_file_fails(self, captions, tmp_path):
        with pytest.raises(CompilationError) as exc:
            captions.compile(CaptionParams(subtitle_file=str(tmp_path / "missing.srt")))
        assert exc.value.details["subtitle_file"].endswith("missing.srt")

    def test_nothing_to_burn_in(self, captions):
        expression = captions.compile(CaptionParams())
        assert expression.empty
        assert expression.warnings == (
            "No captions or subtitle file supplied, nothing to burn in",
        )
