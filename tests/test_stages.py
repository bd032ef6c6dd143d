"""
Tests for typed filter stages, escaping and temporal gates.
"""

import pytest

from vedit.filters.stages import (
    Expr,
    FilterExpression,
    FilterStage,
    TemporalGate,
    escape_filter_value,
    format_value,
    unescape_filter_value,
)


class TestEscaping:

    @pytest.mark.parametrize("text", [
        "plain",
        "Hello: world",
        "it's 50%, ok",
        "path\\to\\file.srt",
        "[brackets]; semi;colon",
        "'''",
        "C:\\Users\\me\\My Videos\\clip [final].ass",
    ])
    def test_round_trip(self, text):
        assert unescape_filter_value(escape_filter_value(text)) == text

    def test_delimiters_are_escaped(self):
        escaped = escape_filter_value("a:b,c")
        assert ":" not in escaped.replace("\\:", "")
        assert "," not in escaped.replace("\\,", "")

    def test_colon_escaped_for_both_parsers(self):
        assert escape_filter_value("a:b") == "a\\\\:b"

    def test_comma_escaped_for_graph_parser(self):
        assert escape_filter_value("a,b") == "a\\,b"


class TestFormatValue:

    def test_numbers(self):
        assert format_value(2.0) == "2"
        assert format_value(0.785398) == "0.785398"
        assert format_value(True) == "1"
        assert format_value(7) == "7"

    def test_expression_quoting(self):
        assert str(Expr("PTS/2")) == "PTS/2"
        assert str(Expr("if(gt(t,1),1,0)")) == "'if(gt(t,1),1,0)'"


class TestTemporalGate:

    def test_bounded_window(self):
        assert TemporalGate(2, 5).predicate == "between(t,2,5)"

    def test_open_window(self):
        assert TemporalGate(3).predicate == "gte(t,3)"

    def test_serialize(self):
        assert TemporalGate(1.5, 4).serialize() == "enable='between(t,1.5,4)'"


class TestFilterStage:

    def test_none_options_dropped(self):
        stage = FilterStage.of("trim", start=2.0, end=None)
        assert stage.serialize() == "trim=start=2"

    def test_bare_stage(self):
        assert FilterStage.of("hflip").serialize() == "hflip"

    def test_positional_and_named(self):
        stage = FilterStage.of("setpts", "PTS-STARTPTS")
        assert stage.serialize() == "setpts=PTS-STARTPTS"
        assert FilterStage.of("eq", contrast=1.3).option("contrast") == 1.3


class TestFilterExpression:

    def test_single_stage_carries_gate(self):
        expression = FilterExpression(
            video=(FilterStage.of("curves", preset="strong_contrast"),),
            gate=TemporalGate(2, 5),
        )
        assert expression.video_filter() == (
            "curves=preset=strong_contrast:enable='between(t,2,5)'"
        )

    def test_multi_stage_gate_applied_once(self):
        expression = FilterExpression(
            video=(FilterStage.of("eq", contrast=1.3), FilterStage.of("hue", s=0)),
            gate=TemporalGate(1, 4),
        )
        text = expression.video_filter()
        assert text == (
            "split=2[vbase][vfx];"
            "[vfx]eq=contrast=1.3,hue=s=0[vfxout];"
            "[vbase][vfxout]overlay=enable='between(t,1,4)'"
        )
        assert text.count("enable=") == 1

    def test_empty(self):
        expression = FilterExpression()
        assert expression.empty
        assert expression.video_filter() is None
        assert expression.serialize() == "null"

    def test_audio_only(self):
        expression = FilterExpression(audio=(FilterStage.of("atempo", 2.0),))
        assert expression.serialize() == "atempo=2"
        assert expression.video_filter() is None

    def test_with_warnings(self):
        expression = FilterExpression().with_warnings("one").with_warnings("two")
        assert expression.warnings == ("one", "two")
