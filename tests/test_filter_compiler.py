"""
Tests for the filter compiler.

These verify that each operation kind compiles to the expected ffmpeg
filter text, and that time windows gate the result exactly once.
"""

import pytest

from vedit.core.errors import CompilationError
from vedit.core.operation import Operation, TimeWindow
from vedit.filters.compiler import FilterCompiler, atempo_chain, drawtext_color
from vedit.filters.stages import unescape_filter_value


@pytest.fixture
def compiler(config) -> FilterCompiler:
    return FilterCompiler(config)


class TestColorGrade:

    def test_cinematic_is_a_single_curve(self, compiler):
        expression = compiler.compile("colorGrade", {"preset": "Cinematic"})
        assert expression.serialize() == "curves=preset=strong_contrast"
        assert expression.warnings == ()

    def test_unknown_preset_degrades_to_neutral(self, compiler):
        expression = compiler.compile("colorGrade", {"preset": "Mystery"})
        assert expression.serialize() == "curves=preset=medium_contrast"
        assert expression.warnings == (
            "Unknown colour preset 'Mystery', using neutral grade",
        )

    def test_grayscale_preset(self, compiler):
        expression = compiler.compile("colorGrade", {"preset": "noir"})
        assert expression.serialize() == "eq=contrast=1.3,hue=s=0"

    def test_intensity_scales_deltas(self, compiler):
        expression = compiler.compile("colorGrade", {"preset": "vibrant", "intensity": 0.5})
        assert expression.serialize() == "eq=saturation=1.2"

    def test_tint_uses_colorbalance(self, compiler):
        expression = compiler.compile("colorGrade", {"preset": "cool"})
        assert expression.serialize().startswith("colorbalance=rs=")


class TestTimeWindows:

    def test_window_on_single_stage(self, compiler):
        expression = compiler.compile(
            "colorGrade", {"preset": "cinematic", "startTime": 2, "endTime": 5}
        )
        assert expression.serialize() == (
            "curves=preset=strong_contrast:enable='between(t,2,5)'"
        )

    def test_open_ended_window(self, compiler):
        expression = compiler.compile("applyEffect", {"effect": "sepia", "startTime": 3})
        assert expression.serialize().endswith("enable='gte(t,3)'")

    def test_multi_stage_window_uses_one_gate(self, compiler):
        expression = compiler.compile(
            "colorGrade", {"preset": "noir", "startTime": 1, "endTime": 4}
        )
        text = expression.serialize()
        assert text.startswith("split=2[vbase][vfx];")
        assert text.count("enable=") == 1

    def test_window_ignored_with_warning(self, compiler):
        expression = compiler.compile("rotate", {"degrees": 90}, TimeWindow(1, 2))
        assert expression.serialize() == "transpose=1"
        assert expression.warnings == (
            "rotate does not support time windows, applying to the whole clip",
        )


class TestEffectsAndFilters:

    def test_effect_intensity(self, compiler):
        expression = compiler.compile("applyEffect", {"effect": "blur", "intensity": 0.5})
        assert expression.serialize() == "boxblur=luma_radius=4:luma_power=1"

    def test_unknown_effect(self, compiler):
        expression = compiler.compile("applyEffect", {"effect": "warp"})
        assert expression.serialize() == "curves=preset=medium_contrast"
        assert len(expression.warnings) == 1

    def test_filter_level(self, compiler):
        expression = compiler.compile("filter", {"filterType": "blur", "level": 5})
        assert expression.serialize() == "boxblur=luma_radius=5:luma_power=1"

    def test_grayscale_filter(self, compiler):
        assert compiler.compile("filter", {"type": "B&W"}).serialize() == "hue=s=0"


class TestText:

    def test_defaults(self, compiler):
        expression = compiler.compile("addText", {"text": "Hello"})
        assert expression.serialize() == (
            "drawtext=text=Hello:expansion=none:fontsize=24:fontcolor=0xFFFFFF"
            ":x=(w-text_w)/2:y=h-text_h-10"
            ":shadowcolor=black@0.5:shadowx=2:shadowy=2"
        )

    def test_text_is_escaped(self, compiler):
        text = "Hello: it's 50%, [ok]; done"
        expression = compiler.compile("addText", {"text": text})
        stage = expression.video[0]
        assert stage.option("text") == text
        serialized = stage.serialize()
        escaped = serialized.split("drawtext=text=", 1)[1].split(":expansion=", 1)[0]
        assert unescape_filter_value(escaped) == text

    def test_named_size_and_position(self, compiler):
        expression = compiler.compile(
            "customText", {"text": "Sale", "fontSize": "large", "position": "top-right"}
        )
        stage = expression.video[0]
        assert stage.option("fontsize") == 48
        assert str(stage.option("x")) == "w-text_w-10"
        assert str(stage.option("y")) == "10"

    def test_background_box(self, compiler):
        expression = compiler.compile(
            "addText", {"text": "Hi", "backgroundColor": "black", "fontColor": "#ff0000"}
        )
        stage = expression.video[0]
        assert stage.option("fontcolor") == "0xFF0000"
        assert stage.option("box") == 1
        assert stage.option("boxcolor") == "0x000000@0.5"

    def test_window_gates_drawtext(self, compiler):
        expression = compiler.compile("addText", {"text": "Hi", "startTime": 1, "endTime": 3})
        assert expression.serialize().endswith(":enable='between(t,1,3)'")


class TestGeometryAndTiming:

    def test_trim(self, compiler):
        expression = compiler.compile("trim", {"start": 2, "end": 8})
        assert expression.video_filter() == "trim=start=2:end=8,setpts=PTS-STARTPTS"
        assert expression.audio_filter() == "atrim=start=2:end=8,asetpts=PTS-STARTPTS"

    def test_speed(self, compiler):
        expression = compiler.compile("adjustSpeed", {"speed": 2})
        assert expression.video_filter() == "setpts=PTS/2"
        assert expression.audio_filter() == "atempo=2"

    def test_speed_one_is_empty(self, compiler):
        assert compiler.compile("adjustSpeed", {"speed": 1}).empty

    def test_atempo_chain(self):
        assert [s.serialize() for s in atempo_chain(4.0)] == ["atempo=2", "atempo=2"]
        assert [s.serialize() for s in atempo_chain(0.25)] == ["atempo=0.5", "atempo=0.5"]

    @pytest.mark.parametrize("degrees, expected", [
        (90, "transpose=1"),
        (-90, "transpose=2"),
        (180, "hflip,vflip"),
        (45, "rotate=angle=0.785398:fillcolor=black@0"),
    ])
    def test_rotate(self, compiler, degrees, expected):
        assert compiler.compile("rotate", {"degrees": degrees}).serialize() == expected

    def test_rotate_zero_is_empty(self, compiler):
        assert compiler.compile("rotate", {"degrees": 0}).empty

    def test_crop(self, compiler):
        expression = compiler.compile("crop", {"x": 10, "y": 20, "width": 640, "height": 360})
        assert expression.serialize() == "crop=w=640:h=360:x=10:y=20"

    def test_zoom_in(self, compiler):
        expression = compiler.compile("adjustZoom", {"direction": "in"})
        assert expression.serialize().startswith("crop=w=trunc(iw/1.2/2)*2")

    def test_zoom_out_pads(self, compiler):
        expression = compiler.compile("adjustZoom", {"zoom": 0.5})
        assert [s.name for s in expression.video] == ["scale", "pad"]


class TestFailures:

    def test_remove_clip_is_not_a_single_expression(self, compiler):
        with pytest.raises(CompilationError):
            compiler.compile_operation(Operation.build("removeClip", {"startTime": 1, "endTime": 2}))

    def test_missing_crop_params(self, compiler):
        with pytest.raises(CompilationError):
            compiler.compile("crop", {"x": 1})


def test_drawtext_color_fallback():
    assert drawtext_color("not-a-colour") == "0xFFFFFF"
    assert drawtext_color("navy") == "0x000080"
