"""
Tests for preset lookups and their fallbacks.
"""

import logging

import pytest

from vedit.catalog.presets import (
    NEUTRAL_EFFECT,
    NEUTRAL_PRESET,
    PresetMapping,
    normalize_name,
)


@pytest.fixture
def presets() -> PresetMapping:
    return PresetMapping()


class TestColorPresets:

    @pytest.mark.parametrize("name", ["cinematic", "Cinematic", "CINEMATIC", " cinema "])
    def test_case_insensitive_lookup(self, presets, name):
        assert presets.color(name).name == "cinematic"

    def test_aliases(self, presets):
        assert presets.color("b&w").name == "black & white"
        assert presets.color("golden_hour").name == "golden hour"

    def test_unknown_falls_back_to_neutral(self, presets, caplog):
        with caplog.at_level(logging.WARNING):
            preset = presets.color("Not A Preset")
        assert preset is NEUTRAL_PRESET
        assert "Unknown colour preset 'Not A Preset'" in caplog.text

    def test_known_check(self, presets):
        assert presets.is_known_color("Noir")
        assert not presets.is_known_color("nope")
        assert not presets.is_known_color(None)

    def test_overrides(self):
        presets = PresetMapping({"brand": {"brightness": 12, "tint": "#112233"}})
        brand = presets.color("Brand")
        assert brand.brightness == 12
        assert brand.tint.color == "#112233"

    def test_scaled_intensity(self, presets):
        scaled = presets.color("dramatic").scaled(0.5)
        assert scaled.contrast == 20
        assert scaled.saturation == -10
        assert presets.color("dramatic").scaled(None) is presets.color("dramatic")


class TestEffectPresets:

    def test_unknown_effect(self, presets):
        assert presets.effect("warp drive") is NEUTRAL_EFFECT

    def test_effect_alias(self, presets):
        assert presets.effect("Grain").name == "film grain"

    def test_filter_types(self, presets):
        assert presets.filter_type("Greyscale").name == "grayscale"
        assert presets.filter_type("denoise").name == "noise reduction"
        assert presets.filter_type("sparkle") is NEUTRAL_EFFECT

    def test_names_listed(self, presets):
        assert "cinematic" in presets.color_names()
        assert "dreamy glow" in presets.effect_names()
        assert "invert" in presets.filter_names()


def test_normalize_name():
    assert normalize_name("  Golden_Hour ") == "golden hour"
    assert normalize_name("soft--focus") == "soft focus"
    assert normalize_name(None) == ""
