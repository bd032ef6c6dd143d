"""Tests for font lookup."""

from vedit.utils.fonts import find_font_file, normalize_font_name, resolve_font


def test_normalize_font_name():
    assert normalize_font_name("  Open Sans ") == "open sans"


def test_explicit_path(tmp_path):
    font = tmp_path / "Custom.ttf"
    font.write_bytes(b"")
    assert find_font_file(str(font)) == font


def test_prefers_regular_weight(tmp_path):
    for name in ("VeditTestFace-Bold.ttf", "VeditTestFace-Regular.ttf"):
        (tmp_path / name).write_bytes(b"")
    assert find_font_file("VeditTestFace", [tmp_path]).name == "VeditTestFace-Regular.ttf"


def test_unknown_font():
    assert find_font_file("No Such Font Family 1234") is None


def test_configured_font_file_wins(tmp_path):
    font = tmp_path / "House.otf"
    font.write_bytes(b"")
    assert resolve_font("Arial", font) == font


def test_no_name():
    assert resolve_font(None) is None
