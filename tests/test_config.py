"""Tests for EngineConfig."""

from pathlib import Path

import pytest

from vedit.core.config import EngineConfig


class TestLoading:

    def test_defaults(self):
        config = EngineConfig()
        assert config.ffmpeg_binary == "ffmpeg"
        assert config.render_settings["timeout"] == 7200
        assert config.preview_settings["cloud_name"] == "demo"
        assert config.validate() == []

    def test_from_dict_merges_into_defaults(self):
        config = EngineConfig.from_dict({
            "render_settings": {"crf": 18},
            "preview_settings": {"cloud_name": "acme"},
            "color_presets": {"house": {"contrast": 10}},
            "temp_dir": "/tmp/vedit-test",
            "debug": True,
        })
        assert config.render_settings["crf"] == 18
        assert config.render_settings["video_codec"] == "libx264"
        assert config.preview_settings["cloud_name"] == "acme"
        assert config.color_presets == {"house": {"contrast": 10}}
        assert config.temp_dir == Path("/tmp/vedit-test")
        assert config.debug is True

    def test_instances_do_not_share_settings(self):
        first = EngineConfig()
        first.render_settings["crf"] = 1
        assert EngineConfig().render_settings["crf"] == 23

    def test_from_env(self):
        config = EngineConfig.from_env({
            "VEDIT_FFMPEG_PATH": "/opt/ffmpeg",
            "FFMPEG_TIMEOUT_SECONDS": "30",
            "CLOUDINARY_CLOUD_NAME": "fallback-cloud",
            "VEDIT_DEBUG": "yes",
        })
        assert config.ffmpeg_binary == "/opt/ffmpeg"
        assert config.render_settings["timeout"] == 30
        assert config.preview_settings["cloud_name"] == "fallback-cloud"
        assert config.debug is True

    def test_from_env_prefers_own_cloud_name(self):
        config = EngineConfig.from_env({
            "VEDIT_CLOUD_NAME": "mine",
            "CLOUDINARY_CLOUD_NAME": "other",
        })
        assert config.preview_settings["cloud_name"] == "mine"
        assert config.debug is False

    @pytest.mark.parametrize("suffix", [".yaml", ".json"])
    def test_save_and_load(self, tmp_path, suffix):
        path = tmp_path / f"config{suffix}"
        original = EngineConfig.from_dict({"text_settings": {"font_size": 30}})
        original.save(path)

        loaded = EngineConfig.from_file(path)
        assert loaded.text_settings["font_size"] == 30
        assert list(loaded.caption_settings["play_res"]) == [1920, 1080]

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("")
        with pytest.raises(ValueError):
            EngineConfig.from_file(path)
        with pytest.raises(ValueError):
            EngineConfig().save(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            EngineConfig.from_file(tmp_path / "missing.yaml")


class TestValidation:

    def test_reports_every_problem(self, tmp_path):
        config = EngineConfig.from_dict({
            "render_settings": {"timeout": -1},
            "preview_settings": {"cloud_name": "", "inset": -5},
            "template_file": str(tmp_path / "missing.yaml"),
            "color_presets": {"broken": "not a mapping"},
        })
        errors = config.validate()
        assert len(errors) == 5
        assert "Invalid render timeout: -1" in errors
        assert "Preview cloud_name is not set" in errors

    def test_get_temp_dir_creates_directory(self, tmp_path):
        config = EngineConfig(temp_dir=tmp_path / "a" / "b")
        assert config.get_temp_dir().is_dir()
