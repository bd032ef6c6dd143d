"""
Configuration management for the edit engine.

Supports YAML and JSON configuration files, environment overrides and
defaults. A config instance is passed explicitly to every compiler and to the
engine; nothing reads global state.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)


# Authoritative renderer (external ffmpeg process)
DEFAULT_RENDER_SETTINGS = {
    "ffmpeg_binary": "ffmpeg",
    "ffprobe_binary": "ffprobe",
    "timeout": 7200,  # seconds before an in-flight render is killed
    "video_codec": "libx264",
    "audio_codec": "aac",
    "preset": "medium",
    "crf": 23,
    "image_duration": 1,  # seconds a still image is looped for
}

# Preview renderer (remote transformation service URLs)
DEFAULT_PREVIEW_SETTINGS = {
    "cloud_name": "demo",
    "delivery_base": "https://res.cloudinary.com",
    "inset": 20,
    "font_family": "Arial",
}

# Text overlays (drawtext)
DEFAULT_TEXT_SETTINGS = {
    "font": "Arial",
    "font_size": 24,
    "color": "white",
    "position": "bottom",
    "margin": 10,
    "box_opacity": 0.5,
}

# Caption burn-in (ASS subtitles)
DEFAULT_CAPTION_SETTINGS = {
    "font": "Arial",
    "color": "white",
    "size": "medium",
    "position": "bottom",
    "style": "normal",
    "play_res": (1920, 1080),
}


@dataclass
class EngineConfig:
    """
    Configuration container for the edit engine.

    Attributes:
        render_settings: External media engine binaries and encode settings
        preview_settings: Preview service delivery settings
        text_settings: Defaults for text overlays
        caption_settings: Defaults for caption burn-in
        color_presets: Extra or overriding colour-grade presets by name
        template_file: Template catalog file (defaults to the bundled catalog)
        temp_dir: Directory for generated subtitle files
        font_file: Explicit font file for text overlays
        debug: Enable debug mode
    """

    render_settings: dict[str, Any] = field(
        default_factory=lambda: DEFAULT_RENDER_SETTINGS.copy()
    )
    preview_settings: dict[str, Any] = field(
        default_factory=lambda: DEFAULT_PREVIEW_SETTINGS.copy()
    )
    text_settings: dict[str, Any] = field(
        default_factory=lambda: DEFAULT_TEXT_SETTINGS.copy()
    )
    caption_settings: dict[str, Any] = field(
        default_factory=lambda: DEFAULT_CAPTION_SETTINGS.copy()
    )

    color_presets: dict[str, dict[str, Any]] = field(default_factory=dict)

    template_file: Optional[Path] = None
    temp_dir: Optional[Path] = None
    font_file: Optional[Path] = None
    debug: bool = False

    @classmethod
    def from_file(cls, path: Path | str) -> EngineConfig:
        """Load configuration from a YAML or JSON file."""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r') as f:
            if path.suffix in ('.yaml', '.yml'):
                data = yaml.safe_load(f)
            elif path.suffix == '.json':
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config format: {path.suffix}")

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        """Create configuration from a dictionary, merging into defaults."""
        config = cls()

        if "render_settings" in data:
            config.render_settings.update(data["render_settings"])

        if "preview_settings" in data:
            config.preview_settings.update(data["preview_settings"])

        if "text_settings" in data:
            config.text_settings.update(data["text_settings"])

        if "caption_settings" in data:
            config.caption_settings.update(data["caption_settings"])

        if "color_presets" in data:
            config.color_presets = dict(data["color_presets"])

        for key in ("template_file", "temp_dir", "font_file"):
            if data.get(key):
                setattr(config, key, Path(data[key]))

        if "debug" in data:
            config.debug = bool(data["debug"])

        return config

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> EngineConfig:
        """
        Create configuration from environment variables.

        Recognised variables: VEDIT_FFMPEG_PATH, VEDIT_FFPROBE_PATH,
        VEDIT_TEMP_DIR, VEDIT_CLOUD_NAME (or CLOUDINARY_CLOUD_NAME),
        FFMPEG_TIMEOUT_SECONDS and VEDIT_DEBUG.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if env.get("VEDIT_FFMPEG_PATH"):
            config.render_settings["ffmpeg_binary"] = env["VEDIT_FFMPEG_PATH"]
        if env.get("VEDIT_FFPROBE_PATH"):
            config.render_settings["ffprobe_binary"] = env["VEDIT_FFPROBE_PATH"]
        if env.get("FFMPEG_TIMEOUT_SECONDS"):
            config.render_settings["timeout"] = int(env["FFMPEG_TIMEOUT_SECONDS"])

        cloud_name = env.get("VEDIT_CLOUD_NAME") or env.get("CLOUDINARY_CLOUD_NAME")
        if cloud_name:
            config.preview_settings["cloud_name"] = cloud_name

        if env.get("VEDIT_TEMP_DIR"):
            config.temp_dir = Path(env["VEDIT_TEMP_DIR"])

        config.debug = env.get("VEDIT_DEBUG", "").lower() in ("1", "true", "yes")
        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        caption_settings = dict(self.caption_settings)
        caption_settings["play_res"] = list(caption_settings.get("play_res", ()))
        return {
            "render_settings": self.render_settings,
            "preview_settings": self.preview_settings,
            "text_settings": self.text_settings,
            "caption_settings": caption_settings,
            "color_presets": self.color_presets,
            "template_file": str(self.template_file) if self.template_file else None,
            "temp_dir": str(self.temp_dir) if self.temp_dir else None,
            "font_file": str(self.font_file) if self.font_file else None,
            "debug": self.debug,
        }

    def save(self, path: Path | str):
        """Save configuration to a YAML or JSON file."""
        path = Path(path)

        with open(path, 'w') as f:
            if path.suffix in ('.yaml', '.yml'):
                yaml.dump(self.to_dict(), f, default_flow_style=False)
            elif path.suffix == '.json':
                json.dump(self.to_dict(), f, indent=2)
            else:
                raise ValueError(f"Unsupported config format: {path.suffix}")

        logger.info(f"Configuration saved to: {path}")

    def get_temp_dir(self) -> Path:
        """Return the working directory for generated files, creating it if needed."""
        temp_dir = self.temp_dir or Path(tempfile.gettempdir()) / "vedit"
        temp_dir.mkdir(parents=True, exist_ok=True)
        return temp_dir

    @property
    def ffmpeg_binary(self) -> str:
        return self.render_settings.get("ffmpeg_binary", "ffmpeg")

    @property
    def ffprobe_binary(self) -> str:
        return self.render_settings.get("ffprobe_binary", "ffprobe")

    def validate(self) -> list[str]:
        """
        Validate the configuration and return a list of errors.
        Returns an empty list if configuration is valid.
        """
        errors = []

        timeout = self.render_settings.get("timeout")
        if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
            errors.append(f"Invalid render timeout: {timeout}")

        inset = self.preview_settings.get("inset")
        if not isinstance(inset, (int, float)) or inset < 0:
            errors.append(f"Invalid preview inset: {inset}")

        if not self.preview_settings.get("cloud_name"):
            errors.append("Preview cloud_name is not set")

        if self.template_file and not self.template_file.exists():
            errors.append(f"Template file not found: {self.template_file}")

        if self.font_file and not self.font_file.exists():
            errors.append(f"Font file not found: {self.font_file}")

        play_res = self.caption_settings.get("play_res")
        if not play_res or len(play_res) != 2:
            errors.append(f"Invalid caption play_res: {play_res}")

        for name, preset in self.color_presets.items():
            if not isinstance(preset, dict):
                errors.append(f"Colour preset '{name}' must be a mapping")

        return errors
