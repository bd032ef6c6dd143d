"""
Caption burn-in.

Inline captions are written to an ASS subtitle file in the engine's temp
directory and burned in with the ``subtitles`` filter. An existing subtitle
file can be referenced instead; it must exist at compile time.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import ImageColor

from vedit.core.config import EngineConfig
from vedit.core.errors import CompilationError
from vedit.core.operation import CaptionCue, CaptionParams
from vedit.filters.stages import FilterExpression, FilterStage

logger = logging.getLogger(__name__)

CAPTION_SIZES = {
    "small": 18,
    "medium": 24,
    "large": 36,
    "xlarge": 48,
}

# ASS numpad alignment
CAPTION_ALIGNMENT = {
    "bottom-left": 1,
    "bottom": 2,
    "bottom-right": 3,
    "left": 4,
    "center": 5,
    "right": 6,
    "top-left": 7,
    "top": 8,
    "top-right": 9,
}

# (bold, outline width, shadow depth)
CAPTION_STYLES = {
    "normal": (False, 2, 1),
    "bold": (True, 2, 1),
    "glow": (True, 4, 3),
    "outline": (False, 3, 0),
    "shadow": (False, 1, 3),
}


def ass_color(color: str, alpha: int = 0) -> str:
    """
    Convert a colour name or hex string to ASS ``&HAABBGGRR`` notation.

    Raises:
        ValueError: If Pillow cannot parse the colour
    """
    rgb = ImageColor.getrgb(color.strip())
    r, g, b = rgb[:3]
    return f"&H{alpha:02X}{b:02X}{g:02X}{r:02X}"


def ass_timestamp(seconds: float) -> str:
    """Format seconds as ASS ``H:MM:SS.cc``."""
    centis = int(round(max(seconds, 0.0) * 100))
    hours, centis = divmod(centis, 360000)
    minutes, centis = divmod(centis, 6000)
    secs, centis = divmod(centis, 100)
    return f"{hours}:{minutes:02d}:{secs:02d}.{centis:02d}"


def escape_ass_text(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace("{", "\\{")
        .replace("}", "\\}")
        .replace("\r\n", "\n")
        .replace("\n", "\\N")
    )


@dataclass(frozen=True)
class CaptionStyle:
    """Resolved ASS style for a caption track."""
    font: str = "Arial"
    size: int = 24
    primary: str = "&H00FFFFFF"
    outline_color: str = "&H00000000"
    back_color: str = "&H80000000"
    bold: bool = False
    outline: int = 2
    shadow: int = 1
    border_style: int = 1
    alignment: int = 2
    margin_v: int = 40

    def to_ass_line(self) -> str:
        return (
            f"Style: Default,{self.font},{self.size},{self.primary},&H000000FF,"
            f"{self.outline_color},{self.back_color},{-1 if self.bold else 0},0,0,0,"
            f"100,100,0,0,{self.border_style},{self.outline},{self.shadow},"
            f"{self.alignment},20,20,{self.margin_v},1"
        )


def _normalize_key(value: Optional[str]) -> str:
    return str(value or "").strip().lower().replace("_", "-").replace(" ", "-")


class CaptionCompiler:
    """
    Compiles addCaptions operations into a ``subtitles`` filter stage.

    Args:
        config: Engine configuration (caption defaults and temp directory)
    """

    def __init__(self, config: EngineConfig):
        self.config = config
        self.defaults = config.caption_settings

    def resolve_style(self, params: CaptionParams) -> tuple[CaptionStyle, list[str]]:
        """Map caption parameters through the lookup tables, noting fallbacks."""
        warnings: list[str] = []

        color = params.color or self.defaults["color"]
        try:
            primary = ass_color(color)
        except ValueError:
            warnings.append(f"Unknown caption colour '{color}', using white")
            primary = ass_color("white")

        size = self._resolve_size(params.size, warnings)

        position = _normalize_key(params.position or self.defaults["position"])
        if position not in CAPTION_ALIGNMENT:
            warnings.append(f"Unknown caption position '{params.position}', using bottom")
            position = "bottom"

        style_name = _normalize_key(params.style or self.defaults["style"])
        if style_name not in CAPTION_STYLES:
            warnings.append(f"Unknown caption style '{params.style}', using normal")
            style_name = "normal"
        bold, outline, shadow = CAPTION_STYLES[style_name]

        outline_color = primary if style_name == "glow" else ass_color("black")

        back_color = ass_color("black", alpha=0x80)
        border_style = 1
        if params.background_color:
            try:
                back_color = ass_color(params.background_color, alpha=0x40)
                border_style = 3
            except ValueError:
                warnings.append(
                    f"Unknown caption background '{params.background_color}', ignored"
                )

        for warning in warnings:
            logger.warning(warning)

        style = CaptionStyle(
            font=self.defaults.get("font", "Arial"),
            size=size,
            primary=primary,
            outline_color=outline_color,
            back_color=back_color,
            bold=bold,
            outline=outline,
            shadow=shadow,
            border_style=border_style,
            alignment=CAPTION_ALIGNMENT[position],
        )
        return style, warnings

    def _resolve_size(self, size: Optional[Union[int, str]], warnings: list[str]) -> int:
        if size is None:
            size = self.defaults["size"]
        if isinstance(size, (int, float)):
            return int(size)
        key = _normalize_key(size)
        if key.isdigit():
            return int(key)
        if key in CAPTION_SIZES:
            return CAPTION_SIZES[key]
        warnings.append(f"Unknown caption size '{size}', using medium")
        return CAPTION_SIZES["medium"]

    def build_ass_document(self, cues: tuple[CaptionCue, ...], style: CaptionStyle) -> str:
        """Render a complete ASS document for the given cues."""
        play_x, play_y = self.defaults.get("play_res", (1920, 1080))
        lines = [
            "[Script Info]",
            "ScriptType: v4.00+",
            f"PlayResX: {play_x}",
            f"PlayResY: {play_y}",
            "WrapStyle: 0",
            "ScaledBorderAndShadow: yes",
            "",
            "[V4+ Styles]",
            "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, "
            "OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, "
            "ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, "
            "MarginL, MarginR, MarginV, Encoding",
            style.to_ass_line(),
            "",
            "[Events]",
            "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, "
            "Effect, Text",
        ]
        for cue in sorted(cues, key=lambda c: c.start):
            if cue.end <= cue.start or not cue.text.strip():
                logger.debug(f"Dropping empty or zero-length caption at {cue.start}")
                continue
            lines.append(
                f"Dialogue: 0,{ass_timestamp(cue.start)},{ass_timestamp(cue.end)},"
                f"Default,,0,0,0,,{escape_ass_text(cue.text)}"
            )
        return "\n".join(lines) + "\n"

    def write_ass_file(self, cues: tuple[CaptionCue, ...], style: CaptionStyle) -> Path:
        """
        Write cues to an ASS file in the temp directory.

        The file is named after a hash of its content, so identical requests
        share one file instead of writing a new one each time.
        """
        document = self.build_ass_document(cues, style)
        digest = hashlib.sha256(document.encode("utf-8")).hexdigest()[:16]
        path = self.config.get_temp_dir() / f"captions_{digest}.ass"
        if path.exists():
            logger.debug(f"Reusing caption file {path}")
            return path
        path.write_text(document, encoding="utf-8")
        logger.info(f"Wrote {len(cues)} captions to {path}")
        return path

    def compile(self, params: CaptionParams) -> FilterExpression:
        """
        Compile caption burn-in.

        Raises:
            CompilationError: If a referenced subtitle file does not exist
        """
        style, warnings = self.resolve_style(params)

        if params.subtitle_file:
            path = Path(params.subtitle_file)
            if not path.exists():
                raise CompilationError(
                    f"Subtitle file not found: {path}",
                    details={"subtitle_file": str(path)},
                )
            stage = FilterStage.of(
                "subtitles",
                filename=str(path),
                force_style=self._force_style(style) if path.suffix.lower() != ".ass" else None,
            )
            return FilterExpression(video=(stage,), warnings=tuple(warnings))

        if not params.captions:
            reason = "No captions or subtitle file supplied, nothing to burn in"
            logger.warning(reason)
            return FilterExpression(warnings=tuple(warnings) + (reason,))

        path = self.write_ass_file(params.captions, style)
        return FilterExpression(
            video=(FilterStage.of("subtitles", filename=str(path)),),
            warnings=tuple(warnings),
            scratch_files=(str(path),),
        )

    @staticmethod
    def _force_style(style: CaptionStyle) -> str:
        return ",".join([
            f"FontName={style.font}",
            f"FontSize={style.size}",
            f"PrimaryColour={style.primary}",
            f"OutlineColour={style.outline_color}",
            f"BackColour={style.back_color}",
            f"Bold={-1 if style.bold else 0}",
            f"BorderStyle={style.border_style}",
            f"Outline={style.outline}",
            f"Shadow={style.shadow}",
            f"Alignment={style.alignment}",
        ])
