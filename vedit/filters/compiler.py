"""
Filter compiler for the authoritative renderer.

Turns one Operation into a FilterExpression. Each operation kind has a
builder registered with @builder; the compiler looks the builder up, runs it
and then attaches the operation's time window as a single temporal gate when
the kind supports timeline editing.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any, Callable, Optional, Union

from PIL import ImageColor

from vedit.catalog.operations import OperationCatalog
from vedit.catalog.presets import (
    SEPIA_MATRIX,
    ColorPreset,
    EffectPreset,
    PresetMapping,
    StageSpec,
    resolve_value,
)
from vedit.core.config import EngineConfig
from vedit.core.errors import CompilationError
from vedit.core.operation import (
    ColorGradeParams,
    CropParams,
    EffectParams,
    FilterParams,
    IntensityParams,
    Operation,
    OperationKind,
    RotateParams,
    SpeedParams,
    TextParams,
    TimeWindow,
    TrimParams,
    ZoomParams,
)
from vedit.filters.captions import CaptionCompiler
from vedit.filters.stages import Expr, FilterExpression, FilterStage, TemporalGate
from vedit.utils.fonts import resolve_font

logger = logging.getLogger(__name__)

TEXT_SIZES = {
    "small": 24,
    "medium": 36,
    "large": 48,
    "xlarge": 60,
}

ZOOM_STEPS = {"in": 1.2, "out": 0.8}
INTENSITY_STEPS = {"more": 1.2, "less": 0.8}

_BUILDERS: dict[OperationKind, Callable[..., FilterExpression]] = {}


def builder(*kinds: OperationKind):
    """Register a FilterCompiler method as the builder for the given kinds."""
    def decorator(func):
        for kind in kinds:
            _BUILDERS[kind] = func
        return func
    return decorator


def expand_stage(spec: StageSpec, intensity: float = 0.5, level: Optional[float] = None) -> FilterStage:
    """Resolve a preset stage template into a concrete FilterStage."""
    return FilterStage(
        name=spec.name,
        args=tuple(resolve_value(a, intensity, level) for a in spec.args),
        options=tuple((k, resolve_value(v, intensity, level)) for k, v in spec.options),
    )


def color_grade_stages(preset: ColorPreset) -> tuple[FilterStage, ...]:
    """
    Build the stages for a colour preset.

    Deltas are percentages: brightness maps to an eq offset, the others to
    multipliers around 1.0.
    """
    stages = []

    if preset.curve:
        stages.append(FilterStage.of("curves", preset=preset.curve))

    eq = {}
    if preset.brightness:
        eq["brightness"] = round(preset.brightness / 100, 4)
    if preset.contrast:
        eq["contrast"] = round(1 + preset.contrast / 100, 4)
    if preset.saturation and not preset.grayscale:
        eq["saturation"] = round(max(0.0, 1 + preset.saturation / 100), 4)
    if preset.gamma:
        eq["gamma"] = round(1 + preset.gamma / 100, 4)
    if eq:
        stages.append(FilterStage.of("eq", **eq))

    if preset.grayscale:
        stages.append(FilterStage.of("hue", s=0))

    if preset.sepia:
        stages.append(sepia_stage(preset.sepia / 100))

    if preset.tint:
        stages.append(tint_stage(preset.tint.color, preset.tint.strength))

    return tuple(stages)


def sepia_stage(amount: float) -> FilterStage:
    """Blend between the identity matrix and the sepia matrix."""
    amount = min(max(amount, 0.0), 1.0)
    options = {}
    for row, channel in enumerate("rgb"):
        for col, source in enumerate("rgb"):
            identity = 1.0 if row == col else 0.0
            value = identity * (1 - amount) + SEPIA_MATRIX[row][col] * amount
            options[f"{channel}{source}"] = round(value, 4)
    return FilterStage.of("colorchannelmixer", **options)


def tint_stage(color: str, strength: float) -> FilterStage:
    """Shift the colour balance towards a colour."""
    try:
        r, g, b = ImageColor.getrgb(color)[:3]
    except ValueError:
        logger.warning(f"Unknown tint colour '{color}', tint skipped")
        return FilterStage.of("null")
    shift = {
        "rs": (r / 255 - 0.5) * 2 * strength,
        "gs": (g / 255 - 0.5) * 2 * strength,
        "bs": (b / 255 - 0.5) * 2 * strength,
    }
    return FilterStage.of("colorbalance", **{k: round(v, 3) for k, v in shift.items()})


def atempo_chain(speed: float) -> tuple[FilterStage, ...]:
    """atempo accepts 0.5..2.0 per instance; chain instances for other factors."""
    stages = []
    remaining = speed
    while remaining > 2.0:
        stages.append(FilterStage.of("atempo", 2.0))
        remaining /= 2.0
    while remaining < 0.5:
        stages.append(FilterStage.of("atempo", 0.5))
        remaining /= 0.5
    stages.append(FilterStage.of("atempo", round(remaining, 6)))
    return tuple(stages)


def drawtext_color(color: Optional[str], fallback: str = "white") -> str:
    """Normalise a colour to ffmpeg's 0xRRGGBB form."""
    try:
        r, g, b = ImageColor.getrgb((color or fallback).strip())[:3]
    except ValueError:
        logger.warning(f"Unknown text colour '{color}', using {fallback}")
        r, g, b = ImageColor.getrgb(fallback)[:3]
    return f"0x{r:02X}{g:02X}{b:02X}"


def _normalize_position(value: Optional[str]) -> str:
    return str(value or "").strip().lower().replace("_", "-").replace(" ", "-")


class FilterCompiler:
    """
    Compiles operations into filter expressions.

    Args:
        config: Engine configuration
        presets: Preset lookup; built from config.color_presets if omitted
        catalog: Operation catalog used for time window support

    Example:
        compiler = FilterCompiler(EngineConfig())
        expression = compiler.compile("colorGrade", {"preset": "Cinematic"})
        str(expression)  # "curves=preset=strong_contrast"
    """

    def __init__(
        self,
        config: EngineConfig,
        presets: Optional[PresetMapping] = None,
        catalog: Optional[OperationCatalog] = None,
    ):
        self.config = config
        self.presets = presets or PresetMapping(config.color_presets)
        self.catalog = catalog or OperationCatalog()
        self.captions = CaptionCompiler(config)

    def compile(
        self,
        kind: Union[str, OperationKind],
        params: Optional[dict[str, Any]] = None,
        window: Optional[TimeWindow] = None,
    ) -> FilterExpression:
        """
        Compile a single operation.

        Args:
            kind: Operation kind
            params: Operation parameters (already validated)
            window: Time window; derived from startTime/endTime if omitted

        Returns:
            The compiled FilterExpression

        Raises:
            CompilationError: If the operation cannot be expressed as filters
        """
        try:
            operation = Operation.build(kind, params, window)
        except (KeyError, TypeError, ValueError) as e:
            raise CompilationError(f"Invalid parameters for {kind}: {e}") from e
        return self.compile_operation(operation)

    def compile_operation(self, operation: Operation) -> FilterExpression:
        build = _BUILDERS.get(operation.kind)
        if build is None:
            raise CompilationError(
                f"{operation.kind.value} is not compiled to a single filter expression"
            )

        expression = build(self, operation)

        if operation.window is not None:
            expression = self._apply_window(operation, expression)

        logger.info(f"Compiled {operation.kind.value}: {expression}")
        return expression

    def _apply_window(self, operation: Operation, expression: FilterExpression) -> FilterExpression:
        spec = self.catalog.describe(operation.kind)
        if spec is None or not spec.supports_time_window:
            message = (
                f"{operation.kind.value} does not support time windows, "
                f"applying to the whole clip"
            )
            logger.warning(message)
            return expression.with_warnings(message)

        if not expression.video:
            return expression

        gate = TemporalGate(operation.window.start, operation.window.end)
        return replace(expression, gate=gate)

    # ==================== Builders ====================

    @builder(OperationKind.TRIM)
    def _trim(self, operation: Operation) -> FilterExpression:
        params: TrimParams = operation.params
        start = float(params.start)
        end = None if params.end is None else float(params.end)
        return FilterExpression(
            video=(
                FilterStage.of("trim", start=start, end=end),
                FilterStage.of("setpts", "PTS-STARTPTS"),
            ),
            audio=(
                FilterStage.of("atrim", start=start, end=end),
                FilterStage.of("asetpts", "PTS-STARTPTS"),
            ),
        )

    @builder(OperationKind.COLOR_GRADE)
    def _color_grade(self, operation: Operation) -> FilterExpression:
        params: ColorGradeParams = operation.params
        preset = self.presets.color(params.preset).scaled(params.intensity)
        warnings = () if self.presets.is_known_color(params.preset) else (
            f"Unknown colour preset '{params.preset}', using neutral grade",
        )
        return FilterExpression(video=color_grade_stages(preset), warnings=warnings)

    def _effect_expression(self, preset: EffectPreset, intensity: float,
                           level: Optional[float] = None) -> tuple[FilterStage, ...]:
        return tuple(expand_stage(spec, intensity, level) for spec in preset.stages)

    @builder(OperationKind.APPLY_EFFECT)
    def _apply_effect(self, operation: Operation) -> FilterExpression:
        params: EffectParams = operation.params
        preset = self.presets.effect(params.preset)
        warnings = () if self.presets.is_known_effect(params.preset) else (
            f"Unknown effect preset '{params.preset}', using neutral adjustment",
        )
        return FilterExpression(
            video=self._effect_expression(preset, params.intensity),
            warnings=warnings,
        )

    @builder(OperationKind.FILTER)
    def _filter(self, operation: Operation) -> FilterExpression:
        params: FilterParams = operation.params
        preset = self.presets.filter_type(params.filter_type)
        warnings = () if self.presets.is_known_filter(params.filter_type) else (
            f"Unknown filter type '{params.filter_type}', using neutral adjustment",
        )
        return FilterExpression(
            video=self._effect_expression(preset, 0.5, params.level),
            warnings=warnings,
        )

    @builder(OperationKind.ADD_TEXT, OperationKind.CUSTOM_TEXT)
    def _text(self, operation: Operation) -> FilterExpression:
        params: TextParams = operation.params
        settings = self.config.text_settings
        warnings = []

        font_size = self._text_size(params.font_size, warnings)
        x, y = self._text_position(params.position, warnings)

        options: dict[str, Any] = {}
        font_file = resolve_font(params.font or settings.get("font"), self.config.font_file)
        if font_file:
            options["fontfile"] = str(font_file)
        elif params.font:
            options["font"] = params.font

        options.update(
            text=params.text,
            expansion="none",
            fontsize=font_size,
            fontcolor=drawtext_color(params.color, settings.get("color", "white")),
            x=x,
            y=y,
        )

        if params.background_color:
            opacity = settings.get("box_opacity", 0.5)
            options.update(
                box=1,
                boxcolor=f"{drawtext_color(params.background_color, 'black')}@{opacity}",
                boxborderw=10,
            )
        else:
            options.update(shadowcolor="black@0.5", shadowx=2, shadowy=2)

        if params.style and params.style.lower() == "bold":
            options.update(borderw=2, bordercolor="black")

        return FilterExpression(
            video=(FilterStage.of("drawtext", **options),),
            warnings=tuple(warnings),
        )

    def _text_size(self, size: Optional[Union[int, str]], warnings: list[str]) -> int:
        default = int(self.config.text_settings.get("font_size", 24))
        if size is None:
            return default
        if isinstance(size, (int, float)):
            return int(size)
        key = str(size).strip().lower()
        if key.isdigit():
            return int(key)
        if key in TEXT_SIZES:
            return TEXT_SIZES[key]
        warnings.append(f"Unknown font size '{size}', using {default}")
        logger.warning(warnings[-1])
        return default

    def _text_position(self, position: Optional[str], warnings: list[str]) -> tuple[Expr, Expr]:
        margin = int(self.config.text_settings.get("margin", 10))
        key = _normalize_position(position or self.config.text_settings.get("position"))

        vertical, _, horizontal = key.partition("-")
        if key in ("left", "right"):
            vertical, horizontal = "center", key
        elif not horizontal:
            horizontal = "center"

        xs = {
            "left": f"{margin}",
            "center": "(w-text_w)/2",
            "right": f"w-text_w-{margin}",
        }
        ys = {
            "top": f"{margin}",
            "center": "(h-text_h)/2",
            "bottom": f"h-text_h-{margin}",
        }
        if vertical not in ys or horizontal not in xs:
            warnings.append(f"Unknown text position '{position}', using bottom")
            logger.warning(warnings[-1])
            vertical, horizontal = "bottom", "center"

        return Expr(xs[horizontal]), Expr(ys[vertical])

    @builder(OperationKind.ADD_CAPTIONS)
    def _captions(self, operation: Operation) -> FilterExpression:
        return self.captions.compile(operation.params)

    @builder(OperationKind.ADJUST_INTENSITY)
    def _adjust_intensity(self, operation: Operation) -> FilterExpression:
        params: IntensityParams = operation.params
        intensity = params.intensity
        if intensity is None:
            intensity = INTENSITY_STEPS.get(str(params.direction or "").lower(), 1.0)

        if params.effect_preset and self.presets.is_known_effect(params.effect_preset):
            preset = self.presets.effect(params.effect_preset)
            return FilterExpression(
                video=self._effect_expression(preset, min(intensity, 1.0)),
            )

        return FilterExpression(video=(FilterStage.of("eq", gamma=float(intensity)),))

    @builder(OperationKind.ADJUST_ZOOM)
    def _adjust_zoom(self, operation: Operation) -> FilterExpression:
        params: ZoomParams = operation.params
        zoom = params.zoom
        if zoom is None:
            zoom = ZOOM_STEPS.get(str(params.direction or "").lower(), 1.0)
        if zoom == 1.0:
            return FilterExpression()

        z = format(zoom, "g")
        if zoom > 1.0:
            # Centre crop, then scale back up to the original frame size
            stages = (
                FilterStage.of("crop", w=Expr(f"trunc(iw/{z}/2)*2"), h=Expr(f"trunc(ih/{z}/2)*2")),
                FilterStage.of("scale", w=Expr(f"trunc(iw*{z}/2)*2"), h=Expr(f"trunc(ih*{z}/2)*2")),
            )
        else:
            stages = (
                FilterStage.of("scale", w=Expr(f"trunc(iw*{z}/2)*2"), h=Expr(f"trunc(ih*{z}/2)*2")),
                FilterStage.of(
                    "pad",
                    w=Expr(f"trunc(iw/{z}/2)*2"),
                    h=Expr(f"trunc(ih/{z}/2)*2"),
                    x=Expr("(ow-iw)/2"),
                    y=Expr("(oh-ih)/2"),
                    color="black",
                ),
            )
        return FilterExpression(video=stages)

    @builder(OperationKind.ADJUST_SPEED)
    def _adjust_speed(self, operation: Operation) -> FilterExpression:
        params: SpeedParams = operation.params
        if params.speed <= 0:
            raise CompilationError(f"Speed must be positive, got {params.speed}")
        if params.speed == 1.0:
            return FilterExpression()
        return FilterExpression(
            video=(FilterStage.of("setpts", Expr(f"PTS/{format(params.speed, 'g')}")),),
            audio=atempo_chain(params.speed),
        )

    @builder(OperationKind.ROTATE)
    def _rotate(self, operation: Operation) -> FilterExpression:
        params: RotateParams = operation.params
        degrees = params.degrees % 360

        if degrees == 0:
            return FilterExpression()
        if degrees == 90:
            stages = (FilterStage.of("transpose", 1),)
        elif degrees == 270:
            stages = (FilterStage.of("transpose", 2),)
        elif degrees == 180:
            stages = (FilterStage.of("hflip"), FilterStage.of("vflip"))
        else:
            radians = round(math.radians(params.degrees), 6)
            stages = (FilterStage.of("rotate", angle=radians, fillcolor="black@0"),)
        return FilterExpression(video=stages)

    @builder(OperationKind.CROP)
    def _crop(self, operation: Operation) -> FilterExpression:
        params: CropParams = operation.params
        return FilterExpression(video=(
            FilterStage.of(
                "crop",
                w=int(params.width),
                h=int(params.height),
                x=int(params.x),
                y=int(params.y),
            ),
        ))
