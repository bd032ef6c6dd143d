"""
Transformation compiler for the preview renderer.

Produces descriptors for a URL-based media transformation service. Each
descriptor is an ordered list of steps; each step is an ordered mapping of
transformation parameters that url.py turns into ``code_value`` pairs.

Most service transformations cannot be limited to part of the timeline. A
time window on such an operation is applied globally and recorded as a
warning on the descriptor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union
from urllib.parse import quote

from PIL import ImageColor

from vedit.catalog.presets import CURVE_PREVIEW, ColorPreset, EffectPreset, PresetMapping
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
    ResourceType,
    RotateParams,
    SpeedParams,
    TextParams,
    TimeWindow,
    TrimParams,
    ZoomParams,
)

logger = logging.getLogger(__name__)

# Parameter name -> service URL code
PARAM_CODES = {
    "overlay": "l",
    "crop": "c",
    "gravity": "g",
    "width": "w",
    "height": "h",
    "x": "x",
    "y": "y",
    "angle": "a",
    "effect": "e",
    "color": "co",
    "background": "b",
    "start_offset": "so",
    "end_offset": "eo",
    "flags": "fl",
}

GRAVITY = {
    "top": "north",
    "bottom": "south",
    "center": "center",
    "left": "west",
    "right": "east",
    "top-left": "north_west",
    "top-right": "north_east",
    "bottom-left": "south_west",
    "bottom-right": "south_east",
}

PREVIEW_FONT_SIZES = {
    "small": 24,
    "medium": 36,
    "large": 48,
    "xlarge": 60,
}

MIN_FONT_SIZE = 12
MAX_FONT_SIZE = 200

# Kinds whose preview transformation can be limited to a time range
_WINDOWED_KINDS = frozenset({OperationKind.ADD_TEXT, OperationKind.CUSTOM_TEXT})

_COMPILERS: dict[OperationKind, Callable[..., list[dict[str, Any]]]] = {}


def transformation(*kinds: OperationKind):
    """Register a TransformationCompiler method for the given kinds."""
    def decorator(func):
        for kind in kinds:
            _COMPILERS[kind] = func
        return func
    return decorator


def _number(value: float) -> Union[int, float]:
    value = round(float(value), 4)
    return int(value) if value.is_integer() else value


def service_color(color: str) -> str:
    """Express a colour the way the service expects (name or rgb:hex)."""
    color = color.strip()
    if color.startswith("#"):
        return f"rgb:{color[1:].lower()}"
    ImageColor.getrgb(color)
    return color.lower()


def encode_text(text: str) -> str:
    """URL-encode overlay text; commas and slashes need double encoding."""
    encoded = quote(text, safe="")
    return encoded.replace("%2C", "%252C").replace("%2F", "%252F")


@dataclass(frozen=True)
class TransformationDescriptor:
    """
    Compiled preview transformation for one operation.

    Attributes:
        kind: The operation kind
        resource_type: Video or image
        steps: Ordered transformation steps
        warnings: Soft degradations applied while compiling
    """
    kind: OperationKind
    resource_type: ResourceType
    steps: tuple[dict[str, Any], ...] = ()
    warnings: tuple[str, ...] = field(default=(), compare=False)

    def to_path(self) -> str:
        """Render the steps as a service transformation path."""
        components = []
        for step in self.steps:
            parts = [f"{PARAM_CODES[key]}_{value}" for key, value in step.items()]
            components.append(",".join(parts))
        return "/".join(components)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "resource_type": self.resource_type.value,
            "steps": [dict(step) for step in self.steps],
            "warnings": list(self.warnings),
        }

    def __str__(self) -> str:
        return self.to_path()


class TransformationCompiler:
    """
    Compiles operations into preview transformation descriptors.

    Args:
        config: Engine configuration (preview settings)
        presets: Preset lookup; built from config.color_presets if omitted
    """

    def __init__(self, config: EngineConfig, presets: Optional[PresetMapping] = None):
        self.config = config
        self.presets = presets or PresetMapping(config.color_presets)
        self.inset = config.preview_settings.get("inset", 20)

    def compile(
        self,
        kind: Union[str, OperationKind],
        params: Optional[dict[str, Any]] = None,
        window: Optional[TimeWindow] = None,
        resource_type: ResourceType = ResourceType.VIDEO,
    ) -> TransformationDescriptor:
        """
        Compile one operation for the preview backend.

        Raises:
            CompilationError: If the kind has no preview equivalent
        """
        try:
            operation = Operation.build(kind, params, window)
        except (KeyError, TypeError, ValueError) as e:
            raise CompilationError(f"Invalid parameters for {kind}: {e}") from e
        return self.compile_operation(operation, resource_type)

    def compile_operation(
        self,
        operation: Operation,
        resource_type: ResourceType = ResourceType.VIDEO,
    ) -> TransformationDescriptor:
        build = _COMPILERS.get(operation.kind)
        if build is None:
            raise CompilationError(
                f"{operation.kind.value} is not supported by the preview renderer"
            )

        warnings: list[str] = []
        steps = build(self, operation, warnings)

        if operation.window is not None and operation.kind not in _WINDOWED_KINDS:
            message = (
                f"Preview cannot limit {operation.kind.value} to "
                f"{operation.window.start}-{operation.window.end}s, applying globally"
            )
            logger.warning(message)
            warnings.append(message)

        descriptor = TransformationDescriptor(
            kind=operation.kind,
            resource_type=resource_type,
            steps=tuple(steps),
            warnings=tuple(warnings),
        )
        logger.info(f"Compiled preview {operation.kind.value}: {descriptor.to_path()}")
        return descriptor

    # ==================== Geometry ====================

    def gravity(self, position: Optional[str]) -> dict[str, Any]:
        """
        Map a position name to a gravity anchor plus inset offsets.

        Offsets are measured inward from the anchored edge, so a bottom
        anchor gets a positive y inset that lifts the overlay off the edge.
        """
        key = str(position or "bottom").strip().lower().replace("_", "-").replace(" ", "-")
        if key not in GRAVITY:
            logger.warning(f"Unknown position '{position}', using bottom")
            key = "bottom"

        placement: dict[str, Any] = {"gravity": GRAVITY[key]}
        if key == "center":
            return placement
        if "left" in key or "right" in key:
            placement["x"] = self.inset
        if "top" in key or "bottom" in key:
            placement["y"] = self.inset
        return placement

    # ==================== Steps ====================

    def color_steps(self, preset: ColorPreset) -> list[dict[str, Any]]:
        if preset.preview is not None:
            return [dict(step) for step in preset.preview]

        steps: list[dict[str, Any]] = []
        if preset.art:
            steps.append({"effect": f"art:{preset.art}"})
        if preset.curve:
            steps.extend(dict(s) for s in CURVE_PREVIEW.get(preset.curve, ()))
        if preset.grayscale:
            steps.append({"effect": "grayscale"})
        if preset.brightness:
            steps.append({"effect": f"brightness:{_number(preset.brightness)}"})
        if preset.contrast:
            steps.append({"effect": f"contrast:{_number(preset.contrast)}"})
        if preset.saturation and not preset.grayscale:
            steps.append({"effect": f"saturation:{_number(preset.saturation)}"})
        if preset.gamma:
            steps.append({"effect": f"gamma:{_number(preset.gamma)}"})
        if preset.sepia:
            steps.append({"effect": f"sepia:{_number(preset.sepia)}"})
        if preset.tint:
            steps.append({
                "effect": f"colorize:{_number(preset.tint.strength * 100)}",
                "color": service_color(preset.tint.color),
            })
        return steps

    @staticmethod
    def effect_steps(preset: EffectPreset) -> list[dict[str, Any]]:
        if preset.preview is None:
            raise CompilationError(f"Effect '{preset.name}' has no preview equivalent")
        return [dict(step) for step in preset.preview]

    @transformation(OperationKind.TRIM)
    def _trim(self, operation: Operation, warnings: list[str]) -> list[dict[str, Any]]:
        params: TrimParams = operation.params
        step: dict[str, Any] = {"start_offset": _number(params.start)}
        if params.end is not None:
            step["end_offset"] = _number(params.end)
        return [step]

    @transformation(OperationKind.COLOR_GRADE)
    def _color_grade(self, operation: Operation, warnings: list[str]) -> list[dict[str, Any]]:
        params: ColorGradeParams = operation.params
        if not self.presets.is_known_color(params.preset):
            warnings.append(f"Unknown colour preset '{params.preset}', using neutral grade")
        preset = self.presets.color(params.preset).scaled(params.intensity)
        return self.color_steps(preset)

    @transformation(OperationKind.APPLY_EFFECT)
    def _apply_effect(self, operation: Operation, warnings: list[str]) -> list[dict[str, Any]]:
        params: EffectParams = operation.params
        if not self.presets.is_known_effect(params.preset):
            warnings.append(f"Unknown effect preset '{params.preset}', using neutral adjustment")
        return self.effect_steps(self.presets.effect(params.preset))

    @transformation(OperationKind.FILTER)
    def _filter(self, operation: Operation, warnings: list[str]) -> list[dict[str, Any]]:
        params: FilterParams = operation.params
        if not self.presets.is_known_filter(params.filter_type):
            warnings.append(
                f"Unknown filter type '{params.filter_type}', using neutral adjustment"
            )
        return self.effect_steps(self.presets.filter_type(params.filter_type))

    @transformation(OperationKind.ADD_TEXT, OperationKind.CUSTOM_TEXT)
    def _text(self, operation: Operation, warnings: list[str]) -> list[dict[str, Any]]:
        params: TextParams = operation.params
        font = self.config.preview_settings.get("font_family", "Arial")
        size = self._font_size(params.font_size, warnings)
        style = "_bold" if params.style and params.style.lower() == "bold" else ""

        overlay: dict[str, Any] = {
            "overlay": f"text:{font}_{size}{style}:{encode_text(params.text)}",
        }
        try:
            overlay["color"] = service_color(params.color)
        except ValueError:
            warnings.append(f"Unknown text colour '{params.color}', using white")
            overlay["color"] = "white"
        if params.background_color:
            try:
                overlay["background"] = service_color(params.background_color)
            except ValueError:
                warnings.append(f"Unknown background colour '{params.background_color}', ignored")

        apply_step: dict[str, Any] = {"flags": "layer_apply"}
        apply_step.update(self.gravity(params.position))
        if operation.window is not None:
            apply_step["start_offset"] = _number(operation.window.start)
            if operation.window.end is not None:
                apply_step["end_offset"] = _number(operation.window.end)

        return [overlay, apply_step]

    def _font_size(self, size: Optional[Union[int, str]], warnings: list[str]) -> int:
        if size is None:
            return PREVIEW_FONT_SIZES["medium"]
        if isinstance(size, str) and not size.strip().isdigit():
            key = size.strip().lower()
            if key not in PREVIEW_FONT_SIZES:
                warnings.append(f"Unknown font size '{size}', using medium")
            return PREVIEW_FONT_SIZES.get(key, PREVIEW_FONT_SIZES["medium"])
        return min(max(int(size), MIN_FONT_SIZE), MAX_FONT_SIZE)

    @transformation(OperationKind.CROP)
    def _crop(self, operation: Operation, warnings: list[str]) -> list[dict[str, Any]]:
        params: CropParams = operation.params
        return [{
            "crop": "crop",
            "width": _number(params.width),
            "height": _number(params.height),
            "x": _number(params.x),
            "y": _number(params.y),
        }]

    @transformation(OperationKind.ROTATE)
    def _rotate(self, operation: Operation, warnings: list[str]) -> list[dict[str, Any]]:
        params: RotateParams = operation.params
        return [{"angle": _number(params.degrees)}]

    @transformation(OperationKind.ADJUST_SPEED)
    def _adjust_speed(self, operation: Operation, warnings: list[str]) -> list[dict[str, Any]]:
        params: SpeedParams = operation.params
        return [{"effect": f"accelerate:{_number((params.speed - 1) * 100)}"}]

    @transformation(OperationKind.ADJUST_ZOOM)
    def _adjust_zoom(self, operation: Operation, warnings: list[str]) -> list[dict[str, Any]]:
        params: ZoomParams = operation.params
        zoom = params.zoom
        if zoom is None:
            zoom = {"in": 1.2, "out": 0.8}.get(str(params.direction or "").lower(), 1.0)
        if zoom < 1.0:
            raise CompilationError("Zooming out is not supported by the preview renderer")
        ratio = _number(1 / zoom)
        return [{"crop": "crop", "gravity": "center", "width": ratio, "height": ratio}]

    @transformation(OperationKind.ADJUST_INTENSITY)
    def _adjust_intensity(self, operation: Operation, warnings: list[str]) -> list[dict[str, Any]]:
        params: IntensityParams = operation.params
        if params.effect_preset and self.presets.is_known_effect(params.effect_preset):
            return self.effect_steps(self.presets.effect(params.effect_preset))
        intensity = params.intensity
        if intensity is None:
            intensity = {"more": 1.2, "less": 0.8}.get(str(params.direction or "").lower(), 1.0)
        return [{"effect": f"gamma:{_number((intensity - 1) * 100)}"}]
