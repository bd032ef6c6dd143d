"""
Operation data model.

An Operation is a single declarative edit request: a kind, a typed parameter
object for that kind, and an optional time window. Instructions arrive as
loose dictionaries; the typed parameter classes below resolve the alias keys
used by different call sites into one shape per kind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from vedit.core.errors import UnknownOperationError, ValidationError


class OperationKind(str, Enum):
    """Supported edit operations."""
    TRIM = "trim"
    REMOVE_CLIP = "removeClip"
    COLOR_GRADE = "colorGrade"
    APPLY_EFFECT = "applyEffect"
    ADD_TEXT = "addText"
    CUSTOM_TEXT = "customText"
    FILTER = "filter"
    ADD_CAPTIONS = "addCaptions"
    ADJUST_INTENSITY = "adjustIntensity"
    ADJUST_ZOOM = "adjustZoom"
    ADJUST_SPEED = "adjustSpeed"
    ROTATE = "rotate"
    CROP = "crop"

    @classmethod
    def parse(cls, value: Union[str, OperationKind]) -> OperationKind:
        """
        Resolve an operation name to a kind.

        Raises:
            UnknownOperationError: If the name does not match a known kind
        """
        if isinstance(value, OperationKind):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownOperationError(value) from None

    @property
    def is_text(self) -> bool:
        return self in (OperationKind.ADD_TEXT, OperationKind.CUSTOM_TEXT)

    @property
    def is_bounded(self) -> bool:
        """True when startTime/endTime describe the edit itself rather than a window."""
        return self in (OperationKind.TRIM, OperationKind.REMOVE_CLIP)


class ResourceType(str, Enum):
    VIDEO = "video"
    IMAGE = "image"


def _pick(raw: dict[str, Any], *names: str, default: Any = None) -> Any:
    """Return the first non-empty value found under any of the given keys."""
    for name in names:
        value = raw.get(name)
        if value is not None and value != "":
            return value
    return default


def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end) restricting where an operation applies."""
    start: float = 0.0
    end: Optional[float] = None

    def __post_init__(self):
        if self.start < 0:
            raise ValueError(f"Time window start must be >= 0, got {self.start}")
        if self.end is not None and self.end <= self.start:
            raise ValueError(
                f"Time window end ({self.end}) must exceed start ({self.start})"
            )

    @property
    def bounded(self) -> bool:
        return self.end is not None

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> Optional[TimeWindow]:
        """Build a window from startTime/endTime keys, if either is present."""
        start = _as_float(params.get("startTime"))
        end = _as_float(params.get("endTime"))
        if start is None and end is None:
            return None
        return cls(start=start or 0.0, end=end)

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end}


# ==================== Typed parameters ====================

@dataclass(frozen=True)
class TrimParams:
    start: float = 0.0
    end: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TrimParams:
        return cls(
            start=float(_pick(raw, "start", "startTime", default=0.0)),
            end=_as_float(_pick(raw, "end", "endTime")),
        )


@dataclass(frozen=True)
class RemoveClipParams:
    start_time: float
    end_time: float

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RemoveClipParams:
        return cls(
            start_time=float(_pick(raw, "startTime", "start", default=0.0)),
            end_time=float(_pick(raw, "endTime", "end", default=0.0)),
        )


@dataclass(frozen=True)
class ColorGradeParams:
    preset: str = ""
    intensity: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ColorGradeParams:
        return cls(
            preset=str(_pick(raw, "preset", "style", "grade", default="")),
            intensity=_as_float(raw.get("intensity")),
        )


@dataclass(frozen=True)
class EffectParams:
    preset: str = ""
    intensity: float = 0.5

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> EffectParams:
        return cls(
            preset=str(_pick(raw, "effect", "effectPreset", "preset", default="")),
            intensity=float(_pick(raw, "intensity", default=0.5)),
        )


@dataclass(frozen=True)
class TextParams:
    text: str
    position: str = "bottom"
    font_size: Optional[Union[int, str]] = None
    color: str = "white"
    background_color: Optional[str] = None
    font: Optional[str] = None
    style: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TextParams:
        size = _pick(raw, "fontSize", "size")
        if isinstance(size, float) and size.is_integer():
            size = int(size)
        return cls(
            text=str(_pick(raw, "text", default="")),
            position=str(_pick(raw, "position", default="bottom")),
            font_size=size,
            color=str(_pick(raw, "fontColor", "color", default="white")),
            background_color=_pick(raw, "backgroundColor", "bgColor", "background"),
            font=_pick(raw, "font", "fontFamily"),
            style=_pick(raw, "style", "fontStyle"),
        )


@dataclass(frozen=True)
class FilterParams:
    filter_type: str = ""
    level: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> FilterParams:
        return cls(
            filter_type=str(_pick(raw, "filterType", "type", "filter", default="")),
            level=_as_float(_pick(raw, "level", "intensity", "value")),
        )


@dataclass(frozen=True)
class CaptionCue:
    """One inline caption line."""
    text: str
    start: float
    end: float

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CaptionCue:
        return cls(
            text=str(raw.get("text", "")),
            start=float(_pick(raw, "start", "startTime", default=0.0)),
            end=float(_pick(raw, "end", "endTime", default=0.0)),
        )


@dataclass(frozen=True)
class CaptionParams:
    subtitle_file: Optional[str] = None
    captions: tuple[CaptionCue, ...] = ()
    color: Optional[str] = None
    size: Optional[Union[int, str]] = None
    position: Optional[str] = None
    style: Optional[str] = None
    background_color: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CaptionParams:
        cues = _pick(raw, "captions", "segments", default=[]) or []
        return cls(
            subtitle_file=_pick(raw, "subtitleFile", "subtitlePath", "srtPath"),
            captions=tuple(
                cue if isinstance(cue, CaptionCue) else CaptionCue.from_dict(cue)
                for cue in cues
            ),
            color=_pick(raw, "subtitleColor", "color"),
            size=_pick(raw, "subtitleSize", "size", "fontSize"),
            position=_pick(raw, "subtitlePosition", "position"),
            style=_pick(raw, "subtitleStyle", "style"),
            background_color=_pick(raw, "backgroundColor", "bgColor"),
        )


@dataclass(frozen=True)
class IntensityParams:
    intensity: Optional[float] = None
    direction: Optional[str] = None
    effect_preset: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> IntensityParams:
        return cls(
            intensity=_as_float(_pick(raw, "newIntensity", "intensity")),
            direction=_pick(raw, "direction"),
            effect_preset=_pick(raw, "effectPreset", "effect"),
        )


@dataclass(frozen=True)
class ZoomParams:
    zoom: Optional[float] = None
    direction: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ZoomParams:
        return cls(
            zoom=_as_float(_pick(raw, "newZoom", "zoom", "zoomLevel")),
            direction=_pick(raw, "direction"),
        )


@dataclass(frozen=True)
class SpeedParams:
    speed: float = 1.0

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SpeedParams:
        return cls(speed=float(_pick(raw, "speed", default=1.0)))


@dataclass(frozen=True)
class RotateParams:
    degrees: float = 0.0

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RotateParams:
        return cls(degrees=float(_pick(raw, "degrees", "rotation", "angle", default=0.0)))


@dataclass(frozen=True)
class CropParams:
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CropParams:
        return cls(
            x=float(raw["x"]),
            y=float(raw["y"]),
            width=float(raw["width"]),
            height=float(raw["height"]),
        )


OperationParams = Union[
    TrimParams,
    RemoveClipParams,
    ColorGradeParams,
    EffectParams,
    TextParams,
    FilterParams,
    CaptionParams,
    IntensityParams,
    ZoomParams,
    SpeedParams,
    RotateParams,
    CropParams,
]

PARAM_TYPES: dict[OperationKind, type] = {
    OperationKind.TRIM: TrimParams,
    OperationKind.REMOVE_CLIP: RemoveClipParams,
    OperationKind.COLOR_GRADE: ColorGradeParams,
    OperationKind.APPLY_EFFECT: EffectParams,
    OperationKind.ADD_TEXT: TextParams,
    OperationKind.CUSTOM_TEXT: TextParams,
    OperationKind.FILTER: FilterParams,
    OperationKind.ADD_CAPTIONS: CaptionParams,
    OperationKind.ADJUST_INTENSITY: IntensityParams,
    OperationKind.ADJUST_ZOOM: ZoomParams,
    OperationKind.ADJUST_SPEED: SpeedParams,
    OperationKind.ROTATE: RotateParams,
    OperationKind.CROP: CropParams,
}


@dataclass(frozen=True)
class Operation:
    """
    A validated edit request.

    Attributes:
        kind: The operation kind
        params: Typed parameters for the kind
        window: Optional time window the operation is restricted to
        raw: The parameter dictionary the operation was built from
    """
    kind: OperationKind
    params: OperationParams
    window: Optional[TimeWindow] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def build(
        cls,
        kind: Union[str, OperationKind],
        params: Optional[dict[str, Any]] = None,
        window: Optional[TimeWindow] = None,
    ) -> Operation:
        """
        Build an operation from a loose parameter dictionary.

        The parameters are expected to have passed validation already; this
        only resolves aliases and converts values to their typed form.
        """
        kind = OperationKind.parse(kind)
        raw = dict(params or {})

        if window is None and not kind.is_bounded:
            window = TimeWindow.from_params(raw)

        typed = PARAM_TYPES[kind].from_dict(raw)
        return cls(kind=kind, params=typed, window=window, raw=raw)


@dataclass
class Instruction:
    """Inbound edit request as received from an API or UI boundary."""
    operation: str
    params: dict[str, Any] = field(default_factory=dict)
    resource_type: ResourceType = ResourceType.VIDEO

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Instruction:
        resource = data.get("resourceType") or data.get("resource_type") or "video"
        try:
            resource_type = ResourceType(resource)
        except ValueError:
            raise ValidationError(f"Unknown resource type: {resource!r}") from None
        params = data.get("params") or {}
        if not isinstance(params, dict):
            raise ValidationError("Parameters must be an object")
        return cls(
            operation=str(data.get("operation", "")),
            params=dict(params),
            resource_type=resource_type,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "params": self.params,
            "resourceType": self.resource_type.value,
        }
