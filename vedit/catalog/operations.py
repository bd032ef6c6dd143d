"""
Operation catalog.

Single source of truth for the parameters each operation kind accepts: names,
aliases, ranges, discrete choices and defaults. The catalog is read-only data
shared by the validator and both compilers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from vedit.core.operation import OperationKind

# Named font sizes accepted wherever a numeric size is
FONT_SIZE_NAMES = ("small", "medium", "large", "xlarge")

POSITIONS = (
    "top", "bottom", "center", "left", "right",
    "top-left", "top-right", "bottom-left", "bottom-right",
)

SPEED_CHOICES = (0.5, 1.0, 1.5, 2.0)


@dataclass(frozen=True)
class FieldSpec:
    """
    Constraints for one parameter.

    Attributes:
        name: Canonical parameter name
        type: One of "number", "string", "size", "list", "path"
        required: Whether the parameter must be present
        default: Value used when the parameter is absent
        minimum: Inclusive lower bound for numbers
        maximum: Inclusive upper bound for numbers
        exclusive_minimum: Exclusive lower bound for numbers
        choices: Discrete set of accepted values
        aliases: Alternative keys accepted for this parameter
    """
    name: str
    type: str = "number"
    required: bool = False
    default: Any = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: Optional[float] = None
    choices: Optional[tuple[Any, ...]] = None
    aliases: tuple[str, ...] = ()

    @property
    def keys(self) -> tuple[str, ...]:
        return (self.name,) + self.aliases

    def lookup(self, params: dict[str, Any]) -> tuple[Optional[str], Any]:
        """Return (key, value) for the first key present in params."""
        for key in self.keys:
            value = params.get(key)
            if value is not None and value != "":
                return key, value
        return None, None


@dataclass(frozen=True)
class ParamSpec:
    """Parameter schema for one operation kind."""
    kind: OperationKind
    description: str
    fields: tuple[FieldSpec, ...] = ()
    supports_time_window: bool = False
    preview_supported: bool = True

    def field(self, name: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if name in spec.keys:
                return spec
        return None

    def required_names(self) -> list[str]:
        return [f.name for f in self.fields if f.required]

    def optional_names(self) -> list[str]:
        return [f.name for f in self.fields if not f.required]

    def defaults(self) -> dict[str, Any]:
        return {f.name: f.default for f in self.fields if f.default is not None}

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "description": self.description,
            "required": self.required_names(),
            "optional": self.optional_names(),
            "defaults": self.defaults(),
            "supports_time_window": self.supports_time_window,
            "preview_supported": self.preview_supported,
        }


WINDOW_FIELDS = (
    FieldSpec("startTime", minimum=0),
    FieldSpec("endTime", exclusive_minimum=0),
)

_INTENSITY = FieldSpec("intensity", minimum=0, maximum=1)

_TEXT_FIELDS = (
    FieldSpec("text", type="string", required=True),
    FieldSpec("position", type="string", default="bottom", choices=POSITIONS),
    FieldSpec("fontSize", type="size", minimum=12, maximum=120, aliases=("size",)),
    FieldSpec("fontColor", type="string", default="white", aliases=("color",)),
    FieldSpec("backgroundColor", type="string", aliases=("bgColor", "background")),
    FieldSpec("font", type="string", aliases=("fontFamily",)),
    FieldSpec("style", type="string", aliases=("fontStyle",)),
) + WINDOW_FIELDS


_SPECS: dict[OperationKind, ParamSpec] = {
    spec.kind: spec
    for spec in (
        ParamSpec(
            OperationKind.TRIM,
            "Keep only the span between start and end",
            (
                FieldSpec("start", minimum=0, default=0, aliases=("startTime",)),
                FieldSpec("end", exclusive_minimum=0, aliases=("endTime",)),
            ),
        ),
        ParamSpec(
            OperationKind.REMOVE_CLIP,
            "Cut the span between startTime and endTime and join the rest",
            (
                FieldSpec("startTime", required=True, aliases=("start",)),
                FieldSpec("endTime", required=True, aliases=("end",)),
            ),
            preview_supported=False,
        ),
        ParamSpec(
            OperationKind.COLOR_GRADE,
            "Apply a named colour grade preset",
            (
                FieldSpec("preset", type="string", required=True, aliases=("style", "grade")),
                _INTENSITY,
            ) + WINDOW_FIELDS,
            supports_time_window=True,
        ),
        ParamSpec(
            OperationKind.APPLY_EFFECT,
            "Apply a named visual effect preset",
            (
                FieldSpec("effect", type="string", required=True,
                          aliases=("effectPreset", "preset")),
                FieldSpec("intensity", minimum=0, maximum=1, default=0.5),
            ) + WINDOW_FIELDS,
            supports_time_window=True,
        ),
        ParamSpec(
            OperationKind.ADD_TEXT,
            "Overlay a line of text",
            _TEXT_FIELDS,
            supports_time_window=True,
        ),
        ParamSpec(
            OperationKind.CUSTOM_TEXT,
            "Overlay a line of text with custom styling",
            _TEXT_FIELDS,
            supports_time_window=True,
        ),
        ParamSpec(
            OperationKind.FILTER,
            "Apply a primitive filter such as blur or grayscale",
            (
                FieldSpec("filterType", type="string", required=True,
                          aliases=("type", "filter")),
                FieldSpec("level", minimum=0, aliases=("value",)),
                _INTENSITY,
            ) + WINDOW_FIELDS,
            supports_time_window=True,
        ),
        ParamSpec(
            OperationKind.ADD_CAPTIONS,
            "Burn captions into the video",
            (
                FieldSpec("subtitleFile", type="path", aliases=("subtitlePath", "srtPath")),
                FieldSpec("captions", type="list", aliases=("segments",)),
                FieldSpec("subtitleColor", type="string", default="white", aliases=("color",)),
                FieldSpec("subtitleSize", type="size", default="medium",
                          minimum=12, maximum=120, aliases=("size", "fontSize")),
                FieldSpec("subtitlePosition", type="string", default="bottom",
                          aliases=("position",)),
                FieldSpec("subtitleStyle", type="string", aliases=("style",)),
                FieldSpec("backgroundColor", type="string", aliases=("bgColor",)),
            ),
            preview_supported=False,
        ),
        ParamSpec(
            OperationKind.ADJUST_INTENSITY,
            "Raise or lower the strength of the current look",
            (
                FieldSpec("intensity", minimum=0, maximum=2, aliases=("newIntensity",)),
                FieldSpec("direction", type="string", choices=("more", "less")),
                FieldSpec("effectPreset", type="string", aliases=("effect",)),
            ) + WINDOW_FIELDS,
            supports_time_window=True,
        ),
        ParamSpec(
            OperationKind.ADJUST_ZOOM,
            "Zoom in or out around the frame centre",
            (
                FieldSpec("zoom", exclusive_minimum=0, maximum=4,
                          aliases=("newZoom", "zoomLevel")),
                FieldSpec("direction", type="string", choices=("in", "out")),
            ),
        ),
        ParamSpec(
            OperationKind.ADJUST_SPEED,
            "Change playback speed",
            (FieldSpec("speed", required=True, choices=SPEED_CHOICES),),
        ),
        ParamSpec(
            OperationKind.ROTATE,
            "Rotate the frame",
            (
                FieldSpec("degrees", required=True, minimum=-180, maximum=180,
                          aliases=("rotation", "angle")),
            ),
        ),
        ParamSpec(
            OperationKind.CROP,
            "Crop to a rectangle",
            (
                FieldSpec("x", required=True, minimum=0),
                FieldSpec("y", required=True, minimum=0),
                FieldSpec("width", required=True, exclusive_minimum=0),
                FieldSpec("height", required=True, exclusive_minimum=0),
            ),
        ),
    )
}


class OperationCatalog:
    """Read-only lookup of parameter schemas by operation kind."""

    def __init__(self, specs: Optional[dict[OperationKind, ParamSpec]] = None):
        self._specs = dict(specs or _SPECS)

    def describe(self, kind: Union[str, OperationKind]) -> Optional[ParamSpec]:
        """Return the schema for a kind, or None if the kind is unknown."""
        if not isinstance(kind, OperationKind):
            try:
                kind = OperationKind(kind)
            except ValueError:
                return None
        return self._specs.get(kind)

    def known_kinds(self) -> frozenset[OperationKind]:
        return frozenset(self._specs)

    def __contains__(self, kind: object) -> bool:
        return self.describe(kind) is not None  # type: ignore[arg-type]

    def __iter__(self):
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)
