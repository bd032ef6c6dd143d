"""
Preset catalog: named looks and effects.

Colour grades are stored as percentage deltas (brightness, contrast,
saturation, gamma) plus an optional curve, tint and sepia amount. Both the
authoritative compiler and the preview compiler derive their output from the
same numbers. Effects and primitive filter types list the filter stages they
expand to, with intensity-dependent values expressed as Scaled or Level.

Lookups are case-insensitive and never fail: an unknown name resolves to the
neutral preset and logs a warning.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from vedit.filters.stages import Expr

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scaled:
    """Value interpolated by intensity: base + span * intensity."""
    base: float
    span: float = 0.0
    integer: bool = False

    def resolve(self, intensity: float, level: Optional[float] = None) -> float | int:
        value = self.base + self.span * intensity
        return int(round(value)) if self.integer else round(value, 4)


@dataclass(frozen=True)
class Level(Scaled):
    """Value taken from a filter's explicit level, falling back to base."""

    def resolve(self, intensity: float, level: Optional[float] = None) -> float | int:
        value = self.base if level is None else level
        return int(round(value)) if self.integer else value


@dataclass(frozen=True)
class ExprTemplate:
    """Expression with one Scaled value substituted in, e.g. ``iw/{}``."""
    template: str
    value: Scaled

    def resolve(self, intensity: float, level: Optional[float] = None) -> Expr:
        return Expr(self.template.format(self.value.resolve(intensity, level)))


def resolve_value(value: Any, intensity: float, level: Optional[float] = None) -> Any:
    if isinstance(value, (Scaled, ExprTemplate)):
        return value.resolve(intensity, level)
    return value


@dataclass(frozen=True)
class StageSpec:
    """A filter stage template; option values may be Scaled or Level."""
    name: str
    options: tuple[tuple[str, Any], ...] = ()
    args: tuple[Any, ...] = ()

    @classmethod
    def of(cls, name: str, *args: Any, **options: Any) -> StageSpec:
        return cls(name=name, options=tuple(options.items()), args=tuple(args))


@dataclass(frozen=True)
class Tint:
    """Colour cast: colour name or hex, strength in [0, 1]."""
    color: str
    strength: float = 0.3


@dataclass(frozen=True)
class ColorPreset:
    """
    Named colour grade.

    Attributes:
        name: Canonical preset name
        curve: Named ffmpeg curves preset (``strong_contrast`` ...)
        brightness: Brightness delta in percent
        contrast: Contrast delta in percent
        saturation: Saturation delta in percent (-100 is grayscale)
        gamma: Gamma delta in percent
        tint: Optional colour cast
        sepia: Sepia amount in percent
        art: Preview-only artistic filter name
        preview: Explicit preview steps overriding the derived ones
    """
    name: str
    curve: Optional[str] = None
    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0
    gamma: float = 0.0
    tint: Optional[Tint] = None
    sepia: float = 0.0
    art: Optional[str] = None
    preview: Optional[tuple[dict[str, Any], ...]] = None

    @property
    def grayscale(self) -> bool:
        return self.saturation <= -100

    def scaled(self, intensity: Optional[float]) -> ColorPreset:
        """Return a copy with every delta multiplied by intensity."""
        if intensity is None or intensity == 1:
            return self
        tint = Tint(self.tint.color, self.tint.strength * intensity) if self.tint else None
        return ColorPreset(
            name=self.name,
            curve=self.curve,
            brightness=self.brightness * intensity,
            contrast=self.contrast * intensity,
            saturation=self.saturation * intensity,
            gamma=self.gamma * intensity,
            tint=tint,
            sepia=self.sepia * intensity,
            art=self.art,
            preview=self.preview,
        )

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> ColorPreset:
        tint = data.get("tint")
        if isinstance(tint, dict):
            tint = Tint(str(tint["color"]), float(tint.get("strength", 0.3)))
        elif isinstance(tint, str):
            tint = Tint(tint)
        preview = data.get("preview")
        return cls(
            name=name,
            curve=data.get("curve"),
            brightness=float(data.get("brightness", 0)),
            contrast=float(data.get("contrast", 0)),
            saturation=float(data.get("saturation", 0)),
            gamma=float(data.get("gamma", 0)),
            tint=tint,
            sepia=float(data.get("sepia", 0)),
            art=data.get("art"),
            preview=tuple(preview) if preview else None,
        )


@dataclass(frozen=True)
class EffectPreset:
    """
    Named visual effect.

    Attributes:
        name: Canonical effect name
        stages: Filter stage templates for the authoritative renderer
        preview: Preview service steps; None when the preview backend
            has no equivalent
    """
    name: str
    stages: tuple[StageSpec, ...] = ()
    preview: Optional[tuple[dict[str, Any], ...]] = None


SEPIA_MATRIX = (
    (0.393, 0.769, 0.189),
    (0.349, 0.686, 0.168),
    (0.272, 0.534, 0.131),
)

# Preview approximations for named curves
CURVE_PREVIEW = {
    "strong_contrast": ({"effect": "contrast:30"},),
    "medium_contrast": ({"effect": "contrast:15"},),
    "increase_contrast": ({"effect": "contrast:20"},),
    "lighter": ({"effect": "brightness:15"},),
    "darker": ({"effect": "brightness:-15"},),
    "vintage": ({"effect": "sepia:50"},),
    "cross_process": ({"effect": "saturation:30"}, {"effect": "contrast:20"}),
}


NEUTRAL_PRESET = ColorPreset("neutral", curve="medium_contrast")

NEUTRAL_EFFECT = EffectPreset(
    "neutral",
    stages=(StageSpec.of("curves", preset="medium_contrast"),),
    preview=CURVE_PREVIEW["medium_contrast"],
)


_COLOR_PRESETS = (
    ColorPreset("cinematic", curve="strong_contrast",
                preview=({"effect": "brightness:5"}, {"effect": "contrast:10"},
                         {"effect": "saturation:-10"})),
    ColorPreset("vintage", curve="vintage"),
    ColorPreset("warm", saturation=20, tint=Tint("yellow", 0.4), art="zorro"),
    ColorPreset("cool", tint=Tint("blue", 0.4)),
    ColorPreset("moody", brightness=-20, contrast=30),
    ColorPreset("dramatic", brightness=-5, contrast=40, saturation=-20),
    ColorPreset("noir", contrast=30, saturation=-100),
    ColorPreset("black & white", saturation=-100),
    ColorPreset("sepia", sepia=100),
    ColorPreset("dreamy", brightness=5, saturation=-5),
    ColorPreset("pastel", brightness=10, saturation=-20),
    ColorPreset("vibrant", saturation=40),
    ColorPreset("muted", saturation=-30),
    ColorPreset("cyberpunk", brightness=20, saturation=50),
    ColorPreset("neon", brightness=10, saturation=60),
    ColorPreset("golden hour", saturation=10, tint=Tint("gold", 0.3)),
    ColorPreset("high contrast", contrast=50),
    ColorPreset("teal orange", contrast=15, saturation=15, tint=Tint("teal", 0.15)),
    ColorPreset("washed film", brightness=5, contrast=-20, saturation=-20),
    ColorPreset("studio tone", brightness=5, contrast=10, saturation=5),
    ColorPreset("soft skin", brightness=5, contrast=-5, saturation=-5),
    ColorPreset("shadow boost", gamma=20),
    ColorPreset("natural tone", contrast=5, saturation=5),
    ColorPreset("bright punch", brightness=10, contrast=20, saturation=20),
    ColorPreset("orange tint", tint=Tint("orange", 0.3)),
    ColorPreset("cinematic lut", curve="strong_contrast", saturation=-10,
                tint=Tint("teal", 0.1)),
    ColorPreset("sunset glow", brightness=5, saturation=15, tint=Tint("#ff7e5f", 0.3)),
    NEUTRAL_PRESET,
)

_COLOR_ALIASES = {
    "cinema": "cinematic",
    "film": "cinematic",
    "retro": "vintage",
    "b&w": "black & white",
    "bw": "black & white",
    "black and white": "black & white",
    "grayscale": "black & white",
    "greyscale": "black & white",
    "monochrome": "black & white",
    "teal and orange": "teal orange",
    "medium contrast": "neutral",
}


_SEPIA_STAGE = StageSpec.of(
    "colorchannelmixer",
    rr=0.393, rg=0.769, rb=0.189,
    gr=0.349, gg=0.686, gb=0.168,
    br=0.272, bg=0.534, bb=0.131,
)

_PIXEL_BLOCK = Scaled(4, 16, integer=True)
_PIXEL_DOWN_W = ExprTemplate("iw/{}", _PIXEL_BLOCK)
_PIXEL_DOWN_H = ExprTemplate("ih/{}", _PIXEL_BLOCK)
_PIXEL_UP_W = ExprTemplate("iw*{}", _PIXEL_BLOCK)
_PIXEL_UP_H = ExprTemplate("ih*{}", _PIXEL_BLOCK)

_EFFECT_PRESETS = (
    EffectPreset(
        "blur",
        (StageSpec.of("boxblur", luma_radius=Scaled(2, 4, integer=True), luma_power=1),),
        ({"effect": "blur:300"},),
    ),
    EffectPreset(
        "glow",
        (StageSpec.of("eq", brightness=Scaled(0.05, 0.1), contrast=Scaled(1.1, 0.2)),),
        ({"effect": "brightness:10"}, {"effect": "contrast:20"}),
    ),
    EffectPreset(
        "sharpen",
        (StageSpec.of("unsharp", luma_msize_x=5, luma_msize_y=5,
                      luma_amount=Scaled(0.5, 1.0)),),
        ({"effect": "sharpen:100"},),
    ),
    EffectPreset(
        "vignette",
        (StageSpec.of("vignette", angle=Expr("PI/4")),),
        ({"effect": "vignette:50"},),
    ),
    EffectPreset(
        "vhs",
        (
            StageSpec.of("noise", alls=Scaled(10, 20, integer=True), allf="t+u"),
            StageSpec.of("rgbashift", rh=-2, bh=2),
        ),
        ({"effect": "noise:20"},),
    ),
    EffectPreset(
        "film grain",
        (StageSpec.of("noise", alls=Scaled(5, 15, integer=True), allf="t"),),
        ({"effect": "noise:10"},),
    ),
    EffectPreset(
        "bokeh",
        (StageSpec.of("boxblur", luma_radius=10, luma_power=5),),
        ({"effect": "blur:500"},),
    ),
    EffectPreset(
        "pixelate",
        (
            StageSpec.of("scale", w=_PIXEL_DOWN_W, h=_PIXEL_DOWN_H, flags="neighbor"),
            StageSpec.of("scale", w=_PIXEL_UP_W, h=_PIXEL_UP_H, flags="neighbor"),
        ),
        ({"effect": "pixelate:20"},),
    ),
    EffectPreset(
        "distortion",
        (StageSpec.of("lenscorrection", k1=Scaled(-0.1, -0.2), k2=-0.05),),
        None,
    ),
    EffectPreset(
        "chromatic aberration",
        (StageSpec.of("rgbashift", rh=Scaled(-2, -6, integer=True),
                      bh=Scaled(2, 6, integer=True)),),
        None,
    ),
    EffectPreset(
        "dreamy glow",
        (
            StageSpec.of("boxblur", luma_radius=4, luma_power=2),
            StageSpec.of("eq", brightness=Scaled(0.05, 0.1), saturation=1.2),
        ),
        ({"effect": "blur:100"}, {"effect": "brightness:10"}),
    ),
    EffectPreset(
        "soft focus",
        (StageSpec.of("boxblur", luma_radius=3, luma_power=1),),
        ({"effect": "blur:200"},),
    ),
    EffectPreset(
        "old film",
        (
            _SEPIA_STAGE,
            StageSpec.of("noise", alls=Scaled(10, 10, integer=True), allf="t"),
            StageSpec.of("vignette", angle=Expr("PI/5")),
        ),
        ({"effect": "noise:15"}, {"effect": "sepia:30"}),
    ),
    EffectPreset(
        "bloom",
        (
            StageSpec.of("gblur", sigma=Scaled(1, 3)),
            StageSpec.of("eq", brightness=Scaled(0.04, 0.08), contrast=1.1),
        ),
        ({"effect": "brightness:15"}, {"effect": "blur:100"}),
    ),
    EffectPreset(
        "fisheye",
        (StageSpec.of("lenscorrection", k1=Scaled(0.2, 0.4), k2=Scaled(0.1, 0.2)),),
        None,
    ),
    EffectPreset(
        "high contrast",
        (StageSpec.of("eq", contrast=Scaled(1.2, 0.6)),),
        ({"effect": "contrast:50"},),
    ),
    EffectPreset(
        "sepia",
        (_SEPIA_STAGE,),
        ({"effect": "sepia:100"},),
    ),
)

_EFFECT_ALIASES = {
    "grain": "film grain",
    "soft": "soft focus",
    "retro film": "old film",
    "chromatic": "chromatic aberration",
    "lens distortion": "distortion",
}

# Primitive filter types; Level values come from the operation's level param
_FILTER_TYPES = (
    EffectPreset(
        "grayscale",
        (StageSpec.of("hue", s=0),),
        ({"effect": "grayscale"},),
    ),
    EffectPreset(
        "blur",
        (StageSpec.of("boxblur", luma_radius=Level(2, integer=True), luma_power=1),),
        ({"effect": "blur:300"},),
    ),
    EffectPreset(
        "sharpen",
        (StageSpec.of("unsharp", luma_msize_x=5, luma_msize_y=5, luma_amount=Level(1.0)),),
        ({"effect": "sharpen:100"},),
    ),
    EffectPreset(
        "saturation",
        (StageSpec.of("eq", saturation=Level(1.5)),),
        ({"effect": "saturation:50"},),
    ),
    EffectPreset(
        "noise reduction",
        (StageSpec.of("hqdn3d", luma_spatial=4, chroma_spatial=3,
                      luma_tmp=6, chroma_tmp=4.5),),
        None,
    ),
    EffectPreset(
        "noise",
        (StageSpec.of("noise", alls=Level(20, integer=True), allf="t+u"),),
        ({"effect": "noise:20"},),
    ),
    EffectPreset(
        "sepia",
        (_SEPIA_STAGE,),
        ({"effect": "sepia:100"},),
    ),
    EffectPreset(
        "invert",
        (StageSpec.of("negate"),),
        ({"effect": "negate"},),
    ),
    EffectPreset(
        "vignette",
        (StageSpec.of("vignette", angle=Expr("PI/4")),),
        ({"effect": "vignette:50"},),
    ),
)

_FILTER_ALIASES = {
    "b&w": "grayscale",
    "bw": "grayscale",
    "black & white": "grayscale",
    "black and white": "grayscale",
    "greyscale": "grayscale",
    "monochrome": "grayscale",
    "denoise": "noise reduction",
    "noise_reduction": "noise reduction",
    "negate": "invert",
}


def normalize_name(name: Optional[str]) -> str:
    """Lower-case a preset name and collapse separators to single spaces."""
    if not name:
        return ""
    text = re.sub(r"[-_]+", " ", str(name).strip().lower())
    return re.sub(r"\s+", " ", text)


class PresetMapping:
    """
    Case-insensitive lookup of colour grades, effects and filter types.

    Args:
        color_overrides: Extra colour presets by name, as ColorPreset.from_dict
            mappings; they take precedence over the built-in catalog.
    """

    def __init__(self, color_overrides: Optional[dict[str, dict[str, Any]]] = None):
        self._colors = {normalize_name(p.name): p for p in _COLOR_PRESETS}
        for name, data in (color_overrides or {}).items():
            self._colors[normalize_name(name)] = ColorPreset.from_dict(name, data)
        self._effects = {normalize_name(p.name): p for p in _EFFECT_PRESETS}
        self._filters = {normalize_name(p.name): p for p in _FILTER_TYPES}

    @staticmethod
    def _resolve(name: Optional[str], table: dict, aliases: dict[str, str]) -> Optional[Any]:
        key = normalize_name(name)
        if key in table:
            return table[key]
        return table.get(aliases.get(key, ""))

    def is_known_color(self, name: Optional[str]) -> bool:
        return self._resolve(name, self._colors, _COLOR_ALIASES) is not None

    def is_known_effect(self, name: Optional[str]) -> bool:
        return self._resolve(name, self._effects, _EFFECT_ALIASES) is not None

    def is_known_filter(self, name: Optional[str]) -> bool:
        return self._resolve(name, self._filters, _FILTER_ALIASES) is not None

    def color(self, name: Optional[str]) -> ColorPreset:
        preset = self._resolve(name, self._colors, _COLOR_ALIASES)
        if preset is None:
            logger.warning(f"Unknown colour preset '{name}', using neutral grade")
            return NEUTRAL_PRESET
        return preset

    def effect(self, name: Optional[str]) -> EffectPreset:
        preset = self._resolve(name, self._effects, _EFFECT_ALIASES)
        if preset is None:
            logger.warning(f"Unknown effect preset '{name}', using neutral adjustment")
            return NEUTRAL_EFFECT
        return preset

    def filter_type(self, name: Optional[str]) -> EffectPreset:
        preset = self._resolve(name, self._filters, _FILTER_ALIASES)
        if preset is None:
            logger.warning(f"Unknown filter type '{name}', using neutral adjustment")
            return NEUTRAL_EFFECT
        return preset

    def color_names(self) -> list[str]:
        return sorted(p.name for p in self._colors.values())

    def effect_names(self) -> list[str]:
        return sorted(self._effects)

    def filter_names(self) -> list[str]:
        return sorted(self._filters)
