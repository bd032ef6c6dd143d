"""
Typed filter stages for the authoritative renderer.

Filters are modelled as FilterStage objects with explicit option fields and
only turned into ffmpeg filtergraph text by serialize(). All user-supplied
values pass through escape_filter_value(), the one place that knows the
delimiters of the filtergraph syntax.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional

# Characters with meaning inside a single filter's option list
_OPTION_SPECIALS = ("\\", "'", ":")
# Characters with meaning at the filtergraph level
_GRAPH_SPECIALS = ("\\", "'", "[", "]", ",", ";")
# Characters that force quoting of a trusted expression
_EXPR_DELIMITERS = frozenset(":,;[]")


def _escape_level(value: str, specials: tuple[str, ...]) -> str:
    out = []
    for char in value:
        if char in specials:
            out.append("\\")
        out.append(char)
    return "".join(out)


def _unescape_level(value: str) -> str:
    out = []
    chars = iter(value)
    for char in chars:
        if char == "\\":
            char = next(chars, "")
        out.append(char)
    return "".join(out)


def escape_filter_value(value: Any) -> str:
    """
    Escape a literal value for use as a filter option inside a filtergraph.

    Two escaping passes are applied, matching the two parsers ffmpeg runs
    over a filtergraph: first the option parser (``\\ ' :``), then the graph
    parser (``\\ ' [ ] , ;``).

    Args:
        value: Literal value (text, path, colour name ...)

    Returns:
        Escaped text safe to place after ``option=``
    """
    text = str(value).replace("\r\n", "\n")
    return _escape_level(_escape_level(text, _OPTION_SPECIALS), _GRAPH_SPECIALS)


def unescape_filter_value(escaped: str) -> str:
    """Invert escape_filter_value()."""
    return _unescape_level(_unescape_level(escaped))


@dataclass(frozen=True)
class Expr:
    """
    A trusted ffmpeg expression such as ``(w-text_w)/2`` or ``PTS/2``.

    Expressions are not escaped. They are quoted when they contain
    filtergraph delimiters.
    """
    text: str

    def __str__(self) -> str:
        if any(char in _EXPR_DELIMITERS for char in self.text):
            return f"'{self.text}'"
        return self.text


def format_value(value: Any) -> str:
    """Render one option value."""
    if isinstance(value, Expr):
        return str(value)
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(round(value, 6))
    return escape_filter_value(value)


@dataclass(frozen=True)
class TemporalGate:
    """Timeline predicate restricting a filter to [start, end)."""
    start: float
    end: Optional[float] = None

    @property
    def predicate(self) -> str:
        start = format_value(float(self.start))
        if self.end is not None and self.end > self.start:
            return f"between(t,{start},{format_value(float(self.end))})"
        return f"gte(t,{start})"

    def serialize(self) -> str:
        return f"enable='{self.predicate}'"

    def __str__(self) -> str:
        return self.serialize()


@dataclass(frozen=True)
class FilterStage:
    """
    One primitive filter with its options.

    Attributes:
        name: ffmpeg filter name (``eq``, ``drawtext``, ``trim`` ...)
        args: Positional option values
        options: Named option values, in order
        gate: Optional timeline gate attached to this stage
    """
    name: str
    args: tuple[Any, ...] = ()
    options: tuple[tuple[str, Any], ...] = ()
    gate: Optional[TemporalGate] = None

    @classmethod
    def of(cls, name: str, *args: Any, **options: Any) -> FilterStage:
        """Build a stage, dropping options whose value is None."""
        return cls(
            name=name,
            args=tuple(args),
            options=tuple((k, v) for k, v in options.items() if v is not None),
        )

    def option(self, key: str, default: Any = None) -> Any:
        for name, value in self.options:
            if name == key:
                return value
        return default

    def with_gate(self, gate: Optional[TemporalGate]) -> FilterStage:
        return FilterStage(self.name, self.args, self.options, gate)

    def serialize(self) -> str:
        parts = [format_value(arg) for arg in self.args]
        parts.extend(f"{key}={format_value(value)}" for key, value in self.options)
        if self.gate is not None:
            parts.append(self.gate.serialize())
        if not parts:
            return self.name
        return f"{self.name}={':'.join(parts)}"

    def __str__(self) -> str:
        return self.serialize()


def serialize_chain(stages: tuple[FilterStage, ...]) -> str:
    return ",".join(stage.serialize() for stage in stages)


@dataclass(frozen=True)
class FilterExpression:
    """
    Compiled filters for one operation.

    Video and audio chains are kept apart so the execution boundary can pass
    them as ``-vf`` and ``-af``. When a gate is present it is applied exactly
    once: directly on a single-stage chain, or on the overlay that merges a
    multi-stage chain back onto the untouched frames.
    """
    video: tuple[FilterStage, ...] = ()
    audio: tuple[FilterStage, ...] = ()
    gate: Optional[TemporalGate] = None
    warnings: tuple[str, ...] = field(default=(), compare=False)
    # Generated files the stages read, removable once the render is done
    scratch_files: tuple[str, ...] = field(default=(), compare=False)

    @property
    def empty(self) -> bool:
        return not self.video and not self.audio

    @property
    def stages(self) -> tuple[FilterStage, ...]:
        return self.video + self.audio

    def video_filter(self) -> Optional[str]:
        """Serialise the video chain, or None when there is nothing to apply."""
        if not self.video:
            return None
        if self.gate is None:
            return serialize_chain(self.video)
        if len(self.video) == 1:
            return self.video[0].with_gate(self.gate).serialize()

        return (
            f"split=2[vbase][vfx];"
            f"[vfx]{serialize_chain(self.video)}[vfxout];"
            f"[vbase][vfxout]overlay={self.gate.serialize()}"
        )

    def audio_filter(self) -> Optional[str]:
        if not self.audio:
            return None
        return serialize_chain(self.audio)

    def serialize(self) -> str:
        """Primary chain as text: the video chain, else the audio chain."""
        return self.video_filter() or self.audio_filter() or "null"

    def to_dict(self) -> dict[str, Any]:
        return {
            "video": self.video_filter(),
            "audio": self.audio_filter(),
            "gate": self.gate.predicate if self.gate else None,
            "warnings": list(self.warnings),
        }

    def __str__(self) -> str:
        return self.serialize()

    def with_warnings(self, *warnings: str) -> FilterExpression:
        return replace(self, warnings=self.warnings + tuple(warnings))
