"""
Filter expressions for the authoritative (ffmpeg) renderer.

The compilers live in vedit.filters.compiler and vedit.filters.captions.
"""

from vedit.filters.stages import (
    Expr,
    FilterExpression,
    FilterStage,
    TemporalGate,
    escape_filter_value,
)
from vedit.filters.segments import SegmentEditor, SegmentPlan, Span

__all__ = [
    "Expr",
    "FilterExpression",
    "FilterStage",
    "TemporalGate",
    "escape_filter_value",
    "SegmentEditor",
    "SegmentPlan",
    "Span",
]
