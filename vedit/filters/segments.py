"""
Segment removal.

removeClip cuts [startTime, endTime) out of the source and joins what is
left. The retained spans are trimmed independently for video and audio,
their timestamps re-based to zero, and concatenated pairwise in order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from vedit.filters.stages import FilterStage, serialize_chain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Span:
    """A retained span of the source; end None means "to the end"."""
    start: float
    end: Optional[float] = None

    def duration(self) -> Optional[float]:
        if self.end is None:
            return None
        return self.end - self.start

    def video_stages(self) -> tuple[FilterStage, ...]:
        return (
            FilterStage.of("trim", start=float(self.start), end=_opt(self.end)),
            FilterStage.of("setpts", "PTS-STARTPTS"),
        )

    def audio_stages(self) -> tuple[FilterStage, ...]:
        return (
            FilterStage.of("atrim", start=float(self.start), end=_opt(self.end)),
            FilterStage.of("asetpts", "PTS-STARTPTS"),
        )


def _opt(value: Optional[float]) -> Optional[float]:
    return None if value is None else float(value)


@dataclass(frozen=True)
class SegmentPlan:
    """
    Spans kept after a removal, in output order.

    Attributes:
        spans: One or two retained spans, ordered and non-overlapping
        source_duration: Duration of the source, when known
        removed: The excised (start, end) interval
    """
    spans: tuple[Span, ...]
    source_duration: Optional[float] = None
    removed: tuple[float, float] = (0.0, 0.0)

    @property
    def concat(self) -> bool:
        return len(self.spans) > 1

    @property
    def output_duration(self) -> Optional[float]:
        durations = [span.duration() for span in self.spans]
        if any(d is None for d in durations):
            return None
        return sum(durations)

    def to_filter_graph(self, include_audio: bool = True) -> str:
        """
        Build the ``-filter_complex`` graph for this plan.

        The graph reads ``[0:v]`` (and ``[0:a]``) and always produces
        ``[outv]`` (and ``[outa]``).
        """
        if not self.concat:
            span = self.spans[0]
            parts = [f"[0:v]{serialize_chain(span.video_stages())}[outv]"]
            if include_audio:
                parts.append(f"[0:a]{serialize_chain(span.audio_stages())}[outa]")
            return ";".join(parts)

        count = len(self.spans)
        parts = ["[0:v]split=" + str(count) + "".join(f"[vin{i}]" for i in range(count))]
        if include_audio:
            parts.append(
                "[0:a]asplit=" + str(count) + "".join(f"[ain{i}]" for i in range(count))
            )

        concat_inputs = []
        for i, span in enumerate(self.spans):
            parts.append(f"[vin{i}]{serialize_chain(span.video_stages())}[v{i}]")
            concat_inputs.append(f"[v{i}]")
            if include_audio:
                parts.append(f"[ain{i}]{serialize_chain(span.audio_stages())}[a{i}]")
                concat_inputs.append(f"[a{i}]")

        audio_flag = 1 if include_audio else 0
        outputs = "[outv][outa]" if include_audio else "[outv]"
        parts.append(f"{''.join(concat_inputs)}concat=n={count}:v=1:a={audio_flag}{outputs}")
        return ";".join(parts)

    def output_maps(self, include_audio: bool = True) -> list[str]:
        maps = ["-map", "[outv]"]
        if include_audio:
            maps.extend(["-map", "[outa]"])
        return maps


class SegmentEditor:
    """Plans removeClip edits."""

    @staticmethod
    def skip_reason(
        start: float,
        end: float,
        source_duration: Optional[float] = None,
    ) -> Optional[str]:
        """Return why a removal cannot be applied, or None if it can."""
        if start < 0:
            return f"removeClip start ({start}) is negative, skipping"
        if end <= start:
            return f"removeClip end ({end}) must be after start ({start}), skipping"
        if source_duration is not None:
            if start >= source_duration:
                return (
                    f"removeClip start ({start}) is beyond the source duration "
                    f"({source_duration}), nothing to remove"
                )
            if start == 0 and end >= source_duration:
                return "removeClip would remove the entire source, skipping"
        return None

    def plan(
        self,
        start: float,
        end: float,
        source_duration: Optional[float] = None,
    ) -> Optional[SegmentPlan]:
        """
        Plan the spans to keep when removing [start, end).

        Args:
            start: Start of the removed span in seconds
            end: End of the removed span in seconds
            source_duration: Source duration, if known; without it the tail
                span is open-ended

        Returns:
            The plan, or None when the removal is skipped (a warning is logged)
        """
        reason = self.skip_reason(start, end, source_duration)
        if reason:
            logger.warning(reason)
            return None

        tail_reaches_end = source_duration is not None and end >= source_duration

        if start == 0:
            spans = (Span(end, source_duration),)
        elif tail_reaches_end:
            spans = (Span(0.0, start),)
        else:
            spans = (Span(0.0, start), Span(end, source_duration))

        plan = SegmentPlan(spans=spans, source_duration=source_duration, removed=(start, end))
        logger.info(
            f"removeClip [{start}, {end}) keeps "
            + ", ".join(f"[{s.start}, {s.end if s.end is not None else 'end'})" for s in spans)
        )
        return plan
