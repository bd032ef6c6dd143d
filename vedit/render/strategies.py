"""
Render strategies and the fallback chain.

Each strategy turns a validated Operation into an output for a target with a
uniform attempt() call. A FallbackChain tries its strategies in order and
returns the first outcome that succeeds; failures of earlier strategies are
kept on the outcome so callers can report them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from vedit.core.config import EngineConfig
from vedit.core.errors import CompilationError, ExecutionError, VeditError
from vedit.core.operation import Operation, OperationKind, RemoveClipParams
from vedit.core.target import EditTarget
from vedit.filters.compiler import FilterCompiler
from vedit.filters.segments import SegmentEditor
from vedit.filters.stages import FilterExpression
from vedit.preview.transform import TransformationCompiler
from vedit.preview.url import PreviewUrlBuilder
from vedit.render.ffmpeg import FFmpegRunner, build_render_command, get_media_info
from vedit.render.progress import ProgressTracker

logger = logging.getLogger(__name__)


def _remove_scratch_files(paths: tuple[str, ...]):
    for path in paths:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")
        else:
            logger.debug(f"Removed {path}")


@dataclass
class StrategyOutcome:
    """
    Successful result of one strategy attempt.

    Attributes:
        strategy: Name of the strategy that produced the outcome
        output: URL, rendered path or compiled expression
        skipped: True when the operation was deliberately not applied
        warnings: Soft degradations and earlier strategy failures
        metadata: Extra details (compiled filters, commands ...)
    """
    strategy: str
    output: Any = None
    skipped: bool = False
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


class RenderStrategy(ABC):
    """A way of producing output for an operation."""

    name = "strategy"

    @abstractmethod
    def attempt(self, operation: Operation, target: EditTarget) -> StrategyOutcome:
        """
        Try to produce output for the operation.

        Raises:
            VeditError: If this strategy cannot handle the operation
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class PreviewStrategy(RenderStrategy):
    """Builds a preview service URL for the operation."""

    name = "preview"

    def __init__(self, compiler: TransformationCompiler, urls: PreviewUrlBuilder):
        self.compiler = compiler
        self.urls = urls

    def attempt(self, operation: Operation, target: EditTarget) -> StrategyOutcome:
        if not target.public_id:
            raise CompilationError("Preview rendering needs a public id")

        descriptor = self.compiler.compile_operation(operation, target.resource_type)
        url = self.urls.build(target.public_id, descriptor, target.resource_type)
        return StrategyOutcome(
            strategy=self.name,
            output=url,
            warnings=list(descriptor.warnings),
            metadata={"transformation": descriptor.to_path()},
        )


class AuthoritativeStrategy(RenderStrategy):
    """
    Compiles the operation to ffmpeg filters and optionally renders it.

    Without an output path on the target (or with execute=False) the
    compiled expression or segment plan is returned instead of a file.
    """

    name = "authoritative"

    def __init__(
        self,
        config: EngineConfig,
        compiler: FilterCompiler,
        segments: SegmentEditor,
        runner: FFmpegRunner,
        execute: bool = True,
        tracker_factory: Optional[Callable[[Operation], ProgressTracker]] = None,
    ):
        self.config = config
        self.compiler = compiler
        self.segments = segments
        self.runner = runner
        self.execute = execute
        self.tracker_factory = tracker_factory

    def _probe(self, target: EditTarget) -> EditTarget:
        if target.duration is not None and target.has_audio is not None:
            return target
        if not target.is_local:
            return target
        info = get_media_info(target.source, self.config.ffprobe_binary)
        return EditTarget(
            source=target.source,
            public_id=target.public_id,
            output=target.output,
            resource_type=target.resource_type,
            duration=target.duration if target.duration is not None else info.duration,
            has_audio=target.has_audio if target.has_audio is not None else info.has_audio,
        )

    def attempt(self, operation: Operation, target: EditTarget) -> StrategyOutcome:
        rendering = self.execute and target.output is not None
        if rendering:
            if not target.source:
                raise ExecutionError("Authoritative rendering needs a source")
            target = self._probe(target)

        if operation.kind == OperationKind.REMOVE_CLIP:
            params: RemoveClipParams = operation.params
            reason = self.segments.skip_reason(params.start_time, params.end_time, target.duration)
            if reason:
                logger.warning(reason)
                return StrategyOutcome(self.name, skipped=True, warnings=[reason])
            compiled = self.segments.plan(params.start_time, params.end_time, target.duration)
            warnings: list[str] = []
            metadata = {"filter_graph": compiled.to_filter_graph(target.has_audio is not False)}
        else:
            compiled = self.compiler.compile_operation(operation)
            warnings = list(compiled.warnings)
            if compiled.empty:
                reason = f"{operation.kind.value} has nothing to apply"
                logger.warning(reason)
                return StrategyOutcome(self.name, skipped=True, warnings=warnings + [reason])
            metadata = compiled.to_dict()

        if not rendering:
            return StrategyOutcome(self.name, output=compiled, warnings=warnings, metadata=metadata)

        cmd = build_render_command(
            self.config,
            target.source,
            target.output,
            compiled,
            resource_type=target.resource_type,
            has_audio=target.has_audio is not False,
        )
        tracker = self.tracker_factory(operation) if self.tracker_factory else None
        duration = target.duration
        if operation.kind == OperationKind.REMOVE_CLIP:
            duration = compiled.output_duration

        try:
            output = self.runner.run(cmd, duration=duration, tracker=tracker)
        finally:
            if isinstance(compiled, FilterExpression):
                _remove_scratch_files(compiled.scratch_files)
        metadata["command"] = cmd
        return StrategyOutcome(self.name, output=output, warnings=warnings, metadata=metadata)


class PassthroughStrategy(RenderStrategy):
    """Best-effort default: hand back the original media unchanged."""

    name = "passthrough"

    def __init__(self, urls: PreviewUrlBuilder):
        self.urls = urls

    def attempt(self, operation: Operation, target: EditTarget) -> StrategyOutcome:
        if target.public_id:
            output = self.urls.original(target.public_id, target.resource_type)
        elif target.source:
            output = target.source
        else:
            raise ExecutionError("No media to pass through")

        message = f"{operation.kind.value} could not be rendered, returning the original media"
        logger.warning(message)
        return StrategyOutcome(self.name, output=output, warnings=[message])


class FallbackChain:
    """
    Ordered list of strategies tried until one succeeds.

    Example:
        chain = FallbackChain([preview, authoritative, passthrough])
        outcome = chain.run(operation, target)
    """

    def __init__(self, strategies: list[RenderStrategy]):
        if not strategies:
            raise ValueError("FallbackChain needs at least one strategy")
        self.strategies = list(strategies)

    def run(self, operation: Operation, target: EditTarget) -> StrategyOutcome:
        """
        Run the chain.

        Raises:
            VeditError: The last strategy's error when every strategy fails
        """
        failures: list[str] = []
        last_error: Optional[VeditError] = None

        for strategy in self.strategies:
            try:
                outcome = strategy.attempt(operation, target)
            except VeditError as e:
                logger.info(f"{strategy.name} could not handle {operation.kind.value}: {e}")
                failures.append(f"{strategy.name}: {e}")
                last_error = e
                continue

            outcome.warnings = failures + outcome.warnings
            return outcome

        if len(self.strategies) > 1:
            last_error.details.setdefault("failures", failures)
        raise last_error

    def __repr__(self) -> str:
        return f"FallbackChain({[s.name for s in self.strategies]})"
