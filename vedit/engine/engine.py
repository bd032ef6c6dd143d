"""
Edit Engine - the entry point for processing edit instructions.

The engine owns one instance of each component, all built from an explicit
EngineConfig:

    validate -> build typed Operation -> fallback chain of render strategies

and reports every processed instruction as an OperationResult.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Optional, Union

from vedit.catalog.operations import OperationCatalog
from vedit.catalog.presets import PresetMapping
from vedit.core.config import EngineConfig
from vedit.core.errors import ValidationError, VeditError
from vedit.core.operation import (
    Instruction,
    Operation,
    OperationKind,
    ResourceType,
    TimeWindow,
)
from vedit.core.result import OperationResult, OperationStatus
from vedit.core.target import EditTarget
from vedit.filters.compiler import FilterCompiler
from vedit.filters.segments import SegmentEditor, SegmentPlan
from vedit.filters.stages import FilterExpression
from vedit.preview.transform import TransformationCompiler, TransformationDescriptor
from vedit.preview.url import PreviewUrlBuilder
from vedit.render.ffmpeg import FFmpegRunner
from vedit.render.progress import Listener, ProgressTracker
from vedit.render.strategies import (
    AuthoritativeStrategy,
    FallbackChain,
    PassthroughStrategy,
    PreviewStrategy,
    RenderStrategy,
)
from vedit.validation.validator import OperationValidator, ValidationResult, sanitize_input

logger = logging.getLogger(__name__)


class Backend(str, Enum):
    """Which renderer handles an operation."""
    PREVIEW = "preview"
    AUTHORITATIVE = "authoritative"
    AUTO = "auto"


InstructionLike = Union[Instruction, dict[str, Any]]


class EditEngine:
    """
    Validates, compiles and renders edit instructions.

    Events for add_hook:
        - before_operation: (index, instruction)
        - after_operation: (index, result)
        - on_error: (index, error)

    Example:
        engine = EditEngine(EngineConfig.from_env())
        target = EditTarget(source="in.mp4", output=Path("out.mp4"))
        result = engine.process(
            {"operation": "colorGrade", "params": {"preset": "cinematic"}},
            target,
            backend="authoritative",
        )
    """

    def __init__(self, config: Optional[EngineConfig] = None, runner: Optional[FFmpegRunner] = None):
        self.config = config or EngineConfig()
        self.catalog = OperationCatalog()
        self.presets = PresetMapping(self.config.color_presets)
        self.validator = OperationValidator(self.catalog)
        self.filter_compiler = FilterCompiler(self.config, self.presets, self.catalog)
        self.transform_compiler = TransformationCompiler(self.config, self.presets)
        self.segment_editor = SegmentEditor()
        self.urls = PreviewUrlBuilder(self.config)
        self.runner = runner or FFmpegRunner(self.config)
        self._hooks: dict[str, list[Callable]] = defaultdict(list)
        self._progress_listeners: list[Listener] = []

    # ==================== Hooks ====================

    def add_hook(self, event: str, callback: Callable) -> EditEngine:
        self._hooks[event].append(callback)
        return self

    def _trigger_hooks(self, event: str, *args, **kwargs):
        for callback in self._hooks[event]:
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.warning(f"Hook callback failed for event '{event}': {e}")

    def on_progress(self, listener: Listener) -> EditEngine:
        """Subscribe a listener to progress events of every render."""
        self._progress_listeners.append(listener)
        return self

    def _tracker_for(self, operation: Operation) -> ProgressTracker:
        tracker = ProgressTracker(operation.kind.value)
        for listener in self._progress_listeners:
            tracker.subscribe(listener)
        return tracker

    # ==================== Validation ====================

    def validate(self, instruction: InstructionLike) -> ValidationResult:
        return self.validator.validate_instruction(instruction)

    def prepare(self, instruction: InstructionLike) -> Operation:
        """
        Validate an instruction and build its typed Operation.

        User-supplied text is sanitized before it reaches any compiler.

        Raises:
            UnknownOperationError: If the operation kind is not in the catalog
            ValidationError: If the parameters are invalid
        """
        if isinstance(instruction, dict):
            instruction = Instruction.from_dict(instruction)

        kind = OperationKind.parse(instruction.operation)
        self.validate(instruction).raise_for_errors()

        params = self._sanitize(kind, instruction.params)
        try:
            return Operation.build(kind, params)
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid parameters for {kind.value}: {e}") from e

    @staticmethod
    def _sanitize(kind: OperationKind, params: dict[str, Any]) -> dict[str, Any]:
        params = dict(params)
        if kind.is_text and isinstance(params.get("text"), str):
            params["text"] = sanitize_input(params["text"])
        if kind == OperationKind.ADD_CAPTIONS:
            key = "captions" if "captions" in params else "segments"
            cues = params.get(key)
            if isinstance(cues, list):
                params[key] = [
                    {**cue, "text": sanitize_input(cue.get("text", ""))}
                    for cue in cues
                ]
        return params

    # ==================== Compilation ====================

    def compile_filter(
        self,
        kind: Union[str, OperationKind],
        params: Optional[dict[str, Any]] = None,
        window: Optional[TimeWindow] = None,
    ) -> FilterExpression:
        """Validate and compile one operation for the authoritative renderer."""
        operation = self.prepare(Instruction(OperationKind.parse(kind).value, params or {}))
        if window is not None:
            operation = replace(operation, window=window)
        return self.filter_compiler.compile_operation(operation)

    def compile_preview(
        self,
        kind: Union[str, OperationKind],
        params: Optional[dict[str, Any]] = None,
        window: Optional[TimeWindow] = None,
        resource_type: ResourceType = ResourceType.VIDEO,
    ) -> TransformationDescriptor:
        """Validate and compile one operation for the preview renderer."""
        operation = self.prepare(
            Instruction(OperationKind.parse(kind).value, params or {}, resource_type)
        )
        if window is not None:
            operation = replace(operation, window=window)
        return self.transform_compiler.compile_operation(operation, resource_type)

    def plan_removal(
        self,
        start: float,
        end: float,
        source_duration: Optional[float] = None,
    ) -> Optional[SegmentPlan]:
        return self.segment_editor.plan(start, end, source_duration)

    # ==================== Processing ====================

    def strategies(self, backend: Union[str, Backend] = Backend.AUTO) -> list[RenderStrategy]:
        """
        Build the ordered strategy list for a backend.

        auto tries the preview renderer, then the authoritative renderer, then
        falls back to passing the original media through.
        """
        backend = Backend(backend)
        preview = PreviewStrategy(self.transform_compiler, self.urls)
        authoritative = AuthoritativeStrategy(
            self.config,
            self.filter_compiler,
            self.segment_editor,
            self.runner,
            tracker_factory=self._tracker_for,
        )
        if backend == Backend.PREVIEW:
            return [preview]
        if backend == Backend.AUTHORITATIVE:
            return [authoritative]
        return [preview, authoritative, PassthroughStrategy(self.urls)]

    def process(
        self,
        instruction: InstructionLike,
        target: EditTarget,
        backend: Union[str, Backend] = Backend.AUTO,
        index: int = 0,
    ) -> OperationResult:
        """
        Process one instruction against a target.

        Args:
            instruction: Instruction or its dictionary form
            target: Media to edit
            backend: preview, authoritative or auto
            index: Position of the instruction in a sequence

        Returns:
            OperationResult; failures are reported, never raised
        """
        kind = instruction.operation if isinstance(instruction, Instruction) else str(
            instruction.get("operation", "")
        )
        self._trigger_hooks("before_operation", index, instruction)

        try:
            operation = self.prepare(instruction)
            outcome = FallbackChain(self.strategies(backend)).run(operation, target)
        except Exception as e:
            if isinstance(e, VeditError):
                logger.error(f"{kind or 'operation'} failed: {e}")
            else:
                logger.exception(f"Unexpected error while processing {kind or 'operation'}")
            self._trigger_hooks("on_error", index, e)
            result = OperationResult.failure_result(kind, e)
            result.index = index
            self._trigger_hooks("after_operation", index, result)
            return result

        status = OperationStatus.SKIPPED if outcome.skipped else OperationStatus.COMPLETED
        result = OperationResult(
            kind=kind,
            status=status,
            index=index,
            output=outcome.output,
            warnings=list(outcome.warnings),
            metadata={"strategy": outcome.strategy, **outcome.metadata},
        )
        logger.info(f"{kind} {status.value} via {outcome.strategy}")
        self._trigger_hooks("after_operation", index, result)
        return result
