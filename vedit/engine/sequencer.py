"""
Template sequencing.

Applies an ordered list of instructions one after another. Every instruction
produces exactly one result; a failure is recorded and the run continues with
the next instruction. When an instruction renders a file, the following
instruction reads that file.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional, Union

from vedit.catalog.templates import TemplateCatalog
from vedit.core.operation import Instruction
from vedit.core.result import OperationResult
from vedit.core.target import EditTarget
from vedit.engine.engine import Backend, EditEngine, InstructionLike

logger = logging.getLogger(__name__)


class TemplateSequencer:
    """
    Runs templates (or any instruction list) through an engine.

    Example:
        sequencer = TemplateSequencer(engine)
        results = sequencer.apply("retro-vintage", target, backend="authoritative")
        failed = [r for r in results if not r.success]
    """

    def __init__(self, engine: EditEngine, catalog: Optional[TemplateCatalog] = None):
        self.engine = engine
        self.catalog = catalog or TemplateCatalog.load(engine.config.template_file)

    def apply(
        self,
        template_id: str,
        target: EditTarget,
        backend: Union[str, Backend] = Backend.AUTO,
    ) -> list[OperationResult]:
        """
        Apply a template by id.

        Raises:
            TemplateNotFoundError: If the id does not match a template exactly
        """
        template = self.catalog.get(template_id)
        logger.info(f"Applying template '{template.id}' ({len(template.operations)} operations)")
        instructions = [op.to_instruction(target.resource_type) for op in template.operations]
        return self.run(instructions, target, backend)

    def run(
        self,
        instructions: list[InstructionLike],
        target: EditTarget,
        backend: Union[str, Backend] = Backend.AUTO,
    ) -> list[OperationResult]:
        """
        Process instructions in order.

        Intermediate renders are written next to target.output; the last
        rendered file is copied to target.output at the end and the
        intermediate files are then removed.

        Returns:
            One result per instruction, indexed by position
        """
        results: list[OperationResult] = []
        current = target
        renders: list[Path] = []

        for index, instruction in enumerate(instructions):
            step_target = EditTarget(
                source=current.source,
                public_id=current.public_id,
                output=target.output_for(index),
                resource_type=current.resource_type,
                duration=current.duration,
                has_audio=current.has_audio,
            )
            result = self.engine.process(instruction, step_target, backend=backend, index=index)
            results.append(result)

            if result.success and isinstance(result.output, Path):
                renders.append(result.output)
                current = current.advance(result.output)
            elif not result.success:
                kind = instruction.operation if isinstance(instruction, Instruction) else instruction.get("operation")
                logger.warning(f"Step {index} ({kind}) {result.status.value}, continuing")

        if renders and target.output is not None:
            shutil.copyfile(renders[-1], target.output)
            logger.info(f"Sequence output written to {target.output}")
            self._remove_intermediates(renders, Path(target.output))

        completed = sum(1 for r in results if r.success)
        logger.info(f"Sequence finished: {completed}/{len(results)} operations completed")
        return results

    @staticmethod
    def _remove_intermediates(renders: list[Path], final: Path):
        for path in renders:
            if path == final:
                continue
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove intermediate render {path}: {e}")
