#!/usr/bin/env python3
"""
Template Example

This example applies a bundled effect template to a local video:
1. Load the template catalog
2. Run every template operation through the authoritative renderer
3. Chain each rendered step into the next

Usage:
    python examples/apply_template.py input.mp4 output.mp4 [template-id]
"""

import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from vedit import EditEngine, EditTarget, EngineConfig, TemplateSequencer
from vedit.render.progress import RenderEventType


def main():
    if len(sys.argv) < 3:
        print("Usage: python apply_template.py input.mp4 output.mp4 [template-id]")
        sys.exit(1)

    input_path = Path(sys.argv[1])
    output_path = Path(sys.argv[2])
    template_id = sys.argv[3] if len(sys.argv) > 3 else "cinematic-intro"

    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    engine = EditEngine(EngineConfig.from_env())
    engine.on_progress(
        lambda event: print(f"  {event.percent:5.1f}%")
        if event.type == RenderEventType.PROGRESS else None
    )
    sequencer = TemplateSequencer(engine)

    template = sequencer.catalog.get(template_id)
    print(f"Applying '{template.name}' to {input_path}")
    for step in template.operations:
        print(f"  - {step.operation} {step.params}")

    target = EditTarget(source=str(input_path), output=output_path)
    results = sequencer.apply(template_id, target, backend="authoritative")

    failed = [r for r in results if not r.success]
    for result in results:
        print(f"[{result.index}] {result.kind}: {result.status.value}")
        for warning in result.warnings:
            print(f"    warning: {warning}")

    if failed:
        print(f"\n{len(failed)} of {len(results)} operations did not complete")
        sys.exit(1)

    print(f"\nSuccess! Output saved to: {output_path}")


if __name__ == "__main__":
    main()
