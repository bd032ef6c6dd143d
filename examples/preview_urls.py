#!/usr/bin/env python3
"""
Preview URL Example

This example builds preview delivery URLs for a handful of edits without
rendering anything locally. Operations the preview service cannot express
fall back to the authoritative compiler, whose compiled plan is printed instead.

Usage:
    python examples/preview_urls.py [public-id]
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from vedit import EditEngine, EditTarget, EngineConfig


EDITS = [
    {"operation": "colorGrade", "params": {"preset": "cinematic"}},
    {"operation": "applyEffect", "params": {"effect": "vignette"}},
    {"operation": "addText", "params": {
        "text": "Summer, 2024", "position": "top-right", "startTime": 1, "endTime": 4,
    }},
    {"operation": "adjustSpeed", "params": {"speed": 1.5}},
    {"operation": "removeClip", "params": {"startTime": 2, "endTime": 5}},
]


def main():
    public_id = sys.argv[1] if len(sys.argv) > 1 else "samples/sea-turtle"

    engine = EditEngine(EngineConfig.from_env())
    target = EditTarget(public_id=public_id, duration=30.0)

    for index, edit in enumerate(EDITS):
        result = engine.process(edit, target, backend="auto", index=index)
        print(f"{edit['operation']} ({result.metadata.get('strategy', '-')}):")
        if result.success:
            print(f"  {result.output}")
        else:
            print(f"  failed: {result.error}")
        for warning in result.warnings:
            print(f"  warning: {warning}")


if __name__ == "__main__":
    main()
