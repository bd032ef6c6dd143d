"""
Engine - processes instructions and sequences templates.
"""

from vedit.engine.engine import Backend, EditEngine
from vedit.engine.sequencer import TemplateSequencer

__all__ = ["Backend", "EditEngine", "TemplateSequencer"]
