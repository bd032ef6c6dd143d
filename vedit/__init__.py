"""
vedit - Video Edit Operation Engine

Turns declarative edit instructions (trim, colour grade, text, captions, speed,
crop ...) into ffmpeg filter expressions or preview transformation URLs, and
renders them through a fallback chain of strategies.
"""

__version__ = "0.1.0"
__author__ = "vedit Team"

from vedit.core.config import EngineConfig
from vedit.core.operation import Instruction, Operation, OperationKind, ResourceType
from vedit.core.result import OperationResult, OperationStatus
from vedit.core.target import EditTarget
from vedit.engine.engine import Backend, EditEngine
from vedit.engine.sequencer import TemplateSequencer

__all__ = [
    "EditEngine",
    "EditTarget",
    "EngineConfig",
    "Backend",
    "Instruction",
    "Operation",
    "OperationKind",
    "OperationResult",
    "OperationStatus",
    "ResourceType",
    "TemplateSequencer",
    "__version__",
]
