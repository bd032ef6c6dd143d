"""
Core data model - operations, results, errors and configuration.
"""

from vedit.core.config import EngineConfig
from vedit.core.errors import (
    CompilationError,
    ExecutionError,
    NotFoundError,
    TemplateNotFoundError,
    UnknownOperationError,
    ValidationError,
    VeditError,
    format_error,
)
from vedit.core.operation import Instruction, Operation, OperationKind, ResourceType, TimeWindow
from vedit.core.result import OperationResult, OperationStatus
from vedit.core.target import EditTarget

__all__ = [
    "EngineConfig",
    "VeditError",
    "ValidationError",
    "UnknownOperationError",
    "CompilationError",
    "ExecutionError",
    "NotFoundError",
    "TemplateNotFoundError",
    "format_error",
    "Instruction",
    "Operation",
    "OperationKind",
    "ResourceType",
    "TimeWindow",
    "OperationResult",
    "OperationStatus",
    "EditTarget",
]
