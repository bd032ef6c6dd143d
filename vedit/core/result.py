"""
Per-operation results.

Each processed operation produces one OperationResult. Soft degradations are
recorded as warnings on a completed or skipped result; hard failures carry the
exception that caused them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from vedit.core.errors import format_error


class OperationStatus(Enum):
    """Outcome of processing one operation."""
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class OperationResult:
    """Result of validating, compiling and optionally executing one operation."""
    kind: str
    status: OperationStatus
    index: int = 0
    output: Any = None
    error: Optional[Exception] = None
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == OperationStatus.COMPLETED

    @property
    def skipped(self) -> bool:
        return self.status == OperationStatus.SKIPPED

    @classmethod
    def success_result(
        cls,
        kind: str,
        output: Any = None,
        warnings: Optional[list[str]] = None,
        **metadata,
    ) -> OperationResult:
        return cls(
            kind=kind,
            status=OperationStatus.COMPLETED,
            output=output,
            warnings=list(warnings or []),
            metadata=metadata,
        )

    @classmethod
    def failure_result(cls, kind: str, error: Exception, **metadata) -> OperationResult:
        return cls(kind=kind, status=OperationStatus.FAILED, error=error, metadata=metadata)

    @classmethod
    def skipped_result(cls, kind: str, reason: str = "") -> OperationResult:
        return cls(
            kind=kind,
            status=OperationStatus.SKIPPED,
            warnings=[reason] if reason else [],
            metadata={"reason": reason},
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "operation": self.kind,
            "index": self.index,
            "status": self.status.value,
            "warnings": list(self.warnings),
        }
        if self.output is not None:
            data["output"] = str(self.output)
        if self.error is not None:
            data["error"] = format_error(self.error)
        return data

    def __repr__(self) -> str:
        return f"OperationResult(kind='{self.kind}', index={self.index}, status={self.status.value})"
