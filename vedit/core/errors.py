"""
Error taxonomy for the edit engine.

Every error raised by the engine derives from VeditError and carries a
machine-readable code alongside the human-readable message, so call sites
can surface a consistent payload via format_error().
"""

from __future__ import annotations

from typing import Any, Optional


class VeditError(Exception):
    """Base class for all engine errors."""

    code = "PROCESSING_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(VeditError):
    """Malformed or out-of-range operation parameters."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Optional[list[str]] = None, **kwargs):
        self.errors = list(errors or [message])
        details = kwargs.pop("details", None) or {}
        details.setdefault("errors", self.errors)
        super().__init__(message, details=details, **kwargs)


class UnknownOperationError(ValidationError):
    """The requested operation kind is not in the catalog."""

    def __init__(self, kind: Any):
        self.kind = kind
        super().__init__(
            f"Unknown operation kind: {kind!r}",
            details={"operation": str(kind)},
        )


class CompilationError(VeditError):
    """Filter or transformation construction failed for one operation."""

    code = "COMPILATION_ERROR"


class ExecutionError(VeditError):
    """The external media engine failed to complete a render."""

    code = "EXECUTION_ERROR"

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stderr_tail: str = "",
        command: Optional[list[str]] = None,
    ):
        self.returncode = returncode
        self.stderr_tail = stderr_tail
        self.command = command
        super().__init__(
            message,
            details={"returncode": returncode, "stderr": stderr_tail},
        )


class NotFoundError(VeditError):
    """A catalog entry (template, preset file, media) could not be found."""

    code = "NOT_FOUND"


class TemplateNotFoundError(NotFoundError):
    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(
            f"Template not found: {template_id}",
            details={"template_id": template_id},
        )


def format_error(error: BaseException) -> dict[str, Any]:
    """
    Convert an exception into a response payload.

    Engine errors keep their own code and details. Anything else is reported
    as a generic processing failure with the exception text attached.
    """
    if isinstance(error, VeditError):
        return error.to_dict()

    return {
        "error": "ProcessingError",
        "code": VeditError.code,
        "message": "Processing failed",
        "details": {"reason": str(error)},
    }
