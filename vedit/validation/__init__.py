from vedit.validation.validator import (
    OperationValidator,
    ValidationResult,
    sanitize_input,
    validate_public_id,
)

__all__ = ["OperationValidator", "ValidationResult", "sanitize_input", "validate_public_id"]
