"""
Operation validation.

Checks an operation's parameters against the catalog before anything is
compiled. Validation never raises: problems are collected into a
ValidationResult so every call site handles them the same way.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from vedit.catalog.operations import (
    FONT_SIZE_NAMES,
    WINDOW_FIELDS,
    FieldSpec,
    OperationCatalog,
)
from vedit.core.errors import ValidationError
from vedit.core.operation import Instruction, OperationKind, ResourceType

logger = logging.getLogger(__name__)

PUBLIC_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_/\-.]+$")
PUBLIC_ID_MAX_LENGTH = 200

# Kinds that only make sense on media with a timeline
_TIMELINE_KINDS = frozenset({
    OperationKind.TRIM,
    OperationKind.REMOVE_CLIP,
    OperationKind.ADJUST_SPEED,
    OperationKind.ADD_CAPTIONS,
})

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


@dataclass
class ValidationResult:
    """Outcome of validating one operation."""
    valid: bool
    errors: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def failed(cls, errors: list[str]) -> ValidationResult:
        return cls(valid=False, errors=list(errors))

    def raise_for_errors(self):
        """Raise ValidationError if the result is invalid."""
        if not self.valid:
            raise ValidationError("; ".join(self.errors), errors=self.errors)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _format_number(value: float) -> str:
    return format(value, "g")


def validate_public_id(public_id: str) -> str:
    """
    Check a media public id for the preview service.

    Raises:
        ValidationError: If the id is empty, too long or has invalid characters
    """
    if not public_id or not isinstance(public_id, str):
        raise ValidationError("Public id is required")
    if len(public_id) > PUBLIC_ID_MAX_LENGTH:
        raise ValidationError(
            f"Public id must be at most {PUBLIC_ID_MAX_LENGTH} characters"
        )
    if not PUBLIC_ID_PATTERN.match(public_id):
        raise ValidationError(f"Public id contains invalid characters: {public_id!r}")
    return public_id


def sanitize_input(text: str, max_length: int = 500) -> str:
    """Trim text, drop control characters and angle brackets, cap the length."""
    cleaned = _CONTROL_CHARS.sub("", str(text)).replace("<", "").replace(">", "")
    return cleaned.strip()[:max_length]


class OperationValidator:
    """
    Validates operation parameters against the catalog.

    Args:
        catalog: Operation catalog; the built-in catalog if omitted
    """

    def __init__(self, catalog: Optional[OperationCatalog] = None):
        self.catalog = catalog or OperationCatalog()

    def validate(
        self,
        kind: Union[str, OperationKind],
        params: Optional[dict[str, Any]],
    ) -> ValidationResult:
        """
        Validate parameters for an operation kind.

        Args:
            kind: Operation kind or its name
            params: Parameter dictionary

        Returns:
            ValidationResult listing every problem found
        """
        spec = self.catalog.describe(kind)
        if spec is None:
            return ValidationResult.failed([f"Unknown operation kind: {kind!r}"])

        if params is None:
            params = {}
        if not isinstance(params, dict):
            return ValidationResult.failed(["Parameters must be an object"])

        errors: list[str] = []
        for field_spec in spec.fields:
            errors.extend(self._check_field(field_spec, params))

        # A window is built for every unbounded kind, even ones that ignore it
        if not spec.supports_time_window and not spec.kind.is_bounded:
            for field_spec in WINDOW_FIELDS:
                errors.extend(self._check_field(field_spec, params))

        errors.extend(self._check_rules(spec.kind, params))

        if errors:
            logger.debug(f"Validation failed for {spec.kind.value}: {errors}")
            return ValidationResult.failed(errors)
        return ValidationResult.ok()

    def validate_instruction(self, instruction: Union[Instruction, dict[str, Any]]) -> ValidationResult:
        """Validate a full inbound instruction, including its resource type."""
        if isinstance(instruction, dict):
            try:
                instruction = Instruction.from_dict(instruction)
            except ValidationError as e:
                return ValidationResult.failed(e.errors)

        result = self.validate(instruction.operation, instruction.params)
        if not result.valid:
            return result

        kind = OperationKind(instruction.operation)
        if instruction.resource_type == ResourceType.IMAGE and kind in _TIMELINE_KINDS:
            return ValidationResult.failed(
                [f"{kind.value} cannot be applied to an image"]
            )
        return result

    # ==================== Field checks ====================

    def _check_field(self, spec: FieldSpec, params: dict[str, Any]) -> list[str]:
        key, value = spec.lookup(params)
        if key is None:
            if spec.required:
                return [f"Missing required parameter: {spec.name}"]
            return []

        if spec.type == "number":
            if not _is_number(value):
                return [f"{key} must be a number"]
            return self._check_range(key, spec, value)

        if spec.type == "size":
            if isinstance(value, str):
                text = value.strip().lower()
                if text.isdigit():
                    return self._check_range(key, spec, int(text))
                if text in FONT_SIZE_NAMES:
                    return []
                return [f"{key} must be a number or one of {', '.join(FONT_SIZE_NAMES)}"]
            if not _is_number(value):
                return [f"{key} must be a number"]
            return self._check_range(key, spec, value)

        if spec.type in ("string", "path"):
            if not isinstance(value, str):
                return [f"{key} must be a string"]
            if spec.choices is not None:
                choices = [str(c).lower() for c in spec.choices]
                normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
                if normalized not in choices:
                    return [f"{key} must be one of: {', '.join(map(str, spec.choices))}"]
            return []

        if spec.type == "list":
            if not isinstance(value, (list, tuple)):
                return [f"{key} must be a list"]
            return []

        return []

    @staticmethod
    def _check_range(key: str, spec: FieldSpec, value: float) -> list[str]:
        if spec.choices is not None:
            if not any(value == choice for choice in spec.choices):
                allowed = ", ".join(_format_number(c) for c in spec.choices)
                return [f"{key} must be one of: {allowed} (got {_format_number(value)})"]
            return []

        if spec.minimum is not None and spec.maximum is not None:
            if not spec.minimum <= value <= spec.maximum:
                return [
                    f"{key} must be between {_format_number(spec.minimum)} and "
                    f"{_format_number(spec.maximum)} (got {_format_number(value)})"
                ]
            return []
        if spec.minimum is not None and value < spec.minimum:
            return [f"{key} must be >= {_format_number(spec.minimum)} (got {_format_number(value)})"]
        if spec.maximum is not None and value > spec.maximum:
            return [f"{key} must be <= {_format_number(spec.maximum)} (got {_format_number(value)})"]
        if spec.exclusive_minimum is not None and value <= spec.exclusive_minimum:
            return [
                f"{key} must be greater than {_format_number(spec.exclusive_minimum)} "
                f"(got {_format_number(value)})"
            ]
        return []

    # ==================== Cross-field rules ====================

    def _check_rules(
        self,
        kind: OperationKind,
        params: dict[str, Any],
    ) -> list[str]:
        errors = []

        if kind.is_text:
            text = params.get("text")
            if isinstance(text, str) and not text.strip():
                errors.append("text must not be empty")

        if kind == OperationKind.TRIM:
            start = params.get("start", params.get("startTime", 0))
            end = params.get("end", params.get("endTime"))
            errors.extend(self._check_order("start", start, "end", end))

        if not kind.is_bounded:
            errors.extend(self._check_order(
                "startTime", params.get("startTime"), "endTime", params.get("endTime")
            ))

        if kind == OperationKind.ADD_CAPTIONS:
            cues = params.get("captions", params.get("segments")) or []
            if isinstance(cues, (list, tuple)):
                for i, cue in enumerate(cues):
                    errors.extend(self._check_cue(i, cue))

        return errors

    @staticmethod
    def _check_order(start_name: str, start: Any, end_name: str, end: Any) -> list[str]:
        if not _is_number(start) or not _is_number(end):
            return []
        if end <= start:
            return [
                f"{end_name} ({_format_number(end)}) must be greater than "
                f"{start_name} ({_format_number(start)})"
            ]
        return []

    @staticmethod
    def _check_cue(index: int, cue: Any) -> list[str]:
        if not isinstance(cue, dict):
            return [f"captions[{index}] must be an object"]
        errors = []
        if not isinstance(cue.get("text"), str):
            errors.append(f"captions[{index}].text must be a string")
        start = cue.get("start", cue.get("startTime"))
        end = cue.get("end", cue.get("endTime"))
        if not _is_number(start) or not _is_number(end):
            errors.append(f"captions[{index}] needs numeric start and end")
        elif start < 0 or end <= start:
            errors.append(f"captions[{index}] end must be after a non-negative start")
        return errors
