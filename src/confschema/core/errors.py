"""
Error types for schema construction and record validation.

Two families live here:

- Exceptions (``ConfSchemaError`` and subclasses) for programming errors in
  schema declarations and for lookups of unknown schemas.
- Per-field error records (``FieldError``) produced by the validation engine.
  These are data, reported back to the caller, never raised on their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .ir.fields import ValidatorKind


class ConfSchemaError(Exception):
    """Base exception for all confschema errors."""

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}: {self.message}"
        return self.message


class BuildDefect(ConfSchemaError):
    """
    Raised when a schema declaration is inconsistent.

    Examples:
    - Duplicate schema key or field id
    - Section, list view or condition referencing an undeclared field
    - Cyclic or multi-hop visibility conditions
    - Secret field exposed in a list view
    """

    pass


class BuilderStateError(BuildDefect):
    """
    Raised when a builder operation is called in the wrong stage.

    Examples:
    - Calling a method on a builder that was already closed
    - Declaring a schema-level item while a field is still open
    """

    pass


class SchemaNotFoundError(ConfSchemaError):
    """Raised when a schema key is not present in the registry."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown schema '{key}'")


class RecordValidationError(ConfSchemaError):
    """
    Raised by ``ValidationResult.raise_for_errors`` when a record is invalid.

    Carries the full list of field errors so callers can still report every
    problem at once.
    """

    def __init__(self, schema: str, errors: list[FieldError]):
        self.schema = schema
        self.errors = errors
        summary = ", ".join(f"{e.field} ({e.kind.value})" for e in errors)
        super().__init__(
            f"{len(errors)} invalid field(s): {summary}",
            ErrorContext(schema=schema),
        )


@dataclass(frozen=True)
class ErrorContext:
    """
    Location of an error inside a schema declaration.

    Attributes:
        schema: Schema key
        field: Optional field id
        section: Optional form section title
    """

    schema: str
    field: str | None = None
    section: str | None = None

    def format(self) -> str:
        """
        Format the context as a human-readable location.

        Returns:
            Formatted string like: "schema 'acme', field 'host'"
        """
        location = f"schema '{self.schema}'"
        if self.section is not None:
            location += f", section '{self.section}'"
        if self.field is not None:
            location += f", field '{self.field}'"
        return location


def make_build_defect(
    message: str,
    schema: str | None = None,
    field: str | None = None,
    section: str | None = None,
) -> BuildDefect:
    """
    Helper to create a BuildDefect with optional context.

    Args:
        message: Error description
        schema: Optional schema key
        field: Optional field id
        section: Optional section title

    Returns:
        BuildDefect with context if a schema was given
    """
    if schema is not None:
        return BuildDefect(message, ErrorContext(schema=schema, field=field, section=section))
    return BuildDefect(message)


# =============================================================================
# Field Errors
# =============================================================================


class FieldErrorKind(StrEnum):
    """Kinds of per-field validation errors."""

    UNKNOWN_FIELD = "unknown-field"
    MISSING_REQUIRED = "missing-required"
    VALIDATION_FAILED = "validation-failed"


@dataclass(frozen=True)
class FieldError:
    """
    A single field-level validation error.

    Attributes:
        field: Field id as submitted
        kind: Error kind
        rule: Validator rule that failed (VALIDATION_FAILED only)
        message: Human-readable message for display next to the field
    """

    field: str
    kind: FieldErrorKind
    message: str
    rule: ValidatorKind | None = None

    def to_dict(self) -> dict[str, str | None]:
        """Serialize for JSON responses."""
        return {
            "field": self.field,
            "kind": self.kind.value,
            "rule": self.rule.value if self.rule else None,
            "message": self.message,
        }
