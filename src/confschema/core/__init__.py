"""
confschema core: schema model, staged builder, and the validation and
visibility engines.
"""

from .builder import (
    FieldBuilder,
    RegistryBuilder,
    SchemaBuilder,
    SectionBuilder,
    build_registry,
)
from .errors import (
    BuildDefect,
    BuilderStateError,
    ConfSchemaError,
    FieldError,
    FieldErrorKind,
    RecordValidationError,
    SchemaNotFoundError,
)
from .validation import ValidationResult, normalize_stored, validate, validate_record
from .visibility import Visibility, evaluate_visibility, visible_fields, visible_sections

__all__ = [
    # Builder
    "FieldBuilder",
    "RegistryBuilder",
    "SchemaBuilder",
    "SectionBuilder",
    "build_registry",
    # Errors
    "BuildDefect",
    "BuilderStateError",
    "ConfSchemaError",
    "FieldError",
    "FieldErrorKind",
    "RecordValidationError",
    "SchemaNotFoundError",
    # Engines
    "ValidationResult",
    "Visibility",
    "evaluate_visibility",
    "normalize_stored",
    "validate",
    "validate_record",
    "visible_fields",
    "visible_sections",
]
