"""
Intermediate representation for confschema.

Frozen pydantic models describing schemas, their fields, and the values
flowing through validation.
"""

from .conditions import DisplayCondition, FieldRef
from .fields import (
    FieldSpec,
    FieldType,
    FieldTypeKind,
    SelectOption,
    Transformer,
    TransformerKind,
    Validator,
    ValidatorKind,
    ValidatorSpec,
)
from .schema import ID_FIELD, FormSection, ListView, SchemaRegistry, SchemaSpec
from .values import (
    RawValue,
    Value,
    condition_tokens,
    format_duration,
    is_empty,
    parse_boolean,
    parse_duration,
    scalar_token,
    to_raw,
)

__all__ = [
    # Conditions
    "DisplayCondition",
    "FieldRef",
    # Fields
    "FieldSpec",
    "FieldType",
    "FieldTypeKind",
    "SelectOption",
    "Transformer",
    "TransformerKind",
    "Validator",
    "ValidatorKind",
    "ValidatorSpec",
    # Schemas
    "ID_FIELD",
    "FormSection",
    "ListView",
    "SchemaRegistry",
    "SchemaSpec",
    # Values
    "RawValue",
    "Value",
    "condition_tokens",
    "format_duration",
    "is_empty",
    "parse_boolean",
    "parse_duration",
    "scalar_token",
    "to_raw",
]
