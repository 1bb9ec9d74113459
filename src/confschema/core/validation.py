"""
Validation engine.

Normalizes and validates a submitted record against its schema:

1. Fields hidden under the current record state are skipped entirely,
   even when required.
2. Transformers run in order over the raw value.
3. Validators run in order; the first failure is recorded for the field
   and its later validators are not evaluated.
4. The value is coerced into the field's declared kind.
5. Without a submitted value, a stored value is carried over unchanged;
   failing that, the field's default is used as if it had been submitted.

All fields are evaluated; errors never short-circuit across fields.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .errors import FieldError, FieldErrorKind, RecordValidationError
from .ir import (
    FieldSpec,
    RawValue,
    SchemaRegistry,
    SchemaSpec,
    Value,
    ValidatorKind,
    scalar_token,
)
from .manifest import EngineConfig
from .rules import CoercionError, check_rule, coerce_value
from .transformers import apply_transformers
from .visibility import evaluate_visibility

logger = logging.getLogger(__name__)


# =============================================================================
# Validation Result
# =============================================================================


@dataclass
class ValidationResult:
    """Result of validating a record."""

    schema: str
    values: dict[str, Value] = field(default_factory=dict)
    errors: list[FieldError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error_for(self, field_id: str) -> FieldError | None:
        """First error recorded for a field."""
        for error in self.errors:
            if error.field == field_id:
                return error
        return None

    def raise_for_errors(self) -> dict[str, Value]:
        """
        Return the normalized values, or raise if the record is invalid.

        Raises:
            RecordValidationError: If any field failed.
        """
        if self.errors:
            raise RecordValidationError(self.schema, self.errors)
        return self.values

    @classmethod
    def success(cls, schema: str, values: dict[str, Value]) -> ValidationResult:
        """Create a successful validation result."""
        return cls(schema=schema, values=values)

    @classmethod
    def failure(cls, schema: str, errors: list[FieldError]) -> ValidationResult:
        """Create a failed validation result."""
        return cls(schema=schema, errors=errors)


# =============================================================================
# Raw Input Preparation
# =============================================================================


def _prepare_raw(spec: FieldSpec, raw: Any) -> RawValue:
    """
    Bring a submitted value into raw form for the field.

    Scalars that are not strings (booleans, numbers from JSON) become their
    canonical string form. Multi-valued fields always get a list without
    empty items, and single-element lists are unwrapped for single-valued
    fields.
    """
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        items = [scalar_token(item) for item in raw]
    else:
        items = [scalar_token(raw)]
    if spec.type.is_multi_valued:
        return [item for item in items if item != ""]
    if len(items) == 1:
        return items[0]
    return items


def _default_raw(spec: FieldSpec) -> RawValue:
    if spec.default is None:
        return None
    return _prepare_raw(spec, spec.default)


def _record_state(
    schema: SchemaSpec,
    raw: Mapping[str, Any],
    stored: Mapping[str, Value] | None,
) -> dict[str, Any]:
    """
    Stored values overlaid with submitted values and defaults.

    Submitted values stay raw; the visibility engine normalizes the values
    its conditions reference.
    """
    state: dict[str, Any] = dict(stored or {})
    for field_id, spec in schema.fields.items():
        if raw.get(field_id) is not None:
            state[field_id] = _prepare_raw(spec, raw[field_id])
        elif state.get(field_id) is None and spec.default is not None:
            state[field_id] = _default_raw(spec)
    return state


# =============================================================================
# Field Validation
# =============================================================================


def validate_field(spec: FieldSpec, raw: RawValue) -> tuple[Value, FieldError | None]:
    """
    Transform, validate and coerce one field value.

    Returns:
        Tuple of (normalized value, error). The value is None when an error
        is returned.
    """
    value = apply_transformers(raw, spec.transformers)

    for validator in spec.validators:
        message = check_rule(validator, value)
        if message is None:
            continue
        kind = (
            FieldErrorKind.MISSING_REQUIRED
            if validator.kind == ValidatorKind.REQUIRED
            else FieldErrorKind.VALIDATION_FAILED
        )
        return None, FieldError(field=spec.id, kind=kind, message=message, rule=validator.kind)

    try:
        return coerce_value(spec, value), None
    except CoercionError as e:
        return None, FieldError(
            field=spec.id,
            kind=FieldErrorKind.VALIDATION_FAILED,
            message=e.message,
            rule=e.rule,
        )


# =============================================================================
# Record Validation
# =============================================================================


def validate_record(
    schema: SchemaSpec,
    raw: Mapping[str, Any],
    stored: Mapping[str, Value] | None = None,
    config: EngineConfig | None = None,
) -> ValidationResult:
    """
    Validate a submitted record against a schema.

    Args:
        schema: Schema of the record
        raw: Submitted values by field id (strings or lists of strings)
        stored: Previously stored, normalized values for partial updates
        config: Engine configuration (defaults apply when omitted)

    Returns:
        ValidationResult with the normalized values of every visible field,
        or the field errors.
    """
    config = config or EngineConfig()
    errors: list[FieldError] = []

    for field_id in raw:
        if field_id in schema.fields:
            continue
        if config.validation.reject_unknown_fields:
            errors.append(
                FieldError(
                    field=field_id,
                    kind=FieldErrorKind.UNKNOWN_FIELD,
                    message=f"Unknown field for schema '{schema.key}'",
                )
            )
        else:
            logger.warning(f"Ignoring unknown field '{field_id}' submitted for schema '{schema.key}'")

    visibility = evaluate_visibility(schema, _record_state(schema, raw, stored))
    values: dict[str, Value] = {}

    for field_id, spec in schema.fields.items():
        if not visibility.is_field_visible(field_id):
            continue
        if raw.get(field_id) is not None:
            source = _prepare_raw(spec, raw[field_id])
        elif stored is not None and stored.get(field_id) is not None:
            values[field_id] = stored[field_id]
            continue
        else:
            source = _default_raw(spec)

        value, error = validate_field(spec, source)
        if error is not None:
            errors.append(error)
        else:
            values[field_id] = value

    logger.debug(
        f"Validated record for '{schema.key}': {len(values)} value(s), "
        f"{len(errors)} error(s), {len(schema.fields) - len(visibility.fields)} hidden"
    )
    if errors:
        return ValidationResult.failure(schema.key, errors)
    return ValidationResult.success(schema.key, values)


def validate(
    registry: SchemaRegistry,
    key: str,
    raw: Mapping[str, Any],
    stored: Mapping[str, Value] | None = None,
    config: EngineConfig | None = None,
) -> ValidationResult:
    """
    Validate a submitted record against the schema registered under ``key``.

    Raises:
        SchemaNotFoundError: If the key is not registered.
    """
    return validate_record(registry.get(key), raw, stored, config)


def normalize_stored(schema: SchemaSpec, raw: Mapping[str, Any]) -> ValidationResult:
    """
    Normalize a stored record given in raw form (as produced by ``to_raw``).

    Every present value is transformed, validated and coerced on its own.
    Visibility and missing required fields are not considered, since a
    stored record may predate the current schema state.

    Returns:
        ValidationResult with values suitable as ``stored`` for
        ``validate_record``, or the field errors.
    """
    errors: list[FieldError] = []
    values: dict[str, Value] = {}
    for field_id, item in raw.items():
        spec = schema.fields.get(field_id)
        if spec is None:
            errors.append(
                FieldError(
                    field=field_id,
                    kind=FieldErrorKind.UNKNOWN_FIELD,
                    message=f"Unknown field for schema '{schema.key}'",
                )
            )
            continue
        if item is None:
            continue
        value, error = validate_field(spec, _prepare_raw(spec, item))
        if error is not None:
            errors.append(error)
        elif value is not None:
            values[field_id] = value
    if errors:
        return ValidationResult.failure(schema.key, errors)
    return ValidationResult.success(schema.key, values)
