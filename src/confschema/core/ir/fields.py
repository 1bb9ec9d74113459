"""
Field type definitions for confschema.

This module contains the field type system: field kinds, select options,
input transformers, validators, and the field specification itself.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .conditions import DisplayCondition


class FieldTypeKind(StrEnum):
    """Semantic kinds of configuration fields."""

    INPUT = "input"
    SECRET = "secret"
    TEXT = "text"
    BOOLEAN = "boolean"
    DURATION = "duration"
    ARRAY = "array"
    SELECT = "select"


class SelectOption(BaseModel):
    """One choice of a select field: stored value and display label."""

    value: str
    label: str

    model_config = ConfigDict(frozen=True)


class FieldType(BaseModel):
    """
    Represents a field type specification.

    Examples:
        - Input: FieldType(kind=INPUT)
        - Select: FieldType(kind=SELECT, options=(SelectOption(value="udp", label="UDP"),))
        - Multi-select: FieldType.select([("TLSv1.2", "TLS 1.2")], multi=True)
    """

    kind: FieldTypeKind
    options: tuple[SelectOption, ...] = ()  # for select
    multi: bool = False  # for select

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_select(self) -> FieldType:
        """Only select fields carry options, and their values must be unique."""
        if self.kind != FieldTypeKind.SELECT:
            if self.options or self.multi:
                raise ValueError(f"Options are only allowed on select fields, not '{self.kind}'")
            return self
        seen: set[str] = set()
        for option in self.options:
            if option.value in seen:
                raise ValueError(f"Duplicate select option '{option.value}'")
            seen.add(option.value)
        return self

    @classmethod
    def input(cls) -> FieldType:
        return cls(kind=FieldTypeKind.INPUT)

    @classmethod
    def secret(cls) -> FieldType:
        return cls(kind=FieldTypeKind.SECRET)

    @classmethod
    def text(cls) -> FieldType:
        return cls(kind=FieldTypeKind.TEXT)

    @classmethod
    def boolean(cls) -> FieldType:
        return cls(kind=FieldTypeKind.BOOLEAN)

    @classmethod
    def duration(cls) -> FieldType:
        return cls(kind=FieldTypeKind.DURATION)

    @classmethod
    def array(cls) -> FieldType:
        return cls(kind=FieldTypeKind.ARRAY)

    @classmethod
    def select(
        cls,
        options: list[tuple[str, str]] | tuple[tuple[str, str], ...],
        multi: bool = False,
    ) -> FieldType:
        """Build a select type from ``(value, label)`` pairs."""
        return cls(
            kind=FieldTypeKind.SELECT,
            options=tuple(SelectOption(value=v, label=label) for v, label in options),
            multi=multi,
        )

    @property
    def option_values(self) -> list[str]:
        """Allowed values of a select field, in declaration order."""
        return [option.value for option in self.options]

    @property
    def is_multi_valued(self) -> bool:
        """Check if values of this type are lists."""
        return self.kind == FieldTypeKind.ARRAY or (
            self.kind == FieldTypeKind.SELECT and self.multi
        )


class TransformerKind(StrEnum):
    """Pure input normalization steps, applied before validation."""

    TRIM = "trim"
    REMOVE_SPACES = "remove-spaces"
    LOWERCASE = "lowercase"
    UPPERCASE = "uppercase"


class ValidatorKind(StrEnum):
    """Validation rules."""

    REQUIRED = "required"
    IS_URL = "is-url"
    IS_EMAIL = "is-email"
    IS_PORT = "is-port"
    IS_IP_OR_MASK = "is-ip-or-mask"
    IS_DOMAIN = "is-domain"
    CUSTOM = "custom"
    # Applied implicitly by type coercion
    IS_BOOLEAN = "is-boolean"
    IS_DURATION = "is-duration"
    IS_OPTION = "is-option"
    IS_SINGLE_VALUE = "is-single-value"


class ValidatorSpec(BaseModel):
    """
    Validation rule for a field.

    Examples:
        - ValidatorSpec(kind=ValidatorKind.REQUIRED)
        - ValidatorSpec(kind=ValidatorKind.IS_EMAIL)
        - ValidatorSpec.custom("even-port", lambda v: int(v) % 2 == 0, "Port must be even")
    """

    kind: ValidatorKind
    name: str | None = None  # for custom
    check: Callable[[str], bool] | None = Field(default=None, exclude=True)  # for custom
    message: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_custom(self) -> ValidatorSpec:
        """Custom validators need a name and a predicate."""
        if self.kind == ValidatorKind.CUSTOM and (self.check is None or not self.name):
            raise ValueError("Custom validators need a name and a check function")
        return self

    @classmethod
    def custom(cls, name: str, check: Callable[[str], bool], message: str | None = None) -> ValidatorSpec:
        return cls(kind=ValidatorKind.CUSTOM, name=name, check=check, message=message)

    @property
    def label(self) -> str:
        """Display name of the rule."""
        if self.kind == ValidatorKind.CUSTOM and self.name:
            return self.name
        return self.kind.value


# Shorthands for declarations
Validator = ValidatorKind
Transformer = TransformerKind


class FieldSpec(BaseModel):
    """
    Specification for a single field of a schema.

    Attributes:
        id: Field identifier, unique within the schema
        label: Human-readable label
        help: Help text shown under the control
        placeholder: Placeholder shown in an empty control
        type: Field type specification
        transformers: Input transformers, applied in order
        validators: Validation rules, applied in order
        default: Raw default, used when no value is submitted
        display_if: Optional visibility condition
    """

    id: str
    label: str | None = None
    help: str | None = None
    placeholder: str | None = None
    type: FieldType = Field(default_factory=FieldType.input)
    transformers: tuple[TransformerKind, ...] = ()
    validators: tuple[ValidatorSpec, ...] = ()
    default: str | tuple[str, ...] | None = None
    display_if: DisplayCondition | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Field ids are non-empty and free of whitespace."""
        if not v or any(ch.isspace() for ch in v):
            raise ValueError(f"Field id '{v}' must be non-empty and contain no whitespace")
        return v

    @property
    def is_required(self) -> bool:
        """Check if field is required."""
        return any(v.kind == ValidatorKind.REQUIRED for v in self.validators)

    @property
    def is_secret(self) -> bool:
        """Check if field holds a secret."""
        return self.type.kind == FieldTypeKind.SECRET

    @property
    def display_label(self) -> str:
        """Label, falling back to the id."""
        return self.label or self.id
