"""
Display condition types for confschema.

A display condition gates the visibility of a field or form section on the
current value of another field in the same schema.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .values import condition_tokens


class FieldRef(BaseModel):
    """
    Typed handle to a declared field.

    Issued by the schema builder once a field id has been declared, so
    references built from handles cannot dangle.

    Examples:
        - FieldRef(schema_key="acme", field_id="challenge")
    """

    schema_key: str
    field_id: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.schema_key}.{self.field_id}"


class DisplayCondition(BaseModel):
    """
    Visible iff ``field`` currently equals one of ``values``.

    Examples:
        - challenge = dns-01: DisplayCondition(field="challenge", values=("dns-01",))
        - provider in [cloudflare]: DisplayCondition(field="provider", values=("cloudflare",))
    """

    field: str
    values: tuple[str, ...]

    model_config = ConfigDict(frozen=True)

    @field_validator("values")
    @classmethod
    def validate_values(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """A condition must allow at least one value."""
        if not v:
            raise ValueError("Display condition needs at least one allowed value")
        return v

    def matches(self, value: Any) -> bool:
        """Check whether a field value satisfies this condition."""
        return any(token in self.values for token in condition_tokens(value))

    def describe(self) -> str:
        """Short human-readable form, e.g. ``challenge in [dns-01]``."""
        return f"{self.field} in [{', '.join(self.values)}]"
