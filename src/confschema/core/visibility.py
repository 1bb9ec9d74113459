"""
Visibility engine.

Given a schema and the current (possibly partial) record, decide which
fields and form sections are shown:

- A field or section without a display condition is visible.
- A conditional field or section is visible iff the referenced field is
  visible and its current normalized value is one of the allowed values.
  Raw values are transformed and coerced first, so a boolean submitted as
  "on" matches "true". A value that does not coerce counts as absent.
- A field that belongs to form sections is visible only if at least one of
  its sections is visible.

Hidden fields cannot make other fields visible. The linker guarantees the
dependency graph is acyclic, so evaluation always terminates.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .ir import DisplayCondition, SchemaRegistry, SchemaSpec, Value
from .rules import normalize_value


@dataclass(frozen=True)
class Visibility:
    """Visible field ids and section titles of a record."""

    fields: frozenset[str]
    sections: frozenset[str]

    def is_field_visible(self, field_id: str) -> bool:
        return field_id in self.fields

    def is_section_visible(self, title: str) -> bool:
        return title in self.sections


class _Evaluator:
    """Memoized evaluation over one schema and one value set."""

    def __init__(self, schema: SchemaSpec, values: Mapping[str, Any]):
        self.schema = schema
        self.values = values
        self._fields: dict[str, bool] = {}
        self._sections: dict[str, bool] = {}
        self._normalized: dict[str, Value] = {}

    def condition_holds(self, condition: DisplayCondition | None) -> bool:
        if condition is None:
            return True
        if not self.field_visible(condition.field):
            return False
        return condition.matches(self.normalized(condition.field))

    def normalized(self, field_id: str) -> Value:
        if field_id not in self._normalized:
            value = self.values.get(field_id)
            field = self.schema.fields.get(field_id)
            self._normalized[field_id] = value if field is None else normalize_value(field, value)
        return self._normalized[field_id]

    def field_visible(self, field_id: str) -> bool:
        if field_id in self._fields:
            return self._fields[field_id]
        field = self.schema.fields.get(field_id)
        if field is None:
            visible = False
        else:
            sections = self.schema.sections_for(field_id)
            visible = (
                not sections or any(self.section_visible(s.title) for s in sections)
            ) and self.condition_holds(field.display_if)
        self._fields[field_id] = visible
        return visible

    def section_visible(self, title: str) -> bool:
        if title in self._sections:
            return self._sections[title]
        section = self.schema.get_section(title)
        visible = section is not None and self.condition_holds(section.display_if)
        self._sections[title] = visible
        return visible


def evaluate_visibility(schema: SchemaSpec, values: Mapping[str, Any]) -> Visibility:
    """
    Evaluate which fields and sections of a record are visible.

    Args:
        schema: Schema of the record
        values: Current field values, raw or normalized

    Returns:
        Visibility with the visible field ids and section titles
    """
    evaluator = _Evaluator(schema, values)
    return Visibility(
        fields=frozenset(f for f in schema.fields if evaluator.field_visible(f)),
        sections=frozenset(s.title for s in schema.sections if evaluator.section_visible(s.title)),
    )


def visible_fields(
    registry: SchemaRegistry, key: str, values: Mapping[str, Any]
) -> frozenset[str]:
    """
    Field ids of a record currently visible.

    Raises:
        SchemaNotFoundError: If the key is not registered.
    """
    return evaluate_visibility(registry.get(key), values).fields


def visible_sections(
    registry: SchemaRegistry, key: str, values: Mapping[str, Any]
) -> frozenset[str]:
    """
    Form section titles of a record currently visible.

    Raises:
        SchemaNotFoundError: If the key is not registered.
    """
    return evaluate_visibility(registry.get(key), values).sections
