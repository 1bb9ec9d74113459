"""
Tests for the schema linker.

Schemas here are constructed directly as IR models so the linker checks run
without the builder's own early checks.
"""

import pytest

from confschema.core.errors import BuildDefect
from confschema.core.ir import (
    DisplayCondition,
    FieldSpec,
    FieldType,
    FormSection,
    ListView,
    SchemaRegistry,
    SchemaSpec,
)
from confschema.core.linker import check_schema, link_schemas, visibility_graph


def _fields(*specs: FieldSpec) -> dict[str, FieldSpec]:
    return {spec.id: spec for spec in specs}


def _when(field: str, *values: str) -> DisplayCondition:
    return DisplayCondition(field=field, values=values)


# =============================================================================
# Registry Assembly
# =============================================================================


class TestLinkSchemas:
    """Tests for assembling checked schemas into a registry."""

    def test_from_schemas(self):
        registry = SchemaRegistry.from_schemas(
            [SchemaSpec(key="a"), SchemaSpec(key="b", fields=_fields(FieldSpec(id="_id")))]
        )

        assert registry.keys == ["a", "b"]

    def test_duplicate_keys(self):
        with pytest.raises(BuildDefect, match="Duplicate schema key 'a'"):
            link_schemas([SchemaSpec(key="a"), SchemaSpec(key="a")])

    def test_logs_registry_size(self, caplog):
        with caplog.at_level("INFO", logger="confschema.core.linker"):
            link_schemas([SchemaSpec(key="a")])

        assert "1 schema(s)" in caplog.text


# =============================================================================
# Field Checks
# =============================================================================


class TestFieldChecks:
    """Tests for per-field consistency checks."""

    def test_id_field_must_be_first(self):
        schema = SchemaSpec(key="a", fields=_fields(FieldSpec(id="name"), FieldSpec(id="_id")))

        with pytest.raises(BuildDefect, match="must be declared first"):
            check_schema(schema)

    def test_id_field_optional(self):
        check_schema(SchemaSpec(key="a", fields=_fields(FieldSpec(id="name"))))

    def test_mismatched_field_key(self):
        schema = SchemaSpec(key="a", fields={"name": FieldSpec(id="other")})

        with pytest.raises(BuildDefect, match="has id 'other'"):
            check_schema(schema)

    def test_select_without_options(self):
        schema = SchemaSpec(key="a", fields=_fields(FieldSpec(id="mode", type=FieldType.select([]))))

        with pytest.raises(BuildDefect, match="no options"):
            check_schema(schema)

    def test_select_default_outside_options(self):
        field = FieldSpec(id="mode", type=FieldType.select([("on", "On")]), default="off")

        with pytest.raises(BuildDefect, match="'off' is not one of"):
            check_schema(SchemaSpec(key="a", fields=_fields(field)))

    def test_multi_select_defaults_checked(self):
        field = FieldSpec(
            id="modes",
            type=FieldType.select([("a", "A"), ("b", "B")], multi=True),
            default=("a", "z"),
        )

        with pytest.raises(BuildDefect, match="'z'"):
            check_schema(SchemaSpec(key="s", fields=_fields(field)))

    def test_secret_in_list_view(self):
        schema = SchemaSpec(
            key="a",
            fields=_fields(FieldSpec(id="token", type=FieldType.secret())),
            list_view=ListView(fields=("token",)),
        )

        with pytest.raises(BuildDefect, match="Secret field"):
            check_schema(schema)

    def test_list_view_dangling(self):
        schema = SchemaSpec(key="a", list_view=ListView(fields=("ghost",)))

        with pytest.raises(BuildDefect, match="undeclared field 'ghost'"):
            check_schema(schema)


# =============================================================================
# Condition Checks
# =============================================================================


class TestConditionChecks:
    """Tests for display condition checks."""

    def test_dangling_condition(self):
        schema = SchemaSpec(
            key="a", fields=_fields(FieldSpec(id="x", display_if=_when("ghost", "on")))
        )

        with pytest.raises(BuildDefect, match="undeclared field 'ghost'"):
            check_schema(schema)

    def test_self_condition(self):
        schema = SchemaSpec(key="a", fields=_fields(FieldSpec(id="x", display_if=_when("x", "on"))))

        with pytest.raises(BuildDefect, match="its own field"):
            check_schema(schema)

    def test_multi_hop(self):
        schema = SchemaSpec(
            key="a",
            fields=_fields(
                FieldSpec(id="a"),
                FieldSpec(id="b", display_if=_when("a", "on")),
                FieldSpec(id="c", display_if=_when("b", "on")),
            ),
        )

        with pytest.raises(BuildDefect, match="only one level"):
            check_schema(schema)

    def test_field_in_gated_section_may_gate_others(self):
        """Section membership is not a hop."""
        schema = SchemaSpec(
            key="a",
            fields=_fields(
                FieldSpec(id="challenge"),
                FieldSpec(id="provider"),
                FieldSpec(id="key", display_if=_when("provider", "tsig")),
            ),
            sections=(
                FormSection(title="DNS", fields=("provider", "key"), display_if=_when("challenge", "dns")),
            ),
        )

        check_schema(schema)

    def test_section_condition_on_conditional_field(self):
        schema = SchemaSpec(
            key="a",
            fields=_fields(FieldSpec(id="a"), FieldSpec(id="b", display_if=_when("a", "on"))),
            sections=(FormSection(title="S", display_if=_when("b", "on")),),
        )

        with pytest.raises(BuildDefect) as exc:
            check_schema(schema)
        assert exc.value.context.section == "S"

    def test_section_dangling_field(self):
        schema = SchemaSpec(key="a", sections=(FormSection(title="S", fields=("ghost",)),))

        with pytest.raises(BuildDefect, match="undeclared field 'ghost'"):
            check_schema(schema)

    def test_duplicate_section_titles(self):
        schema = SchemaSpec(key="a", sections=(FormSection(title="S"), FormSection(title="S")))

        with pytest.raises(BuildDefect, match="Duplicate form section"):
            check_schema(schema)


# =============================================================================
# Cycles
# =============================================================================


class TestCycles:
    """Tests for visibility dependency cycle detection."""

    def test_field_gating_its_own_section(self):
        """A section conditioned on a field inside it is cyclic."""
        schema = SchemaSpec(
            key="a",
            fields=_fields(FieldSpec(id="mode")),
            sections=(FormSection(title="S", display_if=_when("mode", "on"), fields=("mode",)),),
        )

        with pytest.raises(BuildDefect, match="Cyclic visibility dependency"):
            check_schema(schema)

    def test_sections_gating_each_other(self):
        schema = SchemaSpec(
            key="a",
            fields=_fields(FieldSpec(id="x"), FieldSpec(id="y")),
            sections=(
                FormSection(title="X", display_if=_when("y", "on"), fields=("x",)),
                FormSection(title="Y", display_if=_when("x", "on"), fields=("y",)),
            ),
        )

        with pytest.raises(BuildDefect) as exc:
            check_schema(schema)
        assert "section:X" in str(exc.value)
        assert "field:y" in str(exc.value)

    def test_acyclic_chain_passes(self):
        schema = SchemaSpec(
            key="a",
            fields=_fields(
                FieldSpec(id="mode"),
                FieldSpec(id="x", display_if=_when("mode", "on")),
                FieldSpec(id="y"),
            ),
            sections=(
                FormSection(title="Main", fields=("mode",)),
                FormSection(title="Extra", display_if=_when("mode", "on"), fields=("x", "y")),
            ),
        )

        check_schema(schema)

    def test_visibility_graph(self):
        schema = SchemaSpec(
            key="a",
            fields=_fields(FieldSpec(id="mode"), FieldSpec(id="x", display_if=_when("mode", "on"))),
            sections=(FormSection(title="Extra", display_if=_when("mode", "on"), fields=("x",)),),
        )

        assert visibility_graph(schema) == {
            "field:mode": [],
            "field:x": ["section:Extra", "field:mode"],
            "section:Extra": ["field:mode"],
        }

    def test_shipped_schemas_are_acyclic(self, registry):
        for schema in registry:
            check_schema(schema)
