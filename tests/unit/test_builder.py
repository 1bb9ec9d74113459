"""
Tests for the staged schema builder.

Tests stage transitions, field chaining, typed handles, and the build-time
defects raised for inconsistent declarations.
"""

import pytest

from confschema.core.builder import RegistryBuilder, build_registry
from confschema.core.errors import BuildDefect, BuilderStateError
from confschema.core.ir import (
    DisplayCondition,
    FieldRef,
    FieldType,
    FieldTypeKind,
    Transformer,
    Validator,
    ValidatorKind,
)


def _schema(key: str = "thing"):
    """Open a schema with an identifier field already declared."""
    return RegistryBuilder().new_schema(key).new_id_field().build()


# =============================================================================
# Stages
# =============================================================================


class TestStages:
    """Tests for builder stage transitions."""

    def test_minimal_registry(self):
        registry = RegistryBuilder().new_schema("empty").build().build()

        assert registry.keys == ["empty"]
        assert registry.get("empty").fields == {}

    def test_empty_registry(self):
        assert len(RegistryBuilder().build()) == 0

    def test_parent_suspended_while_field_open(self):
        schema = _schema()
        schema.new_field("name")

        with pytest.raises(BuilderStateError, match="nested builder is still open"):
            schema.list_fields(["_id"])

    def test_registry_suspended_while_schema_open(self):
        builder = RegistryBuilder()
        builder.new_schema("a")

        with pytest.raises(BuilderStateError):
            builder.new_schema("b")

    def test_closed_field_rejects_calls(self):
        schema = _schema()
        field = schema.new_field("name")
        field.build()

        with pytest.raises(BuilderStateError, match="already closed"):
            field.label("Name")

    def test_closed_schema_rejects_calls(self):
        schema = _schema()
        schema.build()

        with pytest.raises(BuilderStateError):
            schema.new_field("late")

    def test_closed_registry_rejects_calls(self):
        builder = RegistryBuilder()
        builder.build()

        with pytest.raises(BuilderStateError):
            builder.new_schema("late")

    def test_section_suspends_schema(self):
        schema = _schema()
        section = schema.new_form_section().title("Main")

        with pytest.raises(BuilderStateError):
            schema.new_field("x")
        section.fields(["_id"]).build().new_field("x").build()

    def test_state_error_is_build_defect(self):
        assert issubclass(BuilderStateError, BuildDefect)

    def test_error_names_operation(self):
        field = _schema().new_field("name")
        field.build()

        with pytest.raises(BuilderStateError) as exc:
            field.help("too late")
        assert "help()" in str(exc.value)
        assert "thing.name" in str(exc.value)


# =============================================================================
# Fields
# =============================================================================


class TestFields:
    """Tests for field declarations."""

    def test_id_field_defaults(self):
        registry = _schema().build().build()
        id_field = registry.get("thing").id_field

        assert id_field is not None
        assert id_field.type.kind == FieldTypeKind.INPUT
        assert id_field.transformers == (Transformer.TRIM,)
        assert id_field.is_required

    def test_id_field_must_come_first(self):
        schema = RegistryBuilder().new_schema("thing").new_field("name").build()

        with pytest.raises(BuildDefect, match="before any other field"):
            schema.new_id_field()

    def test_field_attributes(self):
        registry = (
            _schema()
            .new_field("port")
            .label("Port")
            .help("Port to listen on")
            .placeholder("25")
            .typ(FieldType.input())
            .input_check([Transformer.TRIM], [Validator.REQUIRED, Validator.IS_PORT])
            .default("25")
            .build()
            .build()
            .build()
        )
        field = registry.get("thing").get_field("port")

        assert field.label == "Port"
        assert field.help == "Port to listen on"
        assert field.placeholder == "25"
        assert [v.kind for v in field.validators] == [ValidatorKind.REQUIRED, ValidatorKind.IS_PORT]
        assert field.default == "25"

    def test_list_default_stored_as_tuple(self):
        registry = (
            _schema()
            .new_field("hosts")
            .typ(FieldType.array())
            .default(["a.example.com", "b.example.com"])
            .build()
            .build()
            .build()
        )

        assert registry.get("thing").get_field("hosts").default == ("a.example.com", "b.example.com")

    def test_duplicate_field_id(self):
        schema = _schema().new_field("name").build()

        with pytest.raises(BuildDefect, match="Duplicate field id"):
            schema.new_field("name")

    def test_invalid_field_id(self):
        field = _schema().new_field("has space")

        with pytest.raises(BuildDefect):
            field.build()

    def test_declaration_order_kept(self):
        registry = (
            _schema().new_field("b").build().new_field("a").build().new_field("c").build().build().build()
        )

        assert registry.get("thing").field_ids == ["_id", "b", "a", "c"]


class TestFieldChaining:
    """Tests for opening the next field directly from an open field."""

    def test_next_field_inherits_type_and_checks(self):
        registry = (
            _schema()
            .new_field("polling-interval")
            .typ(FieldType.duration())
            .label("Polling interval")
            .input_check([], [Validator.REQUIRED])
            .default("15s")
            .new_field("ttl")
            .build()
            .build()
            .build()
        )
        ttl = registry.get("thing").get_field("ttl")

        assert ttl.type.kind == FieldTypeKind.DURATION
        assert ttl.is_required

    def test_next_field_starts_without_presentation(self):
        registry = (
            _schema()
            .new_field("kind")
            .typ(FieldType.select([("a", "A"), ("b", "B")]))
            .build()
            .new_field("first")
            .label("First")
            .help("Help")
            .placeholder("x")
            .default("1")
            .display_if_eq("kind", ["a"])
            .new_field("second")
            .build()
            .build()
            .build()
        )
        second = registry.get("thing").get_field("second")

        assert second.label is None
        assert second.help is None
        assert second.placeholder is None
        assert second.default is None
        assert second.display_if is None

    def test_input_check_replaces_inherited_chain(self):
        registry = (
            _schema()
            .new_field("port")
            .input_check([Transformer.TRIM], [Validator.REQUIRED, Validator.IS_PORT])
            .new_field("host")
            .input_check([Transformer.TRIM], [Validator.IS_IP_OR_MASK])
            .build()
            .build()
            .build()
        )
        host = registry.get("thing").get_field("host")

        assert [v.kind for v in host.validators] == [ValidatorKind.IS_IP_OR_MASK]

    def test_chained_field_closes_previous(self):
        first = _schema().new_field("first")
        first.new_field("second")

        with pytest.raises(BuilderStateError):
            first.label("First")


# =============================================================================
# References and Conditions
# =============================================================================


class TestReferences:
    """Tests for typed handles and reference checks."""

    def test_field_ref_from_builder(self):
        field = _schema().new_field("challenge")

        assert field.ref == FieldRef(schema_key="thing", field_id="challenge")
        assert str(field.ref) == "thing.challenge"

    def test_field_ref_requires_declaration(self):
        with pytest.raises(BuildDefect, match="undeclared field 'missing'"):
            _schema().field_ref("missing")

    def test_condition_with_handle(self):
        schema = (
            _schema()
            .new_field("challenge")
            .typ(FieldType.select([("dns-01", "DNS"), ("http-01", "HTTP")]))
            .build()
        )
        challenge = schema.field_ref("challenge")
        registry = schema.new_field("ttl").display_if_eq(challenge, ["dns-01"]).build().build().build()

        assert registry.get("thing").get_field("ttl").display_if == DisplayCondition(
            field="challenge", values=("dns-01",)
        )

    def test_handle_from_other_schema(self):
        builder = RegistryBuilder().new_schema("a").new_id_field().build().build()
        other = builder.new_schema("b").new_id_field().build()
        foreign = FieldRef(schema_key="a", field_id="_id")

        with pytest.raises(BuildDefect, match="belongs to another schema"):
            other.new_field("x").display_if_eq(foreign, ["y"])

    def test_condition_on_undeclared_field(self):
        with pytest.raises(BuildDefect, match="undeclared field 'mode'"):
            _schema().new_field("x").display_if_eq("mode", ["on"])

    def test_condition_on_later_field_is_dangling(self):
        """Conditions may only reference fields declared before them."""
        with pytest.raises(BuildDefect):
            _schema().new_field("first").display_if_eq("second", ["on"])

    def test_self_reference(self):
        with pytest.raises(BuildDefect, match="its own field"):
            _schema().new_field("mode").display_if_eq("mode", ["on"])

    def test_multi_hop_condition(self):
        schema = (
            _schema()
            .new_field("a")
            .build()
            .new_field("b")
            .display_if_eq("a", ["on"])
            .build()
        )

        with pytest.raises(BuildDefect, match="itself conditional"):
            schema.new_field("c").display_if_eq("b", ["on"])

    def test_condition_needs_values(self):
        with pytest.raises(BuildDefect, match="at least one"):
            _schema().new_field("a").build().new_field("b").display_if_eq("a", [])

    def test_defect_carries_location(self):
        with pytest.raises(BuildDefect) as exc:
            _schema("acme").new_field("ttl").display_if_eq("challenge", ["dns-01"])

        assert exc.value.context is not None
        assert exc.value.context.schema == "acme"
        assert exc.value.context.field == "ttl"
        assert "schema 'acme', field 'ttl'" in str(exc.value)


# =============================================================================
# List View and Sections
# =============================================================================


class TestListViewAndSections:
    """Tests for list view and form section declarations."""

    def test_list_view(self):
        registry = (
            _schema()
            .new_field("name")
            .build()
            .list_title("Things")
            .list_subtitle("Manage things")
            .list_fields(["_id", "name"])
            .build()
            .build()
        )
        view = registry.get("thing").list_view

        assert view.title == "Things"
        assert view.subtitle == "Manage things"
        assert view.fields == ("_id", "name")

    def test_secret_rejected_in_list_view(self):
        schema = _schema().new_field("token").typ(FieldType.secret()).build()

        with pytest.raises(BuildDefect, match="Secret field"):
            schema.list_fields(["_id", "token"])

    def test_list_view_undeclared_field(self):
        with pytest.raises(BuildDefect, match="undeclared"):
            _schema().list_fields(["_id", "missing"])

    def test_section_undeclared_field(self):
        with pytest.raises(BuildDefect) as exc:
            _schema().new_form_section().title("Main").fields(["_id", "missing"])

        assert exc.value.context.section == "Main"

    def test_section_needs_title(self):
        with pytest.raises(BuildDefect, match="needs a title"):
            _schema().new_form_section().fields(["_id"]).build()

    def test_duplicate_section_title(self):
        schema = _schema().new_form_section().title("Main").build()

        with pytest.raises(BuildDefect, match="Duplicate form section"):
            schema.new_form_section().title("Main").build()

    def test_conditional_section(self):
        registry = (
            _schema()
            .new_field("mode")
            .typ(FieldType.boolean())
            .build()
            .new_field("extra")
            .build()
            .new_form_section()
            .title("Extra")
            .display_if_eq("mode", ["true"])
            .fields(["extra"])
            .build()
            .build()
            .build()
        )
        section = registry.get("thing").get_section("Extra")

        assert section.display_if.describe() == "mode in [true]"
        assert registry.get("thing").sections_for("extra") == [section]


# =============================================================================
# Registry
# =============================================================================


class TestRegistryBuild:
    """Tests for closing the registry."""

    def test_duplicate_schema_key(self):
        builder = RegistryBuilder().new_schema("a").build()

        with pytest.raises(BuildDefect, match="Duplicate schema key"):
            builder.new_schema("a")

    def test_schema_metadata(self):
        registry = (
            RegistryBuilder()
            .new_schema("certificate")
            .names("certificate", "certificates")
            .prefix("certificate")
            .suffix("cert")
            .reload_prefix("certificate")
            .build()
            .build()
        )
        schema = registry.get("certificate")

        assert schema.name_singular == "certificate"
        assert schema.name_plural == "certificates"
        assert schema.id_prefix == "certificate"
        assert schema.id_suffix == "cert"
        assert schema.reload_prefix == "certificate"

    def test_pipe_applies_helper(self):
        def add_name(schema):
            return schema.new_field("name").build()

        registry = _schema().pipe(add_name).build().build()

        assert "name" in registry.get("thing").fields

    def test_build_registry_from_declarations(self):
        def declare_a(builder):
            return builder.new_schema("a").build()

        def declare_b(builder):
            return builder.new_schema("b").build()

        registry = build_registry(declare_a, declare_b)

        assert registry.keys == ["a", "b"]
        assert "a" in registry
        assert [schema.key for schema in registry] == ["a", "b"]
