"""
Staged schema builder.

Schemas are declared through a fluent API with three stages, each its own
builder class:

- ``RegistryBuilder``: no schema open; ``new_schema`` and ``build``.
- ``SchemaBuilder``: a schema is open; fields, list view, form sections,
  and ``build`` to close the schema.
- ``FieldBuilder``: a field is open; label, help, type, checks, default,
  display condition, and ``build`` to close the field.

Form sections get a small stage of their own (``SectionBuilder``).

Opening a nested stage suspends the parent and closing it resumes the
parent; ``build`` closes the current stage for good. Calling a method on a
suspended or closed builder raises ``BuilderStateError`` immediately.

Example:
    registry = (
        RegistryBuilder()
        .new_schema("certificate")
        .names("certificate", "certificates")
        .new_id_field()
        .label("Certificate Id")
        .build()
        .new_field("cert")
        .typ(FieldType.text())
        .input_check([Transformer.TRIM], [Validator.REQUIRED])
        .build()
        .list_fields(["_id"])
        .build()
        .build()
    )
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from pydantic import ValidationError as PydanticValidationError

from .errors import BuilderStateError, make_build_defect
from .ir import (
    ID_FIELD,
    DisplayCondition,
    FieldRef,
    FieldSpec,
    FieldType,
    FormSection,
    ListView,
    SchemaRegistry,
    SchemaSpec,
    TransformerKind,
    ValidatorKind,
    ValidatorSpec,
)
from .linker import check_schema, link_schemas

logger = logging.getLogger(__name__)

FieldId = str | FieldRef


class _Stage:
    """Lifecycle shared by all builder stages."""

    _ACTIVE = "active"
    _SUSPENDED = "suspended"
    _CLOSED = "closed"

    def __init__(self) -> None:
        self._state = self._ACTIVE

    def _describe(self) -> str:
        return type(self).__name__

    def _check(self, operation: str) -> None:
        if self._state == self._ACTIVE:
            return
        reason = (
            "a nested builder is still open"
            if self._state == self._SUSPENDED
            else "the builder was already closed"
        )
        raise BuilderStateError(f"Cannot call {operation}() on {self._describe()}: {reason}")

    def _suspend(self) -> None:
        self._state = self._SUSPENDED

    def _resume(self) -> None:
        self._state = self._ACTIVE

    def _close(self) -> None:
        self._state = self._CLOSED


# =============================================================================
# Registry Stage
# =============================================================================


class RegistryBuilder(_Stage):
    """Top-level stage: collects schemas into a registry."""

    def __init__(self) -> None:
        super().__init__()
        self._schemas: list[SchemaSpec] = []
        self._keys: set[str] = set()

    def new_schema(self, key: str) -> SchemaBuilder:
        """Open a new schema."""
        self._check("new_schema")
        if key in self._keys:
            raise make_build_defect(f"Duplicate schema key '{key}'")
        self._keys.add(key)
        self._suspend()
        return SchemaBuilder(self, key)

    def _finish_schema(self, schema: SchemaSpec) -> RegistryBuilder:
        self._schemas.append(schema)
        self._resume()
        return self

    def build(self) -> SchemaRegistry:
        """
        Close the registry.

        Raises:
            BuildDefect: If any schema is inconsistent.
        """
        self._check("build")
        self._close()
        return link_schemas(self._schemas)


# =============================================================================
# Schema Stage
# =============================================================================


class SchemaBuilder(_Stage):
    """Stage with an open schema."""

    def __init__(self, parent: RegistryBuilder, key: str):
        super().__init__()
        self._parent = parent
        self.key = key
        self._names: tuple[str | None, str | None] = (None, None)
        self._prefix: str | None = None
        self._suffix: str | None = None
        self._reload_prefix: str | None = None
        self._declared: list[str] = []
        self._fields: dict[str, FieldSpec] = {}
        self._list_title: str | None = None
        self._list_subtitle: str | None = None
        self._list_fields: tuple[str, ...] = ()
        self._sections: list[FormSection] = []

    def _describe(self) -> str:
        return f"SchemaBuilder('{self.key}')"

    # -- metadata ------------------------------------------------------------

    def names(self, singular: str, plural: str) -> SchemaBuilder:
        """Display names for one and many records."""
        self._check("names")
        self._names = (singular, plural)
        return self

    def prefix(self, prefix: str) -> SchemaBuilder:
        """Configuration key prefix of record ids."""
        self._check("prefix")
        self._prefix = prefix
        return self

    def suffix(self, suffix: str) -> SchemaBuilder:
        """Configuration key suffix identifying a record."""
        self._check("suffix")
        self._suffix = suffix
        return self

    def reload_prefix(self, prefix: str) -> SchemaBuilder:
        """Prefix grouping change notifications."""
        self._check("reload_prefix")
        self._reload_prefix = prefix
        return self

    def pipe(self, func: Callable[[SchemaBuilder], SchemaBuilder]) -> SchemaBuilder:
        """Apply a declaration helper in the middle of a chain."""
        self._check("pipe")
        return func(self)

    # -- fields --------------------------------------------------------------

    def new_id_field(self) -> FieldBuilder:
        """
        Open the identifier field.

        The identifier is a trimmed, required input named ``_id`` and must be
        the first field of the schema.
        """
        self._check("new_id_field")
        if self._declared:
            raise make_build_defect(
                "Identifier field must be declared before any other field",
                schema=self.key,
                field=ID_FIELD,
            )
        builder = self._open_field(ID_FIELD, None)
        builder._type = FieldType.input()
        builder._transformers = (TransformerKind.TRIM,)
        builder._validators = (ValidatorSpec(kind=ValidatorKind.REQUIRED),)
        return builder

    def new_field(self, field_id: str) -> FieldBuilder:
        """Open a new field."""
        self._check("new_field")
        return self._open_field(field_id, None)

    def _open_field(self, field_id: str, template: FieldSpec | None) -> FieldBuilder:
        if field_id in self._declared:
            raise make_build_defect("Duplicate field id", schema=self.key, field=field_id)
        self._declared.append(field_id)
        self._suspend()
        return FieldBuilder(self, field_id, template)

    def _finish_field(self, spec: FieldSpec) -> SchemaBuilder:
        self._fields[spec.id] = spec
        self._resume()
        return self

    def field_ref(self, field_id: str) -> FieldRef:
        """Typed handle to a declared field."""
        self._check("field_ref")
        return FieldRef(schema_key=self.key, field_id=self._resolve(field_id))

    def _resolve(
        self,
        ref: FieldId,
        field: str | None = None,
        section: str | None = None,
    ) -> str:
        if isinstance(ref, FieldRef):
            if ref.schema_key != self.key:
                raise make_build_defect(
                    f"Field handle '{ref}' belongs to another schema",
                    schema=self.key,
                    field=field,
                    section=section,
                )
            field_id = ref.field_id
        else:
            field_id = ref
        if field_id not in self._declared:
            raise make_build_defect(
                f"Reference to undeclared field '{field_id}'",
                schema=self.key,
                field=field,
                section=section,
            )
        return field_id

    def _condition(
        self,
        ref: FieldId,
        values: Iterable[str],
        field: str | None = None,
        section: str | None = None,
    ) -> DisplayCondition:
        target_id = self._resolve(ref, field=field, section=section)
        if target_id == field:
            raise make_build_defect(
                "Display condition references its own field", schema=self.key, field=field
            )
        target = self._fields.get(target_id)
        if target is not None and target.display_if is not None:
            raise make_build_defect(
                f"Display condition depends on '{target_id}', which is itself conditional",
                schema=self.key,
                field=field,
                section=section,
            )
        allowed = tuple(values)
        if not allowed:
            raise make_build_defect(
                "Display condition needs at least one allowed value",
                schema=self.key,
                field=field,
                section=section,
            )
        return DisplayCondition(field=target_id, values=allowed)

    # -- list view -----------------------------------------------------------

    def list_title(self, title: str) -> SchemaBuilder:
        self._check("list_title")
        self._list_title = title
        return self

    def list_subtitle(self, subtitle: str) -> SchemaBuilder:
        self._check("list_subtitle")
        self._list_subtitle = subtitle
        return self

    def list_fields(self, fields: Iterable[FieldId]) -> SchemaBuilder:
        """Columns of the list view. Secret fields are rejected."""
        self._check("list_fields")
        resolved = []
        for ref in fields:
            field_id = self._resolve(ref)
            if self._fields[field_id].is_secret:
                raise make_build_defect(
                    "Secret field cannot be shown in the list view",
                    schema=self.key,
                    field=field_id,
                )
            resolved.append(field_id)
        self._list_fields = tuple(resolved)
        return self

    # -- form sections -------------------------------------------------------

    def new_form_section(self) -> SectionBuilder:
        """Open a new form section."""
        self._check("new_form_section")
        self._suspend()
        return SectionBuilder(self)

    def _finish_section(self, section: FormSection) -> SchemaBuilder:
        if any(s.title == section.title for s in self._sections):
            raise make_build_defect(
                f"Duplicate form section '{section.title}'", schema=self.key
            )
        self._sections.append(section)
        self._resume()
        return self

    # -- close ---------------------------------------------------------------

    def build(self) -> RegistryBuilder:
        """
        Close the schema and return to the registry stage.

        Raises:
            BuildDefect: If the schema is inconsistent.
        """
        self._check("build")
        self._close()
        schema = SchemaSpec(
            key=self.key,
            name_singular=self._names[0],
            name_plural=self._names[1],
            id_prefix=self._prefix,
            id_suffix=self._suffix,
            reload_prefix=self._reload_prefix,
            fields=dict(self._fields),
            list_view=ListView(
                title=self._list_title,
                subtitle=self._list_subtitle,
                fields=self._list_fields,
            ),
            sections=tuple(self._sections),
        )
        check_schema(schema)
        logger.debug(
            f"Declared schema '{self.key}' with {len(schema.fields)} field(s) "
            f"and {len(schema.sections)} section(s)"
        )
        return self._parent._finish_schema(schema)


# =============================================================================
# Field Stage
# =============================================================================


class FieldBuilder(_Stage):
    """
    Stage with an open field.

    A field opened from a template (``FieldBuilder.new_field``) starts with
    the template's type and transformer/validator chain.
    """

    def __init__(self, parent: SchemaBuilder, field_id: str, template: FieldSpec | None):
        super().__init__()
        self._parent = parent
        self.id = field_id
        self._label: str | None = None
        self._help: str | None = None
        self._placeholder: str | None = None
        self._type = template.type if template else FieldType.input()
        self._transformers: tuple[TransformerKind, ...] = template.transformers if template else ()
        self._validators: tuple[ValidatorSpec, ...] = template.validators if template else ()
        self._default: str | tuple[str, ...] | None = None
        self._display_if: DisplayCondition | None = None

    def _describe(self) -> str:
        return f"FieldBuilder('{self._parent.key}.{self.id}')"

    @property
    def ref(self) -> FieldRef:
        """Typed handle to this field."""
        return FieldRef(schema_key=self._parent.key, field_id=self.id)

    def label(self, label: str) -> FieldBuilder:
        self._check("label")
        self._label = label
        return self

    def help(self, text: str) -> FieldBuilder:
        self._check("help")
        self._help = text
        return self

    def placeholder(self, text: str) -> FieldBuilder:
        self._check("placeholder")
        self._placeholder = text
        return self

    def typ(self, field_type: FieldType) -> FieldBuilder:
        self._check("typ")
        self._type = field_type
        return self

    def input_check(
        self,
        transformers: Iterable[TransformerKind],
        validators: Iterable[ValidatorKind | ValidatorSpec],
    ) -> FieldBuilder:
        """Set the transformer and validator chains, replacing any inherited ones."""
        self._check("input_check")
        self._transformers = tuple(transformers)
        self._validators = tuple(
            v if isinstance(v, ValidatorSpec) else ValidatorSpec(kind=v) for v in validators
        )
        return self

    def default(self, value: str | Iterable[str]) -> FieldBuilder:
        """Raw default, transformed and validated like submitted input."""
        self._check("default")
        self._default = value if isinstance(value, str) else tuple(value)
        return self

    def display_if_eq(self, field: FieldId, values: Iterable[str]) -> FieldBuilder:
        """Show this field only while ``field`` equals one of ``values``."""
        self._check("display_if_eq")
        self._display_if = self._parent._condition(field, values, field=self.id)
        return self

    def _spec(self) -> FieldSpec:
        try:
            return FieldSpec(
                id=self.id,
                label=self._label,
                help=self._help,
                placeholder=self._placeholder,
                type=self._type,
                transformers=self._transformers,
                validators=self._validators,
                default=self._default,
                display_if=self._display_if,
            )
        except PydanticValidationError as e:
            raise make_build_defect(str(e), schema=self._parent.key, field=self.id) from e

    def build(self) -> SchemaBuilder:
        """Close the field and return to the schema stage."""
        self._check("build")
        self._close()
        return self._parent._finish_field(self._spec())

    def new_field(self, field_id: str) -> FieldBuilder:
        """
        Close this field and open the next one.

        The next field inherits this field's type and transformer/validator
        chain; label, help, placeholder, default and display condition start
        empty.
        """
        self._check("new_field")
        spec = self._spec()
        self._close()
        return self._parent._finish_field(spec)._open_field(field_id, spec)


# =============================================================================
# Section Stage
# =============================================================================


class SectionBuilder(_Stage):
    """Stage with an open form section."""

    def __init__(self, parent: SchemaBuilder):
        super().__init__()
        self._parent = parent
        self._title: str | None = None
        self._display_if: DisplayCondition | None = None
        self._fields: tuple[str, ...] = ()

    def _describe(self) -> str:
        return f"SectionBuilder('{self._parent.key}', {self._title!r})"

    def title(self, title: str) -> SectionBuilder:
        self._check("title")
        self._title = title
        return self

    def display_if_eq(self, field: FieldId, values: Iterable[str]) -> SectionBuilder:
        """Show this section only while ``field`` equals one of ``values``."""
        self._check("display_if_eq")
        self._display_if = self._parent._condition(field, values, section=self._title)
        return self

    def fields(self, fields: Iterable[FieldId]) -> SectionBuilder:
        self._check("fields")
        self._fields = tuple(self._parent._resolve(ref, section=self._title) for ref in fields)
        return self

    def build(self) -> SchemaBuilder:
        """Close the section and return to the schema stage."""
        self._check("build")
        if not self._title:
            raise make_build_defect("Form section needs a title", schema=self._parent.key)
        self._close()
        return self._parent._finish_section(
            FormSection(title=self._title, display_if=self._display_if, fields=self._fields)
        )


def build_registry(*declarations: Callable[[RegistryBuilder], RegistryBuilder]) -> SchemaRegistry:
    """
    Build a registry from declaration functions.

    Each declaration takes a ``RegistryBuilder`` and returns it after adding
    its schemas.
    """
    builder = RegistryBuilder()
    for declare in declarations:
        builder = declare(builder)
    return builder.build()
