"""
Schema types for confschema.

A schema describes one configuration object type: its fields, how its
records are summarized in a list view, and how its editing form is split
into sections. The registry maps schema keys to schemas.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field

from ..errors import SchemaNotFoundError
from .conditions import DisplayCondition
from .fields import FieldSpec

ID_FIELD = "_id"


class ListView(BaseModel):
    """
    Summary projection of a schema's records for tabular listings.

    Attributes:
        title: Page title
        subtitle: Page subtitle
        fields: Field ids shown as columns, in order
    """

    title: str | None = None
    subtitle: str | None = None
    fields: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)


class FormSection(BaseModel):
    """
    Named group of fields in the editing form.

    Attributes:
        title: Section title, also its identifier within the schema
        display_if: Optional visibility condition for the whole section
        fields: Field ids in rendering order
    """

    title: str
    display_if: DisplayCondition | None = None
    fields: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)


class SchemaSpec(BaseModel):
    """
    Specification of one configuration object type.

    Attributes:
        key: Stable schema key
        name_singular: Display name for one record
        name_plural: Display name for many records
        id_prefix: Configuration key prefix for record ids
        id_suffix: Configuration key suffix identifying a record
        reload_prefix: Prefix grouping change notifications
        fields: Field specs by id, in declaration order
        list_view: List view configuration
        sections: Form sections in rendering order
    """

    key: str
    name_singular: str | None = None
    name_plural: str | None = None
    id_prefix: str | None = None
    id_suffix: str | None = None
    reload_prefix: str | None = None
    fields: dict[str, FieldSpec] = Field(default_factory=dict)
    list_view: ListView = Field(default_factory=ListView)
    sections: tuple[FormSection, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def field_ids(self) -> list[str]:
        """Field ids in declaration order."""
        return list(self.fields)

    @property
    def id_field(self) -> FieldSpec | None:
        """The identifier field, if declared."""
        return self.fields.get(ID_FIELD)

    def get_field(self, field_id: str) -> FieldSpec | None:
        """Get field by id."""
        return self.fields.get(field_id)

    def get_section(self, title: str) -> FormSection | None:
        """Get form section by title."""
        for section in self.sections:
            if section.title == title:
                return section
        return None

    def sections_for(self, field_id: str) -> list[FormSection]:
        """Form sections that contain a field."""
        return [section for section in self.sections if field_id in section.fields]


class SchemaRegistry(BaseModel):
    """
    Mapping from schema key to schema.

    Built once and read-only afterwards. Use ``RegistryBuilder`` or
    ``SchemaRegistry.from_schemas`` so the schemas are checked first.
    """

    schemas: dict[str, SchemaSpec] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_schemas(cls, schemas: Iterable[SchemaSpec]) -> SchemaRegistry:
        """
        Build a registry from finished schemas.

        Raises:
            BuildDefect: If any schema is inconsistent.
        """
        from ..linker import link_schemas

        return link_schemas(list(schemas))

    def get(self, key: str) -> SchemaSpec:
        """
        Get schema by key.

        Raises:
            SchemaNotFoundError: If the key is not registered.
        """
        try:
            return self.schemas[key]
        except KeyError:
            raise SchemaNotFoundError(key) from None

    @property
    def keys(self) -> list[str]:
        """Schema keys in declaration order."""
        return list(self.schemas)

    def __contains__(self, key: object) -> bool:
        return key in self.schemas

    def __iter__(self) -> Iterator[SchemaSpec]:  # type: ignore[override]
        return iter(self.schemas.values())

    def __len__(self) -> int:
        return len(self.schemas)
