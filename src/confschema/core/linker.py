"""
Schema linker: build-time consistency checks.

Every schema entering a registry passes through ``link_schemas``. The
checks resolve every string cross-reference (list views, form sections,
display conditions) against the declared fields and reject declarations
the engines cannot evaluate:

- duplicate schema keys
- misplaced identifier field (it must come first when declared)
- dangling references and self references
- visibility dependency cycles
- multi-hop conditions (a condition may only depend on a field that has no
  field-level condition of its own; section membership is not a hop, the
  evaluator resolves it recursively)
- secret fields exposed in list views
- select fields without options, or with defaults outside the option set
"""

from __future__ import annotations

import logging

from .errors import make_build_defect
from .ir import ID_FIELD, DisplayCondition, FieldTypeKind, SchemaRegistry, SchemaSpec

logger = logging.getLogger(__name__)


def link_schemas(schemas: list[SchemaSpec]) -> SchemaRegistry:
    """
    Check schemas and assemble them into a registry.

    Args:
        schemas: Schemas in declaration order

    Returns:
        Immutable SchemaRegistry

    Raises:
        BuildDefect: On the first inconsistency found.
    """
    by_key: dict[str, SchemaSpec] = {}
    for schema in schemas:
        if schema.key in by_key:
            raise make_build_defect(f"Duplicate schema key '{schema.key}'")
        check_schema(schema)
        by_key[schema.key] = schema

    logger.info(f"Linked schema registry with {len(by_key)} schema(s)")
    return SchemaRegistry(schemas=by_key)


def check_schema(schema: SchemaSpec) -> None:
    """
    Run all consistency checks on a single schema.

    Raises:
        BuildDefect: On the first inconsistency found.
    """
    _check_fields(schema)
    _check_list_view(schema)
    _check_sections(schema)
    _check_conditions(schema)
    _check_cycles(schema)
    logger.debug(f"Schema '{schema.key}' passed link checks ({len(schema.fields)} fields)")


def _check_fields(schema: SchemaSpec) -> None:
    field_ids = schema.field_ids
    if ID_FIELD in schema.fields and field_ids[0] != ID_FIELD:
        raise make_build_defect(
            f"Identifier field '{ID_FIELD}' must be declared first", schema=schema.key
        )

    for field_id, field in schema.fields.items():
        if field.id != field_id:
            raise make_build_defect(
                f"Field registered under '{field_id}' has id '{field.id}'",
                schema=schema.key,
                field=field_id,
            )
        if field.type.kind != FieldTypeKind.SELECT:
            continue
        allowed = field.type.option_values
        if not allowed:
            raise make_build_defect("Select field has no options", schema=schema.key, field=field_id)
        if field.default is None:
            continue
        defaults = [field.default] if isinstance(field.default, str) else list(field.default)
        for default in defaults:
            if default not in allowed:
                raise make_build_defect(
                    f"Default '{default}' is not one of the select options",
                    schema=schema.key,
                    field=field_id,
                )


def _check_list_view(schema: SchemaSpec) -> None:
    for field_id in schema.list_view.fields:
        field = schema.get_field(field_id)
        if field is None:
            raise make_build_defect(
                f"List view references undeclared field '{field_id}'", schema=schema.key
            )
        if field.is_secret:
            raise make_build_defect(
                "Secret field cannot be shown in the list view",
                schema=schema.key,
                field=field_id,
            )


def _check_sections(schema: SchemaSpec) -> None:
    titles: set[str] = set()
    for section in schema.sections:
        if section.title in titles:
            raise make_build_defect(
                f"Duplicate form section '{section.title}'", schema=schema.key
            )
        titles.add(section.title)
        for field_id in section.fields:
            if field_id not in schema.fields:
                raise make_build_defect(
                    f"Form section references undeclared field '{field_id}'",
                    schema=schema.key,
                    section=section.title,
                )


def _check_condition(
    schema: SchemaSpec,
    condition: DisplayCondition,
    field: str | None = None,
    section: str | None = None,
) -> None:
    target = schema.get_field(condition.field)
    if target is None:
        raise make_build_defect(
            f"Display condition references undeclared field '{condition.field}'",
            schema=schema.key,
            field=field,
            section=section,
        )
    if condition.field == field:
        raise make_build_defect(
            "Display condition references its own field",
            schema=schema.key,
            field=field,
        )
    if target.display_if is not None:
        raise make_build_defect(
            f"Display condition depends on '{condition.field}', which is itself "
            f"conditional ({target.display_if.describe()}); only one level is supported",
            schema=schema.key,
            field=field,
            section=section,
        )


def _check_conditions(schema: SchemaSpec) -> None:
    for field_id, field in schema.fields.items():
        if field.display_if is not None:
            _check_condition(schema, field.display_if, field=field_id)
    for section in schema.sections:
        if section.display_if is not None:
            _check_condition(schema, section.display_if, section=section.title)


def visibility_graph(schema: SchemaSpec) -> dict[str, list[str]]:
    """
    Dependency graph of visibility evaluation.

    Nodes are ``field:<id>`` and ``section:<title>``. A field depends on the
    field its condition references and on every section containing it; a
    section depends on the field its condition references.
    """
    graph: dict[str, list[str]] = {}
    for field_id, field in schema.fields.items():
        deps = [f"section:{s.title}" for s in schema.sections_for(field_id)]
        if field.display_if is not None:
            deps.append(f"field:{field.display_if.field}")
        graph[f"field:{field_id}"] = deps
    for section in schema.sections:
        deps = []
        if section.display_if is not None:
            deps.append(f"field:{section.display_if.field}")
        graph[f"section:{section.title}"] = deps
    return graph


def _check_cycles(schema: SchemaSpec) -> None:
    graph = visibility_graph(schema)
    done: set[str] = set()

    for start in graph:
        if start in done:
            continue
        # Iterative DFS keeping the current path for the error message
        path: list[str] = []
        on_path: set[str] = set()
        stack: list[tuple[str, int]] = [(start, 0)]
        while stack:
            node, index = stack.pop()
            if index == 0:
                path.append(node)
                on_path.add(node)
            deps = graph.get(node, [])
            if index < len(deps):
                stack.append((node, index + 1))
                dep = deps[index]
                if dep in on_path:
                    cycle = path[path.index(dep) :] + [dep]
                    raise make_build_defect(
                        f"Cyclic visibility dependency: {' -> '.join(cycle)}",
                        schema=schema.key,
                    )
                if dep not in done:
                    stack.append((dep, 0))
            else:
                path.pop()
                on_path.discard(node)
                done.add(node)
