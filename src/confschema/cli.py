"""
confschema CLI.

Developer commands over the shipped schema registry:

- schemas: List registered schemas
- show: Describe one schema's fields, list view and form sections
- validate: Validate a record given as field=value pairs
- visible: Show which fields and sections a record currently displays
"""

from __future__ import annotations

import json
import logging
import platform
from datetime import timedelta
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import SecretStr
from rich.console import Console
from rich.table import Table

from confschema._version import get_version
from confschema.core.environment import default_log_level, get_confschema_env
from confschema.core.errors import FieldError, SchemaNotFoundError
from confschema.core.ir import FieldSpec, SchemaSpec, format_duration
from confschema.core.manifest import EngineConfig, load_config, load_manifest
from confschema.core.validation import normalize_stored, validate
from confschema.core.visibility import evaluate_visibility
from confschema.schemas import default_registry

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Inspect configuration schemas and validate records against them",
    no_args_is_help=True,
)

console = Console()

# Engine configuration set by the callback
_config: EngineConfig = EngineConfig()


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"confschema {get_version()}")
        typer.echo(f"Python {platform.python_version()} ({platform.python_implementation()})")
        typer.echo(f"Environment: {get_confschema_env().value}")
        raise typer.Exit()


def _configure_logging(level: str | None, config: EngineConfig) -> None:
    name = (level or config.logging.level or default_log_level()).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and environment information",
        ),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to confschema.toml (default: nearest one)"),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", envvar="LOG_LEVEL", help="Logging level"),
    ] = None,
) -> None:
    """confschema CLI main callback for global options."""
    global _config
    try:
        _config = load_manifest(config_path) if config_path else load_config()
    except (OSError, ValueError) as e:
        typer.echo(f"Error loading config: {e}", err=True)
        raise typer.Exit(code=1)
    _configure_logging(log_level, _config)
    if _config.source:
        logger.debug(f"Loaded config from {_config.source}")


# =============================================================================
# Helpers
# =============================================================================


def _get_schema(key: str) -> SchemaSpec:
    try:
        return default_registry().get(key)
    except SchemaNotFoundError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)


def parse_assignments(assignments: list[str]) -> dict[str, str | list[str]]:
    """
    Parse ``field=value`` pairs.

    A field given more than once collects its values into a list.
    """
    values: dict[str, str | list[str]] = {}
    for assignment in assignments:
        field_id, sep, value = assignment.partition("=")
        if not sep or not field_id:
            raise typer.BadParameter(f"Expected field=value, got '{assignment}'")
        if field_id in values:
            existing = values[field_id]
            values[field_id] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            values[field_id] = value
    return values


def render_value(value: Any) -> Any:
    """JSON-friendly rendering of a normalized value; secrets stay masked."""
    if isinstance(value, SecretStr):
        return str(value)
    if isinstance(value, timedelta):
        return format_duration(value)
    return value


def _describe_type(field: FieldSpec) -> str:
    kind = field.type.kind.value
    if field.type.options:
        kind += " (multi)" if field.type.multi else ""
        kind += f": {', '.join(field.type.option_values)}"
    return kind


def _describe_checks(field: FieldSpec) -> str:
    parts = [t.value for t in field.transformers] + [v.label for v in field.validators]
    return ", ".join(parts)


# =============================================================================
# Commands
# =============================================================================


@app.command(name="schemas")
def schemas_command() -> None:
    """List registered schemas."""
    table = Table(title="Schemas")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("Fields", justify="right")
    table.add_column("Sections", justify="right")

    for schema in default_registry().schemas.values():
        table.add_row(
            schema.key,
            schema.name_plural or "",
            str(len(schema.fields)),
            str(len(schema.sections)),
        )
    console.print(table)


@app.command(name="show")
def show_command(
    key: Annotated[str, typer.Argument(help="Schema key")],
) -> None:
    """Describe a schema's fields, list view and form sections."""
    schema = _get_schema(key)

    table = Table(title=f"{schema.key}: {schema.name_plural or schema.key}")
    table.add_column("Field", style="cyan")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Checks")
    table.add_column("Default")
    table.add_column("Shown if")
    for field in schema.fields.values():
        default = field.default
        table.add_row(
            field.id,
            field.label or "",
            _describe_type(field),
            _describe_checks(field),
            ", ".join(default) if isinstance(default, tuple) else (default or ""),
            field.display_if.describe() if field.display_if else "",
        )
    console.print(table)

    if schema.list_view.fields:
        console.print(f"[bold]List view:[/bold] {', '.join(schema.list_view.fields)}")
    for section in schema.sections:
        condition = f" [dim](if {section.display_if.describe()})[/dim]" if section.display_if else ""
        console.print(f"[bold]{section.title}[/bold]{condition}: {', '.join(section.fields)}")


def _print_errors(title: str, errors: list[FieldError]) -> None:
    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Error", style="red")
    table.add_column("Rule")
    table.add_column("Message")
    for error in errors:
        table.add_row(
            error.field,
            error.kind.value,
            error.rule.value if error.rule else "",
            error.message,
        )
    console.print(table)


@app.command(name="validate")
def validate_command(
    key: Annotated[str, typer.Argument(help="Schema key")],
    assignments: Annotated[
        list[str] | None, typer.Argument(help="field=value pairs; repeat a field for arrays")
    ] = None,
    stored: Annotated[
        Path | None,
        typer.Option("--stored", "-s", help="JSON file with previously stored values"),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """
    Validate a record against a schema.

    Examples:
        confschema validate tls server.tls.timeout=30s
        confschema validate acme _id=le domains=example.com contact=admin@example.com
    """
    schema = _get_schema(key)
    raw = parse_assignments(assignments or [])
    stored_values = None
    if stored:
        try:
            stored_raw = json.loads(stored.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            typer.echo(f"Error reading stored values: {e}", err=True)
            raise typer.Exit(code=1)
        if not isinstance(stored_raw, dict):
            typer.echo("Error reading stored values: expected a JSON object", err=True)
            raise typer.Exit(code=1)
        normalized = normalize_stored(schema, stored_raw)
        if not normalized.is_valid:
            if as_json:
                payload = {
                    "valid": False,
                    "stored": True,
                    "errors": [e.to_dict() for e in normalized.errors],
                }
                typer.echo(json.dumps(payload, indent=2))
            else:
                _print_errors(f"Invalid stored {key} values", normalized.errors)
            raise typer.Exit(code=1)
        stored_values = normalized.values

    result = validate(default_registry(), key, raw, stored_values, _config)

    if as_json:
        payload = {
            "valid": result.is_valid,
            "values": {k: render_value(v) for k, v in result.values.items()},
            "errors": [e.to_dict() for e in result.errors],
        }
        typer.echo(json.dumps(payload, indent=2))
    elif result.is_valid:
        table = Table(title=f"Valid {key} record")
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for field_id, value in result.values.items():
            table.add_row(field_id, "" if value is None else str(render_value(value)))
        console.print(table)
    else:
        _print_errors(f"Invalid {key} record", result.errors)

    if not result.is_valid:
        raise typer.Exit(code=1)


@app.command(name="visible")
def visible_command(
    key: Annotated[str, typer.Argument(help="Schema key")],
    assignments: Annotated[
        list[str] | None, typer.Argument(help="field=value pairs of the current record")
    ] = None,
) -> None:
    """Show which fields and sections a record currently displays."""
    schema = _get_schema(key)
    visibility = evaluate_visibility(schema, parse_assignments(assignments or []))

    for section in schema.sections:
        marker = "[green]shown[/green]" if visibility.is_section_visible(section.title) else "[dim]hidden[/dim]"
        console.print(f"[bold]{section.title}[/bold] {marker}")
    console.print("Visible fields: " + ", ".join(f for f in schema.fields if visibility.is_field_visible(f)))
    hidden = [f for f in schema.fields if not visibility.is_field_visible(f)]
    if hidden:
        console.print("[dim]Hidden fields: " + ", ".join(hidden) + "[/dim]")


def main() -> None:
    """Entry point for the confschema command."""
    app()


if __name__ == "__main__":
    main()
