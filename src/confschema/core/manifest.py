"""
Engine configuration from confschema.toml.

The manifest is optional; missing files and tables fall back to defaults.
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

MANIFEST_NAME = "confschema.toml"


@dataclass
class ValidationConfig:
    reject_unknown_fields: bool = True


@dataclass
class LoggingConfig:
    level: str | None = None


@dataclass
class EngineConfig:
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source: Path | None = None


def load_manifest(path: Path) -> EngineConfig:
    data = tomllib.loads(path.read_text(encoding="utf-8"))

    validation_data = data.get("validation", {})
    logging_data = data.get("logging", {})

    validation = ValidationConfig(
        reject_unknown_fields=bool(validation_data.get("reject_unknown_fields", True)),
    )
    level = logging_data.get("level")
    logging_config = LoggingConfig(level=str(level).upper() if level else None)

    return EngineConfig(validation=validation, logging=logging_config, source=path)


def find_manifest(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` (default: cwd) looking for confschema.toml."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / MANIFEST_NAME
        if candidate.is_file():
            return candidate
    return None


def load_config(start: Path | None = None) -> EngineConfig:
    """Load the nearest manifest, or defaults when there is none."""
    path = find_manifest(start)
    if path is None:
        return EngineConfig()
    return load_manifest(path)
