"""
confschema - configuration schema description and validation.

Declare configuration object types with the staged builder, then validate
submitted records and compute which fields a form currently shows.
"""

from confschema._version import get_version
from confschema.core import (
    BuildDefect,
    RegistryBuilder,
    SchemaNotFoundError,
    ValidationResult,
    validate,
    visible_fields,
    visible_sections,
)
from confschema.core.ir import SchemaRegistry, SchemaSpec

__version__ = get_version()

__all__ = [
    "__version__",
    "BuildDefect",
    "RegistryBuilder",
    "SchemaNotFoundError",
    "SchemaRegistry",
    "SchemaSpec",
    "ValidationResult",
    "validate",
    "visible_fields",
    "visible_sections",
]
