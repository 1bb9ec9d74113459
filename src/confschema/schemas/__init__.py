"""
Shipped schema declarations.

``default_registry()`` builds the registry of every shipped schema once per
process and returns the same immutable instance afterwards.
"""

from functools import lru_cache

from confschema.core.builder import build_registry
from confschema.core.ir import SchemaRegistry

from .listener import declare_listener
from .tls import add_tls_fields, declare_tls

DECLARATIONS = (declare_tls, declare_listener)


@lru_cache(maxsize=1)
def default_registry() -> SchemaRegistry:
    """Registry with all shipped schemas."""
    return build_registry(*DECLARATIONS)


__all__ = [
    "DECLARATIONS",
    "add_tls_fields",
    "declare_listener",
    "declare_tls",
    "default_registry",
]
