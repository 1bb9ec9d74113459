"""
Input transformers.

Transformers are pure and never fail. Each one is idempotent, so running
a chain over an already normalized value leaves it unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from .ir import RawValue, TransformerKind

_TRANSFORMERS: dict[TransformerKind, Callable[[str], str]] = {
    TransformerKind.TRIM: str.strip,
    TransformerKind.REMOVE_SPACES: lambda text: "".join(text.split()),
    TransformerKind.LOWERCASE: str.lower,
    TransformerKind.UPPERCASE: str.upper,
}


def transform_text(text: str, transformers: Sequence[TransformerKind]) -> str:
    """Apply a transformer chain to a single string."""
    for kind in transformers:
        text = _TRANSFORMERS[kind](text)
    return text


def apply_transformers(value: RawValue, transformers: Sequence[TransformerKind]) -> RawValue:
    """
    Apply a transformer chain to a raw value.

    Lists are transformed element by element; elements that end up empty are
    dropped when the chain is non-empty.
    """
    if value is None:
        return None
    if isinstance(value, list):
        items = [transform_text(item, transformers) for item in value]
        if transformers:
            items = [item for item in items if item != ""]
        return items
    return transform_text(value, transformers)
