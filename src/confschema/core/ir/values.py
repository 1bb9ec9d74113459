"""
Value types for confschema.

A field's content, raw or normalized, is one of:

- ``None`` (absent)
- ``str``
- ``list[str]``
- ``bool``
- ``int``
- ``datetime.timedelta`` (durations)
- ``pydantic.SecretStr`` (secrets)

Raw input arrives form-encoded: strings and lists of strings.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any, TypeAlias

from pydantic import SecretStr

Value: TypeAlias = str | list[str] | bool | int | timedelta | SecretStr | None
RawValue: TypeAlias = str | list[str] | None

# Largest unit first; format_duration walks this table in order.
DURATION_UNITS: dict[str, timedelta] = {
    "w": timedelta(weeks=1),
    "d": timedelta(days=1),
    "h": timedelta(hours=1),
    "m": timedelta(minutes=1),
    "s": timedelta(seconds=1),
    "ms": timedelta(milliseconds=1),
}

_DURATION_PART = re.compile(r"(\d+)\s*(ms|[wdhms])", re.IGNORECASE)
_DURATION_FULL = re.compile(r"^(?:\s*\d+\s*(?:ms|[wdhms]))+\s*$", re.IGNORECASE)

TRUE_TOKENS = frozenset({"true", "1", "yes", "on"})
FALSE_TOKENS = frozenset({"false", "0", "no", "off"})


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration such as ``30d``, ``15s`` or ``1h30m``.

    A bare integer is taken as milliseconds.

    Raises:
        ValueError: If the text is not a duration.
    """
    text = text.strip()
    if text.isdigit():
        return timedelta(milliseconds=int(text))
    if not _DURATION_FULL.match(text):
        raise ValueError(f"Invalid duration '{text}'")
    total = timedelta()
    for magnitude, unit in _DURATION_PART.findall(text):
        total += int(magnitude) * DURATION_UNITS[unit.lower()]
    return total


def format_duration(value: timedelta) -> str:
    """Render a duration in compact form, e.g. ``timedelta(minutes=90)`` -> ``1h30m``."""
    remaining = value
    parts: list[str] = []
    for unit, size in DURATION_UNITS.items():
        count = remaining // size
        if count:
            parts.append(f"{count}{unit}")
            remaining -= count * size
    return "".join(parts) or "0s"


def parse_boolean(text: str) -> bool:
    """
    Parse a form-encoded boolean.

    Raises:
        ValueError: If the text is not a recognised boolean token.
    """
    token = text.strip().lower()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    raise ValueError(f"Invalid boolean '{text}'")


def is_empty(value: Any) -> bool:
    """Check if a value counts as absent for ``required`` purposes."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, SecretStr):
        return value.get_secret_value() == ""
    if isinstance(value, list):
        return len(value) == 0
    return False


def scalar_token(value: Any) -> str:
    """Canonical string form of a scalar value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, timedelta):
        return format_duration(value)
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    return str(value)


def condition_tokens(value: Any) -> list[str]:
    """
    Tokens a display condition can match against.

    Absent and secret values produce no tokens. Arrays produce one token per
    element.
    """
    if value is None or isinstance(value, SecretStr):
        return []
    if isinstance(value, (list, tuple)):
        return [scalar_token(item) for item in value]
    return [scalar_token(value)]


def to_raw(values: dict[str, Value]) -> dict[str, RawValue]:
    """
    Convert a normalized value set back into raw, form-encoded values.

    Absent values are omitted. The result can be stored and re-submitted
    for validation.
    """
    raw: dict[str, RawValue] = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, list):
            raw[key] = [scalar_token(item) for item in value]
        else:
            raw[key] = scalar_token(value)
    return raw
