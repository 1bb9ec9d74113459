"""
Validation rules and type coercion.

Rule checks operate on transformed raw values (strings or lists of
strings). Coercion turns a validated raw value into the field's declared
value kind.
"""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Callable
from datetime import timedelta
from typing import Any, cast
from urllib.parse import urlparse

from pydantic import SecretStr

from .ir import (
    FieldSpec,
    FieldTypeKind,
    RawValue,
    Value,
    ValidatorKind,
    ValidatorSpec,
    is_empty,
    parse_boolean,
    parse_duration,
    scalar_token,
)
from .transformers import apply_transformers

# =============================================================================
# Rule Checks
# =============================================================================

_DOMAIN_LABEL = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$", re.IGNORECASE)
_EMAIL_LOCAL = re.compile(r"^[a-z0-9.!#$%&'*+/=?^_`{|}~-]+$", re.IGNORECASE)

URL_SCHEMES = frozenset({"http", "https"})
PORT_MIN = 1
PORT_MAX = 65535
DOMAIN_MAX_LENGTH = 253


def is_domain(text: str) -> bool:
    """Check a DNS name. A leading ``*.`` wildcard label is allowed."""
    name = text.rstrip(".")
    if not name or len(name) > DOMAIN_MAX_LENGTH:
        return False
    labels = name.split(".")
    if labels[0] == "*":
        labels = labels[1:]
    if len(labels) < 2:
        return False
    return all(_DOMAIN_LABEL.match(label) for label in labels)


def is_email(text: str) -> bool:
    """Check an email address of the form ``local@domain``."""
    local, sep, domain = text.rpartition("@")
    if not sep or not local or len(local) > 64:
        return False
    if local.startswith(".") or local.endswith(".") or ".." in local:
        return False
    return bool(_EMAIL_LOCAL.match(local)) and is_domain(domain) and "*" not in domain


def is_url(text: str) -> bool:
    """Check an absolute http(s) URL."""
    try:
        parsed = urlparse(text)
    except ValueError:
        return False
    return parsed.scheme in URL_SCHEMES and bool(parsed.netloc) and " " not in text


def is_port(text: str) -> bool:
    """Check a TCP/UDP port number."""
    if not text.isdigit():
        return False
    return PORT_MIN <= int(text) <= PORT_MAX


def is_ip_or_mask(text: str) -> bool:
    """Check an IPv4/IPv6 address or network in CIDR notation."""
    try:
        if "/" in text:
            ipaddress.ip_network(text, strict=False)
        else:
            ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


_CHECKS: dict[ValidatorKind, tuple[Callable[[str], bool], str]] = {
    ValidatorKind.IS_URL: (is_url, "Invalid URL"),
    ValidatorKind.IS_EMAIL: (is_email, "Invalid email address"),
    ValidatorKind.IS_PORT: (is_port, "Invalid port number"),
    ValidatorKind.IS_IP_OR_MASK: (is_ip_or_mask, "Invalid IP address or mask"),
    ValidatorKind.IS_DOMAIN: (is_domain, "Invalid domain name"),
}

REQUIRED_MESSAGE = "This field is required"


def check_rule(validator: ValidatorSpec, value: RawValue) -> str | None:
    """
    Run one validator against a transformed raw value.

    Only ``required`` looks at empty values; every other rule accepts them.
    Lists are checked element by element.

    Returns:
        None if the value passes, otherwise the failure message.
    """
    if validator.kind == ValidatorKind.REQUIRED:
        if is_empty(value):
            return validator.message or REQUIRED_MESSAGE
        return None
    if is_empty(value):
        return None

    if validator.kind == ValidatorKind.CUSTOM:
        check = cast(Callable[[str], bool], validator.check)
        default_message = f"Failed check '{validator.name}'"
    elif validator.kind in _CHECKS:
        check, default_message = _CHECKS[validator.kind]
    else:
        # Coercion rules are applied by coerce_value
        return None

    items = value if isinstance(value, list) else [value]
    for item in items:
        if not check(item):
            message = validator.message or default_message
            return f"{message}: '{item}'" if isinstance(value, list) else message
    return None


# =============================================================================
# Coercion
# =============================================================================


class CoercionError(ValueError):
    """Raised when a raw value cannot be converted to the field's kind."""

    def __init__(self, rule: ValidatorKind, message: str):
        self.rule = rule
        self.message = message
        super().__init__(message)


def _single(value: str | list[str]) -> str:
    if isinstance(value, str):
        return value
    if len(value) == 1:
        return value[0]
    raise CoercionError(ValidatorKind.IS_SINGLE_VALUE, f"Expected a single value, got {len(value)}")


def _as_list(value: str | list[str]) -> list[str]:
    return [value] if isinstance(value, str) else list(value)


def coerce_value(field: FieldSpec, value: RawValue) -> Value:
    """
    Convert a validated raw value into the field's declared kind.

    Empty values and empty lists normalize to None.

    Raises:
        CoercionError: If the value does not fit the field's kind.
    """
    kind = field.type.kind
    if value is None or (not field.type.is_multi_valued and is_empty(value)):
        return None

    if field.type.is_multi_valued:
        # Forms submit an empty string when nothing is selected
        items = [item for item in _as_list(value) if item != ""]
        if kind == FieldTypeKind.SELECT:
            allowed = field.type.option_values
            for item in items:
                if item not in allowed:
                    raise CoercionError(ValidatorKind.IS_OPTION, f"Invalid option '{item}'")
            # Deduplicate, keeping submission order
            return list(dict.fromkeys(items)) or None
        return items or None

    text = _single(value)
    if text == "":
        return None

    if kind == FieldTypeKind.BOOLEAN:
        try:
            return parse_boolean(text)
        except ValueError:
            raise CoercionError(ValidatorKind.IS_BOOLEAN, f"Invalid boolean '{text}'") from None
    if kind == FieldTypeKind.DURATION:
        try:
            return parse_duration(text)
        except ValueError:
            raise CoercionError(ValidatorKind.IS_DURATION, f"Invalid duration '{text}'") from None
    if kind == FieldTypeKind.SELECT:
        if text not in field.type.option_values:
            raise CoercionError(ValidatorKind.IS_OPTION, f"Invalid option '{text}'")
        return text
    if kind == FieldTypeKind.SECRET:
        return SecretStr(text)
    return text


def normalize_value(field: FieldSpec, value: Any) -> Value:
    """
    Best-effort normalization of a raw or already normalized value.

    Used where a value only needs to be compared, not validated: raw input
    is transformed and coerced, and a value that does not coerce counts as
    absent.
    """
    if value is None or isinstance(value, (bool, timedelta, SecretStr)):
        return value
    if isinstance(value, (list, tuple)):
        raw: RawValue = [scalar_token(item) for item in value]
    else:
        raw = scalar_token(value)
    try:
        return coerce_value(field, apply_transformers(raw, field.transformers))
    except CoercionError:
        return None
