"""Shared pytest fixtures for confschema tests."""

import pytest

from confschema.core.builder import RegistryBuilder
from confschema.core.ir import FieldType, SchemaRegistry, SchemaSpec, Transformer, Validator
from confschema.schemas import default_registry


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test with CONFSCHEMA_ENV=test."""
    monkeypatch.setenv("CONFSCHEMA_ENV", "test")


@pytest.fixture
def registry() -> SchemaRegistry:
    """Return the registry of shipped schemas."""
    return default_registry()


@pytest.fixture
def acme(registry: SchemaRegistry) -> SchemaSpec:
    """Return the ACME provider schema."""
    return registry.get("acme")


@pytest.fixture
def acme_record() -> dict[str, str | list[str]]:
    """Return a minimal valid ACME submission."""
    return {
        "_id": "letsencrypt",
        "domains": ["example.com"],
        "contact": ["postmaster@example.com"],
    }


@pytest.fixture
def mail_registry() -> SchemaRegistry:
    """Return a small registry with one conditional field and one conditional section."""
    return (
        RegistryBuilder()
        .new_schema("mailbox")
        .names("mailbox", "mailboxes")
        .new_id_field()
        .label("Mailbox")
        .build()
        .new_field("kind")
        .typ(FieldType.select([("local", "Local"), ("forward", "Forward")]))
        .input_check([], [Validator.REQUIRED])
        .default("local")
        .build()
        .new_field("forward-to")
        .typ(FieldType.array())
        .input_check([Transformer.TRIM], [Validator.REQUIRED, Validator.IS_EMAIL])
        .display_if_eq("kind", ["forward"])
        .build()
        .new_field("quota")
        .typ(FieldType.input())
        .input_check([Transformer.TRIM], [Validator.REQUIRED])
        .build()
        .new_field("password")
        .typ(FieldType.secret())
        .build()
        .list_fields(["_id", "kind"])
        .new_form_section()
        .title("General")
        .fields(["_id", "kind", "forward-to"])
        .build()
        .new_form_section()
        .title("Storage")
        .display_if_eq("kind", ["local"])
        .fields(["quota", "password"])
        .build()
        .build()
        .build()
    )
