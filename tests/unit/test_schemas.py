"""
Tests for the shipped schema declarations.
"""

import pytest

from confschema.core.ir import FieldTypeKind, ValidatorKind
from confschema.schemas import default_registry
from confschema.schemas.tls import ACME_CHALLENGES, TLS_CIPHERSUITES


class TestRegistry:
    """Tests over the whole shipped registry."""

    def test_keys(self, registry):
        assert registry.keys == ["acme", "certificate", "tls", "listener"]

    def test_registry_built_once(self):
        assert default_registry() is default_registry()

    def test_every_reference_resolves(self, registry):
        for schema in registry:
            declared = set(schema.fields)
            assert set(schema.list_view.fields) <= declared
            for section in schema.sections:
                assert set(section.fields) <= declared
                if section.display_if:
                    assert section.display_if.field in declared
            for field in schema.fields.values():
                if field.display_if:
                    assert field.display_if.field in declared

    def test_no_secrets_in_list_views(self, registry):
        for schema in registry:
            for field_id in schema.list_view.fields:
                assert not schema.fields[field_id].is_secret

    def test_id_field_first_where_declared(self, registry):
        for schema in registry:
            if schema.id_field is not None:
                assert schema.field_ids[0] == "_id"


class TestAcmeSchema:
    """Tests for the ACME provider schema."""

    def test_metadata(self, acme):
        assert acme.id_prefix == "acme"
        assert acme.id_suffix == "directory"
        assert acme.list_view.fields == ("_id", "contact", "renew-before", "default")

    def test_challenge_options(self, acme):
        challenge = acme.get_field("challenge")

        assert challenge.type.option_values == [value for value, _ in ACME_CHALLENGES]
        assert challenge.default == "tls-alpn-01"

    def test_dns_timings_share_type(self, acme):
        for field_id, default in (
            ("polling-interval", "15s"),
            ("propagation-timeout", "1m"),
            ("ttl", "5m"),
        ):
            field = acme.get_field(field_id)
            assert field.type.kind == FieldTypeKind.DURATION
            assert field.is_required
            assert field.default == default

    def test_only_polling_interval_has_own_condition(self, acme):
        assert acme.get_field("polling-interval").display_if is not None
        assert acme.get_field("propagation-timeout").display_if is None

    def test_dns_section_gated_on_challenge(self, acme):
        section = acme.get_section("DNS settings")

        assert section.display_if.field == "challenge"
        assert section.display_if.values == ("dns-01",)
        assert "provider" in section.fields

    def test_secrets(self, acme):
        assert {f.id for f in acme.fields.values() if f.is_secret} == {"secret", "account-key", "cert"}

    def test_host_checks(self, acme):
        host = acme.get_field("host")

        assert host.placeholder == "127.0.0.1"
        assert [v.kind for v in host.validators] == [ValidatorKind.REQUIRED, ValidatorKind.IS_IP_OR_MASK]


class TestCertificateSchema:
    def test_fields(self, registry):
        certificate = registry.get("certificate")

        assert certificate.field_ids == ["_id", "default", "cert", "private-key", "subjects"]
        assert certificate.reload_prefix == "certificate"
        assert certificate.get_field("subjects").type.kind == FieldTypeKind.ARRAY


class TestTlsFields:
    """Tests for the shared TLS option fields."""

    def test_server_prefix(self, registry):
        tls = registry.get("tls")

        assert all(field_id.startswith("server.tls.") for field_id in tls.fields)
        assert tls.get_field("server.tls.disable-ciphers").type.option_values == [
            value for value, _ in TLS_CIPHERSUITES
        ]

    @pytest.mark.parametrize("suffix", ["ignore-client-order", "timeout", "disable-protocols"])
    def test_listener_fields_gated(self, registry, suffix):
        field = registry.get("listener").get_field(f"tls.{suffix}")

        assert field.display_if.field == "tls.override"
        assert field.display_if.values == ("true",)

    def test_multi_selects(self, registry):
        field = registry.get("tls").get_field("server.tls.disable-protocols")

        assert field.type.multi
        assert field.type.is_multi_valued
