"""
TLS schemas: ACME providers, TLS certificates, and default TLS settings.
"""

from __future__ import annotations

from confschema.core.builder import FieldBuilder, RegistryBuilder, SchemaBuilder
from confschema.core.ir import FieldType, Transformer, Validator

TLS_PROTOCOLS = [
    ("TLSv1.2", "TLS version 1.2"),
    ("TLSv1.3", "TLS version 1.3"),
]

TLS_CIPHERSUITES = [
    ("TLS13_AES_256_GCM_SHA384", "TLS1.3 AES256 GCM SHA384"),
    ("TLS13_AES_128_GCM_SHA256", "TLS1.3 AES128 GCM SHA256"),
    ("TLS13_CHACHA20_POLY1305_SHA256", "TLS1.3 CHACHA20 POLY1305 SHA256"),
    ("TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384", "ECDHE ECDSA AES256 GCM SHA384"),
    ("TLS_ECDHE_ECDSA_WITH_AES_128_GCM_SHA256", "ECDHE ECDSA AES128 GCM SHA256"),
    ("TLS_ECDHE_ECDSA_WITH_CHACHA20_POLY1305_SHA256", "ECDHE ECDSA CHACHA20 POLY1305 SHA256"),
    ("TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384", "ECDHE RSA AES256 GCM SHA384"),
    ("TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256", "ECDHE RSA AES128 GCM SHA256"),
    ("TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305_SHA256", "ECDHE RSA CHACHA20 POLY1305 SHA256"),
]

ACME_CHALLENGES = [
    ("tls-alpn-01", "TLS-ALPN-01"),
    ("dns-01", "DNS-01"),
    ("http-01", "HTTP-01"),
]

DNS_PROVIDERS = [
    ("rfc2136-tsig", "RFC2136"),
    ("cloudflare", "Cloudflare"),
]

TSIG_ALGORITHMS = [
    ("hmac-md5", "HMAC-MD5"),
    ("gss", "GSS"),
    ("hmac-sha1", "HMAC-SHA1"),
    ("hmac-sha224", "HMAC-SHA224"),
    ("hmac-sha256", "HMAC-SHA256"),
    ("hmac-sha256-128", "HMAC-SHA256-128"),
    ("hmac-sha384", "HMAC-SHA384"),
    ("hmac-sha384-192", "HMAC-SHA384-192"),
    ("hmac-sha512", "HMAC-SHA512"),
    ("hmac-sha512-256", "HMAC-SHA512-256"),
]


def declare_tls(builder: RegistryBuilder) -> RegistryBuilder:
    """Declare the ``acme``, ``certificate`` and ``tls`` schemas."""
    return (
        builder.new_schema("acme")
        .names("ACME provider", "ACME providers")
        .prefix("acme")
        .suffix("directory")
        # Id
        .new_id_field()
        .label("Directory Id")
        .help("Unique identifier for the ACME provider")
        .build()
        # Directory
        .new_field("directory")
        .label("Directory URL")
        .help("The URL of the ACME directory endpoint")
        .typ(FieldType.input())
        .input_check([Transformer.TRIM], [Validator.REQUIRED, Validator.IS_URL])
        .default("https://acme-v02.api.letsencrypt.org/directory")
        .build()
        # Domains
        .new_field("domains")
        .typ(FieldType.array())
        .input_check([Transformer.TRIM], [Validator.REQUIRED])
        .label("Subject names")
        .help("Hostnames covered by this ACME manager")
        .build()
        # Default provider
        .new_field("default")
        .typ(FieldType.boolean())
        .label("Default provider")
        .help(
            "Whether the certificates generated by this provider "
            "should be the default when no SNI is provided"
        )
        .build()
        # Contact
        .new_field("contact")
        .label("Contact Email")
        .help(
            "the contact email address, which is used for important "
            "communications regarding your ACME account and certificates"
        )
        .typ(FieldType.array())
        .input_check([Transformer.TRIM], [Validator.REQUIRED, Validator.IS_EMAIL])
        .build()
        # Renew before
        .new_field("renew-before")
        .typ(FieldType.duration())
        .label("Renew before")
        .help("Determines how early before expiration the certificate should be renewed.")
        .input_check([], [Validator.REQUIRED])
        .default("30d")
        .build()
        # Challenge type
        .new_field("challenge")
        .typ(FieldType.select(ACME_CHALLENGES))
        .label("Challenge type")
        .help("The ACME challenge type used to validate domain ownership")
        .input_check([], [Validator.REQUIRED])
        .default("tls-alpn-01")
        .build()
        # DNS-01 timings
        .new_field("polling-interval")
        .typ(FieldType.duration())
        .label("Polling interval")
        .help("How often to check for DNS records to propagate")
        .display_if_eq("challenge", ["dns-01"])
        .input_check([], [Validator.REQUIRED])
        .default("15s")
        .new_field("propagation-timeout")
        .label("Propagation timeout")
        .help("How long to wait for DNS records to propagate")
        .default("1m")
        .new_field("ttl")
        .label("TTL")
        .help("The TTL for the DNS record used in the DNS-01 challenge")
        .default("5m")
        .build()
        # Provider (shown through the DNS settings section)
        .new_field("provider")
        .typ(FieldType.select(DNS_PROVIDERS))
        .label("DNS Provider")
        .help("The DNS provider used to manage DNS records for the DNS-01 challenge")
        .input_check([], [Validator.REQUIRED])
        .default("rfc2136-tsig")
        .build()
        # Secret
        .new_field("secret")
        .typ(FieldType.secret())
        .label("Secret")
        .help("The TSIG secret or token used to authenticate with the DNS provider")
        .input_check([], [Validator.REQUIRED])
        .display_if_eq("challenge", ["dns-01"])
        .build()
        # Request timeout
        .new_field("timeout")
        .typ(FieldType.duration())
        .label("Timeout")
        .help("Request timeout for the DNS provider")
        .display_if_eq("provider", ["cloudflare"])
        .input_check([], [Validator.REQUIRED])
        .default("30s")
        .build()
        # TSIG algorithm
        .new_field("tsig-algorithm")
        .typ(FieldType.select(TSIG_ALGORITHMS))
        .label("TSIG Algorithm")
        .help("The TSIG algorithm used to authenticate with the DNS provider")
        .input_check([], [Validator.REQUIRED])
        .default("hmac-sha512")
        .display_if_eq("provider", ["rfc2136-tsig"])
        # DNS server
        .new_field("protocol")
        .typ(FieldType.select([("udp", "UDP"), ("tcp", "TCP")]))
        .label("Protocol")
        .help("The protocol used to communicate with the DNS server")
        .default("udp")
        .new_field("port")
        .typ(FieldType.input())
        .label("Port")
        .help("The port used to communicate with the DNS server")
        .input_check([Transformer.TRIM], [Validator.REQUIRED, Validator.IS_PORT])
        .default("53")
        .new_field("host")
        .label("Host")
        .help("The IP address of the DNS server")
        .placeholder("127.0.0.1")
        .input_check([Transformer.TRIM], [Validator.REQUIRED, Validator.IS_IP_OR_MASK])
        .new_field("key")
        .label("Key")
        .help("The TSIG key used to authenticate with the DNS provider")
        .input_check([Transformer.TRIM], [Validator.REQUIRED])
        .build()
        # Generated credentials
        .new_field("account-key")
        .label("Account key")
        .help("The account key used to authenticate with the ACME provider (auto-generated)")
        .typ(FieldType.secret())
        .build()
        .new_field("cert")
        .label("TLS Certificate")
        .help("The TLS certificate generated by the ACME provider (auto-generated, do not modify)")
        .typ(FieldType.secret())
        .build()
        # Lists
        .list_title("ACME providers")
        .list_subtitle("Manage ACME TLS certificate providers")
        .list_fields(["_id", "contact", "renew-before", "default"])
        # Form
        .new_form_section()
        .title("ACME provider")
        .fields(
            [
                "_id",
                "directory",
                "challenge",
                "contact",
                "domains",
                "renew-before",
                "default",
            ]
        )
        .build()
        .new_form_section()
        .title("DNS settings")
        .display_if_eq("challenge", ["dns-01"])
        .fields(
            [
                "provider",
                "host",
                "port",
                "protocol",
                "tsig-algorithm",
                "key",
                "secret",
                "polling-interval",
                "propagation-timeout",
                "ttl",
                "timeout",
            ]
        )
        .build()
        .new_form_section()
        .title("Certificate")
        .fields(["account-key", "cert"])
        .build()
        .build()
        # ---- TLS certificates ----
        .new_schema("certificate")
        .reload_prefix("certificate")
        .names("certificate", "certificates")
        .prefix("certificate")
        .suffix("cert")
        .new_id_field()
        .label("Certificate Id")
        .help("Unique identifier for the TLS certificate")
        .build()
        .new_field("default")
        .typ(FieldType.boolean())
        .label("Default certificate")
        .help("Whether this certificate should be the default when no SNI is provided")
        .build()
        .new_field("cert")
        .label("Certificate")
        .typ(FieldType.text())
        .help("TLS certificate in PEM format")
        .input_check([Transformer.TRIM], [Validator.REQUIRED])
        .build()
        .new_field("private-key")
        .label("Private Key")
        .typ(FieldType.text())
        .help("Private key in PEM format")
        .input_check([Transformer.TRIM], [Validator.REQUIRED])
        .build()
        .new_field("subjects")
        .typ(FieldType.array())
        .input_check([Transformer.TRIM], [Validator.IS_DOMAIN])
        .label("Subject Alternative Names")
        .help("Subject Alternative Names (SAN) for the certificate")
        .build()
        .list_title("TLS certificates")
        .list_subtitle("Manage TLS certificates")
        .list_fields(["_id", "subjects", "default"])
        .new_form_section()
        .title("TLS certificate")
        .fields(["_id", "cert", "private-key", "subjects", "default"])
        .build()
        .build()
        # ---- TLS settings ----
        .new_schema("tls")
        .names("TLS setting", "TLS settings")
        .pipe(lambda schema: add_tls_fields(schema, is_listener=False))
        .new_form_section()
        .title("Default TLS options")
        .fields(
            [
                "server.tls.disable-protocols",
                "server.tls.disable-ciphers",
                "server.tls.timeout",
                "server.tls.ignore-client-order",
            ]
        )
        .build()
        .build()
    )


def add_tls_fields(schema: SchemaBuilder, is_listener: bool) -> SchemaBuilder:
    """
    Add the shared TLS option fields to an open schema.

    Listener fields use the ``tls.`` prefix and are only shown while the
    listener's ``tls.override`` flag is set; server-wide fields use
    ``server.tls.`` and are always shown.
    """
    prefix = "tls" if is_listener else "server.tls"

    def gated(field: FieldBuilder) -> FieldBuilder:
        return field.display_if_eq("tls.override", ["true"]) if is_listener else field

    schema = gated(
        schema.new_field(f"{prefix}.ignore-client-order")
        .label("Ignore client order")
        .help("Whether to ignore the client's cipher order")
        .typ(FieldType.boolean())
        .default("true")
    ).build()
    schema = gated(
        schema.new_field(f"{prefix}.timeout")
        .label("Handshake Timeout")
        .help("TLS handshake timeout")
        .typ(FieldType.duration())
        .default("1m")
    ).build()
    schema = gated(
        schema.new_field(f"{prefix}.disable-protocols")
        .label("Disabled Protocols")
        .help("Which TLS protocols to disable")
        .typ(FieldType.select(TLS_PROTOCOLS, multi=True))
    ).build()
    return gated(
        schema.new_field(f"{prefix}.disable-ciphers")
        .label("Disabled Ciphersuites")
        .help("Which ciphersuites to disable")
        .typ(FieldType.select(TLS_CIPHERSUITES, multi=True))
    ).build()
