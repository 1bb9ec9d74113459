"""
Listener schema: network listeners with optional per-listener TLS options.
"""

from __future__ import annotations

from confschema.core.builder import RegistryBuilder
from confschema.core.ir import FieldType, Transformer, Validator

from .tls import add_tls_fields

LISTENER_PROTOCOLS = [
    ("smtp", "SMTP"),
    ("lmtp", "LMTP"),
    ("http", "HTTP"),
    ("imap", "IMAP4"),
    ("pop3", "POP3"),
    ("managesieve", "ManageSieve"),
]


def declare_listener(builder: RegistryBuilder) -> RegistryBuilder:
    """Declare the ``listener`` schema."""
    return (
        builder.new_schema("listener")
        .names("listener", "listeners")
        .prefix("server.listener")
        .suffix("protocol")
        .reload_prefix("server.listener")
        .new_id_field()
        .label("Listener Id")
        .help("Unique identifier for the listener")
        .build()
        .new_field("protocol")
        .typ(FieldType.select(LISTENER_PROTOCOLS))
        .label("Protocol")
        .help("The protocol served by this listener")
        .input_check([], [Validator.REQUIRED])
        .default("smtp")
        .build()
        .new_field("bind")
        .typ(FieldType.array())
        .label("Bind addresses")
        .help("Addresses and ports the listener binds to")
        .placeholder("[::]:25")
        .input_check([Transformer.TRIM], [Validator.REQUIRED])
        .build()
        .new_field("tls.implicit")
        .typ(FieldType.boolean())
        .label("Implicit TLS")
        .help("Whether the connection starts with a TLS handshake")
        .default("false")
        .build()
        .new_field("tls.override")
        .typ(FieldType.boolean())
        .label("Override TLS settings")
        .help("Use listener specific TLS options instead of the server defaults")
        .default("false")
        .build()
        .pipe(lambda schema: add_tls_fields(schema, is_listener=True))
        .list_title("Listeners")
        .list_subtitle("Manage network listeners")
        .list_fields(["_id", "protocol", "bind"])
        .new_form_section()
        .title("Listener")
        .fields(["_id", "protocol", "bind", "tls.implicit", "tls.override"])
        .build()
        .new_form_section()
        .title("TLS options")
        .display_if_eq("tls.override", ["true"])
        .fields(
            [
                "tls.disable-protocols",
                "tls.disable-ciphers",
                "tls.timeout",
                "tls.ignore-client-order",
            ]
        )
        .build()
        .build()
    )
