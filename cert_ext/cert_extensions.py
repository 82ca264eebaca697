"""Standard extension templates for the usual certificate categories."""

from __future__ import annotations

import logging
from typing import TypedDict

from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from cert_ext.ext_codecs import codec_for
from cert_ext.ext_set import ExtensionSet, wrap_extension_value
from cert_ext.ext_types import ExtensionKind
from cert_ext.ext_values import (
    AuthorityKeyIdentifier,
    BasicConstraints,
    ExtendedKeyUsage,
    ExtensionValue,
    GeneralName,
    GeneralNames,
    KeyUsage,
    KeyUsagePurpose,
    SubjectKeyIdentifier,
)
from cert_ext.key_material import KeyMaterialContext

logger = logging.getLogger(__name__)


class ExtensionConfig(TypedDict):
    kind: ExtensionKind
    extension: ExtensionValue
    critical: bool


class CertTypeConfig(TypedDict):
    type: str
    parameters: list[ExtensionConfig]


# To add a template:
# Add a type: Root, Intermediate, Leaf
# followed by the parameters as a list of dictionaries with 'kind', 'extension' (structured value) and 'critical' (bool).
# Key identifiers and the leaf subject alternative name are derived from the key material when it is given.

EXTENSIONS: dict[str, CertTypeConfig] = {
    "RootCA":
    {
        "type": "Root",
        "parameters":
            [
                {
                    "kind": ExtensionKind.BASIC_CONSTRAINTS,
                    "extension": BasicConstraints(ca=True, path_length=None),
                    "critical": True
                },
                {
                    "kind": ExtensionKind.KEY_USAGE,
                    "extension": KeyUsage(frozenset({
                        KeyUsagePurpose.DIGITAL_SIGNATURE,
                        KeyUsagePurpose.KEY_CERT_SIGN,
                        KeyUsagePurpose.CRL_SIGN,
                    })),
                    "critical": True
                },
            ]
    },
    "IntCA":
    {
        "type": "Intermediate",
        "parameters":
            [
                {
                    "kind": ExtensionKind.BASIC_CONSTRAINTS,
                    "extension": BasicConstraints(ca=True, path_length=0),
                    "critical": True
                },
                {
                    "kind": ExtensionKind.KEY_USAGE,
                    "extension": KeyUsage(frozenset({
                        KeyUsagePurpose.DIGITAL_SIGNATURE,
                        KeyUsagePurpose.KEY_CERT_SIGN,
                        KeyUsagePurpose.CRL_SIGN,
                    })),
                    "critical": True
                },
            ]
    },
    "CN":
    {
        "type": "Leaf",
        "parameters":
            [
                {
                    "kind": ExtensionKind.BASIC_CONSTRAINTS,
                    "extension": BasicConstraints(ca=False, path_length=None),
                    "critical": False
                },
                {
                    "kind": ExtensionKind.KEY_USAGE,
                    "extension": KeyUsage(frozenset({
                        KeyUsagePurpose.DIGITAL_SIGNATURE,
                        KeyUsagePurpose.NON_REPUDIATION,
                        KeyUsagePurpose.KEY_ENCIPHERMENT,
                    })),
                    "critical": True
                },
                {
                    "kind": ExtensionKind.EXTENDED_KEY_USAGE,
                    "extension": ExtendedKeyUsage((
                        ExtendedKeyUsageOID.SERVER_AUTH.dotted_string,
                        ExtendedKeyUsageOID.CLIENT_AUTH.dotted_string,
                        ExtendedKeyUsageOID.EMAIL_PROTECTION.dotted_string,
                    )),
                    "critical": False
                }
            ]
    },
    "CodeSigning":
    {
        "type": "Leaf",
        "parameters":
            [
                {
                    "kind": ExtensionKind.BASIC_CONSTRAINTS,
                    "extension": BasicConstraints(ca=False, path_length=None),
                    "critical": False
                },
                {
                    "kind": ExtensionKind.KEY_USAGE,
                    "extension": KeyUsage(frozenset({KeyUsagePurpose.DIGITAL_SIGNATURE})),
                    "critical": True
                },
                {
                    "kind": ExtensionKind.EXTENDED_KEY_USAGE,
                    "extension": ExtendedKeyUsage((ExtendedKeyUsageOID.CODE_SIGNING.dotted_string,)),
                    "critical": False
                }
            ]
    },
}


def _add(extensions: ExtensionSet, kind: ExtensionKind, value: ExtensionValue, critical: bool,
         context: KeyMaterialContext | None) -> None:
    der = codec_for(kind).encode(value, context)
    extensions.add_extension(kind.oid, critical, wrap_extension_value(der))


def _common_names(context: KeyMaterialContext) -> list[str]:
    if context.subject_name is None:
        return []
    return [
        attribute.value
        for attribute in context.subject_name.get_attributes_for_oid(NameOID.COMMON_NAME)
        if isinstance(attribute.value, str)
    ]


def standard_template(category: str, context: KeyMaterialContext | None = None) -> ExtensionSet:
    """
    Build the extension set of a standard category.

    The fixed parameters of EXTENSIONS[category] come first. With key material
    the set also gets a Subject Key Identifier (subject key), an Authority Key
    Identifier for non-root types (issuer key) and, for leaves, a Subject
    Alternative Name with the subject common name as DNS name.
    """
    if category not in EXTENSIONS:
        raise ValueError(f"Unknown cert category: {category}")
    config = EXTENSIONS[category]
    extensions = ExtensionSet()

    for param in config["parameters"]:
        _add(extensions, param["kind"], param["extension"], param["critical"], context)

    if context is not None:
        if context.subject_public_key is not None:
            _add(extensions, ExtensionKind.SUBJECT_KEY_IDENTIFIER, SubjectKeyIdentifier(), False, context)
        if config["type"] != "Root" and context.issuer_public_key is not None:
            _add(extensions, ExtensionKind.AUTHORITY_KEY_IDENTIFIER, AuthorityKeyIdentifier(), False, context)
        if config["type"] == "Leaf":
            names = tuple(GeneralName.dns(cn) for cn in _common_names(context))
            if names:
                _add(extensions, ExtensionKind.SUBJECT_ALTERNATIVE_NAME, GeneralNames(names), False, context)

    logger.debug("Built %s template with %d extension(s)", category, len(extensions))
    return extensions
