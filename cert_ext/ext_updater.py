"""
Refresh extensions derived from key material.

A template saved against one key pair must not leak its key identifiers into a
certificate issued for another. update() recomputes the derived extensions an
ExtensionSet already contains; it never adds one.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

from cert_ext.ext_codecs import codec_for
from cert_ext.ext_set import ExtensionSet, unwrap_extension_value, wrap_extension_value
from cert_ext.ext_types import ExtensionKind, display_name
from cert_ext.ext_values import AuthorityKeyIdentifier, GeneralName, SubjectKeyIdentifier
from cert_ext.key_material import KeyMaterialContext, key_identifier

logger = logging.getLogger(__name__)


def update(
    extensions: ExtensionSet,
    subject_public_key: PublicKeyTypes | None,
    issuer_public_key: PublicKeyTypes | None,
    issuer_name: x509.Name | None,
    issuer_serial_number: int | None,
) -> None:
    """
    Recompute, in place, the key identifier extensions present in ``extensions``.

    Subject Key Identifier: key identifier of ``subject_public_key``.
    Authority Key Identifier: a key identifier present is recomputed from
    ``issuer_public_key``, an authorityCertIssuer present is replaced by
    ``issuer_name`` and a serial number present by ``issuer_serial_number``.

    A field whose source is None keeps its current value. Critical flags are
    preserved. A derived extension that cannot be decoded raises DecodeError
    before anything is overwritten.
    """
    ski_oid = ExtensionKind.SUBJECT_KEY_IDENTIFIER.oid
    aki_oid = ExtensionKind.AUTHORITY_KEY_IDENTIFIER.oid
    replacements: dict[str, bytes] = {}

    ski_value = extensions.get_extension_value(ski_oid)
    if ski_value is not None:
        codec = codec_for(ExtensionKind.SUBJECT_KEY_IDENTIFIER)
        ski = codec.decode(unwrap_extension_value(ski_value))
        if subject_public_key is not None:
            refreshed = SubjectKeyIdentifier(key_identifier(subject_public_key))
            if refreshed != ski:
                replacements[ski_oid] = wrap_extension_value(codec.encode(refreshed))

    aki_value = extensions.get_extension_value(aki_oid)
    if aki_value is not None:
        codec = codec_for(ExtensionKind.AUTHORITY_KEY_IDENTIFIER)
        aki: AuthorityKeyIdentifier = codec.decode(unwrap_extension_value(aki_value))
        refreshed = aki
        if aki.key_identifier is not None and issuer_public_key is not None:
            refreshed = replace(refreshed, key_identifier=key_identifier(issuer_public_key))
        if aki.authority_cert_issuer is not None and issuer_name is not None:
            refreshed = replace(refreshed, authority_cert_issuer=(GeneralName.directory(issuer_name),))
        if aki.authority_cert_serial_number is not None and issuer_serial_number is not None:
            refreshed = replace(refreshed, authority_cert_serial_number=issuer_serial_number)
        if refreshed != aki:
            replacements[aki_oid] = wrap_extension_value(codec.encode(refreshed))

    for oid, value in replacements.items():
        extensions.add_extension(oid, extensions.is_critical(oid), value)
        logger.info("Refreshed %s", display_name(oid))


def update_from_context(extensions: ExtensionSet, context: KeyMaterialContext) -> None:
    """update() with the key material of ``context``."""
    update(
        extensions,
        context.subject_public_key,
        context.issuer_public_key,
        context.issuer_name,
        context.issuer_serial_number,
    )
