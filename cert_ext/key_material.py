"""Issuer and subject key material that derived extensions are computed from."""

from __future__ import annotations

from dataclasses import dataclass

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes


@dataclass(frozen=True)
class KeyMaterialContext:
    """
    Keys and names of the certificate being issued and of its issuer.

    Every field is optional; anything derived from a missing field is left
    alone. For a self-signed certificate pass the same key as subject and issuer.
    """

    issuer_public_key: PublicKeyTypes | None = None
    issuer_name: x509.Name | None = None
    issuer_serial_number: int | None = None
    subject_public_key: PublicKeyTypes | None = None
    subject_name: x509.Name | None = None


def key_identifier(public_key: PublicKeyTypes) -> bytes:
    """
    160-bit key identifier of a public key.

    SHA-1 over the subjectPublicKey BIT STRING, method (1) of RFC 5280 4.2.1.2.
    """
    return x509.SubjectKeyIdentifier.from_public_key(public_key).digest
