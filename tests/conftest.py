"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes
from cryptography.x509.oid import NameOID

from cert_ext.ext_codecs import codec_for
from cert_ext.ext_set import ExtensionSet, wrap_extension_value
from cert_ext.ext_types import ExtensionKind
from cert_ext.ext_values import BasicConstraints, GeneralName, GeneralNames, KeyUsage, KeyUsagePurpose
from cert_ext.key_material import KeyMaterialContext


def generate_public_key(key_type: str) -> PublicKeyTypes:
    """Generate a fresh key pair and return its public half."""
    if key_type == "ed25519":
        return ed25519.Ed25519PrivateKey.generate().public_key()
    if key_type == "ecdsa":
        return ec.generate_private_key(ec.SECP256R1()).public_key()
    if key_type == "rsa":
        return rsa.generate_private_key(public_exponent=65537, key_size=2048).public_key()
    raise ValueError(f"Unknown key type: {key_type}")


def common_name(cn: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def three_letter_country_name() -> bytes:
    """DER of C=USA, CN=Example: well formed, but refused by x509.NameAttribute."""
    return asn1_x509.Name.build({'country_name': 'USA', 'common_name': 'Example'}).dump()


def encoded(kind: ExtensionKind, value, context: KeyMaterialContext | None = None) -> bytes:
    """Wrapped extension value, as stored in an ExtensionSet."""
    return wrap_extension_value(codec_for(kind).encode(value, context))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(params=["ed25519", "ecdsa", "rsa"])
def key_type(request: pytest.FixtureRequest) -> str:
    """Parametrized fixture for the key types key identifiers are derived from."""
    return request.param


@pytest.fixture
def subject_key() -> PublicKeyTypes:
    return generate_public_key("ed25519")


@pytest.fixture
def issuer_key() -> PublicKeyTypes:
    return generate_public_key("ed25519")


@pytest.fixture
def issuer_name() -> x509.Name:
    return common_name("TestIntCA")


@pytest.fixture
def context(subject_key: PublicKeyTypes, issuer_key: PublicKeyTypes, issuer_name: x509.Name) -> KeyMaterialContext:
    """Key material of a leaf issued by an intermediate CA."""
    return KeyMaterialContext(
        issuer_public_key=issuer_key,
        issuer_name=issuer_name,
        issuer_serial_number=4242,
        subject_public_key=subject_key,
        subject_name=common_name("www.example.com"),
    )


@pytest.fixture
def populated_set() -> ExtensionSet:
    """A set with a critical basic constraints, a key usage and a subject alternative name."""
    extensions = ExtensionSet()
    extensions.add_extension(
        ExtensionKind.BASIC_CONSTRAINTS.oid,
        True,
        encoded(ExtensionKind.BASIC_CONSTRAINTS, BasicConstraints(ca=True, path_length=1)),
    )
    extensions.add_extension(
        ExtensionKind.KEY_USAGE.oid,
        True,
        encoded(ExtensionKind.KEY_USAGE, KeyUsage(frozenset({KeyUsagePurpose.KEY_CERT_SIGN}))),
    )
    extensions.add_extension(
        ExtensionKind.SUBJECT_ALTERNATIVE_NAME.oid,
        False,
        encoded(ExtensionKind.SUBJECT_ALTERNATIVE_NAME, GeneralNames((GeneralName.dns("www.example.com"),))),
    )
    return extensions
