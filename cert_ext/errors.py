"""Exceptions and warnings raised by the extension core."""

from __future__ import annotations


class CertExtError(Exception):
    """Base class for all errors raised by cert_ext."""


class DecodeError(CertExtError, ValueError):
    """Octets do not match the ASN.1 structure of the claimed extension kind."""


class TemplateLoadError(CertExtError, ValueError):
    """A byte buffer is not a DER encoded X.509 Extensions SEQUENCE."""


class ExtensionValidationError(CertExtError, ValueError):
    """A structured extension value is rejected before it is encoded."""


class EmptyAlternativeNameWarning(UserWarning):
    """A subject alternative name extension is present but carries no usable name."""
