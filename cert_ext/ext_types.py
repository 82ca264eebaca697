"""Registry of the X.509v3 extension kinds the editor understands."""

from __future__ import annotations

import enum
from types import MappingProxyType
from typing import Mapping


class ExtensionKind(enum.Enum):
    """
    Closed set of supported extension kinds.

    Each member carries its canonical OID and a display name. The codec for a
    kind is looked up with cert_ext.ext_codecs.codec_for.
    """

    AUTHORITY_INFORMATION_ACCESS = ("1.3.6.1.5.5.7.1.1", "Authority Information Access")
    AUTHORITY_KEY_IDENTIFIER = ("2.5.29.35", "Authority Key Identifier")
    BASIC_CONSTRAINTS = ("2.5.29.19", "Basic Constraints")
    CERTIFICATE_POLICIES = ("2.5.29.32", "Certificate Policies")
    CRL_DISTRIBUTION_POINTS = ("2.5.29.31", "CRL Distribution Points")
    EXTENDED_KEY_USAGE = ("2.5.29.37", "Extended Key Usage")
    INHIBIT_ANY_POLICY = ("2.5.29.54", "Inhibit Any Policy")
    ISSUER_ALTERNATIVE_NAME = ("2.5.29.18", "Issuer Alternative Name")
    KEY_USAGE = ("2.5.29.15", "Key Usage")
    NAME_CONSTRAINTS = ("2.5.29.30", "Name Constraints")
    POLICY_CONSTRAINTS = ("2.5.29.36", "Policy Constraints")
    POLICY_MAPPINGS = ("2.5.29.33", "Policy Mappings")
    PRIVATE_KEY_USAGE_PERIOD = ("2.5.29.16", "Private Key Usage Period")
    SUBJECT_ALTERNATIVE_NAME = ("2.5.29.17", "Subject Alternative Name")
    SUBJECT_INFORMATION_ACCESS = ("1.3.6.1.5.5.7.1.11", "Subject Information Access")
    SUBJECT_KEY_IDENTIFIER = ("2.5.29.14", "Subject Key Identifier")

    @property
    def oid(self) -> str:
        return self.value[0]

    @property
    def friendly_name(self) -> str:
        return self.value[1]

    def __str__(self) -> str:
        return self.friendly_name


_KINDS_BY_OID: Mapping[str, ExtensionKind] = MappingProxyType(
    {kind.oid: kind for kind in ExtensionKind}
)


def parse_oid(oid: str) -> tuple[int, ...] | None:
    """
    Split a dotted OID into its arcs.

    Returns None for anything that is not a dotted sequence of non-negative
    decimal integers.
    """
    if not isinstance(oid, str) or not oid:
        return None
    arcs = oid.split(".")
    if not all(arc.isdigit() and arc.isascii() for arc in arcs):
        return None
    return tuple(int(arc) for arc in arcs)


def is_valid_oid(oid: str) -> bool:
    """True for an OID that can be DER encoded (two arcs at least, X.660 first arc rules)."""
    arcs = parse_oid(oid)
    if arcs is None or len(arcs) < 2:
        return False
    if arcs[0] > 2:
        return False
    return arcs[0] == 2 or arcs[1] < 40


def resolve(oid: str) -> ExtensionKind | None:
    """Return the kind registered for ``oid``, or None when it is unknown or malformed."""
    if parse_oid(oid) is None:
        return None
    return _KINDS_BY_OID.get(oid)


def display_name(oid: str) -> str:
    """Human readable name of an extension, falling back to the raw OID."""
    kind = resolve(oid)
    return kind.friendly_name if kind is not None else oid


def oid_sort_key(oid: str) -> tuple:
    """
    Sort key giving the canonical extension order.

    Well-formed OIDs compare arc by arc as integers, a shorter OID sorting
    first on a shared prefix. Malformed OIDs sort after all well-formed ones,
    lexically among themselves.
    """
    arcs = parse_oid(oid)
    if arcs is None:
        return (1, (), oid)
    return (0, arcs, "")


def compare_oids(oid_a: str, oid_b: str) -> int:
    """Three-way comparison in canonical order: -1, 0 or 1."""
    key_a, key_b = oid_sort_key(oid_a), oid_sort_key(oid_b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0
