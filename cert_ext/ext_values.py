"""
Structured values of the supported extension kinds.

These are what a codec decodes to and encodes from. They are frozen so a value
handed to an editor can be compared and hashed, and sequences are tuples.
OIDs are dotted strings, directory names are cryptography x509.Name objects,
or the DER of the name when x509.Name cannot hold its attributes.
"""

from __future__ import annotations

import enum
import ipaddress
from dataclasses import dataclass
from datetime import datetime
from typing import Union

from asn1crypto import x509 as asn1_x509
from cryptography import x509


class GeneralNameType(enum.Enum):
    """GeneralName alternatives supported by the editor (RFC 5280 4.2.1.6)."""

    OTHER_NAME = "other_name"
    RFC822_NAME = "rfc822_name"
    DNS_NAME = "dns_name"
    DIRECTORY_NAME = "directory_name"
    URI = "uniform_resource_identifier"
    IP_ADDRESS = "ip_address"
    REGISTERED_ID = "registered_id"


@dataclass(frozen=True)
class OtherName:
    """An otherName: a type OID and the DER encoding of its value."""

    type_id: str
    value: bytes


@dataclass(frozen=True)
class GeneralName:
    """
    A single general name.

    ``value`` depends on ``type``:
        RFC822_NAME, DNS_NAME, URI - str
        DIRECTORY_NAME             - cryptography x509.Name, or DER bytes of a Name
        IP_ADDRESS                 - raw address bytes (4 or 16, doubled with a netmask)
        REGISTERED_ID              - dotted OID str
        OTHER_NAME                 - OtherName
    """

    type: GeneralNameType
    value: Union[str, bytes, x509.Name, OtherName]

    # DER directory names appear when an attribute value is not a string, or
    # breaks a rule of x509.NameAttribute such as the two letter country code.

    @classmethod
    def rfc822(cls, address: str) -> "GeneralName":
        return cls(GeneralNameType.RFC822_NAME, address)

    @classmethod
    def dns(cls, name: str) -> "GeneralName":
        return cls(GeneralNameType.DNS_NAME, name)

    @classmethod
    def uri(cls, uri: str) -> "GeneralName":
        return cls(GeneralNameType.URI, uri)

    @classmethod
    def directory(cls, name: x509.Name | bytes) -> "GeneralName":
        return cls(GeneralNameType.DIRECTORY_NAME, name)

    @classmethod
    def ip(cls, address: str) -> "GeneralName":
        """Build an IP address name from its text form, e.g. ``10.0.0.1`` or ``10.0.0.0/8``."""
        if "/" in address:
            network = ipaddress.ip_network(address, strict=False)
            packed = network.network_address.packed + network.netmask.packed
        else:
            packed = ipaddress.ip_address(address).packed
        return cls(GeneralNameType.IP_ADDRESS, packed)

    @classmethod
    def registered_id(cls, oid: str) -> "GeneralName":
        return cls(GeneralNameType.REGISTERED_ID, oid)

    @classmethod
    def other(cls, type_id: str, value: bytes) -> "GeneralName":
        return cls(GeneralNameType.OTHER_NAME, OtherName(type_id, value))

    def __str__(self) -> str:
        if self.type is GeneralNameType.DIRECTORY_NAME:
            if isinstance(self.value, bytes):
                return f"DirName:{asn1_x509.Name.load(self.value).human_friendly}"
            return f"DirName:{self.value.rfc4514_string()}"
        if self.type is GeneralNameType.IP_ADDRESS:
            return f"IP:{format_ip_address(self.value)}"
        if self.type is GeneralNameType.OTHER_NAME:
            return f"othername:{self.value.type_id}:{self.value.value.hex()}"
        prefix = {
            GeneralNameType.RFC822_NAME: "email",
            GeneralNameType.DNS_NAME: "DNS",
            GeneralNameType.URI: "URI",
            GeneralNameType.REGISTERED_ID: "RID",
        }[self.type]
        return f"{prefix}:{self.value}"


def format_ip_address(packed: bytes) -> str:
    """Text form of a packed address, or address/prefix when a netmask is appended."""
    if len(packed) in (4, 16):
        return str(ipaddress.ip_address(packed))
    if len(packed) in (8, 32):
        half = len(packed) // 2
        address = ipaddress.ip_address(packed[:half])
        netmask = ipaddress.ip_address(packed[half:])
        try:
            return str(ipaddress.ip_network(f"{address}/{netmask}", strict=False))
        except ValueError:
            return f"{address}/{netmask}"
    return packed.hex()


class KeyUsagePurpose(enum.Enum):
    """The nine named bits of the KeyUsage BIT STRING."""

    DIGITAL_SIGNATURE = "digital_signature"
    NON_REPUDIATION = "non_repudiation"
    KEY_ENCIPHERMENT = "key_encipherment"
    DATA_ENCIPHERMENT = "data_encipherment"
    KEY_AGREEMENT = "key_agreement"
    KEY_CERT_SIGN = "key_cert_sign"
    CRL_SIGN = "crl_sign"
    ENCIPHER_ONLY = "encipher_only"
    DECIPHER_ONLY = "decipher_only"


class ReasonFlag(enum.Enum):
    """Named bits of the CRL distribution point ReasonFlags BIT STRING."""

    UNUSED = "unused"
    KEY_COMPROMISE = "key_compromise"
    CA_COMPROMISE = "ca_compromise"
    AFFILIATION_CHANGED = "affiliation_changed"
    SUPERSEDED = "superseded"
    CESSATION_OF_OPERATION = "cessation_of_operation"
    CERTIFICATE_HOLD = "certificate_hold"
    PRIVILEGE_WITHDRAWN = "privilege_withdrawn"
    AA_COMPROMISE = "aa_compromise"


@dataclass(frozen=True)
class BasicConstraints:
    ca: bool = False
    path_length: int | None = None


@dataclass(frozen=True)
class KeyUsage:
    purposes: frozenset[KeyUsagePurpose] = frozenset()

    def __contains__(self, purpose: KeyUsagePurpose) -> bool:
        return purpose in self.purposes


@dataclass(frozen=True)
class ExtendedKeyUsage:
    purposes: tuple[str, ...] = ()


@dataclass(frozen=True)
class GeneralNames:
    """Value of the subject and issuer alternative name extensions."""

    names: tuple[GeneralName, ...] = ()

    def __iter__(self):
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)


@dataclass(frozen=True)
class AuthorityKeyIdentifier:
    """
    A None ``key_identifier`` is derived from the issuer public key at encode
    time when one is available.
    """

    key_identifier: bytes | None = None
    authority_cert_issuer: tuple[GeneralName, ...] | None = None
    authority_cert_serial_number: int | None = None


@dataclass(frozen=True)
class SubjectKeyIdentifier:
    """A None ``key_identifier`` is derived from the subject public key at encode time."""

    key_identifier: bytes | None = None


@dataclass(frozen=True)
class PrivateKeyUsagePeriod:
    not_before: datetime | None = None
    not_after: datetime | None = None


@dataclass(frozen=True)
class GeneralSubtree:
    base: GeneralName
    minimum: int = 0
    maximum: int | None = None


@dataclass(frozen=True)
class NameConstraints:
    permitted: tuple[GeneralSubtree, ...] = ()
    excluded: tuple[GeneralSubtree, ...] = ()


@dataclass(frozen=True)
class DistributionPoint:
    full_name: tuple[GeneralName, ...] | None = None
    relative_name: x509.RelativeDistinguishedName | bytes | None = None
    reasons: frozenset[ReasonFlag] | None = None
    crl_issuer: tuple[GeneralName, ...] | None = None


@dataclass(frozen=True)
class CrlDistributionPoints:
    points: tuple[DistributionPoint, ...] = ()


@dataclass(frozen=True)
class CpsUri:
    uri: str


DISPLAY_TEXT_TYPES = ("ia5_string", "visible_string", "bmp_string", "utf8_string")


@dataclass(frozen=True)
class UserNotice:
    """
    The ``*_type`` fields name the DisplayText string type each text is
    encoded as, one of DISPLAY_TEXT_TYPES.
    """

    organization: str | None = None
    notice_numbers: tuple[int, ...] = ()
    explicit_text: str | None = None
    organization_type: str = "utf8_string"
    explicit_text_type: str = "utf8_string"


@dataclass(frozen=True)
class OtherQualifier:
    """A policy qualifier of any other type: its OID and the DER of its value, as found."""

    qualifier_id: str
    value: bytes


PolicyQualifier = Union[CpsUri, UserNotice, OtherQualifier]


@dataclass(frozen=True)
class PolicyInformation:
    policy_identifier: str
    qualifiers: tuple[PolicyQualifier, ...] = ()


@dataclass(frozen=True)
class CertificatePolicies:
    policies: tuple[PolicyInformation, ...] = ()


@dataclass(frozen=True)
class PolicyMapping:
    issuer_domain_policy: str
    subject_domain_policy: str


@dataclass(frozen=True)
class PolicyMappings:
    mappings: tuple[PolicyMapping, ...] = ()


@dataclass(frozen=True)
class PolicyConstraints:
    require_explicit_policy: int | None = None
    inhibit_policy_mapping: int | None = None


@dataclass(frozen=True)
class InhibitAnyPolicy:
    skip_certs: int = 0


@dataclass(frozen=True)
class AccessDescription:
    access_method: str
    access_location: GeneralName


@dataclass(frozen=True)
class InformationAccess:
    """Value of the authority and subject information access extensions."""

    descriptions: tuple[AccessDescription, ...] = ()


ExtensionValue = Union[
    BasicConstraints,
    KeyUsage,
    ExtendedKeyUsage,
    GeneralNames,
    AuthorityKeyIdentifier,
    SubjectKeyIdentifier,
    PrivateKeyUsagePeriod,
    NameConstraints,
    CrlDistributionPoints,
    CertificatePolicies,
    PolicyMappings,
    PolicyConstraints,
    InhibitAnyPolicy,
    InformationAccess,
]

ANY_POLICY = "2.5.29.32.0"
CPS_QUALIFIER = "1.3.6.1.5.5.7.2.1"
USER_NOTICE_QUALIFIER = "1.3.6.1.5.5.7.2.2"
