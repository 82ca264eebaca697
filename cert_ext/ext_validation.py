"""
Checks applied by the editing layer before a value reaches its codec.

Codecs encode whatever structurally valid value they are given; everything
that would make an encoding invalid (negative lengths, malformed OIDs, wrong
address sizes) is rejected here with ExtensionValidationError.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from asn1crypto import core
from asn1crypto import x509 as asn1_x509
from cryptography import x509

from cert_ext.errors import ExtensionValidationError
from cert_ext.ext_codecs import codec_for
from cert_ext.ext_set import ExtensionSet, unwrap_extension_value
from cert_ext.ext_types import ExtensionKind, is_valid_oid
from cert_ext.ext_values import (
    ANY_POLICY,
    DISPLAY_TEXT_TYPES,
    AuthorityKeyIdentifier,
    BasicConstraints,
    CertificatePolicies,
    CpsUri,
    CrlDistributionPoints,
    ExtendedKeyUsage,
    ExtensionValue,
    GeneralName,
    GeneralNames,
    GeneralNameType,
    InformationAccess,
    InhibitAnyPolicy,
    KeyUsage,
    NameConstraints,
    OtherName,
    OtherQualifier,
    PolicyConstraints,
    PolicyMappings,
    PrivateKeyUsagePeriod,
    SubjectKeyIdentifier,
    UserNotice,
)
from cert_ext.key_material import KeyMaterialContext


def _fail(kind: ExtensionKind, message: str) -> None:
    raise ExtensionValidationError(f"{kind.friendly_name}: {message}")


def _check_oid(kind: ExtensionKind, oid: str, what: str) -> None:
    if not is_valid_oid(oid):
        _fail(kind, f"{what} {oid!r} is not a valid object identifier")


def _check_non_negative(kind: ExtensionKind, number: int | None, what: str) -> None:
    if number is not None and (not isinstance(number, int) or number < 0):
        _fail(kind, f"{what} must be a non-negative integer")


def _check_ia5(kind: ExtensionKind, text: str, what: str) -> None:
    if not isinstance(text, str) or not text.isascii():
        _fail(kind, f"{what} must be ASCII text")


def _check_der(kind: ExtensionKind, asn1_type, der: bytes, what: str) -> None:
    try:
        asn1_type.load(der, strict=True).native
    except (ValueError, TypeError):
        _fail(kind, f"{what} is not valid DER")


def check_general_name(kind: ExtensionKind, name: GeneralName, allow_netmask: bool = False) -> None:
    """Validate one general name against the syntax of its type."""
    if name.type in (GeneralNameType.RFC822_NAME, GeneralNameType.DNS_NAME, GeneralNameType.URI):
        _check_ia5(kind, name.value, name.type.name)
    elif name.type is GeneralNameType.IP_ADDRESS:
        sizes = (4, 16, 8, 32) if allow_netmask else (4, 16)
        if not isinstance(name.value, bytes) or len(name.value) not in sizes:
            _fail(kind, f"IP address must be {' or '.join(map(str, sizes))} bytes")
    elif name.type is GeneralNameType.DIRECTORY_NAME:
        if isinstance(name.value, bytes):
            _check_der(kind, asn1_x509.Name, name.value, "directory name")
        elif not isinstance(name.value, x509.Name):
            _fail(kind, "directory name must be an x509.Name or its DER")
    elif name.type is GeneralNameType.REGISTERED_ID:
        _check_oid(kind, name.value, "registered ID")
    elif name.type is GeneralNameType.OTHER_NAME:
        if not isinstance(name.value, OtherName):
            _fail(kind, "other name must be an OtherName")
        _check_oid(kind, name.value.type_id, "other name type")
        try:
            core.load(name.value.value, strict=True)
        except (ValueError, TypeError):
            _fail(kind, "other name value must be a single DER element")


def _check_general_names(kind: ExtensionKind, names: Iterable[GeneralName]) -> None:
    for name in names:
        check_general_name(kind, name)


def _check_basic_constraints(kind, value: BasicConstraints) -> None:
    _check_non_negative(kind, value.path_length, "path length constraint")
    if value.path_length is not None and not value.ca:
        _fail(kind, "a path length constraint requires CA")


def _check_key_usage(kind, value: KeyUsage) -> None:
    if not value.purposes:
        _fail(kind, "select at least one key usage")


def _check_extended_key_usage(kind, value: ExtendedKeyUsage) -> None:
    if not value.purposes:
        _fail(kind, "select at least one key purpose")
    for purpose in value.purposes:
        _check_oid(kind, purpose, "key purpose")


def _check_alternative_name(kind, value: GeneralNames) -> None:
    _check_general_names(kind, value.names)


def _check_authority_key_identifier(kind, value: AuthorityKeyIdentifier) -> None:
    if (value.authority_cert_issuer is None) != (value.authority_cert_serial_number is None):
        _fail(kind, "issuer and serial number must be given together")
    if value.authority_cert_issuer is not None:
        _check_general_names(kind, value.authority_cert_issuer)
    _check_non_negative(kind, value.authority_cert_serial_number, "serial number")


def _check_subject_key_identifier(kind, value: SubjectKeyIdentifier) -> None:
    if value.key_identifier is not None and not value.key_identifier:
        _fail(kind, "key identifier must not be empty")


def _check_private_key_usage_period(kind, value: PrivateKeyUsagePeriod) -> None:
    if value.not_before is None and value.not_after is None:
        _fail(kind, "give a not before or a not after date")
    for moment in (value.not_before, value.not_after):
        if moment is None:
            continue
        if not isinstance(moment, datetime) or moment.tzinfo is None:
            _fail(kind, "dates must be timezone aware datetimes")
        if moment.microsecond:
            _fail(kind, "dates must not have fractional seconds")
    if value.not_before and value.not_after and value.not_after < value.not_before:
        _fail(kind, "not after is earlier than not before")


def _check_name_constraints(kind, value: NameConstraints) -> None:
    if not value.permitted and not value.excluded:
        _fail(kind, "give at least one permitted or excluded subtree")
    for subtree in value.permitted + value.excluded:
        check_general_name(kind, subtree.base, allow_netmask=True)
        _check_non_negative(kind, subtree.minimum, "minimum")
        _check_non_negative(kind, subtree.maximum, "maximum")
        if subtree.maximum is not None and subtree.maximum < subtree.minimum:
            _fail(kind, "maximum is smaller than minimum")


def _check_crl_distribution_points(kind, value: CrlDistributionPoints) -> None:
    if not value.points:
        _fail(kind, "give at least one distribution point")
    for point in value.points:
        if point.full_name is not None and point.relative_name is not None:
            _fail(kind, "a distribution point has a full name or a relative name, not both")
        if point.full_name is None and point.relative_name is None and point.crl_issuer is None:
            _fail(kind, "a distribution point needs a name or a CRL issuer")
        if isinstance(point.relative_name, bytes):
            _check_der(kind, asn1_x509.RelativeDistinguishedName, point.relative_name, "relative name")
        for names in (point.full_name, point.crl_issuer):
            if names is not None:
                _check_general_names(kind, names)


def _check_display_text(kind, text: str, text_type: str, what: str) -> None:
    if text_type not in DISPLAY_TEXT_TYPES:
        _fail(kind, f"{what} type must be one of {', '.join(DISPLAY_TEXT_TYPES)}")
    if not isinstance(text, str):
        _fail(kind, f"{what} must be text")
    if text_type in ("ia5_string", "visible_string"):
        _check_ia5(kind, text, what)
    elif text_type == "bmp_string" and any(ord(c) > 0xFFFF for c in text):
        _fail(kind, f"{what} has characters outside the Basic Multilingual Plane")


def _check_user_notice(kind, notice: UserNotice) -> None:
    if notice.notice_numbers and notice.organization is None:
        _fail(kind, "notice numbers need an organization")
    for number in notice.notice_numbers:
        _check_non_negative(kind, number, "notice number")
    if notice.organization is not None:
        _check_display_text(kind, notice.organization, notice.organization_type, "organization")
    if notice.explicit_text is not None:
        _check_display_text(kind, notice.explicit_text, notice.explicit_text_type, "explicit text")


def _check_certificate_policies(kind, value: CertificatePolicies) -> None:
    if not value.policies:
        _fail(kind, "give at least one policy")
    for policy in value.policies:
        _check_oid(kind, policy.policy_identifier, "policy identifier")
        for qualifier in policy.qualifiers:
            if isinstance(qualifier, CpsUri):
                _check_ia5(kind, qualifier.uri, "CPS URI")
            elif isinstance(qualifier, UserNotice):
                _check_user_notice(kind, qualifier)
            elif isinstance(qualifier, OtherQualifier):
                _check_oid(kind, qualifier.qualifier_id, "policy qualifier")
                try:
                    core.load(qualifier.value, strict=True)
                except (ValueError, TypeError):
                    _fail(kind, "policy qualifier value must be a single DER element")
            else:
                _fail(kind, f"unsupported policy qualifier {type(qualifier).__name__}")


def _check_policy_mappings(kind, value: PolicyMappings) -> None:
    if not value.mappings:
        _fail(kind, "give at least one policy mapping")
    for mapping in value.mappings:
        _check_oid(kind, mapping.issuer_domain_policy, "issuer domain policy")
        _check_oid(kind, mapping.subject_domain_policy, "subject domain policy")
        if ANY_POLICY in (mapping.issuer_domain_policy, mapping.subject_domain_policy):
            _fail(kind, "anyPolicy cannot be mapped")


def _check_policy_constraints(kind, value: PolicyConstraints) -> None:
    if value.require_explicit_policy is None and value.inhibit_policy_mapping is None:
        _fail(kind, "give require explicit policy or inhibit policy mapping")
    _check_non_negative(kind, value.require_explicit_policy, "require explicit policy")
    _check_non_negative(kind, value.inhibit_policy_mapping, "inhibit policy mapping")


def _check_inhibit_any_policy(kind, value: InhibitAnyPolicy) -> None:
    _check_non_negative(kind, value.skip_certs, "skip certs")


def _check_information_access(kind, value: InformationAccess) -> None:
    if not value.descriptions:
        _fail(kind, "give at least one access description")
    for description in value.descriptions:
        _check_oid(kind, description.access_method, "access method")
        check_general_name(kind, description.access_location)


_CHECKS = {
    ExtensionKind.AUTHORITY_INFORMATION_ACCESS: _check_information_access,
    ExtensionKind.AUTHORITY_KEY_IDENTIFIER: _check_authority_key_identifier,
    ExtensionKind.BASIC_CONSTRAINTS: _check_basic_constraints,
    ExtensionKind.CERTIFICATE_POLICIES: _check_certificate_policies,
    ExtensionKind.CRL_DISTRIBUTION_POINTS: _check_crl_distribution_points,
    ExtensionKind.EXTENDED_KEY_USAGE: _check_extended_key_usage,
    ExtensionKind.INHIBIT_ANY_POLICY: _check_inhibit_any_policy,
    ExtensionKind.ISSUER_ALTERNATIVE_NAME: _check_alternative_name,
    ExtensionKind.KEY_USAGE: _check_key_usage,
    ExtensionKind.NAME_CONSTRAINTS: _check_name_constraints,
    ExtensionKind.POLICY_CONSTRAINTS: _check_policy_constraints,
    ExtensionKind.POLICY_MAPPINGS: _check_policy_mappings,
    ExtensionKind.PRIVATE_KEY_USAGE_PERIOD: _check_private_key_usage_period,
    ExtensionKind.SUBJECT_ALTERNATIVE_NAME: _check_alternative_name,
    ExtensionKind.SUBJECT_INFORMATION_ACCESS: _check_information_access,
    ExtensionKind.SUBJECT_KEY_IDENTIFIER: _check_subject_key_identifier,
}


def validate_value(
    kind: ExtensionKind,
    value: ExtensionValue,
    context: KeyMaterialContext | None = None,
) -> None:
    """
    Raise ExtensionValidationError unless ``value`` can be encoded as ``kind``
    with the key material of ``context``.
    """
    value_type = codec_for(kind).value_type
    if not isinstance(value, value_type):
        _fail(kind, f"expected {value_type.__name__}, got {type(value).__name__}")
    _CHECKS[kind](kind, value)
    if kind is ExtensionKind.SUBJECT_KEY_IDENTIFIER and value.key_identifier is None:
        if context is None or context.subject_public_key is None:
            _fail(kind, "give a key identifier or a subject public key")


def is_general_name_empty(name: GeneralName) -> bool:
    """True for a name with nothing in it: empty text, address, OID or directory name."""
    if name.type is GeneralNameType.DIRECTORY_NAME:
        if isinstance(name.value, bytes):
            return len(asn1_x509.Name.load(name.value).chosen) == 0
        return len(name.value) == 0
    if name.type is GeneralNameType.OTHER_NAME:
        return not name.value.type_id or not name.value.value
    return not name.value


def is_alternative_name_empty(extensions: ExtensionSet) -> bool:
    """
    True when a Subject Alternative Name extension is present but vacuous.

    An absent extension is not empty. A present one is empty when it has no
    names or any name in it is empty. Raises DecodeError for a malformed value.
    """
    value = extensions.get_extension_value(ExtensionKind.SUBJECT_ALTERNATIVE_NAME.oid)
    if value is None:
        return False
    names = codec_for(ExtensionKind.SUBJECT_ALTERNATIVE_NAME).decode(unwrap_extension_value(value))
    if not names.names:
        return True
    return any(is_general_name_empty(name) for name in names.names)
