"""
DER codecs for the supported extension kinds.

Every codec converts between a structured value from cert_ext.ext_values and
the kind-specific DER encoding, i.e. the octets found *inside* the extnValue
OCTET STRING. Wrapping into that OCTET STRING is done by cert_ext.ext_set.

Codecs hold no state. One instance per kind is created at import time and
handed out by codec_for().
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from asn1crypto import core
from asn1crypto import x509 as asn1_x509
from cryptography import x509

from cert_ext import asn1_types
from cert_ext.errors import DecodeError
from cert_ext.ext_types import ExtensionKind
from cert_ext.ext_values import (
    CPS_QUALIFIER,
    USER_NOTICE_QUALIFIER,
    AccessDescription,
    AuthorityKeyIdentifier,
    BasicConstraints,
    CertificatePolicies,
    CpsUri,
    CrlDistributionPoints,
    DistributionPoint,
    ExtendedKeyUsage,
    ExtensionValue,
    GeneralName,
    GeneralNames,
    GeneralNameType,
    GeneralSubtree,
    InformationAccess,
    InhibitAnyPolicy,
    KeyUsage,
    KeyUsagePurpose,
    NameConstraints,
    OtherName,
    OtherQualifier,
    PolicyConstraints,
    PolicyInformation,
    PolicyMapping,
    PolicyMappings,
    PolicyQualifier,
    PrivateKeyUsagePeriod,
    ReasonFlag,
    SubjectKeyIdentifier,
    UserNotice,
)
from cert_ext.key_material import KeyMaterialContext, key_identifier


# General names, shared by most codecs

def name_to_asn1(name: x509.Name | bytes) -> asn1_x509.Name:
    if isinstance(name, bytes):
        return asn1_x509.Name.load(name)
    return asn1_x509.Name.load(name.public_bytes())


def _attributes_from_asn1(rdn: asn1_x509.RelativeDistinguishedName) -> list[x509.NameAttribute]:
    attributes = []
    for type_and_value in rdn:
        value = type_and_value['value'].native
        if not isinstance(value, str):
            raise ValueError(f"Attribute {type_and_value['type'].dotted} is not a directory string")
        attributes.append(
            x509.NameAttribute(x509.ObjectIdentifier(type_and_value['type'].dotted), value)
        )
    return attributes


def name_from_asn1(name: asn1_x509.Name) -> x509.Name | bytes:
    """
    The name as an x509.Name, or its DER when some attribute cannot be an
    x509.NameAttribute.
    """
    try:
        return x509.Name([
            x509.RelativeDistinguishedName(_attributes_from_asn1(rdn)) for rdn in name.chosen
        ])
    except ValueError:
        # the RDNSequence carries no tag of its own, so this is the Name DER
        return name.chosen.dump()


def relative_name_to_asn1(rdn: x509.RelativeDistinguishedName | bytes) -> asn1_x509.RelativeDistinguishedName:
    if isinstance(rdn, bytes):
        return asn1_x509.RelativeDistinguishedName.load(rdn)
    return name_to_asn1(x509.Name([rdn])).chosen[0]


def relative_name_from_asn1(
    rdn: asn1_x509.RelativeDistinguishedName,
) -> x509.RelativeDistinguishedName | bytes:
    try:
        return x509.RelativeDistinguishedName(_attributes_from_asn1(rdn))
    except ValueError:
        return rdn.untag().dump()


def general_name_to_asn1(name: GeneralName) -> asn1_types.GeneralName:
    if name.type is GeneralNameType.DIRECTORY_NAME:
        value: Any = name_to_asn1(name.value)
    elif name.type is GeneralNameType.OTHER_NAME:
        value = asn1_types.OtherName({
            'type_id': name.value.type_id,
            'value': asn1_types.OtherNameValue({'value': core.Any(core.load(name.value.value))}),
        })
    else:
        value = name.value
    return asn1_types.GeneralName(name=name.type.value, value=value)


def general_name_from_asn1(name: asn1_types.GeneralName) -> GeneralName:
    name_type = GeneralNameType(name.name)
    chosen = name.chosen
    if name_type is GeneralNameType.DIRECTORY_NAME:
        return GeneralName(name_type, name_from_asn1(chosen))
    if name_type is GeneralNameType.OTHER_NAME:
        inner = chosen['value'].contents
        # must be exactly one DER element
        core.load(inner, strict=True)
        return GeneralName(name_type, OtherName(chosen['type_id'].dotted, inner))
    if name_type is GeneralNameType.REGISTERED_ID:
        return GeneralName(name_type, chosen.dotted)
    return GeneralName(name_type, chosen.native)


def general_names_to_asn1(names: tuple[GeneralName, ...]) -> asn1_types.GeneralNames:
    return asn1_types.GeneralNames([general_name_to_asn1(name) for name in names])


def general_names_from_asn1(names: asn1_types.GeneralNames) -> tuple[GeneralName, ...]:
    return tuple(general_name_from_asn1(name) for name in names)


def _is_absent(value: core.Asn1Value) -> bool:
    return isinstance(value, core.Void)


class ExtensionCodec:
    """
    Encode/decode strategy for one extension kind.

    Subclasses set ``kind``, ``value_type`` and ``asn1_spec`` and implement
    _to_asn1 / _from_asn1. encode() and decode() are pure.
    """

    kind: ExtensionKind
    value_type: type
    asn1_spec: type[core.Asn1Value]

    def encode(self, value: ExtensionValue, context: KeyMaterialContext | None = None) -> bytes:
        """Return the DER encoding of ``value``."""
        if not isinstance(value, self.value_type):
            raise TypeError(
                f"{self.kind.friendly_name} expects {self.value_type.__name__}, "
                f"not {type(value).__name__}"
            )
        return self._to_asn1(value, context).dump()

    def decode(self, der: bytes) -> ExtensionValue:
        """Parse ``der``; raise DecodeError when it is not a valid value of this kind."""
        try:
            parsed = self.asn1_spec.load(der, strict=True)
            return self._from_asn1(parsed)
        except DecodeError:
            raise
        except (ValueError, TypeError, KeyError) as e:
            raise DecodeError(f"Invalid {self.kind.friendly_name} extension value: {e}") from e

    def _to_asn1(self, value: Any, context: KeyMaterialContext | None) -> core.Asn1Value:
        raise NotImplementedError

    def _from_asn1(self, parsed: Any) -> ExtensionValue:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.kind.name}>"


class BasicConstraintsCodec(ExtensionCodec):
    kind = ExtensionKind.BASIC_CONSTRAINTS
    value_type = BasicConstraints
    asn1_spec = asn1_types.BasicConstraints

    def _to_asn1(self, value: BasicConstraints, context):
        fields: dict[str, Any] = {'ca': value.ca}
        if value.path_length is not None:
            fields['path_len_constraint'] = value.path_length
        return asn1_types.BasicConstraints(fields)

    def _from_asn1(self, parsed):
        return BasicConstraints(
            ca=bool(parsed['ca'].native),
            path_length=parsed['path_len_constraint'].native,
        )


class KeyUsageCodec(ExtensionCodec):
    kind = ExtensionKind.KEY_USAGE
    value_type = KeyUsage
    asn1_spec = asn1_types.KeyUsage

    def _to_asn1(self, value: KeyUsage, context):
        return asn1_types.KeyUsage({purpose.value for purpose in value.purposes})

    def _from_asn1(self, parsed):
        return KeyUsage(frozenset(KeyUsagePurpose(name) for name in parsed.native))


class ExtendedKeyUsageCodec(ExtensionCodec):
    kind = ExtensionKind.EXTENDED_KEY_USAGE
    value_type = ExtendedKeyUsage
    asn1_spec = asn1_types.KeyPurposeIds

    def _to_asn1(self, value: ExtendedKeyUsage, context):
        return asn1_types.KeyPurposeIds(list(value.purposes))

    def _from_asn1(self, parsed):
        return ExtendedKeyUsage(tuple(purpose.dotted for purpose in parsed))


class AlternativeNameCodec(ExtensionCodec):
    value_type = GeneralNames
    asn1_spec = asn1_types.GeneralNames

    def __init__(self, kind: ExtensionKind) -> None:
        self.kind = kind

    def _to_asn1(self, value: GeneralNames, context):
        return general_names_to_asn1(value.names)

    def _from_asn1(self, parsed):
        return GeneralNames(general_names_from_asn1(parsed))


class AuthorityKeyIdentifierCodec(ExtensionCodec):
    """
    A value without a key identifier gets one derived from the issuer public
    key of ``context``, if any.
    """

    kind = ExtensionKind.AUTHORITY_KEY_IDENTIFIER
    value_type = AuthorityKeyIdentifier
    asn1_spec = asn1_types.AuthorityKeyIdentifier

    def _to_asn1(self, value: AuthorityKeyIdentifier, context):
        key_id = value.key_identifier
        if key_id is None and context is not None and context.issuer_public_key is not None:
            key_id = key_identifier(context.issuer_public_key)
        fields: dict[str, Any] = {}
        if key_id is not None:
            fields['key_identifier'] = key_id
        if value.authority_cert_issuer is not None:
            fields['authority_cert_issuer'] = general_names_to_asn1(value.authority_cert_issuer)
        if value.authority_cert_serial_number is not None:
            fields['authority_cert_serial_number'] = value.authority_cert_serial_number
        return asn1_types.AuthorityKeyIdentifier(fields)

    def _from_asn1(self, parsed):
        issuer = parsed['authority_cert_issuer']
        return AuthorityKeyIdentifier(
            key_identifier=parsed['key_identifier'].native,
            authority_cert_issuer=None if _is_absent(issuer) else general_names_from_asn1(issuer),
            authority_cert_serial_number=parsed['authority_cert_serial_number'].native,
        )


class SubjectKeyIdentifierCodec(ExtensionCodec):
    """
    A value without a key identifier gets one derived from the subject public
    key. With no key either, the identifier is encoded empty, as the AKI codec
    leaves its key identifier out; ext_validation rejects that case.
    """

    kind = ExtensionKind.SUBJECT_KEY_IDENTIFIER
    value_type = SubjectKeyIdentifier
    asn1_spec = core.OctetString

    def _to_asn1(self, value: SubjectKeyIdentifier, context):
        key_id = value.key_identifier
        if key_id is None and context is not None and context.subject_public_key is not None:
            key_id = key_identifier(context.subject_public_key)
        return core.OctetString(key_id or b"")

    def _from_asn1(self, parsed):
        return SubjectKeyIdentifier(parsed.native)


class PrivateKeyUsagePeriodCodec(ExtensionCodec):
    kind = ExtensionKind.PRIVATE_KEY_USAGE_PERIOD
    value_type = PrivateKeyUsagePeriod
    asn1_spec = asn1_types.PrivateKeyUsagePeriod

    def _to_asn1(self, value: PrivateKeyUsagePeriod, context):
        fields: dict[str, Any] = {}
        if value.not_before is not None:
            fields['not_before'] = value.not_before
        if value.not_after is not None:
            fields['not_after'] = value.not_after
        return asn1_types.PrivateKeyUsagePeriod(fields)

    def _from_asn1(self, parsed):
        return PrivateKeyUsagePeriod(
            not_before=parsed['not_before'].native,
            not_after=parsed['not_after'].native,
        )


class NameConstraintsCodec(ExtensionCodec):
    kind = ExtensionKind.NAME_CONSTRAINTS
    value_type = NameConstraints
    asn1_spec = asn1_types.NameConstraints

    @staticmethod
    def _subtrees_to_asn1(subtrees: tuple[GeneralSubtree, ...]) -> asn1_types.GeneralSubtrees:
        result = []
        for subtree in subtrees:
            fields: dict[str, Any] = {
                'base': general_name_to_asn1(subtree.base),
                'minimum': subtree.minimum,
            }
            if subtree.maximum is not None:
                fields['maximum'] = subtree.maximum
            result.append(asn1_types.GeneralSubtree(fields))
        return asn1_types.GeneralSubtrees(result)

    @staticmethod
    def _subtrees_from_asn1(subtrees) -> tuple[GeneralSubtree, ...]:
        if _is_absent(subtrees):
            return ()
        return tuple(
            GeneralSubtree(
                base=general_name_from_asn1(subtree['base']),
                minimum=subtree['minimum'].native,
                maximum=subtree['maximum'].native,
            )
            for subtree in subtrees
        )

    def _to_asn1(self, value: NameConstraints, context):
        fields: dict[str, Any] = {}
        if value.permitted:
            fields['permitted_subtrees'] = self._subtrees_to_asn1(value.permitted)
        if value.excluded:
            fields['excluded_subtrees'] = self._subtrees_to_asn1(value.excluded)
        return asn1_types.NameConstraints(fields)

    def _from_asn1(self, parsed):
        return NameConstraints(
            permitted=self._subtrees_from_asn1(parsed['permitted_subtrees']),
            excluded=self._subtrees_from_asn1(parsed['excluded_subtrees']),
        )


class CrlDistributionPointsCodec(ExtensionCodec):
    kind = ExtensionKind.CRL_DISTRIBUTION_POINTS
    value_type = CrlDistributionPoints
    asn1_spec = asn1_types.CRLDistributionPoints

    def _to_asn1(self, value: CrlDistributionPoints, context):
        points = []
        for point in value.points:
            fields: dict[str, Any] = {}
            if point.full_name is not None:
                fields['distribution_point'] = asn1_types.DistributionPointName(
                    name='full_name', value=general_names_to_asn1(point.full_name)
                )
            elif point.relative_name is not None:
                fields['distribution_point'] = asn1_types.DistributionPointName(
                    name='name_relative_to_crl_issuer', value=relative_name_to_asn1(point.relative_name)
                )
            if point.reasons is not None:
                fields['reasons'] = asn1_types.ReasonFlags({reason.value for reason in point.reasons})
            if point.crl_issuer is not None:
                fields['crl_issuer'] = general_names_to_asn1(point.crl_issuer)
            points.append(asn1_types.DistributionPoint(fields))
        return asn1_types.CRLDistributionPoints(points)

    def _from_asn1(self, parsed):
        points = []
        for point in parsed:
            full_name = relative_name = reasons = crl_issuer = None
            name = point['distribution_point']
            if not _is_absent(name):
                if name.name == 'full_name':
                    full_name = general_names_from_asn1(name.chosen)
                else:
                    relative_name = relative_name_from_asn1(name.chosen)
            if not _is_absent(point['reasons']):
                reasons = frozenset(ReasonFlag(flag) for flag in point['reasons'].native)
            if not _is_absent(point['crl_issuer']):
                crl_issuer = general_names_from_asn1(point['crl_issuer'])
            points.append(DistributionPoint(full_name, relative_name, reasons, crl_issuer))
        return CrlDistributionPoints(tuple(points))


class CertificatePoliciesCodec(ExtensionCodec):
    """
    CPS pointer and user notice qualifiers (RFC 5280 4.2.1.4) are decoded;
    any other qualifier is kept as OtherQualifier with its DER untouched.
    """

    kind = ExtensionKind.CERTIFICATE_POLICIES
    value_type = CertificatePolicies
    asn1_spec = asn1_types.CertificatePolicies

    @staticmethod
    def _qualifier_to_asn1(qualifier: PolicyQualifier) -> asn1_types.PolicyQualifierInfo:
        if isinstance(qualifier, CpsUri):
            return asn1_types.PolicyQualifierInfo({
                'policy_qualifier_id': CPS_QUALIFIER,
                'qualifier': core.Any(core.IA5String(qualifier.uri)),
            })
        if isinstance(qualifier, OtherQualifier):
            return asn1_types.PolicyQualifierInfo({
                'policy_qualifier_id': qualifier.qualifier_id,
                'qualifier': core.Any(core.load(qualifier.value)),
            })
        fields: dict[str, Any] = {}
        if qualifier.organization is not None:
            fields['notice_ref'] = asn1_types.NoticeReference({
                'organization': asn1_types.DisplayText(
                    name=qualifier.organization_type, value=qualifier.organization
                ),
                'notice_numbers': list(qualifier.notice_numbers),
            })
        if qualifier.explicit_text is not None:
            fields['explicit_text'] = asn1_types.DisplayText(
                name=qualifier.explicit_text_type, value=qualifier.explicit_text
            )
        return asn1_types.PolicyQualifierInfo({
            'policy_qualifier_id': USER_NOTICE_QUALIFIER,
            'qualifier': core.Any(asn1_types.UserNotice(fields)),
        })

    @staticmethod
    def _qualifier_from_asn1(info: asn1_types.PolicyQualifierInfo) -> PolicyQualifier:
        qualifier_id = info['policy_qualifier_id'].dotted
        if qualifier_id == CPS_QUALIFIER:
            return CpsUri(info['qualifier'].parse(core.IA5String).native)
        if qualifier_id == USER_NOTICE_QUALIFIER:
            notice = info['qualifier'].parse(asn1_types.UserNotice)
            fields: dict[str, Any] = {}
            if not _is_absent(notice['notice_ref']):
                organization = notice['notice_ref']['organization']
                fields['organization'] = organization.native
                fields['organization_type'] = organization.name
                fields['notice_numbers'] = tuple(n.native for n in notice['notice_ref']['notice_numbers'])
            text = notice['explicit_text']
            if not _is_absent(text):
                fields['explicit_text'] = text.native
                fields['explicit_text_type'] = text.name
            return UserNotice(**fields)
        return OtherQualifier(qualifier_id, info['qualifier'].dump())

    def _to_asn1(self, value: CertificatePolicies, context):
        policies = []
        for policy in value.policies:
            fields: dict[str, Any] = {'policy_identifier': policy.policy_identifier}
            if policy.qualifiers:
                fields['policy_qualifiers'] = [self._qualifier_to_asn1(q) for q in policy.qualifiers]
            policies.append(asn1_types.PolicyInformation(fields))
        return asn1_types.CertificatePolicies(policies)

    def _from_asn1(self, parsed):
        policies = []
        for policy in parsed:
            qualifiers = policy['policy_qualifiers']
            policies.append(PolicyInformation(
                policy_identifier=policy['policy_identifier'].dotted,
                qualifiers=() if _is_absent(qualifiers) else tuple(
                    self._qualifier_from_asn1(info) for info in qualifiers
                ),
            ))
        return CertificatePolicies(tuple(policies))


class PolicyMappingsCodec(ExtensionCodec):
    kind = ExtensionKind.POLICY_MAPPINGS
    value_type = PolicyMappings
    asn1_spec = asn1_types.PolicyMappings

    def _to_asn1(self, value: PolicyMappings, context):
        return asn1_types.PolicyMappings([
            {
                'issuer_domain_policy': mapping.issuer_domain_policy,
                'subject_domain_policy': mapping.subject_domain_policy,
            }
            for mapping in value.mappings
        ])

    def _from_asn1(self, parsed):
        return PolicyMappings(tuple(
            PolicyMapping(
                mapping['issuer_domain_policy'].dotted,
                mapping['subject_domain_policy'].dotted,
            )
            for mapping in parsed
        ))


class PolicyConstraintsCodec(ExtensionCodec):
    kind = ExtensionKind.POLICY_CONSTRAINTS
    value_type = PolicyConstraints
    asn1_spec = asn1_types.PolicyConstraints

    def _to_asn1(self, value: PolicyConstraints, context):
        fields: dict[str, Any] = {}
        if value.require_explicit_policy is not None:
            fields['require_explicit_policy'] = value.require_explicit_policy
        if value.inhibit_policy_mapping is not None:
            fields['inhibit_policy_mapping'] = value.inhibit_policy_mapping
        return asn1_types.PolicyConstraints(fields)

    def _from_asn1(self, parsed):
        return PolicyConstraints(
            require_explicit_policy=parsed['require_explicit_policy'].native,
            inhibit_policy_mapping=parsed['inhibit_policy_mapping'].native,
        )


class InhibitAnyPolicyCodec(ExtensionCodec):
    kind = ExtensionKind.INHIBIT_ANY_POLICY
    value_type = InhibitAnyPolicy
    asn1_spec = core.Integer

    def _to_asn1(self, value: InhibitAnyPolicy, context):
        return core.Integer(value.skip_certs)

    def _from_asn1(self, parsed):
        return InhibitAnyPolicy(parsed.native)


class InformationAccessCodec(ExtensionCodec):
    value_type = InformationAccess
    asn1_spec = asn1_types.InformationAccessSyntax

    def __init__(self, kind: ExtensionKind) -> None:
        self.kind = kind

    def _to_asn1(self, value: InformationAccess, context):
        return asn1_types.InformationAccessSyntax([
            asn1_types.AccessDescription({
                'access_method': description.access_method,
                'access_location': general_name_to_asn1(description.access_location),
            })
            for description in value.descriptions
        ])

    def _from_asn1(self, parsed):
        return InformationAccess(tuple(
            AccessDescription(
                access_method=description['access_method'].dotted,
                access_location=general_name_from_asn1(description['access_location']),
            )
            for description in parsed
        ))


_CODECS: Mapping[ExtensionKind, ExtensionCodec] = MappingProxyType({
    codec.kind: codec
    for codec in (
        AuthorityKeyIdentifierCodec(),
        BasicConstraintsCodec(),
        CertificatePoliciesCodec(),
        CrlDistributionPointsCodec(),
        ExtendedKeyUsageCodec(),
        InformationAccessCodec(ExtensionKind.AUTHORITY_INFORMATION_ACCESS),
        InformationAccessCodec(ExtensionKind.SUBJECT_INFORMATION_ACCESS),
        InhibitAnyPolicyCodec(),
        AlternativeNameCodec(ExtensionKind.ISSUER_ALTERNATIVE_NAME),
        AlternativeNameCodec(ExtensionKind.SUBJECT_ALTERNATIVE_NAME),
        KeyUsageCodec(),
        NameConstraintsCodec(),
        PolicyConstraintsCodec(),
        PolicyMappingsCodec(),
        PrivateKeyUsagePeriodCodec(),
        SubjectKeyIdentifierCodec(),
    )
})


def codec_for(kind: ExtensionKind) -> ExtensionCodec:
    """Return the codec of ``kind``."""
    return _CODECS[kind]
