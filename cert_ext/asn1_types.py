"""
ASN.1 structures (RFC 5280) for the extension values handled by cert_ext.

These are declared here rather than taken from asn1crypto.x509 because the
asn1crypto string types for names normalise their input (IDNA, IRI to URI)
and the editor has to hand back exactly what it was given.
"""

from __future__ import annotations

from asn1crypto import core
from asn1crypto import x509 as asn1_x509


class OtherNameValue(core.Sequence):
    # Carrier for "[0] EXPLICIT ANY": implicitly tagging a one-field SEQUENCE
    # yields the same octets, and .contents is the inner element.
    _fields = [
        ('value', core.Any),
    ]


class OtherName(core.Sequence):
    _fields = [
        ('type_id', core.ObjectIdentifier),
        ('value', OtherNameValue, {'implicit': 0}),
    ]


class GeneralName(core.Choice):
    _alternatives = [
        ('other_name', OtherName, {'implicit': 0}),
        ('rfc822_name', core.IA5String, {'implicit': 1}),
        ('dns_name', core.IA5String, {'implicit': 2}),
        ('directory_name', asn1_x509.Name, {'explicit': 4}),
        ('uniform_resource_identifier', core.IA5String, {'implicit': 6}),
        ('ip_address', core.OctetString, {'implicit': 7}),
        ('registered_id', core.ObjectIdentifier, {'implicit': 8}),
    ]


class GeneralNames(core.SequenceOf):
    _child_spec = GeneralName


class AuthorityKeyIdentifier(core.Sequence):
    _fields = [
        ('key_identifier', core.OctetString, {'implicit': 0, 'optional': True}),
        ('authority_cert_issuer', GeneralNames, {'implicit': 1, 'optional': True}),
        ('authority_cert_serial_number', core.Integer, {'implicit': 2, 'optional': True}),
    ]


class BasicConstraints(core.Sequence):
    _fields = [
        ('ca', core.Boolean, {'default': False}),
        ('path_len_constraint', core.Integer, {'optional': True}),
    ]


class KeyUsage(core.BitString):
    _map = {
        0: 'digital_signature',
        1: 'non_repudiation',
        2: 'key_encipherment',
        3: 'data_encipherment',
        4: 'key_agreement',
        5: 'key_cert_sign',
        6: 'crl_sign',
        7: 'encipher_only',
        8: 'decipher_only',
    }


class KeyPurposeIds(core.SequenceOf):
    _child_spec = core.ObjectIdentifier


class PrivateKeyUsagePeriod(core.Sequence):
    _fields = [
        ('not_before', core.GeneralizedTime, {'implicit': 0, 'optional': True}),
        ('not_after', core.GeneralizedTime, {'implicit': 1, 'optional': True}),
    ]


class GeneralSubtree(core.Sequence):
    _fields = [
        ('base', GeneralName),
        ('minimum', core.Integer, {'implicit': 0, 'default': 0}),
        ('maximum', core.Integer, {'implicit': 1, 'optional': True}),
    ]


class GeneralSubtrees(core.SequenceOf):
    _child_spec = GeneralSubtree


class NameConstraints(core.Sequence):
    _fields = [
        ('permitted_subtrees', GeneralSubtrees, {'implicit': 0, 'optional': True}),
        ('excluded_subtrees', GeneralSubtrees, {'implicit': 1, 'optional': True}),
    ]


class ReasonFlags(core.BitString):
    _map = {
        0: 'unused',
        1: 'key_compromise',
        2: 'ca_compromise',
        3: 'affiliation_changed',
        4: 'superseded',
        5: 'cessation_of_operation',
        6: 'certificate_hold',
        7: 'privilege_withdrawn',
        8: 'aa_compromise',
    }


class DistributionPointName(core.Choice):
    _alternatives = [
        ('full_name', GeneralNames, {'implicit': 0}),
        ('name_relative_to_crl_issuer', asn1_x509.RelativeDistinguishedName, {'implicit': 1}),
    ]


class DistributionPoint(core.Sequence):
    _fields = [
        ('distribution_point', DistributionPointName, {'explicit': 0, 'optional': True}),
        ('reasons', ReasonFlags, {'implicit': 1, 'optional': True}),
        ('crl_issuer', GeneralNames, {'implicit': 2, 'optional': True}),
    ]


class CRLDistributionPoints(core.SequenceOf):
    _child_spec = DistributionPoint


class DisplayText(core.Choice):
    _alternatives = [
        ('ia5_string', core.IA5String),
        ('visible_string', core.VisibleString),
        ('bmp_string', core.BMPString),
        ('utf8_string', core.UTF8String),
    ]


class NoticeNumbers(core.SequenceOf):
    _child_spec = core.Integer


class NoticeReference(core.Sequence):
    _fields = [
        ('organization', DisplayText),
        ('notice_numbers', NoticeNumbers),
    ]


class UserNotice(core.Sequence):
    _fields = [
        ('notice_ref', NoticeReference, {'optional': True}),
        ('explicit_text', DisplayText, {'optional': True}),
    ]


class PolicyQualifierInfo(core.Sequence):
    _fields = [
        ('policy_qualifier_id', core.ObjectIdentifier),
        ('qualifier', core.Any),
    ]


class PolicyQualifierInfos(core.SequenceOf):
    _child_spec = PolicyQualifierInfo


class PolicyInformation(core.Sequence):
    _fields = [
        ('policy_identifier', core.ObjectIdentifier),
        ('policy_qualifiers', PolicyQualifierInfos, {'optional': True}),
    ]


class CertificatePolicies(core.SequenceOf):
    _child_spec = PolicyInformation


class PolicyMapping(core.Sequence):
    _fields = [
        ('issuer_domain_policy', core.ObjectIdentifier),
        ('subject_domain_policy', core.ObjectIdentifier),
    ]


class PolicyMappings(core.SequenceOf):
    _child_spec = PolicyMapping


class PolicyConstraints(core.Sequence):
    _fields = [
        ('require_explicit_policy', core.Integer, {'implicit': 0, 'optional': True}),
        ('inhibit_policy_mapping', core.Integer, {'implicit': 1, 'optional': True}),
    ]


class AccessDescription(core.Sequence):
    _fields = [
        ('access_method', core.ObjectIdentifier),
        ('access_location', GeneralName),
    ]


class InformationAccessSyntax(core.SequenceOf):
    _child_spec = AccessDescription


class Extension(core.Sequence):
    _fields = [
        ('extn_id', core.ObjectIdentifier),
        ('critical', core.Boolean, {'default': False}),
        ('extn_value', core.OctetString),
    ]


class Extensions(core.SequenceOf):
    _child_spec = Extension
