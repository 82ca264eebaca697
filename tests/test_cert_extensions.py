"""Tests for the standard extension templates."""

from __future__ import annotations

import pytest
from cryptography.x509.oid import ExtendedKeyUsageOID

from cert_ext.cert_extensions import EXTENSIONS, standard_template
from cert_ext.ext_codecs import codec_for
from cert_ext.ext_set import ExtensionSet, unwrap_extension_value
from cert_ext.ext_types import ExtensionKind
from cert_ext.ext_validation import validate_value
from cert_ext.ext_values import (
    AuthorityKeyIdentifier,
    BasicConstraints,
    ExtendedKeyUsage,
    GeneralName,
    GeneralNames,
    KeyUsage,
    KeyUsagePurpose,
    SubjectKeyIdentifier,
)
from cert_ext.key_material import KeyMaterialContext, key_identifier
from conftest import common_name


def param(category: str, kind: ExtensionKind):
    return next(p for p in EXTENSIONS[category]["parameters"] if p["kind"] is kind)


def value_of(extensions: ExtensionSet, kind: ExtensionKind):
    return codec_for(kind).decode(unwrap_extension_value(extensions.get_extension_value(kind.oid)))


class TestExtensionsStructure:
    """Tests for the EXTENSIONS dictionary structure."""

    def test_extensions_has_required_categories(self) -> None:
        """Test that EXTENSIONS contains all required certificate categories."""
        for category in ("RootCA", "IntCA", "CN", "CodeSigning"):
            assert category in EXTENSIONS

    def test_each_category_has_known_type(self) -> None:
        """Test that each category has a Root, Intermediate or Leaf type."""
        for category, config in EXTENSIONS.items():
            assert config["type"] in ("Root", "Intermediate", "Leaf"), category

    def test_parameter_structure(self) -> None:
        """Test that each parameter has 'kind', 'extension' and 'critical' fields."""
        for category, config in EXTENSIONS.items():
            for i, p in enumerate(config["parameters"]):
                assert isinstance(p["kind"], ExtensionKind), f"{category} param {i}"
                assert isinstance(p["critical"], bool), f"{category} param {i}"

    def test_parameters_are_valid(self) -> None:
        """Test that every configured value passes validation for its kind."""
        for config in EXTENSIONS.values():
            for p in config["parameters"]:
                validate_value(p["kind"], p["extension"])


class TestCategories:
    """Tests for the values of each category."""

    def test_ca_types_have_critical_basic_constraints(self) -> None:
        """Test that CA certificate types have critical BasicConstraints with CA set."""
        for category in ("RootCA", "IntCA"):
            bc = param(category, ExtensionKind.BASIC_CONSTRAINTS)
            assert bc["extension"].ca is True
            assert bc["critical"] is True

    def test_ca_key_usage_allows_cert_signing(self) -> None:
        """Test that CA KeyUsage allows certificate and CRL signing."""
        for category in ("RootCA", "IntCA"):
            ku = param(category, ExtensionKind.KEY_USAGE)["extension"]
            assert KeyUsagePurpose.KEY_CERT_SIGN in ku
            assert KeyUsagePurpose.CRL_SIGN in ku

    def test_cn_key_usage_for_end_entity(self) -> None:
        """Test that CN KeyUsage is appropriate for end-entity certificates."""
        ku = param("CN", ExtensionKind.KEY_USAGE)["extension"]
        assert KeyUsagePurpose.DIGITAL_SIGNATURE in ku
        assert KeyUsagePurpose.KEY_ENCIPHERMENT in ku
        assert KeyUsagePurpose.KEY_CERT_SIGN not in ku
        assert param("CN", ExtensionKind.BASIC_CONSTRAINTS)["critical"] is False

    def test_cn_extended_key_usage_values(self) -> None:
        """Test that CN ExtendedKeyUsage has correct OIDs."""
        purposes = param("CN", ExtensionKind.EXTENDED_KEY_USAGE)["extension"].purposes
        assert ExtendedKeyUsageOID.SERVER_AUTH.dotted_string in purposes
        assert ExtendedKeyUsageOID.CLIENT_AUTH.dotted_string in purposes
        assert ExtendedKeyUsageOID.EMAIL_PROTECTION.dotted_string in purposes

    def test_only_leaves_have_extended_key_usage(self) -> None:
        """Test that CA templates carry no ExtendedKeyUsage."""
        for category, config in EXTENSIONS.items():
            kinds = [p["kind"] for p in config["parameters"]]
            assert (ExtensionKind.EXTENDED_KEY_USAGE in kinds) == (config["type"] == "Leaf"), category


class TestStandardTemplate:
    """Tests for building extension sets from the standard categories."""

    def test_unknown_category(self) -> None:
        """Test that an unknown category is rejected."""
        with pytest.raises(ValueError):
            standard_template("Server")

    def test_without_key_material(self) -> None:
        """Test that without keys only the fixed parameters are present."""
        extensions = standard_template("RootCA")
        assert extensions.oids() == [ExtensionKind.KEY_USAGE.oid, ExtensionKind.BASIC_CONSTRAINTS.oid]
        assert extensions.critical_extension_oids() == set(extensions.oids())
        assert value_of(extensions, ExtensionKind.BASIC_CONSTRAINTS) == BasicConstraints(ca=True)

    def test_root_gets_subject_key_identifier_only(self, subject_key) -> None:
        """Test that a root template has no authority key identifier."""
        context = KeyMaterialContext(issuer_public_key=subject_key, subject_public_key=subject_key)
        extensions = standard_template("RootCA", context)
        assert value_of(extensions, ExtensionKind.SUBJECT_KEY_IDENTIFIER) == \
            SubjectKeyIdentifier(key_identifier(subject_key))
        assert ExtensionKind.AUTHORITY_KEY_IDENTIFIER.oid not in extensions

    def test_intermediate_gets_both_identifiers(self, context: KeyMaterialContext) -> None:
        """Test that a non-root template gets the issuer's key identifier."""
        extensions = standard_template("IntCA", context)
        assert value_of(extensions, ExtensionKind.AUTHORITY_KEY_IDENTIFIER) == \
            AuthorityKeyIdentifier(key_identifier(context.issuer_public_key))
        assert ExtensionKind.SUBJECT_ALTERNATIVE_NAME.oid not in extensions

    def test_leaf_gets_subject_alternative_name(self, context: KeyMaterialContext) -> None:
        """Test that the leaf common name becomes a DNS name."""
        extensions = standard_template("CN", context)
        assert value_of(extensions, ExtensionKind.SUBJECT_ALTERNATIVE_NAME) == \
            GeneralNames((GeneralName.dns("www.example.com"),))
        assert value_of(extensions, ExtensionKind.EXTENDED_KEY_USAGE) == \
            param("CN", ExtensionKind.EXTENDED_KEY_USAGE)["extension"]
        assert len(extensions) == 6

    def test_leaf_without_subject_name(self, subject_key) -> None:
        """Test that no alternative name is made up without a subject name."""
        extensions = standard_template("CN", KeyMaterialContext(subject_public_key=subject_key))
        assert ExtensionKind.SUBJECT_ALTERNATIVE_NAME.oid not in extensions

    def test_code_signing(self, subject_key) -> None:
        """Test the code signing template."""
        context = KeyMaterialContext(subject_public_key=subject_key, subject_name=common_name("Signer"))
        extensions = standard_template("CodeSigning", context)
        assert value_of(extensions, ExtensionKind.KEY_USAGE) == \
            KeyUsage(frozenset({KeyUsagePurpose.DIGITAL_SIGNATURE}))
        assert value_of(extensions, ExtensionKind.EXTENDED_KEY_USAGE) == \
            ExtendedKeyUsage((ExtendedKeyUsageOID.CODE_SIGNING.dotted_string,))

    def test_each_call_builds_a_new_set(self) -> None:
        """Test that templates are not shared between callers."""
        first = standard_template("IntCA")
        first.remove_extension(ExtensionKind.KEY_USAGE.oid)
        assert ExtensionKind.KEY_USAGE.oid in standard_template("IntCA")
