"""Tests for refreshing key identifiers against new key material."""

from __future__ import annotations

import pytest
from cryptography import x509

from cert_ext.errors import DecodeError
from cert_ext.ext_codecs import codec_for
from cert_ext.ext_set import ExtensionSet, unwrap_extension_value
from cert_ext.ext_types import ExtensionKind
from cert_ext.ext_updater import update, update_from_context
from cert_ext.ext_values import AuthorityKeyIdentifier, GeneralName, SubjectKeyIdentifier
from cert_ext.key_material import KeyMaterialContext, key_identifier
from conftest import common_name, encoded, generate_public_key, three_letter_country_name

SKI = ExtensionKind.SUBJECT_KEY_IDENTIFIER
AKI = ExtensionKind.AUTHORITY_KEY_IDENTIFIER


def value_of(extensions: ExtensionSet, kind: ExtensionKind):
    return codec_for(kind).decode(unwrap_extension_value(extensions.get_extension_value(kind.oid)))


class TestSubjectKeyIdentifier:
    """Tests for the subject key identifier refresh."""

    def test_replaced_for_new_key(self, key_type: str) -> None:
        """Test that an identifier made for one key is recomputed for another."""
        old_key, new_key = generate_public_key(key_type), generate_public_key(key_type)
        extensions = ExtensionSet()
        extensions.add_extension(SKI.oid, False, encoded(SKI, SubjectKeyIdentifier(key_identifier(old_key))))

        update(extensions, new_key, None, None, None)

        assert value_of(extensions, SKI) == SubjectKeyIdentifier(key_identifier(new_key))
        assert extensions.get_extension_value(SKI.oid) == encoded(
            SKI, SubjectKeyIdentifier(), KeyMaterialContext(subject_public_key=new_key)
        )

    def test_same_key_leaves_value(self, subject_key) -> None:
        """Test that refreshing for the same key is a no-op."""
        extensions = ExtensionSet()
        extensions.add_extension(SKI.oid, True, encoded(SKI, SubjectKeyIdentifier(key_identifier(subject_key))))
        before = extensions.clone()
        update(extensions, subject_key, None, None, None)
        assert extensions == before

    def test_no_subject_key_leaves_value(self) -> None:
        """Test that without a subject key the identifier stays."""
        extensions = ExtensionSet()
        extensions.add_extension(SKI.oid, False, encoded(SKI, SubjectKeyIdentifier(b"\x01" * 20)))
        before = extensions.clone()
        update(extensions, None, None, None, None)
        assert extensions == before

    def test_critical_flag_preserved(self, subject_key) -> None:
        """Test that a refreshed extension keeps its critical flag."""
        extensions = ExtensionSet()
        extensions.add_extension(SKI.oid, True, encoded(SKI, SubjectKeyIdentifier(b"\x01" * 20)))
        update(extensions, subject_key, None, None, None)
        assert extensions.is_critical(SKI.oid)

    def test_absent_not_added(self, subject_key, issuer_key, issuer_name) -> None:
        """Test that refresh never adds a key identifier extension."""
        extensions = ExtensionSet()
        update(extensions, subject_key, issuer_key, issuer_name, 7)
        assert len(extensions) == 0


class TestAuthorityKeyIdentifier:
    """Tests for the authority key identifier refresh."""

    def test_all_fields_refreshed(self, issuer_key, issuer_name) -> None:
        """Test that identifier, issuer and serial number are replaced."""
        extensions = ExtensionSet()
        extensions.add_extension(AKI.oid, False, encoded(AKI, AuthorityKeyIdentifier(
            key_identifier=b"\x01" * 20,
            authority_cert_issuer=(GeneralName.directory(common_name("Old CA")),),
            authority_cert_serial_number=1,
        )))

        update(extensions, None, issuer_key, issuer_name, 4242)

        assert value_of(extensions, AKI) == AuthorityKeyIdentifier(
            key_identifier=key_identifier(issuer_key),
            authority_cert_issuer=(GeneralName.directory(issuer_name),),
            authority_cert_serial_number=4242,
        )

    def test_only_present_fields_refreshed(self, issuer_key, issuer_name) -> None:
        """Test that fields missing from the extension are not added."""
        extensions = ExtensionSet()
        extensions.add_extension(AKI.oid, False, encoded(AKI, AuthorityKeyIdentifier(key_identifier=b"\x01" * 20)))

        update(extensions, None, issuer_key, issuer_name, 4242)

        assert value_of(extensions, AKI) == AuthorityKeyIdentifier(key_identifier=key_identifier(issuer_key))

    def test_missing_material_keeps_fields(self, issuer_key) -> None:
        """Test that a field whose source is missing keeps its value."""
        old_issuer = (GeneralName.directory(common_name("Old CA")),)
        extensions = ExtensionSet()
        extensions.add_extension(AKI.oid, True, encoded(AKI, AuthorityKeyIdentifier(
            key_identifier=b"\x01" * 20,
            authority_cert_issuer=old_issuer,
            authority_cert_serial_number=1,
        )))

        update(extensions, None, issuer_key, None, None)

        assert value_of(extensions, AKI) == AuthorityKeyIdentifier(
            key_identifier=key_identifier(issuer_key),
            authority_cert_issuer=old_issuer,
            authority_cert_serial_number=1,
        )
        assert extensions.is_critical(AKI.oid)

    def test_issuer_name_outside_x509(self, issuer_key, issuer_name) -> None:
        """Test refreshing an AKI whose issuer is a name x509.Name refuses."""
        old_issuer = (GeneralName.directory(three_letter_country_name()),)
        extensions = ExtensionSet()
        extensions.add_extension(AKI.oid, False, encoded(AKI, AuthorityKeyIdentifier(
            key_identifier=b"\x01" * 20,
            authority_cert_issuer=old_issuer,
            authority_cert_serial_number=7,
        )))

        update(extensions, None, issuer_key, None, None)
        aki = value_of(extensions, AKI)
        assert aki.key_identifier == key_identifier(issuer_key)
        assert aki.authority_cert_issuer == old_issuer

        update(extensions, None, None, issuer_name, None)
        assert value_of(extensions, AKI).authority_cert_issuer == (GeneralName.directory(issuer_name),)


class TestErrors:
    """Tests for malformed derived extensions."""

    def test_malformed_ski_raises_before_changes(self, subject_key, issuer_key) -> None:
        """Test that a malformed value raises DecodeError and nothing is written."""
        extensions = ExtensionSet()
        extensions.add_extension(SKI.oid, False, b"\x04\x02\x30\x00")
        extensions.add_extension(AKI.oid, False, encoded(AKI, AuthorityKeyIdentifier(key_identifier=b"\x01" * 20)))
        before = extensions.clone()

        with pytest.raises(DecodeError):
            update(extensions, subject_key, issuer_key, None, None)
        assert extensions == before

    def test_malformed_aki(self, issuer_key) -> None:
        """Test that an authority key identifier that is not a SEQUENCE is reported."""
        extensions = ExtensionSet()
        extensions.add_extension(AKI.oid, False, b"\x04\x02\x05\x00")
        with pytest.raises(DecodeError):
            update(extensions, None, issuer_key, None, None)


class TestContext:
    """Tests for update_from_context."""

    def test_uses_context(self, context: KeyMaterialContext) -> None:
        """Test that the context fields are passed through."""
        extensions = ExtensionSet()
        extensions.add_extension(SKI.oid, False, encoded(SKI, SubjectKeyIdentifier(b"\x01" * 20)))
        extensions.add_extension(AKI.oid, False, encoded(AKI, AuthorityKeyIdentifier(
            key_identifier=b"\x01" * 20,
            authority_cert_issuer=(GeneralName.directory(x509.Name([])),),
            authority_cert_serial_number=1,
        )))

        update_from_context(extensions, context)

        assert value_of(extensions, SKI).key_identifier == key_identifier(context.subject_public_key)
        aki = value_of(extensions, AKI)
        assert aki.key_identifier == key_identifier(context.issuer_public_key)
        assert aki.authority_cert_issuer == (GeneralName.directory(context.issuer_name),)
        assert aki.authority_cert_serial_number == 4242
