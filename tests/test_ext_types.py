"""Tests for the extension kind registry and OID ordering."""

from __future__ import annotations

import pytest

from cert_ext.ext_codecs import codec_for
from cert_ext.ext_types import (
    ExtensionKind,
    compare_oids,
    display_name,
    is_valid_oid,
    oid_sort_key,
    parse_oid,
    resolve,
)


class TestRegistry:
    """Tests for resolving OIDs to kinds."""

    def test_sixteen_kinds(self) -> None:
        """Test that every supported kind is registered once."""
        assert len(ExtensionKind) == 16
        assert len({kind.oid for kind in ExtensionKind}) == 16

    @pytest.mark.parametrize("kind", list(ExtensionKind))
    def test_resolve_round_trip(self, kind: ExtensionKind) -> None:
        """Test that resolving a kind's OID gives the kind back."""
        assert resolve(kind.oid) is kind

    @pytest.mark.parametrize("kind", list(ExtensionKind))
    def test_every_kind_has_a_codec(self, kind: ExtensionKind) -> None:
        """Test that the codec of a kind reports that kind."""
        assert codec_for(kind).kind is kind

    def test_well_known_oids(self) -> None:
        """Test a few OIDs against RFC 5280."""
        assert resolve("2.5.29.19") is ExtensionKind.BASIC_CONSTRAINTS
        assert resolve("2.5.29.14") is ExtensionKind.SUBJECT_KEY_IDENTIFIER
        assert resolve("1.3.6.1.5.5.7.1.1") is ExtensionKind.AUTHORITY_INFORMATION_ACCESS
        assert resolve("1.3.6.1.5.5.7.1.11") is ExtensionKind.SUBJECT_INFORMATION_ACCESS

    @pytest.mark.parametrize("oid", ["1.2.3.4", "2.5.29.99", "", "not.an.oid", "2.5.29.19."])
    def test_unknown_or_malformed(self, oid: str) -> None:
        """Test that unknown and malformed OIDs resolve to None."""
        assert resolve(oid) is None

    def test_display_name(self) -> None:
        """Test friendly names with a fallback to the raw OID."""
        assert display_name("2.5.29.15") == "Key Usage"
        assert display_name("1.2.3.4") == "1.2.3.4"
        assert str(ExtensionKind.KEY_USAGE) == "Key Usage"


class TestOids:
    """Tests for OID parsing and validity."""

    def test_parse(self) -> None:
        """Test that arcs come back as integers."""
        assert parse_oid("2.5.29.19") == (2, 5, 29, 19)
        assert parse_oid("2..5") is None
        assert parse_oid("2.-5") is None
        assert parse_oid("2.٥") is None

    @pytest.mark.parametrize("oid, valid", [
        ("2.5.29.19", True),
        ("1.3.6.1", True),
        ("2.999.1", True),
        ("1.39", True),
        ("1.40", False),
        ("3.1", False),
        ("1", False),
        ("a.b", False),
    ])
    def test_is_valid(self, oid: str, valid: bool) -> None:
        """Test the X.660 first arc rules."""
        assert is_valid_oid(oid) is valid


class TestCanonicalOrder:
    """Tests for the numeric OID ordering."""

    def test_numeric_not_lexical(self) -> None:
        """Test that arcs compare as integers."""
        assert compare_oids("2.5.29.9", "2.5.29.14") == -1
        assert compare_oids("2.5.29.14", "2.5.29.9") == 1
        assert compare_oids("2.5.29.14", "2.5.29.14") == 0
        assert compare_oids("2.5.29.14", "2.5.29.35") == -1

    def test_prefix_sorts_first(self) -> None:
        """Test that an OID sorts before its extensions."""
        assert compare_oids("2.5.29", "2.5.29.0") == -1

    def test_malformed_sort_last(self) -> None:
        """Test that malformed OIDs come after well-formed ones, lexically."""
        oids = ["zz", "2.5.29.37", "1.3.6.1.5.5.7.1.1", "aa", "2.5.29.14"]
        assert sorted(oids, key=oid_sort_key) == [
            "1.3.6.1.5.5.7.1.1", "2.5.29.14", "2.5.29.37", "aa", "zz",
        ]
