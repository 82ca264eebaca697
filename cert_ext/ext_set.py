"""The set of extensions attached to a certificate being issued."""

from __future__ import annotations

import logging
from typing import Iterator, NamedTuple

from asn1crypto import core

from cert_ext.errors import DecodeError
from cert_ext.ext_types import ExtensionKind, oid_sort_key, resolve

logger = logging.getLogger(__name__)


class ExtensionEntry(NamedTuple):
    """One extension of a set, as enumerated by ExtensionSet."""

    oid: str
    critical: bool
    value: bytes

    @property
    def kind(self) -> ExtensionKind | None:
        return resolve(self.oid)


def wrap_extension_value(der: bytes) -> bytes:
    """Wrap a kind-specific DER value into the extnValue OCTET STRING."""
    return core.OctetString(der).dump()


def unwrap_extension_value(octets: bytes) -> bytes:
    """Inverse of wrap_extension_value; raises DecodeError for anything but a DER OCTET STRING."""
    try:
        return core.OctetString.load(octets, strict=True).native
    except (ValueError, TypeError) as e:
        raise DecodeError(f"Extension value is not an OCTET STRING: {e}") from e


class ExtensionSet:
    """
    Mapping of extension OID to critical flag and encoded value.

    Values are the DER encoding of the extnValue OCTET STRING, i.e. the
    kind-specific encoding wrapped once more (see wrap_extension_value).
    Enumeration follows the canonical numeric OID order.

    An instance belongs to one workflow; hand a clone() to anything that may
    be cancelled.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[bool, bytes]] = {}

    def add_extension(self, oid: str, critical: bool, value: bytes) -> None:
        """Insert the extension or replace both its flag and value."""
        self._entries[oid] = (bool(critical), bytes(value))
        logger.debug("Set extension %s (critical=%s)", oid, bool(critical))

    def remove_extension(self, oid: str) -> None:
        """Remove the extension; does nothing when it is absent."""
        if self._entries.pop(oid, None) is not None:
            logger.debug("Removed extension %s", oid)

    def toggle_extension_criticality(self, oid: str) -> None:
        """Flip the critical flag; does nothing when the extension is absent."""
        entry = self._entries.get(oid)
        if entry is None:
            return
        critical, value = entry
        self._entries[oid] = (not critical, value)
        logger.debug("Extension %s critical=%s", oid, not critical)

    def get_extension_value(self, oid: str) -> bytes | None:
        entry = self._entries.get(oid)
        return entry[1] if entry is not None else None

    def is_critical(self, oid: str) -> bool:
        entry = self._entries.get(oid)
        return entry is not None and entry[0]

    def critical_extension_oids(self) -> set[str]:
        return {oid for oid, (critical, _) in self._entries.items() if critical}

    def non_critical_extension_oids(self) -> set[str]:
        return {oid for oid, (critical, _) in self._entries.items() if not critical}

    def clone(self) -> "ExtensionSet":
        """Independent copy; mutating either set never affects the other."""
        copy = ExtensionSet()
        copy._entries = dict(self._entries)
        return copy

    def entries_in_canonical_order(self) -> list[ExtensionEntry]:
        return [
            ExtensionEntry(oid, critical, value)
            for oid, (critical, value) in sorted(
                self._entries.items(), key=lambda item: oid_sort_key(item[0])
            )
        ]

    def oids(self) -> list[str]:
        return sorted(self._entries, key=oid_sort_key)

    def __iter__(self) -> Iterator[ExtensionEntry]:
        return iter(self.entries_in_canonical_order())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, oid: object) -> bool:
        return oid in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExtensionSet):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"<ExtensionSet {self.oids()!r}>"
