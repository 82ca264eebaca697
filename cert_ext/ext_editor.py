"""
Editing session over an ExtensionSet.

The editor owns a clone of the set it is given, so the caller's set is never
touched until accept() hands back the edited copy. cancel() discards it.
"""

from __future__ import annotations

import logging
import warnings
from typing import NamedTuple

from cert_ext import ext_template
from cert_ext.cert_extensions import standard_template
from cert_ext.errors import EmptyAlternativeNameWarning, ExtensionValidationError
from cert_ext.ext_codecs import codec_for
from cert_ext.ext_set import ExtensionSet, unwrap_extension_value, wrap_extension_value
from cert_ext.ext_types import ExtensionKind, display_name, resolve
from cert_ext.ext_updater import update_from_context
from cert_ext.ext_validation import is_alternative_name_empty, validate_value
from cert_ext.ext_values import ExtensionValue
from cert_ext.key_material import KeyMaterialContext

logger = logging.getLogger(__name__)


class ExtensionRow(NamedTuple):
    oid: str
    name: str
    critical: bool
    known: bool


class ExtensionEditor:
    """
    Add, edit, toggle and remove extensions, then accept or cancel.

    ``context`` supplies the key material used to derive key identifiers and
    to refresh loaded templates.
    """

    def __init__(self, extensions: ExtensionSet | None = None,
                 context: KeyMaterialContext | None = None) -> None:
        self.extensions = extensions.clone() if extensions is not None else ExtensionSet()
        self.context = context if context is not None else KeyMaterialContext()
        self.result: ExtensionSet | None = None
        self.closed = False

    def _encode(self, kind: ExtensionKind, value: ExtensionValue) -> bytes:
        validate_value(kind, value, self.context)
        return wrap_extension_value(codec_for(kind).encode(value, self.context))

    def add(self, kind: ExtensionKind, value: ExtensionValue, critical: bool = False) -> None:
        """Add an extension of a kind not yet in the set."""
        if kind.oid in self.extensions:
            raise ExtensionValidationError(f"{kind.friendly_name} is already present, edit it instead")
        self.extensions.add_extension(kind.oid, critical, self._encode(kind, value))
        logger.info("Added %s", kind.friendly_name)

    def edit(self, oid: str, value: ExtensionValue) -> None:
        """Replace the value of a present extension of a known kind, keeping its critical flag."""
        kind = self._known_kind(oid)
        if oid not in self.extensions:
            raise KeyError(oid)
        self.extensions.add_extension(oid, self.extensions.is_critical(oid), self._encode(kind, value))
        logger.info("Edited %s", kind.friendly_name)

    def value_of(self, oid: str) -> ExtensionValue:
        """Decoded value of a present extension of a known kind; DecodeError when malformed."""
        kind = self._known_kind(oid)
        value = self.extensions.get_extension_value(oid)
        if value is None:
            raise KeyError(oid)
        return codec_for(kind).decode(unwrap_extension_value(value))

    def toggle_criticality(self, oid: str) -> None:
        self.extensions.toggle_extension_criticality(oid)

    def remove(self, oid: str) -> None:
        self.extensions.remove_extension(oid)

    def rows(self) -> list[ExtensionRow]:
        """One row per extension in canonical order, unknown OIDs shown as such."""
        return [
            ExtensionRow(entry.oid, display_name(entry.oid), entry.critical, entry.kind is not None)
            for entry in self.extensions
        ]

    def select_standard_template(self, category: str) -> None:
        """Replace the working set with a standard template built from the key material."""
        self.extensions = standard_template(category, self.context)
        logger.info("Selected standard template %s", category)

    def load_template(self, path: ext_template.PathLike) -> None:
        """
        Replace the working set with a template file refreshed for the current key material.

        On any error the working set is unchanged.
        """
        loaded = ext_template.load_file(path)
        update_from_context(loaded, self.context)
        self.extensions = loaded

    def save_template(self, path: ext_template.PathLike) -> None:
        ext_template.save_file(self.extensions, path)

    def accept(self, confirmed: bool = False) -> ExtensionSet | None:
        """
        Finish editing and return the edited set.

        A present but empty Subject Alternative Name issues
        EmptyAlternativeNameWarning and keeps the session open, unless
        ``confirmed`` is true.
        """
        if not confirmed and is_alternative_name_empty(self.extensions):
            warnings.warn(
                "The Subject Alternative Name extension is empty",
                EmptyAlternativeNameWarning,
                stacklevel=2,
            )
            return None
        self.result = self.extensions
        self.closed = True
        return self.result

    def cancel(self) -> None:
        """Finish editing without a result."""
        self.result = None
        self.closed = True

    def _known_kind(self, oid: str) -> ExtensionKind:
        kind = resolve(oid)
        if kind is None:
            raise ExtensionValidationError(f"{oid} is not a supported extension kind")
        return kind
