"""
Extension templates: an ExtensionSet saved on its own, outside a certificate.

The file format is the DER encoding of the X.509 Extensions structure::

    Extensions ::= SEQUENCE SIZE (1..MAX) OF Extension

    Extension ::= SEQUENCE {
        extnID      OBJECT IDENTIFIER,
        critical    BOOLEAN DEFAULT FALSE,
        extnValue   OCTET STRING }

so a template is byte for byte what a certificate carries in its extensions
field. Empty sets are saved as an empty SEQUENCE.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from cert_ext import asn1_types
from cert_ext.errors import TemplateLoadError
from cert_ext.ext_set import ExtensionSet, unwrap_extension_value, wrap_extension_value

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TEMPLATE_SUFFIX = ".cet"


def save(extensions: ExtensionSet) -> bytes:
    """Serialize ``extensions`` in canonical order."""
    return asn1_types.Extensions([
        asn1_types.Extension({
            'extn_id': entry.oid,
            'critical': entry.critical,
            'extn_value': unwrap_extension_value(entry.value),
        })
        for entry in extensions.entries_in_canonical_order()
    ]).dump()


def load(data: bytes) -> ExtensionSet:
    """
    Parse a template.

    Raises TemplateLoadError when ``data`` is not a DER Extensions SEQUENCE,
    including trailing data and repeated OIDs. Values of unknown extensions
    are kept as they are.
    """
    extensions = ExtensionSet()
    try:
        parsed = asn1_types.Extensions.load(data, strict=True)
        for extension in parsed:
            oid = extension['extn_id'].dotted
            if oid in extensions:
                raise TemplateLoadError(f"Extension {oid} appears more than once")
            extensions.add_extension(
                oid,
                bool(extension['critical'].native),
                wrap_extension_value(extension['extn_value'].native),
            )
    except TemplateLoadError:
        raise
    except (ValueError, TypeError, KeyError) as e:
        raise TemplateLoadError(f"Not an extensions template: {e}") from e
    return extensions


def save_file(extensions: ExtensionSet, path: PathLike) -> Path:
    """Write a template file; OSError propagates."""
    path = Path(path)
    with open(path, "wb") as f:
        f.write(save(extensions))
    logger.info("Saved %d extension(s) to %s", len(extensions), path)
    return path


def load_file(path: PathLike) -> ExtensionSet:
    """Read a template file; OSError propagates, bad content raises TemplateLoadError."""
    path = Path(path)
    with open(path, "rb") as f:
        data = f.read()
    extensions = load(data)
    logger.info("Loaded %d extension(s) from %s", len(extensions), path)
    return extensions
