"""Command-line interface for extension templates."""

from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Annotated, Optional

import typer
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from cert_ext import ext_template
from cert_ext.cert_extensions import EXTENSIONS
from cert_ext.errors import CertExtError, EmptyAlternativeNameWarning
from cert_ext.ext_codecs import codec_for
from cert_ext.ext_editor import ExtensionEditor
from cert_ext.ext_set import ExtensionEntry, unwrap_extension_value
from cert_ext.ext_types import ExtensionKind, display_name
from cert_ext.ext_updater import update_from_context
from cert_ext.ext_values import ExtendedKeyUsage, GeneralNames, KeyUsage
from cert_ext.key_material import KeyMaterialContext

app = typer.Typer(
    name="certext",
    help="Create, inspect and refresh X.509 extension templates.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)
console = Console()

FORMAT = "%(message)s"


@app.callback()
def configure(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log every change made to the extensions")
    ] = False,
) -> None:
    """Create, inspect and refresh X.509 extension templates."""
    logging.basicConfig(
        level="DEBUG" if verbose else "WARNING",
        format=FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S %z",
        handlers=[RichHandler(console=Console(stderr=True))],
        force=True,
    )


def _load_public_key(path: Path):
    with open(path, "rb") as f:
        data = f.read()
    if b"-----BEGIN CERTIFICATE-----" in data:
        return x509.load_pem_x509_certificate(data).public_key()
    return serialization.load_pem_public_key(data)


def _common_name(cn: str | None) -> x509.Name | None:
    if cn is None:
        return None
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def _context(
    subject_key: Path | None,
    issuer_key: Path | None,
    subject: str | None = None,
    issuer: str | None = None,
    serial: int | None = None,
) -> KeyMaterialContext:
    subject_public_key = _load_public_key(subject_key) if subject_key else None
    issuer_public_key = _load_public_key(issuer_key) if issuer_key else None
    return KeyMaterialContext(
        issuer_public_key=issuer_public_key,
        issuer_name=_common_name(issuer),
        issuer_serial_number=serial,
        subject_public_key=subject_public_key,
        subject_name=_common_name(subject),
    )


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(1)


def summarize(entry: ExtensionEntry) -> str:
    """One-line description of an extension value, as rich markup."""
    kind = entry.kind
    if kind is None:
        return entry.value.hex()
    try:
        value = codec_for(kind).decode(unwrap_extension_value(entry.value))
    except CertExtError:
        return "[red]malformed[/red]"
    if isinstance(value, GeneralNames):
        text = ", ".join(str(name) for name in value) or "(empty)"
    elif isinstance(value, KeyUsage):
        text = ", ".join(sorted(purpose.value for purpose in value.purposes))
    elif isinstance(value, ExtendedKeyUsage):
        text = ", ".join(value.purposes)
    else:
        text = repr(value)
    return escape(text[:80] + "..." if len(text) > 80 else text)


@app.command()
def kinds() -> None:
    """List the supported extension kinds."""
    table = Table(title="Extension Kinds", show_header=True)
    table.add_column("OID", style="cyan")
    table.add_column("Name", style="white")
    for kind in sorted(ExtensionKind, key=lambda k: k.friendly_name):
        table.add_row(kind.oid, kind.friendly_name)
    console.print(table)


@app.command()
def show(
    template: Annotated[Path, typer.Argument(help="Path to an extension template")],
) -> None:
    """
    Display the extensions of a template.

    [bold]Examples:[/bold]

        $ certext show server.cet
    """
    try:
        extensions = ext_template.load_file(template)
    except (CertExtError, OSError) as e:
        _fail(e)

    table = Table(title=f"Template: {escape(template.name)}", show_header=True)
    table.add_column("OID", style="cyan")
    table.add_column("Extension", style="cyan")
    table.add_column("Critical", style="yellow")
    table.add_column("Value", style="white")
    for entry in extensions:
        table.add_row(
            escape(entry.oid),
            escape(display_name(entry.oid)),
            "Yes" if entry.critical else "No",
            summarize(entry),
        )
    console.print(table)


@app.command()
def standard(
    category: Annotated[str, typer.Argument(help=f"Category: {', '.join(EXTENSIONS)}")],
    output: Annotated[Path, typer.Argument(help="Output path for the template")],
    subject_key: Annotated[
        Optional[Path],
        typer.Option("--subject-key", help="PEM public key or certificate of the subject")
    ] = None,
    issuer_key: Annotated[
        Optional[Path],
        typer.Option("--issuer-key", help="PEM public key or certificate of the issuer")
    ] = None,
    subject: Annotated[
        Optional[str],
        typer.Option("--subject", "-s", help="Subject common name, used as DNS name for leaves")
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing file")
    ] = False,
) -> None:
    """
    Write a standard template.

    [bold]Examples:[/bold]

        Root CA template with its key identifier:
        $ certext standard RootCA root.cet --subject-key root.pub

        Server template:
        $ certext standard CN server.cet --subject-key server.pub --issuer-key ca.pub --subject www.example.com
    """
    if category not in EXTENSIONS:
        console.print(f"[red]Error:[/red] Invalid category '{escape(category)}'. Must be one of {', '.join(EXTENSIONS)}.")
        raise typer.Exit(1)
    if output.exists() and not force:
        console.print(f"[red]Error:[/red] {escape(str(output))} already exists, use --force to overwrite it.")
        raise typer.Exit(1)

    try:
        editor = ExtensionEditor(context=_context(subject_key, issuer_key, subject=subject))
        editor.select_standard_template(category)
        editor.save_template(output)
    except (CertExtError, OSError, ValueError) as e:
        _fail(e)

    console.print(Panel.fit(
        f"[bold green]✓[/bold green] Template written!\n\n"
        f"[bold]Output:[/bold] {escape(str(output))}\n"
        f"[bold]Extensions:[/bold] {len(editor.extensions)}",
        title=f"[bold]{category}[/bold]",
        border_style="green",
    ))


def _rewrite(template: Path, output: Path | None, change) -> None:
    try:
        editor = ExtensionEditor(ext_template.load_file(template))
        change(editor)
        editor.save_template(output or template)
    except (CertExtError, OSError, ValueError) as e:
        _fail(e)


@app.command()
def toggle(
    template: Annotated[Path, typer.Argument(help="Path to an extension template")],
    oid: Annotated[str, typer.Argument(help="OID of the extension")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write here instead of in place")
    ] = None,
) -> None:
    """Flip the critical flag of an extension."""
    _rewrite(template, output, lambda editor: editor.toggle_criticality(oid))
    console.print(f"[green]✓[/green] Toggled {escape(display_name(oid))}")


@app.command()
def remove(
    template: Annotated[Path, typer.Argument(help="Path to an extension template")],
    oid: Annotated[str, typer.Argument(help="OID of the extension")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write here instead of in place")
    ] = None,
) -> None:
    """Remove an extension."""
    _rewrite(template, output, lambda editor: editor.remove(oid))
    console.print(f"[green]✓[/green] Removed {escape(display_name(oid))}")


@app.command()
def refresh(
    template: Annotated[Path, typer.Argument(help="Path to an extension template")],
    subject_key: Annotated[
        Optional[Path],
        typer.Option("--subject-key", help="PEM public key or certificate of the subject")
    ] = None,
    issuer_key: Annotated[
        Optional[Path],
        typer.Option("--issuer-key", help="PEM public key or certificate of the issuer")
    ] = None,
    issuer: Annotated[
        Optional[str],
        typer.Option("--issuer", help="Issuer common name for the authority key identifier")
    ] = None,
    serial: Annotated[
        Optional[int],
        typer.Option("--serial", help="Issuer certificate serial number")
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write here instead of in place")
    ] = None,
) -> None:
    """
    Recompute the key identifiers of a template for new key material.

    [bold]Examples:[/bold]

        $ certext refresh server.cet --subject-key new.pub --issuer-key ca.pub
    """
    try:
        extensions = ext_template.load_file(template)
        update_from_context(extensions, _context(subject_key, issuer_key, issuer=issuer, serial=serial))
        ext_template.save_file(extensions, output or template)
    except (CertExtError, OSError, ValueError) as e:
        _fail(e)
    console.print(f"[green]✓[/green] Refreshed {escape(str(output or template))}")


@app.command()
def check(
    template: Annotated[Path, typer.Argument(help="Path to an extension template")],
) -> None:
    """Check that a template can be accepted as it is."""
    try:
        editor = ExtensionEditor(ext_template.load_file(template))
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", EmptyAlternativeNameWarning)
            result = editor.accept()
    except (CertExtError, OSError) as e:
        _fail(e)

    if result is None:
        for warning in caught:
            console.print(f"[yellow]Warning:[/yellow] {escape(str(warning.message))}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {escape(str(template))} is ready ({len(result)} extension(s))")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
