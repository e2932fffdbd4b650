"""CLI entry point for interact-bundle.

Invoked as::

    interact-bundle [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m interact_bundle.cli.main

Commands
--------
- ``pack``      Pack a source directory and a manifest draft into a ``.ib`` bundle.
- ``validate``  Verify a bundle's structure, integrity and signature.
- ``sign``      Sign (or re-sign) a packed bundle.
- ``bump``      Increment a bundle's version and re-pack it.
- ``diff``      Compare two bundles and infer the bump level.
- ``inspect``   Show size, contents summary, import deep link and QR code.

Exit code is 0 on success and 1 on any reported error.
"""
from __future__ import annotations

import base64
import json
import logging
import sys
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from interact_bundle.config import BundleConfig, load_config
from interact_bundle.errors import BundleError, SemverError

console = Console()

_KEY_ENVVAR = "INTERACT_BUNDLE_SIGN_KEY"


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(1)


def _config(ctx: click.Context) -> BundleConfig:
    return ctx.obj["config"]


def _read_bundle(path: Path) -> bytes:
    if path.suffix.lower() != ".ib":
        console.print(
            f"[yellow]Warning:[/yellow] expected .ib extension, got {escape(path.suffix or '(none)')}"
        )
    return path.read_bytes()


@click.group()
@click.version_option(package_name="interact-bundle")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML file overriding packing and verification defaults.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """Pack, verify, sign, diff and version .ib learning-content bundles"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        base = load_config(config_path) if config_path is not None else None
        config = BundleConfig.from_env(base=base)
    except ValueError as exc:
        _fail(f"invalid configuration: {exc}")
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from interact_bundle import __version__

    console.print(f"[bold]interact-bundle[/bold] v{__version__}")


# ---------------------------------------------------------------------------
# pack
# ---------------------------------------------------------------------------


@cli.command(name="pack")
@click.argument(
    "source_dir",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--manifest",
    "-m",
    "manifest_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Manifest draft (YAML or JSON).",
)
@click.option("--key", "-k", envvar=_KEY_ENVVAR, default=None, help="Sign with this HMAC key.")
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output path. Default: <slug>-<version>.ib next to SOURCE_DIR.",
)
@click.pass_context
def pack_command(
    ctx: click.Context,
    source_dir: Path,
    manifest_path: Path,
    key: str | None,
    out: Path | None,
) -> None:
    """Pack SOURCE_DIR into a .ib bundle.

    Examples:

    \b
        interact-bundle pack ./algebra --manifest draft.yaml
        interact-bundle pack ./algebra -m draft.json --key my-secret -o algebra.ib
    """
    from interact_bundle.bundler.packager import collect_directory, pack_bundle
    from interact_bundle.bundler.unpacker import unpack_bundle

    try:
        draft = yaml.safe_load(manifest_path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, ValueError) as exc:
        _fail(f"cannot read manifest draft {manifest_path}: {exc}")
    if not isinstance(draft, dict):
        _fail(f"manifest draft must be a mapping: {manifest_path}")

    try:
        data = pack_bundle(collect_directory(source_dir), draft, key, config=_config(ctx))
    except (BundleError, ValueError) as exc:
        _fail(str(exc))

    manifest = unpack_bundle(data).manifest
    if out is None:
        out = source_dir.parent / f"{manifest.slug}-{manifest.version}.ib"
    out.write_bytes(data)

    console.print(
        Panel(
            f"[bold green]{escape(manifest.name)}[/bold green]  v{manifest.version}",
            title="Bundle Packed",
            expand=False,
        )
    )
    console.print(f"  ID      : {manifest.id}")
    console.print(f"  Files   : {len(manifest.integrity.files)}")
    console.print(f"  Signed  : {'yes' if manifest.signature else 'no'}")
    console.print(f"  Output  : {escape(str(out))}")


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@cli.command(name="validate")
@click.argument("bundle", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--key", "-k", envvar=_KEY_ENVVAR, default=None, help="Verify the signature with this key.")
@click.option("--json-output", is_flag=True, default=False, help="Output results as JSON.")
@click.pass_context
def validate_command(
    ctx: click.Context,
    bundle: Path,
    key: str | None,
    json_output: bool,
) -> None:
    """Verify BUNDLE's structure, file hashes, manifest hash and signature.

    Examples:

    \b
        interact-bundle validate algebra.ib
        interact-bundle validate algebra.ib --key my-secret --json-output
    """
    from interact_bundle.bundler.summary import bundle_size, bundle_summary
    from interact_bundle.bundler.verifier import validate_bundle

    data = _read_bundle(bundle)
    report = validate_bundle(data, key, config=_config(ctx))

    if json_output:
        console.print_json(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.valid else 1)

    size = bundle_size(data)
    console.print(f"[bold]{escape(bundle.name)}[/bold]  {size.human} ({size.bytes:,} bytes)")

    if report.errors:
        console.print("\n[bold red]Errors:[/bold red]")
        for finding in report.errors:
            console.print(f"  [red]x[/red] {escape(finding.message)}")
    if report.warnings:
        console.print("\n[bold yellow]Warnings:[/bold yellow]")
        for finding in report.warnings:
            console.print(f"  [yellow]![/yellow] {escape(finding.message)}")

    manifest = report.manifest
    if manifest is not None:
        table = Table(title="Manifest", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("ID", manifest.id)
        table.add_row("Name", escape(manifest.name))
        table.add_row("Version", manifest.version)
        author = manifest.author.name + (f" <{manifest.author.email}>" if manifest.author.email else "")
        table.add_row("Author", escape(author))
        table.add_row("License", escape(manifest.license))
        table.add_row("Access", manifest.access.value)
        table.add_row("Contents", bundle_summary(manifest))
        if manifest.signature is not None:
            status = "VERIFIED" if key else "UNVERIFIED (no key)"
            table.add_row("Signature", f"{status}, signed {manifest.signature.signed_at}")
        console.print(table)

    if report.valid:
        console.print("\n[green]VALID:[/green] bundle passed all checks.")
    else:
        console.print(f"\n[red]INVALID:[/red] {len(report.errors)} error(s) found.")
        sys.exit(1)


# ---------------------------------------------------------------------------
# sign
# ---------------------------------------------------------------------------


@cli.command(name="sign")
@click.argument("bundle", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--key", "-k", envvar=_KEY_ENVVAR, required=True, help="HMAC signing key.")
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output path. Default: <name>-signed.ib",
)
@click.pass_context
def sign_command(ctx: click.Context, bundle: Path, key: str, out: Path | None) -> None:
    """Sign BUNDLE with an HMAC key."""
    from interact_bundle.bundler.signer import sign_bundle

    try:
        signed = sign_bundle(_read_bundle(bundle), key, config=_config(ctx))
    except (BundleError, ValueError) as exc:
        _fail(str(exc))

    out = out or bundle.with_name(f"{bundle.stem}-signed.ib")
    out.write_bytes(signed)
    console.print(f"[green]Signed bundle written to:[/green] {escape(str(out))}")


# ---------------------------------------------------------------------------
# bump
# ---------------------------------------------------------------------------


@cli.command(name="bump")
@click.argument("bundle", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument(
    "level",
    type=click.Choice(["major", "minor", "patch"]),
    default="patch",
    required=False,
)
@click.option("--changelog", "-c", default=None, help="Changelog note appended to the description.")
@click.option("--key", "-k", envvar=_KEY_ENVVAR, default=None, help="Re-sign the bumped bundle with this key.")
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output path. Default: <name>-bumped.ib",
)
@click.pass_context
def bump_command(
    ctx: click.Context,
    bundle: Path,
    level: str,
    changelog: str | None,
    key: str | None,
    out: Path | None,
) -> None:
    """Increment BUNDLE's version at LEVEL (default: patch).

    Examples:

    \b
        interact-bundle bump algebra.ib patch
        interact-bundle bump algebra.ib minor --changelog "Added Chapter 5"
    """
    from interact_bundle.versioning.bumper import bump_bundle_version
    from interact_bundle.versioning.differ import diff_bundles

    data = _read_bundle(bundle)
    try:
        bumped = bump_bundle_version(data, level, changelog, key, config=_config(ctx))
    except (BundleError, SemverError, ValueError) as exc:
        _fail(str(exc))

    out = out or bundle.with_name(f"{bundle.stem}-bumped.ib")
    out.write_bytes(bumped)

    diff = diff_bundles(data, bumped)
    console.print(f"  Bump      : {level}")
    console.print(f"  Version   : {diff.from_version} -> [green]{diff.to_version}[/green]")
    if changelog:
        console.print(f"  Changelog : {escape(changelog)}")
    console.print(f"  Signed    : {'yes' if key else 'no'}")
    console.print(f"  Output    : {escape(str(out))}")


# ---------------------------------------------------------------------------
# diff
# ---------------------------------------------------------------------------


@cli.command(name="diff")
@click.argument("old", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json-output", is_flag=True, default=False, help="Output results as JSON.")
def diff_command(old: Path, new: Path, json_output: bool) -> None:
    """Compare OLD and NEW bundles file by file.

    Examples:

    \b
        interact-bundle diff algebra-1.0.0.ib algebra-1.1.0.ib
    """
    from interact_bundle.versioning.differ import ChangeKind, diff_bundles
    from interact_bundle.versioning.semver import compare_semver

    try:
        diff = diff_bundles(_read_bundle(old), _read_bundle(new))
    except BundleError as exc:
        _fail(str(exc))

    if json_output:
        console.print_json(json.dumps(diff.to_dict(), indent=2))
        return

    try:
        order = compare_semver(diff.from_version, diff.to_version)
    except SemverError:
        order = 0
    direction = {-1: "[green]upgrade[/green]", 0: "[dim]same[/dim]", 1: "[red]downgrade[/red]"}[order]
    console.print(f"  From       : {diff.from_version} -> {diff.to_version}  {direction}")
    console.print(f"  Bump level : [bold]{diff.bump_level.value}[/bold]\n")

    changed = [f for f in diff.files if f.change is not ChangeKind.UNCHANGED]
    if changed:
        table = Table(title="File Changes", show_header=True)
        table.add_column("Change", min_width=10)
        table.add_column("Path", style="cyan")
        table.add_column("Old hash", style="dim")
        table.add_column("New hash", style="dim")
        styles = {
            ChangeKind.ADDED: "[green]added[/green]",
            ChangeKind.REMOVED: "[red]removed[/red]",
            ChangeKind.MODIFIED: "[yellow]modified[/yellow]",
        }
        for f in changed:
            table.add_row(
                styles[f.change],
                escape(f.path),
                (f.old_hash or "")[:12],
                (f.new_hash or "")[:12],
            )
        console.print(table)
    console.print(f"  Unchanged: {diff.unchanged} file(s)")

    if diff.manifest_changes:
        console.print("\n[bold cyan]Manifest changes:[/bold cyan]")
        for change in diff.manifest_changes:
            console.print(
                f"  {change.field}: {escape(json.dumps(change.old))} -> {escape(json.dumps(change.new))}"
            )

    console.print(f"\n  +{diff.added}  -{diff.removed}  ~{diff.modified}")


# ---------------------------------------------------------------------------
# inspect
# ---------------------------------------------------------------------------


@cli.command(name="inspect")
@click.argument("bundle", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--url", default=None, help="Public URL of the bundle, for the import deep link and QR code.")
@click.option(
    "--qr-out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write the QR code for --url to this PNG file.",
)
def inspect_command(bundle: Path, url: str | None, qr_out: Path | None) -> None:
    """Show BUNDLE's size, contents summary and (with --url) import deep link and QR code.

    Examples:

    \b
        interact-bundle inspect algebra.ib
        interact-bundle inspect algebra.ib --url https://cdn.example.org/algebra.ib --qr-out qr.png
    """
    from interact_bundle.bundler.summary import (
        build_deep_link,
        bundle_size,
        bundle_summary,
        generate_bundle_qr,
    )
    from interact_bundle.bundler.unpacker import unpack_bundle

    if qr_out is not None and not url:
        _fail("--qr-out requires --url")

    data = _read_bundle(bundle)
    try:
        manifest = unpack_bundle(data).manifest
    except BundleError as exc:
        _fail(str(exc))

    size = bundle_size(data)
    console.print(
        Panel(
            f"[bold]{escape(manifest.name)}[/bold]  v{manifest.version}",
            title=manifest.slug,
            expand=False,
        )
    )
    console.print(f"  Size     : {size.human}")
    console.print(f"  Contents : {bundle_summary(manifest)}")
    if manifest.entry:
        console.print(f"  Entry    : {escape(manifest.entry)}")
    if url:
        console.print(f"  Link     : {build_deep_link(url)}", soft_wrap=True)
        qr_uri = generate_bundle_qr(url)
        console.print(f"  QR       : {qr_uri}", soft_wrap=True)
        if qr_out is not None:
            qr_out.write_bytes(base64.b64decode(qr_uri.split(",", 1)[1]))
            console.print(f"  QR file  : {escape(str(qr_out))}")


if __name__ == "__main__":
    cli()
