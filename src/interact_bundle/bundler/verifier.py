"""Integrity verifier for ``.ib`` bundles.

Runs every check it can and returns a complete report rather than
raising, so one call surfaces every defect.  Only an unreadable
container or an invalid manifest stops the scan early, because nothing
else can be checked without them.

Checks, in order:

- container opens and holds a schema-valid manifest (fatal)
- every recorded file is present and hashes to its recorded value
- every archive file is recorded in the integrity block
- every contents-index path has a file
- the manifest hash matches the recomputed one
- the signature matches, when a key is supplied (warning otherwise)
- archive size and declared entry point (warnings only)
"""
from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field

from interact_bundle.bundler.manifest import (
    BundleManifest,
    compute_manifest_hash,
    sha256_hex,
    validate_manifest,
)
from interact_bundle.bundler.signing import SigningKey, verify_signature
from interact_bundle.bundler.unpacker import (
    content_entries,
    open_archive,
    read_entry,
    read_manifest_document,
)
from interact_bundle.config import DEFAULT_CONFIG, BundleConfig
from interact_bundle.errors import BundleError, ErrorCode

logger = logging.getLogger(__name__)

_MIB = 1024 * 1024


@dataclass(frozen=True)
class Finding:
    """A single error or warning produced by :func:`validate_bundle`.

    Attributes
    ----------
    code:
        Category of the finding.
    message:
        Human-readable explanation.
    path:
        Archive path the finding is about, when there is one.
    """

    code: ErrorCode
    message: str
    path: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code.value, "message": self.message, "path": self.path}


@dataclass
class BundleValidationReport:
    """Aggregated outcome of verifying one bundle.

    ``valid`` is true exactly when ``errors`` is empty; warnings never
    affect it.  ``manifest`` is set only for valid bundles.
    """

    errors: list[Finding] = field(default_factory=list)
    warnings: list[Finding] = field(default_factory=list)
    manifest: BundleManifest | None = None

    @property
    def valid(self) -> bool:
        return not self.errors

    def error_codes(self) -> list[ErrorCode]:
        return [finding.code for finding in self.errors]

    def warning_codes(self) -> list[ErrorCode]:
        return [finding.code for finding in self.warnings]

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.valid,
            "errors": [finding.to_dict() for finding in self.errors],
            "warnings": [finding.to_dict() for finding in self.warnings],
        }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_bundle(
    data: bytes,
    verify_key: SigningKey | None = None,
    *,
    config: BundleConfig | None = None,
) -> BundleValidationReport:
    """Verify the structure, integrity and signature of a bundle.

    Never raises for content problems.

    Parameters
    ----------
    data:
        Archive bytes.
    verify_key:
        Key to check the signature with.  Without it a signed bundle
        only earns a ``SIGNATURE_UNVERIFIED`` warning.
    config:
        Supplies the oversized-archive threshold.

    Returns
    -------
    BundleValidationReport
        Every error and warning found.
    """
    cfg = config if config is not None else DEFAULT_CONFIG

    try:
        archive = open_archive(data)
    except BundleError as exc:
        return _fatal(exc)

    with archive:
        try:
            document = read_manifest_document(archive)
        except BundleError as exc:
            return _fatal(exc)

        result = validate_manifest(document)
        if isinstance(result, list):
            return BundleValidationReport(
                errors=[
                    Finding(ErrorCode.SCHEMA_VIOLATION, f"Invalid manifest: {violation}")
                    for violation in result
                ]
            )
        manifest = result
        entries = {info.filename: info for info in content_entries(archive)}

        errors: list[Finding] = []
        warnings: list[Finding] = []

        missing = _check_file_hashes(archive, entries, manifest, errors)
        _check_untracked_files(entries, manifest, errors)
        _check_contents_index(entries, manifest, missing, errors)
        # document is known to be a dict once validation has passed
        _check_manifest_hash(document, manifest, errors)  # type: ignore[arg-type]
        _check_signature(manifest, verify_key, errors, warnings)
        _check_size(len(data), cfg, warnings)
        _check_entry_point(entries, manifest, warnings)

    report = BundleValidationReport(
        errors=errors,
        warnings=warnings,
        manifest=manifest if not errors else None,
    )
    logger.debug(
        "Validated bundle %s: %d error(s), %d warning(s)",
        manifest.id,
        len(errors),
        len(warnings),
    )
    return report


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def _fatal(exc: BundleError) -> BundleValidationReport:
    logger.debug("Bundle rejected before integrity checks: %s", exc)
    return BundleValidationReport(errors=[Finding(exc.code, exc.message)])


def _check_file_hashes(
    archive: zipfile.ZipFile,
    entries: dict[str, zipfile.ZipInfo],
    manifest: BundleManifest,
    errors: list[Finding],
) -> set[str]:
    """Recompute every recorded file hash; return the paths found missing."""
    missing: set[str] = set()
    for path, expected in sorted(manifest.integrity.files.items()):
        info = entries.get(path)
        if info is None:
            missing.add(path)
            errors.append(Finding(ErrorCode.FILE_MISSING, f"Missing file: {path}", path))
            continue
        try:
            actual = sha256_hex(read_entry(archive, info))
        except BundleError as exc:
            errors.append(Finding(ErrorCode.INTEGRITY_FAILURE, exc.message, path))
            continue
        if actual != expected:
            errors.append(
                Finding(
                    ErrorCode.INTEGRITY_FAILURE,
                    f"Integrity failure: {path} "
                    f"(expected {expected[:8]}..., got {actual[:8]}...)",
                    path,
                )
            )
    return missing


def _check_untracked_files(
    entries: dict[str, zipfile.ZipInfo],
    manifest: BundleManifest,
    errors: list[Finding],
) -> None:
    recorded = manifest.integrity.files
    for path in sorted(entries):
        if path not in recorded:
            errors.append(
                Finding(
                    ErrorCode.UNTRACKED_FILE,
                    f"File not covered by the integrity block: {path}",
                    path,
                )
            )


def _check_contents_index(
    entries: dict[str, zipfile.ZipInfo],
    manifest: BundleManifest,
    already_missing: set[str],
    errors: list[Finding],
) -> None:
    for path in sorted(set(manifest.contents.all_paths())):
        if path not in entries and path not in already_missing:
            errors.append(
                Finding(
                    ErrorCode.FILE_MISSING,
                    f"Contents index lists a missing file: {path}",
                    path,
                )
            )


def _check_manifest_hash(
    document: dict[str, object],
    manifest: BundleManifest,
    errors: list[Finding],
) -> None:
    expected = compute_manifest_hash(document)
    if expected != manifest.integrity.manifest_hash:
        errors.append(
            Finding(
                ErrorCode.MANIFEST_TAMPERED,
                "Manifest hash mismatch: bundle may have been tampered with",
            )
        )


def _check_signature(
    manifest: BundleManifest,
    verify_key: SigningKey | None,
    errors: list[Finding],
    warnings: list[Finding],
) -> None:
    if manifest.signature is None:
        return
    if verify_key is None:
        warnings.append(
            Finding(
                ErrorCode.SIGNATURE_UNVERIFIED,
                "Bundle is signed but no verify key was provided; signature not checked",
            )
        )
        return
    if not verify_signature(
        manifest.integrity.manifest_hash, manifest.signature.value, verify_key
    ):
        errors.append(Finding(ErrorCode.SIGNATURE_INVALID, "Signature verification failed"))


def _check_size(size: int, cfg: BundleConfig, warnings: list[Finding]) -> None:
    if size > cfg.size_warning_bytes:
        logger.debug("Oversized bundle: %d bytes", size)
        warnings.append(
            Finding(ErrorCode.SIZE_WARNING, f"Large bundle: {size / _MIB:.1f} MB")
        )


def _check_entry_point(
    entries: dict[str, zipfile.ZipInfo],
    manifest: BundleManifest,
    warnings: list[Finding],
) -> None:
    if manifest.entry and manifest.entry not in entries:
        warnings.append(
            Finding(
                ErrorCode.ENTRY_MISSING,
                f"Entry point not found in bundle: {manifest.entry}",
                manifest.entry,
            )
        )


__all__ = [
    "BundleValidationReport",
    "Finding",
    "validate_bundle",
]
