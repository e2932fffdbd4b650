"""Signer — attach an HMAC signature to an already-packed bundle.

The bundle is re-packed with its existing metadata and its existing
``updated_at`` timestamp, so an unmodified bundle reproduces the same
manifest hash and the new signature covers exactly that hash.
"""
from __future__ import annotations

import logging

from interact_bundle.bundler.packager import ManifestDraft, pack_bundle
from interact_bundle.bundler.signing import SigningKey, sign_manifest_hash
from interact_bundle.bundler.unpacker import unpack_bundle
from interact_bundle.bundler.verifier import validate_bundle
from interact_bundle.config import BundleConfig
from interact_bundle.errors import BundleError

logger = logging.getLogger(__name__)


def ensure_intact(data: bytes, config: BundleConfig | None = None) -> None:
    """Raise unless *data* passes integrity verification.

    Signatures are not checked here (no key is supplied), so a bundle
    signed with another key is still accepted.

    Raises
    ------
    BundleError
        Carrying the code of the first error found.
    """
    report = validate_bundle(data, config=config)
    if not report.valid:
        first = report.errors[0]
        logger.error(
            "Refusing to re-pack bundle that failed verification: %s",
            ", ".join(code.value for code in report.error_codes()),
        )
        raise BundleError(
            first.code,
            "source bundle failed verification: "
            + "; ".join(finding.message for finding in report.errors),
        )


def sign_bundle(
    data: bytes,
    sign_key: SigningKey,
    *,
    config: BundleConfig | None = None,
    verify: bool = True,
) -> bytes:
    """Sign (or re-sign) a packed bundle.

    Parameters
    ----------
    data:
        Archive bytes.
    sign_key:
        HMAC key.  An existing signature is replaced.
    config:
        Packing configuration used for the re-pack.
    verify:
        When ``True`` (default) the source must pass integrity
        verification first, so tampered content is never re-sealed.

    Returns
    -------
    bytes
        The signed archive.

    Raises
    ------
    BundleError
        If the source cannot be unpacked or fails verification.
    """
    if verify:
        ensure_intact(data, config)

    manifest, files = unpack_bundle(data)
    expected_signature = sign_manifest_hash(manifest.integrity.manifest_hash, sign_key)

    signed = pack_bundle(
        files,
        ManifestDraft.from_manifest(manifest),
        sign_key,
        config=config,
        timestamp=manifest.updated_at,
    )

    resealed = unpack_bundle(signed).manifest
    if resealed.signature is None or resealed.signature.value != expected_signature:
        logger.warning(
            "Manifest hash of %s changed on re-pack (%s -> %s); "
            "signature covers the re-derived hash",
            manifest.id,
            manifest.integrity.manifest_hash[:12],
            resealed.integrity.manifest_hash[:12],
        )
    logger.info("Signed bundle %s v%s", manifest.id, manifest.version)
    return signed


__all__ = [
    "ensure_intact",
    "sign_bundle",
]
