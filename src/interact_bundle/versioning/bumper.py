"""Version bumper — publish a new version of an existing bundle.

Content-preserving: the file set is re-packed unchanged and only
manifest metadata (version, optional changelog, timestamps) moves.
Re-signing happens only when a key is passed; a signed source bundle
bumped without a key comes out unsigned.
"""
from __future__ import annotations

import logging
from typing import Union

from interact_bundle.bundler.packager import ManifestDraft, pack_bundle
from interact_bundle.bundler.signer import ensure_intact
from interact_bundle.bundler.signing import SigningKey
from interact_bundle.bundler.unpacker import unpack_bundle
from interact_bundle.config import BundleConfig
from interact_bundle.errors import BundleError
from interact_bundle.versioning.semver import BumpLevel, bump_version

logger = logging.getLogger(__name__)


def append_changelog(description: str, version: str, changelog: str | None) -> str:
    """Append a ``[vX.Y.Z] note`` paragraph to *description*."""
    if not changelog:
        return description
    return f"{description}\n\n[v{version}] {changelog}".strip()


def bump_bundle_version(
    data: bytes,
    level: Union[BumpLevel, str],
    changelog: str | None = None,
    sign_key: SigningKey | None = None,
    *,
    config: BundleConfig | None = None,
    verify: bool = True,
) -> bytes:
    """Increment a bundle's version and re-pack it.

    Parameters
    ----------
    data:
        Source archive bytes.
    level:
        ``"major"``, ``"minor"`` or ``"patch"``.
    changelog:
        Optional note appended to the description.
    sign_key:
        Sign the bumped bundle with this key.  There is no implicit
        fallback to the source signature.
    config:
        Packing configuration used for the re-pack.
    verify:
        When ``True`` (default) the source must pass integrity
        verification first.

    Returns
    -------
    bytes
        The bumped archive.

    Raises
    ------
    ValueError
        If *level* is not a bump level.
    SemverError
        If the source version is malformed.
    BundleError
        If the source cannot be unpacked, fails verification, or the
        bumped manifest is invalid (e.g. description too long).
    """
    bump = BumpLevel(level)
    if verify:
        ensure_intact(data, config)

    manifest, files = unpack_bundle(data)
    new_version = bump_version(manifest.version, bump)

    draft = ManifestDraft.from_manifest(manifest).model_copy(
        update={
            "version": new_version,
            "description": append_changelog(manifest.description, new_version, changelog),
        }
    )

    if manifest.signature is not None and sign_key is None:
        logger.warning(
            "Bundle %s was signed; bumped version %s is unsigned (no sign key given)",
            manifest.id,
            new_version,
        )

    try:
        bumped = pack_bundle(files, draft, sign_key, config=config)
    except BundleError as exc:
        logger.error("Bump of %s to %s failed: %s", manifest.id, new_version, exc)
        raise
    logger.info(
        "Bumped bundle %s %s -> %s (%s)",
        manifest.id,
        manifest.version,
        new_version,
        bump.value,
    )
    return bumped


__all__ = [
    "append_changelog",
    "bump_bundle_version",
]
