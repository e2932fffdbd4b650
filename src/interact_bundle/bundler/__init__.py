"""Bundle packaging and integrity engine.

Submodules
----------
- ``manifest``   BundleManifest schema, validate_manifest, canonical hashing
- ``packager``   pack_bundle, BundleFile, ManifestDraft
- ``unpacker``   unpack_bundle (structural read, no integrity checks)
- ``verifier``   validate_bundle, BundleValidationReport, Finding
- ``signing``    HMAC-SHA256 primitives over the manifest hash
- ``signer``     sign_bundle for already-packed bundles
- ``summary``    bundle_size, bundle_summary, build_deep_link, generate_bundle_qr
"""
from __future__ import annotations

from interact_bundle.bundler.manifest import (
    AccessTier,
    BundleAuthor,
    BundleContents,
    BundleIntegrity,
    BundleManifest,
    BundleSignature,
    Violation,
    compute_manifest_hash,
    validate_manifest,
)
from interact_bundle.bundler.packager import (
    BundleFile,
    ManifestDraft,
    collect_directory,
    pack_bundle,
)
from interact_bundle.bundler.signer import sign_bundle
from interact_bundle.bundler.summary import (
    BundleSize,
    build_deep_link,
    bundle_size,
    bundle_summary,
    generate_bundle_qr,
)
from interact_bundle.bundler.unpacker import UnpackedBundle, unpack_bundle
from interact_bundle.bundler.verifier import BundleValidationReport, Finding, validate_bundle

__all__ = [
    # Manifest
    "AccessTier",
    "BundleAuthor",
    "BundleContents",
    "BundleIntegrity",
    "BundleManifest",
    "BundleSignature",
    "Violation",
    "compute_manifest_hash",
    "validate_manifest",
    # Packer / unpacker
    "BundleFile",
    "ManifestDraft",
    "UnpackedBundle",
    "collect_directory",
    "pack_bundle",
    "unpack_bundle",
    # Verification and signing
    "BundleValidationReport",
    "Finding",
    "sign_bundle",
    "validate_bundle",
    # Display
    "BundleSize",
    "build_deep_link",
    "bundle_size",
    "bundle_summary",
    "generate_bundle_qr",
]
