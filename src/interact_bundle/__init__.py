"""interact-bundle — portable, tamper-evident ``.ib`` learning-content bundles.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import interact_bundle
>>> interact_bundle.__version__
'0.1.0'

Packing and verifying
---------------------
>>> from interact_bundle import BundleFile, pack_bundle, validate_bundle
>>> data = pack_bundle(
...     [BundleFile("docs/ch1.md", b"# Chapter 1")],
...     {"name": "Algebra Basics", "author": {"name": "A. Teacher"}},
... )
>>> validate_bundle(data).valid
True

Versioning
----------
>>> from interact_bundle import bump_bundle_version, diff_bundles
>>> diff_bundles(data, bump_bundle_version(data, "minor")).to_version
'1.1.0'
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ---------------------------------------------------------------------------
# Bundler
# ---------------------------------------------------------------------------
from interact_bundle.bundler.manifest import (
    AccessTier,
    BundleAuthor,
    BundleContents,
    BundleIntegrity,
    BundleManifest,
    BundleSignature,
    Violation,
    validate_manifest,
)
from interact_bundle.bundler.packager import BundleFile, ManifestDraft, pack_bundle
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

# ---------------------------------------------------------------------------
# Versioning
# ---------------------------------------------------------------------------
from interact_bundle.versioning.bumper import bump_bundle_version
from interact_bundle.versioning.differ import BundleDiff, ChangeKind, FileDiff, ManifestChange, diff_bundles
from interact_bundle.versioning.semver import BumpLevel, bump_version, compare_semver, parse_semver

# ---------------------------------------------------------------------------
# Config and errors
# ---------------------------------------------------------------------------
from interact_bundle.config import BundleConfig, load_config
from interact_bundle.errors import BundleError, ErrorCode, SemverError

__all__ = [
    "__version__",
    # Bundler
    "AccessTier",
    "BundleAuthor",
    "BundleContents",
    "BundleFile",
    "BundleIntegrity",
    "BundleManifest",
    "BundleSignature",
    "BundleSize",
    "BundleValidationReport",
    "Finding",
    "ManifestDraft",
    "UnpackedBundle",
    "Violation",
    "build_deep_link",
    "bundle_size",
    "bundle_summary",
    "generate_bundle_qr",
    "pack_bundle",
    "sign_bundle",
    "unpack_bundle",
    "validate_bundle",
    "validate_manifest",
    # Versioning
    "BumpLevel",
    "BundleDiff",
    "ChangeKind",
    "FileDiff",
    "ManifestChange",
    "bump_bundle_version",
    "bump_version",
    "compare_semver",
    "diff_bundles",
    "parse_semver",
    # Config and errors
    "BundleConfig",
    "BundleError",
    "ErrorCode",
    "SemverError",
    "load_config",
]
