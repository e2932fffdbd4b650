"""Bundle versioning: semver arithmetic, bundle diffing and version bumps."""
from __future__ import annotations

from interact_bundle.versioning.bumper import bump_bundle_version
from interact_bundle.versioning.differ import (
    BundleDiff,
    ChangeKind,
    FileDiff,
    ManifestChange,
    diff_bundles,
    infer_bump_level,
)
from interact_bundle.versioning.semver import BumpLevel, bump_version, compare_semver, parse_semver

__all__ = [
    "BumpLevel",
    "BundleDiff",
    "ChangeKind",
    "FileDiff",
    "ManifestChange",
    "bump_bundle_version",
    "bump_version",
    "compare_semver",
    "diff_bundles",
    "infer_bump_level",
    "parse_semver",
]
