"""Structural diff between two bundle versions.

Files are compared by the SHA-256 of their content, so no text decoding
is needed.  The bump level is inferred from which logical areas changed:

- any content-bearing file removed  -> ``major``
- any content-bearing file added or modified -> ``minor``
- anything else (assets, canvas, metadata only) -> ``patch``

Content-bearing files live under ``docs/``, ``quizzes/``,
``flashcards/`` or ``courses/``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum

from interact_bundle.bundler.manifest import CONTENT_BEARING_PREFIXES, sha256_hex
from interact_bundle.bundler.unpacker import unpack_bundle
from interact_bundle.versioning.semver import BumpLevel

logger = logging.getLogger(__name__)

# Manifest fields that change on every pack and say nothing about content.
VOLATILE_FIELDS: frozenset[str] = frozenset(
    {"id", "created_at", "updated_at", "integrity", "signature"}
)


class ChangeKind(str, Enum):
    """How a path differs between the old and new bundle."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class FileDiff:
    """Change record for one path.

    Attributes
    ----------
    path:
        Archive path.
    change:
        Kind of change.
    old_hash:
        SHA-256 of the old content; ``None`` for added files.
    new_hash:
        SHA-256 of the new content; ``None`` for removed files.
    """

    path: str
    change: ChangeKind
    old_hash: str | None = None
    new_hash: str | None = None


@dataclass(frozen=True)
class ManifestChange:
    """A top-level manifest field whose serialised value changed."""

    field: str
    old: object
    new: object


@dataclass
class BundleDiff:
    """Result of :func:`diff_bundles`."""

    from_version: str
    to_version: str
    bump_level: BumpLevel
    files: list[FileDiff] = field(default_factory=list)
    manifest_changes: list[ManifestChange] = field(default_factory=list)

    def _count(self, kind: ChangeKind) -> int:
        return sum(1 for f in self.files if f.change is kind)

    @property
    def added(self) -> int:
        return self._count(ChangeKind.ADDED)

    @property
    def removed(self) -> int:
        return self._count(ChangeKind.REMOVED)

    @property
    def modified(self) -> int:
        return self._count(ChangeKind.MODIFIED)

    @property
    def unchanged(self) -> int:
        return self._count(ChangeKind.UNCHANGED)

    def files_with(self, kind: ChangeKind) -> list[FileDiff]:
        return [f for f in self.files if f.change is kind]

    def to_dict(self) -> dict[str, object]:
        return {
            "from_version": self.from_version,
            "to_version": self.to_version,
            "bump_level": self.bump_level.value,
            "added": self.added,
            "removed": self.removed,
            "modified": self.modified,
            "unchanged": self.unchanged,
            "files": [
                {
                    "path": f.path,
                    "change": f.change.value,
                    "old_hash": f.old_hash,
                    "new_hash": f.new_hash,
                }
                for f in self.files
            ],
            "manifest_changes": [
                {"field": c.field, "from": c.old, "to": c.new}
                for c in self.manifest_changes
            ],
        }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def diff_bundles(old_data: bytes, new_data: bytes) -> BundleDiff:
    """Diff two packed bundles.

    Parameters
    ----------
    old_data:
        The previously held archive.
    new_data:
        The candidate archive.

    Returns
    -------
    BundleDiff
        Per-path changes (sorted by path), inferred bump level and
        manifest field changes.

    Raises
    ------
    BundleError
        If either archive cannot be unpacked.
    """
    old_manifest, old_files = unpack_bundle(old_data)
    new_manifest, new_files = unpack_bundle(new_data)

    old_hashes = {f.path: sha256_hex(f.content) for f in old_files}
    new_hashes = {f.path: sha256_hex(f.content) for f in new_files}

    files = compare_file_hashes(old_hashes, new_hashes)
    diff = BundleDiff(
        from_version=old_manifest.version,
        to_version=new_manifest.version,
        bump_level=infer_bump_level(files),
        files=files,
        manifest_changes=compare_manifests(
            old_manifest.to_document(), new_manifest.to_document()
        ),
    )
    logger.debug(
        "Diffed %s -> %s: +%d -%d ~%d, bump %s",
        diff.from_version,
        diff.to_version,
        diff.added,
        diff.removed,
        diff.modified,
        diff.bump_level.value,
    )
    return diff


def compare_file_hashes(
    old_hashes: dict[str, str], new_hashes: dict[str, str]
) -> list[FileDiff]:
    """Classify every path in either map, sorted by path."""
    files: list[FileDiff] = []
    for path in sorted(set(old_hashes) | set(new_hashes)):
        old_hash = old_hashes.get(path)
        new_hash = new_hashes.get(path)
        if old_hash is None:
            files.append(FileDiff(path, ChangeKind.ADDED, new_hash=new_hash))
        elif new_hash is None:
            files.append(FileDiff(path, ChangeKind.REMOVED, old_hash=old_hash))
        elif old_hash != new_hash:
            files.append(FileDiff(path, ChangeKind.MODIFIED, old_hash, new_hash))
        else:
            files.append(FileDiff(path, ChangeKind.UNCHANGED, old_hash, new_hash))
    return files


def is_content_path(path: str) -> bool:
    """Return True for paths whose changes drive bump inference."""
    return path.startswith(CONTENT_BEARING_PREFIXES)


def infer_bump_level(files: list[FileDiff]) -> BumpLevel:
    """Infer the semver bump implied by *files*."""
    if any(f.change is ChangeKind.REMOVED and is_content_path(f.path) for f in files):
        return BumpLevel.MAJOR
    if any(
        f.change in (ChangeKind.ADDED, ChangeKind.MODIFIED) and is_content_path(f.path)
        for f in files
    ):
        return BumpLevel.MINOR
    return BumpLevel.PATCH


def compare_manifests(
    old: dict[str, object], new: dict[str, object]
) -> list[ManifestChange]:
    """Report top-level fields whose serialised values differ.

    Volatile fields (identifier, timestamps, integrity, signature) are
    skipped.  A field absent on one side is reported with ``None``.
    """
    changes: list[ManifestChange] = []
    for name in sorted(set(old) | set(new)):
        if name in VOLATILE_FIELDS:
            continue
        old_value = old.get(name)
        new_value = new.get(name)
        if _serialised(old_value) != _serialised(new_value):
            changes.append(ManifestChange(name, old_value, new_value))
    return changes


def _serialised(value: object) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


__all__ = [
    "BundleDiff",
    "ChangeKind",
    "FileDiff",
    "ManifestChange",
    "VOLATILE_FIELDS",
    "compare_file_hashes",
    "compare_manifests",
    "diff_bundles",
    "infer_bump_level",
    "is_content_path",
]
