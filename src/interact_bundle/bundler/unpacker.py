"""Bundle unpacker — structural read of a ``.ib`` archive.

Opens the ZIP container, reads and schema-validates ``manifest.json``
and returns every other entry as a :class:`BundleFile`.  No integrity
checking happens here; see :mod:`interact_bundle.bundler.verifier`.

The lower-level helpers (:func:`open_archive`, :func:`read_manifest_document`)
are shared with the verifier so both read archives the same way.
"""
from __future__ import annotations

import io
import json
import logging
import zipfile
import zlib
from typing import NamedTuple

from interact_bundle.bundler.manifest import MANIFEST_PATH, BundleManifest, validate_manifest
from interact_bundle.bundler.packager import BundleFile
from interact_bundle.errors import BundleError, ErrorCode

logger = logging.getLogger(__name__)

_UNREADABLE_ENTRY_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    RuntimeError,
    NotImplementedError,
    EOFError,
)


class UnpackedBundle(NamedTuple):
    """Parsed manifest plus the content files of a bundle."""

    manifest: BundleManifest
    files: list[BundleFile]

    def file_map(self) -> dict[str, bytes]:
        """Return ``{path: content}`` for every file."""
        return {f.path: f.content for f in self.files}


def open_archive(data: bytes) -> zipfile.ZipFile:
    """Open *data* as a ZIP container.

    Raises
    ------
    BundleError
        ``BUNDLE_INVALID`` if the bytes are not a readable ZIP archive.
    """
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, ValueError) as exc:
        raise BundleError(ErrorCode.BUNDLE_INVALID, f"not a valid ZIP container: {exc}") from exc


def content_entries(archive: zipfile.ZipFile) -> list[zipfile.ZipInfo]:
    """Return every non-directory, non-manifest entry in archive order."""
    return [
        info
        for info in archive.infolist()
        if not info.is_dir() and info.filename != MANIFEST_PATH
    ]


def read_entry(archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> bytes:
    """Read one entry, mapping unreadable-entry errors to ``BUNDLE_INVALID``.

    Covers corrupt streams, truncated data, entries flagged as encrypted
    (``RuntimeError``) and unsupported compression methods
    (``NotImplementedError``).
    """
    try:
        return archive.read(info)
    except _UNREADABLE_ENTRY_ERRORS as exc:
        raise BundleError(
            ErrorCode.BUNDLE_INVALID, f"unreadable archive entry {info.filename!r}: {exc}"
        ) from exc


def read_manifest_document(archive: zipfile.ZipFile) -> object:
    """Read and JSON-decode the manifest entry without validating it.

    Raises
    ------
    BundleError
        ``BUNDLE_INVALID`` when the manifest entry is absent or unreadable,
        ``SCHEMA_VIOLATION`` when it is not UTF-8 JSON.
    """
    try:
        info = archive.getinfo(MANIFEST_PATH)
    except KeyError:
        raise BundleError(ErrorCode.BUNDLE_INVALID, f"missing {MANIFEST_PATH}") from None

    raw = read_entry(archive, info)
    try:
        return json.loads(raw.decode("utf-8"))
    except (ValueError, RecursionError) as exc:
        raise BundleError(
            ErrorCode.SCHEMA_VIOLATION, f"{MANIFEST_PATH} is not valid UTF-8 JSON: {exc}"
        ) from exc


def parse_manifest(document: object) -> BundleManifest:
    """Validate a decoded manifest, raising on any violation.

    Raises
    ------
    BundleError
        ``SCHEMA_VIOLATION`` carrying every violation found.
    """
    result = validate_manifest(document)
    if isinstance(result, list):
        raise BundleError(
            ErrorCode.SCHEMA_VIOLATION,
            "invalid manifest: " + "; ".join(str(v) for v in result),
            violations=result,
        )
    return result


def unpack_bundle(data: bytes) -> UnpackedBundle:
    """Open a ``.ib`` archive and return its manifest and files.

    Parameters
    ----------
    data:
        Archive bytes.

    Returns
    -------
    UnpackedBundle
        ``(manifest, files)``; files are in archive order.

    Raises
    ------
    BundleError
        ``BUNDLE_INVALID`` for an unreadable container or missing manifest,
        ``SCHEMA_VIOLATION`` for an invalid manifest.
    """
    with open_archive(data) as archive:
        manifest = parse_manifest(read_manifest_document(archive))
        files = [
            BundleFile(path=info.filename, content=read_entry(archive, info))
            for info in content_entries(archive)
        ]
    logger.debug("Unpacked bundle %s v%s: %d file(s)", manifest.id, manifest.version, len(files))
    return UnpackedBundle(manifest=manifest, files=files)


__all__ = [
    "UnpackedBundle",
    "content_entries",
    "open_archive",
    "parse_manifest",
    "read_entry",
    "read_manifest_document",
    "unpack_bundle",
]
