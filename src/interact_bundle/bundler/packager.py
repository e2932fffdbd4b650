"""Bundle packer — turns a manifest draft plus files into a sealed ``.ib`` archive.

Packing:

1. Rejects duplicate, absolute, escaping or reserved file paths.
2. Computes a SHA-256 hash for every file, keyed by path.
3. Derives the contents index from the top-level directory of each path.
4. Assembles the manifest from the draft, filling identifier, timestamps
   and defaults.
5. Computes the manifest hash over the canonical manifest with the
   hash and signature keys removed.
6. Optionally signs the manifest hash.
7. Writes a DEFLATE ZIP with ``manifest.json`` and every file.

Classes
-------
- BundleFile      A named byte blob inside a bundle (frozen dataclass).
- ManifestDraft   Author-supplied manifest fields (pydantic model).
"""
from __future__ import annotations

import datetime
import io
import json
import logging
import os
import re
import uuid
import zipfile
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from pydantic import BaseModel, ConfigDict, ValidationError

from interact_bundle.bundler.manifest import (
    HASH_ALGORITHM,
    MANIFEST_PATH,
    SIGNATURE_ALGORITHM,
    SPEC_VERSION,
    BundleAuthor,
    BundleContents,
    BundleManifest,
    Violation,
    compute_manifest_hash,
    encoding_violations,
    format_timestamp,
    parse_timestamp,
    sha256_hex,
    validate_manifest,
)
from interact_bundle.bundler.signing import SigningKey, sign_manifest_hash
from interact_bundle.config import DEFAULT_CONFIG, BundleConfig
from interact_bundle.errors import BundleError, ErrorCode

logger = logging.getLogger(__name__)

# Manifest keys the packer always derives itself; draft values are ignored.
_DERIVED_KEYS: frozenset[str] = frozenset(
    {"spec", "contents", "integrity", "signature", "updated_at"}
)

# Directories and files skipped when collecting a source directory.
_EXCLUDED_DIRS: frozenset[str] = frozenset(
    {
        "__pycache__",
        ".git",
        ".venv",
        "venv",
        ".mypy_cache",
        ".ruff_cache",
        ".pytest_cache",
        "node_modules",
    }
)

_EXCLUDED_FILES: frozenset[str] = frozenset(
    {
        ".gitignore",
        ".gitattributes",
        ".DS_Store",
        "Thumbs.db",
    }
)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BundleFile:
    """A single file stored in a bundle.

    Attributes
    ----------
    path:
        Archive path, ``/``-separated (e.g. ``"docs/chapter-01.md"``).
    content:
        Raw bytes.  ``str`` content is encoded as UTF-8 on construction.
    """

    path: str
    content: bytes

    def __post_init__(self) -> None:
        if isinstance(self.content, str):
            object.__setattr__(self, "content", self.content.encode("utf-8"))
        if not self.path:
            raise ValueError("path must not be empty")

    @property
    def sha256(self) -> str:
        """Lowercase hex SHA-256 digest of the content."""
        return sha256_hex(self.content)

    @property
    def size_bytes(self) -> int:
        return len(self.content)


class ManifestDraft(BaseModel):
    """Manifest fields supplied by an author before packing.

    Only ``name`` and ``author`` are required; everything else falls
    back to the packer defaults.  Keys the packer derives (``spec``,
    ``contents``, ``integrity``, ``signature``, ``updated_at``) are
    dropped if present.  Other unknown keys are carried into the
    manifest unchanged.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str
    slug: str | None = None
    version: str | None = None
    description: str | None = None
    author: BundleAuthor
    created_at: str | None = None
    language: str | None = None
    languages: list[str] | None = None
    subject: str | None = None
    level: str | None = None
    tags: list[str] | None = None
    access: str | None = None
    price: float | None = None
    currency: str | None = None
    license: str | None = None
    entry: str | None = None

    @classmethod
    def from_manifest(cls, manifest: BundleManifest) -> "ManifestDraft":
        """Build a draft that re-packs *manifest* with the same metadata."""
        document = manifest.to_document()
        for key in _DERIVED_KEYS:
            document.pop(key, None)
        return cls.model_validate(document)

    def extra_fields(self) -> dict[str, object]:
        """Return unknown keys that should be carried into the manifest."""
        extras = dict(self.model_extra or {})
        for key in _DERIVED_KEYS:
            extras.pop(key, None)
        return extras


DraftInput = Union[ManifestDraft, Mapping[str, object]]
Timestamp = Union[datetime.datetime, str, None]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def pack_bundle(
    files: Iterable[BundleFile],
    draft: DraftInput,
    sign_key: SigningKey | None = None,
    *,
    config: BundleConfig | None = None,
    timestamp: Timestamp = None,
) -> bytes:
    """Pack *files* and *draft* into ``.ib`` archive bytes.

    Parameters
    ----------
    files:
        Files to include.  Paths must be unique, relative and must not
        name ``manifest.json``.
    draft:
        A :class:`ManifestDraft` or a mapping accepted by it.
    sign_key:
        When given, the manifest hash is signed with HMAC-SHA256.
    config:
        Packing defaults and compression level.
    timestamp:
        Time recorded as ``updated_at`` (and ``created_at`` when the
        draft carries none).  Defaults to now.  ``signed_at`` is always
        the actual signing time.

    Returns
    -------
    bytes
        The archive.

    Raises
    ------
    BundleError
        ``DUPLICATE_PATH`` / ``INVALID_PATH`` for bad file paths,
        ``SCHEMA_VIOLATION`` when the resulting manifest is invalid.
    """
    cfg = config if config is not None else DEFAULT_CONFIG
    draft_model = _coerce_draft(draft)
    bundle_files = _check_files(files)
    now = _resolve_timestamp(timestamp)

    file_hashes = {f.path: f.sha256 for f in bundle_files}
    document = _assemble_document(draft_model, bundle_files, file_hashes, now, cfg)
    unencodable = encoding_violations(document)
    if unencodable:
        raise BundleError(
            ErrorCode.SCHEMA_VIOLATION,
            "manifest is not JSON-encodable: " + "; ".join(str(v) for v in unencodable),
            violations=unencodable,
        )

    manifest_hash = compute_manifest_hash(document)
    document["integrity"]["manifest_hash"] = manifest_hash  # type: ignore[index]

    if sign_key is not None:
        # signed_at is the real signing time even when updated_at is pinned
        document["signature"] = {
            "algorithm": SIGNATURE_ALGORITHM,
            "value": sign_manifest_hash(manifest_hash, sign_key),
            "signed_at": now if timestamp is None else _resolve_timestamp(None),
        }

    result = validate_manifest(document)
    if isinstance(result, list):
        raise BundleError(
            ErrorCode.SCHEMA_VIOLATION,
            "packed manifest is invalid: " + "; ".join(str(v) for v in result),
            violations=result,
        )

    buffer = io.BytesIO()
    with zipfile.ZipFile(
        buffer,
        "w",
        compression=zipfile.ZIP_DEFLATED,
        compresslevel=cfg.compression_level,
    ) as archive:
        for bundle_file in bundle_files:
            archive.writestr(bundle_file.path, bundle_file.content)
        archive.writestr(
            MANIFEST_PATH, json.dumps(document, indent=2, ensure_ascii=False)
        )

    data = buffer.getvalue()
    logger.info(
        "Packed bundle %s v%s: %d file(s), %d bytes%s",
        result.id,
        result.version,
        len(bundle_files),
        len(data),
        ", signed" if sign_key is not None else "",
    )
    return data


def collect_directory(source_dir: Path) -> list[BundleFile]:
    """Read every file under *source_dir* as a :class:`BundleFile`.

    VCS, cache and editor artefacts are skipped, as is a top-level
    ``manifest.json``.  Paths are relative and ``/``-separated, ordered
    by directory walk with file names sorted.

    Raises
    ------
    FileNotFoundError
        If *source_dir* does not exist.
    ValueError
        If *source_dir* is not a directory.
    """
    if not source_dir.exists():
        raise FileNotFoundError(f"Source directory does not exist: {source_dir}")
    if not source_dir.is_dir():
        raise ValueError(f"source_dir must be a directory, got: {source_dir}")

    collected: list[BundleFile] = []
    for root_str, dir_names, file_names in os.walk(source_dir):
        root = Path(root_str)
        dir_names[:] = sorted(d for d in dir_names if d not in _EXCLUDED_DIRS)
        for file_name in sorted(file_names):
            if file_name in _EXCLUDED_FILES:
                continue
            file_path = root / file_name
            relative = file_path.relative_to(source_dir).as_posix()
            if relative == MANIFEST_PATH:
                continue
            collected.append(BundleFile(path=relative, content=file_path.read_bytes()))
    logger.debug("Collected %d file(s) from %s", len(collected), source_dir)
    return collected


def to_slug(name: str) -> str:
    """Derive a URL-safe slug: lowercase, non-alphanumerics collapsed to ``-``."""
    return _SLUG_STRIP.sub("-", name.lower()).strip("-")


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _coerce_draft(draft: DraftInput) -> ManifestDraft:
    if isinstance(draft, ManifestDraft):
        return draft
    try:
        return ManifestDraft.model_validate(dict(draft))
    except ValidationError as exc:
        violations = [
            Violation(
                loc=".".join(str(part) for part in error["loc"]) or "<root>",
                message=error["msg"],
                kind=error["type"],
            )
            for error in exc.errors()
        ]
        raise BundleError(
            ErrorCode.SCHEMA_VIOLATION,
            "manifest draft is invalid: " + "; ".join(str(v) for v in violations),
            violations=violations,
        ) from exc


def _check_files(files: Iterable[BundleFile]) -> list[BundleFile]:
    checked: list[BundleFile] = []
    seen: set[str] = set()
    for bundle_file in files:
        path = bundle_file.path
        _check_path(path)
        if path in seen:
            raise BundleError(
                ErrorCode.DUPLICATE_PATH, f"duplicate file path in input: {path!r}"
            )
        seen.add(path)
        checked.append(bundle_file)
    return checked


def _check_path(path: str) -> None:
    if path == MANIFEST_PATH:
        raise BundleError(
            ErrorCode.INVALID_PATH, f"{MANIFEST_PATH!r} is reserved for the manifest"
        )
    if path.startswith("/") or "\\" in path or re.match(r"^[A-Za-z]:", path):
        raise BundleError(
            ErrorCode.INVALID_PATH, f"file path must be relative and '/'-separated: {path!r}"
        )
    segments = path.split("/")
    if any(segment in ("", ".", "..") for segment in segments):
        raise BundleError(ErrorCode.INVALID_PATH, f"file path is not normalised: {path!r}")


def _resolve_timestamp(timestamp: Timestamp) -> str:
    if timestamp is None:
        return format_timestamp(datetime.datetime.now(datetime.timezone.utc))
    if isinstance(timestamp, datetime.datetime):
        return format_timestamp(timestamp)
    parse_timestamp(timestamp)
    return timestamp


def _resolve_bundle_id(draft_id: str | None) -> str:
    if not draft_id:
        return f"bundle_{uuid.uuid4()}"
    if draft_id.startswith("bundle_"):
        return draft_id
    return f"bundle_{draft_id}"


def _assemble_document(
    draft: ManifestDraft,
    files: list[BundleFile],
    file_hashes: dict[str, str],
    now: str,
    cfg: BundleConfig,
) -> dict[str, object]:
    """Build the manifest JSON object with an empty manifest hash."""
    contents = BundleContents.from_paths([f.path for f in files])
    document: dict[str, object] = {
        "spec": SPEC_VERSION,
        "id": _resolve_bundle_id(draft.id),
        "name": draft.name,
        "slug": draft.slug or to_slug(draft.name),
        "version": draft.version or cfg.default_version,
        "description": draft.description or "",
        "author": draft.author.model_dump(mode="json", exclude_none=True),
        "created_at": draft.created_at or now,
        "updated_at": now,
        "language": draft.language or cfg.default_language,
        "languages": draft.languages,
        "subject": draft.subject,
        "level": draft.level,
        "tags": draft.tags,
        "access": draft.access or cfg.default_access,
        "price": draft.price,
        "currency": draft.currency,
        "license": draft.license or cfg.default_license,
        "entry": draft.entry,
    }
    document = {key: value for key, value in document.items() if value is not None}
    for key, value in draft.extra_fields().items():
        document.setdefault(key, value)
    document["contents"] = contents.model_dump(mode="json")
    document["integrity"] = {
        "algorithm": HASH_ALGORITHM,
        "files": dict(file_hashes),
        "manifest_hash": "",
    }
    return document


__all__ = [
    "BundleFile",
    "ManifestDraft",
    "collect_directory",
    "pack_bundle",
    "to_slug",
]
