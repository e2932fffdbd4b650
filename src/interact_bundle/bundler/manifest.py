"""Bundle manifest data model and schema validation.

Defines the structured manifest that travels inside every ``.ib`` archive
at :data:`MANIFEST_PATH`, the schema validator that turns an untrusted
JSON object into a :class:`BundleManifest` (or a complete list of
violations), and the canonical hashing rule for the self-referential
manifest hash.

Classes
-------
- AccessTier         Four-value enum for the access field.
- BundleAuthor       Author block.
- BundleContents     Per-category ordered path lists.
- BundleIntegrity    Hash algorithm, per-file hashes, manifest hash.
- BundleSignature    HMAC signature over the manifest hash.
- BundleManifest     Pydantic v2 model for the full manifest.
- Violation          One schema violation (frozen dataclass).
"""
from __future__ import annotations

import datetime
import hashlib
import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Literal, Mapping, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
    field_validator,
)

MANIFEST_PATH = "manifest.json"

SPEC_VERSION = "1.0"
SUPPORTED_SPEC_MAJORS: frozenset[int] = frozenset({1})

HASH_ALGORITHM = "sha256"
SIGNATURE_ALGORITHM = "hmac-sha256"

SEMVER_PATTERN = r"^[0-9]+\.[0-9]+\.[0-9]+$"
BUNDLE_ID_PATTERN = r"^bundle_[0-9a-f-]{36}$"
SLUG_PATTERN = r"^[a-z0-9-]+$"

_SPEC_RE = re.compile(r"([0-9]+)\.([0-9]+)")

# Category name -> top-level directory prefix, in manifest order.
CONTENT_CATEGORIES: dict[str, str] = {
    "docs": "docs/",
    "assets": "assets/",
    "quizzes": "quizzes/",
    "flashcards": "flashcards/",
    "courses": "courses/",
    "canvas": "canvas/",
}

# Changes under these prefixes drive version-bump inference.
CONTENT_BEARING_PREFIXES: tuple[str, ...] = (
    "docs/",
    "quizzes/",
    "flashcards/",
    "courses/",
)


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def parse_timestamp(value: str) -> datetime.datetime:
    """Parse an ISO-8601 timestamp that carries a date, a time and a zone.

    A trailing ``Z`` is accepted as UTC.

    Raises
    ------
    ValueError
        If *value* is not a zoned ISO-8601 date-time.
    """
    if "T" not in value:
        raise ValueError(f"{value!r} is not an ISO-8601 date-time")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"{value!r} is not an ISO-8601 date-time") from None
    if parsed.tzinfo is None:
        raise ValueError(f"{value!r} has no timezone designator")
    return parsed


def format_timestamp(moment: datetime.datetime) -> str:
    """Render *moment* as UTC ISO-8601 with millisecond precision and ``Z``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    utc = moment.astimezone(datetime.timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _check_timestamp(value: str) -> str:
    parse_timestamp(value)
    return value


IsoTimestamp = Annotated[str, AfterValidator(_check_timestamp)]
Tag = Annotated[str, StringConstraints(max_length=50)]


# ---------------------------------------------------------------------------
# Nested blocks
# ---------------------------------------------------------------------------


class AccessTier(str, Enum):
    """Who may obtain the bundle."""

    PUBLIC = "public"
    FREE = "free"
    PREMIUM = "premium"
    PRIVATE = "private"


class BundleAuthor(BaseModel):
    """Author of a bundle."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=200)
    email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    url: str | None = Field(default=None, pattern=r"^https?://\S+$")


class BundleContents(BaseModel):
    """Contents index: archive paths grouped by top-level directory."""

    model_config = ConfigDict(extra="forbid")

    docs: list[str] = Field(default_factory=list)
    assets: list[str] = Field(default_factory=list)
    quizzes: list[str] = Field(default_factory=list)
    flashcards: list[str] = Field(default_factory=list)
    courses: list[str] = Field(default_factory=list)
    canvas: list[str] = Field(default_factory=list)

    @classmethod
    def from_paths(cls, paths: list[str]) -> "BundleContents":
        """Group *paths* under their category prefix, keeping input order.

        Paths outside every known prefix are not indexed.
        """
        grouped: dict[str, list[str]] = {name: [] for name in CONTENT_CATEGORIES}
        for path in paths:
            for name, prefix in CONTENT_CATEGORIES.items():
                if path.startswith(prefix):
                    grouped[name].append(path)
                    break
        return cls(**grouped)

    def all_paths(self) -> list[str]:
        """Return every indexed path, category by category."""
        return [path for name in CONTENT_CATEGORIES for path in getattr(self, name)]


class BundleIntegrity(BaseModel):
    """Per-file content hashes plus the hash of the manifest itself."""

    model_config = ConfigDict(extra="forbid")

    algorithm: Literal["sha256"] = HASH_ALGORITHM
    files: dict[str, str] = Field(default_factory=dict)
    manifest_hash: str = ""


class BundleSignature(BaseModel):
    """Keyed hash over the manifest hash."""

    model_config = ConfigDict(extra="forbid")

    algorithm: Literal["hmac-sha256"] = SIGNATURE_ALGORITHM
    value: str = Field(min_length=1)
    signed_at: IsoTimestamp


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class BundleManifest(BaseModel):
    """Full manifest record of a ``.ib`` bundle.

    Unknown top-level keys are kept so that newer minor spec revisions
    still round-trip; they are covered by the manifest hash like any
    other field.  Nested blocks reject unknown keys.
    """

    model_config = ConfigDict(extra="allow")

    spec: str
    id: str = Field(pattern=BUNDLE_ID_PATTERN)
    name: str = Field(min_length=1, max_length=200)
    slug: str = Field(pattern=SLUG_PATTERN)
    version: str = Field(pattern=SEMVER_PATTERN)
    description: str = Field(max_length=2000)
    author: BundleAuthor
    created_at: IsoTimestamp
    updated_at: IsoTimestamp
    language: str = Field(min_length=2, max_length=10)
    languages: list[str] | None = None
    subject: str | None = None
    level: str | None = None
    tags: list[Tag] | None = Field(default=None, max_length=20)
    access: AccessTier
    price: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    license: str = Field(min_length=1)
    entry: str | None = None
    contents: BundleContents
    integrity: BundleIntegrity
    signature: BundleSignature | None = None

    @field_validator("spec")
    @classmethod
    def _check_spec_major(cls, value: str) -> str:
        match = _SPEC_RE.fullmatch(value)
        if match is None:
            raise ValueError(f"spec must look like MAJOR.MINOR, got {value!r}")
        major = int(match.group(1))
        if major not in SUPPORTED_SPEC_MAJORS:
            raise ValueError(
                f"unsupported spec major version {major} "
                f"(supported: {sorted(SUPPORTED_SPEC_MAJORS)})"
            )
        return value

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_document(self) -> dict[str, object]:
        """Return the JSON object form, with absent optional fields omitted."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self, indent: int = 2) -> str:
        """Serialise the manifest as it is stored inside the archive."""
        return json.dumps(self.to_document(), indent=indent, ensure_ascii=False)

    def compute_hash(self) -> str:
        """Recompute the manifest hash from this model's document form."""
        return compute_manifest_hash(self.to_document())


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Violation:
    """A single schema violation.

    Attributes
    ----------
    loc:
        Dotted location of the offending field (e.g. ``"author.email"``).
    message:
        Human-readable description.
    kind:
        Machine-readable violation type (pydantic error type).
    """

    loc: str
    message: str
    kind: str

    def __str__(self) -> str:
        return f"{self.loc}: {self.message}"


def validate_manifest(raw: object) -> Union[BundleManifest, list[Violation]]:
    """Validate an untrusted manifest object.

    Never raises.  Every violation is collected; nothing fails fast.

    Parameters
    ----------
    raw:
        Decoded JSON value read from the archive.

    Returns
    -------
    BundleManifest | list[Violation]
        The parsed manifest, or a non-empty list of violations.
    """
    if not isinstance(raw, dict):
        return [
            Violation(
                loc="<root>",
                message=f"manifest must be a JSON object, got {type(raw).__name__}",
                kind="type",
            )
        ]
    encoding = encoding_violations(raw)
    try:
        manifest = BundleManifest.model_validate(raw)
    except ValidationError as exc:
        violations = [
            Violation(
                loc=".".join(str(part) for part in error["loc"]) or "<root>",
                message=error["msg"],
                kind=error["type"],
            )
            for error in exc.errors()
        ]
        reported = {v.loc for v in violations}
        return violations + [v for v in encoding if v.loc not in reported]
    return encoding or manifest


_JSON_SCALARS = (str, int, float, bool, type(None))


def encoding_violations(value: object, loc: str = "") -> list[Violation]:
    """Find values that cannot be written as UTF-8 JSON.

    Flags strings (and object keys) holding lone surrogates, which JSON
    escapes such as ``"\\ud800"`` decode to, and values of non-JSON types
    such as dates from a YAML draft.

    Parameters
    ----------
    value:
        Decoded JSON value or manifest document to inspect.
    loc:
        Dotted location of *value*; empty for the root.

    Returns
    -------
    list[Violation]
        One violation per offending value, empty when encodable.
    """
    here = loc or "<root>"
    if isinstance(value, str):
        if not _is_utf8_encodable(value):
            return [Violation(here, "string contains a lone surrogate", "string_unicode")]
        return []
    if isinstance(value, dict):
        violations: list[Violation] = []
        for key, item in value.items():
            child = f"{loc}.{key}" if loc else str(key)
            if not isinstance(key, str):
                violations.append(
                    Violation(here, f"object key {key!r} is not a string", "json_type")
                )
                continue
            if not _is_utf8_encodable(key):
                violations.append(
                    Violation(here, "object key contains a lone surrogate", "string_unicode")
                )
                continue
            violations.extend(encoding_violations(item, child))
        return violations
    if isinstance(value, (list, tuple)):
        violations = []
        for index, item in enumerate(value):
            violations.extend(encoding_violations(item, f"{loc}.{index}" if loc else str(index)))
        return violations
    if isinstance(value, _JSON_SCALARS):
        return []
    return [
        Violation(here, f"value of type {type(value).__name__} is not JSON-serialisable", "json_type")
    ]


def _is_utf8_encodable(text: str) -> bool:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def sha256_hex(data: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of *data*."""
    return hashlib.sha256(data).hexdigest()


def canonical_json(document: Mapping[str, object]) -> bytes:
    """Serialise *document* with sorted keys and no insignificant whitespace."""
    return json.dumps(
        document, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def manifest_hash_input(document: Mapping[str, object]) -> dict[str, object]:
    """Return a copy of *document* with the self-referential keys removed.

    The top-level ``signature`` key and ``integrity.manifest_hash`` are
    physically absent from the result, not blanked.
    """
    stripped = {key: value for key, value in document.items() if key != "signature"}
    integrity = stripped.get("integrity")
    if isinstance(integrity, Mapping):
        stripped["integrity"] = {
            key: value for key, value in integrity.items() if key != "manifest_hash"
        }
    return stripped


def compute_manifest_hash(document: Mapping[str, object]) -> str:
    """Compute the manifest hash of a manifest JSON object."""
    return sha256_hex(canonical_json(manifest_hash_input(document)))


__all__ = [
    "AccessTier",
    "BundleAuthor",
    "BundleContents",
    "BundleIntegrity",
    "BundleManifest",
    "BundleSignature",
    "CONTENT_BEARING_PREFIXES",
    "CONTENT_CATEGORIES",
    "MANIFEST_PATH",
    "SPEC_VERSION",
    "Violation",
    "canonical_json",
    "compute_manifest_hash",
    "encoding_violations",
    "format_timestamp",
    "manifest_hash_input",
    "parse_timestamp",
    "sha256_hex",
    "validate_manifest",
]
