"""Error taxonomy for bundle packing and verification.

Classes
-------
- ErrorCode    Stable machine-readable codes shared by exceptions and reports.
- BundleError  Raised when an operation cannot proceed at all.
- SemverError  Raised for malformed semantic version strings.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from interact_bundle.bundler.manifest import Violation


class ErrorCode(str, Enum):
    """Codes attached to raised errors and to validation findings.

    Values
    ------
    BUNDLE_INVALID:
        Container cannot be opened or has no manifest.  Fatal.
    SCHEMA_VIOLATION:
        Manifest fails field validation.  Fatal.
    INTEGRITY_FAILURE:
        A file's recomputed hash disagrees with the recorded one.
    FILE_MISSING:
        A file recorded in the manifest is absent from the archive.
    UNTRACKED_FILE:
        An archive file has no entry in the integrity block.
    MANIFEST_TAMPERED:
        Recomputed manifest hash disagrees with the stored value.
    SIGNATURE_INVALID:
        Signature present, key supplied, mismatch.
    SIGNATURE_UNVERIFIED:
        Signature present but no key supplied.  Warning only.
    SIZE_WARNING:
        Archive is larger than the configured threshold.  Warning only.
    ENTRY_MISSING:
        Declared entry point has no file.  Warning only.
    DUPLICATE_PATH:
        Two input files share a path at pack time.
    INVALID_PATH:
        An input path is absolute, escapes the archive, or is reserved.
    """

    BUNDLE_INVALID = "BUNDLE_INVALID"
    SCHEMA_VIOLATION = "SCHEMA_VIOLATION"
    INTEGRITY_FAILURE = "INTEGRITY_FAILURE"
    FILE_MISSING = "FILE_MISSING"
    UNTRACKED_FILE = "UNTRACKED_FILE"
    MANIFEST_TAMPERED = "MANIFEST_TAMPERED"
    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    SIGNATURE_UNVERIFIED = "SIGNATURE_UNVERIFIED"
    SIZE_WARNING = "SIZE_WARNING"
    ENTRY_MISSING = "ENTRY_MISSING"
    DUPLICATE_PATH = "DUPLICATE_PATH"
    INVALID_PATH = "INVALID_PATH"


class BundleError(Exception):
    """Structural failure while packing, unpacking or re-packing a bundle.

    Parameters
    ----------
    code:
        The ErrorCode describing the failure class.
    message:
        Human-readable explanation.
    violations:
        Schema violations, populated for ``SCHEMA_VIOLATION`` only.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        violations: list[Violation] | None = None,
    ) -> None:
        super().__init__(f"{code.value}: {message}")
        self.code = code
        self.message = message
        self.violations: list[Violation] = list(violations or [])


class SemverError(ValueError):
    """Raised when a version string is not ``MAJOR.MINOR.PATCH``."""


__all__ = [
    "BundleError",
    "ErrorCode",
    "SemverError",
]
