"""Semantic version helpers for bundle versions.

Only plain ``MAJOR.MINOR.PATCH`` is supported; pre-release and build
suffixes are rejected.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Union

from interact_bundle.errors import SemverError

_SEMVER_RE = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")


class BumpLevel(str, Enum):
    """Which semver component to increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


def parse_semver(version: str) -> tuple[int, int, int]:
    """Split *version* into ``(major, minor, patch)``.

    Raises
    ------
    SemverError
        If *version* is not ``MAJOR.MINOR.PATCH``.
    """
    match = _SEMVER_RE.fullmatch(version)
    if match is None:
        raise SemverError(f"Invalid semver: {version!r}")
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def bump_version(version: str, level: Union[BumpLevel, str]) -> str:
    """Increment *version* at *level*.

    >>> bump_version("1.2.3", "major")
    '2.0.0'
    >>> bump_version("1.2.3", "minor")
    '1.3.0'
    >>> bump_version("1.2.3", "patch")
    '1.2.4'
    """
    bump = BumpLevel(level)
    major, minor, patch = parse_semver(version)
    if bump is BumpLevel.MAJOR:
        return f"{major + 1}.0.0"
    if bump is BumpLevel.MINOR:
        return f"{major}.{minor + 1}.0"
    return f"{major}.{minor}.{patch + 1}"


def compare_semver(a: str, b: str) -> int:
    """Return ``-1``, ``0`` or ``1`` as *a* is lower than, equal to or above *b*."""
    left = parse_semver(a)
    right = parse_semver(b)
    if left == right:
        return 0
    return -1 if left < right else 1


__all__ = [
    "BumpLevel",
    "bump_version",
    "compare_semver",
    "parse_semver",
]
