"""End-to-end walk through the public API: pack, validate, bump, diff."""
from __future__ import annotations

import interact_bundle
from interact_bundle import (
    BundleFile,
    bump_bundle_version,
    diff_bundles,
    pack_bundle,
    sign_bundle,
    unpack_bundle,
    validate_bundle,
)


def test_quickstart() -> None:
    files = [
        BundleFile("docs/ch1.md", b"# Chapter 1\n\nVariables and expressions."),
        BundleFile("flashcards/deck.json", b'{"cards": [{"q": "x + 1 = 3", "a": "2"}]}'),
    ]
    draft = {
        "name": "Algebra Basics",
        "description": "A first course in algebra.",
        "author": {"name": "A. Teacher"},
    }

    data = pack_bundle(files, draft)
    report = validate_bundle(data)
    assert report.valid
    assert len(report.errors) == 0

    bumped = bump_bundle_version(data, "minor")
    assert unpack_bundle(bumped).manifest.version == "1.1.0"

    diff = diff_bundles(data, bumped)
    assert diff.added == diff.removed == diff.modified == 0
    assert "version" in [change.field for change in diff.manifest_changes]


def test_signed_release_flow() -> None:
    files = [BundleFile("docs/intro.md", b"Hello")]
    draft = {"name": "Intro", "author": {"name": "A"}}

    release = sign_bundle(pack_bundle(files, draft), "publisher-key")
    assert validate_bundle(release, "publisher-key").valid

    next_release = bump_bundle_version(release, "patch", "Typo fixes", "publisher-key")
    report = validate_bundle(next_release, "publisher-key")
    assert report.valid
    assert report.manifest is not None
    assert report.manifest.version == "1.0.1"


def test_package_version() -> None:
    assert interact_bundle.__version__ == "0.1.0"
