#!/usr/bin/env python3
"""Example: Quickstart — interact-bundle

Minimal working example: pack two files into a bundle, verify it, bump
its version and diff the two releases.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install interact-bundle
"""
from __future__ import annotations

import interact_bundle
from interact_bundle import (
    BundleFile,
    bump_bundle_version,
    bundle_size,
    bundle_summary,
    diff_bundles,
    pack_bundle,
    validate_bundle,
)


def main() -> None:
    print(f"interact-bundle version: {interact_bundle.__version__}")

    # Step 1: Pack a small bundle
    files = [
        BundleFile("docs/ch1.md", "# Chapter 1\n\nVariables and expressions."),
        BundleFile("flashcards/deck.json", '{"cards": [{"q": "x + 1 = 3", "a": "2"}]}'),
    ]
    data = pack_bundle(
        files,
        {
            "name": "Algebra Basics",
            "description": "A first course in algebra.",
            "author": {"name": "A. Teacher", "email": "teacher@example.org"},
            "tags": ["math", "algebra"],
        },
    )
    print(f"Packed: {bundle_size(data).human}")

    # Step 2: Verify it
    report = validate_bundle(data)
    print(f"\nValidation: {'VALID' if report.valid else 'INVALID'}")
    if report.manifest is not None:
        print(f"  ID: {report.manifest.id}")
        print(f"  Contents: {bundle_summary(report.manifest)}")

    # Step 3: Publish a minor release
    bumped = bump_bundle_version(data, "minor", changelog="Added practice deck")

    # Step 4: Diff the two releases
    diff = diff_bundles(data, bumped)
    print(f"\nDiff {diff.from_version} -> {diff.to_version}:")
    print(f"  Files: +{diff.added} -{diff.removed} ~{diff.modified} ={diff.unchanged}")
    for change in diff.manifest_changes:
        print(f"  {change.field}: {change.old!r} -> {change.new!r}")


if __name__ == "__main__":
    main()
