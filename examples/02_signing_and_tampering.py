#!/usr/bin/env python3
"""Example: Signing and Tamper Detection

Demonstrates signing a bundle with an HMAC key, verifying it with the
right and wrong key, and what the verifier reports after a file inside
the archive is edited.

Usage:
    python examples/02_signing_and_tampering.py

Requirements:
    pip install interact-bundle
"""
from __future__ import annotations

import io
import zipfile

from interact_bundle import BundleFile, pack_bundle, sign_bundle, validate_bundle


def _edit_entry(data: bytes, path: str, content: bytes) -> bytes:
    out = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(data)) as src, zipfile.ZipFile(
        out, "w", zipfile.ZIP_DEFLATED
    ) as dst:
        for info in src.infolist():
            dst.writestr(info.filename, content if info.filename == path else src.read(info))
    return out.getvalue()


def main() -> None:
    files = [
        BundleFile("docs/intro.md", "# Welcome"),
        BundleFile("quizzes/q1.json", '{"questions": []}'),
    ]
    data = pack_bundle(files, {"name": "Physics 101", "author": {"name": "Dr. Field"}})

    # Step 1: Sign the packed bundle
    signed = sign_bundle(data, "publisher-secret")

    # Step 2: Verify with and without the key
    for label, key in [("right key", "publisher-secret"), ("wrong key", "guess"), ("no key", None)]:
        report = validate_bundle(signed, key)
        print(f"{label:>10}: valid={report.valid}")
        for finding in report.errors + report.warnings:
            print(f"            [{finding.code.value}] {finding.message}")

    # Step 3: Edit a file inside the archive
    tampered = _edit_entry(signed, "docs/intro.md", b"# Welcome (edited)")
    report = validate_bundle(tampered, "publisher-secret")
    print(f"\nAfter editing docs/intro.md: valid={report.valid}")
    for finding in report.errors:
        print(f"  [{finding.code.value}] {finding.message}")


if __name__ == "__main__":
    main()
