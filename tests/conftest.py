"""Shared fixtures for interact-bundle tests."""
from __future__ import annotations

import datetime
import io
import json
import struct
import zipfile
from collections.abc import Callable

import pytest

from interact_bundle.bundler.manifest import MANIFEST_PATH
from interact_bundle.bundler.packager import BundleFile, pack_bundle

FROZEN_TIME = datetime.datetime(2026, 3, 14, 9, 26, 53, tzinfo=datetime.timezone.utc)

_CENTRAL_SIGNATURE = b"PK\x01\x02"


def rewrite_archive(
    data: bytes,
    replace: dict[str, bytes | None] | None = None,
    add: dict[str, bytes] | None = None,
) -> bytes:
    """Copy a ZIP, replacing (or dropping, with ``None``) and adding entries."""
    replace = replace or {}
    out = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(data)) as src, zipfile.ZipFile(
        out, "w", zipfile.ZIP_DEFLATED
    ) as dst:
        for info in src.infolist():
            if info.filename in replace:
                new_content = replace[info.filename]
                if new_content is not None:
                    dst.writestr(info.filename, new_content)
            else:
                dst.writestr(info.filename, src.read(info))
        for name, content in (add or {}).items():
            dst.writestr(name, content)
    return out.getvalue()


def read_raw_manifest(data: bytes) -> dict:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return json.loads(archive.read(MANIFEST_PATH))


def edit_manifest(data: bytes, mutate: Callable[[dict], None]) -> bytes:
    """Apply *mutate* to the stored manifest without recomputing any hash."""
    document = read_raw_manifest(data)
    mutate(document)
    return rewrite_archive(
        data, replace={MANIFEST_PATH: json.dumps(document, indent=2).encode("utf-8")}
    )


def patch_central_header(
    data: bytes,
    name: str,
    *,
    flag_bits_or: int = 0,
    method: int | None = None,
) -> bytes:
    """Rewrite the central-directory record of *name* in place.

    ORs *flag_bits_or* into the general-purpose flags and, when given,
    replaces the compression method. The entry data is left untouched.
    """
    patched = bytearray(data)
    encoded = name.encode("utf-8")
    offset = patched.find(_CENTRAL_SIGNATURE)
    while offset != -1:
        (name_length,) = struct.unpack_from("<H", patched, offset + 28)
        if bytes(patched[offset + 46 : offset + 46 + name_length]) == encoded:
            (flags,) = struct.unpack_from("<H", patched, offset + 8)
            struct.pack_into("<H", patched, offset + 8, flags | flag_bits_or)
            if method is not None:
                struct.pack_into("<H", patched, offset + 10, method)
            return bytes(patched)
        offset = patched.find(_CENTRAL_SIGNATURE, offset + 4)
    raise KeyError(name)


@pytest.fixture()
def sample_files() -> list[BundleFile]:
    return [
        BundleFile("docs/ch1.md", b"# Chapter 1\n\nLinear equations."),
        BundleFile("docs/ch2.md", b"# Chapter 2\n\nQuadratics."),
        BundleFile("quizzes/quiz1.json", b'{"questions": []}'),
        BundleFile("flashcards/deck.json", b'{"cards": [{"q": "2+2", "a": "4"}]}'),
        BundleFile("assets/cover.png", b"\x89PNG\r\n\x1a\nfake-image"),
    ]


@pytest.fixture()
def draft() -> dict[str, object]:
    return {
        "name": "Algebra Basics",
        "description": "An introduction to algebra.",
        "author": {"name": "A. Teacher", "email": "teacher@example.org"},
        "tags": ["math", "algebra"],
    }


@pytest.fixture()
def packed(sample_files: list[BundleFile], draft: dict[str, object]) -> bytes:
    return pack_bundle(sample_files, draft, timestamp=FROZEN_TIME)


@pytest.fixture()
def signed(sample_files: list[BundleFile], draft: dict[str, object]) -> bytes:
    return pack_bundle(sample_files, draft, "correct-horse", timestamp=FROZEN_TIME)
