"""Shared bootstrap for interact-bundle benchmarks."""
from __future__ import annotations

import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).parent.parent
_SRC = _REPO_ROOT / "src"
_BENCHMARKS = _REPO_ROOT / "benchmarks"

for _path in [str(_SRC), str(_BENCHMARKS)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

from interact_bundle.bundler.packager import BundleFile, pack_bundle
from interact_bundle.bundler.verifier import validate_bundle

__all__ = [
    "BundleFile",
    "pack_bundle",
    "validate_bundle",
]
