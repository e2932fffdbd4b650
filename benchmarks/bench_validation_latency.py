"""Benchmark: Bundle validation latency — per-call p50/p99.

Measures validate_bundle() on a mid-sized bundle (50 docs, 10 quizzes,
20 assets), covering archive reads, per-file hashing and the manifest
hash recomputation.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from interact_bundle.bundler.packager import BundleFile, pack_bundle
from interact_bundle.bundler.verifier import validate_bundle

_WARMUP: int = 10
_ITERATIONS: int = 300


def _make_bundle() -> bytes:
    """Pack a representative bundle of text and binary files."""
    files = [BundleFile(f"docs/ch{i:02d}.md", f"# Chapter {i}\n\n" + "lorem ipsum " * 400) for i in range(50)]
    files += [BundleFile(f"quizzes/q{i:02d}.json", '{"questions": []}' * 50) for i in range(10)]
    files += [BundleFile(f"assets/img{i:02d}.png", bytes(range(256)) * 64) for i in range(20)]
    return pack_bundle(files, {"name": "Benchmark", "author": {"name": "bench"}}, "bench-key")


def bench_validation_latency() -> dict[str, object]:
    """Benchmark validate_bundle() per-call latency.

    Returns
    -------
    dict with keys: operation, iterations, bundle_bytes, total_seconds,
    ops_per_second, p50_latency_ms, p99_latency_ms.
    """
    data = _make_bundle()

    for _ in range(_WARMUP):
        validate_bundle(data, "bench-key")

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        validate_bundle(data, "bench-key")
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "bundle_validation_latency",
        "iterations": _ITERATIONS,
        "bundle_bytes": len(data),
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "p50_latency_ms": round(sorted_lats[n // 2], 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
    }
    print(
        f"[bench_validation_latency] {result['operation']}: "
        f"p50={result['p50_latency_ms']:.4f}ms  "
        f"p99={result['p99_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_validation_latency()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "validation_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
