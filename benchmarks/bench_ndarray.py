#!/usr/bin/env python3
"""
ndstride Array Benchmark

Measures the cost of the core array operations:
- Slicing (metadata only, shares storage)
- Element access through element_at
- Elementwise add of two arrays and scaling by a scalar
- Transpose of a 4-dimensional array
- Type views versus value conversion (view vs astype)

Methodology:
1. Build arrays once per benchmark
2. Warm up with a few iterations (discarded)
3. Time each iteration with time.perf_counter_ns
4. Report mean, p50, p95 and p99 latencies

Usage:
    python benchmarks/bench_ndarray.py
    python benchmarks/bench_ndarray.py --iterations 5000 --unchecked
    python benchmarks/bench_ndarray.py --output results.json
"""
from __future__ import annotations

import argparse
import json
import logging
import statistics
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

import torch  # noqa: E402

import ndstride as nds  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BenchmarkConfig:
    """Configuration for benchmark execution."""
    warmup_iterations: int = 5
    benchmark_iterations: int = 1000
    shape: tuple[int, ...] = (32, 32, 8, 16)
    checked: bool = True
    output_json: Path | None = None


@dataclass(slots=True)
class BenchmarkResult:
    """Result of a single benchmark run."""
    name: str
    iterations: int
    latencies_ns: list[int] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def mean_ns(self) -> float:
        return statistics.mean(self.latencies_ns) if self.latencies_ns else 0.0

    @property
    def p50_ns(self) -> float:
        return statistics.median(self.latencies_ns) if self.latencies_ns else 0.0

    def _percentile(self, fraction: float) -> float:
        if not self.latencies_ns:
            return 0.0
        sorted_latencies = sorted(self.latencies_ns)
        idx = int(len(sorted_latencies) * fraction)
        return sorted_latencies[min(idx, len(sorted_latencies) - 1)]

    @property
    def p95_ns(self) -> float:
        return self._percentile(0.95)

    @property
    def p99_ns(self) -> float:
        return self._percentile(0.99)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "iterations": self.iterations,
            "mean_us": self.mean_ns / 1000,
            "p50_us": self.p50_ns / 1000,
            "p95_us": self.p95_ns / 1000,
            "p99_us": self.p99_ns / 1000,
            "metadata": self.metadata,
        }

    def print_summary(self) -> None:
        print(f"\n{'='*60}")
        print(f"Benchmark: {self.name}")
        print(f"{'='*60}")
        print(f"  Iterations:     {self.iterations:,}")
        print(f"  Mean:           {self.mean_ns/1000:.3f} us")
        print(f"  P50 (Median):   {self.p50_ns/1000:.3f} us")
        print(f"  P95:            {self.p95_ns/1000:.3f} us")
        print(f"  P99:            {self.p99_ns/1000:.3f} us")
        for key, value in self.metadata.items():
            print(f"  {key}: {value}")


def _time(name: str, config: BenchmarkConfig, func: Callable[[], Any], **metadata: Any) -> BenchmarkResult:
    for _ in range(config.warmup_iterations):
        func()

    latencies: list[int] = []
    for _ in range(config.benchmark_iterations):
        start = time.perf_counter_ns()
        func()
        latencies.append(time.perf_counter_ns() - start)

    return BenchmarkResult(
        name=name,
        iterations=config.benchmark_iterations,
        latencies_ns=latencies,
        metadata={"shape": config.shape, "checked": config.checked, **metadata},
    )


def _source(config: BenchmarkConfig) -> nds.NDArray:
    array = nds.NDArray(config.shape, checked=config.checked)
    array.data.copy_(torch.randn(array.size, dtype=torch.float64))
    return array


def benchmark_slice(config: BenchmarkConfig) -> BenchmarkResult:
    """Benchmark taking a two-index slice."""
    array = _source(config)
    return _time("slice_at(i, j)", config, lambda: array.slice_at(3, 5))


def benchmark_element_access(config: BenchmarkConfig) -> BenchmarkResult:
    """Benchmark reading one element."""
    array = _source(config)
    index = tuple(extent - 1 for extent in config.shape)
    return _time("element_at", config, lambda: array.element_at(*index))


def benchmark_add(config: BenchmarkConfig) -> BenchmarkResult:
    """Benchmark elementwise addition of two arrays."""
    first = _source(config)
    second = _source(config)
    return _time("array + array", config, lambda: first + second, elements=first.size)


def benchmark_scale(config: BenchmarkConfig) -> BenchmarkResult:
    """Benchmark in-place scaling by a scalar."""
    array = _source(config)

    def scale() -> None:
        nonlocal array
        array *= 1.0000001

    return _time("array *= scalar", config, scale, elements=array.size)


def benchmark_transpose(config: BenchmarkConfig) -> BenchmarkResult:
    """Benchmark a four-axis transpose."""
    array = _source(config)
    pattern = "ijkl->ikjl"
    return _time(f"transpose {pattern}", config, lambda: nds.transpose(array, pattern))


def benchmark_view_vs_astype(config: BenchmarkConfig) -> list[BenchmarkResult]:
    """Benchmark reinterpretation against conversion."""
    array = _source(config)
    return [
        _time("view(complex128)", config, lambda: array.view(torch.complex128)),
        _time("astype(complex128)", config, lambda: array.astype(torch.complex128)),
    ]


def run_all_benchmarks(config: BenchmarkConfig) -> list[BenchmarkResult]:
    """Run every benchmark and print a summary of each."""
    results = [
        benchmark_slice(config),
        benchmark_element_access(config),
        benchmark_add(config),
        benchmark_scale(config),
        benchmark_transpose(config),
        *benchmark_view_vs_astype(config),
    ]
    for result in results:
        result.print_summary()

    if config.output_json is not None:
        payload = {
            "torch_version": torch.__version__,
            "ndstride_version": nds.__version__,
            "results": [result.to_dict() for result in results],
        }
        config.output_json.write_text(json.dumps(payload, indent=2))
        logger.info("Results written to %s", config.output_json)
    return results


def main() -> int:
    parser = argparse.ArgumentParser(description="ndstride Array Benchmark")
    parser.add_argument(
        "--iterations",
        type=int,
        default=1000,
        help="Timed iterations per benchmark (default: 1000)",
    )
    parser.add_argument(
        "--warmup",
        type=int,
        default=5,
        help="Warmup iterations per benchmark (default: 5)",
    )
    parser.add_argument(
        "--shape",
        type=int,
        nargs=4,
        default=[32, 32, 8, 16],
        help="Four extents of the benchmark arrays",
    )
    parser.add_argument(
        "--unchecked",
        action="store_true",
        help="Build arrays in unchecked mode",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write results to this JSON file",
    )
    args = parser.parse_args()

    config = BenchmarkConfig(
        warmup_iterations=args.warmup,
        benchmark_iterations=args.iterations,
        shape=tuple(args.shape),
        checked=not args.unchecked,
        output_json=args.output,
    )
    logger.info("Running ndstride benchmarks with shape %s", config.shape)
    run_all_benchmarks(config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
