"""Suggestion engine benchmarking: index build time, query latency, index size."""

from .benchmark import run_benchmark, synthetic_words, BENCHMARK_COUNTS

__all__ = ["run_benchmark", "synthetic_words", "BENCHMARK_COUNTS"]
