"""
Suggestion engine benchmarking module.

Measures, per algorithm: index build time, query latency, bucket count and
index size on disk. Uses a synthetic word list in a temp directory; never
touches the configured indexes.
"""

import asyncio
import csv
import random
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, List, Sequence

from engine import IndexStore, PhoneticSearcher
from phonetics import DEFAULT_ACTIVE_ALGORITHMS, get_encoder

BENCHMARK_COUNTS = (1000, 10000, 50000)
QUERY_RUNS = 50

_ONSETS = ["", "b", "ch", "d", "f", "g", "j", "l", "m", "n", "p", "qu", "r", "s", "t", "v"]
_NUCLEI = ["a", "e", "i", "o", "ou", "au", "eau", "an", "on", "in", "é", "è"]
_CODAS = ["", "", "", "t", "s", "r", "l", "x", "nt", "tte"]


def synthetic_words(count: int, seed: int = 7) -> List[str]:
    """Pronounceable French-looking pseudo-words; deterministic for a seed."""
    rng = random.Random(seed)
    words = []
    for _ in range(count):
        syllables = rng.randint(1, 3)
        w = "".join(rng.choice(_ONSETS) + rng.choice(_NUCLEI) for _ in range(syllables))
        words.append(w + rng.choice(_CODAS))
    return words


async def _measure(algorithm: str, words: List[str], root: Path, queries: Sequence[str]) -> Dict[str, Any]:
    store = IndexStore(root, backend="sqlite", word_list_version=f"bench{len(words)}")
    searcher = PhoneticSearcher(get_encoder(algorithm), store, words)
    row: Dict[str, Any] = {"algorithm": algorithm, "num_words": len(words)}
    try:
        t0 = time.perf_counter()
        await searcher.initialize()
        row["build_sec"] = round(time.perf_counter() - t0, 4)
        if searcher.error is not None:
            raise searcher.error
        t0 = time.perf_counter()
        for q in queries:
            await searcher.suggest(q)
        row["query_latency_ms"] = round((time.perf_counter() - t0) / len(queries) * 1000, 3)
        stats = await searcher.status()
        row["buckets"] = stats.get("buckets", 0)
        path = store.index_path(algorithm)
        row["index_size_kb"] = round(path.stat().st_size / 1024, 2) if path and path.exists() else 0
    except Exception as e:
        row["error"] = str(e)
    finally:
        await searcher.close()
    return row


def _summarize(results: List[Dict[str, Any]]) -> str:
    valid = [r for r in results if not r.get("error")]
    if not valid:
        return "Insufficient data."
    parts = []
    for algorithm in dict.fromkeys(r["algorithm"] for r in valid):
        runs = [r for r in valid if r["algorithm"] == algorithm]
        largest = max(runs, key=lambda r: r["num_words"])
        per_k = largest["build_sec"] / largest["num_words"] * 1000
        parts.append(
            f"{algorithm}: ~{per_k:.2f}s build per 1000 words, "
            f"{largest['query_latency_ms']:.2f} ms per query at N={largest['num_words']}."
        )
    return " ".join(parts)


def run_benchmark(
    counts: Sequence[int] = BENCHMARK_COUNTS,
    algorithms: Sequence[str] = DEFAULT_ACTIVE_ALGORITHMS,
    csv_path: Path | None = None,
) -> Dict[str, Any]:
    """Run build + query timings for every (algorithm, count) in an isolated temp directory."""
    results: List[Dict[str, Any]] = []
    with tempfile.TemporaryDirectory() as tmp:
        for count in counts:
            words = synthetic_words(count)
            queries = random.Random(count).sample(words, min(QUERY_RUNS, len(words)))
            for algorithm in algorithms:
                results.append(asyncio.run(_measure(algorithm, words, Path(tmp), queries)))

    out: Dict[str, Any] = {
        "results": results,
        "dataset_sizes": list(counts),
        "summary": _summarize(results),
    }
    if csv_path:
        fieldnames = ["algorithm", "num_words", "build_sec", "query_latency_ms", "buckets", "index_size_kb"]
        if any("error" in r for r in results):
            fieldnames.append("error")
        with open(csv_path, "w", newline="", encoding="utf-8") as f:
            w = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
            w.writeheader()
            w.writerows(results)
    return out
