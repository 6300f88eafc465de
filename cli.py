#!/usr/bin/env python3
"""
CLI for the phonetic suggestion engine.

Commands:
  build            Build the phonetic index of every active algorithm
  suggest <word>   Print ranked suggestions for a partially typed word
  status           Show per-algorithm index state
  benchmark        Time an isolated build + query run on a synthetic word list
"""

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from engine import EngineConfig, PhoneticAggregator, SearcherState, configure_logging


def load_config(args: argparse.Namespace) -> EngineConfig:
    base = EngineConfig.from_env()
    overrides = {}
    if args.word_list:
        overrides["word_list"] = Path(args.word_list)
    if args.index_dir:
        overrides["index_dir"] = Path(args.index_dir)
    if args.algorithms:
        overrides["active_algorithms"] = tuple(a.strip() for a in args.algorithms.split(",") if a.strip())
    if not overrides:
        return base
    return replace(base, **overrides)


async def _build(config: EngineConfig) -> int:
    aggregator = PhoneticAggregator.from_config(config)
    try:
        states = await aggregator.initialize()
        failed = 0
        for name, state in states.items():
            searcher = aggregator.searchers[name]
            report = searcher.build_report
            if state == SearcherState.READY and report is not None and report.already_built:
                print(f"{name}: already built")
            elif state == SearcherState.READY and report is not None:
                print(
                    f"{name}: {report.words_indexed:,} words indexed, "
                    f"{report.words_skipped:,} skipped, {report.elapsed_sec:.2f}s"
                )
            else:
                failed += 1
                print(f"{name}: FAILED - {searcher.error}", file=sys.stderr)
        return 1 if failed else 0
    finally:
        await aggregator.close()


async def _suggest(config: EngineConfig, query: str, limit: Optional[int]) -> int:
    aggregator = PhoneticAggregator.from_config(config)
    try:
        await aggregator.initialize()
        result = await aggregator.suggest(query, limit)
    finally:
        await aggregator.close()
    print("Query:", query)
    print("Status:", result.status.value, "(from " + (", ".join(result.sources) or "no algorithm") + ")")
    for word in result.matches:
        print(" -", word)
    return 0 if result.ok else 1


async def _status(config: EngineConfig) -> int:
    # Opening an index without building it: inspect via the store directly.
    aggregator = PhoneticAggregator.from_config(config)
    try:
        for name, searcher in aggregator.searchers.items():
            store = searcher.store
            path = store.index_path(name)
            if path is not None and not path.exists():
                print(f"{name}: not built ({store.index_name(name)})")
                continue
            index = await store.open(name)
            try:
                built = await index.is_built()
                stats = await index.stats()
            finally:
                await index.close()
            state = "built" if built else "incomplete"
            print(f"{name}: {state} ({index.name}) buckets={stats['buckets']:,} words={stats['words']:,}")
    finally:
        await aggregator.close()
    return 0


def cmd_build(args: argparse.Namespace) -> int:
    return asyncio.run(_build(load_config(args)))


def cmd_suggest(args: argparse.Namespace) -> int:
    return asyncio.run(_suggest(load_config(args), args.query, args.limit))


def cmd_status(args: argparse.Namespace) -> int:
    return asyncio.run(_status(load_config(args)))


def cmd_benchmark(args: argparse.Namespace) -> int:
    from benchmark.benchmark import run_benchmark, BENCHMARK_COUNTS

    config = load_config(args)
    result = run_benchmark(counts=BENCHMARK_COUNTS, algorithms=config.active_algorithms)
    for row in result["results"]:
        if row.get("error"):
            print(f"{row['algorithm']:>10} n={row['num_words']:>7,}: ERROR {row['error']}")
            continue
        print(
            f"{row['algorithm']:>10} n={row['num_words']:>7,}: build {row['build_sec']:.3f}s, "
            f"query {row['query_latency_ms']:.2f}ms, {row['buckets']:,} buckets"
        )
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Phonetic word suggestions tolerant of spelling errors"
    )
    parser.add_argument("--word-list", help="JSON array or one-word-per-line file (default: PHONO_WORD_LIST)")
    parser.add_argument("--index-dir", help="Directory for persistent indexes (default: PHONO_INDEX_DIR)")
    parser.add_argument("--algorithms", "-a", help="Comma-separated active algorithms")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("build", help="Build the phonetic indexes")
    p_suggest = sub.add_parser("suggest", help="Suggest words for a query")
    p_suggest.add_argument("query", help="Partially typed word")
    p_suggest.add_argument("--limit", "-n", type=int, default=None, help="Maximum suggestions")
    sub.add_parser("status", help="Show index state per algorithm")
    sub.add_parser("benchmark", help="Run build/query benchmark on synthetic words")
    args = parser.parse_args()
    configure_logging(EngineConfig.from_env().log_level)
    if args.command == "build":
        return cmd_build(args)
    elif args.command == "suggest":
        return cmd_suggest(args)
    elif args.command == "status":
        return cmd_status(args)
    elif args.command == "benchmark":
        return cmd_benchmark(args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
