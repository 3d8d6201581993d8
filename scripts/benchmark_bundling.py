#!/usr/bin/env python3
"""
Benchmark edge bundling strategies on synthetic random graphs.

Usage:
    python scripts/benchmark_bundling.py [--edges N,...] [--strategies NAME,...]

Examples:
    python scripts/benchmark_bundling.py
    python scripts/benchmark_bundling.py --edges 100,500 --cycles 4
    python scripts/benchmark_bundling.py --strategies parallel --max-extent 256
"""

from __future__ import annotations

import argparse
import json
import time
from typing import Any

import numpy as np

from edge_bundling import (
    BundlingConfig,
    ForceEdgeBundling,
    NumpySubstrate,
    ParallelForceEdgeBundling,
    bundling_summary,
)


def generate_graph(n_edges: int, seed: int = 42, size: float = 1000.0) -> tuple[list, list]:
    """
    Random geometric graph: nodes uniform in a square, edges between random pairs.

    Returns:
        (nodes, edges) with nodes as (x, y) tuples and edges as index pairs
    """
    rng = np.random.default_rng(seed)
    n_nodes = max(2, n_edges // 2)
    nodes = [tuple(p) for p in rng.uniform(0, size, size=(n_nodes, 2)).tolist()]
    sources = rng.integers(0, n_nodes, size=n_edges)
    offsets = rng.integers(1, n_nodes, size=n_edges)
    targets = (sources + offsets) % n_nodes
    return nodes, list(zip(sources.tolist(), targets.tolist()))


def benchmark_strategy(
    strategy: str,
    nodes: list,
    edges: list,
    config: BundlingConfig,
    max_extent: int,
) -> dict[str, Any]:
    """
    Benchmark a single strategy.

    Returns:
        Dict with timing and quality info
    """
    if strategy == "sequential":
        bundling = ForceEdgeBundling(nodes=nodes, edges=edges, config=config)
    else:
        bundling = ParallelForceEdgeBundling(
            nodes=nodes,
            edges=edges,
            config=config,
            substrate=NumpySubstrate(max_buffer_extent=max_extent),
        )

    start = time.perf_counter()
    bundling.run()
    elapsed = time.perf_counter() - start

    summary = bundling_summary(bundling.paths)
    compatible = sum(len(c) for c in bundling.compatibility)
    return {
        "time_seconds": elapsed,
        "num_edges": len(edges),
        "compatible_pairs": compatible // 2,
        "ink_ratio": summary["ink_ratio"],
        "mean_deviation": summary["mean_deviation"],
    }


def run_benchmarks(
    edge_counts: list[int],
    strategies: list[str],
    cycles: int = 6,
    capacity: int = 500,
    max_extent: int = 4096,
    seed: int = 42,
) -> list[dict]:
    """Run every strategy on a graph of each size."""
    config = BundlingConfig(C=cycles, max_compatible_edges=capacity, capacity_policy="drop")
    results = []

    print(f"\nBenchmarking {len(strategies)} strategies on {len(edge_counts)} graphs")
    print(f"Cycles: {cycles}, Capacity: {capacity}, Max extent: {max_extent}")
    print("=" * 80)

    for n_edges in edge_counts:
        nodes, edges = generate_graph(n_edges, seed=seed)
        print(f"\nrandom_{n_edges}: {len(nodes)} nodes, {n_edges} edges")
        print("-" * 60)

        for strategy in strategies:
            try:
                result = benchmark_strategy(strategy, nodes, edges, config, max_extent)
            except ValueError as e:
                print(f"  {strategy:12s}: ERROR - {e}")
                continue
            print(
                f"  {strategy:12s}: {result['time_seconds']:.4f}s  "
                f"(ink ratio {result['ink_ratio']:.3f}, "
                f"{result['compatible_pairs']} compatible pairs)"
            )
            results.append({"graph": f"random_{n_edges}", "strategy": strategy, **result})

    # Summary
    print("\n" + "=" * 80)
    print("SUMMARY (times in seconds)")
    print("=" * 80)

    print(f"{'Graph':<25s}", end="")
    for strategy in strategies:
        print(f"{strategy:>12s}", end="")
    print()
    print("-" * (25 + 12 * len(strategies)))

    for n_edges in edge_counts:
        graph = f"random_{n_edges}"
        print(f"{graph:<25s}", end="")
        for strategy in strategies:
            matching = [r for r in results if r["graph"] == graph and r["strategy"] == strategy]
            if matching:
                print(f"{matching[0]['time_seconds']:>12.4f}", end="")
            else:
                print(f"{'--':>12s}", end="")
        print()

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark edge bundling strategies")
    parser.add_argument("--edges", default="50,200,500", help="Comma-separated edge counts")
    parser.add_argument(
        "--strategies",
        default="sequential,parallel",
        help="Comma-separated strategies (sequential, parallel)",
    )
    parser.add_argument("--cycles", type=int, default=6, help="Number of cycles after the first")
    parser.add_argument("--capacity", type=int, default=500, help="Compatibility slots per edge")
    parser.add_argument("--max-extent", type=int, default=4096, help="Maximum buffer extent")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--output", help="Output JSON file for results")

    args = parser.parse_args()

    strategies = [s for s in args.strategies.split(",") if s]
    unknown = [s for s in strategies if s not in ("sequential", "parallel")]
    if unknown:
        parser.error(f"unknown strategies: {', '.join(unknown)}")

    results = run_benchmarks(
        edge_counts=[int(n) for n in args.edges.split(",") if n],
        strategies=strategies,
        cycles=args.cycles,
        capacity=args.capacity,
        max_extent=args.max_extent,
        seed=args.seed,
    )

    if args.output and results:
        with open(args.output, "w") as f:
            json.dump(results, f, indent=2)
        print(f"\nResults saved to {args.output}")


if __name__ == "__main__":
    main()
