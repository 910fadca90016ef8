"""Benchmark the KeyTrie operations for growing numbers of keys."""

import gc
import json
import random
import time
import tracemalloc
from pathlib import Path
from typing import Any, Callable

import matplotlib.pyplot as plt
import psutil

from src.custom_data_structures.Trie.Trie import KeyTrie

DATA_SIZES = [1_000, 10_000, 50_000, 100_000]
OPERATIONS = ["set", "get", "get_range", "delete"]
RESULTS_DIR = Path(__file__).parent.parent / "static" / "benchmarks" / "trie"
SEED = 1234


def make_keys(size: int) -> list[list[Any]]:
    """Build timestamp-like keys spread over a few users and days.

    Args:
        size (int): The number of keys to build.

    Returns:
        list[list[Any]]: Keys of the form [user, day, timestamp].

    """
    rng = random.Random(SEED)
    return [
        [f"user{rng.randrange(10)}", rng.randrange(30), 1_700_000_000 + i]
        for i in range(size)
    ]


def time_operation(
    keys: list[list[Any]],
    operation: Callable[[list[Any]], Any],
) -> float:
    """Run an operation for every key.

    Returns:
        float: The average time per call, in microseconds.

    """
    start = time.perf_counter()
    for key in keys:
        operation(key)
    elapsed = time.perf_counter() - start
    return elapsed / len(keys) * 1_000_000


def benchmark_size(size: int) -> dict[str, float]:
    """Benchmark every operation on a trie holding `size` keys.

    Args:
        size (int): The number of keys.

    Returns:
        dict[str, float]: Average microseconds per operation plus
        the memory measurements.

    """
    keys = make_keys(size)
    # Range queries are run on the [user, day] prefixes
    prefixes = [key[:2] for key in keys[: max(1, size // 100)]]
    process = psutil.Process()

    gc.collect()
    rss_before = process.memory_info().rss
    tracemalloc.start()

    trie = KeyTrie()
    results: dict[str, float] = {}
    results["set"] = time_operation(keys, lambda key: trie.set(key, key[-1]))
    _, peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()
    rss_after = process.memory_info().rss

    results["get"] = time_operation(keys, trie.get)
    results["get_range"] = time_operation(prefixes, trie.get_range)
    results["delete"] = time_operation(keys, trie.delete)
    results["tracemalloc_peak_mb"] = peak / (1024 * 1024)
    results["rss_growth_mb"] = (rss_after - rss_before) / (1024 * 1024)

    if trie.get_range([]):
        raise RuntimeError("Trie is not empty after deleting every key.")
    return results


def plot_results(results: dict[int, dict[str, float]]) -> None:
    """Save one bar chart per operation into RESULTS_DIR."""
    x = range(len(DATA_SIZES))
    for operation in OPERATIONS:
        y_values = [results[size][operation] for size in DATA_SIZES]

        plt.figure(figsize=(8, 5))
        plt.bar(x, y_values, color="steelblue")
        plt.xticks(x, [str(size) for size in DATA_SIZES])
        plt.xlabel("Keys")
        plt.ylabel("Time per call (µs)")
        plt.title(f"KeyTrie.{operation}")

        for i, v in enumerate(y_values):
            plt.text(i, v + 0.01, f"{v:.2f}", ha="center", va="bottom")

        plt.tight_layout()
        plt.savefig(RESULTS_DIR / f"benchmark_{operation}.png")
        plt.close("all")


def main() -> None:
    """Main function."""
    RESULTS_DIR.mkdir(parents=True, exist_ok=True)

    results: dict[int, dict[str, float]] = {}
    for size in DATA_SIZES:
        print(f"\n--- Benchmarking {size} keys ---")
        results[size] = benchmark_size(size)
        for name, value in results[size].items():
            print(f"{name}: {value:.3f}")
        gc.collect()

    plot_results(results)

    results_json_path = RESULTS_DIR / "results.json"
    with open(results_json_path, "w", encoding="utf-8") as f:
        json.dump(results, f, indent=4)
    print(f"\nResults written to {results_json_path}")


if __name__ == "__main__":
    main()
