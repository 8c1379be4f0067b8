"""
Benchmark: structshrink enumeration, validation and reduction.

Measures, on generated programs of increasing size:
    1. How many candidates one tree has, and how fast they are produced
    2. How much the validity filter costs on top of enumeration
    3. How many predicate calls a full reduction takes, with and
       without smallest-first lookahead

The point is NOT raw speed: the predicate of a real reduction is an
external engine run that dwarfs everything here.  The number that
matters is predicate calls.
"""

import sys
import os
import random
import time
from functools import partial

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import trio

from structshrink.codegen import generate
from structshrink.fuzz import fuzz_script
from structshrink.lookahead import estimated_size
from structshrink.nodes import contains_type
from structshrink.shrink import shrink, valid_subtrees
from structshrink.subtrees import subtrees
from structshrink.validator import is_valid


# ═══════════════════════════════════════════════════════════════════
#  TEST DATA
# ═══════════════════════════════════════════════════════════════════

DEPTHS = [2, 3, 4, 5]
PER_DEPTH = 10

TARGETS = [
    "ThrowStatement",
    "ReturnStatement",
    "TemplateExpression",
]


def programs_at(depth, n=PER_DEPTH, seed=0):
    rng = random.Random(seed)
    return [fuzz_script(rng, max_depth=depth) for _ in range(n)]


def programs_containing(type_name, n=5, depth=4):
    found = []
    for seed in range(10000):
        tree = fuzz_script(random.Random(seed), max_depth=depth)
        if contains_type(type_name, tree) and is_valid(tree):
            found.append(tree)
            if len(found) == n:
                break
    return found


# ═══════════════════════════════════════════════════════════════════
#  BENCHMARKS
# ═══════════════════════════════════════════════════════════════════

def benchmark_enumeration():
    """Candidates per tree and enumeration speed."""
    print("=" * 70)
    print("  §1  ENUMERATION")
    print("=" * 70)
    print()

    for depth in DEPTHS:
        trees = programs_at(depth)
        sizes = [estimated_size(t) for t in trees]

        t0 = time.perf_counter()
        counts = [sum(1 for _ in subtrees(t)) for t in trees]
        dt = time.perf_counter() - t0

        total = sum(counts)
        print(f"  depth {depth}: size~{sum(sizes) / len(sizes):>7.1f}  "
              f"candidates~{total / len(trees):>7.1f}  "
              f"time={dt * 1000:>8.2f}ms  ({dt / max(total, 1) * 1e6:.1f}µs/candidate)")

    print()


def benchmark_validation():
    """Cost of the validity filter relative to enumeration."""
    print("=" * 70)
    print("  §2  VALIDITY FILTER")
    print("=" * 70)
    print()

    for depth in DEPTHS:
        trees = programs_at(depth, seed=1)

        t0 = time.perf_counter()
        total = sum(sum(1 for _ in subtrees(t)) for t in trees)
        dt_plain = time.perf_counter() - t0

        t0 = time.perf_counter()
        valid = sum(sum(1 for _ in valid_subtrees(t)) for t in trees)
        dt_valid = time.perf_counter() - t0

        kept = valid / max(total, 1)
        print(f"  depth {depth}: {valid:>6}/{total:<6} valid ({kept * 100:5.1f}%)  "
              f"enumerate={dt_plain * 1000:>8.2f}ms  filtered={dt_valid * 1000:>8.2f}ms")

    print()


def benchmark_reduction():
    """Predicate calls and time for a full reduction."""
    print("=" * 70)
    print("  §3  REDUCTION (predicate calls)")
    print("=" * 70)
    print()

    for type_name in TARGETS:
        predicate = partial(contains_type, type_name)
        trees = programs_containing(type_name)
        if not trees:
            print(f"  {type_name}: no generated program contains one")
            continue

        for window in (None, 10):
            calls = []
            t0 = time.perf_counter()
            results = []
            for tree in trees:
                kwargs = {"on_candidate": calls.append}
                if window is not None:
                    kwargs["lookahead"] = window
                results.append(trio.run(partial(shrink, tree, predicate, **kwargs)))
            dt = time.perf_counter() - t0

            label = "plain" if window is None else f"lookahead={window}"
            print(f"  {type_name:<22} {label:<14} calls={len(calls):>6}  "
                  f"time={dt * 1000:>9.2f}ms  → {generate(results[0])}")

    print()


def main():
    print()
    print("╔══════════════════════════════════════════════════════════════════════╗")
    print("║          GRAMMAR-AWARE TREE REDUCTION — BENCHMARK SUITE             ║")
    print("║          structshrink v0.1.0                                        ║")
    print("╚══════════════════════════════════════════════════════════════════════╝")
    print()

    benchmark_enumeration()
    benchmark_validation()
    benchmark_reduction()

    print("=" * 70)
    print("  SUMMARY")
    print("=" * 70)
    print()
    print("  Candidates grow roughly linearly with tree size; each is one")
    print("  edit away from its input, so a reduction pass is linear too.")
    print("  Lookahead trades a bounded buffer for trying small candidates")
    print("  first, which usually cuts predicate calls on wide programs.")
    print()


if __name__ == "__main__":
    main()
