#!/usr/bin/env python3
"""
Transition Proof Benchmark
==========================

Benchmarks proving and verification time for transition circuits.
Target: <5 seconds proving time.

Usage:
    python scripts/benchmark_proofs.py [--iterations N] [--circuit NAME] [--output FILE]

Requirements:
    - Keys set up for the configured backend (python scripts/setup_keys.py)
"""

import argparse
import asyncio
import json
import random
import statistics
import sys
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass

from zkarena.circuits.arena import WEAPONS, ArenaItem, ItemType, build_item_tree
from zkarena.circuits.duel import CARD_CATALOG, DECK_SIZE
from zkarena.config import settings
from zkarena.crypto.field import hash_to_field
from zkarena.logging import setup_logging
from zkarena.proofs import ProofToolkit, build_toolkit
from zkarena.witness import ArenaPlayer, DrawPlayer, DuelPlayer, PokerPlayer, TransitionInputs


# Configuration
TARGET_TIME_MS = 5000
DEFAULT_ITERATIONS = 10


@dataclass
class BenchmarkResult:
    """Result of a benchmark run."""

    circuit: str
    iterations: int
    min_ms: int
    max_ms: int
    mean_ms: float
    median_ms: float
    p95_ms: int
    p99_ms: int
    verify_mean_ms: float
    success_rate: float
    pass_target: bool


def percentile(data: list[int], p: int) -> int:
    """Calculate percentile."""
    sorted_data = sorted(data)
    index = int(len(sorted_data) * p / 100)
    return sorted_data[min(index, len(sorted_data) - 1)]


# ============================================================================
# Workloads
# ============================================================================


def arena_move(i: int) -> TransitionInputs:
    arena = settings.arena
    player = ArenaPlayer(slot=i % 2)
    player.spawn(hash_to_field(f"bench-{i}"), 0, arena.arena_size, arena.max_health)
    x, y, z = player.position
    target = (min(x + random.randint(0, 9), arena.arena_size), min(y + random.randint(0, 9), arena.arena_size), z)
    return player.move(target, arena.max_speed, arena.move_delta_ms, arena.arena_size)


def arena_damage(i: int) -> TransitionInputs:
    arena = settings.arena
    weapon = WEAPONS[i % len(WEAPONS)]
    target = ArenaPlayer(slot=1)
    target.spawn(hash_to_field(f"bench-{i}"), 0, arena.arena_size, arena.max_health)
    x, y, z = target.position
    shot = {
        "origin_x": max(x - 20, 0),
        "origin_y": y,
        "origin_z": z,
        "direction_x": 1000,
        "direction_y": 0,
        "direction_z": 0,
        "max_range": weapon.max_range,
        "damage": weapon.damage,
        "shot_index": i,
    }
    return target.take_shot(shot, arena.hit_radius)


def arena_item_collect(i: int) -> TransitionInputs:
    arena = settings.arena
    player = ArenaPlayer(slot=0)
    player.spawn(hash_to_field(f"bench-{i}"), 0, arena.arena_size, arena.max_health)
    x, y, z = player.position
    items = [ArenaItem(n, ItemType(n % len(ItemType)), x, y, z) for n in range(arena.item_count)]
    return player.collect(items[i % len(items)], build_item_tree(items), arena.collection_radius, arena.max_health)


def duel_draw(i: int) -> TransitionInputs:
    cards = [CARD_CATALOG[n % len(CARD_CATALOG)].card_id for n in range(DECK_SIZE)]
    player = DuelPlayer(cards)
    return player.draw(i % DECK_SIZE)


def poker_hand_rank(i: int) -> TransitionInputs:
    return PokerPlayer().reveal_hand(hash_to_field(f"deck-{i}"), i % 2)


def draw_card(i: int) -> TransitionInputs:
    return DrawPlayer().draw(hash_to_field(f"table-{i}"), i % 40, 0)


WORKLOADS: dict[str, Callable[[int], TransitionInputs]] = {
    "arena_move": arena_move,
    "arena_damage": arena_damage,
    "arena_item_collect": arena_item_collect,
    "duel_draw": duel_draw,
    "poker_hand_rank": poker_hand_rank,
    "draw_card": draw_card,
}


async def benchmark(toolkit: ProofToolkit, name: str, iterations: int) -> BenchmarkResult:
    """Benchmark one circuit."""
    times: list[int] = []
    verify_times: list[int] = []
    successes = 0

    print(f"\n{'=' * 60}")
    print(f"Benchmarking: {name}")
    print(f"Iterations: {iterations}")
    print(f"{'=' * 60}")

    for i in range(iterations):
        inputs = WORKLOADS[name](i)
        try:
            start = time.time()
            proof = await toolkit.prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)
            duration_ms = int((time.time() - start) * 1000)

            result = await toolkit.verifier.verify_detailed(
                inputs.circuit_id, proof.proof, proof.public_signals.signals
            )
        except Exception as e:
            print(f"  [{i + 1}/{iterations}] ✗ FAILED: {e}")
            continue

        times.append(duration_ms)
        verify_times.append(result.verification_time_ms)
        if result.valid:
            successes += 1

        status = "✓" if duration_ms < TARGET_TIME_MS and result.valid else "✗"
        print(f"  [{i + 1}/{iterations}] {status} {duration_ms}ms (verify {result.verification_time_ms}ms)")

    if not times:
        return BenchmarkResult(name, iterations, 0, 0, 0, 0, 0, 0, 0, 0, False)

    return BenchmarkResult(
        circuit=name,
        iterations=iterations,
        min_ms=min(times),
        max_ms=max(times),
        mean_ms=statistics.mean(times),
        median_ms=statistics.median(times),
        p95_ms=percentile(times, 95),
        p99_ms=percentile(times, 99),
        verify_mean_ms=statistics.mean(verify_times),
        success_rate=successes / iterations,
        pass_target=percentile(times, 95) < TARGET_TIME_MS and successes == iterations,
    )


def print_results(results: list[BenchmarkResult]) -> bool:
    """Print benchmark results summary."""
    print(f"\n{'=' * 70}")
    print("BENCHMARK SUMMARY")
    print(f"{'=' * 70}")

    print(f"\n{'Circuit':<25} | {'P95':>8} | {'Mean':>8} | {'Verify':>8} | Status")
    print("-" * 70)

    all_pass = True
    for r in results:
        status = "✅ PASS" if r.pass_target else "❌ FAIL"
        all_pass = all_pass and r.pass_target
        print(f"{r.circuit:<25} | {r.p95_ms:>6}ms | {r.mean_ms:>6.0f}ms | {r.verify_mean_ms:>6.0f}ms | {status}")

    print()
    return all_pass


async def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark transition proof generation")
    parser.add_argument(
        "--iterations",
        "-n",
        type=int,
        default=DEFAULT_ITERATIONS,
        help=f"Number of iterations (default: {DEFAULT_ITERATIONS})",
    )
    parser.add_argument("--circuit", "-c", choices=list(WORKLOADS), help="Benchmark one circuit only")
    parser.add_argument("--output", "-o", type=str, help="Output JSON file for results")
    args = parser.parse_args()

    setup_logging(log_level="WARNING", service_name="benchmark")

    print("╔" + "═" * 58 + "╗")
    print("║  ZK ARENA PROOF BENCHMARK                                ║")
    print(f"║  Backend: {settings.zk.backend.value:<47}║")
    print("╚" + "═" * 58 + "╝")

    try:
        toolkit = build_toolkit()
    except Exception as e:
        print(f"\n❌ Failed to initialize prover: {e}")
        print("   Make sure keys are set up: python scripts/setup_keys.py")
        sys.exit(1)

    names = [args.circuit] if args.circuit else list(WORKLOADS)
    results = [await benchmark(toolkit, name, args.iterations) for name in names]
    all_pass = print_results(results)

    if args.output:
        output_data = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "backend": settings.zk.backend.value,
            "target_ms": TARGET_TIME_MS,
            "results": [asdict(r) for r in results],
            "all_pass": all_pass,
        }
        with open(args.output, "w") as f:
            json.dump(output_data, f, indent=2)
        print(f"Results saved to: {args.output}")

    sys.exit(0 if all_pass else 1)


if __name__ == "__main__":
    asyncio.run(main())
