#!/usr/bin/env python
"""Simple demonstration of outbreak detection under periodic testing."""

from pathlib import Path
import sys

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from outbreak_detection.analysis import DetectionAnalyzer
from outbreak_detection.config import SimulationParameters
from outbreak_detection.network import Network
from outbreak_detection.simulation import SimulationRuns, simulate

SEEDS = [2507, 2507, 2101, 1308]


def demo_toy_complete_graph():
    """Demonstrate a few short outbreaks on a complete graph."""
    print("\n" + "=" * 60)
    print("DEMO 1: Toy Complete Graph (20 staff, 3 days)")
    print("=" * 60)

    network = Network.complete(20)
    params = SimulationParameters(
        network_name=network.name,
        time_horizon=3,
        repetitions=5,
        false_negative_probability=0.25,
        transmission_probability=0.1,
        latency=2,
        external_infection_probability=0.1,
    )
    output = simulate(network, params, SEEDS)

    for i, path in enumerate(output.sample_paths):
        sizes = [len(path[t]) for t in sorted(path)]
        print(f"Run {i}: infectious per day {sizes}")
    print(f"Simulation time: {output.wall_time:.3f}s")


def demo_tests_per_day():
    """Demonstrate how detection improves with more tests per day."""
    print("\n" + "=" * 60)
    print("DEMO 2: Tests per Day (neighboring graph, 100 staff)")
    print("=" * 60)

    network = Network.neighboring(100, 20)
    params = SimulationParameters(
        network_name=network.name,
        time_horizon=6,
        repetitions=2000,
        false_negative_probability=0.21,
        transmission_probability=0.05,
        latency=3,
        external_infection_probability=0.0001,
    )
    runs = SimulationRuns().run(network, [params], SEEDS)

    analyzer = DetectionAnalyzer()
    for k in [1, 5, 10, 20]:
        results = analyzer.test(network, runs, k, 0.05, "circular", 3567, 1118)
        output = results[(params, k)]
        print(f"k={k:2d}: detection probability {output.mean:.3f} +- {output.half_width:.3f}")


def demo_random_order_batches():
    """Demonstrate batched estimates with a random testing order."""
    print("\n" + "=" * 60)
    print("DEMO 3: Random Testing Order (10 batches)")
    print("=" * 60)

    network = Network.crossing(100, 20)
    params = SimulationParameters(
        network_name=network.name,
        time_horizon=6,
        repetitions=500,
        false_negative_probability=0.21,
        transmission_probability=0.05,
        latency=3,
        external_infection_probability=0.0001,
    )
    batches = [
        SimulationRuns().run(network, [params], [seed + i for seed in SEEDS]) for i in range(10)
    ]

    analyzer = DetectionAnalyzer()
    for k in [5, 10]:
        analyzer.test(network, batches, k, 0.05, "random", 3567, 1118)
    print(analyzer)


if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("OUTBREAK DETECTION - DEMO")
    print("=" * 60)

    demo_toy_complete_graph()
    demo_tests_per_day()
    demo_random_order_batches()
