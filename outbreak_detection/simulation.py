"""Monte Carlo simulation of an outbreak spreading over a staff contact network.

Every real vertex is connected to a synthetic source vertex (label 1) that models
infection from the community. Exposed vertices stay latent for ``latency`` days
before becoming infectious, and infectious vertices never recover.
"""

import time
import warnings
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, NamedTuple, Sequence, Set

import numpy as np
from loguru import logger

from outbreak_detection.combinatorics import (
    discrete_probability_choice,
    select_random_elements,
    truncated_binomial_pmf,
)
from outbreak_detection.config import SimulationParameters
from outbreak_detection.errors import PolicyMismatchWarning, ValidationError
from outbreak_detection.network import NetworkView
from outbreak_detection.seeding import make_rng

SOURCE_VERTEX = 1
MIN_VERTEX_LABEL = 2

# Day -> real vertices infectious as of that day.
SamplePath = Dict[int, FrozenSet[int]]


@dataclass(frozen=True)
class SimulationOutput:
    """Sample paths of one parameter set together with the simulation wall time."""

    params: SimulationParameters
    sample_paths: List[SamplePath]
    wall_time: float = 0.0

    def __len__(self) -> int:
        return len(self.sample_paths)

    def final_sizes(self) -> List[int]:
        """Number of infectious vertices on the last day of each sample path."""
        T = self.params.time_horizon
        return [len(path[T]) for path in self.sample_paths]


@dataclass
class RepetitionState:
    """State of a single repetition while it is being stepped day by day."""

    infectious: Set[int] = field(default_factory=set)
    latent: Dict[int, int] = field(default_factory=dict)  # vertex -> days since exposure

    def is_susceptible(self, v: int) -> bool:
        return v not in self.infectious and v not in self.latent

    def make_infectious(self, vertices: Iterable[int]) -> None:
        for v in vertices:
            self.infectious.add(v)
            self.latent.pop(v, None)

    def expose(self, vertices: Iterable[int]) -> None:
        for v in vertices:
            self.latent.setdefault(v, 0)

    def latency_elapsed(self, latency: int) -> List[int]:
        """Latent vertices whose counter has reached ``latency``."""
        return [v for v, days in self.latent.items() if days == latency]

    def advance_day(self) -> None:
        for v in self.latent:
            self.latent[v] += 1

    def snapshot(self) -> FrozenSet[int]:
        return frozenset(self.infectious)


class SimulationStreams(NamedTuple):
    """The four independent random streams of one parameter set."""

    initial_set: np.random.Generator
    external: np.random.Generator
    internal: np.random.Generator
    initial_count: np.random.Generator

    @classmethod
    def from_seeds(cls, seeds: Sequence[int], params: SimulationParameters) -> "SimulationStreams":
        return cls(*(make_rng(seed, params) for seed in seeds))


def _validate_seeds(seeds: Sequence[int]) -> None:
    if len(seeds) != 4:
        raise ValidationError(f"Expected 4 base seeds, got {len(seeds)}")


class EpidemicSimulator:
    """Simulator of outbreak sample paths on a fixed network."""

    def __init__(self, network: NetworkView, seeds: Sequence[int]):
        """
        Initialize simulator.

        The network is copied and the source vertex is attached to the copy, so
        the caller's network is left untouched.

        Args:
            network: Network whose real vertex labels are all >= 2
            seeds: Base seeds for the initial set, external infections,
                internal transmissions and initial infection count

        Raises:
            ValidationError: On a bad seed tuple or vertex labels
        """
        _validate_seeds(seeds)
        vertices = network.vertices()
        if not vertices:
            raise ValidationError("Network has no vertices")
        if SOURCE_VERTEX in vertices:
            raise ValidationError(
                f"Vertex {SOURCE_VERTEX} is reserved for the source and must not be in the network"
            )
        if min(vertices) < MIN_VERTEX_LABEL:
            raise ValidationError(f"Vertex labels should be >= {MIN_VERTEX_LABEL}")

        self.network_name = network.name
        self.seeds = tuple(seeds)
        self.graph = network.copy()
        self.graph.add_vertex(SOURCE_VERTEX)
        for v in vertices:
            self.graph.add_edge(SOURCE_VERTEX, v)

        self.vertex_list = sorted(vertices)
        self.source_neighbors = sorted(self.graph.neighbors(SOURCE_VERTEX))
        self.adjacency = {
            v: sorted(u for u in self.graph.neighbors(v) if u != SOURCE_VERTEX)
            for v in self.vertex_list
        }

        logger.info(
            f"Initialized EpidemicSimulator: network={self.network_name}, "
            f"s={len(self.vertex_list)}, seeds={self.seeds}"
        )

    def simulate(self, params: SimulationParameters) -> SimulationOutput:
        """
        Run all repetitions of ``params``.

        Args:
            params: Simulation parameters

        Returns:
            SimulationOutput holding one sample path per repetition
        """
        streams = SimulationStreams.from_seeds(self.seeds, params)
        s = len(self.vertex_list)

        # Outbreaks are conditioned on at least one initial infection
        pmf = truncated_binomial_pmf(s, params.external_infection_probability)
        draws = streams.initial_count.random(params.repetitions)
        initial_counts = discrete_probability_choice(draws, range(1, s + 1), pmf)

        logger.info(f"Starting simulation for: {params}")
        tic = time.perf_counter()
        sample_paths = [
            self._run_repetition(params, int(count), streams) for count in initial_counts
        ]
        wall_time = time.perf_counter() - tic
        logger.info(f"Ending simulation for: {params} ({wall_time:.3f}s)")

        return SimulationOutput(params=params, sample_paths=sample_paths, wall_time=wall_time)

    def _run_repetition(
        self, params: SimulationParameters, initial_count: int, streams: SimulationStreams
    ) -> SamplePath:
        """Step one repetition from day 0 to the time horizon."""
        state = RepetitionState()
        state.make_infectious(
            select_random_elements(self.vertex_list, initial_count, streams.initial_set)
        )
        path: SamplePath = {0: state.snapshot()}

        # A vertex exposed on day t is infectious from day t + latency, at least t + 1
        latency = max(params.latency, 1)
        for t in range(1, params.time_horizon + 1):
            self._external_infections(state, params.external_infection_probability, streams.external)
            state.make_infectious(state.latency_elapsed(latency))
            self._transmit(state, params.transmission_probability, streams.internal)
            state.advance_day()
            path[t] = state.snapshot()

        return path

    def _external_infections(
        self, state: RepetitionState, p: float, rng: np.random.Generator
    ) -> None:
        candidates = [v for v in self.source_neighbors if v not in state.infectious]
        if not candidates:
            return
        hits = rng.random(len(candidates)) <= p
        state.make_infectious(v for v, hit in zip(candidates, hits) if hit)

    def _transmit(self, state: RepetitionState, p: float, rng: np.random.Generator) -> None:
        for v in sorted(state.infectious):
            candidates = [u for u in self.adjacency[v] if state.is_susceptible(u)]
            if not candidates:
                continue
            hits = rng.random(len(candidates)) <= p
            state.expose(u for u, hit in zip(candidates, hits) if hit)


def simulate(
    network: NetworkView, params: SimulationParameters, seeds: Sequence[int]
) -> SimulationOutput:
    """Simulate the sample paths of one parameter set on ``network``."""
    return EpidemicSimulator(network, seeds).simulate(params)


class SimulationRuns(dict):
    """Mapping from :class:`SimulationParameters` to :class:`SimulationOutput`."""

    def run(
        self,
        network: NetworkView,
        params_list: Iterable[SimulationParameters],
        seeds: Sequence[int],
    ) -> "SimulationRuns":
        """
        Simulate every parameter set that belongs to ``network``.

        Parameter sets for another network are skipped with a warning.

        Args:
            network: Network to simulate on
            params_list: Parameter sets to simulate
            seeds: Four base seeds shared by all parameter sets

        Returns:
            self, for chaining
        """
        simulator = EpidemicSimulator(network, seeds)
        for params in params_list:
            if params.network_name != network.name:
                message = (
                    f"Parameters are for network {params.network_name!r}, "
                    f"not {network.name!r}; skipping {params}"
                )
                logger.warning(message)
                warnings.warn(message, PolicyMismatchWarning, stacklevel=2)
                continue
            self[params] = simulator.simulate(params)
        return self
