"""Detection analysis: replay simulated outbreaks against a testing schedule.

A fixed number ``k`` of staff is tested every day, in a circular order over the
sorted staff list or over one random shuffle of it. Each test of an infectious
person misses with the false-negative probability. A sample path counts as
detected on the first day some tested person is observed positive.
"""

import math
import warnings
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import stats
from loguru import logger

from outbreak_detection.config import SimulationParameters
from outbreak_detection.errors import (
    PolicyMismatchWarning,
    UnsupportedPolicyError,
    ValidationError,
)
from outbreak_detection.network import NetworkView
from outbreak_detection.seeding import make_rng
from outbreak_detection.simulation import SamplePath, SimulationOutput

NORMAL_APPROXIMATION = "normal approximation for binomial proportion"
NORMAL_POPULATION = "normal population test"

# Day -> vertices tested that day.
TestSchedule = Dict[int, FrozenSet[int]]
ResultKey = Tuple[SimulationParameters, int]
Outputs = Union[SimulationOutput, Mapping, Sequence]


class TestingOrder(str, Enum):
    """Order in which staff are cycled through the daily tests."""

    __test__ = False  # not a pytest test class

    CIRCULAR = "circular"
    RANDOM = "random"

    @classmethod
    def parse(cls, order: Union[str, "TestingOrder"]) -> "TestingOrder":
        try:
            return cls(order)
        except ValueError:
            raise UnsupportedPolicyError(
                f"Unknown testing order {order!r}; use 'circular' or 'random'"
            ) from None


@dataclass(frozen=True)
class StatisticalOutput:
    """Estimate of a detection probability with its confidence interval."""

    mean: float
    standard_error: float
    alpha: float
    method: str
    ci_width: float
    sample_size: int
    batch_size: int

    @property
    def half_width(self) -> float:
        return 0.5 * self.ci_width

    @property
    def lower(self) -> float:
        return self.mean - self.half_width

    @property
    def upper(self) -> float:
        return self.mean + self.half_width


def z_value(alpha: float) -> float:
    """Two-sided standard normal quantile z(1 - alpha/2)."""
    return float(stats.norm.ppf(1.0 - 0.5 * alpha))


def binomial_proportion_estimate(detected: int, sample_size: int, alpha: float) -> StatisticalOutput:
    """Normal-approximation estimate for a single batch."""
    p = detected / sample_size
    se = math.sqrt(p * (1.0 - p) / sample_size)
    return StatisticalOutput(
        mean=p,
        standard_error=se,
        alpha=alpha,
        method=NORMAL_APPROXIMATION,
        ci_width=2.0 * z_value(alpha) * se,
        sample_size=sample_size,
        batch_size=1,
    )


def batched_estimate(probabilities: Sequence[float], sample_size: int, alpha: float) -> StatisticalOutput:
    """
    Estimate over several equally sized batches.

    The mean is the average of the batch probabilities. The standard error is
    1/sqrt(n) with n the size of a batch, independent of the observed proportions.
    """
    se = 1.0 / math.sqrt(sample_size)
    return StatisticalOutput(
        mean=float(np.mean(probabilities)),
        standard_error=se,
        alpha=alpha,
        method=NORMAL_POPULATION,
        ci_width=2.0 * z_value(alpha) * se,
        sample_size=sample_size,
        batch_size=len(probabilities),
    )


def build_schedule(
    k: int,
    vertices: Iterable[int],
    time_horizon: int,
    rng: Optional[np.random.Generator] = None,
) -> TestSchedule:
    """
    Build the test groups for days 1..time_horizon.

    Vertices are sorted, optionally shuffled once with ``rng``, and day t tests
    list positions k(t-1) .. kt-1, wrapping around the end of the list.

    Args:
        k: Tests per day
        vertices: Staff to test
        time_horizon: Number of days
        rng: Generator for a random testing order (circular order if None)

    Returns:
        Mapping from day to the set of vertices tested that day
    """
    if k < 1:
        raise ValidationError(f"Tests per day must be positive, got {k}")
    order = sorted(vertices)
    if not order:
        raise ValidationError("Cannot build a schedule without vertices")
    if rng is not None:
        order = [int(v) for v in rng.permutation(order)]
    size = len(order)
    return {
        t: frozenset(order[j % size] for j in range(k * (t - 1), k * t))
        for t in range(1, time_horizon + 1)
    }


def is_detected(
    path: SamplePath,
    schedule: TestSchedule,
    false_negative_probability: float,
    rng: np.random.Generator,
) -> bool:
    """
    Replay one sample path against the schedule.

    One test-failure draw is taken per infectious vertex per day, in ascending
    vertex order, until the first day with an observed positive among the tested.
    """
    for t in sorted(schedule):
        infectious = sorted(path[t])
        if not infectious:
            continue
        test_positive = rng.random(len(infectious)) > false_negative_probability
        observed = {v for v, positive in zip(infectious, test_positive) if positive}
        if not observed.isdisjoint(schedule[t]):
            return True
    return False


def group_batches(outputs: Outputs) -> Dict[SimulationParameters, List[SimulationOutput]]:
    """Group simulation outputs by parameter set, keeping batch order."""
    grouped: Dict[SimulationParameters, List[SimulationOutput]] = {}

    def collect(item) -> None:
        if isinstance(item, SimulationOutput):
            grouped.setdefault(item.params, []).append(item)
        elif isinstance(item, Mapping):
            for output in item.values():
                collect(output)
        elif isinstance(item, (list, tuple)):
            for batch in item:
                collect(batch)
        else:
            raise ValidationError(f"Unsupported simulation output type: {type(item).__name__}")

    collect(outputs)
    return grouped


class DetectionAnalyzer:
    """Estimates outbreak detection probabilities for a fixed number of tests per day."""

    def __init__(self):
        self.results: Dict[ResultKey, StatisticalOutput] = {}
        self.random_order: Dict[ResultKey, bool] = {}

    def test(
        self,
        network: NetworkView,
        outputs: Outputs,
        k: int,
        alpha: float,
        order: Union[str, TestingOrder],
        reliability_seed: int,
        order_seed: int,
    ) -> Dict[ResultKey, StatisticalOutput]:
        """
        Estimate the detection probability of every parameter set in ``outputs``.

        Args:
            network: Network the outputs were simulated on (without the source)
            outputs: A SimulationOutput, a SimulationRuns mapping, or a
                sequence of them treated as independent batches
            k: Tests per day
            alpha: Significance level of the confidence interval
            order: 'circular' or 'random'
            reliability_seed: Base seed for test failures
            order_seed: Base seed for the random testing order

        Returns:
            Results of this call keyed by (parameters, k); also stored in
            ``self.results``

        Raises:
            UnsupportedPolicyError: If ``order`` is unknown
            ValidationError: On bad k, alpha or an empty batch
        """
        order = TestingOrder.parse(order)
        if k < 1:
            raise ValidationError(f"Tests per day must be positive, got {k}")
        if not 0.0 < alpha < 1.0:
            raise ValidationError(f"alpha must be in (0, 1), got {alpha}")

        vertices = sorted(network.vertices())
        produced: Dict[ResultKey, StatisticalOutput] = {}

        for params, batches in group_batches(outputs).items():
            if params.network_name != network.name:
                message = (
                    f"Network name mismatch: results for {params.network_name!r} "
                    f"tested on {network.name!r}, skipping"
                )
                logger.warning(message)
                warnings.warn(message, PolicyMismatchWarning, stacklevel=2)
                continue
            if order is TestingOrder.RANDOM and len(batches) < 2:
                logger.warning(
                    "Random testing order with a single batch gives no estimate "
                    "of the variability due to ordering"
                )

            logger.info(f"Disease testing ({order.value} order) for {params} and k={k}")
            output = self._estimate(params, batches, vertices, k, alpha, order, reliability_seed, order_seed)

            key = (params, k)
            self.results[key] = output
            self.random_order[key] = order is TestingOrder.RANDOM
            produced[key] = output
            logger.info(
                f"Conditional probability of outbreak detection = "
                f"{output.mean:.6f} +- {output.half_width:.6f}"
            )

        return produced

    def _estimate(
        self,
        params: SimulationParameters,
        batches: List[SimulationOutput],
        vertices: List[int],
        k: int,
        alpha: float,
        order: TestingOrder,
        reliability_seed: int,
        order_seed: int,
    ) -> StatisticalOutput:
        T = params.time_horizon
        fn_rate = params.false_negative_probability
        circular = build_schedule(k, vertices, T) if order is TestingOrder.CIRCULAR else None

        detections = []
        sizes = []
        for b, batch in enumerate(batches):
            n = len(batch.sample_paths)
            if n == 0:
                raise ValidationError(f"Batch {b} of {params} has no sample paths")
            if circular is not None:
                schedule = circular
            else:
                schedule = build_schedule(k, vertices, T, make_rng(order_seed, params, k, b))
            reliability = make_rng(reliability_seed, params, k, b)
            detected = sum(
                is_detected(path, schedule, fn_rate, reliability) for path in batch.sample_paths
            )
            detections.append(detected)
            sizes.append(n)

        if len(batches) == 1:
            return binomial_proportion_estimate(detections[0], sizes[0], alpha)
        if len(set(sizes)) > 1:
            logger.warning(f"Batches of {params} have unequal sizes {sizes}; using {sizes[0]}")
        probabilities = [d / n for d, n in zip(detections, sizes)]
        return batched_estimate(probabilities, sizes[0], alpha)

    def __str__(self) -> str:
        lines = ["Results for fixed number of tests per day:"]
        for (params, k), output in self.results.items():
            lines.append(
                f"  {params}, k={k}, random order={self.random_order[(params, k)]}: "
                f"p={output.mean:.6f} +- {output.half_width:.6f} "
                f"({output.method}, batches={output.batch_size}, n={output.sample_size}, "
                f"alpha={output.alpha})"
            )
        return "\n".join(lines)
