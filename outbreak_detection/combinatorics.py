"""Combinatorial helpers and discrete sampling used by the simulator."""

import math
from typing import List, Sequence

import numpy as np
from scipy import stats
from loguru import logger

from outbreak_detection.errors import ValidationError

# A PMF total further than this from 1 is rejected.
PMF_ABS_TOL = 1e-4
PMF_REL_TOL_PERCENT = 0.01
# Totals within tolerance but further than this from 1 are logged.
PMF_WARN_TOL = 1e-9


def n_choose_k(n: int, k: int) -> int:
    """
    Exact binomial coefficient.

    Args:
        n: Number of objects
        k: Number of selections

    Returns:
        n-choose-k as an exact integer

    Raises:
        ValidationError: If either input is negative or n < k
    """
    if n < 0 or k < 0:
        raise ValidationError("Inputs should be non-negative integers")
    if n < k:
        raise ValidationError("n < k is not allowed")
    return math.comb(n, k)


def equals_within_tolerances(
    a: float, b: float, abs_tol: float, rel_tol_percent: float
) -> bool:
    """
    Compare two numbers with an absolute or relative tolerance, whichever is larger.

    The relative tolerance is a percentage of max(|a|, |b|).
    """
    rel = rel_tol_percent * max(abs(a), abs(b)) / 100.0
    return abs(a - b) <= max(rel, abs_tol)


def _cdf_from_pmf(pmf: Sequence[float]) -> np.ndarray:
    cdf = np.cumsum(np.asarray(pmf, dtype=float))
    if len(cdf) == 0:
        raise ValidationError("pmf must not be empty")
    total = float(cdf[-1])
    if not equals_within_tolerances(1.0, total, PMF_ABS_TOL, PMF_REL_TOL_PERCENT):
        raise ValidationError(f"pmf is not a probability mass function (sums to {total})")
    if abs(total - 1.0) > PMF_WARN_TOL:
        logger.warning(f"pmf sums to {total}, treating it as a probability mass function")
    return cdf


def discrete_probability_choice(
    random_choices: Sequence[float],
    state_space: Sequence[int],
    pmf: Sequence[float],
) -> np.ndarray:
    """
    Map uniform draws to states by inverse-CDF lookup.

    A draw u maps to state_space[0] when u <= cdf[0] and to state_space[j]
    when cdf[j-1] < u <= cdf[j]. Draws above the last CDF value (rounding)
    map to the last state.

    Args:
        random_choices: Uniform draws in [0, 1)
        state_space: States of the distribution
        pmf: Probability mass of each state

    Returns:
        Array of chosen states, one per draw
    """
    if len(state_space) != len(pmf):
        raise ValidationError(
            f"state_space and pmf lengths differ ({len(state_space)} != {len(pmf)})"
        )
    cdf = _cdf_from_pmf(pmf)
    idx = np.searchsorted(cdf, np.asarray(random_choices, dtype=float), side="left")
    idx = np.minimum(idx, len(cdf) - 1)
    return np.asarray(state_space)[idx]


def select_random_elements(
    items: Sequence[int], n: int, rng: np.random.Generator
) -> List[int]:
    """
    Select n distinct elements of items uniformly at random without replacement.

    Args:
        items: Elements to choose from
        n: Number of elements to select
        rng: Random generator

    Returns:
        List of n selected elements, in draw order
    """
    if n < 0 or n > len(items):
        raise ValidationError(f"Cannot select {n} elements from {len(items)}")
    chosen = rng.choice(len(items), size=n, replace=False)
    return [items[i] for i in chosen]


def truncated_binomial_pmf(size: int, p: float) -> np.ndarray:
    """
    PMF of Binomial(size, p) conditioned on being at least one.

    Entry k-1 holds P(K = k | K >= 1) for k = 1..size.
    """
    if size < 1:
        raise ValidationError("size must be positive")
    if not 0.0 < p <= 1.0:
        raise ValidationError(f"p must be in (0, 1], got {p}")
    ks = np.arange(1, size + 1)
    # 1 - (1-p)^size without cancellation for small p
    at_least_one = -math.expm1(size * math.log1p(-p)) if p < 1.0 else 1.0
    return stats.binom.pmf(ks, size, p) / at_least_one
