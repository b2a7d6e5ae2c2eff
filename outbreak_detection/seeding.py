"""Derivation of independent, reproducible random streams.

Every stream is its own ``numpy.random.Generator``. The seed of a stream is the
base seed plus the parameter set's stable hash plus any extra offsets (tests per
day, batch index), reduced modulo 2**64 so negative sums are still valid.
"""

import numpy as np

from outbreak_detection.config import SimulationParameters

_SEED_MODULUS = 2**64


def derive_seed(base_seed: int, params: SimulationParameters, *offsets: int) -> int:
    """Seed for a stream owned by ``params``."""
    return (base_seed + params.stable_hash() + sum(offsets)) % _SEED_MODULUS


def make_rng(base_seed: int, params: SimulationParameters, *offsets: int) -> np.random.Generator:
    """Fresh generator seeded by :func:`derive_seed`."""
    return np.random.default_rng(derive_seed(base_seed, params, *offsets))
