"""Tests for combinatorial helpers and discrete sampling."""

import pytest
import numpy as np

from outbreak_detection.combinatorics import (
    discrete_probability_choice,
    equals_within_tolerances,
    n_choose_k,
    select_random_elements,
    truncated_binomial_pmf,
)
from outbreak_detection.errors import ValidationError


class TestNChooseK:
    """Test exact binomial coefficients."""

    def test_known_values(self):
        """Test against known coefficients."""
        assert n_choose_k(4, 0) == 1
        assert n_choose_k(45, 9) == 886163135
        assert n_choose_k(100, 7) == 16007560800

    def test_pascal_identity(self):
        """Test C(n, k) = C(n-1, k-1) + C(n-1, k)."""
        for n in range(1, 30):
            for k in range(1, n):
                assert n_choose_k(n, k) == n_choose_k(n - 1, k - 1) + n_choose_k(n - 1, k)

    @pytest.mark.parametrize("n,k", [(-1, 2), (2, -1), (-2, -1)])
    def test_negative_inputs(self, n, k):
        with pytest.raises(ValidationError, match="non-negative"):
            n_choose_k(n, k)

    def test_n_less_than_k(self):
        with pytest.raises(ValidationError, match="n < k"):
            n_choose_k(4, 10)


class TestDiscreteProbabilityChoice:
    """Test inverse-CDF sampling."""

    draws = [0.1, 0.9, 0.5, 0.05, 0.75, 0.7]

    def test_boundaries(self):
        """Draws on a CDF value map to the state that closes the interval."""
        choices = discrete_probability_choice(self.draws, [1, 2, 3], [0.3, 0.4, 0.3])
        assert list(choices) == [1, 3, 2, 1, 3, 2]

    def test_zero_based_state_space(self):
        choices = discrete_probability_choice(self.draws, [0, 1, 2], [0.3, 0.4, 0.3])
        assert list(choices) == [0, 2, 1, 0, 2, 1]

    @pytest.mark.parametrize("pmf", [[0.3, 0.3, 0.3], [0.3, 0.3, 0.5]])
    def test_not_a_pmf(self, pmf):
        """Test that masses far from summing to 1 are rejected."""
        with pytest.raises(ValidationError, match="not a probability mass function"):
            discrete_probability_choice(self.draws, [0, 1, 2], pmf)

    def test_length_mismatch(self):
        with pytest.raises(ValidationError):
            discrete_probability_choice(self.draws, [0, 1], [0.3, 0.4, 0.3])

    def test_tolerances(self):
        assert equals_within_tolerances(1.0, 1.00005, 1e-4, 0.01)
        assert not equals_within_tolerances(1.0, 1.001, 1e-4, 0.01)
        # relative tolerance dominates for large numbers
        assert equals_within_tolerances(1e6, 1e6 + 50, 1e-4, 0.01)


class TestSelectRandomElements:
    """Test random subset selection."""

    def test_distinct_subset(self):
        rng = np.random.default_rng(42)
        items = list(range(2, 22))
        chosen = select_random_elements(items, 7, rng)
        assert len(chosen) == 7
        assert len(set(chosen)) == 7
        assert set(chosen) <= set(items)

    def test_all_and_none(self):
        rng = np.random.default_rng(1)
        items = [5, 6, 7]
        assert sorted(select_random_elements(items, 3, rng)) == items
        assert select_random_elements(items, 0, rng) == []

    def test_reproducible(self):
        items = list(range(100))
        a = select_random_elements(items, 10, np.random.default_rng(7))
        b = select_random_elements(items, 10, np.random.default_rng(7))
        assert a == b

    def test_too_many(self):
        with pytest.raises(ValidationError):
            select_random_elements([1, 2], 3, np.random.default_rng(0))


class TestTruncatedBinomial:
    """Test the conditional distribution of the initial infection count."""

    def test_matches_closed_form(self):
        s, p = 20, 0.1
        q = 1 - p
        expected = [
            n_choose_k(s, k) * p**k * q ** (s - k) / (1 - q**s) for k in range(1, s + 1)
        ]
        assert truncated_binomial_pmf(s, p) == pytest.approx(expected, rel=1e-9)

    def test_sums_to_one(self):
        for s, p in [(1, 0.3), (100, 0.0001), (500, 0.05)]:
            pmf = truncated_binomial_pmf(s, p)
            assert len(pmf) == s
            assert pmf.sum() == pytest.approx(1.0)

    def test_single_vertex(self):
        assert list(truncated_binomial_pmf(1, 0.2)) == pytest.approx([1.0])
