"""
Unit tests for the rebel (precursor) individuals.
"""

from unittest.mock import patch

import numpy as np
import pytest

from sms_eda_mec.algorithms import rebels
from sms_eda_mec.algorithms.rebels import best_subset, compute_rebels
from sms_eda_mec.util.clayton import THETA_MIN, CopulaState, clayton_cop
from sms_eda_mec.util.indicators import pareto_rank


@pytest.fixture
def population(rng):
    pop = rng.random((20, 3))
    pop_obj = np.column_stack((pop[:, 0], 1.0 - np.sqrt(pop[:, 0]) + pop[:, 1]))
    return pop, pop_obj


class TestBestSubset:
    """Test the elite subset"""

    def test_size_is_elite_share(self, population, rng):
        pop, pop_obj = population
        subset, subset_obj = best_subset(pop, pop_obj, np.inf, 0, rng)
        assert subset.shape == (6, 3)
        assert subset_obj.shape == (6, 2)

    def test_small_population_keeps_one(self, rng):
        pop = rng.random((3, 2))
        subset, _ = best_subset(pop, pop.copy(), np.inf, 0, rng)
        assert subset.shape == (1, 2)

    def test_subset_rows_come_from_population(self, population, rng):
        pop, pop_obj = population
        subset, subset_obj = best_subset(pop, pop_obj, np.inf, 0, rng)
        for row, row_obj in zip(subset, subset_obj):
            index = np.flatnonzero(np.all(pop == row, axis=1))
            assert len(index) == 1
            np.testing.assert_array_equal(pop_obj[index[0]], row_obj)

    def test_first_front_preferred(self, population, rng):
        pop, pop_obj = population
        _, subset_obj = best_subset(pop, pop_obj, np.inf, 0, rng)
        n_first = int(np.sum(pareto_rank(pop_obj) == 1))
        n_first_in_subset = sum(
            pareto_rank(pop_obj)[np.flatnonzero(np.all(pop_obj == row, axis=1))[0]] == 1
            for row in subset_obj
        )
        assert n_first_in_subset == min(n_first, 6)


class TestComputeRebels:
    """Test rebel generation"""

    def test_count_is_even_part(self, population, rng):
        pop, pop_obj = population
        rebel_pop = compute_rebels(pop, pop_obj, 5, np.inf, 0, rng, CopulaState(theta=2.0))
        assert rebel_pop.shape == (4, 3)

    def test_no_precursors(self, population, rng):
        pop, pop_obj = population
        assert compute_rebels(pop, pop_obj, 0, np.inf, 0, rng).shape == (0, 3)

    def test_single_elite_is_copied(self, rng):
        pop = np.array([[0.1, 0.2], [0.5, 0.5], [0.7, 0.3], [0.9, 0.9]])
        pop_obj = np.array([[0.0, 0.0], [1.0, 2.0], [2.0, 1.0], [1.5, 1.5]])
        rebel_pop = compute_rebels(pop, pop_obj, 6, np.inf, 0, rng)

        assert rebel_pop.shape == (6, 2)
        np.testing.assert_array_equal(rebel_pop, np.repeat(pop[:1], 6, axis=0))

    def test_rebels_stay_within_elite_range(self, population):
        pop, pop_obj = population
        subset, _ = best_subset(pop, pop_obj, np.inf, 0, np.random.default_rng(1))
        rebel_pop = compute_rebels(pop, pop_obj, 6, np.inf, 0, np.random.default_rng(1),
                                   CopulaState(theta=1.5))

        assert np.all(rebel_pop >= subset.min(axis=0) - 1e-8)
        assert np.all(rebel_pop <= subset.max(axis=0) + 1e-8)

    def test_inverse_half_mirrors_direct_half(self, population, rng):
        pop, pop_obj = population
        # Six elite rows, so both halves cover the whole quantile table
        rebel_pop = compute_rebels(pop, pop_obj, 12, np.inf, 0, rng, CopulaState(theta=1.5))

        direct, inverse = rebel_pop[:6], rebel_pop[6:]
        np.testing.assert_allclose(inverse, direct[::-1])
        # Reflected sorted samples give non-increasing quantiles in every variable
        assert np.all(np.diff(direct, axis=0) <= 1e-12)

    def test_undefined_theta_uses_floor(self, population, rng):
        pop, pop_obj = population
        with patch.object(rebels, "clayton_cop", wraps=clayton_cop) as mocked:
            compute_rebels(pop, pop_obj, 4, np.inf, 0, rng)
        assert mocked.call_args[0][2] == THETA_MIN

    def test_current_theta_is_used(self, population, rng):
        pop, pop_obj = population
        with patch.object(rebels, "clayton_cop", wraps=clayton_cop) as mocked:
            compute_rebels(pop, pop_obj, 4, np.inf, 0, rng, CopulaState(theta=3.5))
        assert mocked.call_args[0][2] == 3.5
