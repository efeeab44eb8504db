"""
Unit tests for the ranking and hypervolume services.
"""

import numpy as np
import pytest

from sms_eda_mec.util.indicators import hypervolume, pareto_rank


class TestParetoRank:
    """Test non-dominated sorting"""

    def test_ranks_start_at_one(self, linear_front):
        assert np.all(pareto_rank(linear_front) == 1)

    def test_nested_fronts(self, linear_front):
        objectives = np.vstack((linear_front + 1.0, linear_front, linear_front + 0.5))
        ranks = pareto_rank(objectives)
        np.testing.assert_array_equal(ranks, [3] * 5 + [1] * 5 + [2] * 5)

    def test_dominated_point(self):
        objectives = np.array([[0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])
        np.testing.assert_array_equal(pareto_rank(objectives), [1, 1, 2])

    def test_empty_input(self):
        assert pareto_rank(np.empty((0, 2))).shape == (0,)


class TestHypervolume:
    """Test the hypervolume service"""

    def test_single_point(self):
        assert hypervolume(np.array([[0.0, 0.0]]), [1.0, 2.0]) == pytest.approx(2.0)

    def test_staircase(self):
        front = np.array([[0.0, 2.0], [1.0, 1.0], [2.0, 0.0]])
        assert hypervolume(front, [3.0, 3.0]) == pytest.approx(6.0)

    def test_empty_set(self):
        assert hypervolume(np.empty((0, 2)), [1.0, 1.0]) == 0.0

    def test_three_objectives(self):
        assert hypervolume(np.array([[0.5, 0.5, 0.5]]), [1.0, 1.0, 1.0]) == pytest.approx(0.125)
