"""
Unit tests for the problem registry.
"""

import numpy as np
import pytest

from sms_eda_mec.util.model_definitions import (PROBLEMS, ProblemDefinition, convex_function,
                                                from_platypus, get_convex_problem, initialize)
from sms_eda_mec.util.options import ConfigurationError


class TestConvex:
    """Test the two variable convex problem"""

    def test_function(self):
        assert convex_function([0.0, 0.0]) == [0.0, 2.0]
        assert convex_function([1.0, 1.0]) == [2.0, 0.0]

    def test_definition(self):
        problem = initialize("Convex")
        assert isinstance(problem, ProblemDefinition)
        assert problem.num_vars == 2
        assert problem.num_objs == 2
        np.testing.assert_array_equal(problem.rng_min, [0.0, 0.0])
        np.testing.assert_array_equal(problem.rng_max, [1.0, 1.0])
        assert not problem.is_int.any()

    def test_vectorised_evaluation(self):
        problem = initialize("Convex")
        pop_obj = problem.evaluate(np.array([[0.0, 0.0], [0.5, 0.5], [1.0, 1.0]]))
        np.testing.assert_allclose(pop_obj, [[0.0, 2.0], [0.5, 0.5], [2.0, 0.0]])

    def test_evaluation_does_not_assign_variables_directly(self, recwarn):
        initialize("Convex").evaluate(np.array([[0.2, 0.4], [0.6, 0.8]]))
        assert not [w for w in recwarn if "variables" in str(w.message)]


class TestRegistry:
    """Test looking up registered problems"""

    def test_zdt1(self):
        problem = initialize("ZDT1")
        assert problem.num_vars == 30
        assert problem.num_objs == 2
        np.testing.assert_allclose(problem.evaluate(np.zeros((1, 30))), [[0.0, 1.0]])

    def test_dtlz2_default_objectives(self):
        problem = initialize("DTLZ2")
        assert problem.num_objs == 3
        assert problem.num_vars == 12

    def test_dtlz_keyword_arguments(self):
        problem = initialize("DTLZ2", n_objectives=2, n_position_variables=5)
        assert problem.num_objs == 2
        assert problem.num_vars == 6

    def test_every_problem_initialises(self):
        for name in PROBLEMS:
            problem = initialize(name)
            pop = (problem.rng_min + problem.rng_max) / 2
            assert problem.evaluate(pop[None, :]).shape == (1, problem.num_objs)

    def test_from_platypus_keeps_name(self):
        assert from_platypus("mine", get_convex_problem()).name == "mine"

    @pytest.mark.parametrize("name", ["", "ZDT9", "convex"])
    def test_unknown_names(self, name):
        with pytest.raises(ConfigurationError):
            initialize(name)

    def test_non_string(self):
        with pytest.raises(ConfigurationError):
            initialize(42)
