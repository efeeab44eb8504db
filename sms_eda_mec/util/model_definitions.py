from dataclasses import dataclass
from typing import Callable

import numpy as np
from platypus import DTLZ1, DTLZ2, DTLZ3, DTLZ4, DTLZ7, ZDT1, ZDT2, ZDT3, ZDT4, ZDT6
from platypus import Integer, Problem, Real, Solution

from sms_eda_mec.util.options import ConfigurationError


@dataclass
class ProblemDefinition:
    """Everything the optimiser needs to know about a problem."""

    name: str
    num_vars: int
    rng_min: np.ndarray
    rng_max: np.ndarray
    is_int: np.ndarray
    num_objs: int
    evaluate: Callable[[np.ndarray], np.ndarray]


class PlatypusEvaluator:
    """Vectorised objective function around a Platypus problem."""

    def __init__(self, problem):
        """
        Parameters:
        -----------
        problem : platypus.Problem
            The problem to evaluate
        """
        self.problem = problem

    def __call__(self, pop):
        """
        Evaluate every row of a population

        Parameters:
        -----------
        pop : np.ndarray
            Population, every row an individual

        Returns:
        --------
        np.ndarray
            Objective matrix of shape (len(pop), nobjs)
        """
        pop = np.atleast_2d(pop)
        pop_obj = np.empty((pop.shape[0], self.problem.nobjs))
        for i, variables in enumerate(pop):
            # Create a Solution object and set its variables
            solution = Solution(self.problem)
            solution.variables[:] = list(variables)

            # Evaluate the solution
            self.problem.evaluate(solution)
            pop_obj[i] = [solution.objectives[k] for k in range(self.problem.nobjs)]
        return pop_obj


def convex_function(variables):
    """Two objective convex problem; its Pareto set is the diagonal x1 = x2 of the unit square."""
    x1, x2 = variables
    return [x1 ** 2 + x2 ** 2, (x1 - 1) ** 2 + (x2 - 1) ** 2]


def get_convex_problem():
    """
    Create the two variable convex problem

    Returns:
    --------
    problem : platypus.Problem
        Problem with two Real variables in [0, 1] and two objectives
    """
    problem = Problem(2, 2, function=convex_function)
    problem.types[:] = Real(0, 1)
    return problem


def get_dtlz_problem(problem_class, n_objectives=3, n_position_variables=10):
    """
    Create a DTLZ problem with the correct number of decision variables

    Parameters:
    -----------
    problem_class : type
        One of the Platypus DTLZ classes
    n_objectives : int, optional
        Number of objectives, defaulted at 3
    n_position_variables : int, optional
        Number of position-related variables, defaulted at 10

    Returns:
    --------
    problem : platypus.Problem
    """
    # Calculate total number of decision variables using the formula: n + k - 1
    n_variables = n_position_variables + n_objectives - 1
    return problem_class(n_objectives, n_variables)


PROBLEMS = {
    "Convex": get_convex_problem,
    "ZDT1": ZDT1,
    "ZDT2": ZDT2,
    "ZDT3": ZDT3,
    "ZDT4": ZDT4,
    "ZDT6": ZDT6,
    "DTLZ1": lambda **kwargs: get_dtlz_problem(DTLZ1, **kwargs),
    "DTLZ2": lambda **kwargs: get_dtlz_problem(DTLZ2, **kwargs),
    "DTLZ3": lambda **kwargs: get_dtlz_problem(DTLZ3, **kwargs),
    "DTLZ4": lambda **kwargs: get_dtlz_problem(DTLZ4, **kwargs),
    "DTLZ7": lambda **kwargs: get_dtlz_problem(DTLZ7, **kwargs),
}


def from_platypus(name, problem):
    """
    Describe a Platypus problem as a ProblemDefinition

    Parameters:
    -----------
    name : str
        Name of the problem
    problem : platypus.Problem
        Problem with Real or Integer variable types

    Returns:
    --------
    ProblemDefinition
    """
    rng_min = np.array([t.min_value for t in problem.types], dtype=float)
    rng_max = np.array([t.max_value for t in problem.types], dtype=float)
    is_int = np.array([isinstance(t, Integer) for t in problem.types], dtype=bool)
    return ProblemDefinition(
        name=name,
        num_vars=problem.nvars,
        rng_min=rng_min,
        rng_max=rng_max,
        is_int=is_int,
        num_objs=problem.nobjs,
        evaluate=PlatypusEvaluator(problem),
    )


def initialize(problem_name, **kwargs):
    """
    Look up a registered problem by name

    Parameters:
    -----------
    problem_name : str
        Key of PROBLEMS
    **kwargs : dict
        Passed to the problem factory, e.g. n_objectives for DTLZ problems

    Returns:
    --------
    ProblemDefinition
    """
    if not isinstance(problem_name, str):
        raise ConfigurationError("first argument 'problem' must be a string")
    if not problem_name:
        raise ConfigurationError("Objective function not determined")
    if problem_name not in PROBLEMS:
        raise ConfigurationError(
            f"unknown problem {problem_name!r}, expected one of {sorted(PROBLEMS)}"
        )
    return from_platypus(problem_name, PROBLEMS[problem_name](**kwargs))
