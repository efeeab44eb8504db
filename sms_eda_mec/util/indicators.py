"""
Ranking and hypervolume services used by selection, rebels and OCD.

Both delegate to pymoo; the optimiser receives them as plain callables so
that alternative implementations can be injected.
"""

import numpy as np
from pymoo.indicators.hv import HV
from pymoo.util.nds.non_dominated_sorting import NonDominatedSorting


def pareto_rank(objectives):
    """
    Assign a Pareto rank to every row of an objective matrix.

    Parameters:
    -----------
    objectives : np.ndarray
        Objective matrix, every row an individual (minimisation)

    Returns:
    --------
    np.ndarray
        Integer ranks, 1 for the non-dominated front
    """
    objectives = np.atleast_2d(np.asarray(objectives, dtype=float))
    if objectives.shape[0] == 0:
        return np.zeros(0, dtype=int)
    _, rank = NonDominatedSorting().do(objectives, return_rank=True)
    return np.asarray(rank, dtype=int) + 1


def hypervolume(objectives, ref_point):
    """
    Hypervolume dominated by a point set and bounded by a reference point.

    Parameters:
    -----------
    objectives : np.ndarray
        Objective matrix, every row a point (minimisation)
    ref_point : array-like
        Reference point, one entry per objective

    Returns:
    --------
    float
        Dominated hypervolume, 0 for an empty set
    """
    objectives = np.asarray(objectives, dtype=float)
    if objectives.size == 0:
        return 0.0
    objectives = np.atleast_2d(objectives)
    return float(HV(ref_point=np.asarray(ref_point, dtype=float)).do(objectives))
