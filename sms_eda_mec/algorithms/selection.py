"""
Environmental selection of SMS-EDA-MEC.

A combined pool is truncated one individual at a time. The individual to
remove always belongs to the worst Pareto front; inside the first
n_pf_eval_hv fronts it is the one with the smallest hypervolume
contribution, deeper fronts lose a random member.
"""

import numpy as np
from numba import jit

from sms_eda_mec.util.indicators import hypervolume, pareto_rank


class Pool:
    """
    Row-aligned decision and objective matrices with O(1) swap-remove.

    Removing row i moves the last row into position i, so row i of
    `population` always corresponds to row i of `objectives`.
    """

    def __init__(self, population, objectives):
        self._population = np.array(population, dtype=float)
        self._objectives = np.array(objectives, dtype=float)
        if self._population.shape[0] != self._objectives.shape[0]:
            raise ValueError("population and objectives must have the same number of rows")
        self._size = self._population.shape[0]

    def __len__(self):
        return self._size

    @property
    def population(self):
        return self._population[: self._size]

    @property
    def objectives(self):
        return self._objectives[: self._size]

    def remove(self, index):
        last = self._size - 1
        if not 0 <= index <= last:
            raise IndexError(f"index {index} out of range for pool of size {self._size}")
        self._population[index] = self._population[last]
        self._objectives[index] = self._objectives[last]
        self._size = last


def uses_default_ref_point(ref_point):
    """A reference point of 0 means max(front) + 1 is used."""
    return np.all(np.asarray(ref_point) == 0)


@jit(nopython=True)
def _contributions_2d(front, ref_point):
    # front sorted ascending by the first objective, hence descending by the second
    n = front.shape[0]
    delta_hv = np.empty(n)
    delta_hv[0] = (front[1, 0] - front[0, 0]) * (ref_point[1] - front[0, 1])
    for i in range(1, n - 1):
        delta_hv[i] = (front[i + 1, 0] - front[i, 0]) * (front[i - 1, 1] - front[i, 1])
    delta_hv[n - 1] = (ref_point[0] - front[n - 1, 0]) * (front[n - 2, 1] - front[n - 1, 1])
    return delta_hv


def hv_contributions_2d(front_objectives, ref_point):
    """
    Exclusive hypervolume contribution of every member of a two objective front.

    Parameters:
    -----------
    front_objectives : np.ndarray
        Mutually non-dominated points, shape (n, 2) with n >= 2
    ref_point : array-like
        Reference point

    Returns:
    --------
    np.ndarray
        Contributions in the original row order
    """
    order = np.argsort(front_objectives[:, 0], kind="stable")
    sorted_contributions = _contributions_2d(
        np.ascontiguousarray(front_objectives[order], dtype=float),
        np.asarray(ref_point, dtype=float),
    )
    delta_hv = np.empty(len(order))
    delta_hv[order] = sorted_contributions
    return delta_hv


def hv_contributions(front_objectives, ref_point, hv_func=hypervolume):
    """Hypervolume lost by excluding each member of the front, via the hypervolume service."""
    current_hv = hv_func(front_objectives, ref_point)
    delta_hv = np.zeros(front_objectives.shape[0])
    for i in range(front_objectives.shape[0]):
        my_objectives = np.delete(front_objectives, i, axis=0)
        delta_hv[i] = current_hv - hv_func(my_objectives, ref_point)
    return delta_hv


def select_element_to_remove(pop_obj, ranks, num_objs, n_pf_eval_hv, ref_point, rng,
                             hv_func=hypervolume):
    """
    Index of the pool member to remove next.

    Parameters:
    -----------
    pop_obj : np.ndarray
        Objective matrix of the pool
    ranks : np.ndarray
        Pareto ranks of the pool, 1 for the non-dominated front
    num_objs : int
        Number of objectives
    n_pf_eval_hv : float
        Fronts up to this rank are truncated by hypervolume contribution
    ref_point : float or array-like
        Reference point; 0 uses max(front) + 1
    rng : np.random.Generator
        Source of the random tie-break
    hv_func : callable, optional
        Hypervolume service, used for three or more objectives

    Returns:
    --------
    int
        Row index into pop_obj
    """
    worst_rank = ranks.max()
    elements_ind = np.flatnonzero(ranks == worst_rank)
    frontsize = len(elements_ind)

    if worst_rank > n_pf_eval_hv:
        # Remove a random element of the worst front
        return int(elements_ind[rng.integers(frontsize)])

    if frontsize == 1:
        return int(elements_ind[0])

    front_objectives = pop_obj[elements_ind]
    if uses_default_ref_point(ref_point):
        ref_point = front_objectives.max(axis=0) + 1
    else:
        ref_point = np.broadcast_to(np.asarray(ref_point, dtype=float), (num_objs,))
        exceeding = np.any(front_objectives >= ref_point, axis=1)
        if np.any(exceeding):
            # Points outside the reference box go first, the furthest one first
            excess = np.max(front_objectives - ref_point, axis=1)
            return int(elements_ind[np.argmax(excess)])

    if num_objs == 2:
        delta_hv = hv_contributions_2d(front_objectives, ref_point)
    else:
        delta_hv = hv_contributions(front_objectives, ref_point, hv_func)
    return int(elements_ind[np.argmin(delta_hv)])


def truncate(pop, pop_obj, target_size, num_objs, n_pf_eval_hv, ref_point, rng,
             rank_func=pareto_rank, hv_func=hypervolume):
    """
    Shrink a pool one individual at a time until target_size remain.

    The pool is re-ranked after every removal.

    Parameters:
    -----------
    pop : np.ndarray
        Decision matrix of the pool
    pop_obj : np.ndarray
        Objective matrix of the pool, row-aligned with pop
    target_size : int
        Number of individuals to keep
    num_objs : int
        Number of objectives
    n_pf_eval_hv : float
        Fronts up to this rank are truncated by hypervolume contribution
    ref_point : float or array-like
        Reference point; 0 uses max(front) + 1
    rng : np.random.Generator
        Source of random tie-breaks
    rank_func : callable, optional
        Ranking service
    hv_func : callable, optional
        Hypervolume service

    Returns:
    --------
    tuple
        (pop, pop_obj) with exactly target_size rows
    """
    pool = Pool(pop, pop_obj)
    if not 0 <= target_size <= len(pool):
        raise ValueError(f"target size {target_size} must lie in [0, {len(pool)}]")

    while len(pool) > target_size:
        ranks = np.asarray(rank_func(pool.objectives))
        element_ind = select_element_to_remove(
            pool.objectives, ranks, num_objs, n_pf_eval_hv, ref_point, rng, hv_func
        )
        pool.remove(element_ind)

    return pool.population.copy(), pool.objectives.copy()
