"""
Online Convergence Detection (OCD) over a sliding window of Pareto fronts.

Every older front in the window is scored against the newest front with a
set of performance indicators (hypervolume difference, additive epsilon,
R2) in an objective space normalised by bounds carried between calls. Two
statistical tests decide whether the search stagnates:

- variance test: chi-squared test that the indicator variance is below a
  limit, for every active indicator;
- regression test: t-test on the slope of a linear regression of the
  standardised indicator values against the generation index; no
  significant trend means stagnation.

Based on: T. Wagner, H. Trautmann and B. Naujoks (2009), OCD: Online
Convergence Detection for Evolutionary Multi-Objective Algorithms Based on
Statistical Testing, EMO 2009, pp. 198-215.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from numba import jit
from pymoo.util.ref_dirs import get_reference_directions
from scipy import stats

from sms_eda_mec.util.indicators import hypervolume

# Reference point for the hypervolume in normalised objective space
HV_REF = 1.1
# Das-Dennis partitions for the R2 weight vectors, by number of objectives
R2_PARTITIONS = {2: 100, 3: 12, 4: 7}
R2_DEFAULT_PARTITIONS = 5


@dataclass
class OCDState:
    """State carried between OCD calls."""

    lb: np.ndarray
    ub: np.ndarray
    p_chi2: np.ndarray
    p_reg: float


@jit(nopython=True)
def additive_epsilon(approximation, reference):
    """Smallest shift so that every reference point is weakly dominated by a shifted approximation point."""
    eps = -np.inf
    for r in range(reference.shape[0]):
        best = np.inf
        for a in range(approximation.shape[0]):
            worst = -np.inf
            for k in range(reference.shape[1]):
                diff = approximation[a, k] - reference[r, k]
                if diff > worst:
                    worst = diff
            if worst < best:
                best = worst
        if best > eps:
            eps = best
    return eps


def r2_indicator(front, weights):
    """R2 with the Tchebycheff utility and the origin of the normalised space as ideal point."""
    tchebycheff = np.max(weights[:, None, :] * np.abs(front[None, :, :]), axis=2)
    return float(np.mean(np.min(tchebycheff, axis=1)))


def _r2_weights(num_objs):
    partitions = R2_PARTITIONS.get(num_objs, R2_DEFAULT_PARTITIONS)
    return get_reference_directions("das-dennis", num_objs, n_partitions=partitions)


def performance_indicators(fronts, indicators=(True, True, True)):
    """
    Indicator values of every front but the last, measured against the last.

    Parameters:
    -----------
    fronts : list of np.ndarray
        Normalised fronts, oldest first
    indicators : tuple of bool
        Which of (hypervolume, epsilon, R2) to compute

    Returns:
    --------
    np.ndarray
        Shape (number of active indicators, len(fronts) - 1)
    """
    reference = fronts[-1]
    num_objs = reference.shape[1]
    ref_point = np.full(num_objs, HV_REF)
    values = []

    if indicators[0]:
        reference_hv = hypervolume(reference, ref_point)
        values.append([reference_hv - hypervolume(front, ref_point) for front in fronts[:-1]])
    if indicators[1]:
        values.append([additive_epsilon(front, reference) for front in fronts[:-1]])
    if indicators[2]:
        weights = _r2_weights(num_objs)
        reference_r2 = r2_indicator(reference, weights)
        values.append([r2_indicator(front, weights) - reference_r2 for front in fronts[:-1]])

    return np.asarray(values, dtype=float)


def variance_test(pi_values, var_limit):
    """
    Chi-squared p-values for H0: variance >= var_limit, one per indicator.

    Small p-values mean the indicator variance is significantly below the limit.
    """
    n = pi_values.shape[1]
    sample_var = np.var(pi_values, axis=1, ddof=1)
    return stats.chi2.cdf((n - 1) * sample_var / var_limit, n - 1)


def regression_test(pi_values):
    """p-value of the slope of the standardised indicator values against the generation index."""
    n = pi_values.shape[1]
    std = np.std(pi_values, axis=1, ddof=1, keepdims=True)
    std[std == 0] = 1.0
    standardised = (pi_values - pi_values.mean(axis=1, keepdims=True)) / std

    x = np.tile(np.arange(n, dtype=float), pi_values.shape[0])
    y = standardised.ravel()
    if np.ptp(y) == 0:
        return 1.0
    return float(stats.linregress(x, y).pvalue)


def ocd(front_window: Sequence[np.ndarray], var_limit: float, alpha: float = 0.05,
        indicators: Tuple[bool, bool, bool] = (True, True, True),
        state: Optional[OCDState] = None):
    """
    Run the OCD tests on a window of first Pareto fronts.

    Parameters:
    -----------
    front_window : sequence of np.ndarray
        First front objective matrices, oldest first; at least three
    var_limit : float
        Variance limit of the chi-squared test
    alpha : float, optional
        Significance level of both tests
    indicators : tuple of bool, optional
        Active indicators (hypervolume, epsilon, R2)
    state : OCDState, optional
        State returned by the previous call

    Returns:
    --------
    tuple
        (termination flags [variance test, regression test], OCDState)
    """
    if len(front_window) < 3:
        raise ValueError("OCD needs a window of at least three fronts")
    if not any(indicators):
        raise ValueError("at least one performance indicator must be active")

    fronts = [np.atleast_2d(np.asarray(front, dtype=float)) for front in front_window]
    all_points = np.vstack(fronts)
    lb, ub = all_points.min(axis=0), all_points.max(axis=0)
    if state is not None:
        lb, ub = np.minimum(lb, state.lb), np.maximum(ub, state.ub)

    span = np.where(ub - lb > 0, ub - lb, 1.0)
    normalised = [(front - lb) / span for front in fronts]

    pi_values = performance_indicators(normalised, indicators)
    p_chi2 = variance_test(pi_values, var_limit)
    p_reg = regression_test(pi_values)

    term_crit = np.array([np.all(p_chi2 < alpha), p_reg > alpha])
    return term_crit, OCDState(lb=lb, ub=ub, p_chi2=p_chi2, p_reg=p_reg)
