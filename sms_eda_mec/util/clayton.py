"""
Adaptive Clayton copula used by SMS-EDA-MEC.

A single dependence parameter theta is estimated every generation from the
average pairwise Kendall's tau of the elite individuals and smoothed over
generations with a momentum coefficient. The estimate is carried in an
explicit CopulaState value owned by the caller.
"""

import math
from dataclasses import dataclass, replace

import numpy as np
from numba import jit
from scipy import stats

DEFAULT_MOMENTUM = 0.01
THETA_MIN = 1e-4
# Stand-in for theta when tau reaches 1 and 2 tau / (1 - tau) is undefined
THETA_MAX = 1e4
UNIFORM_FLOOR = 1e-12


@dataclass(frozen=True)
class CopulaState:
    """Dependence parameter carried across generations; theta is nan until first estimated."""

    theta: float = math.nan
    momentum: float = DEFAULT_MOMENTUM

    @property
    def is_defined(self):
        return not math.isnan(self.theta)


def average_kendall_tau(pop):
    """
    Average of the strictly upper triangular pairwise Kendall's tau matrix.

    Pairs with an undefined tau (a constant column) are ignored. With a single
    variable, or no defined pair, the average is 0.

    Parameters:
    -----------
    pop : np.ndarray
        Sample, every row an individual

    Returns:
    --------
    float
        Average Kendall's tau over all variable pairs
    """
    pop = np.atleast_2d(pop)
    num_vars = pop.shape[1]
    taus = []
    varying = np.ptp(pop, axis=0) > 0
    for i in range(num_vars):
        for j in range(i + 1, num_vars):
            if not (varying[i] and varying[j]):
                continue
            tau, _ = stats.kendalltau(pop[:, i], pop[:, j])
            if np.isfinite(tau):
                taus.append(tau)
    return float(np.mean(taus)) if taus else 0.0


def theta_from_tau(tau):
    """Clayton dependence parameter matching a Kendall's tau, 2 tau / (1 - tau)."""
    if tau >= 1.0:
        return THETA_MAX
    return 2.0 * tau / (1.0 - tau)


def estimate_theta(pop, state=None):
    """
    Refresh the copula state from a normalised elite sample.

    Parameters:
    -----------
    pop : np.ndarray
        Normalised elite sample, every row an individual
    state : CopulaState, optional
        State of the previous generation; a fresh state if not given

    Returns:
    --------
    CopulaState
        New state with the smoothed theta, floored at THETA_MIN
    """
    state = state if state is not None else CopulaState()
    theta_raw = theta_from_tau(average_kendall_tau(pop))

    if state.is_defined:
        theta = (1 - state.momentum) * theta_raw + state.momentum * state.theta
    else:
        theta = theta_raw

    if not np.isfinite(theta):
        theta = THETA_MAX
    if theta < THETA_MIN:
        theta = THETA_MIN
    return replace(state, theta=float(theta))


@jit(nopython=True)
def _log_add_exp(x, y):
    high = max(x, y)
    if high == -np.inf:
        return high
    return high + math.log1p(math.exp(-abs(x - y)))


@jit(nopython=True)
def _log_expm1(x):
    # log(exp(x) - 1) for x >= 0
    if x <= 0.0:
        return -np.inf
    if x > 30.0:
        return x + math.log1p(-math.exp(-x))
    return math.log(math.expm1(x))


@jit(nopython=True)
def _clayton_kernel(uniforms, theta):
    # Column 0 is kept as is; log S, S = sum of w ** -theta over the previous
    # columns, is carried so that a large theta cannot overflow the running sum
    num_samples, num_vars = uniforms.shape
    w = np.empty_like(uniforms)
    for i in range(num_samples):
        w[i, 0] = uniforms[i, 0]
        log_sum = -theta * math.log(w[i, 0])
        for j in range(1, num_vars):
            exponent = theta / (-theta * j - 1)
            # S - j + 1 >= 1 because every term of S is at least 1
            log_scale = log_sum + math.log1p(-(j - 1) * math.exp(-log_sum))
            log_step = _log_expm1(exponent * math.log(uniforms[i, j]))
            log_w = -_log_add_exp(log_scale + log_step, 0.0) / theta
            w[i, j] = math.exp(log_w)
            log_sum = _log_add_exp(log_sum, -theta * log_w)
    return w


def clayton_cop(num_vars, num_samples, theta, rng):
    """
    Sample the Clayton copula by sequential conditional inversion.

    Parameters:
    -----------
    num_vars : int
        Dimension of the copula
    num_samples : int
        Number of rows to draw
    theta : float
        Dependence parameter, must be positive
    rng : np.random.Generator
        Source of uniform variates

    Returns:
    --------
    np.ndarray
        Array of shape (num_samples, num_vars) with values in (0, 1]
    """
    # Zero is excluded so that t ** negative stays finite
    uniforms = rng.uniform(UNIFORM_FLOOR, 1.0, size=(num_samples, num_vars))
    if num_samples == 0 or num_vars == 0:
        return uniforms
    return _clayton_kernel(uniforms, float(theta))
