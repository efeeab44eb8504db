"""
Generic copula families for offspring generation.

Supports the elliptical Gaussian and Student-t copulas and the exchangeable
Archimedean Clayton, Frank and Gumbel copulas. Elliptical copulas are fitted
on normal/t scores, Archimedean copulas by inverting the average Kendall's
tau, and sampled with the Marshall-Olkin frailty construction.
"""

import numpy as np
from scipy import integrate, optimize, stats

from sms_eda_mec.util.clayton import THETA_MIN, average_kendall_tau, theta_from_tau

ELLIPTICAL = ("Gaussian", "t")
ARCHIMEDEAN = ("Clayton", "Frank", "Gumbel")

# Clip applied before quantile transforms to keep scores finite
U_CLIP = 1e-10
# Degrees of freedom tried when fitting the t copula
NU_GRID = (1, 2, 3, 4, 5, 6, 8, 10, 15, 20, 30, 50)
# Frank parameter bounds; above the upper bound 1 - exp(-theta) rounds to 1
FRANK_THETA_BOUNDS = (1e-4, 35.0)


def _nearest_pd(A, min_eig=1e-6):
    """Find nearest positive-definite correlation matrix."""
    A = 0.5 * (A + A.T)
    w, V = np.linalg.eigh(A)
    w = np.maximum(w, min_eig)
    A = (V * w[None, :]) @ V.T
    d = np.sqrt(np.diag(A))
    A = A / np.outer(d, d)
    np.fill_diagonal(A, 1.0)
    return A


def _kendall_matrix(u):
    num_vars = u.shape[1]
    tau = np.eye(num_vars)
    for i in range(num_vars):
        for j in range(i + 1, num_vars):
            value, _ = stats.kendalltau(u[:, i], u[:, j])
            tau[i, j] = tau[j, i] = value if np.isfinite(value) else 0.0
    return tau


def _debye1(theta):
    integral, _ = integrate.quad(lambda t: t / np.expm1(t), 0.0, theta)
    return integral / theta


def frank_tau(theta):
    """Kendall's tau of a Frank copula with parameter theta > 0."""
    return 1.0 - 4.0 / theta * (1.0 - _debye1(theta))


def frank_theta(tau):
    """Invert frank_tau, clamping to FRANK_THETA_BOUNDS."""
    lower, upper = FRANK_THETA_BOUNDS
    if tau <= frank_tau(lower):
        return lower
    if tau >= frank_tau(upper):
        return upper
    return optimize.brentq(lambda theta: frank_tau(theta) - tau, lower, upper)


def fit_copula(copula_type, u):
    """
    Fit a copula family to a sample with values in [0, 1].

    Parameters:
    -----------
    copula_type : str
        One of Gaussian, t, Clayton, Frank, Gumbel
    u : np.ndarray
        Normalised sample, every row an observation

    Returns:
    --------
    dict
        Fitted parameters: 'rho' (and 'nu') for elliptical families,
        'theta' for Archimedean families
    """
    u = np.clip(np.atleast_2d(u), U_CLIP, 1.0 - U_CLIP)
    num_vars = u.shape[1]

    if copula_type == "Gaussian":
        z = stats.norm.ppf(u)
        rho = np.atleast_2d(np.corrcoef(z, rowvar=False)) if num_vars > 1 else np.eye(1)
        rho = np.nan_to_num(rho, nan=0.0)
        np.fill_diagonal(rho, 1.0)
        return {"rho": _nearest_pd(rho)}

    if copula_type == "t":
        # Rank based correlation estimate, then profile likelihood over nu
        rho = _nearest_pd(np.sin(np.pi / 2.0 * _kendall_matrix(u)))
        best_nu, best_loglik = NU_GRID[0], -np.inf
        for nu in NU_GRID:
            x = stats.t.ppf(u, nu)
            joint = stats.multivariate_t(loc=np.zeros(num_vars), shape=rho, df=nu)
            loglik = np.sum(joint.logpdf(x)) - np.sum(stats.t.logpdf(x, nu))
            if loglik > best_loglik:
                best_nu, best_loglik = nu, loglik
        return {"rho": rho, "nu": best_nu}

    tau = average_kendall_tau(u)
    if copula_type == "Clayton":
        return {"theta": max(theta_from_tau(min(tau, 0.99)), THETA_MIN)}
    if copula_type == "Gumbel":
        return {"theta": 1.0 / (1.0 - min(max(tau, 0.0), 0.99))}
    if copula_type == "Frank":
        return {"theta": frank_theta(tau)}
    raise ValueError(f"unknown copula type {copula_type!r}")


def _positive_stable(alpha, size, rng):
    # Chambers-Mallows-Stuck draw of a positive alpha-stable variable with Laplace transform exp(-s**alpha)
    if alpha >= 1.0:
        return np.ones(size)
    angle = rng.uniform(0.0, np.pi, size)
    w = rng.exponential(1.0, size)
    return (np.sin(alpha * angle) / np.sin(angle) ** (1.0 / alpha)) * (
        np.sin((1.0 - alpha) * angle) / w
    ) ** ((1.0 - alpha) / alpha)


def sample_copula(copula_type, params, num_samples, num_vars, rng):
    """
    Draw a sample from a fitted copula.

    Parameters:
    -----------
    copula_type : str
        One of Gaussian, t, Clayton, Frank, Gumbel
    params : dict
        Parameters as returned by fit_copula
    num_samples : int
        Number of rows to draw
    num_vars : int
        Dimension of the copula
    rng : np.random.Generator
        Source of random variates

    Returns:
    --------
    np.ndarray
        Array of shape (num_samples, num_vars) with values in [0, 1]
    """
    if copula_type == "Gaussian":
        z = rng.multivariate_normal(np.zeros(num_vars), params["rho"], size=num_samples)
        return stats.norm.cdf(z)

    if copula_type == "t":
        joint = stats.multivariate_t(loc=np.zeros(num_vars), shape=params["rho"], df=params["nu"])
        x = np.reshape(joint.rvs(size=num_samples, random_state=rng), (num_samples, num_vars))
        return stats.t.cdf(x, params["nu"])

    theta = params["theta"]
    e = rng.exponential(1.0, size=(num_samples, num_vars))
    if copula_type == "Clayton":
        v = rng.gamma(1.0 / theta, 1.0, size=(num_samples, 1))
        return (1.0 + e / v) ** (-1.0 / theta)
    if copula_type == "Gumbel":
        v = _positive_stable(1.0 / theta, (num_samples, 1), rng)
        return np.exp(-((e / v) ** (1.0 / theta)))
    if copula_type == "Frank":
        v = rng.logseries(-np.expm1(-theta), size=(num_samples, 1))
        return -np.log1p(np.expm1(-theta) * np.exp(-e / v)) / theta
    raise ValueError(f"unknown copula type {copula_type!r}")
