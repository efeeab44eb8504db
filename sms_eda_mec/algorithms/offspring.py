import numpy as np
from scipy import stats

from sms_eda_mec.util.clayton import CopulaState, clayton_cop, estimate_theta
from sms_eda_mec.util.copulas import ARCHIMEDEAN, ELLIPTICAL, U_CLIP, fit_copula, sample_copula
from sms_eda_mec.util.options import ConfigurationError
from sms_eda_mec.util.scaling import EPSILON, BoundsScaler


def generate_random_population(pop_size, num_vars, rng_min, rng_max, rng):
    """Draw pop_size individuals uniformly inside [rng_min, rng_max]."""
    pop = rng.random((pop_size, num_vars))
    return BoundsScaler(rng_min, rng_max).scale_up(pop)


def enforce_domain(pop, rng_min, rng_max, is_int=None):
    """
    Clamp every individual component-wise into the feasible box.

    Parameters:
    -----------
    pop : np.ndarray
        Population, every row an individual
    rng_min, rng_max : array-like
        Per-variable bounds
    is_int : array-like of bool, optional
        Variables constrained to integer values; these are rounded

    Returns:
    --------
    np.ndarray
        Feasible copy of the population
    """
    out_pop = np.clip(pop, rng_min, rng_max)
    if is_int is not None and np.any(is_int):
        is_int = np.asarray(is_int, dtype=bool)
        out_pop[:, is_int] = np.clip(
            np.round(out_pop[:, is_int]),
            np.ceil(np.asarray(rng_min, dtype=float)[is_int]),
            np.floor(np.asarray(rng_max, dtype=float)[is_int]),
        )
    return out_pop


def copula_edamec(scaled, num_offspring, rng, copula_state):
    """
    Sample normalised offspring from the adaptive Clayton copula.

    The copula state is refreshed from the normalised parents, uniforms are
    mapped through the standard normal quantile and rescaled to the observed
    range of the parents.

    Parameters:
    -----------
    scaled : np.ndarray
        Parents mapped into [0, 1]
    num_offspring : int
        Number of offspring to draw
    rng : np.random.Generator
        Source of random variates
    copula_state : CopulaState
        State carried from the previous generation

    Returns:
    --------
    tuple
        (normalised offspring, refreshed CopulaState)
    """
    num_vars = scaled.shape[1]
    copula_state = estimate_theta(scaled, copula_state)

    u1 = clayton_cop(num_vars, num_offspring, copula_state.theta, rng)
    u1 = np.clip(u1, U_CLIP, 1.0 - U_CLIP)

    # Normal marginal distributions
    upperx = scaled.max(axis=0)
    lowerx = scaled.min(axis=0)
    y = stats.norm.ppf(u1)
    offspring = y * (upperx - lowerx) + lowerx
    return offspring, copula_state


def generate_copula_individuals(copula_type, pop, num_offspring, rng, copula_state=None):
    """
    Generate offspring in the raw domain from a copula fitted on the parents.

    Parameters:
    -----------
    copula_type : str
        EDAMEC for the adaptive Clayton copula, or one of Gaussian, t,
        Clayton, Frank, Gumbel for the generic families
    pop : np.ndarray
        Parent population, every row an individual
    num_offspring : int
        Number of offspring to generate
    rng : np.random.Generator
        Source of random variates
    copula_state : CopulaState, optional
        Adaptive Clayton state; only EDAMEC refreshes it

    Returns:
    --------
    tuple
        (offspring in the raw domain, CopulaState)
    """
    copula_state = copula_state if copula_state is not None else CopulaState()
    scaler = BoundsScaler.from_population(pop, EPSILON)
    scaled = scaler.scale_down(pop)
    num_vars = scaled.shape[1]

    if copula_type == "EDAMEC":
        offspring, copula_state = copula_edamec(scaled, num_offspring, rng, copula_state)
    elif copula_type in ELLIPTICAL or copula_type in ARCHIMEDEAN:
        params = fit_copula(copula_type, scaled)
        offspring = sample_copula(copula_type, params, num_offspring, num_vars, rng)
    else:
        raise ConfigurationError(f"unknown copula type {copula_type!r}")

    return scaler.scale_up(offspring), copula_state
