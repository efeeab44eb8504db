"""
Rebel (precursor) individuals.

Rebels are extremal candidates built from the elite part of the population:
copula samples are sorted, reflected (1 - u) and mapped through the
per-variable empirical quantiles of the elite subset, producing points that
are statistically opposite to the elite cluster.
"""

import numpy as np
from ema_workbench import ema_logging

from sms_eda_mec.algorithms.selection import truncate
from sms_eda_mec.util.clayton import THETA_MIN, CopulaState, clayton_cop
from sms_eda_mec.util.indicators import hypervolume, pareto_rank
from sms_eda_mec.util.scaling import EPSILON, BoundsScaler

_logger = ema_logging.get_module_logger(__name__)

# Share of the population that makes up the elite subset
ELITE_FRACTION = 0.3


def best_subset(pop, pop_obj, n_pf_eval_hv, ref_point, rng, rank_func=pareto_rank,
                hv_func=hypervolume):
    """
    Elite subset of the population: whole fronts until the elite share is
    reached, then pruned with the environmental selection rule.

    Returns:
    --------
    tuple
        (subset decisions, subset objectives)
    """
    target = max(1, int(np.floor(ELITE_FRACTION * pop.shape[0])))
    ranks = np.asarray(rank_func(pop_obj))

    rank_index = 0
    mask = np.zeros(len(ranks), dtype=bool)
    while mask.sum() < target:
        rank_index += 1
        mask |= ranks == rank_index

    _logger.debug(
        f"Ranks reached {rank_index}, total: {ranks.max()}, "
        f"subset size before pruning: {mask.sum()}."
    )
    return truncate(pop[mask], pop_obj[mask], target, pop_obj.shape[1], n_pf_eval_hv,
                    ref_point, rng, rank_func, hv_func)


def compute_rebels(pop, pop_obj, n_precursors, n_pf_eval_hv, ref_point, rng,
                   copula_state=None, rank_func=pareto_rank, hv_func=hypervolume):
    """
    Generate rebel individuals from the elite subset of the population.

    Parameters:
    -----------
    pop : np.ndarray
        Current population, every row an individual
    pop_obj : np.ndarray
        Objectives of the population
    n_precursors : int
        Requested number of rebels
    n_pf_eval_hv : float
        Front count threshold used when pruning the elite subset
    ref_point : float or array-like
        Reference point used when pruning the elite subset
    rng : np.random.Generator
        Source of random variates
    copula_state : CopulaState, optional
        Current adaptive Clayton state; its theta drives the copula sample
    rank_func, hv_func : callable, optional
        Ranking and hypervolume services

    Returns:
    --------
    np.ndarray
        Rebels in the raw domain; n_precursors copies of the elite row if the
        subset is a single individual, otherwise 2 * floor(n_precursors / 2)
        rows at most
    """
    num_vars = pop.shape[1]
    if n_precursors <= 0:
        return np.empty((0, num_vars))

    subset, _ = best_subset(pop, pop_obj, n_pf_eval_hv, ref_point, rng, rank_func, hv_func)
    if subset.shape[0] == 1:
        return np.repeat(subset, n_precursors, axis=0)

    scaler = BoundsScaler.from_population(subset, EPSILON)
    scaled = scaler.scale_down(subset)

    copula_state = copula_state if copula_state is not None else CopulaState()
    theta = copula_state.theta if copula_state.is_defined else THETA_MIN
    forward = np.sort(clayton_cop(num_vars, scaled.shape[0], theta, rng), axis=0)
    u2 = 1.0 - forward

    y_inv = np.empty_like(scaled)
    for k in range(num_vars):
        y_inv[:, k] = np.quantile(scaled[:, k], u2[:, k], method="hazen")

    rebel_cdf_direct = y_inv
    rebel_cdf_inverse = np.flipud(y_inv)

    part_size = n_precursors // 2
    rebel_pop = np.vstack((rebel_cdf_direct[:part_size], rebel_cdf_inverse[:part_size]))
    return scaler.scale_up(rebel_pop)
