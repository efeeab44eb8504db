"""
S-Metric Selection Estimation of Distribution Algorithm based on
Multivariate Extension of Copulas (SMS-EDA-MEC).

Luis Marti, Harold D. de Mello Jr., Nayat Sanchez-Pi and Marley Vellasco (2016)
SMS-EDA-MEC: Extending Copula-based EDAs to Multi-Objective Optimization,
2016 IEEE Congress on Evolutionary Computation (CEC'2016), pp. 3726--3733.
doi: 10.1109/CEC.2016.7744261.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from ema_workbench import ema_logging

from sms_eda_mec.algorithms.offspring import (enforce_domain, generate_copula_individuals,
                                              generate_random_population)
from sms_eda_mec.algorithms.rebels import compute_rebels
from sms_eda_mec.algorithms.restart import StagnationController
from sms_eda_mec.algorithms.selection import truncate
from sms_eda_mec.util.clayton import CopulaState
from sms_eda_mec.util.convergence_analysis import ocd
from sms_eda_mec.util.hdf5_output import save_generation_snapshot
from sms_eda_mec.util.indicators import hypervolume, pareto_rank
from sms_eda_mec.util.model_definitions import ProblemDefinition, initialize
from sms_eda_mec.util.options import Options, get_options

_logger = ema_logging.get_module_logger(__name__)

# Progress is logged every this many iterations
LOG_EVERY = 10


@dataclass
class OptimisationResult:
    """Outcome of a run: the final first front and its decision vectors."""

    pareto_front: np.ndarray
    pareto_set: np.ndarray
    n_evaluations: int
    iterations: int
    restart_count: int
    theta: float

    def to_dataframe(self) -> pd.DataFrame:
        """Decision variables x0..xn-1 followed by objectives f0..fm-1, one row per solution."""
        lever_names = [f"x{i}" for i in range(self.pareto_set.shape[1])]
        outcome_names = [f"f{i}" for i in range(self.pareto_front.shape[1])]
        df_levers = pd.DataFrame(self.pareto_set, columns=lever_names)
        df_outcomes = pd.DataFrame(self.pareto_front, columns=outcome_names)
        return pd.concat([df_levers, df_outcomes], axis=1)


def _resolve_problem(problem):
    if isinstance(problem, ProblemDefinition):
        return problem
    return initialize(problem)


def _resolve_options(options):
    if options is None:
        return Options().validate()
    if isinstance(options, Options):
        return options.validate()
    return get_options(options)


def sms_eda_mec(problem, options=None, rng: Optional[np.random.Generator] = None,
                rank_func=pareto_rank, hv_func=hypervolume, convergence_test=ocd,
                output_dir: Optional[str] = None) -> OptimisationResult:
    """
    Run SMS-EDA-MEC on a problem until the evaluation budget is spent.

    Parameters:
    -----------
    problem : str or ProblemDefinition
        Registered problem name (see model_definitions.PROBLEMS) or a problem definition
    options : Options or dict, optional
        Run options; a dict is merged over the defaults and may use abbreviations
    rng : np.random.Generator, optional
        Single source of randomness for the run; a fresh unseeded generator if not given
    rank_func : callable, optional
        Ranking service, objectives -> 1-based Pareto ranks
    hv_func : callable, optional
        Hypervolume service, (objectives, ref_point) -> float
    convergence_test : callable, optional
        Stagnation test used by the restart controller
    output_dir : str, optional
        Directory for generation snapshots written every output_gen iterations

    Returns:
    --------
    OptimisationResult
        Final first Pareto front and matching decision vectors
    """
    problem = _resolve_problem(problem)
    opts = _resolve_options(options)
    rng = rng if rng is not None else np.random.default_rng()

    pop_size = opts.pop_size
    num_vars, num_objs = problem.num_vars, problem.num_objs
    rng_min, rng_max = problem.rng_min, problem.rng_max

    # Initial population - every row an individual
    pop = generate_random_population(pop_size, num_vars, rng_min, rng_max, rng)
    pop = enforce_domain(pop, rng_min, rng_max, problem.is_int)
    pop_obj = problem.evaluate(pop)
    count_eval = pop_size

    iteration = 0
    copula_state = CopulaState()
    controller = StagnationController(opts, rng_min, rng_max, convergence_test, problem.is_int)
    fig = None

    while count_eval < opts.max_eval:
        iteration += 1

        if iteration % LOG_EVERY == 0:
            _logger.info(f"Iteration: {iteration}; evals: {count_eval}.")
            _logger.info(f"{int(np.floor(count_eval / opts.max_eval * 100))} percent calculated.")

        # Stagnation detection and restart
        pop, pop_obj, n_evaluated = controller.step(
            iteration, pop, pop_obj, count_eval, problem.evaluate, rng, rank_func)
        count_eval += n_evaluated

        # Computing copula and new individuals
        offspring, copula_state = generate_copula_individuals(
            opts.copula_type, pop, opts.num_offspring, rng, copula_state)
        offspring = enforce_domain(offspring, rng_min, rng_max, problem.is_int)
        offspring_obj = problem.evaluate(offspring)
        count_eval += len(offspring)

        if opts.n_precursors > 0:
            rebel_pop = compute_rebels(pop, pop_obj, opts.n_precursors, opts.n_pf_eval_hv,
                                       opts.ref_point, rng, copula_state, rank_func, hv_func)
            rebel_pop = enforce_domain(rebel_pop, rng_min, rng_max, problem.is_int)
            rebel_pop_obj = problem.evaluate(rebel_pop)
            count_eval += len(rebel_pop)
        else:
            rebel_pop = np.empty((0, num_vars))
            rebel_pop_obj = np.empty((0, num_objs))

        if opts.show_plots:
            from sms_eda_mec.util.visualisation import plot_progress
            fig = plot_progress(iteration, pop, pop_obj, offspring, offspring_obj,
                                rebel_pop, rebel_pop_obj, fig)

        total_pop = np.vstack((pop, offspring))
        total_pop_obj = np.vstack((pop_obj, offspring_obj))
        total_pop, total_pop_obj = truncate(
            total_pop, total_pop_obj, pop_size - len(rebel_pop), num_objs,
            opts.n_pf_eval_hv, opts.ref_point, rng, rank_func, hv_func)

        total_pop = np.vstack((total_pop, rebel_pop))
        total_pop_obj = np.vstack((total_pop_obj, rebel_pop_obj))

        perm = rng.permutation(pop_size)
        pop = total_pop[perm]
        pop_obj = total_pop_obj[perm]

        if output_dir is not None and iteration % opts.output_gen == 0:
            save_generation_snapshot(output_dir, problem.name, iteration, count_eval, pop, pop_obj)

    final_front_mask = np.asarray(rank_func(pop_obj)) == 1
    _logger.info(
        f"Finished after {iteration} iterations and {count_eval} evaluations; "
        f"{final_front_mask.sum()} solutions in the final front."
    )
    return OptimisationResult(
        pareto_front=pop_obj[final_front_mask],
        pareto_set=pop[final_front_mask],
        n_evaluations=count_eval,
        iterations=iteration,
        restart_count=controller.state.restart_count,
        theta=copula_state.theta,
    )
