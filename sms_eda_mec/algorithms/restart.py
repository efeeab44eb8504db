"""
Stagnation detection and partial restarts.

The first Pareto front of every generation is pushed into a fixed size
window. Once the window is full the OCD test runs every generation; when it
signals stagnation (and the cooldown has passed) part of the population is
replaced by individuals drawn around the current population (local) and in
the whole search space (global).
"""

from dataclasses import dataclass

import numpy as np
from ema_workbench import ema_logging

from sms_eda_mec.algorithms.offspring import enforce_domain, generate_random_population
from sms_eda_mec.util.convergence_analysis import ocd
from sms_eda_mec.util.indicators import pareto_rank

_logger = ema_logging.get_module_logger(__name__)

# Below this local/global ratio the ratio returns to its base value
KL_FLOOR = 0.05


class ConvergenceWindow:
    """Ring buffer holding the most recent first-front snapshots."""

    def __init__(self, capacity):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._buffer = [None] * capacity
        self._count = 0

    def __len__(self):
        return min(self._count, self.capacity)

    @property
    def is_full(self):
        return self._count >= self.capacity

    def push(self, front):
        """Store a snapshot, overwriting the oldest one when full."""
        self._buffer[self._count % self.capacity] = np.array(front, dtype=float)
        self._count += 1

    def snapshots(self):
        """Stored snapshots, oldest first."""
        if not self.is_full:
            return list(self._buffer[: self._count])
        start = self._count % self.capacity
        return self._buffer[start:] + self._buffer[:start]


@dataclass
class RestartState:
    """Bookkeeping of the restart policy."""

    kl_ratio: float
    restart_count: int = 0
    last_restart_iteration: int = 1


class StagnationController:
    """
    Runs the convergence test on a sliding window of first fronts and
    restarts part of the population when the search stagnates.
    """

    def __init__(self, options, rng_min, rng_max, convergence_test=ocd, is_int=None):
        """
        Parameters:
        -----------
        options : Options
            Run options (restart switches, OCD settings, base_kl)
        rng_min, rng_max : array-like
            Bounds of the search space, used for the global batch
        convergence_test : callable, optional
            OCD-like test, called as
            convergence_test(window, var_limit, state=...) -> (flags, state)
        is_int : array-like of bool, optional
            Integer variables, rounded in restarted individuals
        """
        self.options = options
        self.rng_min = np.asarray(rng_min, dtype=float)
        self.rng_max = np.asarray(rng_max, dtype=float)
        self.convergence_test = convergence_test
        self.is_int = is_int

        self.window = ConvergenceWindow(options.ocd_n_pre_gen + 1)
        self.state = RestartState(kl_ratio=options.base_kl)
        self.ocd_state = None
        self.term_crit = None

    def is_active(self, count_eval):
        """Restarting is only enabled in the first part of the evolution."""
        return (self.options.do_restarting
                and count_eval / self.options.max_eval <= self.options.restarting_percent)

    def update(self, front):
        """
        Push a first front and run the convergence test when the window is full.

        Returns:
        --------
        bool
            True if any stagnation criterion currently holds
        """
        was_full = self.window.is_full
        self.window.push(front)

        if self.window.is_full:
            # The first full window starts the test without carried state
            carried = self.ocd_state if was_full else None
            self.term_crit, self.ocd_state = self.convergence_test(
                self.window.snapshots(), self.options.ocd_var_limit, state=carried
            )

        if self.term_crit is None or not np.any(self.term_crit):
            return False
        if self.term_crit[0]:
            _logger.info("OCD detected convergence due to the variance test")
        else:
            _logger.info("OCD detected convergence due to the regression analysis")
        return True

    def restart(self, iteration, pop, rng):
        """
        Replace the head of the population with local and the tail with global individuals.

        Parameters:
        -----------
        iteration : int
            Current iteration
        pop : np.ndarray
            Current population
        rng : np.random.Generator
            Source of random variates

        Returns:
        --------
        tuple
            (new population, sorted indices of the replaced rows)
        """
        pop_size, num_vars = pop.shape
        kl = self.state.kl_ratio
        n_replaced = int(np.floor(pop_size * kl))

        pop_local_restarted = generate_random_population(
            pop_size, num_vars, pop.min(axis=0), pop.max(axis=0), rng)
        pop_global_restarted = generate_random_population(
            pop_size, num_vars, self.rng_min, self.rng_max, rng)

        pop = pop.copy()
        head = np.arange(n_replaced)
        tail = np.arange(pop_size - n_replaced, pop_size)
        pop[head] = pop_local_restarted[head]
        pop[tail] = pop_global_restarted[tail]

        self.state.restart_count += 1
        self.state.last_restart_iteration = iteration
        if self.state.restart_count > 1:
            self.state.kl_ratio = kl / 2
            if self.state.kl_ratio < KL_FLOOR:
                self.state.kl_ratio = self.options.base_kl

        pop = enforce_domain(pop, self.rng_min, self.rng_max, self.is_int)
        return pop, np.union1d(head, tail)

    def step(self, iteration, pop, pop_obj, count_eval, evaluate, rng, rank_func=pareto_rank):
        """
        One generation of stagnation control.

        Parameters:
        -----------
        iteration : int
            Current iteration, starting at 1
        pop, pop_obj : np.ndarray
            Current population and its objectives
        count_eval : int
            Evaluations spent so far
        evaluate : callable
            Vectorised objective function
        rng : np.random.Generator
            Source of random variates
        rank_func : callable, optional
            Ranking service

        Returns:
        --------
        tuple
            (population, objectives, number of new evaluations)
        """
        if not self.is_active(count_eval):
            return pop, pop_obj, 0

        ranks = np.asarray(rank_func(pop_obj))
        stagnation_criterion = self.update(pop_obj[ranks == 1])

        # Avoid continuous restarting
        if not (stagnation_criterion
                and iteration - self.state.last_restart_iteration >= self.options.restart_gap):
            return pop, pop_obj, 0

        _logger.info("Restarting population...")
        pop, replaced = self.restart(iteration, pop, rng)
        pop_obj = np.array(pop_obj, dtype=float)
        if len(replaced):
            pop_obj[replaced] = evaluate(pop[replaced])
        return pop, pop_obj, len(replaced)
