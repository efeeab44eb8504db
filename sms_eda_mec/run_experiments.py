import os
import time
from concurrent.futures import ProcessPoolExecutor

import numpy as np
import pandas as pd
from ema_workbench import ema_logging

from sms_eda_mec.algorithms.sms_eda_mec import sms_eda_mec
from sms_eda_mec.util.hdf5_output import load_results, save_results
from sms_eda_mec.util.indicators import hypervolume
from sms_eda_mec.util.options import Options, get_options
from sms_eda_mec.util.visualisation import plot_pareto_front

_logger = ema_logging.get_module_logger(__name__)

# Set up local directories for saving results
LOCAL_RESULTS_OUTPUT_DIR = "./hdf5_results"

SEED_VALUES = [12345, 23403, 39349, 60930, 93489]


def run_single_experiment(problem_name, options, seed, results_dir=LOCAL_RESULTS_OUTPUT_DIR):
    """
    Runs SMS-EDA-MEC once with a seeded generator and saves the final front to HDF5.

    Returns:
    --------
    dict
        Summary row: problem, seed, runtime, evaluations, front size, hypervolume
        and the path of the HDF5 file
    """
    rng = np.random.default_rng(seed)

    start_time = time.time()
    result = sms_eda_mec(problem_name, options, rng=rng)
    runtime = time.time() - start_time

    final_result_dir = os.path.join(results_dir, problem_name, f"seed{seed}")
    h5_path = save_results(result, final_result_dir, problem_name, seed, runtime)

    # Hypervolume of the front with respect to its own nadir + 1
    ref_point = result.pareto_front.max(axis=0) + 1
    return {
        "problem": problem_name,
        "seed": seed,
        "runtime": runtime,
        "n_evaluations": result.n_evaluations,
        "iterations": result.iterations,
        "restart_count": result.restart_count,
        "front_size": len(result.pareto_front),
        "hypervolume": hypervolume(result.pareto_front, ref_point),
        "h5_path": h5_path,
    }


def _worker(task_args_tuple):
    return run_single_experiment(*task_args_tuple)


def run_optimisation_experiment(problem_names, options=None, seeds=SEED_VALUES, n_processes=1,
                                results_dir=LOCAL_RESULTS_OUTPUT_DIR):
    """
    Run SMS-EDA-MEC for multiple problems and seeds

    Parameters:
    -----------
    problem_names : list
        Registered problem names
    options : dict or Options, optional
        Options shared by all runs
    seeds : list, optional
        One run per seed
    n_processes : int, optional
        Number of worker processes; 1 runs everything in this process
    results_dir : str, optional
        Base directory of the HDF5 files

    Returns:
    --------
    pd.DataFrame
        One summary row per run
    """
    # Validate once up front so that bad options fail before any run starts
    options = options.validate() if isinstance(options, Options) else get_options(options)
    tasks = [(problem_name, options, seed, results_dir)
             for problem_name in problem_names for seed in seeds]
    _logger.info(f"Starting {len(tasks)} runs using {n_processes} processes...")

    if n_processes > 1:
        with ProcessPoolExecutor(max_workers=n_processes) as executor:
            rows = list(executor.map(_worker, tasks))
    else:
        rows = [_worker(task) for task in tasks]
    return pd.DataFrame(rows)


def plot_final_fronts(h5_paths, title="Final Pareto fronts", ax=None):
    """
    Overlay the fronts stored in final state HDF5 files, one line per run

    Parameters:
    -----------
    h5_paths : iterable of str
        Files written by save_results
    title : str, optional
        Plot title
    ax : matplotlib.axes.Axes, optional
        Axes to draw into, a new figure is created if not given

    Returns:
    --------
    matplotlib.axes.Axes
    """
    for h5_path in h5_paths:
        pareto_front, _, attrs = load_results(h5_path)
        ax = plot_pareto_front(pareto_front, title=title, ax=ax, label=f"seed {attrs['seed']}")
    if ax is not None:
        ax.legend()
    return ax


if __name__ == "__main__":
    ema_logging.log_to_stderr(ema_logging.INFO)
    os.makedirs(LOCAL_RESULTS_OUTPUT_DIR, exist_ok=True)
    summary = run_optimisation_experiment(["ZDT1", "ZDT2", "DTLZ2"], {"max_eval": 20000})
    summary.to_csv(os.path.join(LOCAL_RESULTS_OUTPUT_DIR, "summary.csv"), index=False)
    for problem_name, runs in summary.groupby("problem"):
        ax = plot_final_fronts(runs["h5_path"], title=f"{problem_name} final fronts")
        ax.figure.savefig(os.path.join(LOCAL_RESULTS_OUTPUT_DIR, f"{problem_name}_fronts.png"))
    print(summary)
