import os
import shutil
import tempfile

import h5py
import numpy as np
from ema_workbench import ema_logging

_logger = ema_logging.get_module_logger(__name__)


def _write_atomically(final_h5_filepath, write):
    # Write into a temporary directory first, then move the finished file in place
    with tempfile.TemporaryDirectory(prefix="h5save_") as temp_dir:
        temp_h5_filepath = os.path.join(temp_dir, os.path.basename(final_h5_filepath))
        with h5py.File(temp_h5_filepath, "w") as hf:
            write(hf)
        shutil.move(temp_h5_filepath, final_h5_filepath)


def save_generation_snapshot(output_dir, problem_name, iteration, count_eval, pop, pop_obj):
    """
    Saves the population of one iteration to an HDF5 file.

    Parameters:
    -----------
    output_dir : str
        Directory the snapshot is written to, created if missing
    problem_name : str
        Name of the problem, used in the file name
    iteration : int
        Current iteration
    count_eval : int
        Evaluations spent so far
    pop, pop_obj : np.ndarray
        Population and its objectives

    Returns:
    --------
    str
        Path of the written file
    """
    os.makedirs(output_dir, exist_ok=True)
    h5_filename = f"generation_{problem_name}_{iteration:05d}.h5"
    final_h5_filepath = os.path.join(output_dir, h5_filename)

    def write(hf):
        hf.create_dataset("population", data=np.asarray(pop, dtype=float))
        hf.create_dataset("objectives", data=np.asarray(pop_obj, dtype=float))
        hf.attrs["problem"] = problem_name
        hf.attrs["iteration"] = int(iteration)
        hf.attrs["n_evaluations"] = int(count_eval)

    _write_atomically(final_h5_filepath, write)
    _logger.debug(f"Generation snapshot saved to: {final_h5_filepath}")
    return final_h5_filepath


def save_results(result, final_path, problem_name, seed, runtime=None):
    """
    Saves the final front, the matching decision vectors and run metadata to an HDF5 file.

    Parameters:
    -----------
    result : OptimisationResult
        Outcome of a run
    final_path : str
        Directory the file is written to, created if missing
    problem_name : str
        Name of the problem
    seed : int
        Seed of the run
    runtime : float, optional
        Wall clock time of the run in seconds

    Returns:
    --------
    str
        Path of the written file
    """
    os.makedirs(final_path, exist_ok=True)
    h5_filename = f"final_state_{problem_name}_sms_eda_mec_seed{seed}.h5"
    final_h5_filepath = os.path.join(final_path, h5_filename)

    def write(hf):
        final_group = hf.create_group("final_front")
        final_group.create_dataset("pareto_front", data=result.pareto_front)
        final_group.create_dataset("pareto_set", data=result.pareto_set)

        hf.attrs["runtime"] = runtime if runtime is not None else -1.0
        hf.attrs["problem"] = problem_name
        hf.attrs["algorithm"] = "sms_eda_mec"
        hf.attrs["seed"] = int(seed)
        hf.attrs["n_evaluations"] = int(result.n_evaluations)
        hf.attrs["iterations"] = int(result.iterations)
        hf.attrs["restart_count"] = int(result.restart_count)

    _write_atomically(final_h5_filepath, write)
    _logger.info(f"Final state HDF5 saved to: {final_h5_filepath}")
    return final_h5_filepath


def load_results(h5_path):
    """
    Loads a file written by save_results.

    Returns:
    --------
    tuple
        (pareto_front, pareto_set, attributes dict)
    """
    with h5py.File(h5_path, "r") as hf:
        group = hf["final_front"]
        return group["pareto_front"][()], group["pareto_set"][()], dict(hf.attrs)
