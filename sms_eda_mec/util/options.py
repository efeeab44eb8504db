"""
Typed run configuration for SMS-EDA-MEC.

Options are plain dataclass fields. User supplied dictionaries are merged
over the defaults by `get_options`, which accepts unambiguous, case
insensitive abbreviations of the field names.
"""

import math
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Optional, Sequence, Union

from ema_workbench import ema_logging

_logger = ema_logging.get_module_logger(__name__)

COPULA_TYPES = ("Gaussian", "t", "Clayton", "Frank", "Gumbel", "EDAMEC")


class ConfigurationError(ValueError):
    """Raised for an invalid problem identifier or invalid options; the run never starts."""


@dataclass
class Options:
    """Options of a single SMS-EDA-MEC run."""

    pop_size: int = 100                       # size of the population
    num_offspring: int = 100                  # number of offspring individuals to generate
    max_eval: int = 10000                     # maximum number of evaluations
    ocd_var_limit: float = 1e-4               # variance limit of OCD
    ocd_n_pre_gen: int = 10                   # number of preceding generations used in OCD
    n_pf_eval_hv: float = math.inf            # evaluate 1st to this number of Pareto fronts with HV
    output_gen: float = math.inf              # rate of writing output files
    ref_point: Union[float, Sequence[float]] = 0  # reference point for HV; if 0, max(obj)+1 is used
    n_precursors: int = 10                    # number of precursors
    copula_type: str = "EDAMEC"               # one of COPULA_TYPES
    do_restarting: bool = True                # use restarting?
    restart_gap: int = 1                      # number of iterations to wait between restarts
    restarting_percent: float = 0.9           # enable restarting only in this part of the evolution
    base_kl: float = 0.15                     # base local/global restart ratio
    show_plots: bool = False                  # show interactive progress plots

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> "Options":
        """
        Check option values, raising ConfigurationError on the first problem.

        Returns:
        --------
        Options
            self, to allow chaining
        """
        if self.pop_size < 1:
            raise ConfigurationError(f"pop_size must be positive, got {self.pop_size}")
        if self.num_offspring < 1:
            raise ConfigurationError(f"num_offspring must be positive, got {self.num_offspring}")
        if self.max_eval < 1:
            raise ConfigurationError(f"max_eval must be positive, got {self.max_eval}")
        if self.ocd_var_limit <= 0:
            raise ConfigurationError(f"ocd_var_limit must be positive, got {self.ocd_var_limit}")
        if self.ocd_n_pre_gen < 2:
            raise ConfigurationError(f"ocd_n_pre_gen must be at least 2, got {self.ocd_n_pre_gen}")
        if self.n_pf_eval_hv < 0:
            raise ConfigurationError(f"n_pf_eval_hv must not be negative, got {self.n_pf_eval_hv}")
        if self.output_gen < 1:
            raise ConfigurationError(f"output_gen must be at least 1, got {self.output_gen}")
        if not 0 <= self.n_precursors < self.pop_size:
            raise ConfigurationError(
                f"n_precursors must lie in [0, pop_size), got {self.n_precursors}"
            )
        if self.copula_type not in COPULA_TYPES:
            raise ConfigurationError(
                f"copula_type must be one of {COPULA_TYPES}, got {self.copula_type!r}"
            )
        if self.restart_gap < 0:
            raise ConfigurationError(f"restart_gap must not be negative, got {self.restart_gap}")
        if not 0 <= self.restarting_percent <= 1:
            raise ConfigurationError(
                f"restarting_percent must lie in [0, 1], got {self.restarting_percent}"
            )
        if not 0 < self.base_kl <= 1:
            raise ConfigurationError(f"base_kl must lie in (0, 1], got {self.base_kl}")
        return self


def get_options(inopts: Optional[Dict[str, Any]], defopts: Optional[Options] = None) -> Options:
    """
    Merge user options over the defaults.

    Field names in inopts can be abbreviated (case insensitive prefix). An
    abbreviation matching several fields, or two inputs matching the same
    field, raises ConfigurationError. Unknown names are logged and ignored,
    None values keep the default.

    Parameters:
    -----------
    inopts : dict or None
        User supplied options
    defopts : Options, optional
        Defaults to merge over, Options() if not given

    Returns:
    --------
    Options
        The validated, merged options
    """
    defopts = defopts if defopts is not None else Options()
    if not inopts:
        return replace(defopts).validate()
    if not isinstance(inopts, dict):
        raise ConfigurationError("The options need to be a dict or empty")

    defnames = [f.name for f in fields(Options)]
    matched = {}
    seen = set()
    for name, value in inopts.items():
        candidates = [d for d in defnames if d.lower().startswith(name.lower())]
        # An exact name always wins over longer names sharing its prefix
        if name.lower() in candidates:
            candidates = [name.lower()]
        if len(candidates) > 1:
            raise ConfigurationError(
                f'option "{name}" is not an unambiguous abbreviation of {candidates}'
            )
        if not candidates:
            _logger.warning(f'option "{name}" disregarded (unknown field name)')
            continue
        defname = candidates[0]
        if defname in seen:
            raise ConfigurationError(f'input options match more than once with "{defname}"')
        seen.add(defname)
        if value is not None:
            matched[defname] = value

    return replace(defopts, **matched).validate()


def display_options(opts: Optional[Options] = None):
    """Log every option with its value, defaults when opts is not given."""
    opts = opts if opts is not None else Options()
    for name, value in opts.to_dict().items():
        _logger.info(f"{name:<20}: {value!r}")
