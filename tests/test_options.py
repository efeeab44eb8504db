"""
Unit tests for option handling.
"""

import math
from dataclasses import fields
from unittest.mock import patch

import pytest

from sms_eda_mec.util import options as options_module
from sms_eda_mec.util.options import ConfigurationError, Options, display_options, get_options


class TestDefaults:
    """Test the default option values"""

    def test_defaults(self):
        opts = get_options(None)
        assert opts.pop_size == 100
        assert opts.num_offspring == 100
        assert opts.max_eval == 10000
        assert opts.ocd_var_limit == 1e-4
        assert opts.ocd_n_pre_gen == 10
        assert math.isinf(opts.n_pf_eval_hv)
        assert math.isinf(opts.output_gen)
        assert opts.ref_point == 0
        assert opts.n_precursors == 10
        assert opts.copula_type == "EDAMEC"
        assert opts.do_restarting is True
        assert opts.restart_gap == 1
        assert opts.restarting_percent == 0.9
        assert opts.base_kl == 0.15
        assert opts.show_plots is False

    def test_empty_dict_gives_defaults(self):
        assert get_options({}) == Options()

    def test_defaults_are_not_shared(self):
        defopts = Options()
        opts = get_options({"pop_size": 20}, defopts)
        assert defopts.pop_size == 100
        assert opts.pop_size == 20


class TestGetOptions:
    """Test merging user options over the defaults"""

    def test_abbreviation(self):
        opts = get_options({"pop": 30, "max": 500})
        assert opts.pop_size == 30
        assert opts.max_eval == 500

    def test_case_insensitive(self):
        assert get_options({"POP_SIZE": 40}).pop_size == 40

    def test_ambiguous_abbreviation(self):
        with pytest.raises(ConfigurationError):
            get_options({"n_p": 3})

    def test_duplicate_match(self):
        with pytest.raises(ConfigurationError):
            get_options({"pop": 10, "pop_size": 20})

    def test_duplicate_match_with_none_value(self):
        with pytest.raises(ConfigurationError):
            get_options({"pop_size": None, "pop": 5})

    def test_unknown_name_is_logged_and_ignored(self):
        with patch.object(options_module, "_logger") as logger:
            opts = get_options({"mutation_rate": 0.1})
        logger.warning.assert_called_once()
        assert opts == Options()

    def test_none_keeps_default(self):
        assert get_options({"base_kl": None}).base_kl == 0.15

    def test_not_a_dict(self):
        with pytest.raises(ConfigurationError):
            get_options([("pop_size", 10)])


class TestValidate:
    """Test option validation"""

    @pytest.mark.parametrize("bad", [
        {"pop_size": 0},
        {"num_offspring": 0},
        {"max_eval": 0},
        {"ocd_var_limit": 0.0},
        {"ocd_n_pre_gen": 1},
        {"n_pf_eval_hv": -1},
        {"output_gen": 0},
        {"n_precursors": 100},
        {"n_precursors": -1},
        {"copula_type": "Joe"},
        {"restart_gap": -1},
        {"restarting_percent": 1.5},
        {"base_kl": 0.0},
    ])
    def test_invalid_values(self, bad):
        with pytest.raises(ConfigurationError):
            get_options(bad)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            Options(pop_size=-5).validate()

    def test_to_dict(self):
        assert set(Options().to_dict()) == {f.name for f in fields(Options)}


class TestDisplayOptions:
    """Test option logging"""

    def test_logs_every_option(self):
        with patch.object(options_module, "_logger") as logger:
            display_options(Options(pop_size=7))
        assert logger.info.call_count == len(fields(Options))
        assert any("7" in c.args[0] for c in logger.info.call_args_list)
