"""
Smoke tests for the plotting helpers (Agg backend, see conftest).
"""

import matplotlib.pyplot as plt
import numpy as np

from sms_eda_mec.util.visualisation import plot_pareto_front, plot_progress


class TestPlots:

    def teardown_method(self):
        plt.close("all")

    def test_progress_two_variables(self, rng):
        pop, offspring = rng.random((10, 2)), rng.random((10, 2))
        fig = plot_progress(1, pop, pop, offspring, offspring, rng.random((2, 2)),
                            rng.random((2, 2)))
        assert len(fig.axes) == 2

        # The figure is reused by the next iteration
        assert plot_progress(2, pop, pop, offspring, offspring, fig=fig) is fig

    def test_progress_many_variables(self, rng):
        fig = plot_progress(1, rng.random((10, 5)), rng.random((10, 2)), rng.random((10, 5)),
                            rng.random((10, 2)))
        assert len(fig.axes) == 1

    def test_pareto_front(self, linear_front):
        ax = plot_pareto_front(linear_front, title="front")
        assert ax.get_title() == "front"
        assert len(ax.lines) == 1
        np.testing.assert_allclose(ax.lines[0].get_xdata(), linear_front[:, 0])
