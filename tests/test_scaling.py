"""
Unit tests for BoundsScaler.
"""

import numpy as np
import pytest

from sms_eda_mec.util.scaling import EPSILON, BoundsScaler


class TestBoundsScaler:
    """Test the affine mapping between the raw box and [0, 1]"""

    def test_scale_down_maps_bounds_to_unit_interval(self):
        scaler = BoundsScaler([-1.0, 0.0], [1.0, 10.0])
        scaled = scaler.scale_down(np.array([[-1.0, 0.0], [1.0, 10.0], [0.0, 5.0]]))
        np.testing.assert_allclose(scaled, [[0.0, 0.0], [1.0, 1.0], [0.5, 0.5]])

    def test_scale_up_inverts_scale_down(self, rng):
        scaler = BoundsScaler([-5.0, 2.0, 0.0], [5.0, 3.0, 100.0])
        pop = scaler.scale_up(rng.random((20, 3)))
        np.testing.assert_allclose(scaler.scale_up(scaler.scale_down(pop)), pop)

    def test_from_population_pads_observed_bounds(self):
        pop = np.array([[0.0, 1.0], [2.0, 3.0]])
        scaler = BoundsScaler.from_population(pop)

        np.testing.assert_allclose(scaler.lower, [-EPSILON, 1.0 - EPSILON])
        np.testing.assert_allclose(scaler.upper, [2.0 + EPSILON, 3.0 + EPSILON])
        scaled = scaler.scale_down(pop)
        assert np.all(scaled > 0.0)
        assert np.all(scaled < 1.0)

    def test_constant_variable_stays_finite(self):
        pop = np.array([[1.0, 4.0], [1.0, 5.0], [1.0, 6.0]])
        scaler = BoundsScaler.from_population(pop)

        scaled = scaler.scale_down(pop)
        assert np.all(np.isfinite(scaled))
        assert scaled[:, 0] == pytest.approx([0.5, 0.5, 0.5])
