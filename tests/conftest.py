"""
Shared fixtures for the SMS-EDA-MEC test suite.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest


@pytest.fixture
def rng():
    """Seeded generator so every test is reproducible"""
    return np.random.default_rng(12345)


@pytest.fixture
def linear_front():
    """Five mutually non-dominated points on f2 = 1 - f1"""
    f1 = np.linspace(0.0, 1.0, 5)
    return np.column_stack((f1, 1.0 - f1))
