"""
Pytest configuration and shared fixtures.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def small_dataset():
    """Five close values and one far away value."""
    return [1.0, 2.0, 3.0, 4.0, 5.0, 100.0]


@pytest.fixture
def clustered_data():
    """Tight cluster around 50 with one far outlier at 500."""
    gen = np.random.default_rng(7)
    cluster = gen.normal(loc=50.0, scale=1.0, size=255)
    return np.append(cluster, 500.0)
