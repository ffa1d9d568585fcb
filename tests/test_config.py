"""
Unit tests for IsolationForestConfig and the dtype helpers.
"""

import dataclasses

import numpy as np
import pytest

from scalar_iforest import IsolationForestConfig, InvalidParameterError
from scalar_iforest.config import check_index_dtype, check_max_depth, check_value_dtype


def test_defaults():
    config = IsolationForestConfig()

    assert config.n_trees == 100
    assert config.max_depth == 10
    assert config.random_state is None
    assert config.dtype == np.float64
    assert config.index_dtype == np.int64
    assert config.n_jobs == 1


def test_dtypes_are_normalised():
    assert IsolationForestConfig(dtype="float32") == IsolationForestConfig(dtype=np.float32)
    assert isinstance(IsolationForestConfig(index_dtype="int32").index_dtype, np.dtype)


def test_config_is_frozen():
    config = IsolationForestConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.n_trees = 3


def test_numpy_integers_are_accepted():
    config = IsolationForestConfig(n_trees=np.int64(4), max_depth=np.int32(2), random_state=np.uint8(9))
    assert config.n_trees == 4


@pytest.mark.parametrize("kwargs", [
    {"n_trees": 0},
    {"n_trees": True},
    {"max_depth": -2},
    {"max_depth": 1.0},
    {"random_state": 1.5},
    {"dtype": "int16"},
    {"index_dtype": "float16"},
    {"n_jobs": 0},
    {"n_jobs": 1.0},
])
def test_invalid_values(kwargs):
    with pytest.raises(InvalidParameterError):
        IsolationForestConfig(**kwargs)


def test_check_helpers():
    assert check_max_depth(0) == 0
    assert check_value_dtype(np.float16) == np.float16
    assert check_index_dtype(np.int16) == np.int16
    with pytest.raises(InvalidParameterError):
        check_index_dtype(np.uint8)
