"""
Configuration of the scalar isolation forest.

`IsolationForestConfig` groups the construction parameters of an
`IsolationForest` and validates them once, so that a forest built with
`IsolationForest.from_config` never starts from an inconsistent state.
The dtype helpers are shared with `IsolationTree`, which accepts the same
value/index dtypes.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt

from .exceptions import InvalidParameterError

DEFAULT_N_TREES = 100
DEFAULT_MAX_DEPTH = 10


def check_value_dtype(dtype: npt.DTypeLike) -> np.dtype[Any]:
    """
    Args:
        dtype: Requested dtype for split values and path lengths.
    Returns:
        The dtype as a `np.dtype`, guaranteed to be a floating type.
    """
    try:
        resolved = np.dtype(dtype)
    except TypeError as exc:
        raise InvalidParameterError(f"dtype must be a floating dtype, got {dtype!r}") from exc

    if not np.issubdtype(resolved, np.floating):
        raise InvalidParameterError(f"dtype must be a floating dtype, got {resolved}")
    return resolved


def check_index_dtype(index_dtype: npt.DTypeLike) -> np.dtype[Any]:
    """
    Args:
        index_dtype: Requested dtype for child references.
    Returns:
        The dtype as a `np.dtype`, guaranteed to be a signed integer type
        (the leaf sentinel is -1).
    """
    try:
        resolved = np.dtype(index_dtype)
    except TypeError as exc:
        raise InvalidParameterError(
            f"index_dtype must be a signed integer dtype, got {index_dtype!r}"
        ) from exc

    if not np.issubdtype(resolved, np.signedinteger):
        raise InvalidParameterError(f"index_dtype must be a signed integer dtype, got {resolved}")
    return resolved


def check_max_depth(max_depth: Any) -> int:
    if isinstance(max_depth, bool) or not isinstance(max_depth, numbers.Integral):
        raise InvalidParameterError(f"max_depth must be an integer, got {max_depth!r}")
    if max_depth < 0:
        raise InvalidParameterError(f"max_depth must be >= 0, got {max_depth}")
    return int(max_depth)


@dataclass(frozen=True)
class IsolationForestConfig:
    """
    Attributes:
        n_trees: Number of isolation trees in the ensemble (>= 1).
        max_depth: Cap on the partitioning depth of every tree (>= 0).
            0 makes every tree a single leaf.
        random_state: Seed for the forest's random generator. None draws
            fresh entropy from the OS.
        dtype: Floating dtype used for split values and path lengths.
        index_dtype: Signed integer dtype used for child references.
        n_jobs: Number of joblib workers used by batch scoring.
            1 is sequential, -1 uses all processors.
    """

    n_trees: int = DEFAULT_N_TREES
    max_depth: int = DEFAULT_MAX_DEPTH
    random_state: int | None = None
    dtype: npt.DTypeLike = np.float64
    index_dtype: npt.DTypeLike = np.int64
    n_jobs: int = 1

    def __post_init__(self) -> None:
        if isinstance(self.n_trees, bool) or not isinstance(self.n_trees, numbers.Integral):
            raise InvalidParameterError(f"n_trees must be an integer, got {self.n_trees!r}")
        if self.n_trees < 1:
            raise InvalidParameterError(f"n_trees must be >= 1, got {self.n_trees}")

        check_max_depth(self.max_depth)

        if self.random_state is not None and (
            isinstance(self.random_state, bool) or not isinstance(self.random_state, numbers.Integral)
        ):
            raise InvalidParameterError(
                f"random_state must be None or an integer, got {self.random_state!r}"
            )

        # Normalised so that equal configurations compare equal.
        object.__setattr__(self, "dtype", check_value_dtype(self.dtype))
        object.__setattr__(self, "index_dtype", check_index_dtype(self.index_dtype))

        if isinstance(self.n_jobs, bool) or not isinstance(self.n_jobs, numbers.Integral) or self.n_jobs == 0:
            raise InvalidParameterError(f"n_jobs must be a non-zero integer, got {self.n_jobs!r}")
