"""
This module contains the IsolationForest class that implements an ensemble
of scalar isolation trees, and the expected path length used to normalize
its scores.
"""

from __future__ import annotations

import logging
import numbers
from collections.abc import Sequence
from typing import Any

import numpy as np
import numpy.typing as npt
from joblib import Parallel, delayed

from ..config import DEFAULT_MAX_DEPTH, DEFAULT_N_TREES, IsolationForestConfig
from ..exceptions import InvalidParameterError, NotFittedError
from .tree import IsolationTree, as_query_value, as_scalar_buffer

logger = logging.getLogger(__name__)

EULER_GAMMA = 0.5772156649


def expected_path_length(size: int, dtype: npt.DTypeLike = np.float64) -> np.floating[Any]:
    """
    Average path length of an unsuccessful search in a binary search tree
    built from `size` items: c(n) = 2 H(n-1) - 2 (n-1) / n, with the
    harmonic number approximated by ln(n-1) + gamma.
    Args:
        size: Number of items n.
        dtype: Floating dtype of the result.
    Returns:
        c(n), or 0 when n <= 1.
    """
    value_type = np.dtype(dtype).type
    if size <= 1:
        return value_type(0.0)

    harmonic_number = np.log(value_type(size - 1)) + value_type(EULER_GAMMA)
    return value_type(
        value_type(2.0) * harmonic_number - value_type(2.0) * value_type(size - 1) / value_type(size)
    )


def _path_lengths_single_tree(
    tree: IsolationTree,
    values: npt.NDArray[np.floating[Any]],
) -> npt.NDArray[np.floating[Any]]:
    """
    Worker function to compute the path lengths of many values on one tree.
    This function is designed to be called in parallel using joblib.
    Args:
        tree: Built IsolationTree instance.
        values: Query values of shape (n_values,).
    Returns:
        Path lengths of shape (n_values,).
    """
    root = tree.root_id()
    return np.array([tree.path_length(value, root, 0) for value in values], dtype=tree.dtype)


class IsolationForest:
    """
    Ensemble of scalar Isolation Trees.

    Every tree sees the same training values in a different random order,
    and picks its partition anchors at random, so the trees differ in shape.
    The score of a value is 2 ** (h / c(n)), where h is its path length
    averaged over the trees and c(n) the expected path length for a training
    set of size n. Longer average paths give larger scores.

    Attributes:
        n_trees: Number of trees in the ensemble.
        max_depth: Maximum depth shared by all trees.
        rng: Random generator shared by the shuffles and all trees.
        dtype: Floating dtype of values, path lengths and scores.
        index_dtype: Signed integer dtype of node references.
        n_jobs: Number of parallel jobs used by `scores`. -1 means all processors.
        trees: The isolation trees, constructed eagerly.
    """

    def __init__(
        self,
        n_trees: int = DEFAULT_N_TREES,
        max_depth: int = DEFAULT_MAX_DEPTH,
        random_state: int | None = None,
        rng: np.random.Generator | None = None,
        dtype: npt.DTypeLike = np.float64,
        index_dtype: npt.DTypeLike = np.int64,
        n_jobs: int = 1,
    ) -> None:
        """
        Initialize an IsolationForest.
        Args:
            n_trees: Number of isolation trees to create in the ensemble.
            max_depth: Maximum partitioning depth of every tree. 0 makes
                every tree a single leaf.
            random_state: Seed for reproducibility. If None, results vary
                between runs. Ignored when `rng` is given.
            rng: Generator to draw shuffles and anchors from.
            dtype: Floating dtype of values, path lengths and scores.
            index_dtype: Signed integer dtype of node references.
            n_jobs: Number of parallel jobs used for batch scoring.
                - If 1 (default): sequential execution (no parallelization)
                - If -1: use all available processors
                - If > 1: use specified number of processors
        """
        config = IsolationForestConfig(
            n_trees=n_trees,
            max_depth=max_depth,
            random_state=random_state,
            dtype=dtype,
            index_dtype=index_dtype,
            n_jobs=n_jobs,
        )

        self.n_trees = config.n_trees
        self.max_depth = config.max_depth
        self.random_state = config.random_state
        self.dtype: np.dtype[Any] = np.dtype(config.dtype)
        self.index_dtype: np.dtype[Any] = np.dtype(config.index_dtype)
        self.n_jobs = config.n_jobs
        self.rng = rng if rng is not None else np.random.default_rng(config.random_state)

        self.trees: list[IsolationTree] = [
            IsolationTree(
                self.max_depth,
                rng=self.rng,
                dtype=self.dtype,
                index_dtype=self.index_dtype,
            )
            for _ in range(self.n_trees)
        ]
        self._built = False

    @classmethod
    def from_config(
        cls,
        config: IsolationForestConfig,
        rng: np.random.Generator | None = None,
    ) -> IsolationForest:
        return cls(
            n_trees=config.n_trees,
            max_depth=config.max_depth,
            random_state=config.random_state,
            rng=rng,
            dtype=config.dtype,
            index_dtype=config.index_dtype,
            n_jobs=config.n_jobs,
        )

    def __len__(self) -> int:
        return len(self.trees)

    @property
    def is_built(self) -> bool:
        return self._built

    def build(self, values: Sequence[float] | npt.ArrayLike) -> None:
        """
        Shuffles a copy of the training values before building each tree,
        so that each tree sees a different permutation of the same data.
        Rebuilding replaces the structure of every tree. The forest reports
        itself as not built until every tree has been rebuilt.
        Args:
            values: Training values, a 1-D sequence of finite reals. Not mutated.
        """
        data = as_scalar_buffer(values, self.dtype)
        self._built = False

        if data.shape[0] == 0:
            logger.warning(
                "Building an isolation forest from an empty sequence; every tree is a single leaf"
            )

        for tree in self.trees:
            self._shuffle(data)
            tree.build(data)

        self._built = True
        logger.debug(
            "Built isolation forest: %d trees, %d samples, max depth %d, %d nodes in total",
            self.n_trees, data.shape[0], self.max_depth,
            sum(tree.node_count for tree in self.trees),
        )

    def path_lengths(self, value: float) -> npt.NDArray[np.floating[Any]]:
        """
        Returns:
            Path length of `value` in each tree, shape (n_trees,).
        """
        self._check_built()
        value = as_query_value(value, self.dtype)
        return np.array(
            [tree.path_length(value, tree.root_id(), 0) for tree in self.trees],
            dtype=self.dtype,
        )

    def average_path_length(self, value: float) -> np.floating[Any]:
        return self.dtype.type(np.mean(self.path_lengths(value), dtype=self.dtype))

    def score(self, value: float, dataset_size: int) -> np.floating[Any]:
        """
        Args:
            value: Finite query value; it does not need to be part of the training set.
            dataset_size: Size of the training set, used only for normalization.
        Returns:
            2 ** (h / c(dataset_size)) with h the average path length of `value`.
        """
        normalization = self._normalization(dataset_size)
        avg_path_len = self.average_path_length(value)
        return self.dtype.type(np.power(self.dtype.type(2.0), avg_path_len / normalization))

    def scores(
        self,
        values: Sequence[float] | npt.ArrayLike,
        dataset_size: int,
    ) -> npt.NDArray[np.floating[Any]]:
        """
        Score many values at once.
        Args:
            values: Query values, a 1-D sequence of finite reals.
            dataset_size: Size of the training set, used only for normalization.
        Returns:
            Scores of shape (n_values,), equal to `score` applied to each value.
        """
        normalization = self._normalization(dataset_size)
        self._check_built()
        queries = as_scalar_buffer(values, self.dtype)

        if self.n_jobs == 1:
            # Sequential execution
            depth_matrix = np.zeros((queries.shape[0], len(self.trees)), dtype=self.dtype)
            for tree_idx, tree in enumerate(self.trees):
                depth_matrix[:, tree_idx] = _path_lengths_single_tree(tree, queries)
        else:
            # Parallel execution using joblib
            depth_results = Parallel(n_jobs=self.n_jobs, backend="loky")(
                delayed(_path_lengths_single_tree)(tree, queries) for tree in self.trees
            )
            depth_matrix = np.column_stack(list(depth_results)).astype(self.dtype, copy=False)

        mean_depths = np.mean(depth_matrix, axis=1, dtype=self.dtype)
        return np.power(self.dtype.type(2.0), mean_depths / normalization).astype(self.dtype, copy=False)

    def _normalization(self, dataset_size: int) -> np.floating[Any]:
        if isinstance(dataset_size, bool) or not isinstance(dataset_size, numbers.Integral):
            raise InvalidParameterError(f"dataset_size must be an integer, got {dataset_size!r}")
        if dataset_size <= 1:
            raise InvalidParameterError(
                f"dataset_size must be > 1 to normalize scores, got {dataset_size}"
            )
        return expected_path_length(dataset_size, self.dtype)

    def _check_built(self) -> None:
        if not self._built:
            raise NotFittedError("IsolationForest is not built yet, call build() first")

    def _shuffle(self, data: npt.NDArray[np.floating[Any]]) -> None:
        """Fisher-Yates shuffle of `data` in place."""
        n = data.shape[0]
        if n < 2:
            return

        positions = np.arange(n - 1, 0, -1)
        swaps = self.rng.integers(0, positions + 1)
        for i, j in zip(positions.tolist(), swaps.tolist()):
            data[i], data[j] = data[j], data[i]
