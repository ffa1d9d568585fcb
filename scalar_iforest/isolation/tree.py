"""
This module contains the IsolationTreeNode and IsolationTree classes that
implement an isolation tree over a single scalar dimension.

The tree is stored as a flat, append-only list of nodes addressed by index.
Nodes are appended in post-order (children before their parent), so the node
appended last is always the root of the tree.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import matplotlib.pyplot as plt
import numpy as np
import numpy.typing as npt
from sklearn.utils.validation import assert_all_finite, column_or_1d

from ..config import check_index_dtype, check_max_depth, check_value_dtype
from ..exceptions import IsolationForestError, InvalidParameterError, NodeIndexError, NotFittedError

logger = logging.getLogger(__name__)

NO_CHILD = -1


def as_scalar_buffer(values: Any, dtype: np.dtype[Any]) -> npt.NDArray[np.floating[Any]]:
    """
    Copy a sequence of scalar observations into a fresh 1-D working buffer.
    Args:
        values: Any 1-D sequence of real numbers (a column vector is accepted).
        dtype: Floating dtype of the buffer.
    Returns:
        A new array owned by the caller; `values` is never aliased.
    """
    try:
        arr = column_or_1d(np.asarray(values, dtype=dtype))
        if arr.size:
            assert_all_finite(arr, input_name="values")
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"values must be a 1-D sequence of finite reals: {exc}") from exc

    return np.array(arr, dtype=dtype, copy=True)


def as_query_value(value: Any, dtype: np.dtype[Any]) -> np.floating[Any]:
    """
    Convert a single query value to `dtype`, rejecting non-finite values.
    """
    try:
        arr = np.asarray(value, dtype=dtype)
        if arr.ndim != 0:
            raise ValueError(f"expected a scalar, got an array of shape {arr.shape}")
        assert_all_finite(arr.reshape(1), input_name="value")
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"value must be a finite real number: {exc}") from exc

    return dtype.type(arr[()])


@dataclass(frozen=True)
class IsolationTreeNode:
    """
    Node in an Isolation Tree.
    A default-constructed node is a leaf: both child references are NO_CHILD.
    Attributes:
        split_value: Partition threshold. Values strictly lower go left.
        left: Index of the left child in the owning tree, or NO_CHILD.
        right: Index of the right child in the owning tree, or NO_CHILD.
    """

    split_value: float = 0.0
    left: int = NO_CHILD
    right: int = NO_CHILD

    @property
    def is_leaf(self) -> bool:
        return self.left < 0 and self.right < 0


@dataclass
class _BuildFrame:
    """Pending partition of the working buffer range [left, right)."""

    left: int
    right: int
    depth: int
    mid: int | None = None
    split_value: Any = None
    left_child: int | None = None


class IsolationTree:
    """
    Single Isolation Tree over scalar values.
    Attributes:
        max_depth: Cap on the partitioning depth.
        rng: Random generator used to pick partition anchors.
        dtype: Floating dtype of split values and path lengths.
        index_dtype: Signed integer dtype of child references.
    """

    def __init__(
        self,
        max_depth: int,
        rng: np.random.Generator | None = None,
        random_state: int | None = None,
        dtype: npt.DTypeLike = np.float64,
        index_dtype: npt.DTypeLike = np.int64,
    ) -> None:
        """
        Initialize an IsolationTree.
        Args:
            max_depth: Maximum partitioning depth (>= 0). 0 builds a single leaf.
            rng: Generator to draw anchors from. Takes precedence over random_state.
            random_state: Seed used when no generator is given.
            dtype: Floating dtype of split values and path lengths.
            index_dtype: Signed integer dtype of child references.
        """
        self.max_depth = check_max_depth(max_depth)
        self.rng = rng if rng is not None else np.random.default_rng(random_state)
        self.dtype = check_value_dtype(dtype)
        self.index_dtype = check_index_dtype(index_dtype)

        self._nodes: list[IsolationTreeNode] = []

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> tuple[IsolationTreeNode, ...]:
        return tuple(self._nodes)

    @property
    def is_built(self) -> bool:
        return bool(self._nodes)

    def node(self, node_index: int) -> IsolationTreeNode:
        self._check_node_index(node_index)
        return self._nodes[node_index]

    def root_id(self) -> int:
        """
        Returns:
            Index of the root node, i.e. the last appended node.
        """
        if not self._nodes:
            raise NotFittedError("IsolationTree has no nodes, call build() first")
        return len(self._nodes) - 1

    def build(self, values: Sequence[float] | npt.ArrayLike) -> None:
        """
        Builds the tree by recursively partitioning a copy of `values` around
        randomly chosen anchor values.
        Any previously built structure is replaced. When the build fails the
        previous structure is kept unchanged.
        Args:
            values: 1-D sequence of finite real numbers. Not mutated.
        """
        buffer = as_scalar_buffer(values, self.dtype)
        nodes: list[IsolationTreeNode] = []

        self._partition(buffer, nodes)
        self._nodes = nodes

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Built isolation tree: %d samples, %d nodes, depth %d",
                buffer.shape[0], len(self._nodes), self.depth(),
            )

    def path_length(self, value: float, node_index: int, depth: int = 0) -> np.floating[Any]:
        """
        Descend from `node_index` following the split decisions for `value`.
        A value lower than the split goes left when a left child exists;
        otherwise the walk goes right when a right child exists.
        Args:
            value: Query value.
            node_index: Node to start from, usually `root_id()`.
            depth: Depth of `node_index`, usually 0.
        Returns:
            Depth of the node where the walk stops, minus one.
        """
        self._check_node_index(node_index)
        node = self._nodes[node_index]

        while not node.is_leaf:
            if value < node.split_value and node.left >= 0:
                node_index = node.left
            elif node.right >= 0:
                node_index = node.right
            else:
                break
            node = self._nodes[node_index]
            depth += 1

        return self.dtype.type(depth - 1)

    def depth(self) -> int:
        """
        Returns:
            Height of the tree (0 for a single leaf, 0 for an unbuilt tree).
        """
        heights = [0] * len(self._nodes)
        # Children always precede their parent, so one forward pass suffices.
        for idx, node in enumerate(self._nodes):
            if node.is_leaf:
                continue
            child_heights = [heights[child] for child in (node.left, node.right) if child >= 0]
            heights[idx] = 1 + max(child_heights)

        return heights[-1] if heights else 0

    def to_array(self) -> npt.NDArray[np.void]:
        """
        Returns:
            The node arena as a structured array with fields
            `split_value`, `left` and `right`, in append order.
        """
        arena_dtype = np.dtype([
            ("split_value", self.dtype),
            ("left", self.index_dtype),
            ("right", self.index_dtype),
        ])
        return np.array(
            [(node.split_value, node.left, node.right) for node in self._nodes],
            dtype=arena_dtype,
        )

    def plot_partition_space_1D(
        self,
        values: npt.ArrayLike | None = None,
        show: bool = True,
    ) -> None:
        """
        Draws a vertical line for each split threshold and, optionally,
        scatters the given values on the real line.
        Args:
            values: Observations to draw under the splits (e.g. the training set).
            show: Call `plt.show()` when done.
        """
        if not self._nodes:
            raise NotFittedError("IsolationTree has no nodes, call build() first")

        plt.title("Space Partition Isolation Tree")
        plt.xlabel("X")
        plt.yticks([])

        for node in self._nodes:
            if not node.is_leaf:
                plt.axvline(float(node.split_value), c="gray", lw=0.8)

        if values is not None:
            points = np.asarray(values, dtype=np.float64).ravel()
            plt.scatter(points, np.zeros_like(points), c="black", s=5)

        if show:
            plt.show()

    def _check_node_index(self, node_index: int) -> None:
        if not self._nodes:
            raise NotFittedError("IsolationTree has no nodes, call build() first")
        if not 0 <= node_index < len(self._nodes):
            raise NodeIndexError(
                f"node index {node_index} out of range for a tree of {len(self._nodes)} nodes"
            )

    def _append(self, nodes: list[IsolationTreeNode], node: IsolationTreeNode) -> int:
        if len(nodes) > np.iinfo(self.index_dtype).max:
            raise IsolationForestError(
                f"tree exceeds the capacity of index dtype {self.index_dtype}"
            )
        nodes.append(node)
        return len(nodes) - 1

    def _split(
        self,
        buffer: npt.NDArray[np.floating[Any]],
        left: int,
        right: int,
    ) -> tuple[Any, int]:
        """
        Partition buffer[left:right] in place around a random anchor value.
        Returns:
            The anchor value and the first index of the ">= anchor" side.
        """
        anchor_index = int(self.rng.integers(left, right))
        anchor = self.dtype.type(buffer[anchor_index])

        segment = buffer[left:right]
        mask_lower = segment < anchor
        n_lower = int(np.count_nonzero(mask_lower))
        segment[:] = np.concatenate((segment[mask_lower], segment[~mask_lower]))

        return anchor, left + n_lower

    def _partition(
        self,
        buffer: npt.NDArray[np.floating[Any]],
        nodes: list[IsolationTreeNode],
    ) -> int:
        """
        Post-order construction over `buffer`, appending into `nodes`.
        Runs with an explicit stack so that large `max_depth` values do not
        hit the interpreter recursion limit; the order of random draws and
        appended nodes is that of the left-then-right recursion.
        Returns:
            Index of the root node.
        """
        stack = [_BuildFrame(left=0, right=buffer.shape[0], depth=0)]
        finished: list[int] = []

        while stack:
            frame = stack[-1]

            if frame.mid is None:
                if frame.left >= frame.right or frame.right == 0 or frame.depth >= self.max_depth:
                    stack.pop()
                    finished.append(self._append(nodes, IsolationTreeNode()))
                    continue

                frame.split_value, frame.mid = self._split(buffer, frame.left, frame.right)
                stack.append(_BuildFrame(left=frame.left, right=frame.mid, depth=frame.depth + 1))
            elif frame.left_child is None:
                frame.left_child = finished.pop()
                stack.append(_BuildFrame(left=frame.mid, right=frame.right, depth=frame.depth + 1))
            else:
                right_child = finished.pop()
                stack.pop()
                finished.append(self._append(nodes, IsolationTreeNode(
                    split_value=frame.split_value,
                    left=frame.left_child,
                    right=right_child,
                )))

        return finished.pop()
