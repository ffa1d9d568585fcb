"""Isolation Forest implementation for scalar anomaly detection.

This package provides the Isolation Forest algorithm over a single scalar
dimension, using random anchor values to partition the data.
"""

from .forest import IsolationForest, expected_path_length
from .tree import IsolationTree, IsolationTreeNode

__all__ = [
    "IsolationTree",
    "IsolationTreeNode",
    "IsolationForest",
    "expected_path_length",
]
