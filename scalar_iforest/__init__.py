"""Scalar anomaly detection package.

This package provides an Isolation Forest that scores how isolated a scalar
value is relative to a reference dataset:
- isolation: isolation trees and the forest ensemble
- config: validated construction parameters
- exceptions: errors raised by the package
"""

from . import isolation
from .config import IsolationForestConfig
from .exceptions import IsolationForestError, InvalidParameterError, NodeIndexError, NotFittedError
from .isolation import IsolationForest, IsolationTree, IsolationTreeNode, expected_path_length

__all__ = [
    "isolation",
    "IsolationForest",
    "IsolationForestConfig",
    "IsolationTree",
    "IsolationTreeNode",
    "expected_path_length",
    "IsolationForestError",
    "InvalidParameterError",
    "NodeIndexError",
    "NotFittedError",
]
