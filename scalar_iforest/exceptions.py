"""
Exceptions raised by the scalar isolation forest.
"""

from __future__ import annotations

from sklearn.exceptions import NotFittedError as _SklearnNotFittedError


class IsolationForestError(Exception):
    """Base class for every error raised by this package."""


class InvalidParameterError(IsolationForestError, ValueError):
    """
    Raised for invalid configuration or call arguments, e.g. a forest with
    zero trees, a negative maximum depth or a dataset size <= 1 at scoring time.
    """


class NotFittedError(IsolationForestError, _SklearnNotFittedError):
    """Raised when a tree or forest is queried before `build` was called."""


class NodeIndexError(IsolationForestError, IndexError):
    """Raised when a node index does not refer to a node of the tree."""
