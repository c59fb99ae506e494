"""
Operator adapters for dense, sparse, and function-defined matrices.
"""

from typing import Any, Optional

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from .base import AdjointOperator, LinearOperator, OperatorRegistry
from .dense import DenseOperator
from .function import FunctionOperator
from .sparse import SparseOperator

__all__ = [
    "AdjointOperator",
    "DenseOperator",
    "FunctionOperator",
    "LinearOperator",
    "OperatorRegistry",
    "SparseOperator",
    "as_operator",
]

OperatorRegistry.register(np.ndarray, DenseOperator)
OperatorRegistry.register(sp.spmatrix, SparseOperator)
if hasattr(sp, "sparray"):
    OperatorRegistry.register(sp.sparray, SparseOperator)
OperatorRegistry.register(spla.LinearOperator, FunctionOperator.from_scipy)


def as_operator(A: Any, n: Optional[int] = None, dtype=np.float64) -> LinearOperator:
    """
    Adapt ``A`` to the ``LinearOperator`` interface.

    Parameters
    ----------
    A : LinearOperator, ndarray, sparse matrix, scipy LinearOperator, or callable
        The operator. A bare callable is taken as ``v -> A v``.
    n : int, optional
        Size of a square operator given as a bare callable
    dtype : numpy dtype
        Element type assumed for a bare callable

    Returns
    -------
    op : LinearOperator
    """
    if isinstance(A, LinearOperator):
        return A
    adapter = OperatorRegistry.get_adapter(A)
    if adapter is not None:
        return adapter(A)
    if callable(A):
        if n is None:
            raise ValueError("The size n is required to use a plain function as an operator")
        return FunctionOperator.from_callable(A, n, dtype=dtype)
    raise TypeError(
        f"Cannot use {type(A).__name__} as a linear operator. "
        f"Registered types: {[t.__name__ for t in OperatorRegistry.list_types()]}"
    )
