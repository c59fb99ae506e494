"""
Operators defined by functions instead of stored entries.
"""

from typing import Callable, Optional

import numpy as np

from .base import LinearOperator


class FunctionOperator(LinearOperator):
    """
    Represent functions as a matrix.

    Parameters
    ----------
    m : int
        Number of rows
    n : int
        Number of columns
    mul : callable
        ``mul(v) -> A v``
    cmul : callable, optional
        ``cmul(v) -> A^H v``; the adjoint is undefined without it
    dtype : numpy dtype
        Element type of the represented matrix
    """

    def __init__(self,
                 m: int,
                 n: int,
                 mul: Callable[[np.ndarray], np.ndarray],
                 cmul: Optional[Callable[[np.ndarray], np.ndarray]] = None,
                 dtype=np.float64):
        super().__init__((m, n), dtype)
        self.mul = mul
        self.cmul = cmul

    @classmethod
    def from_scipy(cls, op) -> "FunctionOperator":
        """Wrap a ``scipy.sparse.linalg.LinearOperator``."""
        dtype = op.dtype if op.dtype is not None else np.float64
        return cls(op.shape[0], op.shape[1], mul=op.matvec, cmul=op.rmatvec, dtype=dtype)

    @classmethod
    def from_callable(cls, mul: Callable, n: int, dtype=np.float64) -> "FunctionOperator":
        """Square operator of size ``n`` from a bare ``mul`` function."""
        return cls(n, n, mul=mul, dtype=dtype)

    def apply(self, v, out=None):
        return self._store(np.asarray(self.mul(v)), out)

    def apply_adjoint(self, v, out=None):
        if self.cmul is None:
            raise NotImplementedError("A^H * v not defined for this FunctionOperator")
        return self._store(np.asarray(self.cmul(v)), out)

    def adjoint(self):
        if self.cmul is None:
            return super().adjoint()
        return FunctionOperator(self.shape[1], self.shape[0], mul=self.cmul, cmul=self.mul, dtype=self.dtype)
