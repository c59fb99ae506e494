"""
Operator adapter for dense NumPy matrices.
"""

import numpy as np

from .base import LinearOperator


class DenseOperator(LinearOperator):
    """Explicit dense matrix stored as a 2-D ``numpy.ndarray``."""

    def __init__(self, matrix):
        matrix = np.asarray(matrix)
        if matrix.ndim != 2:
            raise ValueError(f"Dense operator needs a 2-D array, got {matrix.ndim} dimensions")
        super().__init__(matrix.shape, matrix.dtype)
        self.matrix = matrix

    @property
    def has_matrix(self) -> bool:
        return True

    def diagonal(self) -> np.ndarray:
        return np.diagonal(self.matrix)

    def apply(self, v, out=None):
        if out is None:
            return self.matrix @ v
        return np.matmul(self.matrix, v, out=out)

    def apply_adjoint(self, v, out=None):
        return self._store(self.matrix.conj().T @ v, out)

    def row_dot(self, i: int, x: np.ndarray):
        """Inner product of row ``i`` with ``x`` (no conjugation)."""
        return self.matrix[i] @ x
