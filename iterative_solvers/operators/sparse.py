"""
Operator adapter for SciPy sparse matrices.
"""

import numpy as np
import scipy.sparse as sp

from .base import LinearOperator


class SparseOperator(LinearOperator):
    """Explicit sparse matrix, kept in CSR format for fast row access."""

    def __init__(self, matrix):
        if not sp.issparse(matrix):
            raise TypeError(f"Expected a scipy.sparse matrix, got {type(matrix).__name__}")
        # SciPy CSR keeps row slices contiguous, which the sweeps rely on
        matrix = matrix.tocsr()
        super().__init__(matrix.shape, matrix.dtype)
        self.matrix = matrix
        self._adjoint = None

    @property
    def has_matrix(self) -> bool:
        return True

    def diagonal(self) -> np.ndarray:
        return self.matrix.diagonal()

    def apply(self, v, out=None):
        return self._store(self.matrix @ v, out)

    def apply_adjoint(self, v, out=None):
        if self._adjoint is None:
            self._adjoint = self.matrix.conj().T.tocsr()
        return self._store(self._adjoint @ v, out)

    def row_dot(self, i: int, x: np.ndarray):
        """Inner product of row ``i`` with ``x`` (no conjugation)."""
        A = self.matrix
        lo, hi = A.indptr[i], A.indptr[i + 1]
        return A.data[lo:hi] @ x[A.indices[lo:hi]]
