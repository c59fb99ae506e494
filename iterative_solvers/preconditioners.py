"""
Preconditioner interface, adapters, and SciPy-backed builders.

A preconditioner ``P`` only has to provide ``solve(v) ~ P^{-1} v``; building
it (factorizations and the like) is left to SciPy.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

import numpy as np
import scipy.linalg as sla
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from .errors import SingularError


class Preconditioner(ABC):
    """Approximate inverse ``v -> P^{-1} v``."""

    @property
    def is_identity(self) -> bool:
        return False

    @abstractmethod
    def solve(self, v: np.ndarray) -> np.ndarray:
        """Return ``P^{-1} v``; ``v`` is left untouched."""
        pass

    def solve_inplace(self, v: np.ndarray) -> np.ndarray:
        """Overwrite ``v`` with ``P^{-1} v``."""
        v[...] = self.solve(v)
        return v


class IdentityPreconditioner(Preconditioner):
    """No preconditioning; both solves return ``v`` itself without copying."""

    @property
    def is_identity(self) -> bool:
        return True

    def solve(self, v):
        return v

    def solve_inplace(self, v):
        return v

    def __repr__(self):
        return "IdentityPreconditioner()"


IDENTITY = IdentityPreconditioner()


class DiagonalPreconditioner(Preconditioner):
    """``P = diag(d)``."""

    def __init__(self, d: np.ndarray):
        d = np.asarray(d)
        zero = np.flatnonzero(d == 0)
        if zero.size:
            raise SingularError(int(zero[0]), f"Zero diagonal entry in row {zero[0]}, cannot build Jacobi preconditioner.")
        self.inverse_diagonal = 1.0 / d

    def solve(self, v):
        return self.inverse_diagonal * v

    def solve_inplace(self, v):
        v *= self.inverse_diagonal
        return v


class FactorizationPreconditioner(Preconditioner):
    """Wraps any object with a ``solve(v)`` method, e.g. a SciPy ``SuperLU``."""

    def __init__(self, factorization: Any):
        self.factorization = factorization

    def solve(self, v):
        return self.factorization.solve(v)


class DenseLUPreconditioner(Preconditioner):
    """Dense LU factors from ``scipy.linalg.lu_factor``."""

    def __init__(self, P: np.ndarray):
        self.lu_piv = sla.lu_factor(P)

    def solve(self, v):
        return sla.lu_solve(self.lu_piv, v)


class InverseOperatorPreconditioner(Preconditioner):
    """Preconditioner given directly as the map ``v -> P^{-1} v``."""

    def __init__(self, apply_inverse: Callable[[np.ndarray], np.ndarray]):
        self.apply_inverse = apply_inverse

    def solve(self, v):
        return np.asarray(self.apply_inverse(v)).reshape(v.shape)


def as_preconditioner(P: Any) -> Preconditioner:
    """
    Adapt ``P`` to the ``Preconditioner`` interface.

    Parameters
    ----------
    P : None, Preconditioner, factorization, scipy LinearOperator, or callable
        ``None`` means no preconditioning. An object with ``solve`` is used
        as a factorization of ``P``; a scipy ``LinearOperator`` or a callable
        is taken to apply ``P^{-1}``.

    Returns
    -------
    M : Preconditioner
    """
    if P is None:
        return IDENTITY
    if isinstance(P, Preconditioner):
        return P
    if isinstance(P, spla.LinearOperator):
        return InverseOperatorPreconditioner(P.matvec)
    if hasattr(P, "solve"):
        return FactorizationPreconditioner(P)
    if callable(P):
        return InverseOperatorPreconditioner(P)
    raise TypeError(f"Cannot use {type(P).__name__} as a preconditioner")


def jacobi_preconditioner(A) -> DiagonalPreconditioner:
    """
    Build a Jacobi (diagonal) preconditioner, ``P = diag(A)``.

    Parameters
    ----------
    A : ndarray or scipy.sparse matrix
        System matrix

    Returns
    -------
    M : DiagonalPreconditioner
    """
    D = A.diagonal() if sp.issparse(A) else np.diagonal(np.asarray(A))
    return DiagonalPreconditioner(D)


def ilu_preconditioner(A, drop_tol: float = 0.0, fill_factor: float = 1.0) -> FactorizationPreconditioner:
    """
    Build an ILU(0) (or ILU with limited fill) preconditioner using scipy.sparse.linalg.spilu.

    Parameters
    ----------
    A : scipy.sparse matrix
        Sparse matrix
    drop_tol : float, optional
        Drop tolerance for ILU factorization. Default is 0.0.
    fill_factor : float, optional
        Fill factor for ILU factorization. Default is 1.0 (ILU(0)).

    Returns
    -------
    M : FactorizationPreconditioner
        ILU preconditioner
    """
    # SuperLU prefers CSC format
    A_csc = sp.csc_matrix(A)
    return FactorizationPreconditioner(spla.spilu(A_csc, drop_tol=drop_tol, fill_factor=fill_factor))


def lu_preconditioner(P) -> Preconditioner:
    """
    Exact LU factorization of ``P`` used as a preconditioner.

    Dense arrays go through ``scipy.linalg.lu_factor``, sparse matrices
    through ``scipy.sparse.linalg.splu``.
    """
    if sp.issparse(P):
        return FactorizationPreconditioner(spla.splu(sp.csc_matrix(P)))
    return DenseLUPreconditioner(np.asarray(P))
