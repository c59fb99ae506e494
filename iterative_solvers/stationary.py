"""
Stationary iterative methods: Jacobi, Gauss-Seidel, SOR and SSOR.

Templates for the Solution of Linear Systems, section 2.2. These methods
need the individual entries of ``A``, so they accept dense or sparse
matrices only, never operators defined by a function.

A plain call performs exactly ``maxiter`` sweeps. With ``log=True`` the
residual ``|A x - b|`` is evaluated after every sweep, recorded, and the
iteration stops as soon as it drops below ``tol * |b|``.
"""

import warnings
from abc import abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .convergence import ConvergenceHistory
from .errors import RelaxationWarning, SingularError
from .iteration import IterationState, run_iterations
from .operators import LinearOperator
from .utils import default_stationary_tol, prepare_system, zerox


@dataclass
class StationaryOptions:
    """
    Options shared by the stationary methods.

    Attributes
    ----------
    maxiter : int, optional
        Number of sweeps, default ``n**2`` (``n`` for SSOR)
    tol : float, optional
        Relative tolerance of the logging variant, default ``n**3 * eps``
    log : bool
        Evaluate and record the residual after every sweep, stop early
    verbose : bool
        Log the residual of every sweep (implies evaluating it)
    """
    maxiter: Optional[int] = None
    tol: Optional[float] = None
    log: bool = False
    verbose: bool = False

    def __post_init__(self):
        if self.maxiter is not None and self.maxiter < 0:
            raise ValueError(f"maxiter must be non-negative, got {self.maxiter}")
        if self.tol is not None and self.tol < 0:
            raise ValueError(f"tol must be non-negative, got {self.tol}")


def check_relaxation(omega: float, stacklevel: int = 3):
    """
    Warn when ``omega`` lies outside ``(0, 2)``.

    ``stacklevel`` counts from this function, so the default points at the
    caller of the public function that calls it.
    """
    if not 0 < omega < 2:
        warnings.warn(
            f"omega = {omega} lies outside the range 0 < omega < 2 which is required for convergence",
            RelaxationWarning,
            stacklevel=stacklevel,
        )


class StationaryIterable(IterationState):
    """
    Common state of the stationary methods; one ``step`` is one sweep.

    The diagonal is checked for zeros before any sweep is performed.
    """

    default_maxiter_power = 2

    def __init__(self,
                 A: LinearOperator,
                 x: np.ndarray,
                 b: np.ndarray,
                 maxiter: int,
                 tolerance: float,
                 track_residual: bool):
        if not A.has_matrix:
            raise TypeError(f"{type(self).__name__} needs explicit matrix entries, got {type(A).__name__}")
        if A.shape[0] != A.shape[1]:
            raise ValueError(f"Stationary methods need a square matrix, got {A.shape[0]}x{A.shape[1]}")
        self.diag = A.diagonal()
        zero = np.flatnonzero(self.diag == 0)
        if zero.size:
            raise SingularError(int(zero[0]))
        self.A = A
        self.x = x
        self.b = b
        self.n = A.shape[1]
        self.maxiter = maxiter
        self.tolerance = tolerance
        self.track_residual = track_residual
        self.residual = float("inf")
        self.mv_products = 0
        self.iteration = 0

    def converged(self):
        return self.track_residual and self.residual < self.tolerance

    def is_done(self):
        return self.iteration >= self.maxiter or self.converged()

    def step(self):
        self.sweep()
        self.mv_products += 1
        if self.track_residual:
            self.residual = float(np.linalg.norm(self.A.apply(self.x) - self.b))
        else:
            self.residual = float("nan")
        return self.residual

    @abstractmethod
    def sweep(self):
        """Update every component of ``x`` once."""
        pass

    def _relax(self, i: int, omega: float):
        # sigma = sum over j != i of A[i, j] x[j], using current values
        x = self.x
        sigma = self.A.row_dot(i, x) - self.diag[i] * x[i]
        x[i] += omega * ((self.b[i] - sigma) / self.diag[i] - x[i])


class JacobiIterable(StationaryIterable):
    """Jacobi: every component is computed from the previous iterate."""

    def sweep(self):
        x, d = self.x, self.diag
        off_diagonal = self.A.apply(x) - d * x
        x[:] = (self.b - off_diagonal) / d


class GaussSeidelIterable(StationaryIterable):
    """Gauss-Seidel: components are updated in place, in natural order."""

    def sweep(self):
        for i in range(self.n):
            self._relax(i, 1.0)


class SORIterable(StationaryIterable):
    """Successive over-relaxation with factor ``omega``."""

    def __init__(self, *args, omega: float = 1.0, **kwargs):
        super().__init__(*args, **kwargs)
        self.omega = omega

    def sweep(self):
        for i in range(self.n):
            self._relax(i, self.omega)


class SSORIterable(SORIterable):
    """Symmetric SOR: a forward SOR sweep followed by a backward one."""

    default_maxiter_power = 1

    def sweep(self):
        for i in range(self.n):
            self._relax(i, self.omega)
        for i in reversed(range(self.n)):
            self._relax(i, self.omega)


def _run(cls, name: str, x, A, b, kwargs, **extra):
    opts = StationaryOptions(**kwargs)
    A, b = prepare_system(A, b, x)
    n = A.shape[1]
    maxiter = opts.maxiter
    if maxiter is None:
        maxiter = n ** cls.default_maxiter_power
    tol = opts.tol if opts.tol is not None else default_stationary_tol(n, x.dtype)
    track = opts.log or opts.verbose
    iterable = cls(A, x, b, maxiter, tol * float(np.linalg.norm(b)), track, **extra)
    history = ConvergenceHistory(partial=not opts.log)
    history.reserve(maxiter)
    run_iterations(iterable, history, verbose=opts.verbose, name=name)
    if opts.log:
        return x, history
    return x


def jacobi_inplace(x: np.ndarray, A, b: np.ndarray, **kwargs):
    """
    Solve ``A x = b`` with the Jacobi method, overwriting ``x``.

    Parameters
    ----------
    x : numpy.ndarray
        Initial guess, updated in place
    A : ndarray, sparse matrix, DenseOperator or SparseOperator
        Matrix with nonzero diagonal
    b : numpy.ndarray
        Right-hand side
    **kwargs
        Fields of ``StationaryOptions``

    Returns
    -------
    x : numpy.ndarray
        Approximate solution
    history : ConvergenceHistory
        Only when ``log=True``

    Raises
    ------
    SingularError
        A diagonal entry is zero; raised before the first sweep
    """
    return _run(JacobiIterable, "jacobi", x, A, b, kwargs)


def jacobi(A, b: np.ndarray, **kwargs):
    """Same as ``jacobi_inplace``, starting from zero."""
    return jacobi_inplace(zerox(A, b), A, b, **kwargs)


def gauss_seidel_inplace(x: np.ndarray, A, b: np.ndarray, **kwargs):
    """Solve ``A x = b`` with the Gauss-Seidel method, overwriting ``x``."""
    return _run(GaussSeidelIterable, "gauss_seidel", x, A, b, kwargs)


def gauss_seidel(A, b: np.ndarray, **kwargs):
    """Same as ``gauss_seidel_inplace``, starting from zero."""
    return gauss_seidel_inplace(zerox(A, b), A, b, **kwargs)


def sor_inplace(x: np.ndarray, A, b: np.ndarray, omega: float, **kwargs):
    """
    Solve ``A x = b`` by successive over-relaxation, overwriting ``x``.

    ``omega`` outside ``(0, 2)`` emits a ``RelaxationWarning``; the iteration
    is still carried out.
    """
    check_relaxation(omega)
    return _run(SORIterable, "sor", x, A, b, kwargs, omega=omega)


def sor(A, b: np.ndarray, omega: float, **kwargs):
    """Same as ``sor_inplace``, starting from zero."""
    check_relaxation(omega)
    return _run(SORIterable, "sor", zerox(A, b), A, b, kwargs, omega=omega)


def ssor_inplace(x: np.ndarray, A, b: np.ndarray, omega: float, **kwargs):
    """
    Solve ``A x = b`` by symmetric successive over-relaxation, overwriting ``x``.

    Meant for symmetric ``A``. Defaults to ``n`` double sweeps.
    """
    check_relaxation(omega)
    return _run(SSORIterable, "ssor", x, A, b, kwargs, omega=omega)


def ssor(A, b: np.ndarray, omega: float, **kwargs):
    """Same as ``ssor_inplace``, starting from zero."""
    check_relaxation(omega)
    return _run(SSORIterable, "ssor", zerox(A, b), A, b, kwargs, omega=omega)
