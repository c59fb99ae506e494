"""
Induced Dimension Reduction, IDR(s).

IDR(s) is a family of short-recurrence Krylov methods for nonsymmetric
systems whose residuals lie in nested subspaces of shrinking dimension. The
subspaces are defined by ``s`` random shadow vectors ``P``, drawn once per
solve. Every step applies the operator exactly once: ``s`` dimension
reduction steps, then one omega step, then again.

Reference: van Gijzen and Sonneveld, "Algorithm 913: An Elegant IDR(s)
Variant that Efficiently Exploits Biorthogonality Properties", ACM TOMS
38(1), 2011.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import scipy.linalg as sla

from .convergence import ConvergenceHistory
from .iteration import IterationState, run_iterations
from .operators import LinearOperator
from .utils import SeedLike, default_reltol, make_rng, prepare_system, random_like, zerox

ANGLE = np.sqrt(2.0) / 2


def omega(t: np.ndarray, s: np.ndarray):
    """
    Damping factor of the omega step, ``<t, s> / |t|^2``.

    Enlarged whenever ``t`` and ``s`` are close to orthogonal, so that the
    new residual does not stagnate.
    """
    ns = np.linalg.norm(s)
    nt = np.linalg.norm(t)
    ts = np.vdot(t, s)
    rho = abs(ts / (nt * ns))
    om = ts / (nt * nt)
    if rho < ANGLE:
        om = om * ANGLE / rho
    return om


@dataclass
class IDRSOptions:
    """
    Options of ``idrs`` and ``idrs_inplace``.

    Attributes
    ----------
    tol : float
        Absolute tolerance, stop when ``|r| < max(tol, reltol * |b|)``
    reltol : float, optional
        Relative tolerance, default ``sqrt(eps)``
    maxiter : int, optional
        Budget of operator applications, default ``n**2``
    log, verbose : bool
        Return the history / log every step
    initially_zero : bool
        Caller guarantees ``x == 0``
    seed : int or numpy.random.Generator, optional
        Seed of the shadow space
    shadow_space : numpy.ndarray, optional
        ``(s, n)`` shadow vectors to reuse instead of random ones
    """
    tol: float = 0.0
    reltol: Optional[float] = None
    maxiter: Optional[int] = None
    log: bool = False
    verbose: bool = False
    initially_zero: bool = False
    seed: SeedLike = None
    shadow_space: Optional[np.ndarray] = None

    def __post_init__(self):
        if self.tol < 0:
            raise ValueError(f"tol must be non-negative, got {self.tol}")
        if self.reltol is not None and self.reltol < 0:
            raise ValueError(f"reltol must be non-negative, got {self.reltol}")
        if self.maxiter is not None and self.maxiter < 0:
            raise ValueError(f"maxiter must be non-negative, got {self.maxiter}")


class IDRSIterable(IterationState):
    """
    State of IDR(s).

    ``U`` and ``G`` hold ``s`` direction vectors and their images as rows,
    ``M = P^H G`` is lower triangular, ``f = P^H r``. ``k`` is the next
    dimension reduction step; ``k == s`` means the omega step is next.
    """

    def __init__(self,
                 A: LinearOperator,
                 x: np.ndarray,
                 r: np.ndarray,
                 P: np.ndarray,
                 tolerance: float,
                 maxiter: int,
                 mv_products: int):
        s, n = P.shape
        self.A = A
        self.x = x
        self.r = r
        self.P = P
        self.s = s
        self.U = np.zeros((s, n), dtype=x.dtype)
        self.G = np.zeros((s, n), dtype=x.dtype)
        self.Q = np.zeros(n, dtype=x.dtype)
        self.V = np.zeros(n, dtype=x.dtype)
        self.M = np.eye(s, dtype=x.dtype)
        self.f = np.zeros(s, dtype=x.dtype)
        self.om = 1.0
        self.k = 0
        self.tolerance = tolerance
        self.residual = float(np.linalg.norm(r))
        self.maxiter = maxiter
        self.mv_products = mv_products
        self.iteration = 0

    def converged(self):
        # A zero residual is exact even when the threshold is zero (b = 0)
        return self.residual < self.tolerance or self.residual == 0

    def is_done(self):
        return self.iteration >= self.maxiter or self.converged()

    def step(self):
        if self.k == 0:
            self.f[:] = self.P.conj() @ self.r
        if self.k < self.s:
            self._reduce_dimension(self.k)
            self.k += 1
        else:
            self._omega_step()
            self.k = 0
        self.mv_products += 1
        self.residual = float(np.linalg.norm(self.r))
        return self.residual

    def _reduce_dimension(self, k: int):
        s, P, U, G, M, f = self.s, self.P, self.U, self.G, self.M, self.f

        # Solve small system and make v orthogonal to P
        c = sla.solve_triangular(M[k:, k:], f[k:], lower=True)
        np.matmul(c, G[k:], out=self.V)
        np.matmul(c, U[k:], out=self.Q)

        # New U[k] and G[k], G[k] lies in the current subspace
        self.V *= -1
        self.V += self.r
        U[k] = self.Q + self.om * self.V
        G[k] = self.A.apply(U[k])

        # Bi-orthogonalise the new basis vectors
        for i in range(k):
            alpha = np.vdot(P[i], G[k]) / M[i, i]
            G[k] -= alpha * G[i]
            U[k] -= alpha * U[i]

        # New column of M = P^H G, the first k entries are zero
        M[k:, k] = P[k:].conj() @ G[k]

        # Make r orthogonal to p_i, i = 1..k
        beta = f[k] / M[k, k]
        self.r -= beta * G[k]
        self.x += beta * U[k]

        if k < s - 1:
            f[k + 1:] -= beta * M[k + 1:, k]

    def _omega_step(self):
        # r is already orthogonal to P, so v = r
        self.V[:] = self.r
        self.Q[:] = self.A.apply(self.V)
        self.om = omega(self.Q, self.r)
        self.r -= self.om * self.Q
        self.x += self.om * self.V


def idrs_iterator(x: np.ndarray,
                  A,
                  b: np.ndarray,
                  s: int = 8,
                  tol: float = 0.0,
                  reltol: Optional[float] = None,
                  maxiter: Optional[int] = None,
                  initially_zero: bool = False,
                  seed: SeedLike = None,
                  shadow_space: Optional[np.ndarray] = None) -> IDRSIterable:
    """Build the IDR(s) state for ``A x = b`` without running it."""
    if s < 1:
        raise ValueError(f"s must be at least 1, got {s}")
    A, b = prepare_system(A, b, x)
    if reltol is None:
        reltol = default_reltol(x.dtype)
    if maxiter is None:
        maxiter = x.shape[0] ** 2

    r = np.array(b, dtype=x.dtype)
    mv_products = 0
    if not initially_zero:
        r -= A.apply(x)
        mv_products = 1

    if shadow_space is None:
        rng = make_rng(seed)
        P = np.array([random_like(r, rng) for _ in range(s)])
    else:
        P = np.asarray(shadow_space, dtype=x.dtype)
        if P.shape != (s, x.shape[0]):
            raise ValueError(f"shadow_space has shape {P.shape}, expected {(s, x.shape[0])}")

    tolerance = max(reltol * float(np.linalg.norm(b)), tol)
    return IDRSIterable(A, x, r, P, tolerance, maxiter, mv_products)


def idrs_inplace(x: np.ndarray, A, b: np.ndarray, s: int = 8, **kwargs):
    """
    Solve ``A x = b`` with IDR(s), overwriting the initial guess ``x``.

    Parameters
    ----------
    x : numpy.ndarray
        Initial guess, updated in place
    A : operator
        Square operator (anything ``as_operator`` accepts)
    b : numpy.ndarray
        Right-hand side
    s : int
        Dimension of the shadow space
    **kwargs
        Fields of ``IDRSOptions``

    Returns
    -------
    x : numpy.ndarray
        Approximate solution
    history : ConvergenceHistory
        Only when ``log=True``; one residual per operator application
    """
    opts = IDRSOptions(**kwargs)
    history = ConvergenceHistory(partial=not opts.log)
    iterable = idrs_iterator(
        x, A, b, s,
        tol=opts.tol,
        reltol=opts.reltol,
        maxiter=opts.maxiter,
        initially_zero=opts.initially_zero,
        seed=opts.seed,
        shadow_space=opts.shadow_space,
    )
    history.reserve(min(iterable.maxiter, x.shape[0]))
    run_iterations(iterable, history, verbose=opts.verbose, name=f"idrs({s})")
    if opts.log:
        return iterable.x, history
    return iterable.x


def idrs(A, b: np.ndarray, s: int = 8, **kwargs):
    """Same as ``idrs_inplace``, but starts from a zero initial guess."""
    A, b = prepare_system(A, b)
    kwargs.setdefault("initially_zero", True)
    return idrs_inplace(zerox(A, b), A, b, s, **kwargs)
