"""
Power method and inverse power method for one eigenpair.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .convergence import ConvergenceHistory
from .iteration import IterationState, run_iterations
from .operators import LinearOperator, as_operator
from .utils import SeedLike, default_stationary_tol, random_unit_vector


@dataclass
class PowerOptions:
    """
    Options of ``powm`` and ``invpowm``.

    Attributes
    ----------
    tol : float, optional
        Stop when ``|A x - theta x| < tol``, default ``n**3 * eps``
    maxiter : int, optional
        Maximum number of iterations, default ``n``
    shift : scalar
        Shift ``sigma`` the operator was built with
    inverse : bool
        The operator applies ``(A - sigma I)^{-1}``
    log, verbose : bool
        Return the history / log every iteration
    seed : int or numpy.random.Generator, optional
        Seed of the random start vector (``powm`` and ``invpowm`` only)
    """
    tol: Optional[float] = None
    maxiter: Optional[int] = None
    shift: complex = 0.0
    inverse: bool = False
    log: bool = False
    verbose: bool = False
    seed: SeedLike = None

    def __post_init__(self):
        if self.tol is not None and self.tol < 0:
            raise ValueError(f"tol must be non-negative, got {self.tol}")
        if self.maxiter is not None and self.maxiter < 0:
            raise ValueError(f"maxiter must be non-negative, got {self.maxiter}")


class PowerMethodIterable(IterationState):
    """State of the power method; ``x`` is kept at unit norm."""

    def __init__(self, A: LinearOperator, x: np.ndarray, tolerance: float, maxiter: int):
        self.A = A
        self.x = x
        self.tolerance = tolerance
        self.maxiter = maxiter
        self.theta = x.dtype.type(0)
        self.r = np.empty_like(x)
        self.Ax = np.empty_like(x)
        self.residual = float(np.finfo(x.real.dtype).max)
        self.mv_products = 0
        self.iteration = 0

    def converged(self):
        return self.residual < self.tolerance

    def is_done(self):
        return self.iteration >= self.maxiter or self.converged()

    def step(self):
        self.Ax[...] = self.A.apply(self.x)
        self.mv_products += 1

        # Rayleigh quotient theta = x^H A x
        self.theta = np.vdot(self.x, self.Ax)

        # Residual of the previous approximation, r = A x - theta x
        np.subtract(self.Ax, self.theta * self.x, out=self.r)
        self.residual = float(np.linalg.norm(self.r))

        # Normalize the next approximation
        self.x[...] = self.Ax / np.linalg.norm(self.Ax)
        return self.residual


def transform_eigenvalue(theta, inverse: bool, shift):
    """Eigenvalue of ``A`` from the Rayleigh quotient of the shifted (inverted) operator."""
    return shift + (1 / theta if inverse else theta)


def powm_iterator(A, x: np.ndarray, tol: Optional[float] = None, maxiter: Optional[int] = None) -> PowerMethodIterable:
    """Build the power method state without running it; ``x`` is normalized in place."""
    A = as_operator(A, n=x.shape[0], dtype=x.dtype)
    if A.shape[0] != A.shape[1] or A.shape[1] != x.shape[0]:
        raise ValueError(f"Power method needs a square operator matching x, got {A.shape} and {x.shape}")
    n = A.shape[1]
    if tol is None:
        tol = default_stationary_tol(n, x.dtype)
    if maxiter is None:
        maxiter = n
    x /= np.linalg.norm(x)
    return PowerMethodIterable(A, x, tol, maxiter)


def powm_inplace(A, x: np.ndarray, **kwargs):
    """
    Find the eigenvalue of largest magnitude of ``A`` and its eigenvector.

    Parameters
    ----------
    A : operator
        Square operator; for the inverse method ``(A - shift I)^{-1}``
    x : numpy.ndarray
        Initial guess, overwritten with the unit eigenvector estimate
    **kwargs
        Fields of ``PowerOptions``

    Returns
    -------
    eig : scalar
        Eigenvalue estimate, transformed back when ``inverse`` or ``shift``
        is given
    x : numpy.ndarray
        Unit eigenvector estimate
    history : ConvergenceHistory
        Only when ``log=True``
    """
    opts = PowerOptions(**kwargs)
    history = ConvergenceHistory(partial=not opts.log)
    iterable = powm_iterator(A, x, tol=opts.tol, maxiter=opts.maxiter)
    history.reserve(iterable.maxiter)
    run_iterations(iterable, history, verbose=opts.verbose, name="invpowm" if opts.inverse else "powm")
    eig = transform_eigenvalue(iterable.theta, opts.inverse, opts.shift)
    if opts.log:
        return eig, iterable.x, history
    return eig, iterable.x


def powm(A, **kwargs):
    """Same as ``powm_inplace``, starting from a random unit vector."""
    seed = kwargs.get("seed")
    A = as_operator(A)
    x0 = random_unit_vector(A.shape[1], np.result_type(A.dtype, np.float32), seed)
    return powm_inplace(A, x0, **kwargs)


def invpowm_inplace(Ainv, x: np.ndarray, **kwargs):
    """
    Find the eigenvalue of ``A`` closest to ``shift`` and its eigenvector.

    ``Ainv`` applies ``(A - shift I)^{-1}``, built by the caller, e.g. from
    an LU factorization.
    """
    return powm_inplace(Ainv, x, inverse=True, **kwargs)


def invpowm(Ainv, **kwargs):
    """Same as ``invpowm_inplace``, starting from a random unit vector."""
    return powm(Ainv, inverse=True, **kwargs)
