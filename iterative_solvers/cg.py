"""
Conjugate gradient method, plain and preconditioned.

``A`` must be symmetric (Hermitian) positive definite, and so must a left
preconditioner ``Pl``. This is not checked unless ``check_definite=True``;
other matrices give meaningless iterates.
"""

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from .convergence import ConvergenceHistory
from .errors import PosSemidefError
from .iteration import IterationState, run_iterations
from .operators import LinearOperator
from .preconditioners import Preconditioner, as_preconditioner
from .utils import default_reltol, prepare_system, zerox


@dataclass
class CGStateVariables:
    """
    Work vectors of CG, same shape and type as the solution.

    Pass one instance to repeated solves of the same size to avoid
    reallocating them.
    """
    u: np.ndarray
    r: np.ndarray
    c: np.ndarray

    @classmethod
    def allocate(cls, x: np.ndarray) -> "CGStateVariables":
        return cls(np.zeros_like(x), np.empty_like(x), np.empty_like(x))

    def check(self, x: np.ndarray):
        for name in ("u", "r", "c"):
            vec = getattr(self, name)
            if vec.shape != x.shape or vec.dtype != x.dtype:
                raise ValueError(
                    f"statevars.{name} has shape {vec.shape} and dtype {vec.dtype}, "
                    f"expected {x.shape} and {x.dtype}"
                )


@dataclass
class CGOptions:
    """
    Options of ``cg`` and ``cg_inplace``.

    Attributes
    ----------
    tol : float
        Absolute tolerance, stop when ``|r_k| <= max(tol, reltol * |b|)``
    reltol : float, optional
        Relative tolerance, default ``sqrt(eps)`` of the real element type
    maxiter : int, optional
        Maximum number of iterations, default the number of columns of ``A``
    Pl : preconditioner, optional
        Left preconditioner, anything accepted by ``as_preconditioner``
    log : bool
        Also return the ``ConvergenceHistory``
    verbose : bool
        Log the residual norm of every iteration
    initially_zero : bool
        Caller guarantees ``x == 0``, saving the initial product
    statevars : CGStateVariables, optional
        Preallocated work vectors
    check_definite : bool
        Raise ``PosSemidefError`` on a non-positive curvature ``<u, A u>``
    """
    tol: float = 0.0
    reltol: Optional[float] = None
    maxiter: Optional[int] = None
    Pl: Any = None
    log: bool = False
    verbose: bool = False
    initially_zero: bool = False
    statevars: Optional[CGStateVariables] = None
    check_definite: bool = False

    def __post_init__(self):
        if self.tol < 0:
            raise ValueError(f"tol must be non-negative, got {self.tol}")
        if self.reltol is not None and self.reltol < 0:
            raise ValueError(f"reltol must be non-negative, got {self.reltol}")
        if self.maxiter is not None and self.maxiter < 0:
            raise ValueError(f"maxiter must be non-negative, got {self.maxiter}")


class CGIterable(IterationState):
    """State of unpreconditioned CG."""

    def __init__(self,
                 A: LinearOperator,
                 x: np.ndarray,
                 r: np.ndarray,
                 c: np.ndarray,
                 u: np.ndarray,
                 tolerance: float,
                 residual: float,
                 maxiter: int,
                 mv_products: int,
                 check_definite: bool = False):
        self.A = A
        self.x = x
        self.r = r
        self.c = c
        self.u = u
        self.tolerance = tolerance
        self.residual = residual
        self.prev_residual = 1.0
        self.maxiter = maxiter
        self.mv_products = mv_products
        self.check_definite = check_definite
        self.iteration = 0

    def converged(self):
        return self.residual <= self.tolerance

    def is_done(self):
        return self.iteration >= self.maxiter or self.converged()

    def step(self):
        # u := r + beta u
        beta = self.residual ** 2 / self.prev_residual ** 2
        self.u *= beta
        self.u += self.r

        self.A.apply(self.u, out=self.c)
        self.mv_products += 1
        curvature = np.vdot(self.u, self.c)
        if self.check_definite and curvature.real <= 0:
            raise PosSemidefError(f"Non-positive curvature <u, Au> = {curvature} in iteration {self.iteration + 1}")
        alpha = self.residual ** 2 / curvature

        self.x += alpha * self.u
        self.r -= alpha * self.c

        self.prev_residual = self.residual
        self.residual = float(np.linalg.norm(self.r))
        return self.residual


class PCGIterable(CGIterable):
    """State of preconditioned CG; ``rho = <Pl^{-1} r, r>`` replaces ``|r|^2``."""

    def __init__(self, Pl: Preconditioner, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.Pl = Pl
        self.rho = 1.0

    def step(self):
        self.c[...] = self.Pl.solve(self.r)

        rho_prev = self.rho
        self.rho = np.vdot(self.c, self.r)
        if self.check_definite and self.rho.real < 0:
            raise PosSemidefError(f"Negative <Pl^-1 r, r> = {self.rho}, preconditioner is not positive definite")

        # u := c + beta u
        beta = self.rho / rho_prev
        self.u *= beta
        self.u += self.c

        self.A.apply(self.u, out=self.c)
        self.mv_products += 1
        curvature = np.vdot(self.u, self.c)
        if self.check_definite and curvature.real <= 0:
            raise PosSemidefError(f"Non-positive curvature <u, Au> = {curvature} in iteration {self.iteration + 1}")
        alpha = self.rho / curvature

        self.x += alpha * self.u
        self.r -= alpha * self.c

        self.residual = float(np.linalg.norm(self.r))
        return self.residual


def cg_iterator(x: np.ndarray,
                A,
                b: np.ndarray,
                Pl: Any = None,
                tol: float = 0.0,
                reltol: Optional[float] = None,
                maxiter: Optional[int] = None,
                statevars: Optional[CGStateVariables] = None,
                initially_zero: bool = False,
                check_definite: bool = False) -> CGIterable:
    """
    Build the CG state for ``A x = b`` without running it.

    Returns a ``PCGIterable`` unless ``Pl`` is the identity.
    """
    A, b = prepare_system(A, b, x)
    Pl = as_preconditioner(Pl)
    if reltol is None:
        reltol = default_reltol(x.dtype)
    if maxiter is None:
        maxiter = A.shape[1]
    if statevars is None:
        statevars = CGStateVariables.allocate(x)
    statevars.check(x)

    u, r, c = statevars.u, statevars.r, statevars.c
    u.fill(0)
    r[...] = b

    # Compute r with an MV-product or not
    if initially_zero:
        mv_products = 0
        residual = float(np.linalg.norm(b))
        tolerance = max(residual * reltol, tol)
    else:
        mv_products = 1
        A.apply(x, out=c)
        r -= c
        residual = float(np.linalg.norm(r))
        tolerance = max(float(np.linalg.norm(b)) * reltol, tol)

    args = (A, x, r, c, u, tolerance, residual, maxiter, mv_products, check_definite)
    if Pl.is_identity:
        return CGIterable(*args)
    return PCGIterable(Pl, *args)


def cg_inplace(x: np.ndarray, A, b: np.ndarray, **kwargs):
    """
    Solve ``A x = b`` by conjugate gradients, overwriting the initial guess ``x``.

    Parameters
    ----------
    x : numpy.ndarray
        Initial guess, updated in place
    A : operator
        Symmetric positive definite operator (anything ``as_operator`` accepts)
    b : numpy.ndarray
        Right-hand side
    **kwargs
        Fields of ``CGOptions``

    Returns
    -------
    x : numpy.ndarray
        Approximate solution
    history : ConvergenceHistory
        Only when ``log=True``
    """
    opts = CGOptions(**kwargs)
    history = ConvergenceHistory(partial=not opts.log)
    iterable = cg_iterator(
        x, A, b, opts.Pl,
        tol=opts.tol,
        reltol=opts.reltol,
        maxiter=opts.maxiter,
        statevars=opts.statevars,
        initially_zero=opts.initially_zero,
        check_definite=opts.check_definite,
    )
    history.reserve(iterable.maxiter)
    run_iterations(iterable, history, verbose=opts.verbose, name="cg")
    if opts.log:
        return iterable.x, history
    return iterable.x


def cg(A, b: np.ndarray, **kwargs):
    """
    Same as ``cg_inplace``, but allocates a zero initial guess.

    The zero guess implies ``initially_zero=True``, so no product is spent
    on the initial residual.
    """
    A, b = prepare_system(A, b)
    kwargs.setdefault("initially_zero", True)
    return cg_inplace(zerox(A, b), A, b, **kwargs)
