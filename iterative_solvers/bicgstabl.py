"""
BiCGStab(l) for nonsymmetric systems.

Every outer cycle runs ``l`` Bi-CG steps, which extend a block of ``l + 1``
residuals and search directions, followed by a minimal-residual step over
that block. A cycle costs ``2 l`` operator applications, so the budget is a
number of products, not of cycles.

The minimal-residual step solves a small system with the Gram matrix of the
residual block. When the residual directions nearly coincide this matrix is
close to singular; SciPy's ``LinAlgWarning`` or ``LinAlgError`` is passed on
to the caller unchanged. ``convex_combination=True`` is the more stable
variant of Sleijpen and van Gijzen, "Exploiting BiCGstab(l) strategies to
induce dimension reduction", SIAM J. Sci. Comput. 32(5), 2010.
"""

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import scipy.linalg as sla

from .convergence import ConvergenceHistory
from .iteration import IterationState, run_iterations
from .operators import LinearOperator
from .preconditioners import Preconditioner, as_preconditioner
from .utils import SeedLike, default_reltol, make_rng, prepare_system, random_like, zerox

# Lower bound on |cos| of the angle between the two restricted minimizers
CONVEX_ANGLE = 0.7


@dataclass
class BiCGStabStateVariables:
    """Residual block ``rs`` and direction block ``us``, both ``(n, l + 1)``."""
    rs: np.ndarray
    us: np.ndarray

    @classmethod
    def allocate(cls, x: np.ndarray, l: int) -> "BiCGStabStateVariables":
        shape = (x.shape[0], l + 1)
        # Column-major, every vector of a block is contiguous
        return cls(np.zeros(shape, dtype=x.dtype, order="F"), np.zeros(shape, dtype=x.dtype, order="F"))

    def check(self, x: np.ndarray, l: int):
        shape = (x.shape[0], l + 1)
        for name in ("rs", "us"):
            block = getattr(self, name)
            if block.shape != shape or block.dtype != x.dtype:
                raise ValueError(
                    f"statevars.{name} has shape {block.shape} and dtype {block.dtype}, "
                    f"expected {shape} and {x.dtype}"
                )


@dataclass
class BiCGStabOptions:
    """
    Options of ``bicgstabl`` and ``bicgstabl_inplace``.

    Attributes
    ----------
    tol : float
        Absolute tolerance, stop when ``|r| <= max(tol, reltol * |r_0|)``
    reltol : float, optional
        Relative tolerance, default ``sqrt(eps)``
    max_mv_products : int, optional
        Budget of operator applications, default the number of columns of ``A``
    Pl : preconditioner, optional
        Left preconditioner; the tracked residual is then ``Pl^{-1} (b - A x)``
    log, verbose : bool
        Return the history / log every cycle
    initially_zero : bool
        Caller guarantees ``x == 0``
    convex_combination : bool
        Use the enhanced convex-combination minimal-residual step
    shadow : numpy.ndarray, optional
        Shadow residual to reuse; drawn at random by default
    seed : int or numpy.random.Generator, optional
        Seed of the random shadow residual
    statevars : BiCGStabStateVariables, optional
        Preallocated residual and direction blocks
    """
    tol: float = 0.0
    reltol: Optional[float] = None
    max_mv_products: Optional[int] = None
    Pl: Any = None
    log: bool = False
    verbose: bool = False
    initially_zero: bool = False
    convex_combination: bool = False
    shadow: Optional[np.ndarray] = None
    seed: SeedLike = None
    statevars: Optional[BiCGStabStateVariables] = None

    def __post_init__(self):
        if self.tol < 0:
            raise ValueError(f"tol must be non-negative, got {self.tol}")
        if self.reltol is not None and self.reltol < 0:
            raise ValueError(f"reltol must be non-negative, got {self.reltol}")
        if self.max_mv_products is not None and self.max_mv_products < 0:
            raise ValueError(f"max_mv_products must be non-negative, got {self.max_mv_products}")


class BiCGStabIterable(IterationState):
    """State of BiCGStab(l); one ``step`` is one outer cycle."""

    def __init__(self,
                 A: LinearOperator,
                 l: int,
                 Pl: Preconditioner,
                 x: np.ndarray,
                 r_shadow: np.ndarray,
                 rs: np.ndarray,
                 us: np.ndarray,
                 max_mv_products: int,
                 mv_products: int,
                 tolerance: float,
                 residual: float,
                 convex_combination: bool = False):
        self.A = A
        self.l = l
        self.Pl = Pl
        self.x = x
        self.r_shadow = r_shadow
        self.rs = rs
        self.us = us
        self.max_mv_products = max_mv_products
        self.mv_products = mv_products
        self.tolerance = tolerance
        self.residual = residual
        self.convex_combination = convex_combination
        self.omega = 1.0
        self.sigma = 1.0
        self.gamma = np.zeros(l, dtype=x.dtype)
        self.M = np.zeros((l + 1, l + 1), dtype=x.dtype)
        self.iteration = 0

    def converged(self):
        return self.residual <= self.tolerance

    def is_done(self):
        return self.mv_products >= self.max_mv_products or self.converged()

    def step(self):
        A, Pl, rs, us, l = self.A, self.Pl, self.rs, self.us, self.l
        self.sigma = -self.omega * self.sigma

        # Bi-CG part
        for j in range(l):
            rho = np.vdot(self.r_shadow, rs[:, j])
            beta = rho / self.sigma

            us[:, :j + 1] = rs[:, :j + 1] - beta * us[:, :j + 1]

            # us[:, j + 1] = Pl \ (A * us[:, j])
            next_u = us[:, j + 1]
            next_u[...] = A.apply(us[:, j])
            Pl.solve_inplace(next_u)

            self.sigma = np.vdot(self.r_shadow, next_u)
            alpha = rho / self.sigma

            rs[:, :j + 1] -= alpha * us[:, 1:j + 2]

            # rs[:, j + 1] = Pl \ (A * rs[:, j])
            next_r = rs[:, j + 1]
            next_r[...] = A.apply(rs[:, j])
            Pl.solve_inplace(next_r)

            self.x += alpha * us[:, 0]

        self.mv_products += 2 * l

        # Minimal-residual part
        np.matmul(rs.conj().T, rs, out=self.M)
        if self.convex_combination:
            self.gamma[:] = self._convex_coefficients(self.M)
        else:
            self.gamma[:] = sla.solve(self.M[1:, 1:], self.M[1:, 0])

        us[:, 0] -= us[:, 1:] @ self.gamma
        self.x += rs[:, :l] @ self.gamma
        rs[:, 0] -= rs[:, 1:] @ self.gamma

        self.omega = self.gamma[l - 1]
        self.residual = float(np.linalg.norm(rs[:, 0]))
        return self.residual

    def _convex_coefficients(self, Z: np.ndarray) -> np.ndarray:
        """
        Coefficients ``gamma`` of ``r_0 - sum_j gamma_j r_j`` from a combination
        of the minimizers with the last (``y0``) and the first (``yl``) coefficient
        held fixed.
        """
        l = self.l
        y0 = np.zeros(l + 1, dtype=Z.dtype)
        yl = np.zeros(l + 1, dtype=Z.dtype)
        y0[0] = 1
        yl[l] = 1
        if l > 1:
            inner = Z[1:l, 1:l]
            y0[1:l] = -sla.solve(inner, Z[1:l, 0])
            yl[1:l] = -sla.solve(inner, Z[1:l, l])

        kappa0 = np.sqrt(abs(np.vdot(y0, Z @ y0)))
        kappal = np.sqrt(abs(np.vdot(yl, Z @ yl)))
        varrho = np.vdot(yl, Z @ y0) / (kappa0 * kappal)
        if varrho == 0:
            hat_rho = CONVEX_ANGLE
        else:
            hat_rho = varrho / abs(varrho) * max(abs(varrho), CONVEX_ANGLE)
        y0 -= hat_rho * kappa0 / kappal * yl
        return -y0[1:]


def bicgstabl_iterator(x: np.ndarray,
                       A,
                       b: np.ndarray,
                       l: int = 2,
                       Pl: Any = None,
                       tol: float = 0.0,
                       reltol: Optional[float] = None,
                       max_mv_products: Optional[int] = None,
                       initially_zero: bool = False,
                       convex_combination: bool = False,
                       shadow: Optional[np.ndarray] = None,
                       seed: SeedLike = None,
                       statevars: Optional[BiCGStabStateVariables] = None) -> BiCGStabIterable:
    """Build the BiCGStab(l) state for ``A x = b`` without running it."""
    if l < 1:
        raise ValueError(f"l must be at least 1, got {l}")
    A, b = prepare_system(A, b, x)
    Pl = as_preconditioner(Pl)
    if reltol is None:
        reltol = default_reltol(x.dtype)
    if max_mv_products is None:
        max_mv_products = A.shape[1]
    if statevars is None:
        statevars = BiCGStabStateVariables.allocate(x, l)
    statevars.check(x, l)

    rs, us = statevars.rs, statevars.us
    rs.fill(0)
    us.fill(0)
    residual_vec = rs[:, 0]

    # Avoid computing A * 0
    mv_products = 0
    if initially_zero:
        residual_vec[...] = b
    else:
        residual_vec[...] = b - A.apply(x)
        mv_products += 1
    Pl.solve_inplace(residual_vec)

    if shadow is None:
        r_shadow = random_like(x, make_rng(seed))
    else:
        r_shadow = np.asarray(shadow, dtype=x.dtype)
        if r_shadow.shape != x.shape:
            raise ValueError(f"shadow has shape {r_shadow.shape}, expected {x.shape}")

    residual = float(np.linalg.norm(residual_vec))
    tolerance = max(reltol * residual, tol)
    return BiCGStabIterable(
        A, l, Pl, x, r_shadow, rs, us,
        max_mv_products, mv_products, tolerance, residual,
        convex_combination=convex_combination,
    )


def bicgstabl_inplace(x: np.ndarray, A, b: np.ndarray, l: int = 2, **kwargs):
    """
    Solve ``A x = b`` with BiCGStab(l), overwriting the initial guess ``x``.

    Parameters
    ----------
    x : numpy.ndarray
        Initial guess, updated in place
    A : operator
        Square operator (anything ``as_operator`` accepts)
    b : numpy.ndarray
        Right-hand side
    l : int
        Number of Bi-CG steps and degree of the minimal-residual polynomial
        per cycle
    **kwargs
        Fields of ``BiCGStabOptions``

    Returns
    -------
    x : numpy.ndarray
        Approximate solution
    history : ConvergenceHistory
        Only when ``log=True``; one residual per cycle
    """
    opts = BiCGStabOptions(**kwargs)
    history = ConvergenceHistory(partial=not opts.log)
    iterable = bicgstabl_iterator(
        x, A, b, l, opts.Pl,
        tol=opts.tol,
        reltol=opts.reltol,
        max_mv_products=opts.max_mv_products,
        initially_zero=opts.initially_zero,
        convex_combination=opts.convex_combination,
        shadow=opts.shadow,
        seed=opts.seed,
        statevars=opts.statevars,
    )
    history.reserve(iterable.max_mv_products // (2 * l) + 1)
    run_iterations(iterable, history, verbose=opts.verbose, name=f"bicgstab({l})")
    if opts.log:
        return iterable.x, history
    return iterable.x


def bicgstabl(A, b: np.ndarray, l: int = 2, **kwargs):
    """Same as ``bicgstabl_inplace``, but starts from a zero initial guess."""
    A, b = prepare_system(A, b)
    kwargs.setdefault("initially_zero", True)
    return bicgstabl_inplace(zerox(A, b), A, b, l, **kwargs)
