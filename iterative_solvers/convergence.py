"""
Convergence history recorded by the iterative methods.
"""

from dataclasses import dataclass, field

import numpy as np


@dataclass
class ConvergenceHistory:
    """
    Record of one run of an iterative method.

    Written by the method through ``push``; callers only read it.

    Attributes
    ----------
    is_converged : bool
        Whether the method met its stopping tolerance
    tolerance : float
        Stopping threshold the residual norm was compared against
    mat_vec_products : int
        Number of operator applications (sweeps for stationary methods)
    iterations : int
        Number of iterations executed
    partial : bool
        If True only counters and the last residual are kept, no trace
    """
    is_converged: bool = False
    tolerance: float = 0.0
    mat_vec_products: int = 0
    iterations: int = 0
    partial: bool = False
    _residuals: np.ndarray = field(default_factory=lambda: np.empty(0), repr=False)
    _last: float = field(default=np.nan, repr=False)

    @property
    def residuals(self) -> np.ndarray:
        """Residual norm of every executed iteration (read-only view)."""
        view = self._residuals[:self.iterations] if not self.partial else self._residuals[:0]
        view = view.view()
        view.flags.writeable = False
        return view

    @property
    def residual_norm(self) -> float:
        """Residual norm of the last iteration, NaN before the first one."""
        return self._last

    def reserve(self, n: int):
        """Pre-size the residual buffer for ``n`` iterations."""
        if self.partial or n <= self._residuals.size:
            return self
        buffer = np.empty(n)
        buffer[:self.iterations] = self._residuals[:self.iterations]
        self._residuals = buffer
        return self

    def push(self, residual):
        """
        Append the residual norm of a finished iteration.

        A vector argument is reduced to its 2-norm.
        """
        if np.ndim(residual) > 0:
            residual = np.linalg.norm(residual)
        residual = float(residual)
        if not self.partial:
            if self.iterations >= self._residuals.size:
                self.reserve(max(2 * self._residuals.size, self.iterations + 1, 8))
            self._residuals[self.iterations] = residual
        self.iterations += 1
        self._last = residual
        return self

    def shrink(self):
        """Trim the reserved buffer to the iterations actually executed."""
        self._residuals = self._residuals[:self.iterations].copy()
        return self

    def clear(self):
        """Reset to the state of a fresh history, keeping the tolerance."""
        self.is_converged = False
        self.mat_vec_products = 0
        self.iterations = 0
        self._residuals = np.empty(0)
        self._last = np.nan
        return self

    def __len__(self):
        return self.iterations

    def __str__(self):
        status = "Converged" if self.is_converged else "Not converged"
        return (
            f"{status} in {self.iterations} iterations\n"
            f"  Residual norm: {self.residual_norm:.2e}\n"
            f"  Tolerance: {self.tolerance:.2e}\n"
            f"  Matrix-vector products: {self.mat_vec_products}"
        )

    def to_dict(self):
        """Convert to a plain dictionary."""
        return {
            "converged": self.is_converged,
            "niter": self.iterations,
            "residual_norm": self.residual_norm,
            "tolerance": self.tolerance,
            "mvps": self.mat_vec_products,
            "residuals": self.residuals.tolist(),
        }
