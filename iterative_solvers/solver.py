"""
Unified interface over the iterative linear solvers.
"""

from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Optional

import numpy as np

from .bicgstabl import BiCGStabOptions, bicgstabl_inplace
from .cg import CGOptions, cg_inplace
from .convergence import ConvergenceHistory
from .idrs import IDRSOptions, idrs_inplace
from .stationary import (
    StationaryOptions,
    gauss_seidel_inplace,
    jacobi_inplace,
    sor_inplace,
    ssor_inplace,
)
from .utils import prepare_system, zerox


@dataclass(frozen=True)
class SolverEntry:
    """
    A registered method.

    Attributes
    ----------
    solve_inplace : callable
        ``solve_inplace(x, A, b, *positional, **options)``
    options : type
        Options dataclass validating ``**options``
    positional : tuple of (name, default)
        Method parameters passed positionally, e.g. ``l`` of BiCGStab(l);
        a default of ``None`` marks the parameter as required
    zero_guess : bool
        Whether the method accepts ``initially_zero``
    """
    solve_inplace: Callable[..., Any]
    options: type
    positional: tuple = ()
    zero_guess: bool = True


class SolverRegistry:
    """Registry for available methods."""

    _methods: Dict[str, SolverEntry] = {}

    @classmethod
    def register(cls, name: str, entry: SolverEntry):
        """Register a method under ``name``."""
        cls._methods[name] = entry

    @classmethod
    def get(cls, name: str) -> SolverEntry:
        """Get a registered method."""
        if name not in cls._methods:
            raise ValueError(f"Unknown method: {name}. Available: {cls.list_methods()}")
        return cls._methods[name]

    @classmethod
    def list_methods(cls) -> list[str]:
        """List all registered methods."""
        return list(cls._methods.keys())


SolverRegistry.register("cg", SolverEntry(cg_inplace, CGOptions))
SolverRegistry.register("bicgstabl", SolverEntry(bicgstabl_inplace, BiCGStabOptions, (("l", 2),)))
SolverRegistry.register("idrs", SolverEntry(idrs_inplace, IDRSOptions, (("s", 8),)))
SolverRegistry.register("jacobi", SolverEntry(jacobi_inplace, StationaryOptions, zero_guess=False))
SolverRegistry.register("gauss_seidel", SolverEntry(gauss_seidel_inplace, StationaryOptions, zero_guess=False))
SolverRegistry.register("sor", SolverEntry(sor_inplace, StationaryOptions, (("omega", None),), zero_guess=False))
SolverRegistry.register("ssor", SolverEntry(ssor_inplace, StationaryOptions, (("omega", None),), zero_guess=False))


class IterativeSolver:
    """
    Configured iterative solver.

    Validates the method name and its options once, then solves any number
    of systems. ``solve`` always returns the convergence history.
    """

    def __init__(self, method: str = "cg", **options):
        """
        Initialize the solver.

        Parameters
        ----------
        method : str, optional
            One of ``SolverRegistry.list_methods()``. Default is "cg".
        **options
            Method parameters (``l``, ``s``, ``omega``) and fields of the
            method's options dataclass. ``log`` is always enabled.
        """
        method = method.lower()
        self.method = method
        self.entry = SolverRegistry.get(method)

        self.positional = []
        for name, default in self.entry.positional:
            value = options.pop(name, default)
            if value is None:
                raise ValueError(f"Method {method} requires the parameter {name!r}")
            self.positional.append(value)

        options.pop("log", None)
        known = {f.name for f in fields(self.entry.options)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ValueError(f"Unknown options for {method}: {unknown}. Available: {sorted(known)}")
        # Validate now rather than at the first solve
        self.entry.options(**options)
        self.options = options

    def solve(self,
              A,
              b: np.ndarray,
              x0: Optional[np.ndarray] = None) -> tuple[np.ndarray, ConvergenceHistory]:
        """
        Solve ``A x = b``.

        Parameters
        ----------
        A : operator
            System matrix or operator
        b : numpy.ndarray
            Right-hand side vector
        x0 : numpy.ndarray, optional
            Initial guess; copied, never modified. Zero by default.

        Returns
        -------
        x : numpy.ndarray
            Solution vector
        history : ConvergenceHistory
            Convergence information
        """
        op, b = prepare_system(A, b)
        options = dict(self.options, log=True)
        if x0 is None:
            x = zerox(op, b)
            if self.entry.zero_guess:
                options.setdefault("initially_zero", True)
        else:
            x = np.array(x0, dtype=np.result_type(x0, zerox(op, b)))
        return self.entry.solve_inplace(x, op, b, *self.positional, **options)

    def __repr__(self):
        return f"IterativeSolver(method={self.method!r}, options={self.options})"


def solve(A,
          b: np.ndarray,
          method: str = "cg",
          x0: Optional[np.ndarray] = None,
          **options) -> tuple[np.ndarray, ConvergenceHistory]:
    """
    High-level solve function for linear systems.

    Parameters
    ----------
    A : operator
        Matrix (dense or sparse) or operator
    b : numpy.ndarray
        Right-hand side vector
    method : str, optional
        Solver method: "cg", "bicgstabl", "idrs", "jacobi", "gauss_seidel",
        "sor" or "ssor". Default is "cg".
    x0 : numpy.ndarray, optional
        Initial guess, zero by default
    **options
        Method parameters and options, see ``IterativeSolver``

    Returns
    -------
    x : numpy.ndarray
        Solution vector
    history : ConvergenceHistory
        Convergence information

    Examples
    --------
    >>> import numpy as np
    >>> from iterative_solvers import solve, poisson_2d
    >>> A = poisson_2d(20, 20)
    >>> b = np.ones(A.shape[0])
    >>> x, history = solve(A, b, method="bicgstabl", l=4, max_mv_products=1000)
    >>> history.is_converged
    True
    """
    return IterativeSolver(method, **options).solve(A, b, x0)
