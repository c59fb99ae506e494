"""
Iterative methods for linear systems and eigenpairs

This package provides Krylov methods (CG, preconditioned CG, BiCGStab(l),
IDR(s)), stationary methods (Jacobi, Gauss-Seidel, SOR, SSOR) and the power
method for operators that need not be stored as matrices.

Features:
- Operator adapters for NumPy, SciPy sparse and function-defined operators
- Preconditioner interface with SciPy-backed Jacobi, ILU and LU builders
- Resumable iteration states for every method
- Convergence history with residual trace
- Preallocated work vectors for repeated solves
"""

from .bicgstabl import BiCGStabIterable, BiCGStabOptions, BiCGStabStateVariables, bicgstabl, bicgstabl_inplace, bicgstabl_iterator
from .cg import CGIterable, CGOptions, CGStateVariables, PCGIterable, cg, cg_inplace, cg_iterator
from .convergence import ConvergenceHistory
from .errors import IterativeSolversError, PosSemidefError, RelaxationWarning, SingularError
from .idrs import IDRSIterable, IDRSOptions, idrs, idrs_inplace, idrs_iterator
from .iteration import IterationState, run_iterations
from .operators import DenseOperator, FunctionOperator, LinearOperator, OperatorRegistry, SparseOperator, as_operator
from .power import PowerMethodIterable, PowerOptions, invpowm, invpowm_inplace, powm, powm_inplace, powm_iterator
from .preconditioners import (
    IDENTITY,
    IdentityPreconditioner,
    Preconditioner,
    as_preconditioner,
    ilu_preconditioner,
    jacobi_preconditioner,
    lu_preconditioner,
)
from .solver import IterativeSolver, SolverRegistry, solve
from .stationary import (
    StationaryOptions,
    gauss_seidel,
    gauss_seidel_inplace,
    jacobi,
    jacobi_inplace,
    sor,
    sor_inplace,
    ssor,
    ssor_inplace,
)
from .utils import load_matrix_market, poisson_2d, randx, zerox

__version__ = "0.3.0"
__all__ = [
    # Krylov methods
    "cg",
    "cg_inplace",
    "cg_iterator",
    "CGIterable",
    "PCGIterable",
    "CGOptions",
    "CGStateVariables",
    "bicgstabl",
    "bicgstabl_inplace",
    "bicgstabl_iterator",
    "BiCGStabIterable",
    "BiCGStabOptions",
    "BiCGStabStateVariables",
    "idrs",
    "idrs_inplace",
    "idrs_iterator",
    "IDRSIterable",
    "IDRSOptions",
    # Stationary methods
    "jacobi",
    "jacobi_inplace",
    "gauss_seidel",
    "gauss_seidel_inplace",
    "sor",
    "sor_inplace",
    "ssor",
    "ssor_inplace",
    "StationaryOptions",
    # Eigenvalues
    "powm",
    "powm_inplace",
    "powm_iterator",
    "invpowm",
    "invpowm_inplace",
    "PowerMethodIterable",
    "PowerOptions",
    # Infrastructure
    "ConvergenceHistory",
    "IterationState",
    "run_iterations",
    "LinearOperator",
    "DenseOperator",
    "SparseOperator",
    "FunctionOperator",
    "OperatorRegistry",
    "as_operator",
    "Preconditioner",
    "IdentityPreconditioner",
    "IDENTITY",
    "as_preconditioner",
    "jacobi_preconditioner",
    "ilu_preconditioner",
    "lu_preconditioner",
    "IterativeSolver",
    "SolverRegistry",
    "solve",
    # Errors
    "IterativeSolversError",
    "SingularError",
    "PosSemidefError",
    "RelaxationWarning",
    # Utilities
    "load_matrix_market",
    "poisson_2d",
    "randx",
    "zerox",
]
