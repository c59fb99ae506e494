"""
Exceptions and warnings raised by the iterative methods.

Failing to converge is not an error: it is reported through
``ConvergenceHistory.is_converged``.
"""

from typing import Optional


class IterativeSolversError(Exception):
    """Base class for errors raised by this package."""


class SingularError(IterativeSolversError, ArithmeticError):
    """
    A diagonal (pivot) entry required as a divisor is exactly zero.

    Attributes
    ----------
    index : int
        Row of the offending entry
    """

    def __init__(self, index: int, message: Optional[str] = None):
        self.index = index
        if message is None:
            message = f"Zero diagonal entry in row {index}, matrix is singular for this method."
        super().__init__(message)


class PosSemidefError(IterativeSolversError, ArithmeticError):
    """An intermediate quantity contradicts positive (semi)definiteness."""

    def __init__(self, message: str = "Matrix was not positive semidefinite"):
        super().__init__(message)


class RelaxationWarning(UserWarning):
    """Relaxation parameter outside the range with guaranteed convergence."""
