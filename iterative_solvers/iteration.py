"""
Iteration-control contract shared by all methods.

Every method is an explicit state object: it is built once per solve,
reports ``is_done()``, and ``advance()`` performs one iteration and returns
its residual norm (``None`` once done). Iterating over a state yields the
residual norms lazily; a run is restarted by building a new state and
stopped early by not advancing it any further.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterator, Optional

from .convergence import ConvergenceHistory

logger = logging.getLogger(__name__)


class IterationState(ABC):
    """
    Resumable state of one iterative method.

    Attributes
    ----------
    iteration : int
        Number of completed iterations
    mv_products : int
        Operator applications so far, including any initial residual
    residual : float
        Residual norm compared against ``tolerance``
    tolerance : float
        Stopping threshold, fixed when the state is built
    """

    iteration: int = 0
    mv_products: int = 0
    residual: float = float("inf")
    tolerance: float = 0.0

    @abstractmethod
    def converged(self) -> bool:
        """Whether the current residual meets the stopping threshold."""
        pass

    @abstractmethod
    def is_done(self) -> bool:
        """Whether no further iteration may be performed."""
        pass

    @abstractmethod
    def step(self) -> float:
        """Perform one iteration and return the new residual norm."""
        pass

    def advance(self) -> Optional[float]:
        if self.is_done():
            return None
        residual = self.step()
        self.iteration += 1
        return residual

    def __iter__(self) -> Iterator[float]:
        while True:
            residual = self.advance()
            if residual is None:
                return
            yield residual


def run_iterations(state: IterationState,
                   history: ConvergenceHistory,
                   verbose: bool = False,
                   name: str = "") -> ConvergenceHistory:
    """
    Drive ``state`` to completion and record the run in ``history``.

    Parameters
    ----------
    state : IterationState
        Freshly built method state
    history : ConvergenceHistory
        Receives every residual, the product count and the convergence flag
    verbose : bool
        Log the residual of every iteration at INFO level
    name : str
        Method name used in log messages

    Returns
    -------
    history : ConvergenceHistory
    """
    history.tolerance = float(state.tolerance)
    if verbose:
        logger.info("=== %s ===", name)
        logger.info("%4s\t%7s", "iter", "resnorm")
    for residual in state:
        history.push(residual)
        if verbose:
            logger.info("%3d\t%1.2e", state.iteration, residual)
    history.mat_vec_products = state.mv_products
    history.is_converged = bool(state.converged())
    history.shrink()
    logger.debug(
        "%s finished: converged=%s iterations=%d mvps=%d residual=%.3e tol=%.3e",
        name, history.is_converged, history.iterations,
        history.mat_vec_products, state.residual, history.tolerance,
    )
    return history
