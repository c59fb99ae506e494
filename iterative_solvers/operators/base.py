"""
Base operator interface consumed by the iterative methods.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import numpy as np


class LinearOperator(ABC):
    """
    Abstract linear operator ``A``.

    The methods only need ``apply`` (``A v``); ``apply_adjoint`` (``A^H v``)
    is optional and raises ``NotImplementedError`` when undefined. Dense and
    sparse adapters additionally expose the explicit matrix.
    """

    def __init__(self, shape: tuple[int, int], dtype=np.float64):
        self.shape = (int(shape[0]), int(shape[1]))
        self.dtype = np.dtype(dtype)

    @abstractmethod
    def apply(self, v: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Return ``A v``, written into ``out`` when given."""
        pass

    def apply_adjoint(self, v: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Return ``A^H v``, written into ``out`` when given."""
        raise NotImplementedError(f"{type(self).__name__} does not define A^H * v")

    def adjoint(self) -> "LinearOperator":
        """Operator whose ``apply`` is this operator's adjoint."""
        return AdjointOperator(self)

    @property
    def H(self) -> "LinearOperator":
        return self.adjoint()

    @property
    def has_matrix(self) -> bool:
        """Whether individual entries are available (``matrix``, ``diagonal``)."""
        return False

    def size(self, dim: int) -> int:
        """Number of rows (``dim == 0``) or columns (``dim == 1``)."""
        return self.shape[dim] if dim in (0, 1) else 1

    def __matmul__(self, v):
        return self.apply(np.asarray(v))

    def __repr__(self):
        return f"<{type(self).__name__} {self.shape[0]}x{self.shape[1]} dtype={self.dtype}>"

    @staticmethod
    def _store(result: np.ndarray, out: Optional[np.ndarray]) -> np.ndarray:
        if out is None:
            return result
        out[...] = result
        return out


class AdjointOperator(LinearOperator):
    """Adjoint view of another operator."""

    def __init__(self, parent: LinearOperator):
        super().__init__((parent.shape[1], parent.shape[0]), parent.dtype)
        self.parent = parent

    def apply(self, v, out=None):
        return self.parent.apply_adjoint(v, out)

    def apply_adjoint(self, v, out=None):
        return self.parent.apply(v, out)

    def adjoint(self):
        return self.parent


class OperatorRegistry:
    """Registry mapping input types to operator adapters."""

    _adapters: Dict[type, Callable[[Any], LinearOperator]] = {}

    @classmethod
    def register(cls, input_type: type, adapter: Callable[[Any], LinearOperator]):
        """Register ``adapter(A)`` for inputs that are instances of ``input_type``."""
        cls._adapters[input_type] = adapter

    @classmethod
    def get_adapter(cls, A: Any) -> Optional[Callable[[Any], LinearOperator]]:
        """Adapter for ``A``, most recently registered type first."""
        for input_type, adapter in reversed(list(cls._adapters.items())):
            if isinstance(A, input_type):
                return adapter
        return None

    @classmethod
    def list_types(cls) -> list[type]:
        """List all registered input types."""
        return list(cls._adapters.keys())
