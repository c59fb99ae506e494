"""
Utility functions for vectors, default tolerances, and test matrices.
"""

from typing import Optional, Union

import numpy as np
import scipy.sparse as sp

SeedLike = Optional[Union[int, np.random.Generator]]


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    """Return ``seed`` if it already is a Generator, otherwise seed a new one."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def solution_dtype(A, b) -> np.dtype:
    """
    Element type of ``x`` for the system ``A x = b``.

    The result of dividing an element of ``b`` by an element of ``A``,
    promoted to at least float.
    """
    a_dtype = getattr(A, "dtype", None)
    if a_dtype is None:
        a_dtype = np.float64
    return np.result_type(a_dtype, np.asarray(b).dtype, np.float32)


def real_dtype(dtype) -> np.dtype:
    """Real counterpart of a (possibly complex) floating dtype."""
    return np.finfo(np.dtype(dtype)).dtype


def zerox(A, b) -> np.ndarray:
    """Zero initial guess with the shape and element type of the solution."""
    return np.zeros(A.shape[1], dtype=solution_dtype(A, b))


def random_unit_vector(n: int, dtype=np.float64, seed: SeedLike = None) -> np.ndarray:
    """
    Random vector of 2-norm one.

    Complex dtypes get independent real and imaginary parts.
    """
    rng = make_rng(seed)
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.complexfloating):
        v = (rng.standard_normal(n) + 1j * rng.standard_normal(n)).astype(dtype)
    else:
        v = rng.standard_normal(n).astype(dtype)
    v /= np.linalg.norm(v)
    return v


def randx(A, b, seed: SeedLike = None) -> np.ndarray:
    """Random unit-norm initial guess for ``A x = b``."""
    return random_unit_vector(A.shape[1], solution_dtype(A, b), seed)


def random_like(v: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Uniform random vector with the shape and dtype of ``v``."""
    if np.iscomplexobj(v):
        out = rng.random(v.shape) + 1j * rng.random(v.shape)
    else:
        out = rng.random(v.shape)
    return out.astype(v.dtype)


def default_reltol(dtype) -> float:
    """Default relative tolerance of the Krylov methods: sqrt(eps)."""
    return float(np.sqrt(np.finfo(real_dtype(dtype)).eps))


def default_stationary_tol(n: int, dtype) -> float:
    """Default tolerance of the stationary and power methods: n^3 * eps."""
    return float(n ** 3 * np.finfo(real_dtype(dtype)).eps)


def poisson_2d(nx: int, ny: int):
    """
    Build 2D Poisson matrix on a regular grid (nx * ny) with Dirichlet BC.
    Returns SciPy CSR matrix of size (nx*ny, nx*ny).

    Parameters
    ----------
    nx : int
        Number of grid points in x-direction
    ny : int
        Number of grid points in y-direction

    Returns
    -------
    A : scipy.sparse.csr_matrix
        The sparse, symmetric positive definite Poisson matrix
    """
    N = nx * ny
    main_diag = np.ones(N) * 4.0
    off_diag = np.ones(N - 1) * -1.0
    off_diag2 = np.ones(N - nx) * -1.0

    # Mask out connections across row boundaries
    for i in range(1, ny):
        off_diag[i * nx - 1] = 0.0

    diags = [main_diag, off_diag, off_diag, off_diag2, off_diag2]
    offsets = [0, -1, 1, -nx, nx]
    return sp.diags(diags, offsets, shape=(N, N), format="csr")


def load_matrix_market(filename: str):
    """
    Load a sparse matrix from a Matrix Market file.

    Parameters
    ----------
    filename : str
        Path to the Matrix Market file (.mtx)

    Returns
    -------
    A : scipy.sparse.csr_matrix
        The sparse matrix in CSR format
    """
    from scipy.io import mmread
    A = mmread(filename)
    if not sp.issparse(A):
        return sp.csr_matrix(A)
    return A.tocsr()


def prepare_system(A, b, x: Optional[np.ndarray] = None):
    """
    Adapt ``A`` to an operator and check the dimensions of ``b`` and ``x``.

    Returns
    -------
    op : LinearOperator
    b : numpy.ndarray
    """
    from .operators import as_operator

    b = np.asarray(b)
    if b.ndim != 1:
        raise ValueError(f"Right-hand side must be a vector, got shape {b.shape}")
    op = as_operator(A, n=b.shape[0], dtype=b.dtype)
    if op.shape[0] != b.shape[0]:
        raise ValueError(f"Dimension mismatch: A is {op.shape[0]}x{op.shape[1]}, b has length {b.shape[0]}")
    if x is not None and x.shape != (op.shape[1],):
        raise ValueError(f"Dimension mismatch: A has {op.shape[1]} columns, x has shape {x.shape}")
    return op, b
