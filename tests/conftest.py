"""
Shared fixtures and matrix builders for the test suite.
"""

import numpy as np
import pytest


def random_spd(n, seed=None):
    """Well-conditioned random symmetric positive definite matrix."""
    rng = np.random.default_rng(seed)
    B = rng.standard_normal((n, n))
    return B @ B.T / n + np.eye(n)


def random_nonsymmetric(n, seed=None):
    """Random nonsymmetric matrix with eigenvalues clustered around 2."""
    rng = np.random.default_rng(seed)
    return rng.standard_normal((n, n)) / np.sqrt(n) + 2 * np.eye(n)


def diagonally_dominant(n, seed=None):
    """Random strictly diagonally dominant matrix."""
    rng = np.random.default_rng(seed)
    return rng.random((n, n)) + 2 * n * np.eye(n)


def relative_residual(A, x, b):
    return np.linalg.norm(A @ x - b) / np.linalg.norm(b)


@pytest.fixture
def rng():
    return np.random.default_rng(1234321)


@pytest.fixture
def diag_system():
    """A = diag(2, 3, 4), b = (2, 3, 4), exact solution (1, 1, 1)."""
    return np.diag([2.0, 3.0, 4.0]), np.array([2.0, 3.0, 4.0])


@pytest.fixture
def singular_diagonal_system():
    return np.array([[0.0, 1.0], [1.0, 0.0]]), np.array([1.0, 1.0])
