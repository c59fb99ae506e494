"""
Tests for the preconditioner interface and builders.
"""

import numpy as np
import pytest
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from iterative_solvers import (
    IDENTITY,
    Preconditioner,
    SingularError,
    as_preconditioner,
    ilu_preconditioner,
    jacobi_preconditioner,
    lu_preconditioner,
    poisson_2d,
)


class TestIdentity:

    def test_no_copy(self):
        v = np.arange(3.0)

        assert IDENTITY.is_identity
        assert IDENTITY.solve(v) is v
        assert IDENTITY.solve_inplace(v) is v
        np.testing.assert_array_equal(v, [0.0, 1.0, 2.0])

    def test_none_is_identity(self):
        assert as_preconditioner(None) is IDENTITY


class TestBuilders:

    def test_jacobi(self):
        A = np.array([[2.0, 1.0], [1.0, 4.0]])
        P = jacobi_preconditioner(A)
        v = np.array([2.0, 2.0])

        assert not P.is_identity
        np.testing.assert_allclose(P.solve(v), [1.0, 0.5])
        np.testing.assert_array_equal(v, [2.0, 2.0])
        P.solve_inplace(v)
        np.testing.assert_allclose(v, [1.0, 0.5])

    def test_jacobi_from_sparse(self):
        A = poisson_2d(3, 3)
        P = jacobi_preconditioner(A)
        np.testing.assert_allclose(P.solve(np.full(9, 4.0)), np.ones(9))

    def test_jacobi_zero_diagonal(self):
        with pytest.raises(SingularError) as excinfo:
            jacobi_preconditioner(np.array([[1.0, 1.0], [1.0, 0.0]]))
        assert excinfo.value.index == 1

    def test_dense_lu_is_exact(self, rng):
        A = rng.standard_normal((5, 5)) + 5 * np.eye(5)
        v = rng.standard_normal(5)

        np.testing.assert_allclose(A @ lu_preconditioner(A).solve(v), v, atol=1e-12)

    def test_sparse_lu_is_exact(self):
        A = poisson_2d(4, 4)
        v = np.arange(16.0)

        np.testing.assert_allclose(A @ lu_preconditioner(A).solve(v), v, atol=1e-12)

    def test_ilu_without_dropping_is_exact_on_tridiagonal(self):
        A = sp.diags([-np.ones(9), 4 * np.ones(10), -np.ones(9)], [-1, 0, 1], format="csr")
        v = np.ones(10)

        P = ilu_preconditioner(A, drop_tol=0.0, fill_factor=10.0)

        np.testing.assert_allclose(A @ P.solve(v), v)


class TestAsPreconditioner:

    def test_factorization_object(self):
        A = poisson_2d(3, 3)
        P = as_preconditioner(spla.splu(sp.csc_matrix(A)))

        assert isinstance(P, Preconditioner)
        np.testing.assert_allclose(A @ P.solve(np.ones(9)), np.ones(9))

    def test_scipy_linear_operator(self):
        M = spla.aslinearoperator(np.diag([0.5, 0.25]))
        P = as_preconditioner(M)
        v = np.array([2.0, 4.0])

        P.solve_inplace(v)

        np.testing.assert_allclose(v, [1.0, 1.0])

    def test_callable(self):
        P = as_preconditioner(lambda v: v / 2)
        np.testing.assert_allclose(P.solve(np.array([2.0, 4.0])), [1.0, 2.0])

    def test_preconditioner_passes_through(self):
        P = jacobi_preconditioner(np.eye(2))
        assert as_preconditioner(P) is P

    def test_unsupported(self):
        with pytest.raises(TypeError):
            as_preconditioner(3.0)
