"""
Tests for the stationary methods.
"""

import numpy as np
import pytest
import scipy.sparse as sp

from conftest import diagonally_dominant, relative_residual
from iterative_solvers import (
    DenseOperator,
    FunctionOperator,
    RelaxationWarning,
    SingularError,
    gauss_seidel,
    gauss_seidel_inplace,
    jacobi,
    jacobi_inplace,
    sor,
    sor_inplace,
    ssor,
    ssor_inplace,
)
from iterative_solvers.stationary import StationaryIterable

# (name, solve, solve_inplace, extra positional arguments)
METHODS = [
    ("jacobi", jacobi, jacobi_inplace, ()),
    ("gauss_seidel", gauss_seidel, gauss_seidel_inplace, ()),
    ("sor", sor, sor_inplace, (1.1,)),
    ("ssor", ssor, ssor_inplace, (1.1,)),
]
IDS = [m[0] for m in METHODS]


def manual_jacobi(A, b, x, sweeps):
    D = np.diag(A)
    R = A - np.diag(D)
    for _ in range(sweeps):
        x = (b - R @ x) / D
    return x


def manual_gauss_seidel(A, b, x, sweeps):
    x = x.copy()
    n = len(b)
    for _ in range(sweeps):
        for i in range(n):
            sigma = A[i] @ x - A[i, i] * x[i]
            x[i] = (b[i] - sigma) / A[i, i]
    return x


@pytest.mark.parametrize("name, method, method_inplace, extra", METHODS, ids=IDS)
class TestStationaryCommon:

    def test_singular_diagonal_fails_before_any_sweep(self, singular_diagonal_system, name, method, method_inplace, extra):
        A, b = singular_diagonal_system
        x = np.array([3.0, 4.0])

        with pytest.raises(SingularError) as excinfo:
            method_inplace(x, A, b, *extra, maxiter=5)

        assert excinfo.value.index == 0
        np.testing.assert_array_equal(x, [3.0, 4.0])

    def test_singular_diagonal_names_row(self, name, method, method_inplace, extra):
        A = np.array([[1.0, 2.0, 0.0], [0.0, 3.0, 1.0], [1.0, 1.0, 0.0]])

        with pytest.raises(SingularError, match="row 2") as excinfo:
            method(A, np.ones(3), *extra)

        assert excinfo.value.index == 2

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_residual_decreases_every_sweep(self, name, method, method_inplace, extra, seed):
        A = diagonally_dominant(10, seed)
        b = np.random.default_rng(seed).standard_normal(10)

        _, history = method(A, b, *extra, maxiter=4, tol=0.0, log=True)

        assert history.iterations == 4
        assert np.all(np.diff(history.residuals) < 0)

    def test_converges_on_diagonally_dominant(self, name, method, method_inplace, extra):
        A = diagonally_dominant(12, seed=3)
        b = np.ones(12)

        x, history = method(A, b, *extra, maxiter=100, log=True)

        assert history.is_converged
        assert history.iterations < 100
        assert history.mat_vec_products == history.iterations
        assert relative_residual(A, x, b) < 1e-10

    def test_plain_call_runs_every_sweep(self, name, method, method_inplace, extra):
        A = diagonally_dominant(5, seed=4)
        b = np.ones(5)

        x = method(A, b, *extra, maxiter=3)

        assert isinstance(x, np.ndarray)
        x_logged, history = method(A, b, *extra, maxiter=3, tol=0.0, log=True)
        assert history.iterations == 3
        np.testing.assert_array_equal(x, x_logged)

    def test_function_operator_rejected(self, name, method, method_inplace, extra):
        op = FunctionOperator(3, 3, mul=lambda v: 2 * v)

        with pytest.raises(TypeError, match="explicit matrix"):
            method(op, np.ones(3), *extra)

    def test_sparse_matches_dense(self, name, method, method_inplace, extra):
        A = diagonally_dominant(8, seed=5)
        A[np.abs(A) < 0.5] = 0.0
        b = np.arange(1.0, 9.0)

        x_dense = method(A, b, *extra, maxiter=4)
        x_sparse = method(sp.csr_matrix(A), b, *extra, maxiter=4)

        np.testing.assert_allclose(x_sparse, x_dense, rtol=1e-12, atol=1e-14)

    def test_initial_guess_overwritten(self, name, method, method_inplace, extra):
        A = diagonally_dominant(6, seed=6)
        b = np.ones(6)
        x = np.zeros(6)

        result = method_inplace(x, A, b, *extra, maxiter=2)

        assert result is x
        assert np.any(x != 0)


class TestStationaryAgainstManual:

    def test_jacobi(self):
        A = diagonally_dominant(7, seed=8)
        b = np.random.default_rng(8).standard_normal(7)

        x = jacobi(A, b, maxiter=5)

        np.testing.assert_allclose(x, manual_jacobi(A, b, np.zeros(7), 5), rtol=1e-12, atol=1e-14)

    def test_gauss_seidel(self):
        A = diagonally_dominant(7, seed=9)
        b = np.random.default_rng(9).standard_normal(7)
        x0 = np.linspace(0, 1, 7)

        x = gauss_seidel_inplace(x0.copy(), A, b, maxiter=4)

        np.testing.assert_allclose(x, manual_gauss_seidel(A, b, x0, 4), rtol=1e-12, atol=1e-14)

    def test_sor_with_unit_relaxation_is_gauss_seidel(self):
        A = diagonally_dominant(9, seed=10)
        b = np.ones(9)

        np.testing.assert_allclose(sor(A, b, 1.0, maxiter=6), gauss_seidel(A, b, maxiter=6), rtol=1e-14)

    def test_ssor_is_forward_then_backward_sweep(self):
        A = diagonally_dominant(5, seed=11)
        b = np.ones(5)

        x = ssor(A, b, 1.0, maxiter=1)

        forward = manual_gauss_seidel(A, b, np.zeros(5), 1)
        expected = manual_gauss_seidel(A[::-1, ::-1], b[::-1], forward[::-1], 1)[::-1]
        np.testing.assert_allclose(x, expected, rtol=1e-12, atol=1e-14)


class TestStationaryOptions:

    @pytest.mark.parametrize("omega", [0.0, 2.0, 2.5, -1.0])
    def test_relaxation_outside_range_warns(self, omega):
        A = diagonally_dominant(4, seed=0)
        with pytest.warns(RelaxationWarning):
            sor(A, np.ones(4), omega, maxiter=1)
        with pytest.warns(RelaxationWarning):
            ssor(A, np.ones(4), omega, maxiter=1)

    @pytest.mark.parametrize("method", [sor, sor_inplace, ssor, ssor_inplace])
    def test_relaxation_warning_points_at_caller(self, method):
        A = diagonally_dominant(3, seed=0)
        args = (A, np.ones(3), 2.5) if method in (sor, ssor) else (np.zeros(3), A, np.ones(3), 2.5)

        with pytest.warns(RelaxationWarning) as record:
            method(*args, maxiter=1)

        assert record[0].filename == __file__

    def test_default_sweep_counts(self):
        A = np.diag([1.0, 2.0, 3.0, 4.0])
        A[0, 1] = 0.5
        b = np.ones(4)

        _, h_jacobi = jacobi(A, b, tol=0.0, log=True)
        _, h_ssor = ssor(A, b, 1.0, tol=0.0, log=True)

        assert h_jacobi.iterations == 16
        assert h_ssor.iterations == 4

    def test_non_square_rejected(self):
        with pytest.raises(ValueError):
            gauss_seidel_inplace(np.zeros(3), np.ones((2, 3)), np.ones(2))

    def test_negative_maxiter_rejected(self):
        with pytest.raises(ValueError, match="maxiter"):
            jacobi(np.eye(2), np.ones(2), maxiter=-1)

    def test_method_without_sweep_cannot_be_built(self):
        class NoSweep(StationaryIterable):
            pass

        with pytest.raises(TypeError):
            NoSweep(DenseOperator(np.eye(2)), np.zeros(2), np.ones(2), 1, 0.0, False)
