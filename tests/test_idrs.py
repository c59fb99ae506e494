"""
Tests for IDR(s).
"""

import numpy as np
import pytest

from conftest import random_nonsymmetric, relative_residual
from iterative_solvers import IDRSIterable, idrs, idrs_inplace, idrs_iterator, poisson_2d
from iterative_solvers.idrs import omega


class TestIDRSConvergence:

    @pytest.mark.parametrize("s", [1, 2, 4, 8])
    def test_nonsymmetric(self, s):
        A = random_nonsymmetric(30, seed=s)
        b = np.ones(30)

        x, history = idrs(A, b, s, reltol=1e-10, maxiter=200, seed=0, log=True)

        assert history.is_converged
        assert relative_residual(A, x, b) < 1e-8

    def test_complex(self, rng):
        n = 20
        A = random_nonsymmetric(n, seed=2) + 1j * rng.standard_normal((n, n)) / np.sqrt(n)
        b = rng.standard_normal(n) + 1j * rng.standard_normal(n)

        x, history = idrs(A, b, 4, reltol=1e-10, maxiter=200, seed=1, log=True)

        assert x.dtype == np.complex128
        assert history.is_converged
        assert relative_residual(A, x, b) < 1e-8

    def test_sparse_poisson(self):
        A = poisson_2d(10, 10)
        b = np.ones(A.shape[0])
        x, history = idrs(A, b, 4, seed=3, log=True)

        assert history.is_converged
        assert relative_residual(A, x, b) < 1e-7

    def test_nonzero_initial_guess(self):
        A = random_nonsymmetric(15, seed=4)
        b = np.ones(15)
        x0 = np.full(15, 0.5)

        x, history = idrs_inplace(x0, A, b, 2, seed=0, log=True)

        assert x is x0
        assert history.is_converged
        assert relative_residual(A, x, b) < 1e-7


class TestIDRSHistory:

    def test_one_product_per_iteration(self):
        A = random_nonsymmetric(20, seed=5)
        b = np.ones(20)

        _, h_zero = idrs(A, b, 3, seed=0, log=True)
        _, h_full = idrs_inplace(np.zeros(20), A, b, 3, seed=0, log=True)

        assert h_zero.mat_vec_products == h_zero.iterations
        assert h_full.mat_vec_products == h_full.iterations + 1

    def test_trace_matches_true_residual(self):
        A = random_nonsymmetric(25, seed=6)
        b = np.linspace(1, 2, 25)
        x, history = idrs(A, b, 4, seed=2, log=True)

        assert len(history.residuals) == history.iterations
        assert history.residuals[-1] == pytest.approx(np.linalg.norm(b - A @ x), rel=1e-3, abs=1e-12)

    def test_tolerance_is_relative_to_rhs(self):
        A = random_nonsymmetric(10, seed=7)
        b = 100 * np.ones(10)
        _, history = idrs(A, b, 2, reltol=1e-6, seed=0, log=True)

        assert history.tolerance == pytest.approx(1e-6 * np.linalg.norm(b))
        assert history.residual_norm < history.tolerance

    def test_budget_exhausted(self):
        A = poisson_2d(10, 10)
        b = np.ones(A.shape[0])
        x, history = idrs(A, b, 4, maxiter=3, seed=0, log=True)

        assert not history.is_converged
        assert history.iterations == 3
        assert history.mat_vec_products == 3
        assert np.all(np.isfinite(x))

    def test_zero_rhs_converges_immediately(self):
        A = random_nonsymmetric(10, seed=1)
        x, history = idrs(A, np.zeros(10), 2, seed=0, maxiter=5, log=True)

        assert history.is_converged
        assert history.iterations == 0
        assert history.mat_vec_products == 0
        assert np.all(x == 0)

    def test_exact_initial_guess_converges_immediately(self):
        A = np.diag([2.0, 3.0, 4.0])
        x, history = idrs_inplace(np.ones(3), A, np.array([2.0, 3.0, 4.0]), 2, seed=0, log=True)

        assert history.is_converged
        assert history.iterations == 0
        np.testing.assert_array_equal(x, np.ones(3))

    def test_same_seed_same_result(self):
        A = random_nonsymmetric(20, seed=8)
        b = np.ones(20)
        x1, h1 = idrs(A, b, 4, seed=11, log=True)
        x2, h2 = idrs(A, b, 4, seed=11, log=True)

        assert np.array_equal(x1, x2)
        assert np.array_equal(h1.residuals, h2.residuals)


class TestIDRSState:

    def test_reused_shadow_space(self):
        A = random_nonsymmetric(16, seed=9)
        b = np.ones(16)
        P = np.random.default_rng(0).random((4, 16))

        x1 = idrs(A, b, 4, shadow_space=P)
        x2 = idrs(A, b, 4, shadow_space=P.copy())

        assert np.array_equal(x1, x2)

    def test_shadow_space_shape_checked(self):
        with pytest.raises(ValueError, match="shadow_space"):
            idrs(np.eye(6), np.ones(6), 2, shadow_space=np.ones((3, 6)))

    def test_s_must_be_positive(self):
        with pytest.raises(ValueError, match="s must be"):
            idrs(np.eye(4), np.ones(4), 0)

    def test_omega_step_every_s_plus_one_iterations(self):
        A = random_nonsymmetric(30, seed=10)
        b = np.ones(30)
        it = idrs_iterator(np.zeros(30), A, b, 3, initially_zero=True, seed=0)

        assert isinstance(it, IDRSIterable)
        ks = []
        for _ in range(8):
            ks.append(it.k)
            it.advance()

        assert ks == [0, 1, 2, 3, 0, 1, 2, 3]

    def test_default_budget(self):
        it = idrs_iterator(np.zeros(7), np.eye(7), np.ones(7))
        assert it.maxiter == 49


class TestOmega:

    def test_parallel_vectors(self):
        t = np.array([1.0, 2.0, 3.0])
        assert omega(t, 2 * t) == pytest.approx(2.0)

    def test_small_angle_is_enlarged(self):
        t = np.array([1.0, 0.0])
        s = np.array([1.0, 2.0])
        # cos = 1/sqrt(5) is below sqrt(2)/2, so <t,s>/|t|^2 = 1 is scaled by sqrt(10)/2
        assert omega(t, s) == pytest.approx(np.sqrt(10) / 2)
