"""
Tests for ConvergenceHistory.
"""

import numpy as np
import pytest

from iterative_solvers import ConvergenceHistory


class TestConvergenceHistory:

    def test_fresh_history(self):
        history = ConvergenceHistory()

        assert not history.is_converged
        assert history.iterations == 0
        assert len(history) == 0
        assert np.isnan(history.residual_norm)
        assert history.residuals.size == 0

    def test_push_records_trace(self):
        history = ConvergenceHistory()
        for r in [1.0, 0.5, 0.25]:
            history.push(r)

        assert history.iterations == 3
        np.testing.assert_array_equal(history.residuals, [1.0, 0.5, 0.25])
        assert history.residual_norm == 0.25

    def test_push_vector_stores_its_norm(self):
        history = ConvergenceHistory()
        history.push(np.array([3.0, 4.0]))

        assert history.residuals[0] == pytest.approx(5.0)

    def test_buffer_grows_past_reservation(self):
        history = ConvergenceHistory().reserve(2)
        for i in range(20):
            history.push(float(i))

        assert history.iterations == 20
        np.testing.assert_array_equal(history.residuals, np.arange(20.0))

    def test_shrink_keeps_trace(self):
        history = ConvergenceHistory().reserve(100)
        history.push(2.0).push(1.0)
        history.shrink()

        assert history._residuals.size == 2
        np.testing.assert_array_equal(history.residuals, [2.0, 1.0])

    def test_residuals_are_read_only(self):
        history = ConvergenceHistory()
        history.push(1.0)

        with pytest.raises(ValueError):
            history.residuals[0] = 3.0

    def test_partial_keeps_counters_only(self):
        history = ConvergenceHistory(partial=True)
        history.reserve(10)
        history.push(1.0).push(0.1)

        assert history.iterations == 2
        assert history.residual_norm == pytest.approx(0.1)
        assert history.residuals.size == 0

    def test_clear(self):
        history = ConvergenceHistory(tolerance=1e-6)
        history.push(1.0)
        history.is_converged = True
        history.mat_vec_products = 4

        history.clear()

        assert history.iterations == 0
        assert history.mat_vec_products == 0
        assert not history.is_converged
        assert history.tolerance == 1e-6

    def test_str(self):
        history = ConvergenceHistory(is_converged=True, tolerance=1e-8, mat_vec_products=7)
        history.push(1e-9)

        text = str(history)
        assert text.startswith("Converged in 1 iterations")
        assert "Matrix-vector products: 7" in text
        assert "Not converged" in str(ConvergenceHistory())

    def test_to_dict(self):
        history = ConvergenceHistory(tolerance=0.5, mat_vec_products=3)
        history.push(1.0).push(0.4)
        history.is_converged = True

        assert history.to_dict() == {
            "converged": True,
            "niter": 2,
            "residual_norm": 0.4,
            "tolerance": 0.5,
            "mvps": 3,
            "residuals": [1.0, 0.4],
        }
