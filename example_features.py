"""
Example demonstrating the features of the iterative_solvers package.
"""

import logging

import numpy as np
import scipy.linalg as sla
from iterative_solvers import (
    FunctionOperator, IterativeSolver, SingularError, SolverRegistry,
    bicgstabl, cg, cg_iterator, gauss_seidel, ilu_preconditioner,
    invpowm, poisson_2d, powm, solve,
)


def example_solve_with_history():
    """Example using solve() and its ConvergenceHistory."""
    print("=" * 70)
    print("Example 1: solve() with ConvergenceHistory")
    print("=" * 70)

    A = poisson_2d(100, 100)
    b = np.random.rand(A.shape[0])

    x, history = solve(A, b, method="bicgstabl", l=4, max_mv_products=2000, seed=0)

    print(f"Converged: {history.is_converged}")
    print(f"Iterations: {history.iterations}")
    print(f"Matrix-vector products: {history.mat_vec_products}")
    print(f"Residual norm: {history.residual_norm:.2e}")
    print(f"True residual: {np.linalg.norm(b - A @ x):.2e}")
    print()
    print("Full history object:")
    print(history)
    print()


def example_reusable_solver():
    """Example reusing one configured solver and one ILU factorization."""
    print("=" * 70)
    print("Example 2: IterativeSolver with a shared ILU preconditioner")
    print("=" * 70)

    A = poisson_2d(80, 80)
    Pl = ilu_preconditioner(A, drop_tol=1e-4, fill_factor=10.0)
    solver = IterativeSolver("cg", Pl=Pl, maxiter=500)

    for k in range(3):
        b = np.random.rand(A.shape[0])
        x, history = solver.solve(A, b)
        print(f"  Right-hand side {k + 1}: {history.iterations} iterations, "
              f"residual {history.residual_norm:.2e}")
    print()


def example_stepping():
    """Example driving an iteration state by hand."""
    print("=" * 70)
    print("Example 3: Stepping through CG")
    print("=" * 70)

    A = poisson_2d(60, 60)
    b = np.random.rand(A.shape[0])
    x = np.zeros(A.shape[0])

    iterable = cg_iterator(x, A, b, initially_zero=True)
    for residual in iterable:
        if iterable.iteration % 10 == 0:
            print(f"  Iteration {iterable.iteration}: residual = {residual:.2e}")
        if iterable.iteration == 50:
            break

    print(f"\nPaused after {iterable.iteration} iterations, resuming...")
    remaining = sum(1 for _ in iterable)
    print(f"Converged after {remaining} more iterations: {iterable.converged()}")
    print()


def example_function_operator():
    """Example using an operator and a preconditioner defined by functions."""
    print("=" * 70)
    print("Example 4: Matrix-free operator")
    print("=" * 70)

    n = 2000
    # 1D convection-diffusion stencil, never stored
    def mul(v):
        w = 2.2 * v
        w[1:] -= 1.1 * v[:-1]
        w[:-1] -= 0.9 * v[1:]
        return w

    A = FunctionOperator(n, n, mul=mul)
    b = np.ones(n)

    x, history = bicgstabl(A, b, 2, Pl=lambda v: v / 2.2, max_mv_products=4 * n,
                           convex_combination=True, seed=1, log=True)

    print(f"Converged: {history.is_converged}")
    print(f"Matrix-vector products: {history.mat_vec_products}")
    print()


def example_stationary():
    """Example showing stationary methods and their diagonal check."""
    print("=" * 70)
    print("Example 5: Stationary methods")
    print("=" * 70)

    A = poisson_2d(20, 20)
    b = np.random.rand(A.shape[0])
    for method, options in [("jacobi", {}), ("gauss_seidel", {}), ("sor", {"omega": 1.7})]:
        x, history = solve(A, b, method=method, maxiter=2000, tol=1e-8, **options)
        print(f"  {method:<14} {history.iterations:>6} sweeps, converged: {history.is_converged}")

    try:
        gauss_seidel(np.array([[0.0, 1.0], [1.0, 0.0]]), np.ones(2))
    except SingularError as e:
        print(f"\nZero diagonal detected in row {e.index}: {e}")
    print()


def example_eigenvalues():
    """Example finding eigenvalues with the power method."""
    print("=" * 70)
    print("Example 6: Power and inverse power method")
    print("=" * 70)

    A = poisson_2d(15, 15).toarray()
    eig, x, history = powm(A, tol=1e-6, maxiter=2000, seed=0, log=True)
    print(f"Largest eigenvalue: {eig:.6f} ({history.iterations} iterations)")

    shift = 0.1
    lu = sla.lu_factor(A - shift * np.eye(A.shape[0]))
    Ainv = FunctionOperator(A.shape[0], A.shape[0], mul=lambda v: sla.lu_solve(lu, v))
    eig, x, history = invpowm(Ainv, shift=shift, tol=1e-8, maxiter=200, seed=0, log=True)
    print(f"Eigenvalue closest to {shift}: {eig:.6f} ({history.iterations} iterations)")
    print(f"Reference: {np.linalg.eigvalsh(A)[0]:.6f}")
    print()


def example_tolerance_control():
    """Example showing tolerance control and verbose output."""
    print("=" * 70)
    print("Example 7: Tolerance and Iteration Control")
    print("=" * 70)

    A = poisson_2d(80, 80)
    b = np.random.rand(A.shape[0])

    configs = [
        {"reltol": 1e-6, "name": "reltol=1e-6"},
        {"reltol": 1e-8, "name": "reltol=1e-8"},
        {"reltol": 1e-10, "name": "reltol=1e-10"},
        {"tol": 1e-3, "reltol": 0.0, "name": "tol=1e-3"},
    ]

    print(f"Available methods: {', '.join(SolverRegistry.list_methods())}\n")
    print(f"{'Configuration':<20} {'Iterations':<12} {'Residual':<15}")
    print("-" * 70)

    for config in configs:
        x, history = solve(A, b, method="cg", maxiter=1000,
                           **{k: v for k, v in config.items() if k != "name"})
        print(f"{config['name']:<20} {history.iterations:<12} {history.residual_norm:<15.2e}")

    print("\nVerbose run:")
    cg(poisson_2d(4, 4), np.ones(16), verbose=True)
    print()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    example_solve_with_history()
    example_reusable_solver()
    example_stepping()
    example_function_operator()
    example_stationary()
    example_eigenvalues()
    example_tolerance_control()
