# tests/test_linalg.py
"""
LINEAR ALGEBRA KERNEL
=====================

The reaction-force solve rests on two primitives: a dense product that may
be split across threads, and Gaussian elimination with partial pivoting.
Both are checked against numpy / scipy.
"""

import numpy as np
import pytest
import scipy.linalg

from hydrostat.kernel.errors import NumericalError, SingularMatrixError, ValidationError
from hydrostat.kernel.linalg import add_identity, diagonal, gaussian_solve, matmul, transpose


class TestMatmul:

    def test_serial_matches_numpy(self):
        rng = np.random.default_rng(0)
        a = rng.normal(size=(5, 4))
        b = rng.normal(size=(4, 3))
        np.testing.assert_allclose(matmul(a, b), a @ b)

    def test_parallel_matches_numpy(self):
        """Row blocks on a thread pool assemble into the same product."""
        rng = np.random.default_rng(1)
        a = rng.normal(size=(300, 40))
        b = rng.normal(size=(40, 25))
        out = matmul(a, b, workers=4)
        assert out.shape == (300, 25)
        np.testing.assert_allclose(out, a @ b, rtol=1e-12, atol=1e-12)

    def test_parallel_matrix_vector(self):
        rng = np.random.default_rng(2)
        a = rng.normal(size=(256, 10))
        x = rng.normal(size=10)
        np.testing.assert_allclose(matmul(a, x, workers=3), a @ x, rtol=1e-12, atol=1e-12)

    def test_small_input_falls_back_to_serial(self):
        a = np.arange(6.0).reshape(2, 3)
        b = np.ones((3, 2))
        np.testing.assert_allclose(matmul(a, b, workers=8), a @ b)


class TestHelpers:

    def test_transpose_and_diagonal(self):
        a = np.arange(6.0).reshape(2, 3)
        np.testing.assert_array_equal(transpose(a), a.T)
        np.testing.assert_array_equal(diagonal([1.0, 2.0]), np.diag([1.0, 2.0]))

    def test_add_identity_returns_copy(self):
        m = np.ones((3, 3))
        out = add_identity(m, 0.5)
        np.testing.assert_allclose(np.diag(out), 1.5)
        np.testing.assert_allclose(m, 1.0)


class TestGaussianSolve:

    def test_matches_scipy(self):
        rng = np.random.default_rng(3)
        A = rng.normal(size=(8, 8)) + 8 * np.eye(8)
        b = rng.normal(size=8)
        np.testing.assert_allclose(gaussian_solve(A, b), scipy.linalg.solve(A, b), rtol=1e-10)

    def test_needs_pivoting(self):
        """A zero on the leading diagonal is fine once rows are swapped."""
        A = np.array([[0.0, 2.0, 1.0],
                      [1.0, 1.0, 0.0],
                      [3.0, 0.0, 1.0]])
        b = np.array([3.0, 2.0, 4.0])
        x = gaussian_solve(A, b)
        np.testing.assert_allclose(A @ x, b, atol=1e-12)

    def test_inputs_not_modified(self):
        A = np.array([[0.0, 1.0], [2.0, 3.0]])
        b = np.array([1.0, 2.0])
        A0, b0 = A.copy(), b.copy()
        gaussian_solve(A, b)
        np.testing.assert_array_equal(A, A0)
        np.testing.assert_array_equal(b, b0)

    def test_singular_raises(self):
        A = np.array([[1.0, 2.0], [2.0, 4.0]])
        with pytest.raises(SingularMatrixError):
            gaussian_solve(A, np.array([1.0, 2.0]))

    def test_singular_is_numerical_error(self):
        with pytest.raises(NumericalError):
            gaussian_solve(np.zeros((3, 3)), np.ones(3))

    def test_pivot_tolerance_is_respected(self):
        A = np.diag([1.0, 1e-9])
        gaussian_solve(A, np.ones(2))
        with pytest.raises(SingularMatrixError):
            gaussian_solve(A, np.ones(2), pivot_tol=1e-8)

    def test_shape_validation(self):
        with pytest.raises(ValidationError):
            gaussian_solve(np.ones((2, 3)), np.ones(2))
        with pytest.raises(ValidationError):
            gaussian_solve(np.eye(3), np.ones(2))
