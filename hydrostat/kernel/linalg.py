# hydrostat/kernel/linalg.py
"""Dense matrix helpers and a partial-pivot Gaussian solver."""

from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np

from .errors import SingularMatrixError, ValidationError

PIVOT_TOLERANCE = 1e-12

# Minimum output rows per thread block
MIN_ROWS_PER_WORKER = 64


def matmul(a: np.ndarray, b: np.ndarray, workers: Optional[int] = None) -> np.ndarray:
    """
    Dense product a @ b, optionally computed in row blocks on a thread pool.

    Each worker owns a disjoint block of output rows, and every block is
    joined before the result is returned, so the caller always sees a
    complete matrix.

    Args:
        a: Left operand (r x k) or vector (k,)
        b: Right operand (k x c) or vector (k,)
        workers: Number of threads; None or 1 computes serially

    Returns:
        The product, same shape as a @ b
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.ndim < 2 or not workers or workers <= 1:
        return a @ b

    rows = a.shape[0]
    n_blocks = min(workers, rows // MIN_ROWS_PER_WORKER)
    if n_blocks <= 1:
        return a @ b

    out_shape = (rows,) + b.shape[1:]
    out = np.empty(out_shape, dtype=float)
    bounds = np.linspace(0, rows, n_blocks + 1, dtype=int)

    def _block(lo: int, hi: int) -> None:
        out[lo:hi] = a[lo:hi] @ b

    with ThreadPoolExecutor(max_workers=n_blocks) as pool:
        futures = [pool.submit(_block, lo, hi) for lo, hi in zip(bounds[:-1], bounds[1:])]
        for future in futures:
            future.result()
    return out


def transpose(a: np.ndarray) -> np.ndarray:
    return np.asarray(a, dtype=float).T


def diagonal(w: np.ndarray) -> np.ndarray:
    """Square matrix with `w` on the diagonal."""
    return np.diag(np.asarray(w, dtype=float))


def add_identity(m: np.ndarray, eps: float) -> np.ndarray:
    """Return m + eps·I (m is not modified)."""
    m = np.array(m, dtype=float)
    m[np.diag_indices_from(m)] += eps
    return m


def gaussian_solve(A: np.ndarray, b: np.ndarray, pivot_tol: float = PIVOT_TOLERANCE) -> np.ndarray:
    """
    Solve A·x = b by Gaussian elimination with partial pivoting.

    At column k the row with the largest |A[i, k]| (i >= k) is swapped into
    the pivot position. If that largest magnitude is below `pivot_tol` the
    matrix is treated as singular.

    Args:
        A: Square matrix (n x n)
        b: Right-hand side (n,)
        pivot_tol: Smallest acceptable pivot magnitude

    Returns:
        x: Solution vector (n,)

    Raises:
        ValidationError: If A is not square or b does not match
        SingularMatrixError: If a pivot falls below pivot_tol
    """
    mat = np.array(A, dtype=float)
    rhs = np.array(b, dtype=float)

    if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
        raise ValidationError(f"A must be square, got shape {mat.shape}.")
    n = mat.shape[0]
    if rhs.shape != (n,):
        raise ValidationError(f"b must have shape ({n},), got {rhs.shape}.")

    for k in range(n):
        # Partial pivot
        max_row = k + int(np.argmax(np.abs(mat[k:, k])))
        max_val = abs(mat[max_row, k])
        if max_val < pivot_tol:
            raise SingularMatrixError(
                f"Matrix is singular or near-singular (pivot {max_val:.2e} at column {k}, "
                f"tolerance {pivot_tol:.0e})."
            )
        if max_row != k:
            mat[[k, max_row], k:] = mat[[max_row, k], k:]
            rhs[[k, max_row]] = rhs[[max_row, k]]

        # Eliminate below the pivot
        factors = mat[k + 1:, k] / mat[k, k]
        mat[k + 1:, k + 1:] -= np.outer(factors, mat[k, k + 1:])
        mat[k + 1:, k] = 0.0
        rhs[k + 1:] -= factors * rhs[k]

    # Back substitution
    x = np.zeros(n, dtype=float)
    for i in range(n - 1, -1, -1):
        x[i] = (rhs[i] - mat[i, i + 1:] @ x[i + 1:]) / mat[i, i]
    return x
