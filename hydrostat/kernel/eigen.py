# hydrostat/kernel/eigen.py
"""
SYMMETRIC 3×3 EIGENSOLVER AND BEST-FIT PLANE NORMALS
====================================================

PURPOSE:
--------
A face of k >= 3 points is "planar" when every point lies on the best-fit
plane through the centroid. That plane's normal is the eigenvector of the
smallest eigenvalue of the centroid-relative covariance:

    r_v = p_v - c,      C = (1/d) Σ_v r_v r_vᵀ,      d = max(1, k - 1)
    C e_i = λ_i e_i,    λ_0 <= λ_1 <= λ_2,           n = e_0

Constraint Jacobians need derivatives of n. For a symmetric matrix with
distinct eigenvalues, first-order perturbation theory gives

    dn = Σ_{k≠0} e_k (e_kᵀ dC n) / (λ_0 - λ_k)

and the same formula differentiated once more in time gives the mixed
second derivative ∂²n/∂x∂t used by Jacobian time-derivatives.

Nothing here knows about meshes: `normal_derivatives` takes the covariance
and its derivatives with respect to an arbitrary parameter vector x (P
entries) and with respect to time, so it can be checked against finite
differences on its own.

SIGN:
-----
An eigenvector is only defined up to sign. Normals are oriented so their
largest-magnitude component is positive, and every derivative returned with
a normal is flipped with it.
"""

import numpy as np
from typing import Tuple

from .errors import NumericalError, ValidationError

MAX_SWEEPS = 50
OFF_DIAGONAL_TOL = 1e-10
GAP_EPS = np.finfo(float).eps


def jacobi_eigh3(
    A: np.ndarray,
    max_sweeps: int = MAX_SWEEPS,
    tol: float = OFF_DIAGONAL_TOL
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Eigen-decomposition of a symmetric 3×3 matrix by Jacobi rotations.

    Each sweep picks the largest off-diagonal entry (p, q) and applies the
    plane rotation that zeroes it:

        θ = ½·atan2(2·a_pq, a_qq - a_pp),    A ← GᵀAG,    V ← VG

    Iteration stops once every off-diagonal magnitude is below `tol`.
    Eigenvalues are then put in ascending order by insertion sort, carrying
    their eigenvector columns along.

    Args:
        A: Symmetric 3×3 matrix
        max_sweeps: Maximum number of rotations
        tol: Off-diagonal convergence threshold

    Returns:
        evals: Eigenvalues, ascending (3,)
        evecs: Eigenvectors as columns (3, 3); evecs[:, i] pairs with evals[i]

    Raises:
        ValidationError: If A is not 3×3
        NumericalError: If the rotations do not converge or produce non-finite values
    """
    m = np.array(A, dtype=float)
    if m.shape != (3, 3):
        raise ValidationError(f"Expected a 3x3 matrix, got shape {m.shape}.")
    if not np.all(np.isfinite(m)):
        raise NumericalError("Eigensolve input contains non-finite entries.")

    m = 0.5 * (m + m.T)
    v = np.eye(3)
    pairs = ((0, 1), (0, 2), (1, 2))

    for _ in range(max_sweeps):
        p, q = max(pairs, key=lambda pq: abs(m[pq]))
        if abs(m[p, q]) < tol:
            break
        theta = 0.5 * np.arctan2(2.0 * m[p, q], m[q, q] - m[p, p])
        c = np.cos(theta)
        s = np.sin(theta)

        G = np.eye(3)
        G[p, p] = c
        G[q, q] = c
        G[p, q] = s
        G[q, p] = -s

        m = G.T @ m @ G
        m[p, q] = 0.0
        m[q, p] = 0.0
        v = v @ G
    else:
        off = max(abs(m[0, 1]), abs(m[0, 2]), abs(m[1, 2]))
        if off > tol * max(1.0, np.linalg.norm(A)):
            raise NumericalError(
                f"Jacobi eigensolve did not converge in {max_sweeps} sweeps "
                f"(off-diagonal {off:.2e})."
            )

    evals = np.diag(m).copy()
    evecs = v

    # Insertion sort, ascending
    for i in range(1, 3):
        j = i
        while j > 0 and evals[j] < evals[j - 1]:
            evals[[j - 1, j]] = evals[[j, j - 1]]
            evecs[:, [j - 1, j]] = evecs[:, [j, j - 1]]
            j -= 1

    if not (np.all(np.isfinite(evals)) and np.all(np.isfinite(evecs))):
        raise NumericalError("Jacobi eigensolve produced non-finite values.")
    return evals, evecs


def covariance(points: np.ndarray) -> np.ndarray:
    """
    Centroid-relative covariance of k points, normalized by max(1, k - 1).

    Args:
        points: (k, 3) array

    Returns:
        C: (3, 3) symmetric matrix
    """
    points = np.asarray(points, dtype=float)
    rel = points - points.mean(axis=0)
    dof = max(1, points.shape[0] - 1)
    return rel.T @ rel / dof


def _orientation(normal: np.ndarray) -> float:
    """+1 or -1 so that the largest-magnitude component comes out positive."""
    return 1.0 if normal[int(np.argmax(np.abs(normal)))] >= 0.0 else -1.0


def best_fit_normal(points: np.ndarray) -> np.ndarray:
    """
    Unit normal of the least-squares plane through a set of points.

    Args:
        points: (k, 3) array, k >= 3

    Returns:
        Unit normal (3,), oriented with its largest component positive

    Raises:
        ValidationError: If fewer than 3 points are given
    """
    points = np.asarray(points, dtype=float)
    if points.ndim != 2 or points.shape[1] != 3 or points.shape[0] < 3:
        raise ValidationError(
            f"A best-fit plane needs at least 3 points in 3D, got shape {points.shape}."
        )
    _, evecs = jacobi_eigh3(covariance(points))
    normal = evecs[:, 0] / np.linalg.norm(evecs[:, 0])
    return _orientation(normal) * normal


def _inv_gap(gap: float) -> float:
    """1/gap, or 0 when the eigenvalues are degenerate."""
    return 0.0 if abs(gap) < GAP_EPS else 1.0 / gap


def normal_derivatives(
    cov: np.ndarray,
    dcov_dx: np.ndarray,
    dcov_dt: np.ndarray,
    d2cov_dxdt: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Smallest-eigenvalue eigenvector of a covariance and its derivatives.

    With eigenpairs (λ_k, e_k), n = e_0, A_p = ∂C/∂x_p, Ċ = ∂C/∂t,
    Ȧ_p = ∂²C/∂x_p∂t, gaps g_k = λ_0 - λ_k and couplings c_jk = e_jᵀ Ċ e_k:

        ∂n/∂x_p = Σ_{k=1,2} e_k s_kp / g_k,        s_kp = e_kᵀ A_p n
        ∂n/∂t   = Σ_{k=1,2} e_k c_k0 / g_k
        ė_k     = Σ_{j≠k}   e_j c_jk / (λ_k - λ_j)
        ġ_k     = c_00 - c_kk

        ∂²n/∂x_p∂t = Σ_{k=1,2} [ ė_k s_kp / g_k
                               + e_k (ė_kᵀ A_p n) / g_k
                               + e_k (e_kᵀ Ȧ_p n) / g_k
                               + e_k (e_kᵀ A_p ṅ) / g_k
                               - e_k s_kp ġ_k / g_k² ]

    In the first two terms the parts of ė_1 and ė_2 that couple e_1 with
    e_2 carry 1/(λ_1 - λ_2), which is unbounded for a face whose in-plane
    spread is isotropic (a square). Summed over k they reduce exactly to

        c_12 (e_1 s_2p + e_2 s_1p) / (g_1 g_2)

    which is used instead. Every 1/gap whose gap is below machine epsilon
    is taken as zero.

    Args:
        cov: Covariance (3, 3)
        dcov_dx: ∂C/∂x_p for each parameter, (P, 3, 3)
        dcov_dt: ∂C/∂t, (3, 3)
        d2cov_dxdt: ∂²C/∂x_p∂t for each parameter, (P, 3, 3)

    Returns:
        normal: (3,)
        dnormal_dx: (P, 3), row p is ∂n/∂x_p
        dnormal_dt: (3,)
        d2normal_dxdt: (P, 3), row p is ∂²n/∂x_p∂t
    """
    dcov_dx = np.asarray(dcov_dx, dtype=float)
    dcov_dt = np.asarray(dcov_dt, dtype=float)
    d2cov_dxdt = np.asarray(d2cov_dxdt, dtype=float)
    if dcov_dx.ndim != 3 or dcov_dx.shape[1:] != (3, 3) or d2cov_dxdt.shape != dcov_dx.shape:
        raise ValidationError(
            f"Covariance derivatives must be (P, 3, 3) and match, got {dcov_dx.shape} "
            f"and {d2cov_dxdt.shape}."
        )
    if dcov_dt.shape != (3, 3):
        raise ValidationError(f"dcov_dt must be 3x3, got shape {dcov_dt.shape}.")

    evals, evecs = jacobi_eigh3(cov)
    e = [evecs[:, k] for k in range(3)]
    n = e[0]
    coupling = evecs.T @ dcov_dt @ evecs          # c_jk
    inv_g = [0.0] + [_inv_gap(evals[0] - evals[k]) for k in (1, 2)]

    n_dot = sum(e[k] * coupling[k, 0] * inv_g[k] for k in (1, 2))

    An = np.einsum('pij,j->pi', dcov_dx, n)
    Adot_n = np.einsum('pij,j->pi', d2cov_dxdt, n)
    A_ndot = np.einsum('pij,j->pi', dcov_dx, n_dot)
    s = {k: An @ e[k] for k in (1, 2)}

    P = dcov_dx.shape[0]
    dn_dx = np.zeros((P, 3))
    d2n_dxdt = np.zeros((P, 3))
    for k in (1, 2):
        g_dot = coupling[0, 0] - coupling[k, k]
        # Part of ė_k along e_0
        e_dot_k = e[0] * coupling[0, k] * _inv_gap(evals[k] - evals[0])

        dn_dx += np.outer(s[k] * inv_g[k], e[k])

        d2n_dxdt += np.outer(s[k] * inv_g[k], e_dot_k)
        d2n_dxdt += np.outer((An @ e_dot_k) * inv_g[k], e[k])
        d2n_dxdt += np.outer((Adot_n @ e[k]) * inv_g[k], e[k])
        d2n_dxdt += np.outer((A_ndot @ e[k]) * inv_g[k], e[k])
        d2n_dxdt -= np.outer(s[k] * g_dot * inv_g[k] ** 2, e[k])

    # e_1/e_2 coupling of the first two terms, summed over k
    cross = coupling[1, 2] * inv_g[1] * inv_g[2]
    d2n_dxdt += cross * (np.outer(s[2], e[1]) + np.outer(s[1], e[2]))

    sign = _orientation(n)
    return sign * n, sign * dn_dx, sign * n_dot, sign * d2n_dxdt
