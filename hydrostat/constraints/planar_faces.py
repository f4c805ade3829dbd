# hydrostat/constraints/planar_faces.py
"""
PLANAR FACES: Signed Distance to the Best-Fit Plane
===================================================

PURPOSE:
--------
Keeps every k-gon face flat. For a face with vertices p_0..p_{k-1}:

    c   = (1/k) Σ p_v                     centroid
    r_v = p_v - c                          relative positions
    C   = (1/d) Σ r_v r_vᵀ,  d = max(1, k-1)
    n   = eigenvector of the smallest eigenvalue of C

and row v of the face is the signed distance g_v = r_v · n. A flat face
has g_v = 0 for every vertex, whatever its position or in-plane rotation.

DERIVATIVES:
------------
With x_(w,b) the b-th coordinate of face vertex w:

    ∂r_v/∂x_(w,b) = (δ_vw - 1/k) e_b
    ∂C/∂x_(w,b)   = (e_b r_wᵀ + r_w e_bᵀ) / d      (Σ r_v = 0 removes the
                                                   centroid terms)
    ∂g_v/∂x_(w,b) = (δ_vw - 1/k) n_b + r_v · ∂n/∂x_(w,b)

and, differentiating once more in time with ṙ_v = v_v - mean(v),

    d/dt ∂g_v/∂x_(w,b) = (δ_vw - 1/k) ṅ_b + ṙ_v · ∂n/∂x_(w,b)
                         + r_v · ∂²n/∂x_(w,b)∂t

The normal and its derivatives come from
`hydrostat.kernel.eigen.normal_derivatives`, which only sees the covariance
and its derivatives.
"""

import logging

import numpy as np

from .base import Constraint, ConstraintOutput
from ..kernel.eigen import normal_derivatives
from ..kernel.errors import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

_AXES = np.eye(3)


def covariance_derivatives(rel: np.ndarray, rel_dot: np.ndarray):
    """
    Covariance of a face and its derivatives with respect to the face's own
    vertex coordinates and time.

    Args:
        rel: (k, 3) centroid-relative positions
        rel_dot: (k, 3) centroid-relative velocities

    Returns:
        cov: (3, 3)
        dcov_dx: (3k, 3, 3), parameter index 3*w + b
        dcov_dt: (3, 3)
        d2cov_dxdt: (3k, 3, 3)
    """
    k = rel.shape[0]
    d = max(1, k - 1)

    cov = rel.T @ rel / d
    dcov_dt = (rel_dot.T @ rel + rel.T @ rel_dot) / d

    def _sym(vectors):
        outer = np.einsum('bi,wj->wbij', _AXES, vectors)
        return (outer + outer.transpose(0, 1, 3, 2)).reshape(3 * k, 3, 3) / d

    return cov, _sym(rel), dcov_dt, _sym(rel_dot)


class PlanarFaces(Constraint):
    """
    Keeps every face of the topology planar; one row per face vertex.

    Rows are ordered face by face, vertices in face order.
    """

    kind = "planar_faces"

    def _capture(self, particles) -> None:
        faces = particles.topology.faces
        if len(faces) == 0:
            raise ConfigurationError("PlanarFaces needs a topology with at least one face.")
        if faces.shape[1] < 3:
            raise ValidationError(f"PlanarFaces needs faces of 3 or more vertices, got {faces.shape[1]}.")
        if faces.shape[1] == 3:
            logger.warning("PlanarFaces: triangular faces are always planar; the constraint is inert.")

    def evaluate(self, positions: np.ndarray, velocities: np.ndarray) -> ConstraintOutput:
        positions, velocities = self._check_state(positions, velocities)
        faces = self.particles.topology.faces
        n = self.n_vertices
        n_faces, k = faces.shape
        m = n_faces * k

        values = np.zeros(m)
        jacobian = np.zeros((m, n, 3))
        jacobian_dot = np.zeros((m, n, 3))
        centering = np.eye(k) - 1.0 / k

        for f, face in enumerate(faces):
            points = positions[face]
            rates = velocities[face]
            rel = points - points.mean(axis=0)
            rel_dot = rates - rates.mean(axis=0)

            normal, dn_dx, dn_dt, d2n_dxdt = normal_derivatives(
                *covariance_derivatives(rel, rel_dot)
            )
            dn_dx = dn_dx.reshape(k, 3, 3)            # [w, b, :]
            d2n_dxdt = d2n_dxdt.reshape(k, 3, 3)

            # [v, w, b]
            J = centering[:, :, None] * normal + np.einsum('vi,wbi->vwb', rel, dn_dx)
            J_dot = (centering[:, :, None] * dn_dt
                     + np.einsum('vi,wbi->vwb', rel_dot, dn_dx)
                     + np.einsum('vi,wbi->vwb', rel, d2n_dxdt))

            rows = slice(f * k, (f + 1) * k)
            values[rows] = rel @ normal
            for w, vertex in enumerate(face):
                jacobian[rows, vertex] += J[:, w]
                jacobian_dot[rows, vertex] += J_dot[:, w]

        return ConstraintOutput(values, jacobian, jacobian_dot)

    def __repr__(self) -> str:
        if not self.initialized:
            return "PlanarFaces()"
        faces = self.particles.topology.faces
        return f"PlanarFaces(faces={faces.shape[0]}, arity={faces.shape[1]})"
