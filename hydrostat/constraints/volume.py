# hydrostat/constraints/volume.py
"""
CONSTANT VOLUME: One Row per Closed Cell
========================================

A cell's volume is measured from its apex a: every boundary triangle
(i, j, k) forms a tetrahedron with the apex, and with apex-relative
corners r_x = p_x - a the triangle contributes the scalar triple product

    V_t = r_i · (r_j × r_k)

(six times the tetrahedron's geometric volume; the factor is irrelevant
because only differences from the reference are enforced).

Differentiating V_t, the gradient at each corner is the cross product of the
other two corners, the cofactor:

    ∂V_t/∂p_i = r_j × r_k,   ∂V_t/∂p_j = r_k × r_i,   ∂V_t/∂p_k = r_i × r_j

Volume does not change when every vertex moves together, so the apex
gradient is the negated sum of all other gradients. The Jacobian time
derivative follows from the product rule with relative velocities
u_x = v_x - v_a, e.g. d/dt (r_j × r_k) = u_j × r_k + r_j × u_k.
"""

import logging

import numpy as np

from .base import Constraint, ConstraintOutput
from ..kernel.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ConstantVolume(Constraint):
    """
    Keeps every cell of the topology at its initial volume.

    Value = current volume - reference volume, one row per cell, in cell order.
    """

    kind = "constant_volume"

    def __init__(self):
        super().__init__()
        self.reference_volumes = None

    def _capture(self, particles) -> None:
        cells = particles.topology.cells
        if not cells:
            raise ConfigurationError("ConstantVolume needs a topology with at least one cell.")
        self.reference_volumes = np.array(
            [cell.volume(particles.positions) for cell in cells], dtype=float
        )
        logger.debug("ConstantVolume: reference volumes %s", self.reference_volumes)

    def reset(self) -> None:
        super().reset()
        self.reference_volumes = None

    def evaluate(self, positions: np.ndarray, velocities: np.ndarray) -> ConstraintOutput:
        positions, velocities = self._check_state(positions, velocities)
        cells = self.particles.topology.cells
        n = self.n_vertices
        m = len(cells)

        values = np.zeros(m)
        jacobian = np.zeros((m, n, 3))
        jacobian_dot = np.zeros((m, n, 3))

        for row, cell in enumerate(cells):
            apex = cell.apex
            tris = cell.triangles                      # (T, 3)
            r = positions[tris] - positions[apex]      # (T, 3, 3)
            u = velocities[tris] - velocities[apex]

            r0, r1, r2 = r[:, 0], r[:, 1], r[:, 2]
            u0, u1, u2 = u[:, 0], u[:, 1], u[:, 2]

            values[row] = np.sum(np.einsum('ti,ti->t', r0, np.cross(r1, r2)))

            cof = np.stack([np.cross(r1, r2), np.cross(r2, r0), np.cross(r0, r1)], axis=1)
            dcof = np.stack([
                np.cross(u1, r2) + np.cross(r1, u2),
                np.cross(u2, r0) + np.cross(r2, u0),
                np.cross(u0, r1) + np.cross(r0, u1),
            ], axis=1)

            # Apex slots carry r = 0 and are closed below instead
            at_apex = tris == apex
            cof[at_apex] = 0.0
            dcof[at_apex] = 0.0

            np.add.at(jacobian[row], tris.ravel(), cof.reshape(-1, 3))
            np.add.at(jacobian_dot[row], tris.ravel(), dcof.reshape(-1, 3))

            jacobian[row, apex] = -cof.reshape(-1, 3).sum(axis=0)
            jacobian_dot[row, apex] = -dcof.reshape(-1, 3).sum(axis=0)

        values -= self.reference_volumes
        return ConstraintOutput(values, jacobian, jacobian_dot)

    def __repr__(self) -> str:
        n_cells = 0 if self.reference_volumes is None else len(self.reference_volumes)
        return f"ConstantVolume(cells={n_cells})"
