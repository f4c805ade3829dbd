# hydrostat/constraints/fixed_vertex.py
"""Pin selected vertices to their initial positions, three rows per vertex."""

from typing import Sequence

import numpy as np

from .base import Constraint, ConstraintOutput
from ..kernel.errors import ValidationError


class FixedVertex(Constraint):
    """
    Holds each listed vertex at the position it had at initialization.

    Rows are ordered [v0.x, v0.y, v0.z, v1.x, ...]; the row for axis d of
    vertex v has value p_v[d] - p_ref[d] and a single 1 in the Jacobian at
    (v, d). The Jacobian is constant, so its time derivative is zero.

    Parameters:
    -----------
    vertices : sequence of int
        Indices of the vertices to pin
    """

    kind = "fixed_vertex"

    def __init__(self, vertices: Sequence[int]):
        super().__init__()
        self.vertices = np.asarray(list(vertices), dtype=int)
        self.reference_positions = None

    def _capture(self, particles) -> None:
        n = particles.topology.n_vertices
        bad = self.vertices[(self.vertices < 0) | (self.vertices >= n)]
        if len(bad):
            raise ValidationError(
                f"FixedVertex index {int(bad[0])} is outside 0..{n - 1}."
            )
        self.reference_positions = particles.positions[self.vertices].copy()

    def reset(self) -> None:
        super().reset()
        self.reference_positions = None

    def evaluate(self, positions: np.ndarray, velocities: np.ndarray) -> ConstraintOutput:
        positions, velocities = self._check_state(positions, velocities)
        n = self.n_vertices
        k = len(self.vertices)
        if k == 0:
            return ConstraintOutput.empty(n)

        values = (positions[self.vertices] - self.reference_positions).ravel()

        m = 3 * k
        rows = np.arange(m)
        jacobian = np.zeros((m, n, 3))
        jacobian[rows, np.repeat(self.vertices, 3), np.tile(np.arange(3), k)] = 1.0

        return ConstraintOutput(values, jacobian, np.zeros((m, n, 3)))

    def __repr__(self) -> str:
        return f"FixedVertex(vertices={self.vertices.tolist()})"
