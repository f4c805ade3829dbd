# hydrostat/constraints/edge_length.py
"""
EDGE LENGTH BOUNDS: Rows Only for Violating Edges
=================================================

Edges whose length L lies inside [min_length, max_length] are free. Every
edge outside that interval contributes one row, measured against whichever
bound is nearer:

    C = L - bound

With d = p_i - p_j, û = d / L and relative velocity w = v_i - v_j:

    ∂C/∂p_i = û,    ∂C/∂p_j = -û
    dû/dt   = (w·L - d (û·w)) / L²

The active set is chosen again at every evaluation, so the number of rows
changes as edges enter and leave their bounds.
"""

import logging

import numpy as np

from .base import Constraint, ConstraintOutput
from ..kernel.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Edges shorter than this have no usable direction
MIN_EDGE_LENGTH = 1e-12


class EdgeLengthBound(Constraint):
    """
    Keeps every edge length inside [min_length, max_length].

    Parameters:
    -----------
    min_length : float
        Lower bound (default 0, i.e. unbounded below)
    max_length : float
        Upper bound (default inf, i.e. unbounded above)
    """

    kind = "edge_length"

    def __init__(self, min_length: float = 0.0, max_length: float = float("inf")):
        super().__init__()
        if min_length > max_length:
            raise ConfigurationError(
                f"EdgeLengthBound min_length {min_length} exceeds max_length {max_length}."
            )
        self.min_length = float(min_length)
        self.max_length = float(max_length)

    def edge_lengths(self, positions: np.ndarray) -> np.ndarray:
        edges = self.particles.topology.edges
        d = positions[edges[:, 0]] - positions[edges[:, 1]]
        return np.linalg.norm(d, axis=1)

    def active_edges(self, lengths: np.ndarray) -> np.ndarray:
        """Indices of edges currently outside [min_length, max_length], in edge order."""
        return np.flatnonzero((lengths > self.max_length) | (lengths < self.min_length))

    def evaluate(self, positions: np.ndarray, velocities: np.ndarray) -> ConstraintOutput:
        positions, velocities = self._check_state(positions, velocities)
        n = self.n_vertices
        edges = self.particles.topology.edges
        if len(edges) == 0:
            return ConstraintOutput.empty(n)

        lengths = self.edge_lengths(positions)
        active = self.active_edges(lengths)

        degenerate = active[lengths[active] < MIN_EDGE_LENGTH]
        if len(degenerate):
            logger.warning("EdgeLengthBound: skipping %d zero-length edge(s): %s",
                           len(degenerate), degenerate.tolist())
            active = active[lengths[active] >= MIN_EDGE_LENGTH]
        if len(active) == 0:
            return ConstraintOutput.empty(n)

        L = lengths[active]
        to_min = L - self.min_length
        to_max = L - self.max_length
        values = np.where(np.abs(to_min) < np.abs(to_max), to_min, to_max)

        i = edges[active, 0]
        j = edges[active, 1]
        d = positions[i] - positions[j]
        w = velocities[i] - velocities[j]
        u_hat = d / L[:, None]
        u_hat_dot = (w * L[:, None] - d * np.einsum('ki,ki->k', u_hat, w)[:, None]) / (L ** 2)[:, None]

        m = len(active)
        rows = np.arange(m)
        jacobian = np.zeros((m, n, 3))
        jacobian_dot = np.zeros((m, n, 3))
        jacobian[rows, i] = u_hat
        jacobian[rows, j] = -u_hat
        jacobian_dot[rows, i] = u_hat_dot
        jacobian_dot[rows, j] = -u_hat_dot

        logger.debug("EdgeLengthBound: %d active edge(s)", m)
        return ConstraintOutput(values, jacobian, jacobian_dot)

    def __repr__(self) -> str:
        return f"EdgeLengthBound(min_length={self.min_length}, max_length={self.max_length})"
