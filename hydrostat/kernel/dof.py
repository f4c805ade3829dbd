# hydrostat/kernel/dof.py
"""
DOF MANAGER: Vertex Degree-of-Freedom Indexing
==============================================

PURPOSE:
--------
Every array in the engine addresses vertices by a stable integer index that
is assigned once, when the topology is built. This module turns
(vertex, axis) pairs into positions inside the flat vectors the solver works
with:

    positions   (n, 3)   <->   flat  (3n,)      x0 y0 z0 x1 y1 z1 ...
    state       (6n,)    =     [positions.ravel(), velocities.ravel()]

Jacobians are stored per constraint as (m, n, 3) arrays and flattened to
(m, 3n) for the reaction solve, so column 3v + d of the flat Jacobian is
the derivative with respect to axis d of vertex v.

USAGE:
------
    dof = DOFManager()
    dof.ndof(4)                      # -> 12
    dof.expand(inv_masses)           # (n,) -> (3n,)
    pos, vel = state_to_pos_vel(state)
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import ConfigurationError


@dataclass(frozen=True)
class DOFManager:
    """
    Sizes and expands flat per-coordinate vectors.

    Attributes:
    -----------
    dof_per_node : int
        Number of coordinates per vertex (3 for particles in space)

    Examples:
    ---------
    >>> dof = DOFManager()
    >>> dof.ndof(4)
    12
    """
    dof_per_node: int = 3

    def ndof(self, n_vertices: int) -> int:
        """Length of a flat position (or velocity) vector."""
        return self.dof_per_node * n_vertices

    def expand(self, per_vertex: np.ndarray) -> np.ndarray:
        """Repeat a per-vertex scalar for each coordinate: (n,) -> (3n,)."""
        return np.repeat(np.asarray(per_vertex, dtype=float), self.dof_per_node)


DOF_3D = DOFManager(dof_per_node=3)


def state_to_pos_vel(state: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split a flat state vector into (n, 3) positions and velocities.

    The returned arrays are views into `state` when it is contiguous, so
    writing into them writes into the state.

    Raises:
    -------
    ConfigurationError
        If the length is not a multiple of 6
    """
    state = np.asarray(state, dtype=float)
    if state.ndim != 1 or state.shape[0] % 6 != 0:
        raise ConfigurationError(
            f"State must be a flat vector with length divisible by 6, got shape {state.shape}."
        )
    n = state.shape[0] // 6
    pos = state[: 3 * n].reshape(n, 3)
    vel = state[3 * n:].reshape(n, 3)
    return pos, vel


def pos_vel_to_state(positions: np.ndarray, velocities: np.ndarray) -> np.ndarray:
    """Stack (n, 3) positions and velocities into a new flat state vector."""
    positions = np.asarray(positions, dtype=float)
    velocities = np.asarray(velocities, dtype=float)
    if positions.shape != velocities.shape or positions.ndim != 2 or positions.shape[1] != 3:
        raise ConfigurationError(
            f"Positions {positions.shape} and velocities {velocities.shape} must both be (n, 3)."
        )
    return np.concatenate([positions.ravel(), velocities.ravel()])
