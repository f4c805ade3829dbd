# hydrostat/model.py
"""
MODEL DEFINITIONS: Cell, Topology and ParticleSystem
====================================================

PURPOSE:
--------
The data the dynamics work on:

- Topology: which vertices are connected. Edges (index pairs), faces
  (index tuples, all of the same arity) and closed cells. Built once;
  every vertex is addressed by its integer index from then on.
- Cell: a closed volume described by an apex vertex and the boundary
  triangles that, together with the apex, tile the volume into tetrahedra.
- ParticleSystem: a topology plus the physical quantities per vertex
  (initial position and velocity, mass, damping) and per edge (damping).

Both classes validate themselves on construction, so every constraint
downstream can trust its indices.

EXAMPLE (one unit cube):
------------------------
    faces = [(0, 3, 2, 1), (0, 1, 5, 4), ...]
    cell = Cell(apex=0, triangles=[(4, 5, 6), (4, 6, 7), ...])
    topology = Topology(n_vertices=8, edges=edges, faces=faces, cells=[cell])
    particles = ParticleSystem(topology, positions)
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np

from .kernel.dof import DOF_3D, pos_vel_to_state
from .kernel.errors import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)


def _index_array(values, width: Optional[int], name: str) -> np.ndarray:
    """Convert a list of index tuples to an int array of shape (k, width)."""
    rows = [tuple(v) for v in values]
    if not rows:
        return np.zeros((0, width or 0), dtype=int)
    arities = {len(r) for r in rows}
    if len(arities) != 1:
        raise ValidationError(
            f"All {name} must have the same number of vertices, got counts {sorted(arities)}."
        )
    arity = arities.pop()
    if width is not None and arity != width:
        raise ValidationError(f"Each of the {name} must have {width} vertices, got {arity}.")
    arr = np.asarray(rows)
    if not np.issubdtype(arr.dtype, np.integer):
        raise ValidationError(f"{name.capitalize()} must contain integer vertex indices.")
    return arr.astype(int)


def _check_range(arr: np.ndarray, n_vertices: int, name: str) -> None:
    if arr.size and (arr.min() < 0 or arr.max() >= n_vertices):
        bad = arr[(arr < 0) | (arr >= n_vertices)]
        raise ValidationError(
            f"{name.capitalize()} reference vertex index {int(bad[0])}, "
            f"outside 0..{n_vertices - 1}."
        )


@dataclass(frozen=True, eq=False)
class Cell:
    """
    A closed cell for volume computation.

    Parameters:
    -----------
    apex : int
        Reference vertex; each boundary triangle forms a tetrahedron with it
    triangles : array-like of (i, j, k)
        Boundary triangles not touching the apex, counter-clockwise from
        outside
    """
    apex: int
    triangles: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "apex", int(self.apex))
        object.__setattr__(self, "triangles", _index_array(self.triangles, 3, "triangles"))
        if len(self.triangles) == 0:
            raise ValidationError(f"Cell with apex {self.apex} has no triangles.")

    @property
    def vertices(self) -> np.ndarray:
        """Apex followed by the sorted, distinct triangle vertices."""
        rest = np.unique(self.triangles)
        return np.concatenate([[self.apex], rest[rest != self.apex]])

    def volume(self, positions: np.ndarray) -> float:
        """Sum of scalar triple products of apex-relative triangle corners."""
        positions = np.asarray(positions, dtype=float)
        rel = positions[self.triangles] - positions[self.apex]
        return float(np.sum(np.einsum('ti,ti->t', rel[:, 0], np.cross(rel[:, 1], rel[:, 2]))))


@dataclass(frozen=True, eq=False)
class Topology:
    """
    Connectivity of the particle system.

    Parameters:
    -----------
    n_vertices : int
        Number of vertices
    edges : array-like of (i, j)
        Edge list; endpoints must differ
    faces : array-like of index tuples
        Faces, all with the same number (>= 3) of vertices
    cells : sequence of Cell
        Closed cells

    Raises:
    -------
    ValidationError
        If any index is out of range, an edge is degenerate, or faces
        have inconsistent vertex counts
    """
    n_vertices: int
    edges: np.ndarray = field(default_factory=lambda: np.zeros((0, 2), dtype=int))
    faces: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=int))
    cells: Tuple[Cell, ...] = ()

    def __post_init__(self):
        if int(self.n_vertices) <= 0:
            raise ValidationError(f"Topology needs at least one vertex, got {self.n_vertices}.")
        object.__setattr__(self, "n_vertices", int(self.n_vertices))

        edges = _index_array(self.edges, 2, "edges")
        _check_range(edges, self.n_vertices, "edges")
        if len(edges) and np.any(edges[:, 0] == edges[:, 1]):
            i = int(np.flatnonzero(edges[:, 0] == edges[:, 1])[0])
            raise ValidationError(f"Edge {i} connects vertex {edges[i, 0]} to itself.")
        object.__setattr__(self, "edges", edges)

        faces = _index_array(self.faces, None, "faces")
        if len(faces) and faces.shape[1] < 3:
            raise ValidationError(f"Faces need at least 3 vertices, got {faces.shape[1]}.")
        _check_range(faces, self.n_vertices, "faces")
        object.__setattr__(self, "faces", faces)

        cells = tuple(self.cells)
        for cell in cells:
            if not isinstance(cell, Cell):
                raise ValidationError(f"Cells must be Cell instances, got {type(cell).__name__}.")
            _check_range(np.append(cell.triangles.ravel(), cell.apex), self.n_vertices, "cells")
        object.__setattr__(self, "cells", cells)

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def face_arity(self) -> int:
        return self.faces.shape[1] if len(self.faces) else 0


def _per_item(values, default: float, count: int, name: str) -> np.ndarray:
    if values is None:
        return np.full(count, default, dtype=float)
    arr = np.asarray(values, dtype=float)
    if arr.shape != (count,):
        raise ConfigurationError(f"{name} must have shape ({count},), got {arr.shape}.")
    return arr


class ParticleSystem:
    """
    A topology with per-vertex and per-edge physical quantities.

    Defaults follow a cell of total mass 1: each vertex has mass 1/n and
    vertex damping 1/n, each edge has damping 1.

    Parameters:
    -----------
    topology : Topology
    positions : (n, 3) initial positions
    velocities : (n, 3) initial velocities, default zeros
    masses : (n,) vertex masses, all > 0
    vertex_damping : (n,) linear drag coefficient per vertex
    edge_damping : (E,) drag coefficient along each edge

    Raises:
    -------
    ConfigurationError
        If any array does not match the topology, or a mass is not positive
    """

    def __init__(
        self,
        topology: Topology,
        positions: np.ndarray,
        velocities: Optional[np.ndarray] = None,
        masses: Optional[Sequence[float]] = None,
        vertex_damping: Optional[Sequence[float]] = None,
        edge_damping: Optional[Sequence[float]] = None,
    ):
        if topology is None:
            raise ConfigurationError("ParticleSystem needs a topology.")
        n = topology.n_vertices

        positions = np.array(positions, dtype=float)
        if positions.shape != (n, 3):
            raise ConfigurationError(f"positions must have shape ({n}, 3), got {positions.shape}.")
        if velocities is None:
            velocities = np.zeros((n, 3))
        velocities = np.array(velocities, dtype=float)
        if velocities.shape != (n, 3):
            raise ConfigurationError(f"velocities must have shape ({n}, 3), got {velocities.shape}.")

        masses = _per_item(masses, 1.0 / n, n, "masses")
        if np.any(masses <= 0.0) or not np.all(np.isfinite(masses)):
            raise ConfigurationError("All vertex masses must be finite and positive.")

        self.topology = topology
        self.positions = positions
        self.velocities = velocities
        self.masses = masses
        self.vertex_damping = _per_item(vertex_damping, 1.0 / n, n, "vertex_damping")
        self.edge_damping = _per_item(edge_damping, 1.0, topology.n_edges, "edge_damping")

        logger.debug("ParticleSystem: %d vertices, %d edges, %d faces, %d cells",
                     n, topology.n_edges, topology.n_faces, len(topology.cells))

    @property
    def n_vertices(self) -> int:
        return self.topology.n_vertices

    @property
    def inv_masses(self) -> np.ndarray:
        """Inverse masses repeated per coordinate, length 3n."""
        return DOF_3D.expand(1.0 / self.masses)

    def state(self) -> np.ndarray:
        """Initial state as a flat [positions; velocities] vector of length 6n."""
        return pos_vel_to_state(self.positions, self.velocities)
