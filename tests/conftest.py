# tests/conftest.py
"""Shared geometry for the test suite."""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest

from hydrostat.model import Cell, Topology, ParticleSystem


# Unit cube: 0-3 on top (z = 1), 4-7 on the bottom (z = 0)
CUBE_POSITIONS = np.array([
    [0.0, 0.0, 1.0],
    [1.0, 0.0, 1.0],
    [1.0, 1.0, 1.0],
    [0.0, 1.0, 1.0],
    [0.0, 0.0, 0.0],
    [1.0, 0.0, 0.0],
    [1.0, 1.0, 0.0],
    [0.0, 1.0, 0.0],
])

CUBE_EDGES = [
    (0, 1), (1, 2), (2, 3), (3, 0),
    (4, 5), (5, 6), (6, 7), (7, 4),
    (0, 4), (1, 5), (2, 6), (3, 7),
]

CUBE_FACES = [
    (0, 1, 2, 3),
    (4, 7, 6, 5),
    (0, 4, 5, 1),
    (1, 5, 6, 2),
    (2, 6, 7, 3),
    (3, 7, 4, 0),
]

# Faces that do not touch the apex (vertex 0), split into outward triangles
CUBE_TRIANGLES = [
    (4, 7, 6), (4, 6, 5),      # bottom
    (5, 6, 2), (5, 2, 1),      # x = 1
    (6, 7, 3), (6, 3, 2),      # y = 1
]

# Scalar triple product sum of the unit cube (six times its volume)
CUBE_VOLUME = 6.0


def make_cube_topology() -> Topology:
    return Topology(
        n_vertices=8,
        edges=CUBE_EDGES,
        faces=CUBE_FACES,
        cells=(Cell(apex=0, triangles=CUBE_TRIANGLES),),
    )


def make_cube(velocities=None, **kwargs) -> ParticleSystem:
    return ParticleSystem(make_cube_topology(), CUBE_POSITIONS, velocities=velocities, **kwargs)


@pytest.fixture
def cube():
    """Unit cube at rest with default masses and damping."""
    return make_cube()


@pytest.fixture
def cube_velocities():
    rng = np.random.default_rng(7)
    return rng.normal(scale=0.5, size=(8, 3))


@pytest.fixture
def skewed_quad():
    """A single non-planar quad, close to the xy-plane, with random velocities."""
    positions = np.array([
        [0.0, 0.0, 0.05],
        [1.2, 0.1, -0.03],
        [1.1, 0.9, 0.04],
        [-0.1, 1.0, -0.02],
    ])
    velocities = np.array([
        [0.3, -0.2, 0.1],
        [-0.1, 0.4, -0.2],
        [0.2, 0.1, 0.3],
        [-0.3, -0.2, 0.05],
    ])
    topology = Topology(
        n_vertices=4,
        edges=[(0, 1), (1, 2), (2, 3), (3, 0)],
        faces=[(0, 1, 2, 3)],
    )
    return ParticleSystem(topology, positions, velocities=velocities)


def finite_difference_jacobians(constraint, positions, velocities, h=1e-4):
    """
    Central-difference Jacobian and Jacobian time derivative of a constraint.

    J[:, v, d] from perturbing p[v, d]; J̇ from moving all positions along
    the velocities (the row count must not change in between).
    """
    positions = np.asarray(positions, dtype=float)
    velocities = np.asarray(velocities, dtype=float)
    base = constraint.evaluate(positions, velocities)
    m, n = base.values.shape[0], positions.shape[0]

    jacobian = np.zeros((m, n, 3))
    for v in range(n):
        for d in range(3):
            step = np.zeros_like(positions)
            step[v, d] = h
            plus = constraint.evaluate(positions + step, velocities).values
            minus = constraint.evaluate(positions - step, velocities).values
            jacobian[:, v, d] = (plus - minus) / (2 * h)

    plus = constraint.evaluate(positions + h * velocities, velocities).jacobian
    minus = constraint.evaluate(positions - h * velocities, velocities).jacobian
    jacobian_dot = (plus - minus) / (2 * h)
    return base, jacobian, jacobian_dot
