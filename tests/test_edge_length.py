# tests/test_edge_length.py
"""
EDGE LENGTH BOUNDS
==================

Rows appear only for edges outside [min_length, max_length]; each row is
measured against the nearer bound.
"""

import logging

import numpy as np
import pytest

from conftest import finite_difference_jacobians

from hydrostat.constraints import EdgeLengthBound
from hydrostat.kernel.errors import ConfigurationError
from hydrostat.model import ParticleSystem, Topology


def make_chain(positions, velocities=None):
    """Vertices joined in a chain 0-1-2-..."""
    positions = np.asarray(positions, dtype=float)
    n = positions.shape[0]
    topology = Topology(n_vertices=n, edges=[(i, i + 1) for i in range(n - 1)])
    return ParticleSystem(topology, positions, velocities=velocities)


class TestActiveSet:

    def test_inside_bounds_gives_no_rows(self):
        particles = make_chain([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
        c = EdgeLengthBound(min_length=0.5, max_length=1.5)
        c.initialize(particles)
        out = c.evaluate(particles.positions, particles.velocities)
        assert out.num_rows == 0
        assert out.jacobian.shape == (0, 2, 3)

    def test_too_long_measured_against_max(self):
        particles = make_chain([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
        c = EdgeLengthBound(min_length=0.5, max_length=1.5)
        c.initialize(particles)
        out = c.evaluate(particles.positions, particles.velocities)
        np.testing.assert_allclose(out.values, [0.5])

    def test_too_short_measured_against_min(self):
        particles = make_chain([[0.0, 0.0, 0.0], [0.2, 0.0, 0.0]])
        c = EdgeLengthBound(min_length=0.5, max_length=1.5)
        c.initialize(particles)
        out = c.evaluate(particles.positions, particles.velocities)
        np.testing.assert_allclose(out.values, [-0.3])

    def test_rows_follow_edge_order(self):
        """Edges 0 and 2 violate, edge 1 does not: rows are [edge 0, edge 2]."""
        particles = make_chain([[0.0, 0.0, 0.0], [3.0, 0.0, 0.0], [4.0, 0.0, 0.0], [4.0, 0.1, 0.0]])
        c = EdgeLengthBound(min_length=0.5, max_length=2.0)
        c.initialize(particles)
        out = c.evaluate(particles.positions, particles.velocities)
        np.testing.assert_allclose(out.values, [1.0, -0.4])
        np.testing.assert_array_equal(c.active_edges(c.edge_lengths(particles.positions)), [0, 2])

    def test_jacobian_is_unit_direction(self):
        particles = make_chain([[0.0, 0.0, 0.0], [0.0, 3.0, 4.0]])
        c = EdgeLengthBound(max_length=1.0)
        c.initialize(particles)
        out = c.evaluate(particles.positions, particles.velocities)
        # d = p_0 - p_1 = (0, -3, -4), L = 5
        np.testing.assert_allclose(out.jacobian[0, 0], [0.0, -0.6, -0.8])
        np.testing.assert_allclose(out.jacobian[0, 1], [0.0, 0.6, 0.8])

    def test_zero_length_edge_skipped_with_warning(self, caplog):
        particles = make_chain([[1.0, 1.0, 1.0], [1.0, 1.0, 1.0], [1.0, 1.0, 0.0]])
        c = EdgeLengthBound(min_length=1.5)
        c.initialize(particles)
        with caplog.at_level(logging.WARNING, logger="hydrostat"):
            out = c.evaluate(particles.positions, particles.velocities)
        # Edge 0 is degenerate, edge 1 (length 1) is still reported
        np.testing.assert_allclose(out.values, [-0.5])
        assert "zero-length" in caplog.text

    def test_min_above_max_rejected(self):
        with pytest.raises(ConfigurationError):
            EdgeLengthBound(min_length=2.0, max_length=1.0)


class TestEdgeJacobians:

    def test_matches_finite_differences(self):
        rng = np.random.default_rng(9)
        positions = np.array([[0.0, 0.0, 0.0], [2.0, 0.3, -0.1], [2.4, 0.5, 0.2], [2.5, 2.9, 0.4]])
        velocities = rng.normal(size=(4, 3))
        particles = make_chain(positions, velocities)
        c = EdgeLengthBound(min_length=0.8, max_length=1.5)
        c.initialize(particles)

        out, J_fd, J_dot_fd = finite_difference_jacobians(c, positions, velocities)
        assert out.num_rows == 3
        np.testing.assert_allclose(out.jacobian, J_fd, atol=1e-6)
        np.testing.assert_allclose(out.jacobian_dot, J_dot_fd, atol=1e-6)
