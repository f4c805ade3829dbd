# tests/test_fixed_vertex.py
"""Pinned vertices: three rows each, identity Jacobian, zero derivative."""

import numpy as np
import pytest

from conftest import CUBE_POSITIONS

from hydrostat.constraints import FixedVertex
from hydrostat.kernel.errors import ValidationError


class TestFixedVertex:

    def test_rows_and_values(self, cube):
        c = FixedVertex([2, 5])
        c.initialize(cube)
        moved = CUBE_POSITIONS.copy()
        moved[5] += [0.1, -0.2, 0.3]
        out = c.evaluate(moved, np.zeros((8, 3)))

        assert out.num_rows == 6
        np.testing.assert_allclose(out.values, [0.0, 0.0, 0.0, 0.1, -0.2, 0.3])

    def test_identity_jacobian(self, cube):
        c = FixedVertex([2, 5])
        c.initialize(cube)
        out = c.evaluate(cube.positions, cube.velocities)

        flat = out.jacobian.reshape(6, 24)
        expected = np.zeros((6, 24))
        for row, col in enumerate([6, 7, 8, 15, 16, 17]):
            expected[row, col] = 1.0
        np.testing.assert_array_equal(flat, expected)
        np.testing.assert_array_equal(out.jacobian_dot, 0.0)

    def test_reference_is_initial_position(self, cube):
        c = FixedVertex([7])
        c.initialize(cube)
        np.testing.assert_array_equal(c.reference_positions, [[0.0, 1.0, 0.0]])

    def test_out_of_range_index(self, cube):
        with pytest.raises(ValidationError):
            FixedVertex([8]).initialize(cube)

    def test_empty_vertex_list(self, cube):
        c = FixedVertex([])
        c.initialize(cube)
        assert c.evaluate(cube.positions, cube.velocities).num_rows == 0
