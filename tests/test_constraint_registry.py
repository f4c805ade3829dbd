# tests/test_constraint_registry.py
"""Constraint lifecycle (initialize once, reset) and the kind registry."""

import numpy as np
import pytest

from hydrostat.constraints import (
    CONSTRAINT_KINDS,
    ConstantVolume,
    Constraint,
    ConstraintOutput,
    EdgeLengthBound,
    FixedVertex,
    PlanarFaces,
    build_constraint,
    register_constraint,
)
from hydrostat.kernel.errors import ConfigurationError


class TestLifecycle:

    def test_evaluate_before_initialize(self, cube):
        with pytest.raises(ConfigurationError):
            ConstantVolume().evaluate(cube.positions, cube.velocities)

    def test_initialize_twice_is_refused(self, cube):
        c = FixedVertex([0])
        c.initialize(cube)
        with pytest.raises(ConfigurationError):
            c.initialize(cube)

    def test_reset_allows_recapture(self, cube):
        c = FixedVertex([0])
        c.initialize(cube)
        c.reset()
        assert not c.initialized
        assert c.reference_positions is None
        c.initialize(cube)
        assert c.initialized

    def test_initialize_needs_particles(self):
        with pytest.raises(ConfigurationError):
            PlanarFaces().initialize(None)

    def test_state_shape_checked(self, cube):
        c = FixedVertex([0])
        c.initialize(cube)
        with pytest.raises(ConfigurationError):
            c.evaluate(np.zeros((7, 3)), np.zeros((7, 3)))


class TestRegistry:

    def test_builtin_kinds(self):
        assert CONSTRAINT_KINDS["constant_volume"] is ConstantVolume
        assert CONSTRAINT_KINDS["edge_length"] is EdgeLengthBound
        assert CONSTRAINT_KINDS["fixed_vertex"] is FixedVertex
        assert CONSTRAINT_KINDS["planar_faces"] is PlanarFaces

    def test_build_with_params(self):
        c = build_constraint("edge_length", min_length=0.5, max_length=2.0)
        assert isinstance(c, EdgeLengthBound)
        assert c.max_length == 2.0

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError):
            build_constraint("no_such_constraint")

    def test_register_new_kind(self, cube):
        """A new kind plugs in without touching the solver."""

        @register_constraint
        class Nothing(Constraint):
            kind = "nothing"

            def evaluate(self, positions, velocities):
                return ConstraintOutput.empty(self.n_vertices)

        try:
            c = build_constraint("nothing")
            c.initialize(cube)
            assert c.evaluate(cube.positions, cube.velocities).num_rows == 0
        finally:
            CONSTRAINT_KINDS.pop("nothing", None)

    def test_register_rejects_non_constraints(self):
        with pytest.raises(ConfigurationError):
            register_constraint(dict)
