# tests/test_solve.py
"""
REACTION-FORCE SOLVE
====================

    M λ = b,   M = J·diag(w)·Jᵀ + εI,   b = -(J̇v + J(w⊙F) + αJv + βC)
    reaction = Jᵀλ
"""

import numpy as np
import pytest

from hydrostat.constraints import ConstraintOutput
from hydrostat.kernel.assemble import assemble_constraints
from hydrostat.kernel.errors import ConfigurationError, NumericalError
from hydrostat.kernel.solve import delassus_operator, solve_reaction_forces


def _pin(vertex, n, value=0.0):
    """Three FixedVertex-style rows for one vertex."""
    jac = np.zeros((3, n, 3))
    jac[np.arange(3), vertex, np.arange(3)] = 1.0
    return ConstraintOutput(np.full(3, value), jac, np.zeros_like(jac))


class TestDelassus:

    def test_matches_definition(self):
        rng = np.random.default_rng(0)
        J = rng.normal(size=(4, 6))
        w = rng.uniform(0.5, 2.0, size=6)
        M = delassus_operator(J, w, regularization=1e-3)
        np.testing.assert_allclose(M, J @ np.diag(w) @ J.T + 1e-3 * np.eye(4), atol=1e-12)


class TestSolveReactionForces:

    def test_pinned_vertex_cancels_applied_force(self):
        """A pinned vertex at rest gets a reaction equal and opposite to its load."""
        n = 2
        assembled = assemble_constraints([_pin(0, n)], n)
        F = np.array([[1.0, -2.0, 0.5], [3.0, 0.0, 0.0]])
        reaction, lam = solve_reaction_forces(
            np.ones(3 * n), assembled, np.zeros((n, 3)), F,
            damping_rate=50.0, spring_rate=50.0,
        )
        assert lam.shape == (3,)
        np.testing.assert_allclose(reaction[0], -F[0], rtol=1e-5)
        np.testing.assert_allclose(reaction[1], 0.0, atol=1e-12)

    def test_baumgarte_terms_pull_back(self):
        """A displaced, moving pin gets a restoring reaction -(αv + βC)/w."""
        n = 1
        assembled = assemble_constraints([_pin(0, n, value=0.1)], n)
        v = np.array([[0.2, 0.0, 0.0]])
        w = 2.0
        reaction, _ = solve_reaction_forces(
            np.full(3, w), assembled, v, np.zeros((n, 3)),
            damping_rate=10.0, spring_rate=5.0, regularization=0.0,
        )
        expected = -(10.0 * v[0] + 5.0 * 0.1) / w
        np.testing.assert_allclose(reaction[0], expected, rtol=1e-12)

    def test_empty_constraint_set(self):
        assembled = assemble_constraints([ConstraintOutput.empty(3)], 3)
        reaction, lam = solve_reaction_forces(
            np.ones(9), assembled, np.ones((3, 3)), np.ones((3, 3)), 50.0, 50.0
        )
        np.testing.assert_array_equal(reaction, np.zeros((3, 3)))
        assert lam.shape == (0,)

    def test_duplicate_rows_without_regularization_are_singular(self):
        n = 1
        assembled = assemble_constraints([_pin(0, n), _pin(0, n)], n)
        with pytest.raises(NumericalError):
            solve_reaction_forces(
                np.ones(3), assembled, np.zeros((n, 3)), np.ones((n, 3)),
                50.0, 50.0, regularization=0.0,
            )

    def test_duplicate_rows_with_regularization_solve(self):
        n = 1
        assembled = assemble_constraints([_pin(0, n), _pin(0, n)], n)
        F = np.array([[0.0, 0.0, -1.0]])
        reaction, _ = solve_reaction_forces(
            np.ones(3), assembled, np.zeros((n, 3)), F, 50.0, 50.0,
        )
        np.testing.assert_allclose(reaction, -F, rtol=1e-5, atol=1e-12)

    def test_length_mismatch(self):
        assembled = assemble_constraints([_pin(0, 2)], 2)
        with pytest.raises(ConfigurationError):
            solve_reaction_forces(np.ones(6), assembled, np.zeros(3), np.zeros(6), 50.0, 50.0)
