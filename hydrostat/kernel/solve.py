# hydrostat/kernel/solve.py
"""Reaction forces from Lagrange multipliers, with Baumgarte stabilization."""

import logging
from typing import Optional, Tuple

import numpy as np

from .assemble import AssembledConstraints
from .errors import ConfigurationError, NumericalError
from .linalg import PIVOT_TOLERANCE, add_identity, gaussian_solve, matmul

logger = logging.getLogger(__name__)

REGULARIZATION = 1e-6


def delassus_operator(
    jacobian: np.ndarray,
    inv_masses: np.ndarray,
    regularization: float = REGULARIZATION,
    workers: Optional[int] = None
) -> np.ndarray:
    """
    Effective mass matrix seen by the constraints: M = J·diag(w)·Jᵀ + ε·I.

    The ε·I term keeps M invertible when constraints are redundant.
    """
    weighted = jacobian * inv_masses[None, :]
    return add_identity(matmul(weighted, jacobian.T, workers=workers), regularization)


def solve_reaction_forces(
    inv_masses: np.ndarray,
    assembled: AssembledConstraints,
    velocities: np.ndarray,
    explicit_forces: np.ndarray,
    damping_rate: float,
    spring_rate: float,
    regularization: float = REGULARIZATION,
    pivot_tol: float = PIVOT_TOLERANCE,
    workers: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Solve for the constraint reaction forces of one step.

    Requiring the constrained accelerations to satisfy
    C̈ + α·Ċ + β·C = 0 gives

        M λ = b,    M = J·diag(w)·Jᵀ + ε·I
                    b = -(J̇v + J(w⊙F) + α·Jv + β·C)

    and the reaction force is Jᵀλ.

    Args:
        inv_masses: Inverse mass per coordinate, (3n,)
        assembled: Stacked constraint values and Jacobians
        velocities: Vertex velocities, (n, 3) or (3n,)
        explicit_forces: External + actuation - passive forces, (n, 3) or (3n,)
        damping_rate: α, feedback on constraint velocity
        spring_rate: β, feedback on constraint violation
        regularization: ε added to the diagonal of M
        pivot_tol: Gaussian elimination pivot tolerance
        workers: Threads for the dense products

    Returns:
        reaction: Reaction force per vertex, (n, 3)
        multipliers: Lagrange multipliers λ, (m,)

    Raises:
        ConfigurationError: If array lengths disagree
        NumericalError: If M is singular
    """
    w = np.asarray(inv_masses, dtype=float).ravel()
    v = np.asarray(velocities, dtype=float).ravel()
    F = np.asarray(explicit_forces, dtype=float).ravel()
    ndof = w.shape[0]
    if v.shape[0] != ndof or F.shape[0] != ndof or assembled.jacobian.shape[1] != ndof:
        raise ConfigurationError(
            f"Inverse masses ({ndof}), velocities ({v.shape[0]}), forces ({F.shape[0]}) and "
            f"Jacobian columns ({assembled.jacobian.shape[1]}) must all have the same length."
        )

    if assembled.is_empty:
        return np.zeros((ndof // 3, 3)), np.zeros(0)

    C = assembled.values
    J = assembled.jacobian
    J_dot = assembled.jacobian_dot

    M = delassus_operator(J, w, regularization, workers)

    Jv = J @ v
    b = -(J_dot @ v + J @ (w * F) + damping_rate * Jv + spring_rate * C)

    try:
        multipliers = gaussian_solve(M, b, pivot_tol=pivot_tol)
    except NumericalError as e:
        raise NumericalError(
            f"Reaction-force solve failed for {len(C)} constraint rows "
            f"(regularization {regularization:.0e}): {e}"
        ) from e

    reaction = matmul(J.T, multipliers, workers=workers).reshape(-1, 3)
    logger.debug("Reaction solve: %d rows, max |C| = %.3e, max |λ| = %.3e",
                 len(C), np.max(np.abs(C)), np.max(np.abs(multipliers)))
    return reaction, multipliers
