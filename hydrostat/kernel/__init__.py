# hydrostat/kernel - Mesh-independent numerical core
"""
KERNEL: THE MESH-INDEPENDENT FOUNDATION
=======================================

This package holds the numerics that do not care what the particles are
connected to:

- dof.py       (vertex, axis) -> flat index, state packing
- linalg.py    dense products, partial-pivot Gaussian elimination
- eigen.py     symmetric 3×3 Jacobi eigensolver, best-fit normals and
               their derivatives
- assemble.py  stacking constraint blocks into global C, J, J̇
- solve.py     Lagrange-multiplier reaction forces
- errors.py    exception hierarchy

Constraint implementations (hydrostat.constraints) produce blocks; the
kernel assembles and solves them.
"""

from .dof import DOFManager, DOF_3D, state_to_pos_vel, pos_vel_to_state
from .errors import (
    HydrostatError,
    ConfigurationError,
    ValidationError,
    AssemblyError,
    NumericalError,
    SingularMatrixError,
)
from .linalg import matmul, transpose, diagonal, add_identity, gaussian_solve
from .eigen import jacobi_eigh3, covariance, best_fit_normal, normal_derivatives
from .assemble import AssembledConstraints, assemble_constraints
from .solve import delassus_operator, solve_reaction_forces

__all__ = [
    'DOFManager', 'DOF_3D', 'state_to_pos_vel', 'pos_vel_to_state',
    'HydrostatError', 'ConfigurationError', 'ValidationError', 'AssemblyError',
    'NumericalError', 'SingularMatrixError',
    'matmul', 'transpose', 'diagonal', 'add_identity', 'gaussian_solve',
    'jacobi_eigh3', 'covariance', 'best_fit_normal', 'normal_derivatives',
    'AssembledConstraints', 'assemble_constraints',
    'delassus_operator', 'solve_reaction_forces',
]
