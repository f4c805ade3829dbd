# hydrostat/kernel/assemble.py
"""
ASSEMBLY: Stacking Constraint Outputs into Global Matrices
==========================================================

PURPOSE:
--------
Each constraint reports its own block of rows:

    values        (m_c,)
    jacobian      (m_c, n, 3)
    jacobian_dot  (m_c, n, 3)

The reaction-force solve wants one system for all of them. Assembly
flattens every block's vertex and axis dimensions with the DOF layout
(column idx(v, d) = 3v + d) and stacks the blocks row-wise:

    C  = [C_1; C_2; ...]                      (m_total,)
    J  = [J_1; J_2; ...]                      (m_total, 3n)
    J̇  = [J̇_1; J̇_2; ...]                      (m_total, 3n)

Assembly doesn't care what KIND of constraint produced a block. It keeps
the order the blocks were given in and skips blocks with zero rows
(an edge-length bound with no violating edge, for example).

USAGE:
------
    outputs = [c.evaluate(pos, vel) for c in constraints]
    assembled = assemble_constraints(outputs, n_vertices)
    assembled.jacobian @ vel.ravel()     # constraint velocities
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Sequence

import numpy as np

from .dof import DOF_3D
from .errors import AssemblyError

if TYPE_CHECKING:
    from ..constraints.base import ConstraintOutput


@dataclass(frozen=True)
class AssembledConstraints:
    """
    Global constraint system.

    Attributes:
    -----------
    values : np.ndarray
        Stacked constraint values, (m_total,)
    jacobian : np.ndarray
        Stacked flat Jacobians, (m_total, 3n)
    jacobian_dot : np.ndarray
        Stacked flat Jacobian time derivatives, (m_total, 3n)
    row_slices : List[slice]
        Rows owned by each input output, in input order (empty slices for
        skipped outputs)
    """
    values: np.ndarray
    jacobian: np.ndarray
    jacobian_dot: np.ndarray
    row_slices: List[slice] = field(default_factory=list)

    @property
    def num_rows(self) -> int:
        return int(self.values.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.num_rows == 0


def _check_output(position: int, output: "ConstraintOutput", n_vertices: int) -> int:
    values = np.asarray(output.values)
    jacobian = np.asarray(output.jacobian)
    jacobian_dot = np.asarray(output.jacobian_dot)

    if values.ndim != 1:
        raise AssemblyError(f"Constraint #{position}: values must be 1-D, got shape {values.shape}.")
    m = values.shape[0]
    if jacobian.ndim != 3 or jacobian.shape[0] != m:
        raise AssemblyError(
            f"Constraint #{position}: reports {m} rows but its Jacobian has shape {jacobian.shape}."
        )
    if jacobian_dot.shape != jacobian.shape:
        raise AssemblyError(
            f"Constraint #{position}: Jacobian {jacobian.shape} and Jacobian derivative "
            f"{jacobian_dot.shape} differ in shape."
        )
    if jacobian.shape[1:] != (n_vertices, DOF_3D.dof_per_node):
        raise AssemblyError(
            f"Constraint #{position}: Jacobian covers {jacobian.shape[1:]} but the system "
            f"has ({n_vertices}, {DOF_3D.dof_per_node})."
        )
    return m


def assemble_constraints(
    outputs: Sequence["ConstraintOutput"],
    n_vertices: int
) -> AssembledConstraints:
    """
    Stack constraint outputs into one global value vector and two matrices.

    Parameters:
    -----------
    outputs : Sequence[ConstraintOutput]
        One output per constraint, in a stable order (the dynamics model
        passes its constraint registry order)

    n_vertices : int
        Number of vertices n; the matrices get 3n columns

    Returns:
    --------
    AssembledConstraints
        With m_total = sum of the row counts. m_total = 0 is valid and
        yields (0,), (0, 3n), (0, 3n) arrays.

    Raises:
    -------
    AssemblyError
        If any output's row count disagrees with its Jacobian's first
        dimension, or its Jacobians do not cover (n_vertices, 3)
    """
    ndof = DOF_3D.ndof(n_vertices)

    values: List[np.ndarray] = []
    jacobians: List[np.ndarray] = []
    jacobian_dots: List[np.ndarray] = []
    row_slices: List[slice] = []

    start = 0
    for position, output in enumerate(outputs):
        m = _check_output(position, output, n_vertices)
        row_slices.append(slice(start, start + m))
        if m == 0:
            continue
        values.append(np.asarray(output.values, dtype=float))
        jacobians.append(np.asarray(output.jacobian, dtype=float).reshape(m, ndof))
        jacobian_dots.append(np.asarray(output.jacobian_dot, dtype=float).reshape(m, ndof))
        start += m

    if not values:
        return AssembledConstraints(
            values=np.zeros(0),
            jacobian=np.zeros((0, ndof)),
            jacobian_dot=np.zeros((0, ndof)),
            row_slices=row_slices,
        )

    return AssembledConstraints(
        values=np.concatenate(values),
        jacobian=np.vstack(jacobians),
        jacobian_dot=np.vstack(jacobian_dots),
        row_slices=row_slices,
    )
