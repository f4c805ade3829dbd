# hydrostat/constraints - Geometric constraints for constrained dynamics
"""
CONSTRAINTS
===========

Each constraint turns the current positions and velocities into values C,
a Jacobian J = ∂C/∂p and its time derivative J̇ (see `base.py`):

    ConstantVolume     one row per closed cell
    EdgeLengthBound    one row per edge outside [min, max]
    FixedVertex        three rows per pinned vertex
    PlanarFaces        one row per face vertex

USAGE:
------
    from hydrostat.constraints import build_constraint

    constraints = [
        build_constraint("fixed_vertex", vertices=[0, 1, 2, 3]),
        build_constraint("constant_volume"),
        build_constraint("edge_length", min_length=0.5, max_length=1.5),
    ]
"""

from typing import Dict, Type

from .base import Constraint, ConstraintOutput
from .volume import ConstantVolume
from .edge_length import EdgeLengthBound
from .fixed_vertex import FixedVertex
from .planar_faces import PlanarFaces
from ..kernel.errors import ConfigurationError

CONSTRAINT_KINDS: Dict[str, Type[Constraint]] = {
    ConstantVolume.kind: ConstantVolume,
    EdgeLengthBound.kind: EdgeLengthBound,
    FixedVertex.kind: FixedVertex,
    PlanarFaces.kind: PlanarFaces,
}


def register_constraint(cls: Type[Constraint]) -> Type[Constraint]:
    """Make a Constraint subclass available to `build_constraint` under `cls.kind`."""
    if not issubclass(cls, Constraint):
        raise ConfigurationError(f"{cls!r} is not a Constraint subclass.")
    CONSTRAINT_KINDS[cls.kind] = cls
    return cls


def build_constraint(kind: str, **params) -> Constraint:
    """
    Construct a registered constraint by name.

    Raises:
        ConfigurationError: If `kind` is not registered
    """
    try:
        cls = CONSTRAINT_KINDS[kind]
    except KeyError:
        raise ConfigurationError(
            f"Unknown constraint kind '{kind}'. Known kinds: {sorted(CONSTRAINT_KINDS)}."
        ) from None
    return cls(**params)


__all__ = [
    'Constraint', 'ConstraintOutput',
    'ConstantVolume', 'EdgeLengthBound', 'FixedVertex', 'PlanarFaces',
    'CONSTRAINT_KINDS', 'register_constraint', 'build_constraint',
]
