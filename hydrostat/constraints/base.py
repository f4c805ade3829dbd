# hydrostat/constraints/base.py
"""
CONSTRAINT CONTRACT
===================

Every constraint is an object with two methods:

    initialize(particles)              capture reference data, once
    evaluate(positions, velocities)    -> ConstraintOutput

A ConstraintOutput holds m scalar constraint values C (zero when the
constraint is satisfied), the Jacobian ∂C/∂p with shape (m, n, 3) and its
time derivative dJ/dt with the same shape. m may be zero; an empty output
is a valid "nothing to enforce this step".

The dynamics model only sees this contract, so a new kind of constraint
plugs in by subclassing `Constraint` and registering it in
`hydrostat.constraints.CONSTRAINT_KINDS`.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ..kernel.errors import ConfigurationError

if TYPE_CHECKING:
    from ..model import ParticleSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConstraintOutput:
    """
    Values, Jacobian and Jacobian time derivative of one constraint.

    Attributes:
    -----------
    values : np.ndarray
        Shape (m,)
    jacobian : np.ndarray
        Shape (m, n, 3); nonzero only at the vertices the row touches
    jacobian_dot : np.ndarray
        Shape (m, n, 3)
    """
    values: np.ndarray
    jacobian: np.ndarray
    jacobian_dot: np.ndarray

    @property
    def num_rows(self) -> int:
        return int(np.shape(self.values)[0])

    @classmethod
    def empty(cls, n_vertices: int) -> "ConstraintOutput":
        """A zero-row output for a system of n_vertices."""
        return cls(
            values=np.zeros(0),
            jacobian=np.zeros((0, n_vertices, 3)),
            jacobian_dot=np.zeros((0, n_vertices, 3)),
        )


class Constraint(ABC):
    """
    Base class for constraints.

    Subclasses implement `_capture` (reference data from the initial
    configuration) and `evaluate`. Reference data is immutable once
    captured: initializing twice raises unless `reset()` is called first.
    """

    kind: str = "constraint"

    def __init__(self):
        self._particles = None

    @property
    def initialized(self) -> bool:
        return self._particles is not None

    @property
    def particles(self) -> "ParticleSystem":
        if self._particles is None:
            raise ConfigurationError(
                f"{type(self).__name__} used before initialize() was called."
            )
        return self._particles

    @property
    def n_vertices(self) -> int:
        return self.particles.topology.n_vertices

    def initialize(self, particles: "ParticleSystem") -> None:
        """
        Capture reference quantities from the particle system's initial state.

        Raises:
            ConfigurationError: If particles is None or the constraint was
                already initialized
        """
        if particles is None:
            raise ConfigurationError(
                f"{type(self).__name__}.initialize() needs a particle system."
            )
        if self._particles is not None:
            raise ConfigurationError(
                f"{type(self).__name__} is already initialized; call reset() first."
            )
        self._capture(particles)
        self._particles = particles
        logger.info("Initialized %s", self)

    def reset(self) -> None:
        """Forget the captured reference data."""
        self._particles = None

    def _capture(self, particles: "ParticleSystem") -> None:
        """Store reference data. Default: nothing to store."""
        return None

    def _check_state(self, positions: np.ndarray, velocities: np.ndarray):
        n = self.n_vertices
        positions = np.asarray(positions, dtype=float)
        velocities = np.asarray(velocities, dtype=float)
        if positions.shape != (n, 3) or velocities.shape != (n, 3):
            raise ConfigurationError(
                f"{type(self).__name__} expects positions and velocities of shape ({n}, 3), "
                f"got {positions.shape} and {velocities.shape}."
            )
        return positions, velocities

    @abstractmethod
    def evaluate(self, positions: np.ndarray, velocities: np.ndarray) -> ConstraintOutput:
        """
        Constraint values, Jacobian and Jacobian time derivative.

        Args:
            positions: (n, 3) current vertex positions
            velocities: (n, 3) current vertex velocities

        Returns:
            ConstraintOutput with m rows (m may be zero)
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
