# hydrostat/config.py
"""
Simulation configuration and defaults.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Union

from .kernel.errors import ConfigurationError
from .kernel.linalg import PIVOT_TOLERANCE
from .kernel.solve import REGULARIZATION

INTEGRATORS = ('euler', 'rk4')


@dataclass(frozen=True)
class SimulationConfig:
    """Settings for one simulation run."""

    # Time stepping
    dt: float = 1e-2
    steps: int = 100
    method: str = 'rk4'

    # Baumgarte feedback on constraint velocity (α) and violation (β)
    constraint_damping_rate: float = 50.0
    constraint_spring_rate: float = 50.0

    # Reaction-force solve
    regularization: float = REGULARIZATION
    pivot_tolerance: float = PIVOT_TOLERANCE

    # Threads for dense products; None = serial
    matmul_workers: Optional[int] = None

    # Level for setup_logging(); a number or a name such as "DEBUG"
    log_level: Union[int, str] = logging.INFO

    def __post_init__(self):
        if self.dt <= 0.0:
            raise ConfigurationError(f"dt must be positive, got {self.dt}.")
        if self.steps < 0:
            raise ConfigurationError(f"steps must be non-negative, got {self.steps}.")
        if self.method not in INTEGRATORS:
            raise ConfigurationError(
                f"Unknown integrator '{self.method}'. Choose one of {INTEGRATORS}."
            )
        if self.regularization < 0.0 or self.pivot_tolerance <= 0.0:
            raise ConfigurationError("regularization must be >= 0 and pivot_tolerance > 0.")
        if self.matmul_workers is not None and self.matmul_workers < 1:
            raise ConfigurationError(f"matmul_workers must be >= 1, got {self.matmul_workers}.")
        self.resolve_log_level(self.log_level)

    @staticmethod
    def resolve_log_level(level: Union[int, str]) -> int:
        """Numeric logging level for a number or a level name."""
        if isinstance(level, bool):
            raise ConfigurationError(f"Invalid log level {level!r}.")
        if isinstance(level, int):
            return level
        number = logging.getLevelName(str(level).upper())
        if not isinstance(number, int):
            raise ConfigurationError(f"Unknown log level {level!r}.")
        return number

    def replace(self, **changes) -> "SimulationConfig":
        """Copy with some fields changed (validated again)."""
        return replace(self, **changes)


# Global config instance
CONFIG = SimulationConfig()
