# hydrostat/policies.py
"""
Controllers: map (state, t) to one activation per edge.

Any callable with that signature works as a controller; these classes
cover the common cases.
"""

from typing import Protocol, Sequence, Union

import numpy as np


class Policy(Protocol):
    """What ConstrainedDynamics.simulate and Simulator call once per step."""

    def __call__(self, state: np.ndarray, t: float) -> np.ndarray:
        ...


class ZeroPolicy:
    """No actuation."""

    def __init__(self, num_controls: int):
        self.num_controls = int(num_controls)

    def __call__(self, state: np.ndarray, t: float) -> np.ndarray:
        return np.zeros(self.num_controls)


class ConstantPolicy:
    """The same activation on every step; a scalar is broadcast to all edges."""

    def __init__(self, num_controls: int, value: Union[float, Sequence[float]] = 5.0):
        self.num_controls = int(num_controls)
        self.value = np.broadcast_to(np.asarray(value, dtype=float), (self.num_controls,)).copy()

    def __call__(self, state: np.ndarray, t: float) -> np.ndarray:
        return self.value.copy()


class SinusoidalPolicy:
    """
    u_e(t) = offset + amplitude · sin(2π t / period + phase_e)

    Useful for demos: a travelling contraction when phases increase along
    the arm.
    """

    def __init__(self, num_controls: int, amplitude: float = 1.0, period: float = 1.0,
                 phases: Union[float, Sequence[float]] = 0.0, offset: float = 0.0):
        self.num_controls = int(num_controls)
        self.amplitude = float(amplitude)
        self.period = float(period)
        self.phases = np.broadcast_to(np.asarray(phases, dtype=float), (self.num_controls,)).copy()
        self.offset = float(offset)

    def __call__(self, state: np.ndarray, t: float) -> np.ndarray:
        return self.offset + self.amplitude * np.sin(2.0 * np.pi * t / self.period + self.phases)
