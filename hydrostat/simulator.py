# hydrostat/simulator.py
"""
Single-timeline driver around ConstrainedDynamics.

The Simulator owns one state buffer. Each tick asks the controller for an
activation, computes the next state and copies it into the buffer, so
`positions` and `velocities` stay valid views for the lifetime of the
simulator.
"""

import logging
from typing import Optional

import numpy as np
from tqdm import tqdm

from .config import SimulationConfig
from .dynamics import ConstrainedDynamics
from .kernel.dof import state_to_pos_vel
from .policies import Policy, ZeroPolicy

logger = logging.getLogger(__name__)


class Simulator:
    """
    Steps a ConstrainedDynamics model in place.

    Parameters:
    -----------
    model : ConstrainedDynamics
    controller : callable (state, t) -> control, optional
        Defaults to no actuation
    config : SimulationConfig, optional
        Defaults to the model's config; dt and method are read from it
    """

    def __init__(
        self,
        model: ConstrainedDynamics,
        controller: Optional[Policy] = None,
        config: Optional[SimulationConfig] = None,
    ):
        self.model = model
        self.controller = controller if controller is not None else ZeroPolicy(model.num_controls)
        self.config = config if config is not None else model.config

        self._state = model.initial_state()
        self._positions, self._velocities = state_to_pos_vel(self._state)
        self.last_control = np.zeros(model.num_controls)
        self.tick_count = 0

    @property
    def state(self) -> np.ndarray:
        return self._state

    @property
    def positions(self) -> np.ndarray:
        """(n, 3) view into the state buffer."""
        return self._positions

    @property
    def velocities(self) -> np.ndarray:
        """(n, 3) view into the state buffer."""
        return self._velocities

    @property
    def time(self) -> float:
        return self.tick_count * self.config.dt

    def tick(self) -> np.ndarray:
        """Advance one step; returns the (updated) state buffer."""
        t = self.time
        control = self.model.check_control(self.controller(self._state, t))
        next_state = self.model.step(self._state, control, t, self.config.dt, self.config.method)
        self._state[:] = next_state
        self.last_control = control
        self.tick_count += 1
        return self._state

    def run(self, n_ticks: Optional[int] = None, show_progress: bool = False) -> np.ndarray:
        """Tick n_ticks times (default config.steps)."""
        n_ticks = self.config.steps if n_ticks is None else int(n_ticks)
        iterator = tqdm(range(n_ticks), desc="Ticking") if show_progress else range(n_ticks)
        for _ in iterator:
            self.tick()
        logger.info("Simulator at t = %.4g after %d ticks", self.time, self.tick_count)
        return self._state
