# tests/test_simulator.py
"""The Simulator steps one state buffer in place."""

import numpy as np
import pytest

from conftest import make_cube

from hydrostat.config import SimulationConfig
from hydrostat.constraints import ConstantVolume, FixedVertex
from hydrostat.dynamics import ConstrainedDynamics
from hydrostat.kernel.errors import ConfigurationError
from hydrostat.policies import ConstantPolicy
from hydrostat.simulator import Simulator

GRAVITY = np.tile([0.0, 0.0, -1.0], (8, 1))


def make_simulator(controller=None, config=None):
    model = ConstrainedDynamics(
        make_cube(),
        [FixedVertex([0, 1, 2, 3]), ConstantVolume()],
        config=config,
        external_forces=GRAVITY,
    )
    return Simulator(model, controller, config)


class TestSimulator:

    def test_tick_updates_buffer_in_place(self):
        sim = make_simulator()
        buffer = sim.state
        positions = sim.positions
        before = positions.copy()

        returned = sim.tick()
        sim.tick()

        assert returned is buffer
        assert sim.state is buffer
        assert np.shares_memory(sim.positions, buffer)
        assert np.shares_memory(sim.velocities, buffer)
        # The view taken before ticking sees the new positions
        assert np.abs(positions - before).max() > 0.0

    def test_matches_model_step(self):
        sim = make_simulator()
        expected = sim.model.step(sim.state.copy(), np.zeros(12), 0.0, sim.config.dt, sim.config.method)
        sim.tick()
        np.testing.assert_allclose(sim.state, expected)

    def test_time_and_tick_count(self):
        sim = make_simulator(config=SimulationConfig(dt=0.02, steps=5))
        assert sim.time == 0.0
        sim.run()
        assert sim.tick_count == 5
        assert np.isclose(sim.time, 0.1)
        sim.run(3)
        assert sim.tick_count == 8

    def test_controller_output_recorded(self):
        sim = make_simulator(controller=ConstantPolicy(12, 0.25))
        sim.tick()
        np.testing.assert_array_equal(sim.last_control, 0.25)

    def test_model_state_is_not_touched(self):
        """The particle system keeps its initial positions; only the buffer moves."""
        sim = make_simulator()
        initial = sim.model.particles.positions.copy()
        sim.run(3)
        np.testing.assert_array_equal(sim.model.particles.positions, initial)

    def test_controller_with_wrong_length_stops_the_tick(self):
        sim = make_simulator(controller=ConstantPolicy(5, 1.0))
        before = sim.state.copy()
        with pytest.raises(ConfigurationError):
            sim.tick()
        assert sim.tick_count == 0
        np.testing.assert_array_equal(sim.state, before)

    def test_check_control_flattens(self):
        sim = make_simulator()
        control = sim.model.check_control([[0.5] * 6, [0.25] * 6])
        assert control.shape == (12,)
        assert control.dtype == float

    def test_plain_function_as_controller(self):
        calls = []

        def ramp(state, t):
            calls.append(t)
            return np.full(12, t)

        sim = make_simulator(controller=ramp, config=SimulationConfig(dt=0.01, steps=3))
        sim.run()
        np.testing.assert_allclose(calls, [0.0, 0.01, 0.02])
        np.testing.assert_allclose(sim.last_control, 0.02)
