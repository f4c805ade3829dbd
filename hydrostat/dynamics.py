# hydrostat/dynamics.py
"""
CONSTRAINED DYNAMICS: Forces, Reactions and Time Stepping
=========================================================

PURPOSE:
--------
Equations of motion of a particle system under an ordered set of
constraints. The state is the flat vector

    x = [p_0, p_1, ..., p_{n-1}, v_0, v_1, ..., v_{n-1}]      (6n,)

and its time derivative is

    ẋ = [v; w ⊙ (F + Jᵀλ)]

where w are the inverse masses, F the explicit forces (external +
actuation - passive) and Jᵀλ the constraint reaction forces from
`hydrostat.kernel.solve`.

FORCES:
-------
For edge e = (i, j) with d = p_i - p_j, L = |d|, û = d / L, v_ij = v_i - v_j:

    vertex damping   f_i = c_i v_i
    edge damping     f_i = c_e (û · v_ij) û,     f_j = -f_i
    actuation        f_i = -u_e û,                f_j = +u_e û

Positive actuation u_e pulls the two ends of the edge together. Damping
is passive and enters F with a minus sign.

INTEGRATION:
------------
Explicit Euler and classical fourth-order Runge-Kutta, with the control
held constant over the step.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from .config import CONFIG, INTEGRATORS, SimulationConfig
from .constraints.base import Constraint
from .kernel.assemble import AssembledConstraints, assemble_constraints
from .kernel.dof import pos_vel_to_state, state_to_pos_vel
from .kernel.errors import ConfigurationError, NumericalError
from .kernel.solve import solve_reaction_forces
from .model import ParticleSystem
from .policies import Policy

logger = logging.getLogger(__name__)


def _edge_directions(positions: np.ndarray, edges: np.ndarray) -> np.ndarray:
    """Unit direction p_i - p_j of each edge; zero-length edges get a zero direction."""
    d = positions[edges[:, 0]] - positions[edges[:, 1]]
    lengths = np.linalg.norm(d, axis=1)
    valid = lengths > 0.0
    unit = np.zeros_like(d)
    unit[valid] = d[valid] / lengths[valid, None]
    return unit


def _scatter_pair(n_vertices: int, edges: np.ndarray, force_on_i: np.ndarray) -> np.ndarray:
    """Apply force_on_i to the first vertex of each edge and its negative to the second."""
    forces = np.zeros((n_vertices, 3))
    np.add.at(forces, edges[:, 0], force_on_i)
    np.add.at(forces, edges[:, 1], -force_on_i)
    return forces


class ConstrainedDynamics:
    """
    Constrained particle dynamics for one particle system.

    Constraints are initialized here, in the order given, against the
    particle system's initial configuration. That order is also the row
    order of the assembled constraint system.

    Parameters:
    -----------
    particles : ParticleSystem
    constraints : Sequence[Constraint]
    config : SimulationConfig, optional
        Defaults to the module-level CONFIG
    external_forces : (n, 3) array, optional
        Constant external force per vertex, default zero
    """

    def __init__(
        self,
        particles: ParticleSystem,
        constraints: Sequence[Constraint] = (),
        config: Optional[SimulationConfig] = None,
        external_forces: Optional[np.ndarray] = None,
    ):
        if particles is None:
            raise ConfigurationError("ConstrainedDynamics needs a particle system.")
        self.particles = particles
        self.config = config if config is not None else CONFIG
        self.constraints: List[Constraint] = list(constraints)

        for constraint in self.constraints:
            if not isinstance(constraint, Constraint):
                raise ConfigurationError(f"{constraint!r} is not a Constraint.")
            constraint.initialize(particles)

        self._inv_masses = particles.inv_masses
        self.external_forces = np.zeros((self.n_vertices, 3))
        if external_forces is not None:
            self.set_external_forces(external_forces)

        logger.info("ConstrainedDynamics: %d vertices, %d edges, constraints %s",
                    self.n_vertices, self.num_controls,
                    [c.kind for c in self.constraints])

    @property
    def n_vertices(self) -> int:
        return self.particles.n_vertices

    @property
    def num_states(self) -> int:
        return 6 * self.n_vertices

    @property
    def num_controls(self) -> int:
        return self.particles.topology.n_edges

    def set_external_forces(self, forces: np.ndarray) -> None:
        """Replace the constant external force per vertex, (n, 3)."""
        forces = np.array(forces, dtype=float)
        if forces.shape != (self.n_vertices, 3):
            raise ConfigurationError(
                f"External forces must have shape ({self.n_vertices}, 3), got {forces.shape}."
            )
        self.external_forces = forces

    # ------------------------------------------------------------------
    # Forces
    # ------------------------------------------------------------------

    def calc_passive_forces(self, positions: np.ndarray, velocities: np.ndarray) -> np.ndarray:
        """Vertex damping plus damping along each edge, (n, 3)."""
        particles = self.particles
        edges = particles.topology.edges

        forces = particles.vertex_damping[:, None] * velocities
        if len(edges) == 0:
            return forces

        unit = _edge_directions(positions, edges)
        rel_vel = velocities[edges[:, 0]] - velocities[edges[:, 1]]
        along = np.einsum('ei,ei->e', unit, rel_vel)
        edge_force = (particles.edge_damping * along)[:, None] * unit
        return forces + _scatter_pair(self.n_vertices, edges, edge_force)

    def calc_actuation_forces(self, positions: np.ndarray, control: np.ndarray) -> np.ndarray:
        """Equal and opposite forces along each edge; positive control contracts the edge."""
        edges = self.particles.topology.edges
        control = self.check_control(control)
        if len(edges) == 0:
            return np.zeros((self.n_vertices, 3))

        unit = _edge_directions(positions, edges)
        return _scatter_pair(self.n_vertices, edges, -control[:, None] * unit)

    def calc_explicit_forces(
        self,
        positions: np.ndarray,
        velocities: np.ndarray,
        control: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """External + actuation - passive, (n, 3)."""
        forces = self.external_forces - self.calc_passive_forces(positions, velocities)
        if control is not None:
            forces = forces + self.calc_actuation_forces(positions, control)
        return forces

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def calc_constraints(self, positions: np.ndarray, velocities: np.ndarray) -> AssembledConstraints:
        outputs = [c.evaluate(positions, velocities) for c in self.constraints]
        return assemble_constraints(outputs, self.n_vertices)

    def evaluate(
        self,
        positions: np.ndarray,
        velocities: np.ndarray,
        control: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """
        Constraint reaction forces for the given state, (n, 3).

        Raises:
            NumericalError: If the reaction-force system is singular
        """
        positions = np.asarray(positions, dtype=float).reshape(self.n_vertices, 3)
        velocities = np.asarray(velocities, dtype=float).reshape(self.n_vertices, 3)

        explicit = self.calc_explicit_forces(positions, velocities, control)
        return self._reaction(positions, velocities, explicit)

    def _reaction(self, positions: np.ndarray, velocities: np.ndarray, explicit: np.ndarray) -> np.ndarray:
        assembled = self.calc_constraints(positions, velocities)
        cfg = self.config
        reaction, _ = solve_reaction_forces(
            self._inv_masses,
            assembled,
            velocities,
            explicit,
            damping_rate=cfg.constraint_damping_rate,
            spring_rate=cfg.constraint_spring_rate,
            regularization=cfg.regularization,
            pivot_tol=cfg.pivot_tolerance,
            workers=cfg.matmul_workers,
        )
        return reaction

    # ------------------------------------------------------------------
    # Time stepping
    # ------------------------------------------------------------------

    def continuous_dynamics(self, state: np.ndarray, control: Optional[np.ndarray], t: float) -> np.ndarray:
        """ẋ = [v; w ⊙ (F + Jᵀλ)] as a flat (6n,) vector."""
        positions, velocities = state_to_pos_vel(self._check_state(state))

        explicit = self.calc_explicit_forces(positions, velocities, control)
        reaction = self._reaction(positions, velocities, explicit)
        acceleration = self._inv_masses * (explicit + reaction).ravel()
        return np.concatenate([velocities.ravel(), acceleration])

    def integrator_euler(self, state: np.ndarray, control: Optional[np.ndarray], t: float, dt: float) -> np.ndarray:
        return state + dt * self.continuous_dynamics(state, control, t)

    def integrator_rk4(self, state: np.ndarray, control: Optional[np.ndarray], t: float, dt: float) -> np.ndarray:
        k1 = self.continuous_dynamics(state, control, t)
        k2 = self.continuous_dynamics(state + 0.5 * dt * k1, control, t + 0.5 * dt)
        k3 = self.continuous_dynamics(state + 0.5 * dt * k2, control, t + 0.5 * dt)
        k4 = self.continuous_dynamics(state + dt * k3, control, t + dt)
        return state + dt / 6.0 * (k1 + 2.0 * k2 + 2.0 * k3 + k4)

    def step(
        self,
        state: np.ndarray,
        control: Optional[np.ndarray],
        t: float,
        dt: Optional[float] = None,
        method: Optional[str] = None
    ) -> np.ndarray:
        """
        Advance one step of length dt. Returns a new state; the input is not modified.

        Raises:
            ConfigurationError: Unknown method, non-positive dt or wrong control length
            NumericalError: Singular reaction solve or a non-finite result
        """
        dt = self.config.dt if dt is None else float(dt)
        method = self.config.method if method is None else method
        if dt <= 0.0:
            raise ConfigurationError(f"dt must be positive, got {dt}.")
        if method not in INTEGRATORS:
            raise ConfigurationError(f"Unknown integrator '{method}'. Choose one of {INTEGRATORS}.")
        if control is not None:
            control = self.check_control(control)

        state = self._check_state(state)
        integrator = self.integrator_euler if method == 'euler' else self.integrator_rk4
        next_state = integrator(state, control, t, dt)
        if not np.all(np.isfinite(next_state)):
            raise NumericalError(f"Non-finite state after {method} step at t = {t:.6g}.")
        return next_state

    def simulate(
        self,
        initial_state: np.ndarray,
        controller: Policy,
        steps: Optional[int] = None,
        dt: Optional[float] = None,
        method: Optional[str] = None,
        show_progress: bool = False
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Roll the system forward from `initial_state`.

        The controller is called once per step with (state, t), t = k·dt,
        and its output is held over the step.

        Returns:
            state_traj: (steps + 1, 6n), row 0 is the initial state
            control_traj: (steps, E)

        Raises:
            NumericalError: If a step fails; the message names the step and time
        """
        steps = self.config.steps if steps is None else int(steps)
        dt = self.config.dt if dt is None else float(dt)
        method = self.config.method if method is None else method
        if steps < 0:
            raise ConfigurationError(f"steps must be non-negative, got {steps}.")

        state = self._check_state(initial_state).copy()
        state_traj = np.zeros((steps + 1, self.num_states))
        control_traj = np.zeros((steps, self.num_controls))
        state_traj[0] = state

        iterator = tqdm(range(steps), desc="Simulating") if show_progress else range(steps)
        for k in iterator:
            t = k * dt
            control = self.check_control(controller(state, t))
            try:
                state = self.step(state, control, t, dt, method)
            except NumericalError as e:
                logger.error("Step %d (t = %.4g) failed: %s", k, t, e)
                raise NumericalError(f"Simulation failed at step {k} (t = {t:.6g}): {e}") from e
            control_traj[k] = control
            state_traj[k + 1] = state
            logger.debug("Step %d: t = %.4g, max |v| = %.3e",
                         k, t + dt, np.max(np.abs(state[self.num_states // 2:]), initial=0.0))

        logger.info("Simulated %d steps of %.3g s with %s", steps, dt, method)
        return state_traj, control_traj

    # ------------------------------------------------------------------

    def _check_state(self, state: np.ndarray) -> np.ndarray:
        state = np.asarray(state, dtype=float)
        if state.shape != (self.num_states,):
            raise ConfigurationError(
                f"State must have shape ({self.num_states},), got {state.shape}."
            )
        return state

    def check_control(self, control) -> np.ndarray:
        """Control as a flat float array with one entry per edge."""
        control = np.asarray(control, dtype=float).ravel()
        if control.shape[0] != self.num_controls:
            raise ConfigurationError(
                f"Control must have one entry per edge ({self.num_controls}), got {control.shape[0]}."
            )
        return control

    def initial_state(self) -> np.ndarray:
        return pos_vel_to_state(self.particles.positions, self.particles.velocities)
