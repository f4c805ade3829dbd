# hydrostat - Constrained particle dynamics
"""
HYDROSTAT: Constrained Particle Dynamics for Soft Cellular Bodies
=================================================================

Point masses joined by edges, faces and closed cells move under explicit
forces while geometric constraints (constant cell volume, edge length
bounds, pinned vertices, planar faces) are enforced through Lagrange
multipliers with Baumgarte stabilization.

ARCHITECTURE:
-------------
    kernel/          Mesh-independent numerics (DOF layout, linear algebra,
                     3×3 eigensolver, assembly, reaction-force solve)
    constraints/     Constraint evaluators and their registry
    model.py         Topology, Cell, ParticleSystem
    dynamics.py      Forces, reaction forces, Euler / RK4 stepping
    simulator.py     In-place single-timeline driver
    policies.py      Controllers (state, t) -> per-edge activation
    config.py        SimulationConfig
    post.py          Trajectory tables (pandas)
    viz.py           History plots (matplotlib, imported on demand)

USAGE:
------
    from hydrostat import (ParticleSystem, ConstrainedDynamics,
                           build_constraint, ConstantPolicy)

    model = ConstrainedDynamics(particles, [
        build_constraint("fixed_vertex", vertices=[0, 1, 2, 3]),
        build_constraint("constant_volume"),
    ])
    states, controls = model.simulate(particles.state(),
                                      ConstantPolicy(model.num_controls, 5.0),
                                      steps=200, dt=0.01)
"""

from .kernel import (
    HydrostatError,
    ConfigurationError,
    ValidationError,
    AssemblyError,
    NumericalError,
    SingularMatrixError,
    state_to_pos_vel,
    pos_vel_to_state,
)
from .config import SimulationConfig, CONFIG
from .logging_config import setup_logging
from .model import Cell, Topology, ParticleSystem
from .constraints import (
    Constraint,
    ConstraintOutput,
    ConstantVolume,
    EdgeLengthBound,
    FixedVertex,
    PlanarFaces,
    CONSTRAINT_KINDS,
    register_constraint,
    build_constraint,
)
from .dynamics import ConstrainedDynamics
from .simulator import Simulator
from .policies import Policy, ZeroPolicy, ConstantPolicy, SinusoidalPolicy

__version__ = "0.1.0"
