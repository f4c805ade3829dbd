#!/usr/bin/env python3
"""
RUN_SINGLE_CELL: One Hydrostatic Cell Under Constant Activation
===============================================================

A cubic cell hangs from its pinned top face. Every edge is activated with
the same contraction force while the cell keeps its volume and its faces
stay flat:

1. Build the cell (8 vertices, 12 edges, 6 faces, 1 closed cell)
2. Pick constraints: pinned top, constant volume, planar faces
3. Simulate with RK4
4. Tabulate constraint violation and kinetic energy
5. Save plots to demos/output/

Run with:
    python demos/run_single_cell.py
"""

import sys
from pathlib import Path

import numpy as np

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from hydrostat import (
    Cell,
    ConstantPolicy,
    ConstrainedDynamics,
    ParticleSystem,
    SimulationConfig,
    Topology,
    build_constraint,
    setup_logging,
)
from hydrostat.post import constraint_history, energy_history, summarize_run, trajectory_frame
from hydrostat.viz import plot_constraint_history, plot_energy_history, plot_vertex_paths

OUTPUT_DIR = Path(__file__).parent / "output"


def make_cell(size: float = 0.5) -> ParticleSystem:
    """Cube of side `size`: vertices 0-3 on top, 4-7 on the bottom, apex 0."""
    corners = np.array([
        [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1],
        [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],
    ], dtype=float)
    edges = [
        (0, 1), (1, 2), (2, 3), (3, 0),
        (4, 5), (5, 6), (6, 7), (7, 4),
        (0, 4), (1, 5), (2, 6), (3, 7),
    ]
    faces = [
        (0, 1, 2, 3), (4, 7, 6, 5), (0, 4, 5, 1),
        (1, 5, 6, 2), (2, 6, 7, 3), (3, 7, 4, 0),
    ]
    # Outward triangles of the three faces away from the apex
    triangles = [(4, 7, 6), (4, 6, 5), (5, 6, 2), (5, 2, 1), (6, 7, 3), (6, 3, 2)]

    topology = Topology(
        n_vertices=8, edges=edges, faces=faces,
        cells=(Cell(apex=0, triangles=triangles),),
    )
    return ParticleSystem(topology, size * corners)


def print_header(text: str):
    print("\n" + "=" * 60)
    print(f"  {text}")
    print("=" * 60)


def main():
    config = SimulationConfig(dt=0.01, steps=200, method='rk4', log_level="INFO")
    setup_logging(config=config)

    print_header("STEP 1: Build the cell")
    particles = make_cell(0.5)
    topo = particles.topology
    print(f"  {particles.n_vertices} vertices, {topo.n_edges} edges, "
          f"{topo.n_faces} faces, {len(topo.cells)} cell")

    print_header("STEP 2: Constraints")
    constraints = [
        build_constraint("fixed_vertex", vertices=[0, 1, 2, 3]),
        build_constraint("constant_volume"),
        build_constraint("planar_faces"),
    ]
    model = ConstrainedDynamics(particles, constraints, config=config)
    for c in model.constraints:
        print(f"  {c!r}")

    print_header("STEP 3: Simulate")
    controller = ConstantPolicy(model.num_controls, 5.0)
    states, controls = model.simulate(particles.state(), controller, show_progress=True)

    print_header("STEP 4: Results")
    summary = summarize_run(model, states, controls, config.dt)
    for key, value in summary.items():
        print(f"  {key:22s} {value:.6g}")

    print_header("STEP 5: Plots")
    OUTPUT_DIR.mkdir(exist_ok=True)
    plot_constraint_history(constraint_history(model, states, config.dt),
                            save_path=str(OUTPUT_DIR / "single_cell_constraints.png"))
    plot_energy_history(energy_history(model, states, config.dt),
                        save_path=str(OUTPUT_DIR / "single_cell_energy.png"))
    plot_vertex_paths(trajectory_frame(states, config.dt), vertices=[4, 5, 6, 7], plane="xz",
                      save_path=str(OUTPUT_DIR / "single_cell_paths.png"))
    print(f"  Saved to {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
