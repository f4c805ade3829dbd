# hydrostat/post.py
"""
POST-PROCESSING: Trajectories as Tables
=======================================

`ConstrainedDynamics.simulate` returns raw arrays. These helpers turn them
into pandas DataFrames that are easy to filter, plot and save:

    trajectory_frame      one row per (step, vertex)
    constraint_history    one row per step, max |C| per constraint
    energy_history        one row per step, kinetic energy
    summarize_run         one dict of headline numbers
"""

from typing import Dict, Optional

import numpy as np
import pandas as pd

from .dynamics import ConstrainedDynamics
from .kernel.dof import state_to_pos_vel


def _split(state_traj: np.ndarray):
    state_traj = np.asarray(state_traj, dtype=float)
    n = state_traj.shape[1] // 6
    positions = state_traj[:, : 3 * n].reshape(-1, n, 3)
    velocities = state_traj[:, 3 * n:].reshape(-1, n, 3)
    return positions, velocities


def trajectory_frame(state_traj: np.ndarray, dt: float) -> pd.DataFrame:
    """
    Tidy per-vertex table of a state trajectory.

    Columns: step, time, vertex, x, y, z, vx, vy, vz, speed.
    """
    positions, velocities = _split(state_traj)
    n_steps, n, _ = positions.shape

    steps = np.repeat(np.arange(n_steps), n)
    return pd.DataFrame({
        'step': steps,
        'time': steps * dt,
        'vertex': np.tile(np.arange(n), n_steps),
        'x': positions[:, :, 0].ravel(),
        'y': positions[:, :, 1].ravel(),
        'z': positions[:, :, 2].ravel(),
        'vx': velocities[:, :, 0].ravel(),
        'vy': velocities[:, :, 1].ravel(),
        'vz': velocities[:, :, 2].ravel(),
        'speed': np.linalg.norm(velocities, axis=2).ravel(),
    })


def constraint_history(model: ConstrainedDynamics, state_traj: np.ndarray, dt: float) -> pd.DataFrame:
    """
    Largest constraint violation per constraint at every step.

    One column per constraint, named '<index>:<kind>'; constraints with no
    active rows at a step report 0.
    """
    rows = []
    for k, state in enumerate(np.asarray(state_traj, dtype=float)):
        pos, vel = state_to_pos_vel(state)
        row = {'step': k, 'time': k * dt}
        for i, constraint in enumerate(model.constraints):
            values = constraint.evaluate(pos, vel).values
            row[f'{i}:{constraint.kind}'] = float(np.max(np.abs(values), initial=0.0))
        rows.append(row)
    return pd.DataFrame(rows)


def energy_history(model: ConstrainedDynamics, state_traj: np.ndarray, dt: float) -> pd.DataFrame:
    """Kinetic energy ½ Σ m_i |v_i|² at every step."""
    _, velocities = _split(state_traj)
    masses = model.particles.masses
    kinetic = 0.5 * np.einsum('i,kij,kij->k', masses, velocities, velocities)
    steps = np.arange(len(kinetic))
    return pd.DataFrame({'step': steps, 'time': steps * dt, 'kinetic_energy': kinetic})


def summarize_run(
    model: ConstrainedDynamics,
    state_traj: np.ndarray,
    control_traj: Optional[np.ndarray] = None,
    dt: float = 1.0
) -> Dict[str, float]:
    """Headline numbers of a run: duration, worst violation, energy and displacement."""
    history = constraint_history(model, state_traj, dt)
    energy = energy_history(model, state_traj, dt)
    positions, _ = _split(state_traj)

    violation_cols = [c for c in history.columns if c not in ('step', 'time')]
    summary = {
        'steps': int(len(state_traj) - 1),
        'duration': float((len(state_traj) - 1) * dt),
        'max_violation': float(history[violation_cols].to_numpy().max()) if violation_cols else 0.0,
        'final_violation': float(history[violation_cols].iloc[-1].max()) if violation_cols else 0.0,
        'max_kinetic_energy': float(energy['kinetic_energy'].max()),
        'final_kinetic_energy': float(energy['kinetic_energy'].iloc[-1]),
        'max_displacement': float(np.linalg.norm(positions - positions[0], axis=2).max()),
    }
    if control_traj is not None and len(control_traj):
        summary['max_control'] = float(np.abs(control_traj).max())
    return summary
