# hydrostat/viz.py
"""
VISUALIZATION: History Plots with matplotlib
============================================

Each function takes a DataFrame from `hydrostat.post`, draws one figure
and returns (fig, ax). Pass `save_path` to also write a PNG; the figure
is left open so callers can keep styling it.
"""

import logging
import os
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import pandas as pd

from .kernel.errors import ConfigurationError

logger = logging.getLogger(__name__)

_PLANES = {'xy': ('x', 'y'), 'xz': ('x', 'z'), 'yz': ('y', 'z')}


def _save(fig, save_path: Optional[str]) -> None:
    if not save_path:
        return
    directory = os.path.dirname(save_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fig.tight_layout()
    fig.savefig(save_path, dpi=150, bbox_inches='tight')
    logger.info("Plot saved to: %s", save_path)


def plot_constraint_history(history: pd.DataFrame, save_path: Optional[str] = None, log_scale: bool = True):
    """Max |C| per constraint against time (output of `constraint_history`)."""
    fig, ax = plt.subplots(figsize=(10, 5))
    for column in history.columns:
        if column in ('step', 'time'):
            continue
        ax.plot(history['time'], history[column], linewidth=2, label=column)

    if log_scale:
        ax.set_yscale('symlog', linthresh=1e-12)
    ax.set_xlabel('Time')
    ax.set_ylabel('max |C|')
    ax.set_title('Constraint violation')
    ax.grid(True, alpha=0.3)
    ax.legend(loc='best', fontsize=9)

    _save(fig, save_path)
    return fig, ax


def plot_energy_history(energy: pd.DataFrame, save_path: Optional[str] = None):
    """Kinetic energy against time (output of `energy_history`)."""
    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(energy['time'], energy['kinetic_energy'], 'b-', linewidth=2)
    ax.set_xlabel('Time')
    ax.set_ylabel('Kinetic energy')
    ax.set_title('Kinetic energy')
    ax.grid(True, alpha=0.3)

    _save(fig, save_path)
    return fig, ax


def plot_vertex_paths(
    frame: pd.DataFrame,
    vertices: Optional[Sequence[int]] = None,
    plane: str = "xz",
    save_path: Optional[str] = None
):
    """
    Paths of selected vertices projected onto a coordinate plane.

    Parameters:
    -----------
    frame : pd.DataFrame
        Output of `trajectory_frame`
    vertices : sequence of int, optional
        Vertices to draw; default all
    plane : {'xy', 'xz', 'yz'}
    """
    if plane not in _PLANES:
        raise ConfigurationError(f"plane must be one of {sorted(_PLANES)}, got '{plane}'.")
    a, b = _PLANES[plane]
    if vertices is None:
        vertices = sorted(frame['vertex'].unique())

    fig, ax = plt.subplots(figsize=(8, 8))
    for v in vertices:
        path = frame[frame['vertex'] == v].sort_values('step')
        line, = ax.plot(path[a], path[b], '-', linewidth=1.5, label=f'v{v}')
        ax.plot(path[a].iloc[0], path[b].iloc[0], 'o', color=line.get_color(), markersize=6)
        ax.plot(path[a].iloc[-1], path[b].iloc[-1], 's', color=line.get_color(), markersize=6)

    ax.set_xlabel(a)
    ax.set_ylabel(b)
    ax.set_title(f'Vertex paths ({plane})')
    ax.set_aspect('equal', adjustable='datalim')
    ax.grid(True, alpha=0.3)
    if len(vertices) <= 12:
        ax.legend(loc='best', fontsize=8)

    _save(fig, save_path)
    return fig, ax
