"""Convergence plots of the coupled solver."""

from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from ..core.result import IterationRecord


def plot_residual_history(
    history: Sequence[IterationRecord],
    ax: Optional[plt.Axes] = None,
    show: bool = True,
    title: Optional[str] = None,
    tolerances: Optional[dict] = None,
) -> plt.Axes:
    """
    Plot the three fixed-point residuals against the iteration number.

    Parameters
    ----------
    history : sequence of IterationRecord
        Residual history of a run
    ax : matplotlib Axes, optional
        Existing axes
    show : bool
        Whether to call plt.show()
    title : str, optional
        Plot title
    tolerances : dict, optional
        ``{"epsSol": ..., "epsCM": ..., "epsH": ...}`` drawn as dashed lines

    Returns
    -------
    ax : matplotlib Axes
        Axes object
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 5))

    iterations = [r.iteration for r in history]
    series = (
        ("solution", [r.residual_solution for r in history], "tab:blue", "epsSol"),
        ("mass", [abs(r.residual_mass) for r in history], "tab:green", "epsCM"),
        ("hematocrit", [r.residual_hematocrit for r in history], "tab:red", "epsH"),
    )
    for label, values, color, key in series:
        # zeros cannot be drawn on a log axis
        values = np.maximum(np.asarray(values, dtype=float), np.finfo(float).tiny)
        ax.semilogy(iterations, values, marker="o", color=color, label=label)
        if tolerances and key in tolerances:
            ax.axhline(tolerances[key], color=color, linestyle="--", alpha=0.5)

    ax.set_xlabel("Iteration")
    ax.set_ylabel("Residual")
    ax.set_title(title or "Fixed-point residuals")
    ax.grid(True, which="both", alpha=0.3)
    ax.legend()

    if show:
        plt.show()

    return ax


def plot_filtration_history(
    history: Sequence[IterationRecord],
    ax: Optional[plt.Axes] = None,
    show: bool = True,
) -> plt.Axes:
    """Plot TFR, lymphatic flow rate and the flow leaving the tissue block."""
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 5))

    iterations = [r.iteration for r in history]
    ax.plot(iterations, [r.total_filtration_rate for r in history], marker="o", label="TFR")
    ax.plot(iterations, [r.lymphatic_flow_rate for r in history], marker="s", label="lymphatic")
    ax.plot(iterations, [r.cube_flow_rate for r in history], marker="^", label="tissue boundary")
    ax.set_xlabel("Iteration")
    ax.set_ylabel("Flow rate (dimensionless)")
    ax.grid(True, alpha=0.3)
    ax.legend()

    if show:
        plt.show()

    return ax
