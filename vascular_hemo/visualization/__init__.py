"""Plots of solver diagnostics."""

from .residual_plots import plot_residual_history, plot_filtration_history

__all__ = ["plot_residual_history", "plot_filtration_history"]
