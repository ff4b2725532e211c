"""
Visualization module for F,d analysis.
"""

from .plots import (
    plot_fd_fit,
    plot_global_fit,
    plot_sweep_results,
    plot_bootstrap_sweeps,
    plot_condition_dependence,
    plot_offset_recovery,
)

__all__ = [
    'plot_fd_fit',
    'plot_global_fit',
    'plot_sweep_results',
    'plot_bootstrap_sweeps',
    'plot_condition_dependence',
    'plot_offset_recovery',
]
