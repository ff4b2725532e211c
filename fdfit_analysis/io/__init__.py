"""
Data generation for F,d analyses.

File formats are handled outside this package; curves are built directly
with FdCurve or simulated here.
"""

from .synthetic import simulate_fd_curve, simulate_fd_ensemble, simulate_offset_ensemble

__all__ = [
    'simulate_fd_curve',
    'simulate_fd_ensemble',
    'simulate_offset_ensemble',
]
