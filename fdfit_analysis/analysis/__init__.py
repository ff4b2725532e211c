"""
Analysis procedures built on the fitting engines.

- alignment.py: offset removal by a global fit, plateau rescaling
- bootstrap.py: bootstrap force sweeps and cutoff-force selection
- twlc.py: tWLC analysis of one dataset and per magnesium concentration
- performance.py: individual versus global offset fits
"""

from .alignment import align_fd_curves, remove_offsets, plateau_forces
from .bootstrap import BootstrapSweepResult, run_bootstrap_sweeps
from .twlc import TwlcSettings, TwlcAnalysis, TwlcVsMgAnalysis
from .performance import OffsetRecovery, compare_offset_fits

__all__ = [
    'align_fd_curves',
    'remove_offsets',
    'plateau_forces',
    'BootstrapSweepResult',
    'run_bootstrap_sweeps',
    'TwlcSettings',
    'TwlcAnalysis',
    'TwlcVsMgAnalysis',
    'OffsetRecovery',
    'compare_offset_fits',
]
