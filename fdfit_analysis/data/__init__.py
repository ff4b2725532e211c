"""
Force-extension data containers.

- curve.py: FdCurve value object (force, distance, time + annotations)
- collection.py: FdCollection with tag filtering, set algebra,
  concatenation and bootstrap resampling
"""

from .curve import FdCurve, Mark, VALID_AXES
from .collection import FdCollection

__all__ = [
    'FdCurve',
    'Mark',
    'VALID_AXES',
    'FdCollection',
]
