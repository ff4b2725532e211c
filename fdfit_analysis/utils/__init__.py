"""
Utility functions.

- parallel.py: ordered thread pool execution of independent tasks
- tags.py: condition (magnesium concentration) tags
"""

from .parallel import run_tasks
from .tags import mg_conc_to_tag, tag_to_mg_conc

__all__ = [
    'run_tasks',
    'mg_conc_to_tag',
    'tag_to_mg_conc',
]
