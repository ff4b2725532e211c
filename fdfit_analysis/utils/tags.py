"""
Condition tags for magnesium concentration series.

Curves measured at a given [Mg2+] carry a tag encoding the concentration:
'buffer' for 0 mM, 'mgNNN' (zero-padded, mM) otherwise.
"""

import re
from typing import Optional

from ..data.curve import FdCurve
from ..errors import InvalidArgument

_MG_TAG = re.compile(r'^mg(\d+(?:\.\d+)?)$', re.IGNORECASE)


def mg_conc_to_tag(mg_conc: float) -> str:
    """
    Tag for a magnesium concentration [mM], valid range 0-999.

    >>> mg_conc_to_tag(0)
    'buffer'
    >>> mg_conc_to_tag(25)
    'mg025'
    """
    if not 0 <= mg_conc <= 999:
        raise InvalidArgument(f"mg_conc out of range 0-999 mM: {mg_conc}")
    if mg_conc == 0:
        return 'buffer'
    return f"mg{int(round(mg_conc)):03d}"


def tag_to_mg_conc(curve: FdCurve) -> Optional[float]:
    """
    Magnesium concentration [mM] encoded in a curve's tags.

    Returns None if no 'buffer' or 'mgNNN' tag is present.
    """
    for tag in sorted(curve.tags):
        if tag.lower() == 'buffer':
            return 0.0
        match = _MG_TAG.match(tag)
        if match:
            return float(match.group(1))
    return None


__all__ = [
    'mg_conc_to_tag',
    'tag_to_mg_conc',
]
