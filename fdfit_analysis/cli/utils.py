"""
Helper functions for the fdfit CLI.

Contains:
- save_figure: figure output with the --save prefix
- parse_pair / parse_float_list: argparse types for comma separated values
"""

import argparse
import logging
from typing import List, Optional, Tuple

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def save_figure(
    fig: Optional[plt.Figure],
    prefix: Optional[str],
    suffix: str,
    fmt: str = 'png'
) -> Optional[str]:
    """
    Save a figure as '<prefix>_<suffix>.<fmt>' when fig and prefix are given.

    Parameters
    ----------
    fig : Figure or None
        Matplotlib figure to save
    prefix : str or None
        File prefix (from --save)
    suffix : str
        File suffix, e.g. 'fit', 'sweep'
    fmt : str
        'png', 'pdf', 'svg' or 'eps' (default: 'png')

    Returns
    -------
    filepath : str or None
        Path written, None when nothing was saved
    """
    if fig is None or prefix is None:
        return None

    filepath = f"{prefix}_{suffix}.{fmt}"
    try:
        if fmt == 'png':
            fig.savefig(filepath, dpi=150, bbox_inches='tight')
        else:
            fig.savefig(filepath, bbox_inches='tight')
    except OSError as e:
        logger.error(f"Error saving figure: {e}")
        return None
    logger.info(f"Saved: {filepath}")
    return filepath


def parse_float_list(text: str) -> List[float]:
    """argparse type: '0,25,50' -> [0.0, 25.0, 50.0]."""
    try:
        values = [float(v) for v in text.split(',') if v.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma separated numbers, got '{text}'")
    if not values:
        raise argparse.ArgumentTypeError("expected at least one number")
    return values


def parse_pair(text: str) -> Tuple[float, float]:
    """argparse type: '40,70' -> (40.0, 70.0) with min < max."""
    values = parse_float_list(text)
    if len(values) != 2 or not values[0] < values[1]:
        raise argparse.ArgumentTypeError(f"expected 'min,max' with min < max, got '{text}'")
    return values[0], values[1]


__all__ = [
    'save_figure',
    'parse_float_list',
    'parse_pair',
]
