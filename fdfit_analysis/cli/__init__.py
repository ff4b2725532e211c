"""
CLI module for the F,d curve fitting toolkit.

This module provides the command-line interface components:
- logging: Prefix log formatter and setup
- parser: Argument parsing
- handlers: Analysis workflow handlers
- utils: Helper functions (figure output, argument types)

The main entry point is in the root fdfit.py script.
"""

from .logging import setup_logging, log_separator
from .parser import ANALYSES, parse_arguments
from .handlers import (
    HANDLERS,
    save_figures,
    run_single_fit,
    run_global_fit,
    run_offset_comparison,
    run_sweep,
    run_twlc_analysis,
    run_mg_analysis,
)
from .utils import save_figure, parse_float_list, parse_pair

__all__ = [
    # Logging
    'setup_logging',
    'log_separator',
    # Parser
    'ANALYSES',
    'parse_arguments',
    # Handlers
    'HANDLERS',
    'save_figures',
    'run_single_fit',
    'run_global_fit',
    'run_offset_comparison',
    'run_sweep',
    'run_twlc_analysis',
    'run_mg_analysis',
    # Utils
    'save_figure',
    'parse_float_list',
    'parse_pair',
]
