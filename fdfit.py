#!/usr/bin/env python3
"""
F,d Curve Fitting
=================

CLI tool for fitting force-extension curves of DNA with worm-like chain
models.

Version: Imported from fdfit_analysis.version (single source of truth)

Features:
- Odijk eWLC, twistable WLC and FJC fits of single curves
- Global fits with shared parameters and per-curve offsets
- Boundary sweeps and bootstrap cutoff-force selection
- tWLC analysis per magnesium concentration

All analyses run on simulated data.

Usage:
    fdfit                               # Odijk fit of one curve
    fdfit global --n-curves 10 --conf-int
    fdfit sweep --sweep-type both --boundary-type d --n-sweeps 20
    fdfit mg --mg-concs 0,50,100 --n-bootstrap 10 --seed 1

    fdfit --help                        # help
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

import matplotlib.pyplot as plt

from fdfit_analysis.errors import FdFitError
from fdfit_analysis.version import get_version_string
from fdfit_analysis.cli import (
    HANDLERS,
    parse_arguments,
    setup_logging,
    log_separator,
    save_figures,
)

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main CLI entry point."""
    args = parse_arguments(argv)
    setup_logging(args)

    try:
        _run_analysis(args)
    except FdFitError as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Analysis interrupted by user")
        sys.exit(130)


def _run_analysis(args: argparse.Namespace) -> None:
    """Run the selected analysis, then save and show its figures."""
    log_separator(60)
    logger.info(f"F,d Analysis ({get_version_string()}): {args.analysis}")
    log_separator(60)

    figures = HANDLERS[args.analysis](args)
    save_figures(figures, args)

    if not args.no_show:
        plt.show()
    else:
        for _, fig in figures:
            plt.close(fig)

    log_separator(60)
    logger.info("Analysis complete")
    log_separator(60)


if __name__ == "__main__":
    main()
