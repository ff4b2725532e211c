"""
Argument parsing for the fdfit CLI.

Options are grouped by concern:
- Input/Output options
- Data simulation options
- Fitting options
- Sweep and bootstrap options
- Magnesium series options
"""

import argparse
from typing import Optional, Sequence

from .utils import parse_float_list, parse_pair
from ..version import get_version_string
from ..models import available_models
from ..fitting.config import VALID_GOF_TYPES, DEFAULT_GOF_TYPE
from ..fitting.sweep import VALID_SWEEP_TYPES, VALID_BOUNDARY_TYPES
from ..analysis.config import (
    DEFAULT_MG_CONCS,
    DEFAULT_N_SWEEPS,
    DEFAULT_SWEEP_BOUNDARIES,
)

ANALYSES = ('fit', 'global', 'offsets', 'sweep', 'twlc', 'mg')


class OnePerLineHelpFormatter(argparse.RawDescriptionHelpFormatter):
    """Help formatter listing one option per usage line."""

    def _format_usage(self, usage, actions, groups, prefix):
        if prefix is None:
            prefix = 'usage: '
        if usage is not None:
            return f'{prefix}{usage % dict(prog=self._prog)}\n\n'

        indent = ' ' * (len(prefix) + len(self._prog) + 1)
        lines = [f'{prefix}{self._prog}']
        for action in actions:
            if not action.option_strings:
                if action.dest != 'help':
                    lines.append(f'{indent}[{action.dest}]' if action.nargs == '?'
                                 else f'{indent}{action.dest}')
            elif action.nargs == 0:
                lines.append(f'{indent}[{action.option_strings[0]}]')
            else:
                metavar = action.metavar or action.dest.upper()
                lines.append(f'{indent}[{action.option_strings[0]} {metavar}]')
        return '\n'.join(lines) + '\n\n'


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Parameters
    ----------
    argv : sequence of str, optional
        Arguments without the program name (default: sys.argv[1:])

    Returns
    -------
    args : argparse.Namespace
    """
    parser = argparse.ArgumentParser(
        prog='fdfit',
        description=f'Force-extension (F,d) curve fitting of DNA ({get_version_string()})',
        usage='fdfit [analysis] [options]',
        formatter_class=OnePerLineHelpFormatter,
        epilog="""
Examples:
  fdfit                              Odijk eWLC fit of one simulated curve
  fdfit global --n-curves 10         Global fit with per-curve offsets
  fdfit offsets --n-curves 20        Individual versus global offset recovery
  fdfit sweep --sweep-type right --boundary-type f
                                     Maximum-force sweep of one tWLC curve
  fdfit mg --mg-concs 0,50,100 --n-bootstrap 10 --seed 1
                                     tWLC analysis per magnesium concentration
        """
    )

    parser.add_argument('--version', action='version',
                        version=f'%(prog)s {get_version_string()}')

    # ==========================================================================
    # Input/Output Group
    # ==========================================================================
    io_group = parser.add_argument_group('Input/Output')

    io_group.add_argument('analysis', nargs='?', default='fit', choices=ANALYSES,
                          help='Analysis to run on simulated data (default: fit)')
    io_group.add_argument('--save', '-s', type=str, default=None,
                          help='Save plots to files with this prefix')
    io_group.add_argument('--format', '-f', type=str, default='png',
                          choices=['png', 'pdf', 'svg', 'eps'],
                          help='Output format for saved plots (default: png)')
    io_group.add_argument('--no-show', action='store_true',
                          help='Do not display plots (useful with --save)')
    io_group.add_argument('--verbose', '-v', action='count', default=0,
                          help='Show debug messages on stderr')
    io_group.add_argument('--quiet', '-q', action='store_true',
                          help='Quiet mode - hide INFO messages, show only warnings and errors')

    # ==========================================================================
    # Simulation Group
    # ==========================================================================
    sim_group = parser.add_argument_group('Data Simulation')

    sim_group.add_argument('--n-curves', '-n', type=int, default=5,
                           help='Number of simulated curves per condition (default: 5)')
    sim_group.add_argument('--n-points', type=int, default=500,
                           help='Grid points per simulated curve (default: 500)')
    sim_group.add_argument('--noise', type=float, default=0.2, metavar='PN',
                           help='Force noise amplitude [pN] (default: 0.2)')
    sim_group.add_argument('--seed', type=int, default=None,
                           help='Random seed for simulation and bootstrap')

    # ==========================================================================
    # Fitting Group
    # ==========================================================================
    fit_group = parser.add_argument_group('Fitting')

    fit_group.add_argument('--model', '-m', type=str, default=None,
                           choices=available_models(),
                           help='Fit model (default: odijk for fit, odijk-inv-d0-f0 '
                                'for global/offsets, twlc for sweep)')
    fit_group.add_argument('--shared', type=str, default='Lp,S',
                           help='Comma separated parameters shared in global fits (default: Lp,S)')
    fit_group.add_argument('--conf-int', action='store_true',
                           help='Compute confidence intervals of global fits')
    fit_group.add_argument('--no-trim', action='store_true',
                           help='Do not apply the model force limit (Odijk: 30 pN)')

    # ==========================================================================
    # Sweep Group
    # ==========================================================================
    sweep_group = parser.add_argument_group('Sweep and Bootstrap')

    sweep_group.add_argument('--sweep-type', type=str, default='right',
                             choices=VALID_SWEEP_TYPES,
                             help='Boundary that moves (default: right)')
    sweep_group.add_argument('--boundary-type', type=str, default='f',
                             choices=VALID_BOUNDARY_TYPES,
                             help='Axis of the boundaries: d [um] or f [pN] (default: f)')
    sweep_group.add_argument('--n-sweeps', type=int, default=DEFAULT_N_SWEEPS,
                             help=f'Sweep positions (default: {DEFAULT_N_SWEEPS})')
    sweep_group.add_argument('--sweep-boundaries', type=parse_pair,
                             default=DEFAULT_SWEEP_BOUNDARIES, metavar='MIN,MAX',
                             help='Range of the moving boundary (default: %s,%s)'
                                  % DEFAULT_SWEEP_BOUNDARIES)
    sweep_group.add_argument('--gof', type=str, default=DEFAULT_GOF_TYPE,
                             choices=VALID_GOF_TYPES,
                             help=f'Goodness-of-fit statistic (default: {DEFAULT_GOF_TYPE})')
    sweep_group.add_argument('--n-bootstrap', type=int, default=20,
                             help='Bootstrap iterations of tWLC analyses (default: 20)')
    sweep_group.add_argument('--parallel', action='store_true',
                             help='Run independent fits on a thread pool')
    sweep_group.add_argument('--max-workers', type=int, default=4,
                             help='Thread pool size with --parallel (default: 4)')

    # ==========================================================================
    # Magnesium Group
    # ==========================================================================
    mg_group = parser.add_argument_group('Magnesium Series')

    mg_group.add_argument('--mg-concs', type=parse_float_list,
                          default=list(DEFAULT_MG_CONCS), metavar='C1,C2,...',
                          help='Magnesium concentrations [mM] (default: %s)'
                               % ','.join(str(c) for c in DEFAULT_MG_CONCS))

    args = parser.parse_args(argv)

    if args.n_curves < 1:
        parser.error("--n-curves must be at least 1")
    if args.n_sweeps < 1:
        parser.error("--n-sweeps must be at least 1")
    if args.n_bootstrap < 1:
        parser.error("--n-bootstrap must be at least 1")

    return args


__all__ = [
    'ANALYSES',
    'OnePerLineHelpFormatter',
    'parse_arguments',
]
