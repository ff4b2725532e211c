"""
Analysis workflow handlers for the fdfit CLI.

Each handler runs one analysis on simulated data, logs the results and
returns the figures it made:
- run_single_fit: one model fitted to one curve
- run_global_fit: global fit with shared and per-curve parameters
- run_offset_comparison: individual versus global offset recovery
- run_sweep: boundary sweep over one curve
- run_twlc_analysis: bootstrap tWLC analysis of one dataset
- run_mg_analysis: tWLC analysis per magnesium concentration
"""

import argparse
import logging
from typing import Any, Dict, List, Tuple

import numpy as np
import matplotlib.pyplot as plt

from .logging import log_separator
from .utils import save_figure
from ..data import FdCollection
from ..models import make_model, FitModel
from ..models.config import ODIJK_MAX_FORCE
from ..fitting import (
    fit_fd,
    fit_fd_global,
    sweep_fd_fits,
    log_fit_results,
    GlobalFitResult,
)
from ..analysis import (
    TwlcSettings,
    TwlcAnalysis,
    TwlcVsMgAnalysis,
    compare_offset_fits,
)
from ..analysis.config import PARAM_UNITS
from ..io import simulate_fd_curve, simulate_fd_ensemble, simulate_offset_ensemble
from ..utils import mg_conc_to_tag
from ..visualization import (
    plot_fd_fit,
    plot_global_fit,
    plot_sweep_results,
    plot_bootstrap_sweeps,
    plot_condition_dependence,
    plot_offset_recovery,
)

logger = logging.getLogger(__name__)

Figures = List[Tuple[str, plt.Figure]]


D_MODEL_MIN_FORCE = 5.0
"""Lowest simulated force [pN] for d(F) fits; F - F0 must stay positive."""


def _simulation_kwargs(model: FitModel) -> Dict[str, Any]:
    """Simulation model and force range for data fitted with model."""
    if model.name.startswith('twlc'):
        return {'model': 'twlc'}
    kwargs: Dict[str, Any] = {'model': 'odijk'}
    if model.dependent_variable == 'd':
        kwargs['f_range'] = (D_MODEL_MIN_FORCE, ODIJK_MAX_FORCE)
    return kwargs


def _noise(args: argparse.Namespace) -> Tuple[float, float]:
    # distance noise scales with the force noise (0.005 um per 0.2 pN)
    return args.noise, 0.025 * args.noise


def _shared_params(args: argparse.Namespace) -> List[str]:
    return [name.strip() for name in args.shared.split(',') if name.strip()]


def _twlc_settings(args: argparse.Namespace) -> TwlcSettings:
    # Simulated curves stop before the overstretching plateau
    return TwlcSettings(
        n_bootstrap_iter=args.n_bootstrap,
        n_sweeps=args.n_sweeps,
        sweep_boundaries=args.sweep_boundaries,
        os_plateau_region=None,
        gof_type=args.gof,
    )


def save_figures(figures: Figures, args: argparse.Namespace) -> None:
    """Save every (suffix, figure) pair with the --save prefix."""
    for suffix, fig in figures:
        save_figure(fig, args.save, suffix, args.format)


# =============================================================================
# Single fit
# =============================================================================

def run_single_fit(args: argparse.Namespace) -> Figures:
    """
    Fit one model to one simulated curve.

    Parameters
    ----------
    args : argparse.Namespace
        CLI arguments (uses: model, seed, noise, n_points, no_trim)

    Returns
    -------
    figures : list of (suffix, Figure)
    """
    model = make_model(args.model or 'odijk')
    curve = simulate_fd_curve(
        n_points=args.n_points, noise=_noise(args), rng=args.seed,
        **_simulation_kwargs(model)
    )
    logger.info(f"Data: {curve.name} ({len(curve)} points, F up to {np.max(curve.force):.1f} pN)")

    log_separator(60)
    logger.info(f"Fitting {model.name} ({model.dependent_variable}(x) orientation)")
    log_separator(60)

    result, gof, diagnostics = fit_fd(curve, model, trim=not args.no_trim)
    ci_low, ci_high = result.params_ci_95
    log_fit_results(result.param_names, result.params_opt, result.params_stderr, gof, ci_low, ci_high)

    for message in diagnostics.bounds_warnings + diagnostics.warnings:
        logger.warning(message)
    if diagnostics.covariance_warning:
        logger.warning(diagnostics.covariance_warning)

    return [('fit', plot_fd_fit(curve, result))]


# =============================================================================
# Global fit
# =============================================================================

def _log_global_result(result: GlobalFitResult) -> None:
    for name in result.layout.shared:
        line = f"  {name:<4s} = {result.params[name]:10.4g} (shared)"
        if result.conf_int_95 is not None:
            low, high = result.conf_int_95[name]
            line += f"  [{low:.4g}, {high:.4g}]"
        logger.info(line)
    for name in result.layout.per_curve:
        values = result.params[name]
        logger.info(f"  {name:<4s} = {np.mean(values):10.4g} +/- {np.std(values):.3g} "
                    f"(per curve, n = {len(values)})")
    gof = result.gof
    logger.info(f"  R^2 = {gof.rsquare:.5f}, RMSE = {gof.rmse:.4g} (dfe = {gof.dfe})")
    logger.debug(f"  status {result.exit_flag}: {result.diagnostics.optimizer_message}, "
                 f"{result.diagnostics.n_function_evals} evaluations")


def run_global_fit(args: argparse.Namespace) -> Figures:
    """
    Global fit of simulated curves carrying random offsets.

    Parameters
    ----------
    args : argparse.Namespace
        CLI arguments (uses: model, shared, n_curves, seed, noise, n_points,
        conf_int, no_trim)
    """
    model = make_model(args.model or 'odijk-inv-d0-f0')
    collection, _, _ = simulate_offset_ensemble(
        args.n_curves, rng=args.seed, n_points=args.n_points, noise=_noise(args),
        **_simulation_kwargs(model)
    )
    shared = _shared_params(args)

    log_separator(60)
    logger.info(f"Global fit of {len(collection)} curves: {model.name}, shared {shared}")
    log_separator(60)

    result = fit_fd_global(
        collection, model, shared, compute_conf_int=args.conf_int, trim=not args.no_trim
    )
    _log_global_result(result)
    for message in result.diagnostics.warnings:
        logger.warning(message)

    return [('global', plot_global_fit(collection, result))]


def run_offset_comparison(args: argparse.Namespace) -> Figures:
    """
    Recover known offsets by individual fits and by a global fit.

    Parameters
    ----------
    args : argparse.Namespace
        CLI arguments (uses: model, shared, n_curves, seed, noise, n_points,
        parallel)
    """
    model = make_model(args.model or 'odijk-inv-d0-f0')
    collection, d0, F0 = simulate_offset_ensemble(
        args.n_curves, rng=args.seed, n_points=args.n_points, noise=_noise(args),
        **_simulation_kwargs(model)
    )

    log_separator(60)
    logger.info(f"Offset recovery on {len(collection)} curves ({model.name})")
    log_separator(60)

    recovery = compare_offset_fits(
        collection, model, d0, F0, shared_params=_shared_params(args), parallel=args.parallel
    )
    for name in ('d0', 'F0'):
        errors = recovery.rms_error(name)
        logger.info(f"  RMS error {name}: individual {errors['individual']:.4g}, "
                    f"global {errors['global']:.4g} {PARAM_UNITS.get(name, '')}")
    n_failed = sum(not outcome.fitted for outcome in recovery.individual_outcomes)
    if n_failed:
        logger.warning(f"{n_failed} individual fits produced no result")

    return [('offsets', plot_offset_recovery(recovery))]


# =============================================================================
# Sweep
# =============================================================================

def run_sweep(args: argparse.Namespace) -> Figures:
    """
    Boundary sweep over one simulated curve.

    Parameters
    ----------
    args : argparse.Namespace
        CLI arguments (uses: model, sweep_type, boundary_type, n_sweeps,
        sweep_boundaries, gof, seed, noise, n_points, no_trim, parallel,
        max_workers)
    """
    model = make_model(args.model or 'twlc-lc-fixed')
    curve = simulate_fd_curve(
        n_points=args.n_points, noise=_noise(args), rng=args.seed,
        **_simulation_kwargs(model)
    )
    # Boundaries are given along the force axis; distance sweeps use the data range
    boundaries = None
    if args.sweep_type != 'both' and args.boundary_type == 'f':
        boundaries = args.sweep_boundaries

    log_separator(60)
    logger.info(f"Sweep ({args.sweep_type}, {args.boundary_type}) of {model.name}, "
                f"{args.n_sweeps} positions")
    log_separator(60)

    sweep = sweep_fd_fits(
        curve, model,
        sweep_type=args.sweep_type,
        boundary_type=args.boundary_type,
        n_sweeps=args.n_sweeps,
        boundaries=boundaries,
        gof_type=args.gof,
        trim=not args.no_trim,
        parallel=args.parallel,
        max_workers=args.max_workers,
    )
    n_fitted = int(np.sum(sweep.fitted))
    logger.info(f"  {n_fitted} of {sweep.gof.size} cells fitted")
    if n_fitted:
        i, j = sweep.best_index()
        logger.info(f"  Best {args.gof} = {sweep.gof[i, j]:.5g} at "
                    f"left {sweep.positions_left[i]:.4g}, right {sweep.positions_right[j]:.4g}")
        for name, value in zip(sweep.param_names, sweep.cells[i, j].params):
            logger.info(f"    {name:<4s} = {value:10.4g} {PARAM_UNITS.get(name, '')}")
    else:
        logger.warning("No sweep cell produced a fit")

    return [('sweep', plot_sweep_results(sweep))]


# =============================================================================
# tWLC analyses
# =============================================================================

def run_twlc_analysis(args: argparse.Namespace) -> Figures:
    """
    Bootstrap tWLC analysis of simulated curves.

    Parameters
    ----------
    args : argparse.Namespace
        CLI arguments (uses: n_curves, n_bootstrap, n_sweeps,
        sweep_boundaries, gof, seed, noise, n_points, parallel, max_workers)
    """
    rng = np.random.default_rng(args.seed)
    data = simulate_fd_ensemble(
        args.n_curves, rng=rng, model='twlc', n_points=args.n_points, noise=_noise(args)
    )

    log_separator(60)
    logger.info("tWLC analysis")
    log_separator(60)

    analysis = TwlcAnalysis(
        data, settings=_twlc_settings(args), seed=rng,
        parallel=args.parallel, max_workers=args.max_workers
    ).analyze()
    for line in analysis.summary().splitlines():
        logger.info(line)

    return [('twlc', plot_bootstrap_sweeps(analysis.result, title='tWLC bootstrap sweeps'))]


def run_mg_analysis(args: argparse.Namespace) -> Figures:
    """
    tWLC analysis per magnesium concentration of simulated curves.

    Parameters
    ----------
    args : argparse.Namespace
        CLI arguments (uses: mg_concs, n_curves, n_bootstrap, n_sweeps,
        sweep_boundaries, gof, seed, noise, n_points, parallel, max_workers)
    """
    rng = np.random.default_rng(args.seed)
    curves = []
    for conc in args.mg_concs:
        curves.extend(simulate_fd_ensemble(
            args.n_curves, rng=rng, tags=(mg_conc_to_tag(conc),), model='twlc',
            n_points=args.n_points, noise=_noise(args)
        ))
    data = FdCollection(curves)

    log_separator(60)
    logger.info(f"tWLC analysis vs [Mg]: {args.mg_concs} mM")
    log_separator(60)

    analysis = TwlcVsMgAnalysis(
        data, mg_concs=args.mg_concs, settings=_twlc_settings(args),
        seed=args.seed, parallel=args.parallel, max_workers=args.max_workers
    ).analyze()
    for line in analysis.summary().splitlines():
        logger.info(line)

    fig = plot_condition_dependence(
        analysis.mg_concs, analysis.condition_table(), analysis.cutoff_forces()
    )
    return [('mg', fig)]


HANDLERS = {
    'fit': run_single_fit,
    'global': run_global_fit,
    'offsets': run_offset_comparison,
    'sweep': run_sweep,
    'twlc': run_twlc_analysis,
    'mg': run_mg_analysis,
}


__all__ = [
    'HANDLERS',
    'save_figures',
    'run_single_fit',
    'run_global_fit',
    'run_offset_comparison',
    'run_sweep',
    'run_twlc_analysis',
    'run_mg_analysis',
]
