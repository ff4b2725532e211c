"""
Visualization of F,d data and fit results.

All functions take result structures read-only and return a matplotlib
Figure; showing or saving is up to the caller.
"""

import numpy as np
import matplotlib.pyplot as plt
from typing import Dict, Optional, Sequence
from numpy.typing import NDArray

from ..data import FdCurve, FdCollection
from ..fitting.single import FdFitResult
from ..fitting.global_fit import GlobalFitResult
from ..fitting.sweep import SweepResult

PLOT_GRID_ALPHA = 0.3
CUTOFF_COLOR = '#d62728'


def _subplot_grid(n: int):
    n_rows = int(np.floor(np.sqrt(n)))
    n_cols = int(np.ceil(n / n_rows))
    return n_rows, n_cols


def plot_fd_fit(
    curve: FdCurve,
    result: FdFitResult,
    title: Optional[str] = None,
    figsize: tuple = (12, 5)
) -> plt.Figure:
    """
    Plot an F,d curve with its model fit and the fit residuals.

    Parameters
    ----------
    curve : FdCurve
        Fitted data (the full curve; the fit may have used only part of it)
    result : FdFitResult
        Result of fit_fd
    title : str, optional
        Plot title (default: curve name and model)
    figsize : tuple, optional
        Figure size (default: (12, 5))

    Returns
    -------
    fig : matplotlib.figure.Figure
    """
    model = result.model
    fit_data = model.validate_data(curve)
    x, y = model.split_data(fit_data)
    x_dense = np.linspace(np.nanmin(x), np.nanmax(x), 500)
    y_dense = result.predict(x_dense)

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=figsize)

    ax1.plot(curve.distance, curve.force, '.', color='0.7', markersize=3, label='Data')
    if model.dependent_variable == 'F':
        ax1.plot(x_dense, y_dense, '-', linewidth=2, label=f'Fit ({model.name})')
    else:
        ax1.plot(y_dense, x_dense, '-', linewidth=2, label=f'Fit ({model.name})')
    ax1.set_xlabel("d [um]")
    ax1.set_ylabel("F [pN]")
    ax1.set_title(title or f"{curve.name}: {model.name}")
    ax1.legend(loc='upper left')
    ax1.grid(True, alpha=PLOT_GRID_ALPHA)

    residuals = y - result.predict(x)
    ax2.plot(x, residuals, '.', markersize=3)
    ax2.axhline(y=0, color='k', linestyle='--', alpha=0.5)
    ax2.set_xlabel("d [um]" if model.dependent_variable == 'F' else "F [pN]")
    ax2.set_ylabel("Residual [pN]" if model.dependent_variable == 'F' else "Residual [um]")
    ax2.set_title(f"Fit residuals (RMS {np.sqrt(np.mean(residuals ** 2)):.3g})")
    ax2.grid(True, alpha=PLOT_GRID_ALPHA)

    plt.tight_layout()
    return fig


def plot_global_fit(
    collection: FdCollection,
    result: GlobalFitResult,
    max_curves: int = 12,
    figsize: tuple = (8, 6)
) -> plt.Figure:
    """
    Plot curves of a global fit with their per-curve model predictions.

    Only the first max_curves curves are drawn; each curve is offset
    vertically for readability.
    """
    fig, ax = plt.subplots(figsize=figsize)
    model = result.model
    colors = plt.cm.viridis(np.linspace(0, 1, min(len(collection), max_curves)))

    for i, curve in enumerate(collection.items[:max_curves]):
        x, _ = model.split_data(model.validate_data(curve))
        x_dense = np.linspace(np.min(x), np.max(x), 300)
        y_dense = result.predict(x_dense, i)
        ax.plot(curve.distance, curve.force + 2 * i, '.', color=colors[i], markersize=2, alpha=0.5)
        if model.dependent_variable == 'F':
            ax.plot(x_dense, y_dense + 2 * i, '-', color=colors[i], linewidth=1.5)
        else:
            ax.plot(y_dense, x_dense + 2 * i, '-', color=colors[i], linewidth=1.5)

    shared = ', '.join(f"{n} = {result.params[n]:.4g}" for n in result.layout.shared)
    ax.set_xlabel("d [um]")
    ax.set_ylabel("F [pN] (offset 2 pN per curve)")
    ax.set_title(f"Global fit ({model.name}): {shared}")
    ax.grid(True, alpha=PLOT_GRID_ALPHA)

    plt.tight_layout()
    return fig


def plot_sweep_results(
    sweep: SweepResult,
    params: Optional[Sequence[str]] = None,
    plot_gof: bool = True,
    figsize: tuple = (12, 8)
) -> plt.Figure:
    """
    Plot fit parameters (and goodness of fit) over a sweep.

    Single-boundary sweeps give line plots against the moving boundary;
    two-boundary sweeps give one image per parameter.
    """
    names = list(params) if params is not None else list(sweep.param_names)
    panels = names + (['gof'] if plot_gof else [])
    n_rows, n_cols = _subplot_grid(len(panels))
    fig, axes = plt.subplots(n_rows, n_cols, figsize=figsize, squeeze=False)

    n_left, n_right = sweep.shape
    axis_label = 'd [um]' if sweep.options.boundary_type == 'd' else 'F [pN]'

    for ax, name in zip(axes.flat, panels):
        grid = sweep.gof if name == 'gof' else sweep.param_grid(name)
        if n_left > 1 and n_right > 1:
            image = ax.pcolormesh(sweep.positions_right, sweep.positions_left, grid, shading='auto')
            fig.colorbar(image, ax=ax)
            ax.set_xlabel(f"Right boundary {axis_label}")
            ax.set_ylabel(f"Left boundary {axis_label}")
        elif n_left > 1:
            ax.plot(sweep.positions_left, grid[:, 0], '.b')
            ax.set_xlabel(f"Left boundary {axis_label}")
        else:
            ax.plot(sweep.positions_right, grid[0, :], '.b')
            ax.set_xlabel(f"Right boundary {axis_label}")
        ax.set_title(sweep.options.gof_type if name == 'gof' else name)
        ax.grid(True, alpha=PLOT_GRID_ALPHA)

    for ax in list(axes.flat)[len(panels):]:
        ax.set_visible(False)

    fig.suptitle(f"Sweep: {sweep.model_name} ({sweep.options.sweep_type})")
    plt.tight_layout()
    return fig


def plot_bootstrap_sweeps(
    bootstrap,
    title: Optional[str] = None,
    figsize: tuple = (12, 8)
) -> plt.Figure:
    """
    Plot parameter mean +/- std over bootstrap iterations against Fmax.

    The cutoff force (maximum mean goodness of fit) is highlighted; the
    last panel shows the mean goodness of fit.
    """
    positions = bootstrap.positions
    _, cutoff_idx = bootstrap.find_cutoff_force()
    panels = list(bootstrap.param_names) + ['gof']
    n_rows, n_cols = _subplot_grid(len(panels))
    fig, axes = plt.subplots(n_rows, n_cols, figsize=figsize, squeeze=False)

    for ax, name in zip(axes.flat, panels):
        if name == 'gof':
            mean = bootstrap.mean_gof
            ax.plot(positions, mean, '.b')
        else:
            values = bootstrap.param_values(name)
            mean = np.mean(values, axis=0)
            ddof = 1 if bootstrap.n_iterations > 1 else 0
            ax.errorbar(positions, mean, yerr=np.std(values, axis=0, ddof=ddof), fmt='.b')
        ax.plot(positions[cutoff_idx], mean[cutoff_idx], '.', color=CUTOFF_COLOR, markersize=14)
        ax.set_xlabel("Fmax [pN]")
        ax.set_title(name)
        ax.grid(True, alpha=PLOT_GRID_ALPHA)

    for ax in list(axes.flat)[len(panels):]:
        ax.set_visible(False)

    if title:
        fig.suptitle(title)
    plt.tight_layout()
    return fig


def plot_condition_dependence(
    mg_concs: Sequence[float],
    table: Dict[str, NDArray[np.float64]],
    cutoff_forces: Optional[NDArray[np.float64]] = None,
    figsize: tuple = (12, 8)
) -> plt.Figure:
    """
    Plot fit parameters (mean +/- std) against magnesium concentration.

    Parameters
    ----------
    mg_concs : sequence of float
        Concentrations [mM]
    table : dict
        name -> (n_concs, 2) array of (mean, std), see
        TwlcVsMgAnalysis.condition_table
    cutoff_forces : ndarray, optional
        Cutoff force per concentration; adds a panel
    """
    panels = list(table) + (['Fmax'] if cutoff_forces is not None else [])
    n_rows, n_cols = _subplot_grid(len(panels))
    fig, axes = plt.subplots(n_rows, n_cols, figsize=figsize, squeeze=False)

    for ax, name in zip(axes.flat, panels):
        if name == 'Fmax':
            ax.plot(mg_concs, cutoff_forces, '.b', markersize=12)
            ax.set_ylabel("Cutoff force [pN]")
        else:
            ax.errorbar(mg_concs, table[name][:, 0], yerr=table[name][:, 1], fmt='.b')
            ax.set_ylabel(name)
        ax.set_xlabel("[Mg] [mM]")
        ax.grid(True, alpha=PLOT_GRID_ALPHA)

    for ax in list(axes.flat)[len(panels):]:
        ax.set_visible(False)

    plt.tight_layout()
    return fig


def plot_offset_recovery(recovery, figsize: tuple = (11, 5)) -> plt.Figure:
    """Found versus actual offsets (d0, F0) for individual and global fits."""
    fig, axes = plt.subplots(1, 2, figsize=figsize)
    for ax, name, unit in zip(axes, ('d0', 'F0'), ('um', 'pN')):
        actual = recovery.true[name]
        lims = [np.min(actual), np.max(actual)]
        ax.plot(lims, lims, '--', color='0.7')
        ax.plot(actual, recovery.individual[name], '.', color='#cc0000', label='Individual fits')
        ax.plot(actual, recovery.global_fit[name], '.', color='#00cc00', label='Global fit')
        ax.set_xlabel("Actual")
        ax.set_ylabel("Found")
        ax.set_title(f"{name} [{unit}]")
        ax.grid(True, alpha=PLOT_GRID_ALPHA)
    axes[0].legend(loc='upper left')
    plt.tight_layout()
    return fig


__all__ = [
    'plot_fd_fit',
    'plot_global_fit',
    'plot_sweep_results',
    'plot_bootstrap_sweeps',
    'plot_condition_dependence',
    'plot_offset_recovery',
]
