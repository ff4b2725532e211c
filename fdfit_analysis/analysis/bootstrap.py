"""
Bootstrap force sweeps and cutoff-force selection.

Procedure (per dataset):
1. Iteration 1 uses the original curves; iterations 2..K use curves drawn
   with replacement (same number of curves).
2. Each iteration concatenates its curves into one aggregate curve and
   sweeps the right force boundary (the maximum force used in the fit).
3. The cutoff force is the sweep position with the highest goodness of fit
   averaged over all iterations; parameter means and standard deviations
   at that position are the analysis result.

All resampling draws are taken from one seeded generator before any fit
runs, so the result does not depend on the execution mode.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .config import DEFAULT_N_BOOTSTRAP_ITER, DEFAULT_N_SWEEPS, DEFAULT_SWEEP_START_FORCE
from ..data import FdCollection
from ..errors import EmptyInput, InvalidArgument, NotEnoughData
from ..fitting.config import FIT_MAX_NFEV, DEFAULT_GOF_TYPE
from ..fitting.sweep import SweepResult, make_sweep_options, sweep_fd_fits
from ..models import FitModel
from ..utils.parallel import run_tasks

logger = logging.getLogger(__name__)

SeedLike = Optional[Union[int, np.random.SeedSequence, np.random.Generator]]


@dataclass
class BootstrapSweepResult:
    """
    Force sweeps of all bootstrap iterations of one dataset.

    Attributes
    ----------
    sweeps : list of SweepResult
        One right/force sweep per iteration; sweeps[0] is on the original
        curves
    param_names : list of str
        Free parameters of the fitted model
    positions : ndarray
        Sweep positions (maximum force, pN), decreasing
    """
    sweeps: List[SweepResult]
    param_names: List[str]
    positions: NDArray[np.float64]

    @property
    def n_iterations(self) -> int:
        return len(self.sweeps)

    @property
    def gof_matrix(self) -> NDArray[np.float64]:
        """Goodness of fit, shape (n_iterations, n_positions)."""
        return np.vstack([s.gof[0, :] for s in self.sweeps])

    @property
    def mean_gof(self) -> NDArray[np.float64]:
        """Goodness of fit averaged over iterations (NaN if any iteration has no fit)."""
        return np.mean(self.gof_matrix, axis=0)

    def find_cutoff_force(self) -> Tuple[float, int]:
        """
        Cutoff force: position of the maximum mean goodness of fit.

        Ties resolve to the first position; positions where an iteration
        produced no fit are not eligible.

        Returns
        -------
        cutoff_force : float
            Maximum fit force [pN] with the best average goodness of fit
        cutoff_index : int
            Index into positions

        Raises
        ------
        NotEnoughData
            If no position has a fit in every iteration
        """
        mean_gof = self.mean_gof
        if np.all(np.isnan(mean_gof)):
            raise NotEnoughData("No sweep position produced a fit in every bootstrap iteration")
        index = int(np.nanargmax(mean_gof))
        return float(self.positions[index]), index

    def param_values(self, name: str) -> NDArray[np.float64]:
        """Values of one parameter, shape (n_iterations, n_positions)."""
        return np.vstack([s.param_grid(name)[0, :] for s in self.sweeps])

    def param_stats(self, index: Optional[int] = None) -> Dict[str, Tuple[float, float]]:
        """
        Mean and standard deviation of every parameter over the iterations.

        Parameters
        ----------
        index : int, optional
            Sweep position (default: the cutoff index)

        Returns
        -------
        stats : dict
            name -> (mean, std); std uses ddof=1 for more than one iteration
        """
        if index is None:
            _, index = self.find_cutoff_force()
        ddof = 1 if self.n_iterations > 1 else 0
        stats = {}
        for name in self.param_names:
            values = self.param_values(name)[:, index]
            stats[name] = (float(np.mean(values)), float(np.std(values, ddof=ddof)))
        return stats


def run_bootstrap_sweeps(
    collection: FdCollection,
    model: FitModel,
    n_iterations: int = DEFAULT_N_BOOTSTRAP_ITER,
    sweep_boundaries: Optional[Sequence[float]] = None,
    n_sweeps: int = DEFAULT_N_SWEEPS,
    gof_type: str = DEFAULT_GOF_TYPE,
    trim: bool = True,
    max_nfev: int = FIT_MAX_NFEV,
    seed: SeedLike = None,
    parallel: bool = False,
    max_workers: int = 4
) -> BootstrapSweepResult:
    """
    Run a right-boundary force sweep for every bootstrap iteration.

    Parameters
    ----------
    collection : FdCollection
        Curves of one dataset (normally aligned)
    model : FitModel
        Model fitted in every sweep cell
    n_iterations : int, optional
        Number of bootstrap iterations K (default: 100)
    sweep_boundaries : (float, float), optional
        Range of the maximum force [pN]; default (40, maximum force of the
        data)
    n_sweeps : int, optional
        Sweep positions per iteration (default: 100)
    gof_type : str, optional
        Goodness-of-fit statistic (default: 'rsquare')
    trim : bool, optional
        Apply the model's force limit (default: True)
    max_nfev : int, optional
        Cap on function evaluations per cell fit
    seed : int, SeedSequence or Generator, optional
        Source of the resampling draws
    parallel : bool, optional
        Run iterations on a thread pool (default: False)
    max_workers : int, optional
        Maximum parallel workers (default: 4)

    Returns
    -------
    result : BootstrapSweepResult

    Raises
    ------
    EmptyInput
        If the collection has no curves
    InvalidArgument
        For malformed options (before any fit is run)
    """
    if not isinstance(collection, FdCollection):
        raise InvalidArgument(
            f"collection must be an FdCollection, got {type(collection).__name__}"
        )
    if collection.is_empty():
        raise EmptyInput("No data for bootstrap: collection is empty")
    if int(n_iterations) != n_iterations or n_iterations < 1:
        raise InvalidArgument(f"n_iterations must be a positive integer, got {n_iterations}")
    n_iterations = int(n_iterations)

    combined = collection.concatenated()
    if sweep_boundaries is None:
        sweep_boundaries = (DEFAULT_SWEEP_START_FORCE, float(np.max(combined.force)))
        logger.info(
            f"Auto-setting sweep boundaries: {sweep_boundaries[0]:g} - {sweep_boundaries[1]:g} pN"
        )
    # Validate sweep settings once, before any resampling or fitting
    make_sweep_options(
        combined, sweep_type='right', boundary_type='f', n_sweeps=n_sweeps,
        boundaries=sweep_boundaries, gof_type=gof_type, trim=trim
    )

    rng = np.random.default_rng(seed)
    datasets = [collection] + [collection.resample(rng) for _ in range(n_iterations - 1)]

    logger.info(
        f"Bootstrapping & sweeping: {n_iterations} iterations x {n_sweeps} sweeps "
        f"on {len(collection)} curves"
    )

    def sweep_iteration(data: FdCollection) -> SweepResult:
        return sweep_fd_fits(
            data.concatenated(),
            model,
            sweep_type='right',
            boundary_type='f',
            n_sweeps=n_sweeps,
            boundaries=sweep_boundaries,
            gof_type=gof_type,
            trim=trim,
            max_nfev=max_nfev
        )

    sweeps = run_tasks(sweep_iteration, datasets, parallel=parallel, max_workers=max_workers)

    return BootstrapSweepResult(
        sweeps=sweeps,
        param_names=list(model.param_names),
        positions=sweeps[0].positions_right.copy()
    )


__all__ = [
    'BootstrapSweepResult',
    'run_bootstrap_sweeps',
]
