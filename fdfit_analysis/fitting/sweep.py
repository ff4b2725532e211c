"""
Fit sweeps: refit a model while moving the data-inclusion boundaries.

Each sweep cell fits the model to the samples whose force (or distance)
lies between a left and a right boundary position. Sweeping the left
boundary shows how much of the low-force tail can be dropped; sweeping the
right boundary finds the force up to which a model describes the data.

Grid layout:
    cells[i, j] uses the data range [positions_left[i], positions_right[j]]
    positions_right is always decreasing (largest included value first)
    the static boundary of a single-boundary sweep gives an axis of size 1

Cells are independent fits; with parallel=True they run on a thread pool
and are written into their own grid slots.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .config import FIT_MAX_NFEV, VALID_GOF_TYPES, DEFAULT_GOF_TYPE
from .single import fit_fd
from ..data import FdCurve
from ..errors import InvalidArgument, RECOVERABLE_FIT_ERRORS
from ..models import FitModel
from ..utils.parallel import run_tasks

logger = logging.getLogger(__name__)

VALID_SWEEP_TYPES = ('left', 'right', 'both')
VALID_BOUNDARY_TYPES = ('d', 'f')


# =============================================================================
# Options
# =============================================================================

@dataclass(frozen=True)
class SweepOptions:
    """
    Validated sweep settings.

    Attributes
    ----------
    sweep_type : str
        'left', 'right' or 'both'
    boundary_type : str
        'd' (distance axis) or 'f' (force axis)
    n_sweeps : tuple of int
        (n_left, n_right) positions; the static side has 1
    boundaries : tuple
        One row (start, stop) or two rows ((startL, stopL), (startR, stopR))
    gof_type : str
        Goodness-of-fit statistic collected per cell
    trim : bool
        Whether the model's force limit was applied
    """
    sweep_type: str
    boundary_type: str
    n_sweeps: Tuple[int, int]
    boundaries: Tuple[Tuple[float, float], ...]
    gof_type: str = DEFAULT_GOF_TYPE
    trim: bool = True


def _parse_n_sweeps(sweep_type: str, n_sweeps) -> Tuple[int, int]:
    values = np.atleast_1d(np.asarray(n_sweeps))
    if values.ndim != 1 or len(values) not in (1, 2):
        raise InvalidArgument(f"n_sweeps should be an integer or a pair, got {n_sweeps}")
    if sweep_type != 'both' and len(values) != 1:
        raise InvalidArgument(f"n_sweeps should be an integer for sweep_type '{sweep_type}'")
    if not np.all(np.equal(np.mod(values, 1), 0)) or np.any(values < 1):
        raise InvalidArgument(f"n_sweeps must be positive integers, got {n_sweeps}")

    n_left, n_right = int(values[0]), int(values[-1])
    if sweep_type == 'left':
        return n_left, 1
    if sweep_type == 'right':
        return 1, n_right
    return n_left, n_right


def _parse_boundaries(
    boundaries,
    curve: FdCurve,
    boundary_type: str
) -> Tuple[Tuple[float, float], ...]:
    if boundaries is None:
        values = curve.axis(boundary_type)
        if len(values) == 0:
            raise InvalidArgument("Cannot derive sweep boundaries from an empty curve")
        return ((float(np.min(values)), float(np.max(values))),)

    b = np.asarray(boundaries, dtype=float)
    if b.shape == (2,):
        b = b.reshape(1, 2)
    if b.shape not in ((1, 2), (2, 2)):
        raise InvalidArgument(
            f"boundaries should be a (start, stop) pair or a 2x2 array, got shape {b.shape}"
        )
    if not np.all(np.isfinite(b)):
        raise InvalidArgument(f"boundaries must be finite, got {boundaries}")
    return tuple((float(row[0]), float(row[1])) for row in b)


def make_sweep_options(
    curve: FdCurve,
    sweep_type: str = 'left',
    boundary_type: str = 'd',
    n_sweeps: Union[int, Sequence[int]] = 100,
    boundaries=None,
    gof_type: str = DEFAULT_GOF_TYPE,
    trim: bool = True
) -> SweepOptions:
    """
    Validate sweep settings against a curve.

    Raises
    ------
    InvalidArgument
        Unknown sweep / boundary / goodness-of-fit type, malformed n_sweeps
        or boundaries
    """
    if sweep_type not in VALID_SWEEP_TYPES:
        raise InvalidArgument(
            f"Invalid sweep_type '{sweep_type}'; should be one of {VALID_SWEEP_TYPES}"
        )
    if boundary_type not in VALID_BOUNDARY_TYPES:
        raise InvalidArgument(
            f"Invalid boundary_type '{boundary_type}'; should be one of {VALID_BOUNDARY_TYPES}"
        )
    if gof_type not in VALID_GOF_TYPES:
        raise InvalidArgument(
            f"Invalid gof_type '{gof_type}'; should be one of {VALID_GOF_TYPES}"
        )
    return SweepOptions(
        sweep_type=sweep_type,
        boundary_type=boundary_type,
        n_sweeps=_parse_n_sweeps(sweep_type, n_sweeps),
        boundaries=_parse_boundaries(boundaries, curve, boundary_type),
        gof_type=gof_type,
        trim=bool(trim)
    )


def sweep_positions(options: SweepOptions, curve: FdCurve) -> Tuple[NDArray, NDArray]:
    """
    Left and right boundary positions of a sweep.

    Moving boundaries are evenly spaced between start and stop (inclusive);
    the right positions are returned in decreasing order. A static left
    boundary sits at the data minimum (or at startL of a two-row
    boundaries argument), a static right boundary at the data maximum (or startR).
    """
    rows = options.boundaries
    values = curve.axis(options.boundary_type)

    if options.sweep_type in ('left', 'both'):
        start, stop = rows[0]
        left = np.linspace(start, stop, options.n_sweeps[0])
    else:
        left = np.array([rows[0][0] if len(rows) > 1 else float(np.min(values))])

    if options.sweep_type in ('right', 'both'):
        start, stop = rows[1] if len(rows) > 1 else rows[0]
        right = np.sort(np.linspace(start, stop, options.n_sweeps[1]))[::-1]
    else:
        right = np.array([rows[1][0] if len(rows) > 1 else float(np.max(values))])

    return left, right


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class SweepCell:
    """
    One grid cell of a sweep.

    exit_flag is NaN, params None and gof NaN when no fit was produced
    (not enough data in the range, or a degenerate fit).
    """
    data_range: Tuple[float, float]
    exit_flag: float = np.nan
    params: Optional[NDArray[np.float64]] = None
    gof: float = np.nan

    @property
    def fitted(self) -> bool:
        return self.params is not None


@dataclass
class SweepResult:
    """
    Grid of sweep fits.

    Attributes
    ----------
    cells : ndarray of SweepCell, shape (n_left, n_right)
    param_names : list of str
        Names of the entries of each cell's params vector
    positions_left, positions_right : ndarray
        Boundary positions used (positions_right decreasing)
    options : SweepOptions
    model_name : str
    """
    cells: NDArray
    param_names: List[str]
    positions_left: NDArray[np.float64]
    positions_right: NDArray[np.float64]
    options: SweepOptions
    model_name: str = ''

    @property
    def shape(self) -> Tuple[int, int]:
        return self.cells.shape

    @property
    def gof(self) -> NDArray[np.float64]:
        """Goodness-of-fit grid (NaN for no fit)."""
        return np.vectorize(lambda c: c.gof, otypes=[float])(self.cells)

    @property
    def exit_flags(self) -> NDArray[np.float64]:
        """Solver status grid (NaN for no fit)."""
        return np.vectorize(lambda c: c.exit_flag, otypes=[float])(self.cells)

    @property
    def fitted(self) -> NDArray[np.bool_]:
        return np.vectorize(lambda c: c.fitted, otypes=[bool])(self.cells)

    def param_grid(self, name: str) -> NDArray[np.float64]:
        """Grid of one fit parameter (NaN for no fit)."""
        if name not in self.param_names:
            raise InvalidArgument(f"Unknown parameter '{name}'; sweep has {self.param_names}")
        k = self.param_names.index(name)
        return np.vectorize(
            lambda c: c.params[k] if c.fitted else np.nan, otypes=[float]
        )(self.cells)

    def best_index(self) -> Tuple[int, int]:
        """Grid index of the highest goodness of fit (first on ties)."""
        gof = self.gof
        if np.all(np.isnan(gof)):
            raise ValueError("No cell of the sweep produced a fit")
        return tuple(int(i) for i in np.unravel_index(np.nanargmax(gof), gof.shape))

    def __repr__(self) -> str:
        n_fit = int(np.sum(self.fitted))
        return (
            f"SweepResult({self.model_name}, {self.options.sweep_type}/"
            f"{self.options.boundary_type}, shape={self.shape}, fitted={n_fit}/{self.cells.size})"
        )


# =============================================================================
# Sweep
# =============================================================================

def _fit_cell(
    curve: FdCurve,
    model: FitModel,
    axis: str,
    data_range: Tuple[float, float],
    gof_type: str,
    max_nfev: int
) -> SweepCell:
    data = curve.subset(axis, data_range)
    if len(data) <= model.n_free:
        return SweepCell(data_range)
    try:
        result, gof, _ = fit_fd(data, model, trim=False, max_nfev=max_nfev)
    except RECOVERABLE_FIT_ERRORS as e:
        logger.debug(f"No fit in range [{data_range[0]:.4g}, {data_range[1]:.4g}]: {e}")
        return SweepCell(data_range)
    return SweepCell(
        data_range=data_range,
        exit_flag=float(result.exit_flag),
        params=np.array(result.params_opt, dtype=float),
        gof=gof.get(gof_type)
    )


def sweep_fd_fits(
    curve: FdCurve,
    model: FitModel,
    sweep_type: str = 'left',
    boundary_type: str = 'd',
    n_sweeps: Union[int, Sequence[int]] = 100,
    boundaries=None,
    gof_type: str = DEFAULT_GOF_TYPE,
    trim: bool = True,
    max_nfev: int = FIT_MAX_NFEV,
    parallel: bool = False,
    max_workers: int = 4
) -> SweepResult:
    """
    Fit a model to a series of data subsets bounded by moving boundaries.

    Parameters
    ----------
    curve : FdCurve
        Data to sweep over
    model : FitModel
        Model to fit in every cell
    sweep_type : str, optional
        'left' (right boundary at the data maximum), 'right' (left boundary
        at the data minimum) or 'both' (default: 'left')
    boundary_type : str, optional
        'd' or 'f': axis the boundaries move along (default: 'd')
    n_sweeps : int or (int, int), optional
        Number of positions; a pair (n_left, n_right) for 'both'
        (default: 100)
    boundaries : array-like, optional
        (start, stop) of the moving boundary, or
        ((startL, stopL), (startR, stopR)); for single-boundary sweeps the
        static boundary is then taken from the other row's start.
        Default: data minimum and maximum.
    gof_type : str, optional
        'rsquare', 'adjrsquare', 'sse' or 'rmse' (default: 'rsquare')
    trim : bool, optional
        Apply the model's force limit to the data once before sweeping
        (default: True)
    max_nfev : int, optional
        Cap on function evaluations per cell fit
    parallel : bool, optional
        Fit cells on a thread pool (default: False)
    max_workers : int, optional
        Maximum parallel workers (default: 4)

    Returns
    -------
    result : SweepResult
        Grid of shape (len(positions_left), len(positions_right))

    Raises
    ------
    InvalidArgument
        For malformed options (before any fit is run)
    """
    if not isinstance(model, FitModel):
        raise InvalidArgument(f"model must be a FitModel, got {type(model).__name__}")

    options = make_sweep_options(
        curve, sweep_type, boundary_type, n_sweeps, boundaries, gof_type, trim
    )
    left, right = sweep_positions(options, curve)
    data = model.validate_data(curve, trim=trim)

    tasks = [
        (float(lo), float(hi))
        for lo in left
        for hi in right
    ]

    logger.debug(
        f"Sweep ({model.name}, {sweep_type}/{boundary_type}): "
        f"{len(left)} x {len(right)} cells"
    )

    results = run_tasks(
        lambda data_range: _fit_cell(
            data, model, boundary_type, data_range, gof_type, max_nfev
        ),
        tasks,
        parallel=parallel,
        max_workers=max_workers
    )

    cells = np.empty((len(left), len(right)), dtype=object)
    for idx, cell in enumerate(results):
        cells[np.unravel_index(idx, cells.shape)] = cell

    return SweepResult(
        cells=cells,
        param_names=list(model.param_names),
        positions_left=left,
        positions_right=right,
        options=options,
        model_name=model.name
    )


__all__ = [
    'VALID_SWEEP_TYPES',
    'VALID_BOUNDARY_TYPES',
    'SweepOptions',
    'make_sweep_options',
    'sweep_positions',
    'SweepCell',
    'SweepResult',
    'sweep_fd_fits',
]
