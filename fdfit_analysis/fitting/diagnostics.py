"""
Goodness of fit and fit diagnostics.

Clean design: the fitting functions do not print; they return GoodnessOfFit
and diagnostics objects, and log_fit_results formats them for the CLI.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .config import BOUNDS_PROXIMITY_TOL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoodnessOfFit:
    """
    Goodness-of-fit statistics of a least-squares fit.

    Attributes
    ----------
    sse : float
        Sum of squared residuals
    rsquare : float
        Coefficient of determination, 1 - SSE/SST
    dfe : int
        Residual degrees of freedom, n - p
    adjrsquare : float
        R^2 adjusted for the number of free parameters
    rmse : float
        Root mean squared error, sqrt(SSE/dfe)
    """
    sse: float
    rsquare: float
    dfe: int
    adjrsquare: float
    rmse: float

    def get(self, gof_type: str) -> float:
        """Statistic by name ('sse', 'rsquare', 'adjrsquare', 'rmse', 'dfe')."""
        return float(getattr(self, gof_type))


def compute_goodness_of_fit(
    y: NDArray[np.float64],
    y_fit: NDArray[np.float64],
    n_free: int
) -> GoodnessOfFit:
    """
    Compute SSE, R^2, adjusted R^2 and RMSE.

    Parameters
    ----------
    y : ndarray
        Measured dependent variable
    y_fit : ndarray
        Model prediction
    n_free : int
        Number of fitted parameters

    Returns
    -------
    gof : GoodnessOfFit
        R^2 is NaN when y has zero variance
    """
    n = len(y)
    residuals = y - y_fit
    sse = float(residuals @ residuals)
    sst = float(np.sum((y - np.mean(y)) ** 2))
    dfe = n - n_free

    if sst > 0:
        rsquare = 1.0 - sse / sst
        adjrsquare = 1.0 - sse * (n - 1) / (sst * dfe) if dfe > 0 else np.nan
    else:
        rsquare = adjrsquare = np.nan
    rmse = np.sqrt(sse / dfe) if dfe > 0 else np.nan

    return GoodnessOfFit(
        sse=sse,
        rsquare=float(rsquare),
        dfe=int(dfe),
        adjrsquare=float(adjrsquare),
        rmse=float(rmse)
    )


def check_bounds_proximity(
    values: NDArray[np.float64],
    lower: NDArray[np.float64],
    upper: NDArray[np.float64],
    names: Sequence[str],
    tol: float = BOUNDS_PROXIMITY_TOL
) -> Tuple[List[int], List[str]]:
    """
    Find parameters that ended up at (or very near) a finite bound.

    Returns
    -------
    indices : list of int
        Positions of parameters at a bound
    warnings : list of str
        One message per such parameter
    """
    indices, messages = [], []
    for i, (value, lo, hi, name) in enumerate(zip(values, lower, upper, names)):
        span = hi - lo
        scale = span if np.isfinite(span) and span > 0 else max(abs(value), 1e-10)
        if np.isfinite(lo) and (value - lo) / scale < tol:
            indices.append(i)
            messages.append(f"{name} at lower bound ({value:.4g} ~ {lo:.4g})")
        elif np.isfinite(hi) and (hi - value) / scale < tol:
            indices.append(i)
            messages.append(f"{name} at upper bound ({value:.4g} ~ {hi:.4g})")
    return indices, messages


def log_fit_results(
    names: Sequence[str],
    values: NDArray[np.float64],
    stderr: Optional[NDArray[np.float64]],
    gof: GoodnessOfFit,
    ci_low: Optional[NDArray[np.float64]] = None,
    ci_high: Optional[NDArray[np.float64]] = None
) -> None:
    """
    Log fitted parameters and goodness of fit.

    Output format:
        Lp     =  49.87 +/- 0.42  [49.05, 50.69]
        ...
        R^2 = 0.99981, RMSE = 0.0513
    """
    for i, name in enumerate(names):
        line = f"  {name:<4s} = {values[i]:10.4g}"
        if stderr is not None and np.isfinite(stderr[i]):
            line += f" +/- {stderr[i]:.3g}"
        if ci_low is not None and ci_high is not None and np.isfinite(ci_low[i]):
            line += f"  [{ci_low[i]:.4g}, {ci_high[i]:.4g}]"
        logger.info(line)
    logger.info(f"  R^2 = {gof.rsquare:.5f}, RMSE = {gof.rmse:.4g} (dfe = {gof.dfe})")


__all__ = [
    'GoodnessOfFit',
    'compute_goodness_of_fit',
    'check_bounds_proximity',
    'log_fit_results',
]
