"""
Individual versus global fits of curve offsets.

Fitting the offsets d0 and F0 of every curve separately gives biased
estimates; a global fit with shared Lp and S recovers them. This module
compares both approaches on curves with known offsets.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from .config import DEFAULT_ALIGNMENT_SHARED_PARAMS
from ..data import FdCollection
from ..errors import InvalidArgument
from ..fitting.global_fit import GlobalFitResult, fit_fd_global
from ..fitting.single import CurveFitOutcome, collection_params, fit_fd_collection
from ..models import FitModel

logger = logging.getLogger(__name__)


@dataclass
class OffsetRecovery:
    """
    Offsets found by individual and by global fits.

    Attributes
    ----------
    true : dict
        'd0', 'F0' -> injected offsets
    individual : dict
        'd0', 'F0' -> per-curve fit results (NaN where no fit)
    global_fit : dict
        'd0', 'F0' -> global fit results
    """
    true: Dict[str, NDArray[np.float64]]
    individual: Dict[str, NDArray[np.float64]]
    global_fit: Dict[str, NDArray[np.float64]]
    individual_outcomes: Sequence[CurveFitOutcome] = ()
    global_result: Optional[GlobalFitResult] = None

    def rms_error(self, name: str) -> Dict[str, float]:
        """Root-mean-square deviation from the true offsets, per method."""
        truth = self.true[name]
        return {
            'individual': float(np.sqrt(np.nanmean((self.individual[name] - truth) ** 2))),
            'global': float(np.sqrt(np.mean((self.global_fit[name] - truth) ** 2))),
        }


def compare_offset_fits(
    collection: FdCollection,
    model: FitModel,
    true_d0: Sequence[float],
    true_F0: Sequence[float],
    shared_params: Sequence[str] = DEFAULT_ALIGNMENT_SHARED_PARAMS,
    parallel: bool = False
) -> OffsetRecovery:
    """
    Fit offsets curve by curve and globally.

    Parameters
    ----------
    collection : FdCollection
        Curves with injected offsets
    model : FitModel
        Offset model with free d0 and F0 (e.g. 'odijk-inv-d0-f0')
    true_d0, true_F0 : sequence of float
        Injected offsets, one per curve. Offsets follow the model
        convention: curve i was made as F(d + d0[i]) + F0[i].
    shared_params : sequence of str, optional
        Parameters shared in the global fit (default: Lp, S)
    parallel : bool, optional
        Run the individual fits on a thread pool

    Returns
    -------
    recovery : OffsetRecovery
    """
    n = len(collection)
    if len(true_d0) != n or len(true_F0) != n:
        raise InvalidArgument(
            f"true_d0 and true_F0 need one value per curve ({n}), "
            f"got {len(true_d0)} and {len(true_F0)}"
        )
    for name in ('d0', 'F0'):
        if name not in model.param_names:
            raise InvalidArgument(f"Model {model.name} has no free parameter '{name}'")

    logger.info(f"Fitting {n} curves individually...")
    outcomes = fit_fd_collection(collection, model, parallel=parallel)

    logger.info(f"Fitting {n} curves globally (shared: {list(shared_params)})...")
    result = fit_fd_global(collection, model, shared_params)

    return OffsetRecovery(
        true={'d0': np.asarray(true_d0, dtype=float), 'F0': np.asarray(true_F0, dtype=float)},
        individual={name: collection_params(outcomes, name) for name in ('d0', 'F0')},
        global_fit={
            name: np.broadcast_to(result.params[name], (n,)).astype(float)
            for name in ('d0', 'F0')
        },
        individual_outcomes=outcomes,
        global_result=result
    )


__all__ = [
    'OffsetRecovery',
    'compare_offset_fits',
]
