"""
Alignment of F,d curves before a tWLC analysis.

A global eWLC fit with per-curve distance and force offsets (d0, F0) and
shared Lp, S removes the offsets of every curve. Optionally the curves are
then scaled along F so that their overstretching plateaus overlap, after
which the offsets are removed once more (the scaling moves the baseline).
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import DEFAULT_ALIGNMENT_SHARED_PARAMS
from ..data import FdCollection
from ..errors import InvalidArgument, NotEnoughData
from ..fitting.global_fit import GlobalFitResult, fit_fd_global
from ..models import FitModel, make_model

logger = logging.getLogger(__name__)

ALIGNMENT_MODEL = 'odijk-inv-d0-f0'


def remove_offsets(collection: FdCollection, fit: GlobalFitResult) -> FdCollection:
    """Shift curve i by +d0[i] along d and -F0[i] along F."""
    d0 = np.broadcast_to(fit.params.get('d0', 0.0), (len(collection),))
    F0 = np.broadcast_to(fit.params.get('F0', 0.0), (len(collection),))
    return FdCollection(
        (
            curve.shift('d', float(d0[i])).shift('f', -float(F0[i]))
            for i, curve in enumerate(collection)
        ),
        skip_duplicate_check=True
    )


def plateau_forces(
    collection: FdCollection,
    os_plateau_region: Tuple[float, float]
):
    """
    Mean force of every curve inside a distance region.

    Raises
    ------
    NotEnoughData
        If a curve has no samples in the region
    """
    lo, hi = os_plateau_region
    heights = np.empty(len(collection))
    for i, curve in enumerate(collection):
        inside = (curve.distance >= lo) & (curve.distance <= hi)
        if not np.any(inside):
            raise NotEnoughData(f"No OS plateau data for '{curve.name}' (#{i})")
        heights[i] = np.mean(curve.force[inside])
    return heights


def align_fd_curves(
    collection: FdCollection,
    model: Optional[FitModel] = None,
    shared_params: Sequence[str] = DEFAULT_ALIGNMENT_SHARED_PARAMS,
    os_plateau_region: Optional[Tuple[float, float]] = None
) -> FdCollection:
    """
    Remove distance and force offsets with a global fit.

    Parameters
    ----------
    collection : FdCollection
        Curves to align
    model : FitModel, optional
        Offset model for the global fit (default: 'odijk-inv-d0-f0' with
        the default contour length)
    shared_params : sequence of str, optional
        Parameters shared by all curves (default: Lp, S)
    os_plateau_region : (float, float), optional
        Distance region [um] of the overstretching plateau; if given, curves
        are scaled along F to the average plateau force and aligned again

    Returns
    -------
    aligned : FdCollection
        New curves (same order); the input curves are not modified

    Raises
    ------
    InvalidArgument
        Malformed plateau region
    NotEnoughData
        A curve without plateau data
    """
    if os_plateau_region is not None:
        region = np.asarray(os_plateau_region, dtype=float)
        if region.shape != (2,) or not np.all(np.isfinite(region)) or region[0] > region[1]:
            raise InvalidArgument(
                f"os_plateau_region must be (min, max) distances, got {os_plateau_region}"
            )
    if model is None:
        model = make_model(ALIGNMENT_MODEL)

    fit = fit_fd_global(collection, model, shared_params)
    aligned = remove_offsets(collection, fit)

    if os_plateau_region is None:
        return aligned

    heights = plateau_forces(aligned, os_plateau_region)
    target = float(np.mean(heights))
    logger.info(f"Stretching F,d curves to match average plateau height: {target:.4g} pN")

    scaled = FdCollection(
        (curve.scale('f', target / heights[i]) for i, curve in enumerate(aligned)),
        skip_duplicate_check=True
    )
    return align_fd_curves(scaled, model=model, shared_params=shared_params)


__all__ = [
    'ALIGNMENT_MODEL',
    'remove_offsets',
    'plateau_forces',
    'align_fd_curves',
]
