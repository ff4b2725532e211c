"""
Synthetic F,d data for testing and demonstration.

Curves are generated from the Odijk eWLC or the tWLC model, evaluated
as d(F) on an even force grid and interpolated (cubic spline) onto an
evenly spaced distance axis, with optional Gaussian noise and offsets.
"""

import logging
from typing import Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray
from scipy.interpolate import CubicSpline

from ..data import FdCurve, FdCollection
from ..errors import InvalidArgument
from ..models import odijk_extension, twlc_extension
from ..models.config import (
    DEFAULT_LP, DEFAULT_LC, DEFAULT_S,
    DEFAULT_C, DEFAULT_G0, DEFAULT_G1, DEFAULT_FC,
)

logger = logging.getLogger(__name__)

RngLike = Optional[Union[int, np.random.Generator]]

# name -> (function, default parameters, default d range, default F range)
_SIMULATION_MODELS = {
    'odijk': (
        odijk_extension,
        {'Lp': DEFAULT_LP, 'Lc': DEFAULT_LC, 'S': DEFAULT_S},
        (10.0, 17.5),
        (0.0, 30.0),
    ),
    'twlc': (
        twlc_extension,
        {'Lp': DEFAULT_LP, 'Lc': DEFAULT_LC, 'S': DEFAULT_S,
         'C': DEFAULT_C, 'g0': DEFAULT_G0, 'g1': DEFAULT_G1, 'Fc': DEFAULT_FC},
        (10.0, 17.5),
        (0.0, 65.0),
    ),
}


def _pair(value, label: str) -> Tuple[float, float]:
    arr = np.asarray(value, dtype=float)
    if arr.shape != (2,):
        raise InvalidArgument(f"{label} must be a pair (min, max), got {value}")
    return float(arr[0]), float(arr[1])


def _noise_pair(noise) -> Tuple[float, float]:
    if noise is None:
        return 0.0, 0.0
    arr = np.atleast_1d(np.asarray(noise, dtype=float))
    if arr.shape == (1,):
        return float(arr[0]), 0.0
    if arr.shape == (2,):
        return float(arr[0]), float(arr[1])
    raise InvalidArgument(f"noise must be F_noise or (F_noise, d_noise), got {noise}")


def simulate_fd_curve(
    model: str = 'odijk',
    params: Optional[Mapping[str, float]] = None,
    d_range: Optional[Sequence[float]] = None,
    f_range: Optional[Sequence[float]] = None,
    n_points: int = 500,
    noise=(0.2, 0.005),
    offset: Optional[Sequence[float]] = None,
    rng: RngLike = None,
    name: str = 'Simulated data',
    tags: Sequence[str] = ()
) -> FdCurve:
    """
    Generate a simulated F,d curve.

    Parameters
    ----------
    model : str, optional
        'odijk' (Lp 50 nm, Lc 16.5 um, S 1500 pN up to 30 pN) or 'twlc'
        (additionally C 440, g0 -637, g1 17, Fc 30.6, up to 65 pN)
    params : dict, optional
        Model parameters overriding the defaults
    d_range, f_range : (float, float), optional
        Distance [um] and force [pN] ranges; points outside are removed
    n_points : int, optional
        Number of grid points before removal of invalid points (default: 500)
    noise : float or (float, float), optional
        Gaussian noise amplitude on F [pN] and d [um] (default: (0.2, 0.005))
    offset : (float, float), optional
        Amplitudes of one random offset added to F and d
    rng : int or Generator, optional
        Seed or generator for the noise
    name : str, optional
        Curve name
    tags : sequence of str, optional
        Tags of the curve

    Returns
    -------
    curve : FdCurve
        Simulated data; metadata records the settings
    """
    if model not in _SIMULATION_MODELS:
        raise InvalidArgument(
            f"Invalid model '{model}'; expected one of {list(_SIMULATION_MODELS)}"
        )
    function, defaults, default_d, default_f = _SIMULATION_MODELS[model]

    model_params = dict(defaults)
    unknown = set(params or {}) - set(defaults)
    if unknown:
        raise InvalidArgument(f"Unknown {model} parameters: {sorted(unknown)}")
    model_params.update(params or {})

    d_min, d_max = _pair(d_range if d_range is not None else default_d, 'd_range')
    f_min, f_max = _pair(f_range if f_range is not None else default_f, 'f_range')
    noise_f, noise_d = _noise_pair(noise)
    if int(n_points) != n_points or n_points < 2:
        raise InvalidArgument(f"n_points must be an integer >= 2, got {n_points}")
    rng = np.random.default_rng(rng)

    # d(F) on an even force grid, then F(d) on an even distance grid
    data_d = np.linspace(d_min, d_max, int(n_points))
    grid_f = np.linspace(f_min, f_max, int(n_points))
    with np.errstate(divide='ignore', invalid='ignore'):
        grid_d = np.asarray(function(grid_f, **model_params), dtype=float)

    valid = np.isfinite(grid_d)
    grid_f, grid_d = grid_f[valid], grid_d[valid]
    increasing = np.concatenate([[True], np.diff(grid_d) > 0])
    grid_f, grid_d = grid_f[increasing], grid_d[increasing]
    if len(grid_d) < 4:
        raise InvalidArgument(f"{model} with {model_params} gives too few valid points")

    data_f = CubicSpline(grid_d, grid_f)(data_d)

    keep = (
        (data_d >= d_min) & (data_d <= d_max)
        & (data_f >= f_min) & (data_f <= f_max)
        & np.isfinite(data_f)
    )
    data_d, data_f = data_d[keep], data_f[keep]

    data_f = data_f + rng.standard_normal(len(data_f)) * noise_f
    data_d = data_d + rng.standard_normal(len(data_d)) * noise_d

    if offset is not None:
        offset_f, offset_d = _pair(offset, 'offset')
        data_f = data_f + rng.standard_normal() * offset_f
        data_d = data_d + rng.standard_normal() * offset_d

    metadata = {
        'file': '<SimulatedData>',
        'model': model,
        'n_points': int(n_points),
        'noise_f': noise_f,
        'noise_d': noise_d,
    }
    metadata.update({f"param_{k}": float(v) for k, v in model_params.items()})

    return FdCurve(
        force=data_f,
        distance=data_d,
        time=np.arange(1, len(data_d) + 1, dtype=float),
        name=name,
        tags=tags,
        metadata=metadata,
        history=[f"simulate_fd_curve('{model}')"],
    )


def simulate_fd_ensemble(
    n_curves: int,
    rng: RngLike = None,
    tags: Sequence[str] = (),
    **kwargs
) -> FdCollection:
    """
    Generate n_curves independent simulated curves.

    Keyword arguments are passed to simulate_fd_curve.
    """
    rng = np.random.default_rng(rng)
    return FdCollection(
        simulate_fd_curve(rng=rng, name=f"Simulated data #{i + 1}", tags=tags, **kwargs)
        for i in range(n_curves)
    )


def simulate_offset_ensemble(
    n_curves: int,
    sigma_d0: float = 0.1,
    sigma_F0: float = 0.5,
    sigma_scale: float = 0.0,
    rng: RngLike = None,
    tags: Sequence[str] = (),
    **kwargs
) -> Tuple[FdCollection, NDArray[np.float64], NDArray[np.float64]]:
    """
    Simulated curves with known random offsets.

    Curve i is shifted by -d0[i] along d and +F0[i] along F (after an
    optional force scaling by 1 + sigma_scale * N(0, 1)), so that the
    offset models recover d0[i], F0[i].

    Returns
    -------
    collection : FdCollection
    d0 : ndarray
        Distance offsets [um]
    F0 : ndarray
        Force offsets [pN]
    """
    rng = np.random.default_rng(rng)
    d0 = sigma_d0 * rng.standard_normal(n_curves)
    F0 = sigma_F0 * rng.standard_normal(n_curves)
    scales = 1.0 + sigma_scale * rng.standard_normal(n_curves)

    curves = []
    for i in range(n_curves):
        curve = simulate_fd_curve(rng=rng, name=f"Offset data #{i + 1}", tags=tags, **kwargs)
        if sigma_scale:
            curve = curve.scale('f', scales[i])
        curves.append(curve.shift('d', -d0[i]).shift('f', F0[i]))

    logger.debug(f"Simulated {n_curves} curves with offsets (sigma_d0={sigma_d0}, sigma_F0={sigma_F0})")
    return FdCollection(curves), d0, F0


__all__ = [
    'simulate_fd_curve',
    'simulate_fd_ensemble',
    'simulate_offset_ensemble',
]
