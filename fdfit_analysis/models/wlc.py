"""
Polymer elasticity models for DNA force-extension curves.

All functions are vectorised over the first argument (force or distance)
and keep its shape; a scalar input gives a float back.

Units
-----
F : pN
d, Lc : um
Lp : nm
S : pN
C : pN nm^2
g0 : pN nm
g1 : nm
kT : pN nm

Invalid parameter combinations (negative persistence length, force below
zero, g^2 > S*C, ...) make a square-root argument negative. Such points
evaluate to NaN: the arithmetic stays real and a negative radicand never
leaks a real part of a complex number into the result.

References
----------
.. [1] T. Odijk, Macromolecules 28 (1995) 7016-7018
.. [2] P. Gross et al., Nature Physics 7 (2011) 731-736
.. [3] S. B. Smith, Y. Cui, C. Bustamante, Science 271 (1996) 795-799
"""

import logging
from typing import Callable, Union

import numpy as np
from numpy.typing import NDArray, ArrayLike
from scipy.interpolate import PchipInterpolator
from scipy.optimize import minimize_scalar

from .config import (
    DEFAULT_KT,
    TWLC_LOOKUP_FORCE_STEP,
    TWLC_LOOKUP_MAX_FORCE,
    FJC_LOOKUP_FORCE_MAX,
)

logger = logging.getLogger(__name__)

FloatOrArray = Union[float, NDArray[np.float64]]


def _output(values: NDArray[np.float64], like: ArrayLike) -> FloatOrArray:
    """Return a float for scalar input, an array otherwise."""
    if np.ndim(like) == 0:
        return float(values)
    return values


# =============================================================================
# Odijk (extensible worm-like chain)
# =============================================================================

def odijk_extension(
    F: ArrayLike,
    Lp: float,
    Lc: float,
    S: float,
    kT: float = DEFAULT_KT
) -> FloatOrArray:
    """
    Extension of the Odijk eWLC as a function of force.

    d = Lc * (1 - 1/2 * sqrt(kT / (F*Lp)) + F/S)

    Parameters
    ----------
    F : float or array_like
        Force [pN]
    Lp : float
        Persistence length [nm]
    Lc : float
        Contour length [um]
    S : float
        Stretch modulus [pN]
    kT : float, optional
        Thermal energy [pN nm] (default: 4.11)

    Returns
    -------
    d : float or ndarray
        Extension [um]; NaN where kT/(F*Lp) < 0
    """
    F_arr = np.asarray(F, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore'):
        d = Lc * (1.0 - 0.5 * np.sqrt(kT / (F_arr * Lp)) + F_arr / S)
    return _output(d, F)


def odijk_force(
    d: ArrayLike,
    Lp: float,
    Lc: float,
    S: float,
    kT: float = DEFAULT_KT
) -> FloatOrArray:
    """
    Force of the Odijk eWLC as a function of extension (exact inverse).

    With u = sqrt(F) and x = d/Lc the model becomes the depressed cubic

        u^3 + p*u + q = 0,   p = S*(1 - x),   q = -S/2 * sqrt(kT/Lp)

    For S, Lp > 0 we have q < 0, so the cubic has exactly one positive root.
    It is taken from Cardano's formula when the discriminant is
    non-negative, and from the trigonometric form (largest of three real
    roots) otherwise. F = u^2.

    Parameters
    ----------
    d : float or array_like
        Extension [um]
    Lp, Lc, S, kT : float
        See odijk_extension

    Returns
    -------
    F : float or ndarray
        Force [pN]; NaN for non-physical parameters (Lp <= 0, ...)
    """
    d_arr = np.asarray(d, dtype=float)

    with np.errstate(divide='ignore', invalid='ignore'):
        x = d_arr / Lc
        p = S * (1.0 - x)
        q = np.full_like(x, -0.5 * S * np.sqrt(kT / Lp))

        disc = (q / 2.0) ** 2 + (p / 3.0) ** 3
        one_real = disc >= 0

        # Cardano (one real root)
        sqrt_disc = np.sqrt(np.where(one_real, disc, 0.0))
        u_cardano = np.cbrt(-q / 2.0 + sqrt_disc) + np.cbrt(-q / 2.0 - sqrt_disc)

        # Trigonometric form (three real roots, p < 0)
        p_neg = np.where(one_real, -1.0, p)
        arg = np.clip((3.0 * q / (2.0 * p_neg)) * np.sqrt(-3.0 / p_neg), -1.0, 1.0)
        u_trig = 2.0 * np.sqrt(-p_neg / 3.0) * np.cos(np.arccos(arg) / 3.0)

        u = np.where(one_real, u_cardano, u_trig)
        # NaN comparisons are False above; restore NaN for invalid inputs
        u = np.where(np.isnan(disc), np.nan, u)

    return _output(u ** 2, d)


# =============================================================================
# Offset wrappers
# =============================================================================

def offset_extension(
    model: Callable[..., FloatOrArray],
    F: ArrayLike,
    *params: float,
    d0: float = 0.0,
    F0: float = 0.0,
    **kwargs
) -> FloatOrArray:
    """
    Compose a d(F) model with distance and force offsets.

    d = model(F - F0, *params) - d0
    """
    F_arr = np.asarray(F, dtype=float)
    d = np.asarray(model(F_arr - F0, *params, **kwargs), dtype=float) - d0
    return _output(d, F)


def offset_force(
    inverse: Callable[..., FloatOrArray],
    d: ArrayLike,
    *params: float,
    d0: float = 0.0,
    F0: float = 0.0,
    **kwargs
) -> FloatOrArray:
    """
    Compose an F(d) model with distance and force offsets.

    Inverse of offset_extension: F = inverse(d + d0, *params) + F0
    """
    d_arr = np.asarray(d, dtype=float)
    F = np.asarray(inverse(d_arr + d0, *params, **kwargs), dtype=float) + F0
    return _output(F, d)


def odijk_extension_offset(
    F: ArrayLike,
    Lp: float,
    Lc: float,
    S: float,
    d0: float = 0.0,
    F0: float = 0.0,
    kT: float = DEFAULT_KT
) -> FloatOrArray:
    """Odijk eWLC d(F) with offsets: d = odijk(F - F0) - d0."""
    return offset_extension(odijk_extension, F, Lp, Lc, S, d0=d0, F0=F0, kT=kT)


def odijk_force_offset(
    d: ArrayLike,
    Lp: float,
    Lc: float,
    S: float,
    d0: float = 0.0,
    F0: float = 0.0,
    kT: float = DEFAULT_KT
) -> FloatOrArray:
    """Odijk eWLC F(d) with offsets: F = odijk_force(d + d0) + F0."""
    return offset_force(odijk_force, d, Lp, Lc, S, d0=d0, F0=F0, kT=kT)


# =============================================================================
# Twistable worm-like chain
# =============================================================================

def twist_stretch_coupling(
    F: ArrayLike,
    g0: float,
    g1: float,
    Fc: float
) -> FloatOrArray:
    """
    Force-dependent twist-stretch coupling g(F) [pN nm].

    g = g0 + g1 * Fc   for F < Fc
    g = g0 + g1 * F    for F >= Fc
    """
    F_arr = np.asarray(F, dtype=float)
    g = g0 + g1 * np.maximum(F_arr, Fc)
    return _output(g, F)


def twlc_max_force(S: float, C: float, g0: float, g1: float) -> float:
    """
    Force above which the tWLC is undefined: F_max = (-g0 + sqrt(S*C)) / g1.

    Not finite if S*C < 0 or g1 == 0.
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        return float((-g0 + np.sqrt(S * C)) / g1)


def twlc_extension(
    F: ArrayLike,
    Lp: float,
    Lc: float,
    S: float,
    C: float,
    g0: float,
    g1: float,
    Fc: float,
    kT: float = DEFAULT_KT
) -> FloatOrArray:
    """
    Extension of the twistable worm-like chain as a function of force.

    d = Lc * (1 - 1/2 * sqrt(kT/(F*Lp)) + C / (-g(F)^2 + S*C) * F)

    Parameters
    ----------
    F : float or array_like
        Force [pN]
    Lp : float
        Persistence length [nm]
    Lc : float
        Contour length [um]
    S : float
        Stretch modulus [pN]
    C : float
        Twist rigidity [pN nm^2]
    g0, g1 : float
        Twist-stretch coupling, g(F) = g0 + g1*max(F, Fc) [pN nm], [nm]
    Fc : float
        Critical force [pN]
    kT : float, optional
        Thermal energy [pN nm] (default: 4.11)

    Returns
    -------
    d : float or ndarray
        Extension [um]
    """
    F_arr = np.asarray(F, dtype=float)
    g = g0 + g1 * np.maximum(F_arr, Fc)
    with np.errstate(divide='ignore', invalid='ignore'):
        d = Lc * (
            1.0
            - 0.5 * np.sqrt(kT / (F_arr * Lp))
            + C / (-g ** 2 + S * C) * F_arr
        )
    return _output(d, F)


def _twlc_force_scalar(
    d: float,
    Lp: float, Lc: float, S: float, C: float,
    g0: float, g1: float, Fc: float, kT: float,
    F_max: float
) -> float:
    """Invert the tWLC for one extension by bounded minimisation of |d(F) - d|."""

    def objective(F_trial):
        y = twlc_extension(F_trial, Lp, Lc, S, C, g0, g1, Fc, kT) - d
        if not np.isfinite(y):
            return np.inf
        return abs(y)

    res = minimize_scalar(
        objective,
        bounds=(0.0, F_max),
        method='bounded',
        options={'xatol': 1e-8}
    )
    return float(res.x)


def _twlc_lookup_table(
    Lp: float, Lc: float, S: float, C: float,
    g0: float, g1: float, Fc: float, kT: float,
    F_max: float
):
    """
    Evaluate the tWLC on an evenly spaced force grid up to F_max.

    Returns (d_grid, F_grid) restricted to finite, strictly increasing
    extensions, or None if fewer than two such points exist.
    """
    F_top = min(F_max, TWLC_LOOKUP_MAX_FORCE)
    n_grid = int(np.floor(F_top / TWLC_LOOKUP_FORCE_STEP + 1e-9))
    if n_grid < 2:
        return None

    F_grid = TWLC_LOOKUP_FORCE_STEP * np.arange(1, n_grid + 1)
    d_grid = twlc_extension(F_grid, Lp, Lc, S, C, g0, g1, Fc, kT)

    finite = np.isfinite(d_grid)
    F_grid, d_grid = F_grid[finite], d_grid[finite]
    if len(d_grid) < 2:
        return None

    # Interpolation needs strictly increasing abscissae
    running_max = np.maximum.accumulate(d_grid)
    keep = np.concatenate(([True], d_grid[1:] > running_max[:-1]))
    F_grid, d_grid = F_grid[keep], d_grid[keep]
    if len(d_grid) < 2:
        return None

    return d_grid, F_grid


def twlc_force(
    d: ArrayLike,
    Lp: float,
    Lc: float,
    S: float,
    C: float,
    g0: float,
    g1: float,
    Fc: float,
    kT: float = DEFAULT_KT
) -> FloatOrArray:
    """
    Force of the tWLC as a function of extension (numeric inverse).

    The tWLC has no closed-form inverse. Two strategies are used:

    - scalar d: bounded 1-D minimisation of |twlc_extension(F) - d| on
      [0, F_max]; non-finite objective values count as +inf.
    - array d: lookup table of twlc_extension on a 0.01 pN force grid from
      0.01 pN to F_max, inverted with monotone cubic (PCHIP) interpolation.
      Relative error is of order 1e-5 versus the scalar strategy.

    For invalid parameters (F_max <= 0 or NaN, no usable grid points) the
    model cannot be evaluated and zeros of the input shape are returned.

    Parameters
    ----------
    d : float or array_like
        Extension [um]
    Lp, Lc, S, C, g0, g1, Fc, kT : float
        See twlc_extension

    Returns
    -------
    F : float or ndarray
        Force [pN]
    """
    F_max = twlc_max_force(S, C, g0, g1)

    if np.ndim(d) == 0:
        if not (np.isfinite(F_max) and F_max > 0):
            return 0.0
        return _twlc_force_scalar(float(d), Lp, Lc, S, C, g0, g1, Fc, kT, F_max)

    d_arr = np.asarray(d, dtype=float)
    table = None
    if np.isfinite(F_max) and F_max > 0:
        table = _twlc_lookup_table(Lp, Lc, S, C, g0, g1, Fc, kT, F_max)

    if table is None:
        logger.debug(f"tWLC not evaluable (F_max={F_max:.4g} pN); returning zeros")
        return np.zeros_like(d_arr)

    d_grid, F_grid = table
    return PchipInterpolator(d_grid, F_grid, extrapolate=True)(d_arr)


def twlc_force_offset(
    d: ArrayLike,
    Lp: float,
    Lc: float,
    S: float,
    C: float,
    g0: float,
    g1: float,
    Fc: float,
    F0: float = 0.0,
    kT: float = DEFAULT_KT
) -> FloatOrArray:
    """tWLC F(d) with force offset: F = twlc_force(d) + F0."""
    return offset_force(twlc_force, d, Lp, Lc, S, C, g0, g1, Fc, F0=F0, kT=kT)


# =============================================================================
# Freely-jointed chain
# =============================================================================

def fjc_extension(
    F: ArrayLike,
    Lp: float,
    Lc: float,
    S: float,
    kT: float = DEFAULT_KT
) -> FloatOrArray:
    """
    Extension of the extensible freely-jointed chain (Kuhn length 2*Lp).

    d = Lc * (coth(2*F*Lp/kT) - kT/(2*F*Lp)) * (1 + F/S)
    """
    F_arr = np.asarray(F, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        a = 2.0 * F_arr * Lp / kT
        d = Lc * (1.0 / np.tanh(a) - 1.0 / a) * (1.0 + F_arr / S)
    return _output(d, F)


def fjc_force(
    d: ArrayLike,
    Lp: float,
    Lc: float,
    S: float,
    kT: float = DEFAULT_KT
) -> FloatOrArray:
    """
    Force of the extensible FJC as a function of extension.

    Inverted with a PCHIP-interpolated lookup table on a force grid from
    0.01 pN to 100 pN; zeros if the parameters give no usable table.
    """
    d_arr = np.asarray(d, dtype=float)
    n_grid = int(round(FJC_LOOKUP_FORCE_MAX / TWLC_LOOKUP_FORCE_STEP))
    F_grid = TWLC_LOOKUP_FORCE_STEP * np.arange(1, n_grid + 1)
    d_grid = fjc_extension(F_grid, Lp, Lc, S, kT)

    finite = np.isfinite(d_grid)
    F_grid, d_grid = F_grid[finite], d_grid[finite]
    if len(d_grid) >= 2:
        running_max = np.maximum.accumulate(d_grid)
        keep = np.concatenate(([True], d_grid[1:] > running_max[:-1]))
        F_grid, d_grid = F_grid[keep], d_grid[keep]

    if len(d_grid) < 2:
        return _output(np.zeros_like(d_arr), d)

    F = PchipInterpolator(d_grid, F_grid, extrapolate=True)(d_arr)
    return _output(F, d)


__all__ = [
    'odijk_extension',
    'odijk_force',
    'offset_extension',
    'offset_force',
    'odijk_extension_offset',
    'odijk_force_offset',
    'twist_stretch_coupling',
    'twlc_max_force',
    'twlc_extension',
    'twlc_force',
    'twlc_force_offset',
    'fjc_extension',
    'fjc_force',
]
