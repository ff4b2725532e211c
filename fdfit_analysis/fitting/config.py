"""
Configuration constants for F,d curve fitting.

Physical model defaults live in fdfit_analysis.models.config; this module
holds optimizer and goodness-of-fit settings.
"""

# =============================================================================
# Optimizer Settings
# =============================================================================

FIT_MAX_NFEV = 1000
"""
Maximum number of function evaluations for a single-curve fit.

A fit that reaches this limit terminates with least_squares status 0
(non-success); it never hangs.
"""

GLOBAL_FIT_MAX_NFEV = None
"""
Maximum number of function evaluations for a global fit.

None keeps the least_squares default (100 * n_params), which grows with
the number of curves.
"""

COVARIANCE_RCOND = 1e-10
"""
Relative cutoff for small singular values in the covariance computation.
"""

# =============================================================================
# Goodness of Fit
# =============================================================================

VALID_GOF_TYPES = ('rsquare', 'adjrsquare', 'sse', 'rmse')
"""
Goodness-of-fit statistics a sweep can record per cell.

Only rsquare and adjrsquare are "higher is better"; cutoff selection by
maximum assumes one of those.
"""

DEFAULT_GOF_TYPE = 'rsquare'
"""
Default goodness-of-fit statistic (coefficient of determination R^2).
"""

BOUNDS_PROXIMITY_TOL = 0.01
"""
Relative distance to a finite bound below which a parameter is reported
as "at bound" in the fit diagnostics.
"""


__all__ = [
    'FIT_MAX_NFEV',
    'GLOBAL_FIT_MAX_NFEV',
    'COVARIANCE_RCOND',
    'VALID_GOF_TYPES',
    'DEFAULT_GOF_TYPE',
    'BOUNDS_PROXIMITY_TOL',
]
