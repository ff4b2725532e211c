"""
F,d curve fitting.

Architecture:
- single.py: fit one model to one curve, or to every curve of a collection
- global_fit.py: simultaneous fit of many curves with shared parameters
  (sparse Jacobian pattern)
- sweep.py: refits over moving data-inclusion boundaries
- covariance.py: covariance matrix and confidence intervals
- diagnostics.py: goodness of fit, bounds checks, result logging
- config.py: optimizer and goodness-of-fit settings

Public API
----------
Main Functions:
- fit_fd: Fit a model to one curve
- fit_fd_collection: Independent fits of every curve in a collection
- fit_fd_global: Global fit with shared / per-curve parameters
- sweep_fd_fits: Boundary sweep over one curve

Usage Example
-------------
```python
from fdfit_analysis.models import make_model
from fdfit_analysis.fitting import fit_fd, fit_fd_global

model = make_model('odijk-inv-d0-f0')
result, gof, diagnostics = fit_fd(curve, model)
global_result = fit_fd_global(collection, model, shared_params=['Lp', 'S'])
print(global_result['Lp'], global_result['d0'])
```
"""

from .single import (
    FitDiagnostics,
    FdFitResult,
    CurveFitOutcome,
    fd_residual,
    fit_fd,
    fit_fd_collection,
    collection_params,
)
from .global_fit import (
    GlobalLayout,
    GlobalFitDiagnostics,
    GlobalFitResult,
    build_jacobian_sparsity,
    global_model,
    global_residual,
    fit_fd_global,
)
from .sweep import (
    SweepOptions,
    SweepCell,
    SweepResult,
    make_sweep_options,
    sweep_positions,
    sweep_fd_fits,
)
from .covariance import (
    CovarianceResult,
    compute_covariance_matrix,
    compute_confidence_interval,
)
from .diagnostics import (
    GoodnessOfFit,
    compute_goodness_of_fit,
    check_bounds_proximity,
    log_fit_results,
)

__all__ = [
    # Single-curve fits
    'FitDiagnostics',
    'FdFitResult',
    'CurveFitOutcome',
    'fd_residual',
    'fit_fd',
    'fit_fd_collection',
    'collection_params',
    # Global fits
    'GlobalLayout',
    'GlobalFitDiagnostics',
    'GlobalFitResult',
    'build_jacobian_sparsity',
    'global_model',
    'global_residual',
    'fit_fd_global',
    # Sweeps
    'SweepOptions',
    'SweepCell',
    'SweepResult',
    'make_sweep_options',
    'sweep_positions',
    'sweep_fd_fits',
    # Uncertainty and goodness of fit
    'CovarianceResult',
    'compute_covariance_matrix',
    'compute_confidence_interval',
    'GoodnessOfFit',
    'compute_goodness_of_fit',
    'check_bounds_proximity',
    'log_fit_results',
]
