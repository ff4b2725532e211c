"""
F,d Curve Fitting Toolkit
=========================

Modular toolkit for fitting force-extension (F,d) curves of DNA with
worm-like chain models, with focus on global fits and bootstrap
selection of the fitting range.

Modules:
- data: F,d curves and curve collections
- models: Odijk eWLC, twistable WLC and FJC models, fit model catalog
- fitting: single, global (sparse Jacobian) and sweep fits
- analysis: alignment, bootstrap sweeps, tWLC analysis per condition
- io: Synthetic data generation
- visualization: Plotting of fits, sweeps and condition series

Version is imported from fdfit_analysis.version (single source of truth).
"""

from .version import __version__, __version_info__, get_version_string

# Errors
from .errors import (
    FdFitError,
    InvalidArgument,
    NotEnoughData,
    NumericDegeneracy,
    EmptyInput,
    MissingConditionData,
)

# Data
from .data import FdCurve, FdCollection

# Models
from .models import (
    odijk_extension,
    odijk_force,
    twlc_extension,
    twlc_force,
    fjc_extension,
    fjc_force,
    ModelKind,
    FitModel,
    make_model,
    available_models,
)

# Fitting
from .fitting import (
    FdFitResult,
    GlobalFitResult,
    SweepResult,
    GoodnessOfFit,
    fit_fd,
    fit_fd_collection,
    fit_fd_global,
    sweep_fd_fits,
)

# Analysis
from .analysis import (
    align_fd_curves,
    run_bootstrap_sweeps,
    BootstrapSweepResult,
    TwlcSettings,
    TwlcAnalysis,
    TwlcVsMgAnalysis,
    compare_offset_fits,
)

# I/O
from .io import simulate_fd_curve, simulate_fd_ensemble, simulate_offset_ensemble

# Utilities
from .utils import mg_conc_to_tag, tag_to_mg_conc

__all__ = [
    # Version info
    '__version__',
    '__version_info__',
    'get_version_string',
    # Errors
    'FdFitError',
    'InvalidArgument',
    'NotEnoughData',
    'NumericDegeneracy',
    'EmptyInput',
    'MissingConditionData',
    # Data
    'FdCurve',
    'FdCollection',
    # Models
    'odijk_extension',
    'odijk_force',
    'twlc_extension',
    'twlc_force',
    'fjc_extension',
    'fjc_force',
    'ModelKind',
    'FitModel',
    'make_model',
    'available_models',
    # Fitting
    'FdFitResult',
    'GlobalFitResult',
    'SweepResult',
    'GoodnessOfFit',
    'fit_fd',
    'fit_fd_collection',
    'fit_fd_global',
    'sweep_fd_fits',
    # Analysis
    'align_fd_curves',
    'run_bootstrap_sweeps',
    'BootstrapSweepResult',
    'TwlcSettings',
    'TwlcAnalysis',
    'TwlcVsMgAnalysis',
    'compare_offset_fits',
    # I/O
    'simulate_fd_curve',
    'simulate_fd_ensemble',
    'simulate_offset_ensemble',
    # Utilities
    'mg_conc_to_tag',
    'tag_to_mg_conc',
]
