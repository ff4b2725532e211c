"""
Default settings of the tWLC analysis procedure.

Values reproduce the magnesium series analysis: tWLC fits with a fixed
contour length, bootstrap over curves and a right-boundary force sweep to
find the upper force limit of the model.
"""

# =============================================================================
# Conditions
# =============================================================================

DEFAULT_MG_CONCS = (0, 25, 50, 70, 80, 100, 150)
"""
Magnesium concentrations [mM] analyzed by TwlcVsMgAnalysis.

Each needs curves tagged with mg_conc_to_tag(concentration).
"""

# =============================================================================
# Bootstrap and Sweep
# =============================================================================

DEFAULT_N_BOOTSTRAP_ITER = 100
"""
Number of bootstrap iterations (iteration 1 uses the original curves).
"""

DEFAULT_N_SWEEPS = 100
"""
Number of right-boundary positions in each force sweep.
"""

DEFAULT_SWEEP_BOUNDARIES = (40.0, 70.0)
"""
Range [pN] of the maximum force Fmax swept to find the cutoff force.

None in an analysis means (40 pN, maximum force of the data).
"""

DEFAULT_SWEEP_START_FORCE = 40.0
"""
Lower end [pN] of automatically chosen sweep boundaries.
"""

# =============================================================================
# Alignment
# =============================================================================

DEFAULT_OS_PLATEAU_REGION = (18.5, 20.0)
"""
Distance region [um] of the overstretching plateau of lambda DNA.

Curves are scaled along F so that their mean force in this region matches
the average over all curves. None skips the rescaling step.
"""

DEFAULT_ALIGNMENT_SHARED_PARAMS = ('Lp', 'S')
"""
Parameters shared by all curves in the alignment global fit.
"""

# =============================================================================
# tWLC Fit Settings
# =============================================================================

DEFAULT_TWLC_FIT_BOUNDS = {
    'Lp': (5.0, 150.0),
    'S': (500.0, 5000.0),
    'g0': (-2000.0, -100.0),
    'g1': (2.0, 60.0),
}
"""
Bounds for the free parameters of the 'twlc-lc-fixed' model.

Lp [nm], S [pN], g0 [pN nm], g1 [nm].
"""

TWLC_ANALYSIS_MODEL = 'twlc-lc-fixed'
"""
Model fitted in every sweep cell of a tWLC analysis.
"""

PARAM_UNITS = {
    'Lp': 'nm',
    'Lc': 'um',
    'S': 'pN',
    'g0': 'pN nm',
    'g1': 'nm',
    'd0': 'um',
    'F0': 'pN',
}
"""
Display units of fit parameters (reports and plot labels).
"""


__all__ = [
    'DEFAULT_MG_CONCS',
    'DEFAULT_N_BOOTSTRAP_ITER',
    'DEFAULT_N_SWEEPS',
    'DEFAULT_SWEEP_BOUNDARIES',
    'DEFAULT_SWEEP_START_FORCE',
    'DEFAULT_OS_PLATEAU_REGION',
    'DEFAULT_ALIGNMENT_SHARED_PARAMS',
    'DEFAULT_TWLC_FIT_BOUNDS',
    'TWLC_ANALYSIS_MODEL',
    'PARAM_UNITS',
]
