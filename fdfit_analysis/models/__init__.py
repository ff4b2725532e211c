"""
Polymer elasticity models and the fit model catalog.

- wlc.py: Odijk eWLC, tWLC and FJC functions with their inverses
- catalog.py: closed set of fit models (ModelKind) with parameter schemas
- config.py: physical defaults (lambda DNA, room temperature)
"""

from .wlc import (
    odijk_extension,
    odijk_force,
    offset_extension,
    offset_force,
    odijk_extension_offset,
    odijk_force_offset,
    twist_stretch_coupling,
    twlc_max_force,
    twlc_extension,
    twlc_force,
    twlc_force_offset,
    fjc_extension,
    fjc_force,
)
from .catalog import (
    ModelKind,
    ParamSpec,
    FitModel,
    make_model,
    available_models,
)

__all__ = [
    # Model functions
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
    # Catalog
    'ModelKind',
    'ParamSpec',
    'FitModel',
    'make_model',
    'available_models',
]
