"""
Fit model catalog.

The set of supported fit models is closed: every model is a ModelKind
member whose template (dependent variable, parameter schema, model
function, data validity limit) is stored as data in this module. FitModel
instances are immutable; make_model builds one from a template plus
optional overrides and checks all invariants once, at construction.

Usage:
    from fdfit_analysis.models import make_model

    model = make_model('odijk-inv-d0-f0', start={'Lp': 45}, fixed={'Lc': 16.4})
    model.param_names      # ['Lp', 'S', 'd0', 'F0']
    model.fixed_params     # {'Lc': 16.4, 'kT': 4.11}
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .config import (
    DEFAULT_LP, DEFAULT_LC, DEFAULT_S, DEFAULT_KT,
    DEFAULT_C, DEFAULT_FC, DEFAULT_G0, DEFAULT_G1,
    ODIJK_MAX_FORCE, F0_BOUNDS,
)
from .wlc import (
    odijk_force,
    odijk_force_offset,
    odijk_extension,
    odijk_extension_offset,
    twlc_force,
    twlc_force_offset,
    fjc_extension,
)
from ..data.curve import FdCurve
from ..errors import InvalidArgument

logger = logging.getLogger(__name__)


class ModelKind(str, Enum):
    """Supported fit models."""
    ODIJK = 'odijk'                        # F(d): Lp, Lc, S
    ODIJK_F0 = 'odijk-f0'                  # F(d): Lp, Lc, S, F0
    ODIJK_D0 = 'odijk-d0'                  # F(d): Lp, S, d0 (Lc fixed)
    ODIJK_D0_F0 = 'odijk-d0-f0'            # d(F): Lp, S, d0, F0 (Lc fixed)
    ODIJK_INV_D0_F0 = 'odijk-inv-d0-f0'    # F(d): Lp, S, d0, F0 (Lc fixed)
    ODIJK_LC = 'odijk-lc'                  # d(F): Lp, S, Lc
    TWLC = 'twlc'                          # F(d): Lp, Lc, S, g0, g1
    TWLC_LC_FIXED = 'twlc-lc-fixed'        # F(d): Lp, S, g0, g1 (Lc fixed)
    TWLC_F0 = 'twlc-f0'                    # F(d): Lp, Lc, S, g0, g1, F0
    FJC = 'fjc'                            # d(F): Lp, Lc, S


@dataclass(frozen=True)
class ParamSpec:
    """Free fit parameter: name, start value and inclusive bounds (lower < upper)."""
    name: str
    start: float
    lower: float = -np.inf
    upper: float = np.inf


@dataclass(frozen=True)
class FitModel:
    """
    Immutable fit model specification.

    Attributes
    ----------
    kind : ModelKind
        Model identity
    dependent_variable : str
        'F' (force fitted as a function of distance) or 'd'
    params : tuple of ParamSpec
        Ordered free parameters
    fixed : tuple of (str, float)
        Ordered fixed parameters, passed to the model function unchanged
    function : callable
        Model function function(x, **params) -> y
    max_force : float or None
        Data above this force [pN] are trimmed before fitting

    Bounds are inclusive but must satisfy lower < upper, as required by
    scipy.optimize.least_squares. A parameter that should not vary is
    pinned with a fixed value (make_model(..., fixed=...)) where the model
    has it as a fixed parameter, or kept inside a narrow interval.

    Raises
    ------
    InvalidArgument
        On duplicate names, overlap between free and fixed parameters,
        lower >= upper or a start value outside its bounds
    """
    kind: ModelKind
    dependent_variable: str
    params: Tuple[ParamSpec, ...]
    fixed: Tuple[Tuple[str, float], ...]
    function: Callable = field(compare=False)
    max_force: Optional[float] = None

    def __post_init__(self):
        if self.dependent_variable not in ('F', 'd'):
            raise InvalidArgument(
                f"dependent_variable must be 'F' or 'd', got '{self.dependent_variable}'"
            )

        free_names = [p.name for p in self.params]
        fixed_names = [name for name, _ in self.fixed]
        if len(set(free_names)) != len(free_names):
            raise InvalidArgument(f"Duplicate free parameter names: {free_names}")
        if len(set(fixed_names)) != len(fixed_names):
            raise InvalidArgument(f"Duplicate fixed parameter names: {fixed_names}")
        overlap = set(free_names) & set(fixed_names)
        if overlap:
            raise InvalidArgument(f"Parameters both free and fixed: {sorted(overlap)}")

        for p in self.params:
            if math.isnan(p.lower) or math.isnan(p.upper) or p.lower >= p.upper:
                raise InvalidArgument(
                    f"{p.name}: invalid bounds [{p.lower}, {p.upper}]; "
                    f"least_squares needs lower < upper"
                )
            if not (math.isfinite(p.start) and p.lower <= p.start <= p.upper):
                raise InvalidArgument(
                    f"{p.name}: start value {p.start} outside bounds [{p.lower}, {p.upper}]"
                )

        for name, value in self.fixed:
            if not math.isfinite(value):
                raise InvalidArgument(f"{name}: fixed value must be finite, got {value}")

    # -------------------------------------------------------------------------
    # Parameter schema
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def param_names(self) -> List[str]:
        return [p.name for p in self.params]

    @property
    def n_free(self) -> int:
        return len(self.params)

    @property
    def fixed_params(self) -> Dict[str, float]:
        return dict(self.fixed)

    @property
    def start(self) -> NDArray[np.float64]:
        return np.array([p.start for p in self.params], dtype=float)

    @property
    def lower(self) -> NDArray[np.float64]:
        return np.array([p.lower for p in self.params], dtype=float)

    @property
    def upper(self) -> NDArray[np.float64]:
        return np.array([p.upper for p in self.params], dtype=float)

    @property
    def independent_variable(self) -> str:
        return 'd' if self.dependent_variable == 'F' else 'F'

    # -------------------------------------------------------------------------
    # Capabilities
    # -------------------------------------------------------------------------

    def evaluate(self, x: NDArray[np.float64], values: Sequence[float]) -> NDArray[np.float64]:
        """
        Evaluate the model at x for the free parameter vector `values`.

        x is distance for dependent_variable 'F', force for 'd'.
        """
        kwargs = dict(self.fixed)
        kwargs.update(zip(self.param_names, (float(v) for v in values)))
        return np.asarray(self.function(np.asarray(x, dtype=float), **kwargs), dtype=float)

    def validate_data(self, curve: FdCurve, trim: bool = True) -> FdCurve:
        """
        Restrict a curve to the model's validity range.

        Models with max_force (Odijk family) drop samples above that force
        unless trim is False.
        """
        if trim and self.max_force is not None and np.any(curve.force > self.max_force):
            logger.warning(f"Only using data up to {self.max_force:g} pN")
            return curve.subset('f', (-np.inf, self.max_force))
        return curve

    def split_data(self, curve: FdCurve) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Return (independent, dependent) arrays of a curve for this model."""
        if self.dependent_variable == 'F':
            return curve.distance, curve.force
        return curve.force, curve.distance

    def replace(
        self,
        start: Optional[Mapping[str, float]] = None,
        bounds: Optional[Mapping[str, Tuple[float, float]]] = None,
        fixed: Optional[Mapping[str, float]] = None
    ) -> 'FitModel':
        """Return a copy with some start values, bounds or fixed values changed."""
        cur_start = {p.name: p.start for p in self.params}
        cur_bounds = {p.name: (p.lower, p.upper) for p in self.params}
        cur_fixed = dict(self.fixed)
        cur_start.update(start or {})
        cur_bounds.update(bounds or {})
        cur_fixed.update(fixed or {})
        return make_model(
            self.kind, start=cur_start, bounds=cur_bounds, fixed=cur_fixed,
            max_force=self.max_force
        )

    def __repr__(self) -> str:
        free = ', '.join(f"{p.name}={p.start:g}" for p in self.params)
        fixed = ', '.join(f"{n}={v:g}" for n, v in self.fixed)
        return f"FitModel('{self.name}', {self.dependent_variable}(...), free=[{free}], fixed=[{fixed}])"


# =============================================================================
# Templates
# =============================================================================

@dataclass(frozen=True)
class _Template:
    dependent_variable: str
    function: Callable
    params: Tuple[ParamSpec, ...]
    fixed: Tuple[Tuple[str, float], ...]
    max_force: Optional[float] = None


_LP = ParamSpec('Lp', DEFAULT_LP)
_LC = ParamSpec('Lc', DEFAULT_LC)
_S = ParamSpec('S', DEFAULT_S)
_D0 = ParamSpec('d0', 0.0)
_F0 = ParamSpec('F0', 0.0, *F0_BOUNDS)
_G0 = ParamSpec('g0', DEFAULT_G0)
_G1 = ParamSpec('g1', DEFAULT_G1)

_FIXED_KT = (('kT', DEFAULT_KT),)
_FIXED_LC = (('Lc', DEFAULT_LC),) + _FIXED_KT
_FIXED_TWLC = (('C', DEFAULT_C), ('Fc', DEFAULT_FC)) + _FIXED_KT

_CATALOG: Dict[ModelKind, _Template] = {
    ModelKind.ODIJK: _Template(
        'F', odijk_force, (_LP, _LC, _S), _FIXED_KT, ODIJK_MAX_FORCE),
    ModelKind.ODIJK_F0: _Template(
        'F', odijk_force_offset, (_LP, _LC, _S, _F0), _FIXED_KT, ODIJK_MAX_FORCE),
    ModelKind.ODIJK_D0: _Template(
        'F', odijk_force_offset, (_LP, _S, _D0), _FIXED_LC, ODIJK_MAX_FORCE),
    ModelKind.ODIJK_D0_F0: _Template(
        'd', odijk_extension_offset, (_LP, _S, _D0, _F0), _FIXED_LC, ODIJK_MAX_FORCE),
    ModelKind.ODIJK_INV_D0_F0: _Template(
        'F', odijk_force_offset, (_LP, _S, _D0, _F0), _FIXED_LC, ODIJK_MAX_FORCE),
    ModelKind.ODIJK_LC: _Template(
        'd', odijk_extension, (_LP, _S, _LC), _FIXED_KT, ODIJK_MAX_FORCE),
    ModelKind.TWLC: _Template(
        'F', twlc_force, (_LP, _LC, _S, _G0, _G1), _FIXED_TWLC),
    ModelKind.TWLC_LC_FIXED: _Template(
        'F', twlc_force, (_LP, _S, _G0, _G1), (('Lc', DEFAULT_LC),) + _FIXED_TWLC),
    ModelKind.TWLC_F0: _Template(
        'F', twlc_force_offset, (_LP, _LC, _S, _G0, _G1, _F0), _FIXED_TWLC),
    ModelKind.FJC: _Template(
        'd', fjc_extension, (_LP, _LC, _S), _FIXED_KT),
}

_NOT_SET = object()


def _parse_kind(kind: Union[ModelKind, str]) -> ModelKind:
    try:
        return ModelKind(kind)
    except ValueError:
        valid = [k.value for k in ModelKind]
        raise InvalidArgument(f"Unknown model '{kind}'; valid models: {valid}") from None


def make_model(
    kind: Union[ModelKind, str],
    start: Optional[Mapping[str, float]] = None,
    bounds: Optional[Mapping[str, Tuple[float, float]]] = None,
    fixed: Optional[Mapping[str, float]] = None,
    max_force=_NOT_SET
) -> FitModel:
    """
    Build a validated FitModel from the catalog.

    Parameters
    ----------
    kind : ModelKind or str
        Model name, e.g. 'odijk-inv-d0-f0' or 'twlc-lc-fixed'
    start : dict, optional
        Start values for free parameters (others keep catalog defaults)
    bounds : dict, optional
        (lower, upper) bounds for free parameters (default: unbounded,
        F0 in [-20, 20] pN)
    fixed : dict, optional
        Values for the model's fixed parameters (e.g. Lc, C, Fc, kT)
    max_force : float or None, optional
        Override the data validity limit (None disables trimming)

    Returns
    -------
    model : FitModel

    Raises
    ------
    InvalidArgument
        Unknown model or parameter names, malformed bounds, start values
        outside bounds
    """
    kind = _parse_kind(kind)
    template = _CATALOG[kind]
    start = dict(start or {})
    bounds = dict(bounds or {})
    fixed = dict(fixed or {})

    free_names = [p.name for p in template.params]
    fixed_names = [name for name, _ in template.fixed]

    for label, names, allowed in (
        ('start', start, free_names),
        ('bounds', bounds, free_names),
        ('fixed', fixed, fixed_names),
    ):
        unknown = set(names) - set(allowed)
        if unknown:
            raise InvalidArgument(
                f"{kind.value}: invalid {label} parameter(s) {sorted(unknown)}; "
                f"expected a subset of {allowed}"
            )

    params = []
    for p in template.params:
        lower, upper = p.lower, p.upper
        if p.name in bounds:
            b = bounds[p.name]
            if len(b) != 2:
                raise InvalidArgument(f"{p.name}: bounds must be (lower, upper), got {b}")
            lower, upper = float(b[0]), float(b[1])
        params.append(ParamSpec(p.name, float(start.get(p.name, p.start)), lower, upper))

    fixed_values = tuple(
        (name, float(fixed.get(name, default))) for name, default in template.fixed
    )

    return FitModel(
        kind=kind,
        dependent_variable=template.dependent_variable,
        params=tuple(params),
        fixed=fixed_values,
        function=template.function,
        max_force=template.max_force if max_force is _NOT_SET else max_force,
    )


def available_models() -> List[str]:
    """Names of all catalog models."""
    return [k.value for k in ModelKind]


__all__ = [
    'ModelKind',
    'ParamSpec',
    'FitModel',
    'make_model',
    'available_models',
]
