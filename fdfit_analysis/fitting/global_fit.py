"""
Global fitting of one model to many F,d curves.

Free parameters are split into shared parameters (one value for all
curves, e.g. Lp and S) and per-curve parameters (one value per curve, e.g.
the offsets d0 and F0). All curves are concatenated and fitted in a single
least-squares problem. Per-curve fits of offsets are biased, which is why
the offsets of a set of curves should come from a global fit.

Parameter vector layout:

    [shared_1 .. shared_M,
     percurve_1(curve 0) .. percurve_K(curve 0),
     ...,
     percurve_1(curve N-1) .. percurve_K(curve N-1)]

Residual i (sample of curve c) depends only on the shared parameters and
on curve c's own block; this sparsity pattern is passed to least_squares
so that finite-difference Jacobians cost O(M + K) residual evaluations
instead of O(M + N*K).

Usage:
    model = make_model('odijk-inv-d0-f0')
    result = fit_fd_global(collection, model, shared_params=['Lp', 'S'])
    result['Lp']      # float
    result['d0']      # ndarray, one value per curve
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import least_squares, OptimizeWarning
from scipy.sparse import lil_matrix, csr_matrix

from .config import GLOBAL_FIT_MAX_NFEV
from .covariance import compute_covariance_matrix, compute_confidence_interval
from .diagnostics import GoodnessOfFit, compute_goodness_of_fit
from .single import x_scale_for
from ..data import FdCollection
from ..errors import (
    FdFitError,
    InvalidArgument,
    NotEnoughData,
    NumericDegeneracy,
    EmptyInput,
)
from ..models import FitModel

logger = logging.getLogger(__name__)

ParamValue = Union[float, NDArray[np.float64]]


# =============================================================================
# Parameter layout
# =============================================================================

@dataclass(frozen=True)
class GlobalLayout:
    """
    Mapping between the global parameter vector and the model's parameters.

    Attributes
    ----------
    param_names : tuple of str
        Model free parameters, in model order
    shared : tuple of str
        Shared parameters (model order)
    per_curve : tuple of str
        Per-curve parameters (model order)
    n_curves : int
        Number of curves
    """
    param_names: Tuple[str, ...]
    shared: Tuple[str, ...]
    per_curve: Tuple[str, ...]
    n_curves: int

    @property
    def n_shared(self) -> int:
        return len(self.shared)

    @property
    def n_per_curve(self) -> int:
        return len(self.per_curve)

    @property
    def n_params(self) -> int:
        return self.n_shared + self.n_per_curve * self.n_curves

    @property
    def shared_positions(self) -> List[int]:
        return [self.param_names.index(name) for name in self.shared]

    @property
    def per_curve_positions(self) -> List[int]:
        return [self.param_names.index(name) for name in self.per_curve]

    def block(self, curve_index: int) -> slice:
        """Slice of the global vector holding curve_index's own parameters."""
        start = self.n_shared + curve_index * self.n_per_curve
        return slice(start, start + self.n_per_curve)

    def curve_values(self, params: NDArray[np.float64], curve_index: int) -> NDArray[np.float64]:
        """Model parameter vector (model order) for one curve."""
        values = np.empty(len(self.param_names))
        values[self.shared_positions] = params[:self.n_shared]
        values[self.per_curve_positions] = params[self.block(curve_index)]
        return values

    def pack(self, model_vector: NDArray[np.float64]) -> NDArray[np.float64]:
        """Global vector with every curve using the same model-order values."""
        model_vector = np.asarray(model_vector, dtype=float)
        return np.concatenate([
            model_vector[self.shared_positions],
            np.tile(model_vector[self.per_curve_positions], self.n_curves)
        ])

    def unpack(self, params: NDArray[np.float64]) -> Dict[str, ParamValue]:
        """Name -> float (shared) or ndarray of length n_curves (per-curve)."""
        out: Dict[str, ParamValue] = {}
        for k, name in enumerate(self.shared):
            out[name] = float(params[k])
        per_curve = params[self.n_shared:].reshape(self.n_curves, self.n_per_curve)
        for k, name in enumerate(self.per_curve):
            out[name] = per_curve[:, k].copy()
        return {name: out[name] for name in self.param_names}


def build_jacobian_sparsity(curve_ids: NDArray[np.int_], layout: GlobalLayout) -> csr_matrix:
    """
    Sparsity pattern of the global Jacobian.

    Row i (curve c = curve_ids[i]) has nonzeros in the shared columns and
    in curve c's block only.
    """
    pattern = lil_matrix((len(curve_ids), layout.n_params), dtype=np.int8)
    if layout.n_shared:
        pattern[:, :layout.n_shared] = 1
    if layout.n_per_curve:
        for c in range(layout.n_curves):
            rows = np.flatnonzero(curve_ids == c)
            block = layout.block(c)
            for col in range(block.start, block.stop):
                pattern[rows, col] = 1
    return pattern.tocsr()


# =============================================================================
# Model and residual
# =============================================================================

def global_model(
    params: NDArray[np.float64],
    x: NDArray[np.float64],
    curve_ids: NDArray[np.int_],
    layout: GlobalLayout,
    model: FitModel
) -> NDArray[np.float64]:
    """
    Evaluate the model for all curves: one model call per curve, written to
    the samples carrying that curve's id.
    """
    y_model = np.empty_like(x)
    for c in range(layout.n_curves):
        mask = curve_ids == c
        if np.any(mask):
            y_model[mask] = model.evaluate(x[mask], layout.curve_values(params, c))
    return y_model


def global_residual(
    params: NDArray[np.float64],
    x: NDArray[np.float64],
    y: NDArray[np.float64],
    curve_ids: NDArray[np.int_],
    layout: GlobalLayout,
    model: FitModel
) -> NDArray[np.float64]:
    """Residual global_model(...) - y; NumericDegeneracy on non-finite values."""
    y_model = global_model(params, x, curve_ids, layout, model)
    if not np.all(np.isfinite(y_model)):
        raise NumericDegeneracy(f"{model.name}: global model not finite")
    return y_model - y


# =============================================================================
# Results
# =============================================================================

@dataclass
class GlobalFitDiagnostics:
    """Solver diagnostics of a global fit."""
    optimizer_status: int
    optimizer_message: str
    optimizer_success: bool
    n_function_evals: int
    cost: float
    n_points: int
    n_curves: int
    n_params: int
    condition_number: float = np.nan
    covariance_warning: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


@dataclass
class GlobalFitResult:
    """
    Result of a global fit.

    Attributes
    ----------
    model : FitModel
        Fitted model
    layout : GlobalLayout
        Shared / per-curve partition
    params_opt : ndarray
        Global parameter vector
    params : dict
        Name -> float (shared) or ndarray of length n_curves (per-curve)
    conf_int_95, conf_int_68 : dict or None
        Name -> [low, high] (shared) or array of shape (n_curves, 2);
        None unless compute_conf_int was requested
    gof : GoodnessOfFit
        Goodness of fit over all concatenated samples
    diagnostics : GlobalFitDiagnostics
    """
    model: FitModel
    layout: GlobalLayout
    params_opt: NDArray[np.float64]
    params: Dict[str, ParamValue]
    gof: GoodnessOfFit
    diagnostics: GlobalFitDiagnostics
    conf_int_95: Optional[Dict[str, NDArray[np.float64]]] = None
    conf_int_68: Optional[Dict[str, NDArray[np.float64]]] = None

    @property
    def exit_flag(self) -> int:
        return self.diagnostics.optimizer_status

    @property
    def n_curves(self) -> int:
        return self.layout.n_curves

    def curve_params(self, curve_index: int) -> Dict[str, float]:
        """All free parameter values that apply to one curve."""
        values = self.layout.curve_values(self.params_opt, curve_index)
        return dict(zip(self.layout.param_names, (float(v) for v in values)))

    def predict(self, x: NDArray[np.float64], curve_index: int) -> NDArray[np.float64]:
        """Model prediction for one curve."""
        return self.model.evaluate(x, self.layout.curve_values(self.params_opt, curve_index))

    def __getitem__(self, name: str) -> ParamValue:
        return self.params[name]

    def __repr__(self) -> str:
        lines = [f"Global fit result ({self.model.name}, {self.n_curves} curves):"]
        for name in self.layout.shared:
            lines.append(f"  {name} = {self.params[name]:.6g} (shared)")
        for name in self.layout.per_curve:
            vals = self.params[name]
            lines.append(f"  {name} = mean {np.mean(vals):.4g}, std {np.std(vals):.3g} (per curve)")
        lines.append(f"  status: {self.exit_flag} ({self.diagnostics.optimizer_message})")
        return '\n'.join(lines)


def _interval_dict(
    layout: GlobalLayout,
    ci_low: NDArray[np.float64],
    ci_high: NDArray[np.float64]
) -> Dict[str, NDArray[np.float64]]:
    low, high = layout.unpack(ci_low), layout.unpack(ci_high)
    return {
        name: np.stack([np.asarray(low[name]), np.asarray(high[name])], axis=-1)
        for name in layout.param_names
    }


# =============================================================================
# Global fit
# =============================================================================

def _validate_shared(model: FitModel, shared_params: Sequence[str]) -> Tuple[str, ...]:
    if isinstance(shared_params, str):
        shared_params = [shared_params]
    shared_params = list(shared_params)
    if not shared_params:
        raise InvalidArgument("shared_params must name at least one fit parameter")
    if len(set(shared_params)) != len(shared_params):
        raise InvalidArgument(f"Duplicate names in shared_params: {shared_params}")
    for name in shared_params:
        if name not in model.param_names:
            raise InvalidArgument(
                f"shared_params: invalid fit parameter '{name}' "
                f"(model {model.name} has {model.param_names})"
            )
    return tuple(name for name in model.param_names if name in shared_params)


def fit_fd_global(
    collection: FdCollection,
    model: FitModel,
    shared_params: Sequence[str],
    compute_conf_int: bool = False,
    trim: bool = True,
    max_nfev: Optional[int] = GLOBAL_FIT_MAX_NFEV
) -> GlobalFitResult:
    """
    Fit a model to all curves of a collection simultaneously.

    Parameters
    ----------
    collection : FdCollection
        Curves to fit (each is first restricted to the model's validity range)
    model : FitModel
        Model with start values and bounds; start values are used for every
        curve
    shared_params : sequence of str
        Free parameters shared by all curves; the remaining free parameters
        are fitted per curve
    compute_conf_int : bool, optional
        Compute 95% and 68% confidence intervals from the Jacobian
        (default: False). Converts the Jacobian to a dense matrix and runs
        an SVD, which is slow for many curves (> 20).
    trim : bool, optional
        Apply the model's force limit (default: True)
    max_nfev : int, optional
        Cap on function evaluations (default: least_squares default)

    Returns
    -------
    result : GlobalFitResult

    Raises
    ------
    InvalidArgument
        Not a collection / model, or invalid shared_params
    EmptyInput
        If the collection has no curves
    NotEnoughData
        If the curves have no more samples than global parameters
    NumericDegeneracy
        If the model evaluates to non-finite values during the fit
    """
    if not isinstance(collection, FdCollection):
        raise InvalidArgument(
            f"collection must be an FdCollection, got {type(collection).__name__}"
        )
    if not isinstance(model, FitModel):
        raise InvalidArgument(f"model must be a FitModel, got {type(model).__name__}")

    n_curves = len(collection)
    if n_curves == 0:
        raise EmptyInput("No data to fit: collection is empty")

    shared = _validate_shared(model, shared_params)

    diag_warnings = []
    if n_curves == 1:
        message = "Only fitting a single F,d curve; you may want to use fit_fd instead"
        logger.warning(message)
        diag_warnings.append(message)

    # Concatenate data with curve ids
    xs, ys, ids = [], [], []
    for c, curve in enumerate(collection):
        x_c, y_c = model.split_data(model.validate_data(curve, trim=trim))
        finite = np.isfinite(x_c) & np.isfinite(y_c)
        xs.append(x_c[finite])
        ys.append(y_c[finite])
        ids.append(np.full(np.count_nonzero(finite), c, dtype=int))
    x = np.concatenate(xs)
    y = np.concatenate(ys)
    curve_ids = np.concatenate(ids)

    layout = GlobalLayout(
        param_names=tuple(model.param_names),
        shared=shared,
        per_curve=tuple(name for name in model.param_names if name not in shared),
        n_curves=n_curves
    )

    n_points = len(x)
    if n_points <= layout.n_params:
        raise NotEnoughData(
            f"{n_points} data points for {layout.n_params} global parameters"
        )

    x0 = layout.pack(model.start)
    lower = layout.pack(model.lower)
    upper = layout.pack(model.upper)

    logger.debug(
        f"Global fit: {n_curves} curves, {n_points} points, {layout.n_params} parameters "
        f"(shared: {list(layout.shared)}, per curve: {list(layout.per_curve)})"
    )
    sparsity = build_jacobian_sparsity(curve_ids, layout)

    try:
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always", OptimizeWarning)

            opt_result = least_squares(
                global_residual,
                x0=x0,
                bounds=(lower, upper),
                method='trf',
                jac_sparsity=sparsity,
                x_scale=x_scale_for(x0),
                max_nfev=max_nfev,
                args=(x, y, curve_ids, layout, model)
            )

            for warning in w:
                if issubclass(warning.category, OptimizeWarning):
                    diag_warnings.append(f"Optimizer warning: {warning.message}")

    except FdFitError:
        raise
    except Exception as e:
        logger.error(f"Global fit with {model.name} failed: {e}")
        raise RuntimeError(f"Global F,d fit failed: {e}") from e

    if not opt_result.success:
        diag_warnings.append(f"Optimizer did not converge: {opt_result.message}")

    diagnostics = GlobalFitDiagnostics(
        optimizer_status=int(opt_result.status),
        optimizer_message=str(opt_result.message),
        optimizer_success=bool(opt_result.success),
        n_function_evals=int(opt_result.nfev),
        cost=float(opt_result.cost),
        n_points=n_points,
        n_curves=n_curves,
        n_params=layout.n_params,
        warnings=diag_warnings
    )

    conf_int_95 = conf_int_68 = None
    if compute_conf_int:
        logger.debug("Computing confidence intervals...")
        cov_result = compute_covariance_matrix(opt_result.jac, opt_result.fun)
        diagnostics.condition_number = cov_result.condition_number
        diagnostics.covariance_warning = cov_result.warning_message
        conf_int_95 = _interval_dict(layout, *compute_confidence_interval(
            opt_result.x, cov_result.stderr, n_points, 0.95))
        conf_int_68 = _interval_dict(layout, *compute_confidence_interval(
            opt_result.x, cov_result.stderr, n_points, 0.68))

    return GlobalFitResult(
        model=model,
        layout=layout,
        params_opt=opt_result.x,
        params=layout.unpack(opt_result.x),
        gof=compute_goodness_of_fit(y, y + opt_result.fun, layout.n_params),
        diagnostics=diagnostics,
        conf_int_95=conf_int_95,
        conf_int_68=conf_int_68
    )


__all__ = [
    'GlobalLayout',
    'build_jacobian_sparsity',
    'global_model',
    'global_residual',
    'GlobalFitDiagnostics',
    'GlobalFitResult',
    'fit_fd_global',
]
