"""
Single-curve fitting of polymer models to F,d data.

Clean design: no console output in the core functions. Results, goodness
of fit and diagnostics are returned as data; the CLI layer logs them.

Usage:
    from fdfit_analysis.models import make_model
    from fdfit_analysis.fitting import fit_fd

    model = make_model('odijk-inv-d0-f0')
    result, gof, diagnostics = fit_fd(curve, model)
    print(result.params['Lp'], gof.rsquare)
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import least_squares, OptimizeWarning

from .config import FIT_MAX_NFEV
from .covariance import compute_covariance_matrix, compute_confidence_interval
from .diagnostics import GoodnessOfFit, compute_goodness_of_fit, check_bounds_proximity
from ..data import FdCurve, FdCollection
from ..errors import (
    FdFitError,
    InvalidArgument,
    NotEnoughData,
    NumericDegeneracy,
    RECOVERABLE_FIT_ERRORS,
)
from ..models import FitModel
from ..utils.parallel import run_tasks

logger = logging.getLogger(__name__)


@dataclass
class FitDiagnostics:
    """Diagnostics from a least-squares fit."""
    # Optimization info
    optimizer_status: int
    optimizer_message: str
    optimizer_success: bool
    n_function_evals: int
    n_points: int

    # Covariance info
    condition_number: float
    covariance_rank: int
    covariance_warning: Optional[str] = None

    # Bounds info
    params_at_bounds: List[int] = field(default_factory=list)
    bounds_warnings: List[str] = field(default_factory=list)

    # General warnings
    warnings: List[str] = field(default_factory=list)


@dataclass
class FdFitResult:
    """
    Result of fitting one model to one F,d curve.

    Attributes
    ----------
    model : FitModel
        Model that was fitted (start values and bounds as used)
    params_opt : ndarray
        Fitted free parameters, in model.param_names order
    params_stderr : ndarray
        Standard errors from the covariance matrix
    cov : ndarray or None
        Covariance matrix of the free parameters
    diagnostics : FitDiagnostics
        Solver and covariance diagnostics
    _n_data : int
        Number of data points (for CI computation)
    """
    model: FitModel
    params_opt: NDArray[np.float64]
    params_stderr: NDArray[np.float64]
    cov: Optional[NDArray[np.float64]]
    diagnostics: FitDiagnostics
    _n_data: int = 0

    @property
    def param_names(self) -> List[str]:
        return self.model.param_names

    @property
    def params(self) -> Dict[str, float]:
        """Fitted free parameters by name."""
        return dict(zip(self.model.param_names, (float(v) for v in self.params_opt)))

    @property
    def all_params(self) -> Dict[str, float]:
        """Fitted free parameters together with the fixed ones."""
        values = self.model.fixed_params
        values.update(self.params)
        return values

    @property
    def exit_flag(self) -> int:
        """least_squares status (1-4 converged, 0 max_nfev reached, -1 failure)."""
        return self.diagnostics.optimizer_status

    @property
    def params_ci_95(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """95% confidence intervals for parameters."""
        return self._confidence_interval(0.95)

    @property
    def params_ci_68(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """68% confidence intervals for parameters."""
        return self._confidence_interval(0.68)

    def _confidence_interval(self, level: float):
        if not np.all(np.isfinite(self.params_stderr)):
            return (
                np.full_like(self.params_opt, -np.inf),
                np.full_like(self.params_opt, np.inf)
            )
        return compute_confidence_interval(
            self.params_opt, self.params_stderr, self._n_data, level
        )

    def predict(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        """Model prediction at x (distance for F(d) models, force for d(F))."""
        return self.model.evaluate(x, self.params_opt)

    def __getitem__(self, name: str) -> float:
        return self.params[name]

    def __repr__(self) -> str:
        lines = [f"F,d fit result ({self.model.name}):"]
        for name, value, err in zip(self.param_names, self.params_opt, self.params_stderr):
            lines.append(f"  {name} = {value:.6g} +/- {err:.3g}")
        lines.append(f"  status: {self.exit_flag} ({self.diagnostics.optimizer_message})")
        return '\n'.join(lines)


@dataclass
class CurveFitOutcome:
    """
    Per-curve entry of a collection fit.

    result, gof and diagnostics are None when no fit was produced (not
    enough data or numeric degeneracy); error then holds the reason.
    """
    curve: FdCurve
    result: Optional[FdFitResult] = None
    gof: Optional[GoodnessOfFit] = None
    diagnostics: Optional[FitDiagnostics] = None
    error: Optional[str] = None

    @property
    def fitted(self) -> bool:
        return self.result is not None


# =============================================================================
# Residual
# =============================================================================

def fd_residual(
    params: NDArray[np.float64],
    x: NDArray[np.float64],
    y: NDArray[np.float64],
    model: FitModel
) -> NDArray[np.float64]:
    """
    Residual model(x; params) - y.

    Raises
    ------
    NumericDegeneracy
        If the model evaluates to NaN or inf anywhere
    """
    y_model = model.evaluate(x, params)
    if not np.all(np.isfinite(y_model)):
        raise NumericDegeneracy(
            f"{model.name}: model not finite for parameters "
            f"{dict(zip(model.param_names, np.round(params, 6)))}"
        )
    return y_model - y


def x_scale_for(start: NDArray[np.float64]) -> NDArray[np.float64]:
    """Characteristic parameter scales for least_squares (1 for zero starts)."""
    scale = np.abs(start)
    return np.where(scale > 0, scale, 1.0)


# =============================================================================
# Single curve
# =============================================================================

def fit_fd(
    curve: FdCurve,
    model: FitModel,
    trim: bool = True,
    max_nfev: int = FIT_MAX_NFEV
) -> Tuple[FdFitResult, GoodnessOfFit, FitDiagnostics]:
    """
    Fit a model to one F,d curve.

    The curve is first restricted to the model's validity range (Odijk
    models: F <= 30 pN unless trim=False). The model is then fitted by
    bounded nonlinear least squares (trust region reflective) in the
    orientation given by model.dependent_variable.

    Parameters
    ----------
    curve : FdCurve
        Data to fit
    model : FitModel
        Model with start values and bounds (see make_model)
    trim : bool, optional
        Apply the model's force limit (default: True)
    max_nfev : int, optional
        Cap on function evaluations (default: 1000)

    Returns
    -------
    result : FdFitResult
        Fitted parameters with uncertainties
    gof : GoodnessOfFit
        SSE, R^2, adjusted R^2, RMSE
    diagnostics : FitDiagnostics
        Solver status and warnings (also available as result.diagnostics)

    Raises
    ------
    InvalidArgument
        If model is not a FitModel
    NotEnoughData
        If no more data points than free parameters remain
    NumericDegeneracy
        If the model evaluates to non-finite values during the fit
    """
    if not isinstance(model, FitModel):
        raise InvalidArgument(f"model must be a FitModel, got {type(model).__name__}")

    fd_fit = model.validate_data(curve, trim=trim)
    x, y = model.split_data(fd_fit)
    finite = np.isfinite(x) & np.isfinite(y)
    x, y = x[finite], y[finite]

    n_points = len(x)
    if n_points <= model.n_free:
        raise NotEnoughData(
            f"{n_points} data points for {model.n_free} free parameters "
            f"({model.name})"
        )

    x0 = model.start
    lower, upper = model.lower, model.upper
    diag_warnings = []

    try:
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always", OptimizeWarning)

            opt_result = least_squares(
                fd_residual,
                x0=x0,
                bounds=(lower, upper),
                method='trf',
                x_scale=x_scale_for(x0),
                max_nfev=max_nfev,
                args=(x, y, model)
            )

            for warning in w:
                if issubclass(warning.category, OptimizeWarning):
                    diag_warnings.append(f"Optimizer warning: {warning.message}")

    except FdFitError:
        raise
    except Exception as e:
        logger.error(f"Fit of '{curve.name}' with {model.name} failed: {e}")
        raise RuntimeError(f"F,d fit failed: {e}") from e

    params_opt = opt_result.x
    if not opt_result.success:
        diag_warnings.append(f"Optimizer did not converge: {opt_result.message}")

    at_bounds, bounds_warnings = check_bounds_proximity(
        params_opt, lower, upper, model.param_names
    )

    cov_result = compute_covariance_matrix(opt_result.jac, opt_result.fun)
    gof = compute_goodness_of_fit(y, y + opt_result.fun, model.n_free)

    diagnostics = FitDiagnostics(
        optimizer_status=int(opt_result.status),
        optimizer_message=str(opt_result.message),
        optimizer_success=bool(opt_result.success),
        n_function_evals=int(opt_result.nfev),
        n_points=n_points,
        condition_number=cov_result.condition_number,
        covariance_rank=cov_result.rank,
        covariance_warning=cov_result.warning_message,
        params_at_bounds=at_bounds,
        bounds_warnings=bounds_warnings,
        warnings=diag_warnings
    )

    result = FdFitResult(
        model=model,
        params_opt=params_opt,
        params_stderr=cov_result.stderr,
        cov=cov_result.cov,
        diagnostics=diagnostics,
        _n_data=n_points
    )

    logger.debug(
        f"Fit '{curve.name}' ({model.name}, {n_points} pts): "
        f"status {diagnostics.optimizer_status}, R^2 = {gof.rsquare:.5f}"
    )

    return result, gof, diagnostics


# =============================================================================
# Collection
# =============================================================================

def _fit_outcome(curve: FdCurve, model: FitModel, trim: bool, max_nfev: int) -> CurveFitOutcome:
    try:
        result, gof, diagnostics = fit_fd(curve, model, trim=trim, max_nfev=max_nfev)
    except RECOVERABLE_FIT_ERRORS as e:
        logger.debug(f"No fit for '{curve.name}': {e}")
        return CurveFitOutcome(curve=curve, error=str(e))
    return CurveFitOutcome(curve=curve, result=result, gof=gof, diagnostics=diagnostics)


def fit_fd_collection(
    collection: FdCollection,
    model: FitModel,
    trim: bool = True,
    max_nfev: int = FIT_MAX_NFEV,
    parallel: bool = False,
    max_workers: int = 4
) -> List[CurveFitOutcome]:
    """
    Fit every curve of a collection independently.

    Curves for which no fit can be produced (NotEnoughData,
    NumericDegeneracy) give an outcome with result None; other errors
    propagate.

    Parameters
    ----------
    collection : FdCollection
        Curves to fit
    model : FitModel
        Model (same start values and bounds for every curve)
    trim : bool, optional
        Apply the model's force limit (default: True)
    max_nfev : int, optional
        Cap on function evaluations per fit
    parallel : bool, optional
        Fit curves on a thread pool (default: False)
    max_workers : int, optional
        Maximum parallel workers (default: 4)

    Returns
    -------
    outcomes : list of CurveFitOutcome
        One per curve, in collection order
    """
    if not isinstance(model, FitModel):
        raise InvalidArgument(f"model must be a FitModel, got {type(model).__name__}")

    return run_tasks(
        lambda curve: _fit_outcome(curve, model, trim, max_nfev),
        collection.items,
        parallel=parallel,
        max_workers=max_workers
    )


def collection_params(outcomes: Sequence[CurveFitOutcome], name: str) -> NDArray[np.float64]:
    """Values of one parameter across collection fit outcomes (NaN for no fit)."""
    return np.array([
        o.result.params[name] if o.fitted else np.nan for o in outcomes
    ])


__all__ = [
    'FitDiagnostics',
    'FdFitResult',
    'CurveFitOutcome',
    'fd_residual',
    'fit_fd',
    'fit_fd_collection',
    'collection_params',
]
