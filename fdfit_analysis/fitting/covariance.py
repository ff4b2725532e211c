"""
Parameter covariance and confidence intervals from a least-squares fit.

Asymptotic (linearised) uncertainty estimates: the covariance follows from
the Jacobian at the optimum via SVD, confidence intervals from Student's
t-distribution with n - p degrees of freedom. This is the same estimate
nonlinear regression packages report as parameter confidence intervals.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray
from scipy import sparse
from scipy.stats import t

from .config import COVARIANCE_RCOND

logger = logging.getLogger(__name__)


@dataclass
class CovarianceResult:
    """
    Covariance estimate with conditioning diagnostics.

    Attributes
    ----------
    cov : ndarray or None
        Covariance matrix of the free parameters (None if SVD failed)
    stderr : ndarray
        Standard errors (inf if SVD failed)
    condition_number : float
        Ratio of largest to smallest singular value of the Jacobian
    rank : int
        Numerical rank of the Jacobian
    warning_message : str or None
        Set for ill-conditioned or rank-deficient problems
    """
    cov: Optional[NDArray[np.float64]]
    stderr: NDArray[np.float64]
    condition_number: float
    rank: int
    warning_message: Optional[str] = None

    @property
    def is_well_conditioned(self) -> bool:
        return self.condition_number < 1e10


def compute_covariance_matrix(
    jacobian: Union[NDArray[np.float64], sparse.spmatrix],
    residuals: NDArray[np.float64],
    rcond: float = COVARIANCE_RCOND
) -> CovarianceResult:
    """
    Covariance of the fitted parameters.

        s^2 = sum(r^2) / (n - p)
        cov = s^2 * (J^T J)^-1 = s^2 * V diag(1/sigma^2) V^T

    Singular values below rcond * sigma_max are clipped to that threshold
    instead of being inverted directly.

    Parameters
    ----------
    jacobian : ndarray or sparse matrix, shape (n_residuals, n_params)
        Jacobian of the residuals at the optimum (least_squares .jac)
    residuals : ndarray, shape (n_residuals,)
        Residuals at the optimum (least_squares .fun)
    rcond : float, optional
        Relative singular value cutoff (default: 1e-10)

    Returns
    -------
    result : CovarianceResult
    """
    if sparse.issparse(jacobian):
        jacobian = jacobian.toarray()
    jacobian = np.asarray(jacobian, dtype=float)
    n_residuals, n_params = jacobian.shape

    dof = max(n_residuals - n_params, 1)
    residual_variance = float(residuals @ residuals) / dof

    try:
        _, sigma, Vt = np.linalg.svd(jacobian, full_matrices=False)
    except np.linalg.LinAlgError as e:
        logger.error(f"SVD computation failed: {e}")
        return CovarianceResult(
            cov=None,
            stderr=np.full(n_params, np.inf),
            condition_number=np.inf,
            rank=0,
            warning_message=f"SVD failed: {e}"
        )

    condition_number = sigma[0] / sigma[-1] if sigma[-1] > 0 else np.inf
    threshold = rcond * sigma[0]
    rank = int(np.sum(sigma > threshold))

    warning_message = None
    if rank < n_params:
        warning_message = (
            f"Rank-deficient Jacobian (rank={rank}/{n_params}): "
            f"some parameters are not identifiable from the data"
        )
    elif condition_number >= 1e10:
        warning_message = (
            f"Ill-conditioned Jacobian (cond={condition_number:.2e}): "
            f"uncertainty estimates may be unreliable"
        )

    sigma_clipped = np.maximum(sigma, threshold) if threshold > 0 else sigma
    with np.errstate(divide='ignore'):
        inv_sq = 1.0 / sigma_clipped ** 2
    cov = residual_variance * (Vt.T * inv_sq) @ Vt
    stderr = np.sqrt(np.abs(np.diag(cov)))

    return CovarianceResult(
        cov=cov,
        stderr=stderr,
        condition_number=float(condition_number),
        rank=rank,
        warning_message=warning_message
    )


def compute_confidence_interval(
    params_opt: NDArray[np.float64],
    params_stderr: NDArray[np.float64],
    n_data: int,
    confidence_level: float = 0.95
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Two-sided confidence intervals from the t-distribution.

    Parameters
    ----------
    params_opt : ndarray
        Fitted parameters
    params_stderr : ndarray
        Standard errors
    n_data : int
        Number of residuals; degrees of freedom are n_data - n_params
    confidence_level : float, optional
        0.95 for 95% CI, 0.68 for 68% CI (default: 0.95)

    Returns
    -------
    ci_low, ci_high : ndarray
    """
    dof = max(n_data - len(params_opt), 1)
    t_critical = t.ppf(0.5 + confidence_level / 2, dof)
    margin = t_critical * params_stderr
    return params_opt - margin, params_opt + margin


__all__ = [
    'CovarianceResult',
    'compute_covariance_matrix',
    'compute_confidence_interval',
]
