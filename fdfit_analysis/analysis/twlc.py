"""
tWLC analysis of DNA force-extension data.

TwlcAnalysis runs the complete procedure on one dataset:
    align (global eWLC fit, optional plateau rescale)
    -> bootstrap force sweeps of the 'twlc-lc-fixed' model
    -> cutoff force and parameter statistics at the cutoff

TwlcVsMgAnalysis repeats it per magnesium concentration, with one
alignment pass over the complete multi-condition dataset.

Usage:
    analysis = TwlcVsMgAnalysis(collection, mg_concs=(0, 50, 100), seed=1)
    analysis.analyze()
    analysis.condition_table()['g0']   # (n_concs, 2): mean, std
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .alignment import ALIGNMENT_MODEL, align_fd_curves
from .bootstrap import BootstrapSweepResult, SeedLike, run_bootstrap_sweeps
from .config import (
    DEFAULT_MG_CONCS,
    DEFAULT_N_BOOTSTRAP_ITER,
    DEFAULT_N_SWEEPS,
    DEFAULT_SWEEP_BOUNDARIES,
    DEFAULT_OS_PLATEAU_REGION,
    DEFAULT_TWLC_FIT_BOUNDS,
    TWLC_ANALYSIS_MODEL,
    PARAM_UNITS,
)
from ..data import FdCollection
from ..errors import EmptyInput, InvalidArgument, MissingConditionData
from ..fitting.config import DEFAULT_GOF_TYPE
from ..models import FitModel, make_model, twist_stretch_coupling, twlc_force
from ..models.config import DEFAULT_LC, DEFAULT_FC, DEFAULT_C
from ..utils.tags import mg_conc_to_tag

logger = logging.getLogger(__name__)


# =============================================================================
# Settings
# =============================================================================

@dataclass(frozen=True)
class TwlcSettings:
    """
    Settings of a tWLC analysis (validated at construction).

    Attributes
    ----------
    Lc : float
        Contour length [um], fixed in all fits
    Fc : float
        tWLC critical force [pN]
    C : float
        Twist rigidity [pN nm^2]
    n_bootstrap_iter : int
        Bootstrap iterations
    n_sweeps : int
        Sweep positions of the maximum force
    sweep_boundaries : (float, float) or None
        Range of the maximum force [pN]; None: (40, max force of the data)
    os_plateau_region : (float, float) or None
        Overstretching plateau region [um] for alignment; None skips the
        plateau rescaling
    fit_bounds : dict
        (lower, upper) for Lp, S, g0, g1
    fit_start : dict or None
        Start values for Lp, S, g0, g1
    gof_type : str
        Goodness-of-fit statistic for the cutoff
    """
    Lc: float = DEFAULT_LC
    Fc: float = DEFAULT_FC
    C: float = DEFAULT_C
    n_bootstrap_iter: int = DEFAULT_N_BOOTSTRAP_ITER
    n_sweeps: int = DEFAULT_N_SWEEPS
    sweep_boundaries: Optional[Tuple[float, float]] = DEFAULT_SWEEP_BOUNDARIES
    os_plateau_region: Optional[Tuple[float, float]] = DEFAULT_OS_PLATEAU_REGION
    fit_bounds: Mapping[str, Tuple[float, float]] = field(
        default_factory=lambda: dict(DEFAULT_TWLC_FIT_BOUNDS)
    )
    fit_start: Optional[Mapping[str, float]] = None
    gof_type: str = DEFAULT_GOF_TYPE

    def __post_init__(self):
        for name in ('n_bootstrap_iter', 'n_sweeps'):
            value = getattr(self, name)
            if int(value) != value or value < 1:
                raise InvalidArgument(f"{name} must be a positive integer, got {value}")
        for name in ('sweep_boundaries', 'os_plateau_region'):
            value = getattr(self, name)
            if value is not None and np.shape(value) != (2,):
                raise InvalidArgument(f"{name} must be (min, max) or None, got {value}")
        # Builds (and thereby validates) both models
        self.fit_model()
        self.alignment_model()

    def fit_model(self) -> FitModel:
        """The 'twlc-lc-fixed' model fitted in every sweep cell."""
        return make_model(
            TWLC_ANALYSIS_MODEL,
            start=self.fit_start,
            bounds=self.fit_bounds,
            fixed={'Lc': self.Lc, 'C': self.C, 'Fc': self.Fc}
        )

    def alignment_model(self) -> FitModel:
        """Offset eWLC model used to align the curves."""
        return make_model(ALIGNMENT_MODEL, fixed={'Lc': self.Lc})


def _check_collection(data) -> FdCollection:
    if not isinstance(data, FdCollection):
        raise InvalidArgument(f"data must be an FdCollection, got {type(data).__name__}")
    if data.is_empty():
        raise EmptyInput("No data given: FdCollection is empty")
    return data


# =============================================================================
# Single dataset
# =============================================================================

class TwlcAnalysis:
    """
    tWLC analysis of one dataset.

    Parameters
    ----------
    data : FdCollection
        Clean F,d curves
    settings : TwlcSettings, optional
        Analysis settings (default: TwlcSettings())
    data_aligned : FdCollection, optional
        Already aligned version of data; skips the alignment step
    seed : int, SeedSequence or Generator, optional
        Source of the bootstrap draws
    parallel : bool, optional
        Run bootstrap iterations on a thread pool (default: False)
    max_workers : int, optional
        Maximum parallel workers (default: 4)
    """

    def __init__(
        self,
        data: FdCollection,
        settings: Optional[TwlcSettings] = None,
        data_aligned: Optional[FdCollection] = None,
        seed: SeedLike = None,
        parallel: bool = False,
        max_workers: int = 4
    ):
        self.data = _check_collection(data)
        self.settings = settings if settings is not None else TwlcSettings()
        self.data_aligned = data_aligned
        self.seed = seed
        self.parallel = parallel
        self.max_workers = max_workers
        self.result: Optional[BootstrapSweepResult] = None

    @property
    def fit_model(self) -> FitModel:
        return self.settings.fit_model()

    def align(self) -> FdCollection:
        """Align the curves (cached in data_aligned)."""
        if self.data_aligned is None:
            logger.info("Aligning...")
            self.data_aligned = align_fd_curves(
                self.data,
                model=self.settings.alignment_model(),
                os_plateau_region=self.settings.os_plateau_region
            )
        else:
            logger.info("Using pre-set aligned data.")
        return self.data_aligned

    def analyze(self) -> 'TwlcAnalysis':
        """Align, then run the bootstrap sweeps. Returns self."""
        aligned = self.align()
        s = self.settings
        self.result = run_bootstrap_sweeps(
            aligned,
            self.fit_model,
            n_iterations=s.n_bootstrap_iter,
            sweep_boundaries=s.sweep_boundaries,
            n_sweeps=s.n_sweeps,
            gof_type=s.gof_type,
            seed=self.seed,
            parallel=self.parallel,
            max_workers=self.max_workers
        )
        return self

    def _require_result(self) -> BootstrapSweepResult:
        if self.result is None:
            raise RuntimeError("No analysis data; run analyze() first")
        return self.result

    def find_cutoff_force(self) -> Tuple[float, int]:
        """(cutoff force [pN], index into the sweep positions)."""
        return self._require_result().find_cutoff_force()

    def param_stats(self, index: Optional[int] = None) -> Dict[str, Tuple[float, float]]:
        """Mean and std of Lp, S, g0, g1 over bootstrap iterations (default: at the cutoff)."""
        return self._require_result().param_stats(index)

    def mean_params(self) -> Dict[str, float]:
        """Mean fit parameters at the cutoff, together with the fixed ones."""
        params = {name: mean for name, (mean, _) in self.param_stats().items()}
        params.update({'Lc': self.settings.Lc, 'C': self.settings.C, 'Fc': self.settings.Fc})
        return params

    def predict(self, distance: NDArray[np.float64]) -> NDArray[np.float64]:
        """tWLC force at the given distances for the mean parameters at the cutoff."""
        p = self.mean_params()
        return twlc_force(
            np.asarray(distance, dtype=float),
            p['Lp'], p['Lc'], p['S'], p['C'], p['g0'], p['g1'], p['Fc']
        )

    def summary(self) -> str:
        """Text report of the settings and, after analyze(), the results."""
        s = self.settings
        lines = [
            f"tWLC analysis on {len(self.data)} force-extension curves.",
            "Parameters:",
        ]
        for name in ('Lc', 'Fc', 'C', 'n_bootstrap_iter', 'n_sweeps',
                     'sweep_boundaries', 'os_plateau_region', 'fit_bounds', 'fit_start'):
            lines.append(f"    {name} = {getattr(s, name)}")

        if self.result is None:
            lines.append(" --> Call analyze() first to run the analysis.")
            return '\n'.join(lines)

        cutoff, _ = self.find_cutoff_force()
        lines.append("Fit results:")
        lines.append(f"  Fmax: {cutoff:g} pN")
        for name, (mean, std) in self.param_stats().items():
            lines.append(f"    {name:>2s}: {mean:g} +/- {std:g} {PARAM_UNITS.get(name, '')}")
        return '\n'.join(lines)

    def __repr__(self) -> str:
        state = 'analyzed' if self.result is not None else 'not analyzed'
        return f"TwlcAnalysis({len(self.data)} curves, {state})"


# =============================================================================
# Magnesium series
# =============================================================================

class TwlcVsMgAnalysis:
    """
    tWLC analysis per magnesium concentration.

    Every concentration needs curves tagged with mg_conc_to_tag(conc);
    a concentration without data raises MissingConditionData before any
    alignment or fit is run.

    Parameters
    ----------
    data : FdCollection
        Tagged curves of all conditions
    mg_concs : sequence of float, optional
        Concentrations [mM] to analyze (default: 0, 25, 50, 70, 80, 100, 150)
    settings : TwlcSettings, optional
        Analysis settings shared by all conditions
    data_aligned : FdCollection, optional
        Already aligned version of data
    seed : int or SeedSequence, optional
        Root seed; every condition gets an independent child seed
    parallel : bool, optional
        Run bootstrap iterations on a thread pool (default: False)
    max_workers : int, optional
        Maximum parallel workers (default: 4)
    """

    def __init__(
        self,
        data: FdCollection,
        mg_concs: Sequence[float] = DEFAULT_MG_CONCS,
        settings: Optional[TwlcSettings] = None,
        data_aligned: Optional[FdCollection] = None,
        seed=None,
        parallel: bool = False,
        max_workers: int = 4
    ):
        self.data = _check_collection(data)
        self.mg_concs: List[float] = [float(c) for c in mg_concs]
        if not self.mg_concs:
            raise InvalidArgument("mg_concs must contain at least one concentration")
        if len(set(self.mg_concs)) != len(self.mg_concs):
            raise InvalidArgument(f"Duplicate concentrations in mg_concs: {list(mg_concs)}")
        self.tags = [mg_conc_to_tag(c) for c in self.mg_concs]

        self.settings = settings if settings is not None else TwlcSettings()
        self.data_aligned = data_aligned
        self.seed = seed
        self.parallel = parallel
        self.max_workers = max_workers
        self.analyses: Dict[float, TwlcAnalysis] = {}

    def check_conditions(self) -> None:
        """
        Raise MissingConditionData if a concentration has no tagged curves.
        """
        for conc, tag in zip(self.mg_concs, self.tags):
            if self.data.get_by_tag(tag).is_empty():
                raise MissingConditionData(
                    f"No data for magnesium concentration {conc:g} mM (tag '{tag}')"
                )

    def analyze(self) -> 'TwlcVsMgAnalysis':
        """Check conditions, align all curves once, analyze every condition. Returns self."""
        self.check_conditions()

        if self.data_aligned is None:
            logger.info("Aligning...")
            self.data_aligned = align_fd_curves(
                self.data,
                model=self.settings.alignment_model(),
                os_plateau_region=self.settings.os_plateau_region
            )
        else:
            logger.info("Using pre-set aligned data.")

        root = self.seed
        if not isinstance(root, np.random.SeedSequence):
            root = np.random.SeedSequence(root)
        seeds = root.spawn(len(self.mg_concs))

        self.analyses = {}
        for conc, tag, child_seed in zip(self.mg_concs, self.tags, seeds):
            logger.info(f"##### [Mg] = {conc:g} mM")
            analysis = TwlcAnalysis(
                self.data.get_by_tag(tag),
                settings=self.settings,
                data_aligned=self.data_aligned.get_by_tag(tag),
                seed=child_seed,
                parallel=self.parallel,
                max_workers=self.max_workers
            )
            self.analyses[conc] = analysis.analyze()
        return self

    def analysis(self, mg_conc: float) -> TwlcAnalysis:
        """Analysis of one concentration (must be in mg_concs)."""
        if not self.analyses:
            raise RuntimeError("No analysis data; run analyze() first")
        if float(mg_conc) not in self.analyses:
            raise InvalidArgument(
                f"Magnesium concentration {mg_conc} mM not analyzed; available: {self.mg_concs}"
            )
        return self.analyses[float(mg_conc)]

    def find_cutoff_force(self, mg_conc: float) -> Tuple[float, int]:
        return self.analysis(mg_conc).find_cutoff_force()

    def cutoff_forces(self) -> NDArray[np.float64]:
        """Cutoff force [pN] per concentration, in mg_concs order."""
        return np.array([self.find_cutoff_force(c)[0] for c in self.mg_concs])

    def condition_table(self) -> Dict[str, NDArray[np.float64]]:
        """
        Parameter statistics at the cutoff per concentration.

        Returns
        -------
        table : dict
            name -> array of shape (n_concs, 2) with columns (mean, std)
        """
        names = self.analysis(self.mg_concs[0]).fit_model.param_names
        table = {name: np.empty((len(self.mg_concs), 2)) for name in names}
        for i, conc in enumerate(self.mg_concs):
            for name, (mean, std) in self.analysis(conc).param_stats().items():
                table[name][i] = (mean, std)
        return table

    def twist_stretch_curves(self, F: NDArray[np.float64]) -> Dict[float, NDArray[np.float64]]:
        """Twist-stretch coupling g(F) per concentration, from the mean g0, g1."""
        table = self.condition_table()
        return {
            conc: np.asarray(twist_stretch_coupling(
                F, table['g0'][i, 0], table['g1'][i, 0], self.settings.Fc
            ))
            for i, conc in enumerate(self.mg_concs)
        }

    def summary(self) -> str:
        lines = [f"tWLC vs [Mg] analysis on {len(self.data)} curves, {len(self.mg_concs)} conditions."]
        if not self.analyses:
            lines.append(" --> Call analyze() first to run the analysis.")
            return '\n'.join(lines)
        table = self.condition_table()
        header = f"  {'[Mg] mM':>8s} {'Fmax pN':>8s}" + ''.join(f" {n:>16s}" for n in table)
        lines.append(header)
        for i, (conc, fmax) in enumerate(zip(self.mg_concs, self.cutoff_forces())):
            row = f"  {conc:8g} {fmax:8.4g}"
            row += ''.join(f" {table[n][i, 0]:8.4g}+/-{table[n][i, 1]:<5.2g}" for n in table)
            lines.append(row)
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return f"TwlcVsMgAnalysis({len(self.data)} curves, [Mg] = {self.mg_concs})"


__all__ = [
    'TwlcSettings',
    'TwlcAnalysis',
    'TwlcVsMgAnalysis',
]
