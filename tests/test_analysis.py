#!/usr/bin/env python3
"""Tests of the analysis procedures.

1. Bootstrap force sweeps and cutoff-force selection
2. Curve alignment by a global offset fit
3. Offset recovery: individual versus global fits
4. tWLC analysis per magnesium concentration
"""

import numpy as np
import pytest

import fdfit_analysis.analysis.twlc as twlc_module
from fdfit_analysis.data import FdCollection
from fdfit_analysis.errors import (
    InvalidArgument,
    EmptyInput,
    NotEnoughData,
    MissingConditionData,
)
from fdfit_analysis.io import simulate_fd_ensemble, simulate_offset_ensemble
from fdfit_analysis.models import make_model
from fdfit_analysis.fitting import sweep_fd_fits
from fdfit_analysis.analysis import (
    run_bootstrap_sweeps,
    align_fd_curves,
    plateau_forces,
    compare_offset_fits,
    TwlcSettings,
    TwlcAnalysis,
    TwlcVsMgAnalysis,
)
from fdfit_analysis.utils import mg_conc_to_tag


@pytest.fixture(scope='module')
def odijk_data():
    """Three noisy Odijk curves up to 30 pN."""
    return simulate_fd_ensemble(3, rng=5, n_points=200, noise=(0.1, 0.002))


@pytest.fixture
def odijk():
    return make_model('odijk')


BOOTSTRAP_KW = dict(sweep_boundaries=(10.0, 30.0), n_sweeps=5)


# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------

def test_single_iteration_equals_plain_sweep(odijk_data, odijk):
    """With one iteration the cutoff comes from a sweep of the original curves."""
    result = run_bootstrap_sweeps(odijk_data, odijk, n_iterations=1, seed=0, **BOOTSTRAP_KW)
    sweep = sweep_fd_fits(odijk_data.concatenated(), odijk, sweep_type='right',
                          boundary_type='f', n_sweeps=5, boundaries=(10.0, 30.0))

    cutoff, index = result.find_cutoff_force()
    _, best = sweep.best_index()
    assert index == best
    assert cutoff == sweep.positions_right[best]
    assert np.array_equal(result.gof_matrix[0], sweep.gof[0])


def test_bootstrap_shapes_and_stats(odijk_data, odijk):
    result = run_bootstrap_sweeps(odijk_data, odijk, n_iterations=3, seed=1, **BOOTSTRAP_KW)

    assert result.n_iterations == 3
    assert result.gof_matrix.shape == (3, 5)
    assert result.param_values('Lp').shape == (3, 5)
    assert np.all(np.diff(result.positions) < 0)

    stats = result.param_stats()
    assert list(stats) == ['Lp', 'Lc', 'S']
    mean, std = stats['Lp']
    assert mean == pytest.approx(50.0, rel=0.2)
    assert std >= 0.0


def test_single_iteration_has_zero_spread(odijk_data, odijk):
    result = run_bootstrap_sweeps(odijk_data, odijk, n_iterations=1, **BOOTSTRAP_KW)
    for _, std in result.param_stats().values():
        assert std == 0.0


def test_bootstrap_is_reproducible(odijk_data, odijk):
    first = run_bootstrap_sweeps(odijk_data, odijk, n_iterations=3, seed=11, **BOOTSTRAP_KW)
    second = run_bootstrap_sweeps(odijk_data, odijk, n_iterations=3, seed=11,
                                  parallel=True, max_workers=3, **BOOTSTRAP_KW)
    assert np.array_equal(first.gof_matrix, second.gof_matrix, equal_nan=True)
    assert first.find_cutoff_force() == second.find_cutoff_force()


def test_bootstrap_without_any_fit(odijk_data, odijk):
    """No data below the sweep range: no cutoff can be found."""
    result = run_bootstrap_sweeps(odijk_data, odijk, n_iterations=2, seed=0,
                                  sweep_boundaries=(-5.0, -1.0), n_sweeps=3)
    assert np.all(np.isnan(result.mean_gof))
    with pytest.raises(NotEnoughData):
        result.find_cutoff_force()


def test_bootstrap_empty_collection(odijk):
    with pytest.raises(EmptyInput):
        run_bootstrap_sweeps(FdCollection(), odijk)


@pytest.mark.parametrize("kwargs", [
    {'n_iterations': 0},
    {'gof_type': 'chi2'},
    {'n_sweeps': -1},
], ids=["zero-iterations", "gof-type", "negative-sweeps"])
def test_bootstrap_invalid_options(odijk_data, odijk, kwargs):
    with pytest.raises(InvalidArgument):
        run_bootstrap_sweeps(odijk_data, odijk, **kwargs)


# ---------------------------------------------------------------------------
# Alignment and offset recovery
# ---------------------------------------------------------------------------

@pytest.fixture(scope='module')
def offset_data():
    return simulate_offset_ensemble(3, rng=4, n_points=300, noise=(0.05, 0.001))


def test_alignment_removes_offsets(offset_data):
    collection, d0, F0 = offset_data
    aligned = align_fd_curves(collection)

    assert len(aligned) == len(collection)
    for i, (original, curve) in enumerate(zip(collection, aligned)):
        shift_d = curve.distance[0] - original.distance[0]
        shift_f = curve.force[0] - original.force[0]
        assert shift_d == pytest.approx(d0[i], abs=0.03), f"curve {i}"
        assert shift_f == pytest.approx(-F0[i], abs=0.3), f"curve {i}"
        assert curve is not original


def test_alignment_invalid_plateau_region(offset_data):
    collection, _, _ = offset_data
    with pytest.raises(InvalidArgument):
        align_fd_curves(collection, os_plateau_region=(20.0, 18.5))


def test_plateau_without_data(offset_data):
    collection, _, _ = offset_data
    with pytest.raises(NotEnoughData):
        plateau_forces(collection, (18.5, 20.0))


def test_offset_comparison(offset_data):
    collection, d0, F0 = offset_data
    recovery = compare_offset_fits(collection, make_model('odijk-inv-d0-f0'), d0, F0)

    assert recovery.individual['d0'].shape == (3,)
    assert recovery.global_fit['F0'].shape == (3,)
    errors = recovery.rms_error('d0')
    assert errors['global'] < 0.03
    assert set(errors) == {'individual', 'global'}


def test_global_fit_beats_individual_fits():
    """Force calibration errors bias individual offsets; sharing Lp and S does not."""
    collection, d0, F0 = simulate_offset_ensemble(
        10, sigma_scale=0.01, rng=0,
        params={'Lp': 43.0, 'S': 1766.0}, d_range=(12.0, 17.5), f_range=(0.0, 30.0),
        noise=(0.25, 0.005)
    )
    recovery = compare_offset_fits(collection, make_model('odijk-inv-d0-f0'), d0, F0)

    errors = recovery.rms_error('d0')
    assert errors['individual'] > errors['global'], f"d0 RMS errors {errors}"
    assert errors['global'] < 0.03


def test_offset_comparison_length_mismatch(offset_data):
    collection, d0, F0 = offset_data
    with pytest.raises(InvalidArgument):
        compare_offset_fits(collection, make_model('odijk-inv-d0-f0'), d0[:2], F0)


# ---------------------------------------------------------------------------
# tWLC analyses
# ---------------------------------------------------------------------------

@pytest.fixture
def fast_settings():
    return TwlcSettings(n_bootstrap_iter=2, n_sweeps=3, sweep_boundaries=(40.0, 60.0),
                        os_plateau_region=None)


def mg_dataset(concs, n_curves=2, seed=0):
    rng = np.random.default_rng(seed)
    curves = []
    for conc in concs:
        curves.extend(simulate_fd_ensemble(
            n_curves, rng=rng, tags=(mg_conc_to_tag(conc),), model='twlc',
            n_points=200, noise=(0.1, 0.002)
        ))
    return FdCollection(curves)


@pytest.mark.parametrize("kwargs", [
    {'n_bootstrap_iter': 0},
    {'n_sweeps': 1.5},
    {'sweep_boundaries': (40.0,)},
    {'fit_bounds': {'Lp': (100.0, 10.0)}},
    {'fit_start': {'Lc': 16.5}},
], ids=["iterations", "sweeps", "boundaries", "reversed-bounds", "fixed-start"])
def test_invalid_twlc_settings(kwargs):
    with pytest.raises(InvalidArgument):
        TwlcSettings(**kwargs)


def test_results_before_analyze():
    analysis = TwlcAnalysis(mg_dataset([0], n_curves=1))
    with pytest.raises(RuntimeError):
        analysis.find_cutoff_force()
    assert "analyze()" in analysis.summary()


def test_twlc_analysis_rejects_empty_data():
    with pytest.raises(EmptyInput):
        TwlcAnalysis(FdCollection())


@pytest.mark.parametrize("concs", [[], [50, 50]], ids=["empty", "duplicate"])
def test_invalid_concentrations(concs):
    with pytest.raises(InvalidArgument):
        TwlcVsMgAnalysis(mg_dataset([0], n_curves=1), mg_concs=concs)


def test_missing_condition_stops_before_alignment(monkeypatch, fast_settings):
    def fail(*args, **kwargs):
        raise AssertionError("alignment must not run")

    monkeypatch.setattr(twlc_module, 'align_fd_curves', fail)
    analysis = TwlcVsMgAnalysis(mg_dataset([0]), mg_concs=[0, 50], settings=fast_settings)

    with pytest.raises(MissingConditionData):
        analysis.analyze()
    assert analysis.analyses == {}
    assert analysis.data_aligned is None


def test_mg_analysis(fast_settings):
    concs = [0, 100]
    analysis = TwlcVsMgAnalysis(mg_dataset(concs), mg_concs=concs,
                                settings=fast_settings, seed=3).analyze()

    cutoffs = analysis.cutoff_forces()
    assert cutoffs.shape == (2,)
    assert all(f in (60.0, 50.0, 40.0) for f in cutoffs)

    table = analysis.condition_table()
    assert set(table) == {'Lp', 'S', 'g0', 'g1'}
    assert table['g0'].shape == (2, 2)
    assert np.all(np.isfinite(table['S'][:, 0]))

    assert len(analysis.analysis(100).data) == 2
    with pytest.raises(InvalidArgument):
        analysis.analysis(25)

    g = analysis.twist_stretch_curves(np.array([10.0, 50.0]))
    assert set(g) == {0.0, 100.0}
    assert "[Mg]" in analysis.summary()
