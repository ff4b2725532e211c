#!/usr/bin/env python3
"""Tests of single-curve and global fits.

1. Single fits: parameter recovery, data checks, collection fits
2. Global fits: parameter layout, Jacobian sparsity, offset recovery
3. Argument validation
"""

import numpy as np
import pytest

from fdfit_analysis.data import FdCurve, FdCollection
from fdfit_analysis.errors import InvalidArgument, NotEnoughData, EmptyInput
from fdfit_analysis.io import simulate_fd_curve, simulate_offset_ensemble
from fdfit_analysis.models import make_model
from fdfit_analysis.fitting import (
    GlobalLayout,
    build_jacobian_sparsity,
    global_model,
    fit_fd,
    fit_fd_collection,
    collection_params,
    fit_fd_global,
)


@pytest.fixture
def odijk_curve():
    """Odijk curve (Lp 45 nm, S 1300 pN) with 0.05 pN force noise."""
    return simulate_fd_curve('odijk', params={'Lp': 45.0, 'S': 1300.0},
                             noise=(0.05, 0.0), rng=1)


@pytest.fixture
def offset_data():
    """Three curves with known offsets: (collection, d0, F0)."""
    return simulate_offset_ensemble(3, rng=2, noise=(0.1, 0.002))


@pytest.fixture
def offset_model():
    return make_model('odijk-inv-d0-f0')


# ---------------------------------------------------------------------------
# Single fits
# ---------------------------------------------------------------------------

def test_single_fit_recovers_parameters(odijk_curve):
    result, gof, diagnostics = fit_fd(odijk_curve, make_model('odijk'))

    assert result['Lp'] == pytest.approx(45.0, rel=0.1), f"Lp = {result['Lp']}"
    assert result['S'] == pytest.approx(1300.0, rel=0.1), f"S = {result['S']}"
    assert result['Lc'] == pytest.approx(16.5, rel=0.005), f"Lc = {result['Lc']}"
    assert gof.rsquare > 0.999
    assert diagnostics.optimizer_success
    assert result.exit_flag >= 1


def test_single_fit_confidence_intervals(odijk_curve):
    result, _, _ = fit_fd(odijk_curve, make_model('odijk'))
    low, high = result.params_ci_95
    assert np.all(low < result.params_opt) and np.all(result.params_opt < high)
    assert np.all(np.isfinite(result.params_stderr))


def test_single_fit_predict(odijk_curve):
    result, _, _ = fit_fd(odijk_curve, make_model('odijk'))
    x = np.array([14.0, 15.0, 16.0])
    assert np.allclose(result.predict(x), result.model.evaluate(x, result.params_opt))


def test_single_fit_trims_to_model_range():
    curve = simulate_fd_curve('twlc', noise=0.0, rng=0)
    _, _, diagnostics = fit_fd(curve, make_model('odijk'))
    assert diagnostics.n_points == np.count_nonzero(curve.force <= 30.0)


def test_single_fit_not_enough_data():
    curve = FdCurve(force=[1.0, 2.0, 3.0], distance=[14.0, 15.0, 15.5])
    with pytest.raises(NotEnoughData):
        fit_fd(curve, make_model('odijk'))


def test_single_fit_requires_model(odijk_curve):
    with pytest.raises(InvalidArgument):
        fit_fd(odijk_curve, 'odijk')


def test_collection_fit_marks_unfittable_curves(odijk_curve):
    short = FdCurve(force=[1.0, 2.0], distance=[14.0, 15.0], name='short')
    outcomes = fit_fd_collection(FdCollection([odijk_curve, short]), make_model('odijk'))

    assert outcomes[0].fitted
    assert not outcomes[1].fitted
    assert outcomes[1].error is not None
    values = collection_params(outcomes, 'Lp')
    assert np.isfinite(values[0]) and np.isnan(values[1])


# ---------------------------------------------------------------------------
# Layout and sparsity
# ---------------------------------------------------------------------------

@pytest.fixture
def layout():
    return GlobalLayout(
        param_names=('Lp', 'S', 'd0', 'F0'),
        shared=('Lp', 'S'),
        per_curve=('d0', 'F0'),
        n_curves=3,
    )


def test_layout_pack_unpack(layout):
    packed = layout.pack([50.0, 1500.0, 0.1, -0.2])
    assert np.allclose(packed, [50.0, 1500.0, 0.1, -0.2, 0.1, -0.2, 0.1, -0.2])

    values = layout.unpack(np.arange(8, dtype=float))
    assert values['Lp'] == 0.0 and values['S'] == 1.0
    assert np.array_equal(values['d0'], [2.0, 4.0, 6.0])
    assert np.array_equal(values['F0'], [3.0, 5.0, 7.0])
    assert list(values) == ['Lp', 'S', 'd0', 'F0']


def test_jacobian_sparsity_pattern(layout):
    curve_ids = np.array([0, 0, 1, 1, 1, 2])
    pattern = build_jacobian_sparsity(curve_ids, layout).toarray()

    assert pattern.shape == (6, layout.n_params)
    assert np.all(pattern[:, :2] == 1), "every residual depends on the shared parameters"
    for row, c in enumerate(curve_ids):
        own = np.zeros(layout.n_params - 2)
        own[2 * c:2 * c + 2] = 1
        assert np.array_equal(pattern[row, 2:], own), f"row {row} of curve {c}"


def test_global_model_uses_curve_blocks(layout, offset_model):
    params = layout.pack(offset_model.start)
    params[layout.block(1)] = [0.1, 0.5]
    x = np.array([14.0, 15.0, 14.0, 15.0])
    curve_ids = np.array([0, 0, 1, 1])

    y = global_model(params, x, curve_ids, layout, offset_model)
    assert np.allclose(y[:2], offset_model.evaluate(x[:2], [50.0, 1500.0, 0.0, 0.0]))
    assert np.allclose(y[2:], offset_model.evaluate(x[2:], [50.0, 1500.0, 0.1, 0.5]))


# ---------------------------------------------------------------------------
# Global fits
# ---------------------------------------------------------------------------

def test_global_fit_of_one_curve_matches_single_fit(odijk_curve):
    model = make_model('odijk')
    single, _, _ = fit_fd(odijk_curve, model)
    result = fit_fd_global(FdCollection([odijk_curve]), model, ['Lp', 'Lc', 'S'])

    for name in ('Lp', 'Lc', 'S'):
        assert result[name] == pytest.approx(single[name], rel=1e-3), name
    assert any('single' in w for w in result.diagnostics.warnings)


def test_global_fit_recovers_offsets(offset_data, offset_model):
    collection, d0, F0 = offset_data
    result = fit_fd_global(collection, offset_model, ['Lp', 'S'])

    assert result.n_curves == 3
    assert isinstance(result['Lp'], float)
    assert result['d0'].shape == (3,)
    assert np.max(np.abs(result['d0'] - d0)) < 0.03, f"d0 {result['d0']} vs {d0}"
    assert np.max(np.abs(result['F0'] - F0)) < 0.3, f"F0 {result['F0']} vs {F0}"
    assert result['Lp'] == pytest.approx(50.0, rel=0.2)
    assert result.gof.rsquare > 0.99


def test_global_fit_curve_params(offset_data, offset_model):
    collection, _, _ = offset_data
    result = fit_fd_global(collection, offset_model, 'Lp')

    assert result.layout.shared == ('Lp',)
    assert result['S'].shape == (3,)
    values = result.curve_params(2)
    assert values['Lp'] == result['Lp']
    assert values['d0'] == result['d0'][2]


def test_global_fit_confidence_intervals(offset_data, offset_model):
    collection, _, _ = offset_data
    result = fit_fd_global(collection, offset_model, ['Lp', 'S'], compute_conf_int=True)

    assert result.conf_int_95['Lp'].shape == (2,)
    assert result.conf_int_95['d0'].shape == (3, 2)
    low, high = result.conf_int_95['Lp']
    assert low < result['Lp'] < high
    low68, high68 = result.conf_int_68['Lp']
    assert low <= low68 and high68 <= high


def test_global_fit_without_conf_int(offset_data, offset_model):
    collection, _, _ = offset_data
    result = fit_fd_global(collection, offset_model, ['Lp', 'S'])
    assert result.conf_int_95 is None and result.conf_int_68 is None


def test_global_fit_empty_collection(offset_model):
    with pytest.raises(EmptyInput):
        fit_fd_global(FdCollection(), offset_model, ['Lp'])


@pytest.mark.parametrize("shared", [[], ['Lp', 'Lp'], ['Lc'], ['kT']],
                         ids=["empty", "duplicate", "fixed-param", "unknown"])
def test_global_fit_invalid_shared(offset_data, offset_model, shared):
    collection, _, _ = offset_data
    with pytest.raises(InvalidArgument):
        fit_fd_global(collection, offset_model, shared)


def test_global_fit_not_enough_data(offset_model):
    curves = [
        FdCurve(force=[1.0, 2.0, 3.0], distance=[14.0, 15.0, 15.5], name=f"c{i}")
        for i in range(2)
    ]
    # 6 samples for 2 shared + 2 x 2 per-curve parameters
    with pytest.raises(NotEnoughData):
        fit_fd_global(FdCollection(curves), offset_model, ['Lp', 'S'])
