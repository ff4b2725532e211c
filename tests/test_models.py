#!/usr/bin/env python3
"""Tests of the polymer models and the fit model catalog.

1. Odijk eWLC: closed-form inverse against the forward model
2. tWLC: lookup-table inverse against the scalar inverse
3. FJC: lookup-table inverse
4. Catalog: parameter schema, bounds validation, data trimming
"""

import numpy as np
import pytest

from fdfit_analysis.data import FdCurve
from fdfit_analysis.errors import InvalidArgument
from fdfit_analysis.models import (
    odijk_extension,
    odijk_force,
    odijk_force_offset,
    twlc_extension,
    twlc_force,
    twlc_max_force,
    twist_stretch_coupling,
    fjc_extension,
    fjc_force,
    make_model,
    available_models,
)


@pytest.fixture
def odijk_params():
    """Odijk parameters of dsDNA: Lp [nm], Lc [um], S [pN]."""
    return {'Lp': 50.0, 'Lc': 16.5, 'S': 1500.0}


@pytest.fixture
def twlc_params():
    """tWLC parameters of dsDNA."""
    return {'Lp': 50.0, 'Lc': 16.5, 'S': 1500.0, 'C': 440.0,
            'g0': -637.0, 'g1': 17.0, 'Fc': 30.6}


# ---------------------------------------------------------------------------
# Odijk
# ---------------------------------------------------------------------------

def test_odijk_inverse_matches_forward(odijk_params):
    """odijk_force(odijk_extension(F)) recovers F."""
    F = np.linspace(0.5, 30.0, 60)
    d = odijk_extension(F, **odijk_params)
    F_back = odijk_force(d, **odijk_params)

    max_rel = np.max(np.abs(F_back - F) / F)
    assert max_rel < 1e-8, f"Odijk inverse deviates: {max_rel:.2e}"


def test_odijk_scalar_input_gives_scalar(odijk_params):
    d = odijk_extension(10.0, **odijk_params)
    assert np.ndim(d) == 0
    assert np.ndim(odijk_force(d, **odijk_params)) == 0


def test_odijk_invalid_parameters_give_nan(odijk_params):
    """Negative persistence length has no real extension."""
    params = dict(odijk_params, Lp=-50.0)
    assert np.isnan(odijk_extension(5.0, **params))


def test_odijk_offset_convention(odijk_params):
    """F = odijk(d + d0) + F0."""
    d = np.linspace(12.0, 16.0, 20)
    expected = odijk_force(d + 0.1, **odijk_params) + 0.5
    actual = odijk_force_offset(d, d0=0.1, F0=0.5, **odijk_params)
    assert np.allclose(actual, expected)


# ---------------------------------------------------------------------------
# tWLC
# ---------------------------------------------------------------------------

def test_twlc_max_force(twlc_params):
    p = twlc_params
    expected = (-p['g0'] + np.sqrt(p['S'] * p['C'])) / p['g1']
    assert twlc_max_force(p['S'], p['C'], p['g0'], p['g1']) == pytest.approx(expected)


def test_twist_stretch_coupling_constant_below_fc():
    g = twist_stretch_coupling(np.array([0.0, 10.0, 30.6, 40.0]), -637.0, 17.0, 30.6)
    assert g[0] == g[1] == g[2], "g(F) must be constant below Fc"
    assert g[3] == pytest.approx(-637.0 + 17.0 * 40.0)


@pytest.mark.parametrize("force", [5.0, 20.0, 40.0, 55.0],
                         ids=["5pN", "20pN", "40pN", "55pN"])
def test_twlc_lookup_matches_scalar_inverse(twlc_params, force):
    """Array (lookup table) and scalar (minimisation) inverses agree."""
    d = float(twlc_extension(force, **twlc_params))

    F_scalar = twlc_force(d, **twlc_params)
    F_array = twlc_force(np.array([d]), **twlc_params)[0]

    assert F_scalar == pytest.approx(force, rel=1e-5)
    rel = abs(F_array - F_scalar) / F_scalar
    assert rel < 1e-5, f"Lookup vs scalar inverse at {force} pN: {rel:.2e}"


def test_twlc_lookup_round_trip(twlc_params):
    """Array inverse of the forward model recovers the force on 1-60 pN."""
    F = np.linspace(1.0, 60.0, 120)
    d = twlc_extension(F, **twlc_params)
    F_back = twlc_force(d, **twlc_params)

    assert F_back.shape == F.shape
    rel = np.max(np.abs(F_back - F) / F)
    assert rel < 1e-5, f"Largest relative error of the round trip: {rel:.2e}"


def test_twlc_invalid_parameters_give_zeros(twlc_params):
    """No valid maximum force: the inverse returns zeros."""
    params = dict(twlc_params, g0=1000.0)
    assert twlc_max_force(params['S'], params['C'], params['g0'], params['g1']) < 0
    d = np.linspace(10.0, 16.0, 5)
    assert np.all(twlc_force(d, **params) == 0.0)
    assert twlc_force(12.0, **params) == 0.0


# ---------------------------------------------------------------------------
# FJC
# ---------------------------------------------------------------------------

def test_fjc_inverse_matches_forward(odijk_params):
    F = np.linspace(1.0, 60.0, 30)
    d = fjc_extension(F, **odijk_params)
    F_back = fjc_force(d, **odijk_params)
    assert np.allclose(F_back, F, rtol=1e-3)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

def test_available_models():
    names = available_models()
    for expected in ('odijk', 'odijk-inv-d0-f0', 'twlc', 'twlc-lc-fixed', 'fjc'):
        assert expected in names


@pytest.mark.parametrize("kind,free,dependent", [
    ('odijk', ['Lp', 'Lc', 'S'], 'F'),
    ('odijk-d0-f0', ['Lp', 'S', 'd0', 'F0'], 'd'),
    ('odijk-inv-d0-f0', ['Lp', 'S', 'd0', 'F0'], 'F'),
    ('twlc-lc-fixed', ['Lp', 'S', 'g0', 'g1'], 'F'),
    ('fjc', ['Lp', 'Lc', 'S'], 'd'),
], ids=["odijk", "odijk-d0-f0", "odijk-inv-d0-f0", "twlc-lc-fixed", "fjc"])
def test_model_schema(kind, free, dependent):
    model = make_model(kind)
    assert model.param_names == free
    assert model.dependent_variable == dependent
    assert model.n_free == len(free)


def test_force_offset_default_bounds():
    model = make_model('odijk-inv-d0-f0')
    k = model.param_names.index('F0')
    assert model.lower[k] == -20.0
    assert model.upper[k] == 20.0


def test_fixed_parameters_are_applied():
    model = make_model('twlc-lc-fixed', fixed={'Lc': 2.85})
    assert model.fixed_params['Lc'] == 2.85


@pytest.mark.parametrize("kwargs", [
    {'bounds': {'Lp': (60.0, 40.0)}},
    {'bounds': {'Lp': (50.0, 50.0)}},
    {'start': {'Lp': 10.0}, 'bounds': {'Lp': (20.0, 80.0)}},
    {'start': {'g0': 1.0}},
    {'fixed': {'S': 1000.0}},
], ids=["reversed-bounds", "equal-bounds", "start-outside", "unknown-start", "unknown-fixed"])
def test_invalid_model_settings(kwargs):
    with pytest.raises(InvalidArgument):
        make_model('odijk', **kwargs)


def test_equal_bounds_are_rejected_with_reason():
    """Inclusive bounds still need lower < upper for the solver."""
    with pytest.raises(InvalidArgument, match="lower < upper"):
        make_model('odijk', bounds={'S': (1500.0, 1500.0)})


def test_unknown_model():
    with pytest.raises(InvalidArgument):
        make_model('worm')


def test_odijk_family_trims_high_forces():
    force = np.linspace(1.0, 60.0, 60)
    curve = FdCurve(force=force, distance=np.linspace(10.0, 17.0, 60))
    model = make_model('odijk')

    trimmed = model.validate_data(curve)
    assert np.max(trimmed.force) <= 30.0
    assert len(trimmed) == np.count_nonzero(force <= 30.0)
    assert len(model.validate_data(curve, trim=False)) == 60
    assert len(make_model('twlc').validate_data(curve)) == 60
