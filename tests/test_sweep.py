#!/usr/bin/env python3
"""Tests of boundary sweeps.

Grid shapes, boundary positions, cells without a fit and option
validation, plus a maximum-force sweep on a noise-free Odijk curve.
"""

import numpy as np
import pytest

from fdfit_analysis.errors import InvalidArgument
from fdfit_analysis.io import simulate_fd_curve
from fdfit_analysis.models import make_model
from fdfit_analysis.fitting import sweep_fd_fits, make_sweep_options, sweep_positions


@pytest.fixture(scope='module')
def clean_curve():
    """Noise-free Odijk curve from 0 to 70 pN."""
    return simulate_fd_curve('odijk', f_range=(0.0, 70.0), n_points=300, noise=0)


@pytest.fixture
def odijk():
    return make_model('odijk')


def test_right_force_sweep_on_clean_curve(clean_curve, odijk):
    sweep = sweep_fd_fits(
        clean_curve, odijk, sweep_type='right', boundary_type='f',
        n_sweeps=31, boundaries=(40.0, 70.0), trim=False
    )

    assert sweep.shape == (1, 31)
    assert sweep.positions_right[0] == 70.0 and sweep.positions_right[-1] == 40.0
    assert np.all(np.diff(sweep.positions_right) < 0), "right positions must decrease"
    assert sweep.positions_left[0] == pytest.approx(np.min(clean_curve.force))

    gof = sweep.gof
    assert np.all(sweep.fitted)
    _, best = sweep.best_index()
    assert gof[0, best] == np.max(gof)
    assert gof[0, best] >= 0.99


def test_left_sweep_shape(clean_curve, odijk):
    sweep = sweep_fd_fits(clean_curve, odijk, sweep_type='left', boundary_type='d',
                          n_sweeps=5, boundaries=(12.0, 14.0))
    assert sweep.shape == (5, 1)
    assert np.allclose(sweep.positions_left, [12.0, 12.5, 13.0, 13.5, 14.0])
    assert sweep.positions_right[0] == pytest.approx(np.max(clean_curve.distance))
    assert sweep.param_grid('Lp').shape == (5, 1)


def test_both_sweep_with_two_boundary_rows(clean_curve, odijk):
    sweep = sweep_fd_fits(clean_curve, odijk, sweep_type='both', boundary_type='d',
                          n_sweeps=(3, 4), boundaries=((11.0, 13.0), (16.5, 15.0)))
    assert sweep.shape == (3, 4)
    assert np.allclose(sweep.positions_left, [11.0, 12.0, 13.0])
    assert np.allclose(sweep.positions_right, [16.5, 16.0, 15.5, 15.0])
    assert sweep.cells[2, 3].data_range == (13.0, 15.0)


def test_static_boundary_from_second_row(clean_curve, odijk):
    options = make_sweep_options(clean_curve, sweep_type='left', boundary_type='d',
                                 n_sweeps=3, boundaries=((11.0, 13.0), (16.0, 17.0)))
    left, right = sweep_positions(options, clean_curve)
    assert np.allclose(left, [11.0, 12.0, 13.0])
    assert np.array_equal(right, [16.0])


def test_cells_without_data_are_not_fitted(clean_curve, odijk):
    sweep = sweep_fd_fits(clean_curve, odijk, sweep_type='right', boundary_type='f',
                          n_sweeps=4, boundaries=(0.0, 30.0))
    empty = sweep.cells[0, -1]

    assert sweep.positions_right[-1] == 0.0
    assert not empty.fitted
    assert np.isnan(empty.exit_flag)
    assert empty.params is None
    assert np.isnan(empty.gof)
    assert np.isnan(sweep.param_grid('Lp')[0, -1])
    assert sweep.fitted[0, 0]


def test_trim_is_applied_before_sweeping(clean_curve, odijk):
    """Above 30 pN every Odijk cell sees the same trimmed data."""
    sweep = sweep_fd_fits(clean_curve, odijk, sweep_type='right', boundary_type='f',
                          n_sweeps=5, boundaries=(50.0, 70.0))
    gof = sweep.gof[0]
    assert np.allclose(gof, gof[0])


def test_parallel_sweep_matches_sequential(clean_curve, odijk):
    kwargs = dict(sweep_type='right', boundary_type='f', n_sweeps=6,
                  boundaries=(10.0, 30.0))
    sequential = sweep_fd_fits(clean_curve, odijk, **kwargs)
    parallel = sweep_fd_fits(clean_curve, odijk, parallel=True, max_workers=3, **kwargs)
    assert np.array_equal(sequential.gof, parallel.gof, equal_nan=True)


@pytest.mark.parametrize("kwargs", [
    {'sweep_type': 'middle'},
    {'boundary_type': 'x'},
    {'gof_type': 'chi2'},
    {'sweep_type': 'left', 'n_sweeps': (3, 4)},
    {'n_sweeps': 0},
    {'n_sweeps': 2.5},
    {'boundaries': (1.0, 2.0, 3.0)},
    {'boundaries': (1.0, np.nan)},
], ids=["sweep-type", "boundary-type", "gof-type", "pair-for-left",
        "zero-sweeps", "fractional-sweeps", "three-boundaries", "nan-boundary"])
def test_invalid_sweep_options(clean_curve, odijk, kwargs):
    with pytest.raises(InvalidArgument):
        sweep_fd_fits(clean_curve, odijk, **kwargs)


def test_unknown_parameter_grid(clean_curve, odijk):
    sweep = sweep_fd_fits(clean_curve, odijk, n_sweeps=2, boundaries=(12.0, 13.0))
    with pytest.raises(InvalidArgument):
        sweep.param_grid('g0')
