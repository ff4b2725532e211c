#!/usr/bin/env python3
"""Tests of F,d curves, collections, condition tags and synthetic data."""

import numpy as np
import pytest

from fdfit_analysis.data import FdCurve, FdCollection
from fdfit_analysis.errors import InvalidArgument, EmptyInput
from fdfit_analysis.io import simulate_fd_curve, simulate_offset_ensemble
from fdfit_analysis.utils import mg_conc_to_tag, tag_to_mg_conc, run_tasks


def make_curve(n=10, offset=0.0, name='curve', tags=None):
    """Linear test curve with n samples."""
    return FdCurve(
        force=np.arange(n, dtype=float) + offset,
        distance=np.linspace(10.0, 15.0, n),
        name=name,
        tags=tags,
    )


@pytest.fixture
def collection():
    """Three curves of 5, 7 and 9 samples."""
    return FdCollection([
        make_curve(5, 0.0, 'a', ['buffer']),
        make_curve(7, 100.0, 'b', ['mg025']),
        make_curve(9, 200.0, 'c', ['mg025', 'selected']),
    ])


# ---------------------------------------------------------------------------
# Curve
# ---------------------------------------------------------------------------

def test_curve_arrays_are_read_only():
    curve = make_curve()
    with pytest.raises(ValueError):
        curve.force[0] = 1.0


def test_curve_length_mismatch():
    with pytest.raises(InvalidArgument):
        FdCurve(force=np.ones(5), distance=np.ones(4))


def test_shift_and_scale_return_new_curves():
    curve = make_curve()
    shifted = curve.shift('d', 0.5).scale('f', 2.0)

    assert np.allclose(shifted.distance, curve.distance + 0.5)
    assert np.allclose(shifted.force, curve.force * 2.0)
    assert np.allclose(curve.distance, np.linspace(10.0, 15.0, 10)), "original modified"
    assert len(shifted.history) == 2


def test_subset_is_inclusive():
    curve = make_curve(10)
    part = curve.subset('f', (2.0, 5.0))
    assert np.array_equal(part.force, [2.0, 3.0, 4.0, 5.0])


def test_subset_remaps_marks():
    curve = make_curve(10)
    curve.add_mark(1, 'start')
    curve.add_mark(4, 'peak')
    part = curve.subset('f', (3.0, 9.0))

    assert len(part.marks) == 1
    assert part.marks[0].index == 1
    assert part.marks[0].text == 'peak'


def test_between_marks():
    curve = make_curve(10)
    curve.add_mark(2)
    curve.add_mark(6)
    part = curve.between_marks(0, 1)
    assert np.array_equal(part.force, [2.0, 3.0, 4.0, 5.0])


def test_tags_are_kept_by_transformations():
    curve = make_curve(tags=['mg050'])
    assert curve.shift('f', 1.0).has_tag('mg050')


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------

def test_duplicate_curve_rejected():
    curve = make_curve()
    with pytest.raises(InvalidArgument):
        FdCollection([curve, curve])
    assert len(FdCollection([curve, curve], skip_duplicate_check=True)) == 2


def test_concatenated_keeps_order_and_count(collection):
    combined = collection.concatenated()

    assert len(combined) == 5 + 7 + 9
    expected = np.concatenate([c.force for c in collection])
    assert np.array_equal(combined.force, expected)
    assert combined.tags == frozenset({'buffer', 'mg025', 'selected'})


def test_concatenated_empty_collection():
    with pytest.raises(EmptyInput):
        FdCollection().concatenated()


def test_get_by_tag(collection):
    assert [c.name for c in collection.get_by_tag('mg025')] == ['b', 'c']
    assert collection.get_by_tag('mg100').is_empty()


def test_resample_keeps_size_and_identity(collection):
    rng = np.random.default_rng(3)
    resampled = collection.resample(rng)

    assert len(resampled) == len(collection)
    for curve in resampled:
        assert any(curve is original for original in collection), "resample copied a curve"


def test_resample_single_curve():
    curve = make_curve()
    resampled = FdCollection([curve]).resample(0)
    assert len(resampled) == 1
    assert resampled[0] is curve


def test_resample_is_reproducible(collection):
    first = [c.name for c in collection.resample(42)]
    second = [c.name for c in collection.resample(42)]
    assert first == second


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("conc,tag", [
    (0, 'buffer'), (25, 'mg025'), (150, 'mg150'),
], ids=["buffer", "mg025", "mg150"])
def test_mg_tags(conc, tag):
    assert mg_conc_to_tag(conc) == tag
    assert tag_to_mg_conc(make_curve(tags=[tag])) == float(conc)


def test_mg_tag_out_of_range():
    with pytest.raises(InvalidArgument):
        mg_conc_to_tag(1000)


def test_untagged_curve_has_no_concentration():
    assert tag_to_mg_conc(make_curve(tags=['selected'])) is None


# ---------------------------------------------------------------------------
# Parallel execution and synthetic data
# ---------------------------------------------------------------------------

def test_run_tasks_keeps_order():
    tasks = list(range(20))
    assert run_tasks(lambda x: x * x, tasks, parallel=True) == [x * x for x in tasks]
    assert run_tasks(lambda x: x * x, tasks) == [x * x for x in tasks]


def test_simulated_curve_ranges():
    curve = simulate_fd_curve('twlc', noise=0, rng=0)
    assert np.min(curve.distance) >= 10.0
    assert np.max(curve.distance) <= 17.5
    assert np.max(curve.force) <= 65.0
    assert np.array_equal(curve.time, np.arange(1, len(curve) + 1))
    assert curve.metadata['param_S'] == 1500.0


def test_simulated_curve_is_seeded():
    a = simulate_fd_curve(rng=7)
    b = simulate_fd_curve(rng=7)
    assert np.array_equal(a.force, b.force)


def test_simulated_unknown_parameter():
    with pytest.raises(InvalidArgument):
        simulate_fd_curve('odijk', params={'g0': 1.0})


def test_offset_ensemble_shapes():
    collection, d0, F0 = simulate_offset_ensemble(4, rng=1, noise=0)
    assert len(collection) == 4
    assert d0.shape == (4,) and F0.shape == (4,)
    reference = simulate_fd_curve(noise=0)
    shifted = collection[0]
    assert np.allclose(shifted.distance, reference.distance - d0[0])
    assert np.allclose(shifted.force, reference.force + F0[0])
