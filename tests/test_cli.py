#!/usr/bin/env python3
"""
Integration tests for the CLI workflow.

Every analysis runs end to end on small simulated datasets with plots
suppressed (--no-show) and, where checked, saved to a temporary
directory.
"""

import os
import sys
import logging

import pytest

# Ensure the root script is importable without installation
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Suppress matplotlib GUI
import matplotlib
matplotlib.use('Agg')

import fdfit
from fdfit_analysis.cli import handlers, parse_arguments, setup_logging, parse_pair
from fdfit_analysis.models import make_model


@pytest.fixture(autouse=True)
def restore_logging():
    """setup_logging replaces the root handlers; put the old ones back."""
    root = logging.getLogger()
    saved, level = list(root.handlers), root.level
    yield
    root.handlers[:] = saved
    root.setLevel(level)


def run_cli(*argv):
    fdfit.main(list(argv) + ['--no-show', '-q', '--seed', '1'])


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def test_parser_defaults():
    args = parse_arguments([])
    assert args.analysis == 'fit'
    assert args.model is None
    assert args.sweep_boundaries == (40.0, 70.0)
    assert args.mg_concs == [0, 25, 50, 70, 80, 100, 150]


def test_parser_lists():
    args = parse_arguments(['mg', '--mg-concs', '0,50', '--sweep-boundaries', '35,65'])
    assert args.mg_concs == [0.0, 50.0]
    assert args.sweep_boundaries == (35.0, 65.0)


@pytest.mark.parametrize("argv", [
    ['unknown'],
    ['--model', 'worm'],
    ['--n-curves', '0'],
    ['--sweep-boundaries', '70,40'],
    ['--format', 'jpg'],
], ids=["analysis", "model", "n-curves", "boundaries", "format"])
def test_parser_rejects(argv):
    with pytest.raises(SystemExit):
        parse_arguments(argv)


def test_parse_pair_requires_two_values():
    import argparse
    with pytest.raises(argparse.ArgumentTypeError):
        parse_pair('1,2,3')


def test_quiet_logging_hides_info(capsys):
    setup_logging(parse_arguments(['-q']))
    logger = logging.getLogger('fdfit_analysis.test')
    logger.info("hidden")
    logger.warning("shown")
    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "! shown" in out


# ---------------------------------------------------------------------------
# Analyses
# ---------------------------------------------------------------------------

def test_single_fit_saves_figure(tmp_path):
    prefix = str(tmp_path / 'run')
    run_cli('fit', '--save', prefix)
    assert os.path.exists(f"{prefix}_fit.png")


def test_global_fit(tmp_path):
    prefix = str(tmp_path / 'run')
    run_cli('global', '--n-curves', '3', '--conf-int', '--save', prefix, '--format', 'svg')
    assert os.path.exists(f"{prefix}_global.svg")


def test_offset_comparison():
    run_cli('offsets', '--n-curves', '3', '--n-points', '200')


def test_d_models_get_data_above_zero_force():
    kwargs = handlers._simulation_kwargs(make_model('odijk-d0-f0'))
    assert kwargs['model'] == 'odijk'
    assert kwargs['f_range'][0] == handlers.D_MODEL_MIN_FORCE > 0
    assert 'f_range' not in handlers._simulation_kwargs(make_model('odijk-inv-d0-f0'))
    assert handlers._simulation_kwargs(make_model('twlc')) == {'model': 'twlc'}


def test_single_fit_of_d_model():
    run_cli('fit', '--model', 'odijk-d0-f0', '--n-points', '200')


def test_offset_comparison_of_d_model(capsys):
    """Every individual d(F) fit produces a result."""
    run_cli('offsets', '--model', 'odijk-d0-f0', '--n-curves', '5', '--n-points', '200')
    assert "produced no result" not in capsys.readouterr().out


def test_sweep():
    run_cli('sweep', '--model', 'odijk', '--sweep-type', 'left', '--boundary-type', 'd',
            '--n-sweeps', '3', '--n-points', '200')


def test_twlc_analysis():
    run_cli('twlc', '--n-curves', '2', '--n-bootstrap', '2', '--n-sweeps', '2',
            '--n-points', '150')


def test_mg_analysis():
    run_cli('mg', '--mg-concs', '0,50', '--n-curves', '1', '--n-bootstrap', '1',
            '--n-sweeps', '2', '--n-points', '150')


def test_fit_error_exits_with_status_1(capsys):
    with pytest.raises(SystemExit) as exc:
        run_cli('global', '--n-curves', '2', '--shared', 'Lc')
    assert exc.value.code == 1
    assert "!! InvalidArgument" in capsys.readouterr().err


def test_package_readme_is_shipped():
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    with open(os.path.join(root, 'pyproject.toml')) as f:
        assert 'readme = "README.md"' in f.read()
    assert os.path.exists(os.path.join(root, 'README.md'))
