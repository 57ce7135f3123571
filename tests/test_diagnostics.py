#!/usr/bin/env python3
# =============================================================================
#     File: test_diagnostics.py
#  Created: 2026-10-18 18:55
#   Author: Bernie Roesler
#
"""
Tests of the convergence diagnostics, and of the retry discipline.
"""
# =============================================================================

import warnings

import matplotlib.pyplot as plt
import pandas as pd
import pytest

import ordinal_models as om

from ordinal_models import bayes
from ordinal_models.diagnostics import ConvergenceWarning


def _convergence_warnings(record):
    return [w for w in record if issubclass(w.category, ConvergenceWarning)]


def test_good_chains(idata_factory):
    idata = idata_factory()
    with warnings.catch_warnings(record=True) as record:
        warnings.simplefilter('always')
        report = om.check_convergence(idata)

    assert not _convergence_warnings(record)
    assert list(report.columns) == ['r_hat', 'ess_bulk', 'ess_tail', 'flag',
                                    'low_ess']
    assert len(report) == 6
    assert not report['flag'].any()
    assert not report['low_ess'].any()
    assert report.attrs['n_divergent'] == 0
    assert not om.needs_refit(report)


def test_unmixed_chains(idata_factory):
    idata = idata_factory(chain_offset=3.0)
    with pytest.warns(ConvergenceWarning, match='R-hat'):
        report = om.check_convergence(idata)
    assert report['flag'].all()
    assert om.needs_refit(report)


def test_divergences(idata_factory):
    idata = idata_factory(n_divergent=3)
    assert om.n_divergent(idata) == 3
    with pytest.warns(ConvergenceWarning, match='3 divergent'):
        report = om.check_convergence(idata)
    assert not report['flag'].any()
    assert report.attrs['n_divergent'] == 3
    assert om.needs_refit(report)


def test_low_ess_is_not_a_refit(idata_factory):
    idata = idata_factory()
    with pytest.warns(ConvergenceWarning, match='ESS'):
        report = om.check_convergence(idata, ess_floor=10_000)
    assert report['low_ess'].all()
    assert not om.needs_refit(report)


def test_single_chain(idata_factory):
    idata = idata_factory(chains=1, draws=1000)
    with pytest.warns(ConvergenceWarning, match='single chain'):
        om.check_convergence(idata)


def test_var_names(fake_fit):
    fit = fake_fit()
    report = om.check_convergence(fit, var_names=['b'], warn=False)
    assert list(report.index) == ['b[tempwarm]', 'b[contactyes]']
    # A fit is checked on its own parameters by default
    assert len(fit.check(warn=False)) == 6


def test_no_posterior(idata_factory):
    idata = idata_factory()
    del idata.posterior
    with pytest.raises(ValueError):
        om.check_convergence(idata)


def test_plot_trace(fake_fit):
    fig, axes = om.plot_trace(fake_fit(), title='fake')
    assert axes.shape == (6, 2)
    plt.close(fig)


# -----------------------------------------------------------------------------
#         Retry discipline
# -----------------------------------------------------------------------------
def _report(bad, n_div=0):
    report = pd.DataFrame({'r_hat': [1.2 if bad else 1.0], 'flag': [bad]})
    report.attrs['n_divergent'] = n_div
    return report


@pytest.fixture
def fake_sampler(monkeypatch):
    """Replace sampling with a queue of diagnostic reports."""
    calls = []
    reports = []

    def fake_fit(df, spec, family, link, priors, **kwargs):
        calls.append(dict(priors=priors, **kwargs))
        return type('FakeFit', (), {})()

    monkeypatch.setattr(bayes, 'fit', fake_fit)
    monkeypatch.setattr(bayes, 'check_convergence',
                        lambda result: reports.pop(0))
    return calls, reports


def test_retry_until_converged(wine, main_spec, fake_sampler, capsys):
    calls, reports = fake_sampler
    reports.extend([_report(False, n_div=5), _report(True), _report(False)])

    result = om.fit_with_retry(wine, main_spec, random_seed=56)

    assert [c['target_accept'] for c in calls] == [0.8, 0.9, 0.95]
    assert all(c['check'] is False for c in calls)
    assert all(c['random_seed'] == 56 for c in calls)

    # Priors are tightened before each retry
    assert calls[0]['priors']['b'].is_flat
    assert calls[1]['priors']['b'] == om.normal(0, 1)
    assert calls[2]['priors']['b'] == om.normal(0, 0.5)
    assert calls[2]['priors']['Intercept'] == om.student_t(3, 0, 0.625)

    assert list(result.history.index) == [0, 1, 2]
    assert result.history['n_divergent'].tolist() == [5, 0, 0]
    assert result.history['n_flagged'].tolist() == [0, 1, 0]
    assert not om.needs_refit(result.diagnostics)
    assert 're-fitting' in capsys.readouterr().out


def test_no_retry_needed(wine, main_spec, fake_sampler):
    calls, reports = fake_sampler
    reports.append(_report(False))
    result = om.fit_with_retry(wine, main_spec,
                               priors=om.weakly_informative())
    assert len(calls) == 1
    assert calls[0]['priors'] == om.weakly_informative()
    assert len(result.history) == 1


def test_retry_gives_up(wine, main_spec, fake_sampler):
    calls, reports = fake_sampler
    reports.extend([_report(True) for _ in range(3)])
    with pytest.warns(ConvergenceWarning, match='still poor'):
        result = om.fit_with_retry(wine, main_spec, schedule=(0.9, 0.99))
    assert [c['target_accept'] for c in calls] == [0.8, 0.9, 0.99]
    assert len(result.history) == 3
    assert om.needs_refit(result.diagnostics)


def test_retry_cache_files(wine, main_spec, fake_sampler, tmp_path):
    calls, reports = fake_sampler
    reports.extend([_report(True), _report(True), _report(False)])
    om.fit_with_retry(wine, main_spec, file=tmp_path / 'tc.nc')
    assert [c['file'] for c in calls] == [
        tmp_path / 'tc.nc',
        tmp_path / 'tc_retry1.nc',
        tmp_path / 'tc_retry2.nc',
    ]
    assert calls[0]['file'] is not None


def test_retry_no_cache(wine, main_spec, fake_sampler):
    calls, reports = fake_sampler
    reports.append(_report(False))
    om.fit_with_retry(wine, main_spec)
    assert calls[0]['file'] is None

# =============================================================================
# =============================================================================
