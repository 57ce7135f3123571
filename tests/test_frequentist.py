#!/usr/bin/env python3
# =============================================================================
#     File: test_frequentist.py
#  Created: 2026-10-18 18:02
#   Author: Bernie Roesler
#
"""
Tests of the maximum-likelihood cumulative link (mixed) models.

Reference values are those reported by `ordinal::clm` in R for the same
data, which only depend on the condition x rating table.
"""
# =============================================================================

import numpy as np
import pandas as pd
import pytest

from numpy.testing import assert_allclose
from scipy.special import logit

import ordinal_models as om

COUNTS = np.r_[5, 22, 26, 12, 7]


@pytest.fixture(scope='module')
def fit_tc(wine):
    spec = om.ModelSpec.from_formula('rating ~ temp + contact')
    return om.clm(wine, spec)


@pytest.fixture(scope='module')
def fit_mixed(wine):
    spec = om.ModelSpec.from_formula('rating ~ temp + contact + (1|judge)')
    return om.clmm(wine, spec)


def test_clm_null(wine):
    fit = om.clm(wine, om.ModelSpec.from_formula('rating ~ 1'))
    cum = np.cumsum(COUNTS)[:-1] / COUNTS.sum()
    assert fit.n_thresholds == 4
    assert fit.n_params == 4
    assert list(fit.coef.index) == ['Intercept[1|2]', 'Intercept[2|3]',
                                    'Intercept[3|4]', 'Intercept[4|5]']
    assert_allclose(fit.thresholds, logit(cum))
    assert_allclose(fit.loglik, np.sum(COUNTS * np.log(COUNTS / 72)))
    # The fitted probabilities are the observed proportions
    assert_allclose(fit.predict_proba().iloc[0], COUNTS / 72)


def test_clm_reference(fit_tc):
    assert list(fit_tc.coef.index) == [
        'Intercept[1|2]', 'Intercept[2|3]', 'Intercept[3|4]',
        'Intercept[4|5]', 'b[tempwarm]', 'b[contactyes]',
    ]
    assert_allclose(fit_tc.thresholds, [-1.3444, 1.2508, 3.4669, 5.0064],
                    atol=2e-3)
    assert_allclose(fit_tc.beta, [2.5031, 1.5278], atol=2e-3)
    assert_allclose(fit_tc.std[['b[tempwarm]', 'b[contactyes]']],
                    [0.5287, 0.4766], atol=5e-3)
    assert_allclose(fit_tc.loglik, -86.4921, atol=1e-3)
    assert_allclose(fit_tc.AIC(), 184.98, atol=1e-2)


def test_clm_summary(fit_tc):
    summ = fit_tc.summary()
    assert list(summ.columns) == ['estimate', 'std_err', 'z', 'p']
    assert (summ.loc[['b[tempwarm]', 'b[contactyes]'], 'p'] < 0.01).all()


def test_clm_predict(fit_tc, wine):
    p = fit_tc.predict_proba()
    assert p.shape == (72, 5)
    assert list(p.columns) == [1, 2, 3, 4, 5]
    assert_allclose(p.sum(axis=1), 1)

    grid = om.condition_grid(wine, ['temp', 'contact'])
    p = fit_tc.predict_proba(grid)
    assert p.shape == (4, 5)
    # Warm, skin-contact wine is the most bitter
    expected = p.values @ np.arange(1, 6)
    assert np.argmax(expected) == 3
    assert np.argmin(expected) == 0


@pytest.mark.parametrize('link', ['probit', 'cloglog'])
def test_clm_links(wine, link):
    spec = om.ModelSpec.from_formula('rating ~ temp + contact')
    fit = om.clm(wine, spec, link=link)
    assert fit.link == link
    assert (fit.beta > 0).all()
    assert np.all(np.diff(fit.thresholds) > 0)
    assert np.isfinite(fit.std).all()


def test_clm_errors(wine):
    with pytest.raises(ValueError):
        om.clm(wine, om.ModelSpec.from_formula('rating ~ temp + (1|judge)'))
    with pytest.raises(ValueError):
        om.clm(wine, om.ModelSpec.from_formula('rating ~ temp + cs(contact)'))
    with pytest.raises(ValueError):
        om.clm(wine, om.ModelSpec.from_formula('rating ~ temp'),
               link='identity')


@pytest.mark.parametrize(
    'formula',
    [
        'rating ~ 1',
        'rating ~ contact',
        'rating ~ contact + (1|judge)',
    ]
)
def test_unobserved_level(wine, formula):
    # Nobody rates a warm wine 1
    warm = wine[wine['temp'] == 'warm']
    spec = om.ModelSpec.from_formula(formula)
    solver = om.clmm if spec.group else om.clm
    with pytest.raises(ValueError, match=r'\[1\] are never observed'):
        solver(warm, spec)


def test_unobserved_level_dropped(wine):
    warm = wine[wine['temp'] == 'warm'].copy()
    warm['rating'] = warm['rating'].cat.remove_unused_categories()
    counts = np.r_[6, 13, 10, 7]
    cum = np.cumsum(counts)[:-1] / counts.sum()

    null = om.clm(warm, om.ModelSpec.from_formula('rating ~ 1'))
    assert list(null.thresholds.index) == ['Intercept[2|3]',
                                           'Intercept[3|4]',
                                           'Intercept[4|5]']
    assert_allclose(null.thresholds, logit(cum))

    fit = om.clm(warm, om.ModelSpec.from_formula('rating ~ contact'))
    assert fit.n_thresholds == 3
    assert fit.coef['b[contactyes]'] > 0


def test_clmm(fit_mixed, fit_tc):
    assert fit_mixed.n_thresholds == 4
    assert len(fit_mixed.beta) == 2
    assert fit_mixed.n_params == 4 + 2 + 1
    assert fit_mixed.coef.index[-1] == 'sd_judge'
    assert fit_mixed.sd > 0
    assert (fit_mixed.beta > 0).all()
    assert np.all(np.diff(fit_mixed.thresholds) > 0)
    # The fixed-effects model is nested at sd -> 0
    assert fit_mixed.loglik >= fit_tc.loglik - 1e-4
    # Accounting for the judges makes the effects larger
    assert (fit_mixed.beta.values > fit_tc.beta.values).all()
    summ = fit_mixed.summary()
    assert np.isnan(summ.loc['sd_judge', 'p'])


def test_clmm_requires_group(wine):
    with pytest.raises(ValueError):
        om.clmm(wine, om.ModelSpec.from_formula('rating ~ temp'))


def test_clmm_quadrature(wine, fit_mixed):
    # More quadrature nodes barely move the estimate
    fit = om.clmm(wine, fit_mixed.spec, n_quad=40,
                  start=dict(theta=fit_mixed.thresholds.values,
                             beta=fit_mixed.beta.values,
                             sd=fit_mixed.sd))
    assert_allclose(fit.coef, fit_mixed.coef, atol=1e-2)


def test_ranef(fit_mixed):
    re = fit_mixed.ranef()
    assert re.shape == (9, 2)
    assert re.index.name == 'judge'
    assert list(re.columns) == ['mode', 'cond_sd']
    assert (re['cond_sd'] > 0).all()
    assert (re['cond_sd'] < fit_mixed.sd).all()
    # Modes are shrunk toward zero
    assert abs(re['mode'].mean()) < 0.5


def test_ranef_without_group(fit_tc):
    with pytest.raises(ValueError):
        fit_tc.ranef()


def test_anova(wine, fit_tc, fit_mixed):
    null = om.clm(wine, om.ModelSpec.from_formula('rating ~ 1'))
    tab = om.anova(fit_mixed, null, fit_tc, mnames=['mixed', 'null', 'tc'])
    # Ordered by the number of parameters
    assert list(tab.index) == ['null', 'tc', 'mixed']
    assert tab['no.par'].tolist() == [4, 6, 7]
    assert np.isnan(tab.loc['null', 'LR.stat'])
    assert tab.loc['tc', 'df'] == 2
    assert tab.loc['tc', 'Pr(>Chisq)'] < 1e-6
    assert (tab['LR.stat'].dropna() >= -1e-6).all()


def test_anova_errors(wine, fit_tc):
    with pytest.raises(ValueError):
        om.anova(fit_tc)
    half = wine.iloc[:36]
    other = om.clm(half, om.ModelSpec.from_formula('rating ~ temp'))
    with pytest.raises(ValueError):
        om.anova(fit_tc, other)


def test_str(fit_mixed):
    out = str(fit_mixed)
    assert 'rating ~ 1 + temp + contact + (1|judge)' in out
    assert 'Observations: 72' in out
    assert isinstance(fit_mixed.corr, pd.DataFrame)

# =============================================================================
# =============================================================================
