#!/usr/bin/env python3
# =============================================================================
#     File: test_links.py
#  Created: 2026-10-18 17:45
#   Author: Bernie Roesler
#
"""
Tests of link functions and category probabilities.
"""
# =============================================================================

import numpy as np
import pytest

from numpy.testing import assert_allclose
from scipy.special import expit

from ordinal_models import links

KAPPA = np.r_[-1.3, 1.3, 3.5, 5.0]


@pytest.mark.parametrize('link', ['logit', 'probit', 'cloglog'])
def test_cdf_ppf_inverse(link):
    p = np.linspace(0.01, 0.99, 25)
    assert_allclose(links.cdf(links.ppf(p, link), link), p)


def test_cloglog():
    x = np.linspace(-3, 3, 13)
    assert_allclose(links.cdf(x, 'cloglog'), 1 - np.exp(-np.exp(x)))


@pytest.mark.parametrize('link', ['logit', 'probit', 'cloglog'])
def test_cumulative_probs(link):
    eta = np.r_[-1.0, 0.0, 2.5, 4.0]
    p = links.cumulative_probs(KAPPA, eta, link)
    assert p.shape == (4, 5)
    assert (p >= 0).all()
    assert_allclose(p.sum(axis=-1), 1)
    # Larger predictors put more mass on the highest category
    assert (np.diff(p[:, -1]) > 0).all()
    assert (np.diff(p[:, 0]) < 0).all()


def test_cumulative_probs_logit():
    p = links.cumulative_probs(KAPPA, np.r_[0.0])
    assert_allclose(np.cumsum(p[0])[:-1], expit(KAPPA))


def test_cumulative_probs_samples():
    rng = np.random.default_rng(56)
    S, N = 10, 6
    kappa = np.sort(rng.normal(size=(S, 4)), axis=-1)
    eta = rng.normal(size=(S, N))
    p = links.cumulative_probs(kappa, eta)
    assert p.shape == (S, N, 5)
    assert_allclose(p.sum(axis=-1), 1)


def test_acat_probs():
    # No thresholds and no effects: every category is equally likely
    p = links.acat_probs(np.zeros(4), np.zeros(3))
    assert_allclose(p, 0.2)

    p = links.acat_probs(KAPPA, np.r_[0.0, 1.0])
    assert p.shape == (2, 5)
    assert_allclose(p.sum(axis=-1), 1)
    # Log odds of adjacent categories
    assert_allclose(np.log(p[:, 1:] / p[:, :-1]),
                    np.r_[0.0, 1.0][:, np.newaxis] - KAPPA)


def test_acat_category_specific():
    cs_eta = np.tile(np.r_[1.0, 0.0, 0.0, -1.0], (2, 1))
    p = links.acat_probs(KAPPA, np.zeros(2), cs_eta)
    assert_allclose(np.log(p[:, 1:] / p[:, :-1]), cs_eta - KAPPA)


def test_category_probs_dispatch():
    eta = np.r_[0.0, 1.0]
    assert_allclose(links.category_probs(KAPPA, eta, 'acat'),
                    links.acat_probs(KAPPA, eta))
    assert_allclose(links.category_probs(KAPPA, eta, 'cumulative', 'probit'),
                    links.cumulative_probs(KAPPA, eta, 'probit'))
    with pytest.raises(ValueError):
        links.category_probs(KAPPA, eta, cs_eta=np.zeros((2, 4)))


@pytest.mark.parametrize(
    'link, family',
    [
        ('identity', 'cumulative'),
        ('logit', 'sratio'),
        ('probit', 'acat'),
        ('cloglog', 'acat'),
    ]
)
def test_check_link(link, family):
    with pytest.raises(ValueError):
        links.check_link(link, family)

# =============================================================================
# =============================================================================
