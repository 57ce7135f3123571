#!/usr/bin/env python3
# =============================================================================
#     File: conftest.py
#  Created: 2026-10-18 17:02
#   Author: Bernie Roesler
#
"""
Shared fixtures: the wine data, and synthetic MCMC output that stands in for
a sampled model so that summaries and diagnostics can be tested quickly.
"""
# =============================================================================

import matplotlib
matplotlib.use('Agg')

import arviz as az
import numpy as np
import pytest

import ordinal_models as om

THRESHOLDS = ['1|2', '2|3', '3|4', '4|5']
COEFS = ['tempwarm', 'contactyes']


@pytest.fixture(scope='session')
def wine():
    return om.load_wine()


@pytest.fixture(scope='session')
def main_spec():
    return om.ModelSpec.from_formula('rating ~ temp + contact')


def make_idata(n_obs=72, chains=4, draws=500, loglik_mean=-1.2,
               chain_offset=0.0, n_divergent=0, seed=56):
    """Build an InferenceData with the layout of a sampled cumulative model.

    Parameters
    ----------
    n_obs : int
        Number of observations in the log-likelihood.
    chains, draws : int
        Shape of the samples.
    loglik_mean : float
        Mean pointwise log-likelihood. Larger values fit better.
    chain_offset : float
        Shift the mean of each successive chain by this much, so that the
        chains disagree and R-hat is large.
    n_divergent : int
        Number of divergent transitions to mark.
    """
    rng = np.random.default_rng(seed)
    shift = chain_offset * np.arange(chains)[:, np.newaxis, np.newaxis]

    Intercept = (np.sort(rng.normal(size=(chains, draws, 4)), axis=-1)
                 + np.r_[-1.3, 1.3, 3.5, 5.0] + shift)
    b = rng.normal(loc=[2.5, 1.5], scale=0.5, size=(chains, draws, 2)) + shift

    diverging = np.zeros((chains, draws), dtype=bool)
    diverging.flat[:n_divergent] = True

    return az.from_dict(
        posterior=dict(Intercept=Intercept, b=b),
        log_likelihood=dict(
            y=rng.normal(loglik_mean, 0.1, size=(chains, draws, n_obs))
        ),
        sample_stats=dict(diverging=diverging),
        coords=dict(threshold=THRESHOLDS, coef=COEFS, obs=np.arange(n_obs)),
        dims=dict(Intercept=['threshold'], b=['coef'], y=['obs']),
    )


@pytest.fixture
def idata_factory():
    return make_idata


@pytest.fixture
def fake_fit(wine, main_spec):
    """Return a factory of `BayesFit` objects built from synthetic samples."""
    def _fake_fit(name=None, **kwargs):
        return om.BayesFit(
            idata=make_idata(**kwargs),
            data=wine,
            spec=main_spec.with_(name=name),
            family='cumulative',
            link='logit',
            priors=om.default_priors(),
        )
    return _fake_fit

# =============================================================================
# =============================================================================
