#!/usr/bin/env python3
# =============================================================================
#     File: test_effects.py
#  Created: 2026-10-18 19:12
#   Author: Bernie Roesler
#
"""
Tests of conditional effects and plotting helpers.
"""
# =============================================================================

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from numpy.testing import assert_allclose

import ordinal_models as om


def test_expand_grid():
    grid = om.expand_grid(a=[1, 2], b=['x', 'y', 'z'])
    assert grid.shape == (6, 2)
    assert grid['b'].tolist() == ['x', 'y', 'z'] * 2
    assert len(om.expand_grid()) == 1


def test_condition_grid(wine):
    grid = om.condition_grid(wine, ['temp', 'contact'])
    assert grid.shape == (4, 2)
    assert grid.astype(str).values.tolist() == [
        ['cold', 'no'], ['cold', 'yes'], ['warm', 'no'], ['warm', 'yes'],
    ]
    assert list(grid['temp'].cat.categories) == ['cold', 'warm']


def test_category_probs_bayes(fake_fit):
    fit = fake_fit()
    cp = om.category_probs(fit)
    assert len(cp) == 4 * 5
    assert list(cp.columns) == ['temp', 'contact', 'rating', 'prob', 'lo',
                                'hi']
    assert_allclose(cp.groupby(['temp', 'contact'], observed=True)['prob']
                      .sum(), 1)
    assert (cp['lo'] <= cp['prob']).all()
    assert (cp['prob'] <= cp['hi']).all()

    # Warm, skin-contact wine is rated more bitter than cold, skinless wine
    warm = cp.query("temp == 'warm' and contact == 'yes'")
    cold = cp.query("temp == 'cold' and contact == 'no'")
    assert warm['prob'].iloc[-1] > cold['prob'].iloc[-1]
    assert warm['prob'].iloc[0] < cold['prob'].iloc[0]

    ax = om.plot_category_probs(cp)
    assert len(ax.get_lines()) == 4
    plt.close(ax.figure)


def test_category_probs_clm(wine):
    fit = om.clm(wine, om.ModelSpec.from_formula('rating ~ temp'))
    cp = om.category_probs(fit)
    assert len(cp) == 2 * 5
    assert cp['lo'].isna().all()
    ax = om.plot_category_probs(cp)
    plt.close(ax.figure)


def test_category_probs_newdata(fake_fit):
    newdata = pd.DataFrame({'temp': ['warm'], 'contact': ['yes']})
    cp = om.category_probs(fake_fit(), newdata)
    assert cp['rating'].tolist() == [1, 2, 3, 4, 5]
    assert_allclose(cp['prob'].sum(), 1)


def test_predict_proba_samples(fake_fit):
    fit = fake_fit(chains=2, draws=50)
    p = fit.predict_proba()
    assert p.shape == (100, 72, 5)
    assert_allclose(p.sum(axis=-1), 1)


def test_simplehist(wine):
    fig, ax = plt.subplots()
    n, bins, _ = om.simplehist(wine['rating'].astype(int), ax=ax)
    assert n.tolist() == [5, 22, 26, 12, 7]
    assert_allclose(bins, np.arange(0.5, 6))
    plt.close(fig)


def test_plot_ranef():
    re = pd.DataFrame(
        {'mode': [0.5, -1.0, 0.2], 'cond_sd': [0.3, 0.4, 0.3]},
        index=pd.Index([1, 2, 3], name='judge'),
    )
    fig, ax = plt.subplots()
    om.plot_ranef(re, ax=ax)
    assert [t.get_text() for t in ax.get_yticklabels()] == ['2', '3', '1']
    assert ax.get_ylabel() == 'judge'
    plt.close(fig)

# =============================================================================
# =============================================================================
