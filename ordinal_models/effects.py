#!/usr/bin/env python3
# =============================================================================
#     File: effects.py
#  Created: 2026-10-18 15:55
#   Author: Bernie Roesler
#
"""
Conditional effects: predicted rating probabilities over the grid of
experimental conditions, with the random effects set to zero.
"""
# =============================================================================

import itertools

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from . import config
from .utils import percentiles


def expand_grid(**kwargs):
    """Return a DataFrame of points, where the columns are kwargs.

    Notes
    -----
    Compare to `numpy.meshgrid`:
        xx, yy = np.meshgrid(temp_levels, contact_levels, indexing='ij')
    `expand_grid` returns every combination, with the *last* column varying
    fastest.

    See Also
    --------
    numpy.meshgrid
    """
    if not kwargs:
        return pd.DataFrame(index=pd.RangeIndex(1))
    return pd.DataFrame(itertools.product(*kwargs.values()),
                        columns=kwargs.keys())


def condition_grid(df, terms):
    """Every combination of the levels of the given terms.

    Parameters
    ----------
    df : DataFrame
        The data, from which the levels of each term are taken.
    terms : sequence of str
        Columns of `df`. Categorical columns keep their declared categories.

    Returns
    -------
    result : DataFrame
        One row per combination. With no terms, a single row with no columns.
    """
    levels = dict()
    for term in terms:
        x = df[term]
        if isinstance(x.dtype, pd.CategoricalDtype):
            levels[term] = list(x.cat.categories)
        else:
            levels[term] = sorted(x.unique())

    grid = expand_grid(**levels)

    for term in terms:
        x = df[term]
        if isinstance(x.dtype, pd.CategoricalDtype):
            grid[term] = pd.Categorical(grid[term],
                                        categories=x.cat.categories,
                                        ordered=x.cat.ordered)
    return grid


def category_probs(fit, newdata=None, q=config.INTERVAL):
    """Predict the probability of each rating under each condition.

    Parameters
    ----------
    fit : BayesFit or ClmFit
        The fitted model.
    newdata : DataFrame, optional
        The conditions at which to predict. Defaults to the grid of every
        combination of the model's population-level terms.
    q : float in [0, 1]
        Width of the credible interval. Maximum likelihood fits have no
        intervals, and return NaN.

    Returns
    -------
    result : DataFrame
        Long format, with the columns of `newdata`, and 'rating', 'prob',
        'lo' and 'hi'.
    """
    if newdata is None:
        newdata = condition_grid(fit.data, fit.spec.terms)
    newdata = newdata.reset_index(drop=True)

    levels = fit.levels
    probs = fit.predict_proba(newdata)

    if isinstance(probs, pd.DataFrame):
        mean = probs.values
        lo = hi = np.full_like(mean, np.nan)
    else:
        # (S, N, K) samples
        mean = probs.mean(axis=0)
        lo, hi = percentiles(probs, q=q, axis=0)

    N, K = mean.shape
    out = newdata.loc[np.repeat(np.arange(N), K)].reset_index(drop=True)
    out['rating'] = np.tile(levels, N)
    out['prob'] = mean.ravel()
    out['lo'] = lo.ravel()
    out['hi'] = hi.ravel()
    return out


def _condition_labels(cp):
    """Label each condition by the values of its terms."""
    terms = [c for c in cp.columns if c not in ('rating', 'prob', 'lo', 'hi')]
    if not terms:
        return pd.Series('all', index=cp.index)
    return cp[terms].astype(str).agg(', '.join, axis='columns')


def plot_category_probs(cp, ax=None, title=None):
    """Plot the predicted probability of each rating, one line per condition.

    Parameters
    ----------
    cp : DataFrame
        Output of `category_probs`.
    ax : Axes, optional
        The axes in which to plot.
    title : str, optional
        The title of the axes.

    Returns
    -------
    ax : Axes
        The axes with the plot.
    """
    if ax is None:
        ax = plt.gca()

    labels = _condition_labels(cp)
    levels = pd.unique(cp['rating'])
    x = np.arange(len(levels))

    for i, (label, tf) in enumerate(cp.groupby(labels, sort=False)):
        c = f"C{i}"
        ax.plot(x, tf['prob'], 'o-', c=c, label=label)
        if tf['lo'].notna().all():
            ax.fill_between(x, tf['lo'], tf['hi'], color=c, alpha=0.2)

    ax.set(xticks=x,
           xticklabels=levels,
           xlabel='rating',
           ylabel='probability',
           ylim=(0, None),
           title=title)
    ax.legend()

    return ax

# =============================================================================
# =============================================================================
