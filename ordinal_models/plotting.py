#!/usr/bin/env python3
# =============================================================================
#     File: plotting.py
#  Created: 2026-10-18 16:20
#   Author: Bernie Roesler
#
"""
Plots of the data and of the random effects.
"""
# =============================================================================

import matplotlib.pyplot as plt
import numpy as np

from scipy import stats

from . import config


def simplehist(x, ax=None, **kwargs):
    """Plot a histogram of an integer-valued array, *e.g.* the ratings.

    Parameters
    ----------
    x : (N,) array_like
        Input values.
    ax : Axes, optional
        The axes in which to plot the histogram.

    Returns
    -------
    n : array
        The values of the histogram bins.
    bins : array
        The edges of the bins.
    patches :
        Container of individual artists used to create the histogram.

    Other Parameters
    ----------------
    **kwargs
        Arguments passed to `matplotlib.pyplot.hist`.
    """
    if ax is None:
        ax = plt.gca()

    opts = dict(alpha=0.6, ec='k')
    opts.update(kwargs)

    x = np.asarray(x, dtype=float)

    # bins = [1, ..., 6] - 0.5 = [0.5, 1.5, ..., 5.5]
    min_bin = np.floor(np.min(x))
    max_bin = np.ceil(np.max(x))

    ax.set_xticks(np.arange(min_bin, max_bin + 1))
    bins = np.arange(min_bin, max_bin + 2) - 0.5

    return ax.hist(x, bins=bins, **opts)


def plot_ranef(re, q=config.INTERVAL, ax=None, title=None):
    """Caterpillar plot of the random intercepts.

    Parameters
    ----------
    re : DataFrame
        Output of ``fit.ranef()``, with columns 'mode' and 'cond_sd'.
    q : float in [0, 1]
        Width of the normal interval about each mode.
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

    re = re.sort_values('mode')
    z = stats.norm.ppf(1 - (1 - q) / 2)
    y = np.arange(len(re))

    ax.errorbar(re['mode'], y, xerr=z*re['cond_sd'], fmt='o', c='k',
                mfc='white')
    ax.axvline(0, ls='--', c='k', lw=1, alpha=0.5)
    ax.set(yticks=y,
           yticklabels=re.index.astype(str),
           ylabel=re.index.name,
           xlabel='conditional mode',
           title=title)

    return ax

# =============================================================================
# =============================================================================
