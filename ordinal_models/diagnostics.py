#!/usr/bin/env python3
# =============================================================================
#     File: diagnostics.py
#  Created: 2026-10-18 13:15
#   Author: Bernie Roesler
#
"""
Convergence diagnostics and posterior predictive checks for MCMC fits.

Poor diagnostics are a signal about the model and the data, not an error:
they are reported with a `ConvergenceWarning` for the analyst to act upon.
"""
# =============================================================================

import warnings

import arviz as az
import matplotlib.pyplot as plt
import numpy as np

from . import config
from .utils import SAMPLE_DIMS, percentiles


class ConvergenceWarning(UserWarning):
    """The sampler shows signs of not having converged."""


def _idata(obj):
    return getattr(obj, 'idata', obj)


def n_divergent(obj):
    """Return the number of divergent transitions after warmup."""
    idata = _idata(obj)
    if 'sample_stats' not in idata.groups():
        return 0
    return int(idata.sample_stats['diverging'].sum())


def check_convergence(obj, rhat_threshold=config.RHAT_THRESHOLD,
                      ess_floor=config.ESS_FLOOR, var_names=None, warn=True):
    """Report the split-chain R-hat and effective sample size of each
    parameter.

    Parameters
    ----------
    obj : BayesFit or az.InferenceData
        The MCMC fit.
    rhat_threshold : float
        Parameters with R-hat above this value are flagged.
    ess_floor : float
        Parameters with bulk ESS below this value are marked 'low_ess'.
    var_names : list of str, optional
        The parameters to check. Defaults to the model parameters of a
        `BayesFit`, or all posterior variables.
    warn : bool
        If True, issue a `ConvergenceWarning` for each kind of problem.

    Returns
    -------
    report : DataFrame
        Columns 'r_hat', 'ess_bulk', 'ess_tail', 'flag', 'low_ess'. The
        number of divergent transitions is stored in
        ``report.attrs['n_divergent']``.
    """
    idata = _idata(obj)
    if 'posterior' not in idata.groups():
        raise ValueError('No posterior samples to diagnose!')

    if var_names is None and getattr(obj, 'samples', None) is not None:
        var_names = list(obj.samples.data_vars)

    with warnings.catch_warnings():
        # arviz warns about R-hat with a single chain; we say so ourselves.
        warnings.simplefilter('ignore', category=RuntimeWarning)
        warnings.simplefilter('ignore', category=UserWarning)
        summ = az.summary(idata, var_names=var_names, kind='diagnostics')

    report = summ[['r_hat', 'ess_bulk', 'ess_tail']].copy()
    report['flag'] = report['r_hat'] > rhat_threshold
    report['low_ess'] = report['ess_bulk'] < ess_floor
    report.attrs['n_divergent'] = n_div = n_divergent(idata)

    if warn:
        if idata.posterior.sizes['chain'] < 2:
            warnings.warn('R-hat is undefined for a single chain.'
                          ' Run at least 2 chains.', ConvergenceWarning)
        if report['flag'].any():
            bad = report.index[report['flag']].tolist()
            warnings.warn(f"R-hat > {rhat_threshold} for {bad}."
                          ' The chains have not mixed.', ConvergenceWarning)
        if report['low_ess'].any():
            bad = report.index[report['low_ess']].tolist()
            warnings.warn(f"Bulk ESS < {ess_floor} for {bad}.",
                          ConvergenceWarning)
        if n_div > 0:
            warnings.warn(f"There were {n_div} divergent transitions after"
                          ' warmup. Increase target_accept or use more'
                          ' regularizing priors.', ConvergenceWarning)

    return report


def needs_refit(report, n_div=None):
    """Return True if the diagnostics call for a re-fit."""
    if n_div is None:
        n_div = report.attrs.get('n_divergent', 0)
    return bool(n_div > 0 or report['flag'].any())


def plot_trace(obj, var_names=None, title=None):
    """Plot the MCMC sample chains for each parameter.

    Parameters
    ----------
    obj : BayesFit or az.InferenceData
        The MCMC fit.
    var_names : list of str, optional
        The parameters to plot.
    title : str, optional
        The title of the figure.

    Returns
    -------
    fig : plt.Figure
        The figure handle containing the trace plots.
    axes : ndarray of plt.Axes
        An array corresponding to the axes of each trace plot.
    """
    if var_names is None and getattr(obj, 'samples', None) is not None:
        var_names = list(obj.samples.data_vars)
    # NOTE pymc discards the warmup samples by default, so the traces only
    # show the retained draws of each chain.
    axes = az.plot_trace(_idata(obj), var_names=var_names, compact=False)
    fig = axes.flat[0].figure
    fig.suptitle(title)
    return fig, axes


def plot_ppc(obj, pp=None, q=config.INTERVAL, ax=None, var_name='y'):
    """Compare observed category counts with the posterior predictive.

    Parameters
    ----------
    obj : BayesFit
        The MCMC fit, with `levels` and `data` attributes.
    pp : az.InferenceData, optional
        Samples of the posterior predictive distribution. If not given, they
        will be drawn from `obj`.
    q : float in [0, 1]
        Width of the predictive interval.
    ax : Axes, optional
        The axes in which to plot.

    Returns
    -------
    ax : Axes
        The axes with bars of the observed counts, and the predicted mean
        counts and intervals.
    """
    if ax is None:
        ax = plt.gca()

    if pp is None:
        pp = obj.posterior_predictive()

    levels = obj.levels
    K = len(levels)
    y_obs = obj.response_codes

    # Count each category in each predictive draw -> (chain, draw, K)
    y_pp = pp.posterior_predictive[var_name]
    obs_dims = [d for d in y_pp.dims if d not in SAMPLE_DIMS]
    y_pp = y_pp.stack(sample=SAMPLE_DIMS).transpose('sample', *obs_dims)
    counts = np.stack(
        [np.bincount(row, minlength=K) for row in y_pp.values.astype(int)]
    )

    x = np.arange(K)
    ax.bar(x, np.bincount(y_obs, minlength=K),
           color='C0', alpha=0.6, ec='white', label='observed')

    mean = counts.mean(axis=0)
    lo, hi = percentiles(counts, q=q, axis=0)
    ax.errorbar(x, mean, yerr=np.vstack([mean - lo, hi - mean]),
                fmt='o', c='k', mfc='white', label='predicted')

    ax.set(xticks=x,
           xticklabels=levels,
           xlabel='rating',
           ylabel='count')
    ax.legend()

    return ax

# =============================================================================
# =============================================================================
