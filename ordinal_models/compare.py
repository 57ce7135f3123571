#!/usr/bin/env python3
# =============================================================================
#     File: compare.py
#  Created: 2026-10-18 15:10
#   Author: Bernie Roesler
#
"""
Summaries and comparisons of fitted models.
"""
# =============================================================================

import warnings

import arviz as az
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
import xarray as xr

from scipy import stats

from . import config
from .diagnostics import ConvergenceWarning
from .fits import PostModel
from .utils import (
    dataset_to_frame,
    logsumexp,
    sparklines_from_array,
    sparklines_from_dataframe,
    sparklines_from_norm,
)


def precis(obj, q=config.INTERVAL, digits=4, verbose=True, hist=True,
           filter_kws=None):
    """Return a `DataFrame` of the mean, standard deviation, and percentile
    interval of each parameter.

    Parameters
    ----------
    obj : PostModel, Dataset, DataArray, DataFrame or ndarray
        A fitted model, or samples of the parameters. Fits without samples
        (*i.e.* maximum likelihood fits) use the normal approximation.
    q : float in [0, 1]
        The quantile of which to compute the interval.
    digits : int
        Number of digits in the printed output if `verbose=True`.
    verbose : bool
        If True, print the output.
    hist : bool
        If True, include a sparkline histogram of the samples.
    filter_kws : dict of {'items', 'like', 'regex'} -> str
        Dictionary of a single kwarg from `pd.filter`. Acts on the rows.

    Returns
    -------
    result : DataFrame
        A DataFrame with a row for each variable, and columns for mean,
        standard deviation, and low/high percentiles of the variable.
    """
    if not isinstance(
            obj,
            (PostModel, xr.DataArray, xr.Dataset, pd.DataFrame, np.ndarray)
            ):
        raise TypeError(f"`obj` of type '{type(obj)}' is unsupported!")

    a = (1-q)/2
    pp = 100*np.array([a, 1-a])  # percentiles for printing
    cols = ['mean', 'std', f"{pp[0]:g}%", f"{pp[1]:g}%"]
    title = None

    if isinstance(obj, xr.DataArray):
        obj = obj.to_dataset(name=obj.name or 'var')

    if isinstance(obj, PostModel):
        if obj.samples is not None:
            obj = obj.samples
        else:
            # Normal approximation about the maximum likelihood estimate
            z = stats.norm.ppf(1 - a)
            lo = obj.coef - z * obj.std
            hi = obj.coef + z * obj.std
            df = pd.concat([obj.coef, obj.std, lo, hi], axis=1)
            df.columns = cols
            if hist:
                df['histogram'] = sparklines_from_norm(obj.coef, obj.std)

    # Dataset of data points (i.e. posterior distribution)
    if isinstance(obj, xr.Dataset):
        tf = dataset_to_frame(obj)
        title = (f"'DataFrame': {len(tf)} obs."
                 f" of {len(obj.data_vars)} variables:")
        df = pd.concat([tf.mean(), tf.std(), tf.quantile([a, 1-a]).T], axis=1)
        df.columns = cols
        if hist:
            df['histogram'] = sparklines_from_dataframe(tf)

    # DataFrame of data points
    if isinstance(obj, pd.DataFrame):
        obj = obj.select_dtypes(include=np.number)
        title = f"'DataFrame': {obj.shape[0]:d} obs. of {obj.shape[1]} variables:"
        df = pd.DataFrame()
        df['mean'] = obj.mean()
        df['std'] = obj.std()
        for i in range(2):
            df[cols[2+i]] = obj.apply(lambda x: np.nanpercentile(x, pp[i]))
        if hist:
            df['histogram'] = sparklines_from_dataframe(obj)

    # Numpy array of data points
    if isinstance(obj, np.ndarray):
        obj = np.atleast_2d(obj.T).T
        title = f"'ndarray': {obj.shape[0]:d} obs. of {obj.shape[1]} variables:"
        vals = np.vstack([np.nanmean(obj, axis=0),
                          np.nanstd(obj, axis=0),
                          np.nanpercentile(obj, pp[0], axis=0),
                          np.nanpercentile(obj, pp[1], axis=0)]).T
        df = pd.DataFrame(vals, columns=cols)
        if hist:
            df['histogram'] = sparklines_from_array(obj)

    if filter_kws is not None:
        df = df.filter(**filter_kws, axis='rows')

    if verbose:
        if title is not None:
            print(title)
        with pd.option_context('display.float_format',
                               f"{{:.{digits}f}}".format):
            print(df)

    return df


# -----------------------------------------------------------------------------
#         Coefficient tables
# -----------------------------------------------------------------------------
def _model_names(models, mnames=None):
    """Return a unique name for each model.

    Defaults to each model's spec label. Models that share a label, *e.g.*
    one specification fit under different priors, are numbered by their
    position in `models`.
    """
    if mnames is None:
        labels = [m.spec.label if getattr(m, 'spec', None) is not None
                  else f"model_{i}" for i, m in enumerate(models)]
        counts = pd.Series(labels).value_counts()
        mnames = [f"{x}_{i}" if counts[x] > 1 else x
                  for i, x in enumerate(labels)]

    # Model names must be strings for plotting to work properly!
    mnames = [str(x) for x in mnames]

    if len(mnames) != len(models):
        raise ValueError(f"Got {len(mnames)} names for {len(models)}"
                         ' models!')

    dups = sorted({x for x in mnames if mnames.count(x) > 1})
    if dups:
        raise ValueError(f"Model names must be unique, got {dups}!")

    return mnames


def coef_table(models, mnames=None, params=None, hist=False,
               q=config.INTERVAL):
    """Create a summary table of coefficients in each model.

    .. note:: ``coef_table`` is just a concatenation of ``precis`` outputs,
        so that maximum likelihood and MCMC fits may be compared side by side.

    Parameters
    ----------
    models : list of `PostModel`
        The models over which to summarize.
    mnames : list of str, optional
        Names of the models. Defaults to each model's spec label,
        numbered if any labels repeat.
    params : list of str, optional
        Names of specific parameters to return, *e.g.* ['b', 'sd_judge'].
    hist : bool, optional
        If True, include sparkline histograms in the table.

    Returns
    -------
    ct : pd.DataFrame
        DataFrame with (param, model) index, and the coefficients, their
        standard deviations and intervals as columns.
    """
    models = list(models)
    mnames = _model_names(models, mnames)

    df = pd.concat(
        [precis(m, q=q, verbose=False, hist=hist) for m in models],
        keys=mnames,
        names=['model', 'param']
    )
    df = (df.rename({'mean': 'coef'}, axis='columns')
            .reorder_levels(['param', 'model'])
          )
    if params is not None:
        # Silly workaround since df.filter does not work on MultiIndex.
        df = df.reset_index(level='model')
        tf = [df.filter(regex=rf"^{p}(\[.*\])?$", axis='rows')
              for p in params]
        df = pd.concat(tf).set_index('model', append=True)
    return df.sort_index()


def plot_coef_table(ct, fignum=None):
    """Plot the table of coefficients from `coef_table`.

    Parameters
    ----------
    ct : DataFrame
        Coefficient table output from `coef_table`.
    fignum : int, optional
        Figure number in which to plot the coefficients. If the figure exists,
        it will be cleared. If no figure exists, a new one will be created.

    Returns
    -------
    fig, ax : Figure and Axes where the plot was made.
    """
    fig = plt.figure(fignum, clear=True, constrained_layout=True)
    ax = fig.add_subplot()

    params = ct.index.get_level_values('param').unique()
    models = ct.index.get_level_values('model').unique()
    colors = sns.color_palette(n_colors=len(models))
    ci = ct.filter(like='%').columns

    # Dodge each model about the parameter row
    offsets = 0.3 * (np.arange(len(models)) - (len(models) - 1) / 2)
    offsets /= max(1, len(models) - 1)
    y = pd.Series(np.arange(len(params)), index=params)

    for model, dy, c in zip(models, offsets, colors):
        tf = ct.xs(model, level='model').reindex(params).dropna(how='all')
        yc = y[tf.index] + dy
        errs = tf[ci].sub(tf['coef'], axis='rows').abs().T.values
        ax.errorbar(tf['coef'], yc, xerr=errs, fmt='o', c=c, label=model)

    ax.axvline(0, ls='--', c='k', lw=1, alpha=0.5)
    ax.set(yticks=y.values,
           yticklabels=params,
           ylabel='param',
           xlabel='coef')
    ax.invert_yaxis()

    if len(models) > 1:
        ax.legend(loc='upper left', bbox_to_anchor=(1, 1))

    return fig, ax


# -----------------------------------------------------------------------------
#         Information Criteria Functions
# -----------------------------------------------------------------------------
def _loglik(model):
    """Return the pointwise log-likelihood samples of a fitted model."""
    idata = getattr(model, 'idata', None)
    if idata is None or 'log_likelihood' not in idata.groups():
        raise TypeError('Information criteria require samples of the'
                        ' pointwise log-likelihood, *i.e.* an MCMC fit.')
    return idata.log_likelihood


def lppd(model=None, loglik=None, var_names=None):
    r"""Compute the log pointwise predictive density for a model.

    The lppd is defined as follows:

    .. math::
        \text{lppd}(y, \Theta) = \sum_i \log \frac{1}{S} \sum_s p(y_i | \Theta_s)

    where :math:`S` is the number of samples, and :math:`\Theta_s` is the
    :math:`s`-th set of sampled parameter values in the posterior distribution.

    Parameters
    ----------
    model : :obj:`BayesFit`
        The fitted model object. If ``loglik`` is not given, it will be taken
        from the model.
    loglik : xarray.Dataset (chain, draw, N)
        The log-likelihood of each observed variable in the model.
    var_names : sequence of str
        List of observed variables. Defaults to all of them.

    Returns
    -------
    result : dict like {var_name: (N,) ndarray}
        The pointwise lppd for each observed variable.
    """
    if model is None and loglik is None:
        raise ValueError('One of `model` or `loglik` must be given!')

    if loglik is None:
        loglik = _loglik(model)

    if 'chain' not in loglik.dims:
        loglik = loglik.expand_dims('chain')

    Ns = loglik.sizes['chain'] * loglik.sizes['draw']

    if var_names is None:
        var_names = loglik.keys()

    return {v: logsumexp(loglik[v], dim=('chain', 'draw')) - np.log(Ns)
            for v in var_names}


def WAIC(model=None, loglik=None, var_names=None, pointwise=False):
    r"""Compute the Widely Applicable Information Criteria for the model.

    The WAIC is defined as:

    .. math::
        \text{WAIC}(y, \Theta) = -2 \left(
            \text{lppd}
            - \sum_i \var_\Theta \log p(y_i | \Theta)
        \right)

    An estimate of the standard error for out-of-sample deviance is:

    .. math::
        s_{\text{WAIC}} = \sqrt{ N \var\[-2 (\text{lppd}_i - p_i) \] }

    Parameters
    ----------
    model : :obj:`BayesFit`
        The fitted model object. If ``loglik`` is not given, it will be taken
        from the model.
    loglik : xarray.Dataset (chain, draw, N)
        The log-likelihood of each observed variable in the model.
    var_names : sequence of str
        List of observed variables. Defaults to all of them.
    pointwise : bool
        If True, return a vector of length `N` for each output variable, where
        `N` is the number of data points for that variable.

    Returns
    -------
    result : dict like {var_name: WAIC}
        A Series (or DataFrame if `pointwise`) of the WAIC, lppd, penalty and
        standard error for each observed variable.
    """
    if model is None and loglik is None:
        raise ValueError('One of `model` or `loglik` must be given!')

    if loglik is None:
        loglik = _loglik(model)

    if 'chain' not in loglik.dims:
        loglik = loglik.expand_dims('chain')

    the_lppd = lppd(loglik=loglik, var_names=var_names)

    out = dict()
    for v in the_lppd:
        penalty = loglik[v].var(dim=('chain', 'draw')).values
        waic_vec = -2 * (the_lppd[v] - penalty)
        n_cases = np.prod(loglik[v].shape[2:])  # ASSUMES (chain, draw, ...)
        std_err = (n_cases * np.var(waic_vec))**0.5

        if pointwise:
            lppd_w, w, p = the_lppd[v], waic_vec, penalty
        else:
            lppd_w, w, p = the_lppd[v].sum(), waic_vec.sum(), penalty.sum()

        d = dict(WAIC=w, lppd=lppd_w, penalty=p, SE=std_err)
        out[v] = pd.DataFrame(d) if pointwise else pd.Series(d)

    return out


def LOOIS(model, var_names=None, pointwise=False, warn=True):
    """Compute the Pareto-smoothed Importance Sampling Leave-One-Out
    Cross-Validation score of the model.

    Parameters
    ----------
    model : :obj:`BayesFit`
        The fitted model object.
    var_names : sequence of str
        List of observed variables. Defaults to all of them.
    pointwise : bool
        If True, return a vector of length `N` for each output variable,
        including the Pareto shape `pareto_k` of each observation.
    warn : bool
        If True, issue a `ConvergenceWarning` naming the observations whose
        Pareto k exceeds `config.PARETO_K_THRESHOLD`. The PSIS estimate is
        unreliable for them, and they are highly influential.

    Returns
    -------
    result : dict like {var_name: LOOIS}
        A dictionary of the LOOIS for each observed variable.
    """
    loglik = _loglik(model)
    if var_names is None:
        var_names = list(loglik.data_vars)

    out = dict()
    for v in var_names:
        with warnings.catch_warnings():
            # NOTE we report the high Pareto k values ourselves, by index.
            warnings.simplefilter('ignore', category=UserWarning)
            loo = az.loo(model.idata, pointwise=True, var_name=v)

        k = np.asarray(loo.pareto_k).ravel()
        bad = np.flatnonzero(k > config.PARETO_K_THRESHOLD)
        if warn and bad.size:
            label = getattr(getattr(model, 'spec', None), 'label', 'model')
            warnings.warn(f"{label}: Pareto k > {config.PARETO_K_THRESHOLD}"
                          f" for observations {bad.tolist()} of '{v}'."
                          ' These are highly influential, and PSIS is'
                          ' unreliable for them.', ConvergenceWarning)

        elpd = np.asarray(loo.loo_i) if pointwise else loo.elpd_loo
        d = dict(
            PSIS=-2*elpd,
            lppd=elpd,
            penalty=loo.p_loo,
            SE=2*loo.se,
        )
        if pointwise:
            d['pareto_k'] = k
        out[v] = pd.DataFrame(d) if pointwise else pd.Series(d)

    return out



# Alias
PSIS = LOOIS


def compare(models, mnames=None, ic='WAIC', sort=False, var_name='y',
            warn=True):
    """Create a comparison table of models based on information criteria.

    Lower values of the information criterion indicate better expected
    out-of-sample predictive accuracy.

    Parameters
    ----------
    models : list of `BayesFit`
        The models over which to summarize.
    mnames : list of str, optional
        Names of the models. Defaults to each model's spec label,
        numbered if any labels repeat.
    ic : str in {'WAIC', 'LOOIC', 'PSIS'}
        The name of the information criteria to use for comparison.
    sort : bool
        If True, sort the result by the difference in IC values.
    var_name : str
        The observed variable on which to compare the models.
    warn : bool
        If True and `ic` is PSIS, warn about influential observations with
        a high Pareto k. See `LOOIS`.

    Returns
    -------
    result : dict with {'ct', 'dSE_matrix'}
        'ct' : pd.DataFrame
            DataFrame of the information criteria and their standard errors,
            the difference from the best model and its standard error, the
            penalty term, and the Akaike weight of each model.
        'dSE_matrix' : pd.DataFrame
            A symmetric matrix of the standard errors of the difference in
            the pointwise information criteria of each pair of models.
    """
    models = list(models)
    M = len(models)
    if M < 2:
        raise ValueError('Need more than one model to compare!')

    if ic not in ['WAIC', 'LOOIC', 'PSIS']:
        raise ValueError(f"Unrecognized {ic = }! Use 'WAIC' or 'LOOIC'.")

    if ic == 'LOOIC':
        ic = 'PSIS'

    mnames = _model_names(models, mnames)

    Nobs = models[0].nobs
    if any([m.nobs != Nobs for m in models]):
        for name, m in zip(mnames, models):
            print(f"{name}: {m.nobs}")
        warnings.warn(
            'Different numbers of observations found for at least two'
            ' models. \nModel comparison is only valid for models fit to'
            ' exactly the same observations.'
        )

    if ic == 'WAIC':
        func = WAIC
    else:
        def func(m, pointwise=False, **kwargs):
            # Warn once per model, with the summary
            return LOOIS(m, pointwise=pointwise,
                         warn=(warn and not pointwise), **kwargs)

    diff_ic = f"d{ic}"

    df = pd.DataFrame(
        [func(m, var_names=[var_name])[var_name] for m in models],
        index=pd.Index(mnames, name='model'),
    ).drop('lppd', axis='columns')

    df[diff_ic] = df[ic] - df[ic].min()

    # Standard error of the difference in pointwise values
    pw = [func(m, var_names=[var_name], pointwise=True)[var_name][ic].values
          for m in models]
    dSE = pd.DataFrame(np.nan * np.empty((M, M)), index=mnames, columns=mnames)
    for i in range(M):
        for j in range(i+1, M):
            diff = pw[i] - pw[j]
            dSE.iloc[i, j] = dSE.iloc[j, i] = np.sqrt(len(diff) * np.var(diff))

    df['dSE'] = dSE[df[diff_ic].idxmin()]

    df['weight'] = np.exp(-0.5 * df[diff_ic])
    df['weight'] /= df['weight'].sum()

    if sort:
        df = df.sort_values(diff_ic)

    df = df[[ic, 'SE', diff_ic, 'dSE', 'penalty', 'weight']]

    return dict(ct=df, dSE_matrix=dSE)


def plot_compare(ct, fignum=None):
    """Plot the table of information criteria from `compare`.

    Parameters
    ----------
    ct : DataFrame
        The 'ct' output of `compare`.
    fignum : int, optional
        Figure number in which to plot. If the figure exists, it will be
        cleared. If no figure exists, a new one will be created.

    Returns
    -------
    fig, ax : Figure and Axes where the plot was made.
    """
    fig = plt.figure(fignum, clear=True, constrained_layout=True)
    ax = fig.add_subplot()

    ic = 'WAIC' if 'WAIC' in ct.columns else 'PSIS'
    y = np.arange(len(ct))

    ax.errorbar(ct[ic], y, xerr=ct['SE'], fmt='o', c='k',
                mfc='white', label=ic)

    # In-sample deviance
    ax.scatter(ct[ic] - 2*ct['penalty'], y, marker='o', c='k',
               label='In-Sample Deviance')

    # The standard error of the *difference* from the best model
    # NOTE the best model has no dSE with itself
    ax.errorbar(ct[ic], y - 0.2, xerr=ct['dSE'].fillna(0),
                fmt='^', c='C3', ms=4, lw=1, label='dSE')

    ax.axvline(ct[ic].min(), ls='--', c='k', lw=1, alpha=0.5)
    ax.set(yticks=y,
           yticklabels=ct.index,
           xlabel=f"deviance ({ic})")
    ax.invert_yaxis()
    ax.legend(loc='upper left', bbox_to_anchor=(1, 1))

    return fig, ax

# =============================================================================
# =============================================================================
