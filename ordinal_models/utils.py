#!/usr/bin/env python3
# =============================================================================
#     File: utils.py
#  Created: 2026-10-18 11:40
#   Author: Bernie Roesler
#
"""
  Description: Conversion and summary helpers for posterior samples.
"""
# =============================================================================

import itertools
import warnings

import numpy as np
import pandas as pd

from scipy import stats
from scipy.special import logsumexp as _logsumexp
from sparkline import sparkify

SAMPLE_DIMS = ('chain', 'draw')


def percentiles(data, q=0.89, **kwargs):
    r"""Compute the central interval containing probability `q`.

    .. note:: Equivalent to calling :math:`\mathtt{quantile(data, (a, 1-a))}`
        with

    .. math:: a = \frac{1 - q}{2}

    Parameters
    ----------
    data : array_like or xarray.DataArray
        The samples.
    q : float in [0, 1]
        Width of the interval.
    **kwargs
        Additional arguments to `numpy.quantile`. An xarray ``dim`` may be
        given in place of ``axis``.

    Returns
    -------
    percentiles : ndarray
        The low boundary is index 0, and the high boundary is index 1.
    """
    a = (1 - q) / 2
    if 'axis' in kwargs and 'dim' in kwargs:
        raise ValueError('Only one of `axis` or `dim` may be given!')
    if 'dim' in kwargs:
        kwargs['axis'] = data.get_axis_num(kwargs.pop('dim'))
    return np.quantile(data, (a, 1 - a), **kwargs)


def logsumexp(a, dim=None, **kwargs):
    """Compute the log of the sum of the exponentials of input elements.

    Parameters
    ----------
    a : array_like
        Input array.
    dim : str, Iterable of Hashable, or None, optional
        Name of dimension[s] along which to apply ``logsumexp``, *e.g.*,
        ``dim="x"`` or ``dim=["x", "y"]``. If None, reduce over all
        dimensions. If ``dim`` is given, ``axis`` will be ignored.
    **kwargs : Any
        Additional keyword arguments passed on to ``scipy.special.logsumexp``.

    See Also
    --------
    scipy.special.logsumexp
    """
    axis = kwargs.pop('axis', None)

    if dim is not None:
        if axis is not None:
            warnings.warn('Both `dim` and `axis` given, ignoring `axis`.')
        try:
            axis = a.get_axis_num(dim)
        except AttributeError:
            pass

    return _logsumexp(a, axis=axis, **kwargs)


def stack_samples(ds):
    """Stack (chain, draw) into a single leading 'sample' dimension."""
    if 'chain' not in ds.dims and 'draw' in ds.dims:
        ds = ds.expand_dims('chain')
    return ds.stack(sample=SAMPLE_DIMS).transpose('sample', ...)


def dataset_to_frame(ds):
    """Convert ArviZ Dataset to DataFrame by separating columns with
    multi-dimensional parameters, *e.g.* b (coef,) into b[tempwarm], ...

    Columns are labelled by the coordinate values of each non-sample
    dimension, so that a threshold vector with coordinates ['1|2', '2|3']
    becomes the columns 'Intercept[1|2]', 'Intercept[2|3]'.

    Parameters
    ----------
    ds : xarray.Dataset
        Dataset of samples with a 'draw' dimension.

    Returns
    -------
    result : pandas.DataFrame
        DataFrame with one row per sample and one column per scalar
        parameter.
    """
    if 'draw' not in ds.dims:
        raise TypeError("Expected dimension 'draw' in `ds`")

    ds = stack_samples(ds)

    dfs = list()
    for vname, da in ds.items():
        var_dims = [d for d in da.dims if d != 'sample']
        if not var_dims:
            dfs.append(pd.DataFrame({vname: da.values}))
            continue
        labels = [
            da.coords[d].values if d in da.coords else range(da.sizes[d])
            for d in var_dims
        ]
        columns = [
            f"{vname}[{', '.join(str(x) for x in idx)}]"
            for idx in itertools.product(*labels)
        ]
        data = da.values.reshape(da.sizes['sample'], -1)
        dfs.append(pd.DataFrame(data=data, columns=columns))

    df = pd.concat(dfs, axis=1)
    df.index.name = 'sample'
    return df


def sparklines_from_norm(means, stds, width=12, N=1000):
    """Generate list of sparklines from means and stds."""
    assert len(means) == len(stds)
    samp = stats.norm(np.c_[means], np.c_[stds]).rvs(size=(len(means), N))
    return [sparkify(np.histogram(s, bins=width)[0]) for s in samp]


def sparklines_from_dataframe(df, width=12):
    """Generate list of sparklines from a DataFrame."""
    sparklines = []
    for col in df:
        data = df[col].dropna()
        sparklines.append(sparkify(np.histogram(data, bins=width)[0]))
    return sparklines


def sparklines_from_array(arr, width=12):
    """Generate list of sparklines from an array of data."""
    sparklines = []
    for col in arr.T:
        data = col[np.isfinite(col)]
        sparklines.append(sparkify(np.histogram(data, bins=width)[0]))
    return sparklines

# =============================================================================
# =============================================================================
