#!/usr/bin/env python3
# =============================================================================
#     File: links.py
#  Created: 2026-10-18 10:02
#   Author: Bernie Roesler
#
"""
Link functions and category probabilities for ordinal models.
"""
# =============================================================================

import numpy as np

from scipy import stats
from scipy.special import expit, logit, softmax

FAMILIES = ('cumulative', 'acat')


def _cloglog_cdf(x):
    return -np.expm1(-np.exp(x))


def _cloglog_ppf(p):
    return np.log(-np.log1p(-p))


# name -> (cdf, ppf, scipy distribution for statsmodels.OrderedModel)
LINKS = {
    'logit': (expit, logit, 'logit'),
    'probit': (stats.norm.cdf, stats.norm.ppf, 'probit'),
    'cloglog': (_cloglog_cdf, _cloglog_ppf, stats.gumbel_l),
}


def check_link(link, family='cumulative'):
    """Raise a ValueError for unsupported (family, link) combinations."""
    if family not in FAMILIES:
        raise ValueError(f"Unrecognized {family = }! Use one of {FAMILIES}.")
    if link not in LINKS:
        raise ValueError(f"Unrecognized {link = }! Use one of {list(LINKS)}.")
    if family == 'acat' and link != 'logit':
        raise ValueError("The 'acat' family only supports the 'logit' link.")
    return family, link


def cdf(x, link='logit'):
    """Inverse link: the latent-variable CDF evaluated at `x`."""
    return LINKS[link][0](x)


def ppf(p, link='logit'):
    """Link function: the quantile of the latent distribution at `p`."""
    return LINKS[link][1](p)


def cumulative_probs(thresholds, eta, link='logit'):
    r"""Category probabilities of a cumulative-link model.

    .. math::
        P(y \le k) = F(\kappa_k - \eta)

    Parameters
    ----------
    thresholds : (..., K-1) array_like
        Ordered thresholds (cutpoints). Leading dimensions, e.g. posterior
        samples, broadcast against those of `eta`.
    eta : (..., N) array_like
        The linear predictor for each observation.
    link : str in {'logit', 'probit', 'cloglog'}
        The link function.

    Returns
    -------
    result : (..., N, K) ndarray
        Probability of each of the K categories for each observation.
    """
    thresholds = np.asarray(thresholds, dtype=float)
    eta = np.asarray(eta, dtype=float)
    cum = cdf(thresholds[..., np.newaxis, :] - eta[..., np.newaxis], link)
    shape = cum.shape[:-1] + (1,)
    cum = np.concatenate([np.zeros(shape), cum, np.ones(shape)], axis=-1)
    return np.diff(cum, axis=-1)


def acat_probs(thresholds, eta, cs_eta=None):
    r"""Category probabilities of an adjacent-category logit model.

    .. math::
        \log \frac{P(y = k+1)}{P(y = k)} = \eta + \eta^{cs}_k - \kappa_k

    Parameters
    ----------
    thresholds : (..., K-1) array_like
        The thresholds. These need not be ordered.
    eta : (..., N) array_like
        The linear predictor shared by all categories.
    cs_eta : (..., N, K-1) array_like, optional
        The category-specific part of the linear predictor.

    Returns
    -------
    result : (..., N, K) ndarray
        Probability of each of the K categories for each observation.
    """
    thresholds = np.asarray(thresholds, dtype=float)
    eta = np.asarray(eta, dtype=float)
    steps = eta[..., np.newaxis] - thresholds[..., np.newaxis, :]
    if cs_eta is not None:
        steps = steps + np.asarray(cs_eta, dtype=float)
    shape = steps.shape[:-1] + (1,)
    logits = np.concatenate([np.zeros(shape), np.cumsum(steps, axis=-1)],
                            axis=-1)
    return softmax(logits, axis=-1)


def category_probs(thresholds, eta, family='cumulative', link='logit',
                   cs_eta=None):
    """Dispatch to the category probabilities of the given family."""
    family, link = check_link(link, family)
    if family == 'acat':
        return acat_probs(thresholds, eta, cs_eta=cs_eta)
    if cs_eta is not None:
        raise ValueError('Category-specific effects require the acat family.')
    return cumulative_probs(thresholds, eta, link=link)

# =============================================================================
# =============================================================================
