#!/usr/bin/env python3
# =============================================================================
#     File: fits.py
#  Created: 2026-10-18 12:02
#   Author: Bernie Roesler
#
"""
Base class of all fitted ordinal models.
"""
# =============================================================================

import numpy as np
import pandas as pd

from abc import ABC


class PostModel(ABC):
    """
    Attributes
    ----------
    coef : (M,) Series
        Point estimates of the parameters, *e.g.* 'Intercept[1|2]',
        'b[tempwarm]', 'sd_judge'.
    cov : (M, M) DataFrame
        Covariance matrix of the parameters.
    std : (M,) Series
        Standard deviation. The square root of the diagonal of `cov`.
    data : DataFrame
        The observations used to fit the model.
    spec : :class:`ModelSpec`
        The model specification.
    family : str
        The ordinal family, 'cumulative' or 'acat'.
    link : str
        The link function.
    loglik : float
        The log-likelihood of the data at the estimate.
    samples : xarray.Dataset or None
        Samples of the model parameters, if the fit is sample-based.
    """
    _descrip = ""

    def __init__(self, *, coef=None, cov=None, data=None, spec=None,
                 family='cumulative', link='logit', loglik=None,
                 samples=None, **kwargs):
        self.coef = coef
        self.cov = cov
        self.data = data
        self.spec = spec
        self.family = family
        self.link = link
        self.loglik = loglik
        self.samples = samples
        for k, v in kwargs.items():
            setattr(self, k, v)

    @property
    def std(self):
        return pd.Series(np.sqrt(np.diag(self.cov)), index=self.cov.index)

    @property
    def corr(self):
        D = pd.DataFrame(
            np.diag(1 / self.std),
            index=self.cov.index,
            columns=self.cov.columns,
        )
        return D @ self.cov @ D

    @property
    def thresholds(self):
        return self.coef.filter(like='Intercept[')

    @property
    def n_thresholds(self):
        return len(self.thresholds)

    @property
    def nobs(self):
        return len(self.data)

    @property
    def n_params(self):
        return len(self.coef)

    def deviance(self):
        """Return the deviance of the model."""
        return -2 * self.loglik

    def AIC(self):
        """Return the Akaike information criteria of the model."""
        return self.deviance() + 2 * self.n_params

    def __str__(self):
        with pd.option_context('display.float_format', '{:.4f}'.format):
            meanstr = repr(self.coef)

        loglikstr = "NA" if self.loglik is None else f"{self.loglik:.4f}"

        out = (
            f"{self._descrip}\n\n"
            f"Family: {self.family} ({self.link})\n"
            f"Formula: {self.spec}\n"
            f"Observations: {self.nobs}\n\n"
            f"Estimates:\n{meanstr}\n\n"
            f"Log-likelihood: {loglikstr}\n"
        )
        return out

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.__str__()}>"

# =============================================================================
# =============================================================================
