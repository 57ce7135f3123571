#!/usr/bin/env python3
# =============================================================================
#     File: frequentist.py
#  Created: 2026-10-18 12:30
#   Author: Bernie Roesler
#
r"""
Maximum-likelihood cumulative link models, with and without a random
intercept.

The cumulative link mixed model is

.. math::
    P(y_i \le k \mid u_j) = F(\theta_k - x_i^T \beta - u_{j[i]})
    u_j \sim \mathcal{N}(0, \sigma_u^2)

The random intercepts are integrated out of the likelihood with
Gauss-Hermite quadrature, and the marginal likelihood is maximized over the
unconstrained parameters

.. math::
    (\theta_1, \log(\theta_2 - \theta_1), \dots, \beta, \log \sigma_u)

Standard errors come from the numerical Hessian on the natural scale.
"""
# =============================================================================

import warnings

import numpy as np
import pandas as pd

from numpy.polynomial.hermite import hermgauss
from scipy import linalg, optimize, stats
from scipy.special import logsumexp
from statsmodels.miscmodels.ordinal_model import OrderedModel
from statsmodels.tools.numdiff import approx_hess3

from .fits import PostModel
from .formula import (
    design_matrix,
    group_index,
    match_levels,
    response_codes,
    threshold_labels,
)
from .links import LINKS, cdf, check_link, cumulative_probs, ppf

_TINY = np.finfo(float).tiny


class ClmFit(PostModel):
    _descrip = "Cumulative link model fit by maximum likelihood."
    __doc__ = _descrip + "\n" + PostModel.__doc__

    @property
    def beta(self):
        return self.coef.filter(like='b[')

    @property
    def sd(self):
        """Standard deviation of the random intercept, if any."""
        if self.spec.group is None:
            return None
        return self.coef[f"sd_{self.spec.group}"]

    def summary(self):
        """Return the table of estimates, standard errors and Wald tests."""
        est = self.coef
        se = self.std
        z = est / se
        p = 2 * stats.norm.sf(np.abs(z))
        df = pd.DataFrame({'estimate': est, 'std_err': se, 'z': z, 'p': p})
        # The Wald test is meaningless for a variance component
        df.loc[df.index.str.startswith('sd_'), ['z', 'p']] = np.nan
        return df

    def predict_proba(self, newdata=None):
        """Predict the category probabilities with random effects at 0.

        Parameters
        ----------
        newdata : DataFrame, optional
            Values of the fixed effects. Defaults to the fitted data.

        Returns
        -------
        result : (N, K) DataFrame
            Probability of each response level for each row of `newdata`.
        """
        if newdata is None:
            newdata = self.data
        newdata = match_levels(newdata, self.data, self.spec.fixed)
        X = _align(design_matrix(newdata, self.spec.fixed), self._X)
        eta = X.values @ self.beta.values
        probs = cumulative_probs(self.thresholds.values, eta, self.link)
        return pd.DataFrame(probs, index=newdata.index, columns=self.levels)

    def ranef(self):
        """Conditional modes and conditional standard deviations of the
        random intercepts, given the estimated parameters.

        Returns
        -------
        result : DataFrame
            Indexed by the levels of the grouping factor, with columns
            'mode' and 'cond_sd'.
        """
        if self.spec.group is None:
            raise ValueError('Model has no random effects!')

        theta = self.thresholds.values
        eta = self._X.values @ self.beta.values
        sd = self.sd

        out = []
        for j, level in enumerate(self.group_levels):
            mask = self._g == j

            def f(b):
                p = _obs_probs(theta, eta[mask] + b, self._y[mask], self.link)
                return (-np.sum(np.log(np.clip(p, _TINY, None)))
                        + 0.5 * (b / sd)**2)

            mode = optimize.minimize_scalar(f).x
            H = approx_hess3(np.r_[mode], lambda v: f(v[0]))
            out.append((level, mode, 1 / np.sqrt(H[0, 0])))

        return (
            pd.DataFrame(out, columns=[self.spec.group, 'mode', 'cond_sd'])
            .set_index(self.spec.group)
        )


# -----------------------------------------------------------------------------
#         Likelihood
# -----------------------------------------------------------------------------
def _obs_probs(theta, eta, y, link):
    """Probability of each observed category."""
    θ_ext = np.r_[-np.inf, theta, np.inf]
    return cdf(θ_ext[y + 1] - eta, link) - cdf(θ_ext[y] - eta, link)


def _negloglik(theta, beta, sd, y, X, g=None, n_groups=0,
               link='logit', n_quad=20):
    """Minus the (marginal) log-likelihood of the data."""
    if np.any(np.diff(theta) <= 0):
        return np.inf

    eta = X @ beta

    if sd is None:
        p = _obs_probs(theta, eta, y, link)
        return -np.sum(np.log(np.clip(p, _TINY, None)))

    if sd <= 0:
        return np.inf

    # ∫ f(u) N(u | 0, σ²) du ≈ Σ_q w_q / √π f(√2 σ x_q)
    nodes, weights = hermgauss(n_quad)
    u = np.sqrt(2) * sd * nodes                                 # (Q,)
    log_w = np.log(weights) - 0.5 * np.log(np.pi)

    θ_ext = np.r_[-np.inf, theta, np.inf]
    hi = (θ_ext[y + 1] - eta)[:, np.newaxis] - u                # (N, Q)
    lo = (θ_ext[y] - eta)[:, np.newaxis] - u
    logp = np.log(np.clip(cdf(hi, link) - cdf(lo, link), _TINY, None))

    # Sum the log-likelihood of all observations within each group
    group_logp = np.zeros((n_groups, n_quad))
    np.add.at(group_logp, g, logp)

    return -np.sum(logsumexp(group_logp + log_w, axis=1))


def _pack(theta, beta, sd=None):
    """Map natural parameters to the unconstrained optimization space."""
    u = [theta[:1], np.log(np.diff(theta)), beta]
    if sd is not None:
        u.append(np.r_[np.log(sd)])
    return np.concatenate(u)


def _unpack(u, n_theta, n_beta, has_group):
    theta = np.cumsum(np.r_[u[0], np.exp(u[1:n_theta])])
    beta = u[n_theta:n_theta + n_beta]
    sd = np.exp(u[n_theta + n_beta]) if has_group else None
    return theta, beta, sd


def _start_thresholds(y, K, link):
    """Maximum-likelihood thresholds of the model with no predictors."""
    counts = np.bincount(y, minlength=K)
    cum = np.cumsum(counts)[:-1] / counts.sum()
    return ppf(cum, link)


def _prepare(df, spec, link):
    check_link(link)
    if spec.category_specific:
        raise ValueError('Category-specific effects are not supported for'
                         ' the cumulative family. Use `bayes.fit(...,'
                         " family='acat')`.")
    y, levels = response_codes(df, spec.response)
    counts = np.bincount(y, minlength=len(levels))
    if np.any(counts == 0):
        # The MLE of a threshold next to an empty category is infinite
        empty = [k for k, n in zip(levels, counts) if n == 0]
        raise ValueError(f"Response levels {empty} are never observed."
                         ' Drop them from the categories, or fit the'
                         ' model with `bayes.fit`.')
    X = design_matrix(df, spec.fixed)
    return y, levels, X


def _coef_index(levels, X, group=None):
    names = ([f"Intercept[{x}]" for x in threshold_labels(levels)]
             + [f"b[{x}]" for x in X.columns])
    if group is not None:
        names.append(f"sd_{group}")
    return names


def _covariance(nll, est, names):
    """Invert the numerical Hessian of `nll` at `est`."""
    H = approx_hess3(est, nll)
    try:
        cov = linalg.inv(H)
    except linalg.LinAlgError:
        warnings.warn('Hessian is singular; standard errors are unavailable.')
        cov = np.full_like(H, np.nan)
    return pd.DataFrame(cov, index=names, columns=names)


def _align(X, X_fit):
    """Ensure new design matrices have exactly the fitted columns."""
    return X.reindex(columns=X_fit.columns, fill_value=0.0)


# -----------------------------------------------------------------------------
#         Model fitting
# -----------------------------------------------------------------------------
def clm(df, spec, link='logit'):
    """Fit a cumulative link model with fixed effects only.

    Parameters
    ----------
    df : DataFrame
        The data.
    spec : :class:`ModelSpec`
        The model specification. Must not include a grouping factor.
    link : str in {'logit', 'probit', 'cloglog'}
        The link function.

    Returns
    -------
    result : ClmFit
        The fitted model.
    """
    if spec.group is not None:
        raise ValueError(f"{spec.formula!r} has a random effect."
                         ' Use `clmm` instead.')

    y, levels, X = _prepare(df, spec, link)
    K = len(levels)

    if X.shape[1] == 0:
        # Closed form: the thresholds reproduce the cumulative proportions
        theta = _start_thresholds(y, K, link)
        beta = np.zeros(0)
    else:
        mod = OrderedModel(
            pd.Series(y, index=df.index),
            X,
            distr=LINKS[link][2],
        )
        res = mod.fit(method='bfgs', disp=False)
        if not res.mle_retvals['converged']:
            warnings.warn(f"{spec.formula!r}: optimization did not converge.")
        theta = mod.transform_threshold_params(res.params)[1:-1]
        beta = res.params[X.columns].values

    def nll(v):
        return _negloglik(v[:K-1], v[K-1:], None, y, X.values, link=link)

    est = np.r_[theta, beta]
    names = _coef_index(levels, X)

    return ClmFit(
        coef=pd.Series(est, index=names),
        cov=_covariance(nll, est, names),
        data=df,
        spec=spec,
        family='cumulative',
        link=link,
        loglik=-nll(est),
        levels=levels,
        _y=y,
        _X=X,
    )


def clmm(df, spec, link='logit', n_quad=20, start=None):
    """Fit a cumulative link mixed model with a random intercept.

    Parameters
    ----------
    df : DataFrame
        The data.
    spec : :class:`ModelSpec`
        The model specification, with a grouping factor.
    link : str in {'logit', 'probit', 'cloglog'}
        The link function.
    n_quad : int
        Number of Gauss-Hermite quadrature nodes.
    start : dict, optional
        Starting values with keys 'theta', 'beta' and 'sd'.

    Returns
    -------
    result : ClmFit
        The fitted model.
    """
    if spec.group is None:
        raise ValueError(f"{spec.formula!r} has no random effect."
                         ' Use `clm` instead.')

    y, levels, X = _prepare(df, spec, link)
    g, group_levels = group_index(df, spec.group)
    K, P, J = len(levels), X.shape[1], len(group_levels)
    Xv = X.values

    opts = dict(y=y, X=Xv, g=g, n_groups=J, link=link, n_quad=n_quad)

    start = dict(
        theta=_start_thresholds(y, K, link),
        beta=np.zeros(P),
        sd=1.0,
    ) | (start or dict())

    def f(u):
        theta, beta, sd = _unpack(u, K-1, P, True)
        return _negloglik(theta, beta, sd, **opts)

    res = optimize.minimize(
        f,
        _pack(np.asarray(start['theta'], dtype=float),
              np.asarray(start['beta'], dtype=float),
              start['sd']),
        method='BFGS',
    )
    if not res.success:
        warnings.warn(f"{spec.formula!r}: optimization did not converge:"
                      f" {res.message}")

    theta, beta, sd = _unpack(res.x, K-1, P, True)

    def nll(v):
        return _negloglik(v[:K-1], v[K-1:K-1+P], v[-1], **opts)

    est = np.r_[theta, beta, sd]
    names = _coef_index(levels, X, spec.group)

    return ClmFit(
        coef=pd.Series(est, index=names),
        cov=_covariance(nll, est, names),
        data=df,
        spec=spec,
        family='cumulative',
        link=link,
        loglik=-res.fun,
        levels=levels,
        group_levels=group_levels,
        n_quad=n_quad,
        _y=y,
        _X=X,
        _g=g,
    )


def anova(*fits, mnames=None):
    """Likelihood ratio tests between nested models.

    Parameters
    ----------
    *fits : ClmFit
        Two or more models fit to the same observations.
    mnames : list of str, optional
        Names of the models. Defaults to their formulas.

    Returns
    -------
    result : DataFrame
        One row per model, ordered by the number of parameters, with the
        likelihood ratio statistic comparing each model to the previous one.
    """
    if len(fits) < 2:
        raise ValueError('Need more than one model to compare!')

    if len({f.nobs for f in fits}) > 1:
        raise ValueError('Models were not all fit to the same number of'
                         ' observations.')

    if mnames is None:
        mnames = [f.spec.label for f in fits]

    order = np.argsort([f.n_params for f in fits], kind='stable')
    fits = [fits[i] for i in order]
    mnames = [str(mnames[i]) for i in order]

    df = pd.DataFrame(
        {
            'no.par': [f.n_params for f in fits],
            'AIC': [f.AIC() for f in fits],
            'logLik': [f.loglik for f in fits],
        },
        index=pd.Index(mnames, name='model'),
    )
    df['LR.stat'] = 2 * df['logLik'].diff()
    df['df'] = df['no.par'].diff()
    df['Pr(>Chisq)'] = stats.chi2.sf(df['LR.stat'], df['df'])
    return df

# =============================================================================
# =============================================================================
