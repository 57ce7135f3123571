#!/usr/bin/env python3
# =============================================================================
#     File: bayes.py
#  Created: 2026-10-18 13:50
#   Author: Bernie Roesler
#
r"""
Bayesian ordinal regression models, sampled with NUTS via pymc.

Two families are supported:

cumulative :
    .. math::
        P(y_i \le k) = F(\kappa_k - \eta_i)

acat (adjacent category, logit link) :
    .. math::
        \log \frac{P(y_i = k+1)}{P(y_i = k)} = \eta_i + x_i^{cs} b^{cs}_k - \kappa_k

where the linear predictor is

.. math::
    \eta_i = x_i^T b + r_{j[i]}, \quad r_j = \sigma z_j, \quad z_j \sim \mathcal{N}(0, 1)

Both families have K - 1 thresholds :math:`\kappa` for K response levels.
"""
# =============================================================================

import warnings

import arviz as az
import numpy as np
import pandas as pd
import pymc as pm
import pytensor.tensor as pt
import seaborn as sns

from pathlib import Path

from . import config
from .diagnostics import (
    ConvergenceWarning,
    check_convergence,
    n_divergent,
    needs_refit,
    plot_trace,
)
from .fits import PostModel
from .formula import (
    design_matrix,
    group_index,
    match_levels,
    response_codes,
    threshold_labels,
)
from .links import category_probs, check_link
from .priors import default_priors
from .utils import SAMPLE_DIMS, dataset_to_frame, stack_samples

_META_KEYS = ('formula', 'family', 'link', 'priors', 'sample_prior')


def _param_names(spec):
    """Names of the reported model parameters."""
    names = ['Intercept']
    if spec.fixed:
        names.append('b')
    if spec.category_specific:
        names.append('bcs')
    if spec.group:
        names.append(f"sd_{spec.group}")
    return names


def _prior_classes(spec):
    """Parameter classes that appear in the model."""
    classes = ['Intercept']
    if spec.terms:
        classes.append('b')
    if spec.group:
        classes.append('sd')
    return classes


def _check_family(spec, family, link):
    family, link = check_link(link, family)
    if spec.category_specific and family != 'acat':
        raise ValueError('Category-specific effects are only supported by'
                         f" the 'acat' family, not '{family}'.")
    return family, link


# -----------------------------------------------------------------------------
#         Model building
# -----------------------------------------------------------------------------
def build_model(df, spec, family='cumulative', link='logit', priors=None,
                prior_only=False):
    """Build the pymc model of an ordinal regression.

    Parameters
    ----------
    df : DataFrame
        The data.
    spec : :class:`ModelSpec`
        The model specification.
    family : str in {'cumulative', 'acat'}
        The ordinal family.
    link : str in {'logit', 'probit', 'cloglog'}
        The link function. The 'acat' family only supports 'logit'.
    priors : :class:`PriorSpec`, optional
        Priors on each parameter class. Defaults to `default_priors()`.
    prior_only : bool
        If True, leave out the likelihood, so that sampling the model draws
        from the prior.

    Returns
    -------
    model : pm.Model
        The model, with observed variable 'y' unless `prior_only`.
    """
    family, link = _check_family(spec, family, link)
    if priors is None:
        priors = default_priors()

    y, levels = response_codes(df, spec.response)
    N, K = len(y), len(levels)
    X = design_matrix(df, spec.fixed)
    X_cs = design_matrix(df, spec.category_specific)

    coords = dict(obs=np.arange(N), threshold=threshold_labels(levels))
    if X.shape[1]:
        coords['coef'] = list(X.columns)
    if X_cs.shape[1]:
        coords['cs_coef'] = list(X_cs.columns)
    if spec.group:
        g, g_levels = group_index(df, spec.group)
        coords[spec.group] = g_levels

    with pm.Model(coords=coords) as model:
        # The cutpoints, constrained to be ordered for the cumulative family
        κ = priors['Intercept'].to_pymc(
            'Intercept',
            ordered=(family == 'cumulative'),
            dims='threshold',
            initval=np.linspace(-2, 2, K-1),
        )

        # The linear model
        η = pt.zeros(N)
        if X.shape[1]:
            X_data = pm.Data('X', X.values, dims=('obs', 'coef'))
            β = priors['b'].to_pymc('b', dims='coef')
            η = η + pt.dot(X_data, β)

        if spec.group:
            # Non-centered random intercept
            g_idx = pm.Data(f"{spec.group}_idx", g, dims='obs')
            σ = priors['sd'].to_pymc(f"sd_{spec.group}", half=True)
            z = pm.Normal(f"z_{spec.group}", 0, 1, dims=spec.group)
            r = pm.Deterministic(f"r_{spec.group}", z * σ, dims=spec.group)
            η = η + r[g_idx]

        if X_cs.shape[1]:
            # One coefficient per threshold
            X_cs_data = pm.Data('X_cs', X_cs.values, dims=('obs', 'cs_coef'))
            β_cs = priors['b'].to_pymc('bcs', dims=('cs_coef', 'threshold'))

        if prior_only:
            return model

        if family == 'cumulative':
            if link == 'logit':
                pm.OrderedLogistic('y', cutpoints=κ, eta=η, compute_p=False,
                                   observed=y, dims='obs')
            elif link == 'probit':
                pm.OrderedProbit('y', cutpoints=κ, eta=η, sigma=1,
                                 compute_p=False, observed=y, dims='obs')
            else:
                z_k = κ[np.newaxis, :] - η[:, np.newaxis]
                cum = 1 - pt.exp(-pt.exp(z_k))
                p = pt.diff(
                    pt.concatenate([pt.zeros((N, 1)), cum, pt.ones((N, 1))],
                                   axis=1),
                    axis=1,
                )
                pm.Categorical('y', p=p, observed=y, dims='obs')
        else:
            steps = η[:, np.newaxis] - κ[np.newaxis, :]  # (N, K-1)
            if X_cs.shape[1]:
                steps = steps + pt.dot(X_cs_data, β_cs)
            logit_p = pt.concatenate(
                [pt.zeros((N, 1)), pt.cumsum(steps, axis=1)],
                axis=1,
            )
            pm.Categorical('y', logit_p=logit_p, observed=y, dims='obs')

    return model


# -----------------------------------------------------------------------------
#         Fitted model
# -----------------------------------------------------------------------------
class BayesFit(PostModel):
    _descrip = "Hamiltonian Monte Carlo approximation."
    __doc__ = _descrip + "\n" + PostModel.__doc__ + """
    idata : az.InferenceData
        All of the samples, sampler statistics and log-likelihood.
    priors : :class:`PriorSpec`
        The priors used for the fit.
    """

    def __init__(self, idata=None, priors=None, model=None, **kwargs):
        super().__init__(**kwargs)
        self.idata = idata
        self.priors = priors
        self._model = model

        ds = idata.posterior
        var_names = [v for v in _param_names(self.spec) if v in ds]
        self.samples = ds[var_names]

        # Coefficient values are just the mean of the samples
        tf = dataset_to_frame(self.samples)
        self.coef = tf.mean()
        self.cov = tf.cov()

        if 'log_likelihood' in idata.groups():
            ll = idata.log_likelihood['y']
            obs_dims = [d for d in ll.dims if d not in SAMPLE_DIMS]
            self.loglik = float(ll.sum(obs_dims).mean())

        self.response_codes, self.levels = response_codes(self.data,
                                                          self.spec.response)

    @property
    def prior_only(self):
        """True if the model was sampled without its likelihood."""
        return _get_meta(self.idata)['sample_prior'] == 'only'

    @property
    def model(self):
        """The pymc model, rebuilt from the specification if necessary."""
        if self._model is None:
            self._model = build_model(self.data, self.spec, self.family,
                                      self.link, self.priors,
                                      prior_only=self.prior_only)
        return self._model

    @property
    def n_divergent(self):
        return n_divergent(self.idata)

    def summary(self, **kwargs):
        """Summary statistics and diagnostics, via `arviz.summary`."""
        opts = dict(var_names=list(self.samples.data_vars),
                    hdi_prob=config.INTERVAL)
        opts.update(kwargs)
        return az.summary(self.idata, **opts)

    def check(self, **kwargs):
        """Run `check_convergence` on this fit."""
        return check_convergence(self, **kwargs)

    def plot_trace(self, title=None):
        return plot_trace(self, title=title)

    def sample_prior(self, N=1000, random_seed=None):
        """Sample the prior distribution of the model parameters.

        .. note:: These are forward draws, so the thresholds are *not*
            constrained to be ordered. Use ``fit(..., sample_prior='only')``
            to draw from the constrained prior with MCMC.
        """
        idata = pm.sample_prior_predictive(draws=N, model=self.model,
                                           random_seed=random_seed)
        return idata.prior[list(self.samples.data_vars)]

    def posterior_predictive(self, random_seed=None):
        """Sample the posterior predictive distribution of the ratings."""
        if self.prior_only:
            raise ValueError('Model was fit to the prior only!')
        return pm.sample_posterior_predictive(
            self.idata,
            model=self.model,
            random_seed=random_seed,
            progressbar=False,
        )

    def ranef(self):
        """Posterior mean and standard deviation of the random intercepts."""
        group = self.spec.group
        if group is None:
            raise ValueError('Model has no random effects!')
        r = self.idata.posterior[f"r_{group}"]
        return pd.DataFrame({
            'mode': r.mean(SAMPLE_DIMS).to_series(),
            'cond_sd': r.std(SAMPLE_DIMS).to_series(),
        })

    def predict_proba(self, newdata=None):
        """Sample the category probabilities with random effects at 0.

        Parameters
        ----------
        newdata : DataFrame, optional
            Values of the population-level effects. Defaults to the data.

        Returns
        -------
        result : (S, N, K) ndarray
            Probability of each of the K levels for each of the N rows of
            `newdata`, for each of the S posterior samples.
        """
        if newdata is None:
            newdata = self.data
        newdata = match_levels(newdata, self.data, self.spec.terms)

        post = stack_samples(self.samples)
        κ = post['Intercept'].values                        # (S, K-1)
        S = κ.shape[0]

        η = np.zeros((S, len(newdata)))
        if 'b' in post:
            X = design_matrix(newdata, self.spec.fixed)
            X = X.reindex(columns=post['b'].coords['coef'].values,
                          fill_value=0.0)
            η = η + post['b'].values @ X.values.T          # (S, N)

        cs_eta = None
        if 'bcs' in post:
            X_cs = design_matrix(newdata, self.spec.category_specific)
            X_cs = X_cs.reindex(columns=post['bcs'].coords['cs_coef'].values,
                                fill_value=0.0)
            # (N, Q) x (S, Q, K-1) -> (S, N, K-1)
            cs_eta = np.einsum('nq,sqk->snk', X_cs.values, post['bcs'].values)

        return category_probs(κ, η, self.family, self.link, cs_eta=cs_eta)

    def pairplot(self, var_names=None, labels=None, title=None, **kwargs):
        """Plot the pairwise correlations between the model parameters.

        Parameters
        ----------
        var_names : list of str, optional
            A list of variable names to plot.
        labels : list of str, optional
            A list of the variable names to use on the plot.
        title : str, optional
            The title of the figure.
        kwargs : dict, optional
            Additional arguments to be passed to `seaborn.pairplot()`.

        Returns
        -------
        grid : seaborn.PairGrid
            Returns the underlying instance for further tweaking.
        """
        opts = dict(
            corner=True,
            diag_kind='kde',
            plot_kws=dict(s=10, alpha=0.2),
            height=1.5,
        )
        opts.update(kwargs)

        post = self.samples
        if var_names is not None:
            post = post[var_names]

        df = dataset_to_frame(post)
        if labels is not None:
            df.columns = labels

        g = sns.pairplot(df, **opts)
        g.figure.suptitle(title)
        return g


# -----------------------------------------------------------------------------
#         Sampling
# -----------------------------------------------------------------------------
def _fit_path(file):
    """Location of a cached fit. Bare names go in `config.FIT_DIR`."""
    if file is None:
        return None
    path = Path(file)
    if path.parent == Path('.'):
        path = config.FIT_DIR / path
    return path.with_suffix('.nc')


def _get_meta(idata):
    attrs = idata.posterior.attrs
    return {k: attrs.get(f"ordinal_{k}") for k in _META_KEYS}


def _meta_str(meta):
    return {k: str(v) for k, v in meta.items()}


def _set_meta(idata, meta):
    idata.posterior.attrs.update(
        {f"ordinal_{k}": v for k, v in _meta_str(meta).items()}
    )


def _sample(model, sample_prior, draws, random_seed, **kwargs):
    # NOTE a prior-only model has no observed variables, and so no likelihood
    idata = pm.sample(
        draws=draws,
        model=model,
        random_seed=random_seed,
        idata_kwargs=dict(log_likelihood=(sample_prior != 'only')),
        **kwargs
    )

    if sample_prior is True:
        idata.extend(
            pm.sample_prior_predictive(draws=draws, model=model,
                                       random_seed=random_seed)
        )

    return idata


def fit(df, spec, family='cumulative', link='logit', priors=None, *,
        chains=config.CHAINS, cores=None, draws=config.DRAWS,
        tune=config.TUNE, target_accept=config.TARGET_ACCEPT,
        random_seed=None, sample_prior=False, file=None, refit='on_change',
        check=True, **kwargs):
    """Fit a Bayesian ordinal regression with NUTS.

    Parameters
    ----------
    df : DataFrame
        The data.
    spec : :class:`ModelSpec`
        The model specification.
    family : str in {'cumulative', 'acat'}
        The ordinal family.
    link : str in {'logit', 'probit', 'cloglog'}
        The link function.
    priors : :class:`PriorSpec`, optional
        Defaults to `default_priors()`.
    chains : int
        Number of independent chains.
    cores : int, optional
        Number of chains to run in parallel. Capped by the number of chains
        and `config.MAX_CORES`.
    draws, tune : int
        Number of retained and warmup draws per chain.
    target_accept : float in (0, 1)
        Target acceptance rate of NUTS. Higher values take smaller steps.
    random_seed : int, optional
        Seed of the random number generators.
    sample_prior : bool or 'only'
        If True, also sample the prior. If 'only', *only* sample the prior,
        without conditioning on the data.
    file : str or Path, optional
        Cache the fit in this NetCDF file, and reuse it when it exists.
    refit : str in {'on_change', 'always', 'never'}
        When to re-sample a cached fit: if the formula, family, link, priors
        or `sample_prior` have changed, every time, or never.
    check : bool
        If True, run `check_convergence` on the posterior.
    **kwargs
        Additional arguments to `pymc.sample()`.

    Returns
    -------
    result : BayesFit
        The fitted model.
    """
    if refit not in ('on_change', 'always', 'never'):
        raise ValueError(f"Unrecognized {refit = }!")

    family, link = _check_family(spec, family, link)
    if priors is None:
        priors = default_priors()

    if sample_prior:
        flat = [k for k in _prior_classes(spec) if priors[k].is_flat]
        if flat:
            raise ValueError(f"Cannot sample from flat priors on {flat}."
                             ' Specify proper priors to sample the prior.')

    model = build_model(df, spec, family, link, priors,
                        prior_only=(sample_prior == 'only'))
    meta = dict(formula=spec.formula, family=family, link=link,
                priors=priors, sample_prior=sample_prior)

    path = _fit_path(file)
    idata = None
    if path is not None and path.exists() and refit != 'always':
        with az.rc_context(rc={"data.load": "eager"}):
            idata = az.from_netcdf(path)
        if refit == 'on_change' and _get_meta(idata) != _meta_str(meta):
            warnings.warn(f"Cached fit '{path}' does not match the model;"
                          ' re-sampling.')
            idata = None

    if idata is None:
        if cores is None:
            cores = config.n_cores(chains)
        idata = _sample(
            model,
            sample_prior,
            draws=draws,
            random_seed=random_seed,
            chains=chains,
            cores=min(cores, config.n_cores(chains)),
            tune=tune,
            target_accept=target_accept,
            **kwargs
        )
        _set_meta(idata, meta)
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            idata.to_netcdf(path)

    result = BayesFit(
        idata=idata,
        data=df,
        spec=spec,
        family=family,
        link=link,
        priors=priors,
        model=model,
        target_accept=target_accept,
    )

    if check:
        result.diagnostics = check_convergence(result)

    return result


def fit_with_retry(df, spec, family='cumulative', link='logit', priors=None,
                   *, schedule=config.ACCEPT_SCHEDULE,
                   shrink=config.PRIOR_SHRINK, file=None, **kwargs):
    """Fit the model, re-fitting while the diagnostics are poor.

    After each fit, if there are divergent transitions or any R-hat is out
    of range, `target_accept` is raised to the next value in `schedule` and
    the priors are tightened by `shrink`, and the model is sampled again.

    Parameters
    ----------
    df, spec, family, link, priors
        See `fit`.
    schedule : sequence of float
        The `target_accept` value of each retry.
    shrink : float in (0, 1]
        Factor by which prior scales are multiplied on each retry.
    file : str or Path, optional
        Cache file of the first attempt. Each retry is cached beside it with
        the suffix ``_retry{n}``, so that re-running reuses every attempt.
    **kwargs
        Additional arguments to `fit`.

    Returns
    -------
    result : BayesFit
        The last fit. ``result.history`` is a DataFrame with the settings
        and diagnostics of every attempt.
    """
    if priors is None:
        priors = default_priors()
    target_accept = kwargs.pop('target_accept', config.TARGET_ACCEPT)
    kwargs['check'] = False

    history = []
    for attempt in range(len(schedule) + 1):
        result = fit(df, spec, family, link, priors,
                     target_accept=target_accept,
                     file=_retry_file(file, attempt), **kwargs)
        report = check_convergence(result)
        history.append(dict(
            attempt=attempt,
            target_accept=target_accept,
            priors=str(priors),
            n_divergent=report.attrs['n_divergent'],
            n_flagged=int(report['flag'].sum()),
        ))

        if not needs_refit(report):
            break

        if attempt < len(schedule):
            target_accept = schedule[attempt]
            priors = priors.tighten(shrink)
            print(f"{spec.label}: re-fitting with {target_accept = }"
                  f" and priors: {priors}")
    else:
        warnings.warn(f"{spec.label}: diagnostics are still poor after"
                      f" {len(schedule)} retries. Do not trust these"
                      ' results.', ConvergenceWarning)

    result.diagnostics = report
    result.history = pd.DataFrame(history).set_index('attempt')
    return result


def _retry_file(file, attempt):
    """Return the cache file of the given attempt of `fit_with_retry`."""
    if file is None or attempt == 0:
        return file
    file = Path(file)
    return file.with_name(f"{file.stem}_retry{attempt}{file.suffix}")

# =============================================================================
# =============================================================================
