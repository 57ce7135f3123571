#!/usr/bin/env python3
# =============================================================================
#     File: wine_bayesian.py
#  Created: 2026-10-18 21:02
#   Author: Bernie Roesler
#
"""
Bayesian ordinal models of the wine bitterness ratings.

We repeat the cumulative link mixed model with MCMC, compare default and
weakly-informative priors, and try the adjacent-category family, which
allows the effect of skin contact to differ between the thresholds.

Fits are cached in `config.FIT_DIR`, so that re-running the script does not
re-sample a model unless it has changed.

The judge assigned to each rating in the bundled data is synthetic, so the
judge effects only illustrate the method. See `ordinal_models.data`.
"""
# =============================================================================

import matplotlib.pyplot as plt
import pandas as pd

import ordinal_models as om

df = om.load_wine()

priors = dict(
    default=om.default_priors(),
    weak=om.weakly_informative(),
)

for k, v in priors.items():
    print(f"{k}: {v}")

# default: Intercept ~ student_t(3, 0, 2.5); b ~ flat();
#          sd ~ student_t(3, 0, 2.5)
# weak: Intercept ~ normal(0, 1.5); b ~ normal(0, 1); sd ~ exponential(1)

# -----------------------------------------------------------------------------
#         Null model: what do the priors imply?
# -----------------------------------------------------------------------------
spec_null = om.ModelSpec.from_formula('rating ~ 1')

prior_fits = {
    k: om.fit(df, spec_null, priors=p, sample_prior='only',
              file=f"wine_null_prior_{k}", random_seed=56)
    for k, p in priors.items()
}

for k, fit in prior_fits.items():
    print(f"Prior only, {k} priors:")
    om.precis(fit)
    fit.plot_trace(title=f"Null model, {k} priors (prior only)")

# NOTE the default student_t(3, 0, 2.5) prior puts a lot of mass on
# thresholds that are far out in the tails of the logistic, *i.e.* on
# category probabilities of nearly 0 or 1. The weak prior is much tighter.

null_fits = {
    k: om.fit(df, spec_null, priors=p, file=f"wine_null_{k}",
              random_seed=56)
    for k, p in priors.items()
}

print('Null model, R-hat:')
print(pd.concat({k: f.diagnostics['r_hat'] for k, f in null_fits.items()},
                axis=1))

ct = om.coef_table(
    [om.clm(df, spec_null), *null_fits.values()],
    mnames=['clm', *null_fits],
)
print(ct)

# Cumulative vs. adjacent category. Both have K - 1 = 4 thresholds, but they
# are on different scales, and are not comparable.
acat_null = om.fit(df, spec_null, 'acat', priors=priors['weak'],
                   file='wine_null_acat', random_seed=56)
om.precis(acat_null)

# -----------------------------------------------------------------------------
#         Treatment effects with a random intercept for each judge
# -----------------------------------------------------------------------------
spec_mixed = om.ModelSpec.from_formula('rating ~ temp + contact + (1|judge)')

# Retry with a higher target_accept and tighter priors until the sampler is
# happy. See `fit.history` for the attempts.
mixed_fits = {
    k: om.fit_with_retry(df, spec_mixed, priors=p,
                         file=f"wine_mixed_{k}", refit='on_change',
                         random_seed=56)
    for k, p in priors.items()
}

for k, fit in mixed_fits.items():
    print(f"Mixed model, {k} priors:")
    print(fit.history)
    print(fit.summary())
    fit.plot_trace(title=f"Mixed model, {k} priors")

# Compare to maximum likelihood
freq_mixed = om.clmm(df, spec_mixed)

models = [freq_mixed, *mixed_fits.values()]
mnames = ['clmm', *mixed_fits]

ct = om.coef_table(models, mnames)
print(ct)
fig, ax = om.plot_coef_table(ct, fignum=1)
ax.set_title('clmm vs. brm')

# The effects of temperature and contact are positive under both priors
print(om.coef_table(models, mnames, params=['b']))

# Judge effects
re = pd.concat({k: f.ranef() for k, f in zip(mnames, models)}, axis=1)
print(re)

fig, axs = plt.subplots(num=2, ncols=len(models), sharex=True, clear=True)
fig.set_size_inches((12, 4), forward=True)
for ax, name, fit in zip(axs, mnames, models):
    om.plot_ranef(fit.ranef(), ax=ax, title=name)

mixed_fits['weak'].pairplot(var_names=['b', 'sd_judge'])

# -----------------------------------------------------------------------------
#         Category-specific effect of skin contact
# -----------------------------------------------------------------------------
spec_cs = om.ModelSpec.from_formula('rating ~ temp + cs(contact) + (1|judge)')

# NOTE category-specific effects are only available in the acat family.
acat_fits = {
    'acat': om.fit_with_retry(df, spec_mixed, 'acat', priors=priors['weak'],
                              file='wine_mixed_acat', random_seed=56),
    'acat_cs': om.fit_with_retry(df, spec_cs, 'acat', priors=priors['weak'],
                                 file='wine_mixed_acat_cs', random_seed=56),
}

om.precis(acat_fits['acat_cs'], filter_kws=dict(like='bcs'))

# Does the effect of contact differ between the thresholds?
bcs = acat_fits['acat_cs'].samples['bcs'].sel(cs_coef='contactyes')
print(bcs.mean(('chain', 'draw')).to_series())

# -----------------------------------------------------------------------------
#         Model comparison
# -----------------------------------------------------------------------------
bayes_models = {
    'null': null_fits['weak'],
    'mixed': mixed_fits['weak'],
    **acat_fits,
}

cmp = om.compare(bayes_models.values(), mnames=list(bayes_models), sort=True)
print(cmp['ct'])
fig, ax = om.plot_compare(cmp['ct'], fignum=3)

# PSIS should agree closely with WAIC. High Pareto k values flag the ratings
# that are most influential.
cmp_psis = om.compare(bayes_models.values(), mnames=list(bayes_models),
                      ic='PSIS', sort=True)
print(cmp_psis['ct'])

k = om.LOOIS(mixed_fits['weak'], pointwise=True, warn=False)['y']['pareto_k']
print('Influential ratings:')
print(df.assign(pareto_k=k.values)[k.values > om.config.PARETO_K_THRESHOLD])

# -----------------------------------------------------------------------------
#         Posterior predictive check and conditional effects
# -----------------------------------------------------------------------------
best = mixed_fits['weak']

fig, ax = plt.subplots(num=4, clear=True)
om.plot_ppc(best, ax=ax)
ax.set_title('Posterior predictive check')

cp = om.category_probs(best)
print(cp.pivot_table(index=['temp', 'contact'], columns='rating',
                     values='prob', observed=True).round(3))

fig, axs = plt.subplots(num=5, ncols=2, sharey=True, clear=True)
fig.set_size_inches((12, 4), forward=True)
om.plot_category_probs(om.category_probs(freq_mixed), ax=axs[0], title='clmm')
om.plot_category_probs(cp, ax=axs[1], title='brm, weak priors')

plt.show()

# =============================================================================
# =============================================================================
