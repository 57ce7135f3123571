#!/usr/bin/env python3
# =============================================================================
#     File: wine_frequentist.py
#  Created: 2026-10-18 20:15
#   Author: Bernie Roesler
#
"""
Cumulative link (mixed) models of the wine bitterness ratings.

Follows the design of Randall (1989): is a wine rated more bitter when the
grapes are crushed warm, or left in contact with their skins? And how much
of the variation is due to the judges?

The bundled data match the published counts of each rating under each
condition, but the judge of each rating is synthetic. Load an export of R's
`ordinal::wine` with `om.load_wine(path)` to reproduce the published judge
effects.
"""
# =============================================================================

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from scipy.special import logit

import ordinal_models as om

df = om.load_wine()

# >>> df.info()
# <class 'pandas.core.frame.DataFrame'>
# RangeIndex: 72 entries, 0 to 71
# Data columns (total 5 columns):
#  #   Column   Non-Null Count  Dtype
# ---  ------   --------------  -----
#  0   judge    72 non-null     category
#  1   bottle   72 non-null     int64
#  2   temp     72 non-null     category
#  3   contact  72 non-null     category
#  4   rating   72 non-null     category
# dtypes: category(4), int64(1)

# -----------------------------------------------------------------------------
#         Look at the data
# -----------------------------------------------------------------------------
print('Ratings by condition:')
print(om.rating_table(df))

# >>> om.rating_table(df)
# rating        1  2  3  4  5
# temp contact
# cold no       4  9  5  0  0
#      yes      1  7  8  2  0
# warm no       0  5  8  3  2
#      yes      0  1  5  7  5

# Cumulative proportions and log cumulative odds
pr_k = df['rating'].value_counts().sort_index() / len(df)
cum_pr_k = pr_k.cumsum()
lco = logit(cum_pr_k.iloc[:-1])

fig, axs = plt.subplots(num=1, ncols=3, clear=True)
fig.set_size_inches((12, 4), forward=True)

om.simplehist(df['rating'].astype(int), color='k', rwidth=0.1, ax=axs[0])
axs[0].set(xlabel='rating', ylabel='count')

axs[1].plot(cum_pr_k.index, cum_pr_k, '-o', c='k', mfc='white', lw=1)
axs[1].set(xlabel='rating',
           ylabel='cumulative proportion',
           ylim=(-0.05, 1.05))

axs[2].plot(lco.index, lco, '-o', c='k', mfc='white', lw=1)
axs[2].set(xlabel='rating', ylabel='log cumulative odds')
axs[2].locator_params(integer=True)

# -----------------------------------------------------------------------------
#         Fixed-effects models
# -----------------------------------------------------------------------------
specs = dict(
    null=om.ModelSpec.from_formula('rating ~ 1'),
    temp=om.ModelSpec.from_formula('rating ~ temp'),
    contact=om.ModelSpec.from_formula('rating ~ contact'),
    both=om.ModelSpec.from_formula('rating ~ temp + contact'),
)

fits = {k: om.clm(df, v) for k, v in specs.items()}

# The null model just reproduces the cumulative proportions
print('Null model thresholds vs. log cumulative odds:')
print(pd.DataFrame(dict(clm=fits['null'].thresholds.values,
                        lco=lco.values),
                   index=fits['null'].thresholds.index))

print(fits['both'])
print(fits['both'].summary())

# The estimates match those of `ordinal::clm(rating ~ temp + contact)` in R:
#   thresholds: -1.3444, 1.2508, 3.4669, 5.0064
#   tempwarm:    2.5031 (0.5287)
#   contactyes:  1.5278 (0.4766)

# Does each treatment matter?
print('Likelihood ratio tests:')
for k in ['temp', 'contact']:
    print(om.anova(fits['null'], fits[k], fits['both'],
                   mnames=['null', k, 'both']))

# -----------------------------------------------------------------------------
#         Alternative link functions
# -----------------------------------------------------------------------------
links = dict(
    logit=fits['both'],
    probit=om.clm(df, specs['both'], link='probit'),
    cloglog=om.clm(df, specs['both'], link='cloglog'),
)

print('Link functions:')
print(pd.DataFrame({
    'logLik': [f.loglik for f in links.values()],
    'AIC': [f.AIC() for f in links.values()],
    'tempwarm': [f.coef['b[tempwarm]'] for f in links.values()],
    'contactyes': [f.coef['b[contactyes]'] for f in links.values()],
}, index=pd.Index(list(links), name='link')))

# NOTE the coefficients are on the scale of each latent distribution, so only
# their signs and ratios are comparable across links.

# -----------------------------------------------------------------------------
#         Random intercept of each judge
# -----------------------------------------------------------------------------
spec_mixed = specs['both'].with_(group='judge')
fit_mixed = om.clmm(df, spec_mixed)

print(fit_mixed)
print(fit_mixed.summary())

# Is the judge effect significant?
# NOTE the LR test of a variance component at 0 is conservative. The
# p-value is about twice as large as it should be.
print(om.anova(fits['both'], fit_mixed, mnames=['clm', 'clmm']))

# The judge effects shrink toward zero relative to the raw mean ratings
re = fit_mixed.ranef()
re['mean_rating'] = (df.assign(r=df['rating'].astype(int))
                       .groupby('judge', observed=True)['r']
                       .mean())
print('Judge effects:')
print(re.sort_values('mode'))

fig, ax = plt.subplots(num=2, clear=True)
om.plot_ranef(re, ax=ax, title='Judge conditional modes (89% interval)')

# -----------------------------------------------------------------------------
#         Predicted probabilities
# -----------------------------------------------------------------------------
cp = om.category_probs(fit_mixed)
print(cp.pivot_table(index=['temp', 'contact'], columns='rating',
                     values='prob', observed=True).round(3))

fig, ax = plt.subplots(num=3, clear=True)
om.plot_category_probs(cp, ax=ax, title='clmm, average judge')

# The most and least lenient judges
lo, hi = re['mode'].idxmin(), re['mode'].idxmax()
grid = om.condition_grid(df, ['temp', 'contact'])
X = om.design_matrix(grid, spec_mixed.fixed).values
eta = X @ fit_mixed.beta.values

fig, axs = plt.subplots(num=4, ncols=2, sharey=True, clear=True)
for ax, judge in zip(axs, [lo, hi]):
    probs = om.cumulative_probs(fit_mixed.thresholds.values,
                                eta + re.loc[judge, 'mode'])
    for i, (_, row) in enumerate(grid.iterrows()):
        ax.plot(np.arange(1, 6), probs[i], 'o-',
                label=f"{row['temp']}, {row['contact']}")
    ax.set(title=f"judge {judge}", xlabel='rating', xticks=np.arange(1, 6))
axs[0].set_ylabel('probability')
axs[0].legend()

plt.show()

# =============================================================================
# =============================================================================
