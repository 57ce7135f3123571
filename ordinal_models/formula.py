#!/usr/bin/env python3
# =============================================================================
#     File: formula.py
#  Created: 2026-10-18 10:34
#   Author: Bernie Roesler
#
"""
Model specifications: which effects enter the linear predictor.

A `ModelSpec` is an immutable description of an ordinal model, written in
the familiar lme4/brms style:

>>> ModelSpec.from_formula('rating ~ 1 + temp + cs(contact) + (1|judge)')
ModelSpec(response='rating', fixed=('temp',), category_specific=('contact',),
          group='judge', name=None)
"""
# =============================================================================

import re

import numpy as np
import pandas as pd

from dataclasses import dataclass, replace

_CS_RE = re.compile(r'^cs\(\s*(\w+)\s*\)$')
_GROUP_RE = re.compile(r'^\(\s*1\s*\|\s*(\w+)\s*\)$')


@dataclass(frozen=True)
class ModelSpec:
    """An ordinal model specification.

    Attributes
    ----------
    response : str
        Name of the ordinal response variable.
    fixed : tuple of str
        Effects shared by every category.
    category_specific : tuple of str
        Effects with a separate coefficient for each threshold.
    group : str or None
        Grouping factor of a random intercept.
    name : str, optional
        A label for the model in comparison tables.
    """
    response: str = 'rating'
    fixed: tuple = ()
    category_specific: tuple = ()
    group: str = None
    name: str = None

    def __post_init__(self):
        # Allow lists on input, but store tuples so the spec stays hashable.
        object.__setattr__(self, 'fixed', tuple(self.fixed))
        object.__setattr__(self, 'category_specific',
                           tuple(self.category_specific))
        both = set(self.fixed) & set(self.category_specific)
        if both:
            raise ValueError(f"Terms {sorted(both)} are given as both fixed"
                             " and category-specific effects.")

    @classmethod
    def from_formula(cls, formula, name=None):
        """Parse a formula like ``'y ~ 1 + x + cs(z) + (1|g)'``."""
        try:
            lhs, rhs = formula.split('~')
        except ValueError:
            raise ValueError(f"Formula must contain exactly one '~': {formula!r}")

        response = lhs.strip()
        if not response:
            raise ValueError(f"Formula has no response: {formula!r}")

        fixed, cs, groups = [], [], []
        for term in _split_terms(rhs):
            if term in ('', '1', '0'):
                continue
            if m := _CS_RE.match(term):
                cs.append(m.group(1))
            elif m := _GROUP_RE.match(term):
                groups.append(m.group(1))
            elif term.startswith('('):
                raise ValueError(f"Only random intercepts '(1|g)' are"
                                 f" supported, got {term!r}.")
            elif re.fullmatch(r'\w+', term):
                fixed.append(term)
            else:
                raise ValueError(f"Cannot parse term {term!r}.")

        if len(groups) > 1:
            raise ValueError(f"At most one grouping factor allowed: {groups}")

        return cls(
            response=response,
            fixed=tuple(fixed),
            category_specific=tuple(cs),
            group=groups[0] if groups else None,
            name=name,
        )

    @property
    def formula(self):
        """The formula string of the specification."""
        terms = (
            ['1']
            + list(self.fixed)
            + [f"cs({x})" for x in self.category_specific]
            + ([f"(1|{self.group})"] if self.group else [])
        )
        return f"{self.response} ~ {' + '.join(terms)}"

    @property
    def terms(self):
        """All population-level terms."""
        return self.fixed + self.category_specific

    @property
    def label(self):
        return self.name or self.formula

    def with_(self, **changes):
        """Return a new variant of this specification."""
        return replace(self, **changes)

    def __str__(self):
        return self.formula


def _split_terms(rhs):
    """Split the right-hand side on '+' outside of parentheses."""
    terms, depth, current = [], 0, []
    for c in rhs:
        if c == '(':
            depth += 1
        elif c == ')':
            depth -= 1
        if c == '+' and depth == 0:
            terms.append(''.join(current).strip())
            current = []
        else:
            current.append(c)
    terms.append(''.join(current).strip())
    return terms


def design_matrix(df, terms):
    """Treatment-coded design matrix of the given terms.

    Categorical terms are expanded into 0/1 indicators for every level but
    the first, named like R does, *e.g.* 'temp' -> 'tempwarm'. Numeric terms
    are used as they are.

    Parameters
    ----------
    df : pd.DataFrame
        The data.
    terms : sequence of str
        Columns of `df` to include.

    Returns
    -------
    result : (N, P) pd.DataFrame of float
        The design matrix, with no intercept column.
    """
    cols = []
    for term in terms:
        x = df[term]
        if isinstance(x.dtype, pd.CategoricalDtype):
            levels = x.cat.categories
        elif x.dtype == object or x.dtype == bool:
            levels = pd.Index(sorted(x.unique()))
        else:
            cols.append(x.astype(float).rename(term))
            continue
        for level in levels[1:]:
            cols.append((x == level).astype(float).rename(f"{term}{level}"))

    if not cols:
        return pd.DataFrame(index=df.index, dtype=float)

    return pd.concat(cols, axis='columns')


def match_levels(newdata, data, terms):
    """Give the categorical terms of `newdata` the levels they have in
    `data`, so that both produce the same design matrix columns."""
    newdata = newdata.copy()
    for term in terms:
        x = data[term]
        if isinstance(x.dtype, pd.CategoricalDtype):
            levels, ordered = x.cat.categories, x.cat.ordered
        elif x.dtype == object or x.dtype == bool:
            levels, ordered = pd.Index(sorted(x.unique())), False
        else:
            continue
        unknown = set(newdata[term].dropna()) - set(levels)
        if unknown:
            raise ValueError(f"Unknown levels {sorted(unknown)} of '{term}'.")
        newdata[term] = pd.Categorical(newdata[term], categories=levels,
                                       ordered=ordered)
    return newdata


def response_codes(df, response='rating'):
    """Return the 0-based integer codes and levels of the ordinal response."""
    y = df[response]
    if not isinstance(y.dtype, pd.CategoricalDtype):
        y = pd.Categorical(y, categories=np.sort(y.unique()), ordered=True)
        y = pd.Series(y, index=df.index)
    return np.asarray(y.cat.codes, dtype=int), list(y.cat.categories)


def group_index(df, group):
    """Return the 0-based integer codes and labels of the grouping factor."""
    g = df[group]
    if not isinstance(g.dtype, pd.CategoricalDtype):
        g = pd.Series(pd.Categorical(g), index=df.index)
    g = g.cat.remove_unused_categories()
    return np.asarray(g.cat.codes, dtype=int), list(g.cat.categories)


def threshold_labels(levels):
    """Name the thresholds between adjacent levels, *e.g.* ['1|2', '2|3']."""
    levels = list(levels)
    return [f"{a}|{b}" for a, b in zip(levels[:-1], levels[1:])]

# =============================================================================
# =============================================================================
