#!/usr/bin/env python3
# =============================================================================
#     File: data.py
#  Created: 2026-10-18 10:20
#   Author: Bernie Roesler
#
"""
Wine bitterness ratings in the design of Randall (1989).

Nine judges each rated the bitterness of eight bottles of white wine on an
ordinal scale of 1 (least bitter) to 5 (most bitter). The bottles were made
under the four combinations of two binary treatments applied to the grapes
during crushing: the temperature ('cold', 'warm') and whether the juice was
in contact with the skins ('no', 'yes').

.. note:: The bundled table reproduces Randall's published counts of each
    rating under each condition, so fixed-effects fits match the published
    ones. The assignment of those ratings to individual judges is
    *synthetic*, so estimates of the judge effects (``sd_judge``,
    conditional modes) only illustrate the methods. Pass the path of an
    export of R's ``ordinal::wine`` (``write.csv(wine)``) to `load_wine` to
    analyse the original data.

>>> df = load_wine()
>>> df.info()
<class 'pandas.core.frame.DataFrame'>
RangeIndex: 72 entries, 0 to 71
Data columns (total 5 columns):
 #   Column   Non-Null Count  Dtype
---  ------   --------------  -----
 0   judge    72 non-null     category
 1   bottle   72 non-null     int64
 2   temp     72 non-null     category
 3   contact  72 non-null     category
 4   rating   72 non-null     category
dtypes: category(4), int64(1)
"""
# =============================================================================

import pandas as pd

from pathlib import Path

DATA_FILE = Path(__file__).parent / 'data' / 'wine.csv'
COLUMNS = ['judge', 'bottle', 'temp', 'contact', 'rating']

RATING_LEVELS = (1, 2, 3, 4, 5)
TEMP_LEVELS = ('cold', 'warm')
CONTACT_LEVELS = ('no', 'yes')
JUDGE_LEVELS = tuple(range(1, 10))

# Declared levels of each two-level experimental condition
CONDITIONS = dict(temp=TEMP_LEVELS, contact=CONTACT_LEVELS)


def load_wine(path=None):
    """Load the wine data with the declared categorical levels.

    Parameters
    ----------
    path : str or Path, optional
        Location of the csv file. Defaults to the bundled copy. Any other
        columns, such as the row names and raw `response` scores of an R
        export, are dropped.

    Returns
    -------
    result : pd.DataFrame
        A fresh copy of the data, one row per (judge, bottle).
    """
    df = pd.read_csv(path or DATA_FILE)
    missing = [c for c in COLUMNS if c not in df]
    if missing:
        raise ValueError(f"Wine data is missing columns {missing}!")
    df = df[COLUMNS].copy()
    validate_ratings(df)
    df['judge'] = pd.Categorical(df['judge'], categories=JUDGE_LEVELS)
    df['temp'] = pd.Categorical(df['temp'], categories=TEMP_LEVELS)
    df['contact'] = pd.Categorical(df['contact'], categories=CONTACT_LEVELS)
    df['rating'] = pd.Categorical(df['rating'],
                                  categories=RATING_LEVELS,
                                  ordered=True)
    return df


def validate_ratings(df, response='rating', categories=RATING_LEVELS,
                     conditions=None):
    """Check that every observation lies within its declared levels.

    Parameters
    ----------
    df : pd.DataFrame
        The observations.
    response : str
        Name of the ordinal response column.
    categories : sequence
        The declared ordered response categories.
    conditions : dict of {str: sequence}, optional
        The declared levels of each experimental condition. Defaults to
        `CONDITIONS`. Conditions that are not columns of `df` are ignored.

    Raises
    ------
    ValueError
        If any value is missing or outside of its declared levels.
    """
    if conditions is None:
        conditions = CONDITIONS

    checks = {response: categories}
    checks.update({k: v for k, v in conditions.items() if k in df})

    for col, levels in checks.items():
        values = pd.Series(df[col]).astype(object)
        bad = ~values.isin(list(levels))
        if bad.any():
            raise ValueError(
                f"Column '{col}' has {bad.sum()} value(s) outside of"
                f" {tuple(levels)}: {sorted(set(values[bad].astype(str)))}"
            )
    return df


def rating_table(df, by=('temp', 'contact'), response='rating'):
    """Return the contingency table of condition x rating counts."""
    return pd.crosstab(
        [df[c] for c in by],
        df[response],
        dropna=False,
    )

# =============================================================================
# =============================================================================
