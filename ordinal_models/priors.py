#!/usr/bin/env python3
# =============================================================================
#     File: priors.py
#  Created: 2026-10-18 11:05
#   Author: Bernie Roesler
#
"""
Prior specifications for the Bayesian ordinal models.

Priors are attached to *classes* of parameters, as in brms:

    'Intercept' : the K - 1 thresholds (cutpoints).
    'b' : the population-level slopes, including category-specific ones.
    'sd' : the standard deviation of the random intercept.

Any class without an explicit prior uses the library default.
"""
# =============================================================================

import pymc as pm

from dataclasses import dataclass

PARAM_CLASSES = ('Intercept', 'b', 'sd')

# family -> (distribution, half-distribution, {our name: pymc name}, scale)
_FAMILIES = {
    'normal': (pm.Normal, pm.HalfNormal,
               dict(mu='mu', sigma='sigma'), 'sigma'),
    'student_t': (pm.StudentT, pm.HalfStudentT,
                  dict(nu='nu', mu='mu', sigma='sigma'), 'sigma'),
    'cauchy': (pm.Cauchy, pm.HalfCauchy,
               dict(mu='alpha', sigma='beta'), 'sigma'),
    'exponential': (pm.Exponential, pm.Exponential,
                    dict(lam='lam'), 'lam'),
    'flat': (pm.Flat, pm.HalfFlat, dict(), None),
}

# Location parameters are dropped from half-distributions
_LOCATIONS = ('mu',)


@dataclass(frozen=True, init=False)
class Prior:
    """A probability distribution family and its parameters.

    >>> Prior('normal', mu=0, sigma=1)
    Prior(family='normal', params=(('mu', 0), ('sigma', 1)))

    Parameters are stored as a tuple of (name, value) pairs so that the
    object is immutable and hashable.
    """
    family: str
    params: tuple

    def __init__(self, family, **params):
        if family not in _FAMILIES:
            raise ValueError(f"Unrecognized prior family '{family}'!"
                             f" Use one of {list(_FAMILIES)}.")
        names = _FAMILIES[family][2]
        unknown = set(params) - set(names)
        if unknown:
            raise ValueError(f"Unknown parameters {sorted(unknown)} for"
                             f" '{family}' prior.")
        missing = [k for k in names if k not in params]
        if missing:
            raise ValueError(f"Missing parameters {missing} for"
                             f" '{family}' prior.")
        # Store the parameters in the canonical order of the family
        object.__setattr__(self, 'family', family)
        object.__setattr__(self, 'params',
                           tuple((k, params[k]) for k in names))

    @property
    def kwargs(self):
        return dict(self.params)

    @property
    def is_flat(self):
        return self.family == 'flat'

    def scaled(self, factor):
        """Return a new prior with its scale multiplied by `factor`.

        The exponential distribution is parameterized by its rate, so the
        rate is *divided* by `factor`. Flat priors have no scale.
        """
        scale = _FAMILIES[self.family][3]
        if scale is None:
            return self
        params = self.kwargs
        if scale == 'lam':
            params[scale] = params[scale] / factor
        else:
            params[scale] = params[scale] * factor
        return Prior(self.family, **params)

    def to_pymc(self, name, half=False, ordered=False, **kwargs):
        """Create the pymc random variable for this prior.

        Parameters
        ----------
        name : str
            Name of the random variable.
        half : bool
            If True, use the half-distribution restricted to positive values,
            as for a standard deviation.
        ordered : bool
            If True, constrain a vector variable to be increasing.
        **kwargs
            Additional arguments to the pymc distribution, *e.g.* `dims`.

        Returns
        -------
        result : TensorVariable
            The random variable, registered with the model in context.
        """
        full, half_dist, names, _ = _FAMILIES[self.family]
        params = self.kwargs
        if half:
            for loc in _LOCATIONS:
                params.pop(loc, None)
        dist_kws = {names[k]: v for k, v in params.items()}
        dist_kws.update(kwargs)
        if ordered:
            dist_kws.setdefault('transform',
                                pm.distributions.transforms.ordered)
        return (half_dist if half else full)(name, **dist_kws)

    def __str__(self):
        args = ', '.join(f"{v:g}" for _, v in self.params)
        return f"{self.family}({args})"


# Constructors mirroring the brms prior syntax
def normal(mu=0, sigma=1):
    return Prior('normal', mu=mu, sigma=sigma)


def student_t(nu=3, mu=0, sigma=2.5):
    return Prior('student_t', nu=nu, mu=mu, sigma=sigma)


def cauchy(mu=0, sigma=1):
    return Prior('cauchy', mu=mu, sigma=sigma)


def exponential(lam=1):
    return Prior('exponential', lam=lam)


def flat():
    return Prior('flat')


class PriorSpec:
    """An immutable mapping of parameter class -> `Prior`.

    Parameters
    ----------
    **priors : dict of {str: Prior}
        Priors keyed by class name in ``('Intercept', 'b', 'sd')``.

    Examples
    --------
    >>> priors = PriorSpec(Intercept=normal(0, 1.5), b=normal(0, 1))
    >>> priors['b']
    Prior(family='normal', params=(('mu', 0), ('sigma', 1)))
    >>> priors['sd']  # library default
    Prior(family='student_t', params=(('nu', 3), ('mu', 0), ('sigma', 2.5)))
    """

    def __init__(self, **priors):
        unknown = set(priors) - set(PARAM_CLASSES)
        if unknown:
            raise ValueError(f"Unknown parameter classes {sorted(unknown)}!"
                             f" Use any of {PARAM_CLASSES}.")
        for k, v in priors.items():
            if not isinstance(v, Prior):
                raise TypeError(f"Prior for '{k}' must be a `Prior`,"
                                f" not {type(v)}.")
        self._priors = dict(priors)

    def __getitem__(self, key):
        if key not in PARAM_CLASSES:
            raise KeyError(key)
        return self._priors.get(key, DEFAULT_PRIORS[key])

    def __contains__(self, key):
        return key in self._priors

    def __iter__(self):
        return iter(PARAM_CLASSES)

    def __eq__(self, other):
        if not isinstance(other, PriorSpec):
            return NotImplemented
        return all(self[k] == other[k] for k in PARAM_CLASSES)

    def __hash__(self):
        return hash(tuple(self[k] for k in PARAM_CLASSES))

    def items(self):
        return [(k, self[k]) for k in PARAM_CLASSES]

    def update(self, **priors):
        """Return a new spec with the given classes replaced."""
        return PriorSpec(**{**self._priors, **priors})

    def tighten(self, factor=0.5):
        """Return a more regularizing version of these priors.

        Every proper prior has its scale multiplied by `factor`, and flat
        priors are replaced by a standard normal.
        """
        out = dict()
        for k, p in self.items():
            out[k] = normal(0, 1) if p.is_flat else p.scaled(factor)
        return PriorSpec(**out)

    def __str__(self):
        return '; '.join(f"{k} ~ {p}" for k, p in self.items())

    def __repr__(self):
        return f"<PriorSpec: {self}>"


# The brms defaults for ordinal models
DEFAULT_PRIORS = dict(
    Intercept=student_t(3, 0, 2.5),
    b=flat(),
    sd=student_t(3, 0, 2.5),
)


def default_priors():
    """The library-default priors: vague thresholds, flat slopes."""
    return PriorSpec()


def weakly_informative():
    """Weakly-informative priors on the logit scale."""
    return PriorSpec(
        Intercept=normal(0, 1.5),
        b=normal(0, 1),
        sd=exponential(1),
    )

# =============================================================================
# =============================================================================
