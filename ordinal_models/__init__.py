#!/usr/bin/env python3
# =============================================================================
#     File: __init__.py
#  Created: 2026-10-18 16:40
#   Author: Bernie Roesler
#
"""
Ordinal regression of the wine bitterness ratings.

>>> import ordinal_models as om
>>> df = om.load_wine()
>>> spec = om.ModelSpec.from_formula('rating ~ temp + contact + (1|judge)')
>>> freq = om.clmm(df, spec)
>>> bayes = om.fit_with_retry(df, spec, priors=om.weakly_informative())
>>> om.coef_table([freq, bayes], mnames=['clmm', 'brm'])
"""
# =============================================================================

from . import config
from .data import (
    CONDITIONS,
    DATA_FILE,
    RATING_LEVELS,
    load_wine,
    rating_table,
    validate_ratings,
)
from .formula import (
    ModelSpec,
    design_matrix,
    group_index,
    match_levels,
    response_codes,
    threshold_labels,
)
from .priors import (
    DEFAULT_PRIORS,
    Prior,
    PriorSpec,
    cauchy,
    default_priors,
    exponential,
    flat,
    normal,
    student_t,
    weakly_informative,
)
from .links import FAMILIES, LINKS, cumulative_probs, acat_probs
from .fits import PostModel
from .frequentist import ClmFit, anova, clm, clmm
from .diagnostics import (
    ConvergenceWarning,
    check_convergence,
    n_divergent,
    needs_refit,
    plot_ppc,
    plot_trace,
)
from .bayes import BayesFit, build_model, fit, fit_with_retry
from .compare import (
    LOOIS,
    PSIS,
    WAIC,
    compare,
    coef_table,
    lppd,
    plot_coef_table,
    plot_compare,
    precis,
)
from .effects import (
    category_probs,
    condition_grid,
    expand_grid,
    plot_category_probs,
)
from .plotting import plot_ranef, simplehist
from .utils import dataset_to_frame, percentiles

# =============================================================================
# =============================================================================
