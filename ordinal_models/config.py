#!/usr/bin/env python3
# =============================================================================
#     File: config.py
#  Created: 2026-10-18 10:11
#   Author: Bernie Roesler
#
"""
Default settings for sampling, diagnostics, and cached fits.

Environment variables
---------------------
ORDINAL_FIT_DIR : directory in which cached fits are stored.
ORDINAL_CORES : maximum number of cores used to run chains in parallel.
"""
# =============================================================================

import os

from pathlib import Path

FIT_DIR = Path(os.environ.get('ORDINAL_FIT_DIR', 'fits'))
MAX_CORES = int(os.environ.get('ORDINAL_CORES', os.cpu_count() or 1))

# Sampler defaults
CHAINS = 4
DRAWS = 1000
TUNE = 1000
TARGET_ACCEPT = 0.8

# Diagnostics
RHAT_THRESHOLD = 1.01
ESS_FLOOR = 400
# PSIS-LOO is unreliable for observations with a larger Pareto shape
PARETO_K_THRESHOLD = 0.7

# Retry discipline: each retry raises target_accept to the next value and
# shrinks the prior scales by PRIOR_SHRINK.
ACCEPT_SCHEDULE = (0.9, 0.95, 0.99)
PRIOR_SHRINK = 0.5

# Width of the reported intervals
INTERVAL = 0.89


def n_cores(chains=CHAINS):
    """Return the number of cores to use, capped by the number of chains."""
    return max(1, min(int(chains), MAX_CORES))

# =============================================================================
# =============================================================================
