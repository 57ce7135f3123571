#!/usr/bin/env python3
# =============================================================================
#     File: test_config.py
#  Created: 2026-10-19 09:12
#   Author: Bernie Roesler
#
"""
Tests of the default settings.
"""
# =============================================================================

import importlib

from pathlib import Path

import pytest

from ordinal_models import config


@pytest.fixture
def reload_config(monkeypatch):
    """Reload the config module under a patched environment."""
    def _reload(**env):
        for k, v in env.items():
            monkeypatch.setenv(k, v)
        return importlib.reload(config)
    yield _reload
    monkeypatch.undo()
    importlib.reload(config)


def test_env_overrides(reload_config, tmp_path):
    cfg = reload_config(ORDINAL_FIT_DIR=str(tmp_path), ORDINAL_CORES='2')
    assert cfg.FIT_DIR == Path(tmp_path)
    assert cfg.MAX_CORES == 2
    assert cfg.n_cores(4) == 2
    assert cfg.n_cores(1) == 1


def test_n_cores():
    assert config.n_cores(1) == 1
    assert config.n_cores(10**6) == config.MAX_CORES
    assert config.n_cores(0) == 1


def test_retry_schedule():
    assert config.TARGET_ACCEPT < config.ACCEPT_SCHEDULE[0]
    assert list(config.ACCEPT_SCHEDULE) == sorted(config.ACCEPT_SCHEDULE)
    assert 0 < config.PRIOR_SHRINK <= 1

# =============================================================================
# =============================================================================
