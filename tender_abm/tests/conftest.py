"""Shared fixtures for the Tender ABM test-suite."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
PARENT = ROOT.parent
for candidate in (PARENT, ROOT):
    path_str = str(candidate)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

import pytest

from tender_abm.config import TenderConfig
from tender_abm.random_source import RandomSource


@pytest.fixture
def config() -> TenderConfig:
    return TenderConfig(N_PLAYERS=6, N_ROUNDS=20, RANDOM_SEED=123)


@pytest.fixture
def random_source() -> RandomSource:
    return RandomSource(2024)
