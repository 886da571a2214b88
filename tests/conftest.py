"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from pathlib import Path

import pytest

from osmotic.constants import DEFAULT_DECAY, ONE
from osmotic.engine.decay import DecayMode, DecayParameters
from osmotic.services.flow_ledger import FlowLedger
from osmotic.services.funding_ledger import FundingLedger

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "config.yaml.example"

# Realistic start time so timestamps never start at the epoch
T0 = 1_650_000_000


@pytest.fixture
def example_config_path() -> Path:
    return EXAMPLE_CONFIG


@pytest.fixture
def rate_params() -> DecayParameters:
    """Rate-mode settings used by the funding tests (10% max, 2.5% floor)."""
    return DecayParameters(
        decay=DEFAULT_DECAY,
        max_ratio=ONE // 10,
        min_stake_ratio=25 * 10**15,
    )


@pytest.fixture
def conviction_params() -> DecayParameters:
    """Conviction-mode settings matching the 1e7 deploy profile."""
    return DecayParameters(
        decay=DEFAULT_DECAY,
        max_ratio=2 * 10**17,
        weight=25 * 10**14,
        mode=DecayMode.CONVICTION,
    )


@pytest.fixture
def flow_ledger() -> FlowLedger:
    return FlowLedger()


@pytest.fixture
def funding_ledger(rate_params) -> FundingLedger:
    """Ledger holding 100 tokens of funds."""
    return FundingLedger(rate_params, available_funds=100 * ONE)
