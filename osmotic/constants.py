"""
osmotic.constants — Shared Constants
=====================================

Single source of truth for the fixed-point scale, numeric bounds, time
units and the default funding settings.  Import from here instead of
redefining them in the engine, the ledgers or the CLI.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Fixed-point scales
# ---------------------------------------------------------------------------
DECIMALS = 18
ONE = 10**DECIMALS

# Intermediate precision used inside the pow / ln / exp / sqrt helpers
PRECISE_ONE = 10**36

# Largest value any input or result may take
MAX_UINT256 = 2**256 - 1

# ---------------------------------------------------------------------------
# Time units (seconds)
# ---------------------------------------------------------------------------
MINUTE = 60
HOUR = MINUTE * 60
DAY = HOUR * 24
WEEK = DAY * 7
MONTH = DAY * 30

# Share of the initial gap to the target rate left after one adaptive period
ADAPTIVE_RESIDUAL = ONE // 1000

# ---------------------------------------------------------------------------
# Default funding settings (rate mode)
# ---------------------------------------------------------------------------
DEFAULT_DECAY = 999_999_900_000_000_000  # 0.9999999 per second
DEFAULT_MAX_RATIO = 2 * 10**16 // MONTH  # 2% of the funds per month, per second
DEFAULT_MIN_STAKE_RATIO = 25 * 10**15  # 2.5% of the total stake
