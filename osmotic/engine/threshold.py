"""
osmotic.engine.threshold — Square-Root Threshold / Reward Formula
==================================================================

Turns a stake (or accumulated conviction) into a bounded spendable rate::

    rate = 0                                             if amount <= floor
    rate = max_ratio * funds * (1 - sqrt(floor / amount))  otherwise

- Target rate (rate mode): ``floor = min_stake_ratio * total_staked``.
- Reward (conviction mode): ``floor = weight * total_staked / max_ratio**2``.

The square root gives diminishing marginal funding per extra unit of
stake; the floor keeps negligibly staked subjects at zero.
"""

from __future__ import annotations

from osmotic.constants import ONE, PRECISE_ONE
from osmotic.engine.decay import DecayMode, DecayParameters, validate_ratio
from osmotic.engine.fixed_point import check_uint, checked, sqrt_precise

__all__ = [
    "calculate_bounded_rate",
    "calculate_reward",
    "calculate_target_rate",
    "min_threshold",
]


def _bounded_rate(
    amount: int,
    floor_num: int,
    floor_den: int,
    max_ratio: int,
    available_funds: int,
) -> int:
    """Shared formula; the floor is the exact rational ``floor_num / floor_den``."""
    if amount == 0 or max_ratio == 0:
        return 0
    if amount * floor_den <= floor_num:
        return 0

    # sqrt(floor / amount) at 1e36 precision
    root = sqrt_precise(floor_num * PRECISE_ONE // (floor_den * amount))
    bracket = max(PRECISE_ONE - root, 0)
    return checked(max_ratio * available_funds * bracket // (ONE * PRECISE_ONE), "rate")


def calculate_target_rate(
    staked: int,
    total_staked: int,
    max_ratio: int,
    min_stake_ratio: int,
    available_funds: int,
) -> int:
    """Funding rate a proposal with *staked* tokens is entitled to.

    Returns 0 when *staked* is at or below ``min_stake_ratio * total_staked``.
    With no competing stake (``total_staked == 0``) any positive stake earns
    ``max_ratio * available_funds``.
    """
    check_uint("staked", staked)
    check_uint("total staked", total_staked)
    check_uint("available funds", available_funds)
    validate_ratio("max_ratio", max_ratio)
    validate_ratio("min_stake_ratio", min_stake_ratio)
    return _bounded_rate(
        staked, min_stake_ratio * total_staked, ONE, max_ratio, available_funds
    )


def min_threshold(total_staked: int, max_ratio: int, weight: int) -> int:
    """Conviction floor ``weight * total_staked / max_ratio**2`` (truncated)."""
    check_uint("total staked", total_staked)
    validate_ratio("max_ratio", max_ratio)
    validate_ratio("weight", weight)
    if max_ratio == 0:
        return 0
    return checked(weight * total_staked * ONE // (max_ratio * max_ratio), "threshold")


def calculate_reward(
    conviction: int,
    total_staked: int,
    max_ratio: int,
    weight: int,
    available_funds: int,
) -> int:
    """Reward rate unlocked by *conviction*; 0 at or below :func:`min_threshold`."""
    check_uint("conviction", conviction)
    check_uint("total staked", total_staked)
    check_uint("available funds", available_funds)
    validate_ratio("max_ratio", max_ratio)
    validate_ratio("weight", weight)
    if max_ratio == 0:
        return 0
    return _bounded_rate(
        conviction,
        weight * total_staked * ONE,
        max_ratio * max_ratio,
        max_ratio,
        available_funds,
    )


def calculate_bounded_rate(
    params: DecayParameters, amount: int, total_staked: int, available_funds: int
) -> int:
    """Apply the formula matching ``params.mode``."""
    if params.mode is DecayMode.CONVICTION:
        return calculate_reward(
            amount, total_staked, params.max_ratio, params.weight, available_funds
        )
    return calculate_target_rate(
        amount, total_staked, params.max_ratio, params.min_stake_ratio, available_funds
    )
