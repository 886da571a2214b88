"""
osmotic.engine.decay — Exponential Decay Recurrence
====================================================

Pure calculation: no storage, no clocks.  Callers own every
:class:`AccumulationState` and hand it back in together with the elapsed
time and a target; this module returns the new value.

The recurrence ``v[t+1] = a * v[t] + (1 - a) * target`` unrolled over
``t`` seconds has the closed form::

    v[t] = v[0] * a**t + target * (1 - a**t)

Two modes share it:

- ``RATE``: *target* is an instantaneous flow rate.  The result is the
  smoothed rate of a payment stream.
- ``CONVICTION``: *target* is ``staked / (1 - a)**2``, so the closed form
  is ``c[t] = c[0] * a**t + staked * (1 - a**t) / (1 - a)**2`` and
  conviction is bounded by ``staked / (1 - a)**2``.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass

from osmotic.constants import ADAPTIVE_RESIDUAL, DAY, MONTH, ONE, PRECISE_ONE, WEEK
from osmotic.engine.fixed_point import (
    check_uint,
    checked,
    exp_neg_precise,
    from_precise,
    ln_precise,
    pow_precise,
    to_precise,
)
from osmotic.errors import InvalidArgument, InvalidConfiguration

logger = logging.getLogger(__name__)

__all__ = [
    "ACCUMULATORS",
    "AP_1_DAY",
    "AP_1_MONTH",
    "AP_1_WEEK",
    "AccumulationState",
    "DecayMode",
    "DecayParameters",
    "accumulate",
    "advance",
    "calculate_conviction",
    "calculate_rate",
    "decay_for_period",
    "validate_decay",
    "validate_ratio",
]


class DecayMode(enum.StrEnum):
    """Which quantity the recurrence accumulates."""
    RATE = "rate"
    CONVICTION = "conviction"


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------
def validate_decay(decay: int) -> int:
    """Reject decay factors outside the open interval ``(0, 1)``."""
    if isinstance(decay, bool) or not isinstance(decay, int):
        raise InvalidConfiguration(
            f"decay must be an int at 1e18 scale, got {type(decay).__name__}"
        )
    if not 0 < decay < ONE:
        raise InvalidConfiguration(
            f"decay must lie strictly between 0 and {ONE}, got {decay}"
        )
    return decay


def validate_ratio(name: str, value: int) -> int:
    """Reject ratios outside the closed interval ``[0, 1]``."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(
            f"{name} must be an int at 1e18 scale, got {type(value).__name__}"
        )
    if not 0 <= value <= ONE:
        raise InvalidConfiguration(f"{name} must lie within [0, {ONE}], got {value}")
    return value


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class DecayParameters:
    """Funding settings for one profile, validated on construction.

    ``min_stake_ratio`` is read in ``RATE`` mode and ``weight`` in
    ``CONVICTION`` mode; the other one is ignored.
    """

    decay: int
    max_ratio: int
    min_stake_ratio: int = 0
    weight: int = 0
    mode: DecayMode = DecayMode.RATE

    def __post_init__(self) -> None:
        validate_decay(self.decay)
        validate_ratio("max_ratio", self.max_ratio)
        validate_ratio("min_stake_ratio", self.min_stake_ratio)
        validate_ratio("weight", self.weight)
        # Accept plain strings from config files
        try:
            mode = DecayMode(self.mode)
        except ValueError as exc:
            raise InvalidConfiguration(f"unknown decay mode {self.mode!r}") from exc
        object.__setattr__(self, "mode", mode)

    @property
    def threshold_ratio(self) -> int:
        """The ratio that sets the funding floor for this mode."""
        if self.mode is DecayMode.CONVICTION:
            return self.weight
        return self.min_stake_ratio


@dataclass(frozen=True, slots=True)
class AccumulationState:
    """Last accumulated value and when it was recorded (Unix seconds)."""

    last_value: int = 0
    last_timestamp: int = 0


# ---------------------------------------------------------------------------
# Recurrence
# ---------------------------------------------------------------------------
def _validate_inputs(elapsed: int, last: int, target: int, decay: int) -> None:
    check_uint("elapsed time", elapsed)
    check_uint("last value", last)
    check_uint("target", target)
    validate_decay(decay)


def calculate_rate(elapsed: int, last_rate: int, target_rate: int, decay: int) -> int:
    """Smooth *last_rate* toward *target_rate* over *elapsed* seconds.

    Returns ``last_rate * a**t + target_rate * (1 - a**t)``, truncated.
    When ``a**t`` underflows 1e-36 the result is exactly *target_rate*.
    """
    _validate_inputs(elapsed, last_rate, target_rate, decay)
    if elapsed == 0:
        return last_rate

    at = pow_precise(to_precise(decay), elapsed)
    if at == 0:
        logger.debug("a**t clamped to 0 after %d s; rate reached target", elapsed)
        return target_rate

    return checked(
        (last_rate * at + target_rate * (PRECISE_ONE - at)) // PRECISE_ONE, "rate"
    )


def calculate_conviction(
    elapsed: int, last_conviction: int, staked: int, decay: int
) -> int:
    """Accumulate conviction for *staked* tokens held over *elapsed* seconds.

    Returns ``last * a**t + staked * (1 - a**t) / (1 - a)**2``, truncated.
    Conviction is bounded by ``staked / (1 - a)**2``.
    """
    _validate_inputs(elapsed, last_conviction, staked, decay)
    if elapsed == 0:
        return last_conviction

    at = pow_precise(to_precise(decay), elapsed)
    if at == 0:
        logger.debug("a**t clamped to 0 after %d s; conviction at its bound", elapsed)

    one_sub_a_sq = (PRECISE_ONE - to_precise(decay)) ** 2
    numerator = (
        last_conviction * at * one_sub_a_sq
        + staked * (PRECISE_ONE - at) * PRECISE_ONE * PRECISE_ONE
    )
    return checked(numerator // (PRECISE_ONE * one_sub_a_sq), "conviction")


# ---------------------------------------------------------------------------
# Mode registry
# ---------------------------------------------------------------------------
ACCUMULATORS: dict[DecayMode, Callable[[int, int, int, int], int]] = {
    DecayMode.RATE: calculate_rate,
    DecayMode.CONVICTION: calculate_conviction,
}


def accumulate(mode: DecayMode, elapsed: int, last: int, amount: int, decay: int) -> int:
    """Dispatch to the recurrence for *mode*."""
    return ACCUMULATORS[DecayMode(mode)](elapsed, last, amount, decay)


def advance(
    state: AccumulationState,
    now: int,
    amount: int,
    decay: int,
    mode: DecayMode = DecayMode.RATE,
) -> AccumulationState:
    """Return the state checkpointed at *now*.

    *amount* is the target rate (``RATE``) or the stake held since the last
    checkpoint (``CONVICTION``).
    """
    if now < state.last_timestamp:
        raise InvalidArgument(
            f"timestamp {now} precedes the last checkpoint {state.last_timestamp}"
        )
    value = accumulate(mode, now - state.last_timestamp, state.last_value, amount, decay)
    return AccumulationState(last_value=value, last_timestamp=now)


# ---------------------------------------------------------------------------
# Adaptive periods
# ---------------------------------------------------------------------------
def decay_for_period(period: int, residual: int = ADAPTIVE_RESIDUAL) -> int:
    """Decay factor whose *period*-th power equals *residual*.

    With the default residual (0.001) a flow has closed 99.9% of the gap
    to its target after *period* seconds.
    """
    if isinstance(period, bool) or not isinstance(period, int) or period <= 0:
        raise InvalidConfiguration(f"period must be a positive int, got {period!r}")
    if not 0 < residual < ONE:
        raise InvalidConfiguration(f"residual must lie strictly between 0 and {ONE}")

    per_second = -ln_precise(to_precise(residual)) // period
    return validate_decay(from_precise(exp_neg_precise(per_second)))


AP_1_DAY = decay_for_period(DAY)
AP_1_WEEK = decay_for_period(WEEK)
AP_1_MONTH = decay_for_period(MONTH)
