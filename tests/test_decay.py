"""
tests/test_decay.py — Decay Recurrence Tests
=============================================

Rate smoothing, conviction accumulation, the underflow clamp and
parameter validation.  Float / Decimal formulas are used as oracles only.
"""

from __future__ import annotations

import math
from decimal import Decimal, localcontext

import pytest

from osmotic.constants import DAY, DEFAULT_DECAY, HOUR, MAX_UINT256, MONTH, ONE
from osmotic.engine.decay import (
    AP_1_DAY,
    AP_1_MONTH,
    AP_1_WEEK,
    AccumulationState,
    DecayMode,
    DecayParameters,
    accumulate,
    advance,
    calculate_conviction,
    calculate_rate,
    decay_for_period,
)
from osmotic.engine.fixed_point import from_precise, pow_precise, rescale, to_precise
from osmotic.errors import InvalidArgument, InvalidConfiguration, NumericOverflow

A = DEFAULT_DECAY  # 0.9999999


def conviction_oracle(elapsed: int, last: int, staked: int, decay: int) -> Decimal:
    """Exact-enough reference: last * a**t + staked * (1 - a**t) / (1 - a)**2."""
    with localcontext() as ctx:
        ctx.prec = 60
        a = Decimal(decay) / Decimal(ONE)
        at = a**elapsed
        return Decimal(last) * at + Decimal(staked) * (1 - at) / (1 - a) ** 2


def a_pow(decay: int, exponent: int) -> int:
    """``decay ** exponent`` at 1e18 scale."""
    return from_precise(pow_precise(to_precise(decay), exponent))


# ---------------------------------------------------------------------------
# Rate mode
# ---------------------------------------------------------------------------
class TestCalculateRate:
    @pytest.mark.parametrize("last, target", [(0, ONE), (ONE, 0), (7 * ONE, 3 * ONE)])
    def test_zero_elapsed_returns_last(self, last, target):
        assert calculate_rate(0, last, target, A) == last

    def test_growth_after_one_day(self):
        """From 0 toward 1 token/s over one day."""
        rate = calculate_rate(DAY, 0, ONE, A)
        expected = ONE * (1 - (A / ONE) ** DAY)
        assert rate == pytest.approx(expected, rel=1e-8)

    def test_growth_after_two_days_from_previous_rate(self):
        day1 = calculate_rate(DAY, 0, ONE, A)
        day2 = calculate_rate(DAY, day1, ONE, A)
        expected = ONE * (1 - (A / ONE) ** (2 * DAY))
        assert day2 == pytest.approx(expected, rel=1e-8)

    def test_decay_toward_zero(self):
        day1 = calculate_rate(DAY, 0, ONE, A)
        day2 = calculate_rate(DAY, day1, 0, A)
        assert day2 == pytest.approx(day1 * (A / ONE) ** DAY, rel=1e-8)
        assert day2 < day1

    @pytest.mark.parametrize("t1, t2", [(0, DAY), (HOUR, 3 * DAY), (12_345, 67_890)])
    def test_two_step_composition(self, t1, t2):
        v0, target = 3 * ONE, 11 * ONE
        direct = calculate_rate(t1 + t2, v0, target, A)
        chained = calculate_rate(t2, calculate_rate(t1, v0, target, A), target, A)
        assert chained == pytest.approx(direct, rel=1e-12)

    def test_monotonic_convergence(self):
        values = [calculate_rate(t, 0, ONE, A) for t in (DAY, 10 * DAY, MONTH, 12 * MONTH)]
        assert values == sorted(values)
        assert all(v <= ONE for v in values)

    def test_converges_exactly_to_target(self):
        """At t = 10·ln(1e-18)/ln(a), a**t is clamped and the target is hit."""
        t = int(10 * math.log(1e-18) / math.log(A / ONE))
        assert calculate_rate(t, 5 * ONE, 2 * ONE, A) == 2 * ONE

    def test_clamp_with_fast_decay(self):
        assert calculate_rate(1000, 5 * ONE, ONE, ONE // 2) == ONE

    def test_reset_state_behaves_like_fresh(self):
        """A deleted subject resets to {0, 0} and restarts like a new one."""
        fresh = AccumulationState()
        used = advance(fresh, 1_000, 3 * ONE, A)
        reset = AccumulationState()
        assert reset == fresh
        assert advance(reset, 5_000, ONE, A) == advance(fresh, 5_000, ONE, A)
        assert used.last_value > 0


class TestRateValidation:
    def test_negative_elapsed(self):
        with pytest.raises(InvalidArgument):
            calculate_rate(-1, 0, ONE, A)

    def test_negative_value(self):
        with pytest.raises(InvalidArgument):
            calculate_rate(DAY, -ONE, ONE, A)

    @pytest.mark.parametrize("decay", [0, ONE, ONE + 1, -1])
    def test_decay_out_of_domain(self, decay):
        with pytest.raises(InvalidConfiguration):
            calculate_rate(DAY, 0, ONE, decay)

    def test_decay_revalidated_on_zero_elapsed(self):
        with pytest.raises(InvalidConfiguration):
            calculate_rate(0, 0, ONE, ONE)

    def test_overflowing_input(self):
        with pytest.raises(NumericOverflow):
            calculate_rate(DAY, MAX_UINT256 + 1, ONE, A)


# ---------------------------------------------------------------------------
# Conviction mode
# ---------------------------------------------------------------------------
class TestCalculateConviction:
    def test_zero_elapsed_returns_last(self):
        assert calculate_conviction(0, 42, ONE, A) == 42

    def test_matches_oracle_after_one_day(self):
        conviction = calculate_conviction(DAY, 0, ONE, A)
        assert conviction == pytest.approx(
            float(conviction_oracle(DAY, 0, ONE, A)), rel=1e-15
        )

    def test_one_day_from_1e7_profile(self):
        """1 token staked for a day at the deployed 0.9999999 (1e7) decay."""
        decay = rescale(9_999_999, 10**7)
        conviction = calculate_conviction(DAY, 0, ONE, decay)
        with localcontext() as ctx:
            ctx.prec = 60
            a = Decimal(9_999_999) / Decimal(10**7)
            expected_tokens = (1 - a**DAY) / (1 - a) ** 2
        assert abs(Decimal(conviction) / Decimal(ONE) - expected_tokens) < Decimal("0.1")
        # ≈ 8.6e11 tokens
        assert 8.60e29 < conviction < 8.61e29

    def test_two_days_equals_one_day_twice(self):
        """Constant 1-token stake: 2 days in one step == two 1-day steps."""
        day1 = calculate_conviction(DAY, 0, ONE, A)
        day2 = calculate_conviction(DAY, day1, ONE, A)
        direct = calculate_conviction(2 * DAY, 0, ONE, A)
        assert day2 / direct == pytest.approx(1, abs=1e-10)

    def test_carries_previous_conviction(self):
        conviction = calculate_conviction(HOUR, 5 * ONE, 2 * ONE, A)
        expected = conviction_oracle(HOUR, 5 * ONE, 2 * ONE, A)
        assert conviction == pytest.approx(float(expected), rel=1e-15)

    def test_asymptotic_bound(self):
        """Once a**t underflows, conviction sits exactly at staked / (1 - a)**2."""
        bound = ONE * ONE * ONE // (ONE - A) ** 2
        t = int(10 * math.log(1e-18) / math.log(A / ONE))
        assert calculate_conviction(t, 0, ONE, A) == bound
        assert calculate_conviction(MONTH, 0, ONE, A) < bound

    def test_decays_after_unstaking(self):
        day1 = calculate_conviction(DAY, 0, ONE, A)
        assert calculate_conviction(DAY, day1, 0, A) < day1


class TestAccumulate:
    def test_dispatches_by_mode(self):
        assert accumulate(DecayMode.RATE, DAY, 0, ONE, A) == calculate_rate(DAY, 0, ONE, A)
        assert accumulate("conviction", DAY, 0, ONE, A) == calculate_conviction(
            DAY, 0, ONE, A
        )

    def test_advance_moves_timestamp(self):
        state = advance(AccumulationState(0, 100), 100 + DAY, ONE, A, DecayMode.CONVICTION)
        assert state.last_timestamp == 100 + DAY
        assert state.last_value == calculate_conviction(DAY, 0, ONE, A)

    def test_advance_rejects_time_travel(self):
        with pytest.raises(InvalidArgument):
            advance(AccumulationState(ONE, 1_000), 999, ONE, A)


# ---------------------------------------------------------------------------
# Parameters and adaptive periods
# ---------------------------------------------------------------------------
class TestDecayParameters:
    def test_valid_rate_profile(self):
        params = DecayParameters(decay=A, max_ratio=ONE // 10, min_stake_ratio=ONE // 500)
        assert params.mode is DecayMode.RATE
        assert params.threshold_ratio == ONE // 500

    def test_conviction_profile_uses_weight(self):
        params = DecayParameters(decay=A, max_ratio=ONE // 5, weight=ONE // 400, mode="conviction")
        assert params.mode is DecayMode.CONVICTION
        assert params.threshold_ratio == ONE // 400

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"decay": ONE, "max_ratio": 0},
            {"decay": 0, "max_ratio": 0},
            {"decay": A, "max_ratio": ONE + 1},
            {"decay": A, "max_ratio": 0, "min_stake_ratio": -1},
            {"decay": A, "max_ratio": 0, "weight": 2 * ONE},
            {"decay": A, "max_ratio": 0, "mode": "bogus"},
        ],
    )
    def test_invalid_profiles_rejected(self, kwargs):
        with pytest.raises(InvalidConfiguration):
            DecayParameters(**kwargs)


class TestAdaptivePeriods:
    def test_one_month_period(self):
        assert AP_1_MONTH == pytest.approx(999_997_334_974_508_400, rel=1e-15)

    def test_month_closes_999_per_mille_of_the_gap(self):
        assert a_pow(AP_1_MONTH, MONTH) == pytest.approx(ONE // 1000, rel=1e-9)

    def test_longer_periods_decay_slower(self):
        assert AP_1_DAY < AP_1_WEEK < AP_1_MONTH < ONE

    def test_custom_residual(self):
        decay = decay_for_period(HOUR, residual=ONE // 2)
        assert a_pow(decay, HOUR) == pytest.approx(ONE // 2, rel=1e-9)

    @pytest.mark.parametrize("period", [0, -5])
    def test_invalid_period(self, period):
        with pytest.raises(InvalidConfiguration):
            decay_for_period(period)
