"""
osmotic.engine.fixed_point — 1e18 Fixed-Point Arithmetic
=========================================================

Integer-only arithmetic for values scaled by ``10**18``.  The engine never
touches ``float``: every routine works on Python ints so results are
deterministic and free of floating-point drift.

Transcendental helpers run at ``10**36`` precision; callers truncate
(floor) exactly once, when scaling back to ``10**18``.

Error bounds at ``10**36`` precision:

- ``pow_precise``: binary exponentiation, at most ``2 * bit_length(n)``
  truncations of one unit each.  Once the running value drops below one
  unit it is clamped to 0.
- ``ln_precise``: power-of-two range reduction into ``[1, 2)`` followed by
  the series ``ln(x) = 2 * atanh((x - 1) / (x + 1))``.  Each term and the
  range reduction truncate once, so the error stays within a few hundred
  units (well below ``1e-30`` relative).
- ``exp_neg_precise``: ``ln 2`` range reduction followed by the Taylor
  series of ``exp(r)`` for ``0 <= r < ln 2``; same order of error.
- ``sqrt_precise``: exact floor via ``math.isqrt``.
"""

from __future__ import annotations

import math
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

from osmotic.constants import DECIMALS, MAX_UINT256, ONE, PRECISE_ONE
from osmotic.errors import InvalidArgument, NumericOverflow

__all__ = [
    "check_uint",
    "checked",
    "exp_neg_precise",
    "from_decimals",
    "from_precise",
    "ln_precise",
    "pow_precise",
    "rescale",
    "sqrt_precise",
    "to_decimals",
    "to_precise",
]

_PRECISION_GAIN = PRECISE_ONE // ONE


# ---------------------------------------------------------------------------
# Domain checks
# ---------------------------------------------------------------------------
def check_uint(name: str, value: int) -> int:
    """Validate that *value* is a non-negative int within the uint256 range."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(
            f"{name} must be an int, got {type(value).__name__}"
        )
    if value < 0:
        raise InvalidArgument(f"{name} must be non-negative, got {value}")
    if value > MAX_UINT256:
        raise NumericOverflow(f"{name} exceeds the uint256 range")
    return value


def checked(value: int, what: str = "result") -> int:
    """Raise :class:`NumericOverflow` if *value* does not fit in uint256."""
    if value > MAX_UINT256:
        raise NumericOverflow(f"{what} exceeds the uint256 range")
    return value


# ---------------------------------------------------------------------------
# Scale conversions
# ---------------------------------------------------------------------------
def to_precise(x: int) -> int:
    return x * _PRECISION_GAIN


def from_precise(x: int) -> int:
    return x // _PRECISION_GAIN


def rescale(value: int, from_scale: int, to_scale: int = ONE) -> int:
    """Move *value* from one fixed-point scale to another (truncating).

    >>> rescale(9_999_999, 10**7)
    999999900000000000
    """
    if from_scale <= 0 or to_scale <= 0:
        raise InvalidArgument("scales must be positive")
    return value * to_scale // from_scale


# ---------------------------------------------------------------------------
# Exponentiation
# ---------------------------------------------------------------------------
def pow_precise(base: int, exponent: int) -> int:
    """``base ** exponent`` for ``0 <= base <= 1`` at 1e36 precision.

    Clamps to 0 as soon as the running value underflows one unit, which
    also bounds the loop for astronomically large exponents.
    """
    if base > PRECISE_ONE:
        raise InvalidArgument("pow_precise() only supports bases in [0, 1]")
    result = PRECISE_ONE
    while exponent:
        if exponent & 1:
            result = result * base // PRECISE_ONE
            if result == 0:
                break
        exponent >>= 1
        if exponent:
            base = base * base // PRECISE_ONE
            if base == 0:
                result = 0
                break
    return result


# ---------------------------------------------------------------------------
# Natural logarithm
# ---------------------------------------------------------------------------
def _ln_series(x: int) -> int:
    """ln(x) for x in [1, 2] at 1e36 precision via the atanh series."""
    z = (x - PRECISE_ONE) * PRECISE_ONE // (x + PRECISE_ONE)
    z_squared = z * z // PRECISE_ONE
    total = 0
    term = z
    n = 1
    while term:
        total += term // n
        term = term * z_squared // PRECISE_ONE
        n += 2
    return 2 * total


_LN2_PRECISE = _ln_series(2 * PRECISE_ONE)


def ln_precise(x: int) -> int:
    """Natural log of a positive 1e36 value, returned at 1e36 (signed)."""
    if x <= 0:
        raise InvalidArgument("ln() is only defined for positive values")
    if x < PRECISE_ONE:
        return -ln_precise(PRECISE_ONE * PRECISE_ONE // x)
    k = (x // PRECISE_ONE).bit_length() - 1
    return k * _LN2_PRECISE + _ln_series(x >> k)


# ---------------------------------------------------------------------------
# Exponential
# ---------------------------------------------------------------------------
def exp_neg_precise(x: int) -> int:
    """``exp(-x)`` for ``x >= 0`` at 1e36 precision."""
    if x < 0:
        raise InvalidArgument("exp_neg() expects a non-negative exponent")
    k, r = divmod(x, _LN2_PRECISE)
    if k >= PRECISE_ONE.bit_length():
        return 0
    total = PRECISE_ONE
    term = PRECISE_ONE
    n = 1
    while term:
        term = term * r // (n * PRECISE_ONE)
        total += term
        n += 1
    return (PRECISE_ONE * PRECISE_ONE // total) >> k


# ---------------------------------------------------------------------------
# Square root
# ---------------------------------------------------------------------------
def sqrt_precise(x: int) -> int:
    """Square root of a 1e36 value, returned at 1e36 (floor)."""
    return math.isqrt(x * PRECISE_ONE)


# ---------------------------------------------------------------------------
# Human-readable conversions
# ---------------------------------------------------------------------------
def to_decimals(value: str | int | float | Decimal, decimals: int = DECIMALS) -> int:
    """Scale a human value (``"1.5"``, ``Decimal``, ``0.02``) to fixed-point.

    Truncates digits beyond *decimals*.  Floats are read through ``str()``
    so ``0.1`` becomes exactly ``10**17``.
    """
    with localcontext() as ctx:
        ctx.prec = 100
        try:
            parsed = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise InvalidArgument(f"not a decimal number: {value!r}") from exc
        if not parsed.is_finite():
            raise InvalidArgument(f"not a finite number: {value!r}")
        scaled = (parsed * (Decimal(10) ** decimals)).to_integral_value(ROUND_DOWN)
    return int(scaled)


def from_decimals(value: int, decimals: int = DECIMALS) -> Decimal:
    """Inverse of :func:`to_decimals`; returns an exact ``Decimal``."""
    with localcontext() as ctx:
        ctx.prec = 100
        return Decimal(value) / (Decimal(10) ** decimals)
