"""
osmotic.engine.integral — Closed-Form Balance Integral
=======================================================

Amount streamed by a decaying flow over a window, in O(1).

Integrating ``r(s) = last * a**s + target * (1 - a**s)`` over ``[0, t]``
with ``L = ln(1/a)`` gives::

    integral = ((t * L - (1 - a**t)) * target + (1 - a**t) * last) / L

If ``a**t`` rounds to 1 the linear limit ``target * t`` is returned.
A constant flow (``last == target == r``) accrues exactly ``r * t``.
"""

from __future__ import annotations

import logging

from osmotic.constants import PRECISE_ONE
from osmotic.engine.decay import validate_decay
from osmotic.engine.fixed_point import check_uint, checked, ln_precise, pow_precise, to_precise

logger = logging.getLogger(__name__)

__all__ = ["calculate_integral"]


def calculate_integral(elapsed: int, last_rate: int, target_rate: int, decay: int) -> int:
    """Net amount accrued over *elapsed* seconds by a flow smoothing from
    *last_rate* toward *target_rate* with per-second decay *decay*.

    Parameters
    ----------
    elapsed : Window length in seconds (``>= 0``).
    last_rate : Rate at the start of the window (1e18 tokens/s).
    target_rate : Rate the flow converges to (1e18 tokens/s).
    decay : Per-second retention factor at 1e18 scale, in ``(0, 1)``.

    Returns
    -------
    Accrued amount at 1e18 scale, truncated.
    """
    check_uint("elapsed time", elapsed)
    check_uint("last rate", last_rate)
    check_uint("target rate", target_rate)
    validate_decay(decay)
    if elapsed == 0:
        return 0

    a = to_precise(decay)
    one_sub_at = PRECISE_ONE - pow_precise(a, elapsed)
    if one_sub_at == 0:
        # No decay observable over the window; only reachable with decay
        # factors finer than 1e-36, never with a valid 1e18 decay and t >= 1
        logger.debug("No observable decay over %d s; using linear limit", elapsed)
        return checked(target_rate * elapsed, "integral")

    ln_inv_a = -ln_precise(a)
    # t*L >= 1 - a**t analytically; truncation may cross by a unit
    settling = max(elapsed * ln_inv_a - one_sub_at, 0)
    numerator = settling * target_rate + one_sub_at * last_rate
    return checked(numerator // ln_inv_a, "integral")
