"""
osmotic.services.flow_ledger — In-Memory Adaptive Flow Ledger
==============================================================

Reference caller for the decay engine.  Holds adaptive payment flows keyed
by ``(token, sender, receiver)``; each flow smooths its rate from
``last_rate`` toward ``target_rate``.  Balances are derived in O(1) per
flow from the closed-form integral.

Whenever a flow changes, the amount streamed since its last checkpoint is
settled into a per-account static balance, so :meth:`FlowLedger.realtime_balance_of`
is always ``settled + inflows - outflows``.  No tokens move; this is
bookkeeping only.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from threading import Lock

from osmotic.engine.decay import calculate_rate, validate_decay
from osmotic.engine.fixed_point import check_uint
from osmotic.engine.integral import calculate_integral
from osmotic.errors import FlowExistsError, FlowNotFoundError, InvalidArgument

logger = logging.getLogger(__name__)

FlowKey = tuple[str, str, str]


@dataclass(frozen=True, slots=True)
class Flow:
    """Snapshot of one flow.  A missing or deleted flow reads as zeros."""

    token: str
    sender: str
    receiver: str
    last_rate: int = 0
    target_rate: int = 0
    decay: int = 0
    timestamp: int = 0

    @property
    def exists(self) -> bool:
        return self.decay != 0


class FlowLedger:
    """Thread-safe registry of adaptive flows and settled balances."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._flows: dict[FlowKey, Flow] = {}
        # (token, account) → settled balance (signed)
        self._settled: dict[tuple[str, str], int] = defaultdict(int)

    # -------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # -------------------------------------------------------------------
    @staticmethod
    def _elapsed(flow: Flow, time: int) -> int:
        check_uint("time", time)
        if time < flow.timestamp:
            raise InvalidArgument(
                f"time {time} precedes the flow checkpoint {flow.timestamp}"
            )
        return time - flow.timestamp

    def _accrued(self, flow: Flow, time: int) -> int:
        return calculate_integral(
            self._elapsed(flow, time), flow.last_rate, flow.target_rate, flow.decay
        )

    def _settle(self, flow: Flow, now: int) -> None:
        amount = self._accrued(flow, now)
        self._settled[(flow.token, flow.receiver)] += amount
        self._settled[(flow.token, flow.sender)] -= amount

    def _require(self, key: FlowKey) -> Flow:
        flow = self._flows.get(key)
        if flow is None:
            logger.warning("Flow not found: %s -> %s (%s)", key[1], key[2], key[0])
            raise FlowNotFoundError(*key)
        return flow

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def create_flow(
        self,
        token: str,
        sender: str,
        receiver: str,
        target_rate: int,
        decay: int,
        now: int,
    ) -> Flow:
        """Open a flow that starts at rate 0 and adapts toward *target_rate*."""
        check_uint("target rate", target_rate)
        check_uint("now", now)
        validate_decay(decay)
        key = (token, sender, receiver)

        with self._lock:
            if key in self._flows:
                logger.warning("Flow already exists: %s -> %s (%s)", sender, receiver, token)
                raise FlowExistsError(*key)
            flow = Flow(
                token=token,
                sender=sender,
                receiver=receiver,
                target_rate=target_rate,
                decay=decay,
                timestamp=now,
            )
            self._flows[key] = flow

        logger.debug("Flow created: %s -> %s target=%d", sender, receiver, target_rate)
        return flow

    def update_flow(
        self, token: str, sender: str, receiver: str, target_rate: int, now: int
    ) -> Flow:
        """Retarget a flow; its current realtime rate becomes ``last_rate``."""
        check_uint("target rate", target_rate)
        key = (token, sender, receiver)

        with self._lock:
            flow = self._require(key)
            elapsed = self._elapsed(flow, now)
            self._settle(flow, now)
            updated = replace(
                flow,
                last_rate=calculate_rate(
                    elapsed, flow.last_rate, flow.target_rate, flow.decay
                ),
                target_rate=target_rate,
                timestamp=now,
            )
            self._flows[key] = updated

        logger.debug(
            "Flow updated: %s -> %s last=%d target=%d",
            sender, receiver, updated.last_rate, target_rate,
        )
        return updated

    def delete_flow(self, token: str, sender: str, receiver: str, now: int) -> None:
        """Settle and remove a flow; it reads back as all zeros afterwards."""
        key = (token, sender, receiver)
        with self._lock:
            flow = self._require(key)
            self._settle(flow, now)
            del self._flows[key]
        logger.debug("Flow deleted: %s -> %s (%s)", sender, receiver, token)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get_flow(self, token: str, sender: str, receiver: str) -> Flow:
        with self._lock:
            flow = self._flows.get((token, sender, receiver))
        return flow or Flow(token=token, sender=sender, receiver=receiver)

    def realtime_rate(self, token: str, sender: str, receiver: str, time: int) -> int:
        """Smoothed rate of a flow at *time*; 0 for a missing flow."""
        with self._lock:
            flow = self._flows.get((token, sender, receiver))
            if flow is None:
                return 0
            return calculate_rate(
                self._elapsed(flow, time), flow.last_rate, flow.target_rate, flow.decay
            )

    def realtime_balance_of(self, token: str, account: str, time: int) -> int:
        """Settled balance plus inflows minus outflows streamed up to *time*."""
        with self._lock:
            balance = self._settled.get((token, account), 0)
            for flow in self._flows.values():
                if flow.token != token:
                    continue
                if flow.receiver == account:
                    balance += self._accrued(flow, time)
                if flow.sender == account:
                    balance -= self._accrued(flow, time)
        return balance
