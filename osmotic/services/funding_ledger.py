"""
osmotic.services.funding_ledger — In-Memory Osmotic Funding Ledger
===================================================================

Reference caller for the decay engine on the funding side.  Tracks
proposals, who staked on them, and two accumulators per proposal:

- ``rate``: the funding rate, smoothed toward the proposal's target.
- ``conviction``: stake accumulated over time.

In ``RATE`` mode the target comes from the staked amount
(:func:`calculate_target_rate`); in ``CONVICTION`` mode it comes from the
proposal's current conviction (:func:`calculate_reward`).

Both accumulators are checkpointed with the stake held *before* every
stake change.  Settings are validated once, when written.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from threading import Lock

from osmotic.constants import DEFAULT_DECAY, DEFAULT_MAX_RATIO, DEFAULT_MIN_STAKE_RATIO
from osmotic.engine.decay import (
    AccumulationState,
    DecayMode,
    DecayParameters,
    advance,
    calculate_rate,
)
from osmotic.engine.fixed_point import check_uint
from osmotic.engine.threshold import calculate_bounded_rate, calculate_reward
from osmotic.errors import (
    InsufficientStakeError,
    ProposalInactiveError,
    ProposalNotFoundError,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Proposal:
    """One fundable proposal and its accumulators."""

    id: int
    link: str
    beneficiary: str
    submitter: str
    staked: int = 0
    rate: AccumulationState = field(default_factory=AccumulationState)
    conviction: AccumulationState = field(default_factory=AccumulationState)
    active: bool = True


class FundingLedger:
    """Thread-safe proposal registry with stake bookkeeping.

    Usage::

        ledger = FundingLedger(available_funds=to_decimals(100))
        pid = ledger.add_proposal("https://gitcoin.co/grants/899", "0xbeef", "0xowner")
        ledger.stake_to_proposal(pid, "0xowner", ONE, now)
        rate = ledger.get_funding_rate(pid, now + DAY)
    """

    def __init__(
        self,
        params: DecayParameters | None = None,
        available_funds: int = 0,
    ) -> None:
        self._lock = Lock()
        self._params = params or DecayParameters(
            decay=DEFAULT_DECAY,
            max_ratio=DEFAULT_MAX_RATIO,
            min_stake_ratio=DEFAULT_MIN_STAKE_RATIO,
        )
        self._available_funds = check_uint("available funds", available_funds)
        self._proposals: list[Proposal] = []
        # (proposal_id, voter) → staked amount
        self._voter_stakes: dict[tuple[int, str], int] = defaultdict(int)
        # voter → staked amount across all proposals
        self._total_voter_stake: dict[str, int] = defaultdict(int)
        self._total_staked = 0

    # -------------------------------------------------------------------
    # Settings and funds
    # -------------------------------------------------------------------
    def set_funding_settings(
        self,
        decay: int,
        max_ratio: int,
        min_stake_ratio: int,
        *,
        weight: int | None = None,
    ) -> DecayParameters:
        """Replace the funding settings.  Raises ``InvalidConfiguration``."""
        with self._lock:
            self._params = DecayParameters(
                decay=decay,
                max_ratio=max_ratio,
                min_stake_ratio=min_stake_ratio,
                weight=self._params.weight if weight is None else weight,
                mode=self._params.mode,
            )
            params = self._params
        logger.info(
            "Funding settings updated: decay=%d max_ratio=%d min_stake_ratio=%d",
            decay, max_ratio, min_stake_ratio,
        )
        return params

    def get_funding_settings(self) -> DecayParameters:
        with self._lock:
            return self._params

    @property
    def available_funds(self) -> int:
        with self._lock:
            return self._available_funds

    def set_available_funds(self, amount: int) -> None:
        check_uint("available funds", amount)
        with self._lock:
            self._available_funds = amount

    @property
    def total_staked(self) -> int:
        with self._lock:
            return self._total_staked

    # -------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # -------------------------------------------------------------------
    def _require(self, proposal_id: int) -> Proposal:
        if not 0 <= proposal_id < len(self._proposals):
            raise ProposalNotFoundError(proposal_id)
        return self._proposals[proposal_id]

    def _require_active(self, proposal_id: int) -> Proposal:
        proposal = self._require(proposal_id)
        if not proposal.active:
            logger.warning("Rejected stake change on inactive proposal %d", proposal_id)
            raise ProposalInactiveError(proposal_id)
        return proposal

    def _project(self, proposal: Proposal, now: int) -> tuple[AccumulationState, AccumulationState]:
        """Accumulators of *proposal* advanced to *now* (not stored)."""
        decay = self._params.decay
        conviction = advance(
            proposal.conviction, now, proposal.staked, decay, DecayMode.CONVICTION
        )
        amount = (
            conviction.last_value
            if self._params.mode is DecayMode.CONVICTION
            else proposal.staked
        )
        target = calculate_bounded_rate(
            self._params, amount, self._total_staked, self._available_funds
        )
        rate = advance(proposal.rate, now, target, decay)
        return rate, conviction

    def _checkpoint(self, proposal: Proposal, now: int) -> None:
        proposal.rate, proposal.conviction = self._project(proposal, now)

    # -------------------------------------------------------------------
    # Proposals
    # -------------------------------------------------------------------
    def add_proposal(self, link: str, beneficiary: str, submitter: str) -> int:
        """Register a proposal and return its id."""
        with self._lock:
            proposal_id = len(self._proposals)
            self._proposals.append(
                Proposal(
                    id=proposal_id,
                    link=link,
                    beneficiary=beneficiary,
                    submitter=submitter,
                )
            )
        logger.info("Proposal %d added for beneficiary %s", proposal_id, beneficiary)
        return proposal_id

    def get_proposal(self, proposal_id: int) -> Proposal:
        """Return a copy of the proposal."""
        with self._lock:
            return replace(self._require(proposal_id))

    def execute_proposal(self, proposal_id: int) -> None:
        """Deactivate a proposal and clear its accumulators.

        Stakes stay locked until :meth:`withdraw_inactive_stake`.
        """
        with self._lock:
            proposal = self._require_active(proposal_id)
            proposal.active = False
            proposal.rate = AccumulationState()
            proposal.conviction = AccumulationState()
        logger.info("Proposal %d executed", proposal_id)

    # -------------------------------------------------------------------
    # Staking
    # -------------------------------------------------------------------
    def stake_to_proposal(self, proposal_id: int, voter: str, amount: int, now: int) -> None:
        check_uint("amount", amount)
        check_uint("now", now)
        with self._lock:
            proposal = self._require_active(proposal_id)
            self._checkpoint(proposal, now)
            proposal.staked += amount
            self._voter_stakes[(proposal_id, voter)] += amount
            self._total_voter_stake[voter] += amount
            self._total_staked += amount
        logger.debug("Voter %s staked %d on proposal %d", voter, amount, proposal_id)

    def withdraw_from_proposal(
        self, proposal_id: int, voter: str, amount: int, now: int
    ) -> None:
        check_uint("amount", amount)
        check_uint("now", now)
        with self._lock:
            proposal = self._require(proposal_id)
            staked = self._voter_stakes.get((proposal_id, voter), 0)
            if amount > staked:
                logger.warning(
                    "Voter %s tried to withdraw %d from proposal %d (staked %d)",
                    voter, amount, proposal_id, staked,
                )
                raise InsufficientStakeError(voter, amount, staked)
            if proposal.active:
                self._checkpoint(proposal, now)
            self._release(proposal, voter, amount)
        logger.debug("Voter %s withdrew %d from proposal %d", voter, amount, proposal_id)

    def _release(self, proposal: Proposal, voter: str, amount: int) -> None:
        proposal.staked -= amount
        self._voter_stakes[(proposal.id, voter)] -= amount
        self._total_voter_stake[voter] -= amount
        self._total_staked -= amount

    def withdraw_inactive_stake(self, voter: str) -> int:
        """Release *voter*'s stake on every executed proposal; returns the total."""
        released = 0
        with self._lock:
            for proposal in self._proposals:
                if proposal.active:
                    continue
                amount = self._voter_stakes.get((proposal.id, voter), 0)
                if amount:
                    self._release(proposal, voter, amount)
                    released += amount
        if released:
            logger.debug("Released %d inactive stake for voter %s", released, voter)
        return released

    def get_proposal_voter_stake(self, proposal_id: int, voter: str) -> int:
        with self._lock:
            self._require(proposal_id)
            return self._voter_stakes.get((proposal_id, voter), 0)

    def get_total_voter_stake(self, voter: str) -> int:
        with self._lock:
            return self._total_voter_stake.get(voter, 0)

    # -------------------------------------------------------------------
    # Rates
    # -------------------------------------------------------------------
    def calculate_rate(self, elapsed: int, last_rate: int, target_rate: int) -> int:
        """Engine recurrence with the ledger's current decay."""
        return calculate_rate(elapsed, last_rate, target_rate, self.get_funding_settings().decay)

    def calculate_target_rate(self, amount: int) -> int:
        """Target rate for *amount* (stake or conviction, by mode) right now."""
        with self._lock:
            return calculate_bounded_rate(
                self._params, amount, self._total_staked, self._available_funds
            )

    def get_funding_rate(self, proposal_id: int, now: int) -> int:
        """Smoothed funding rate of a proposal at *now*; 0 once executed."""
        with self._lock:
            proposal = self._require(proposal_id)
            if not proposal.active:
                return 0
            rate, _ = self._project(proposal, now)
        return rate.last_value

    def get_conviction(self, proposal_id: int, now: int) -> int:
        with self._lock:
            proposal = self._require(proposal_id)
            if not proposal.active:
                return 0
            _, conviction = self._project(proposal, now)
        return conviction.last_value

    def get_reward(self, proposal_id: int, now: int) -> int:
        """Reward rate unlocked by the proposal's conviction at *now*."""
        with self._lock:
            proposal = self._require(proposal_id)
            if not proposal.active:
                return 0
            _, conviction = self._project(proposal, now)
            return calculate_reward(
                conviction.last_value,
                self._total_staked,
                self._params.max_ratio,
                self._params.weight,
                self._available_funds,
            )
