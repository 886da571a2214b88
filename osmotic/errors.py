"""
osmotic.errors — Error Taxonomy
================================

All errors raised by the engine and the reference ledgers inherit from
:class:`OsmoticError`.  Each carries a stable ``code`` so callers can map
failures without string matching.

Engine errors also inherit from the matching builtin (``ValueError`` or
``ArithmeticError``) so generic handlers keep working.
"""

from __future__ import annotations


class OsmoticError(Exception):
    """Base error for all osmotic exceptions."""

    def __init__(self, message: str, code: str = "OSMOTIC_ERROR") -> None:
        self.code = code
        super().__init__(message)


# -- Engine errors --


class InvalidArgument(OsmoticError, ValueError):
    """A per-call input violates the caller contract (negative time, etc.)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_ARGUMENT")


class InvalidConfiguration(OsmoticError, ValueError):
    """A decay or ratio parameter lies outside its domain."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_CONFIGURATION")


class NumericOverflow(OsmoticError, ArithmeticError):
    """A fixed-point value exceeds the representable uint256 range."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="NUMERIC_OVERFLOW")


# -- Flow ledger errors --


class FlowExistsError(OsmoticError):
    """A flow already exists for the (token, sender, receiver) key."""

    def __init__(self, token: str, sender: str, receiver: str) -> None:
        self.key = (token, sender, receiver)
        super().__init__(
            f"Flow {sender} -> {receiver} already exists for token {token}",
            code="FLOW_EXISTS",
        )


class FlowNotFoundError(OsmoticError, LookupError):
    """No flow exists for the (token, sender, receiver) key."""

    def __init__(self, token: str, sender: str, receiver: str) -> None:
        self.key = (token, sender, receiver)
        super().__init__(
            f"Flow {sender} -> {receiver} not found for token {token}",
            code="FLOW_NOT_FOUND",
        )


# -- Funding ledger errors --


class ProposalNotFoundError(OsmoticError, LookupError):
    """The proposal id has never been registered."""

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal {proposal_id} not found", code="PROPOSAL_NOT_FOUND")


class ProposalInactiveError(OsmoticError):
    """The proposal was executed and no longer accepts stake."""

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal {proposal_id} is not active", code="PROPOSAL_INACTIVE")


class InsufficientStakeError(OsmoticError):
    """A voter tried to withdraw more than they have staked."""

    def __init__(self, voter: str, requested: int, available: int) -> None:
        self.voter = voter
        self.requested = requested
        self.available = available
        super().__init__(
            f"Voter {voter} requested {requested} but only {available} is staked",
            code="INSUFFICIENT_STAKE",
        )
