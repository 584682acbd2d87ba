"""
Error kinds raised by the VNDC staking engine and its token collaborator.

Every error carries a short machine ``code`` and a contract-style
``reason`` string.  All of them subclass ``ValueError`` so callers that
only care about "the operation was rejected" can catch that.
"""

from __future__ import annotations


class StakingError(ValueError):
    """Base class for every rejected operation."""

    code: str = "staking_error"
    reason: str = "StakingContract: operation rejected"

    def __init__(self, detail: str = ""):
        self.detail = detail
        msg = f"{self.reason}: {detail}" if detail else self.reason
        super().__init__(msg)


class InvalidTier(StakingError):
    code = "invalid_tier"
    reason = "StakingContract: Invalid tier"


class BelowMinimumStake(StakingError):
    code = "below_minimum_stake"
    reason = "StakingContract: Below minimum stake"


class StakeNotActive(StakingError):
    """Unknown stake id, already withdrawn, or not owned by the caller."""
    code = "stake_not_active"
    reason = "StakingContract: Stake not active"


class InsufficientRewardPool(StakingError):
    code = "insufficient_reward_pool"
    reason = "StakingContract: Insufficient reward pool"


class InvalidAmount(StakingError):
    code = "invalid_amount"
    reason = "Invalid amount"


class InvariantViolation(StakingError):
    code = "invariant_violation"
    reason = "StakingContract: Invariant violated"


# ── token-side errors ───────────────────────────────────────────────

class InsufficientAllowanceOrBalance(StakingError):
    code = "insufficient_allowance_or_balance"
    reason = "ERC20: insufficient allowance or balance"


class NotOwner(StakingError):
    code = "not_owner"
    reason = "Ownable: caller is not the owner"


class TokenPaused(StakingError):
    code = "paused"
    reason = "Pausable: paused"


class ArrayLengthMismatch(StakingError):
    code = "length_mismatch"
    reason = "VNDC: Arrays length mismatch"


class PermitError(StakingError):
    code = "invalid_permit"
    reason = "ERC20Permit: invalid signature"


class PermitExpired(PermitError):
    code = "expired_deadline"
    reason = "ERC20Permit: expired deadline"
