"""
Time-weighted reward accrual.

    reward = amount × apy_bps × elapsed / (SECONDS_PER_YEAR × 10000)

Integer arithmetic with floor division throughout, so the result is
exactly 0 at ``elapsed == 0`` and never decreases as time moves forward.
"""

from __future__ import annotations

from vndc_core.precision import BPS_DENOMINATOR

SECONDS_PER_YEAR: int = 365 * 86_400


def pending_reward(amount: int, effective_apy_bps: int, elapsed_seconds: int) -> int:
    """Reward accrued by *amount* at *effective_apy_bps* over *elapsed_seconds*.

    Negative elapsed time (clock behind the accrual start) counts as zero.
    """
    if amount <= 0 or effective_apy_bps <= 0 or elapsed_seconds <= 0:
        return 0
    return (amount * effective_apy_bps * elapsed_seconds) // (
        SECONDS_PER_YEAR * BPS_DENOMINATOR
    )


def accrued_since(amount: int, effective_apy_bps: int, since: int, now: int) -> int:
    """Reward accrued between the *since* and *now* timestamps."""
    return pending_reward(amount, effective_apy_bps, now - since)
