"""
Early-withdrawal penalty.

Unstaking strictly before ``start_time + lock_duration`` forfeits part of
the *reward* (never principal).  With the default 5000 bps the staker
keeps ``floor(pending / 2)``; the remainder stays in the reward pool.
"""

from __future__ import annotations

from dataclasses import dataclass

from vndc_core.precision import BPS_DENOMINATOR

DEFAULT_PENALTY_BPS: int = 5000


@dataclass(frozen=True)
class PenaltyPolicy:
    penalty_bps: int = DEFAULT_PENALTY_BPS

    def __post_init__(self) -> None:
        if not 0 <= self.penalty_bps <= BPS_DENOMINATOR:
            raise ValueError("penalty_bps must be within [0, 10000]")

    def applies(self, now: int, unlock_time: int) -> bool:
        return now < unlock_time

    def split(self, pending: int, now: int, unlock_time: int) -> tuple[int, int]:
        """Return ``(kept, forfeited)`` for *pending* reward at *now*."""
        if pending <= 0:
            return 0, 0
        if not self.applies(now, unlock_time):
            return pending, 0
        kept = pending * (BPS_DENOMINATOR - self.penalty_bps) // BPS_DENOMINATOR
        return kept, pending - kept
