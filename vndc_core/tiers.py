"""
Lock tiers for VNDC staking.

A tier pairs a lock-up duration with a base APY in basis points.  The
table is fixed when the ledger is constructed and never mutated.

    Tier 1:  30 days,  8 % (800 bps)
    Tier 2:  90 days, 12 % (1200 bps)
    Tier 3: 180 days, 18 % (1800 bps)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from vndc_core.errors import InvalidTier

SECONDS_PER_DAY: int = 86_400


class StakeTier(IntEnum):
    DAYS_30 = 1
    DAYS_90 = 2
    DAYS_180 = 3


@dataclass(frozen=True)
class Tier:
    tier_id: int
    lock_duration: int      # seconds
    base_apy_bps: int

    @property
    def lock_days(self) -> int:
        return self.lock_duration // SECONDS_PER_DAY

    # contract-style aliases
    @property
    def apy(self) -> int:
        return self.base_apy_bps

    def to_dict(self) -> dict:
        return {
            "tier": self.tier_id,
            "lock_duration": self.lock_duration,
            "lock_days": self.lock_days,
            "base_apy_bps": self.base_apy_bps,
        }


DEFAULT_TIERS: tuple[Tier, ...] = (
    Tier(StakeTier.DAYS_30, 30 * SECONDS_PER_DAY, 800),
    Tier(StakeTier.DAYS_90, 90 * SECONDS_PER_DAY, 1200),
    Tier(StakeTier.DAYS_180, 180 * SECONDS_PER_DAY, 1800),
)


class TierTable:
    """Immutable id → Tier lookup."""

    def __init__(self, tiers: Optional[tuple[Tier, ...]] = None) -> None:
        tiers = DEFAULT_TIERS if tiers is None else tuple(tiers)
        table: dict[int, Tier] = {}
        for tier in tiers:
            if tier.tier_id in table:
                raise ValueError(f"Duplicate tier id {tier.tier_id}")
            if tier.lock_duration < 0 or tier.base_apy_bps < 0:
                raise ValueError(f"Tier {tier.tier_id} has negative parameters")
            table[int(tier.tier_id)] = tier
        self._tiers: Mapping[int, Tier] = MappingProxyType(table)

    def get_tier(self, tier_id: int) -> Tier:
        try:
            key = int(tier_id)
        except (TypeError, ValueError):
            raise InvalidTier(f"{tier_id!r}") from None
        tier = self._tiers.get(key)
        if tier is None:
            raise InvalidTier(str(tier_id))
        return tier

    def __contains__(self, tier_id: object) -> bool:
        return tier_id in self._tiers

    def __iter__(self) -> Iterator[Tier]:
        return iter(self._tiers[k] for k in sorted(self._tiers))

    def __len__(self) -> int:
        return len(self._tiers)

    def ids(self) -> list[int]:
        return sorted(self._tiers)
