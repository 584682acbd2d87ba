"""
Dynamic APY boost for VNDC staking.

Supply-ratio boost (canonical)
──────────────────────────────
The boost is derived from how much of the minted supply is locked:

    ratio_bps = total_staked × 10000 / total_supply

    ratio <  10 %  → 2.00×
    ratio <  20 %  → 1.75×
    ratio <  30 %  → 1.50×
    ratio <  40 %  → 1.25×
    ratio ≥  40 %  → 1.00×

    effective_apy = base_apy × multiplier        (bps, floor division)

Nothing is cached: the multiplier is recomputed from the live TVL and
supply on every call, so two calls against unchanged state agree.

Baseline-drop boost (earlier design)
────────────────────────────────────
Tracks a TVL high-water mark.  When TVL falls at least
``drop_threshold_bps`` below that baseline, a flat boost
(``boost_bps``, 1.5× by default) switches on for ``duration`` seconds.
"""

from __future__ import annotations

from typing import Any, Optional

from vndc_core.precision import BPS_DENOMINATOR

ONE_X_BPS: int = BPS_DENOMINATOR

# (ratio upper bound in bps, multiplier in bps); first match wins
SUPPLY_RATIO_BANDS: tuple[tuple[int, int], ...] = (
    (1000, 20_000),
    (2000, 17_500),
    (3000, 15_000),
    (4000, 12_500),
)

DEFAULT_DROP_THRESHOLD_BPS: int = 1000
DEFAULT_BASELINE_BOOST_BPS: int = 15_000
DEFAULT_BOOST_DURATION: int = 7 * 86_400


def staking_ratio_bps(total_staked: int, total_supply: int) -> int:
    if total_supply <= 0:
        return 0
    return total_staked * BPS_DENOMINATOR // total_supply


def supply_ratio_multiplier(total_staked: int, total_supply: int) -> int:
    """Multiplier in bps for the given TVL / supply.  Zero supply → 1×."""
    if total_supply <= 0:
        return ONE_X_BPS
    ratio = staking_ratio_bps(total_staked, total_supply)
    for upper, multiplier in SUPPLY_RATIO_BANDS:
        if ratio < upper:
            return multiplier
    return ONE_X_BPS


def apply_multiplier(base_apy_bps: int, multiplier_bps: int) -> int:
    return base_apy_bps * multiplier_bps // BPS_DENOMINATOR


class BoostPolicy:
    """Interface shared by the boost variants."""

    name = "none"

    def multiplier_bps(self, total_staked: int, total_supply: int, now: int) -> int:
        return ONE_X_BPS

    def effective_apy(
        self, base_apy_bps: int, total_staked: int, total_supply: int, now: int,
    ) -> int:
        return apply_multiplier(
            base_apy_bps, self.multiplier_bps(total_staked, total_supply, now),
        )

    def observe(self, total_staked: int, now: int) -> None:
        """Called after every TVL change."""

    def status(self, total_staked: int, total_supply: int, now: int) -> dict:
        mult = self.multiplier_bps(total_staked, total_supply, now)
        return {
            "policy": self.name,
            "active": mult > ONE_X_BPS,
            "multiplier_bps": mult,
            "ratio_bps": staking_ratio_bps(total_staked, total_supply),
        }

    # persistence hooks
    def get_state(self) -> dict[str, Any]:
        return {}

    def set_state(self, state: dict[str, Any]) -> None:
        pass


class SupplyRatioBoost(BoostPolicy):
    name = "supply_ratio"

    def multiplier_bps(self, total_staked: int, total_supply: int, now: int) -> int:
        return supply_ratio_multiplier(total_staked, total_supply)


class BaselineDropBoost(BoostPolicy):
    name = "baseline_drop"

    def __init__(
        self,
        drop_threshold_bps: int = DEFAULT_DROP_THRESHOLD_BPS,
        boost_bps: int = DEFAULT_BASELINE_BOOST_BPS,
        duration: int = DEFAULT_BOOST_DURATION,
    ) -> None:
        if not 0 < drop_threshold_bps <= BPS_DENOMINATOR:
            raise ValueError("drop_threshold_bps must be in (0, 10000]")
        if boost_bps < ONE_X_BPS:
            raise ValueError("boost_bps must be at least 10000 (1x)")
        self.drop_threshold_bps = drop_threshold_bps
        self.boost_bps = boost_bps
        self.duration = duration
        self.baseline_tvl: int = 0
        self.activated_at: Optional[int] = None

    def _active(self, now: int) -> bool:
        return self.activated_at is not None and now < self.activated_at + self.duration

    def remaining(self, now: int) -> int:
        if not self._active(now):
            return 0
        assert self.activated_at is not None
        return self.activated_at + self.duration - now

    def multiplier_bps(self, total_staked: int, total_supply: int, now: int) -> int:
        return self.boost_bps if self._active(now) else ONE_X_BPS

    def set_baseline(self, tvl: int) -> None:
        self.baseline_tvl = max(0, tvl)

    def observe(self, total_staked: int, now: int) -> None:
        if total_staked > self.baseline_tvl:
            self.baseline_tvl = total_staked
            return
        if self.baseline_tvl <= 0 or self._active(now):
            return
        drop = self.baseline_tvl - total_staked
        if drop * BPS_DENOMINATOR >= self.baseline_tvl * self.drop_threshold_bps:
            self.activated_at = now

    def status(self, total_staked: int, total_supply: int, now: int) -> dict:
        info = super().status(total_staked, total_supply, now)
        drop_bps = 0
        if self.baseline_tvl > 0 and total_staked < self.baseline_tvl:
            drop_bps = (self.baseline_tvl - total_staked) * BPS_DENOMINATOR // self.baseline_tvl
        info.update({
            "baseline_tvl": self.baseline_tvl,
            "drop_bps": drop_bps,
            "activated_at": self.activated_at,
            "remaining_seconds": self.remaining(now),
        })
        return info

    def get_state(self) -> dict[str, Any]:
        return {"baseline_tvl": self.baseline_tvl, "activated_at": self.activated_at}

    def set_state(self, state: dict[str, Any]) -> None:
        self.baseline_tvl = int(state.get("baseline_tvl", 0))
        at = state.get("activated_at")
        self.activated_at = int(at) if at is not None else None


def make_boost_policy(
    name: str,
    drop_threshold_bps: int = DEFAULT_DROP_THRESHOLD_BPS,
    boost_bps: int = DEFAULT_BASELINE_BOOST_BPS,
    duration: int = DEFAULT_BOOST_DURATION,
) -> BoostPolicy:
    if name == SupplyRatioBoost.name:
        return SupplyRatioBoost()
    if name == BaselineDropBoost.name:
        return BaselineDropBoost(drop_threshold_bps, boost_bps, duration)
    if name == BoostPolicy.name:
        return BoostPolicy()
    raise ValueError(f"Unknown boost policy: {name}")
