"""
Stress scenarios against a fresh in-memory deployment.

Each scenario deploys a token + staking ledger on a :class:`ManualClock`,
drives it through a market story, and returns a result object the CLI
prints and the tests assert on.

reward_drain_attempt
    An attacker stakes 10,000 VNDC in tier 1 (30-day lock) and unstakes
    after 15 days.  Principal comes back in full; only half of the
    accrued reward is paid and the other half stays in the pool.

flash_dump_panic
    Three investors stake half their holdings across the three tiers.
    After a week two of them panic-unstake.  The scenario reports how the
    selected boost policy reacts to the TVL drop, then lets the third
    investor add to their position at the boosted rate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from vndc_core.boost import make_boost_policy
from vndc_core.clock import ManualClock
from vndc_core.penalty import PenaltyPolicy
from vndc_core.precision import parse_ether
from vndc_core.staking import StakeLedger
from vndc_core.tiers import SECONDS_PER_DAY, StakeTier
from vndc_core.token import FungibleToken

logger = logging.getLogger("vndc_scenarios")

SCENARIO_START = 1_700_000_000
OWNER = "owner"
OWNER_SUPPLY = parse_ether("10000000")
REWARD_POOL = parse_ether("1000000")


@dataclass
class Deployment:
    token: FungibleToken
    ledger: StakeLedger
    clock: ManualClock

    def fund(self, account: str, amount: int) -> None:
        self.token.mint(OWNER, account, amount)

    def approve_and_stake(self, account: str, amount: int, tier: int):
        self.token.approve(account, self.ledger.address, amount)
        return self.ledger.stake(account, amount, tier)

    def advance_days(self, days: int) -> int:
        return self.clock.increase(days * SECONDS_PER_DAY)


def deploy(
    boost_policy: str = "supply_ratio",
    penalty_bps: int = 5000,
    start: int = SCENARIO_START,
    reward_pool: int = REWARD_POOL,
) -> Deployment:
    """Token with the owner holding 10M VNDC and a funded staking ledger."""
    clock = ManualClock(start)
    token = FungibleToken(OWNER)
    ledger = StakeLedger(
        token,
        OWNER,
        boost=make_boost_policy(boost_policy),
        penalty=PenaltyPolicy(penalty_bps),
        clock=clock,
    )
    token.mint(OWNER, OWNER, OWNER_SUPPLY)
    if reward_pool:
        token.approve(OWNER, ledger.address, reward_pool)
        ledger.fund_reward_pool(OWNER, reward_pool)
    return Deployment(token, ledger, clock)


# ── reward drain ────────────────────────────────────────────────────

@dataclass
class RewardDrainResult:
    stake_id: int
    principal: int
    pending_before: int
    received: int
    pool_before: int
    pool_after: int
    penalty: int
    elapsed_days: int
    lock_days: int

    @property
    def reward_paid(self) -> int:
        return self.received - self.principal

    @property
    def pool_deduction(self) -> int:
        return self.pool_before - self.pool_after

    @property
    def drain_prevented(self) -> bool:
        return (
            self.received >= self.principal
            and self.reward_paid == self.pending_before // 2
            and self.pool_deduction < self.pending_before
        ) or self.pending_before == 0

    def to_dict(self) -> dict:
        return {
            "stake_id": self.stake_id,
            "principal": self.principal,
            "pending_before": self.pending_before,
            "received": self.received,
            "reward_paid": self.reward_paid,
            "penalty": self.penalty,
            "pool_before": self.pool_before,
            "pool_after": self.pool_after,
            "pool_deduction": self.pool_deduction,
            "elapsed_days": self.elapsed_days,
            "lock_days": self.lock_days,
            "drain_prevented": self.drain_prevented,
        }


def reward_drain_attempt(
    boost_policy: str = "supply_ratio",
    stake_amount: int = parse_ether("10000"),
    elapsed_days: int = 15,
) -> RewardDrainResult:
    dep = deploy(boost_policy)
    attacker = "attacker"
    dep.fund(attacker, stake_amount)

    stake = dep.approve_and_stake(attacker, stake_amount, StakeTier.DAYS_30)
    logger.info(f"Attacker staked stake #{stake.stake_id}, advancing {elapsed_days} days")
    dep.advance_days(elapsed_days)

    pending = dep.ledger.get_pending_rewards(stake.stake_id)
    pool_before = dep.ledger.reward_pool
    balance_before = dep.token.balance_of(attacker)

    result = dep.ledger.unstake(attacker, stake.stake_id)

    return RewardDrainResult(
        stake_id=stake.stake_id,
        principal=stake_amount,
        pending_before=pending,
        received=dep.token.balance_of(attacker) - balance_before,
        pool_before=pool_before,
        pool_after=dep.ledger.reward_pool,
        penalty=result.penalty,
        elapsed_days=elapsed_days,
        lock_days=stake.lock_duration // SECONDS_PER_DAY,
    )


# ── flash dump ──────────────────────────────────────────────────────

@dataclass
class PanicUnstake:
    investor: str
    stake_id: int
    principal: int
    pending: int
    penalty: int


@dataclass
class FlashDumpResult:
    policy: str
    baseline_tvl: int
    panic_tvl: int
    recovery_tvl: int
    boost_active: bool
    apy_before: dict[int, int] = field(default_factory=dict)
    apy_after: dict[int, int] = field(default_factory=dict)
    unstakes: list[PanicUnstake] = field(default_factory=list)
    boost_status: dict = field(default_factory=dict)
    additional_stake: int = 0

    @property
    def drop_bps(self) -> int:
        if self.baseline_tvl <= 0:
            return 0
        return (self.baseline_tvl - self.panic_tvl) * 10_000 // self.baseline_tvl

    @property
    def total_penalties(self) -> int:
        return sum(u.penalty for u in self.unstakes)

    def to_dict(self) -> dict:
        return {
            "policy": self.policy,
            "baseline_tvl": self.baseline_tvl,
            "panic_tvl": self.panic_tvl,
            "recovery_tvl": self.recovery_tvl,
            "drop_bps": self.drop_bps,
            "boost_active": self.boost_active,
            "apy_before": dict(self.apy_before),
            "apy_after": dict(self.apy_after),
            "total_penalties": self.total_penalties,
            "additional_stake": self.additional_stake,
            "unstakes": [u.__dict__ for u in self.unstakes],
            "boost_status": dict(self.boost_status),
        }


def _tier_apys(ledger: StakeLedger) -> dict[int, int]:
    return {tier_id: ledger.get_effective_apy(tier_id) for tier_id in ledger.tiers.ids()}


def flash_dump_panic(
    boost_policy: str = "baseline_drop",
    holdings: Optional[dict[str, int]] = None,
) -> FlashDumpResult:
    dep = deploy(boost_policy)
    ledger = dep.ledger
    holdings = holdings or {
        "investor1": parse_ether("100000"),
        "investor2": parse_ether("200000"),
        "investor3": parse_ether("300000"),
    }
    tiers = [StakeTier.DAYS_30, StakeTier.DAYS_90, StakeTier.DAYS_180]

    stake_ids: dict[str, int] = {}
    for (investor, balance), tier in zip(holdings.items(), tiers):
        dep.fund(investor, balance)
        amount = balance // 2
        if amount >= ledger.min_stake:
            stake_ids[investor] = dep.approve_and_stake(investor, amount, tier).stake_id

    baseline = ledger.total_staked
    ledger.reset_boost_baseline(OWNER)
    apy_before = _tier_apys(ledger)
    logger.info(f"Baseline TVL {baseline}; simulating a quiet week")
    dep.advance_days(7)

    unstakes: list[PanicUnstake] = []
    for investor in list(stake_ids)[:2]:
        sid = stake_ids[investor]
        pending = ledger.get_pending_rewards(sid)
        res = ledger.unstake(investor, sid)
        unstakes.append(PanicUnstake(investor, sid, res.principal, pending, res.penalty))
        logger.warning(f"{investor} panic-unstaked stake #{sid}")

    panic_tvl = ledger.total_staked
    status = ledger.get_boost_status()
    apy_after = _tier_apys(ledger)

    additional = 0
    last = list(holdings)[-1]
    free = dep.token.balance_of(last)
    if status["active"] and free // 4 >= ledger.min_stake:
        additional = free // 4
        dep.approve_and_stake(last, additional, StakeTier.DAYS_180)

    return FlashDumpResult(
        policy=boost_policy,
        baseline_tvl=baseline,
        panic_tvl=panic_tvl,
        recovery_tvl=ledger.total_staked,
        boost_active=bool(status["active"]),
        apy_before=apy_before,
        apy_after=apy_after,
        unstakes=unstakes,
        boost_status=status,
        additional_stake=additional,
    )


SCENARIOS = {
    "reward_drain_attempt": reward_drain_attempt,
    "flash_dump_panic": flash_dump_panic,
}
