"""
Tiered staking ledger for the VNDC token.

Stakers lock tokens in one of three tiers.  Rewards accrue linearly on
the principal at the tier's *effective* APY:

    effective_apy = base_apy × boost multiplier
    reward        = amount × effective_apy × elapsed / (365 days × 10000)

The boost multiplier is recomputed from live state on every read (see
``vndc_core.boost``), so pending rewards always reflect the current
TVL / supply ratio.

Lifecycle
─────────
    stake            → Active
    claim / compound → Active   (accrual clock resets to *now*)
    unstake          → Inactive (terminal)

Unstaking before ``start_time + lock_duration`` forfeits part of the
pending reward (50 % by default).  Principal is always returned in full
and the forfeited reward stays in the reward pool for other stakers.

Reward payouts draw strictly from the owner-funded reward pool; an
operation that cannot be paid in full is rejected, never truncated.

Every mutation runs under one lock inside a journaled transaction: the
ledger and token state are captured first and restored if anything
raises (token failure, invariant breach, persistence error).
"""

from __future__ import annotations

import contextlib
import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterator, NamedTuple, Optional

from vndc_core.boost import BaselineDropBoost, BoostPolicy, SupplyRatioBoost
from vndc_core.clock import SystemClock
from vndc_core.crypto_utils import contract_address
from vndc_core.errors import (
    BelowMinimumStake,
    InsufficientRewardPool,
    InvalidAmount,
    InvariantViolation,
    NotOwner,
    StakeNotActive,
)
from vndc_core.events import EventLog
from vndc_core.invariants import InvariantChecker
from vndc_core.penalty import PenaltyPolicy
from vndc_core.precision import WEI_PER_TOKEN, format_amount
from vndc_core.rewards import accrued_since
from vndc_core.tiers import Tier, TierTable
from vndc_core.token import TokenLike

logger = logging.getLogger("vndc_staking")

DEFAULT_MIN_STAKE: int = 1000 * WEI_PER_TOKEN


# ── records ─────────────────────────────────────────────────────────

@dataclass
class Stake:
    """One deposit.  Owned by the ledger; callers get copies."""
    stake_id: int
    staker: str
    amount: int             # principal (grows on compound)
    tier: int
    lock_duration: int      # seconds, copied from the tier at creation
    start_time: int
    last_claim_time: int    # accrual clock
    claimed_rewards: int = 0
    active: bool = True
    closed_at: int = 0
    payout_amount: int = 0
    penalty: int = 0

    @property
    def unlock_time(self) -> int:
        return self.start_time + self.lock_duration

    def is_unlocked(self, now: int) -> bool:
        return now >= self.unlock_time

    def to_dict(self) -> dict:
        return {
            "stake_id": self.stake_id,
            "staker": self.staker,
            "amount": self.amount,
            "tier": self.tier,
            "lock_duration": self.lock_duration,
            "start_time": self.start_time,
            "unlock_time": self.unlock_time,
            "last_claim_time": self.last_claim_time,
            "claimed_rewards": self.claimed_rewards,
            "active": self.active,
            "closed_at": self.closed_at,
            "payout_amount": self.payout_amount,
            "penalty": self.penalty,
        }


class StakeInfo(NamedTuple):
    """Read-only projection of a stake, in contract field order."""
    staker: str
    amount: int
    start_time: int
    lock_duration: int
    apy: int                # current effective APY, bps
    claimed_rewards: int
    active: bool
    unlock_time: int
    tier: int
    pending_rewards: int
    stake_id: int = -1
    last_claim_time: int = 0

    def to_dict(self) -> dict:
        return self._asdict()


EMPTY_STAKE_INFO = StakeInfo("", 0, 0, 0, 0, 0, False, 0, 0, 0)


class StakingStats(NamedTuple):
    total_stakes: int       # stakes ever created == next stake id
    total_staked: int       # TVL
    reward_pool: int
    total_rewards_paid: int
    active_stakes: int
    total_penalties: int

    def to_dict(self) -> dict:
        return self._asdict()


@dataclass(frozen=True)
class UnstakeResult:
    stake_id: int
    staker: str
    principal: int
    reward: int             # reward actually paid
    penalty: int            # reward forfeited to the pool
    early: bool

    @property
    def payout(self) -> int:
        return self.principal + self.reward

    def to_dict(self) -> dict:
        return {
            "stake_id": self.stake_id,
            "staker": self.staker,
            "principal": self.principal,
            "reward": self.reward,
            "penalty": self.penalty,
            "payout": self.payout,
            "early": self.early,
        }


# ── ledger ──────────────────────────────────────────────────────────

class StakeLedger:
    """
    Owns every stake record plus the global TVL / reward-pool accounting.

    Parameters
    ----------
    token : TokenLike
        Custody token.  The ledger holds staked principal and the reward
        pool in ``token.balance_of(ledger.address)``.
    owner : str
        Account allowed to fund the reward pool.
    store : optional
        Persistence backend (``vndc_core.storage.StakeStore``).  When set,
        every committed mutation is written through before it returns.
    """

    def __init__(
        self,
        token: TokenLike,
        owner: str,
        *,
        address: Optional[str] = None,
        tiers: Optional[TierTable] = None,
        boost: Optional[BoostPolicy] = None,
        penalty: Optional[PenaltyPolicy] = None,
        min_stake: int = DEFAULT_MIN_STAKE,
        clock: Optional[Callable[[], int]] = None,
        store: Any = None,
        check_invariants: bool = True,
    ) -> None:
        if min_stake <= 0:
            raise ValueError("min_stake must be positive")
        self.token = token
        self.owner = owner
        self.address = address or contract_address("staking:VNDC")
        self.tiers = tiers or TierTable()
        self.boost = boost or SupplyRatioBoost()
        self.penalty = penalty or PenaltyPolicy()
        self.min_stake = min_stake
        self.clock = clock or SystemClock()
        self.store = store
        self.check_invariants = check_invariants

        self.stakes: dict[int, Stake] = {}
        self.stakes_by_account: dict[str, list[int]] = {}
        self.next_stake_id: int = 0
        self.total_staked: int = 0
        self.reward_pool: int = 0
        self.total_rewards_paid: int = 0
        self.total_penalties: int = 0
        self.events = EventLog()

        self._lock = threading.RLock()
        self._invariants = InvariantChecker()

    # ── journaling ──────────────────────────────────────────────────

    def _capture(self) -> tuple:
        return (
            {sid: replace(s) for sid, s in self.stakes.items()},
            {acct: list(ids) for acct, ids in self.stakes_by_account.items()},
            self.next_stake_id,
            self.total_staked,
            self.reward_pool,
            self.total_rewards_paid,
            self.total_penalties,
            self.owner,
            self.boost.get_state(),
            self.events.mark(),
        )

    def _restore(self, saved: tuple) -> None:
        (stakes, by_account, next_id, total_staked, reward_pool,
         paid, penalties, owner, boost_state, mark) = saved
        self.stakes = stakes
        self.stakes_by_account = by_account
        self.next_stake_id = next_id
        self.total_staked = total_staked
        self.reward_pool = reward_pool
        self.total_rewards_paid = paid
        self.total_penalties = penalties
        self.owner = owner
        self.boost.set_state(boost_state)
        self.events.rollback(mark)

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[None]:
        """All-or-nothing mutation scope (ledger + token + store).

        Ledger and token listeners are only notified after commit.
        """
        with self._lock:
            saved = self._capture()
            token_snap = self.token.snapshot()
            if self.check_invariants:
                self._invariants.capture(self)
            with self.token.deferred_events():
                try:
                    yield
                    if self.check_invariants:
                        ok, msg = self._invariants.verify(self)
                        if not ok:
                            raise InvariantViolation(msg)
                    if self.store is not None:
                        self.store.snapshot_ledger(self)
                except BaseException:
                    self._restore(saved)
                    self.token.restore(token_snap)
                    raise
        self.events.flush()
        self.token.flush_events()

    def sync_store(self) -> None:
        """Write current state through to the store.

        Token-only mutations (mint, approve) happen outside ledger
        transactions; callers that make them use this to persist.
        """
        if self.store is None:
            return
        with self._lock:
            self.store.snapshot_ledger(self)

    # ── helpers ─────────────────────────────────────────────────────

    def _now(self, now: Optional[int]) -> int:
        return int(now) if now is not None else int(self.clock())

    @staticmethod
    def _check_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"{amount!r}")

    def _require_active(self, account: str, stake_id: int) -> Stake:
        stake = self.stakes.get(stake_id)
        if stake is None:
            raise StakeNotActive(f"stake {stake_id} does not exist")
        if not stake.active:
            raise StakeNotActive(f"stake {stake_id} already withdrawn")
        if stake.staker != account:
            raise StakeNotActive(f"stake {stake_id} is not owned by {account}")
        return stake

    def _effective_apy(self, tier: Tier, now: int) -> int:
        return self.boost.effective_apy(
            tier.base_apy_bps, self.total_staked, self.token.total_supply(), now,
        )

    def _pending(self, stake: Stake, now: int) -> int:
        if not stake.active:
            return 0
        apy = self._effective_apy(self.tiers.get_tier(stake.tier), now)
        return accrued_since(stake.amount, apy, stake.last_claim_time, now)

    def _open_stake(self, account: str, amount: int, tier: Tier, now: int) -> Stake:
        self.token.transfer_from(self.address, account, self.address, amount)
        stake = Stake(
            stake_id=self.next_stake_id,
            staker=account,
            amount=amount,
            tier=int(tier.tier_id),
            lock_duration=tier.lock_duration,
            start_time=now,
            last_claim_time=now,
        )
        self.stakes[stake.stake_id] = stake
        self.stakes_by_account.setdefault(account, []).append(stake.stake_id)
        self.next_stake_id += 1
        self.total_staked += amount
        self.boost.observe(self.total_staked, now)
        self.events.emit(
            "StakeCreated", self.address, now,
            stake_id=stake.stake_id, staker=account, amount=amount, tier=int(tier.tier_id),
        )
        return stake

    # ── mutations ───────────────────────────────────────────────────

    def stake(self, account: str, amount: int, tier: int, now: Optional[int] = None) -> Stake:
        """Lock *amount* from *account* (pre-approved) in *tier*."""
        now = self._now(now)
        self._check_amount(amount)
        tier_cfg = self.tiers.get_tier(tier)
        if amount < self.min_stake:
            raise BelowMinimumStake(f"{amount} < {self.min_stake}")

        with self._transaction():
            stake = self._open_stake(account, amount, tier_cfg, now)
            result = replace(stake)

        logger.info(
            f"Stake #{result.stake_id} created: {account} locked "
            f"{format_amount(amount)} in tier {tier_cfg.tier_id}"
        )
        return result

    def stake_with_permit(
        self,
        account: str,
        amount: int,
        tier: int,
        deadline: int,
        signature: bytes,
        now: Optional[int] = None,
    ) -> Stake:
        """Approve via EIP-2612 signature and stake in one atomic step."""
        now = self._now(now)
        self._check_amount(amount)
        tier_cfg = self.tiers.get_tier(tier)
        if amount < self.min_stake:
            raise BelowMinimumStake(f"{amount} < {self.min_stake}")

        with self._transaction():
            self.token.permit(account, self.address, amount, deadline, signature, now)
            stake = self._open_stake(account, amount, tier_cfg, now)
            result = replace(stake)

        logger.info(f"Stake #{result.stake_id} created with permit by {account}")
        return result

    def claim_rewards(self, account: str, stake_id: int, now: Optional[int] = None) -> int:
        """Pay pending rewards to the staker and restart the accrual clock."""
        now = self._now(now)
        with self._transaction():
            stake = self._require_active(account, stake_id)
            reward = self._pending(stake, now)
            if reward > self.reward_pool:
                raise InsufficientRewardPool(f"need {reward}, pool has {self.reward_pool}")
            if reward > 0:
                self.token.transfer(self.address, account, reward)
            self.reward_pool -= reward
            self.total_rewards_paid += reward
            stake.claimed_rewards += reward
            stake.last_claim_time = now
            self.events.emit(
                "RewardsClaimed", self.address, now,
                stake_id=stake_id, staker=account, amount=reward,
            )

        logger.info(f"Stake #{stake_id}: {account} claimed {format_amount(reward)}")
        return reward

    def compound_rewards(self, account: str, stake_id: int, now: Optional[int] = None) -> int:
        """Move pending rewards from the pool into the stake's principal."""
        now = self._now(now)
        with self._transaction():
            stake = self._require_active(account, stake_id)
            reward = self._pending(stake, now)
            if reward > self.reward_pool:
                raise InsufficientRewardPool(f"need {reward}, pool has {self.reward_pool}")
            self.reward_pool -= reward
            self.total_rewards_paid += reward
            stake.amount += reward
            stake.claimed_rewards += reward
            stake.last_claim_time = now
            self.total_staked += reward
            self.boost.observe(self.total_staked, now)
            self.events.emit(
                "RewardsCompounded", self.address, now,
                stake_id=stake_id, staker=account, amount=reward,
            )

        logger.info(f"Stake #{stake_id}: compounded {format_amount(reward)}")
        return reward

    def unstake(self, account: str, stake_id: int, now: Optional[int] = None) -> UnstakeResult:
        """Close a stake: principal back in full, reward penalized if still locked."""
        now = self._now(now)
        with self._transaction():
            stake = self._require_active(account, stake_id)
            pending = self._pending(stake, now)
            early = not stake.is_unlocked(now)
            kept, forfeited = self.penalty.split(pending, now, stake.unlock_time)
            if kept > self.reward_pool:
                raise InsufficientRewardPool(f"need {kept}, pool has {self.reward_pool}")

            principal = stake.amount
            self.token.transfer(self.address, account, principal + kept)
            self.reward_pool -= kept
            self.total_rewards_paid += kept
            self.total_penalties += forfeited
            self.total_staked -= principal
            stake.claimed_rewards += kept
            stake.active = False
            stake.closed_at = now
            stake.payout_amount = principal + kept
            stake.penalty = forfeited
            self.boost.observe(self.total_staked, now)
            self.events.emit(
                "Unstaked", self.address, now,
                stake_id=stake_id, staker=account, amount=principal,
                reward=kept, penalty=forfeited,
            )
            result = UnstakeResult(stake_id, account, principal, kept, forfeited, early)

        if early:
            logger.warning(
                f"Stake #{stake_id} unstaked early by {account}: reward "
                f"{format_amount(pending)}, penalty {format_amount(forfeited)}"
            )
        else:
            logger.info(
                f"Stake #{stake_id} unstaked by {account}: "
                f"payout {format_amount(result.payout)}"
            )
        return result

    def fund_reward_pool(self, caller: str, amount: int, now: Optional[int] = None) -> None:
        """Owner-only: move pre-approved tokens into the reward pool."""
        now = self._now(now)
        if caller != self.owner:
            raise NotOwner(caller)
        self._check_amount(amount)
        with self._transaction():
            self.token.transfer_from(self.address, caller, self.address, amount)
            self.reward_pool += amount
            self.events.emit("RewardPoolFunded", self.address, now,
                             funder=caller, amount=amount)
        logger.info(f"Reward pool funded with {format_amount(amount)}")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        if caller != self.owner:
            raise NotOwner(caller)
        if not new_owner:
            raise ValueError("new owner must be non-empty")
        with self._transaction():
            previous, self.owner = self.owner, new_owner
            self.events.emit("OwnershipTransferred", self.address, self._now(None),
                             previous_owner=previous, new_owner=new_owner)
        logger.info(f"Staking ownership transferred {previous} -> {new_owner}")

    def reset_boost_baseline(self, caller: str, now: Optional[int] = None) -> bool:
        """Owner-only: re-anchor the baseline-drop boost at the current TVL.

        Returns False when the active boost policy has no baseline.
        """
        if caller != self.owner:
            raise NotOwner(caller)
        if not isinstance(self.boost, BaselineDropBoost):
            return False
        now = self._now(now)
        with self._transaction():
            self.boost.set_baseline(self.total_staked)
            self.events.emit("BoostBaselineUpdated", self.address, now,
                             baseline_tvl=self.total_staked)
        return True

    # ── queries ─────────────────────────────────────────────────────

    def get_tier(self, tier_id: int) -> Tier:
        return self.tiers.get_tier(tier_id)

    def get_effective_apy(self, tier_id: int, now: Optional[int] = None) -> int:
        tier = self.tiers.get_tier(tier_id)
        with self._lock:
            return self._effective_apy(tier, self._now(now))

    def get_pending_rewards(self, stake_id: int, now: Optional[int] = None) -> int:
        with self._lock:
            stake = self.stakes.get(stake_id)
            if stake is None:
                return 0
            return self._pending(stake, self._now(now))

    def get_stake(self, stake_id: int) -> Optional[Stake]:
        with self._lock:
            stake = self.stakes.get(stake_id)
            return replace(stake) if stake is not None else None

    def get_stake_info(self, stake_id: int, now: Optional[int] = None) -> StakeInfo:
        """Projection of one stake; a zeroed record for unknown ids."""
        with self._lock:
            stake = self.stakes.get(stake_id)
            if stake is None:
                return EMPTY_STAKE_INFO
            now = self._now(now)
            apy = self._effective_apy(self.tiers.get_tier(stake.tier), now)
            return StakeInfo(
                staker=stake.staker,
                amount=stake.amount,
                start_time=stake.start_time,
                lock_duration=stake.lock_duration,
                apy=apy,
                claimed_rewards=stake.claimed_rewards,
                active=stake.active,
                unlock_time=stake.unlock_time,
                tier=stake.tier,
                pending_rewards=self._pending(stake, now),
                stake_id=stake.stake_id,
                last_claim_time=stake.last_claim_time,
            )

    def get_user_stakes(self, account: str) -> list[int]:
        with self._lock:
            return list(self.stakes_by_account.get(account, []))

    def get_active_stakes(self, account: str) -> list[Stake]:
        with self._lock:
            return [
                replace(self.stakes[sid])
                for sid in self.stakes_by_account.get(account, [])
                if self.stakes[sid].active
            ]

    def active_principal(self) -> int:
        """Sum of active principals, recomputed from the stake records."""
        with self._lock:
            return sum(s.amount for s in self.stakes.values() if s.active)

    def get_total_staked_for(self, account: str) -> int:
        return sum(s.amount for s in self.get_active_stakes(account))

    def get_stats(self) -> StakingStats:
        with self._lock:
            return StakingStats(
                total_stakes=self.next_stake_id,
                total_staked=self.total_staked,
                reward_pool=self.reward_pool,
                total_rewards_paid=self.total_rewards_paid,
                active_stakes=sum(1 for s in self.stakes.values() if s.active),
                total_penalties=self.total_penalties,
            )

    def get_boost_status(self, now: Optional[int] = None) -> dict:
        with self._lock:
            return self.boost.status(
                self.total_staked, self.token.total_supply(), self._now(now),
            )

    def get_tier_info(self, now: Optional[int] = None) -> list[dict]:
        """Tier table with current effective APYs."""
        with self._lock:
            now = self._now(now)
            out = []
            for tier in self.tiers:
                info = tier.to_dict()
                info["effective_apy_bps"] = self._effective_apy(tier, now)
                out.append(info)
            return out

    def get_account_summary(self, account: str, now: Optional[int] = None) -> dict:
        with self._lock:
            now = self._now(now)
            ids = self.stakes_by_account.get(account, [])
            return {
                "account": account,
                "stake_ids": list(ids),
                "total_staked": sum(
                    self.stakes[sid].amount for sid in ids if self.stakes[sid].active
                ),
                "pending_rewards": sum(self._pending(self.stakes[sid], now) for sid in ids),
                "stakes": [self.get_stake_info(sid, now).to_dict() for sid in ids],
            }
