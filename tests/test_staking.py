"""
Tests for the VNDC staking ledger.

Covers:
  - Stake creation, ids, minimum and tier validation
  - Pending reward accrual at the boosted APY
  - Claim / compound semantics and accrual-clock reset
  - Early and matured unstaking, 50 % reward penalty
  - Reward-pool funding and sufficiency
  - Read-side projections (stake info, stats, tiers, boost)
"""

import pytest

from vndc_core.boost import BaselineDropBoost, BoostPolicy, make_boost_policy
from vndc_core.errors import (
    BelowMinimumStake,
    InsufficientAllowanceOrBalance,
    InsufficientRewardPool,
    InvalidAmount,
    InvalidTier,
    NotOwner,
    StakeNotActive,
)
from vndc_core.precision import WEI_PER_TOKEN, parse_ether
from vndc_core.rewards import SECONDS_PER_YEAR
from vndc_core.staking import EMPTY_STAKE_INFO, StakeLedger
from vndc_core.tiers import SECONDS_PER_DAY

DAY = SECONDS_PER_DAY
START = 1_700_000_000
TEN_K = parse_ether("10000")


def _reward(amount, apy_bps, seconds):
    return amount * apy_bps * seconds // (SECONDS_PER_YEAR * 10_000)


# ═══════════════════════════════════════════════════════════════════
#  stake
# ═══════════════════════════════════════════════════════════════════

class TestStake:
    def test_creates_active_record(self, funded_ledger):
        s = funded_ledger.stake("alice", TEN_K, 1)
        assert s.stake_id == 0
        assert s.staker == "alice"
        assert s.amount == TEN_K
        assert s.tier == 1
        assert s.start_time == START
        assert s.last_claim_time == START
        assert s.unlock_time == START + 30 * DAY
        assert s.active
        assert s.claimed_rewards == 0

    def test_moves_tokens_into_custody(self, funded_ledger):
        token = funded_ledger.token
        before = token.balance_of("alice")
        held = token.balance_of(funded_ledger.address)
        funded_ledger.stake("alice", TEN_K, 2)
        assert token.balance_of("alice") == before - TEN_K
        assert token.balance_of(funded_ledger.address) == held + TEN_K
        assert funded_ledger.total_staked == TEN_K

    def test_ids_are_sequential_across_accounts(self, funded_ledger):
        ids = [
            funded_ledger.stake("alice", TEN_K, 1).stake_id,
            funded_ledger.stake("bob", TEN_K, 2).stake_id,
            funded_ledger.stake("alice", TEN_K, 3).stake_id,
        ]
        assert ids == [0, 1, 2]
        assert funded_ledger.get_user_stakes("alice") == [0, 2]
        assert funded_ledger.get_user_stakes("bob") == [1]
        assert funded_ledger.get_stats().total_stakes == 3

    def test_exactly_minimum_accepted(self, funded_ledger):
        s = funded_ledger.stake("alice", parse_ether("1000"), 1)
        assert s.amount == 1000 * WEI_PER_TOKEN

    def test_below_minimum_rejected(self, funded_ledger):
        with pytest.raises(BelowMinimumStake) as exc:
            funded_ledger.stake("alice", parse_ether("999.999"), 1)
        assert "StakingContract: Below minimum stake" in str(exc.value)
        assert funded_ledger.next_stake_id == 0

    @pytest.mark.parametrize("tier", [0, 4])
    def test_invalid_tier_rejected(self, funded_ledger, tier):
        with pytest.raises(InvalidTier):
            funded_ledger.stake("alice", TEN_K, tier)
        assert funded_ledger.total_staked == 0
        assert funded_ledger.stakes == {}

    @pytest.mark.parametrize("amount", [0, -1])
    def test_non_positive_amount_rejected(self, funded_ledger, amount):
        with pytest.raises(InvalidAmount):
            funded_ledger.stake("alice", amount, 1)

    def test_without_allowance_rolls_back(self, funded_ledger):
        funded_ledger.token.mint("owner", "carol", TEN_K)
        with pytest.raises(InsufficientAllowanceOrBalance):
            funded_ledger.stake("carol", TEN_K, 1)
        assert funded_ledger.next_stake_id == 0
        assert funded_ledger.get_user_stakes("carol") == []
        assert funded_ledger.token.balance_of("carol") == TEN_K

    def test_emits_stake_created(self, funded_ledger):
        funded_ledger.stake("alice", TEN_K, 3)
        ev = funded_ledger.events.last("StakeCreated")
        assert ev is not None
        assert ev.args == {"stake_id": 0, "staker": "alice", "amount": TEN_K, "tier": 3}
        assert ev.timestamp == START

    def test_returned_record_is_a_copy(self, funded_ledger):
        s = funded_ledger.stake("alice", TEN_K, 1)
        s.amount = 1
        s.active = False
        assert funded_ledger.stakes[0].amount == TEN_K
        assert funded_ledger.stakes[0].active

    def test_explicit_timestamp(self, funded_ledger):
        s = funded_ledger.stake("alice", TEN_K, 1, now=START + 123)
        assert s.start_time == START + 123

    def test_min_stake_must_be_positive(self, token):
        with pytest.raises(ValueError):
            StakeLedger(token, "owner", min_stake=0)


# ═══════════════════════════════════════════════════════════════════
#  pending rewards
# ═══════════════════════════════════════════════════════════════════

class TestPendingRewards:
    def test_zero_at_stake_time(self, funded_ledger):
        s = funded_ledger.stake("alice", TEN_K, 1)
        assert funded_ledger.get_pending_rewards(s.stake_id) == 0

    def test_accrues_at_boosted_apy(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(15 * DAY)
        # 10k staked out of ~10.2M supply: below 10 %, so 2x boost
        assert funded_ledger.get_effective_apy(1) == 1600
        assert funded_ledger.get_pending_rewards(s.stake_id) == _reward(TEN_K, 1600, 15 * DAY)

    def test_monotonic_over_time(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 2)
        values = []
        for _ in range(10):
            clock.increase(3 * DAY)
            values.append(funded_ledger.get_pending_rewards(s.stake_id))
        assert values == sorted(values)
        assert values[0] > 0

    def test_unknown_stake_is_zero(self, funded_ledger):
        assert funded_ledger.get_pending_rewards(42) == 0

    def test_past_timestamp_is_zero(self, funded_ledger):
        s = funded_ledger.stake("alice", TEN_K, 1)
        assert funded_ledger.get_pending_rewards(s.stake_id, now=START - 100) == 0

    def test_inactive_stake_is_zero(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(40 * DAY)
        funded_ledger.unstake("alice", s.stake_id)
        clock.increase(10 * DAY)
        assert funded_ledger.get_pending_rewards(s.stake_id) == 0


# ═══════════════════════════════════════════════════════════════════
#  claim / compound
# ═══════════════════════════════════════════════════════════════════

class TestClaim:
    def test_claim_pays_pending_and_resets_clock(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(10 * DAY)
        expected = funded_ledger.get_pending_rewards(s.stake_id)
        pool = funded_ledger.reward_pool
        balance = funded_ledger.token.balance_of("alice")

        paid = funded_ledger.claim_rewards("alice", s.stake_id)

        assert paid == expected > 0
        assert funded_ledger.token.balance_of("alice") == balance + paid
        assert funded_ledger.reward_pool == pool - paid
        assert funded_ledger.total_rewards_paid == paid
        info = funded_ledger.get_stake_info(s.stake_id)
        assert info.claimed_rewards == paid
        assert info.last_claim_time == START + 10 * DAY
        assert info.pending_rewards == 0
        assert info.amount == TEN_K

    def test_second_claim_same_instant_is_zero(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(5 * DAY)
        funded_ledger.claim_rewards("alice", s.stake_id)
        assert funded_ledger.claim_rewards("alice", s.stake_id) == 0

    def test_claims_sum_to_continuous_accrual(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 3)
        total = 0
        for _ in range(4):
            clock.increase(7 * DAY)
            total += funded_ledger.claim_rewards("alice", s.stake_id)
        # each leg floors separately, so at most one wei lost per leg
        continuous = _reward(TEN_K, funded_ledger.get_effective_apy(3), 28 * DAY)
        assert continuous - 4 <= total <= continuous

    def test_claim_by_other_account(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(DAY)
        with pytest.raises(StakeNotActive):
            funded_ledger.claim_rewards("bob", s.stake_id)

    def test_claim_unknown_stake(self, funded_ledger):
        with pytest.raises(StakeNotActive):
            funded_ledger.claim_rewards("alice", 99)

    def test_claim_emits_event(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(DAY)
        paid = funded_ledger.claim_rewards("alice", s.stake_id)
        ev = funded_ledger.events.last("RewardsClaimed")
        assert ev.args["amount"] == paid

    def test_claim_after_unstake(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        funded_ledger.unstake("alice", s.stake_id)
        with pytest.raises(StakeNotActive):
            funded_ledger.claim_rewards("alice", s.stake_id)


class TestCompound:
    def test_compound_grows_principal(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 2)
        clock.increase(20 * DAY)
        pending = funded_ledger.get_pending_rewards(s.stake_id)
        pool = funded_ledger.reward_pool
        held = funded_ledger.token.balance_of(funded_ledger.address)

        added = funded_ledger.compound_rewards("alice", s.stake_id)

        assert added == pending > 0
        stake = funded_ledger.get_stake(s.stake_id)
        assert stake.amount == TEN_K + added
        assert stake.claimed_rewards == added
        assert stake.last_claim_time == START + 20 * DAY
        assert funded_ledger.total_staked == TEN_K + added
        assert funded_ledger.reward_pool == pool - added
        # custody balance unchanged: reward moved from pool to principal
        assert funded_ledger.token.balance_of(funded_ledger.address) == held

    def test_compound_keeps_lock_schedule(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(10 * DAY)
        funded_ledger.compound_rewards("alice", s.stake_id)
        assert funded_ledger.get_stake(s.stake_id).unlock_time == s.unlock_time

    def test_compounded_principal_accrues(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(10 * DAY)
        funded_ledger.compound_rewards("alice", s.stake_id)
        clock.increase(10 * DAY)
        amount = funded_ledger.get_stake(s.stake_id).amount
        assert funded_ledger.get_pending_rewards(s.stake_id) == _reward(
            amount, funded_ledger.get_effective_apy(1), 10 * DAY
        )


# ═══════════════════════════════════════════════════════════════════
#  unstake
# ═══════════════════════════════════════════════════════════════════

class TestUnstake:
    def test_early_unstake_halves_reward(self, funded_ledger, clock):
        token = funded_ledger.token
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(15 * DAY)

        pending = funded_ledger.get_pending_rewards(s.stake_id)
        assert pending == _reward(TEN_K, 1600, 15 * DAY)
        pool = funded_ledger.reward_pool
        balance = token.balance_of("alice")

        result = funded_ledger.unstake("alice", s.stake_id)

        assert result.early
        assert result.principal == TEN_K
        assert result.reward == pending // 2
        assert result.penalty == pending - pending // 2
        assert result.payout == TEN_K + pending // 2
        assert token.balance_of("alice") == balance + TEN_K + pending // 2
        assert funded_ledger.reward_pool == pool - pending // 2
        assert funded_ledger.total_penalties == result.penalty
        assert funded_ledger.total_staked == 0

    def test_early_unstake_at_base_rate(self, token, clock):
        ledger = StakeLedger(token, "owner", boost=make_boost_policy("none"), clock=clock)
        token.mint("owner", "owner", parse_ether("1000000"))
        token.approve("owner", ledger.address, parse_ether("1000000"))
        ledger.fund_reward_pool("owner", parse_ether("1000000"))
        token.mint("owner", "alice", TEN_K)
        token.approve("alice", ledger.address, TEN_K)
        s = ledger.stake("alice", TEN_K, 1)
        clock.increase(15 * DAY)

        assert ledger.get_pending_rewards(s.stake_id) == parse_ether("32.876712328767123287")
        result = ledger.unstake("alice", s.stake_id)
        assert result.reward == parse_ether("16.438356164383561643")
        assert result.payout == TEN_K + parse_ether("16.438356164383561643")
        assert token.balance_of("alice") == result.payout

    def test_matured_unstake_pays_full_reward(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(45 * DAY)
        pending = funded_ledger.get_pending_rewards(s.stake_id)
        result = funded_ledger.unstake("alice", s.stake_id)
        assert not result.early
        assert result.reward == pending
        assert result.penalty == 0

    def test_unstake_exactly_at_unlock_has_no_penalty(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.set(s.unlock_time)
        pending = funded_ledger.get_pending_rewards(s.stake_id)
        result = funded_ledger.unstake("alice", s.stake_id)
        assert result.penalty == 0
        assert result.reward == pending

    def test_one_second_before_unlock_is_penalized(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.set(s.unlock_time - 1)
        result = funded_ledger.unstake("alice", s.stake_id)
        assert result.early
        assert result.penalty > 0

    def test_record_is_closed(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 2)
        clock.increase(DAY)
        result = funded_ledger.unstake("alice", s.stake_id)
        stake = funded_ledger.get_stake(s.stake_id)
        assert not stake.active
        assert stake.closed_at == START + DAY
        assert stake.payout_amount == result.payout
        assert stake.penalty == result.penalty

    def test_double_unstake_rejected(self, funded_ledger):
        s = funded_ledger.stake("alice", TEN_K, 1)
        funded_ledger.unstake("alice", s.stake_id)
        with pytest.raises(StakeNotActive):
            funded_ledger.unstake("alice", s.stake_id)

    def test_unstake_other_accounts_stake(self, funded_ledger):
        s = funded_ledger.stake("alice", TEN_K, 1)
        with pytest.raises(StakeNotActive):
            funded_ledger.unstake("bob", s.stake_id)
        assert funded_ledger.get_stake(s.stake_id).active

    def test_unstake_unknown(self, funded_ledger):
        with pytest.raises(StakeNotActive):
            funded_ledger.unstake("alice", 0)

    def test_immediate_unstake_returns_principal(self, funded_ledger):
        s = funded_ledger.stake("alice", TEN_K, 3)
        result = funded_ledger.unstake("alice", s.stake_id)
        assert result.payout == TEN_K
        assert result.reward == 0
        assert result.penalty == 0

    def test_unstaked_event(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(5 * DAY)
        result = funded_ledger.unstake("alice", s.stake_id)
        ev = funded_ledger.events.last("Unstaked")
        assert ev.args["amount"] == TEN_K
        assert ev.args["reward"] == result.reward
        assert ev.args["penalty"] == result.penalty


# ═══════════════════════════════════════════════════════════════════
#  reward pool
# ═══════════════════════════════════════════════════════════════════

class TestRewardPool:
    def test_fund_increases_pool(self, funded_ledger, token):
        token.approve("owner", funded_ledger.address, parse_ether("500"))
        funded_ledger.fund_reward_pool("owner", parse_ether("500"))
        assert funded_ledger.reward_pool == parse_ether("1000500")
        ev = funded_ledger.events.last("RewardPoolFunded")
        assert ev.args == {"funder": "owner", "amount": parse_ether("500")}

    def test_fund_by_non_owner(self, funded_ledger):
        with pytest.raises(NotOwner) as exc:
            funded_ledger.fund_reward_pool("alice", parse_ether("1"))
        assert "Ownable: caller is not the owner" in str(exc.value)

    def test_fund_zero(self, funded_ledger):
        with pytest.raises(InvalidAmount):
            funded_ledger.fund_reward_pool("owner", 0)

    def test_fund_without_allowance(self, funded_ledger):
        pool = funded_ledger.reward_pool
        with pytest.raises(InsufficientAllowanceOrBalance):
            funded_ledger.fund_reward_pool("owner", parse_ether("1"))
        assert funded_ledger.reward_pool == pool

    def test_claim_with_empty_pool_fails_atomically(self, ledger, token, clock):
        token.mint("owner", "alice", TEN_K)
        token.approve("alice", ledger.address, TEN_K)
        s = ledger.stake("alice", TEN_K, 1)
        clock.increase(10 * DAY)
        with pytest.raises(InsufficientRewardPool):
            ledger.claim_rewards("alice", s.stake_id)
        stake = ledger.get_stake(s.stake_id)
        assert stake.last_claim_time == START
        assert stake.claimed_rewards == 0
        assert token.balance_of("alice") == 0

    def test_zero_reward_claim_with_empty_pool(self, ledger, token):
        token.mint("owner", "alice", TEN_K)
        token.approve("alice", ledger.address, TEN_K)
        s = ledger.stake("alice", TEN_K, 1)
        assert ledger.claim_rewards("alice", s.stake_id) == 0

    def test_unstake_with_empty_pool_fails_atomically(self, ledger, token, clock):
        token.mint("owner", "alice", TEN_K)
        token.approve("alice", ledger.address, TEN_K)
        s = ledger.stake("alice", TEN_K, 1)
        clock.increase(40 * DAY)
        with pytest.raises(InsufficientRewardPool):
            ledger.unstake("alice", s.stake_id)
        assert ledger.get_stake(s.stake_id).active
        assert ledger.total_staked == TEN_K
        assert token.balance_of(ledger.address) == TEN_K

    def test_compound_with_empty_pool(self, ledger, token, clock):
        token.mint("owner", "alice", TEN_K)
        token.approve("alice", ledger.address, TEN_K)
        s = ledger.stake("alice", TEN_K, 1)
        clock.increase(DAY)
        with pytest.raises(InsufficientRewardPool):
            ledger.compound_rewards("alice", s.stake_id)
        assert ledger.get_stake(s.stake_id).amount == TEN_K

    def test_forfeited_reward_stays_in_pool(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(15 * DAY)
        pool = funded_ledger.reward_pool
        result = funded_ledger.unstake("alice", s.stake_id)
        assert funded_ledger.reward_pool == pool - result.reward
        assert funded_ledger.token.balance_of(funded_ledger.address) == funded_ledger.reward_pool


# ═══════════════════════════════════════════════════════════════════
#  queries
# ═══════════════════════════════════════════════════════════════════

class TestQueries:
    def test_stake_info_field_order(self, funded_ledger, clock):
        s = funded_ledger.stake("alice", TEN_K, 1)
        clock.increase(DAY)
        info = funded_ledger.get_stake_info(s.stake_id)
        assert info[0] == "alice"
        assert info[1] == TEN_K
        assert info[2] == START
        assert info[3] == 30 * DAY
        assert info[4] == 1600
        assert info[6] is True
        assert info[7] == START + 30 * DAY
        assert info[8] == 1
        assert info[9] == funded_ledger.get_pending_rewards(s.stake_id)

    def test_stake_info_unknown_is_zeroed(self, funded_ledger):
        info = funded_ledger.get_stake_info(1234)
        assert info == EMPTY_STAKE_INFO
        assert info.amount == 0
        assert info.active is False

    def test_effective_apy_per_tier(self, funded_ledger):
        assert [funded_ledger.get_effective_apy(t) for t in (1, 2, 3)] == [1600, 2400, 3600]

    def test_effective_apy_invalid_tier(self, funded_ledger):
        with pytest.raises(InvalidTier):
            funded_ledger.get_effective_apy(9)

    def test_zero_supply_is_unboosted(self, ledger):
        assert ledger.get_effective_apy(1) == 800

    def test_boost_follows_live_supply(self, ledger, token):
        token.mint("owner", "alice", parse_ether("10000"))
        token.approve("alice", ledger.address, parse_ether("5000"))
        ledger.stake("alice", parse_ether("5000"), 1)
        assert ledger.get_effective_apy(1) == 800          # 50 % staked
        token.mint("owner", "bob", parse_ether("90000"))
        assert ledger.get_effective_apy(1) == 1600         # 5 % staked

    def test_get_tier(self, funded_ledger):
        assert funded_ledger.get_tier(2).base_apy_bps == 1200
        with pytest.raises(InvalidTier):
            funded_ledger.get_tier(0)

    def test_stats(self, funded_ledger, clock):
        a = funded_ledger.stake("alice", TEN_K, 1)
        funded_ledger.stake("bob", TEN_K, 2)
        clock.increase(10 * DAY)
        result = funded_ledger.unstake("alice", a.stake_id)
        stats = funded_ledger.get_stats()
        assert stats[0] == 2
        assert stats[1] == TEN_K
        assert stats[2] == parse_ether("1000000") - result.reward
        assert stats.total_rewards_paid == result.reward
        assert stats.active_stakes == 1
        assert stats.total_penalties == result.penalty

    def test_boost_status(self, funded_ledger):
        status = funded_ledger.get_boost_status()
        assert status["policy"] == "supply_ratio"
        assert status["active"] is True
        assert status["multiplier_bps"] == 20_000

    def test_tier_info(self, funded_ledger):
        info = funded_ledger.get_tier_info()
        assert [t["tier"] for t in info] == [1, 2, 3]
        assert info[2]["effective_apy_bps"] == 3600

    def test_account_summary(self, funded_ledger, clock):
        funded_ledger.stake("alice", TEN_K, 1)
        funded_ledger.stake("alice", TEN_K, 3)
        clock.increase(DAY)
        summary = funded_ledger.get_account_summary("alice")
        assert summary["stake_ids"] == [0, 1]
        assert summary["total_staked"] == 2 * TEN_K
        assert summary["pending_rewards"] == sum(
            funded_ledger.get_pending_rewards(i) for i in (0, 1)
        )
        assert len(summary["stakes"]) == 2

    def test_active_stakes(self, funded_ledger):
        a = funded_ledger.stake("alice", TEN_K, 1)
        funded_ledger.stake("alice", TEN_K, 2)
        funded_ledger.unstake("alice", a.stake_id)
        assert [s.stake_id for s in funded_ledger.get_active_stakes("alice")] == [1]
        assert funded_ledger.get_total_staked_for("alice") == TEN_K


# ═══════════════════════════════════════════════════════════════════
#  ownership and boost variants
# ═══════════════════════════════════════════════════════════════════

class TestOwnershipAndPolicies:
    def test_transfer_ownership(self, funded_ledger, token):
        funded_ledger.transfer_ownership("owner", "treasury")
        assert funded_ledger.owner == "treasury"
        token.approve("owner", funded_ledger.address, parse_ether("1"))
        with pytest.raises(NotOwner):
            funded_ledger.fund_reward_pool("owner", parse_ether("1"))

    def test_transfer_ownership_non_owner(self, funded_ledger):
        with pytest.raises(NotOwner):
            funded_ledger.transfer_ownership("alice", "alice")

    def test_flat_policy(self, token, clock):
        ledger = StakeLedger(token, "owner", boost=BoostPolicy(), clock=clock)
        token.mint("owner", "alice", TEN_K)
        assert ledger.get_effective_apy(3) == 1800

    def test_baseline_drop_policy_activates_on_panic(self, token, clock):
        ledger = StakeLedger(token, "owner", boost=BaselineDropBoost(), clock=clock)
        for name in ("alice", "bob"):
            token.mint("owner", name, TEN_K)
            token.approve(name, ledger.address, TEN_K)
        ledger.stake("alice", TEN_K, 1)
        b = ledger.stake("bob", TEN_K, 1)
        assert ledger.get_effective_apy(1) == 800
        ledger.unstake("bob", b.stake_id)
        assert ledger.get_boost_status()["active"] is True
        assert ledger.get_effective_apy(1) == 1200

    def test_reset_boost_baseline(self, token, clock):
        ledger = StakeLedger(token, "owner", boost=BaselineDropBoost(), clock=clock)
        assert ledger.reset_boost_baseline("owner") is True
        with pytest.raises(NotOwner):
            ledger.reset_boost_baseline("alice")

    def test_reset_baseline_without_baseline_policy(self, funded_ledger):
        assert funded_ledger.reset_boost_baseline("owner") is False
