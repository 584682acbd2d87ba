"""
Post-operation invariant checks for the VNDC staking ledger.

  - TVL equals the sum of active stake principals
  - Every active stake has a positive principal
  - ``claimed_rewards`` never decreases
  - An inactive stake never becomes active again
  - Reward pool and TVL are non-negative
  - The custody balance covers TVL + reward pool

The ledger captures a snapshot before each mutation and verifies after
it; a failed check aborts the operation and restores the prior state.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class LedgerSnapshot:
    """Key ledger fields before an operation."""
    total_staked: int = 0
    reward_pool: int = 0
    claimed: dict[int, int] = field(default_factory=dict)
    inactive: set[int] = field(default_factory=set)


class InvariantChecker:
    """
    Captures a pre-operation snapshot of the ledger state and validates
    invariants after the operation is applied.
    """

    def __init__(self):
        self._snapshot: LedgerSnapshot | None = None

    def capture(self, ledger) -> None:
        snap = LedgerSnapshot(
            total_staked=ledger.total_staked,
            reward_pool=ledger.reward_pool,
        )
        for sid, stake in ledger.stakes.items():
            snap.claimed[sid] = stake.claimed_rewards
            if not stake.active:
                snap.inactive.add(sid)
        self._snapshot = snap

    def verify(self, ledger) -> tuple[bool, str]:
        """
        Verify all invariants against the current ledger state.
        Returns (passed, error_message).
        """
        errors: list[str] = []
        for check in (
            self._check_tvl_matches_principals,
            self._check_positive_principal,
            self._check_claimed_monotonic,
            self._check_no_reactivation,
            self._check_non_negative_totals,
            self._check_custody_solvency,
        ):
            ok, msg = check(ledger)
            if not ok:
                errors.append(msg)

        if errors:
            return False, "; ".join(errors)
        return True, ""

    # ── individual checks ───────────────────────────────────────────

    def _check_tvl_matches_principals(self, ledger) -> tuple[bool, str]:
        active_sum = sum(s.amount for s in ledger.stakes.values() if s.active)
        if active_sum != ledger.total_staked:
            return False, (
                f"TVL mismatch: total_staked={ledger.total_staked}, "
                f"sum of active principals={active_sum}"
            )
        return True, ""

    def _check_positive_principal(self, ledger) -> tuple[bool, str]:
        for sid, stake in ledger.stakes.items():
            if stake.active and stake.amount <= 0:
                return False, f"Active stake {sid} has non-positive amount {stake.amount}"
        return True, ""

    def _check_claimed_monotonic(self, ledger) -> tuple[bool, str]:
        if self._snapshot is None:
            return True, ""
        for sid, before in self._snapshot.claimed.items():
            stake = ledger.stakes.get(sid)
            if stake is None:
                return False, f"Stake {sid} disappeared"
            if stake.claimed_rewards < before:
                return False, (
                    f"Stake {sid} claimed_rewards decreased "
                    f"{before} -> {stake.claimed_rewards}"
                )
        return True, ""

    def _check_no_reactivation(self, ledger) -> tuple[bool, str]:
        if self._snapshot is None:
            return True, ""
        for sid in self._snapshot.inactive:
            stake = ledger.stakes.get(sid)
            if stake is not None and stake.active:
                return False, f"Stake {sid} reactivated"
        return True, ""

    def _check_non_negative_totals(self, ledger) -> tuple[bool, str]:
        if ledger.reward_pool < 0:
            return False, f"Negative reward pool: {ledger.reward_pool}"
        if ledger.total_staked < 0:
            return False, f"Negative TVL: {ledger.total_staked}"
        return True, ""

    def _check_custody_solvency(self, ledger) -> tuple[bool, str]:
        held = ledger.token.balance_of(ledger.address)
        owed = ledger.total_staked + ledger.reward_pool
        if held < owed:
            return False, f"Custody balance {held} below TVL + pool {owed}"
        return True, ""
