#!/usr/bin/env python3
"""
Run a VNDC staking stress scenario against a fresh in-memory deployment.

Usage:
    python scripts/run_scenario.py reward_drain_attempt
    python scripts/run_scenario.py flash_dump_panic --boost-policy baseline_drop
    python scripts/run_scenario.py flash_dump_panic --all-policies --json
"""

from __future__ import annotations

import argparse
import json
import os
import sys

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from vndc_core.logging_config import setup_logging  # noqa: E402
from vndc_core.precision import format_amount, format_bps  # noqa: E402
from vndc_core.scenarios import SCENARIOS, flash_dump_panic, reward_drain_attempt  # noqa: E402

POLICIES = ("supply_ratio", "baseline_drop")


def _print_reward_drain(policy: str) -> bool:
    r = reward_drain_attempt(policy)
    print(f"=== REWARD DRAIN ATTEMPT ({policy}) ===")
    print(f"  Principal staked:   {format_amount(r.principal)}")
    print(f"  Lock / elapsed:     {r.lock_days} days / {r.elapsed_days} days")
    print(f"  Pending before:     {format_amount(r.pending_before)}")
    print(f"  Received:           {format_amount(r.received)}")
    print(f"  Penalty (kept):     {format_amount(r.penalty)}")
    print(f"  Pool deduction:     {format_amount(r.pool_deduction)}")
    verdict = "PREVENTED" if r.drain_prevented else "NOT PREVENTED"
    print(f"  Reward drain:       {verdict}\n")
    return r.drain_prevented


def _print_flash_dump(policy: str) -> bool:
    r = flash_dump_panic(policy)
    print(f"=== FLASH DUMP PANIC ({policy}) ===")
    print(f"  Baseline TVL:       {format_amount(r.baseline_tvl)}")
    for u in r.unstakes:
        print(f"  {u.investor} unstaked {format_amount(u.principal)}, "
              f"penalty {format_amount(u.penalty)}")
    print(f"  TVL after panic:    {format_amount(r.panic_tvl)} (drop {format_bps(r.drop_bps)})")
    print(f"  Boost active:       {r.boost_active}")
    for tier_id in sorted(r.apy_before):
        print(f"    Tier {tier_id}: {format_bps(r.apy_before[tier_id])} -> "
              f"{format_bps(r.apy_after[tier_id])}")
    if r.additional_stake:
        print(f"  Recovery stake:     {format_amount(r.additional_stake)}")
    print(f"  TVL after recovery: {format_amount(r.recovery_tvl)}\n")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a VNDC staking stress scenario.")
    parser.add_argument("scenario", choices=sorted(SCENARIOS))
    parser.add_argument("--boost-policy", choices=POLICIES, default=None)
    parser.add_argument("--all-policies", action="store_true",
                        help="Run once per boost policy")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    setup_logging(args.log_level)

    if args.all_policies:
        policies = list(POLICIES)
    else:
        default = "baseline_drop" if args.scenario == "flash_dump_panic" else "supply_ratio"
        policies = [args.boost_policy or default]

    if args.json:
        results = {p: SCENARIOS[args.scenario](p).to_dict() for p in policies}
        print(json.dumps(results, indent=2, default=str))
        return 0

    printer = _print_reward_drain if args.scenario == "reward_drain_attempt" else _print_flash_dump
    ok = all([printer(p) for p in policies])
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
