"""
VNDC Staking - tiered staking engine for the VNDC token.

Key features:
- Three lock tiers (30 / 90 / 180 days) with base APYs in basis points
- Linear, time-weighted reward accrual in integer wei
- Dynamic APY boost driven by the staked share of supply
- 50 % reward penalty on early withdrawal, principal always returned
- Owner-funded reward pool; payouts are never truncated
- Journaled, all-or-nothing mutations with post-operation invariant checks
- EIP-2612 permit staking, SQLite persistence and an aiohttp REST API
"""

__version__ = "1.0.0"
__all__ = [
    "tiers",
    "rewards",
    "boost",
    "penalty",
    "staking",
    "token",
    "wallet",
    "storage",
    "api",
    "config",
]
