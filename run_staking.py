#!/usr/bin/env python3
"""
VNDC Staking Service Runner — deploys the token and staking ledger and
serves the REST API:
  - TOML config + VNDC_* environment overrides
  - Optional SQLite write-through persistence (state survives restarts)
  - Initial mints and reward-pool funding for fresh deployments

Usage:
    python run_staking.py --config vndc.toml
    python run_staking.py --port 8545 --db data/vndc.db --fund-pool 1000000

Environment variables (alternative to flags):
    VNDC_API_HOST, VNDC_API_PORT, VNDC_DB_PATH, VNDC_LOG_LEVEL, VNDC_BOOST_POLICY
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import sys

# ---------------------------------------------------------------------------
# Ensure the project root is in sys.path so imports work before pip install
# ---------------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from vndc_core.api import APIServer  # noqa: E402
from vndc_core.boost import make_boost_policy  # noqa: E402
from vndc_core.config import VndcConfig, load_config  # noqa: E402
from vndc_core.logging_config import setup_logging  # noqa: E402
from vndc_core.penalty import PenaltyPolicy  # noqa: E402
from vndc_core.precision import format_amount, parse_units  # noqa: E402
from vndc_core.staking import StakeLedger  # noqa: E402
from vndc_core.storage import StakeStore  # noqa: E402
from vndc_core.tiers import SECONDS_PER_DAY  # noqa: E402
from vndc_core.token import FungibleToken  # noqa: E402

logger = logging.getLogger("vndc_staking")


def build_ledger(cfg: VndcConfig) -> tuple[FungibleToken, StakeLedger, StakeStore | None]:
    """Construct token, ledger and (optionally) store from *cfg*.

    When the store already holds state it is restored; otherwise the
    configured initial mints are applied.
    """
    token = FungibleToken(
        cfg.token.owner,
        name=cfg.token.name,
        symbol=cfg.token.symbol,
        decimals=cfg.token.decimals,
        chain_id=cfg.token.chain_id,
    )
    boost = make_boost_policy(
        cfg.staking.boost_policy,
        drop_threshold_bps=cfg.staking.drop_threshold_bps,
        boost_bps=cfg.staking.boost_bps,
        duration=cfg.staking.boost_duration_days * SECONDS_PER_DAY,
    )
    store = StakeStore(cfg.storage.path) if cfg.storage.enabled else None
    ledger = StakeLedger(
        token,
        cfg.token.owner,
        boost=boost,
        penalty=PenaltyPolicy(cfg.staking.penalty_bps),
        min_stake=parse_units(str(cfg.staking.min_stake), cfg.token.decimals),
        store=store,
        check_invariants=cfg.staking.check_invariants,
    )

    if store is not None and store.has_state():
        store.restore_ledger(ledger)
    else:
        for account, amount in cfg.token.initial_mints.items():
            token.mint(cfg.token.owner, account, parse_units(str(amount), cfg.token.decimals))
        ledger.sync_store()
    return token, ledger, store


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="VNDC Staking Service")
    p.add_argument("--config", default=None, help="Path to vndc.toml config file")
    p.add_argument("--host", default=None, help="API listen host")
    p.add_argument("--port", type=int, default=None, help="API listen port")
    p.add_argument("--db", default=None, help="SQLite database path (enables storage)")
    p.add_argument("--boost-policy", choices=["supply_ratio", "baseline_drop", "none"],
                   default=None, help="APY boost policy")
    p.add_argument("--fund-pool", default=None,
                   help="Mint this many tokens to the owner and fund the reward pool")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    return p.parse_args()


async def main():
    args = parse_args()

    # Load config (TOML + env overrides)
    cfg = load_config(args.config)

    # CLI flags override config
    if args.host:
        cfg.api.host = args.host
    if args.port:
        cfg.api.port = args.port
    if args.db:
        cfg.storage.path = args.db
        cfg.storage.enabled = True
    if args.boost_policy:
        cfg.staking.boost_policy = args.boost_policy
    if args.log_level:
        cfg.logging.level = args.log_level

    setup_logging(cfg.logging.level, cfg.logging.format, cfg.logging.file)

    token, ledger, store = build_ledger(cfg)
    logger.info(
        f"Staking ledger {ledger.address} on token {token.symbol} "
        f"({token.address}), boost policy {ledger.boost.name}"
    )

    if args.fund_pool:
        amount = parse_units(args.fund_pool, token.decimals)
        token.mint(cfg.token.owner, cfg.token.owner, amount)
        token.approve(cfg.token.owner, ledger.address, amount)
        ledger.fund_reward_pool(cfg.token.owner, amount)
        logger.info(f"Reward pool funded: {format_amount(ledger.reward_pool, token.symbol)}")

    if not cfg.api.enabled:
        logger.warning("API disabled in config; nothing to serve")
        return

    api = APIServer(ledger, cfg.api.host, cfg.api.port, api_config=cfg.api)
    await api.start()
    try:
        while True:
            await asyncio.sleep(1)
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        await api.stop()
        if store is not None:
            store.close()


def main_sync():
    """Synchronous entry point for console_scripts."""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())


if __name__ == "__main__":
    main_sync()
