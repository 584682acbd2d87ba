"""
Shared pytest fixtures for the VNDC staking test suite.
"""

import pytest

from vndc_core.clock import ManualClock
from vndc_core.precision import parse_ether
from vndc_core.staking import StakeLedger
from vndc_core.token import FungibleToken
from vndc_core.wallet import Wallet

START = 1_700_000_000
OWNER = "owner"


@pytest.fixture
def clock():
    """Manual clock frozen at a fixed timestamp."""
    return ManualClock(START)


@pytest.fixture
def token():
    """Fresh VNDC token with zero supply."""
    return FungibleToken(OWNER)


@pytest.fixture
def ledger(token, clock):
    """Unfunded staking ledger on the manual clock."""
    return StakeLedger(token, OWNER, clock=clock)


@pytest.fixture
def funded_ledger(ledger, token):
    """Owner holds 10M VNDC, reward pool holds 1M, alice and bob hold 100k each."""
    token.mint(OWNER, OWNER, parse_ether("10000000"))
    token.approve(OWNER, ledger.address, parse_ether("1000000"))
    ledger.fund_reward_pool(OWNER, parse_ether("1000000"))
    for name in ("alice", "bob"):
        token.mint(OWNER, name, parse_ether("100000"))
        token.approve(name, ledger.address, parse_ether("100000"))
    return ledger


@pytest.fixture
def alice_wallet():
    """Deterministic wallet for Alice."""
    return Wallet.from_seed("alice-fixture-seed")


@pytest.fixture
def stake_for():
    """Approve and stake whole-token amounts in one call."""

    def _stake(ledger, account, tokens, tier, now=None):
        amount = parse_ether(str(tokens))
        ledger.token.approve(account, ledger.address, amount)
        return ledger.stake(account, amount, tier, now)

    return _stake
