"""
VNDC fungible token — the custody collaborator of the staking ledger.

ERC20-style semantics over integer wei amounts:

  - owner-gated ``mint`` / ``batch_mint`` / ``pause`` / ``unpause``
  - ``transfer`` / ``approve`` / ``transfer_from`` with allowances
  - holder ``burn``
  - EIP-2612 ``permit`` (approve by signature) over secp256k1

The ledger only depends on the :class:`TokenLike` protocol; any object
with the same method set (plus ``snapshot`` / ``restore`` for journaled
rollback) can stand in.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, ContextManager, Optional, Protocol, Sequence, runtime_checkable

from vndc_core.crypto_utils import (
    contract_address,
    domain_separator,
    is_address,
    permit_digest,
    recover_addresses,
)
from vndc_core.errors import (
    ArrayLengthMismatch,
    InsufficientAllowanceOrBalance,
    InvalidAmount,
    NotOwner,
    PermitError,
    PermitExpired,
    TokenPaused,
)
from vndc_core.events import EventLog
from vndc_core.precision import TOKEN_DECIMALS

logger = logging.getLogger("vndc_token")

DEFAULT_CHAIN_ID: int = 31337


@runtime_checkable
class TokenLike(Protocol):
    """Capabilities the staking ledger needs from its custody token."""

    address: str

    def total_supply(self) -> int: ...

    def balance_of(self, account: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def approve(self, owner: str, spender: str, amount: int) -> bool: ...

    def transfer(self, sender: str, to: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool: ...

    def permit(
        self, owner: str, spender: str, value: int, deadline: int,
        signature: bytes, now: Optional[int] = None,
    ) -> None: ...

    def snapshot(self) -> Any: ...

    def restore(self, snap: Any) -> None: ...

    def deferred_events(self) -> ContextManager[None]: ...

    def flush_events(self) -> None: ...

def _check_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{amount!r} is not an integer amount")
    if amount < 0:
        raise InvalidAmount(f"{amount} is negative")
    return amount


class FungibleToken:
    """In-memory VNDC token."""

    def __init__(
        self,
        owner: str,
        name: str = "VNDC Token",
        symbol: str = "VNDC",
        decimals: int = TOKEN_DECIMALS,
        address: Optional[str] = None,
        chain_id: int = DEFAULT_CHAIN_ID,
        version: str = "1",
    ) -> None:
        self.owner = owner
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.address = address or contract_address(f"token:{symbol}")
        self.chain_id = chain_id
        self.version = version
        self.paused = False
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}
        self.nonces: dict[str, int] = {}
        self._total_supply = 0
        self.events = EventLog()
        self._lock = threading.RLock()

    # ── views ───────────────────────────────────────────────────────

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def nonce_of(self, owner: str) -> int:
        return self.nonces.get(owner, 0)

    @property
    def domain_separator(self) -> bytes:
        return domain_separator(self.name, self.version, self.chain_id, self.address)

    # ── internal movements ──────────────────────────────────────────

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise NotOwner(caller)

    def _require_not_paused(self) -> None:
        if self.paused:
            raise TokenPaused()

    def _move(self, sender: str, to: str, amount: int) -> None:
        self._require_not_paused()
        have = self.balances.get(sender, 0)
        if have < amount:
            raise InsufficientAllowanceOrBalance(
                f"transfer amount exceeds balance ({have} < {amount})"
            )
        self.balances[sender] = have - amount
        self.balances[to] = self.balances.get(to, 0) + amount
        self.events.emit("Transfer", self.address, int(time.time()),
                         sender=sender, to=to, value=amount)

    # ── ERC20 surface ───────────────────────────────────────────────

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        _check_amount(amount)
        with self._lock:
            self._move(sender, to, amount)
        self.events.flush()
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        _check_amount(amount)
        with self._lock:
            self.allowances[(owner, spender)] = amount
            self.events.emit("Approval", self.address, int(time.time()),
                             owner=owner, spender=spender, value=amount)
        self.events.flush()
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        """Move *amount* from *owner* to *to*, consuming *spender*'s allowance."""
        _check_amount(amount)
        with self._lock:
            allowed = self.allowance(owner, spender)
            if allowed < amount:
                raise InsufficientAllowanceOrBalance(
                    f"insufficient allowance ({allowed} < {amount})"
                )
            self._move(owner, to, amount)
            self.allowances[(owner, spender)] = allowed - amount
        self.events.flush()
        return True

    # ── supply management ───────────────────────────────────────────

    def mint(self, caller: str, to: str, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            self._require_owner(caller)
            self._require_not_paused()
            self.balances[to] = self.balances.get(to, 0) + amount
            self._total_supply += amount
            self.events.emit("TokensMinted", self.address, int(time.time()),
                             to=to, amount=amount)
        self.events.flush()
        logger.debug(f"Minted {amount} to {to}")

    def batch_mint(self, caller: str, recipients: Sequence[str], amounts: Sequence[int]) -> None:
        if len(recipients) != len(amounts):
            raise ArrayLengthMismatch(f"{len(recipients)} recipients, {len(amounts)} amounts")
        for amount in amounts:
            _check_amount(amount)
        with self._lock:
            self._require_owner(caller)
            self._require_not_paused()
            for to, amount in zip(recipients, amounts):
                self.balances[to] = self.balances.get(to, 0) + amount
                self._total_supply += amount
                self.events.emit("TokensMinted", self.address, int(time.time()),
                                 to=to, amount=amount)
        self.events.flush()

    def burn(self, account: str, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            self._require_not_paused()
            have = self.balances.get(account, 0)
            if have < amount:
                raise InsufficientAllowanceOrBalance(
                    f"burn amount exceeds balance ({have} < {amount})"
                )
            self.balances[account] = have - amount
            self._total_supply -= amount
            self.events.emit("Transfer", self.address, int(time.time()),
                             sender=account, to="", value=amount)
        self.events.flush()

    def pause(self, caller: str) -> None:
        with self._lock:
            self._require_owner(caller)
            self.paused = True
        logger.info(f"{self.symbol} paused by {caller}")

    def unpause(self, caller: str) -> None:
        with self._lock:
            self._require_owner(caller)
            self.paused = False
        logger.info(f"{self.symbol} unpaused by {caller}")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._lock:
            self._require_owner(caller)
            if not new_owner:
                raise NotOwner("new owner is empty")
            previous, self.owner = self.owner, new_owner
            self.events.emit("OwnershipTransferred", self.address, int(time.time()),
                             previous_owner=previous, new_owner=new_owner)
        self.events.flush()

    # ── EIP-2612 ────────────────────────────────────────────────────

    def permit(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        signature: bytes,
        now: Optional[int] = None,
    ) -> None:
        """Set ``allowance(owner, spender) = value`` from an off-line signature."""
        _check_amount(value)
        if now is None:
            now = int(time.time())
        if now > deadline:
            raise PermitExpired(f"deadline {deadline} < now {now}")
        if not is_address(owner) or not is_address(spender):
            raise PermitError("owner and spender must be 0x addresses")
        with self._lock:
            nonce = self.nonce_of(owner)
            digest = permit_digest(
                self.domain_separator, owner, spender, value, nonce, deadline,
            )
            candidates = recover_addresses(digest, signature)
            if owner.lower() not in candidates:
                raise PermitError()
            self.nonces[owner] = nonce + 1
            self.allowances[(owner, spender)] = value
            self.events.emit("Approval", self.address, now,
                             owner=owner, spender=spender, value=value)
        self.events.flush()

    # ── journaling ──────────────────────────────────────────────────

    def deferred_events(self) -> ContextManager[None]:
        """Hold Transfer/Approval delivery until :meth:`flush_events`."""
        return self.events.deferred()

    def flush_events(self) -> None:
        self.events.flush()

    def snapshot(self) -> tuple:
        with self._lock:
            return (
                dict(self.balances),
                dict(self.allowances),
                dict(self.nonces),
                self._total_supply,
                self.paused,
                self.owner,
                self.events.mark(),
            )

    def restore(self, snap: tuple) -> None:
        with self._lock:
            (balances, allowances, nonces, supply,
             paused, owner, mark) = snap
            self.balances = dict(balances)
            self.allowances = dict(allowances)
            self.nonces = dict(nonces)
            self._total_supply = supply
            self.paused = paused
            self.owner = owner
            self.events.rollback(mark)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "address": self.address,
            "owner": self.owner,
            "total_supply": self._total_supply,
            "paused": self.paused,
        }
