"""
REST / HTTP API server for the VNDC staking ledger.

Built on ``aiohttp``.

Endpoints
---------
GET  /health                  Liveness + invariant check
GET  /stats                   Global ledger totals
GET  /tiers                   Tier table with current effective APYs
GET  /tiers/{tier}            One tier
GET  /stake/{stake_id}        Stake projection (with pending rewards)
GET  /stakes/{account}        Stake ids and summary for an account
GET  /boost                   Boost policy status
GET  /balance/{account}       Token balance
GET  /events                  Staking event log (``?name=`` / ``?limit=``)
POST /tx/stake                Create a stake (optionally with a permit)
POST /tx/claim                Claim rewards
POST /tx/compound             Compound rewards into principal
POST /tx/unstake              Close a stake
POST /tx/fund                 Fund the reward pool (owner)
POST /token/approve           Set an allowance
POST /token/mint              Mint tokens (token owner)

Amounts in request bodies are decimal strings in whole tokens
(``"10000"``, ``"0.5"``) unless sent as ``amount_wei`` integers.
Responses always carry integer wei.

Rejected staking operations map to ``400`` with the contract reason
string in ``error`` and a machine ``code``.

Identity
--------
The server acts as one operator account (``api.operator``, default the
ledger owner), the way a node signs with its own wallet.  Mutating
requests act as the operator; naming any other ``account`` / ``caller`` /
``owner`` in the body is refused with ``403``.  Other holders act through
signatures instead:

- ``/tx/stake`` with ``signature`` + ``deadline`` is an EIP-2612 permit
  from ``account``; the token verifies it.
- ``/tx/claim``, ``/tx/compound`` and ``/tx/unstake`` with ``signature`` +
  ``deadline`` carry an EIP-712 ``StakeAction`` signed by ``account``
  (see :meth:`Wallet.sign_stake_action`).  Each signature is accepted once.

Security
--------
Mutating requests (POST) must carry ``X-API-Key`` when a key is configured;
the header is compared with ``hmac.compare_digest`` and query strings are
never consulted.  Each client address gets ``rate_limit_rpm`` requests per
minute, CORS headers are echoed only to listed origins, and bodies larger
than ``max_body_bytes`` are refused.

Usage:
    api = APIServer(ledger, host="127.0.0.1", port=8545)
    await api.start()    # call inside existing event loop
    ...
    await api.stop()
"""

from __future__ import annotations

import hmac
import json
import logging
import time
from typing import TYPE_CHECKING, Any

from aiohttp import web

from vndc_core.crypto_utils import (
    is_address,
    recover_addresses,
    stake_action_digest,
    staking_domain,
)
from vndc_core.errors import StakingError
from vndc_core.precision import parse_units

if TYPE_CHECKING:
    from vndc_core.config import APIConfig
    from vndc_core.staking import StakeLedger

logger = logging.getLogger("vndc_api")


# ═══════════════════════════════════════════════════════════════════
#  Input helpers
# ═══════════════════════════════════════════════════════════════════

def _safe_int(value: Any, name: str = "value") -> int:
    """Convert *value* to int, rejecting non-integer input."""
    if isinstance(value, bool) or isinstance(value, float):
        raise web.HTTPBadRequest(text=f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise web.HTTPBadRequest(text=f"{name} must be an integer")


def _safe_amount(body: dict[str, Any], name: str = "amount") -> int:
    """Read a positive wei amount from ``<name>_wei`` or a token string."""
    raw_wei = body.get(f"{name}_wei")
    if raw_wei is not None:
        amount = _safe_int(raw_wei, f"{name}_wei")
    else:
        raw = body.get(name)
        if raw is None or isinstance(raw, bool):
            raise web.HTTPBadRequest(text=f"{name} is required")
        try:
            amount = parse_units(str(raw))
        except ValueError:
            raise web.HTTPBadRequest(text=f"{name} must be a decimal token amount")
    if amount <= 0:
        raise web.HTTPBadRequest(text=f"positive {name} required")
    return amount


def _require_str(body: dict[str, Any], name: str) -> str:
    value = body.get(name)
    if not isinstance(value, str) or not value:
        raise web.HTTPBadRequest(text=f"{name} is required")
    return value


def _hex_bytes(value: Any, name: str) -> bytes:
    if not isinstance(value, str):
        raise web.HTTPBadRequest(text=f"{name} must be hex")
    try:
        return bytes.fromhex(value.removeprefix("0x"))
    except ValueError:
        raise web.HTTPBadRequest(text=f"{name} must be hex")


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except Exception as exc:
        raise web.HTTPBadRequest(text="Invalid JSON body") from exc
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(text="JSON body must be an object")
    return body


def _rejected(exc: StakingError) -> web.Response:
    return web.json_response(
        {"error": exc.reason, "code": exc.code, "detail": exc.detail},
        status=400,
    )


# ═══════════════════════════════════════════════════════════════════
#  Request guards
# ═══════════════════════════════════════════════════════════════════

class _RequestThrottle:
    """Refilling allowance of requests per client address."""

    __slots__ = ("_per_minute", "_state")

    def __init__(self, per_minute: int):
        self._per_minute = per_minute
        # address -> [allowance, last seen (monotonic)]
        self._state: dict[str, list[float]] = {}

    def permit(self, address: str) -> bool:
        if self._per_minute <= 0:
            return True
        now = time.monotonic()
        entry = self._state.setdefault(address, [float(self._per_minute), now])
        refill = (now - entry[1]) * self._per_minute / 60.0
        entry[0] = min(entry[0] + refill, float(self._per_minute))
        entry[1] = now
        if entry[0] < 1.0:
            return False
        entry[0] -= 1.0
        return True


def _throttle_guard(throttle: _RequestThrottle):
    @web.middleware
    async def guard(request: web.Request, handler):
        address = request.remote or "unknown"
        if throttle.permit(address):
            return await handler(request)
        logger.warning(f"Throttled request from {address}")
        raise web.HTTPTooManyRequests(
            text="Too many requests, slow down.",
            headers={"Retry-After": "5"},
        )

    return guard


def _api_key_guard(expected: str):
    """Reject mutating requests whose ``X-API-Key`` header does not match."""

    @web.middleware
    async def guard(request: web.Request, handler):
        if request.method not in _MUTATING_METHODS:
            return await handler(request)
        supplied = request.headers.get("X-API-Key", "")
        if hmac.compare_digest(supplied, expected):
            return await handler(request)
        raise web.HTTPUnauthorized(text="Invalid or missing API key")

    return guard


_DEFAULT_BODY_CAP = 1 << 20

_MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

_CORS_HEADERS = {
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, X-API-Key",
    "Access-Control-Max-Age": "3600",
}


def _cors_guard(origins: list[str]):
    """Echo CORS headers back to explicitly listed origins (``*`` ignored)."""
    trusted = {o for o in origins if o and o != "*"}

    @web.middleware
    async def guard(request: web.Request, handler):
        preflight = request.method == "OPTIONS"
        resp = web.Response(status=204) if preflight else await handler(request)
        origin = request.headers.get("Origin")
        if origin in trusted:
            resp.headers.update(_CORS_HEADERS)
            resp.headers["Access-Control-Allow-Origin"] = origin
        return resp

    return guard


def _guards_for(cfg: APIConfig | None) -> list:
    if cfg is None:
        return []
    guards: list = []
    if cfg.rate_limit_rpm > 0:
        guards.append(_throttle_guard(_RequestThrottle(cfg.rate_limit_rpm)))
    if cfg.cors_origins:
        guards.append(_cors_guard(cfg.cors_origins))
    if cfg.api_key:
        guards.append(_api_key_guard(cfg.api_key))
    return guards


class APIServer:
    """Thin aiohttp wrapper around a :class:`StakeLedger`."""

    def __init__(
        self,
        ledger: StakeLedger,
        host: str = "127.0.0.1",
        port: int = 8545,
        *,
        api_config: APIConfig | None = None,
        operator: str | None = None,
    ):
        self.ledger = ledger
        if operator is None and api_config is not None:
            operator = api_config.operator or None
        self.operator = operator or ledger.owner
        self._used_authorisations: set[bytes] = set()
        self.token = ledger.token
        self.host = host
        self.port = port
        self._api_config = api_config
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None
        self._started_at = time.time()

    # ── lifecycle ────────────────────────────────────────────────

    def build_app(self) -> web.Application:
        """Assemble the aiohttp application: request guards, then routes."""
        cfg = self._api_config
        body_cap = cfg.max_body_bytes if cfg is not None else _DEFAULT_BODY_CAP
        app = web.Application(middlewares=_guards_for(cfg), client_max_size=body_cap)
        self._register_routes(app)
        return app

    async def start(self) -> None:
        self._app = self.build_app()
        runner = web.AppRunner(self._app)
        await runner.setup()
        await web.TCPSite(runner, self.host, self.port).start()
        self._runner = runner
        logger.info(f"Staking API serving on http://{self.host}:{self.port}")

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    # ── routes ───────────────────────────────────────────────────

    def _register_routes(self, app: web.Application) -> None:
        app.router.add_get("/health", self._health)
        app.router.add_get("/stats", self._stats)
        app.router.add_get("/tiers", self._tiers)
        app.router.add_get("/tiers/{tier}", self._tier)
        app.router.add_get("/stake/{stake_id}", self._stake_info)
        app.router.add_get("/stakes/{account}", self._account_stakes)
        app.router.add_get("/boost", self._boost)
        app.router.add_get("/balance/{account}", self._balance)
        app.router.add_get("/events", self._events)
        app.router.add_post("/tx/stake", self._submit_stake)
        app.router.add_post("/tx/claim", self._submit_claim)
        app.router.add_post("/tx/compound", self._submit_compound)
        app.router.add_post("/tx/unstake", self._submit_unstake)
        app.router.add_post("/tx/fund", self._submit_fund)
        app.router.add_post("/token/approve", self._token_approve)
        app.router.add_post("/token/mint", self._token_mint)

    # ── read handlers ────────────────────────────────────────────

    async def _health(self, _request: web.Request) -> web.Response:
        """Health check: reports custody solvency and TVL consistency."""
        ledger = self.ledger
        stats = ledger.get_stats()
        held = self.token.balance_of(ledger.address)
        solvent = held >= stats.total_staked + stats.reward_pool
        active_sum = ledger.active_principal()
        tvl_ok = active_sum == stats.total_staked
        healthy = solvent and tvl_ok
        return web.json_response({
            "ok": healthy,
            "uptime": round(time.time() - self._started_at, 1),
            "staking_address": ledger.address,
            "token_address": self.token.address,
            "active_stakes": stats.active_stakes,
            "checks": {
                "custody": "ok" if solvent else "degraded",
                "tvl": "ok" if tvl_ok else "degraded",
            },
        }, status=200 if healthy else 503)

    async def _stats(self, _request: web.Request) -> web.Response:
        stats = self.ledger.get_stats().to_dict()
        stats["total_supply"] = self.token.total_supply()
        return web.json_response(stats, dumps=_json_dumps)

    async def _tiers(self, _request: web.Request) -> web.Response:
        return web.json_response({"tiers": self.ledger.get_tier_info()}, dumps=_json_dumps)

    async def _tier(self, request: web.Request) -> web.Response:
        tier_id = _safe_int(request.match_info["tier"], "tier")
        try:
            tier = self.ledger.get_tier(tier_id)
        except StakingError as exc:
            return web.json_response({"error": exc.reason, "code": exc.code}, status=404)
        info = tier.to_dict()
        info["effective_apy_bps"] = self.ledger.get_effective_apy(tier_id)
        return web.json_response(info, dumps=_json_dumps)

    async def _stake_info(self, request: web.Request) -> web.Response:
        stake_id = _safe_int(request.match_info["stake_id"], "stake_id")
        if self.ledger.get_stake(stake_id) is None:
            return web.json_response({"error": "stake not found"}, status=404)
        info = self.ledger.get_stake_info(stake_id)
        return web.json_response(info.to_dict(), dumps=_json_dumps)

    async def _account_stakes(self, request: web.Request) -> web.Response:
        account = request.match_info["account"]
        return web.json_response(
            self.ledger.get_account_summary(account), dumps=_json_dumps,
        )

    async def _boost(self, _request: web.Request) -> web.Response:
        return web.json_response(self.ledger.get_boost_status(), dumps=_json_dumps)

    async def _balance(self, request: web.Request) -> web.Response:
        account = request.match_info["account"]
        return web.json_response({
            "account": account,
            "balance": self.token.balance_of(account),
            "allowance_to_staking": self.token.allowance(account, self.ledger.address),
        })

    async def _events(self, request: web.Request) -> web.Response:
        name = request.query.get("name")
        limit = _safe_int(request.query.get("limit", "100"), "limit")
        limit = max(1, min(limit, 1000))
        if name:
            events = self.ledger.events.by_name(name)
        else:
            events = list(self.ledger.events)
        return web.json_response(
            {"events": [e.to_dict() for e in events[-limit:]], "count": len(events)},
            dumps=_json_dumps,
        )

    # ── identity ─────────────────────────────────────────────────

    def _as_operator(self, body: dict[str, Any], field: str) -> str:
        """The operator, provided the body does not name someone else."""
        claimed = body.get(field)
        if claimed is None:
            return self.operator
        if not isinstance(claimed, str) or not claimed:
            raise web.HTTPBadRequest(text=f"{field} must be a non-empty string")
        if claimed != self.operator:
            logger.warning(f"Refused request naming {field}={claimed!r}")
            raise web.HTTPForbidden(text=f"{field} must be the service operator")
        return self.operator

    def _signed_account(
        self, body: dict[str, Any], action: str, stake_id: int,
    ) -> tuple[str, bytes | None]:
        """Acting account for a stake action, and the authorisation digest to burn."""
        if body.get("signature") is None:
            return self._as_operator(body, "account"), None
        account = _require_str(body, "account")
        if not is_address(account):
            raise web.HTTPBadRequest(text="account must be a 0x address for signed requests")
        signature = _hex_bytes(body["signature"], "signature")
        deadline = _safe_int(body.get("deadline"), "deadline")
        if deadline < 0:
            raise web.HTTPBadRequest(text="deadline must be non-negative")
        if int(self.ledger.clock()) > deadline:
            raise web.HTTPForbidden(text="signature expired")
        try:
            digest = stake_action_digest(
                staking_domain(self.token.chain_id, self.ledger.address),
                action, account, stake_id, deadline,
            )
        except ValueError:
            raise web.HTTPBadRequest(text="stake_id or deadline out of range")
        if digest in self._used_authorisations:
            raise web.HTTPForbidden(text="signature already used")
        if account.lower() not in recover_addresses(digest, signature):
            logger.warning(f"Bad {action} signature for {account} on stake {stake_id}")
            raise web.HTTPForbidden(text="signature does not match account")
        return account, digest

    # ── staking handlers ─────────────────────────────────────────

    async def _submit_stake(self, request: web.Request) -> web.Response:
        """
        POST /tx/stake
        Body: {"amount": "10000", "tier": 1}  (stakes the operator's tokens)
        Permit: {"account": "0x…", "amount": …, "tier": …,
                 "deadline": 1700000000, "signature": "<hex>"}
        """
        body = await _read_json(request)
        amount = _safe_amount(body)
        tier = _safe_int(body.get("tier", 0), "tier")
        permit: tuple[int, bytes] | None = None
        if body.get("signature") is not None:
            account = _require_str(body, "account")
            permit = (
                _safe_int(body.get("deadline", 0), "deadline"),
                _hex_bytes(body["signature"], "signature"),
            )
        else:
            account = self._as_operator(body, "account")

        try:
            if permit is not None:
                stake = self.ledger.stake_with_permit(account, amount, tier, *permit)
            else:
                stake = self.ledger.stake(account, amount, tier)
        except StakingError as exc:
            logger.info(f"Stake rejected for {account}: {exc}")
            return _rejected(exc)

        return web.json_response(
            {"status": "staked", "stake": stake.to_dict()}, dumps=_json_dumps,
        )

    async def _stake_action(self, request: web.Request, action: str) -> web.Response:
        body = await _read_json(request)
        stake_id = _safe_int(body.get("stake_id"), "stake_id")
        if stake_id < 0:
            raise web.HTTPBadRequest(text="stake_id must be non-negative")
        account, authorisation = self._signed_account(body, action, stake_id)
        try:
            if action == "claim":
                result: dict[str, Any] = {
                    "reward": self.ledger.claim_rewards(account, stake_id)
                }
            elif action == "compound":
                result = {"compounded": self.ledger.compound_rewards(account, stake_id)}
            else:
                result = self.ledger.unstake(account, stake_id).to_dict()
        except StakingError as exc:
            logger.info(f"{action} rejected for stake {stake_id}: {exc}")
            return _rejected(exc)
        if authorisation is not None:
            self._used_authorisations.add(authorisation)
        result["stake_id"] = stake_id
        result["status"] = action
        return web.json_response(result, dumps=_json_dumps)

    async def _submit_claim(self, request: web.Request) -> web.Response:
        return await self._stake_action(request, "claim")

    async def _submit_compound(self, request: web.Request) -> web.Response:
        return await self._stake_action(request, "compound")

    async def _submit_unstake(self, request: web.Request) -> web.Response:
        return await self._stake_action(request, "unstake")

    async def _submit_fund(self, request: web.Request) -> web.Response:
        body = await _read_json(request)
        amount = _safe_amount(body)
        caller = self._as_operator(body, "caller")
        try:
            self.ledger.fund_reward_pool(caller, amount)
        except StakingError as exc:
            return _rejected(exc)
        return web.json_response({
            "status": "funded",
            "amount": amount,
            "reward_pool": self.ledger.reward_pool,
        }, dumps=_json_dumps)

    # ── token handlers ───────────────────────────────────────────

    async def _token_approve(self, request: web.Request) -> web.Response:
        body = await _read_json(request)
        amount = _safe_amount(body)
        spender = body.get("spender") or self.ledger.address
        if not isinstance(spender, str):
            raise web.HTTPBadRequest(text="spender must be a string")
        owner = self._as_operator(body, "owner")
        try:
            self.token.approve(owner, spender, amount)
            self.ledger.sync_store()
        except StakingError as exc:
            return _rejected(exc)
        return web.json_response(
            {"status": "approved", "owner": owner, "spender": spender, "amount": amount},
            dumps=_json_dumps,
        )

    async def _token_mint(self, request: web.Request) -> web.Response:
        body = await _read_json(request)
        to = _require_str(body, "to")
        amount = _safe_amount(body)
        caller = self._as_operator(body, "caller")
        try:
            self.token.mint(caller, to, amount)
            self.ledger.sync_store()
        except StakingError as exc:
            return _rejected(exc)
        return web.json_response({
            "status": "minted",
            "to": to,
            "amount": amount,
            "total_supply": self.token.total_supply(),
        }, dumps=_json_dumps)


def _json_dumps(obj: Any) -> str:
    """JSON serialiser that handles non-standard types."""
    return json.dumps(obj, default=str)
