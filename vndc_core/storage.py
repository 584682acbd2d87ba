"""
SQLite-based persistence layer for VNDC staking state.

Stores stake records, ledger totals, boost state, the custody token's
balances / allowances / permit nonces, and the staking event log so the
service can recover after a restart.

Amounts are 18-decimal integers that overflow SQLite's INTEGER, so they
are stored as decimal TEXT.

Usage:
    store = StakeStore("data/vndc.db")
    ledger = StakeLedger(token, owner, store=store)   # write-through
    ...
    store.restore_ledger(fresh_ledger)
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from vndc_core.events import Event

logger = logging.getLogger("vndc_storage")


class StakeStore:
    """Thin SQLite wrapper for persisting ledger and token state."""

    CURRENT_SCHEMA_VERSION = 1

    def __init__(self, db_path: str = "data/vndc.db"):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        # the ledger lock serialises every write; API handlers and worker
        # threads may call in from different threads
        self._conn = sqlite3.connect(
            db_path, isolation_level=None, check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA busy_timeout = 5000")
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._create_tables()
        self._ensure_schema_version()
        logger.info(f"Storage opened: {db_path}")

    # ── schema ───────────────────────────────────────────────────

    def _create_tables(self) -> None:
        c = self._conn
        c.execute("""
            CREATE TABLE IF NOT EXISTS stakes (
                stake_id        INTEGER PRIMARY KEY,
                staker          TEXT NOT NULL,
                amount          TEXT NOT NULL,
                tier            INTEGER NOT NULL,
                lock_duration   INTEGER NOT NULL,
                start_time      INTEGER NOT NULL,
                last_claim_time INTEGER NOT NULL,
                claimed_rewards TEXT NOT NULL DEFAULT '0',
                active          INTEGER NOT NULL DEFAULT 1,
                closed_at       INTEGER NOT NULL DEFAULT 0,
                payout_amount   TEXT NOT NULL DEFAULT '0',
                penalty         TEXT NOT NULL DEFAULT '0'
            )
        """)
        c.execute("CREATE INDEX IF NOT EXISTS idx_stakes_staker ON stakes (staker)")
        c.execute("""
            CREATE TABLE IF NOT EXISTS ledger_state (
                key   TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        c.execute("""
            CREATE TABLE IF NOT EXISTS token_balances (
                account TEXT PRIMARY KEY,
                balance TEXT NOT NULL
            )
        """)
        c.execute("""
            CREATE TABLE IF NOT EXISTS token_allowances (
                owner   TEXT NOT NULL,
                spender TEXT NOT NULL,
                amount  TEXT NOT NULL,
                PRIMARY KEY (owner, spender)
            )
        """)
        c.execute("""
            CREATE TABLE IF NOT EXISTS token_nonces (
                owner TEXT PRIMARY KEY,
                nonce INTEGER NOT NULL
            )
        """)
        c.execute("""
            CREATE TABLE IF NOT EXISTS events (
                idx       INTEGER PRIMARY KEY,
                name      TEXT NOT NULL,
                emitter   TEXT NOT NULL,
                args_json TEXT NOT NULL,
                timestamp INTEGER NOT NULL
            )
        """)
        c.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                id      INTEGER PRIMARY KEY CHECK (id = 1),
                version INTEGER NOT NULL
            )
        """)

    def _ensure_schema_version(self) -> None:
        row = self._conn.execute(
            "SELECT version FROM schema_version WHERE id = 1"
        ).fetchone()
        if row is None:
            self._conn.execute(
                "INSERT INTO schema_version (id, version) VALUES (1, ?)",
                (self.CURRENT_SCHEMA_VERSION,),
            )
        elif row["version"] > self.CURRENT_SCHEMA_VERSION:
            raise RuntimeError(
                f"Database schema v{row['version']} is newer than this software "
                f"(v{self.CURRENT_SCHEMA_VERSION}).  Upgrade vndc-staking."
            )

    def schema_version(self) -> int:
        row = self._conn.execute(
            "SELECT version FROM schema_version WHERE id = 1"
        ).fetchone()
        return row["version"]

    # ── reads ────────────────────────────────────────────────────

    def load_stakes(self) -> list[dict[str, Any]]:
        rows = self._conn.execute("SELECT * FROM stakes ORDER BY stake_id").fetchall()
        out = []
        for r in rows:
            d = dict(r)
            for key in ("amount", "claimed_rewards", "payout_amount", "penalty"):
                d[key] = int(d[key])
            d["active"] = bool(d["active"])
            out.append(d)
        return out

    def load_state(self) -> dict[str, Any]:
        rows = self._conn.execute("SELECT key, value FROM ledger_state").fetchall()
        return {r["key"]: json.loads(r["value"]) for r in rows}

    def load_balances(self) -> dict[str, int]:
        rows = self._conn.execute("SELECT account, balance FROM token_balances").fetchall()
        return {r["account"]: int(r["balance"]) for r in rows}

    def load_allowances(self) -> dict[tuple[str, str], int]:
        rows = self._conn.execute("SELECT * FROM token_allowances").fetchall()
        return {(r["owner"], r["spender"]): int(r["amount"]) for r in rows}

    def load_nonces(self) -> dict[str, int]:
        rows = self._conn.execute("SELECT owner, nonce FROM token_nonces").fetchall()
        return {r["owner"]: r["nonce"] for r in rows}

    def load_events(self, name: str | None = None) -> list[Event]:
        if name is not None:
            rows = self._conn.execute(
                "SELECT * FROM events WHERE name = ? ORDER BY idx", (name,)
            ).fetchall()
        else:
            rows = self._conn.execute("SELECT * FROM events ORDER BY idx").fetchall()
        return [
            Event(r["name"], r["emitter"], json.loads(r["args_json"]),
                  r["timestamp"], r["idx"])
            for r in rows
        ]

    def has_state(self) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM ledger_state WHERE key = 'next_stake_id'"
        ).fetchone()
        return row is not None

    # ── bulk helpers ─────────────────────────────────────────────

    def snapshot_ledger(self, ledger: Any) -> None:
        """Persist the full current state of a StakeLedger atomically.

        All writes are wrapped in a single transaction so a crash
        mid-write never leaves a partial snapshot.
        """
        c = self._conn
        token = ledger.token
        try:
            c.execute("BEGIN IMMEDIATE")

            c.executemany(
                """INSERT OR REPLACE INTO stakes
                   (stake_id, staker, amount, tier, lock_duration, start_time,
                    last_claim_time, claimed_rewards, active, closed_at,
                    payout_amount, penalty)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (s.stake_id, s.staker, str(s.amount), s.tier, s.lock_duration,
                     s.start_time, s.last_claim_time, str(s.claimed_rewards),
                     int(s.active), s.closed_at, str(s.payout_amount),
                     str(s.penalty))
                    for s in ledger.stakes.values()
                ],
            )

            state = {
                "next_stake_id": ledger.next_stake_id,
                "total_staked": str(ledger.total_staked),
                "reward_pool": str(ledger.reward_pool),
                "total_rewards_paid": str(ledger.total_rewards_paid),
                "total_penalties": str(ledger.total_penalties),
                "owner": ledger.owner,
                "boost": ledger.boost.get_state(),
                "token": {
                    "total_supply": str(token.total_supply()),
                    "paused": bool(getattr(token, "paused", False)),
                    "owner": getattr(token, "owner", ""),
                },
            }
            c.executemany(
                "INSERT OR REPLACE INTO ledger_state (key, value) VALUES (?, ?)",
                [(k, json.dumps(v)) for k, v in state.items()],
            )

            if hasattr(token, "balances"):
                c.execute("DELETE FROM token_balances")
                c.executemany(
                    "INSERT INTO token_balances (account, balance) VALUES (?, ?)",
                    [(a, str(b)) for a, b in token.balances.items()],
                )
                c.execute("DELETE FROM token_allowances")
                c.executemany(
                    "INSERT INTO token_allowances (owner, spender, amount) VALUES (?, ?, ?)",
                    [(o, s, str(v)) for (o, s), v in token.allowances.items()],
                )
                c.execute("DELETE FROM token_nonces")
                c.executemany(
                    "INSERT INTO token_nonces (owner, nonce) VALUES (?, ?)",
                    list(token.nonces.items()),
                )

            # event log is append-only; write whatever is past the stored tail
            row = c.execute("SELECT MAX(idx) AS last FROM events").fetchone()
            start = row["last"] + 1 if row["last"] is not None else 0
            c.executemany(
                """INSERT OR REPLACE INTO events (idx, name, emitter, args_json, timestamp)
                   VALUES (?, ?, ?, ?, ?)""",
                [
                    (e.index, e.name, e.emitter, json.dumps(e.args, default=str), e.timestamp)
                    for e in ledger.events
                    if e.index >= start
                ],
            )

            c.execute("COMMIT")
        except Exception:
            c.execute("ROLLBACK")
            raise
        logger.debug(
            f"Snapshot written: {len(ledger.stakes)} stakes, "
            f"next id {ledger.next_stake_id}"
        )

    def restore_ledger(self, ledger: Any) -> None:
        """
        Restore ledger state from the database (stakes, totals, boost
        state, token balances / allowances / nonces, event log).

        The ledger should be freshly constructed; existing state is
        replaced, not merged.
        """
        from vndc_core.staking import Stake

        stakes: dict[int, Any] = {}
        by_account: dict[str, list[int]] = {}
        for row in self.load_stakes():
            stake = Stake(**row)
            stakes[stake.stake_id] = stake
            by_account.setdefault(stake.staker, []).append(stake.stake_id)

        state = self.load_state()
        token_state = state.get("token", {})
        token = ledger.token

        with ledger._lock:
            ledger.stakes = stakes
            ledger.stakes_by_account = by_account
            ledger.next_stake_id = state.get("next_stake_id", len(stakes))
            ledger.total_staked = int(state.get("total_staked", 0))
            ledger.reward_pool = int(state.get("reward_pool", 0))
            ledger.total_rewards_paid = int(state.get("total_rewards_paid", 0))
            ledger.total_penalties = int(state.get("total_penalties", 0))
            if state.get("owner"):
                ledger.owner = state["owner"]
            ledger.boost.set_state(state.get("boost", {}))
            ledger.events.load(self.load_events())

            if hasattr(token, "balances"):
                token.balances = self.load_balances()
                token.allowances = self.load_allowances()
                token.nonces = self.load_nonces()
                token._total_supply = int(token_state.get("total_supply", 0))
                token.paused = bool(token_state.get("paused", False))
                if token_state.get("owner"):
                    token.owner = token_state["owner"]

        logger.info(
            f"Restored {len(stakes)} stakes "
            f"(TVL {ledger.total_staked}, pool {ledger.reward_pool})"
        )

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
