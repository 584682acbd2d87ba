"""
Service configuration: TOML file plus ``VNDC_*`` environment overrides.

Every section is a plain dataclass with working defaults, so an empty
config still deploys a usable ledger.

Usage:
    from vndc_core.config import load_config
    cfg = load_config("vndc.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


@dataclass
class TokenConfig:
    """Custody token deployment."""
    name: str = "VNDC Token"
    symbol: str = "VNDC"
    decimals: int = 18
    owner: str = "owner"
    chain_id: int = 31337
    # address → whole-token balance minted at startup (fresh state only)
    initial_mints: dict[str, float] = field(default_factory=dict)


@dataclass
class StakingConfig:
    """Ledger economics."""
    min_stake: float = 1000.0          # whole tokens
    penalty_bps: int = 5000
    # "supply_ratio" (default), "baseline_drop" or "none"
    boost_policy: str = "supply_ratio"
    drop_threshold_bps: int = 1000
    boost_bps: int = 15_000
    boost_duration_days: int = 7
    check_invariants: bool = True


@dataclass
class APIConfig:
    """HTTP API listener and request guards."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8545
    api_key: str = ""                  # empty disables POST auth
    rate_limit_rpm: int = 120          # per client address; 0 disables
    cors_origins: list[str] = field(default_factory=list)
    max_body_bytes: int = 1 << 20
    operator: str = ""                 # account POSTs act as; empty = ledger owner


@dataclass
class StorageConfig:
    """SQLite snapshot store."""
    enabled: bool = False
    backend: str = "sqlite"
    path: str = "data/vndc.db"


@dataclass
class LoggingConfig:
    """Log level, console format and optional JSON file."""
    level: str = "INFO"
    format: str = "human"   # or "json"
    file: str | None = None


@dataclass
class VndcConfig:
    """All sections, as loaded by :func:`load_config`."""
    token: TokenConfig = field(default_factory=TokenConfig)
    staking: StakingConfig = field(default_factory=StakingConfig)
    api: APIConfig = field(default_factory=APIConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Copy recognised keys of *raw* onto *dc*; ``a-b`` keys map to ``a_b``."""
    known = {f.name for f in fields(dc)}
    for key, value in raw.items():
        attr = key.replace("-", "_")
        if attr in known:
            setattr(dc, attr, value)


def _read_toml(path: str | None) -> dict[str, Any]:
    if path is None or not Path(path).is_file():
        return {}
    with Path(path).open("rb") as fh:
        return tomllib.load(fh)


def load_config(path: str | None = None) -> VndcConfig:
    """
    Build a :class:`VndcConfig` from defaults, an optional TOML file and
    ``VNDC_*`` environment variables, in that order of precedence (last wins).

    A missing file is not an error.  Unknown sections and keys are ignored.
    Empty environment values count as unset.

    Environment variables:
        VNDC_TOKEN_OWNER    token.owner
        VNDC_MIN_STAKE      staking.min_stake
        VNDC_PENALTY_BPS    staking.penalty_bps
        VNDC_BOOST_POLICY   staking.boost_policy
        VNDC_API_HOST       api.host
        VNDC_API_PORT       api.port, and forces api.enabled
        VNDC_API_KEY        api.api_key
        VNDC_API_OPERATOR   api.operator
        VNDC_CORS_ORIGINS   api.cors_origins, comma separated
        VNDC_LOG_LEVEL      logging.level
        VNDC_LOG_FMT        logging.format
        VNDC_DB_PATH        storage.path, and forces storage.enabled
    """
    cfg = VndcConfig()

    data = _read_toml(path)
    for section in ("token", "staking", "api", "storage", "logging"):
        table = data.get(section)
        if isinstance(table, dict):
            _merge(getattr(cfg, section), table)

    env = os.environ
    if owner := env.get("VNDC_TOKEN_OWNER"):
        cfg.token.owner = owner
    if min_stake := env.get("VNDC_MIN_STAKE"):
        cfg.staking.min_stake = float(min_stake)
    if penalty := env.get("VNDC_PENALTY_BPS"):
        cfg.staking.penalty_bps = int(penalty)
    if policy := env.get("VNDC_BOOST_POLICY"):
        cfg.staking.boost_policy = policy
    if host := env.get("VNDC_API_HOST"):
        cfg.api.host = host
    if port := env.get("VNDC_API_PORT"):
        cfg.api.enabled, cfg.api.port = True, int(port)
    if key := env.get("VNDC_API_KEY"):
        cfg.api.api_key = key
    if operator := env.get("VNDC_API_OPERATOR"):
        cfg.api.operator = operator
    if origins := env.get("VNDC_CORS_ORIGINS"):
        cfg.api.cors_origins = [o for o in map(str.strip, origins.split(",")) if o]
    if log_level := env.get("VNDC_LOG_LEVEL"):
        cfg.logging.level = log_level.upper()
    if log_fmt := env.get("VNDC_LOG_FMT"):
        cfg.logging.format = log_fmt
    if db_path := env.get("VNDC_DB_PATH"):
        cfg.storage.enabled, cfg.storage.path = True, db_path

    return cfg
