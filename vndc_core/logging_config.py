"""
Logging setup for the VNDC staking service.

Console output is either ``human`` (one coloured line per record) or
``json`` (one object per line, for log shippers).  A log file, when
configured, is always written as JSON.

Each engine module logs under its own name (see ``ENGINE_LOGGERS``), so
``vndc_staking=DEBUG`` style overrides can raise or lower one subsystem
without touching the rest.

Usage:
    from vndc_core.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", log_file="vndc.log")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Optional

ENGINE_LOGGERS: tuple[str, ...] = (
    "vndc_staking",
    "vndc_token",
    "vndc_events",
    "vndc_storage",
    "vndc_api",
    "vndc_scenarios",
)

# ``extra=`` keys copied into JSON records
_EXTRA_FIELDS: tuple[str, ...] = ("stake_id", "account", "tier", "amount", "remote")

_ANSI_BY_LEVEL = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[1;31m",
}
_ANSI_RESET = "\033[0m"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


class _JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload = {
            "ts": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (key, getattr(record, key)) for key in _EXTRA_FIELDS if hasattr(record, key)
        )
        if record.exc_info and record.exc_info[1]:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class _HumanFormatter(logging.Formatter):
    def __init__(self, colour: bool = True) -> None:
        super().__init__()
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        label = f"{stamp} [{record.levelname:<7}]"
        if self.colour:
            label = f"{_ANSI_BY_LEVEL.get(record.levelname, '')}{label}{_ANSI_RESET}"
        text = f"{label} {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[1]:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def parse_levels(text: str) -> dict[str, str]:
    """Turn ``"vndc_staking=DEBUG,vndc_api=WARNING"`` into ``{name: LEVEL}``."""
    levels: dict[str, str] = {}
    for entry in filter(None, (part.strip() for part in text.split(","))):
        name, _, level = (piece.strip() for piece in entry.partition("="))
        if "=" not in entry or not name or not level:
            raise ValueError(f"Bad logger level entry: {entry!r}")
        levels[name] = level.upper()
    return levels


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: Optional[str] = None,
    levels: Optional[Mapping[str, str]] = None,
) -> None:
    """
    (Re)configure the root logger.

    Calling this again replaces the previous handlers rather than stacking
    new ones, and resets the engine loggers to inherit from the root before
    the per-logger ``levels`` overrides are applied.

    Parameters
    ----------
    level : str
        Root level name; unknown names fall back to INFO.
    fmt : str
        ``"json"`` for JSON console output, anything else for the human format.
    log_file : str, optional
        Extra JSON log file; parent directories are created.
    levels : mapping, optional
        Logger name to level name, e.g. ``{"vndc_api": "WARNING"}``.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(_level(level))

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        _JSONFormatter() if fmt == "json" else _HumanFormatter(colour=sys.stderr.isatty())
    )
    root.addHandler(console)

    if log_file:
        target = Path(log_file)
        target.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(target))
        file_handler.setFormatter(_JSONFormatter())
        root.addHandler(file_handler)

    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)
    for name, override in (levels or {}).items():
        logging.getLogger(name).setLevel(_level(override))

    # per-request access lines only at WARNING and above
    logging.getLogger("aiohttp.access").setLevel(max(root.level, logging.WARNING))
