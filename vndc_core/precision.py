"""
Precision constants and helpers for VNDC amounts.

VNDC follows the ERC20 convention of 18 decimal places; every amount the
engine stores or computes is an integer count of the smallest unit:

    1 VNDC = 10**18 wei

Conversions go through ``Decimal`` with the context precision widened to
the operand, so "10000.5" and 30-digit wei amounts both convert exactly.
"""

from __future__ import annotations

from decimal import Decimal, DecimalException, Inexact, InvalidOperation, localcontext

# Number of decimal places of the VNDC token.
TOKEN_DECIMALS: int = 18

# Smallest indivisible units per whole token.
WEI_PER_TOKEN: int = 10 ** TOKEN_DECIMALS

# Basis points: 10000 bps == 100 %.
BPS_DENOMINATOR: int = 10_000


def parse_units(value: str | int | Decimal, decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a human amount (``"1000"``, ``"0.25"``) to integer units.

    Raises ``ValueError`` for non-numeric input or more fractional digits
    than *decimals* allows.

    >>> parse_units("1.5")
    1500000000000000000
    """
    try:
        d = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"not a number: {value!r}") from exc
    if not d.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(d.as_tuple().digits) + 1)
        ctx.traps[Inexact] = True
        try:
            scaled = d.scaleb(decimals)
        except DecimalException as exc:
            raise ValueError(f"amount out of range: {value!r}") from exc
        if scaled != scaled.to_integral_value():
            raise ValueError(f"too many decimal places: {value!r}")
    return int(scaled)


def format_units(value: int, decimals: int = TOKEN_DECIMALS) -> str:
    """Inverse of :func:`parse_units`; trailing zeros are trimmed.

    >>> format_units(1500000000000000000)
    '1.5'
    """
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(str(abs(value))) + 1)
        d = Decimal(value).scaleb(-decimals)
    text = format(d, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def parse_ether(value: str | int | Decimal) -> int:
    return parse_units(value, TOKEN_DECIMALS)


def format_ether(value: int) -> str:
    return format_units(value, TOKEN_DECIMALS)


def format_amount(value: int, symbol: str = "VNDC") -> str:
    """Return a human-readable string like ``"10016.438356 VNDC"``."""
    return f"{format_units(value)} {symbol}"


def format_bps(bps: int) -> str:
    """Render basis points as a percentage, e.g. ``800 -> "8.00%"``."""
    return f"{bps / 100:.2f}%"
