from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


# Ledger amounts are stored as NUMERIC(15, 2)
MONEY_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


class MoneyFormatError(ValueError):
    """Raised when a value cannot be read as a ledger amount."""


def to_money(value: Any, *, field: str = "amount") -> Decimal:
    """
    Coerce user or database input to a two-place Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    Booleans and scientific notation are rejected, as are NaN/Infinity.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise MoneyFormatError(f"{field} must be a number")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return ZERO
        if "e" in stripped.lower():
            raise MoneyFormatError(f"{field} must be a plain decimal (scientific notation not allowed)")
        try:
            amount = Decimal(stripped)
        except InvalidOperation:
            raise MoneyFormatError(f"{field} must be a number")
    else:
        raise MoneyFormatError(f"{field} must be a number")

    if not amount.is_finite():
        raise MoneyFormatError(f"{field} must be a finite number")

    return amount.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def money_str(value: Any) -> str:
    """Render an amount for JSON output ("1200.00")."""
    return str(to_money(value))
