"""Decimal amount helpers

Requested amounts are decimal strings in whole units (e.g. "0.01" ETH).
Chains count in base units (wei, lamports, token base units).
"""

from decimal import Decimal, InvalidOperation, ROUND_CEILING


def parse_amount(amount: str) -> Decimal:
    """
    Parse a positive decimal amount string

    Raises:
        ValueError: If amount is not a finite positive decimal
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be a positive decimal, got {amount!r}")
    return value


def to_base_units(amount: str, decimals: int) -> int:
    """
    Convert a whole-unit amount to base units

    Fractions below one base unit round up, so a payment is never accepted
    below the requested amount.
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    scaled = parse_amount(amount).scaleb(decimals)
    return int(scaled.to_integral_value(rounding=ROUND_CEILING))


def from_base_units(value: int, decimals: int) -> Decimal:
    """Convert base units back to a whole-unit Decimal (for logs and messages)"""
    return Decimal(value).scaleb(-decimals)
