from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_cents(value) -> int:
    """
    Convert a decimal amount (int, float, str or Decimal) to integer cents.

    Rounds half-up to the nearest cent. Raises ValueError for values that
    are not finite numbers; booleans are not numbers here.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("amount must be a number")
    try:
        dec = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError):
        raise ValueError("amount must be a number")
    if not dec.is_finite():
        raise ValueError("amount must be finite")
    return int((dec.quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def from_cents(cents: int | None) -> float | None:
    """Cents to a two-place amount for JSON responses."""
    if cents is None:
        return None
    return float(Decimal(cents) / 100)


def format_cents(cents: int) -> str:
    """Human-readable dollar string, e.g. 1050 -> '$10.50'."""
    return f"${Decimal(cents) / 100:.2f}"
