"""Decimal helpers for statement amounts, prices and share quantities."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

PLACEHOLDER = "—"

CENT = Decimal("0.01")
PRICE_QUANTUM = Decimal("0.0001")
SHARE_QUANTUM = Decimal("0.00001")


def is_blank(value: str | None) -> bool:
    if value is None:
        return True
    text = value.strip()
    return not text or text == PLACEHOLDER


def to_decimal(value: str | int | float | Decimal | None) -> Decimal | None:
    """Parse ``$1,234.50`` style text; ``None`` when the value is not numeric."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    text = value.strip().replace("$", "").replace(",", "")
    if not text:
        return None
    if text.startswith("(") and text.endswith(")"):
        text = f"-{text[1:-1]}"
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def format_decimal(value: Decimal, quantum: Decimal) -> str:
    return format(value.quantize(quantum, rounding=ROUND_HALF_UP), "f")


def clean_currency(value: str | None) -> str:
    if is_blank(value) or value.strip().lower() == "free":
        return "0"
    parsed = to_decimal(value)
    if parsed is None:
        return "0"
    return format_decimal(parsed, CENT)


def clean_price(value: str | None) -> str:
    # An absent price is not a zero price.
    if is_blank(value) or value.strip().lower() == "free":
        return ""
    parsed = to_decimal(value)
    if parsed is None:
        return ""
    return format_decimal(parsed, PRICE_QUANTUM)


def clean_shares(value: str | None) -> str:
    if is_blank(value):
        return format_decimal(Decimal("0"), SHARE_QUANTUM)
    parsed = to_decimal(value)
    if parsed is None:
        return format_decimal(Decimal("0"), SHARE_QUANTUM)
    return format_decimal(parsed, SHARE_QUANTUM)
