from __future__ import annotations
from decimal import Decimal, InvalidOperation
from typing import Optional


def parse_decimal(text: Optional[str]) -> Optional[Decimal]:
    """Decimal from a form field; None when blank or not a number."""
    if text is None:
        return None
    cleaned = str(text).strip().replace(",", "").lstrip("$")
    if not cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def parse_int(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    cleaned = str(text).strip()
    if not cleaned:
        return None
    try:
        return int(cleaned)
    except ValueError:
        return None


def format_money(value: Decimal) -> str:
    return f"{value:.2f}"
