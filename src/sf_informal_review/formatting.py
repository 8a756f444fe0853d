from __future__ import annotations

from typing import Optional


def format_currency(value: float) -> str:
    """``1625000`` -> ``"$1,625,000"``; cents only when present."""

    sign = "-" if value < 0 else ""
    amount = abs(value)
    if float(amount).is_integer():
        return f"{sign}${int(amount):,}"
    return f"{sign}${amount:,.2f}"


def format_number(value: Optional[float]) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return f"{int(value)}"
    return f"{value:g}"


def format_area(value: Optional[float]) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.1f}"


def format_percent(value: float) -> str:
    return f"{value:.1f}"
