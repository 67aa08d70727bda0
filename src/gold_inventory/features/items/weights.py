"""Gram weights are kept as strings with three decimals, computed with Decimal."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

THREE_PLACES = Decimal("0.001")


def parse_weight(value: Any) -> Optional[Decimal]:
    """Returns the weight as a Decimal, or None if it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number


def format_weight(value: Any) -> str:
    number = parse_weight(value)
    if number is None:
        return ""
    try:
        return str(number.quantize(THREE_PLACES, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return ""


def compute_net_wt(gross_wt: Any, less_wt: Any) -> str:
    """Net weight is gross minus less.

    A non-numeric gross weight gives an empty net weight; a non-numeric or
    empty less weight counts as nothing to subtract.
    """
    gross = parse_weight(gross_wt)
    if gross is None:
        return ""
    less = parse_weight(less_wt)
    if less is None:
        return format_weight(gross)
    return format_weight(gross - less)


def weight_to_number(value: Any) -> Optional[float]:
    """Numeric column value for the remote row; empty weights are sent as null."""
    number = parse_weight(value)
    return float(number) if number is not None else None
