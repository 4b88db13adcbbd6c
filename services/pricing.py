import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import NamedTuple

from services.dates import parse_range
from services.errors import InvalidPayload

SECONDS_PER_DAY = 24 * 60 * 60
CENTS = Decimal("0.01")


class Cost(NamedTuple):
    days: int
    total: Decimal


def _quantize(amount: Decimal, field: str) -> Decimal:
    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # more digits than the decimal context can hold
        raise InvalidPayload(f"{field} is too large", field=field)


def to_money(value, field="daily_rate") -> Decimal:
    """Coerce a rate/amount to a Decimal with 2 decimal places."""
    if isinstance(value, bool):
        raise InvalidPayload(f"{field} must be a number", field=field)
    try:
        # str() first so floats like 99.99 don't carry binary noise
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPayload(f"{field} must be a number", field=field)
    if not amount.is_finite():
        raise InvalidPayload(f"{field} must be a number", field=field)
    return _quantize(amount, field)


def count_days(start, end) -> int:
    st, et = parse_range(start, end)
    seconds = (et - st).total_seconds()
    return max(1, math.ceil(seconds / SECONDS_PER_DAY))


def compute_cost(daily_rate, start, end) -> Cost:
    """
    Price a rental: whole days (partial days round up, minimum 1) times the
    daily rate. Raises InvalidDateRange when end <= start.
    """
    days = count_days(start, end)
    rate = to_money(daily_rate)
    if rate <= 0:
        raise InvalidPayload("daily_rate must be positive", field="daily_rate")
    return Cost(days=days, total=_quantize(rate * days, "total"))


def to_minor_units(amount) -> int:
    """AED -> fils, as Stripe expects the smallest currency unit."""
    return int((to_money(amount, field="amount") * 100).to_integral_value(rounding=ROUND_HALF_UP))
