# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Precision preserving amount handling.

All amounts are integers in the asset's smallest unit. A budget is split into
equal installments using floor division; whatever cannot be divided evenly is
returned as remainder and stays with the owner of the order.
"""

from decimal import Decimal, InvalidOperation, localcontext
from logging import getLogger

from dca_keeper.exceptions import InvalidInputError
from dca_keeper.models.execution import SplitResult

LOG = getLogger(__name__)

# Smallest human readable amount that is not rendered in exponent notation.
SMALL_AMOUNT_THRESHOLD = Decimal("0.000001")


def _ensure_int(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{name} must be an integer, got {value!r}")


def split(total_budget: int, total_intervals: int) -> SplitResult:
    """
    Split ``total_budget`` into ``total_intervals`` equal installments.

    A budget of 100 split into 3 intervals results in 33 per interval, 99 that
    are actually used and a remainder of 1.
    """
    _ensure_int("total_budget", total_budget)
    _ensure_int("total_intervals", total_intervals)
    if total_intervals <= 0:
        raise InvalidInputError(
            f"The number of intervals must be at least 1, got {total_intervals}",
        )
    if total_budget < 0:
        raise InvalidInputError(f"The budget must not be negative, got {total_budget}")

    amount_per_interval = total_budget // total_intervals
    actual_total_used = amount_per_interval * total_intervals
    return SplitResult(
        amount_per_interval=amount_per_interval,
        actual_total_used=actual_total_used,
        remainder=total_budget - actual_total_used,
        total_intervals=total_intervals,
    )


def remainder_notice(result: SplitResult, decimals: int, symbol: str = "") -> str | None:
    """Returns the informational message for a non-zero remainder."""
    if not result.has_remainder:
        return None
    amount = f"{format_amount_smart(result.remainder, decimals)} {symbol}".strip()
    return f"{amount} will not be spent and remains with the owner."


def to_base_units(amount: str | int | Decimal, decimals: int) -> int:
    """
    Convert a human readable amount into integer base units without rounding.

    Amounts with more fractional digits than the asset supports are rejected.
    """
    if decimals < 0:
        raise InvalidInputError(f"Decimals must not be negative, got {decimals}")
    if isinstance(amount, float):
        # Floats would already have lost precision at this point.
        amount = repr(amount)
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as exc:
        raise InvalidInputError(f"Invalid amount: {amount!r}") from exc

    if not value.is_finite():
        raise InvalidInputError(f"Invalid amount: {amount!r}")
    if value < 0:
        raise InvalidInputError(f"The amount must not be negative, got {amount!r}")

    with localcontext() as ctx:
        ctx.prec = 100
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidInputError(
                f"The amount {amount!r} has more than {decimals} decimal places",
            )
        return int(scaled)


def format_units(value: int, decimals: int) -> str:
    """Render base units as a decimal string without trailing zeros."""
    sign = "-" if value < 0 else ""
    whole, fraction = divmod(abs(value), 10**decimals)
    fraction_str = str(fraction).zfill(decimals).rstrip("0") if decimals else ""
    return f"{sign}{whole}.{fraction_str}" if fraction_str else f"{sign}{whole}"


def format_amount_smart(value: int, decimals: int) -> str:
    """Render base units for display, shortening where it does not matter."""
    if value == 0:
        return "0"

    with localcontext() as ctx:
        ctx.prec = 100
        number = Decimal(value).scaleb(-decimals)

    if abs(number) < SMALL_AMOUNT_THRESHOLD:
        return f"{number:.2e}"
    if abs(number) >= 1:
        return f"{number:.6f}".rstrip("0").rstrip(".")
    return format_units(value, decimals)
