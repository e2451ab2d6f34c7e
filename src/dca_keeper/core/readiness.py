# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Local readiness and status helpers for recurring orders.

These mirror the ledger's own checks and are meant for display and estimation
only. Which orders get executed is always decided by asking the ledger.
"""

import time

from dca_keeper.exceptions import InvalidInputError
from dca_keeper.models.ledger import OrderSchema, OrderStatus

HOUR_IN_SECONDS = 3600
DAY_IN_SECONDS = 86400
WEEK_IN_SECONDS = 604800

INTERVALS = {
    "hour": HOUR_IN_SECONDS,
    "day": DAY_IN_SECONDS,
    "week": WEEK_IN_SECONDS,
}


def is_ready(order: OrderSchema, now: int | None = None) -> bool:
    """True if the order is active and its next execution time has passed."""
    if not order.is_active:
        return False
    if now is None:
        now = int(time.time())
    return now >= order.next_execution_time


def order_status(order: OrderSchema) -> OrderStatus:
    if order.is_active:
        return OrderStatus.ACTIVE
    if order.intervals_completed >= order.total_intervals:
        return OrderStatus.COMPLETED
    return OrderStatus.CANCELLED


def lead_buffer_seconds(blocks_before_hour: int, block_time: int) -> int:
    """Seconds the ledger schedules the first execution before the hour."""
    return blocks_before_hour * block_time


def first_execution_time(start_time: int, lead_buffer: int = 0) -> int:
    """
    Estimate the first eligible execution time of an order.

    The start time is rounded up to the next full hour, then the lead buffer
    is subtracted. A start time that lies exactly on an hour boundary is moved
    to the following hour.
    """
    return (start_time // HOUR_IN_SECONDS + 1) * HOUR_IN_SECONDS - lead_buffer


def display_execution_time(execution_time: int, lead_buffer: int = 0) -> int:
    """Hour boundary that is shown to users for a given execution time."""
    with_buffer = execution_time + lead_buffer
    return -(-with_buffer // HOUR_IN_SECONDS) * HOUR_IN_SECONDS


def format_interval(seconds: int) -> str:
    if seconds < HOUR_IN_SECONDS:
        return f"{seconds // 60}m"
    if seconds < DAY_IN_SECONDS:
        return f"{seconds // HOUR_IN_SECONDS}h"
    if seconds < WEEK_IN_SECONDS:
        return f"{seconds // DAY_IN_SECONDS}d"
    return f"{seconds // WEEK_IN_SECONDS}w"


def interval_seconds(label: str) -> int:
    """Translate an interval label like 'day' into seconds."""
    try:
        return INTERVALS[label.lower()]
    except KeyError as exc:
        raise InvalidInputError(
            f"Interval must be one of: {', '.join(INTERVALS)}, got {label!r}",
        ) from exc
