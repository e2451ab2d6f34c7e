# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""Unit tests for the local readiness and status helpers."""

from typing import Callable

import pytest

from dca_keeper.core.readiness import (
    DAY_IN_SECONDS,
    HOUR_IN_SECONDS,
    WEEK_IN_SECONDS,
    display_execution_time,
    first_execution_time,
    format_interval,
    interval_seconds,
    is_ready,
    lead_buffer_seconds,
    order_status,
)
from dca_keeper.exceptions import InvalidInputError
from dca_keeper.models.ledger import OrderSchema, OrderStatus
from tests.helper import NEXT_HOUR, NOW


class TestIsReady:
    def test_ready_at_execution_time(self, make_order: Callable[..., OrderSchema]) -> None:
        order = make_order()
        assert is_ready(order, NEXT_HOUR) is True
        assert is_ready(order, NEXT_HOUR + 1) is True

    def test_not_ready_before_execution_time(
        self,
        make_order: Callable[..., OrderSchema],
    ) -> None:
        assert is_ready(make_order(), NEXT_HOUR - 1) is False

    def test_inactive_order_is_never_ready(
        self,
        make_order: Callable[..., OrderSchema],
    ) -> None:
        order = make_order(is_active=False)
        assert is_ready(order, NEXT_HOUR + 10 * DAY_IN_SECONDS) is False

    def test_uses_current_time_by_default(
        self,
        make_order: Callable[..., OrderSchema],
    ) -> None:
        assert is_ready(make_order(next_execution_time=0)) is True


class TestOrderStatus:
    def test_active(self, make_order: Callable[..., OrderSchema]) -> None:
        assert order_status(make_order()) == OrderStatus.ACTIVE

    def test_completed(self, make_order: Callable[..., OrderSchema]) -> None:
        order = make_order(intervals_completed=4, is_active=False)
        assert order_status(order) == OrderStatus.COMPLETED

    def test_cancelled(self, make_order: Callable[..., OrderSchema]) -> None:
        """Test that an inactive order with intervals left was cancelled"""
        order = make_order(intervals_completed=2, is_active=False)
        assert order_status(order) == OrderStatus.CANCELLED


class TestExecutionTimes:
    def test_first_execution_time_rounds_up_to_next_hour(self) -> None:
        assert first_execution_time(NOW) == NEXT_HOUR

    def test_first_execution_time_on_hour_boundary(self) -> None:
        """Test that a start on the full hour is moved to the following hour"""
        assert first_execution_time(NEXT_HOUR) == NEXT_HOUR + HOUR_IN_SECONDS

    def test_first_execution_time_with_lead_buffer(self) -> None:
        buffer = lead_buffer_seconds(2, 6)
        assert buffer == 12
        assert first_execution_time(NOW, buffer) == NEXT_HOUR - 12

    def test_display_execution_time(self) -> None:
        assert display_execution_time(NEXT_HOUR - 12, 12) == NEXT_HOUR
        assert display_execution_time(NEXT_HOUR - 12) == NEXT_HOUR
        assert display_execution_time(NEXT_HOUR + 1) == NEXT_HOUR + HOUR_IN_SECONDS


class TestIntervals:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (60, "1m"),
            (HOUR_IN_SECONDS, "1h"),
            (6 * HOUR_IN_SECONDS, "6h"),
            (DAY_IN_SECONDS, "1d"),
            (3 * DAY_IN_SECONDS, "3d"),
            (WEEK_IN_SECONDS, "1w"),
        ],
    )
    def test_format_interval(self, seconds: int, expected: str) -> None:
        assert format_interval(seconds) == expected

    @pytest.mark.parametrize(
        ("label", "expected"),
        [("hour", 3600), ("day", 86400), ("Week", 604800)],
    )
    def test_interval_seconds(self, label: str, expected: int) -> None:
        assert interval_seconds(label) == expected

    def test_unknown_interval(self) -> None:
        with pytest.raises(InvalidInputError, match=r"Interval must be one of"):
            interval_seconds("month")
