# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""Unit tests for splitting budgets and rendering amounts."""

from decimal import Decimal

import pytest

from dca_keeper.core.amounts import (
    format_amount_smart,
    format_units,
    remainder_notice,
    split,
    to_base_units,
)
from dca_keeper.exceptions import InvalidInputError


class TestSplit:
    def test_split_with_remainder(self) -> None:
        """Test that the undividable part is returned as remainder"""
        result = split(100, 3)

        assert result.amount_per_interval == 33
        assert result.actual_total_used == 99
        assert result.remainder == 1
        assert result.has_remainder is True
        assert result.total_budget == 100

    def test_split_without_remainder(self) -> None:
        result = split(100, 4)

        assert result.amount_per_interval == 25
        assert result.actual_total_used == 100
        assert result.remainder == 0
        assert result.has_remainder is False

    @pytest.mark.parametrize(
        ("budget", "intervals"),
        [(0, 1), (1, 1), (5, 7), (10**30 + 7, 13), (999_999, 1_000)],
    )
    def test_split_invariants(self, budget: int, intervals: int) -> None:
        """Test that the parts always add up to the budget"""
        result = split(budget, intervals)

        assert result.actual_total_used == result.amount_per_interval * intervals
        assert result.actual_total_used + result.remainder == budget
        assert 0 <= result.remainder < intervals

    def test_split_budget_smaller_than_intervals(self) -> None:
        result = split(5, 7)

        assert result.amount_per_interval == 0
        assert result.remainder == 5

    def test_split_large_values_keep_precision(self) -> None:
        budget = 123_456_789_123_456_789_123_456_789
        result = split(budget, 10)

        assert result.amount_per_interval == 12_345_678_912_345_678_912_345_678
        assert result.remainder == 9

    @pytest.mark.parametrize("intervals", [0, -1])
    def test_split_invalid_intervals(self, intervals: int) -> None:
        with pytest.raises(InvalidInputError, match=r"at least 1"):
            split(100, intervals)

    def test_split_negative_budget(self) -> None:
        with pytest.raises(InvalidInputError, match=r"must not be negative"):
            split(-1, 3)

    @pytest.mark.parametrize(
        ("budget", "intervals"),
        [(100.0, 3), ("100", 3), (100, 3.0), (True, 1), (100, True)],
    )
    def test_split_rejects_non_integers(self, budget: object, intervals: object) -> None:
        with pytest.raises(InvalidInputError, match=r"must be an integer"):
            split(budget, intervals)  # type: ignore[arg-type]

    def test_invalid_input_is_value_error(self) -> None:
        """Test that invalid input can be caught as ValueError"""
        with pytest.raises(ValueError):  # noqa: PT011
            split(1, 0)


class TestRemainderNotice:
    def test_notice_for_remainder(self) -> None:
        notice = remainder_notice(split(10**18 + 1, 2), 18, "TKN")
        assert notice == "1.00e-18 TKN will not be spent and remains with the owner."

    def test_no_notice_without_remainder(self) -> None:
        assert remainder_notice(split(100, 4), 0) is None

    def test_notice_without_symbol(self) -> None:
        assert remainder_notice(split(100, 3), 0) == (
            "1 will not be spent and remains with the owner."
        )


class TestToBaseUnits:
    @pytest.mark.parametrize(
        ("amount", "decimals", "expected"),
        [
            ("1", 18, 10**18),
            ("100.5", 6, 100_500_000),
            ("0.000001", 6, 1),
            (" 42 ", 0, 42),
            (7, 2, 700),
            (Decimal("1.25"), 2, 125),
            (0.1, 1, 1),
            ("123456789.123456789123456789", 18, 123456789123456789123456789),
        ],
    )
    def test_conversion(self, amount: str | int | Decimal, decimals: int, expected: int) -> None:
        assert to_base_units(amount, decimals) == expected

    def test_too_many_decimals(self) -> None:
        with pytest.raises(InvalidInputError, match=r"more than 6 decimal places"):
            to_base_units("0.0000001", 6)

    @pytest.mark.parametrize("amount", ["abc", "", "NaN", "Infinity"])
    def test_invalid_amount(self, amount: str) -> None:
        with pytest.raises(InvalidInputError, match=r"Invalid amount"):
            to_base_units(amount, 18)

    def test_negative_amount(self) -> None:
        with pytest.raises(InvalidInputError, match=r"must not be negative"):
            to_base_units("-1", 18)

    def test_negative_decimals(self) -> None:
        with pytest.raises(InvalidInputError, match=r"Decimals"):
            to_base_units("1", -1)


class TestFormatting:
    @pytest.mark.parametrize(
        ("value", "decimals", "expected"),
        [
            (0, 18, "0"),
            (10**18, 18, "1"),
            (1_500_000, 6, "1.5"),
            (1, 0, "1"),
            (-2_500, 3, "-2.5"),
        ],
    )
    def test_format_units(self, value: int, decimals: int, expected: str) -> None:
        assert format_units(value, decimals) == expected

    @pytest.mark.parametrize(
        ("value", "decimals", "expected"),
        [
            (0, 18, "0"),
            (1, 18, "1.00e-18"),
            (123_456_789, 6, "123.456789"),
            (1_234_567_891, 6, "1234.567891"),
            (10**18 + 10**11, 18, "1"),
            (2 * 10**18, 18, "2"),
            (5 * 10**17, 18, "0.5"),
            (1_234, 6, "0.001234"),
        ],
    )
    def test_format_amount_smart(self, value: int, decimals: int, expected: str) -> None:
        assert format_amount_smart(value, decimals) == expected
