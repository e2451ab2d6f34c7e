# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""Unit tests for the in-memory ledger."""

import pytest

from dca_keeper.adapters.ledger.memory import InMemoryLedgerAdapter
from dca_keeper.core.codec import decode_order_ids, encode_order_ids
from dca_keeper.exceptions import PermanentLedgerRejectionError
from dca_keeper.interfaces.ledger import ILedgerService
from tests.helper import NEXT_HOUR, NOW, OWNER, TOKEN_A, TOKEN_B, FakeClock


def _create(ledger: InMemoryLedgerAdapter, total_intervals: int = 2) -> int:
    return ledger.create_order(
        source_asset="native",
        target_asset=TOKEN_B,
        amount_per_interval=10,
        interval=3600,
        total_intervals=total_intervals,
        value=10 * total_intervals,
    ).order_id


class TestInMemoryLedgerAdapter:
    def test_implements_interface(self, ledger: InMemoryLedgerAdapter) -> None:
        assert isinstance(ledger, ILedgerService)
        assert ledger.owner == OWNER

    def test_create_order(self, ledger: InMemoryLedgerAdapter) -> None:
        order_id = _create(ledger)
        order = ledger.get_order(order_id)

        assert order_id == 1
        assert order.owner == OWNER
        assert order.is_active is True
        assert order.intervals_completed == 0
        assert order.start_time == NOW
        assert order.next_execution_time == NEXT_HOUR
        assert ledger.get_user_orders(OWNER) == [1]

    def test_lead_buffer(self, clock: FakeClock) -> None:
        ledger = InMemoryLedgerAdapter(owner=OWNER, lead_buffer=12, clock=clock)
        order = ledger.get_order(_create(ledger))
        assert order.next_execution_time == NEXT_HOUR - 12

    def test_native_order_requires_exact_value(self, ledger: InMemoryLedgerAdapter) -> None:
        with pytest.raises(PermanentLedgerRejectionError, match=r"Expected 20"):
            ledger.create_order(
                source_asset="native",
                target_asset=TOKEN_B,
                amount_per_interval=10,
                interval=3600,
                total_intervals=2,
                value=21,
            )

    def test_token_order_consumes_allowance(self, ledger: InMemoryLedgerAdapter) -> None:
        kwargs = {
            "source_asset": TOKEN_A,
            "target_asset": TOKEN_B,
            "amount_per_interval": 10,
            "interval": 3600,
            "total_intervals": 2,
        }
        with pytest.raises(PermanentLedgerRejectionError, match=r"Insufficient allowance"):
            ledger.create_order(**kwargs)

        ledger.approve(TOKEN_A, ledger.contract_address, 30)
        ledger.create_order(**kwargs)
        assert ledger.get_allowance(OWNER, ledger.contract_address, TOKEN_A) == 10

    def test_get_unknown_order(self, ledger: InMemoryLedgerAdapter) -> None:
        with pytest.raises(PermanentLedgerRejectionError, match=r"does not exist"):
            ledger.get_order(99)

    def test_check_upkeep(self, ledger: InMemoryLedgerAdapter, clock: FakeClock) -> None:
        _create(ledger)
        _create(ledger)

        due = ledger.check_upkeep()
        assert due.upkeep_needed is False
        assert decode_order_ids(due.perform_data) == []

        clock.now = NEXT_HOUR
        due = ledger.check_upkeep()
        assert due.upkeep_needed is True
        assert decode_order_ids(due.perform_data) == [1, 2]

    def test_check_upkeep_batch_size(self, clock: FakeClock) -> None:
        ledger = InMemoryLedgerAdapter(owner=OWNER, max_batch_size=1, clock=clock)
        _create(ledger)
        _create(ledger)
        clock.now = NEXT_HOUR

        assert decode_order_ids(ledger.check_upkeep().perform_data) == [1]

    def test_perform_upkeep_isolates_orders(
        self,
        ledger: InMemoryLedgerAdapter,
        clock: FakeClock,
    ) -> None:
        """Test that a failing order does not revert the others"""
        first = _create(ledger)
        second = _create(ledger)
        ledger.cancel_order(second)
        clock.now = NEXT_HOUR

        receipt = ledger.perform_upkeep(encode_order_ids([first, second, 42]))

        assert receipt.block_number is not None
        assert ledger.get_order(first).intervals_completed == 1
        assert ledger.get_order(second).intervals_completed == 0

    def test_perform_upkeep_invalid_data(self, ledger: InMemoryLedgerAdapter) -> None:
        with pytest.raises(PermanentLedgerRejectionError, match=r"Invalid perform data"):
            ledger.perform_upkeep("0x00")

    def test_execute_order_progress(
        self,
        ledger: InMemoryLedgerAdapter,
        clock: FakeClock,
    ) -> None:
        order_id = _create(ledger, total_intervals=2)

        with pytest.raises(PermanentLedgerRejectionError, match=r"not ready"):
            ledger.execute_order(order_id)

        clock.now = NEXT_HOUR
        ledger.execute_order(order_id)
        order = ledger.get_order(order_id)
        assert order.intervals_completed == 1
        assert order.next_execution_time == NEXT_HOUR + 3600
        assert order.is_active is True

        clock.advance(3600)
        ledger.execute_order(order_id)
        order = ledger.get_order(order_id)
        assert order.intervals_completed == 2
        assert order.is_active is False

        clock.advance(3600)
        with pytest.raises(PermanentLedgerRejectionError, match=r"not active"):
            ledger.execute_order(order_id)

    def test_cancel_order(self, ledger: InMemoryLedgerAdapter) -> None:
        order_id = _create(ledger)
        ledger.cancel_order(order_id)

        assert ledger.get_order(order_id).is_active is False
        with pytest.raises(PermanentLedgerRejectionError, match=r"not active"):
            ledger.cancel_order(order_id)

    def test_receipts_have_increasing_blocks(self, ledger: InMemoryLedgerAdapter) -> None:
        first = ledger.approve(TOKEN_A, ledger.contract_address, 1)
        second = ledger.approve(TOKEN_A, ledger.contract_address, 2)

        assert second.block_number == first.block_number + 1
        assert first.tx_hash != second.tx_hash
