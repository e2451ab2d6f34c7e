# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
In-memory ledger.

Simulates the recurring order contract within the process. It is used for
local sandbox runs and tests. Asset transfers and swap math are not
simulated, only the order bookkeeping and the spending permissions.
"""

import time
from logging import getLogger
from typing import Callable, Self
from uuid import uuid4

from dca_keeper.core.codec import decode_order_ids, encode_order_ids
from dca_keeper.core.readiness import first_execution_time, is_ready
from dca_keeper.exceptions import PermanentLedgerRejectionError
from dca_keeper.interfaces.ledger import ILedgerService
from dca_keeper.models.ledger import (
    CreateOrderResponseSchema,
    DueOrdersSchema,
    OrderSchema,
    TransactionReceiptSchema,
)

LOG = getLogger(__name__)


class InMemoryLedgerAdapter(ILedgerService):
    """Ledger adapter that keeps all orders in memory."""

    def __init__(  # noqa: PLR0913
        self: Self,
        owner: str = "0x0000000000000000000000000000000000000001",
        contract_address: str = "0x00000000000000000000000000000000000000dc",
        native_asset: str = "native",
        lead_buffer: int = 0,
        max_batch_size: int = 50,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.__owner = owner
        self.__contract_address = contract_address
        self.__native_asset = native_asset
        self.__lead_buffer = lead_buffer
        self.__max_batch_size = max_batch_size
        self.__clock = clock
        self.__orders: dict[int, OrderSchema] = {}
        self.__allowances: dict[tuple[str, str, str], int] = {}
        self.__next_order_id = 1
        self.__block_number = 0

    @property
    def contract_address(self: Self) -> str:
        return self.__contract_address

    @property
    def owner(self: Self) -> str:
        return self.__owner

    def __now(self: Self) -> int:
        return int(self.__clock())

    def __receipt(self: Self) -> TransactionReceiptSchema:
        self.__block_number += 1
        return TransactionReceiptSchema(
            tx_hash=f"0x{uuid4().hex}",
            block_number=self.__block_number,
            gas_used=21000,
        )

    def check_connection(self: Self, tries: int = 0) -> None:  # noqa: ARG002
        LOG.info("- In-memory ledger is always available.")

    # == Reads =================================================================
    def check_upkeep(self: Self) -> DueOrdersSchema:
        now = self.__now()
        due = [
            order.id
            for order in self.__orders.values()
            if is_ready(order, now) and order.intervals_completed < order.total_intervals
        ][: self.__max_batch_size]
        return DueOrdersSchema(
            upkeep_needed=bool(due),
            perform_data=encode_order_ids(due),
        )

    def get_order(self: Self, order_id: int) -> OrderSchema:
        if (order := self.__orders.get(order_id)) is None:
            raise PermanentLedgerRejectionError(f"Order #{order_id} does not exist")
        return order.model_copy()

    def get_user_orders(self: Self, owner: str) -> list[int]:
        return [
            order.id for order in self.__orders.values() if order.owner == owner
        ]

    def get_allowance(self: Self, owner: str, spender: str, asset: str) -> int:
        return self.__allowances.get((owner, spender, asset), 0)

    # == Writes ================================================================
    def perform_upkeep(self: Self, perform_data: str) -> TransactionReceiptSchema:
        try:
            order_ids = decode_order_ids(perform_data)
        except ValueError as exc:
            raise PermanentLedgerRejectionError(f"Invalid perform data: {exc}") from exc

        for order_id in order_ids:
            # Orders are isolated from each other, one failing order must not
            # revert the others.
            try:
                self.__execute(order_id)
            except PermanentLedgerRejectionError as exc:
                LOG.debug("Skipping order #%s in upkeep: %s", order_id, exc)
        return self.__receipt()

    def execute_order(self: Self, order_id: int) -> TransactionReceiptSchema:
        self.__execute(order_id)
        return self.__receipt()

    def __execute(self: Self, order_id: int) -> None:
        order = self.__orders.get(order_id)
        if order is None or not order.exists:
            raise PermanentLedgerRejectionError(f"Order #{order_id} does not exist")
        if not order.is_active:
            raise PermanentLedgerRejectionError(f"Order #{order_id} is not active")
        if not is_ready(order, self.__now()):
            raise PermanentLedgerRejectionError(f"Order #{order_id} is not ready yet")

        completed = order.intervals_completed + 1
        self.__orders[order_id] = order.model_copy(
            update={
                "intervals_completed": completed,
                "next_execution_time": order.next_execution_time + order.interval,
                "is_active": completed < order.total_intervals,
            },
        )

    def create_order(  # noqa: PLR0913
        self: Self,
        *,
        source_asset: str,
        target_asset: str,
        amount_per_interval: int,
        interval: int,
        total_intervals: int,
        value: int | None = None,
    ) -> CreateOrderResponseSchema:
        if amount_per_interval <= 0 or interval <= 0 or total_intervals <= 0:
            raise PermanentLedgerRejectionError("Invalid order parameters")
        if source_asset == target_asset:
            raise PermanentLedgerRejectionError("Source and target asset must differ")

        total = amount_per_interval * total_intervals
        if source_asset == self.__native_asset:
            if value != total:
                raise PermanentLedgerRejectionError(
                    f"Expected {total} native units to be locked, got {value}",
                )
        else:
            key = (self.__owner, self.__contract_address, source_asset)
            if (allowance := self.__allowances.get(key, 0)) < total:
                raise PermanentLedgerRejectionError(
                    f"Insufficient allowance: {allowance} < {total}",
                )
            self.__allowances[key] = allowance - total

        order_id = self.__next_order_id
        self.__next_order_id += 1
        now = self.__now()
        self.__orders[order_id] = OrderSchema(
            id=order_id,
            owner=self.__owner,
            source_asset=source_asset,
            target_asset=target_asset,
            amount_per_interval=amount_per_interval,
            interval=interval,
            intervals_completed=0,
            total_intervals=total_intervals,
            next_execution_time=first_execution_time(now, self.__lead_buffer),
            start_time=now,
            is_active=True,
        )
        receipt = self.__receipt()
        return CreateOrderResponseSchema(order_id=order_id, tx_hash=receipt.tx_hash)

    def cancel_order(self: Self, order_id: int) -> TransactionReceiptSchema:
        order = self.__orders.get(order_id)
        if order is None or not order.exists:
            raise PermanentLedgerRejectionError(f"Order #{order_id} does not exist")
        if order.owner != self.__owner:
            raise PermanentLedgerRejectionError("Only the owner can cancel an order")
        if not order.is_active:
            raise PermanentLedgerRejectionError(f"Order #{order_id} is not active")
        self.__orders[order_id] = order.model_copy(update={"is_active": False})
        return self.__receipt()

    def approve(self: Self, asset: str, spender: str, amount: int) -> TransactionReceiptSchema:
        self.__allowances[(self.__owner, spender, asset)] = amount
        return self.__receipt()
