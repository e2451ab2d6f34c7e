# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from logging import getLogger
from typing import Self

from dca_keeper.core.amounts import split
from dca_keeper.core.readiness import order_status
from dca_keeper.exceptions import (
    InsufficientAllowanceError,
    InvalidInputError,
    OrderStateInvalidError,
)
from dca_keeper.interfaces.ledger import ILedgerService
from dca_keeper.models.execution import SplitResult
from dca_keeper.models.ledger import OrderSchema, OrderStatus
from dca_keeper.services.allowance_service import AllowanceService

LOG = getLogger(__name__)

ORDER_TABS = ("all", "open", "history")


class OrderService:
    """Creates, cancels and lists the recurring orders of an owner."""

    def __init__(
        self: Self,
        ledger: ILedgerService,
        owner: str,
        native_asset: str = "native",
        allowance_service: AllowanceService | None = None,
    ) -> None:
        self.__ledger = ledger
        self.__owner = owner
        self.__native_asset = native_asset
        self.__allowance = allowance_service or AllowanceService(
            ledger=ledger,
            owner=owner,
            native_asset=native_asset,
        )

    @property
    def allowance(self: Self) -> AllowanceService:
        return self.__allowance

    def preview(self: Self, budget: int, total_intervals: int) -> SplitResult:
        """Split the budget and report a remainder that will not be spent."""
        result = split(budget, total_intervals)
        if result.has_remainder:
            LOG.info(
                "%d base units will not be spent and remain with the owner.",
                result.remainder,
            )
        return result

    def create_order(  # noqa: PLR0913
        self: Self,
        source_asset: str,
        target_asset: str,
        budget: int,
        interval: int,
        total_intervals: int,
    ) -> int:
        """
        Create a recurring order spending ``budget`` over ``total_intervals``.

        Only ``amount_per_interval * total_intervals`` is locked in the order,
        the remainder stays with the owner. Returns the new order's ID.
        """
        if interval <= 0:
            raise InvalidInputError(f"The interval must be positive, got {interval}")
        if source_asset == target_asset:
            raise InvalidInputError("Source and target asset must differ")

        terms = self.preview(budget, total_intervals)
        if terms.amount_per_interval == 0:
            raise InvalidInputError(
                f"A budget of {budget} is too small for {total_intervals} intervals",
            )

        value = None
        if source_asset == self.__native_asset:
            value = terms.actual_total_used
        else:
            self.__allowance.update_inputs(
                source_asset,
                budget,
                total_intervals,
                refresh=True,
            )
            if self.__allowance.needs_approval:
                raise InsufficientAllowanceError(
                    f"Approve {terms.actual_total_used} of {source_asset} before"
                    " creating the order",
                )

        response = self.__ledger.create_order(
            source_asset=source_asset,
            target_asset=target_asset,
            amount_per_interval=terms.amount_per_interval,
            interval=interval,
            total_intervals=total_intervals,
            value=value,
        )
        LOG.info(
            "Created order #%d: %d x %d %s -> %s every %ds",
            response.order_id,
            total_intervals,
            terms.amount_per_interval,
            source_asset,
            target_asset,
            interval,
        )
        return response.order_id

    def cancel_order(self: Self, order_id: int) -> str:
        """Cancel an active order of the owner, returns the transaction hash."""
        order = self.__ledger.get_order(order_id)
        if not order.exists:
            raise OrderStateInvalidError(order_id, "Order does not exist")
        if order.owner.lower() != self.__owner.lower():
            raise OrderStateInvalidError(order_id, "Order belongs to another owner")
        if not order.is_active:
            raise OrderStateInvalidError(order_id, f"Order is {order_status(order).value}")

        receipt = self.__ledger.cancel_order(order_id)
        LOG.info("Cancelled order #%d (tx: %s)", order_id, receipt.tx_hash)
        return receipt.tx_hash

    def list_orders(self: Self, owner: str | None = None) -> list[OrderSchema]:
        """All orders of the owner, newest first."""
        orders = [
            self.__ledger.get_order(order_id)
            for order_id in self.__ledger.get_user_orders(owner or self.__owner)
        ]
        return sorted(
            (order for order in orders if order.exists),
            key=lambda order: (order.start_time, order.id),
            reverse=True,
        )


def filter_orders(orders: list[OrderSchema], tab: str = "all") -> list[OrderSchema]:
    """Filter orders like the 'all', 'open' and 'history' views do."""
    if tab not in ORDER_TABS:
        raise InvalidInputError(f"Tab must be one of: {', '.join(ORDER_TABS)}")
    if tab == "all":
        return list(orders)
    if tab == "open":
        return [order for order in orders if order_status(order) == OrderStatus.ACTIVE]
    return [order for order in orders if order_status(order) != OrderStatus.ACTIVE]
