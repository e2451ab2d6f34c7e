# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Interface of the ledger that holds recurring orders.

The ledger is the durable store of record. Its readiness check is
authoritative and executing an interval twice must fail harmlessly on the
ledger side. Implementations raise the exceptions defined in
``dca_keeper.exceptions``:

- ``TransientReadFailure`` / ``TransientWriteFailure`` for hiccups that may
  succeed when repeated,
- ``PermanentLedgerRejectionError`` if the ledger refused a request,
- ``KeeperStateError`` if the ledger cannot be reached at all.
"""

from abc import ABC, abstractmethod
from typing import Self

from dca_keeper.models.ledger import (
    CreateOrderResponseSchema,
    DueOrdersSchema,
    OrderSchema,
    TransactionReceiptSchema,
)


class ILedgerService(ABC):
    """Interface for ledger operations."""

    @property
    @abstractmethod
    def contract_address(self: Self) -> str:
        """Address of the recurring order contract, the spender of approvals."""

    @abstractmethod
    def check_connection(self: Self, tries: int = 0) -> None:
        """Check if the ledger is reachable.

        Raises ``KeeperStateError`` if it is not.
        """

    # == Reads =================================================================
    @abstractmethod
    def check_upkeep(self: Self) -> DueOrdersSchema:
        """Ask the ledger which orders are due for execution."""

    @abstractmethod
    def get_order(self: Self, order_id: int) -> OrderSchema:
        """Get the record of a single order."""

    @abstractmethod
    def get_user_orders(self: Self, owner: str) -> list[int]:
        """Get the identifiers of all orders created by ``owner``."""

    @abstractmethod
    def get_allowance(self: Self, owner: str, spender: str, asset: str) -> int:
        """Get the spending permission ``owner`` granted ``spender``."""

    # == Writes ================================================================
    @abstractmethod
    def perform_upkeep(self: Self, perform_data: str) -> TransactionReceiptSchema:
        """Execute all orders referenced by the batch token of check_upkeep."""

    @abstractmethod
    def execute_order(self: Self, order_id: int) -> TransactionReceiptSchema:
        """Execute the next interval of a single order."""

    @abstractmethod
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
        """Create a new order.

        ``value`` is the amount of the native asset locked with the order and
        must be passed if and only if the source asset is the native asset.
        """

    @abstractmethod
    def cancel_order(self: Self, order_id: int) -> TransactionReceiptSchema:
        """Cancel an order, the unspent budget is returned to the owner."""

    @abstractmethod
    def approve(self: Self, asset: str, spender: str, amount: int) -> TransactionReceiptSchema:
        """Grant ``spender`` the permission to spend ``amount`` of ``asset``."""
