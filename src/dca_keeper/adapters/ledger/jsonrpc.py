# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
JSON-RPC ledger adapter.

Talks to a signing relay in front of the recurring order contract. The relay
holds the keeper's keys, encodes contract calls and waits for transaction
receipts; this adapter only maps the ledger operations onto JSON-RPC methods
and translates transport errors into the keeper's exception taxonomy.
"""

from itertools import count
from logging import getLogger
from time import sleep
from typing import Any, Self, TypeVar

import requests

from dca_keeper.exceptions import (
    KeeperStateError,
    PermanentLedgerRejectionError,
    TransientLedgerError,
    TransientReadFailure,
    TransientWriteFailure,
)
from dca_keeper.interfaces.ledger import ILedgerService
from dca_keeper.models.ledger import (
    CreateOrderResponseSchema,
    DueOrdersSchema,
    OrderSchema,
    TransactionReceiptSchema,
)

LOG = getLogger(__name__)

# JSON-RPC error codes that indicate the request itself was refused, e.g. a
# reverted contract call. Everything else is treated as transient.
REJECTION_CODES = frozenset((3, -32602, -32003))
RETRYABLE_HTTP_STATUS = frozenset((408, 425, 429, 500, 502, 503, 504))

T = TypeVar("T", TransactionReceiptSchema, CreateOrderResponseSchema)


class JsonRpcLedgerAdapter(ILedgerService):
    """Adapter for a ledger reachable through a JSON-RPC relay."""

    def __init__(
        self: Self,
        rpc_url: str,
        contract_address: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.__rpc_url = rpc_url
        self.__contract_address = contract_address
        self.__timeout = timeout
        self.__session = session or requests.Session()
        self.__ids = count(1)

    @property
    def contract_address(self: Self) -> str:
        return self.__contract_address

    def _call(self: Self, method: str, params: list[Any], *, write: bool = False) -> Any:  # noqa: ANN401
        """Send a JSON-RPC request and return its result."""
        transient = TransientWriteFailure if write else TransientReadFailure
        payload = {
            "jsonrpc": "2.0",
            "id": next(self.__ids),
            "method": method,
            "params": params,
        }
        LOG.debug("JSON-RPC request: %s", payload)
        try:
            response = self.__session.post(
                self.__rpc_url,
                json=payload,
                timeout=self.__timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise transient(f"{method}: {exc}") from exc
        except requests.RequestException as exc:
            raise PermanentLedgerRejectionError(f"{method}: {exc}") from exc

        if response.status_code in RETRYABLE_HTTP_STATUS:
            raise transient(f"{method}: HTTP {response.status_code}")
        if response.status_code != 200:
            raise PermanentLedgerRejectionError(f"{method}: HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise transient(f"{method}: invalid JSON response") from exc

        if (error := body.get("error")) is not None:
            message = f"{method}: {error.get('message', 'unknown error')}"
            if error.get("code") in REJECTION_CODES:
                raise PermanentLedgerRejectionError(message)
            raise transient(message)

        return body.get("result")

    def _write(self: Self, method: str, params: list[Any], schema: type[T]) -> T:
        """Submit a transaction and reject it if the ledger reverted it."""
        result = schema(**self._call(method, params, write=True))
        if result.status == 0:
            raise PermanentLedgerRejectionError(
                f"{method}: transaction {result.tx_hash} reverted",
            )
        return result

    def check_connection(self: Self, tries: int = 0) -> None:
        """Checks whether the ledger relay is available."""
        if tries == 3:
            LOG.error("- Could not connect to the ledger.")
            raise KeeperStateError("Could not connect to the ledger after 3 tries.")
        try:
            chain_id = self._call("eth_chainId", [])
            LOG.info("- Ledger available (chain id: %s)", chain_id)
        except (TransientLedgerError, PermanentLedgerRejectionError) as exc:
            LOG.debug("Exception while checking the ledger: %s", exc, exc_info=exc)
            LOG.warning("- Ledger not available. (Try %d/3)", tries + 1)
            sleep(3)
            self.check_connection(tries=tries + 1)

    # == Reads =================================================================
    def check_upkeep(self: Self) -> DueOrdersSchema:
        result = self._call("dca_checkUpkeep", [self.__contract_address, "0x"])
        return DueOrdersSchema(**result)

    def get_order(self: Self, order_id: int) -> OrderSchema:
        result = self._call("dca_getOrder", [self.__contract_address, order_id])
        if not result:
            raise PermanentLedgerRejectionError(f"Order #{order_id} does not exist")
        return OrderSchema(**result)

    def get_user_orders(self: Self, owner: str) -> list[int]:
        result = self._call("dca_getUserOrders", [self.__contract_address, owner])
        return [int(order_id) for order_id in result or []]

    def get_allowance(self: Self, owner: str, spender: str, asset: str) -> int:
        return int(self._call("erc20_allowance", [asset, owner, spender]))

    # == Writes ================================================================
    def perform_upkeep(self: Self, perform_data: str) -> TransactionReceiptSchema:
        return self._write(
            "dca_performUpkeep",
            [self.__contract_address, perform_data],
            TransactionReceiptSchema,
        )

    def execute_order(self: Self, order_id: int) -> TransactionReceiptSchema:
        return self._write(
            "dca_executeOrder",
            [self.__contract_address, order_id],
            TransactionReceiptSchema,
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
        params: dict[str, Any] = {
            "sourceToken": source_asset,
            "targetToken": target_asset,
            "amountPerInterval": str(amount_per_interval),
            "interval": interval,
            "totalIntervals": total_intervals,
        }
        if value is not None:
            # Amounts are sent as strings, JSON numbers lose precision.
            params["value"] = str(value)
        return self._write(
            "dca_createOrder",
            [self.__contract_address, params],
            CreateOrderResponseSchema,
        )

    def cancel_order(self: Self, order_id: int) -> TransactionReceiptSchema:
        return self._write(
            "dca_cancelOrder",
            [self.__contract_address, order_id],
            TransactionReceiptSchema,
        )

    def approve(self: Self, asset: str, spender: str, amount: int) -> TransactionReceiptSchema:
        return self._write(
            "erc20_approve",
            [asset, spender, str(amount)],
            TransactionReceiptSchema,
        )
