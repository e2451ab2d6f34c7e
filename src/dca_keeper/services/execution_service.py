# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Execution of due recurring orders.

The ledger decides which orders are due. This service asks for them, submits
the execution and retries transient failures with exponential backoff. Two
modes are supported:

- batched: the whole set of due orders is submitted as one unit of work and
  the ledger isolates failing orders from each other,
- per order: for ledgers without batch support, every order is validated
  locally and submitted on its own, guarded by a PendingSet.
"""

import asyncio
import time
from logging import getLogger
from typing import Any, Awaitable, Callable, Self, TypeVar

from dca_keeper.core.codec import decode_order_ids
from dca_keeper.core.event_bus import (
    EXECUTION_FAILED,
    ORDER_FAILED,
    ORDERS_EXECUTED,
    EventBus,
)
from dca_keeper.core.pending import PendingSet
from dca_keeper.exceptions import (
    InvalidInputError,
    OrderStateInvalidError,
    PermanentLedgerRejectionError,
    TransientLedgerError,
    TransientReadFailure,
    TransientWriteFailure,
)
from dca_keeper.interfaces.ledger import ILedgerService
from dca_keeper.models.configuration import KeeperConfigDTO
from dca_keeper.models.execution import ErrorKind, ExecutionResult, OrderExecutionReport
from dca_keeper.models.ledger import OrderSchema
from dca_keeper.services.metrics_service import MetricsRecorder

LOG = getLogger(__name__)

T = TypeVar("T")


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an exception onto the error taxonomy of execution results."""
    for exc_type, kind in (
        (TransientReadFailure, ErrorKind.TRANSIENT_READ_FAILURE),
        (TransientWriteFailure, ErrorKind.TRANSIENT_WRITE_FAILURE),
        (OrderStateInvalidError, ErrorKind.ORDER_STATE_INVALID),
        (InvalidInputError, ErrorKind.INVALID_INPUT),
        (PermanentLedgerRejectionError, ErrorKind.PERMANENT_LEDGER_REJECTION),
    ):
        if isinstance(exc, exc_type):
            return kind
    return ErrorKind.UNKNOWN


async def retry_async(
    fn: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> tuple[T, int]:
    """
    Call ``fn`` and retry transient ledger errors with exponential backoff.

    The delay before retry ``n`` (starting at 0) is ``base_delay * 2**n``,
    i.e. 1s, 2s, 4s for the default values. Returns the result together with
    the number of retries that were needed. Errors that are not transient and
    the error of the final attempt are propagated.
    """
    for attempt in range(max_retries + 1):
        try:
            return fn(), attempt
        except TransientLedgerError as exc:
            if attempt == max_retries:
                raise
            delay = base_delay * 2**attempt
            LOG.warning(
                "   Attempt %d failed (%s), retrying in %.1fs...",
                attempt + 1,
                exc,
                delay,
            )
            await sleep(delay)
    raise RuntimeError("unreachable")  # pragma: no cover


def validate_order_for_execution(order: OrderSchema | None, order_id: int, now: int) -> None:
    """
    Local pre-flight check that avoids submitting doomed transactions.

    Raises OrderStateInvalidError if the order should not be executed.
    """
    if order is None:
        raise OrderStateInvalidError(order_id, "Unable to fetch order state")
    if not order.exists:
        raise OrderStateInvalidError(order_id, "Order does not exist")
    if not order.is_active:
        raise OrderStateInvalidError(order_id, "Order is not active")
    if order.intervals_completed >= order.total_intervals:
        raise OrderStateInvalidError(order_id, "Order already completed")
    if now < order.next_execution_time:
        raise OrderStateInvalidError(order_id, "Order not ready yet")


class ExecutionService:
    """Submits due orders to the ledger and keeps the metrics up to date."""

    def __init__(  # noqa: PLR0913
        self: Self,
        ledger: ILedgerService,
        metrics: MetricsRecorder,
        event_bus: EventBus,
        config: KeeperConfigDTO,
        pending: PendingSet | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.__ledger = ledger
        self.__metrics = metrics
        self.__event_bus = event_bus
        self.__config = config
        self.__sleep = sleep
        self.__clock = clock
        self.pending = pending or PendingSet()

    async def _with_retry(self: Self, fn: Callable[[], T]) -> tuple[T, int]:
        return await retry_async(
            fn,
            max_retries=self.__config.max_retries,
            base_delay=self.__config.base_delay,
            sleep=self.__sleep,
        )

    def _retries_spent(self: Self, exc: BaseException) -> int:
        return self.__config.max_retries if isinstance(exc, TransientLedgerError) else 0

    # ==========================================================================
    # Batched execution

    async def run_once(self: Self) -> ExecutionResult:
        """
        Execute all due orders in one batched submission.

        Returns ``executed=False`` without touching the metrics if no order
        is due. Exhausted retries or rejected submissions are counted as a
        single failure and reported via the result.
        """
        read_retries = 0
        order_ids: list[int] = []
        try:
            due, read_retries = await self._with_retry(self.__ledger.check_upkeep)
            if not due.upkeep_needed:
                LOG.debug("No orders ready for execution.")
                return ExecutionResult(executed=False, retries=read_retries)

            try:
                order_ids = decode_order_ids(due.perform_data)
            except ValueError as exc:
                LOG.warning("Could not decode order IDs for logging: %s", exc)

            LOG.info(
                "Found %d order(s) ready for execution: %s",
                len(order_ids),
                ", ".join(f"#{order_id}" for order_id in order_ids) or "unknown",
            )

            if self.__config.dry_run:
                LOG.info("Dry run, not executing orders.")
                return ExecutionResult(
                    executed=False,
                    order_count=len(order_ids),
                    order_ids=order_ids,
                    retries=read_retries,
                )

            self.__metrics.record_attempt()
            receipt, write_retries = await self._with_retry(
                lambda: self.__ledger.perform_upkeep(due.perform_data),
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            # Every failure of a pass ends up here exactly once.
            self.__metrics.record_failure()
            retries = max(read_retries, self._retries_spent(exc))
            LOG.error("Execution failed: %s", exc)
            self.__event_bus.publish(
                EXECUTION_FAILED,
                {
                    "error": str(exc),
                    "error_kind": classify_error(exc),
                    "retries": retries,
                },
            )
            return ExecutionResult(
                executed=False,
                order_ids=order_ids,
                retries=retries,
                error=str(exc) or type(exc).__name__,
                error_kind=classify_error(exc),
            )

        self.__metrics.record_success(len(order_ids))
        result = ExecutionResult(
            executed=True,
            order_count=len(order_ids),
            order_ids=order_ids,
            retries=max(read_retries, write_retries),
            tx_hash=receipt.tx_hash,
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
        )
        self.__event_bus.publish(ORDERS_EXECUTED, result.model_dump())
        return result

    # ==========================================================================
    # Per-order execution

    async def run_per_order(self: Self) -> list[OrderExecutionReport]:
        """
        Execute due orders one by one.

        Pre-flight failures are reported per order and do not abort the
        remaining orders. Orders that are already being submitted by this
        process are skipped.
        """
        try:
            due, _ = await self._with_retry(self.__ledger.check_upkeep)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self.__metrics.record_failure()
            LOG.error("Could not check for due orders: %s", exc)
            self.__event_bus.publish(
                EXECUTION_FAILED,
                {
                    "error": str(exc),
                    "error_kind": classify_error(exc),
                    "retries": self._retries_spent(exc),
                },
            )
            raise

        if not due.upkeep_needed:
            LOG.debug("No orders ready for execution.")
            return []

        try:
            order_ids = decode_order_ids(due.perform_data)
        except ValueError as exc:
            LOG.error("Could not decode due order IDs: %s", exc)
            return []

        reports = []
        for order_id in order_ids:
            if order_id in self.pending:
                LOG.info("Order #%s is already being executed, skipping.", order_id)
                continue
            reports.append(await self.execute_order(order_id))

        self.log_reports(reports)
        return reports

    async def _fetch_order(self: Self, order_id: int) -> OrderSchema | None:
        try:
            order, _ = await self._with_retry(lambda: self.__ledger.get_order(order_id))
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOG.debug("Could not fetch order #%s: %s", order_id, exc)
            return None
        return order

    async def execute_order(self: Self, order_id: int) -> OrderExecutionReport:
        """Validate and execute the next interval of a single order."""
        started = time.monotonic()
        order = await self._fetch_order(order_id)
        interval_label = order.interval_label if order and order.exists else None
        LOG.info("Processing Order #%s (Interval %s)...", order_id, interval_label or "?")

        try:
            validate_order_for_execution(order, order_id, int(self.__clock()))
        except OrderStateInvalidError as exc:
            LOG.warning("   Skipping Order #%s: %s", order_id, exc.reason)
            return OrderExecutionReport(
                order_id=order_id,
                success=False,
                duration=time.monotonic() - started,
                interval_label=interval_label,
                error=exc.reason,
                error_kind=ErrorKind.ORDER_STATE_INVALID,
            )

        with self.pending.hold(order_id) as acquired:
            if not acquired:
                return OrderExecutionReport(
                    order_id=order_id,
                    success=False,
                    duration=time.monotonic() - started,
                    interval_label=interval_label,
                    error="Order is already being executed",
                    error_kind=ErrorKind.ORDER_STATE_INVALID,
                )

            if self.__config.dry_run:
                LOG.info("   Dry run, not executing Order #%s.", order_id)
                return OrderExecutionReport(
                    order_id=order_id,
                    success=True,
                    duration=time.monotonic() - started,
                    interval_label=interval_label,
                )

            self.__metrics.record_attempt()
            try:
                receipt, retries = await self._with_retry(
                    lambda: self.__ledger.execute_order(order_id),
                )
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self.__metrics.record_failure()
                LOG.error(
                    "   Failed to execute Order #%s (Interval %s): %s",
                    order_id,
                    interval_label,
                    exc,
                )
                self.__event_bus.publish(
                    ORDER_FAILED,
                    {"order_id": order_id, "error": str(exc)},
                )
                return OrderExecutionReport(
                    order_id=order_id,
                    success=False,
                    duration=time.monotonic() - started,
                    interval_label=interval_label,
                    retries=self._retries_spent(exc),
                    error=str(exc) or type(exc).__name__,
                    error_kind=classify_error(exc),
                )

        self.__metrics.record_success(1)
        LOG.info(
            "   Order #%s executed successfully! (Interval %s, tx: %s)",
            order_id,
            interval_label,
            receipt.tx_hash,
        )
        self.__event_bus.publish(
            ORDERS_EXECUTED,
            {"order_ids": [order_id], "tx_hash": receipt.tx_hash, "retries": retries},
        )
        return OrderExecutionReport(
            order_id=order_id,
            success=True,
            duration=time.monotonic() - started,
            interval_label=interval_label,
            retries=retries,
            tx_hash=receipt.tx_hash,
        )

    @staticmethod
    def log_reports(reports: list[OrderExecutionReport]) -> None:
        if not reports:
            return
        successful = sum(1 for report in reports if report.success)
        LOG.info("=" * 60)
        LOG.info("Execution Summary:")
        LOG.info("   Orders processed: %d", len(reports))
        LOG.info("   Successful: %d", successful)
        LOG.info("   Failed: %d", len(reports) - successful)
        if len(reports) > 1:
            for report in reports:
                LOG.info(
                    "   %s Order #%s: %.1fs%s",
                    "OK  " if report.success else "FAIL",
                    report.order_id,
                    report.duration,
                    "" if report.success else f" - {report.error}",
                )
        LOG.info("=" * 60)
