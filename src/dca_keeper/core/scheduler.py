# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

import asyncio
import signal
import time
from importlib.metadata import version
from logging import getLogger
from typing import Self

from dca_keeper.adapters.ledger import create_ledger
from dca_keeper.core.event_bus import (
    EXECUTION_FAILED,
    NOTIFICATION,
    ORDER_FAILED,
    EventBus,
)
from dca_keeper.core.state_machine import StateMachine, States
from dca_keeper.exceptions import KeeperStateError
from dca_keeper.interfaces.ledger import ILedgerService
from dca_keeper.models.configuration import KeeperConfigDTO, NotificationConfigDTO
from dca_keeper.models.execution import ExecutionResult
from dca_keeper.services.execution_service import ExecutionService
from dca_keeper.services.metrics_service import MetricsRecorder
from dca_keeper.services.notification_service import NotificationService

LOG = getLogger(__name__)


class Scheduler:
    """
    Drives the execution of due orders, either once or periodically.

    Only one execution cycle runs at a time. A cycle that becomes due while
    the previous one is still running is skipped, not queued.
    """

    def __init__(
        self: Self,
        config: KeeperConfigDTO,
        notification_config: NotificationConfigDTO | None = None,
        ledger: ILedgerService | None = None,
    ) -> None:
        LOG.info("Initiate the DCA keeper instance (v%s)", version("dca-keeper"))
        LOG.debug("Config: %s", config)

        self.__config = config
        self.__event_bus = EventBus()
        self.__state_machine = StateMachine()
        self.__metrics = MetricsRecorder()
        self.__ledger = ledger or create_ledger(config)
        self.__notification_service = NotificationService(
            notification_config or NotificationConfigDTO(),
        )
        self.__execution_service = ExecutionService(
            ledger=self.__ledger,
            metrics=self.__metrics,
            event_bus=self.__event_bus,
            config=self.__config,
        )

        self.__cycle_lock = asyncio.Lock()
        self.__cycles: set[asyncio.Task] = set()
        self.__last_metrics_report = time.monotonic()

        self.__setup_event_handlers()

    def __setup_event_handlers(self: Self) -> None:
        self.__event_bus.subscribe(
            NOTIFICATION,
            self.__notification_service.on_notification,
        )
        self.__event_bus.subscribe(
            EXECUTION_FAILED,
            self.__notification_service.on_execution_failed,
        )
        self.__event_bus.subscribe(
            ORDER_FAILED,
            self.__notification_service.on_order_failed,
        )

    @property
    def ledger(self: Self) -> ILedgerService:
        return self.__ledger

    @property
    def metrics(self: Self) -> MetricsRecorder:
        return self.__metrics

    @property
    def state_machine(self: Self) -> StateMachine:
        return self.__state_machine

    @property
    def event_bus(self: Self) -> EventBus:
        return self.__event_bus

    @property
    def execution_service(self: Self) -> ExecutionService:
        return self.__execution_service

    # ==========================================================================
    # One-shot mode

    async def run_once(self: Self) -> int:
        """
        Run a single pass and return the process exit status.

        Returns 0 if the pass succeeded or no order was due, 1 otherwise.
        """
        LOG.info("Checking for ready DCA orders...")
        started = time.monotonic()
        try:
            await asyncio.to_thread(self.__ledger.check_connection)
        except KeeperStateError as exc:
            LOG.error("Fatal error: %s", exc)
            return 1

        if self.__config.batch_execution:
            result = await self.__execution_service.run_once()
            self.__log_result(result)
            status = 1 if result.failed else 0
        else:
            try:
                reports = await self.__execution_service.run_per_order()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                LOG.error("Fatal error: %s", exc)
                reports, status = [], 1
            else:
                status = 1 if any(not report.success for report in reports) else 0
                if not reports:
                    LOG.info("No orders ready for execution.")

        LOG.info("Total duration: %.1fs", time.monotonic() - started)
        if self.__metrics.has_activity:
            self.__metrics.log_metrics()
        return status

    # ==========================================================================
    # Continuous mode

    async def cycle(self: Self) -> bool:
        """
        Execute one cycle unless the previous one is still running.

        Returns False if the cycle was skipped.
        """
        if self.__cycle_lock.locked():
            LOG.warning("Previous cycle is still running, skipping this one.")
            return False

        async with self.__cycle_lock:
            try:
                if self.__config.batch_execution:
                    self.__log_result(await self.__execution_service.run_once())
                else:
                    await self.__execution_service.run_per_order()
            except KeeperStateError as exc:
                LOG.error("Fatal error in execution cycle: %s", exc)
                if self.__state_machine.state != States.SHUTDOWN_REQUESTED:
                    self.__state_machine.transition_to(States.ERROR)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                # Keep running, the next cycle may succeed.
                LOG.error("Error checking/executing upkeep: %s", exc, exc_info=exc)

            if (
                now := time.monotonic()
            ) - self.__last_metrics_report >= self.__config.metrics_report_interval:
                LOG.info("Metrics Report:")
                self.__metrics.log_metrics()
                self.__last_metrics_report = now
        return True

    def _start_cycle(self: Self) -> asyncio.Task:
        task = asyncio.create_task(self.cycle())
        self.__cycles.add(task)
        task.add_done_callback(self.__cycles.discard)
        return task

    async def run(self: Self) -> int:
        """Run cycles periodically until a shutdown is requested."""
        LOG.info("Starting the DCA keeper...")

        # ======================================================================
        # Handle the shutdown signals
        #
        # A controlled shutdown is initiated by sending a SIGINT or SIGTERM
        # signal to the process. A running cycle is allowed to finish, but no
        # new cycle is started afterwards.
        ##
        def _signal_handler() -> None:
            if self.__state_machine.state != States.SHUTDOWN_REQUESTED:
                LOG.warning("Initiate a controlled shutdown of the keeper...")
                self.__state_machine.transition_to(States.SHUTDOWN_REQUESTED)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

        try:
            try:
                # The connection check retries with blocking sleeps.
                await asyncio.to_thread(self.__ledger.check_connection)
            except KeeperStateError as exc:
                self.__state_machine.transition_to(States.ERROR)
                return await self.terminate(f"Could not reach the ledger: {exc}")

            self.__metrics.reset()
            self.__state_machine.transition_to(States.RUNNING)
            self.__event_bus.publish(
                NOTIFICATION,
                {"message": f"{self.__config.name} is starting!"},
            )

            LOG.info("Performing initial check...")
            await self._start_cycle()

            LOG.info("Will check every %.0f seconds", self.__config.check_interval)
            shutdown = asyncio.create_task(self.__state_machine.wait_for_shutdown())
            try:
                while self.__state_machine.state == States.RUNNING:
                    done, _ = await asyncio.wait(
                        [shutdown],
                        timeout=self.__config.check_interval,
                    )
                    if done or self.__state_machine.state != States.RUNNING:
                        break
                    self._start_cycle()
            finally:
                if not shutdown.done():
                    shutdown.cancel()

            if self.__cycles:
                LOG.info("Waiting for the running cycle to finish...")
                await asyncio.gather(*self.__cycles, return_exceptions=True)
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)

        if self.__state_machine.state == States.ERROR:
            return await self.terminate("The keeper was shut down due to an error!")
        return await self.terminate(
            "The keeper was shut down successfully!",
            exception=False,
        )

    async def terminate(self: Self, reason: str = "", *, exception: bool = True) -> int:
        """
        Handle the termination of the keeper.

        1. Logs the final metrics.
        2. Notifies the user about the termination.
        3. Returns the exit status for the process.
        """
        if self.__metrics.has_activity:
            LOG.info("Final Metrics:")
            self.__metrics.log_metrics()

        self.__event_bus.publish(
            NOTIFICATION,
            {"message": f"{self.__config.name} terminated.\nReason: {reason}"},
        )
        return int(exception)

    @staticmethod
    def __log_result(result: ExecutionResult) -> None:
        if result.executed:
            LOG.info("Executed %d order(s) successfully!", result.order_count)
            if result.tx_hash:
                LOG.info("   Transaction: %s", result.tx_hash)
            if result.block_number is not None:
                LOG.info("   Block: %d", result.block_number)
            if result.gas_used is not None:
                LOG.info("   Gas used: %d", result.gas_used)
            if result.retries:
                LOG.info("   Retries used: %d", result.retries)
        elif result.failed:
            LOG.error("Execution failed (%s): %s", result.error_kind, result.error)
        else:
            LOG.debug("No orders ready for execution.")
