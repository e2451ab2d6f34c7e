# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from datetime import datetime
from logging import getLogger
from typing import Callable, Self

from dca_keeper.models.execution import ExecutionMetrics

LOG = getLogger(__name__)


class MetricsRecorder:
    """Accumulates execution counters of the keeper process."""

    def __init__(self: Self, clock: Callable[[], datetime] = datetime.now) -> None:
        self.__clock = clock
        self.__metrics = ExecutionMetrics()

    def record_attempt(self: Self) -> None:
        self.__metrics.last_execution = self.__clock()

    def record_success(self: Self, order_count: int) -> None:
        self.__metrics.total_executions += 1
        self.__metrics.total_orders_executed += order_count
        self.__metrics.last_success = self.__clock()
        self.__metrics.average_orders_per_execution = (
            self.__metrics.total_orders_executed / self.__metrics.total_executions
        )

    def record_failure(self: Self) -> None:
        self.__metrics.total_failures += 1
        self.__metrics.last_failure = self.__clock()

    def snapshot(self: Self) -> ExecutionMetrics:
        """Returns a copy of the current counters."""
        return self.__metrics.model_copy()

    def reset(self: Self) -> None:
        self.__metrics = ExecutionMetrics()

    @property
    def has_activity(self: Self) -> bool:
        """True if at least one execution succeeded or failed."""
        return bool(self.__metrics.total_executions or self.__metrics.total_failures)

    def log_metrics(self: Self) -> None:
        metrics = self.__metrics
        LOG.info("=" * 60)
        LOG.info("Execution Metrics:")
        LOG.info("   Total executions: %d", metrics.total_executions)
        LOG.info("   Total orders executed: %d", metrics.total_orders_executed)
        LOG.info("   Total failures: %d", metrics.total_failures)
        LOG.info(
            "   Average orders per execution: %.2f",
            metrics.average_orders_per_execution,
        )
        for label, value in (
            ("Last execution", metrics.last_execution),
            ("Last success", metrics.last_success),
            ("Last failure", metrics.last_failure),
        ):
            if value is not None:
                LOG.info("   %s: %s", label, value.strftime("%Y/%m/%d %H:%M:%S"))
        LOG.info("=" * 60)
