# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""Models describing amount splits, execution outcomes and metrics."""

from datetime import datetime
from enum import Enum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class ErrorKind(str, Enum):
    TRANSIENT_READ_FAILURE = "TransientReadFailure"
    TRANSIENT_WRITE_FAILURE = "TransientWriteFailure"
    ORDER_STATE_INVALID = "OrderStateInvalid"
    INVALID_INPUT = "InvalidInput"
    PERMANENT_LEDGER_REJECTION = "PermanentLedgerRejection"
    UNKNOWN = "Unknown"


class SplitResult(BaseModel):
    """Result of splitting a budget into equal installments"""

    model_config = ConfigDict(frozen=True)

    amount_per_interval: int = Field(..., ge=0)
    actual_total_used: int = Field(..., ge=0)
    remainder: int = Field(..., ge=0)
    total_intervals: int = Field(..., gt=0)

    @model_validator(mode="after")
    def validate_remainder(self: Self) -> Self:
        """The remainder must be smaller than the number of intervals"""
        if self.remainder >= self.total_intervals:
            raise ValueError(
                f"Remainder ({self.remainder}) must be smaller than the number"
                f" of intervals ({self.total_intervals})",
            )
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_remainder(self: Self) -> bool:
        return self.remainder > 0

    @property
    def total_budget(self: Self) -> int:
        return self.actual_total_used + self.remainder


class ExecutionResult(BaseModel):
    """Outcome of a single batched execution pass"""

    executed: bool
    order_count: int = 0
    order_ids: list[int] = Field(default_factory=list)
    retries: int = 0
    tx_hash: str | None = None
    block_number: int | None = None
    gas_used: int | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def failed(self: Self) -> bool:
        return self.error is not None


class OrderExecutionReport(BaseModel):
    """Outcome of executing a single order in per-order mode"""

    order_id: int
    success: bool
    duration: float = 0.0
    interval_label: str | None = None
    retries: int = 0
    tx_hash: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None


class ExecutionMetrics(BaseModel):
    """Snapshot of the counters kept by the metrics recorder"""

    total_executions: int = 0
    total_orders_executed: int = 0
    total_failures: int = 0
    last_execution: datetime | None = None
    last_success: datetime | None = None
    last_failure: datetime | None = None
    average_orders_per_execution: float = 0.0
