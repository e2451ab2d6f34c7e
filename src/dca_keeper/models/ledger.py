# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Ledger models and schemas for the recurring order keeper.

This module contains Pydantic models that define the structure and validation
rules for data read from the ledger, such as recurring order records, the
result of the "which orders are due" read and transaction receipts. The ledger
speaks camelCase, all models accept both the ledger's field names and the
snake_case attribute names.
"""

from __future__ import annotations

from enum import Enum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class LedgerModel(BaseModel):
    """Base class for models that are exchanged with the ledger"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderSchema(LedgerModel):
    """Model for a recurring order as stored on the ledger"""

    id: int = Field(..., ge=0, description="Order identifier")
    owner: str = Field(..., description="Principal that created the order")
    source_asset: str = Field(
        ...,
        alias="sourceToken",
        description="Asset that is spent",
    )
    target_asset: str = Field(
        ...,
        alias="targetToken",
        description="Asset that is bought",
    )
    amount_per_interval: int = Field(..., ge=0, description="Base units per interval")
    interval: int = Field(..., ge=0, description="Seconds between executions")
    intervals_completed: int = Field(..., ge=0)
    total_intervals: int = Field(..., ge=0)
    next_execution_time: int = Field(..., ge=0, description="Unix timestamp")
    start_time: int = Field(..., ge=0, description="Unix timestamp of creation")
    is_active: bool
    exists: bool = True

    @model_validator(mode="after")
    def validate_progress(self: Self) -> Self:
        """
        Validate the terms of existing orders.

        Unused or cleared order IDs are returned by the ledger as zeroed
        records with ``exists=False``, those are accepted as they are.
        """
        if not self.exists:
            return self
        if not (self.owner and self.source_asset and self.target_asset):
            raise ValueError("Owner, source and target asset must be set")
        if self.interval <= 0:
            raise ValueError(f"Interval must be positive, got {self.interval}")
        if self.total_intervals <= 0:
            raise ValueError(
                f"Total intervals must be positive, got {self.total_intervals}",
            )
        if self.intervals_completed > self.total_intervals:
            raise ValueError(
                f"Completed intervals ({self.intervals_completed}) cannot exceed"
                f" total intervals ({self.total_intervals})",
            )
        return self

    @property
    def interval_label(self: Self) -> str:
        """The interval that would be executed next, e.g. '2/5'"""
        return f"{self.intervals_completed + 1}/{self.total_intervals}"


class DueOrdersSchema(LedgerModel):
    """Model for the result of the ledger's readiness check"""

    upkeep_needed: bool
    perform_data: str = Field("0x", description="Opaque batch token")


class TransactionReceiptSchema(LedgerModel):
    """Model for the receipt of a submitted transaction"""

    tx_hash: str = Field(..., min_length=1, alias="transactionHash")
    block_number: int | None = None
    gas_used: int | None = None
    status: int = 1


class CreateOrderResponseSchema(LedgerModel):
    """Model for the response of a create order operation"""

    order_id: int = Field(..., ge=0)
    tx_hash: str | None = Field(None, alias="transactionHash")
    status: int = 1
