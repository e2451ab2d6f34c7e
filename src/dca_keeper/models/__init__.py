# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from dca_keeper.models.configuration import (
    KeeperConfigDTO,
    NotificationConfigDTO,
    TelegramConfigDTO,
)
from dca_keeper.models.execution import (
    ErrorKind,
    ExecutionMetrics,
    ExecutionResult,
    OrderExecutionReport,
    SplitResult,
)
from dca_keeper.models.ledger import (
    CreateOrderResponseSchema,
    DueOrdersSchema,
    OrderSchema,
    OrderStatus,
    TransactionReceiptSchema,
)

__all__ = [
    "CreateOrderResponseSchema",
    "DueOrdersSchema",
    "ErrorKind",
    "ExecutionMetrics",
    "ExecutionResult",
    "KeeperConfigDTO",
    "NotificationConfigDTO",
    "OrderExecutionReport",
    "OrderSchema",
    "OrderStatus",
    "SplitResult",
    "TelegramConfigDTO",
    "TransactionReceiptSchema",
]
