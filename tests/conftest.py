# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

from dca_keeper.adapters.ledger.memory import InMemoryLedgerAdapter
from dca_keeper.core.event_bus import EventBus
from dca_keeper.models.configuration import KeeperConfigDTO
from dca_keeper.models.ledger import OrderSchema
from dca_keeper.services.metrics_service import MetricsRecorder
from tests.helper import NEXT_HOUR, NOW, OWNER, TOKEN_A, TOKEN_B, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(clock: FakeClock) -> InMemoryLedgerAdapter:
    return InMemoryLedgerAdapter(owner=OWNER, clock=clock)


@pytest.fixture
def keeper_config() -> KeeperConfigDTO:
    return KeeperConfigDTO(ledger="InMemory", owner=OWNER)


@pytest.fixture
def metrics() -> MetricsRecorder:
    return MetricsRecorder()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Replaces asyncio.sleep in the retry loop."""
    return AsyncMock()


@pytest.fixture
def make_order() -> Callable[..., OrderSchema]:
    def _make_order(**kwargs: Any) -> OrderSchema:
        return OrderSchema(
            **{
                "id": 1,
                "owner": OWNER,
                "source_asset": TOKEN_A,
                "target_asset": TOKEN_B,
                "amount_per_interval": 25,
                "interval": 3600,
                "intervals_completed": 0,
                "total_intervals": 4,
                "next_execution_time": NEXT_HOUR,
                "start_time": NOW,
                "is_active": True,
            }
            | kwargs,
        )

    return _make_order
