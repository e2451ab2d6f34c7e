# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""Shared constants and helpers for the keeper tests."""

OWNER = "0x00000000000000000000000000000000000000aa"
TOKEN_A = "0x000000000000000000000000000000000000000a"
TOKEN_B = "0x000000000000000000000000000000000000000b"

# 2023/11/14 22:13:20 UTC, the next full hour is 1_700_002_800.
NOW = 1_700_000_000
NEXT_HOUR = 1_700_002_800


class FakeClock:
    """Manually advanced clock for the in-memory ledger."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# What the ledger returns for an order ID that was never used.
ZEROED_ORDER = {
    "id": 0,
    "owner": ZERO_ADDRESS,
    "sourceToken": ZERO_ADDRESS,
    "targetToken": ZERO_ADDRESS,
    "amountPerInterval": "0",
    "interval": 0,
    "intervalsCompleted": 0,
    "totalIntervals": 0,
    "nextExecutionTime": 0,
    "startTime": 0,
    "isActive": False,
    "exists": False,
}
