# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Exceptions raised by the keeper.

Ledger adapters translate their transport errors into the classes defined
here, so that services only need to distinguish between transient failures
that can be retried and everything else.
"""


class KeeperError(Exception):
    """Base class for all keeper related exceptions."""


class KeeperStateError(KeeperError):
    """The keeper reached a state it cannot recover from."""


class InvalidInputError(KeeperError, ValueError):
    """Malformed amount or interval arguments. Never retried."""


class TransientLedgerError(KeeperError):
    """A ledger interaction failed but may succeed when repeated."""


class TransientReadFailure(TransientLedgerError):
    """Network or RPC hiccup while reading from the ledger."""


class TransientWriteFailure(TransientLedgerError):
    """A submission failed but may succeed on resubmission."""


class PermanentLedgerRejectionError(KeeperError):
    """The ledger rejected a request for a reason unrelated to timing."""


class OrderStateInvalidError(KeeperError):
    """
    Local pre-flight check failure, e.g. the order is missing, already
    completed, cancelled or not yet due.
    """

    def __init__(self, order_id: int, reason: str) -> None:
        super().__init__(f"Order #{order_id}: {reason}")
        self.order_id = order_id
        self.reason = reason


class InsufficientAllowanceError(KeeperError):
    """The granted spending permission does not cover the order budget."""
