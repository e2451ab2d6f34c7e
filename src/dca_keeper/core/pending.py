# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from collections.abc import Iterator
from contextlib import contextmanager
from logging import getLogger
from typing import Self

LOG = getLogger(__name__)


class PendingSet:
    """
    Order identifiers that are currently being submitted for execution.

    Guarantees at most one in-flight execution attempt per order within this
    process. Entries must be released on every exit path, which ``hold``
    takes care of.
    """

    def __init__(self: Self) -> None:
        self.__order_ids: set[int] = set()

    def try_acquire(self: Self, order_id: int) -> bool:
        """Mark the order as pending, returns False if it already is."""
        if order_id in self.__order_ids:
            LOG.debug("Order #%s is already pending.", order_id)
            return False
        self.__order_ids.add(order_id)
        return True

    def release(self: Self, order_id: int) -> None:
        self.__order_ids.discard(order_id)

    @contextmanager
    def hold(self: Self, order_id: int) -> Iterator[bool]:
        """
        Acquire the order for the duration of the block.

        Yields whether the order was acquired. Only an acquired order gets
        released when the block is left.
        """
        acquired = self.try_acquire(order_id)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(order_id)

    def __contains__(self: Self, order_id: object) -> bool:
        return order_id in self.__order_ids

    def __len__(self: Self) -> int:
        return len(self.__order_ids)
