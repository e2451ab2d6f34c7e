# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from logging import getLogger
from typing import Any, Callable, Self

LOG = getLogger(__name__)

# Event types published by the keeper
ORDERS_EXECUTED = "orders_executed"
EXECUTION_FAILED = "execution_failed"
ORDER_FAILED = "order_failed"
NOTIFICATION = "notification"


class EventBus:
    """Central event bus for communication between components"""

    def __init__(self: Self) -> None:
        self._subscribers: dict[str, list[Callable[[Any], None]]] = {}

    def subscribe(
        self: Self,
        event_type: str,
        callback: Callable[[Any], None],
    ) -> None:
        """Subscribe to an event type"""
        self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(
        self: Self,
        event_type: str,
        callback: Callable[[Any], None],
    ) -> None:
        """Remove a callback, unknown callbacks are ignored"""
        if callback in (callbacks := self._subscribers.get(event_type, [])):
            callbacks.remove(callback)

    def publish(self: Self, event_type: str, data: dict[Any, Any]) -> None:
        """
        Publish an event to all subscribers

        A failing subscriber must not keep the remaining subscribers from
        receiving the event, nor break the execution cycle that published it.
        """
        for callback in self._subscribers.get(event_type, []):
            try:
                callback(data)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                LOG.error(
                    "Subscriber of '%s' failed: %s",
                    event_type,
                    exc,
                    exc_info=exc,
                )
