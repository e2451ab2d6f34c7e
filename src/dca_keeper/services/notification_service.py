# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from logging import getLogger
from typing import Any, Self

from dca_keeper.interfaces import INotificationChannel
from dca_keeper.models.configuration import NotificationConfigDTO

LOG = getLogger(__name__)


class NotificationService:
    """
    Forwards keeper events to the configured notification channels.

    Without any configured channel, messages are only logged.
    """

    def __init__(self: Self, config: NotificationConfigDTO) -> None:
        self.__channels: list[INotificationChannel] = []
        if config.telegram.enabled:
            self.add_telegram_channel(
                bot_token=config.telegram.token,
                chat_id=config.telegram.chat_id,
            )

    @property
    def channels(self: Self) -> tuple[INotificationChannel, ...]:
        return tuple(self.__channels)

    def add_channel(self: Self, channel: INotificationChannel) -> None:
        self.__channels.append(channel)

    def add_telegram_channel(self: Self, bot_token: str, chat_id: str) -> None:
        from dca_keeper.adapters.notification import (  # pylint: disable=import-outside-toplevel # noqa: PLC0415
            TelegramNotificationChannelAdapter,
        )

        self.add_channel(TelegramNotificationChannelAdapter(bot_token, chat_id))

    def notify(self: Self, message: str) -> bool:
        """Send a message through all channels.

        Returns:
            bool: True if at least one channel accepted the message
        """
        LOG.info("Sending notification: %s", message)
        delivered = [channel.send(message) for channel in self.__channels]
        return any(delivered)

    # == Event handlers ========================================================
    def on_notification(self: Self, data: dict[str, Any]) -> None:
        self.notify(data["message"])

    def on_execution_failed(self: Self, data: dict[str, Any]) -> None:
        """A batched execution pass failed after all retries."""
        kind = data.get("error_kind")
        self.notify(
            f"Execution failed ({getattr(kind, 'value', kind) or 'Unknown'})"
            f" after {data['retries']} retries: {data['error']}",
        )

    def on_order_failed(self: Self, data: dict[str, Any]) -> None:
        """The execution of a single order failed in per-order mode."""
        self.notify(f"Execution of order #{data['order_id']} failed: {data['error']}")
