# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from logging import getLogger
from typing import Self

import requests

from dca_keeper.interfaces import INotificationChannel

LOG = getLogger(__name__)

#: Telegram rejects longer messages.
MAX_MESSAGE_LENGTH = 4096


class TelegramNotificationChannelAdapter(INotificationChannel):
    """
    Telegram implementation of the notification channel.

    Messages are sent as plain text, transaction hashes and error messages
    of the ledger are no valid markdown.
    """

    def __init__(
        self: Self,
        bot_token: str,
        chat_id: str,
        timeout: float = 10,
        session: requests.Session | None = None,
    ) -> None:
        self.__chat_id = chat_id
        self.__url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
        self.__timeout = timeout
        self.__session = session or requests.Session()

    def send(self: Self, message: str) -> bool:
        """Send a message, returns False if Telegram did not accept it."""
        if len(message) > MAX_MESSAGE_LENGTH:
            message = message[: MAX_MESSAGE_LENGTH - 3] + "..."
        LOG.debug("Sending Telegram notification: %s", message)

        try:
            response = self.__session.post(
                self.__url,
                data={"chat_id": self.__chat_id, "text": message},
                timeout=self.__timeout,
            )
        except requests.RequestException as exc:
            LOG.error("Failed to send Telegram notification: %s", exc)
            return False

        if response.status_code != 200:  # noqa: PLR2004
            LOG.error(
                "Telegram rejected the notification (HTTP %s): %s",
                response.status_code,
                response.text,
            )
            return False
        return True
