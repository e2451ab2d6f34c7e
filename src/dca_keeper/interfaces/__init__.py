# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from dca_keeper.interfaces.ledger import ILedgerService
from dca_keeper.interfaces.notification import INotificationChannel

__all__ = ["ILedgerService", "INotificationChannel"]
