# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from logging import getLogger

from dca_keeper.adapters.ledger.jsonrpc import JsonRpcLedgerAdapter
from dca_keeper.adapters.ledger.memory import InMemoryLedgerAdapter
from dca_keeper.interfaces.ledger import ILedgerService
from dca_keeper.models.configuration import KeeperConfigDTO

LOG = getLogger(__name__)

__all__ = ["InMemoryLedgerAdapter", "JsonRpcLedgerAdapter", "create_ledger"]


def create_ledger(config: KeeperConfigDTO) -> ILedgerService:
    """Create the ledger adapter selected by the configuration."""
    LOG.debug("Using the %s ledger", config.ledger)
    if config.ledger == "JSON-RPC":
        if not (config.rpc_url and config.contract_address):
            raise ValueError("The JSON-RPC ledger requires an RPC URL and a contract address")
        return JsonRpcLedgerAdapter(
            rpc_url=config.rpc_url,
            contract_address=config.contract_address,
            timeout=config.request_timeout,
        )
    if config.ledger == "InMemory":
        kwargs = {"owner": config.owner} if config.owner else {}
        return InMemoryLedgerAdapter(
            native_asset=config.native_asset,
            lead_buffer=config.lead_buffer,
            **kwargs,
        )
    raise ValueError(f"Unsupported ledger: {config.ledger}")
