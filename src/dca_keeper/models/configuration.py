# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from pydantic import BaseModel, Field, computed_field, field_validator

SUPPORTED_LEDGERS = ("JSON-RPC", "InMemory")


class KeeperConfigDTO(BaseModel):
    """
    Data transfer object for the general keeper configuration. These values
    are passed via CLI or environment variables.
    """

    # ==========================================================================
    # General attributes
    name: str = "dca-keeper"
    ledger: str = "JSON-RPC"
    rpc_url: str | None = None
    contract_address: str | None = None
    owner: str | None = None
    native_asset: str = "native"
    dry_run: bool = False
    request_timeout: float = Field(10.0, gt=0)

    # ==========================================================================
    # Scheduling
    check_interval: float = Field(60.0, gt=0)
    metrics_report_interval: float = Field(300.0, gt=0)
    max_retries: int = Field(3, ge=0)
    base_delay: float = Field(1.0, ge=0)
    batch_execution: bool = True

    # Used to derive the first execution time of an order; the ledger starts
    # orders this many blocks before the next full hour.
    blocks_before_hour: int = Field(2, ge=0)
    block_time: int = Field(6, ge=0)

    @field_validator("ledger")
    @classmethod
    def validate_ledger(cls, value: str) -> str:
        """Validate the ledger backend."""
        if value not in SUPPORTED_LEDGERS:
            raise ValueError(f"Ledger must be one of: {', '.join(SUPPORTED_LEDGERS)}")
        return value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def lead_buffer(self) -> int:
        """Seconds an order's first execution is scheduled before the hour."""
        return self.blocks_before_hour * self.block_time


class TelegramConfigDTO(BaseModel):
    """Pydantic model for Telegram notification configuration."""

    token: str | None = None
    chat_id: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def enabled(self) -> bool:
        """Return True if both token and chat_id are truthy values."""
        return bool(self.token and self.chat_id)


class NotificationConfigDTO(BaseModel):
    """Pydantic model for notification service configuration."""

    telegram: TelegramConfigDTO = Field(default_factory=TelegramConfigDTO)
