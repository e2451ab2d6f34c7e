# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Spending permission handling for recurring orders.

Before an order can be created with a token as source asset, the order
contract must be allowed to spend the order's total. The state machine in this
module tracks whether such an approval is required:

    UNKNOWN -> CHECKING -> SUFFICIENT | INSUFFICIENT_NEEDS_APPROVAL
    INSUFFICIENT_NEEDS_APPROVAL -> APPROVAL_SUBMITTED -> APPROVAL_CONFIRMING
    APPROVAL_CONFIRMING -> CHECKING (poll) -> ...

Whenever the allowance cannot be read, approval is assumed to be required.
"""

import asyncio
from enum import Enum, auto
from logging import getLogger
from typing import Self

from dca_keeper.core.amounts import split
from dca_keeper.core.codec import MAX_UINT256
from dca_keeper.interfaces.ledger import ILedgerService

LOG = getLogger(__name__)

MAX_APPROVAL = MAX_UINT256
ALLOWANCE_POLL_INTERVAL = 2.0


class AllowanceStates(Enum):
    UNKNOWN = auto()
    CHECKING = auto()
    SUFFICIENT = auto()
    INSUFFICIENT_NEEDS_APPROVAL = auto()
    APPROVAL_SUBMITTED = auto()
    APPROVAL_CONFIRMING = auto()


_RESOLVED = (AllowanceStates.SUFFICIENT, AllowanceStates.INSUFFICIENT_NEEDS_APPROVAL)

TRANSITIONS: dict[AllowanceStates, tuple[AllowanceStates, ...]] = {
    AllowanceStates.UNKNOWN: (AllowanceStates.CHECKING,),
    AllowanceStates.CHECKING: (AllowanceStates.CHECKING, *_RESOLVED),
    AllowanceStates.SUFFICIENT: (AllowanceStates.CHECKING,),
    AllowanceStates.INSUFFICIENT_NEEDS_APPROVAL: (
        AllowanceStates.CHECKING,
        AllowanceStates.APPROVAL_SUBMITTED,
    ),
    AllowanceStates.APPROVAL_SUBMITTED: (
        AllowanceStates.APPROVAL_CONFIRMING,
        AllowanceStates.CHECKING,
        AllowanceStates.INSUFFICIENT_NEEDS_APPROVAL,
    ),
    AllowanceStates.APPROVAL_CONFIRMING: (AllowanceStates.CHECKING,),
}


class AllowanceService:
    """Tracks whether a spending permission must be granted for an order."""

    def __init__(  # noqa: PLR0913
        self: Self,
        ledger: ILedgerService,
        owner: str,
        native_asset: str = "native",
        poll_interval: float = ALLOWANCE_POLL_INTERVAL,
    ) -> None:
        self.__ledger = ledger
        self.__owner = owner
        self.__native_asset = native_asset
        self.__poll_interval = poll_interval
        self.__state = AllowanceStates.UNKNOWN
        self.__inputs: tuple[str, int, int] | None = None
        # Incremented on every input change to cancel running polls.
        self.__generation = 0

    @property
    def state(self: Self) -> AllowanceStates:
        return self.__state

    @property
    def needs_approval(self: Self) -> bool:
        return self.__state != AllowanceStates.SUFFICIENT

    def _transition_to(self: Self, new_state: AllowanceStates) -> None:
        if new_state not in TRANSITIONS[self.__state]:
            raise ValueError(
                f"Invalid allowance state transition from {self.__state} to {new_state}",
            )
        LOG.debug("Allowance state: %s -> %s", self.__state, new_state)
        self.__state = new_state

    def update_inputs(
        self: Self,
        source_asset: str,
        budget: int,
        total_intervals: int,
        *,
        refresh: bool = False,
    ) -> AllowanceStates:
        """
        Set the order parameters and re-check if any of them changed.

        With ``refresh`` the allowance is read again even for unchanged
        parameters.
        """
        inputs = (source_asset, budget, total_intervals)
        if not refresh and inputs == self.__inputs and self.__state in _RESOLVED:
            return self.__state
        self.__inputs = inputs
        self.__generation += 1
        return self.check()

    def check(self: Self) -> AllowanceStates:
        """Compare the granted permission with the total the order will use."""
        if self.__state != AllowanceStates.CHECKING:
            self._transition_to(AllowanceStates.CHECKING)

        if self.__inputs is None:
            LOG.debug("No order parameters set, approval required.")
            self._transition_to(AllowanceStates.INSUFFICIENT_NEEDS_APPROVAL)
            return self.__state

        source_asset, budget, total_intervals = self.__inputs
        if source_asset == self.__native_asset:
            # The native asset is sent along with the order, no permission
            # needs to be granted.
            self._transition_to(AllowanceStates.SUFFICIENT)
            return self.__state

        try:
            required = split(budget, total_intervals).actual_total_used
            allowance = self.__ledger.get_allowance(
                self.__owner,
                self.__ledger.contract_address,
                source_asset,
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOG.warning("Could not check allowance, assuming approval is needed: %s", exc)
            self._transition_to(AllowanceStates.INSUFFICIENT_NEEDS_APPROVAL)
            return self.__state

        LOG.debug("Allowance %d, required %d", allowance, required)
        self._transition_to(
            AllowanceStates.INSUFFICIENT_NEEDS_APPROVAL
            if allowance < required
            else AllowanceStates.SUFFICIENT,
        )
        return self.__state

    def approve(self: Self, amount: int = MAX_APPROVAL) -> str:
        """
        Submit the approval for the current source asset.

        The maximum amount is approved by default to avoid repeated approvals.
        Returns the transaction hash.
        """
        if self.__inputs is None:
            raise ValueError("Order parameters must be set before approving")
        if self.__state != AllowanceStates.INSUFFICIENT_NEEDS_APPROVAL:
            raise ValueError(f"No approval required in state {self.__state}")

        self._transition_to(AllowanceStates.APPROVAL_SUBMITTED)
        try:
            receipt = self.__ledger.approve(
                self.__inputs[0],
                self.__ledger.contract_address,
                amount,
            )
        except Exception:
            self._transition_to(AllowanceStates.INSUFFICIENT_NEEDS_APPROVAL)
            raise
        LOG.info("Approval submitted: %s", receipt.tx_hash)
        return receipt.tx_hash

    def on_approval_confirmed(self: Self) -> AllowanceStates:
        """Re-check immediately once the approval is known to be confirmed."""
        return self.check()

    async def wait_for_confirmation(self: Self, max_polls: int | None = None) -> AllowanceStates:
        """
        Poll the allowance until it is sufficient.

        The poll stops early if the order parameters are changed in the
        meantime or after ``max_polls`` unsuccessful checks.
        """
        self._transition_to(AllowanceStates.APPROVAL_CONFIRMING)
        generation = self.__generation
        polls = 0
        while max_polls is None or polls < max_polls:
            await asyncio.sleep(self.__poll_interval)
            if generation != self.__generation:
                LOG.debug("Order parameters changed, stop waiting for approval.")
                return self.__state
            polls += 1
            if self.check() == AllowanceStates.SUFFICIENT:
                LOG.info("Approval confirmed.")
                return self.__state

        LOG.warning("Approval not confirmed after %d checks.", polls)
        if self.__state == AllowanceStates.APPROVAL_CONFIRMING:
            self.check()
        return self.__state
