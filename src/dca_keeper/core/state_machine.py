# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

import asyncio
from enum import Enum, auto
from logging import getLogger
from typing import Any, Callable, Self

LOG = getLogger(__name__)


class States(Enum):
    """Lifecycle states of the keeper process"""

    INITIALIZING = auto()
    RUNNING = auto()
    SHUTDOWN_REQUESTED = auto()
    ERROR = auto()


class StateMachine:
    """Manages the lifecycle state of the keeper process"""

    def __init__(self: Self, initial_state: States = States.INITIALIZING) -> None:
        self._state: States = initial_state
        self._facts: dict[str, Any] = {}
        self._transitions = self._define_transitions()
        self._callbacks: dict[States, list[Callable[[], None]]] = {}

    def _define_transitions(self: Self) -> dict[States, list[States]]:
        return {
            States.INITIALIZING: [
                States.RUNNING,
                States.SHUTDOWN_REQUESTED,
                States.ERROR,
            ],
            States.RUNNING: [States.ERROR, States.SHUTDOWN_REQUESTED],
            States.ERROR: [States.RUNNING, States.SHUTDOWN_REQUESTED, States.ERROR],
            States.SHUTDOWN_REQUESTED: [],
        }

    def transition_to(self: Self, new_state: States) -> None:
        """Transition to a new state if the transition is valid"""
        if new_state == self._state:
            return

        if new_state not in self._transitions[self._state]:
            raise ValueError(
                f"Invalid state transition from {self._state} to {new_state}",
            )

        LOG.debug("Transition from %s to %s", self._state, new_state)
        self._state = new_state

        if new_state in (States.SHUTDOWN_REQUESTED, States.ERROR) and hasattr(
            self,
            "_shutdown_event",
        ):
            self._shutdown_event.set()

        for callback in self._callbacks.get(new_state, []):
            try:
                callback()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                LOG.error("Callback for state %s failed: %s", new_state, exc)

    @property
    def state(self: Self) -> States:
        return self._state

    @property
    def facts(self: Self) -> dict[str, Any]:
        return self._facts

    @facts.setter
    def facts(self: Self, new_facts: dict[str, Any]) -> None:
        self._facts |= new_facts

    def register_callback(
        self: Self,
        state: States,
        callback: Callable[[], None],
    ) -> None:
        """Register a callback that is executed on entering the given state"""
        self._callbacks.setdefault(state, []).append(callback)

    async def wait_for_shutdown(self: Self) -> None:
        """Block until shutdown was requested or an error occurred"""
        if not hasattr(self, "_shutdown_event"):
            self._shutdown_event = asyncio.Event()

        if self._state in (States.SHUTDOWN_REQUESTED, States.ERROR):
            return

        await self._shutdown_event.wait()
