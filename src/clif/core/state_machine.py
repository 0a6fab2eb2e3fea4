"""Lifecycle state machine for the change watcher."""

from __future__ import annotations

from enum import Enum, auto
import logging


class WatcherState(Enum):
    STOPPED = auto()
    RUNNING = auto()


class WatcherEvent(Enum):
    START = auto()
    CANCEL = auto()


_TRANSITIONS = {
    WatcherState.STOPPED: {
        WatcherEvent.START: WatcherState.RUNNING,
    },
    WatcherState.RUNNING: {
        WatcherEvent.CANCEL: WatcherState.STOPPED,
    },
}


class WatcherStateMachine:
    def __init__(self):
        self.state = WatcherState.STOPPED

    def transition(self, event: WatcherEvent) -> WatcherState:
        next_state = _TRANSITIONS.get(self.state, {}).get(event, self.state)
        if next_state == self.state and event not in _TRANSITIONS.get(self.state, {}):
            logging.getLogger(__name__).warning(
                "Invalid state transition: %s --%s--> %s", self.state, event, next_state
            )
        self.state = next_state
        return self.state

    def can(self, event: WatcherEvent) -> bool:
        return event in _TRANSITIONS.get(self.state, {})
