"""Thread-safe mapping from setting name to change callbacks."""

from __future__ import annotations

import threading
from typing import Mapping

from .ports import NotifyFunc


class NotificationRegistry:
    """Callbacks interested in a setting, in registration order.

    Registration only ever appends. Readers take a copied snapshot so that
    callbacks run without the lock held; a callback may register further
    callbacks without deadlocking.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._callbacks: dict[str, list[NotifyFunc]] = {}

    def register(self, setting: str, callback: NotifyFunc) -> None:
        if not callable(callback):
            raise TypeError(f"callback for {setting!r} is not callable")
        with self._lock:
            self._callbacks.setdefault(setting, []).append(callback)

    def callbacks(self, setting: str) -> tuple[NotifyFunc, ...]:
        with self._lock:
            return tuple(self._callbacks.get(setting, ()))

    def names(self) -> list[str]:
        with self._lock:
            return list(self._callbacks)

    def snapshot(self) -> Mapping[str, tuple[NotifyFunc, ...]]:
        with self._lock:
            return {name: tuple(funcs) for name, funcs in self._callbacks.items()}

    def __contains__(self, setting: str) -> bool:
        with self._lock:
            return setting in self._callbacks

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)
