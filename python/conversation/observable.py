"""Minimal callback-based observable state container."""

from __future__ import annotations

from typing import Callable

Listener = Callable[[], None]


class Observable:
    """Mixin holding zero-argument change listeners.

    Listeners run synchronously, in subscription order, after each effective
    state change.  They read the new state from the container itself.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()
