"""Signed-in / signed-out notifications."""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[bool], None]


class AuthEvents:
    """Publishes auth-state transitions to subscribers.

    ``publish`` only notifies when the state actually changes, so writes that
    keep the device signed in (a token refresh) stay silent.
    """

    def __init__(self, signed_in: bool = False) -> None:
        self._listeners: list[Listener] = []
        self._signed_in = signed_in

    @property
    def signed_in(self) -> bool:
        return self._signed_in

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, signed_in: bool) -> None:
        if signed_in == self._signed_in:
            return
        self._signed_in = signed_in
        for listener in list(self._listeners):
            try:
                listener(signed_in)
            except Exception:
                logger.exception("Auth state listener failed")


__all__ = ["AuthEvents", "Listener"]
