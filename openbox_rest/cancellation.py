"""Cooperative cancellation shared by the blocking and async clients."""

from __future__ import annotations

import threading
from typing import Callable

from .exceptions import OperationCancelledError


class CancellationToken:
    """Signal that one or more in-flight calls should stop.

    The token is checked by the client before every step of a call. Tokens
    are thread-safe, so a call running on one thread (or event loop) can be
    cancelled from another::

        token = CancellationToken()
        threading.Timer(5.0, token.cancel).start()
        client.get("/reports/42", Report, cancellation=token)
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation and run registered callbacks once."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def raise_if_cancellation_requested(self) -> None:
        """Raise :class:`OperationCancelledError` if :meth:`cancel` was called."""
        if self._event.is_set():
            raise OperationCancelledError()

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run *callback* when the token is cancelled.

        The callback runs immediately when the token is already cancelled.

        Returns:
            A function removing the callback again.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._unregister(callback)
        callback()
        return lambda: None

    def _unregister(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancellation_requested})"
