"""
Signal registry used to republish request results to subscribers
"""

import inspect
import logging
from collections.abc import Callable

logger = logging.getLogger("matrix_chat_client.signals")

# Sync loop
SYNC_COMPLETED = "sync_completed"
SYNC_ERROR = "sync_error"
INVALID_TOKEN = "invalid_token"
INITIAL_SYNC_COMPLETED = "initial_sync_completed"
INITIAL_SYNC_FAILED = "initial_sync_failed"
FILTER_UPLOADED = "filter_uploaded"


class ClientSignals:
    """
    Named callbacks. A callback may be a plain function or a coroutine
    function; coroutine results are awaited in registration order.
    """

    def __init__(self):
        self._handlers: dict[str, list[Callable]] = {}

    def connect(self, name: str, callback: Callable) -> None:
        """
        Subscribe to a signal

        Args:
            name: Signal name (e.g. ``sync_completed``)
            callback: Function or async function receiving the signal args
        """
        handlers = self._handlers.setdefault(name, [])
        if callback not in handlers:
            handlers.append(callback)

    def disconnect(self, name: str, callback: Callable) -> None:
        handlers = self._handlers.get(name, [])
        if callback in handlers:
            handlers.remove(callback)

    def handlers(self, name: str) -> list[Callable]:
        return list(self._handlers.get(name, []))

    async def emit(self, name: str, *args) -> int:
        """
        Deliver a signal to every subscriber

        A failing subscriber is logged and does not stop delivery to the rest.

        Returns:
            Number of subscribers that were called
        """
        handlers = self.handlers(name)
        for callback in handlers:
            try:
                result = callback(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed on {name}")
        return len(handlers)
