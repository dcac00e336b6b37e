import logging
import threading
from datetime import UTC, datetime
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

H = TypeVar("H")

Listener = Callable[[Optional[H], Optional[H]], None]


class ConnectionRegistry(Generic[H]):
    """
    Tracks the single connected executor.

    Only one handle is active at any instant. Registering a handle replaces
    the previous one unconditionally; unregistering is conditional so a late
    close event from a superseded connection cannot clear its replacement.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._current: Optional[H] = None
        self._connected_at: Optional[datetime] = None
        self._listeners: List[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        """
        Observe connection transitions.

        Args:
            listener: Called as listener(previous, current) after every change
        """
        self._listeners.append(listener)

    def register(self, handle: H) -> Optional[H]:
        """
        Make handle the active connection.

        Args:
            handle: New connection handle

        Returns:
            The handle that was active before, if any
        """
        with self._lock:
            previous = self._current
            self._current = handle
            self._connected_at = datetime.now(UTC)

        if previous is not handle:
            self._notify(previous, handle)
        return previous

    def current(self) -> Optional[H]:
        """Get the active handle, or None."""
        return self._current

    def is_available(self) -> bool:
        return self._current is not None

    @property
    def connected_at(self) -> Optional[datetime]:
        return self._connected_at

    def unregister_if_current(self, handle: H) -> bool:
        """
        Clear the registry only if handle is still the active one.

        Args:
            handle: Handle whose connection closed

        Returns:
            True if the registry was cleared
        """
        with self._lock:
            if self._current is not handle:
                return False
            self._current = None
            self._connected_at = None

        self._notify(handle, None)
        return True

    def _notify(self, previous: Optional[H], current: Optional[H]) -> None:
        for listener in list(self._listeners):
            try:
                listener(previous, current)
            except Exception as e:
                logger.warning(f"Connection listener failed: {e}")
