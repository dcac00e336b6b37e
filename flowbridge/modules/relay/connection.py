import asyncio
import json
import logging
from datetime import UTC, datetime
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def is_heartbeat(message: str) -> bool:
    """
    Check whether an executor frame is an unsolicited heartbeat.

    Heartbeats carry a task envelope ({"ops": [...]}) instead of a reply
    envelope ({"ok": ...}).
    """
    try:
        data = json.loads(message)
    except (TypeError, ValueError):
        return False
    return isinstance(data, dict) and "ops" in data and "ok" not in data


class ExecutorConnection:
    """
    Relay-side handle for one executor WebSocket.

    The HTTP layer owns the receive loop and feeds every inbound frame to
    deliver(); the relay arms at most one reply waiter at a time and holds
    the lock for the whole send/await exchange.
    """

    def __init__(
        self,
        send: Callable[[str], Awaitable[None]],
        close: Optional[Callable[..., Awaitable[None]]] = None,
        peer: str = "unknown",
    ):
        self._send = send
        self._close = close
        self.peer = peer
        self.lock = asyncio.Lock()
        self.connected_at = datetime.now(UTC)
        self.last_heartbeat_at: Optional[datetime] = None
        self.closed = False
        self._waiter: Optional[asyncio.Future] = None

    @classmethod
    def from_websocket(cls, websocket: Any) -> "ExecutorConnection":
        """Wrap a Starlette WebSocket."""
        client = getattr(websocket, "client", None)
        peer = f"{client.host}:{client.port}" if client else "unknown"
        return cls(websocket.send_text, websocket.close, peer=peer)

    async def send(self, payload: str) -> None:
        """
        Raises:
            ConnectionError: If the connection was closed or superseded
        """
        if self.closed:
            raise ConnectionError(f"Executor connection {self.peer} is closed")
        await self._send(payload)

    def expect_reply(self) -> asyncio.Future:
        """
        Arm the reply waiter for the next inbound reply frame.

        Raises:
            RuntimeError: If a reply is already awaited on this connection
        """
        if self._waiter is not None and not self._waiter.done():
            raise RuntimeError("A reply is already awaited on this connection")
        self._waiter = asyncio.get_running_loop().create_future()
        return self._waiter

    def clear_reply(self, waiter: asyncio.Future) -> None:
        """Deregister waiter if it is still armed."""
        if self._waiter is waiter:
            self._waiter = None
        if not waiter.done():
            waiter.cancel()

    @property
    def awaiting_reply(self) -> bool:
        return self._waiter is not None and not self._waiter.done()

    def deliver(self, message: str) -> bool:
        """
        Route one inbound frame.

        Returns:
            True if the frame resolved the armed reply waiter
        """
        if self.closed:
            logger.debug(f"Dropping frame from closed executor connection {self.peer}")
            return False

        if is_heartbeat(message):
            self.last_heartbeat_at = datetime.now(UTC)
            logger.debug(f"Heartbeat from executor {self.peer}")
            return False

        waiter = self._waiter
        if waiter is None or waiter.done():
            logger.info(f"Ignoring unsolicited message from executor {self.peer}")
            return False

        self._waiter = None
        waiter.set_result(message)
        return True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        if self._close:
            await self._close(code=code, reason=reason)

    def __repr__(self) -> str:
        return f"ExecutorConnection(peer={self.peer!r})"
