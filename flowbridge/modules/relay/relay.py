import asyncio
import json
import logging
import uuid
from typing import Any, Dict, Optional, Union

from flowbridge.modules.api.models import Task
from flowbridge.modules.registry import ConnectionRegistry

from .connection import ExecutorConnection

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
TIMEOUT_NOTE = "no response yet, may still be executing"
INVALID_RESPONSE = "invalid response"


class RelayError(Exception):
    """Base class for protocol-level relay failures."""


class NoPeerAvailable(RelayError):
    """No executor is connected, or its connection was lost."""


def parse_reply(message: Any) -> Optional[Dict[str, Any]]:
    """Parse an executor reply frame, returning None if it is not a JSON object."""
    try:
        data = json.loads(message)
    except (TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


class TaskRelay:
    def __init__(
        self,
        registry: ConnectionRegistry[ExecutorConnection],
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize task relay.

        Args:
            registry: Registry holding the connected executor
            timeout: Seconds to wait for a reply before answering optimistically
        """
        self.registry = registry
        self.timeout = timeout

    async def submit(self, task: Union[Task, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Forward a task to the executor and wait for its reply.

        Args:
            task: The caller's task body, forwarded as given apart from a
                taskId stamped when missing, or a Task model

        Returns:
            The executor's reply as received, an invalid-response failure,
            or the optimistic timeout result

        Raises:
            NoPeerAvailable: No executor connected; nothing was sent

        Logic:
        1. Fail fast without an executor
        2. Stamp a taskId when missing and serialize once
        3. Hold the connection lock for the whole exchange
        4. Arm the reply waiter, send, race the reply against the deadline
        5. Discard replies stamped with another task's id
        """
        connection = self.registry.current()
        if connection is None:
            raise NoPeerAvailable(
                "Extension not connected. Please open the extension in Webflow Designer."
            )

        wire = task.to_wire() if isinstance(task, Task) else dict(task)
        task_id = wire.get("taskId")
        if not task_id:
            task_id = wire["taskId"] = str(uuid.uuid4())
        payload = json.dumps(wire)

        async with connection.lock:
            if self.registry.current() is not connection:
                raise NoPeerAvailable("Executor connection was replaced before the task was sent")

            logger.info(
                f"Sending task {task_id} to executor: {len(wire.get('ops') or [])} operations"
            )
            return await self._exchange(connection, task_id, payload)

    async def _exchange(
        self, connection: ExecutorConnection, task_id: str, payload: str
    ) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        waiter = connection.expect_reply()

        try:
            try:
                await connection.send(payload)
            except Exception as e:
                logger.error(f"Failed to send task {task_id} to executor: {e}")
                self.registry.unregister_if_current(connection)
                raise NoPeerAvailable(f"Executor connection lost: {e}") from e

            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return self._timeout_result(task_id)

                try:
                    message = await asyncio.wait_for(waiter, timeout=remaining)
                except asyncio.TimeoutError:
                    return self._timeout_result(task_id)

                reply = parse_reply(message)
                if reply is None:
                    logger.warning(f"Invalid response from executor for task {task_id}")
                    return {"ok": False, "error": INVALID_RESPONSE}

                reply_id = reply.get("taskId")
                if reply_id is not None and reply_id != task_id:
                    logger.warning(f"Discarding stale reply for task {reply_id} while awaiting {task_id}")
                    waiter = connection.expect_reply()
                    continue

                if reply.get("ok"):
                    logger.info(f"Task {task_id} completed: Success")
                else:
                    logger.info(f"Task {task_id} completed: Error: {reply.get('error')}")
                return reply
        finally:
            connection.clear_reply(waiter)

    def _timeout_result(self, task_id: str) -> Dict[str, Any]:
        logger.warning(f"No reply for task {task_id} within {self.timeout}s")
        return {"ok": True, "note": TIMEOUT_NOTE}
