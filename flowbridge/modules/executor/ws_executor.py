#!/usr/bin/env python3
"""
WebSocket Flowbridge Executor - runs tasks relayed by the bridge.

The executor keeps one WebSocket open to the bridge, executes every task
it receives against the Designer (one task at a time, operations in
order), and answers with a single reply envelope. A TEST_CONNECTION
heartbeat is sent on connect and then on a fixed interval.
"""

import asyncio
import json
import logging
import os
import sys
from typing import Any, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from flowbridge.modules.api.models import TaskResponse

from .designer import Designer
from .interpreter import OperationInterpreter
from .memory import InMemoryDesigner

logger = logging.getLogger("flowbridge-executor")

DEFAULT_WS_URL = "ws://127.0.0.1:8788/executor/ws"
HEARTBEAT_PAYLOAD = {"ops": [{"op": "TEST_CONNECTION"}]}
MAX_RECONNECT_DELAY = 10.0


class WebSocketExecutor:
    """Executor that receives tasks over a WebSocket."""

    def __init__(
        self,
        designer: Optional[Designer] = None,
        url: Optional[str] = None,
        heartbeat_interval: Optional[float] = None,
        max_reconnect_attempts: Optional[int] = None,
        reconnect_delay: Optional[float] = None,
    ):
        """Initialize executor configuration."""
        self.url = url or os.environ.get("BRIDGE_WS_URL", DEFAULT_WS_URL)
        self.heartbeat_interval = heartbeat_interval or float(
            os.environ.get("HEARTBEAT_INTERVAL", "30")
        )
        self.max_reconnect_attempts = (
            max_reconnect_attempts
            if max_reconnect_attempts is not None
            else int(os.environ.get("MAX_RECONNECT_ATTEMPTS", "5"))
        )
        self.initial_reconnect_delay = reconnect_delay or float(
            os.environ.get("RECONNECT_DELAY", "2.0")
        )
        self.reconnect_delay = self.initial_reconnect_delay
        self.reconnect_attempts = 0

        if designer is None:
            logger.warning("No Designer session attached, using an in-memory document")
            designer = InMemoryDesigner()
        self.designer = designer
        self.interpreter = OperationInterpreter(designer)

        if self.url.startswith("ws://") and not self.url.startswith(
            ("ws://127.0.0.1", "ws://localhost")
        ):
            logger.warning("⚠️  Using ws:// to a remote host - this should only be used for local development!")

        logger.info(f"Executor initialized for bridge: {self.url}")

    async def run(self) -> None:
        """
        Main executor loop.

        Connects, serves until the socket closes, then reconnects with
        backoff until the attempt budget is exhausted.
        """
        logger.info("Starting WebSocket executor")

        while True:
            try:
                await self._connect()
            except (OSError, WebSocketException) as e:
                logger.error(f"WebSocket connection error: {e}")

            if not await self._schedule_reconnect():
                return

    async def _connect(self) -> None:
        logger.info(f"Attempting WebSocket connection (attempt {self.reconnect_attempts + 1})...")

        async with websockets.connect(self.url) as websocket:
            logger.info(f"✅ WebSocket connected to {self.url}")
            self.reconnect_attempts = 0
            self.reconnect_delay = self.initial_reconnect_delay

            await self.send_test(websocket)
            heartbeat = asyncio.create_task(self._heartbeat(websocket))
            try:
                await self.serve(websocket)
            finally:
                heartbeat.cancel()
                try:
                    await heartbeat
                except asyncio.CancelledError:
                    pass

        logger.info("❌ WebSocket disconnected")

    async def serve(self, websocket: Any) -> None:
        """Handle inbound tasks one at a time until the socket closes."""
        async for message in websocket:
            response = await self.handle_message(message)
            await websocket.send(json.dumps(response))

    async def handle_message(self, message: Any) -> Dict[str, Any]:
        """
        Execute one task frame.

        Args:
            message: Raw frame received from the bridge

        Returns:
            Reply envelope ({ok, result, taskId} or {ok: false, error})
        """
        try:
            payload = json.loads(message)
            if not isinstance(payload, dict) or not isinstance(payload.get("ops"), list):
                raise ValueError("Task must be an object with an 'ops' list")
        except ValueError as e:
            logger.error(f"❌ Rejected task frame: {e}")
            return TaskResponse(ok=False, error=str(e)).to_wire()

        task_id = payload.get("taskId")
        logger.info(f"📥 Received task with {len(payload['ops'])} operations")

        try:
            results = await self.interpreter.execute(payload["ops"])
        except Exception as e:
            logger.exception(f"❌ Error executing task: {e}")
            return TaskResponse(ok=False, error=str(e), task_id=task_id).to_wire()

        return TaskResponse(ok=True, result=results, task_id=task_id).to_wire()

    async def send_test(self, websocket: Any) -> None:
        await websocket.send(json.dumps(HEARTBEAT_PAYLOAD))

    async def _heartbeat(self, websocket: Any) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                await self.send_test(websocket)
            except ConnectionClosed:
                logger.debug("Heartbeat stopped, connection closed")
                return

    async def _schedule_reconnect(self) -> bool:
        """
        Wait before the next attempt.

        Returns:
            False once the attempt budget is exhausted
        """
        if self.reconnect_attempts >= self.max_reconnect_attempts:
            logger.error("🔄 Max reconnection attempts reached. Please restart the bridge server.")
            return False

        self.reconnect_attempts += 1
        logger.info(f"⏳ Reconnecting in {self.reconnect_delay:.1f}s...")
        await asyncio.sleep(self.reconnect_delay)
        self.reconnect_delay = min(self.reconnect_delay * 1.5, MAX_RECONNECT_DELAY)
        return True


def main():
    """Main entry point."""
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    executor = WebSocketExecutor()

    try:
        asyncio.run(executor.run())
    except KeyboardInterrupt:
        logger.info("Executor stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
