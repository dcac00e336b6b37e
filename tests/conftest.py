"""
Shared pytest fixtures for Flowbridge tests.

This module provides common fixtures including:
- FakeExecutorSocket: Relay-side connection whose peer replies are scripted
- In-memory Designer documents for interpreter, resolver and builder tests
- Bridge application client utilities
"""

import asyncio
import json
import time
from typing import Any, Callable, Dict, List, Optional

import pytest

from flowbridge.modules.executor import InMemoryDesigner, OperationInterpreter
from flowbridge.modules.executor.designer import ElementBuilder, ElementType
from flowbridge.modules.registry import ConnectionRegistry
from flowbridge.modules.relay import ExecutorConnection, TaskRelay


# =============================================================================
# Executor Connection Mocking Infrastructure
# =============================================================================

Responder = Callable[[Dict[str, Any]], Optional[List[str]]]

# Gap between scripted frames so each lands in its own loop iteration
FRAME_SPACING = 0.02


class FakeExecutorSocket:
    """
    Stand-in for the executor end of the WebSocket.

    Every frame the relay sends is decoded and recorded. If a responder is
    given, it is called with the decoded task and returns the frames the
    "executor" sends back; they are delivered to the connection after
    `delay` seconds, in order.

    Usage:
        def test_reply(fake_socket_factory):
            socket = fake_socket_factory(lambda task: [json.dumps({"ok": True})])
            result = await relay.submit(task)
            assert socket.sent[0]["ops"] == [...]
    """

    def __init__(self, responder: Optional[Responder] = None, delay: float = 0.0):
        self.responder = responder
        self.delay = delay
        self.sent: List[Dict[str, Any]] = []
        self.events: List[str] = []
        self.closed_with: Optional[int] = None
        self.fail_sends = False
        self.connection = ExecutorConnection(self.send, self.close, peer="fake-executor")

    async def send(self, payload: str) -> None:
        if self.fail_sends:
            raise ConnectionResetError("socket closed")

        task = json.loads(payload)
        self.sent.append(task)
        self.events.append(f"send:{task.get('taskId')}")

        if self.responder is None:
            return
        frames = self.responder(task) or []
        loop = asyncio.get_running_loop()
        for index, frame in enumerate(frames):
            loop.call_later(self.delay + index * FRAME_SPACING, self._deliver, frame)

    def _deliver(self, frame: str) -> None:
        self.events.append(f"reply:{_task_id(frame)}")
        self.connection.deliver(frame)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = code


def _task_id(frame: str) -> Optional[str]:
    try:
        return json.loads(frame).get("taskId")
    except (ValueError, AttributeError):
        return None


def echo_reply(task: Dict[str, Any]) -> List[str]:
    """Responder answering every op with success, echoing the taskId."""
    return [
        json.dumps(
            {
                "ok": True,
                "taskId": task["taskId"],
                "result": [
                    {"op": op["op"], "success": True, "result": {}} for op in task["ops"]
                ],
            }
        )
    ]


@pytest.fixture
def registry():
    """Empty connection registry."""
    return ConnectionRegistry()


@pytest.fixture
def fake_socket_factory(registry):
    """Create a FakeExecutorSocket and register its connection."""

    def factory(responder: Optional[Responder] = None, delay: float = 0.0) -> FakeExecutorSocket:
        socket = FakeExecutorSocket(responder, delay)
        registry.register(socket.connection)
        return socket

    return factory


@pytest.fixture
def relay(registry):
    """Relay with a short timeout."""
    return TaskRelay(registry, timeout=0.3)


# =============================================================================
# Designer Document Infrastructure
# =============================================================================

def dom(tag: str, oid: Optional[str] = None, text: Optional[str] = None, *children) -> ElementBuilder:
    """Shorthand for a detached DOM builder with children."""
    builder = ElementBuilder(ElementType.DOM)
    builder.set_tag(tag)
    if oid:
        builder.set_attribute("data-oid", oid)
    if text is not None:
        builder.set_text_content(text)
    for child in children:
        builder.append(child)
    return builder


def string(text: str) -> ElementBuilder:
    """Detached String (text node) builder."""
    builder = ElementBuilder(ElementType.STRING)
    builder.set_text_content(text)
    return builder


@pytest.fixture
def designer():
    """Fresh in-memory Designer with an empty Home page."""
    return InMemoryDesigner()


@pytest.fixture
def interpreter(designer):
    """Interpreter bound to the in-memory Designer with a fixed clock."""
    return OperationInterpreter(designer, clock=lambda: 1700000000.0)


@pytest.fixture
def monotonic():
    """Wall-clock helper for timing assertions."""
    return time.monotonic


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Tests exercising the HTTP application end to end"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that wait for relay timeouts"
    )
