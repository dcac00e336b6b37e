"""
Relay Module - Black Box Interface

Purpose: Forward task batches to the connected executor and correlate replies
Interface: TaskRelay.submit(), ExecutorConnection
Hidden: Reply waiter arming, timeout racing, per-connection serialization

Only one submission is in flight per connection at a time.
"""

from .connection import ExecutorConnection, is_heartbeat
from .relay import (
    DEFAULT_TIMEOUT,
    INVALID_RESPONSE,
    TIMEOUT_NOTE,
    NoPeerAvailable,
    RelayError,
    TaskRelay,
)

__all__ = [
    "DEFAULT_TIMEOUT",
    "INVALID_RESPONSE",
    "TIMEOUT_NOTE",
    "ExecutorConnection",
    "NoPeerAvailable",
    "RelayError",
    "TaskRelay",
    "is_heartbeat",
]
