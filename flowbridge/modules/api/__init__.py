"""
API Module - Black Box Interface

Purpose: HTTP routing and wire models
Interface: REST API endpoints, Task/Operation/Result models
Hidden: camelCase wire aliases, operation discrimination

Models are shared by the bridge and the executor, so both ends agree on
the wire format.
"""

from .models import (
    BuildNode,
    ElementRef,
    ErrorResponse,
    OperationResult,
    PublishRequest,
    StatusResponse,
    Task,
    TaskResponse,
)

__all__ = [
    "BuildNode",
    "ElementRef",
    "ErrorResponse",
    "OperationResult",
    "PublishRequest",
    "StatusResponse",
    "Task",
    "TaskResponse",
]
