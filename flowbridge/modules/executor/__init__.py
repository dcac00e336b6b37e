"""
Executor Module - Black Box Interface

Purpose: Runs relayed tasks against the live Designer document
Interface: WebSocket for task reception and replies, OperationInterpreter.execute()
Hidden: Tree building, OID resolution, Designer calls

Can be pointed at any Designer implementation (in-memory, remote session).
"""

from .builder import TreeBuilder
from .designer import Capability, Designer, DesignerError, ElementBuilder, ElementType
from .interpreter import (
    NoTextTarget,
    NoValidParent,
    OperationError,
    OperationInterpreter,
    ParentNotFound,
    TargetNotFound,
    UnknownOperation,
)
from .memory import InMemoryDesigner
from .resolver import OidResolver

__all__ = [
    "Capability",
    "Designer",
    "DesignerError",
    "ElementBuilder",
    "ElementType",
    "InMemoryDesigner",
    "NoTextTarget",
    "NoValidParent",
    "OidResolver",
    "OperationError",
    "OperationInterpreter",
    "ParentNotFound",
    "TargetNotFound",
    "TreeBuilder",
    "UnknownOperation",
]
