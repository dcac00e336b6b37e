"""
Registry Module - Black Box Interface

Purpose: Track the single connected executor
Interface: register(), current(), unregister_if_current(), add_listener()
Hidden: Locking, transition notification

Holds no business data beyond the handle reference.
"""

from .registry import ConnectionRegistry

__all__ = ["ConnectionRegistry"]
