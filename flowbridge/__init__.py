"""
Flowbridge - Webflow Designer Task Bridge

A relay that lets external callers drive a Webflow Designer session through
declarative batches of page-editing operations.

The bridge process (main.py) serves HTTP callers and the executor
WebSocket; the executor process (modules/executor/ws_executor.py) runs the
operations against the Designer.

Modules:
- registry: Tracking of the single connected executor
- relay: Task forwarding and reply correlation
- executor: Operation interpreter, tree builder and element addressing
- webflow: Webflow Data API client (publish, OAuth)
- api: Wire models and Webflow routes
- config: Environment settings
"""

__version__ = "1.0.0"
