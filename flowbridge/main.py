#!/usr/bin/env python3
"""
Flowbridge - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Serves the task API and the executor WebSocket

All business logic is in the modules, following black box principles.
"""

import logging
import logging.config as log_config
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flowbridge import __version__
from flowbridge.config.provider import ConfigProvider, EnvConfigProvider
from flowbridge.logging_config import get_logging_config
from flowbridge.modules.api import ErrorResponse, StatusResponse, Task
from flowbridge.modules.api.webflow_routes import create_webflow_router

# Import modules through their black box interfaces
from flowbridge.modules.config import get_config
from flowbridge.modules.registry import ConnectionRegistry
from flowbridge.modules.relay import ExecutorConnection, NoPeerAvailable, TaskRelay
from flowbridge.modules.webflow import WebflowClient

# Get configuration
config = get_config()

# Configure logging with health check suppression
log_config.dictConfig(get_logging_config(config.get("log_level")))
logger = logging.getLogger(__name__)

# Configuration provider (centralized config access)
config_provider: ConfigProvider = EnvConfigProvider()

# Module instances (initialized at startup)
registry: Optional[ConnectionRegistry[ExecutorConnection]] = None
relay: Optional[TaskRelay] = None
webflow_client: Optional[WebflowClient] = None


def log_connection_transition(
    previous: Optional[ExecutorConnection], current: Optional[ExecutorConnection]
) -> None:
    if current is None:
        logger.info(f"❌ Extension disconnected ({previous.peer})")
    elif previous is None:
        logger.info(f"🔌 Extension connected via WebSocket ({current.peer})")
    else:
        logger.info(f"🔁 Extension reconnected, replacing {previous.peer} with {current.peer}")


def log_configuration() -> None:
    webflow = config_provider.get_webflow_config()
    if webflow.missing_credentials:
        logger.warning(f"⚠️  Missing credentials: {', '.join(webflow.missing_credentials)}")
        logger.warning("   OAuth features will be disabled. Basic API token can still be used.")
    else:
        logger.info("✅ OAuth credentials loaded successfully")
    if not webflow.has_site_token:
        logger.warning("⚠️  No WEBFLOW_TOKEN found. Some API operations may fail.")
    logger.info(f"   Site ID: {webflow.site_id}")
    logger.info(f"   Locale ID: {webflow.locale_id}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - initialize and cleanup resources.
    """
    global registry, relay, webflow_client

    # Startup
    logger.info("Starting Flowbridge API...")
    log_configuration()

    registry = ConnectionRegistry()
    registry.add_listener(log_connection_transition)
    relay = TaskRelay(registry, timeout=config.get("task_timeout"))
    webflow_client = WebflowClient(config_provider.get_webflow_config())

    logger.info(
        f"Flowbridge API started (executor WebSocket at /executor/ws, "
        f"task timeout {config.get('task_timeout')}s)"
    )

    yield

    # Shutdown
    logger.info("Shutting down Flowbridge API...")
    current = registry.current()
    if current is not None:
        registry.unregister_if_current(current)
    await webflow_client.close()
    registry = None
    relay = None
    webflow_client = None
    logger.info("Flowbridge API shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Flowbridge API",
    description="Flowbridge - Drive the Webflow Designer with declarative task batches",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("cors_origins"),
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_webflow_client() -> WebflowClient:
    """Dependency returning the shared Webflow client."""
    if not webflow_client:
        raise HTTPException(503, "Service not initialized")
    return webflow_client


app.include_router(create_webflow_router(get_webflow_client, config_provider))


# Executor Endpoint


@app.websocket("/executor/ws")
async def executor_socket(websocket: WebSocket):
    """
    WebSocket endpoint for the Designer extension.

    The newest connection always wins; a superseded connection is closed.
    Every inbound frame is routed to the connection handle, which hands
    replies to the in-flight task and drops heartbeats.
    """
    if not registry:
        await websocket.close(code=1013)
        return

    await websocket.accept()
    connection = ExecutorConnection.from_websocket(websocket)
    previous = registry.register(connection)

    if previous is not None and previous is not connection:
        try:
            await previous.close(code=4000, reason="Superseded by a newer executor connection")
        except Exception as e:
            logger.warning(f"Failed to close superseded executor connection {previous.peer}: {e}")

    try:
        while True:
            message = await websocket.receive_text()
            connection.deliver(message)
    except WebSocketDisconnect as e:
        logger.info(f"Executor {connection.peer} closed the WebSocket (code {e.code})")
    finally:
        connection.closed = True
        if registry:
            registry.unregister_if_current(connection)


# Task Endpoint


@app.post("/task")
async def submit_task(task: Task, request: Request):
    """
    Forward a task batch to the connected executor.

    The body is validated as a Task but relayed as the caller sent it.

    Returns:
        200: The executor's reply, or the optimistic timeout result
        422: Body is not a task
        503: No executor connected
    """
    if not relay:
        raise HTTPException(503, "Service not initialized")

    result = await relay.submit(await request.json())
    return JSONResponse(content=result)


# Health/Monitoring Endpoints


@app.get("/healthz")
async def healthz():
    """
    Minimal health check endpoint for liveness checks.

    Returns:
        200: Service is running
    """
    return {"status": "ok"}


@app.get("/health")
async def health_check():
    """
    Health check with connection and credential status.

    Returns:
        200: Service healthy
        503: Service unhealthy
    """
    webflow = config_provider.get_webflow_config()
    try:
        if not registry or not webflow_client:
            raise RuntimeError("Modules not initialized")

        api_status = await webflow_client.check_api()
        current = registry.current()

        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "bridge": {
                "version": __version__,
                "websocket_connected": current is not None,
                "connected_at": registry.connected_at.isoformat() if current else None,
                "last_heartbeat_at": (
                    current.last_heartbeat_at.isoformat()
                    if current and current.last_heartbeat_at
                    else None
                ),
                "http_port": config.get("port"),
                "task_timeout": config.get("task_timeout"),
            },
            "webflow": {
                "api_status": api_status,
                "oauth_configured": webflow.oauth_configured,
                "site_id": webflow.site_id,
                "locale_id": webflow.locale_id,
            },
            "credentials": {
                "missing": webflow.missing_credentials,
                "has_oauth": webflow.oauth_configured,
                "has_site_token": webflow.has_site_token,
            },
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )


@app.get("/status", response_model=StatusResponse)
async def status():
    """Quick readiness check."""
    webflow = config_provider.get_webflow_config()
    connected = bool(registry and registry.is_available())
    return StatusResponse(
        websocket="connected" if connected else "disconnected",
        credentials="configured" if webflow.oauth_configured else "missing",
        ready=connected and (webflow.has_site_token or webflow.oauth_configured),
    )


# Error handlers


@app.exception_handler(NoPeerAvailable)
async def no_peer_handler(request, exc):
    """Handle submissions without a connected executor."""
    logger.warning(f"Task rejected: {exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(error=str(exc)).model_dump(mode="json"),
    )


@app.exception_handler(ValueError)
async def validation_error_handler(request, exc):
    """Handle validation errors."""
    logger.error(f"Validation error: {exc}")
    return JSONResponse(status_code=400, content={"ok": False, "error": str(exc)})


def run():
    """Run the bridge with uvicorn."""
    uvicorn.run(
        "flowbridge.main:app",
        host=config.get("host"),
        port=config.get("port"),
        log_level=config.get("log_level").lower(),
        reload=config.get("debug"),
        log_config=get_logging_config(config.get("log_level")),
    )


if __name__ == "__main__":
    run()
