"""
Webflow publish and OAuth endpoints for the Flowbridge API

These are pass-through calls to the Webflow API; the bridge keeps no
tokens or site state of its own.
"""

import logging
from typing import Callable, Optional

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, RedirectResponse

from flowbridge.config.provider import ConfigProvider
from flowbridge.modules.api.models import PublishRequest
from flowbridge.modules.webflow import OAuthStateStore, WebflowAPIError, WebflowClient

logger = logging.getLogger(__name__)


def create_webflow_router(
    get_client: Callable[[], WebflowClient],
    config_provider: ConfigProvider,
    state_store: Optional[OAuthStateStore] = None,
) -> APIRouter:
    """
    Create the Webflow router with injected dependencies.

    Args:
        get_client: Dependency returning the shared WebflowClient
        config_provider: Configuration provider instance
        state_store: OAuth state store (a fresh one by default)

    Returns:
        FastAPI router with publish and OAuth endpoints
    """
    router = APIRouter(tags=["webflow"])
    states = state_store or OAuthStateStore()

    @router.post("/publish")
    async def publish(
        request: Optional[PublishRequest] = None,
        client: WebflowClient = Depends(get_client),
    ):
        """
        Publish the site.

        Returns:
            200: {ok: true, result}
            400: No site id given or configured
            500: Webflow API failure
        """
        request = request or PublishRequest()
        site_id = request.site_id or config_provider.get_webflow_config().site_id
        if not site_id:
            return JSONResponse(
                status_code=400,
                content={
                    "ok": False,
                    "error": "Missing siteId. Please provide siteId or set WEBFLOW_SITE_ID environment variable.",
                },
            )

        try:
            result = await client.publish_site(
                site_id,
                request.domain_ids,
                request.publish_to_webflow_subdomain,
            )
        except (WebflowAPIError, httpx.HTTPError) as e:
            logger.error(f"❌ Publish failed: {e}")
            return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})

        logger.info("✅ Site published successfully")
        return {"ok": True, "result": result}

    @router.get("/auth/webflow")
    async def authorize(client: WebflowClient = Depends(get_client)):
        """Redirect to the Webflow OAuth consent page."""
        if not config_provider.get_webflow_config().client_id:
            return JSONResponse(
                status_code=400,
                content={"error": "OAuth not configured. Missing WEBFLOW_CLIENT_ID."},
            )

        return RedirectResponse(client.authorization_url(states.issue()))

    @router.get("/auth/callback")
    async def callback(
        code: Optional[str] = None,
        state: Optional[str] = None,
        client: WebflowClient = Depends(get_client),
    ):
        """
        Complete the authorization-code exchange.

        Tokens are never echoed; the response only says whether one was obtained.
        """
        if not code:
            return JSONResponse(status_code=400, content={"error": "Missing authorization code"})
        if not states.consume(state):
            return JSONResponse(status_code=400, content={"error": "Invalid or expired OAuth state"})

        logger.info("🔐 Processing OAuth callback...")
        try:
            tokens = await client.exchange_code(code)
        except (WebflowAPIError, httpx.HTTPError) as e:
            logger.error(f"❌ OAuth callback failed: {e}")
            return JSONResponse(status_code=500, content={"error": str(e)})

        logger.info("✅ OAuth tokens obtained successfully")
        return {
            "success": True,
            "message": "OAuth completed successfully",
            "hasAccessToken": bool(tokens.get("access_token")),
        }

    return router
