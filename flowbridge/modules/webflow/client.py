import logging
import secrets
import time
from typing import Any, Dict, List, Optional

import httpx

from flowbridge.config.provider import WebflowConfig

logger = logging.getLogger(__name__)


class WebflowAPIError(Exception):
    """Non-2xx answer from the Webflow API."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"API Error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class OAuthStateStore:
    """Single-use OAuth state values with a short lifetime."""

    def __init__(self, ttl: int = 600):
        self.ttl = ttl
        self._states: Dict[str, float] = {}

    def issue(self) -> str:
        self._purge()
        state = secrets.token_hex(16)
        self._states[state] = time.monotonic()
        return state

    def consume(self, state: Optional[str]) -> bool:
        """Return True (once) if state was issued and has not expired."""
        self._purge()
        if not state:
            return False
        return self._states.pop(state, None) is not None

    def _purge(self) -> None:
        cutoff = time.monotonic() - self.ttl
        for state, issued_at in list(self._states.items()):
            if issued_at < cutoff:
                del self._states[state]


class WebflowClient:
    """
    Thin Webflow Data API client.

    Requests are authenticated with the site token when one is configured.
    No retries: failures surface as WebflowAPIError or httpx.HTTPError.
    """

    def __init__(
        self,
        config: WebflowConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.api_base_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.site_token:
            headers["Authorization"] = f"Bearer {self.config.site_token}"
        return headers

    async def request(
        self, method: str, endpoint: str, json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Call the Data API.

        Args:
            method: HTTP method
            endpoint: Path relative to the API base URL, or an absolute URL
            json: Optional JSON body

        Returns:
            Decoded JSON body ({} when the body is empty or not JSON)

        Raises:
            WebflowAPIError: Non-2xx response
        """
        response = await self._client.request(method, endpoint, json=json, headers=self._headers())

        if response.is_error:
            raise WebflowAPIError(response.status_code, response.text or "Unknown error")

        try:
            return response.json()
        except ValueError:
            return {}

    async def list_sites(self) -> Dict[str, Any]:
        return await self.request("GET", "/sites")

    async def publish_site(
        self,
        site_id: str,
        domain_ids: Optional[List[str]] = None,
        publish_to_webflow_subdomain: bool = True,
    ) -> Dict[str, Any]:
        logger.info(f"🚀 Publishing site {site_id}...")
        return await self.request(
            "POST",
            f"/sites/{site_id}/publish",
            json={
                "customDomains": domain_ids or [],
                "publishToWebflowSubdomain": publish_to_webflow_subdomain,
            },
        )

    async def check_api(self) -> str:
        """Check connectivity: 'not_tested' without a token, else 'connected' or 'failed'."""
        if not self.config.site_token:
            return "not_tested"
        try:
            await self.list_sites()
            return "connected"
        except (WebflowAPIError, httpx.HTTPError) as e:
            logger.warning(f"Webflow API check failed: {e}")
            return "failed"

    def authorization_url(self, state: str) -> str:
        """Build the OAuth authorize URL for the configured client."""
        if not self.config.client_id:
            raise ValueError("OAuth not configured. Missing WEBFLOW_CLIENT_ID.")

        params = {
            "client_id": self.config.client_id,
            "state": state,
            "response_type": "code",
        }
        if self.config.redirect_uri:
            params["redirect_uri"] = self.config.redirect_uri
        if self.config.scopes:
            params["scope"] = " ".join(self.config.scopes)
        return str(httpx.URL(self.config.authorize_url, params=params))

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        Exchange an authorization code for tokens.

        Raises:
            WebflowAPIError: The token endpoint refused the code
        """
        body = {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "code": code,
            "grant_type": "authorization_code",
        }
        if self.config.redirect_uri:
            body["redirect_uri"] = self.config.redirect_uri

        response = await self._client.post(self.config.token_url, json=body)
        try:
            tokens = response.json()
        except ValueError:
            tokens = {}

        if response.is_error:
            raise WebflowAPIError(
                response.status_code,
                tokens.get("error_description") or "OAuth token exchange failed",
            )
        return tokens
