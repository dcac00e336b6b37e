"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

DEFAULT_SITE_ID = "689d248bc9c3f34341eb4473"
DEFAULT_LOCALE_ID = "689d2c3f7b5a91e0b9407739"


@dataclass
class WebflowConfig:
    """Webflow Data API and OAuth configuration."""
    client_id: Optional[str]
    client_secret: Optional[str]
    site_token: Optional[str]
    site_id: Optional[str]
    locale_id: Optional[str]
    redirect_uri: Optional[str] = None
    api_base_url: str = "https://api.webflow.com/v2"
    authorize_url: str = "https://webflow.com/oauth/authorize"
    token_url: str = "https://api.webflow.com/oauth/access_token"
    scopes: List[str] = field(default_factory=list)

    @property
    def missing_credentials(self) -> List[str]:
        """Names of the OAuth environment variables that are not set."""
        missing = []
        if not self.client_id:
            missing.append("WEBFLOW_CLIENT_ID")
        if not self.client_secret:
            missing.append("WEBFLOW_CLIENT_SECRET")
        return missing

    @property
    def oauth_configured(self) -> bool:
        """Check if the OAuth client credentials are present."""
        return not self.missing_credentials

    @property
    def has_site_token(self) -> bool:
        return bool(self.site_token)


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_webflow_config(self) -> WebflowConfig:
        """Get Webflow configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_webflow_config(self) -> WebflowConfig:
        """Get Webflow configuration from environment variables."""
        return WebflowConfig(
            client_id=os.getenv("WEBFLOW_CLIENT_ID"),
            client_secret=os.getenv("WEBFLOW_CLIENT_SECRET"),
            site_token=os.getenv("WEBFLOW_TOKEN"),
            site_id=os.getenv("WEBFLOW_SITE_ID", DEFAULT_SITE_ID),
            locale_id=os.getenv("WEBFLOW_LOCALE_ID", DEFAULT_LOCALE_ID),
            redirect_uri=os.getenv("WEBFLOW_REDIRECT_URI"),
            api_base_url=os.getenv("WEBFLOW_API_URL", "https://api.webflow.com/v2"),
            scopes=os.getenv("WEBFLOW_SCOPES", "").split(),
        )
