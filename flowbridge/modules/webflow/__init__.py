"""
Webflow Module - Black Box Interface

Purpose: Plain request/response calls to the Webflow Data API
Interface: publish_site(), check_api(), authorization_url(), exchange_code()
Hidden: Base URL, bearer authentication, error decoding

Boundary collaborator only: no retry or backoff.
"""

from .client import OAuthStateStore, WebflowAPIError, WebflowClient

__all__ = ["OAuthStateStore", "WebflowAPIError", "WebflowClient"]
