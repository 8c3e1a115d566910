"""
Base API Client for the CRM backend
Issues authenticated JSON requests and normalizes error responses
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import requests

from crm_core.errors import (
    APIError,
    AuthenticationRequiredError,
    NetworkError,
    ResponseParseError,
)
from crm_core.logging import get_logger

logger = get_logger(__name__)

TokenProvider = Callable[[], Optional[str]]


@dataclass
class APIConfig:
    """Configuration for API connection"""
    api_name: str
    base_url: str
    timeout: float = 30.0
    headers: Optional[Dict[str, str]] = None


def handle_response(response: requests.Response) -> Any:
    """
    Turn a backend response into a value or a typed error.

    Non-2xx responses raise APIError with the body's ``error`` message and
    ``errors`` list when the body is JSON, or ``HTTP <status>: <reason>``
    otherwise. 204 returns None.
    """
    if not response.ok:
        message = f"HTTP {response.status_code}: {response.reason}"
        field_errors = []
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            if body.get("error"):
                message = str(body["error"])
            if body.get("errors"):
                field_errors = list(body["errors"])
        raise APIError(message, status_code=response.status_code, field_errors=field_errors)

    if response.status_code == 204 or not response.content:
        return None

    try:
        return response.json()
    except ValueError as e:
        raise ResponseParseError(
            f"Malformed JSON in response from {response.url}",
            endpoint=response.url,
        ) from e


def quote_id(value: Any) -> str:
    """Escape an identifier for use as a path segment."""
    return quote(str(value), safe="")


class BaseAPIClient:
    """
    Shared request plumbing for every backend client.

    Each request asks the token provider for a bearer token right before it
    is sent; when there is none the call fails with
    AuthenticationRequiredError and the network is never touched.
    """

    DEFAULT_HEADERS = {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }

    def __init__(
        self,
        config: APIConfig,
        token_provider: Optional[TokenProvider] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.token_provider = token_provider
        self.session = session or requests.Session()

        self.session.headers.update(self.DEFAULT_HEADERS)
        if config.headers:
            self.session.headers.update(config.headers)

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        if not token:
            raise AuthenticationRequiredError()
        return {"Authorization": f"Bearer {token}"}

    def _make_request(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> Any:
        """
        Make HTTP request with error handling

        Args:
            endpoint: API endpoint (appended to base_url)
            method: HTTP method (GET, POST, etc.)
            params: Query parameters
            data: JSON request body
            authenticated: Attach the bearer token (required unless False)

        Returns:
            Parsed JSON body, or None for empty responses
        """
        headers = self._auth_headers() if authenticated else {}
        url = f"{self.config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=data,
                headers=headers,
                timeout=self.config.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise NetworkError(
                f"API request failed for {self.config.api_name}: {str(e)}",
                endpoint=endpoint,
            ) from e

        return handle_response(response)
