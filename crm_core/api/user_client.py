"""
User and Health API Clients
"""
from __future__ import annotations
from typing import Any, Dict

from crm_core.errors import APIError

from .base_client import BaseAPIClient
from .models import User


class UserAPI(BaseAPIClient):
    """Client for ``/auth/*``"""

    def get_current_user(self) -> User:
        payload = self._make_request("auth/me")
        return User.from_dict(payload)

    def sign_up(self, email: str, password: str, display_name: str) -> str:
        """
        Register a new account.

        Returns:
            Custom sign-in token to exchange with the identity provider
        """
        payload = self._make_request(
            "auth/signup",
            method="POST",
            data={"email": email, "password": password, "displayName": display_name},
            authenticated=False,
        )
        token = (payload or {}).get("token")
        if not token:
            raise APIError("Signup failed", status_code=500)
        return token


class HealthAPI(BaseAPIClient):
    """Client for the unauthenticated ``/health`` check"""

    def check(self) -> Dict[str, Any]:
        return self._make_request("health", authenticated=False) or {}
