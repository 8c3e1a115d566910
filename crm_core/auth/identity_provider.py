# =============================================================================
# crm_core/auth/identity_provider.py
# Firebase Authentication over its REST API
# =============================================================================
"""
Thin client for the Firebase Authentication REST endpoints.

Only the calls the dashboard needs are wrapped: email/password sign-in,
custom-token sign-in (used right after backend signup), account lookup and
ID-token refresh.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import requests

from crm_core.errors import IdentityProviderError, NetworkError
from crm_core.logging import get_logger

logger = get_logger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

# Provider error codes mapped to messages fit for a login form
FRIENDLY_MESSAGES = {
    "EMAIL_NOT_FOUND": "No account exists for this email address",
    "INVALID_PASSWORD": "Incorrect password",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password",
    "USER_DISABLED": "This account has been disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts, try again later",
    "TOKEN_EXPIRED": "Your session has expired, please sign in again",
    "INVALID_REFRESH_TOKEN": "Your session has expired, please sign in again",
    "INVALID_CUSTOM_TOKEN": "Sign-in token was rejected",
}


@dataclass
class TokenBundle:
    """Credentials returned by a successful sign-in or refresh"""
    uid: str
    id_token: str
    refresh_token: str
    expires_at: datetime
    email: str = ""
    display_name: str = ""


class FirebaseIdentityProvider:
    """
    Usage:
        provider = FirebaseIdentityProvider(api_key)
        bundle = provider.sign_in_with_password("a@b.com", "secret")
        bundle = provider.refresh(bundle.refresh_token)
    """

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, url: str, json: Optional[Dict] = None, data: Optional[Dict] = None) -> Dict[str, Any]:
        if not self.api_key:
            raise IdentityProviderError(
                "Identity provider is not configured (FIREBASE_API_KEY missing)",
                recoverable=False,
            )
        try:
            response = self.session.post(
                url,
                params={"key": self.api_key},
                json=json,
                data=data,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Identity provider unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            raw = ""
            if isinstance(body.get("error"), dict):
                raw = str(body["error"].get("message", ""))
            # Codes can carry a suffix: "TOO_MANY_ATTEMPTS_TRY_LATER : ..."
            code = raw.split(" ")[0] if raw else f"HTTP_{response.status_code}"
            message = FRIENDLY_MESSAGES.get(code, raw or f"HTTP {response.status_code}")
            raise IdentityProviderError(message, provider_code=code)

        return body

    @staticmethod
    def _expiry(seconds: Any) -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=int(seconds or 3600))

    def sign_in_with_password(self, email: str, password: str) -> TokenBundle:
        body = self._post(
            f"{IDENTITY_TOOLKIT_URL}/accounts:signInWithPassword",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        return TokenBundle(
            uid=body.get("localId", ""),
            id_token=body["idToken"],
            refresh_token=body["refreshToken"],
            expires_at=self._expiry(body.get("expiresIn")),
            email=body.get("email", email),
            display_name=body.get("displayName", ""),
        )

    def sign_in_with_custom_token(self, token: str) -> TokenBundle:
        body = self._post(
            f"{IDENTITY_TOOLKIT_URL}/accounts:signInWithCustomToken",
            json={"token": token, "returnSecureToken": True},
        )
        bundle = TokenBundle(
            uid="",
            id_token=body["idToken"],
            refresh_token=body["refreshToken"],
            expires_at=self._expiry(body.get("expiresIn")),
        )
        # Custom-token responses carry no profile; look it up
        profile = self.lookup(bundle.id_token)
        bundle.uid = profile.get("localId", "")
        bundle.email = profile.get("email", "")
        bundle.display_name = profile.get("displayName", "")
        return bundle

    def lookup(self, id_token: str) -> Dict[str, Any]:
        body = self._post(f"{IDENTITY_TOOLKIT_URL}/accounts:lookup", json={"idToken": id_token})
        users = body.get("users") or [{}]
        return users[0]

    def refresh(self, refresh_token: str) -> TokenBundle:
        body = self._post(
            SECURE_TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
        )
        return TokenBundle(
            uid=body.get("user_id", ""),
            id_token=body["id_token"],
            refresh_token=body["refresh_token"],
            expires_at=self._expiry(body.get("expires_in")),
        )
