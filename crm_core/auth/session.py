# =============================================================================
# crm_core/auth/session.py
# Signed-in identity and bearer-token issuance
# =============================================================================
"""
AuthSession - holds the current identity and hands out ID tokens.

The API client asks for a token on every request through
``get_id_token``; tokens are refreshed shortly before they expire.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from crm_core.errors import AuthenticationRequiredError, CRMError
from crm_core.logging import get_logger

from .identity_provider import FirebaseIdentityProvider, TokenBundle

logger = get_logger(__name__)

# Refresh tokens this long before the provider says they expire
EXPIRY_MARGIN = timedelta(seconds=60)
PASSWORD_MIN_LENGTH = 6


@dataclass
class AuthUser:
    """The signed-in identity"""
    uid: str
    email: str
    display_name: str
    id_token: str
    refresh_token: str
    expires_at: datetime

    @classmethod
    def from_bundle(cls, bundle: TokenBundle, previous: Optional[AuthUser] = None) -> AuthUser:
        return cls(
            uid=bundle.uid or (previous.uid if previous else ""),
            email=bundle.email or (previous.email if previous else ""),
            display_name=bundle.display_name or (previous.display_name if previous else ""),
            id_token=bundle.id_token,
            refresh_token=bundle.refresh_token,
            expires_at=bundle.expires_at,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at - EXPIRY_MARGIN


@dataclass
class AuthResult:
    success: bool
    user: Optional[AuthUser] = None
    error: Optional[str] = None


@dataclass
class SignUpData:
    email: str
    password: str
    display_name: str

    def problems(self) -> List[str]:
        """Reasons the form cannot be submitted; empty when it can."""
        if not (self.email and self.password and self.display_name):
            return ["Please fill in all fields"]
        if len(self.password) < PASSWORD_MIN_LENGTH:
            return [f"Password must be at least {PASSWORD_MIN_LENGTH} characters"]
        return []


class AuthSession:
    """
    Usage:
        session = AuthSession(FirebaseIdentityProvider(api_key))
        result = session.sign_in("ada@example.com", "secret")
        token = session.get_id_token()
    """

    def __init__(self, provider: FirebaseIdentityProvider, users_api=None):
        self.provider = provider
        self.users_api = users_api
        self._user: Optional[AuthUser] = None
        self._lock = threading.RLock()
        self._resolving = 0
        self._callbacks: List[Callable[[Optional[AuthUser]], None]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def is_resolving(self) -> bool:
        """True while a sign-in or token refresh is in progress."""
        return self._resolving > 0

    def require_user(self) -> AuthUser:
        user = self._user
        if user is None:
            raise AuthenticationRequiredError("You must be signed in to perform this action")
        return user

    # ------------------------------------------------------------------
    # Sign-in / sign-out
    # ------------------------------------------------------------------

    def _establish(self, fetch: Callable[[], TokenBundle]) -> AuthResult:
        with self._lock:
            self._resolving += 1
            try:
                bundle = fetch()
            except CRMError as e:
                logger.warning(f"Sign-in failed: {e.message}")
                return AuthResult(success=False, error=e.message)
            finally:
                self._resolving -= 1

            previous = self._user
            self._user = AuthUser.from_bundle(bundle)
        if previous is None or previous.uid != self._user.uid:
            self._notify_callbacks()
        logger.info(f"Signed in as {self._user.email or self._user.uid}")
        return AuthResult(success=True, user=self._user)

    def sign_in(self, email: str, password: str) -> AuthResult:
        """Sign in with email and password."""
        return self._establish(lambda: self.provider.sign_in_with_password(email, password))

    def sign_in_with_custom_token(self, token: str) -> AuthResult:
        return self._establish(lambda: self.provider.sign_in_with_custom_token(token))

    def sign_up(self, data: SignUpData) -> AuthResult:
        """
        Create an account through the backend, then sign in with the custom
        token it returns.
        """
        if self.users_api is None:
            return AuthResult(success=False, error="Signup is not available")
        problems = data.problems()
        if problems:
            return AuthResult(success=False, error=problems[0])
        try:
            token = self.users_api.sign_up(data.email, data.password, data.display_name)
        except CRMError as e:
            logger.warning(f"Signup failed: {e.message}")
            return AuthResult(success=False, error=e.message or "Signup failed")
        return self.sign_in_with_custom_token(token)

    def sign_out(self) -> None:
        with self._lock:
            had_user = self._user is not None
            self._user = None
        if had_user:
            logger.info("Signed out")
            self._notify_callbacks()

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def get_id_token(self, force_refresh: bool = False) -> Optional[str]:
        """
        Current ID token, refreshed when close to expiry.

        Returns None when signed out or when the refresh fails.
        """
        with self._lock:
            user = self._user
            if user is None:
                return None
            if not force_refresh and not user.is_expired():
                return user.id_token

            self._resolving += 1
            try:
                bundle = self.provider.refresh(user.refresh_token)
            except CRMError as e:
                logger.error(f"Error getting ID token: {e.message}")
                return None
            finally:
                self._resolving -= 1

            self._user = AuthUser.from_bundle(bundle, previous=user)
            return self._user.id_token

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def register_callback(self, callback: Callable[[Optional[AuthUser]], None]) -> None:
        """Register a callback fired when the signed-in identity changes."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[Optional[AuthUser]], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self) -> None:
        for callback in self._callbacks:
            try:
                callback(self._user)
            except Exception as e:
                logger.error(f"Error in auth callback: {e}")
