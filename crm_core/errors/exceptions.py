# =============================================================================
# crm_core/errors/exceptions.py
# Exception Hierarchy for the CRM Dashboard
# =============================================================================

from typing import Optional, Dict, Any, List


class CRMError(Exception):
    """
    Root of every error the dashboard raises on purpose.

    Subclasses fix ``code`` and the default ``recoverable`` flag. Keyword
    context passed to the constructor (``status_code=404``, ``endpoint=...``)
    lands in ``details``; ``None`` values are dropped.
    """

    code = "CRM_000"
    recoverable = True

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable
        self.details = dict(details or {})
        self.details.update({k: v for k, v in context.items() if v is not None})

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.code}] {self.message}"
        return f"[{self.code}] {self.message} | Details: {self.details}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# === AUTHENTICATION ===

class AuthenticationRequiredError(CRMError):
    """No signed-in user, or no token to send"""

    code = "AUTH_001"

    def __init__(self, message: str = "No authentication token available", **kwargs):
        super().__init__(message, **kwargs)


class IdentityProviderError(CRMError):
    """The identity provider refused a sign-in, sign-up or token refresh"""

    code = "AUTH_002"

    def __init__(self, message: str, provider_code: Optional[str] = None, **kwargs):
        super().__init__(message, provider_code=provider_code, **kwargs)
        self.provider_code = provider_code


# === BACKEND ===

class APIError(CRMError):
    """
    Non-2xx response from the backend.

    The only server-side failure shape callers branch on; ``field_errors``
    holds the backend's per-field validation messages, if it sent any.
    """

    code = "API_001"

    def __init__(
        self,
        message: str,
        status_code: int,
        field_errors: Optional[List[Any]] = None,
        **kwargs,
    ):
        super().__init__(message, status_code=status_code, field_errors=field_errors or None, **kwargs)
        self.status_code = status_code
        self.field_errors = list(field_errors or [])


class NetworkError(CRMError):
    """The request never produced an HTTP response"""

    code = "NET_001"

    def __init__(self, message: str, endpoint: Optional[str] = None, **kwargs):
        super().__init__(message, endpoint=endpoint, **kwargs)


class ResponseParseError(CRMError):
    """A 2xx response whose body is not JSON"""

    code = "NET_002"

    def __init__(self, message: str, endpoint: Optional[str] = None, **kwargs):
        super().__init__(message, endpoint=endpoint, **kwargs)


# === CLIENT SIDE ===

class ValidationError(CRMError):
    """Input rejected before it was sent"""

    code = "VAL_001"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[str]] = None,
        **kwargs,
    ):
        super().__init__(message, field=field, errors=errors or None, **kwargs)
        self.errors = list(errors) if errors else [message]


class ConfigurationError(CRMError):
    """Missing or malformed setting; the app cannot run until it is fixed"""

    code = "CONFIG_001"
    recoverable = False

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, config_key=config_key, expected_type=expected_type, **kwargs)
