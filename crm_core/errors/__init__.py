# =============================================================================
# crm_core/errors/__init__.py
# Centralized Error Handling for the CRM Dashboard
# =============================================================================

from .exceptions import (
    CRMError,
    AuthenticationRequiredError,
    IdentityProviderError,
    APIError,
    NetworkError,
    ResponseParseError,
    ValidationError,
    ConfigurationError,
)

__all__ = [
    "CRMError",
    "AuthenticationRequiredError",
    "IdentityProviderError",
    "APIError",
    "NetworkError",
    "ResponseParseError",
    "ValidationError",
    "ConfigurationError",
]
