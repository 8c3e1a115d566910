"""
Authentication module for the CRM Dashboard.
Signs users in against Firebase Authentication and issues bearer tokens
for backend requests.

The Streamlit page guard lives in ``crm_core.auth.navigation`` and is not
imported here, so the rest of the package stays usable without Streamlit.
"""

from .identity_provider import FirebaseIdentityProvider, TokenBundle
from .session import (
    AuthSession,
    AuthUser,
    AuthResult,
    SignUpData,
    EXPIRY_MARGIN,
)

__all__ = [
    "FirebaseIdentityProvider",
    "TokenBundle",
    "AuthSession",
    "AuthUser",
    "AuthResult",
    "SignUpData",
    "EXPIRY_MARGIN",
]
