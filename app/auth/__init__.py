"""
app/auth package marker.
"""

from app.auth.base import AuthenticatedUser, AuthenticationError, AuthProvider
from app.auth.factory import get_auth_provider
from app.auth.mock_provider import MockAuthProvider

__all__ = [
    "AuthenticatedUser",
    "AuthenticationError",
    "AuthProvider",
    "MockAuthProvider",
    "get_auth_provider",
]
