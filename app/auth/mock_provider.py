"""
Development auth provider.

Accepts one configured development token plus any token issued by this
process through ``issue_token``. No passwords, no expiry.
"""

from __future__ import annotations

import secrets
import threading

from app.auth.base import AuthenticatedUser, AuthenticationError, AuthProvider


class MockAuthProvider(AuthProvider):
    def __init__(self, *, dev_token: str, dev_user: AuthenticatedUser) -> None:
        self._lock = threading.Lock()
        self._tokens: dict[str, AuthenticatedUser] = {dev_token: dev_user}

    def issue_token(self, user: AuthenticatedUser) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._tokens[token] = user
        return token

    def verify_token(self, token: str) -> AuthenticatedUser:
        with self._lock:
            user = self._tokens.get(token.strip())
        if user is None:
            raise AuthenticationError("Invalid or expired token.")
        return user
