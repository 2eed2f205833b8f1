"""
Authentication provider interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class AuthenticationError(Exception):
    """Raised when a bearer token cannot be verified."""


@dataclass(frozen=True)
class AuthenticatedUser:
    id: int
    email: str


class AuthProvider(ABC):
    """
    Resolves a bearer token into the user it was issued to.
    """

    @abstractmethod
    def verify_token(self, token: str) -> AuthenticatedUser:
        """
        Return the token's user or raise AuthenticationError.
        """
