"""
Auth provider selection.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from app.auth.base import AuthenticatedUser, AuthProvider
from app.auth.mock_provider import MockAuthProvider
from app.config import get_auth_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_auth_provider() -> AuthProvider:
    """
    Return the process-wide auth provider selected by AUTH_MODE.
    """

    settings = get_auth_settings()
    provider = MockAuthProvider(
        dev_token=settings.dev_token,
        dev_user=AuthenticatedUser(id=settings.dev_user_id, email=settings.dev_user_email),
    )
    logger.info("Auth provider selected mode=%s", settings.mode)
    return provider
