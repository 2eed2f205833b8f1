"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

STORAGE_MODE_MEMORY = "memory"
STORAGE_MODE_DATABASE = "database"
ALLOWED_STORAGE_MODES = frozenset({STORAGE_MODE_MEMORY, STORAGE_MODE_DATABASE})

AUTH_MODE_MOCK = "mock"
ALLOWED_AUTH_MODES = frozenset({AUTH_MODE_MOCK})

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _require_choice(name: str, default: str, allowed: frozenset[str]) -> str:
    """
    Read a lowercased enumerated setting; unknown values raise RuntimeError.
    """

    value = _get_str_env(name, default).lower()
    if value not in allowed:
        raise RuntimeError(
            f"{name} '{value}' is not valid. Allowed values: {sorted(allowed)}."
        )
    return value


@dataclass(frozen=True)
class SpreadsheetIngestionSettings:
    """
    Runtime settings for spreadsheet uploads and confirmation.
    """

    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    preview_rows: int = 5
    log_validation_errors: bool = True


@dataclass(frozen=True)
class StorageSettings:
    mode: str = STORAGE_MODE_MEMORY


@dataclass(frozen=True)
class AuthSettings:
    """
    Mock auth settings: one always-valid development token bound to one user.
    """

    mode: str = AUTH_MODE_MOCK
    dev_token: str = "dev-token"
    dev_user_id: int = 1
    dev_user_email: str = "demo@example.com"


@lru_cache(maxsize=1)
def get_spreadsheet_ingestion_settings() -> SpreadsheetIngestionSettings:
    """
    Return cached spreadsheet ingestion settings from environment variables.
    """

    return SpreadsheetIngestionSettings(
        max_upload_bytes=max(1, _get_int_env("SPREADSHEET_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)),
        preview_rows=max(0, _get_int_env("SPREADSHEET_PREVIEW_ROWS", 5)),
        log_validation_errors=_get_bool_env("SPREADSHEET_LOG_VALIDATION_ERRORS", True),
    )


@lru_cache(maxsize=1)
def get_storage_settings() -> StorageSettings:
    """
    Return cached storage settings.

    Raises RuntimeError if STORAGE_MODE is not one of the supported backends.
    """

    return StorageSettings(
        mode=_require_choice("STORAGE_MODE", STORAGE_MODE_MEMORY, ALLOWED_STORAGE_MODES),
    )


@lru_cache(maxsize=1)
def get_auth_settings() -> AuthSettings:
    """
    Return cached auth settings.

    Raises RuntimeError if AUTH_MODE is not one of the supported providers.
    """

    return AuthSettings(
        mode=_require_choice("AUTH_MODE", AUTH_MODE_MOCK, ALLOWED_AUTH_MODES),
        dev_token=_get_str_env("MOCK_AUTH_DEV_TOKEN", "dev-token"),
        dev_user_id=_get_int_env("MOCK_AUTH_DEV_USER_ID", 1),
        dev_user_email=_get_str_env("MOCK_AUTH_DEV_USER_EMAIL", "demo@example.com"),
    )
