"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and authentication.
"""

from __future__ import annotations

from fastapi import Depends, File, HTTPException, UploadFile, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.auth import AuthenticatedUser, AuthenticationError, AuthProvider, get_auth_provider
from app.parsers.spreadsheet_parser import SUPPORTED_EXTENSIONS, file_extension

_bearer = HTTPBearer(auto_error=False)


def get_spreadsheet_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file has a supported spreadsheet extension.
    """

    extension = file_extension(file.filename or "")
    if extension not in SUPPORTED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type. Allowed: {', '.join(SUPPORTED_EXTENSIONS)}.",
        )

    return file


def read_upload_content(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read at most ``max_bytes + 1`` bytes and reject larger uploads with 413.
    """

    if file.size is not None and file.size > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File too large",
        )

    content = file.file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File too large",
        )
    return content


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    auth_provider: AuthProvider = Depends(get_auth_provider),
) -> AuthenticatedUser:
    """
    Resolve the ``Authorization: Bearer`` token into the requesting user.
    """

    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return auth_provider.verify_token(credentials.credentials)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
