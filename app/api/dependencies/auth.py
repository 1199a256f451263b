"""FastAPI authentication dependency.

Resolves the caller's user id from a JWT in the Authorization header
(mobile/API clients) or the ``session`` cookie (web).
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from loguru import logger

from app.core.auth_jwt import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def _get_auth_token(request: Request, token: str | None) -> str | None:
    """Extract auth token from either Authorization header or cookie."""
    if token:
        return token
    return request.cookies.get("session") or None


def get_current_user_id(request: Request, token: str | None = Depends(oauth2_scheme)) -> str:
    """FastAPI dependency returning the authenticated user id.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    auth_token = _get_auth_token(request, token)

    if not auth_token:
        logger.warning(f"Auth failed: Missing authentication token. Path: {request.url.path}, Method: {request.method}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_access_token(auth_token)
    except ValueError as e:
        logger.warning(f"Auth failed: {e}, Path: {request.url.path}, Method: {request.method}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
